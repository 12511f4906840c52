"""Identity-provider adapter (Supabase Auth).

The rest of the hub talks to ``IdentityProvider``; only this module knows
the Supabase client shapes. Every provider failure is normalised into
``IdentityProviderError(code, status, message)`` so callers map stable
codes instead of matching on exception text.
"""

import logging
from dataclasses import dataclass
from typing import Any, Optional, Protocol

from hub_api.supabase_client import get_supabase_admin_client, get_supabase_client

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class IdentityPrincipal:
    """Provider-side identity: the claims the hub trusts."""

    uid: str
    email: str
    display_name: Optional[str] = None
    email_confirmed: bool = False


class IdentityProviderError(Exception):
    """Normalised provider failure.

    Attributes:
        code: Provider error code (e.g. "invalid_credentials"), "unknown" if absent
        status: Provider HTTP status, if any
        message: Provider message (diagnostics only, never returned to callers)
    """

    def __init__(self, code: str, status: Optional[int] = None, message: str = ""):
        super().__init__(f"{code}: {message}" if message else code)
        self.code = code
        self.status = status
        self.message = message


class IdentityProvider(Protocol):
    def sign_in(self, email: str, password: str) -> IdentityPrincipal: ...

    def create_user(self, email: str, password: str) -> IdentityPrincipal: ...

    def update_profile(self, uid: str, display_name: str) -> None: ...

    def get_user(self, access_token: str) -> Optional[IdentityPrincipal]: ...

    def admin_create_user(self, email: str, password: str, display_name: str) -> IdentityPrincipal: ...

    def delete_user(self, uid: str) -> None: ...


def _normalise(exc: Exception) -> IdentityProviderError:
    if isinstance(exc, IdentityProviderError):
        return exc
    code = getattr(exc, "code", None) or "unknown"
    status = getattr(exc, "status", None)
    if not isinstance(status, int):
        status = None
    message = getattr(exc, "message", None) or str(exc)
    return IdentityProviderError(str(code), status, message)


def _principal(user: Any) -> IdentityPrincipal:
    metadata = getattr(user, "user_metadata", None) or {}
    return IdentityPrincipal(
        uid=user.id,
        email=user.email or "",
        display_name=metadata.get("display_name") or metadata.get("name"),
        email_confirmed=getattr(user, "email_confirmed_at", None) is not None,
    )


class SupabaseIdentityProvider:
    """``IdentityProvider`` backed by the Supabase Python client."""

    def sign_in(self, email: str, password: str) -> IdentityPrincipal:
        try:
            response = get_supabase_client().auth.sign_in_with_password(
                {"email": email, "password": password}
            )
        except Exception as e:
            raise _normalise(e) from e

        if not response.user or not response.session:
            raise IdentityProviderError("invalid_credentials", 400, "No session returned")
        return _principal(response.user)

    def create_user(self, email: str, password: str) -> IdentityPrincipal:
        try:
            response = get_supabase_client().auth.sign_up({"email": email, "password": password})
        except Exception as e:
            raise _normalise(e) from e

        if not response.user:
            raise IdentityProviderError("unknown", None, "Sign-up returned no user")
        return _principal(response.user)

    def update_profile(self, uid: str, display_name: str) -> None:
        try:
            get_supabase_admin_client().auth.admin.update_user_by_id(
                uid, {"user_metadata": {"display_name": display_name}}
            )
        except Exception as e:
            raise _normalise(e) from e

    def get_user(self, access_token: str) -> Optional[IdentityPrincipal]:
        """Introspect an access token. Returns None for an invalid or expired token."""
        try:
            response = get_supabase_client().auth.get_user(access_token)
        except Exception as e:
            err = _normalise(e)
            if err.status in (401, 403) or err.code in ("bad_jwt", "session_not_found", "user_not_found"):
                logger.info("identity.token.rejected", extra={"provider_code": err.code})
                return None
            raise err from e

        if not response or not response.user:
            return None
        return _principal(response.user)

    def admin_create_user(self, email: str, password: str, display_name: str) -> IdentityPrincipal:
        try:
            response = get_supabase_admin_client().auth.admin.create_user(
                {
                    "email": email,
                    "password": password,
                    "email_confirm": True,
                    "user_metadata": {"display_name": display_name},
                }
            )
        except Exception as e:
            raise _normalise(e) from e

        if not response.user:
            raise IdentityProviderError("unknown", None, "Admin create returned no user")
        return _principal(response.user)

    def delete_user(self, uid: str) -> None:
        """Delete the provider credential. A credential that is already gone counts as deleted."""
        try:
            get_supabase_admin_client().auth.admin.delete_user(uid)
        except Exception as e:
            err = _normalise(e)
            if err.code == "user_not_found" or err.status == 404:
                logger.info("identity.delete.already_absent", extra={"uid": uid})
                return
            raise err from e


_provider: Optional[IdentityProvider] = None


def get_identity_provider() -> IdentityProvider:
    """FastAPI dependency; tests override it with a fake."""
    global _provider
    if _provider is None:
        _provider = SupabaseIdentityProvider()
    return _provider
