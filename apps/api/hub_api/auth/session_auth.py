"""Session authentication for self-service and admin endpoints.

Supabase JWT-based session auth.

FLOW:
1. The caller signs in (hub UI or external login) and holds a Supabase access token
2. The caller sends Authorization: Bearer <jwt>
3. The token is introspected with Supabase (signature and expiry checked there)
4. Session Resolution loads or lazily creates the user record
5. The endpoint receives a per-request SessionContext

SECURITY:
- Accounts marked for deletion or set inactive cannot open a session
- Authorization is decided by the evaluator at each endpoint, never here
"""

import logging
from typing import Optional

from fastapi import Depends
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.orm import Session

from hub_api.auth.identity_provider import IdentityProvider, IdentityProviderError, get_identity_provider
from hub_api.auth.session_resolution import SessionContext, SessionResolver
from hub_api.context import user_id_var
from hub_api.db.session import get_db
from hub_api.errors import AuthenticationError, PermissionDenied, UpstreamError

logger = logging.getLogger(__name__)

session_security = HTTPBearer(auto_error=False, description="Supabase JWT Session Token")


def get_session_context(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(session_security),
    db: Session = Depends(get_db),
    provider: IdentityProvider = Depends(get_identity_provider),
) -> SessionContext:
    """Authenticate the bearer token and resolve the session.

    Raises:
        AuthenticationError: 401 if the token is missing, invalid or expired
        PermissionDenied: 403 if the account is inactive or pending deletion
        UpstreamError: 500 if the identity provider is unreachable
    """
    if not credentials:
        raise AuthenticationError("Missing Authorization header. Please log in first.")

    try:
        principal = provider.get_user(credentials.credentials)
    except IdentityProviderError as e:
        logger.error(
            "session.jwt.validation_failed",
            extra={"provider_code": e.code, "provider_status": e.status},
        )
        raise UpstreamError("Session validation failed. Please try again later.")

    if principal is None:
        raise AuthenticationError("Invalid or expired session token. Please log in again.")

    context = SessionResolver(db).resolve(principal, stamp_login=False)
    user_id_var.set(principal.uid)

    user = context.current_user
    if user is not None and user.status != "active":
        logger.warning(
            "session.inactive_account",
            extra={"event": "session.inactive_account", "uid": user.uid, "status": user.status},
        )
        raise PermissionDenied("This account is not active.")

    logger.info(
        "session.auth.success",
        extra={
            "event": "session.auth.success",
            "uid": principal.uid,
            "role": context.role,
            "degraded": context.degraded,
        },
    )
    return context
