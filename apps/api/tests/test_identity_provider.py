"""Tests for the Supabase identity-provider adapter (Supabase client mocked)."""

from types import SimpleNamespace
from unittest.mock import MagicMock, patch

import pytest

from hub_api.auth.identity_provider import IdentityProviderError, SupabaseIdentityProvider


class _ProviderFailure(Exception):
    def __init__(self, message, code=None, status=None):
        super().__init__(message)
        self.message = message
        self.code = code
        self.status = status


def _user(uid="uid_1", email="ada@example.com", display_name="Ada", confirmed=True):
    return SimpleNamespace(
        id=uid,
        email=email,
        user_metadata={"display_name": display_name} if display_name else {},
        email_confirmed_at="2026-01-01T00:00:00Z" if confirmed else None,
    )


@pytest.fixture
def client():
    mock = MagicMock()
    with patch("hub_api.auth.identity_provider.get_supabase_client", return_value=mock):
        yield mock


@pytest.fixture
def admin_client():
    mock = MagicMock()
    with patch("hub_api.auth.identity_provider.get_supabase_admin_client", return_value=mock):
        yield mock


def test_sign_in_returns_principal(client):
    client.auth.sign_in_with_password.return_value = SimpleNamespace(user=_user(), session=object())

    principal = SupabaseIdentityProvider().sign_in("ada@example.com", "secret123")

    assert principal.uid == "uid_1"
    assert principal.display_name == "Ada"
    assert principal.email_confirmed is True


def test_sign_in_error_is_normalised(client):
    client.auth.sign_in_with_password.side_effect = _ProviderFailure(
        "Invalid login credentials", code="invalid_credentials", status=400
    )

    with pytest.raises(IdentityProviderError) as exc_info:
        SupabaseIdentityProvider().sign_in("ada@example.com", "wrong")

    assert exc_info.value.code == "invalid_credentials"
    assert exc_info.value.status == 400


def test_sign_in_without_session(client):
    client.auth.sign_in_with_password.return_value = SimpleNamespace(user=None, session=None)

    with pytest.raises(IdentityProviderError) as exc_info:
        SupabaseIdentityProvider().sign_in("ada@example.com", "secret123")
    assert exc_info.value.code == "invalid_credentials"


def test_error_without_code_is_unknown(client):
    client.auth.sign_up.side_effect = RuntimeError("network down")

    with pytest.raises(IdentityProviderError) as exc_info:
        SupabaseIdentityProvider().create_user("ada@example.com", "secret123")

    assert exc_info.value.code == "unknown"
    assert exc_info.value.status is None


def test_get_user_invalid_token_returns_none(client):
    client.auth.get_user.side_effect = _ProviderFailure("invalid JWT", code="bad_jwt", status=403)
    assert SupabaseIdentityProvider().get_user("expired") is None


def test_get_user_outage_raises(client):
    client.auth.get_user.side_effect = _ProviderFailure("upstream", code="unexpected_failure", status=503)

    with pytest.raises(IdentityProviderError):
        SupabaseIdentityProvider().get_user("token")


def test_update_profile_uses_admin_client(admin_client):
    SupabaseIdentityProvider().update_profile("uid_1", "Ada L.")

    admin_client.auth.admin.update_user_by_id.assert_called_once_with(
        "uid_1", {"user_metadata": {"display_name": "Ada L."}}
    )


def test_admin_create_user_confirms_email(admin_client):
    admin_client.auth.admin.create_user.return_value = SimpleNamespace(user=_user(uid="uid_9"))

    principal = SupabaseIdentityProvider().admin_create_user("ada@example.com", "secret123", "Ada")

    assert principal.uid == "uid_9"
    payload = admin_client.auth.admin.create_user.call_args.args[0]
    assert payload["email_confirm"] is True
    assert payload["user_metadata"] == {"display_name": "Ada"}


def test_delete_user_already_absent_is_success(admin_client):
    admin_client.auth.admin.delete_user.side_effect = _ProviderFailure("not found", code="user_not_found", status=404)

    SupabaseIdentityProvider().delete_user("uid_1")


def test_delete_user_failure_raises(admin_client):
    admin_client.auth.admin.delete_user.side_effect = _ProviderFailure("boom", code="unexpected_failure", status=500)

    with pytest.raises(IdentityProviderError):
        SupabaseIdentityProvider().delete_user("uid_1")
