"""Tests for the self-service /v1/me endpoints."""

from hub_api.auth.identity_provider import IdentityProviderError
from hub_api.db.models import User
from hub_api.rbac.role_store import EDITOR_BASELINE

ME = "/v1/me"


def test_get_me(test_client, editor):
    user, headers = editor

    response = test_client.get(ME, headers=headers)

    assert response.status_code == 200
    body = response.json()
    assert body["currentUser"]["uid"] == user.uid
    assert body["currentUser"]["role"] == "Editor"
    assert body["isAdmin"] is False
    assert set(body["permissions"]) == set(EDITOR_BASELINE)


def test_get_me_admin_flag(test_client, admin):
    assert test_client.get(ME, headers=admin[1]).json()["isAdmin"] is True


def test_first_request_creates_record(test_client, db_session, provider, seeded_roles):
    principal = provider.add_account("new@example.com", display_name="Newcomer")
    token = provider.issue_token(principal.uid)

    response = test_client.get(ME, headers={"Authorization": f"Bearer {token}"})

    assert response.status_code == 200
    assert response.json()["currentUser"]["name"] == "Newcomer"
    assert db_session.get(User, principal.uid) is not None


def test_update_own_name(test_client, db_session, provider, member):
    user, headers = member

    response = test_client.patch(ME, json={"name": "Uma Renamed"}, headers=headers)

    assert response.status_code == 200
    assert response.json()["currentUser"]["name"] == "Uma Renamed"
    assert provider.accounts[user.uid]["display_name"] == "Uma Renamed"
    assert db_session.get(User, user.uid).name == "Uma Renamed"


def test_update_own_name_provider_failure_keeps_record_change(test_client, provider, member):
    provider.fail_with["update_profile"] = IdentityProviderError("unexpected_failure", 500)

    response = test_client.patch(ME, json={"name": "Uma Renamed"}, headers=member[1])

    assert response.status_code == 200
    assert response.json()["currentUser"]["name"] == "Uma Renamed"


def test_update_own_name_validation(test_client, member):
    assert test_client.patch(ME, json={"name": "U"}, headers=member[1]).status_code == 422


def test_enable_and_disable_service(test_client, member, content_service):
    enabled = test_client.put(f"{ME}/services/content", headers=member[1])

    assert enabled.status_code == 200
    assert enabled.json()["currentUser"]["enabledServices"] == ["content"]

    again = test_client.put(f"{ME}/services/content", headers=member[1])
    assert again.json()["currentUser"]["enabledServices"] == ["content"]

    disabled = test_client.delete(f"{ME}/services/content", headers=member[1])
    assert disabled.status_code == 200
    assert disabled.json()["currentUser"]["enabledServices"] == []


def test_enable_inactive_service(test_client, member, inactive_service):
    assert test_client.put(f"{ME}/services/legacy", headers=member[1]).status_code == 404


def test_enable_unknown_service(test_client, member):
    response = test_client.put(f"{ME}/services/nope", headers=member[1])

    assert response.status_code == 404
    assert response.headers["content-type"] == "application/problem+json"


def test_bearer_request_does_not_stamp_last_login(test_client, db_session, member):
    user, headers = member

    assert test_client.get(ME, headers=headers).status_code == 200

    db_session.expire_all()
    assert db_session.get(User, user.uid).last_login_at is None
