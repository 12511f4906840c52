"""Tests for admin role management endpoints."""

from hub_api.db.models import Role

ROLES = "/v1/admin/roles"


def _role_id(test_client, headers, name):
    return next(r["id"] for r in test_client.get(ROLES, headers=headers).json() if r["name"] == name)


def test_list_roles_marks_protected(test_client, admin):
    response = test_client.get(ROLES, headers=admin[1])

    assert response.status_code == 200
    protected = {r["name"]: r["protected"] for r in response.json()}
    assert protected == {"Administrator": True, "Editor": True, "User": True}


def test_editor_cannot_manage_roles(test_client, editor):
    assert test_client.get(ROLES, headers=editor[1]).status_code == 403
    response = test_client.post(
        ROLES, json={"name": "Support", "description": "Helps customers"}, headers=editor[1]
    )
    assert response.status_code == 403


def test_permission_catalog_grouped(test_client, admin):
    response = test_client.get(f"{ROLES}/permissions", headers=admin[1])

    assert response.status_code == 200
    body = response.json()
    assert "User Management" in body
    assert body["Global"][0]["id"] == "global:full_access"


def test_create_update_delete_custom_role(test_client, db_session, admin):
    headers = admin[1]
    created = test_client.post(
        ROLES,
        json={"name": "Support", "description": "Helps customers", "permissions": ["admin:users:read"]},
        headers=headers,
    )
    assert created.status_code == 201
    role_id = created.json()["id"]
    assert created.json()["protected"] is False

    updated = test_client.put(
        f"{ROLES}/{role_id}",
        json={"name": "Customer Support", "description": "Helps customers", "permissions": []},
        headers=headers,
    )
    assert updated.status_code == 200
    assert updated.json()["name"] == "Customer Support"

    deleted = test_client.delete(f"{ROLES}/{role_id}", headers=headers)
    assert deleted.status_code == 204
    db_session.expire_all()
    assert db_session.get(Role, role_id) is None


def test_create_duplicate_role_case_insensitive(test_client, admin):
    body = {"name": "Support", "description": "Helps customers"}
    assert test_client.post(ROLES, json=body, headers=admin[1]).status_code == 201

    response = test_client.post(ROLES, json={**body, "name": "support"}, headers=admin[1])

    assert response.status_code == 409
    assert response.json()["type"].endswith("/duplicate-role")


def test_create_protected_name_rejected(test_client, admin):
    response = test_client.post(ROLES, json={"name": "editor", "description": "Sneaky copy"}, headers=admin[1])
    assert response.status_code == 409


def test_create_role_validation(test_client, admin):
    response = test_client.post(ROLES, json={"name": "S", "description": "Desc ok"}, headers=admin[1])
    assert response.status_code == 422


def test_rename_protected_role_refused(test_client, admin):
    role_id = _role_id(test_client, admin[1], "Editor")

    response = test_client.put(
        f"{ROLES}/{role_id}",
        json={"name": "Moderator", "description": "Renamed editor", "permissions": []},
        headers=admin[1],
    )

    assert response.status_code == 403
    assert response.json()["type"].endswith("/protected-rename")


def test_delete_protected_role_refused(test_client, db_session, admin):
    role_id = _role_id(test_client, admin[1], "User")

    response = test_client.delete(f"{ROLES}/{role_id}", headers=admin[1])

    assert response.status_code == 403
    assert response.json()["type"].endswith("/protected-role")
    assert db_session.get(Role, role_id) is not None


def test_delete_role_in_use_refused(test_client, make_user, admin):
    created = test_client.post(ROLES, json={"name": "Support", "description": "Helps customers"}, headers=admin[1])
    make_user(role="Support")

    response = test_client.delete(f"{ROLES}/{created.json()['id']}", headers=admin[1])

    assert response.status_code == 409
    assert response.json()["type"].endswith("/role-in-use")


def test_delete_unknown_role(test_client, admin):
    assert test_client.delete(f"{ROLES}/missing", headers=admin[1]).status_code == 404


def test_seed_endpoint_is_idempotent(test_client, admin):
    first = test_client.post(f"{ROLES}/seed", headers=admin[1])
    second = test_client.post(f"{ROLES}/seed", headers=admin[1])

    assert first.status_code == 200
    assert [r["id"] for r in first.json()] == [r["id"] for r in second.json()]
