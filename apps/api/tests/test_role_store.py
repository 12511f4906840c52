"""Tests for RoleStore (protected roles, uniqueness, in-use deletion)."""

import pytest

from hub_api.db.models import Role
from hub_api.errors import DuplicateRole, NotFound, ProtectedName, ProtectedRename, ProtectedRole, RoleInUse
from hub_api.rbac.catalog import FULL_ACCESS, all_permission_ids
from hub_api.rbac.role_store import EDITOR_BASELINE, RoleStore


def test_seed_defaults_creates_protected_roles(db_session):
    roles = RoleStore(db_session).seed_defaults()

    assert [r.name for r in roles] == ["Administrator", "Editor", "User"]
    by_name = {r.name: r for r in roles}
    assert FULL_ACCESS in by_name["Administrator"].permissions
    assert set(by_name["Editor"].permissions) == set(EDITOR_BASELINE)
    assert "admin:users:read" not in by_name["User"].permissions


def test_seed_defaults_is_idempotent(db_session):
    store = RoleStore(db_session)
    first = {r.name: r.id for r in store.seed_defaults()}
    second = {r.name: r.id for r in store.seed_defaults()}

    assert first == second
    assert len(store.list_all()) == 3


def test_seed_defaults_restores_editor_baseline(db_session):
    store = RoleStore(db_session)
    editor = next(r for r in store.seed_defaults() if r.name == "Editor")
    store.update(editor.id, "Editor", "Trimmed editor role", ["admin:users:read"])

    store.seed_defaults()

    assert set(store.get(editor.id).permissions) == set(EDITOR_BASELINE)


def test_create_custom_role(db_session):
    role = RoleStore(db_session).create("Support", "Helps customers", ["admin:users:read", " admin:users:read "])

    assert role.id
    assert role.name == "Support"
    assert role.name_lower == "support"
    assert role.permissions == ["admin:users:read"]


def test_create_duplicate_name_is_case_insensitive(db_session):
    store = RoleStore(db_session)
    store.create("Support", "Helps customers", [])

    with pytest.raises(DuplicateRole):
        store.create("SUPPORT", "Another support role", [])
    assert [r.name for r in store.list_all()] == ["Support"]


@pytest.mark.parametrize("name", ["Administrator", "editor", "USER"])
def test_create_protected_name_is_rejected(db_session, name):
    with pytest.raises(ProtectedName):
        RoleStore(db_session).create(name, "Not allowed", [])
    assert RoleStore(db_session).list_all() == []


def test_update_protected_role_keeps_name(db_session, seeded_roles):
    store = RoleStore(db_session)
    admin_role = next(r for r in seeded_roles if r.name == "Administrator")

    with pytest.raises(ProtectedRename):
        store.update(admin_role.id, "Superuser", "Renamed", [FULL_ACCESS])
    assert store.get(admin_role.id).name == "Administrator"


def test_update_protected_role_permissions_allowed(db_session, seeded_roles):
    store = RoleStore(db_session)
    user_role = next(r for r in seeded_roles if r.name == "User")

    updated = store.update(user_role.id, "User", "Standard account", ["service:files:read"])

    assert updated.permissions == ["service:files:read"]
    assert updated.updated_at is not None


def test_update_rename_collision(db_session):
    store = RoleStore(db_session)
    store.create("Support", "Helps customers", [])
    billing = store.create("Billing", "Handles invoices", [])

    with pytest.raises(DuplicateRole):
        store.update(billing.id, "support", "Handles invoices", [])


def test_update_unknown_role(db_session):
    with pytest.raises(NotFound):
        RoleStore(db_session).update("missing", "Name", "Description", [])


@pytest.mark.parametrize("name", ["Administrator", "Editor", "User"])
def test_delete_protected_role_refused(db_session, seeded_roles, name):
    store = RoleStore(db_session)
    role = next(r for r in seeded_roles if r.name == name)

    with pytest.raises(ProtectedRole):
        store.delete(role.id)
    assert store.get(role.id).name == name


def test_delete_role_in_use_refused(db_session, make_user):
    store = RoleStore(db_session)
    role = store.create("Support", "Helps customers", [])
    make_user(role="Support")

    with pytest.raises(RoleInUse):
        store.delete(role.id)
    assert db_session.get(Role, role.id) is not None


def test_delete_unused_role(db_session, make_user):
    store = RoleStore(db_session)
    role = store.create("Support", "Helps customers", [])
    # Case-variant reference does not count as in use (exact match)
    make_user(role="support")

    role_id = role.id

    store.delete(role_id)

    db_session.expire_all()
    assert db_session.get(Role, role_id) is None


def test_delete_unknown_role(db_session):
    with pytest.raises(NotFound):
        RoleStore(db_session).delete("missing")


def test_effective_permissions(db_session, seeded_roles):
    store = RoleStore(db_session)

    assert store.effective_permissions("Administrator") == all_permission_ids()
    assert store.effective_permissions("Editor") == EDITOR_BASELINE
    assert store.effective_permissions("editor") == frozenset()
    assert store.effective_permissions(None) == frozenset()
