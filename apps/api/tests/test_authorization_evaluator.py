"""Tests for the authorization evaluator decision table."""

import logging

import pytest

from hub_api.errors import InsufficientPermission, PermissionDenied, ProtectedRole
from hub_api.rbac.evaluator import Action, DenialReason, enforce, evaluate, is_protected_role_name

ADMIN = "Administrator"
EDITOR = "Editor"
USER = "User"


@pytest.mark.parametrize(
    "actor,target,allowed",
    [
        (ADMIN, ADMIN, True),
        (ADMIN, EDITOR, True),
        (ADMIN, USER, True),
        (ADMIN, "Support", True),
        (EDITOR, ADMIN, False),
        (EDITOR, EDITOR, False),
        (EDITOR, USER, True),
        (EDITOR, "Support", True),
        (USER, USER, False),
        (USER, EDITOR, False),
        ("Support", USER, False),
    ],
)
def test_edit_user_table(actor, target, allowed):
    assert bool(evaluate(actor, target, False, Action.EDIT_USER)) is allowed


@pytest.mark.parametrize(
    "actor,target,allowed",
    [
        (ADMIN, ADMIN, True),
        (ADMIN, EDITOR, True),
        (ADMIN, USER, True),
        (EDITOR, USER, False),
        (EDITOR, ADMIN, False),
        (USER, USER, False),
    ],
)
def test_delete_user_table(actor, target, allowed):
    assert bool(evaluate(actor, target, False, Action.DELETE_USER)) is allowed


@pytest.mark.parametrize("actor", [ADMIN, EDITOR, USER])
def test_nobody_deletes_own_account(actor):
    decision = evaluate(actor, actor, True, Action.DELETE_USER)
    assert not decision
    assert decision.reason is DenialReason.SELF_DELETION


def test_editor_cannot_touch_administrator():
    decision = evaluate(EDITOR, ADMIN, False, Action.EDIT_USER)
    assert not decision
    assert decision.reason is DenialReason.ADMINISTRATOR_TARGET


@pytest.mark.parametrize(
    "actor,target,new_role,allowed",
    [
        (ADMIN, USER, ADMIN, True),
        (ADMIN, ADMIN, USER, True),
        (EDITOR, USER, ADMIN, False),
        (EDITOR, ADMIN, USER, False),
        (EDITOR, USER, EDITOR, True),
        (EDITOR, USER, "Support", True),
        (EDITOR, EDITOR, USER, False),
        (USER, USER, EDITOR, False),
    ],
)
def test_assign_role_table(actor, target, new_role, allowed):
    assert bool(evaluate(actor, target, False, Action.ASSIGN_ROLE, new_role=new_role)) is allowed


def test_assign_administrator_denial_is_insufficient_permission():
    decision = evaluate(EDITOR, USER, False, Action.ASSIGN_ROLE, new_role=ADMIN)
    assert decision.reason is DenialReason.INSUFFICIENT_PERMISSION


def test_assign_role_requires_new_role():
    with pytest.raises(ValueError):
        evaluate(ADMIN, USER, False, Action.ASSIGN_ROLE)


@pytest.mark.parametrize("actor,allowed", [(ADMIN, True), (EDITOR, False), (USER, False)])
def test_create_user_is_administrator_only(actor, allowed):
    assert bool(evaluate(actor, USER, False, Action.CREATE_USER)) is allowed


@pytest.mark.parametrize(
    "actor,role_name,allowed,reason",
    [
        (ADMIN, "Support", True, None),
        (ADMIN, ADMIN, False, DenialReason.PROTECTED_ROLE),
        (ADMIN, EDITOR, False, DenialReason.PROTECTED_ROLE),
        (ADMIN, "user", False, DenialReason.PROTECTED_ROLE),
        (EDITOR, "Support", False, DenialReason.INSUFFICIENT_PERMISSION),
        (USER, "Support", False, DenialReason.INSUFFICIENT_PERMISSION),
    ],
)
def test_delete_role_table(actor, role_name, allowed, reason):
    decision = evaluate(actor, role_name, False, Action.DELETE_ROLE)
    assert bool(decision) is allowed
    assert decision.reason is reason


def test_role_comparison_is_exact():
    # "administrator" is not the Administrator role for authorization purposes
    assert not evaluate("administrator", USER, False, Action.CREATE_USER)
    assert evaluate(EDITOR, "administrator", False, Action.EDIT_USER)


def test_protected_name_check_is_case_insensitive():
    assert is_protected_role_name("ADMINISTRATOR")
    assert is_protected_role_name(" editor ")
    assert not is_protected_role_name("Support")


@pytest.mark.parametrize(
    "action,admin,editor,user",
    [
        (Action.VIEW_USERS, True, True, False),
        (Action.MANAGE_SERVICES, True, True, False),
        (Action.MANAGE_ROLES, True, False, False),
        (Action.MANAGE_SUBSCRIPTIONS, True, False, False),
    ],
)
def test_section_access(action, admin, editor, user):
    assert bool(evaluate(ADMIN, "", False, action)) is admin
    assert bool(evaluate(EDITOR, "", False, action)) is editor
    assert bool(evaluate(USER, "", False, action)) is user


def test_edit_profile_is_self_only():
    assert evaluate(USER, USER, True, Action.EDIT_PROFILE)
    assert not evaluate(USER, USER, False, Action.EDIT_PROFILE)


def test_enforce_raises_mapped_errors(caplog):
    with caplog.at_level(logging.WARNING, logger="hub_api.observability.metrics"):
        with pytest.raises(InsufficientPermission):
            enforce(EDITOR, USER, False, Action.DELETE_USER, actor_id="u1", target_id="u2")

    denied = [r for r in caplog.records if r.getMessage() == "authz.denied"]
    assert denied
    assert denied[0].action == "delete_user"
    assert denied[0].reason == "insufficient_permission"
    assert denied[0].target_id == "u2"

    with pytest.raises(ProtectedRole):
        enforce(ADMIN, EDITOR, False, Action.DELETE_ROLE)

    with pytest.raises(PermissionDenied) as exc_info:
        enforce(ADMIN, ADMIN, True, Action.DELETE_USER)
    assert not isinstance(exc_info.value, InsufficientPermission)


def test_enforce_allows_silently():
    assert enforce(ADMIN, USER, False, Action.DELETE_USER) is None
