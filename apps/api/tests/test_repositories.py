"""Tests for the collection repositories."""

import typing
from datetime import datetime, timezone

import pytest

from hub_api.db.models import Role, Service, SubscriptionPlan, User
from hub_api.db.repo_roles import RoleRepository
from hub_api.db.repo_services import ServiceRepository
from hub_api.db.repo_subscriptions import SubscriptionPlanRepository
from hub_api.db.repo_users import UserRepository
from hub_api.errors import Conflict
from hub_api.rbac.role_store import RoleStore


@pytest.mark.parametrize(
    "repo_cls, model",
    [
        (UserRepository, User),
        (RoleRepository, Role),
        (ServiceRepository, Service),
        (SubscriptionPlanRepository, SubscriptionPlan),
        (RoleStore, Role),
    ],
)
def test_list_all_return_annotation_is_builtin_list(repo_cls, model):
    # A method named ``list`` would shadow the builtin inside the class body
    assert "list" not in vars(repo_cls)
    assert typing.get_type_hints(repo_cls.list_all)["return"] == list[model]


def test_user_update_constraint_violation_rolls_back(db_session, make_user):
    user, _ = make_user(name="Uma User")
    repo = UserRepository(db_session)

    with pytest.raises(Conflict):
        repo.update(user, {"name": None})

    # Session is usable again and the record is unchanged
    assert repo.get(user.uid).name == "Uma User"
    assert repo.update(user, {"name": "Uma Renamed"}).name == "Uma Renamed"


def test_user_list_hides_pending_deletion(db_session, make_user):
    kept, _ = make_user()
    marked, _ = make_user()
    repo = UserRepository(db_session)
    repo.mark_for_deletion(marked.uid, requested_by="uid_admin", at=datetime.now(timezone.utc))

    assert [u.uid for u in repo.list_all()] == [kept.uid]
    assert {u.uid for u in repo.list_all(include_pending_deletion=True)} == {kept.uid, marked.uid}
