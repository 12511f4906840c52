"""Privileged user administration.

Every mutation is evaluated by ``hub_api.rbac.evaluator.enforce`` before
the store is touched; a denied request leaves the store unchanged.

Deletion is two-step: this module only marks the record
(``deletion_requested_at``); the provider credential and the record are
removed later by ``hub_api.jobs.deletion_reconciler``.
"""

import logging
from typing import Any

from sqlalchemy.orm import Session

from hub_api.auth.identity_provider import IdentityProvider, IdentityProviderError
from hub_api.auth.provider_errors import map_provider_error
from hub_api.auth.session_resolution import SessionContext, new_user_record
from hub_api.db.models import User, utcnow
from hub_api.db.repo_roles import RoleRepository
from hub_api.db.repo_services import ServiceRepository
from hub_api.db.repo_subscriptions import SubscriptionPlanRepository
from hub_api.db.repo_users import UserRepository
from hub_api.errors import Conflict, NotFound, ValidationError
from hub_api.observability.metrics import log_deletion_requested
from hub_api.rbac.evaluator import Action, enforce
from hub_api.schemas import AdminUserCreate, AdminUserUpdate

logger = logging.getLogger(__name__)

DELETION_NOTICE = (
    "User record marked for deletion. The sign-in credential is removed by the "
    "reconciliation job; until then the account cannot sign in to the hub."
)


class UserAdministration:
    def __init__(self, db: Session, provider: IdentityProvider):
        self.users = UserRepository(db)
        self.roles = RoleRepository(db)
        self.services = ServiceRepository(db)
        self.plans = SubscriptionPlanRepository(db)
        self.provider = provider

    def _target(self, uid: str) -> User:
        user = self.users.get(uid)
        if user is None:
            raise NotFound(f"User {uid} not found.")
        return user

    def _check_role_exists(self, role_name: str) -> None:
        if self.roles.get_by_name(role_name) is None:
            raise ValidationError(f'Role "{role_name}" does not exist.')

    def _check_plan_exists(self, plan_id: str) -> None:
        if self.plans.get(plan_id) is None:
            raise ValidationError(f"Subscription plan {plan_id} does not exist.")

    def _check_services_exist(self, slugs: list[str]) -> None:
        unknown = sorted(slug for slug in set(slugs) if self.services.get(slug) is None)
        if unknown:
            raise ValidationError(f"Unknown services: {', '.join(unknown)}.")

    def list_users(self, session: SessionContext) -> list[User]:
        enforce(session.role or "", "", False, Action.VIEW_USERS, actor_id=session.uid)
        return self.users.list_all()

    def get_user(self, session: SessionContext, uid: str) -> User:
        enforce(session.role or "", "", False, Action.VIEW_USERS, actor_id=session.uid, target_id=uid)
        return self._target(uid)

    def create_user(self, session: SessionContext, data: AdminUserCreate) -> User:
        """Create the provider credential and the user record."""
        enforce(session.role or "", data.role, False, Action.CREATE_USER, actor_id=session.uid)
        self._check_role_exists(data.role)
        if data.subscription_plan_id:
            self._check_plan_exists(data.subscription_plan_id)
        if data.enabled_services:
            self._check_services_exist(data.enabled_services)

        try:
            principal = self.provider.admin_create_user(data.email, data.password, data.name)
        except IdentityProviderError as e:
            logger.warning(
                "users.create.provider_failed",
                extra={"provider_code": e.code, "provider_status": e.status},
            )
            raise map_provider_error(e, flow="register")

        record = new_user_record(principal.uid, data.name, data.email, role=data.role)
        record.status = data.status
        record.subscription_plan_id = data.subscription_plan_id or None
        record.enabled_services = sorted(set(data.enabled_services))
        user = self.users.create(record)

        logger.info(
            "users.created",
            extra={"target_id": user.uid, "role": user.role, "actor_id": session.uid},
        )
        return user

    def update_user(self, session: SessionContext, uid: str, data: AdminUserUpdate) -> User:
        """Apply a partial update after every change has been authorized."""
        target = self._target(uid)
        if target.deletion_requested_at is not None:
            raise Conflict("User is pending deletion and can no longer be edited.")

        changes: dict[str, Any] = data.model_dump(exclude_unset=True)
        if not changes:
            return target

        actor_role = session.role or ""
        self_targeting = session.uid == uid
        enforce(
            actor_role, target.role, self_targeting, Action.EDIT_USER,
            actor_id=session.uid, target_id=uid,
        )

        new_role = changes.get("role")
        if new_role is not None and new_role != target.role:
            enforce(
                actor_role, target.role, self_targeting, Action.ASSIGN_ROLE,
                new_role=new_role, actor_id=session.uid, target_id=uid,
            )
            self._check_role_exists(new_role)
        elif "role" in changes:
            changes.pop("role")

        if "subscription_plan_id" in changes:
            plan_id = changes["subscription_plan_id"] or None
            if plan_id:
                self._check_plan_exists(plan_id)
            changes["subscription_plan_id"] = plan_id

        if "enabled_services" in changes:
            slugs = changes["enabled_services"] or []
            self._check_services_exist(slugs)
            changes["enabled_services"] = sorted(set(slugs))

        updated = self.users.update(target, changes)
        logger.info(
            "users.updated",
            extra={"target_id": uid, "actor_id": session.uid, "fields": sorted(changes)},
        )
        return updated

    def request_deletion(self, session: SessionContext, uid: str) -> User:
        """Step one of the two-step deletion. Repeating it is a no-op."""
        target = self._target(uid)
        enforce(
            session.role or "", target.role, session.uid == uid, Action.DELETE_USER,
            actor_id=session.uid, target_id=uid,
        )

        if target.deletion_requested_at is None:
            if self.users.mark_for_deletion(uid, requested_by=session.uid or "", at=utcnow()):
                log_deletion_requested(uid, session.uid or "")
            target = self._target(uid)
        return target
