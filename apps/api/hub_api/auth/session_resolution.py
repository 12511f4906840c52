"""Session resolution: identity-provider principal -> application user.

Each authenticated request (and each external login) gets its own
``SessionContext``; nothing is held in module globals. Lifecycle:

    SessionContext()             loading=True, no user
    SessionResolver.resolve()    loading=False, user + isAdmin + permissions
    SessionContext.dispose()     sign-out: user cleared

A store failure never fails the sign-in: the context falls back to a
minimal user derived from the provider claims, with isAdmin=False.
"""

import logging
from dataclasses import dataclass, field
from datetime import datetime
from typing import Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from hub_api.auth.identity_provider import IdentityPrincipal
from hub_api.db.models import User, utcnow
from hub_api.db.repo_users import UserRepository
from hub_api.errors import Conflict
from hub_api.rbac.evaluator import ADMINISTRATOR, USER
from hub_api.rbac.role_store import RoleStore

logger = logging.getLogger(__name__)

AVATAR_PLACEHOLDER = "https://placehold.co/100x100.png?text={initial}"


def default_avatar_url(name: str) -> str:
    initial = name.strip()[:1].upper() or "U"
    return AVATAR_PLACEHOLDER.format(initial=initial)


def display_name_for(principal: IdentityPrincipal) -> str:
    return principal.display_name or "User"


def new_user_record(uid: str, name: str, email: str, role: str = USER) -> User:
    """Default record for a fresh account: active, no enabled services."""
    return User(
        uid=uid,
        name=name,
        email=email,
        role=role,
        status="active",
        enabled_services=[],
        avatar_url=default_avatar_url(name or email),
        created_at=utcnow(),
    )


@dataclass
class SessionUser:
    uid: str
    name: str
    email: str
    role: str
    status: str = "active"
    avatar_url: Optional[str] = None
    enabled_services: list[str] = field(default_factory=list)
    subscription_plan_id: Optional[str] = None
    created_at: Optional[datetime] = None
    last_login_at: Optional[datetime] = None

    @classmethod
    def from_record(cls, user: User) -> "SessionUser":
        return cls(
            uid=user.uid,
            name=user.name,
            email=user.email,
            role=user.role,
            status=user.status,
            avatar_url=user.avatar_url,
            enabled_services=list(user.enabled_services or []),
            subscription_plan_id=user.subscription_plan_id,
            created_at=user.created_at,
            last_login_at=user.last_login_at,
        )

    @classmethod
    def from_claims(cls, principal: IdentityPrincipal) -> "SessionUser":
        name = display_name_for(principal)
        return cls(
            uid=principal.uid,
            name=name,
            email=principal.email,
            role=USER,
            avatar_url=default_avatar_url(name or principal.email),
        )


@dataclass
class SessionContext:
    """Per-request session state."""

    current_user: Optional[SessionUser] = None
    is_admin: bool = False
    loading: bool = True
    permissions: frozenset[str] = frozenset()
    degraded: bool = False

    @property
    def uid(self) -> Optional[str]:
        return self.current_user.uid if self.current_user else None

    @property
    def role(self) -> Optional[str]:
        return self.current_user.role if self.current_user else None

    def dispose(self) -> None:
        """Sign-out: clear the resolved user."""
        self.current_user = None
        self.is_admin = False
        self.permissions = frozenset()
        self.loading = False
        self.degraded = False


class SessionResolver:
    def __init__(self, db: Session):
        self.db = db
        self.users = UserRepository(db)
        self.roles = RoleStore(db)

    def _load_or_create(self, principal: IdentityPrincipal, now: datetime, stamp_login: bool) -> User:
        user = self.users.get(principal.uid)
        if user is not None:
            if stamp_login:
                self.users.stamp_last_login(principal.uid, now)
            return user

        record = new_user_record(principal.uid, display_name_for(principal), principal.email)
        record.last_login_at = now
        try:
            user = self.users.create(record)
            logger.info("session.resolve.created", extra={"uid": principal.uid})
        except Conflict:
            # Created concurrently by registration or another sign-in
            user = self.users.get(principal.uid)
            if user is None:
                raise
            if stamp_login:
                self.users.stamp_last_login(principal.uid, now)
        return user

    def resolve(
        self,
        principal: IdentityPrincipal,
        context: Optional[SessionContext] = None,
        stamp_login: bool = True,
    ) -> SessionContext:
        """Resolve (or lazily create) the user record and derive the session.

        Args:
            principal: Authenticated provider identity
            context: Context to fill in; a new one is created if omitted
            stamp_login: Record last_login_at on an existing record. Bearer
                requests pass False so the field stays a sign-in time.

        Returns:
            The resolved context (loading=False)
        """
        context = context or SessionContext()
        now = utcnow()
        try:
            user = self._load_or_create(principal, now, stamp_login)
            context.current_user = SessionUser.from_record(user)
            context.is_admin = user.role == ADMINISTRATOR
            context.permissions = self.roles.effective_permissions(user.role)
            context.degraded = False
        except (SQLAlchemyError, Conflict):
            self.db.rollback()
            logger.error("session.resolve.fallback", extra={"uid": principal.uid}, exc_info=True)
            context.current_user = SessionUser.from_claims(principal)
            context.is_admin = False
            context.permissions = frozenset()
            context.degraded = True
        context.loading = False
        return context
