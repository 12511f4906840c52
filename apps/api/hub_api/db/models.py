"""SQLAlchemy ORM Models for the account hub.

Four collections: users, roles, services, subscriptions.
"""

from datetime import datetime, timezone
from typing import Optional

from sqlalchemy import BOOLEAN, INTEGER, JSON, TEXT, TIMESTAMP, Index
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class Base(DeclarativeBase):
    """Base class for all ORM models."""

    pass


class User(Base):
    """Application user record, keyed by the identity-provider uid.

    ``role`` is a soft reference to ``Role.name`` (exact string, not an id).
    """

    __tablename__ = "users"

    uid: Mapped[str] = mapped_column(TEXT, primary_key=True)
    name: Mapped[str] = mapped_column(TEXT, nullable=False, default="")
    email: Mapped[str] = mapped_column(TEXT, nullable=False, default="")
    role: Mapped[str] = mapped_column(TEXT, nullable=False, default="User")
    status: Mapped[str] = mapped_column(TEXT, nullable=False, default="active")  # active/inactive/pending
    avatar_url: Mapped[Optional[str]] = mapped_column(TEXT, nullable=True)
    enabled_services: Mapped[list] = mapped_column(JSON, nullable=False, default=list)
    subscription_plan_id: Mapped[Optional[str]] = mapped_column(TEXT, nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        TIMESTAMP(timezone=True),
        nullable=False,
        default=utcnow,
    )
    last_login_at: Mapped[Optional[datetime]] = mapped_column(
        TIMESTAMP(timezone=True), nullable=True
    )

    # Two-step deletion: set by the admin API, cleared by the reconciler
    deletion_requested_at: Mapped[Optional[datetime]] = mapped_column(
        TIMESTAMP(timezone=True), nullable=True
    )
    deletion_requested_by: Mapped[Optional[str]] = mapped_column(TEXT, nullable=True)

    __table_args__ = (
        Index("idx_users_role", "role"),
        Index("idx_users_deletion_requested", "deletion_requested_at"),
    )


class Role(Base):
    """Named permission set.

    ``name_lower`` is the case-insensitive uniqueness shadow of ``name``.
    """

    __tablename__ = "roles"

    id: Mapped[str] = mapped_column(TEXT, primary_key=True)
    name: Mapped[str] = mapped_column(TEXT, nullable=False)
    name_lower: Mapped[str] = mapped_column(TEXT, nullable=False)
    description: Mapped[str] = mapped_column(TEXT, nullable=False, default="")
    permissions: Mapped[list] = mapped_column(JSON, nullable=False, default=list)
    created_at: Mapped[datetime] = mapped_column(
        TIMESTAMP(timezone=True),
        nullable=False,
        default=utcnow,
    )
    updated_at: Mapped[Optional[datetime]] = mapped_column(
        TIMESTAMP(timezone=True), nullable=True
    )

    __table_args__ = (Index("uq_roles_name_lower", "name_lower", unique=True),)


class Service(Base):
    """Third-party service reachable from the hub.

    ``slug`` is the stable identity; ``url`` holds a bare domain or a schemed URL.
    """

    __tablename__ = "services"

    slug: Mapped[str] = mapped_column(TEXT, primary_key=True)
    name: Mapped[str] = mapped_column(TEXT, nullable=False)
    description: Mapped[str] = mapped_column(TEXT, nullable=False, default="")
    icon: Mapped[str] = mapped_column(TEXT, nullable=False, default="")
    url: Mapped[str] = mapped_column(TEXT, nullable=False)
    is_active: Mapped[bool] = mapped_column(BOOLEAN, nullable=False, default=True)
    linked_subscription_ids: Mapped[list] = mapped_column(JSON, nullable=False, default=list)
    created_at: Mapped[datetime] = mapped_column(
        TIMESTAMP(timezone=True),
        nullable=False,
        default=utcnow,
    )

    __table_args__ = (Index("idx_services_active", "is_active"),)


class SubscriptionPlan(Base):
    """Subscription plan. ``points`` and ``storage_limit_mb`` use 0 for unlimited."""

    __tablename__ = "subscriptions"

    id: Mapped[str] = mapped_column(TEXT, primary_key=True)
    name: Mapped[str] = mapped_column(TEXT, nullable=False)
    slug: Mapped[str] = mapped_column(TEXT, nullable=False)
    description: Mapped[Optional[str]] = mapped_column(TEXT, nullable=True)
    duration: Mapped[str] = mapped_column(TEXT, nullable=False, default="Monthly")  # Monthly/Unlimited
    points: Mapped[int] = mapped_column(INTEGER, nullable=False, default=0)
    storage_limit_mb: Mapped[int] = mapped_column(INTEGER, nullable=False, default=0)
    price: Mapped[str] = mapped_column(TEXT, nullable=False)
    created_at: Mapped[datetime] = mapped_column(
        TIMESTAMP(timezone=True),
        nullable=False,
        default=utcnow,
    )

    __table_args__ = (Index("uq_subscriptions_slug", "slug", unique=True),)
