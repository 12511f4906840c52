"""Subscription plan repository (the ``subscriptions`` collection)."""

from typing import Any, Optional

from sqlalchemy import delete, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from hub_api.db.models import SubscriptionPlan
from hub_api.errors import DuplicateSlug


class SubscriptionPlanRepository:
    def __init__(self, db: Session):
        self.db = db

    def get(self, plan_id: str) -> Optional[SubscriptionPlan]:
        return self.db.get(SubscriptionPlan, plan_id)

    def get_by_slug(self, slug: str) -> Optional[SubscriptionPlan]:
        stmt = select(SubscriptionPlan).where(SubscriptionPlan.slug == slug)
        return self.db.execute(stmt).scalars().first()

    def list_all(self) -> list[SubscriptionPlan]:
        stmt = select(SubscriptionPlan).order_by(SubscriptionPlan.name.asc())
        return list(self.db.execute(stmt).scalars().all())

    def create(self, plan: SubscriptionPlan) -> SubscriptionPlan:
        """Insert a plan; the unique slug index is the uniqueness check.

        Raises:
            DuplicateSlug: slug already taken
        """
        self.db.add(plan)
        try:
            self.db.commit()
        except IntegrityError:
            self.db.rollback()
            raise DuplicateSlug(f'A subscription with slug "{plan.slug}" already exists.')
        self.db.refresh(plan)
        return plan

    def update(self, plan: SubscriptionPlan, updates: dict[str, Any]) -> SubscriptionPlan:
        """Apply updates and commit.

        Raises:
            DuplicateSlug: new slug collides with another plan
        """
        for field, value in updates.items():
            setattr(plan, field, value)
        try:
            self.db.commit()
        except IntegrityError:
            self.db.rollback()
            raise DuplicateSlug(f'A subscription with slug "{updates.get("slug")}" already exists.')
        self.db.refresh(plan)
        return plan

    def delete(self, plan_id: str) -> bool:
        result = self.db.execute(
            delete(SubscriptionPlan)
            .where(SubscriptionPlan.id == plan_id)
            .execution_options(synchronize_session="fetch")
        )
        self.db.commit()
        return result.rowcount == 1
