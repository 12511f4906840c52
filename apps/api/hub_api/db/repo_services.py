"""Service repository (the ``services`` collection, keyed by slug)."""

from typing import Any, Optional

from sqlalchemy import delete, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session
from sqlalchemy.orm.exc import FlushError

from hub_api.db.models import Service
from hub_api.errors import DuplicateSlug

_COPIED_FIELDS = ("name", "description", "icon", "url", "is_active", "linked_subscription_ids", "created_at")


class ServiceRepository:
    def __init__(self, db: Session):
        self.db = db

    def get(self, slug: str) -> Optional[Service]:
        return self.db.get(Service, slug)

    def list_all(self) -> list[Service]:
        stmt = select(Service).order_by(Service.name.asc())
        return list(self.db.execute(stmt).scalars().all())

    def list_active(self) -> list[Service]:
        stmt = select(Service).where(Service.is_active.is_(True)).order_by(Service.slug.asc())
        return list(self.db.execute(stmt).scalars().all())

    def create(self, service: Service) -> Service:
        """Insert a service; the slug primary key is the uniqueness check.

        Raises:
            DuplicateSlug: slug already taken
        """
        self.db.add(service)
        try:
            self.db.commit()
        except (IntegrityError, FlushError):
            self.db.rollback()
            raise DuplicateSlug(f'A service with slug "{service.slug}" already exists.')
        self.db.refresh(service)
        return service

    def update(self, service: Service, updates: dict[str, Any]) -> Service:
        for field, value in updates.items():
            setattr(service, field, value)
        self.db.commit()
        self.db.refresh(service)
        return service

    def rename(self, service: Service, new_slug: str, updates: dict[str, Any]) -> Service:
        """Move a service to a new slug: delete + recreate in one transaction.

        Raises:
            DuplicateSlug: new slug already taken (nothing is changed)
        """
        values = {field: getattr(service, field) for field in _COPIED_FIELDS}
        values.update(updates)
        replacement = Service(slug=new_slug, **values)

        old_slug = service.slug
        self.db.add(replacement)
        self.db.execute(
            delete(Service)
            .where(Service.slug == old_slug)
            .execution_options(synchronize_session="fetch")
        )
        try:
            self.db.commit()
        except (IntegrityError, FlushError):
            self.db.rollback()
            raise DuplicateSlug(f'A service with slug "{new_slug}" already exists.')
        self.db.refresh(replacement)
        return replacement

    def delete(self, slug: str) -> bool:
        result = self.db.execute(
            delete(Service).where(Service.slug == slug).execution_options(synchronize_session="fetch")
        )
        self.db.commit()
        return result.rowcount == 1
