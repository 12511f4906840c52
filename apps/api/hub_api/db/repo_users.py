"""User repository (the ``users`` collection)."""

from datetime import datetime
from typing import Any, Optional

from sqlalchemy import delete, exists, select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session
from sqlalchemy.orm.exc import FlushError

from hub_api.db.models import User
from hub_api.errors import Conflict


class UserRepository:
    """CRUD over application user records keyed by provider uid."""

    def __init__(self, db: Session):
        self.db = db

    def get(self, uid: str) -> Optional[User]:
        return self.db.get(User, uid)

    def list_all(self, include_pending_deletion: bool = False) -> list[User]:
        stmt = select(User).order_by(User.created_at.asc(), User.uid.asc())
        if not include_pending_deletion:
            stmt = stmt.where(User.deletion_requested_at.is_(None))
        return list(self.db.execute(stmt).scalars().all())

    def create(self, user: User) -> User:
        """Insert a user record.

        Raises:
            Conflict: A record already exists for this uid
        """
        self.db.add(user)
        try:
            self.db.commit()
        except (IntegrityError, FlushError):
            self.db.rollback()
            raise Conflict(f"A user record already exists for uid {user.uid}.")
        self.db.refresh(user)
        return user

    def update(self, user: User, updates: dict[str, Any]) -> User:
        """Apply field updates to a user record.

        Raises:
            Conflict: The update violates a storage constraint
        """
        for field, value in updates.items():
            setattr(user, field, value)
        try:
            self.db.commit()
        except IntegrityError:
            self.db.rollback()
            raise Conflict(f"User {user.uid} could not be updated: constraint violation.")
        self.db.refresh(user)
        return user

    def stamp_last_login(self, uid: str, at: datetime) -> bool:
        """Set last_login_at. Returns False if no record exists."""
        result = self.db.execute(
            update(User).where(User.uid == uid).values(last_login_at=at)
        )
        self.db.commit()
        return result.rowcount == 1

    def exists_with_role(self, role_name: str) -> bool:
        """True if any user references this role name (exact match)."""
        stmt = select(exists().where(User.role == role_name))
        return bool(self.db.execute(stmt).scalar())

    def mark_for_deletion(self, uid: str, requested_by: str, at: datetime) -> bool:
        """Step one of the two-step deletion.

        Only the first request wins; a second request on an already marked
        record affects no rows.
        """
        result = self.db.execute(
            update(User)
            .where(User.uid == uid, User.deletion_requested_at.is_(None))
            .values(
                deletion_requested_at=at,
                deletion_requested_by=requested_by,
                status="inactive",
            )
        )
        self.db.commit()
        return result.rowcount == 1

    def list_pending_deletion(self, limit: int = 50) -> list[User]:
        stmt = (
            select(User)
            .where(User.deletion_requested_at.is_not(None))
            .order_by(User.deletion_requested_at.asc())
            .limit(limit)
        )
        return list(self.db.execute(stmt).scalars().all())

    def delete_marked(self, uid: str) -> bool:
        """Delete a record only while it is still marked for deletion."""
        result = self.db.execute(
            delete(User).where(User.uid == uid, User.deletion_requested_at.is_not(None))
        )
        self.db.commit()
        return result.rowcount == 1
