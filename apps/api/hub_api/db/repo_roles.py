"""Role repository (the ``roles`` collection).

Name uniqueness is enforced by the unique index on ``name_lower``; the
in-use check for deletion is folded into the DELETE statement itself.
"""

from datetime import datetime, timezone
from typing import Any, Optional

from sqlalchemy import delete, exists, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from hub_api.db.models import Role, User
from hub_api.errors import DuplicateRole


class RoleRepository:
    def __init__(self, db: Session):
        self.db = db

    def get(self, role_id: str) -> Optional[Role]:
        return self.db.get(Role, role_id)

    def get_by_name(self, name: str) -> Optional[Role]:
        """Exact (case-sensitive) lookup, as used by user.role references."""
        stmt = select(Role).where(Role.name == name)
        return self.db.execute(stmt).scalars().first()

    def get_by_name_ci(self, name: str) -> Optional[Role]:
        """Case-insensitive lookup through the lowercase shadow field."""
        stmt = select(Role).where(Role.name_lower == name.lower())
        return self.db.execute(stmt).scalars().first()

    def list_all(self) -> list[Role]:
        stmt = select(Role).order_by(Role.name_lower.asc())
        return list(self.db.execute(stmt).scalars().all())

    def create(self, role: Role) -> Role:
        """Insert a role.

        Raises:
            DuplicateRole: name collides case-insensitively with an existing role
        """
        role.name_lower = role.name.lower()
        self.db.add(role)
        try:
            self.db.commit()
        except IntegrityError:
            self.db.rollback()
            raise DuplicateRole(f'A role named "{role.name}" already exists.')
        self.db.refresh(role)
        return role

    def update(self, role: Role, updates: dict[str, Any]) -> Role:
        """Apply updates and commit.

        Raises:
            DuplicateRole: a rename collides with another role
        """
        for field, value in updates.items():
            setattr(role, field, value)
        role.name_lower = role.name.lower()
        role.updated_at = datetime.now(timezone.utc)
        try:
            self.db.commit()
        except IntegrityError:
            self.db.rollback()
            raise DuplicateRole(f'A role named "{updates.get("name", role.name)}" already exists.')
        self.db.refresh(role)
        return role

    def delete_if_unused(self, role_id: str, role_name: str) -> bool:
        """Delete the role unless a user references its name.

        Single conditional statement:
            DELETE FROM roles
            WHERE id=:id AND name=:name
              AND NOT EXISTS (SELECT 1 FROM users WHERE role=:name)

        Returns:
            True if the role was deleted, False if it was in use (or renamed/deleted meanwhile)
        """
        in_use = exists().where(User.role == role_name)
        result = self.db.execute(
            delete(Role)
            .where(Role.id == role_id, Role.name == role_name, ~in_use)
            .execution_options(synchronize_session=False)
        )
        self.db.commit()
        return result.rowcount == 1
