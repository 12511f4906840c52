"""Role Store: CRUD over role records with the protected-role invariants.

Protected roles ("Administrator", "Editor", "User", compared case-insensitively
here) are seeded, never created ad hoc, never renamed and never deleted.
Uniqueness and the in-use check are enforced by the database in the same
statement as the write (see ``RoleRepository``).
"""

import logging
import uuid
from typing import Iterable, Optional

from sqlalchemy.orm import Session

from hub_api.db.models import Role
from hub_api.db.repo_roles import RoleRepository
from hub_api.errors import NotFound, ProtectedName, ProtectedRename, ProtectedRole, RoleInUse
from hub_api.rbac.catalog import FULL_ACCESS, READ_ONLY_SERVICE_ACCESS, all_permission_ids, expand_permissions
from hub_api.rbac.evaluator import ADMINISTRATOR, EDITOR, USER, is_protected_role_name

logger = logging.getLogger(__name__)

EDITOR_BASELINE: frozenset[str] = frozenset({
    "admin:users:read",
    "admin:users:update",
    "admin:services:read",
    "admin:services:create",
    "admin:services:update",
    "admin:services:delete",
}) | READ_ONLY_SERVICE_ACCESS

DEFAULT_ROLES: dict[str, dict] = {
    ADMINISTRATOR: {
        "description": "Full access to all hub features and settings.",
        "permissions": frozenset({FULL_ACCESS}) | all_permission_ids(),
    },
    EDITOR: {
        "description": "Can manage users and service configuration, excluding administrators.",
        "permissions": EDITOR_BASELINE,
    },
    USER: {
        "description": "Standard account with read-only access to enabled services.",
        "permissions": READ_ONLY_SERVICE_ACCESS,
    },
}


def _clean_permissions(permissions: Iterable[str]) -> list[str]:
    return sorted({p.strip() for p in permissions if p and p.strip()})


class RoleStore:
    """Role CRUD with protected-name, protected-rename and in-use rules."""

    def __init__(self, db: Session):
        self.repo = RoleRepository(db)

    def list_all(self) -> list[Role]:
        return self.repo.list_all()

    def get(self, role_id: str) -> Role:
        role = self.repo.get(role_id)
        if role is None:
            raise NotFound(f"Role {role_id} not found.")
        return role

    def create(self, name: str, description: str, permissions: Iterable[str]) -> Role:
        """Create a custom role.

        Raises:
            ProtectedName: name equals a protected role name (any case)
            DuplicateRole: name collides case-insensitively with an existing role
        """
        name = name.strip()
        if is_protected_role_name(name):
            raise ProtectedName(f'"{name}" is a reserved role name.')

        role = Role(
            id=str(uuid.uuid4()),
            name=name,
            description=description.strip(),
            permissions=_clean_permissions(permissions),
        )
        role = self.repo.create(role)
        logger.info("roles.created", extra={"role_id": role.id, "role_name": role.name})
        return role

    def update(
        self,
        role_id: str,
        name: str,
        description: str,
        permissions: Iterable[str],
    ) -> Role:
        """Update a role.

        Raises:
            NotFound: unknown role id
            ProtectedRename: the role is protected and ``name`` differs from its current name
            DuplicateRole: the new name collides with another role
        """
        role = self.get(role_id)
        name = name.strip()
        if is_protected_role_name(role.name) and name != role.name:
            raise ProtectedRename(f'The "{role.name}" role cannot be renamed.')

        updated = self.repo.update(
            role,
            {
                "name": name,
                "description": description.strip(),
                "permissions": _clean_permissions(permissions),
            },
        )
        logger.info("roles.updated", extra={"role_id": role_id, "role_name": updated.name})
        return updated

    def delete(self, role_id: str) -> None:
        """Delete a non-protected role that no user references.

        Raises:
            NotFound: unknown role id
            ProtectedRole: the role is protected
            RoleInUse: a user's role field equals this role's name
        """
        role = self.get(role_id)
        if is_protected_role_name(role.name):
            raise ProtectedRole(f'The "{role.name}" role cannot be deleted.')

        if self.repo.delete_if_unused(role.id, role.name):
            logger.info("roles.deleted", extra={"role_id": role_id, "role_name": role.name})
            return

        if self.repo.get(role_id) is None:
            raise NotFound(f"Role {role_id} not found.")

        logger.warning("roles.delete.in_use", extra={"role_id": role_id, "role_name": role.name})
        raise RoleInUse(f'The "{role.name}" role is assigned to one or more users and cannot be deleted.')

    def seed_defaults(self) -> list[Role]:
        """Ensure Administrator / Editor / User exist with their baseline permissions.

        Idempotent: existing protected roles are brought back to the baseline,
        missing ones are created.
        """
        seeded: list[Role] = []
        for name, defaults in DEFAULT_ROLES.items():
            permissions = sorted(defaults["permissions"])
            existing = self.repo.get_by_name_ci(name)
            if existing is None:
                role = self.repo.create(
                    Role(
                        id=str(uuid.uuid4()),
                        name=name,
                        description=defaults["description"],
                        permissions=permissions,
                    )
                )
                logger.info("roles.seed.created", extra={"role_name": name})
            else:
                role = self.repo.update(
                    existing,
                    {"name": name, "description": defaults["description"], "permissions": permissions},
                )
                logger.info("roles.seed.updated", extra={"role_name": name})
            seeded.append(role)
        return seeded

    def effective_permissions(self, role_name: Optional[str]) -> frozenset[str]:
        """Permission set for a user's role (exact name match; empty for unknown roles)."""
        if not role_name:
            return frozenset()
        role = self.repo.get_by_name(role_name)
        if role is None:
            return frozenset()
        return expand_permissions(role.permissions or [])
