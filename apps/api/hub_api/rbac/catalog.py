"""Permission catalog.

Static, compiled enumeration of grantable capability identifiers. Roles
store these ids as opaque strings; nothing here is persisted.
"""

from dataclasses import dataclass
from typing import Optional

FULL_ACCESS = "global:full_access"


@dataclass(frozen=True)
class Permission:
    id: str
    name: str
    description: str
    category: str


class Category:
    GLOBAL = "Global"
    USER_MANAGEMENT = "User Management"
    ROLE_MANAGEMENT = "Role Management"
    SERVICE_CONFIGURATION = "Service Configuration"
    SUBSCRIPTION_MANAGEMENT = "Subscription Management"
    SERVICE_ACCESS = "Service Access"


PERMISSIONS: tuple[Permission, ...] = (
    # Global
    Permission(FULL_ACCESS, "Full Access", "Unrestricted access to every hub capability.", Category.GLOBAL),

    # User Management
    Permission("admin:users:read", "View Users", "Allows viewing user list and profiles.", Category.USER_MANAGEMENT),
    Permission("admin:users:create", "Create Users", "Allows creating new user accounts.", Category.USER_MANAGEMENT),
    Permission(
        "admin:users:update",
        "Update Users",
        "Allows editing user profiles and roles (excluding sensitive actions).",
        Category.USER_MANAGEMENT,
    ),
    Permission("admin:users:delete", "Delete Users", "Allows deleting user accounts.", Category.USER_MANAGEMENT),

    # Role Management
    Permission("admin:roles:read", "View Roles", "Allows viewing roles and their permissions.", Category.ROLE_MANAGEMENT),
    Permission(
        "admin:roles:manage",
        "Manage Roles & Permissions",
        "Allows creating, editing, and deleting roles and assigning permissions.",
        Category.ROLE_MANAGEMENT,
    ),

    # Service Configuration
    Permission("admin:services:read", "View Services", "Allows viewing service configurations.", Category.SERVICE_CONFIGURATION),
    Permission("admin:services:create", "Create Services", "Allows registering new services.", Category.SERVICE_CONFIGURATION),
    Permission("admin:services:update", "Update Services", "Allows editing service configurations.", Category.SERVICE_CONFIGURATION),
    Permission("admin:services:delete", "Delete Services", "Allows removing services.", Category.SERVICE_CONFIGURATION),

    # Subscription Management
    Permission(
        "admin:subscriptions:read",
        "View Subscriptions",
        "Allows viewing subscription plans.",
        Category.SUBSCRIPTION_MANAGEMENT,
    ),
    Permission(
        "admin:subscriptions:manage",
        "Manage Subscriptions",
        "Allows managing subscription plans and assigning them to users.",
        Category.SUBSCRIPTION_MANAGEMENT,
    ),

    # Service Access
    Permission("service:content:read", "Access Content Service", "Allows viewing content from the content service.", Category.SERVICE_ACCESS),
    Permission("service:files:read", "Access File Service (Read)", "Allows reading/downloading files.", Category.SERVICE_ACCESS),
    Permission("service:files:write", "Access File Service (Write)", "Allows uploading/modifying files.", Category.SERVICE_ACCESS),
    Permission("service:shortener:manage", "Manage URL Shortener", "Allows creating and managing short links.", Category.SERVICE_ACCESS),
    Permission("service:randomizer:use", "Use Randomizer Tool", "Allows using the randomizer tool.", Category.SERVICE_ACCESS),
)

_BY_ID: dict[str, Permission] = {p.id: p for p in PERMISSIONS}

READ_ONLY_SERVICE_ACCESS: frozenset[str] = frozenset({"service:content:read", "service:files:read"})


def get_permission(permission_id: str) -> Optional[Permission]:
    """Look up a catalog entry by id (None for ids the catalog does not know)."""
    return _BY_ID.get(permission_id)


def all_permission_ids() -> frozenset[str]:
    return frozenset(_BY_ID)


def group_by_category() -> dict[str, list[Permission]]:
    """Catalog entries grouped by category, in catalog order."""
    grouped: dict[str, list[Permission]] = {}
    for permission in PERMISSIONS:
        grouped.setdefault(permission.category, []).append(permission)
    return grouped


def expand_permissions(permission_ids: list[str] | frozenset[str] | set[str]) -> frozenset[str]:
    """Effective permission set for a role.

    ``global:full_access`` expands to the whole catalog; unknown ids are
    kept as-is since role permissions are opaque strings.
    """
    ids = frozenset(permission_ids)
    if FULL_ACCESS in ids:
        return ids | all_permission_ids()
    return ids
