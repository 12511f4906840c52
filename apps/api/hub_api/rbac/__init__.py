"""Role-based access control: permission catalog, evaluator, role store."""

from hub_api.rbac.catalog import FULL_ACCESS, PERMISSIONS, Permission, expand_permissions, group_by_category
from hub_api.rbac.evaluator import (
    ADMINISTRATOR,
    EDITOR,
    PROTECTED_ROLE_NAMES,
    USER,
    Action,
    Decision,
    DenialReason,
    enforce,
    evaluate,
    is_protected_role_name,
)
from hub_api.rbac.role_store import RoleStore

__all__ = [
    "ADMINISTRATOR",
    "EDITOR",
    "FULL_ACCESS",
    "PERMISSIONS",
    "PROTECTED_ROLE_NAMES",
    "USER",
    "Action",
    "Decision",
    "DenialReason",
    "Permission",
    "RoleStore",
    "enforce",
    "evaluate",
    "expand_permissions",
    "group_by_category",
    "is_protected_role_name",
]
