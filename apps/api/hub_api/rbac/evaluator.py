"""Authorization evaluator.

One pure decision function consulted by every privileged action:

    evaluate(actor_role, target_role, self_targeting, action) -> Decision

Role comparisons are exact string equality against the literals
"Administrator" / "Editor" / "User". The Role Store's duplicate-name check
is case-insensitive; the two are deliberately not unified.

Decision table (actor → action):

    | Actor         | EDIT_USER                  | DELETE_USER    | ASSIGN "Administrator" | DELETE_ROLE       | CREATE_USER |
    |---------------|----------------------------|----------------|------------------------|-------------------|-------------|
    | Administrator | any                        | any but self   | yes                    | any non-protected | yes         |
    | Editor        | target ∉ {Admin, Editor}   | never          | never                  | never             | never       |
    | User / other  | none                       | never          | never                  | never             | never       |

Role changes touching "Administrator" are Administrator-only. Absolute rules,
checked before the table:
- nobody deletes their own account record
- only an Administrator acts on a user whose current role is Administrator
"""

from dataclasses import dataclass
from enum import Enum
from typing import Optional

from hub_api.errors import InsufficientPermission, PermissionDenied, ProtectedRole
from hub_api.observability.metrics import log_authorization_denied

ADMINISTRATOR = "Administrator"
EDITOR = "Editor"
USER = "User"

PROTECTED_ROLE_NAMES: tuple[str, ...] = (ADMINISTRATOR, EDITOR, USER)
_PROTECTED_LOWER = frozenset(name.lower() for name in PROTECTED_ROLE_NAMES)


def is_protected_role_name(name: str) -> bool:
    """Case-insensitive check used by the Role Store."""
    return name.strip().lower() in _PROTECTED_LOWER


class Action(str, Enum):
    EDIT_USER = "edit_user"
    DELETE_USER = "delete_user"
    CREATE_USER = "create_user"
    ASSIGN_ROLE = "assign_role"
    DELETE_ROLE = "delete_role"
    VIEW_USERS = "view_users"
    EDIT_PROFILE = "edit_profile"
    MANAGE_ROLES = "manage_roles"
    MANAGE_SERVICES = "manage_services"
    MANAGE_SUBSCRIPTIONS = "manage_subscriptions"


# Actions whose target is a user account (the Administrator-target veto applies)
_USER_TARGETED = frozenset({Action.EDIT_USER, Action.DELETE_USER, Action.EDIT_PROFILE})


class DenialReason(str, Enum):
    SELF_DELETION = "self_deletion"
    ADMINISTRATOR_TARGET = "administrator_target"
    INSUFFICIENT_PERMISSION = "insufficient_permission"
    PROTECTED_ROLE = "protected_role"


@dataclass(frozen=True)
class Decision:
    allowed: bool
    reason: Optional[DenialReason] = None
    message: str = ""

    def __bool__(self) -> bool:
        return self.allowed


ALLOWED = Decision(allowed=True)


def _deny(reason: DenialReason, message: str) -> Decision:
    return Decision(allowed=False, reason=reason, message=message)


def _insufficient(message: str) -> Decision:
    return _deny(DenialReason.INSUFFICIENT_PERMISSION, message)


def evaluate(
    actor_role: str,
    target_role: str,
    self_targeting: bool,
    action: Action,
    *,
    new_role: Optional[str] = None,
) -> Decision:
    """Decide whether ``actor_role`` may perform ``action`` on a target.

    Args:
        actor_role: Role name of the acting user
        target_role: Current role of the target user, or the role name for DELETE_ROLE
        self_targeting: Actor and target are the same account
        action: The privileged action
        new_role: Role being assigned (ASSIGN_ROLE only)

    Returns:
        Decision (truthy when allowed)
    """
    if action is Action.ASSIGN_ROLE:
        if new_role is None:
            raise ValueError("ASSIGN_ROLE requires new_role")
        if (target_role == ADMINISTRATOR or new_role == ADMINISTRATOR) and actor_role != ADMINISTRATOR:
            return _insufficient("Only Administrators can assign or remove the Administrator role.")
        return evaluate(actor_role, target_role, self_targeting, Action.EDIT_USER)

    if action is Action.DELETE_USER and self_targeting:
        return _deny(DenialReason.SELF_DELETION, "You cannot delete your own account.")

    if action in _USER_TARGETED and target_role == ADMINISTRATOR and actor_role != ADMINISTRATOR:
        return _deny(
            DenialReason.ADMINISTRATOR_TARGET,
            "Only Administrators can act on Administrator accounts.",
        )

    if action is Action.EDIT_USER:
        if actor_role == ADMINISTRATOR:
            return ALLOWED
        if actor_role == EDITOR and target_role not in (ADMINISTRATOR, EDITOR):
            return ALLOWED
        return _insufficient("You do not have permission to edit this user.")

    if action is Action.DELETE_USER:
        if actor_role == ADMINISTRATOR:
            return ALLOWED
        return _insufficient("Only Administrators can delete users.")

    if action is Action.CREATE_USER:
        if actor_role == ADMINISTRATOR:
            return ALLOWED
        return _insufficient("Only Administrators can create users.")

    if action is Action.DELETE_ROLE:
        if actor_role != ADMINISTRATOR:
            return _insufficient("Only Administrators can delete roles.")
        if is_protected_role_name(target_role):
            return _deny(DenialReason.PROTECTED_ROLE, f'The "{target_role}" role cannot be deleted.')
        return ALLOWED

    if action is Action.EDIT_PROFILE:
        if self_targeting:
            return ALLOWED
        return _insufficient("You can only edit your own profile.")

    if action is Action.VIEW_USERS or action is Action.MANAGE_SERVICES:
        if actor_role in (ADMINISTRATOR, EDITOR):
            return ALLOWED
        return _insufficient("Administrator or Editor role required.")

    if action is Action.MANAGE_ROLES or action is Action.MANAGE_SUBSCRIPTIONS:
        if actor_role == ADMINISTRATOR:
            return ALLOWED
        return _insufficient("Administrator role required.")

    raise ValueError(f"Unknown action: {action!r}")


def enforce(
    actor_role: str,
    target_role: str,
    self_targeting: bool,
    action: Action,
    *,
    new_role: Optional[str] = None,
    actor_id: Optional[str] = None,
    target_id: Optional[str] = None,
) -> None:
    """Evaluate and raise on denial. Call before any store mutation.

    Raises:
        ProtectedRole: DELETE_ROLE on a protected role
        InsufficientPermission: actor lacks the required role
        PermissionDenied: self-deletion or Administrator-target veto
    """
    decision = evaluate(actor_role, target_role, self_targeting, action, new_role=new_role)
    if decision:
        return

    log_authorization_denied(
        action=action.value,
        reason=decision.reason.value if decision.reason else "unknown",
        actor_role=actor_role,
        target_role=target_role,
        actor_id=actor_id,
        target_id=target_id,
    )

    if decision.reason is DenialReason.PROTECTED_ROLE:
        raise ProtectedRole(decision.message)
    if decision.reason is DenialReason.INSUFFICIENT_PERMISSION:
        raise InsufficientPermission(decision.message)
    raise PermissionDenied(decision.message)
