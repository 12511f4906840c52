"""Admin role management (Administrator only).

- GET    /v1/admin/roles               list roles
- GET    /v1/admin/roles/permissions   permission catalog grouped by category
- POST   /v1/admin/roles               create a custom role
- PUT    /v1/admin/roles/{role_id}     update (protected roles keep their name)
- DELETE /v1/admin/roles/{role_id}     delete (protected or in-use roles refused)
- POST   /v1/admin/roles/seed          ensure the protected roles and their baselines
"""

from fastapi import APIRouter, Depends, Response, status
from sqlalchemy.orm import Session

from hub_api.auth.session_auth import get_session_context
from hub_api.auth.session_resolution import SessionContext
from hub_api.db.models import Role
from hub_api.db.session import get_db
from hub_api.rbac.catalog import group_by_category
from hub_api.rbac.evaluator import Action, enforce, is_protected_role_name
from hub_api.rbac.role_store import RoleStore
from hub_api.schemas import PermissionOut, RoleIn, RoleOut

router = APIRouter(prefix="/v1/admin/roles", tags=["admin-roles"])


def _out(role: Role) -> RoleOut:
    out = RoleOut.model_validate(role)
    out.protected = is_protected_role_name(role.name)
    return out


def _require_manage(session: SessionContext) -> None:
    enforce(session.role or "", "", False, Action.MANAGE_ROLES, actor_id=session.uid)


@router.get("", response_model=list[RoleOut])
def list_roles(
    session: SessionContext = Depends(get_session_context),
    db: Session = Depends(get_db),
) -> list[RoleOut]:
    _require_manage(session)
    return [_out(role) for role in RoleStore(db).list_all()]


@router.get("/permissions", response_model=dict[str, list[PermissionOut]])
def list_permissions(session: SessionContext = Depends(get_session_context)) -> dict[str, list[PermissionOut]]:
    _require_manage(session)
    return {
        category: [PermissionOut.model_validate(p) for p in permissions]
        for category, permissions in group_by_category().items()
    }


@router.post("", status_code=status.HTTP_201_CREATED, response_model=RoleOut)
def create_role(
    body: RoleIn,
    session: SessionContext = Depends(get_session_context),
    db: Session = Depends(get_db),
) -> RoleOut:
    _require_manage(session)
    return _out(RoleStore(db).create(body.name, body.description, body.permissions))


@router.post("/seed", response_model=list[RoleOut])
def seed_roles(
    session: SessionContext = Depends(get_session_context),
    db: Session = Depends(get_db),
) -> list[RoleOut]:
    _require_manage(session)
    return [_out(role) for role in RoleStore(db).seed_defaults()]


@router.put("/{role_id}", response_model=RoleOut)
def update_role(
    role_id: str,
    body: RoleIn,
    session: SessionContext = Depends(get_session_context),
    db: Session = Depends(get_db),
) -> RoleOut:
    _require_manage(session)
    return _out(RoleStore(db).update(role_id, body.name, body.description, body.permissions))


@router.delete("/{role_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_role(
    role_id: str,
    session: SessionContext = Depends(get_session_context),
    db: Session = Depends(get_db),
) -> Response:
    _require_manage(session)
    store = RoleStore(db)
    role = store.get(role_id)
    enforce(
        session.role or "", role.name, False, Action.DELETE_ROLE,
        actor_id=session.uid, target_id=role_id,
    )
    store.delete(role_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
