"""Admin user management.

- GET    /v1/admin/users          list (Administrator, Editor)
- GET    /v1/admin/users/{uid}    detail (Administrator, Editor)
- POST   /v1/admin/users          create credential + record (Administrator)
- PATCH  /v1/admin/users/{uid}    edit; role changes are evaluated separately
- DELETE /v1/admin/users/{uid}    mark for deletion (202); see deletion_reconciler

Authorization failures are 403 problem+json raised before any write.
"""

from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session

from hub_api.admin.user_admin import DELETION_NOTICE, UserAdministration
from hub_api.auth.identity_provider import IdentityProvider, get_identity_provider
from hub_api.auth.session_auth import get_session_context
from hub_api.auth.session_resolution import SessionContext
from hub_api.db.session import get_db
from hub_api.schemas import AdminUserCreate, AdminUserUpdate, DeletionAccepted, UserOut

router = APIRouter(prefix="/v1/admin/users", tags=["admin-users"])


def get_user_admin(
    db: Session = Depends(get_db),
    provider: IdentityProvider = Depends(get_identity_provider),
) -> UserAdministration:
    return UserAdministration(db, provider)


@router.get("", response_model=list[UserOut])
def list_users(
    session: SessionContext = Depends(get_session_context),
    admin: UserAdministration = Depends(get_user_admin),
) -> list[UserOut]:
    return [UserOut.model_validate(user) for user in admin.list_users(session)]


@router.get("/{uid}", response_model=UserOut)
def get_user(
    uid: str,
    session: SessionContext = Depends(get_session_context),
    admin: UserAdministration = Depends(get_user_admin),
) -> UserOut:
    return UserOut.model_validate(admin.get_user(session, uid))


@router.post("", status_code=status.HTTP_201_CREATED, response_model=UserOut)
def create_user(
    body: AdminUserCreate,
    session: SessionContext = Depends(get_session_context),
    admin: UserAdministration = Depends(get_user_admin),
) -> UserOut:
    return UserOut.model_validate(admin.create_user(session, body))


@router.patch("/{uid}", response_model=UserOut)
def update_user(
    uid: str,
    body: AdminUserUpdate,
    session: SessionContext = Depends(get_session_context),
    admin: UserAdministration = Depends(get_user_admin),
) -> UserOut:
    return UserOut.model_validate(admin.update_user(session, uid, body))


@router.delete("/{uid}", status_code=status.HTTP_202_ACCEPTED, response_model=DeletionAccepted)
def delete_user(
    uid: str,
    session: SessionContext = Depends(get_session_context),
    admin: UserAdministration = Depends(get_user_admin),
) -> DeletionAccepted:
    user = admin.request_deletion(session, uid)
    return DeletionAccepted(
        uid=user.uid,
        deletion_requested_at=user.deletion_requested_at,
        message=DELETION_NOTICE,
    )
