"""Self-service endpoints for the signed-in user.

- GET    /v1/me                   current user, isAdmin, effective permissions
- PATCH  /v1/me                   update own display name
- PUT    /v1/me/services/{slug}   enable an active service
- DELETE /v1/me/services/{slug}   disable a service
"""

import logging

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from hub_api.auth.identity_provider import IdentityProvider, IdentityProviderError, get_identity_provider
from hub_api.auth.session_auth import get_session_context
from hub_api.auth.session_resolution import SessionContext
from hub_api.db.models import User
from hub_api.db.repo_services import ServiceRepository
from hub_api.db.repo_users import UserRepository
from hub_api.db.session import get_db
from hub_api.errors import NotFound, UpstreamError
from hub_api.rbac.evaluator import Action, enforce
from hub_api.schemas import MeResponse, MeUpdate, UserOut

router = APIRouter(prefix="/v1/me", tags=["me"])
logger = logging.getLogger(__name__)


def _me_response(session: SessionContext, record: User | None = None) -> MeResponse:
    current = UserOut.model_validate(record) if record is not None else UserOut.model_validate(session.current_user)
    return MeResponse(
        current_user=current,
        is_admin=session.is_admin,
        permissions=sorted(session.permissions),
    )


def _own_record(session: SessionContext, db: Session) -> User:
    record = UserRepository(db).get(session.uid or "")
    if record is None:
        # Store fell back to claims during resolution; nothing to mutate
        raise UpstreamError("Your account record is temporarily unavailable. Please try again later.")
    return record


@router.get("", response_model=MeResponse)
def get_me(session: SessionContext = Depends(get_session_context)) -> MeResponse:
    return _me_response(session)


@router.patch("", response_model=MeResponse)
def update_me(
    body: MeUpdate,
    session: SessionContext = Depends(get_session_context),
    db: Session = Depends(get_db),
    provider: IdentityProvider = Depends(get_identity_provider),
) -> MeResponse:
    """Change own display name (record and provider profile)."""
    enforce(session.role or "", session.role or "", True, Action.EDIT_PROFILE, actor_id=session.uid)
    record = _own_record(session, db)
    name = body.name.strip()
    record = UserRepository(db).update(record, {"name": name})

    try:
        provider.update_profile(record.uid, name)
    except IdentityProviderError as e:
        logger.error("me.profile.provider_update_failed", extra={"uid": record.uid, "provider_code": e.code})

    logger.info("me.profile.updated", extra={"uid": record.uid})
    return _me_response(session, record)


@router.put("/services/{slug}", response_model=MeResponse)
def enable_service(
    slug: str,
    session: SessionContext = Depends(get_session_context),
    db: Session = Depends(get_db),
) -> MeResponse:
    enforce(session.role or "", session.role or "", True, Action.EDIT_PROFILE, actor_id=session.uid)
    service = ServiceRepository(db).get(slug)
    if service is None or not service.is_active:
        raise NotFound(f'Service "{slug}" not found or inactive.')

    record = _own_record(session, db)
    enabled = set(record.enabled_services or [])
    if slug not in enabled:
        enabled.add(slug)
        record = UserRepository(db).update(record, {"enabled_services": sorted(enabled)})
        logger.info("me.services.enabled", extra={"uid": record.uid, "service_slug": slug})
    return _me_response(session, record)


@router.delete("/services/{slug}", response_model=MeResponse)
def disable_service(
    slug: str,
    session: SessionContext = Depends(get_session_context),
    db: Session = Depends(get_db),
) -> MeResponse:
    enforce(session.role or "", session.role or "", True, Action.EDIT_PROFILE, actor_id=session.uid)
    record = _own_record(session, db)
    enabled = set(record.enabled_services or [])
    if slug in enabled:
        enabled.discard(slug)
        record = UserRepository(db).update(record, {"enabled_services": sorted(enabled)})
        logger.info("me.services.disabled", extra={"uid": record.uid, "service_slug": slug})
    return _me_response(session, record)
