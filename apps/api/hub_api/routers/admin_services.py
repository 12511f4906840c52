"""Admin service configuration (Administrator, Editor).

- GET    /v1/admin/services          list
- POST   /v1/admin/services          create (slug is the key)
- PATCH  /v1/admin/services/{slug}   update; ``newSlug`` moves the record to a new key
- DELETE /v1/admin/services/{slug}   delete

Slug uniqueness is the primary key: a duplicate surfaces as 409 from the
insert itself, never from a prior read.
"""

import logging

from fastapi import APIRouter, Depends, Response, status
from sqlalchemy.orm import Session

from hub_api.auth.session_auth import get_session_context
from hub_api.auth.session_resolution import SessionContext
from hub_api.db.models import Service, utcnow
from hub_api.db.repo_services import ServiceRepository
from hub_api.db.session import get_db
from hub_api.errors import NotFound
from hub_api.rbac.evaluator import Action, enforce
from hub_api.schemas import ServiceIn, ServiceOut, ServiceUpdate

router = APIRouter(prefix="/v1/admin/services", tags=["admin-services"])
logger = logging.getLogger(__name__)


def _require_manage(session: SessionContext) -> None:
    enforce(session.role or "", "", False, Action.MANAGE_SERVICES, actor_id=session.uid)


@router.get("", response_model=list[ServiceOut])
def list_services(
    session: SessionContext = Depends(get_session_context),
    db: Session = Depends(get_db),
) -> list[ServiceOut]:
    _require_manage(session)
    return [ServiceOut.model_validate(s) for s in ServiceRepository(db).list_all()]


@router.post("", status_code=status.HTTP_201_CREATED, response_model=ServiceOut)
def create_service(
    body: ServiceIn,
    session: SessionContext = Depends(get_session_context),
    db: Session = Depends(get_db),
) -> ServiceOut:
    _require_manage(session)
    service = ServiceRepository(db).create(
        Service(
            slug=body.slug,
            name=body.name.strip(),
            description=body.description,
            icon=body.icon,
            url=body.url.strip(),
            is_active=body.is_active,
            linked_subscription_ids=sorted(set(body.linked_subscription_ids)),
            created_at=utcnow(),
        )
    )
    logger.info("services.created", extra={"service_slug": service.slug, "actor_id": session.uid})
    return ServiceOut.model_validate(service)


@router.patch("/{slug}", response_model=ServiceOut)
def update_service(
    slug: str,
    body: ServiceUpdate,
    session: SessionContext = Depends(get_session_context),
    db: Session = Depends(get_db),
) -> ServiceOut:
    _require_manage(session)
    repo = ServiceRepository(db)
    service = repo.get(slug)
    if service is None:
        raise NotFound(f'Service "{slug}" not found.')

    updates = body.model_dump(exclude_unset=True, exclude={"new_slug"})
    if "url" in updates and updates["url"] is not None:
        updates["url"] = updates["url"].strip()
    if updates.get("linked_subscription_ids") is not None:
        updates["linked_subscription_ids"] = sorted(set(updates["linked_subscription_ids"]))
    if "description" in updates and updates["description"] is None:
        updates["description"] = ""
    updates = {k: v for k, v in updates.items() if v is not None}

    if body.new_slug and body.new_slug != slug:
        service = repo.rename(service, body.new_slug, updates)
        logger.info(
            "services.renamed",
            extra={"service_slug": slug, "new_slug": body.new_slug, "actor_id": session.uid},
        )
    else:
        service = repo.update(service, updates)
        logger.info("services.updated", extra={"service_slug": slug, "actor_id": session.uid})
    return ServiceOut.model_validate(service)


@router.delete("/{slug}", status_code=status.HTTP_204_NO_CONTENT)
def delete_service(
    slug: str,
    session: SessionContext = Depends(get_session_context),
    db: Session = Depends(get_db),
) -> Response:
    _require_manage(session)
    if not ServiceRepository(db).delete(slug):
        raise NotFound(f'Service "{slug}" not found.')
    logger.info("services.deleted", extra={"service_slug": slug, "actor_id": session.uid})
    return Response(status_code=status.HTTP_204_NO_CONTENT)
