"""Admin subscription plans (Administrator only)."""

import logging
import uuid

from fastapi import APIRouter, Depends, Response, status
from sqlalchemy.orm import Session

from hub_api.auth.session_auth import get_session_context
from hub_api.auth.session_resolution import SessionContext
from hub_api.db.models import SubscriptionPlan, utcnow
from hub_api.db.repo_subscriptions import SubscriptionPlanRepository
from hub_api.db.session import get_db
from hub_api.errors import NotFound
from hub_api.rbac.evaluator import Action, enforce
from hub_api.schemas import SubscriptionIn, SubscriptionOut, SubscriptionUpdate

router = APIRouter(prefix="/v1/admin/subscriptions", tags=["admin-subscriptions"])
logger = logging.getLogger(__name__)


def _require_manage(session: SessionContext) -> None:
    enforce(session.role or "", "", False, Action.MANAGE_SUBSCRIPTIONS, actor_id=session.uid)


@router.get("", response_model=list[SubscriptionOut])
def list_plans(
    session: SessionContext = Depends(get_session_context),
    db: Session = Depends(get_db),
) -> list[SubscriptionOut]:
    _require_manage(session)
    return [SubscriptionOut.model_validate(p) for p in SubscriptionPlanRepository(db).list_all()]


@router.post("", status_code=status.HTTP_201_CREATED, response_model=SubscriptionOut)
def create_plan(
    body: SubscriptionIn,
    session: SessionContext = Depends(get_session_context),
    db: Session = Depends(get_db),
) -> SubscriptionOut:
    _require_manage(session)
    plan = SubscriptionPlanRepository(db).create(
        SubscriptionPlan(
            id=str(uuid.uuid4()),
            name=body.name.strip(),
            slug=body.slug,
            description=body.description,
            duration=body.duration,
            points=body.points,
            storage_limit_mb=body.storage_limit_mb,
            price=body.price.strip(),
            created_at=utcnow(),
        )
    )
    logger.info("subscriptions.created", extra={"plan_id": plan.id, "plan_slug": plan.slug})
    return SubscriptionOut.model_validate(plan)


@router.patch("/{plan_id}", response_model=SubscriptionOut)
def update_plan(
    plan_id: str,
    body: SubscriptionUpdate,
    session: SessionContext = Depends(get_session_context),
    db: Session = Depends(get_db),
) -> SubscriptionOut:
    _require_manage(session)
    repo = SubscriptionPlanRepository(db)
    plan = repo.get(plan_id)
    if plan is None:
        raise NotFound(f"Subscription plan {plan_id} not found.")

    updates = body.model_dump(exclude_unset=True)
    updates = {k: v for k, v in updates.items() if v is not None or k == "description"}
    plan = repo.update(plan, updates)
    logger.info("subscriptions.updated", extra={"plan_id": plan_id, "fields": sorted(updates)})
    return SubscriptionOut.model_validate(plan)


@router.delete("/{plan_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_plan(
    plan_id: str,
    session: SessionContext = Depends(get_session_context),
    db: Session = Depends(get_db),
) -> Response:
    _require_manage(session)
    if not SubscriptionPlanRepository(db).delete(plan_id):
        raise NotFound(f"Subscription plan {plan_id} not found.")
    logger.info("subscriptions.deleted", extra={"plan_id": plan_id})
    return Response(status_code=status.HTTP_204_NO_CONTENT)
