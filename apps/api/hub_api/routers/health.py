"""Health check endpoints."""

import logging

import redis
from fastapi import APIRouter, Response, status
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError

from hub_api import __version__
from hub_api.config.env import is_rate_limit_enabled
from hub_api.db.redis_client import RedisClient
from hub_api.db.session import engine
from hub_api.schemas import HealthResponse

router = APIRouter()
logger = logging.getLogger(__name__)


def check_database() -> str:
    """Check database connectivity.

    Returns:
        str: "up" if healthy, error message otherwise
    """
    try:
        with engine.connect() as conn:
            conn.execute(text("SELECT 1"))
        return "up"
    except SQLAlchemyError as e:
        logger.error(f"Database health check failed: {e}")
        return f"down: {str(e)[:50]}"


def check_redis() -> str:
    """Check Redis connectivity ("disabled" when rate limiting is off)."""
    if not is_rate_limit_enabled():
        return "disabled"
    try:
        RedisClient.get_client().ping()
        return "up"
    except redis.RedisError as e:
        logger.error(f"Redis health check failed: {e}")
        return f"down: {str(e)[:50]}"


def _services() -> dict[str, str]:
    return {
        "api": "up",
        "database": check_database(),
        "redis": check_redis(),
    }


@router.get("/health", response_model=HealthResponse)
async def health_check() -> HealthResponse:
    """Service status and dependency health. Always 200 (use /readyz to gate traffic)."""
    return HealthResponse(status="healthy", version=__version__, services=_services())


@router.get("/readyz", response_model=HealthResponse)
async def readiness_check(response: Response) -> HealthResponse:
    """503 when any enabled dependency is down."""
    services = _services()
    if any(value.startswith("down") for value in services.values()):
        response.status_code = status.HTTP_503_SERVICE_UNAVAILABLE
        return HealthResponse(status="not_ready", version=__version__, services=services)
    return HealthResponse(status="ready", version=__version__, services=services)
