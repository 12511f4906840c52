"""Account Hub API - FastAPI Application Entry Point."""

import logging
import time
import uuid

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from hub_api import __version__
from hub_api.config.env import (
    get_log_level,
    get_rate_limit_quota,
    get_rate_limit_window_sec,
    is_json_logging_enabled,
    is_rate_limit_enabled,
)
from hub_api.context import request_id_var, user_id_var
from hub_api.db.redis_client import RedisClient
from hub_api.errors import PROBLEM_BASE, HubError
from hub_api.observability.metrics import log_rate_limit_exceeded
from hub_api.rate_limiter import NoOpRateLimiter, RateLimiter, RedisRateLimiter
from hub_api.routers import (
    admin_roles,
    admin_services,
    admin_subscriptions,
    admin_users,
    external_auth,
    health,
    me,
)
from hub_api.schemas import ProblemDetail

app = FastAPI(
    title="Account Hub API",
    description="Account hub: external sign-in for registered services, role-based administration.",
    version=__version__,
)

# Structured JSON logging (HUB_JSON_LOGS=false to disable)
if is_json_logging_enabled():
    from hub_api.utils import configure_json_logging

    configure_json_logging(log_level=get_log_level())
    logging.getLogger(__name__).info("Structured JSON logging enabled")

logger = logging.getLogger(__name__)


def build_rate_limiter() -> RateLimiter:
    """Redis limiter when HUB_RATE_LIMIT_ENABLED, otherwise a no-op."""
    quota = get_rate_limit_quota()
    window = get_rate_limit_window_sec()
    if is_rate_limit_enabled():
        return RedisRateLimiter(RedisClient.get_client(), quota=quota, window=window)
    return NoOpRateLimiter(quota=quota, window=window)


def _instance() -> str:
    request_id = request_id_var.get()
    return f"urn:hub:trace:{request_id}" if request_id else f"urn:hub:trace:{uuid.uuid4()}"


def problem_response(
    status_code: int,
    title: str,
    detail: str,
    error_type: str,
    headers: dict[str, str] | None = None,
) -> JSONResponse:
    problem = ProblemDetail(
        type=error_type,
        title=title,
        status=status_code,
        detail=detail,
        instance=_instance(),
    )
    return JSONResponse(
        status_code=status_code,
        content=problem.model_dump(exclude_none=True),
        media_type="application/problem+json",
        headers=headers,
    )


# ============================================================================
# Rate Limit Middleware (external auth endpoints only)
# ============================================================================


@app.middleware("http")
async def rate_limit_middleware(request: Request, call_next):
    """Fixed-window limit on POST /v1/auth/external/*.

    Over-limit requests get the gateway envelope (not problem+json) with
    429, Retry-After and the CORS headers third-party pages need.
    """
    if request.method != "POST" or not request.url.path.startswith(external_auth.EXTERNAL_PREFIX):
        return await call_next(request)

    rate_limiter: RateLimiter = getattr(app.state, "rate_limiter", None) or NoOpRateLimiter()
    client_ip = request.client.host if request.client else "anonymous"
    result = rate_limiter.check_rate_limit(client_ip, request.url.path)

    if not result.allowed:
        log_rate_limit_exceeded(client_ip, request.url.path)
        return external_auth.failure(
            status.HTTP_429_TOO_MANY_REQUESTS,
            "Too many requests. Please try again later.",
            headers={
                "Retry-After": str(result.reset),
                "RateLimit-Policy": f'"{result.policy_id}"; q={result.quota}; w={result.window}',
                "RateLimit": f'"{result.policy_id}"; r={result.remaining}; t={result.reset}',
            },
        )

    response = await call_next(request)
    response.headers.setdefault("RateLimit-Policy", f'"{result.policy_id}"; q={result.quota}; w={result.window}')
    response.headers.setdefault("RateLimit", f'"{result.policy_id}"; r={result.remaining}; t={result.reset}')
    return response


# ============================================================================
# HTTP Request Completion Logging Middleware (wraps all inner middlewares)
# ============================================================================


@app.middleware("http")
async def http_completion_logging_middleware(request: Request, call_next):
    """Emit one "http.request.completed" log per request, even on exceptions.

    Clears the per-request user_id contextvar at start and end.
    """
    user_id_var.set("")
    start_time = time.perf_counter()
    status_code = 500

    try:
        response = await call_next(request)
        status_code = response.status_code
        return response
    finally:
        duration_ms = (time.perf_counter() - start_time) * 1000
        logger.info(
            "http.request.completed",
            extra={
                "method": request.method,
                "path": request.url.path,
                "status_code": status_code,
                "duration_ms": round(duration_ms, 2),
            },
        )
        user_id_var.set("")


# ============================================================================
# Request ID Middleware (MUST BE OUTERMOST)
# ============================================================================


@app.middleware("http")
async def request_id_middleware(request: Request, call_next):
    """Accept or generate X-Request-ID, expose it to logging, echo it back.

    Registered last so it runs outermost and the contextvar is set before
    inner middlewares execute.
    """
    request_id = request.headers.get("X-Request-ID") or str(uuid.uuid4())
    request_id_var.set(request_id)

    response = await call_next(request)
    response.headers["X-Request-ID"] = request_id
    return response


# ============================================================================
# RFC 9457 Global Exception Handlers
# ============================================================================


@app.exception_handler(HubError)
async def hub_error_handler(request: Request, exc: HubError) -> JSONResponse:
    """Domain errors -> problem+json with the error's own status, title and type."""
    headers: dict[str, str] = {}
    if exc.status_code == 401:
        headers["WWW-Authenticate"] = "Bearer"
    if exc.status_code == 429 and exc.retry_after is not None:
        headers["Retry-After"] = str(exc.retry_after)
    if exc.status_code >= 500:
        logger.error("hub.upstream_error", extra={"path": request.url.path, "detail": exc.detail})

    return problem_response(exc.status_code, exc.title, exc.detail, exc.error_type, headers or None)


@app.exception_handler(StarletteHTTPException)
async def http_exception_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    title = _get_title_for_status(exc.status_code)
    detail = str(exc.detail) if exc.detail is not None else title
    headers = dict(exc.headers) if exc.headers else None
    return problem_response(
        exc.status_code,
        title,
        detail,
        f"{PROBLEM_BASE}/http-{exc.status_code}",
        headers,
    )


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    """422 problem+json naming the first invalid field."""
    errors = exc.errors()
    first_error = errors[0] if errors else {}
    field = ".".join(str(loc) for loc in first_error.get("loc", []))
    msg = first_error.get("msg", "Validation error")

    return problem_response(
        422,
        "Request Validation Failed",
        f"Invalid field '{field}': {msg}",
        f"{PROBLEM_BASE}/request-validation",
    )


@app.exception_handler(Exception)
async def general_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """Uncaught exceptions -> 500 problem+json with a generic detail; the exception is logged."""
    logger.error(f"Unhandled exception: {type(exc).__name__}", exc_info=True)
    return problem_response(
        status.HTTP_500_INTERNAL_SERVER_ERROR,
        "Internal Server Error",
        "An unexpected error occurred. Please try again later.",
        f"{PROBLEM_BASE}/internal-error",
    )


def _get_title_for_status(status_code: int) -> str:
    titles = {
        400: "Bad Request",
        401: "Unauthorized",
        403: "Forbidden",
        404: "Not Found",
        405: "Method Not Allowed",
        409: "Conflict",
        429: "Too Many Requests",
        500: "Internal Server Error",
        503: "Service Unavailable",
    }
    return titles.get(status_code, f"HTTP {status_code}")


app.include_router(health.router, tags=["health"])
app.include_router(external_auth.router)
app.include_router(me.router)
app.include_router(admin_users.router)
app.include_router(admin_roles.router)
app.include_router(admin_services.router)
app.include_router(admin_subscriptions.router)


@app.on_event("startup")
async def startup_event():
    """Initialize the rate limiter (tests may replace app.state.rate_limiter)."""
    app.state.rate_limiter = build_rate_limiter()
    logger.info(
        "hub.startup",
        extra={"version": __version__, "rate_limit_enabled": is_rate_limit_enabled()},
    )
