"""External auth gateway: register / login on behalf of third-party services.

Endpoints:
- POST /v1/auth/external/register
- POST /v1/auth/external/login
- OPTIONS on both (permissive CORS preflight)

Order per request: required fields -> redirect validation -> provider
credential call -> (register) profile name + user record. The redirect is
validated before credentials are checked, so a request carrying an
unapproved redirect learns nothing about the credentials.

Responses are always ``{success, message|error, redirectTo}``. On failure
``redirectTo`` is the hub URL; on success it is the caller's redirect,
unchanged. The hub never issues the HTTP redirect itself.

SECURITY:
- Passwords never logged; emails only as hashes
- Provider error codes logged, never returned
"""

import json
import logging
from typing import Any, Optional

from fastapi import APIRouter, Depends, Request, status
from fastapi.responses import JSONResponse
from pydantic import ValidationError as PydanticValidationError
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from hub_api.auth.identity_provider import IdentityProvider, IdentityProviderError, get_identity_provider
from hub_api.auth.provider_errors import map_provider_error
from hub_api.auth.redirect_validator import INVALID_REDIRECT_MESSAGE, RedirectValidator, RedirectVerdict
from hub_api.auth.session_resolution import SessionResolver, new_user_record
from hub_api.config.env import get_hub_base_url
from hub_api.db.repo_users import UserRepository
from hub_api.db.session import get_db
from hub_api.errors import Conflict, HubError
from hub_api.observability.metrics import log_auth_attempt, log_auth_result, log_redirect_rejected
from hub_api.schemas import ExternalAuthResponse, ExternalLoginRequest, ExternalRegisterRequest

router = APIRouter(prefix="/v1/auth/external", tags=["external-auth"])
logger = logging.getLogger(__name__)

EXTERNAL_PREFIX = "/v1/auth/external"

CORS_HEADERS = {
    "Access-Control-Allow-Origin": "*",
    "Access-Control-Allow-Methods": "POST, OPTIONS",
    "Access-Control-Allow-Headers": "Content-Type, Authorization",
}

MIN_PASSWORD_LENGTH = 6

REGISTER_MISSING = "Missing required fields (name, email, password, serviceRedirectUrl)."
LOGIN_MISSING = "Missing required fields (email, password, serviceRedirectUrl)."
PASSWORD_TOO_SHORT = "Password must be at least 6 characters."
REGISTER_SUCCESS = "User registered successfully. Please proceed with login."
LOGIN_SUCCESS = "Login successful."
ACCOUNT_INACTIVE = "This account is not active."


def envelope(
    status_code: int,
    *,
    redirect_to: str,
    message: Optional[str] = None,
    error: Optional[str] = None,
    headers: Optional[dict[str, str]] = None,
) -> JSONResponse:
    """Build the gateway response with CORS headers attached."""
    body = ExternalAuthResponse(
        success=error is None,
        message=message,
        error=error,
        redirect_to=redirect_to,
    )
    return JSONResponse(
        status_code=status_code,
        content=body.model_dump(by_alias=True, exclude_none=True),
        headers={**CORS_HEADERS, **(headers or {})},
    )


def failure(status_code: int, error: str, headers: Optional[dict[str, str]] = None) -> JSONResponse:
    return envelope(status_code, redirect_to=get_hub_base_url(), error=error, headers=headers)


def failure_from(exc: HubError) -> JSONResponse:
    headers = {"Retry-After": str(exc.retry_after)} if exc.retry_after is not None else None
    return failure(exc.status_code, exc.detail, headers=headers)


async def _read_body(request: Request) -> Optional[dict[str, Any]]:
    try:
        payload = await request.json()
    except (json.JSONDecodeError, UnicodeDecodeError):
        return None
    return payload if isinstance(payload, dict) else None


def _check_redirect(flow: str, db: Session, redirect_url: str) -> RedirectVerdict:
    verdict = RedirectValidator(db).check(redirect_url)
    if not verdict:
        log_redirect_rejected(flow=flow, reason=verdict.reason or "unknown", redirect_host=verdict.hostname)
    return verdict


@router.options("/register")
@router.options("/login")
async def preflight() -> JSONResponse:
    """CORS preflight for third-party origins."""
    return JSONResponse(content={}, headers=CORS_HEADERS)


@router.post("/register", status_code=status.HTTP_201_CREATED, response_model=ExternalAuthResponse)
async def register(
    request: Request,
    db: Session = Depends(get_db),
    provider: IdentityProvider = Depends(get_identity_provider),
) -> JSONResponse:
    """Create an account for a third-party service user.

    Returns:
        201 on success; 400 / 409 / 429 / 500 on failure
    """
    payload = await _read_body(request)
    try:
        body = ExternalRegisterRequest.model_validate(payload or {})
    except PydanticValidationError:
        return failure(status.HTTP_400_BAD_REQUEST, REGISTER_MISSING)

    if not body.name or not body.email or not body.password or not body.service_redirect_url:
        return failure(status.HTTP_400_BAD_REQUEST, REGISTER_MISSING)
    if len(body.password) < MIN_PASSWORD_LENGTH:
        return failure(status.HTTP_400_BAD_REQUEST, PASSWORD_TOO_SHORT)

    verdict = _check_redirect("register", db, body.service_redirect_url)
    if not verdict:
        return failure(status.HTTP_400_BAD_REQUEST, INVALID_REDIRECT_MESSAGE)

    log_auth_attempt(flow="register", redirect_host=verdict.hostname)

    try:
        principal = provider.create_user(body.email, body.password)
    except IdentityProviderError as e:
        mapped = map_provider_error(e, flow="register")
        log_auth_result("register", False, mapped.status_code, provider_code=e.code, email_value=body.email)
        return failure_from(mapped)

    try:
        provider.update_profile(principal.uid, body.name)
    except IdentityProviderError as e:
        # Account exists; the record below still carries the name
        logger.error(
            "auth.external.register.profile_update_failed",
            extra={"uid": principal.uid, "provider_code": e.code},
        )

    try:
        UserRepository(db).create(new_user_record(principal.uid, body.name, body.email))
    except Conflict:
        logger.warning("auth.external.register.record_exists", extra={"uid": principal.uid})
    except SQLAlchemyError:
        # Degraded: session resolution recreates the record on first sign-in
        db.rollback()
        logger.error(
            "auth.external.register.record_persist_failed",
            extra={"uid": principal.uid},
            exc_info=True,
        )

    log_auth_result("register", True, status.HTTP_201_CREATED, uid=principal.uid)
    return envelope(
        status.HTTP_201_CREATED,
        redirect_to=body.service_redirect_url,
        message=REGISTER_SUCCESS,
    )


@router.post("/login", status_code=status.HTTP_200_OK, response_model=ExternalAuthResponse)
async def login(
    request: Request,
    db: Session = Depends(get_db),
    provider: IdentityProvider = Depends(get_identity_provider),
) -> JSONResponse:
    """Check credentials for a third-party service user.

    Returns:
        200 on success; 400 / 401 / 429 / 500 on failure
    """
    payload = await _read_body(request)
    try:
        body = ExternalLoginRequest.model_validate(payload or {})
    except PydanticValidationError:
        return failure(status.HTTP_400_BAD_REQUEST, LOGIN_MISSING)

    if not body.email or not body.password or not body.service_redirect_url:
        return failure(status.HTTP_400_BAD_REQUEST, LOGIN_MISSING)

    verdict = _check_redirect("login", db, body.service_redirect_url)
    if not verdict:
        return failure(status.HTTP_400_BAD_REQUEST, INVALID_REDIRECT_MESSAGE)

    log_auth_attempt(flow="login", redirect_host=verdict.hostname)

    try:
        principal = provider.sign_in(body.email, body.password)
    except IdentityProviderError as e:
        mapped = map_provider_error(e, flow="login")
        log_auth_result("login", False, mapped.status_code, provider_code=e.code, email_value=body.email)
        return failure_from(mapped)

    context = SessionResolver(db).resolve(principal)
    user = context.current_user
    if user is not None and user.status != "active":
        log_auth_result("login", False, status.HTTP_401_UNAUTHORIZED, uid=principal.uid, provider_code="inactive")
        return failure(status.HTTP_401_UNAUTHORIZED, ACCOUNT_INACTIVE)

    log_auth_result("login", True, status.HTTP_200_OK, uid=principal.uid)
    return envelope(
        status.HTTP_200_OK,
        redirect_to=body.service_redirect_url,
        message=LOGIN_SUCCESS,
    )
