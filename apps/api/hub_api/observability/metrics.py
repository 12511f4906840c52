"""Observability helpers for the account hub.

Every helper emits one structured log event; dashboards and alerts are
built from the JSON log stream rather than a metrics backend.

Usage:
    from hub_api.observability.metrics import log_auth_attempt, log_redirect_rejected

    log_auth_attempt(flow="login", redirect_host="content.example.com")
    log_redirect_rejected(flow="register", reason="no_matching_service", redirect_host="evil.example.com")

Security:
- Passwords and tokens are NEVER passed to these helpers
- Email addresses are hashed (first 16 hex chars of sha256), never logged in clear
- Provider error codes are logged for diagnostics only, never returned to callers
"""

import hashlib
import logging
from typing import Optional

logger = logging.getLogger(__name__)


# ============================================================================
# Security Helpers
# ============================================================================


def hash_identifier(value: Optional[str]) -> str:
    """Hash an identifier (email, client IP) for correlation without disclosure.

    Args:
        value: Raw identifier

    Returns:
        SHA256 hash (first 16 chars), or "unknown"
    """
    if not value:
        return "unknown"
    return hashlib.sha256(value.strip().lower().encode()).hexdigest()[:16]


# ============================================================================
# External Auth Metrics
# ============================================================================


def log_auth_attempt(flow: str, redirect_host: Optional[str] = None) -> None:
    """Log an external register/login request that passed field validation.

    Args:
        flow: "login" or "register"
        redirect_host: Hostname of the caller-supplied redirect
    """
    logger.info(
        f"auth.external.{flow}.attempt",
        extra={
            "event": f"auth.external.{flow}.attempt",
            "flow": flow,
            "redirect_host": redirect_host,
        },
    )


def log_auth_result(
    flow: str,
    success: bool,
    status_code: int,
    uid: Optional[str] = None,
    provider_code: Optional[str] = None,
    email_value: Optional[str] = None,
) -> None:
    """Log the outcome of an external register/login.

    Args:
        flow: "login" or "register"
        success: Whether the credential operation succeeded
        status_code: HTTP status returned to the caller
        uid: Provider uid on success
        provider_code: Raw provider error code (diagnostic only)
        email_value: Submitted email (hashed before logging)
    """
    event = f"auth.external.{flow}.{'success' if success else 'failure'}"
    log = logger.info if success else logger.warning
    log(
        event,
        extra={
            "event": event,
            "flow": flow,
            "status_code": status_code,
            "uid": uid,
            "provider_code": provider_code,
            "email_hash": hash_identifier(email_value),
        },
    )


def log_redirect_rejected(flow: str, reason: str, redirect_host: Optional[str] = None) -> None:
    """Log a redirect that failed validation (request refused before any credential check).

    Args:
        flow: "login" or "register"
        reason: empty / unparseable / no_matching_service
        redirect_host: Parsed hostname, when one could be extracted
    """
    logger.warning(
        "redirect.rejected",
        extra={
            "event": "redirect.rejected",
            "flow": flow,
            "reason": reason,
            "redirect_host": redirect_host,
        },
    )


# ============================================================================
# Rate Limit Metrics
# ============================================================================


def log_rate_limit_exceeded(client_ip: Optional[str], path: Optional[str] = None) -> None:
    """Log rate limit exceeded (429) on an external endpoint.

    Args:
        client_ip: Caller address (hashed)
        path: Request path
    """
    logger.warning(
        "rate_limit.exceeded",
        extra={
            "event": "rate_limit.exceeded",
            "client_hash": hash_identifier(client_ip),
            "path": path,
        },
    )


# ============================================================================
# Authorization Metrics
# ============================================================================


def log_authorization_denied(
    action: str,
    reason: str,
    actor_role: str,
    target_role: str,
    actor_id: Optional[str] = None,
    target_id: Optional[str] = None,
) -> None:
    """Log an evaluator denial. Denials never reach the store.

    Args:
        action: Evaluated action (e.g. "delete_user")
        reason: Denial reason (e.g. "administrator_target")
        actor_role: Role of the acting user
        target_role: Role of the target user, or the role being deleted
        actor_id: Acting user's uid (optional)
        target_id: Target identifier (optional)
    """
    logger.warning(
        "authz.denied",
        extra={
            "event": "authz.denied",
            "action": action,
            "reason": reason,
            "actor_role": actor_role,
            "target_role": target_role,
            "actor_id": actor_id,
            "target_id": target_id,
        },
    )


# ============================================================================
# Deletion Reconciliation Metrics
# ============================================================================


def log_deletion_requested(uid: str, requested_by: str) -> None:
    """Log step one of the two-step deletion (record marked, credential still present)."""
    logger.warning(
        "users.deletion.requested",
        extra={
            "event": "users.deletion.requested",
            "target_id": uid,
            "requested_by": requested_by,
            "credential_pending": True,
        },
    )
