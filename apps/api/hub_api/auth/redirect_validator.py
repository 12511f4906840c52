"""Service redirect validation.

A caller-supplied ``serviceRedirectUrl`` is trusted only when its hostname
exactly equals the domain of a registered, active service. A service
whose stored url cannot be parsed is skipped (logged) without affecting
the others; a store failure or zero matches rejects the redirect.

Hostnames are compared as returned by ``urllib.parse``; bare service
domains are compared as stored. No further case or trailing-dot
normalisation happens.
"""

import logging
from dataclasses import dataclass
from typing import Iterable, Optional
from urllib.parse import urlparse

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from hub_api.db.models import Service
from hub_api.db.repo_services import ServiceRepository
from hub_api.errors import InvalidRedirect

logger = logging.getLogger(__name__)

INVALID_REDIRECT_MESSAGE = "Invalid or inactive service redirect URL."


class RejectReason:
    EMPTY = "empty"
    UNPARSEABLE = "unparseable"
    NO_MATCH = "no_matching_service"
    STORE_UNAVAILABLE = "store_unavailable"


@dataclass(frozen=True)
class RedirectVerdict:
    valid: bool
    hostname: Optional[str] = None
    reason: Optional[str] = None
    service_slug: Optional[str] = None

    def __bool__(self) -> bool:
        return self.valid


def extract_hostname(url: str) -> Optional[str]:
    """Hostname of an absolute URL, or None when the string is not one."""
    try:
        parsed = urlparse(url.strip())
        hostname = parsed.hostname
    except ValueError:
        return None
    if not parsed.scheme or not parsed.netloc or not hostname:
        return None
    return hostname


def service_domain(service_url: str) -> str:
    """Domain of a stored service url: hostname of a schemed url, or the raw string.

    Raises:
        ValueError: schemed url without a parseable hostname
    """
    if "://" in service_url:
        hostname = urlparse(service_url).hostname
        if not hostname:
            raise ValueError(f"no hostname in {service_url!r}")
        return hostname
    return service_url


def match_service(hostname: str, services: Iterable[Service]) -> Optional[Service]:
    """First service whose derived domain equals ``hostname``. Malformed records are skipped."""
    for service in services:
        try:
            domain = service_domain(service.url or "")
        except ValueError:
            logger.warning(
                "redirect.service.malformed_url",
                extra={"service_slug": service.slug, "service_url": service.url},
            )
            continue
        if domain == hostname:
            return service
    return None


class RedirectValidator:
    """Validates redirects against the active services of the current store."""

    def __init__(self, db: Session):
        self.services = ServiceRepository(db)

    def check(self, redirect_url: Optional[str]) -> RedirectVerdict:
        if not redirect_url or not redirect_url.strip():
            return RedirectVerdict(valid=False, reason=RejectReason.EMPTY)

        hostname = extract_hostname(redirect_url)
        if hostname is None:
            return RedirectVerdict(valid=False, reason=RejectReason.UNPARSEABLE)

        try:
            active = self.services.list_active()
        except SQLAlchemyError:
            logger.error("redirect.services.fetch_failed", exc_info=True)
            return RedirectVerdict(valid=False, hostname=hostname, reason=RejectReason.STORE_UNAVAILABLE)

        service = match_service(hostname, active)
        if service is None:
            return RedirectVerdict(valid=False, hostname=hostname, reason=RejectReason.NO_MATCH)
        return RedirectVerdict(valid=True, hostname=hostname, service_slug=service.slug)

    def validate(self, redirect_url: Optional[str]) -> str:
        """Return the redirect unchanged if it is trusted.

        Raises:
            InvalidRedirect: empty, unparseable, or matching no active service
        """
        verdict = self.check(redirect_url)
        if not verdict:
            raise InvalidRedirect(INVALID_REDIRECT_MESSAGE)
        return redirect_url  # type: ignore[return-value]
