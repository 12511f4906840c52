"""Error taxonomy for the account hub.

Every domain failure is a ``HubError`` carrying the HTTP status it maps to,
a short title and an RFC 9457 problem type. Admin and session endpoints
render these as ``application/problem+json`` through the global handler in
``hub_api.main``; the external gateway renders them in its own
``{success, error, redirectTo}`` envelope.
"""

from typing import Optional

PROBLEM_BASE = "https://hub.myozarniaung.com/problems"


class HubError(Exception):
    """Base class for all expected, user-facing failures."""

    status_code: int = 500
    title: str = "Internal Server Error"
    error_type: str = f"{PROBLEM_BASE}/internal-error"

    def __init__(self, detail: str, *, retry_after: Optional[int] = None):
        super().__init__(detail)
        self.detail = detail
        self.retry_after = retry_after


class ValidationError(HubError):
    """Missing or malformed input."""

    status_code = 400
    title = "Bad Request"
    error_type = f"{PROBLEM_BASE}/validation-error"


class InvalidRedirect(ValidationError):
    """Caller-supplied redirect does not match any active service domain."""

    error_type = f"{PROBLEM_BASE}/invalid-redirect"


class AuthenticationError(HubError):
    status_code = 401
    title = "Unauthorized"
    error_type = f"{PROBLEM_BASE}/authentication-failed"


class PermissionDenied(HubError):
    """Authorization evaluator rejection."""

    status_code = 403
    title = "Forbidden"
    error_type = f"{PROBLEM_BASE}/permission-denied"


class InsufficientPermission(PermissionDenied):
    error_type = f"{PROBLEM_BASE}/insufficient-permission"


class ProtectedRename(PermissionDenied):
    """Attempt to rename Administrator / Editor / User."""

    error_type = f"{PROBLEM_BASE}/protected-rename"


class ProtectedRole(PermissionDenied):
    """Attempt to delete Administrator / Editor / User."""

    error_type = f"{PROBLEM_BASE}/protected-role"


class NotFound(HubError):
    status_code = 404
    title = "Not Found"
    error_type = f"{PROBLEM_BASE}/not-found"


class Conflict(HubError):
    """Duplicate slug / name / email or a violated referential precondition."""

    status_code = 409
    title = "Conflict"
    error_type = f"{PROBLEM_BASE}/conflict"


class DuplicateRole(Conflict):
    error_type = f"{PROBLEM_BASE}/duplicate-role"


class ProtectedName(Conflict):
    """A new role may not take a protected name; those roles are seeded."""

    error_type = f"{PROBLEM_BASE}/protected-name"


class RoleInUse(Conflict):
    error_type = f"{PROBLEM_BASE}/role-in-use"


class DuplicateSlug(Conflict):
    error_type = f"{PROBLEM_BASE}/duplicate-slug"


class RateLimited(HubError):
    status_code = 429
    title = "Too Many Requests"
    error_type = f"{PROBLEM_BASE}/rate-limited"


class UpstreamError(HubError):
    """Identity provider or document store failure."""

    status_code = 500
    title = "Upstream Failure"
    error_type = f"{PROBLEM_BASE}/upstream-error"
