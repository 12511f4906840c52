"""Identity-provider error code -> hub error taxonomy.

Raw provider codes are logged by callers and never returned; only the
mapped, fixed messages below reach clients.
"""

from hub_api.auth.identity_provider import IdentityProviderError
from hub_api.errors import AuthenticationError, Conflict, HubError, RateLimited, UpstreamError, ValidationError

INVALID_CREDENTIALS = frozenset({"invalid_credentials", "user_not_found", "invalid_grant"})
EMAIL_NOT_CONFIRMED = frozenset({"email_not_confirmed"})
RATE_LIMITED = frozenset({"over_request_rate_limit", "over_email_send_rate_limit", "too_many_requests"})
INVALID_EMAIL = frozenset({"email_address_invalid", "validation_failed"})
WEAK_PASSWORD = frozenset({"weak_password"})
EMAIL_TAKEN = frozenset({"email_exists", "user_already_exists"})

MESSAGES = {
    "invalid_credentials": "Invalid email or password.",
    "email_not_confirmed": "Email not confirmed. Please check your email.",
    "rate_limited": "Too many login attempts. Please try again later.",
    "invalid_email": "The email address is not valid.",
    "weak_password": "The password is too weak. Please choose a stronger password (at least 6 characters).",
    "email_taken": "This email address is already in use.",
    "login_failed": "An unknown error occurred during login.",
    "register_failed": "An unknown error occurred during registration.",
}


def map_provider_error(error: IdentityProviderError, flow: str = "login") -> HubError:
    """Translate a normalised provider failure into the hub taxonomy.

    Args:
        error: Normalised provider error
        flow: "login" or "register" (selects the generic fallback message)
    """
    code = error.code
    if code in INVALID_CREDENTIALS:
        return AuthenticationError(MESSAGES["invalid_credentials"])
    if code in EMAIL_NOT_CONFIRMED:
        return AuthenticationError(MESSAGES["email_not_confirmed"])
    if code in RATE_LIMITED or error.status == 429:
        return RateLimited(MESSAGES["rate_limited"])
    if code in INVALID_EMAIL:
        return ValidationError(MESSAGES["invalid_email"])
    if code in WEAK_PASSWORD:
        return ValidationError(MESSAGES["weak_password"])
    if code in EMAIL_TAKEN:
        return Conflict(MESSAGES["email_taken"])
    fallback = MESSAGES["register_failed"] if flow == "register" else MESSAGES["login_failed"]
    return UpstreamError(fallback)
