"""Application error taxonomy.

Every error carries a stable ``code``, the HTTP status it maps to, and a
user-facing message. Messages are deliberately generic: ``TokenInvalid``
never says *why* a link is unusable and ``Unauthorized`` never confirms that
a resource exists.
"""

from fastapi import status


class AppError(Exception):
    """Base class for errors surfaced to API and CLI callers."""

    code: str = "internal_error"
    status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR
    default_message: str = "Internal server error"

    def __init__(self, message: str | None = None):
        self.message = message or self.default_message
        super().__init__(self.message)


class InvalidRequest(AppError):
    """Raised when a request body is malformed (bad email, missing field, unknown action)."""

    code = "invalid_request"
    status_code = status.HTTP_400_BAD_REQUEST
    default_message = "Invalid request"


class SurveyNotEligible(AppError):
    """Raised when a survey is missing, not active, has no unique link, or is full."""

    code = "survey_not_eligible"
    status_code = status.HTTP_400_BAD_REQUEST
    default_message = "This survey is not accepting responses"


class TokenInvalid(AppError):
    """Uniform failure for unknown, expired and already-used magic links."""

    code = "token_invalid"
    status_code = status.HTTP_400_BAD_REQUEST
    default_message = "This link is no longer valid"


class Unauthorized(AppError):
    """Raised when the access policy denies an operation."""

    code = "unauthorized"
    status_code = status.HTTP_403_FORBIDDEN
    default_message = "You do not have permission to perform this action"


class NotAuthenticated(AppError):
    """Raised when a presented credential cannot be verified."""

    code = "not_authenticated"
    status_code = status.HTTP_401_UNAUTHORIZED
    default_message = "Could not validate credentials"


class RateLimitExceeded(AppError):
    """Raised when too many magic links are requested for one email/survey pair."""

    code = "rate_limited"
    status_code = status.HTTP_429_TOO_MANY_REQUESTS
    default_message = "Too many requests"

    def __init__(self, retry_after: int):
        self.retry_after = retry_after
        super().__init__(f"Rate limit exceeded. Try again in {retry_after} seconds.")


class StorageUnavailable(AppError):
    """Transient backend failure. Safe for the caller to retry with backoff."""

    code = "storage_unavailable"
    status_code = status.HTTP_503_SERVICE_UNAVAILABLE
    default_message = "Service temporarily unavailable, please try again"


class EmailDeliveryFailed(AppError):
    """Raised inside the delivery task only. Logged, never returned to the issuer's caller."""

    code = "email_delivery_failed"
    status_code = status.HTTP_502_BAD_GATEWAY
    default_message = "Email delivery failed"
