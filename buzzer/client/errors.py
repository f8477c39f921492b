"""Typed failures raised by the client core.

Every error carries a machine-readable ``code`` and a ``category`` so callers
can branch: redirect to login on ``AUTHENTICATION``, re-sync on ``CONFLICT``,
offer a retry on ``TRANSIENT`` and show the message inline otherwise.
"""

from __future__ import annotations

from enum import Enum

GENERIC_MESSAGE = "Something went wrong. Please try again."
TIMEOUT_MESSAGE = "Request timeout. Please check your connection and try again."
NETWORK_MESSAGE = "Unable to connect to server. Please try again later."


class ErrorCategory(str, Enum):
    VALIDATION = "validation"
    AUTHENTICATION = "authentication"
    CONFLICT = "conflict"
    TRANSIENT = "transient"
    REJECTED = "rejected"


class OrderError(Exception):
    """Base class for all cart, checkout and order failures."""

    category: ErrorCategory = ErrorCategory.REJECTED

    def __init__(
        self,
        code: str,
        message: str,
        *,
        status_code: int | None = None,
        details: list[str] | None = None,
    ) -> None:
        super().__init__(message)
        self.code = code
        self.message = message
        self.status_code = status_code
        self.details = list(details or [])

    @property
    def retryable(self) -> bool:
        return self.category is ErrorCategory.TRANSIENT

    def __repr__(self) -> str:
        return f"{type(self).__name__}(code={self.code!r}, message={self.message!r})"


class ValidationFailed(OrderError):
    """Input rejected, either locally before any request or by the backend."""

    category = ErrorCategory.VALIDATION


class AuthenticationRequired(OrderError):
    """Missing or expired credential; the caller should send the user to login."""

    category = ErrorCategory.AUTHENTICATION


class OrderConflict(OrderError):
    """The requested transition is not legal for the order's current status."""

    category = ErrorCategory.CONFLICT


class TransientFailure(OrderError):
    """Timeout, unreachable backend or server-side failure."""

    category = ErrorCategory.TRANSIENT


class RequestRejected(OrderError):
    """Any other refusal from the backend (forbidden, not found, ...)."""

    category = ErrorCategory.REJECTED


EMPTY_CART = "EMPTY_CART"
MISSING_LOCATION = "MISSING_LOCATION"
UNAUTHENTICATED = "UNAUTHENTICATED"
SUBMISSION_IN_PROGRESS = "SUBMISSION_IN_PROGRESS"
LOCATION_TOO_LONG = "LOCATION_TOO_LONG"
REQUEST_IN_PROGRESS = "REQUEST_IN_PROGRESS"
NOT_CANCELLABLE = "NOT_CANCELLABLE"
TIMEOUT = "TIMEOUT"
NETWORK = "NETWORK"
BAD_RESPONSE = "BAD_RESPONSE"


def error_for_status(
    status_code: int,
    message: str | None,
    details: list[str] | None = None,
    *,
    retry_after: str | None = None,
) -> OrderError:
    """Map an HTTP error status and envelope message onto the taxonomy.

    A 409 carrying ``Retry-After`` means an earlier request with the same
    idempotency key is still running; that is worth retrying, not a conflict.
    """

    message = message or GENERIC_MESSAGE
    kwargs = {"status_code": status_code, "details": details}
    if status_code == 401:
        return AuthenticationRequired(UNAUTHENTICATED, message, **kwargs)
    if status_code == 409 and retry_after is not None:
        return TransientFailure(REQUEST_IN_PROGRESS, message, **kwargs)
    if status_code == 409:
        return OrderConflict("CONFLICT", message, **kwargs)
    if status_code in (400, 422):
        return ValidationFailed("BAD_REQUEST", message, **kwargs)
    if status_code == 429 or status_code >= 500:
        return TransientFailure("SERVER_ERROR", message, **kwargs)
    if status_code == 403:
        return RequestRejected("FORBIDDEN", message, **kwargs)
    if status_code == 404:
        return RequestRejected("NOT_FOUND", message, **kwargs)
    return RequestRejected("REJECTED", message, **kwargs)
