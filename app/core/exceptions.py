"""
Base exception classes for application-wide error handling.

Every domain error raised by a service derives from BaseApplicationError,
so the API layer can render any of them the same way (see
core.views.api_exception_handler).

Exception Hierarchy:
    BaseApplicationError (base)
    ├── BadRequestError - State-machine precondition violated
    │   └── ValidationError - Malformed input (amounts, PINs, locations)
    ├── NotFoundError - Referenced entity absent
    ├── PermissionDeniedError - Actor is not a party to the entity
    ├── ConflictError - Concurrent modification, lock contention
    └── ExternalServiceError - Payment gateway / payout rail failures

Usage:
    from core.exceptions import BadRequestError, NotFoundError

    raise BadRequestError(
        "Only pending bookings can be accepted",
        error_code="INVALID_BOOKING_STATE",
        details={"status": booking.status},
    )

    try:
        ...
    except BaseApplicationError as e:
        return Response(e.to_dict(), status=e.http_status)
"""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from typing import Any


class BaseApplicationError(Exception):
    """
    Base exception for all application-specific errors.

    Attributes:
        message: Human-readable, user-safe error description
        error_code: Machine-readable code for client-side handling
        details: Additional error context (ids, states, amounts)
        http_status: Status code the API layer responds with
    """

    default_error_code: str = "APPLICATION_ERROR"
    http_status: int = 400

    def __init__(
        self,
        message: str,
        error_code: str | None = None,
        details: dict[str, Any] | None = None,
    ):
        self.message = message
        self.error_code = error_code or self.default_error_code
        self.details = details or {}
        super().__init__(message)

    def to_dict(self) -> dict[str, Any]:
        """
        Convert exception to dictionary for API response.

        Example:
            {
                "error": "Booking not found",
                "error_code": "BOOKING_NOT_FOUND",
                "details": {"booking_id": "..."}
            }
        """
        result: dict[str, Any] = {
            "error": self.message,
            "error_code": self.error_code,
        }
        if self.details:
            result["details"] = self.details
        return result

    def __str__(self) -> str:
        return f"[{self.error_code}] {self.message}"

    def __repr__(self) -> str:
        return (
            f"{self.__class__.__name__}("
            f"message={self.message!r}, "
            f"error_code={self.error_code!r}, "
            f"details={self.details!r})"
        )


class BadRequestError(BaseApplicationError):
    """
    Raised when an operation violates a state-machine precondition.

    Use for:
    - Accepting a booking whose payment is not escrowed
    - Releasing a payment that already left escrow
    - Resolving a dispute that is already resolved

    These are not retried: a double release is a bug signal, not a
    transient condition.
    """

    default_error_code: str = "BAD_REQUEST"


class ValidationError(BadRequestError):
    """
    Raised when input validation fails in the service layer.

    Use for malformed split amounts, missing locations, PIN format.
    DRF serializers handle request-shape validation before this point.
    """

    default_error_code: str = "VALIDATION_ERROR"


class NotFoundError(BaseApplicationError):
    """
    Raised when a referenced entity does not exist (or is soft deleted).

    Example:
        booking = Booking.objects.filter(id=booking_id).first()
        if not booking:
            raise NotFoundError(
                "Booking not found",
                error_code="BOOKING_NOT_FOUND",
                details={"booking_id": str(booking_id)},
            )
    """

    default_error_code: str = "NOT_FOUND"
    http_status: int = 404


class PermissionDeniedError(BaseApplicationError):
    """
    Raised when the actor is not a party to the entity.

    Ownership checks always run before state checks, so a stranger gets
    this error even when the entity is also in the wrong state.
    """

    default_error_code: str = "PERMISSION_DENIED"
    http_status: int = 403


class ConflictError(BaseApplicationError):
    """
    Raised when an operation conflicts with a concurrent modification.

    Use for lock contention and optimistic-locking failures. HTTP 409.
    """

    default_error_code: str = "CONFLICT"
    http_status: int = 409


class ExternalServiceError(BaseApplicationError):
    """
    Raised when an external service call fails.

    Log the original error for debugging but don't expose gateway
    internals to clients. HTTP 502.
    """

    default_error_code: str = "EXTERNAL_SERVICE_ERROR"
    http_status: int = 502
