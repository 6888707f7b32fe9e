"""
Payment-specific exceptions for escrow, withdrawal and gateway operations.

Exception Hierarchy:
    PaymentNotFoundError (NotFoundError) - Payment lookup failures
    WithdrawalNotFoundError (NotFoundError) - Withdrawal lookup failures
    InvalidEscrowStateError (BadRequestError) - Escrow not in the required state
    PaymentExpiredError (BadRequestError) - Pending payment past its expiry
    InvalidWithdrawalError (BadRequestError) - Withdrawal preconditions failed
    WebhookSignatureError (BadRequestError) - Bad or missing webhook signature

    PaystackError (ExternalServiceError) - Base for all gateway errors
    ├── PaystackAuthenticationError - Bad secret key (permanent)
    ├── PaystackInvalidRequestError - Rejected parameters (permanent)
    ├── PaystackRateLimitError - Rate limited (transient, retry)
    ├── PaystackAPIUnavailableError - 5xx / connection errors (transient, retry)
    └── PaystackTimeoutError - Request timeout (transient, retry)

    LockAcquisitionError (ConflictError) - Distributed lock timeout

Usage:
    from payments.exceptions import InvalidEscrowStateError, PaystackError

    rows = Payment.objects.filter(pk=pk, escrow_status=EscrowStatus.HELD).update(...)
    if rows == 0:
        raise InvalidEscrowStateError(
            "Payment is not held in escrow",
            details={"payment_id": str(pk)},
        )
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from core.exceptions import (
    BadRequestError,
    ConflictError,
    ExternalServiceError,
    NotFoundError,
)

if TYPE_CHECKING:
    from typing import Any


# =============================================================================
# Payment Domain Exceptions
# =============================================================================


class PaymentNotFoundError(NotFoundError):
    """Raised when a Payment cannot be found by id or gateway reference."""

    default_error_code: str = "PAYMENT_NOT_FOUND"


class WithdrawalNotFoundError(NotFoundError):
    default_error_code: str = "WITHDRAWAL_NOT_FOUND"


class InvalidEscrowStateError(BadRequestError):
    """
    Raised when an escrow move finds the payment outside the required state.

    Every release, refund and split is a conditional update that only
    succeeds while escrow_status is held. The loser of a race between two
    paths (completion vs. dispute resolution, duplicate admin clicks) gets
    this error and the ledger is left untouched.
    """

    default_error_code: str = "ESCROW_NOT_HELD"


class PaymentExpiredError(BadRequestError):
    """Raised when confirming a pending payment past PAYMENT_EXPIRY_MINUTES."""

    default_error_code: str = "PAYMENT_EXPIRED"


class InvalidWithdrawalError(BadRequestError):
    """
    Raised when a withdrawal request or transition is not allowed.

    Use for:
    - Amount below WITHDRAWAL_MIN_AMOUNT
    - Missing or wrong withdrawal PIN
    - Processing a withdrawal that is no longer pending
    """

    default_error_code: str = "INVALID_WITHDRAWAL"


class WebhookSignatureError(BadRequestError):
    default_error_code: str = "INVALID_WEBHOOK_SIGNATURE"


# =============================================================================
# Paystack-Specific Exceptions
# =============================================================================


class PaystackError(ExternalServiceError):
    """
    Base exception for all Paystack-related errors.

    Provides common attributes for gateway error handling:
    - http_status_code: Status code Paystack answered with (if any)
    - is_retryable: Whether the operation can be retried

    Use is_retryable to determine retry behavior:
    - True: Transient error, safe to retry with backoff
    - False: Permanent error, do not retry

    Example:
        try:
            PaystackAdapter.initiate_transfer(params)
        except PaystackError as e:
            if e.is_retryable:
                raise  # Celery autoretry picks it up
            WithdrawalService.fail(withdrawal.id, reason=e.message)
    """

    default_error_code: str = "PAYSTACK_ERROR"
    is_retryable: bool = False

    def __init__(
        self,
        message: str,
        error_code: str | None = None,
        http_status_code: int | None = None,
        details: dict[str, Any] | None = None,
    ):
        details = details or {}
        if http_status_code:
            details["http_status_code"] = http_status_code
        super().__init__(message, error_code=error_code, details=details)
        self.http_status_code = http_status_code


# -----------------------------------------------------------------------------
# Permanent Errors (do not retry)
# -----------------------------------------------------------------------------


class PaystackAuthenticationError(PaystackError):
    """
    Paystack rejected our secret key (401).

    Configuration problem; retrying cannot help.
    """

    default_error_code: str = "PAYSTACK_AUTHENTICATION_FAILED"
    is_retryable: bool = False


class PaystackInvalidRequestError(PaystackError):
    """
    Paystack rejected the request parameters (400/404/422).

    Possible causes:
    - Unknown reference on verify
    - Invalid account number or bank code for a transfer recipient
    - Transfer amount above the available Paystack balance
    """

    default_error_code: str = "INVALID_PAYSTACK_REQUEST"
    is_retryable: bool = False


# -----------------------------------------------------------------------------
# Transient Errors (safe to retry with backoff)
# -----------------------------------------------------------------------------


class PaystackRateLimitError(PaystackError):
    default_error_code: str = "PAYSTACK_RATE_LIMITED"
    is_retryable: bool = True


class PaystackAPIUnavailableError(PaystackError):
    """
    Paystack is temporarily unavailable.

    This covers 5xx responses and connection failures. Retry with
    exponential backoff.
    """

    default_error_code: str = "PAYSTACK_UNAVAILABLE"
    is_retryable: bool = True


class PaystackTimeoutError(PaystackError):
    """
    Paystack call timed out (PAYSTACK_API_TIMEOUT_SECONDS).

    IMPORTANT: The operation may have succeeded on Paystack's side.
    Transfers carry our withdrawal reference, which Paystack treats as
    an idempotency key, so retrying with the same reference is safe.
    """

    default_error_code: str = "PAYSTACK_TIMEOUT"
    is_retryable: bool = True


# =============================================================================
# Concurrency Control Exceptions
# =============================================================================


class LockAcquisitionError(ConflictError):
    """
    Raised when a distributed lock cannot be acquired.

    Another worker holds the lock (e.g. the same withdrawal is already
    being sent to the payout rail). HTTP 409.
    """

    default_error_code: str = "LOCK_ACQUISITION_FAILED"


__all__ = [
    "InvalidEscrowStateError",
    "InvalidWithdrawalError",
    "LockAcquisitionError",
    "PaymentExpiredError",
    "PaymentNotFoundError",
    "PaystackAPIUnavailableError",
    "PaystackAuthenticationError",
    "PaystackError",
    "PaystackInvalidRequestError",
    "PaystackRateLimitError",
    "PaystackTimeoutError",
    "WebhookSignatureError",
    "WithdrawalNotFoundError",
]
