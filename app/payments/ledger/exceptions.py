"""
Ledger-specific exceptions for wallet operations.

Exception Hierarchy:
    LedgerError (BadRequestError)
    ├── InsufficientBalance - Debit larger than the wallet balance
    └── InvalidLedgerAmount - Zero or negative amount passed to credit/debit

Usage:
    from payments.ledger.exceptions import InsufficientBalance

    if wallet.balance < amount:
        raise InsufficientBalance(wallet.user_id, required=amount, available=wallet.balance)
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from core.exceptions import BadRequestError

if TYPE_CHECKING:
    import uuid
    from typing import Any


class LedgerError(BadRequestError):
    """Base exception for all ledger operations."""

    default_error_code: str = "LEDGER_ERROR"


class InsufficientBalance(LedgerError):
    """
    Raised when a debit exceeds the wallet balance.

    Attributes:
        user_id: Owner of the wallet
        required: Amount the debit needed
        available: Balance at the time of the check
    """

    default_error_code: str = "INSUFFICIENT_BALANCE"

    def __init__(
        self,
        user_id: uuid.UUID,
        required: int,
        available: int,
        error_code: str | None = None,
        details: dict[str, Any] | None = None,
    ):
        self.user_id = user_id
        self.required = required
        self.available = available

        full_details = {
            "user_id": str(user_id),
            "required": required,
            "available": available,
        }
        if details:
            full_details.update(details)

        super().__init__(
            message=f"Insufficient balance: required {required}, available {available}",
            error_code=error_code,
            details=full_details,
        )


class InvalidLedgerAmount(LedgerError):
    default_error_code: str = "INVALID_LEDGER_AMOUNT"
