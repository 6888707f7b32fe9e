"""
Data types for ledger operations.

Types:
    LedgerEntryParams: Everything credit/debit need to record one change
    ReconciliationReport: Result of WalletService.reconcile

Usage:
    from payments.ledger.types import LedgerEntryParams

    params = LedgerEntryParams(
        user_id=vendor.id,
        amount=5400,
        type=TransactionType.BOOKING_PAYMENT,
        reference=f"escrow:{payment.id}:release",
        booking_id=booking.id,
        payment_id=payment.id,
    )
"""

from __future__ import annotations

import uuid
from dataclasses import dataclass, field
from typing import Any

from payments.ledger.exceptions import InvalidLedgerAmount


@dataclass
class LedgerEntryParams:
    """
    Parameters for one wallet credit or debit.

    amount is always positive here; the direction comes from calling
    credit() or debit().

    Required Attributes:
        user_id: Wallet owner
        amount: Positive amount in whole currency units
        type: TransactionType value
        reference: Globally unique idempotency key

    Optional Attributes:
        booking_id / payment_id / withdrawal_id: Back-references
        description: Human-readable description
        metadata: Arbitrary JSON-serializable data
    """

    user_id: uuid.UUID
    amount: int
    type: str
    reference: str

    booking_id: uuid.UUID | None = None
    payment_id: uuid.UUID | None = None
    withdrawal_id: uuid.UUID | None = None
    description: str = ""
    metadata: dict[str, Any] = field(default_factory=dict)

    def __post_init__(self) -> None:
        if not isinstance(self.amount, int) or self.amount <= 0:
            raise InvalidLedgerAmount(
                "Ledger amount must be a positive whole number",
                details={"amount": self.amount, "reference": self.reference},
            )
        if not self.reference:
            raise InvalidLedgerAmount("Ledger reference is required")


@dataclass
class ReconciliationReport:
    """
    Outcome of reconciling one wallet against its transaction log.

    Attributes:
        stored_balance: Wallet.balance
        computed_balance: Sum of transaction amounts
        transaction_count: Rows checked
        broken_links: References of rows whose balance_before does not
            match the previous row's balance_after (or 0 for the first)
    """

    user_id: uuid.UUID
    stored_balance: int
    computed_balance: int
    transaction_count: int
    broken_links: list[str] = field(default_factory=list)

    @property
    def is_consistent(self) -> bool:
        return (
            self.stored_balance == self.computed_balance and not self.broken_links
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "user_id": str(self.user_id),
            "stored_balance": self.stored_balance,
            "computed_balance": self.computed_balance,
            "transaction_count": self.transaction_count,
            "broken_links": self.broken_links,
            "is_consistent": self.is_consistent,
        }
