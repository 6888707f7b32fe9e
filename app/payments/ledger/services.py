"""
Wallet service: the only code allowed to change a balance.

credit() and debit() are the two ledger primitives. Every higher-level
money movement (escrow release, refund, split, withdrawal, referral bonus)
calls them inside the caller's transaction.atomic() block, so the state
change that caused the movement and the movement itself commit together.

Guarantees:
- The wallet row is locked with select_for_update() before the balance
  is read, so concurrent credits for one user serialize.
- Each change appends a Transaction with balance_before/balance_after.
- reference is the idempotency key: replaying a known reference returns
  the existing row and changes nothing.

Usage:
    from payments.ledger.services import WalletService
    from payments.ledger.types import LedgerEntryParams

    WalletService.credit(LedgerEntryParams(
        user_id=vendor.id,
        amount=5400,
        type=TransactionType.BOOKING_PAYMENT,
        reference=f"escrow:{payment.id}:release",
    ))
"""

from __future__ import annotations

import uuid
from datetime import datetime
from typing import TYPE_CHECKING

from django.conf import settings
from django.db.models import Q, Sum
from django.db.models.functions import Coalesce

from core.services import BaseService
from payments.ledger.exceptions import InsufficientBalance, LedgerError
from payments.ledger.models import Transaction, TransactionType, Wallet
from payments.ledger.types import LedgerEntryParams, ReconciliationReport

if TYPE_CHECKING:
    from django.db.models import QuerySet


# Credits that count as money received (reversals only undo a debit)
RECEIVED_TYPES = [
    TransactionType.DEPOSIT,
    TransactionType.BOOKING_PAYMENT,
    TransactionType.REFUND,
    TransactionType.REFERRAL_BONUS,
]


class WalletService(BaseService):
    """
    Ledger operations on per-user wallets.

    All methods are classmethods - no instance state is maintained.
    """

    # =========================================================================
    # Wallet access
    # =========================================================================

    @classmethod
    def get_or_create_wallet(cls, user_id: uuid.UUID) -> Wallet:
        wallet, created = Wallet.objects.get_or_create(
            user_id=user_id,
            defaults={"currency": settings.PLATFORM_CURRENCY},
        )
        if created:
            cls.get_logger().debug(
                "Wallet created",
                extra={"user_id": str(user_id)},
            )
        return wallet

    @classmethod
    def _lock_wallet(cls, user_id: uuid.UUID) -> Wallet:
        """Create the wallet if needed, then lock its row. Call inside atomic()."""
        cls.get_or_create_wallet(user_id)
        return Wallet.objects.select_for_update().get(user_id=user_id)

    @classmethod
    def get_balance(cls, user_id: uuid.UUID) -> int:
        wallet = Wallet.objects.filter(user_id=user_id).only("balance").first()
        return wallet.balance if wallet else 0

    # =========================================================================
    # Primitives
    # =========================================================================

    @classmethod
    def credit(cls, params: LedgerEntryParams) -> Transaction:
        """
        Add params.amount to the user's wallet.

        Returns:
            The new Transaction, or the existing one if params.reference
            was already recorded
        """
        return cls._record(params, params.amount)

    @classmethod
    def debit(cls, params: LedgerEntryParams) -> Transaction:
        """
        Subtract params.amount from the user's wallet.

        Raises:
            InsufficientBalance: If the balance is lower than params.amount
        """
        return cls._record(params, -params.amount)

    @classmethod
    def _record(cls, params: LedgerEntryParams, delta: int) -> Transaction:
        with cls.atomic():
            wallet = cls._lock_wallet(params.user_id)

            # Checked under the wallet lock so a concurrent replay of the
            # same reference sees the committed row.
            existing = Transaction.objects.filter(reference=params.reference).first()
            if existing is not None:
                cls._check_replay(existing, params, delta)
                cls.get_logger().info(
                    "Ledger replay ignored",
                    extra={"reference": params.reference, "user_id": str(params.user_id)},
                )
                return existing

            if delta < 0 and wallet.balance < -delta:
                raise InsufficientBalance(
                    params.user_id,
                    required=-delta,
                    available=wallet.balance,
                    details={"reference": params.reference},
                )

            balance_before = wallet.balance
            balance_after = balance_before + delta

            entry = Transaction.objects.create(
                wallet=wallet,
                user_id=params.user_id,
                type=params.type,
                amount=delta,
                balance_before=balance_before,
                balance_after=balance_after,
                sequence=wallet.next_sequence,
                currency=wallet.currency,
                reference=params.reference,
                booking_id=params.booking_id,
                payment_id=params.payment_id,
                withdrawal_id=params.withdrawal_id,
                description=params.description,
                metadata=params.metadata,
            )

            wallet.balance = balance_after
            wallet.next_sequence += 1
            wallet.save(update_fields=["balance", "next_sequence", "updated_at"])

        cls.get_logger().info(
            "Ledger entry recorded",
            extra={
                "user_id": str(params.user_id),
                "type": params.type,
                "amount": delta,
                "balance_after": balance_after,
                "reference": params.reference,
            },
        )
        return entry

    @staticmethod
    def _check_replay(existing: Transaction, params: LedgerEntryParams, delta: int) -> None:
        if existing.user_id != params.user_id or existing.amount != delta:
            raise LedgerError(
                "Ledger reference already used for a different entry",
                error_code="LEDGER_REFERENCE_CONFLICT",
                details={"reference": params.reference},
            )

    # =========================================================================
    # Queries
    # =========================================================================

    @classmethod
    def get_transactions(
        cls,
        user_id: uuid.UUID,
        transaction_type: str | None = None,
        since: datetime | None = None,
        until: datetime | None = None,
    ) -> QuerySet[Transaction]:
        queryset = Transaction.objects.filter(user_id=user_id)
        if transaction_type:
            queryset = queryset.filter(type=transaction_type)
        if since:
            queryset = queryset.filter(created_at__gte=since)
        if until:
            queryset = queryset.filter(created_at__lte=until)
        return queryset.order_by("-sequence")

    @classmethod
    def get_stats(cls, user_id: uuid.UUID) -> dict[str, int]:
        """
        Wallet summary for dashboards.

        Returns:
            balance, total_received (escrow releases, refunds, bonuses,
            deposits), total_withdrawn (completed withdrawals) and
            pending_withdrawals (pending or processing)
        """
        from payments.models import Withdrawal
        from payments.state_machines import WithdrawalStatus

        received = Transaction.objects.filter(
            user_id=user_id, type__in=RECEIVED_TYPES, amount__gt=0
        ).aggregate(total=Coalesce(Sum("amount"), 0))["total"]

        withdrawals = Withdrawal.objects.filter(user_id=user_id).aggregate(
            withdrawn=Coalesce(
                Sum("amount", filter=Q(status=WithdrawalStatus.COMPLETED)), 0
            ),
            pending=Coalesce(
                Sum(
                    "amount",
                    filter=Q(
                        status__in=[
                            WithdrawalStatus.PENDING,
                            WithdrawalStatus.PROCESSING,
                        ]
                    ),
                ),
                0,
            ),
        )

        return {
            "balance": cls.get_balance(user_id),
            "total_received": received,
            "total_withdrawn": withdrawals["withdrawn"],
            "pending_withdrawals": withdrawals["pending"],
        }

    # =========================================================================
    # Reconciliation
    # =========================================================================

    @classmethod
    def reconcile(cls, user_id: uuid.UUID) -> ReconciliationReport:
        """
        Check a wallet against its transaction log.

        Walks the transactions in sequence order and verifies each row
        starts where the previous one ended, then compares the running
        total with the stored balance.
        """
        stored_balance = cls.get_balance(user_id)

        running = 0
        count = 0
        broken: list[str] = []
        rows = (
            Transaction.objects.filter(user_id=user_id)
            .order_by("sequence")
            .values_list("reference", "amount", "balance_before", "balance_after")
        )
        for reference, amount, balance_before, balance_after in rows.iterator():
            if balance_before != running or balance_after != balance_before + amount:
                broken.append(reference)
            running += amount
            count += 1

        report = ReconciliationReport(
            user_id=user_id,
            stored_balance=stored_balance,
            computed_balance=running,
            transaction_count=count,
            broken_links=broken,
        )

        if not report.is_consistent:
            cls.get_logger().error(
                "Wallet reconciliation mismatch",
                extra=report.to_dict(),
            )
        return report
