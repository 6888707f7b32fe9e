"""
Ledger models: per-user wallets and their append-only transaction log.

- Wallet: One row per user holding the current balance snapshot
- Transaction: Immutable record of one balance change

The wallet balance is a cache of the transaction log. Every mutation goes
through WalletService, which locks the wallet row, appends a Transaction
whose balance_before/balance_after bracket the change, and writes the new
balance in the same database transaction. reconcile() proves the two agree.

Usage:
    from payments.ledger.models import Transaction, TransactionType, Wallet

    wallet = Wallet.objects.get(user=vendor)
    wallet.balance                          # 5400
    wallet.transactions.order_by("created_at", "sequence")
"""

from __future__ import annotations

from django.conf import settings
from django.db import models
from django.db.models import F, Q

from core.model_mixins import UUIDPrimaryKeyMixin
from core.models import BaseModel


class TransactionType(models.TextChoices):
    """
    Categories of balance changes.

    Values:
        DEPOSIT: Funds added from outside the platform
        WITHDRAWAL: Funds reserved for a payout at request time (debit)
        BOOKING_PAYMENT: Escrow released to the vendor
        REFUND: Escrow returned to the client (full or split share)
        COMMISSION: Platform commission movement
        REFERRAL_BONUS: Referral reward
        WITHDRAWAL_REVERSAL: Re-credit of a failed or rejected withdrawal
    """

    DEPOSIT = "deposit", "Deposit"
    WITHDRAWAL = "withdrawal", "Withdrawal"
    BOOKING_PAYMENT = "booking_payment", "Booking Payment"
    REFUND = "refund", "Refund"
    COMMISSION = "commission", "Commission"
    REFERRAL_BONUS = "referral_bonus", "Referral Bonus"
    WITHDRAWAL_REVERSAL = "withdrawal_reversal", "Withdrawal Reversal"


class Wallet(UUIDPrimaryKeyMixin, BaseModel):
    """
    A user's spendable balance.

    Fields:
        user: Owner (one wallet per user)
        balance: Current balance in whole currency units
        currency: Ledger currency (PLATFORM_CURRENCY)
        next_sequence: Monotonic counter for this wallet's transactions

    Note:
        Never update balance directly. WalletService.credit/debit lock the
        row with select_for_update() and append the matching Transaction.
    """

    user = models.OneToOneField(
        settings.AUTH_USER_MODEL,
        on_delete=models.PROTECT,
        related_name="wallet",
    )
    balance = models.BigIntegerField(
        default=0,
        help_text="Current balance in whole currency units",
    )
    currency = models.CharField(max_length=3, default="NGN")
    next_sequence = models.PositiveBigIntegerField(
        default=1,
        help_text="Sequence number the next transaction will receive",
    )

    class Meta:
        constraints = [
            models.CheckConstraint(
                check=Q(balance__gte=0),
                name="wallet_balance_non_negative",
            )
        ]

    def __str__(self) -> str:
        return f"Wallet({self.user_id}, {self.balance} {self.currency})"


class Transaction(UUIDPrimaryKeyMixin, models.Model):
    """
    One immutable balance change.

    Fields:
        wallet / user: Whose balance changed
        type: TransactionType
        amount: Signed delta (credits positive, debits negative)
        balance_before / balance_after: Wallet balance around this change
        sequence: Per-wallet order, strictly increasing
        reference: Globally unique idempotency key
        booking / payment / withdrawal: Optional back-references
        description / metadata: Audit context

    Constraints:
        - balance_after == balance_before + amount
        - (wallet, sequence) is unique
        - reference is unique
    """

    created_at = models.DateTimeField(auto_now_add=True, db_index=True)

    wallet = models.ForeignKey(
        Wallet,
        on_delete=models.PROTECT,
        related_name="transactions",
    )
    user = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.PROTECT,
        related_name="transactions",
    )
    type = models.CharField(
        max_length=30,
        choices=TransactionType.choices,
        db_index=True,
    )
    amount = models.BigIntegerField(help_text="Signed amount in whole currency units")
    balance_before = models.BigIntegerField()
    balance_after = models.BigIntegerField()
    sequence = models.PositiveBigIntegerField()
    currency = models.CharField(max_length=3, default="NGN")

    reference = models.CharField(
        max_length=255,
        unique=True,
        help_text="Idempotency key; a replay with the same key is a no-op",
    )

    booking = models.ForeignKey(
        "bookings.Booking",
        on_delete=models.PROTECT,
        null=True,
        blank=True,
        related_name="transactions",
    )
    payment = models.ForeignKey(
        "payments.Payment",
        on_delete=models.PROTECT,
        null=True,
        blank=True,
        related_name="transactions",
    )
    withdrawal = models.ForeignKey(
        "payments.Withdrawal",
        on_delete=models.PROTECT,
        null=True,
        blank=True,
        related_name="transactions",
    )

    description = models.CharField(max_length=255, blank=True)
    metadata = models.JSONField(default=dict, blank=True)

    class Meta:
        ordering = ["-created_at", "-sequence"]
        indexes = [
            models.Index(fields=["user", "type"], name="transaction_user_type_idx"),
            models.Index(fields=["wallet", "sequence"], name="transaction_wallet_seq_idx"),
        ]
        constraints = [
            models.UniqueConstraint(
                fields=["wallet", "sequence"],
                name="transaction_unique_wallet_sequence",
            ),
            models.CheckConstraint(
                check=Q(balance_after=F("balance_before") + F("amount")),
                name="transaction_running_balance",
            ),
            models.CheckConstraint(
                check=~Q(amount=0),
                name="transaction_amount_non_zero",
            ),
        ]

    def __str__(self) -> str:
        return f"{self.get_type_display()}: {self.amount:+d} ({self.reference})"

    @property
    def is_credit(self) -> bool:
        return self.amount > 0
