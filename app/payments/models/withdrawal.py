"""
Withdrawal model: moves wallet balance out to a bank account.

The wallet is debited when the withdrawal is requested, so the funds are
reserved rather than spendable. Only FAILED and REJECTED re-credit them;
COMPLETED means the bank transfer succeeded and the debit stands.

Usage:
    withdrawal.start_processing(admin)
    withdrawal.save()
"""

from __future__ import annotations

from django.conf import settings
from django.db import models
from django.db.models import F, Q
from django.utils import timezone

from django_fsm import FSMField, transition

from core.managers import SoftDeleteManager, SoftDeleteQuerySet
from core.model_mixins import SoftDeleteMixin, UUIDPrimaryKeyMixin
from core.models import BaseModel
from payments.state_machines import WithdrawalStatus


class Withdrawal(UUIDPrimaryKeyMixin, SoftDeleteMixin, BaseModel):
    """
    A vendor's payout request.

    State Flow:
        PENDING -> PROCESSING (admin triggers the transfer)
        PROCESSING -> COMPLETED (transfer.success)
        PROCESSING -> FAILED (gateway error, transfer.failed/reversed)
        PENDING -> REJECTED (admin declines)

    Fields:
        user: Vendor withdrawing
        amount: Debited from the wallet at request time
        fee: Fixed withdrawal fee (WITHDRAWAL_FEE)
        net_amount: amount - fee, what the bank transfer sends
        bank_name / bank_code / account_number / account_name: Destination
        reference: WTH-<millis>-<hex>, also the Paystack transfer reference
        recipient_code / transfer_code: Paystack identifiers
    """

    user = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.PROTECT,
        related_name="withdrawals",
    )

    amount = models.PositiveBigIntegerField()
    fee = models.PositiveBigIntegerField(default=0)
    net_amount = models.PositiveBigIntegerField()
    currency = models.CharField(max_length=3, default="NGN")

    bank_name = models.CharField(max_length=100)
    bank_code = models.CharField(max_length=10)
    account_number = models.CharField(max_length=20)
    account_name = models.CharField(max_length=200)

    status = FSMField(
        max_length=20,
        choices=WithdrawalStatus.choices,
        default=WithdrawalStatus.PENDING,
        db_index=True,
    )
    reference = models.CharField(max_length=64, unique=True)
    recipient_code = models.CharField(max_length=100, blank=True)
    transfer_code = models.CharField(max_length=100, blank=True)

    processed_by = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="processed_withdrawals",
    )
    processed_at = models.DateTimeField(null=True, blank=True)
    completed_at = models.DateTimeField(null=True, blank=True)
    failed_at = models.DateTimeField(null=True, blank=True)
    rejected_at = models.DateTimeField(null=True, blank=True)
    failure_reason = models.CharField(max_length=500, blank=True)
    rejection_reason = models.CharField(max_length=500, blank=True)

    objects = SoftDeleteManager()
    all_objects = SoftDeleteQuerySet.as_manager()

    class Meta:
        ordering = ["-created_at"]
        indexes = [
            models.Index(fields=["user", "status"], name="withdrawal_user_status_idx"),
        ]
        constraints = [
            models.CheckConstraint(
                check=Q(net_amount=F("amount") - F("fee")),
                name="withdrawal_net_amount",
            ),
        ]

    def __str__(self) -> str:
        return f"Withdrawal({self.reference}, {self.amount}, {self.status})"

    @property
    def reverses_funds(self) -> bool:
        """Whether the current status requires the debit to be re-credited."""
        return self.status in (WithdrawalStatus.FAILED, WithdrawalStatus.REJECTED)

    # ==========================================================================
    # State Transitions
    # ==========================================================================

    @transition(
        field=status,
        source=WithdrawalStatus.PENDING,
        target=WithdrawalStatus.PROCESSING,
    )
    def start_processing(self, admin=None) -> None:
        self.processed_by = admin
        self.processed_at = timezone.now()

    @transition(
        field=status,
        source=WithdrawalStatus.PROCESSING,
        target=WithdrawalStatus.COMPLETED,
    )
    def complete(self) -> None:
        self.completed_at = timezone.now()

    @transition(
        field=status,
        source=WithdrawalStatus.PROCESSING,
        target=WithdrawalStatus.FAILED,
    )
    def fail(self, reason: str = "") -> None:
        self.failed_at = timezone.now()
        self.failure_reason = reason[:500]

    @transition(
        field=status,
        source=WithdrawalStatus.PENDING,
        target=WithdrawalStatus.REJECTED,
    )
    def reject(self, admin=None, reason: str = "") -> None:
        self.processed_by = admin
        self.rejected_at = timezone.now()
        self.rejection_reason = reason[:500]
