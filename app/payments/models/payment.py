"""
Payment model: one escrowed charge per booking.

Payment tracks two related states:
- status: gateway-facing (pending → completed/failed, completed → refunded)
- escrow_status: authoritative for money (pending → held → released/refunded)

Escrow moves never go through save(). EscrowService performs them as
conditional updates on escrow_status so only one competing path (bilateral
completion, dispute resolution, duplicate webhook) can ever win:

    rows = Payment.objects.filter(
        pk=payment.pk, escrow_status=EscrowStatus.HELD
    ).update(escrow_status=EscrowStatus.RELEASED, released_at=now)

Commission is captured at creation: commission_rate, platform_fee and
vendor_amount never change afterwards, and platform_fee + vendor_amount
always equals amount (database constraint).
"""

from __future__ import annotations

from datetime import timedelta
from decimal import Decimal

from django.conf import settings
from django.db import models
from django.db.models import F, Q
from django.utils import timezone

from django_fsm import FSMField, transition

from core.helpers import percentage_of
from core.managers import SoftDeleteManager, SoftDeleteQuerySet
from core.model_mixins import SoftDeleteMixin, UUIDPrimaryKeyMixin
from core.models import BaseModel
from payments.state_machines import EscrowStatus, PaymentStatus


class Payment(UUIDPrimaryKeyMixin, SoftDeleteMixin, BaseModel):
    """
    A client's payment for a booking, held in escrow until resolved.

    Fields:
        booking / client / vendor: Parties and the booking paid for
        amount: Booking total in whole currency units
        commission_rate: Percentage snapshot taken at creation
        platform_fee / vendor_amount: Derived split of amount
        status: Gateway-facing FSM state
        escrow_status: Escrow state, moved only by conditional updates
        reference: Our gateway reference (PAY-...), webhook matching key
        access_code / authorization_url: Gateway checkout artifacts
        expires_at: Pending payments past this time cannot be confirmed
        refund_amount / vendor_payment_amount: Amounts actually paid out
            when escrow left (full refund, full release, or split)
    """

    # ==========================================================================
    # Relationships
    # ==========================================================================

    booking = models.ForeignKey(
        "bookings.Booking",
        on_delete=models.PROTECT,
        related_name="payments",
    )
    client = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.PROTECT,
        related_name="payments_made",
    )
    vendor = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.PROTECT,
        related_name="payments_received",
    )

    # ==========================================================================
    # Amounts
    # ==========================================================================

    amount = models.PositiveBigIntegerField(
        help_text="Amount charged in whole currency units",
    )
    currency = models.CharField(max_length=3, default="NGN")
    commission_rate = models.DecimalField(
        max_digits=5,
        decimal_places=2,
        help_text="Commission percentage captured when the payment was created",
    )
    platform_fee = models.PositiveBigIntegerField()
    vendor_amount = models.PositiveBigIntegerField()

    # ==========================================================================
    # State
    # ==========================================================================

    status = FSMField(
        max_length=20,
        choices=PaymentStatus.choices,
        default=PaymentStatus.PENDING,
        db_index=True,
    )
    escrow_status = models.CharField(
        max_length=20,
        choices=EscrowStatus.choices,
        default=EscrowStatus.PENDING,
        db_index=True,
    )

    # ==========================================================================
    # Gateway
    # ==========================================================================

    reference = models.CharField(
        max_length=64,
        unique=True,
        help_text="Gateway reference (PAY-<millis>-<hex>)",
    )
    access_code = models.CharField(max_length=255, blank=True)
    authorization_url = models.URLField(max_length=500, blank=True)
    authorization_code = models.CharField(max_length=255, blank=True)
    gateway_response = models.JSONField(default=dict, blank=True)

    # ==========================================================================
    # Timestamps
    # ==========================================================================

    expires_at = models.DateTimeField(null=True, blank=True)
    paid_at = models.DateTimeField(null=True, blank=True)
    held_at = models.DateTimeField(null=True, blank=True)
    released_at = models.DateTimeField(null=True, blank=True)
    refunded_at = models.DateTimeField(null=True, blank=True)
    failed_at = models.DateTimeField(null=True, blank=True)

    # ==========================================================================
    # Resolution
    # ==========================================================================

    refund_amount = models.PositiveBigIntegerField(
        null=True,
        blank=True,
        help_text="Amount returned to the client when escrow left",
    )
    vendor_payment_amount = models.PositiveBigIntegerField(
        null=True,
        blank=True,
        help_text="Amount credited to the vendor when escrow left",
    )
    refund_reason = models.CharField(max_length=500, blank=True)
    failure_reason = models.CharField(max_length=500, blank=True)

    objects = SoftDeleteManager()
    all_objects = SoftDeleteQuerySet.as_manager()

    class Meta:
        ordering = ["-created_at"]
        indexes = [
            models.Index(fields=["booking", "status"], name="payment_booking_status_idx"),
            models.Index(fields=["escrow_status", "created_at"], name="payment_escrow_created_idx"),
        ]
        constraints = [
            models.CheckConstraint(
                check=Q(platform_fee=F("amount") - F("vendor_amount")),
                name="payment_fee_conservation",
            ),
        ]

    def __str__(self) -> str:
        return f"Payment({self.reference}, {self.amount} {self.currency}, {self.escrow_status})"

    # ==========================================================================
    # Construction
    # ==========================================================================

    @staticmethod
    def split_commission(amount: int, rate: Decimal) -> tuple[int, int]:
        """Return (platform_fee, vendor_amount) for amount at rate percent."""
        fee = percentage_of(amount, rate)
        return fee, amount - fee

    @staticmethod
    def default_expiry():
        return timezone.now() + timedelta(minutes=settings.PAYMENT_EXPIRY_MINUTES)

    # ==========================================================================
    # Properties
    # ==========================================================================

    @property
    def is_held(self) -> bool:
        return self.escrow_status == EscrowStatus.HELD

    @property
    def is_expired(self) -> bool:
        """Pending and past expires_at. Evaluated lazily on access."""
        return (
            self.status == PaymentStatus.PENDING
            and self.expires_at is not None
            and self.expires_at <= timezone.now()
        )

    # ==========================================================================
    # Gateway status transitions
    # ==========================================================================

    @transition(field=status, source=PaymentStatus.PENDING, target=PaymentStatus.FAILED)
    def mark_failed(self, reason: str = "") -> None:
        """Gateway declined, payment expired, or superseded by a newer one."""
        self.failed_at = timezone.now()
        self.failure_reason = reason[:500]
