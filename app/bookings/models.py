"""
Booking models.

This module defines:
- Service: Read-only projection of a catalog service (price, vendor, active)
- Booking: One service engagement, governed by a status state machine
- BookingStatusHistory: Append-only log of status changes

Booking.payment_status is a cached view of the booking's Payment escrow
state. It is only ever written by EscrowService, inside the same
transaction that moves Payment.escrow_status.

Related files:
    - services.py: BookingService (all status changes go through it)
    - pricing.py: Distance charge computation
    - signals.py: booking_* domain events
"""

from __future__ import annotations

from django.conf import settings
from django.db import models
from django.db.models import Q
from django.utils import timezone

from django_fsm import FSMField, transition

from core.managers import SoftDeleteManager, SoftDeleteQuerySet
from core.model_mixins import SoftDeleteMixin, UUIDPrimaryKeyMixin
from core.models import BaseModel


class BookingStatus(models.TextChoices):
    """
    Booking lifecycle states.

    State Flow:
        PENDING -> ACCEPTED -> IN_PROGRESS -> COMPLETED
        PENDING/ACCEPTED/IN_PROGRESS -> CANCELLED
        ACCEPTED -> COMPLETED (both parties mark complete before start)

    A dispute is a flag on the booking, not a status.
    """

    PENDING = "pending", "Pending"
    ACCEPTED = "accepted", "Accepted"
    IN_PROGRESS = "in_progress", "In Progress"
    COMPLETED = "completed", "Completed"
    CANCELLED = "cancelled", "Cancelled"


ACTIVE_BOOKING_STATUSES = [
    BookingStatus.PENDING,
    BookingStatus.ACCEPTED,
    BookingStatus.IN_PROGRESS,
]


class BookingPaymentStatus(models.TextChoices):
    """Cached view of the booking's Payment escrow state."""

    PENDING = "pending", "Pending"
    ESCROWED = "escrowed", "Escrowed"
    RELEASED = "released", "Released"
    REFUNDED = "refunded", "Refunded"


class Service(UUIDPrimaryKeyMixin, BaseModel):
    """
    Catalog service offered by a vendor.

    Catalog management lives elsewhere; bookings only read vendor,
    base_price and is_active. The two counters are best-effort
    projections updated with F() increments.
    """

    vendor = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.CASCADE,
        related_name="services",
    )
    name = models.CharField(max_length=200)
    description = models.TextField(blank=True)
    base_price = models.PositiveBigIntegerField(
        help_text="Price in whole currency units",
    )
    duration_minutes = models.PositiveIntegerField(default=60)
    is_active = models.BooleanField(default=True, db_index=True)

    bookings_count = models.PositiveIntegerField(default=0)
    completed_bookings_count = models.PositiveIntegerField(default=0)

    class Meta:
        ordering = ["name"]

    def __str__(self) -> str:
        return self.name


class BookingQuerySet(SoftDeleteQuerySet):
    def for_party(self, user) -> BookingQuerySet:
        return self.filter(Q(client=user) | Q(vendor=user))

    def for_role(self, user, role: str) -> BookingQuerySet:
        if role == "vendor":
            return self.filter(vendor=user)
        return self.filter(client=user)


class Booking(UUIDPrimaryKeyMixin, SoftDeleteMixin, BaseModel):
    """
    One service engagement between a client and a vendor.

    Fields:
        client / vendor / service: Parties and the booked service
        scheduled_at: When the service takes place
        latitude / longitude / address: Client location for home service
        distance_km: Vendor-to-client distance used for the surcharge
        service_price / distance_charge / total_amount: Price breakdown
        status: FSM state (BookingStatus)
        payment_status: Cached escrow view (BookingPaymentStatus)
        client_marked_complete / vendor_marked_complete: Bilateral flags
        has_dispute / active_dispute: Dispute side-channel
        has_review / review_id: Review back-reference (reviews live elsewhere)
    """

    # ==========================================================================
    # Parties
    # ==========================================================================

    client = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.PROTECT,
        related_name="client_bookings",
    )
    vendor = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.PROTECT,
        related_name="vendor_bookings",
    )
    service = models.ForeignKey(
        Service,
        on_delete=models.PROTECT,
        related_name="bookings",
    )

    # ==========================================================================
    # Schedule & Location
    # ==========================================================================

    scheduled_at = models.DateTimeField()
    latitude = models.FloatField(null=True, blank=True)
    longitude = models.FloatField(null=True, blank=True)
    address = models.CharField(max_length=500, blank=True)
    distance_km = models.FloatField(null=True, blank=True)

    # ==========================================================================
    # Pricing
    # ==========================================================================

    service_price = models.PositiveBigIntegerField()
    distance_charge = models.PositiveBigIntegerField(default=0)
    total_amount = models.PositiveBigIntegerField()

    # ==========================================================================
    # State
    # ==========================================================================

    status = FSMField(
        max_length=20,
        choices=BookingStatus.choices,
        default=BookingStatus.PENDING,
        db_index=True,
    )
    payment_status = models.CharField(
        max_length=20,
        choices=BookingPaymentStatus.choices,
        default=BookingPaymentStatus.PENDING,
        db_index=True,
    )

    client_marked_complete = models.BooleanField(default=False)
    vendor_marked_complete = models.BooleanField(default=False)
    client_completed_at = models.DateTimeField(null=True, blank=True)
    vendor_completed_at = models.DateTimeField(null=True, blank=True)

    accepted_at = models.DateTimeField(null=True, blank=True)
    started_at = models.DateTimeField(null=True, blank=True)
    completed_at = models.DateTimeField(null=True, blank=True)
    completed_by = models.CharField(max_length=10, blank=True)

    cancelled_at = models.DateTimeField(null=True, blank=True)
    cancelled_by = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="+",
    )
    cancellation_reason = models.CharField(max_length=500, blank=True)

    # ==========================================================================
    # Side channels
    # ==========================================================================

    has_dispute = models.BooleanField(default=False, db_index=True)
    active_dispute = models.ForeignKey(
        "disputes.Dispute",
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="+",
    )
    has_review = models.BooleanField(default=False)
    review_id = models.UUIDField(null=True, blank=True)

    client_notes = models.TextField(blank=True)
    vendor_notes = models.TextField(blank=True)

    objects = SoftDeleteManager.from_queryset(BookingQuerySet)()
    all_objects = SoftDeleteQuerySet.as_manager()

    class Meta:
        ordering = ["-created_at"]
        indexes = [
            models.Index(fields=["client", "status"], name="booking_client_status_idx"),
            models.Index(fields=["vendor", "status"], name="booking_vendor_status_idx"),
        ]

    def __str__(self) -> str:
        return f"Booking({self.id}, {self.status})"

    # ==========================================================================
    # Helpers
    # ==========================================================================

    def is_party(self, user) -> bool:
        return user.pk in (self.client_id, self.vendor_id)

    def party_role(self, user) -> str | None:
        if user.pk == self.client_id:
            return "client"
        if user.pk == self.vendor_id:
            return "vendor"
        return None

    def other_party_id(self, user):
        return self.vendor_id if user.pk == self.client_id else self.client_id

    @property
    def is_escrowed(self) -> bool:
        return self.payment_status == BookingPaymentStatus.ESCROWED

    @property
    def both_marked_complete(self) -> bool:
        return self.client_marked_complete and self.vendor_marked_complete

    # ==========================================================================
    # State Transitions
    # ==========================================================================

    @transition(field=status, source=BookingStatus.PENDING, target=BookingStatus.ACCEPTED)
    def accept(self) -> None:
        self.accepted_at = timezone.now()

    @transition(field=status, source=BookingStatus.ACCEPTED, target=BookingStatus.IN_PROGRESS)
    def start(self) -> None:
        self.started_at = timezone.now()

    @transition(
        field=status,
        source=[BookingStatus.ACCEPTED, BookingStatus.IN_PROGRESS],
        target=BookingStatus.COMPLETED,
    )
    def complete(self) -> None:
        self.completed_at = timezone.now()
        self.completed_by = "both"

    @transition(
        field=status,
        source=ACTIVE_BOOKING_STATUSES,
        target=BookingStatus.CANCELLED,
    )
    def cancel(self, actor, reason: str = "") -> None:
        self.cancelled_at = timezone.now()
        self.cancelled_by = actor
        self.cancellation_reason = reason[:500]


class BookingStatusHistory(models.Model):
    """Append-only record of one booking status change."""

    booking = models.ForeignKey(
        Booking,
        on_delete=models.CASCADE,
        related_name="status_history",
    )
    status = models.CharField(max_length=20, choices=BookingStatus.choices)
    changed_by = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="+",
    )
    reason = models.CharField(max_length=500, blank=True)
    changed_at = models.DateTimeField(default=timezone.now)

    class Meta:
        ordering = ["changed_at", "id"]
        verbose_name_plural = "booking status history"

    def __str__(self) -> str:
        return f"{self.booking_id}: {self.status}"
