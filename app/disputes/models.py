"""
Dispute models.

This module defines:
- Dispute: A party's complaint about a booking, resolved by an admin
- DisputeEvidence: Append-only evidence items
- DisputeMessage: Append-only message thread

A dispute is a side channel on the booking. Opening one does not change
the booking's status; it sets Booking.has_dispute and points
Booking.active_dispute at the dispute until it is resolved. Resolution is
the only thing that moves escrow once a dispute exists.

Related files:
    - services.py: DisputeService (all status changes go through it)
    - signals.py: dispute_opened, dispute_resolved
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


class DisputeStatus(models.TextChoices):
    """
    Dispute lifecycle states.

    State Flow:
        OPEN -> IN_REVIEW (admin assigns)
        OPEN/IN_REVIEW -> RESOLVED (admin resolves, escrow moves)
        RESOLVED -> CLOSED (terminal)
    """

    OPEN = "open", "Open"
    IN_REVIEW = "in_review", "In Review"
    RESOLVED = "resolved", "Resolved"
    CLOSED = "closed", "Closed"


ACTIVE_DISPUTE_STATUSES = [DisputeStatus.OPEN, DisputeStatus.IN_REVIEW]


class DisputeCategory(models.TextChoices):
    SERVICE_QUALITY = "service_quality", "Service Quality"
    PAYMENT = "payment", "Payment"
    CANCELLATION = "cancellation", "Cancellation"
    COMMUNICATION = "communication", "Communication"
    OTHER = "other", "Other"


class DisputePriority(models.TextChoices):
    LOW = "low", "Low"
    MEDIUM = "medium", "Medium"
    HIGH = "high", "High"
    URGENT = "urgent", "Urgent"


class DisputeResolution(models.TextChoices):
    """
    How the held payment is settled.

    REFUND_CLIENT: full amount back to the client
    PAY_VENDOR: vendor share released as on normal completion
    PARTIAL_REFUND: admin-chosen split between client and vendor
    """

    REFUND_CLIENT = "refund_client", "Refund Client"
    PAY_VENDOR = "pay_vendor", "Pay Vendor"
    PARTIAL_REFUND = "partial_refund", "Partial Refund"


class EvidenceType(models.TextChoices):
    TEXT = "text", "Text"
    IMAGE = "image", "Image"
    DOCUMENT = "document", "Document"


class DisputeQuerySet(SoftDeleteQuerySet):
    def unresolved(self) -> DisputeQuerySet:
        return self.filter(status__in=ACTIVE_DISPUTE_STATUSES)

    def for_party(self, user) -> DisputeQuerySet:
        return self.filter(Q(raised_by=user) | Q(against=user))


class Dispute(UUIDPrimaryKeyMixin, SoftDeleteMixin, BaseModel):
    """
    A complaint raised by one booking party against the other.

    At most one dispute per booking can be OPEN or IN_REVIEW at a time
    (partial unique constraint).
    """

    booking = models.ForeignKey(
        "bookings.Booking",
        on_delete=models.PROTECT,
        related_name="disputes",
    )
    raised_by = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.PROTECT,
        related_name="disputes_raised",
    )
    against = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.PROTECT,
        related_name="disputes_against",
    )

    reason = models.CharField(max_length=200)
    description = models.TextField(max_length=2000)
    category = models.CharField(
        max_length=20,
        choices=DisputeCategory.choices,
        db_index=True,
    )

    status = FSMField(
        max_length=20,
        choices=DisputeStatus.choices,
        default=DisputeStatus.OPEN,
        db_index=True,
    )
    priority = models.CharField(
        max_length=10,
        choices=DisputePriority.choices,
        default=DisputePriority.MEDIUM,
        db_index=True,
    )

    # ==========================================================================
    # Admin handling
    # ==========================================================================

    assigned_to = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="disputes_assigned",
    )
    reviewed_at = models.DateTimeField(null=True, blank=True)

    resolution = models.CharField(
        max_length=20,
        choices=DisputeResolution.choices,
        blank=True,
    )
    resolution_details = models.TextField(blank=True)
    refund_amount = models.PositiveBigIntegerField(null=True, blank=True)
    vendor_payment_amount = models.PositiveBigIntegerField(null=True, blank=True)
    resolved_by = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="+",
    )
    resolved_at = models.DateTimeField(null=True, blank=True)

    closed_by = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="+",
    )
    closed_at = models.DateTimeField(null=True, blank=True)

    objects = SoftDeleteManager.from_queryset(DisputeQuerySet)()
    all_objects = SoftDeleteQuerySet.as_manager()

    class Meta:
        ordering = ["-created_at"]
        indexes = [
            models.Index(fields=["raised_by", "status"], name="dispute_raised_status_idx"),
            models.Index(fields=["against", "status"], name="dispute_against_status_idx"),
            models.Index(fields=["assigned_to", "status"], name="dispute_assigned_status_idx"),
        ]
        constraints = [
            models.UniqueConstraint(
                fields=["booking"],
                condition=Q(status__in=ACTIVE_DISPUTE_STATUSES),
                name="one_active_dispute_per_booking",
            ),
        ]

    def __str__(self) -> str:
        return f"Dispute({self.id}, {self.status})"

    def is_party(self, user) -> bool:
        return user.pk in (self.raised_by_id, self.against_id)

    @property
    def is_active(self) -> bool:
        return self.status in ACTIVE_DISPUTE_STATUSES

    # ==========================================================================
    # State Transitions
    # ==========================================================================

    @transition(field=status, source=DisputeStatus.OPEN, target=DisputeStatus.IN_REVIEW)
    def start_review(self, assignee) -> None:
        self.assigned_to = assignee
        self.reviewed_at = timezone.now()

    @transition(
        field=status,
        source=ACTIVE_DISPUTE_STATUSES,
        target=DisputeStatus.RESOLVED,
    )
    def resolve(
        self,
        admin,
        resolution: str,
        details: str = "",
        refund_amount: int | None = None,
        vendor_payment_amount: int | None = None,
    ) -> None:
        self.resolution = resolution
        self.resolution_details = details
        self.refund_amount = refund_amount
        self.vendor_payment_amount = vendor_payment_amount
        self.resolved_by = admin
        self.resolved_at = timezone.now()

    @transition(field=status, source=DisputeStatus.RESOLVED, target=DisputeStatus.CLOSED)
    def close(self, admin) -> None:
        self.closed_by = admin
        self.closed_at = timezone.now()


class DisputeEvidence(UUIDPrimaryKeyMixin, models.Model):
    dispute = models.ForeignKey(
        Dispute,
        on_delete=models.CASCADE,
        related_name="evidence",
    )
    type = models.CharField(max_length=10, choices=EvidenceType.choices)
    content = models.TextField()
    uploaded_by = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.PROTECT,
        related_name="+",
    )
    uploaded_at = models.DateTimeField(default=timezone.now)

    class Meta:
        ordering = ["uploaded_at"]

    def __str__(self) -> str:
        return f"{self.type} evidence on {self.dispute_id}"


class DisputeMessage(UUIDPrimaryKeyMixin, models.Model):
    dispute = models.ForeignKey(
        Dispute,
        on_delete=models.CASCADE,
        related_name="messages",
    )
    sender = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.PROTECT,
        related_name="+",
    )
    message = models.TextField(max_length=1000)
    attachments = models.JSONField(default=list, blank=True)
    sent_at = models.DateTimeField(default=timezone.now)

    class Meta:
        ordering = ["sent_at"]

    def __str__(self) -> str:
        return f"Message on {self.dispute_id} from {self.sender_id}"
