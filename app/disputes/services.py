"""
Dispute service: opening, reviewing and resolving booking disputes.

Opening a dispute flags the booking and, from then on, the bilateral
completion path no longer releases escrow. Resolution is the only path
that moves the held payment, through EscrowService:

    refund_client   -> EscrowService.refund (full amount to client)
    pay_vendor      -> EscrowService.release (vendor share, no completion
                       requirement)
    partial_refund  -> EscrowService.split (admin-chosen amounts)

The escrow move and the dispute status change commit together. A dispute
can only be opened while the payment is held, so every active dispute has
money left to resolve.

Lock order is booking, then dispute, the same order EscrowService uses.
"""

from __future__ import annotations

import uuid
from typing import TYPE_CHECKING, Any

from django.db.models import Count
from django.utils import timezone

from authentication.models import User, UserRole
from bookings.models import Booking, BookingPaymentStatus, BookingStatus
from core.exceptions import (
    BadRequestError,
    NotFoundError,
    PermissionDeniedError,
    ValidationError,
)
from core.services import BaseService
from disputes import signals
from disputes.models import (
    Dispute,
    DisputeCategory,
    DisputeEvidence,
    DisputeMessage,
    DisputePriority,
    DisputeResolution,
    DisputeStatus,
    EvidenceType,
)
from payments.services import EscrowService

if TYPE_CHECKING:
    from django.db.models import QuerySet

DISPUTABLE_BOOKING_STATUSES = (
    BookingStatus.ACCEPTED,
    BookingStatus.IN_PROGRESS,
    BookingStatus.COMPLETED,
)

RESOLVER_ROLES = (UserRole.ADMIN, UserRole.SUPER_ADMIN)


class DisputeService(BaseService):
    """
    Dispute lifecycle operations.

    Parties (raiser and the other side) open disputes, add evidence and
    messages. Platform admins read and message every dispute; only
    admins and super admins assign, prioritise, resolve and close.
    """

    # =========================================================================
    # Party actions
    # =========================================================================

    @classmethod
    def open(
        cls,
        raiser: User,
        booking_id: uuid.UUID,
        reason: str,
        description: str,
        category: str,
        evidence: list[dict[str, str]] | None = None,
    ) -> Dispute:
        """
        Raise a dispute against the other party of a booking.

        The booking keeps its status; only has_dispute and active_dispute
        change.

        Raises:
            NotFoundError: Booking missing
            PermissionDeniedError: Raiser is not a party to the booking
            BadRequestError: Booking not accepted/in progress/completed, its
                payment is not in escrow, or it already has an active dispute
            ValidationError: Unknown category or evidence type
        """
        cls._check_choice(category, DisputeCategory, "category")
        items = cls._clean_evidence(evidence or [], allow_empty=True)

        with cls.atomic():
            booking = Booking.objects.select_for_update().filter(pk=booking_id).first()
            if booking is None:
                raise NotFoundError(
                    "Booking not found",
                    error_code="BOOKING_NOT_FOUND",
                    details={"booking_id": str(booking_id)},
                )
            if not booking.is_party(raiser):
                raise PermissionDeniedError(
                    "You can only open disputes on your own bookings",
                    details={"booking_id": str(booking.id)},
                )
            if booking.status not in DISPUTABLE_BOOKING_STATUSES:
                raise BadRequestError(
                    "Disputes can only be opened on accepted, in-progress or completed bookings",
                    error_code="BOOKING_NOT_DISPUTABLE",
                    details={"booking_id": str(booking.id), "status": booking.status},
                )
            if booking.payment_status != BookingPaymentStatus.ESCROWED:
                raise BadRequestError(
                    "Disputes can only be opened while the payment is held in escrow",
                    error_code="PAYMENT_NOT_ESCROWED",
                    details={
                        "booking_id": str(booking.id),
                        "payment_status": booking.payment_status,
                    },
                )
            if Dispute.objects.filter(booking=booking).unresolved().exists():
                raise BadRequestError(
                    "An active dispute already exists for this booking",
                    error_code="DISPUTE_ALREADY_OPEN",
                    details={"booking_id": str(booking.id)},
                )

            dispute = Dispute.objects.create(
                booking=booking,
                raised_by=raiser,
                against_id=booking.other_party_id(raiser),
                reason=reason,
                description=description,
                category=category,
            )
            cls._store_evidence(dispute, raiser, items)

            booking.has_dispute = True
            booking.active_dispute = dispute
            booking.save(update_fields=["has_dispute", "active_dispute", "updated_at"])

            cls.on_commit(
                lambda: signals.dispute_opened.send(sender=Dispute, dispute=dispute, actor=raiser)
            )

        cls.get_logger().info(
            "Dispute opened",
            extra={
                "dispute_id": str(dispute.id),
                "booking_id": str(booking.id),
                "raised_by": str(raiser.pk),
                "category": category,
                "booking_status": booking.status,
            },
        )
        return dispute

    @classmethod
    def add_evidence(
        cls, actor: User, dispute_id: uuid.UUID, items: list[dict[str, str]]
    ) -> Dispute:
        """
        Append evidence items ({"type", "content"}) to an active dispute.

        Raises:
            PermissionDeniedError: Actor is not a party
            BadRequestError: Dispute resolved or closed
            ValidationError: No items, unknown type or empty content
        """
        cleaned = cls._clean_evidence(items, allow_empty=False)
        with cls.atomic():
            dispute = cls._lock(dispute_id)
            if not dispute.is_party(actor):
                raise PermissionDeniedError(
                    "You are not part of this dispute",
                    details={"dispute_id": str(dispute.id)},
                )
            if not dispute.is_active:
                raise BadRequestError(
                    "Cannot add evidence to a resolved or closed dispute",
                    error_code="DISPUTE_NOT_ACTIVE",
                    details={"dispute_id": str(dispute.id), "status": dispute.status},
                )
            cls._store_evidence(dispute, actor, cleaned)
            dispute.save(update_fields=["updated_at"])

        cls.get_logger().info(
            "Dispute evidence added",
            extra={"dispute_id": str(dispute.id), "count": len(cleaned)},
        )
        return dispute

    @classmethod
    def add_message(
        cls,
        actor: User,
        dispute_id: uuid.UUID,
        message: str,
        attachments: list[str] | None = None,
    ) -> DisputeMessage:
        """Post to the dispute thread. Parties and platform admins only."""
        dispute = cls._get(dispute_id)
        if not dispute.is_party(actor) and not actor.is_platform_admin:
            raise PermissionDeniedError(
                "You are not authorized to message on this dispute",
                details={"dispute_id": str(dispute.id)},
            )
        if not message or not message.strip():
            raise ValidationError("Message cannot be empty", details={"field": "message"})

        return DisputeMessage.objects.create(
            dispute=dispute,
            sender=actor,
            message=message.strip()[:1000],
            attachments=list(attachments or []),
        )

    # =========================================================================
    # Admin actions
    # =========================================================================

    @classmethod
    def assign(cls, admin: User, dispute_id: uuid.UUID, assignee_id: uuid.UUID) -> Dispute:
        """
        Assign a dispute to an admin.

        The first assignment moves an open dispute to in_review; later ones
        only change the assignee.
        """
        cls._require_resolver(admin)
        assignee = User.objects.filter(pk=assignee_id, is_active=True).first()
        if assignee is None:
            raise NotFoundError(
                "Assignee not found",
                error_code="USER_NOT_FOUND",
                details={"user_id": str(assignee_id)},
            )
        if not assignee.is_platform_admin:
            raise BadRequestError(
                "Disputes can only be assigned to admins",
                error_code="INVALID_ASSIGNEE",
                details={"user_id": str(assignee_id)},
            )

        with cls.atomic():
            dispute = cls._lock(dispute_id)
            if dispute.status == DisputeStatus.OPEN:
                dispute.start_review(assignee)
            elif dispute.status == DisputeStatus.IN_REVIEW:
                dispute.assigned_to = assignee
            else:
                raise cls._not_active(dispute)
            dispute.save()

        cls.get_logger().info(
            "Dispute assigned",
            extra={
                "dispute_id": str(dispute.id),
                "assigned_to": str(assignee.pk),
                "admin_id": str(admin.pk),
                "status": dispute.status,
            },
        )
        return dispute

    @classmethod
    def update_priority(cls, admin: User, dispute_id: uuid.UUID, priority: str) -> Dispute:
        cls._require_resolver(admin)
        cls._check_choice(priority, DisputePriority, "priority")
        with cls.atomic():
            dispute = cls._lock(dispute_id)
            dispute.priority = priority
            dispute.save(update_fields=["priority", "updated_at"])
        return dispute

    @classmethod
    def resolve(
        cls,
        admin: User,
        dispute_id: uuid.UUID,
        resolution: str,
        details: str = "",
        refund_amount: int | None = None,
        vendor_payment_amount: int | None = None,
    ) -> Dispute:
        """
        Decide the dispute and move the held payment accordingly.

        Args:
            admin: Admin or super admin deciding the dispute
            dispute_id: Dispute to resolve
            resolution: refund_client, pay_vendor or partial_refund
            details: Free-text explanation kept on the dispute
            refund_amount / vendor_payment_amount: Required (both) for
                partial_refund, ignored otherwise

        Raises:
            PermissionDeniedError: Actor cannot resolve disputes
            BadRequestError: Dispute already resolved/closed
            ValidationError: Unknown resolution, bad split amounts
            InvalidEscrowStateError: Payment is no longer held
        """
        cls._require_resolver(admin)
        cls._check_choice(resolution, DisputeResolution, "resolution")

        dispute = cls._get(dispute_id)
        with cls.atomic():
            booking = Booking.objects.select_for_update().get(pk=dispute.booking_id)
            dispute = cls._lock(dispute_id)
            if not dispute.is_active:
                raise BadRequestError(
                    "Dispute is already resolved or closed",
                    error_code="DISPUTE_ALREADY_RESOLVED",
                    details={"dispute_id": str(dispute.id), "status": dispute.status},
                )

            if resolution == DisputeResolution.REFUND_CLIENT:
                payment = EscrowService.refund(
                    booking.id,
                    actor=admin,
                    reason="Dispute resolved in favor of client",
                )
            elif resolution == DisputeResolution.PAY_VENDOR:
                payment = EscrowService.release(booking.id, actor=admin, enforce_completion=False)
            else:
                payment = EscrowService.split(
                    booking.id,
                    refund_amount=refund_amount,
                    vendor_amount=vendor_payment_amount,
                    actor=admin,
                )

            dispute.resolve(
                admin,
                resolution,
                details=details,
                refund_amount=payment.refund_amount,
                vendor_payment_amount=payment.vendor_payment_amount,
            )
            dispute.save()

            Booking.objects.filter(pk=booking.pk).update(active_dispute=None, updated_at=timezone.now())
            cls.on_commit(
                lambda: signals.dispute_resolved.send(sender=Dispute, dispute=dispute, actor=admin)
            )

        cls.get_logger().info(
            "Dispute resolved",
            extra={
                "dispute_id": str(dispute.id),
                "booking_id": str(booking.id),
                "payment_id": str(payment.id),
                "resolution": resolution,
                "refund_amount": dispute.refund_amount,
                "vendor_payment_amount": dispute.vendor_payment_amount,
                "admin_id": str(admin.pk),
            },
        )
        return dispute

    @classmethod
    def close(cls, admin: User, dispute_id: uuid.UUID) -> Dispute:
        cls._require_resolver(admin)
        with cls.atomic():
            dispute = cls._lock(dispute_id)
            if dispute.status != DisputeStatus.RESOLVED:
                raise BadRequestError(
                    "Only resolved disputes can be closed",
                    error_code="DISPUTE_NOT_RESOLVED",
                    details={"dispute_id": str(dispute.id), "status": dispute.status},
                )
            dispute.close(admin)
            dispute.save()

        cls.get_logger().info(
            "Dispute closed",
            extra={"dispute_id": str(dispute.id), "admin_id": str(admin.pk)},
        )
        return dispute

    # =========================================================================
    # Queries
    # =========================================================================

    @classmethod
    def get(cls, actor: User, dispute_id: uuid.UUID) -> Dispute:
        dispute = cls._get(dispute_id)
        if not dispute.is_party(actor) and not actor.is_platform_admin:
            raise PermissionDeniedError(
                "Not authorized to view this dispute",
                details={"dispute_id": str(dispute.id)},
            )
        return dispute

    @classmethod
    def list_disputes(
        cls,
        actor: User,
        status: str | None = None,
        category: str | None = None,
        priority: str | None = None,
        assigned_to: uuid.UUID | None = None,
    ) -> QuerySet[Dispute]:
        """
        Disputes visible to the actor.

        Parties see disputes they raised or that were raised against
        them. Admins see everything and can also filter by priority and
        assignee.
        """
        if actor.is_platform_admin:
            queryset = Dispute.objects.all()
            if priority:
                queryset = queryset.filter(priority=priority)
            if assigned_to:
                queryset = queryset.filter(assigned_to_id=assigned_to)
        else:
            queryset = Dispute.objects.for_party(actor)

        if status:
            queryset = queryset.filter(status=status)
        if category:
            queryset = queryset.filter(category=category)
        return queryset.select_related("booking", "raised_by", "against", "assigned_to")

    @classmethod
    def stats(cls, admin: User) -> dict[str, Any]:
        """Counts per status, category and priority."""
        if not admin.is_platform_admin:
            raise PermissionDeniedError("Only admins can view dispute statistics")

        def grouped(field: str, choices) -> dict[str, int]:
            counts = {value: 0 for value in choices.values}
            rows = Dispute.objects.values(field).annotate(count=Count("id")).order_by()
            for row in rows:
                counts[row[field]] = row["count"]
            return counts

        by_status = grouped("status", DisputeStatus)
        return {
            "total": sum(by_status.values()),
            "by_status": by_status,
            "by_category": grouped("category", DisputeCategory),
            "by_priority": grouped("priority", DisputePriority),
        }

    # =========================================================================
    # Internals
    # =========================================================================

    @staticmethod
    def _get(dispute_id: uuid.UUID) -> Dispute:
        dispute = (
            Dispute.objects.select_related("booking")
            .prefetch_related("evidence", "messages")
            .filter(pk=dispute_id)
            .first()
        )
        if dispute is None:
            raise DisputeService._not_found(dispute_id)
        return dispute

    @classmethod
    def _lock(cls, dispute_id: uuid.UUID) -> Dispute:
        dispute = Dispute.objects.select_for_update().filter(pk=dispute_id).first()
        if dispute is None:
            raise cls._not_found(dispute_id)
        return dispute

    @staticmethod
    def _not_found(dispute_id: uuid.UUID) -> NotFoundError:
        return NotFoundError(
            "Dispute not found",
            error_code="DISPUTE_NOT_FOUND",
            details={"dispute_id": str(dispute_id)},
        )

    @staticmethod
    def _not_active(dispute: Dispute) -> BadRequestError:
        return BadRequestError(
            "Dispute is no longer active",
            error_code="DISPUTE_NOT_ACTIVE",
            details={"dispute_id": str(dispute.id), "status": dispute.status},
        )

    @staticmethod
    def _require_resolver(user: User) -> None:
        if user.role not in RESOLVER_ROLES and not user.is_superuser:
            raise PermissionDeniedError("Only admins can manage disputes")

    @staticmethod
    def _check_choice(value: str, choices, field: str) -> None:
        if value not in choices.values:
            raise ValidationError(
                f"Invalid {field}",
                details={"field": field, "value": value, "allowed": list(choices.values)},
            )

    @classmethod
    def _clean_evidence(cls, items: list[dict[str, str]], allow_empty: bool) -> list[dict[str, str]]:
        if not items and not allow_empty:
            raise ValidationError(
                "At least one evidence item is required",
                details={"field": "evidence"},
            )
        cleaned = []
        for item in items:
            cls._check_choice(item.get("type"), EvidenceType, "evidence type")
            content = (item.get("content") or "").strip()
            if not content:
                raise ValidationError(
                    "Evidence content is required",
                    details={"field": "evidence"},
                )
            cleaned.append({"type": item["type"], "content": content})
        return cleaned

    @staticmethod
    def _store_evidence(dispute: Dispute, actor: User, items: list[dict[str, str]]) -> None:
        DisputeEvidence.objects.bulk_create(
            [
                DisputeEvidence(
                    dispute=dispute,
                    type=item["type"],
                    content=item["content"],
                    uploaded_by=actor,
                )
                for item in items
            ]
        )
