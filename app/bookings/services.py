"""
Booking service: every booking status change goes through here.

Each operation:
    1. Locks the booking row (select_for_update)
    2. Checks the actor is the right party (PermissionDeniedError first)
    3. Checks the state machine allows the move (BadRequestError)
    4. Applies the django-fsm transition and appends a history row
    5. Moves escrow in the same transaction when the move implies it
       (completion releases, reject/cancel refunds)
    6. Sends the domain signal after commit

Escrow is always moved by EscrowService, which takes the same booking lock,
so booking status and payment status commit together or not at all.

Disputes:
    A booking with a dispute still completes when both parties mark it,
    but completion does not release escrow; the dispute resolution decides
    where the money goes.
"""

from __future__ import annotations

import uuid
from datetime import datetime
from typing import TYPE_CHECKING, Any

from django.db.models import Count, F
from django.utils import timezone
from django_fsm import can_proceed

from authentication.models import VendorProfile
from bookings import signals
from bookings.models import (
    Booking,
    BookingPaymentStatus,
    BookingStatus,
    BookingStatusHistory,
    Service,
)
from bookings.pricing import quote_booking
from core.exceptions import (
    BadRequestError,
    NotFoundError,
    PermissionDeniedError,
    ValidationError,
)
from core.services import BaseService
from payments.services import EscrowService

if TYPE_CHECKING:
    from django.db.models import QuerySet

    from authentication.models import User


class BookingService(BaseService):
    """
    Booking lifecycle operations.

    All methods are classmethods - no instance state is maintained.
    """

    # =========================================================================
    # Creation
    # =========================================================================

    @classmethod
    def create(
        cls,
        client: User,
        service_id: uuid.UUID,
        scheduled_at: datetime,
        latitude: float | None = None,
        longitude: float | None = None,
        address: str = "",
        notes: str = "",
    ) -> Booking:
        """
        Book a service.

        Home-service vendors travel to the client, so their bookings need a
        client location; the distance charge is computed from it.

        Raises:
            PermissionDeniedError: Actor is not a client
            NotFoundError: Service missing/inactive, or vendor has no profile
            BadRequestError: Vendor unverified/inactive, booking own service,
                home-service booking without a location
            ValidationError: scheduled_at in the past
        """
        if not client.is_client:
            raise PermissionDeniedError("Only clients can create bookings")

        service = Service.objects.select_related("vendor").filter(pk=service_id, is_active=True).first()
        if service is None:
            raise NotFoundError(
                "Service not found",
                error_code="SERVICE_NOT_FOUND",
                details={"service_id": str(service_id)},
            )

        vendor = service.vendor
        profile = VendorProfile.objects.filter(user_id=vendor.pk).first()
        if profile is None:
            raise NotFoundError(
                "Vendor not found",
                error_code="VENDOR_NOT_FOUND",
                details={"vendor_id": str(vendor.pk)},
            )
        if not profile.is_verified or not vendor.is_active:
            raise BadRequestError(
                "Vendor is not available",
                error_code="VENDOR_UNAVAILABLE",
                details={"vendor_id": str(vendor.pk)},
            )
        if vendor.pk == client.pk:
            raise BadRequestError("You cannot book your own service")

        has_location = latitude is not None and longitude is not None
        if profile.offers_home_service and not has_location:
            raise BadRequestError(
                "Location is required for home service bookings",
                error_code="LOCATION_REQUIRED",
            )
        if scheduled_at <= timezone.now():
            raise ValidationError(
                "Booking must be scheduled in the future",
                details={"scheduled_at": scheduled_at.isoformat()},
            )

        quote = quote_booking(service, profile, latitude, longitude)

        with cls.atomic():
            booking = Booking.objects.create(
                client=client,
                vendor=vendor,
                service=service,
                scheduled_at=scheduled_at,
                latitude=latitude,
                longitude=longitude,
                address=address,
                distance_km=quote.distance_km,
                service_price=quote.service_price,
                distance_charge=quote.distance_charge,
                total_amount=quote.total_amount,
                client_notes=notes,
            )
            cls._record(booking, client)
            Service.objects.filter(pk=service.pk).update(bookings_count=F("bookings_count") + 1)
            cls.on_commit(
                lambda: signals.booking_created.send(sender=Booking, booking=booking, actor=client)
            )

        cls.get_logger().info(
            "Booking created",
            extra={
                "booking_id": str(booking.id),
                "client_id": str(client.pk),
                "vendor_id": str(vendor.pk),
                "total_amount": booking.total_amount,
                "distance_charge": booking.distance_charge,
            },
        )
        return booking

    # =========================================================================
    # Vendor actions
    # =========================================================================

    @classmethod
    def accept(cls, vendor: User, booking_id: uuid.UUID) -> Booking:
        """
        Accept a pending booking. Funds must already be held in escrow.
        """
        with cls.atomic():
            booking = cls._lock(booking_id)
            cls._require_vendor(booking, vendor)
            cls._require_transition(booking, booking.accept, "accepted")
            if booking.payment_status != BookingPaymentStatus.ESCROWED:
                raise BadRequestError(
                    "Booking cannot be accepted before payment is held",
                    error_code="PAYMENT_NOT_ESCROWED",
                    details={"booking_id": str(booking.id), "payment_status": booking.payment_status},
                )

            booking.accept()
            booking.save()
            cls._record(booking, vendor)
            cls.on_commit(
                lambda: signals.booking_accepted.send(sender=Booking, booking=booking, actor=vendor)
            )

        cls._log_transition("Booking accepted", booking, vendor)
        return booking

    @classmethod
    def reject(cls, vendor: User, booking_id: uuid.UUID, reason: str = "") -> Booking:
        """
        Decline a pending booking, refunding the client if they already paid.
        """
        with cls.atomic():
            booking = cls._lock(booking_id)
            cls._require_vendor(booking, vendor)
            if booking.status != BookingStatus.PENDING:
                raise cls._invalid_state(booking, "rejected")

            cls._cancel(booking, vendor, reason or "Rejected by vendor")

        cls._log_transition("Booking rejected", booking, vendor, reason=reason)
        return booking

    @classmethod
    def start(cls, vendor: User, booking_id: uuid.UUID) -> Booking:
        with cls.atomic():
            booking = cls._lock(booking_id)
            cls._require_vendor(booking, vendor)
            cls._require_transition(booking, booking.start, "started")

            booking.start()
            booking.save()
            cls._record(booking, vendor)

        cls._log_transition("Booking started", booking, vendor)
        return booking

    # =========================================================================
    # Shared actions
    # =========================================================================

    @classmethod
    def mark_complete(cls, actor: User, booking_id: uuid.UUID) -> Booking:
        """
        Record one party's completion confirmation.

        When the second party confirms, the booking completes and, unless a
        dispute exists, escrow is released to the vendor in the same
        transaction. Marking twice is harmless.

        Raises:
            PermissionDeniedError: Actor is not a party
            BadRequestError: Booking not accepted or in progress
        """
        with cls.atomic():
            booking = cls._lock(booking_id)
            role = cls._require_party(booking, actor)
            if booking.status not in (BookingStatus.ACCEPTED, BookingStatus.IN_PROGRESS):
                raise cls._invalid_state(booking, "completed")

            now = timezone.now()
            if role == "client" and not booking.client_marked_complete:
                booking.client_marked_complete = True
                booking.client_completed_at = now
            elif role == "vendor" and not booking.vendor_marked_complete:
                booking.vendor_marked_complete = True
                booking.vendor_completed_at = now

            if not booking.both_marked_complete:
                booking.save()
                cls.get_logger().info(
                    "Booking marked complete by one party",
                    extra={"booking_id": str(booking.id), "role": role},
                )
                return booking

            booking.complete()
            booking.save()
            cls._record(booking, actor)
            Service.objects.filter(pk=booking.service_id).update(
                completed_bookings_count=F("completed_bookings_count") + 1
            )
            VendorProfile.objects.filter(user_id=booking.vendor_id).update(
                completed_bookings=F("completed_bookings") + 1
            )

            released = False
            if booking.has_dispute:
                cls.get_logger().info(
                    "Escrow release held back by dispute",
                    extra={"booking_id": str(booking.id), "dispute_id": str(booking.active_dispute_id)},
                )
            elif booking.is_escrowed:
                EscrowService.release(booking.id, actor=actor)
                booking.refresh_from_db()
                released = True

            cls.on_commit(
                lambda: signals.booking_completed.send(sender=Booking, booking=booking, actor=actor)
            )

        cls._log_transition("Booking completed", booking, actor, escrow_released=released)
        return booking

    @classmethod
    def cancel(cls, actor: User, booking_id: uuid.UUID, reason: str = "") -> Booking:
        """
        Cancel an active booking, refunding the client if escrow is held.

        Raises:
            PermissionDeniedError: Actor is neither a party nor an admin
            BadRequestError: Booking completed/cancelled, or under an open
                dispute (the dispute decides the money)
        """
        with cls.atomic():
            booking = cls._lock(booking_id)
            if not booking.is_party(actor) and not actor.is_platform_admin:
                raise PermissionDeniedError(
                    "You are not a party to this booking",
                    details={"booking_id": str(booking.id)},
                )
            cls._require_transition(booking, booking.cancel, "cancelled")
            if booking.active_dispute_id is not None:
                raise BadRequestError(
                    "Booking has an open dispute",
                    error_code="BOOKING_DISPUTED",
                    details={"booking_id": str(booking.id)},
                )

            cls._cancel(booking, actor, reason)

        cls._log_transition("Booking cancelled", booking, actor, reason=reason)
        return booking

    @classmethod
    def update_notes(cls, actor: User, booking_id: uuid.UUID, notes: str) -> Booking:
        """Replace the actor's own notes on the booking."""
        with cls.atomic():
            booking = cls._lock(booking_id)
            role = cls._require_party(booking, actor)
            field = "client_notes" if role == "client" else "vendor_notes"
            setattr(booking, field, notes)
            booking.save(update_fields=[field, "updated_at"])
        return booking

    # =========================================================================
    # Queries
    # =========================================================================

    @classmethod
    def get(cls, actor: User, booking_id: uuid.UUID) -> Booking:
        booking = (
            Booking.objects.select_related("service", "client", "vendor")
            .filter(pk=booking_id)
            .first()
        )
        if booking is None:
            raise cls._not_found(booking_id)
        if not booking.is_party(actor) and not actor.is_platform_admin:
            raise PermissionDeniedError(
                "You are not a party to this booking",
                details={"booking_id": str(booking_id)},
            )
        return booking

    @classmethod
    def list_bookings(
        cls, actor: User, role: str | None = None, status: str | None = None
    ) -> QuerySet[Booking]:
        """
        Bookings visible to the actor.

        role="client"/"vendor" narrows to one side; admins without a role
        see every booking.
        """
        if role in ("client", "vendor"):
            queryset = Booking.objects.for_role(actor, role)
        elif actor.is_platform_admin:
            queryset = Booking.objects.all()
        else:
            queryset = Booking.objects.for_party(actor)

        if status:
            queryset = queryset.filter(status=status)
        return queryset.select_related("service", "client", "vendor")

    @classmethod
    def stats(cls, actor: User) -> dict[str, Any]:
        """Booking counts per status for the actor's bookings."""
        counts = {value: 0 for value in BookingStatus.values}
        rows = (
            Booking.objects.for_party(actor)
            .values("status")
            .annotate(count=Count("id"))
            .order_by()
        )
        for row in rows:
            counts[row["status"]] = row["count"]
        counts["total"] = sum(counts[value] for value in BookingStatus.values)
        return counts

    # =========================================================================
    # Internals
    # =========================================================================

    @classmethod
    def _cancel(cls, booking: Booking, actor: User, reason: str) -> None:
        """Cancel and refund inside the caller's transaction."""
        booking.cancel(actor, reason)
        booking.save()
        cls._record(booking, actor, reason)

        if booking.is_escrowed:
            EscrowService.refund(booking.id, actor=actor, reason=reason or "Booking cancelled")
            booking.refresh_from_db()

        cls.on_commit(
            lambda: signals.booking_cancelled.send(
                sender=Booking, booking=booking, actor=actor, reason=reason
            )
        )

    @staticmethod
    def _record(booking: Booking, actor: User | None, reason: str = "") -> None:
        BookingStatusHistory.objects.create(
            booking=booking,
            status=booking.status,
            changed_by=actor,
            reason=reason[:500],
        )

    @classmethod
    def _lock(cls, booking_id: uuid.UUID) -> Booking:
        booking = Booking.objects.select_for_update().filter(pk=booking_id).first()
        if booking is None:
            raise cls._not_found(booking_id)
        return booking

    @staticmethod
    def _not_found(booking_id: uuid.UUID) -> NotFoundError:
        return NotFoundError(
            "Booking not found",
            error_code="BOOKING_NOT_FOUND",
            details={"booking_id": str(booking_id)},
        )

    @staticmethod
    def _require_vendor(booking: Booking, actor: User) -> None:
        if actor.pk != booking.vendor_id:
            raise PermissionDeniedError(
                "Only the booking's vendor can do this",
                details={"booking_id": str(booking.id)},
            )

    @staticmethod
    def _require_party(booking: Booking, actor: User) -> str:
        role = booking.party_role(actor)
        if role is None:
            raise PermissionDeniedError(
                "You are not a party to this booking",
                details={"booking_id": str(booking.id)},
            )
        return role

    @classmethod
    def _require_transition(cls, booking: Booking, method, verb: str) -> None:
        if not can_proceed(method):
            raise cls._invalid_state(booking, verb)

    @staticmethod
    def _invalid_state(booking: Booking, verb: str) -> BadRequestError:
        return BadRequestError(
            f"A {booking.get_status_display().lower()} booking cannot be {verb}",
            error_code="INVALID_BOOKING_STATE",
            details={"booking_id": str(booking.id), "status": booking.status},
        )

    @classmethod
    def _log_transition(cls, message: str, booking: Booking, actor: User, **extra: Any) -> None:
        cls.get_logger().info(
            message,
            extra={
                "booking_id": str(booking.id),
                "actor_id": str(actor.pk),
                "status": booking.status,
                "payment_status": booking.payment_status,
                **extra,
            },
        )
