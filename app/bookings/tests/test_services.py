"""
Tests for BookingService.

Bookings that need money in escrow are built with EscrowedBookingFactory;
escrow movement itself is covered in payments.tests.test_escrow_service.
"""

import uuid
from datetime import timedelta

import pytest
from django.utils import timezone

from authentication.models import UserRole, VendorProfile, VendorType
from authentication.tests.factories import UserFactory, VendorFactory
from bookings import signals
from bookings.models import Booking, BookingPaymentStatus, BookingStatus
from bookings.services import BookingService
from bookings.tests.factories import BookingFactory, ServiceFactory
from core.exceptions import (
    BadRequestError,
    NotFoundError,
    PermissionDeniedError,
    ValidationError,
)
from disputes.models import DisputeCategory
from disputes.services import DisputeService
from payments.ledger.services import WalletService
from payments.state_machines import EscrowStatus
from payments.tests.factories import EscrowedBookingFactory


def tomorrow():
    return timezone.now() + timedelta(days=1)


# =============================================================================
# Creation
# =============================================================================


class TestCreate:
    def test_creates_pending_booking(self, client_user):
        service = ServiceFactory(base_price=7000)

        booking = BookingService.create(client_user, service.id, tomorrow(), notes="Low fade")

        assert booking.status == BookingStatus.PENDING
        assert booking.payment_status == BookingPaymentStatus.PENDING
        assert booking.total_amount == 7000
        assert booking.client_notes == "Low fade"
        assert list(booking.status_history.values_list("status", flat=True)) == [
            BookingStatus.PENDING
        ]
        service.refresh_from_db()
        assert service.bookings_count == 1

    def test_home_service_prices_distance(self, client_user):
        vendor = VendorFactory(profile__vendor_type=VendorType.BOTH)
        service = ServiceFactory(vendor=vendor, base_price=5000)

        booking = BookingService.create(
            client_user, service.id, tomorrow(), latitude=6.53, longitude=3.38
        )

        assert booking.distance_charge == 1000
        assert booking.total_amount == 6000
        assert booking.distance_km is not None

    def test_home_service_requires_location(self, client_user):
        vendor = VendorFactory(profile__vendor_type=VendorType.HOME_SERVICE)
        service = ServiceFactory(vendor=vendor)

        with pytest.raises(BadRequestError) as exc_info:
            BookingService.create(client_user, service.id, tomorrow())

        assert exc_info.value.error_code == "LOCATION_REQUIRED"

    def test_only_clients_book(self, vendor):
        service = ServiceFactory()

        with pytest.raises(PermissionDeniedError):
            BookingService.create(vendor, service.id, tomorrow())

    def test_inactive_service(self, client_user):
        service = ServiceFactory(is_active=False)

        with pytest.raises(NotFoundError) as exc_info:
            BookingService.create(client_user, service.id, tomorrow())

        assert exc_info.value.error_code == "SERVICE_NOT_FOUND"

    def test_unverified_vendor(self, client_user):
        vendor = VendorFactory(profile__is_verified=False)
        service = ServiceFactory(vendor=vendor)

        with pytest.raises(BadRequestError) as exc_info:
            BookingService.create(client_user, service.id, tomorrow())

        assert exc_info.value.error_code == "VENDOR_UNAVAILABLE"

    def test_must_be_in_future(self, client_user):
        service = ServiceFactory()

        with pytest.raises(ValidationError):
            BookingService.create(client_user, service.id, timezone.now() - timedelta(hours=1))

        assert not Booking.objects.exists()

    def test_created_signal_after_commit(self, client_user, mocker, django_capture_on_commit_callbacks):
        send = mocker.patch.object(signals.booking_created, "send")
        service = ServiceFactory()

        with django_capture_on_commit_callbacks(execute=True):
            booking = BookingService.create(client_user, service.id, tomorrow())

        send.assert_called_once_with(sender=Booking, booking=booking, actor=client_user)


# =============================================================================
# Vendor actions
# =============================================================================


class TestAccept:
    def test_requires_escrow(self, db):
        booking = BookingFactory()

        with pytest.raises(BadRequestError) as exc_info:
            BookingService.accept(booking.vendor, booking.id)

        assert exc_info.value.error_code == "PAYMENT_NOT_ESCROWED"

    def test_accepts_escrowed_booking(self, db):
        booking = EscrowedBookingFactory()

        booking = BookingService.accept(booking.vendor, booking.id)

        assert booking.status == BookingStatus.ACCEPTED
        assert booking.accepted_at is not None

    def test_only_vendor(self, db):
        booking = EscrowedBookingFactory()

        with pytest.raises(PermissionDeniedError):
            BookingService.accept(booking.client, booking.id)

    def test_ownership_checked_before_state(self, db, vendor):
        booking = EscrowedBookingFactory(completed=True)

        with pytest.raises(PermissionDeniedError):
            BookingService.accept(vendor, booking.id)

    def test_not_pending(self, db):
        booking = EscrowedBookingFactory(accepted=True)

        with pytest.raises(BadRequestError) as exc_info:
            BookingService.accept(booking.vendor, booking.id)

        assert exc_info.value.error_code == "INVALID_BOOKING_STATE"


class TestReject:
    def test_refunds_escrowed_booking(self, db):
        booking = EscrowedBookingFactory()

        booking = BookingService.reject(booking.vendor, booking.id, reason="Fully booked")

        assert booking.status == BookingStatus.CANCELLED
        assert booking.payment_status == BookingPaymentStatus.REFUNDED
        assert booking.cancellation_reason == "Fully booked"
        assert WalletService.get_balance(booking.client_id) == booking.total_amount

    def test_unpaid_booking_has_nothing_to_refund(self, db):
        booking = BookingFactory()

        booking = BookingService.reject(booking.vendor, booking.id)

        assert booking.status == BookingStatus.CANCELLED
        assert booking.cancellation_reason == "Rejected by vendor"
        assert WalletService.get_balance(booking.client_id) == 0

    def test_only_pending(self, db):
        booking = EscrowedBookingFactory(accepted=True)

        with pytest.raises(BadRequestError):
            BookingService.reject(booking.vendor, booking.id)


class TestStart:
    def test_starts_accepted_booking(self, db):
        booking = EscrowedBookingFactory(accepted=True)

        booking = BookingService.start(booking.vendor, booking.id)

        assert booking.status == BookingStatus.IN_PROGRESS
        assert booking.started_at is not None

    def test_cannot_start_pending(self, db):
        booking = EscrowedBookingFactory()

        with pytest.raises(BadRequestError):
            BookingService.start(booking.vendor, booking.id)


# =============================================================================
# Completion
# =============================================================================


class TestMarkComplete:
    def test_one_party_does_not_complete(self, db):
        booking = EscrowedBookingFactory(in_progress=True)

        booking = BookingService.mark_complete(booking.client, booking.id)

        assert booking.status == BookingStatus.IN_PROGRESS
        assert booking.client_marked_complete
        assert not booking.vendor_marked_complete

    def test_marking_twice_is_harmless(self, db):
        booking = EscrowedBookingFactory(in_progress=True)

        BookingService.mark_complete(booking.client, booking.id)
        booking = BookingService.mark_complete(booking.client, booking.id)

        assert booking.status == BookingStatus.IN_PROGRESS

    def test_both_parties_release_escrow(self, db):
        """Should complete and pay the vendor share in one step."""
        booking = EscrowedBookingFactory(accepted=True)

        BookingService.mark_complete(booking.vendor, booking.id)
        booking = BookingService.mark_complete(booking.client, booking.id)

        assert booking.status == BookingStatus.COMPLETED
        assert booking.completed_by == "both"
        assert booking.payment_status == BookingPaymentStatus.RELEASED
        assert booking.payments.get().escrow_status == EscrowStatus.RELEASED
        assert WalletService.get_balance(booking.vendor_id) == 5400
        booking.service.refresh_from_db()
        assert booking.service.completed_bookings_count == 1
        assert VendorProfile.objects.get(user_id=booking.vendor_id).completed_bookings == 1

    def test_dispute_holds_back_release(self, db):
        booking = EscrowedBookingFactory(in_progress=True)
        DisputeService.open(
            booking.vendor,
            booking.id,
            reason="Client refused to confirm",
            description="Service delivered in full",
            category=DisputeCategory.PAYMENT,
        )

        BookingService.mark_complete(booking.vendor, booking.id)
        booking = BookingService.mark_complete(booking.client, booking.id)

        assert booking.status == BookingStatus.COMPLETED
        assert booking.payment_status == BookingPaymentStatus.ESCROWED
        assert WalletService.get_balance(booking.vendor_id) == 0

    def test_outsider(self, db, client_user):
        booking = EscrowedBookingFactory(accepted=True)

        with pytest.raises(PermissionDeniedError):
            BookingService.mark_complete(client_user, booking.id)

    def test_pending_booking_cannot_complete(self, db):
        booking = EscrowedBookingFactory()

        with pytest.raises(BadRequestError):
            BookingService.mark_complete(booking.client, booking.id)


# =============================================================================
# Cancellation
# =============================================================================


class TestCancel:
    def test_client_cancel_refunds(self, db):
        booking = EscrowedBookingFactory(accepted=True)

        booking = BookingService.cancel(booking.client, booking.id, reason="Sick")

        assert booking.status == BookingStatus.CANCELLED
        assert booking.cancelled_by_id == booking.client_id
        assert booking.payment_status == BookingPaymentStatus.REFUNDED
        assert WalletService.get_balance(booking.client_id) == 6000

    def test_admin_can_cancel(self, db, admin_user):
        booking = EscrowedBookingFactory(accepted=True)

        booking = BookingService.cancel(admin_user, booking.id)

        assert booking.status == BookingStatus.CANCELLED

    def test_outsider_cannot_cancel(self, db, client_user):
        booking = EscrowedBookingFactory(accepted=True)

        with pytest.raises(PermissionDeniedError):
            BookingService.cancel(client_user, booking.id)

    def test_completed_booking(self, db):
        booking = BookingFactory(completed=True)

        with pytest.raises(BadRequestError):
            BookingService.cancel(booking.client, booking.id)

    def test_blocked_by_open_dispute(self, db):
        booking = EscrowedBookingFactory(accepted=True)
        DisputeService.open(
            booking.client,
            booking.id,
            reason="Vendor no-show",
            description="Nobody came",
            category=DisputeCategory.OTHER,
        )

        with pytest.raises(BadRequestError) as exc_info:
            BookingService.cancel(booking.client, booking.id)

        assert exc_info.value.error_code == "BOOKING_DISPUTED"
        assert WalletService.get_balance(booking.client_id) == 0


# =============================================================================
# Queries
# =============================================================================


class TestQueries:
    def test_update_notes_by_role(self, db):
        booking = BookingFactory()

        BookingService.update_notes(booking.client, booking.id, "Ring twice")
        booking = BookingService.update_notes(booking.vendor, booking.id, "Bring clippers")

        assert booking.client_notes == "Ring twice"
        assert booking.vendor_notes == "Bring clippers"

    def test_get_is_private(self, db, client_user):
        booking = BookingFactory()

        with pytest.raises(PermissionDeniedError):
            BookingService.get(client_user, booking.id)

    def test_get_missing(self, db, client_user):
        with pytest.raises(NotFoundError) as exc_info:
            BookingService.get(client_user, uuid.uuid4())

        assert exc_info.value.error_code == "BOOKING_NOT_FOUND"

    def test_list_by_role(self, db):
        user = UserFactory(role=UserRole.VENDOR)
        as_vendor = BookingFactory(vendor=user)
        BookingFactory()

        assert list(BookingService.list_bookings(user, role="vendor")) == [as_vendor]
        assert not BookingService.list_bookings(user, role="client").exists()

    def test_admin_sees_everything(self, db, admin_user):
        BookingFactory.create_batch(2)

        assert BookingService.list_bookings(admin_user).count() == 2

    def test_stats(self, db):
        booking = BookingFactory()
        BookingFactory(client=booking.client, completed=True)

        stats = BookingService.stats(booking.client)

        assert stats[BookingStatus.PENDING] == 1
        assert stats[BookingStatus.COMPLETED] == 1
        assert stats["total"] == 2
