"""
Tests for the referral bonus task and the booking_completed receiver.
"""

import pytest

from authentication.tests.factories import UserFactory
from bookings.models import Booking
from bookings.signals import booking_completed
from bookings.tests.factories import BookingFactory
from referrals.services import ReferralService
from referrals.tasks import process_referral_booking


class TestProcessReferralBooking:
    def test_completed(self, client_user):
        referrer = UserFactory()
        referral = ReferralService.apply_code(client_user, referrer.referral_code)
        booking = BookingFactory(client=client_user, completed=True)

        result = process_referral_booking(str(booking.id))

        assert result == {"status": "completed", "referral_id": str(referral.id)}

    def test_skipped(self, db):
        booking = BookingFactory(completed=True)

        result = process_referral_booking(str(booking.id))

        assert result == {"status": "skipped", "booking_id": str(booking.id)}

    def test_error_is_raised_for_retry(self, db, mocker):
        mocker.patch.object(
            ReferralService, "process_completed_booking", side_effect=RuntimeError("db down")
        )

        with pytest.raises(RuntimeError):
            process_referral_booking("00000000-0000-0000-0000-000000000000")


class TestBookingCompletedReceiver:
    def test_queues_bonus_task(self, db, mocker):
        delay = mocker.patch("referrals.tasks.process_referral_booking.delay")
        booking = BookingFactory(completed=True)

        booking_completed.send(sender=Booking, booking=booking, actor=booking.client)

        delay.assert_called_once_with(str(booking.id))
