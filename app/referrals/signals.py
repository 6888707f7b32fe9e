"""
Signal receivers for referrals.

booking_completed is sent after commit; bonus payment is queued so the
booking flow never waits on it.
"""

from __future__ import annotations

from django.dispatch import receiver

from bookings.signals import booking_completed


@receiver(booking_completed)
def queue_referral_bonus(sender, booking, **kwargs):
    from referrals.tasks import process_referral_booking

    process_referral_booking.delay(str(booking.id))
