"""
Booking domain events.

Sent by BookingService through transaction.on_commit, so receivers only
ever see committed state. Receivers (notifications, referrals) must not
assume they can veto anything.

Signals (all carry booking=; actor= where a user caused the change):
    booking_created
    booking_accepted
    booking_cancelled (also reason=)
    booking_completed
"""

from django.dispatch import Signal

booking_created = Signal()
booking_accepted = Signal()
booking_cancelled = Signal()
booking_completed = Signal()
