"""
Django signals for payments app.

This module defines:
- Domain events emitted after commit (payment_held, payment_released,
  payment_refunded, withdrawal_requested, withdrawal_completed,
  withdrawal_failed). Notification delivery subscribes to these; the
  payment core never waits on receivers.
- A receiver that opens a wallet for every new user.

Related files:
    - services/escrow_service.py: Sends the payment_* events
    - services/withdrawal_service.py: Sends the withdrawal_* events
    - apps.py: Signal registration

Usage:
    from payments.signals import payment_released

    @receiver(payment_released)
    def notify_vendor(sender, payment, **kwargs):
        ...
"""

from __future__ import annotations

import logging

from django.conf import settings
from django.db.models.signals import post_save
from django.dispatch import Signal, receiver

logger = logging.getLogger(__name__)


# =============================================================================
# Domain events
# =============================================================================

# kwargs: payment
payment_held = Signal()
# kwargs: payment, amount
payment_released = Signal()
# kwargs: payment, amount, reason
payment_refunded = Signal()

# kwargs: withdrawal
withdrawal_requested = Signal()
withdrawal_completed = Signal()
# kwargs: withdrawal, reason
withdrawal_failed = Signal()


# =============================================================================
# Receivers
# =============================================================================


@receiver(post_save, sender=settings.AUTH_USER_MODEL)
def create_user_wallet(sender, instance, created, **kwargs):
    """Open an empty wallet for each new user."""
    if not created:
        return

    from payments.ledger.services import WalletService

    WalletService.get_or_create_wallet(instance.id)
