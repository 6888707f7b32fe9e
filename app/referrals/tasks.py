"""
Celery tasks for referrals.
"""

from __future__ import annotations

import logging

from celery import shared_task

logger = logging.getLogger(__name__)


@shared_task(
    bind=True,
    autoretry_for=(Exception,),
    retry_backoff=True,
    retry_kwargs={"max_retries": 3},
    acks_late=True,
)
def process_referral_booking(self, booking_id: str) -> dict:
    """Pay referral bonuses for a completed booking, if it qualifies."""
    from referrals.services import ReferralService

    referral = ReferralService.process_completed_booking(booking_id)
    if referral is None:
        return {"status": "skipped", "booking_id": booking_id}

    logger.info(
        "Referral bonus task completed",
        extra={"referral_id": str(referral.id), "booking_id": booking_id},
    )
    return {"status": "completed", "referral_id": str(referral.id)}
