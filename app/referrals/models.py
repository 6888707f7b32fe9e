"""
Referral model.

A referral links a new user (referee) to the user whose code they applied
(referrer). Each user can be referred once. When the referee completes a
qualifying first booking, both sides receive a wallet bonus.
"""

from __future__ import annotations

from django.conf import settings
from django.db import models

from core.model_mixins import UUIDPrimaryKeyMixin
from core.models import BaseModel


class ReferralStatus(models.TextChoices):
    PENDING = "pending", "Pending"
    COMPLETED = "completed", "Completed"


def default_referral_bonus() -> int:
    return settings.REFERRAL_BONUS_AMOUNT


class Referral(UUIDPrimaryKeyMixin, BaseModel):
    """
    Fields:
        referrer: Owner of the applied code
        referee: User who applied it (one referral per user)
        referral_code: Code as applied
        referrer_reward / referee_reward: Bonus amounts, captured when the
            code is applied
        first_booking: Booking that completed the referral
    """

    referrer = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.CASCADE,
        related_name="referrals_made",
    )
    referee = models.OneToOneField(
        settings.AUTH_USER_MODEL,
        on_delete=models.CASCADE,
        related_name="referral",
    )
    referral_code = models.CharField(max_length=16, db_index=True)
    status = models.CharField(
        max_length=20,
        choices=ReferralStatus.choices,
        default=ReferralStatus.PENDING,
        db_index=True,
    )
    referrer_reward = models.PositiveBigIntegerField(default=default_referral_bonus)
    referee_reward = models.PositiveBigIntegerField(default=default_referral_bonus)
    first_booking = models.ForeignKey(
        "bookings.Booking",
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="+",
    )
    completed_at = models.DateTimeField(null=True, blank=True)

    class Meta:
        ordering = ["-created_at"]

    def __str__(self) -> str:
        return f"Referral({self.referrer_id} -> {self.referee_id}, {self.status})"
