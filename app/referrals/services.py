"""
Referral service: applying codes and paying referral bonuses.

Bonuses are two wallet credits with deterministic references
(referral:<id>:referrer, referral:<id>:referee), so processing the same
booking twice pays once.
"""

from __future__ import annotations

import uuid
from typing import TYPE_CHECKING, Any

from django.conf import settings
from django.db.models import Sum
from django.utils import timezone

from authentication.models import User
from bookings.models import Booking, BookingStatus
from core.exceptions import BadRequestError, NotFoundError
from core.services import BaseService
from payments.ledger.models import TransactionType
from payments.ledger.services import WalletService
from payments.ledger.types import LedgerEntryParams
from referrals.models import Referral, ReferralStatus

if TYPE_CHECKING:
    from django.db.models import QuerySet


class ReferralService(BaseService):
    @classmethod
    def apply_code(cls, user: User, code: str) -> Referral:
        """
        Record that user signed up with someone's referral code.

        Raises:
            NotFoundError: No user owns the code
            BadRequestError: Own code, or the user was already referred
        """
        code = (code or "").strip().upper()
        referrer = User.objects.filter(referral_code=code, is_active=True).first()
        if referrer is None:
            raise NotFoundError(
                "Invalid referral code",
                error_code="INVALID_REFERRAL_CODE",
                details={"code": code},
            )
        if referrer.pk == user.pk:
            raise BadRequestError("You cannot refer yourself", error_code="SELF_REFERRAL")

        with cls.atomic():
            if Referral.objects.select_for_update().filter(referee=user).exists():
                raise BadRequestError(
                    "You have already used a referral code",
                    error_code="REFERRAL_ALREADY_APPLIED",
                )
            referral = Referral.objects.create(
                referrer=referrer,
                referee=user,
                referral_code=code,
            )

        cls.get_logger().info(
            "Referral code applied",
            extra={
                "referral_id": str(referral.id),
                "referrer_id": str(referrer.pk),
                "referee_id": str(user.pk),
            },
        )
        return referral

    @classmethod
    def process_completed_booking(cls, booking_id: uuid.UUID) -> Referral | None:
        """
        Complete the client's pending referral if this booking qualifies.

        A booking qualifies when it is completed and its total is at least
        REFERRAL_MIN_BOOKING_AMOUNT. Returns the completed referral, or
        None when there is nothing to pay.
        """
        with cls.atomic():
            booking = Booking.objects.filter(pk=booking_id).first()
            if booking is None or booking.status != BookingStatus.COMPLETED:
                return None

            referral = (
                Referral.objects.select_for_update()
                .filter(referee_id=booking.client_id, status=ReferralStatus.PENDING)
                .first()
            )
            if referral is None:
                return None

            if booking.total_amount < settings.REFERRAL_MIN_BOOKING_AMOUNT:
                cls.get_logger().info(
                    "Booking below referral minimum",
                    extra={
                        "referral_id": str(referral.id),
                        "booking_id": str(booking.id),
                        "total_amount": booking.total_amount,
                    },
                )
                return None

            referral.status = ReferralStatus.COMPLETED
            referral.first_booking = booking
            referral.completed_at = timezone.now()
            referral.save()

            for side, user_id, amount in (
                ("referrer", referral.referrer_id, referral.referrer_reward),
                ("referee", referral.referee_id, referral.referee_reward),
            ):
                if amount > 0:
                    WalletService.credit(
                        LedgerEntryParams(
                            user_id=user_id,
                            amount=amount,
                            type=TransactionType.REFERRAL_BONUS,
                            reference=f"referral:{referral.id}:{side}",
                            booking_id=booking.id,
                            description="Referral bonus",
                            metadata={"referral_id": str(referral.id)},
                        )
                    )

        cls.get_logger().info(
            "Referral completed",
            extra={
                "referral_id": str(referral.id),
                "booking_id": str(booking.id),
                "referrer_reward": referral.referrer_reward,
                "referee_reward": referral.referee_reward,
            },
        )
        return referral

    @classmethod
    def list_referrals(cls, user: User) -> QuerySet[Referral]:
        return Referral.objects.filter(referrer=user).select_related("referee")

    @classmethod
    def stats(cls, user: User) -> dict[str, Any]:
        referrals = Referral.objects.filter(referrer=user)
        completed = referrals.filter(status=ReferralStatus.COMPLETED)
        return {
            "referral_code": user.referral_code,
            "total_referrals": referrals.count(),
            "completed_referrals": completed.count(),
            "pending_referrals": referrals.filter(status=ReferralStatus.PENDING).count(),
            "total_earnings": completed.aggregate(total=Sum("referrer_reward"))["total"] or 0,
        }
