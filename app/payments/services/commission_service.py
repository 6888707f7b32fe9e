"""
Commission rate lookup.

The rate is read once, when a Payment is created, and snapshotted onto
it. Later plan changes never touch existing payments.
"""

from __future__ import annotations

import uuid
from decimal import Decimal

from django.conf import settings

from core.services import BaseService
from payments.models import VendorSubscription


class CommissionService(BaseService):
    @classmethod
    def get_rate(cls, vendor_id: uuid.UUID) -> Decimal:
        """
        Current commission percentage for a vendor.

        Active subscriptions use their plan's rate from
        SUBSCRIPTION_COMMISSION_RATES; anything else (no subscription,
        expired, cancelled, unknown plan) uses DEFAULT_COMMISSION_RATE.
        """
        default_rate = Decimal(str(settings.DEFAULT_COMMISSION_RATE))

        subscription = VendorSubscription.objects.filter(vendor_id=vendor_id).first()
        if subscription is None or not subscription.is_active:
            return default_rate

        plan_rate = settings.SUBSCRIPTION_COMMISSION_RATES.get(subscription.plan)
        if plan_rate is None:
            cls.get_logger().warning(
                "No commission rate configured for plan",
                extra={"vendor_id": str(vendor_id), "plan": subscription.plan},
            )
            return default_rate

        return Decimal(str(plan_rate))
