"""
VendorSubscription model: the vendor's plan, read for commission lookup.

Subscription billing itself lives outside this service; only the fields
needed to pick a commission rate at payment creation are kept here.

Usage:
    from payments.models import VendorSubscription
    from payments.state_machines import SubscriptionPlan, SubscriptionStatus

    VendorSubscription.objects.create(
        vendor=vendor,
        plan=SubscriptionPlan.BOTH,
        status=SubscriptionStatus.ACTIVE,
        expires_at=timezone.now() + timedelta(days=30),
    )
"""

from __future__ import annotations

from django.conf import settings
from django.db import models
from django.utils import timezone

from core.model_mixins import UUIDPrimaryKeyMixin
from core.models import BaseModel
from payments.state_machines import SubscriptionPlan, SubscriptionStatus


class VendorSubscription(UUIDPrimaryKeyMixin, BaseModel):
    """
    A vendor's current subscription.

    Fields:
        vendor: Subscribed vendor (one row per vendor)
        plan: in_shop / home_service / both
        status: active / expired / cancelled
        starts_at / expires_at: Validity window; an active row past
            expires_at counts as lapsed
    """

    vendor = models.OneToOneField(
        settings.AUTH_USER_MODEL,
        on_delete=models.CASCADE,
        related_name="subscription",
    )
    plan = models.CharField(
        max_length=20,
        choices=SubscriptionPlan.choices,
    )
    status = models.CharField(
        max_length=20,
        choices=SubscriptionStatus.choices,
        default=SubscriptionStatus.ACTIVE,
        db_index=True,
    )
    starts_at = models.DateTimeField(default=timezone.now)
    expires_at = models.DateTimeField(null=True, blank=True)

    class Meta:
        verbose_name = "Vendor Subscription"
        verbose_name_plural = "Vendor Subscriptions"

    def __str__(self) -> str:
        return f"VendorSubscription({self.vendor_id}, {self.plan}, {self.status})"

    @property
    def is_active(self) -> bool:
        if self.status != SubscriptionStatus.ACTIVE:
            return False
        return self.expires_at is None or self.expires_at > timezone.now()
