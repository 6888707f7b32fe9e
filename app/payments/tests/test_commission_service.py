"""
Tests for CommissionService.get_rate().
"""

from datetime import timedelta
from decimal import Decimal

import pytest
from django.utils import timezone

from payments.services import CommissionService
from payments.state_machines import SubscriptionPlan, SubscriptionStatus
from payments.tests.factories import VendorSubscriptionFactory


class TestGetRate:
    def test_default_rate_without_subscription(self, vendor):
        """Should fall back to DEFAULT_COMMISSION_RATE."""
        assert CommissionService.get_rate(vendor.pk) == Decimal("10")

    @pytest.mark.parametrize(
        "plan,expected",
        [
            (SubscriptionPlan.IN_SHOP, Decimal("0")),
            (SubscriptionPlan.HOME_SERVICE, Decimal("10")),
            (SubscriptionPlan.BOTH, Decimal("12")),
        ],
    )
    def test_active_plan_rate(self, vendor, plan, expected):
        """Should use the plan's rate while the subscription is active."""
        VendorSubscriptionFactory(vendor=vendor, plan=plan)

        assert CommissionService.get_rate(vendor.pk) == expected

    @pytest.mark.parametrize(
        "status", [SubscriptionStatus.EXPIRED, SubscriptionStatus.CANCELLED]
    )
    def test_inactive_subscription_uses_default(self, vendor, status):
        VendorSubscriptionFactory(vendor=vendor, plan=SubscriptionPlan.IN_SHOP, status=status)

        assert CommissionService.get_rate(vendor.pk) == Decimal("10")

    def test_lapsed_active_subscription_uses_default(self, vendor):
        """Should treat an active row past expires_at as lapsed."""
        VendorSubscriptionFactory(
            vendor=vendor,
            plan=SubscriptionPlan.IN_SHOP,
            expires_at=timezone.now() - timedelta(seconds=1),
        )

        assert CommissionService.get_rate(vendor.pk) == Decimal("10")

    def test_unconfigured_plan_uses_default(self, vendor, settings):
        VendorSubscriptionFactory(vendor=vendor, plan=SubscriptionPlan.BOTH)
        settings.SUBSCRIPTION_COMMISSION_RATES = {"in_shop": 0}

        assert CommissionService.get_rate(vendor.pk) == Decimal("10")
