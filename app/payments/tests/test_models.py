"""
Tests for payment models: properties, FSM transitions and constraints.
"""

from datetime import timedelta
from decimal import Decimal

import pytest
from django.db import IntegrityError
from django.utils import timezone
from django_fsm import TransitionNotAllowed

from payments.models import Payment, WebhookEvent
from payments.state_machines import (
    PaymentStatus,
    SubscriptionStatus,
    WebhookEventStatus,
    WithdrawalStatus,
)
from payments.tests.factories import (
    PaymentFactory,
    VendorSubscriptionFactory,
    WebhookEventFactory,
    WithdrawalFactory,
)


class TestPayment:
    def test_split_commission(self):
        assert Payment.split_commission(6000, Decimal("10")) == (600, 5400)
        assert Payment.split_commission(6000, Decimal("0")) == (0, 6000)

    def test_default_expiry_uses_setting(self, settings):
        settings.PAYMENT_EXPIRY_MINUTES = 15

        expiry = Payment.default_expiry()

        remaining = expiry - timezone.now()
        assert timedelta(minutes=14) < remaining <= timedelta(minutes=15)

    def test_is_expired_only_while_pending(self, db):
        expired = PaymentFactory(expires_at=timezone.now() - timedelta(minutes=1))
        held = PaymentFactory(held=True, expires_at=timezone.now() - timedelta(minutes=1))

        assert expired.is_expired
        assert not held.is_expired

    def test_mark_failed(self, db):
        payment = PaymentFactory()

        payment.mark_failed("Declined")

        assert payment.status == PaymentStatus.FAILED
        assert payment.failure_reason == "Declined"
        assert payment.failed_at is not None

    def test_mark_failed_only_from_pending(self, db):
        payment = PaymentFactory(held=True)

        with pytest.raises(TransitionNotAllowed):
            payment.mark_failed()

    def test_fee_conservation_constraint(self, db):
        """The database should refuse a fee that does not add up."""
        with pytest.raises(IntegrityError):
            PaymentFactory(platform_fee=1, vendor_amount=5400)


class TestWithdrawal:
    def test_happy_path_transitions(self, db):
        withdrawal = WithdrawalFactory()

        withdrawal.start_processing()
        withdrawal.complete()

        assert withdrawal.status == WithdrawalStatus.COMPLETED
        assert withdrawal.processed_at is not None
        assert withdrawal.completed_at is not None
        assert not withdrawal.reverses_funds

    def test_reject_only_from_pending(self, db):
        withdrawal = WithdrawalFactory()
        withdrawal.start_processing()

        with pytest.raises(TransitionNotAllowed):
            withdrawal.reject(reason="late")

    def test_failure_reason_is_truncated(self, db):
        withdrawal = WithdrawalFactory()
        withdrawal.start_processing()

        withdrawal.fail("x" * 600)

        assert len(withdrawal.failure_reason) == 500
        assert withdrawal.reverses_funds

    def test_net_amount_constraint(self, db):
        with pytest.raises(IntegrityError):
            WithdrawalFactory(net_amount=5000)


class TestWebhookEvent:
    def test_build_key(self):
        assert WebhookEvent.build_key("charge.success", "PAY-1") == "charge.success:PAY-1"

    def test_processing_counts_attempts(self, db):
        event = WebhookEventFactory()

        event.mark_processing()
        event.mark_failed("boom")
        event.mark_processing()
        event.mark_processed()

        assert event.retry_count == 2
        assert event.status == WebhookEventStatus.PROCESSED
        assert event.error_message is None

    def test_can_retry(self, db):
        assert WebhookEventFactory(status=WebhookEventStatus.FAILED, retry_count=4).can_retry
        assert not WebhookEventFactory(status=WebhookEventStatus.FAILED, retry_count=5).can_retry
        assert not WebhookEventFactory(status=WebhookEventStatus.PROCESSED).can_retry

    def test_data_tolerates_bad_payload(self, db):
        assert WebhookEventFactory(payload={"data": "oops"}).data == {}

    def test_event_key_is_unique(self, db):
        WebhookEventFactory(event_type="charge.success", reference="PAY-1")

        with pytest.raises(IntegrityError):
            WebhookEventFactory(event_type="charge.success", reference="PAY-1")


class TestVendorSubscription:
    @pytest.mark.parametrize(
        "status,expires_in,active",
        [
            (SubscriptionStatus.ACTIVE, timedelta(days=1), True),
            (SubscriptionStatus.ACTIVE, None, True),
            (SubscriptionStatus.ACTIVE, -timedelta(days=1), False),
            (SubscriptionStatus.CANCELLED, timedelta(days=1), False),
        ],
    )
    def test_is_active(self, db, status, expires_in, active):
        expires_at = timezone.now() + expires_in if expires_in is not None else None
        subscription = VendorSubscriptionFactory(status=status, expires_at=expires_at)

        assert subscription.is_active is active
