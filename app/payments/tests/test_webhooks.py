"""
Tests for the Paystack webhook endpoint.

Requests go through the real URL and signature check. Celery runs eagerly
in tests, so an accepted delivery is processed before the response
returns unless a test patches the task.
"""

import json

import pytest
from django.urls import reverse

from bookings.models import BookingPaymentStatus
from payments.adapters import PaystackAdapter
from payments.ledger.models import Transaction
from payments.models import Payment, WebhookEvent
from payments.state_machines import EscrowStatus, WebhookEventStatus
from payments.tests.factories import PaymentFactory, WebhookEventFactory


def charge_success(payment, **data):
    return {
        "event": "charge.success",
        "data": {
            "reference": payment.reference,
            "amount": payment.amount * 100,
            "status": "success",
            "authorization": {"authorization_code": "AUTH_hook"},
            **data,
        },
    }


@pytest.fixture
def post_webhook(client):
    """POST a body to the webhook URL, signed unless a signature is given."""

    def post(body, signature=None):
        raw = body if isinstance(body, bytes) else json.dumps(body).encode()
        headers = {}
        if signature is None:
            signature = PaystackAdapter.compute_signature(raw)
        if signature:
            headers["HTTP_X_PAYSTACK_SIGNATURE"] = signature
        return client.post(
            reverse("payments:paystack-webhook"),
            data=raw,
            content_type="application/json",
            **headers,
        )

    return post


class TestSignature:
    def test_missing_signature_is_rejected(self, db, post_webhook):
        payment = PaymentFactory()

        response = post_webhook(charge_success(payment), signature="")

        assert response.status_code == 400
        assert not WebhookEvent.objects.exists()

    def test_invalid_signature_is_rejected(self, db, post_webhook):
        payment = PaymentFactory()

        response = post_webhook(charge_success(payment), signature="0" * 128)

        assert response.status_code == 400
        assert not WebhookEvent.objects.exists()
        payment.refresh_from_db()
        assert payment.escrow_status == EscrowStatus.PENDING


class TestPayloadValidation:
    def test_invalid_json(self, db, post_webhook):
        response = post_webhook(b"{not json")

        assert response.status_code == 400

    @pytest.mark.parametrize(
        "body",
        [
            {"data": {"reference": "PAY-1-aa"}},
            {"event": "charge.success", "data": {}},
            {"event": "charge.success"},
            ["charge.success"],
        ],
    )
    def test_missing_event_or_reference(self, db, post_webhook, body):
        response = post_webhook(body)

        assert response.status_code == 400
        assert not WebhookEvent.objects.exists()

    def test_only_post_is_allowed(self, db, client):
        response = client.get(reverse("payments:paystack-webhook"))

        assert response.status_code == 405


class TestChargeSuccess:
    def test_holds_payment(self, db, post_webhook):
        """Should store the delivery, process it and hold the payment."""
        payment = PaymentFactory()

        response = post_webhook(charge_success(payment))

        assert response.status_code == 200
        event = WebhookEvent.objects.get()
        assert event.event_key == f"charge.success:{payment.reference}"
        assert event.status == WebhookEventStatus.PROCESSED
        payment.refresh_from_db()
        assert payment.escrow_status == EscrowStatus.HELD
        assert payment.authorization_code == "AUTH_hook"

    def test_duplicate_delivery_is_acknowledged_once(self, db, post_webhook):
        """Two identical deliveries should produce one hold and no ledger rows."""
        payment = PaymentFactory()
        body = charge_success(payment)

        first = post_webhook(body)
        payment.refresh_from_db()
        held_at = payment.held_at
        second = post_webhook(body)

        assert first.status_code == 200
        assert second.status_code == 200
        assert second.content == b"Already processed"
        assert WebhookEvent.objects.count() == 1
        assert WebhookEvent.objects.get().retry_count == 1
        payment.refresh_from_db()
        assert payment.held_at == held_at
        assert Payment.objects.filter(escrow_status=EscrowStatus.HELD).count() == 1
        payment.booking.refresh_from_db()
        assert payment.booking.payment_status == BookingPaymentStatus.ESCROWED
        assert Transaction.objects.count() == 0

    def test_failed_event_is_requeued_on_redelivery(self, db, post_webhook, mocker):
        payment = PaymentFactory()
        event = WebhookEventFactory(
            reference=payment.reference,
            status=WebhookEventStatus.FAILED,
            retry_count=1,
        )
        delay = mocker.patch("payments.tasks.process_webhook_event.delay")

        response = post_webhook(charge_success(payment))

        assert response.status_code == 200
        delay.assert_called_once_with(str(event.id))

    def test_queue_failure_still_acknowledges(self, db, post_webhook, mocker):
        """Should keep the event PENDING for the retry sweep if queueing fails."""
        mocker.patch(
            "payments.tasks.process_webhook_event.delay",
            side_effect=ConnectionError("broker down"),
        )
        payment = PaymentFactory()

        response = post_webhook(charge_success(payment))

        assert response.status_code == 200
        assert WebhookEvent.objects.get().status == WebhookEventStatus.PENDING
