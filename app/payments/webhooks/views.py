"""
Webhook endpoint view for Paystack.

The view:
1. Verifies the HMAC-SHA512 signature over the raw body
2. Creates/retrieves the WebhookEvent record (idempotent)
3. Queues the event for async processing
4. Returns immediately

Usage:
    # In urls.py
    from payments.webhooks.views import paystack_webhook

    urlpatterns = [
        path("webhooks/paystack/", paystack_webhook, name="paystack_webhook"),
    ]
"""

from __future__ import annotations

import json
import logging

from django.http import HttpRequest, HttpResponse
from django.views.decorators.csrf import csrf_exempt
from django.views.decorators.http import require_POST

from payments.adapters import PaystackAdapter
from payments.models import WebhookEvent
from payments.state_machines import WebhookEventStatus

logger = logging.getLogger(__name__)


@csrf_exempt
@require_POST
def paystack_webhook(request: HttpRequest) -> HttpResponse:
    """
    Receive and queue Paystack webhook events.

    Security:
    - Signature is checked before the body is even parsed, so an invalid
      delivery never touches the database
    - CSRF exemption required for external webhooks

    Idempotency:
    - WebhookEvent.event_key ("<event>:<reference>") is unique
    - A duplicate of a processed event returns 200 without reprocessing

    Returns:
        HttpResponse with status:
        - 200: Event accepted (new or duplicate)
        - 400: Invalid signature or payload
    """
    payload = request.body
    signature = request.META.get(PaystackAdapter.SIGNATURE_HEADER, "")

    if not signature:
        logger.warning("Webhook received without X-Paystack-Signature header")
        return HttpResponse("Missing signature", status=400)

    if not PaystackAdapter.verify_webhook_signature(payload, signature):
        logger.warning("Webhook signature verification failed")
        return HttpResponse("Invalid signature", status=400)

    try:
        event_data = json.loads(payload)
    except ValueError:
        logger.warning("Webhook body is not valid JSON")
        return HttpResponse("Invalid payload", status=400)

    event_type = event_data.get("event") if isinstance(event_data, dict) else None
    data = event_data.get("data") if isinstance(event_data, dict) else None
    reference = data.get("reference") if isinstance(data, dict) else None

    if not event_type or not reference:
        logger.warning("Webhook missing required fields")
        return HttpResponse("Invalid event", status=400)

    logger.info(
        f"Received Paystack webhook: {event_type}",
        extra={"event_type": event_type, "reference": reference},
    )

    webhook_event, created = WebhookEvent.objects.get_or_create(
        event_key=WebhookEvent.build_key(event_type, reference),
        defaults={
            "event_type": event_type,
            "reference": reference,
            "payload": event_data,
            "status": WebhookEventStatus.PENDING,
        },
    )

    if not created:
        if webhook_event.status in (WebhookEventStatus.PROCESSED, WebhookEventStatus.PROCESSING):
            logger.info(
                "Duplicate webhook acknowledged",
                extra={"event_key": webhook_event.event_key, "status": webhook_event.status},
            )
            return HttpResponse("Already processed", status=200)

        logger.info(
            f"Webhook already exists with status: {webhook_event.status}",
            extra={"event_key": webhook_event.event_key},
        )

    try:
        from payments.tasks import process_webhook_event

        process_webhook_event.delay(str(webhook_event.id))
    except Exception:
        # Stored as PENDING; Paystack redelivers and retry_failed_webhooks
        # picks up anything left behind
        logger.error(
            "Failed to queue webhook",
            extra={"event_key": webhook_event.event_key},
            exc_info=True,
        )

    return HttpResponse("Accepted", status=200)
