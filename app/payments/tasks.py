"""
Celery tasks for payment processing.

This module provides async tasks for:
- Processing Paystack webhook events
- Retrying failed webhook events
- Resetting webhook events stuck in PROCESSING
- Executing vendor withdrawals

Usage:
    from payments.tasks import process_webhook_event

    # Queue a webhook for async processing
    process_webhook_event.delay(str(webhook_event.id))

    # Queue a withdrawal for payout
    from payments.tasks import execute_withdrawal
    execute_withdrawal.delay(str(withdrawal.id), str(admin.id))
"""

from __future__ import annotations

import logging
from datetime import timedelta
from uuid import UUID

from celery import shared_task
from django.db import transaction
from django.utils import timezone

from payments.exceptions import (
    LockAcquisitionError,
    PaystackAPIUnavailableError,
    PaystackError,
    PaystackRateLimitError,
    PaystackTimeoutError,
)
from payments.models import WebhookEvent
from payments.state_machines import WebhookEventStatus

logger = logging.getLogger(__name__)


# =============================================================================
# Constants
# =============================================================================

MAX_WEBHOOK_RETRIES = WebhookEvent.MAX_RETRIES
MAX_WITHDRAWAL_RETRIES = 5
STUCK_PROCESSING_THRESHOLD_MINUTES = 30


# =============================================================================
# Webhook Processing Tasks
# =============================================================================


@shared_task(
    bind=True,
    autoretry_for=(Exception,),
    retry_backoff=True,
    retry_backoff_max=300,
    retry_kwargs={"max_retries": MAX_WEBHOOK_RETRIES},
    acks_late=True,
)
def process_webhook_event(self, webhook_event_id: str) -> dict:
    """
    Process a Paystack webhook event asynchronously.

    This task:
    1. Loads the WebhookEvent by ID
    2. Checks if already processed (idempotency)
    3. Marks as processing
    4. Dispatches to the handler for its event type
    5. Marks as processed or failed

    Raises:
        Exception: Re-raised to trigger Celery retry mechanism
    """
    # Import here to avoid circular imports
    from payments.webhooks.handlers import dispatch_webhook

    if isinstance(webhook_event_id, str):
        webhook_event_id = UUID(webhook_event_id)

    webhook_event = WebhookEvent.objects.filter(id=webhook_event_id).first()
    if webhook_event is None:
        logger.error(
            "WebhookEvent not found",
            extra={"webhook_event_id": str(webhook_event_id)},
        )
        return {"status": "not_found", "webhook_event_id": str(webhook_event_id)}

    if webhook_event.is_processed:
        logger.info(
            "WebhookEvent already processed, skipping",
            extra={"event_key": webhook_event.event_key},
        )
        return {"status": "already_processed", "webhook_event_id": str(webhook_event_id)}

    webhook_event.mark_processing()
    webhook_event.save()

    try:
        with transaction.atomic():
            result = dispatch_webhook(webhook_event)
    except Exception as e:
        error_msg = f"{type(e).__name__}: {e}"
        webhook_event.mark_failed(error_msg)
        webhook_event.save()
        logger.exception(
            "Webhook processing failed with exception",
            extra={"event_key": webhook_event.event_key, "error": error_msg},
        )
        raise

    if result.success:
        webhook_event.mark_processed()
        webhook_event.save()
        logger.info(
            "Webhook processed successfully",
            extra={"event_key": webhook_event.event_key},
        )
        return {"status": "processed", "webhook_event_id": str(webhook_event_id)}

    error_msg = result.error or "Handler returned failure"
    webhook_event.mark_failed(error_msg)
    webhook_event.save()
    logger.warning(
        f"Webhook handler failed: {error_msg}",
        extra={
            "event_key": webhook_event.event_key,
            "error_code": result.error_code,
        },
    )
    return {
        "status": "handler_failed",
        "webhook_event_id": str(webhook_event_id),
        "error": error_msg,
    }


@shared_task
def retry_failed_webhooks() -> dict:
    """
    Periodic task to retry failed webhook events.

    Re-queues FAILED events that have not exceeded MAX_RETRIES.
    """
    failed_webhooks = WebhookEvent.objects.filter(
        status=WebhookEventStatus.FAILED,
        retry_count__lt=MAX_WEBHOOK_RETRIES,
    ).order_by("created_at")[:100]

    queued_count = 0
    for webhook in failed_webhooks:
        process_webhook_event.delay(str(webhook.id))
        queued_count += 1

    if queued_count:
        logger.info(
            f"Queued {queued_count} failed webhooks for retry",
            extra={"queued_count": queued_count},
        )
    return {"queued_count": queued_count}


@shared_task
def cleanup_stuck_webhooks() -> dict:
    """
    Periodic task to reset webhooks stuck in PROCESSING.

    Handles a worker dying mid-event; the reset events are picked up by
    retry_failed_webhooks.
    """
    threshold = timezone.now() - timedelta(minutes=STUCK_PROCESSING_THRESHOLD_MINUTES)
    stuck_webhooks = WebhookEvent.objects.filter(
        status=WebhookEventStatus.PROCESSING,
        updated_at__lt=threshold,
    )

    reset_count = 0
    for webhook in stuck_webhooks:
        webhook.mark_failed("Processing timed out - reset for retry")
        webhook.save()
        reset_count += 1
        logger.warning(
            "Reset stuck webhook",
            extra={"event_key": webhook.event_key},
        )

    return {"reset_count": reset_count}


# =============================================================================
# Withdrawal Tasks
# =============================================================================


@shared_task(
    bind=True,
    autoretry_for=(
        PaystackRateLimitError,
        PaystackAPIUnavailableError,
        PaystackTimeoutError,
        LockAcquisitionError,
    ),
    retry_backoff=True,
    retry_backoff_max=600,
    retry_kwargs={"max_retries": MAX_WITHDRAWAL_RETRIES},
    acks_late=True,
)
def execute_withdrawal(self, withdrawal_id: str, admin_id: str | None = None) -> dict:
    """
    Send a withdrawal to the bank through Paystack.

    Only transient gateway errors and lock contention are retried. Once
    retries run out on a gateway error, the withdrawal is failed and the
    wallet re-credited.
    """
    from payments.services import WithdrawalService

    try:
        withdrawal = WithdrawalService.execute(UUID(str(withdrawal_id)), admin_id=admin_id)
    except PaystackError as e:
        if e.is_retryable and self.request.retries < MAX_WITHDRAWAL_RETRIES:
            raise
        withdrawal = WithdrawalService.get_withdrawal(UUID(str(withdrawal_id)))
        withdrawal = WithdrawalService.fail(withdrawal.reference, reason=e.message)
        logger.error(
            "Withdrawal failed after exhausting retries",
            extra={"withdrawal_id": str(withdrawal_id), "error_code": e.error_code},
        )

    return {
        "status": withdrawal.status,
        "withdrawal_id": str(withdrawal.id),
    }
