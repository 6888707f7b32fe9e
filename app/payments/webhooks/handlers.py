"""
Webhook event handlers for Paystack events.

This module provides a handler registry and implementations for
processing different Paystack webhook events.

Handlers return a ServiceResult instead of raising for domain rejections
(expired payment, unknown reference): those are final outcomes for the
event and retrying cannot change them. Unexpected exceptions propagate so
the Celery task retries.

Usage:
    from payments.webhooks.handlers import dispatch_webhook, register_handler

    @register_handler("refund.processed")
    def handle_refund_processed(webhook_event: WebhookEvent) -> ServiceResult:
        ...

    result = dispatch_webhook(webhook_event)
"""

from __future__ import annotations

import logging
from typing import Callable

from core.exceptions import BaseApplicationError
from core.services import ServiceResult
from payments.adapters import KOBO_PER_UNIT
from payments.models import Payment, WebhookEvent
from payments.services import EscrowService, WithdrawalService

logger = logging.getLogger(__name__)


# =============================================================================
# Handler Registry
# =============================================================================


# Maps event type strings to handler functions
WEBHOOK_HANDLERS: dict[str, Callable[[WebhookEvent], ServiceResult]] = {}


def register_handler(event_type: str) -> Callable:
    """
    Decorator to register a webhook event handler.

    Args:
        event_type: The Paystack event name (e.g., "charge.success")
    """

    def decorator(func: Callable[[WebhookEvent], ServiceResult]) -> Callable:
        WEBHOOK_HANDLERS[event_type] = func
        return func

    return decorator


def dispatch_webhook(webhook_event: WebhookEvent) -> ServiceResult:
    """
    Dispatch a webhook event to the appropriate handler.

    Events without a handler are acknowledged as a success so they are
    not retried.
    """
    handler = WEBHOOK_HANDLERS.get(webhook_event.event_type)

    if not handler:
        logger.info(
            f"No handler registered for event type: {webhook_event.event_type}",
            extra={"event_key": webhook_event.event_key},
        )
        return ServiceResult.success(None)

    return handler(webhook_event)


# =============================================================================
# Charge Handlers
# =============================================================================


@register_handler("charge.success")
def handle_charge_success(webhook_event: WebhookEvent) -> ServiceResult:
    """
    Move the paid booking's payment into escrow.

    A repeated delivery finds the payment already held and is a no-op.
    """
    data = webhook_event.data
    reference = data.get("reference") or webhook_event.reference

    payment = Payment.objects.filter(reference=reference).first()
    if payment is None:
        logger.warning(
            "charge.success for unknown payment reference",
            extra={"reference": reference},
        )
        return ServiceResult.failure(
            f"Payment {reference} not found",
            error_code="PAYMENT_NOT_FOUND",
        )

    paid_amount = data.get("amount")
    if paid_amount is not None and int(paid_amount) != payment.amount * KOBO_PER_UNIT:
        logger.error(
            "charge.success amount does not match payment",
            extra={
                "reference": reference,
                "paid_amount": paid_amount,
                "expected_amount": payment.amount * KOBO_PER_UNIT,
            },
        )
        return ServiceResult.failure(
            "Charged amount does not match payment amount",
            error_code="AMOUNT_MISMATCH",
        )

    authorization = data.get("authorization") or {}
    try:
        payment = EscrowService.confirm_payment(
            reference,
            authorization_code=authorization.get("authorization_code", ""),
            gateway_response=data,
        )
    except BaseApplicationError as e:
        logger.warning(
            "charge.success rejected",
            extra={"reference": reference, "error_code": e.error_code},
        )
        return ServiceResult.from_exception(e)

    return ServiceResult.success(payment)


# =============================================================================
# Transfer Handlers
# =============================================================================


@register_handler("transfer.success")
def handle_transfer_success(webhook_event: WebhookEvent) -> ServiceResult:
    data = webhook_event.data
    reference = data.get("reference") or webhook_event.reference
    try:
        withdrawal = WithdrawalService.complete(
            reference,
            transfer_code=data.get("transfer_code", ""),
        )
    except BaseApplicationError as e:
        return ServiceResult.from_exception(e)
    return ServiceResult.success(withdrawal)


@register_handler("transfer.failed")
@register_handler("transfer.reversed")
def handle_transfer_failed(webhook_event: WebhookEvent) -> ServiceResult:
    """Fail the withdrawal and return the funds to the vendor's wallet."""
    data = webhook_event.data
    reference = data.get("reference") or webhook_event.reference
    reason = data.get("reason") or data.get("gateway_response") or webhook_event.event_type
    try:
        withdrawal = WithdrawalService.fail(reference, reason=str(reason))
    except BaseApplicationError as e:
        return ServiceResult.from_exception(e)
    return ServiceResult.success(withdrawal)
