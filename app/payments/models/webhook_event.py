"""
WebhookEvent model for Paystack webhook tracking.

Every verified delivery is stored before it is processed. Paystack sends
no event id, so deliveries are keyed "<event>:<reference>"; the unique
constraint on that key turns a re-delivery into a lookup of the row we
already have.

Usage:
    from payments.models import WebhookEvent

    event, created = WebhookEvent.objects.get_or_create(
        event_key=WebhookEvent.build_key("charge.success", "PAY-..."),
        defaults={"event_type": "charge.success", "reference": "PAY-...", "payload": body},
    )
"""

from __future__ import annotations

from django.db import models
from django.utils import timezone

from core.model_mixins import UUIDPrimaryKeyMixin
from core.models import BaseModel
from payments.state_machines import WebhookEventStatus


class WebhookEvent(UUIDPrimaryKeyMixin, BaseModel):
    """
    One Paystack webhook delivery.

    Processing Flow:
        1. View verifies the HMAC-SHA512 signature over the raw body
        2. get_or_create by event_key
        3. If already PROCESSED or PROCESSING -> acknowledge (duplicate)
        4. Queue process_webhook_event
        5. Task marks PROCESSING, dispatches, then PROCESSED or FAILED

    Fields:
        event_key: "<event>:<reference>", unique
        event_type: Paystack event name (charge.success, transfer.failed...)
        reference: data.reference from the payload
        payload: Full JSON body
        status / processed_at / error_message / retry_count: Processing state
    """

    MAX_RETRIES = 5

    event_key = models.CharField(
        max_length=255,
        unique=True,
        help_text="<event>:<reference> - unique constraint for idempotency",
    )
    event_type = models.CharField(max_length=100, db_index=True)
    reference = models.CharField(max_length=255, db_index=True, blank=True)
    payload = models.JSONField()

    status = models.CharField(
        max_length=20,
        choices=WebhookEventStatus.choices,
        default=WebhookEventStatus.PENDING,
        db_index=True,
    )
    processed_at = models.DateTimeField(null=True, blank=True)
    error_message = models.TextField(null=True, blank=True)
    retry_count = models.PositiveSmallIntegerField(default=0)

    class Meta:
        ordering = ["-created_at"]
        verbose_name = "Webhook Event"
        verbose_name_plural = "Webhook Events"
        indexes = [
            models.Index(fields=["status", "created_at"], name="webhook_status_created_idx"),
            models.Index(fields=["event_type", "created_at"], name="webhook_type_created_idx"),
        ]

    def __str__(self) -> str:
        return f"WebhookEvent({self.event_key})"

    @staticmethod
    def build_key(event_type: str, reference: str) -> str:
        return f"{event_type}:{reference}"

    @property
    def is_processed(self) -> bool:
        return self.status == WebhookEventStatus.PROCESSED

    @property
    def can_retry(self) -> bool:
        return (
            self.status == WebhookEventStatus.FAILED
            and self.retry_count < self.MAX_RETRIES
        )

    @property
    def data(self) -> dict:
        data = self.payload.get("data") if isinstance(self.payload, dict) else None
        return data if isinstance(data, dict) else {}

    # Callers save after each mark_*.

    def mark_processing(self) -> None:
        self.status = WebhookEventStatus.PROCESSING
        self.retry_count += 1

    def mark_processed(self) -> None:
        self.status = WebhookEventStatus.PROCESSED
        self.processed_at = timezone.now()
        self.error_message = None

    def mark_failed(self, error_message: str) -> None:
        self.status = WebhookEventStatus.FAILED
        self.error_message = error_message
