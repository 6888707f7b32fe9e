"""
State enums for payment models.

This module defines all state enums used by payment models with django-fsm.
These are Django TextChoices for database storage and admin integration.

State Machines Overview:

Payment (gateway-facing status):
    pending → completed (gateway confirmed)
    pending → failed (gateway declined, expired, superseded)
    completed → refunded

Payment escrow status (authoritative for money):
    pending → held → released
    pending → held → refunded

Withdrawal States:
    pending → processing → completed
    pending → processing → failed (re-credit)
    pending → rejected (re-credit)
"""

from django.db import models


class PaymentStatus(models.TextChoices):
    """
    Gateway-facing status of a Payment.

    Moves in lockstep with EscrowStatus during the hold transition
    (pending/pending → completed/held).
    """

    PENDING = "pending", "Pending"
    COMPLETED = "completed", "Completed"
    FAILED = "failed", "Failed"
    REFUNDED = "refunded", "Refunded"


class EscrowStatus(models.TextChoices):
    """
    Escrow state of a Payment.

    Terminal states: RELEASED, REFUNDED

    State Flow:
        PENDING → HELD → RELEASED (completion, pay_vendor, partial split)
        PENDING → HELD → REFUNDED (cancel, reject, refund_client)

    HELD is never re-entered and terminal states never move.
    """

    PENDING = "pending", "Pending"
    HELD = "held", "Held"
    RELEASED = "released", "Released"
    REFUNDED = "refunded", "Refunded"


class WithdrawalStatus(models.TextChoices):
    """
    States for the Withdrawal model lifecycle.

    Terminal states: COMPLETED, FAILED, REJECTED

    State Flow:
        PENDING → PROCESSING → COMPLETED
        PENDING → PROCESSING → FAILED (funds re-credited)
        PENDING → REJECTED (funds re-credited)
    """

    PENDING = "pending", "Pending"
    PROCESSING = "processing", "Processing"
    COMPLETED = "completed", "Completed"
    FAILED = "failed", "Failed"
    REJECTED = "rejected", "Rejected"


class WebhookEventStatus(models.TextChoices):
    """
    Processing status for WebhookEvent.

    Tracks the lifecycle of webhook event processing for idempotency.

    State Flow:
        PENDING → PROCESSING → PROCESSED
        PENDING → PROCESSING → FAILED (can retry)
    """

    PENDING = "pending", "Pending"
    PROCESSING = "processing", "Processing"
    PROCESSED = "processed", "Processed"
    FAILED = "failed", "Failed"


class SubscriptionPlan(models.TextChoices):
    """Vendor subscription plans. Each plan maps to a commission rate."""

    IN_SHOP = "in_shop", "In Shop"
    HOME_SERVICE = "home_service", "Home Service"
    BOTH = "both", "Both"


class SubscriptionStatus(models.TextChoices):
    """
    Status of a vendor's subscription.

    Only ACTIVE subscriptions (and not past their end date) change the
    commission rate; everything else falls back to the default rate.
    """

    ACTIVE = "active", "Active"
    EXPIRED = "expired", "Expired"
    CANCELLED = "cancelled", "Cancelled"
