"""
Payment domain models.

This module contains all payment-related models:
- Payment: Escrowed charge for a booking
- VendorSubscription: Vendor plan, read for commission lookup
- Withdrawal: Wallet payout to a bank account
- WebhookEvent: Paystack webhook tracking for idempotent processing
- Wallet / Transaction: Per-user ledger (defined in payments.ledger.models,
  re-exported here so Django discovers them)
"""

from payments.ledger.models import Transaction, TransactionType, Wallet
from payments.models.payment import Payment
from payments.models.subscription import VendorSubscription
from payments.models.webhook_event import WebhookEvent
from payments.models.withdrawal import Withdrawal

__all__ = [
    "Payment",
    "Transaction",
    "TransactionType",
    "VendorSubscription",
    "Wallet",
    "WebhookEvent",
    "Withdrawal",
]
