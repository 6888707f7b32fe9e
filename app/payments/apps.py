"""
Payments app configuration.

This app provides the money side of bookings:
- Escrowed payments and commission snapshots
- Per-user wallet ledger
- Withdrawals to bank accounts via Paystack transfers
- Paystack webhook ingestion
"""

from django.apps import AppConfig


class PaymentsConfig(AppConfig):
    """Configuration for the payments application."""

    default_auto_field = "django.db.models.BigAutoField"
    name = "payments"
    verbose_name = "Payments"

    def ready(self):
        from payments import signals  # noqa: F401
