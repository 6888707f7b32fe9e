"""
Bookings app configuration.

This app owns the booking state machine: creation and pricing, vendor
accept/reject/start, bilateral completion and cancellation.
"""

from django.apps import AppConfig


class BookingsConfig(AppConfig):
    default_auto_field = "django.db.models.BigAutoField"
    name = "bookings"
    verbose_name = "Bookings"
