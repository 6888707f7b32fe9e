"""
Disputes app configuration.

This app lets a booking party raise a dispute and lets admins review it
and decide where the held payment goes.
"""

from django.apps import AppConfig


class DisputesConfig(AppConfig):
    default_auto_field = "django.db.models.BigAutoField"
    name = "disputes"
    verbose_name = "Disputes"
