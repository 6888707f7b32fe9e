"""
Celery configuration for the Django application.

Background work for the booking core:
- Paystack webhook processing (payments.tasks.process_webhook_event)
- Withdrawal payouts (payments.tasks.execute_withdrawal)
- Referral bonuses (referrals.tasks.process_referral_booking)
- Periodic webhook retry and stuck-event cleanup (CELERY_BEAT_SCHEDULE)

Redis is both broker and result backend. Tasks are auto-discovered from
all installed Django apps.

For more information, see:
https://docs.celeryq.dev/en/stable/django/first-steps-with-django.html
"""

import os

from celery import Celery

# Set the default Django settings module for the Celery worker
os.environ.setdefault("DJANGO_SETTINGS_MODULE", "config.settings")

app = Celery("config")

# All Celery settings are prefixed with CELERY_ in settings.py
app.config_from_object("django.conf:settings", namespace="CELERY")

app.autodiscover_tasks()
