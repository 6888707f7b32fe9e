"""
Webhook handling for payment events from Paystack.

Webhooks are verified, stored idempotently, and processed asynchronously
via Celery tasks.
"""
