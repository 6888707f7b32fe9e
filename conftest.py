"""
Root pytest configuration for the Django project.

Sets environment defaults before Django settings are first imported, so the
suite runs against an in-memory SQLite database with Celery tasks executed
inline. Values already present in the environment win.

App-specific fixtures are defined in each app's tests/conftest.py.
"""

import os

# Ensure Django settings are configured before any tests run
os.environ.setdefault("DJANGO_SETTINGS_MODULE", "config.settings")

TEST_ENVIRONMENT = {
    "SECRET_KEY": "test-secret-key-not-for-production",
    "DATABASE_URL": "sqlite://:memory:",
    "PAYSTACK_SECRET_KEY": "sk_test_paystack",
    "PAYSTACK_BASE_URL": "https://api.paystack.test",
    "CELERY_TASK_ALWAYS_EAGER": "True",
    "SECURE_SSL_REDIRECT": "False",
    # Skip .env.development; tests must not depend on a developer's file
    "ENV_FILE": "/nonexistent/.env.test",
}

for key, value in TEST_ENVIRONMENT.items():
    os.environ.setdefault(key, value)
