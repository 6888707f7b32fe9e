"""
Test configuration and fixtures for authentication tests.

Usage:
    def test_example(client_user, auth_client):
        response = auth_client(client_user).get("/api/v1/auth/me/")
        assert response.status_code == 200
"""

import pytest

from authentication.models import UserRole
from authentication.tests.factories import UserFactory


@pytest.fixture
def superuser(db):
    """Create a superuser with admin privileges."""
    from authentication.models import User

    return User.objects.create_superuser(
        email="root@example.com",
        password="TestPass123!",
    )


@pytest.fixture
def support_user(db):
    return UserFactory(role=UserRole.SUPPORT)
