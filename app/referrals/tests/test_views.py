"""
API tests for the referral endpoints.
"""

from django.urls import reverse

from authentication.tests.factories import UserFactory
from referrals.services import ReferralService


class TestApplyReferralCode:
    url = reverse("referrals:referral-apply")

    def test_apply(self, auth_client, client_user):
        referrer = UserFactory()

        response = auth_client(client_user).post(
            self.url, {"code": referrer.referral_code}, format="json"
        )

        assert response.status_code == 201
        assert response.data["status"] == "pending"
        assert response.data["referral_code"] == referrer.referral_code

    def test_invalid_code(self, auth_client, client_user):
        response = auth_client(client_user).post(self.url, {"code": "ZZZZ9999"}, format="json")

        assert response.status_code == 404
        assert response.data["error_code"] == "INVALID_REFERRAL_CODE"

    def test_missing_code(self, auth_client, client_user):
        assert auth_client(client_user).post(self.url, {}, format="json").status_code == 400

    def test_requires_authentication(self, api_client, db):
        assert api_client.post(self.url, {"code": "X"}, format="json").status_code == 401


class TestReferralListAndStats:
    def test_list(self, auth_client, client_user):
        referrer = UserFactory()
        ReferralService.apply_code(client_user, referrer.referral_code)

        response = auth_client(referrer).get(reverse("referrals:referral-list"))

        assert response.status_code == 200
        assert response.data["count"] == 1

    def test_stats(self, auth_client, client_user):
        response = auth_client(client_user).get(reverse("referrals:referral-stats"))

        assert response.status_code == 200
        assert response.data["total_referrals"] == 0
        assert response.data["referral_code"] == client_user.referral_code
