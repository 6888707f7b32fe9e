"""
Tests for authentication signal receivers.
"""

from authentication.models import User, UserRole, VendorProfile, VendorType
from authentication.tests.factories import UserFactory


class TestCreateVendorProfile:
    def test_created_for_vendor(self, db):
        user = UserFactory(role=UserRole.VENDOR)

        profile = VendorProfile.objects.get(user=user)
        assert profile.vendor_type == VendorType.IN_SHOP
        assert not profile.is_verified

    def test_not_created_for_client(self, client_user):
        assert not VendorProfile.objects.filter(user=client_user).exists()

    def test_created_when_client_becomes_vendor(self, client_user):
        client_user.role = UserRole.VENDOR
        client_user.save()

        assert VendorProfile.objects.filter(user=client_user).exists()

    def test_resave_keeps_profile(self, vendor):
        vendor.first_name = "Renamed"
        vendor.save()

        assert VendorProfile.objects.filter(user=vendor).count() == 1
        assert VendorProfile.objects.get(user=vendor).is_verified


class TestAssignReferralCode:
    def test_new_user_gets_code(self, client_user):
        stored = User.objects.get(pk=client_user.pk).referral_code

        assert len(stored) == 8
        assert client_user.referral_code == stored

    def test_codes_are_unique(self, db):
        users = UserFactory.create_batch(5)

        assert len({user.referral_code for user in users}) == 5

    def test_retries_on_collision(self, db, mocker):
        existing = UserFactory()
        mocker.patch(
            "authentication.signals.generate_referral_code",
            side_effect=[existing.referral_code, "FRESH123"],
        )

        user = UserFactory()

        assert user.referral_code == "FRESH123"

    def test_existing_code_is_kept(self, db):
        user = UserFactory(referral_code="KEEPME01")

        assert User.objects.get(pk=user.pk).referral_code == "KEEPME01"
