"""
Tests for User and VendorProfile.
"""

import pytest

from authentication.models import User, UserRole, VendorType
from authentication.tests.factories import UserFactory, VendorFactory


class TestUserManager:
    def test_create_user_normalizes_email(self, db):
        user = User.objects.create_user(email="Ada@EXAMPLE.COM", password="pw")

        assert user.email == "Ada@example.com"
        assert user.role == UserRole.CLIENT
        assert user.check_password("pw")
        assert not user.is_staff

    def test_email_required(self, db):
        with pytest.raises(ValueError):
            User.objects.create_user(email="", password="pw")

    def test_create_superuser(self, superuser):
        assert superuser.is_superuser
        assert superuser.role == UserRole.SUPER_ADMIN
        assert superuser.is_platform_admin

    def test_superuser_must_be_staff(self, db):
        with pytest.raises(ValueError):
            User.objects.create_superuser(email="x@example.com", password="pw", is_staff=False)


class TestRoles:
    @pytest.mark.parametrize(
        "role,is_admin",
        [
            (UserRole.CLIENT, False),
            (UserRole.VENDOR, False),
            (UserRole.ADMIN, True),
            (UserRole.SUPER_ADMIN, True),
            (UserRole.FINANCIAL_ADMIN, True),
            (UserRole.SUPPORT, True),
        ],
    )
    def test_is_platform_admin(self, role, is_admin):
        assert User(email="a@example.com", role=role).is_platform_admin is is_admin

    def test_superuser_flag_counts_as_admin(self):
        assert User(email="a@example.com", role=UserRole.CLIENT, is_superuser=True).is_platform_admin

    def test_party_roles(self):
        assert User(role=UserRole.VENDOR).is_vendor
        assert User(role=UserRole.CLIENT).is_client

    def test_names(self):
        user = User(email="ada@example.com", first_name="Ada", last_name="Obi")

        assert user.get_full_name() == "Ada Obi"
        assert User(email="ada@example.com").get_full_name() == "ada@example.com"
        assert User(email="ada@example.com").get_short_name() == "ada"


class TestWithdrawalPin:
    def test_no_pin_never_matches(self):
        user = User(email="a@example.com")

        assert not user.has_withdrawal_pin
        assert not user.check_withdrawal_pin("1234")

    def test_pin_is_hashed(self, client_user):
        client_user.set_withdrawal_pin("4821")
        client_user.save()
        client_user.refresh_from_db()

        assert client_user.withdrawal_pin != "4821"
        assert client_user.has_withdrawal_pin
        assert client_user.check_withdrawal_pin("4821")
        assert not client_user.check_withdrawal_pin("4820")


class TestVendorProfile:
    @pytest.mark.parametrize(
        "vendor_type,travels",
        [
            (VendorType.HOME_SERVICE, True),
            (VendorType.BOTH, True),
            (VendorType.IN_SHOP, False),
        ],
    )
    def test_offers_home_service(self, db, vendor_type, travels):
        vendor = VendorFactory(profile__vendor_type=vendor_type)

        assert vendor.vendor_profile.offers_home_service is travels

    def test_has_location(self, db):
        vendor = VendorFactory(profile__latitude=None)

        assert not vendor.vendor_profile.has_location
        assert str(vendor.vendor_profile) == vendor.vendor_profile.business_name

    def test_client_has_no_profile(self, db):
        user = UserFactory()

        assert not hasattr(user, "vendor_profile")
