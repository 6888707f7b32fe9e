"""
Factory Boy factories for authentication models.

Provides realistic test data generation for:
- User: Custom user model with email-based authentication
- Vendor users with a verified VendorProfile
- Platform admins

Usage:
    from authentication.tests.factories import UserFactory, VendorFactory

    client = UserFactory()
    vendor = VendorFactory(profile__vendor_type=VendorType.HOME_SERVICE)
"""

import factory

from authentication.models import User, UserRole, VendorProfile, VendorType


class UserFactory(factory.django.DjangoModelFactory):
    """
    Factory for User model.

    Creates active client users by default.

    Examples:
        # Basic client
        user = UserFactory()

        # Support staff
        user = UserFactory(role=UserRole.SUPPORT)

        # Inactive user (deactivated)
        user = UserFactory(is_active=False)
    """

    class Meta:
        model = User
        skip_postgeneration_save = True

    email = factory.Sequence(lambda n: f"user{n}@example.com")
    first_name = factory.Faker("first_name")
    last_name = factory.Faker("last_name")
    role = UserRole.CLIENT
    is_active = True
    is_staff = False

    @classmethod
    def _create(cls, model_class, *args, **kwargs):
        """Override create to use UserManager.create_user()."""
        password = kwargs.pop("password", "TestPass123!")
        return model_class.objects.create_user(
            email=kwargs.pop("email"), password=password, **kwargs
        )


class VendorFactory(UserFactory):
    """
    Vendor user with a verified profile located in central Lagos.

    The profile is created by the post_save signal; this factory only
    fills it in. Override profile fields with the ``profile__`` prefix:

        VendorFactory(profile__vendor_type=VendorType.HOME_SERVICE)
    """

    email = factory.Sequence(lambda n: f"vendor{n}@example.com")
    role = UserRole.VENDOR

    @factory.post_generation
    def profile(obj, create, extracted, **kwargs):
        if not create:
            return
        fields = {
            "business_name": f"{obj.first_name}'s Studio",
            "vendor_type": VendorType.IN_SHOP,
            "is_verified": True,
            "latitude": 6.5244,
            "longitude": 3.3792,
        }
        fields.update(kwargs)
        VendorProfile.objects.filter(user=obj).update(**fields)
        obj.vendor_profile.refresh_from_db()


class AdminFactory(UserFactory):
    email = factory.Sequence(lambda n: f"admin{n}@example.com")
    role = UserRole.ADMIN
    is_staff = True
