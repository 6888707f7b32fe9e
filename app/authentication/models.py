"""
Authentication models.

This module defines the identity models the booking core reads:
- User: Custom user model with email-based authentication and a role
- VendorProfile: Vendor-only data the booking core depends on
  (verification, service mode, location, completion counter)

Credential checks and token issuance happen at the API edge; services only
ever receive an already-authenticated User.

Related files:
    - managers.py: Custom user manager for email-based creation
    - payments/services/withdrawal_service.py: Withdrawal PIN set/verify
    - signals.py: Auto-create VendorProfile for vendor users
"""

from django.contrib.auth.hashers import check_password, make_password
from django.contrib.auth.models import AbstractBaseUser, PermissionsMixin
from django.conf import settings
from django.db import models

from core.models import BaseModel
from core.model_mixins import UUIDPrimaryKeyMixin
from authentication.managers import UserManager


class UserRole(models.TextChoices):
    """
    Roles an actor can hold.

    Values:
        CLIENT: Books and pays for services
        VENDOR: Provides services, receives escrow releases, withdraws
        ADMIN / SUPER_ADMIN: Assign and resolve disputes, process withdrawals
        FINANCIAL_ADMIN: Processes and rejects withdrawals
        SUPPORT: Reads and messages on disputes
    """

    CLIENT = "client", "Client"
    VENDOR = "vendor", "Vendor"
    ADMIN = "admin", "Admin"
    SUPER_ADMIN = "super_admin", "Super Admin"
    FINANCIAL_ADMIN = "financial_admin", "Financial Admin"
    SUPPORT = "support", "Support"


ADMIN_ROLES = frozenset(
    [
        UserRole.ADMIN,
        UserRole.SUPER_ADMIN,
        UserRole.FINANCIAL_ADMIN,
        UserRole.SUPPORT,
    ]
)


class VendorType(models.TextChoices):
    """How a vendor delivers services."""

    HOME_SERVICE = "home_service", "Home Service"
    IN_SHOP = "in_shop", "In Shop"
    BOTH = "both", "Both"


class User(UUIDPrimaryKeyMixin, AbstractBaseUser, PermissionsMixin):
    """
    Custom User model using email as the primary identifier.

    Fields:
        email: Primary identifier, unique, used for login
        first_name / last_name: Display name
        role: Actor role used for party and admin checks
        referral_code: Code other users may apply at signup
        withdrawal_pin: Hashed PIN required to request withdrawals
        is_active / is_staff: Django account flags

    Usage:
        client = User.objects.create_user(email="c@example.com", password="...")
        vendor = User.objects.create_user(
            email="v@example.com", password="...", role=UserRole.VENDOR
        )
    """

    email = models.EmailField(
        unique=True,
        db_index=True,
        max_length=254,
        help_text="User's email address (primary identifier)",
    )
    first_name = models.CharField(max_length=150, blank=True)
    last_name = models.CharField(max_length=150, blank=True)
    phone = models.CharField(max_length=32, blank=True)

    role = models.CharField(
        max_length=20,
        choices=UserRole.choices,
        default=UserRole.CLIENT,
        db_index=True,
        help_text="Actor role for authorization checks",
    )

    referral_code = models.CharField(
        max_length=16,
        unique=True,
        null=True,
        blank=True,
        help_text="Code other users may apply to be referred by this user",
    )

    withdrawal_pin = models.CharField(
        max_length=128,
        blank=True,
        help_text="Hashed withdrawal PIN (Django password hasher format)",
    )

    is_active = models.BooleanField(
        default=True,
        help_text="Whether this user account is active. Deselect instead of deleting.",
    )
    is_staff = models.BooleanField(
        default=False,
        help_text="Whether the user can access the admin site.",
    )

    date_joined = models.DateTimeField(
        auto_now_add=True,
        help_text="When the user account was created",
    )
    updated_at = models.DateTimeField(
        auto_now=True,
        help_text="When the user record was last modified",
    )

    USERNAME_FIELD = "email"
    REQUIRED_FIELDS = []

    objects = UserManager()

    class Meta:
        verbose_name = "user"
        verbose_name_plural = "users"
        ordering = ["-date_joined"]

    def __str__(self):
        return self.email

    def get_full_name(self):
        full_name = f"{self.first_name} {self.last_name}".strip()
        return full_name or self.email

    def get_short_name(self):
        return self.first_name or self.email.split("@")[0]

    @property
    def is_vendor(self) -> bool:
        return self.role == UserRole.VENDOR

    @property
    def is_client(self) -> bool:
        return self.role == UserRole.CLIENT

    @property
    def is_platform_admin(self) -> bool:
        """Admins, support staff and Django superusers."""
        return self.role in ADMIN_ROLES or self.is_superuser

    @property
    def has_withdrawal_pin(self) -> bool:
        return bool(self.withdrawal_pin)

    def set_withdrawal_pin(self, raw_pin: str) -> None:
        """Hash and store the PIN. Caller saves."""
        self.withdrawal_pin = make_password(raw_pin)

    def check_withdrawal_pin(self, raw_pin: str) -> bool:
        if not self.withdrawal_pin:
            return False
        return check_password(raw_pin, self.withdrawal_pin)


class VendorProfile(BaseModel):
    """
    Vendor data read by the booking core.

    Fields:
        user: OneToOne link to the vendor User (also the primary key)
        business_name: Public name
        vendor_type: home_service / in_shop / both
        is_verified: Only verified vendors can be booked
        latitude / longitude: Base location for distance charges
        completed_bookings: Best-effort projection, incremented on completion

    Note:
        Created automatically for vendor users via signals.
    """

    user = models.OneToOneField(
        settings.AUTH_USER_MODEL,
        on_delete=models.CASCADE,
        related_name="vendor_profile",
        primary_key=True,
    )
    business_name = models.CharField(max_length=200, blank=True)
    vendor_type = models.CharField(
        max_length=20,
        choices=VendorType.choices,
        default=VendorType.IN_SHOP,
    )
    is_verified = models.BooleanField(
        default=False,
        help_text="Whether the vendor passed verification and can be booked",
    )
    latitude = models.FloatField(null=True, blank=True)
    longitude = models.FloatField(null=True, blank=True)
    completed_bookings = models.PositiveIntegerField(default=0)

    class Meta:
        verbose_name = "vendor profile"
        verbose_name_plural = "vendor profiles"

    def __str__(self):
        return self.business_name or str(self.user)

    @property
    def offers_home_service(self) -> bool:
        return self.vendor_type in (VendorType.HOME_SERVICE, VendorType.BOTH)

    @property
    def has_location(self) -> bool:
        return self.latitude is not None and self.longitude is not None
