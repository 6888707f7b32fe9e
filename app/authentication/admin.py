"""
Django admin configuration for authentication models.

This module registers User and VendorProfile with the Django admin site.
Vendor verification is toggled here; only verified vendors can be booked.

Related files:
    - models.py: Model definitions
"""

from django.contrib import admin
from django.contrib.auth.admin import UserAdmin as BaseUserAdmin

from authentication.models import User, VendorProfile


class VendorProfileInline(admin.StackedInline):
    model = VendorProfile
    can_delete = False
    extra = 0
    readonly_fields = ("completed_bookings",)


@admin.register(User)
class UserAdmin(BaseUserAdmin):
    """
    Admin configuration for User model.

    Customized for email-based authentication. The withdrawal PIN is a hash
    and never editable here.
    """

    list_display = (
        "email",
        "role",
        "referral_code",
        "is_active",
        "is_staff",
        "date_joined",
    )
    list_filter = (
        "role",
        "is_active",
        "is_staff",
        "is_superuser",
        "date_joined",
    )
    search_fields = ("email", "first_name", "last_name", "referral_code")
    ordering = ("-date_joined",)

    fieldsets = (
        (None, {"fields": ("email", "password")}),
        ("Identity", {"fields": ("first_name", "last_name", "phone", "role", "referral_code")}),
        (
            "Status",
            {"fields": ("is_active", "is_staff", "is_superuser")},
        ),
        (
            "Permissions",
            {"fields": ("groups", "user_permissions")},
        ),
        (
            "Important dates",
            {"fields": ("date_joined", "last_login")},
        ),
    )

    add_fieldsets = (
        (
            None,
            {
                "classes": ("wide",),
                "fields": ("email", "role", "password1", "password2"),
            },
        ),
    )

    readonly_fields = ("date_joined", "last_login", "referral_code")
    inlines = (VendorProfileInline,)

    def get_inlines(self, request, obj):
        if obj is None or not obj.is_vendor:
            return ()
        return super().get_inlines(request, obj)


@admin.register(VendorProfile)
class VendorProfileAdmin(admin.ModelAdmin):
    list_display = (
        "user",
        "business_name",
        "vendor_type",
        "is_verified",
        "completed_bookings",
        "created_at",
    )
    list_filter = ("vendor_type", "is_verified")
    search_fields = ("user__email", "business_name")
    raw_id_fields = ("user",)
    readonly_fields = ("completed_bookings", "created_at", "updated_at")
