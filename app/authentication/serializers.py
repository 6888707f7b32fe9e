"""
Serializers for authentication.

The booking core never issues credentials; these only expose the current
user to the client app.
"""

from rest_framework import serializers

from authentication.models import User, VendorProfile


class VendorProfileSerializer(serializers.ModelSerializer):
    class Meta:
        model = VendorProfile
        fields = [
            "business_name",
            "vendor_type",
            "is_verified",
            "latitude",
            "longitude",
            "completed_bookings",
        ]
        read_only_fields = fields


class UserSerializer(serializers.ModelSerializer):
    """
    Current user.

    has_withdrawal_pin tells the client whether to prompt for PIN setup
    before the first withdrawal.
    """

    vendor_profile = VendorProfileSerializer(read_only=True)
    has_withdrawal_pin = serializers.BooleanField(read_only=True)

    class Meta:
        model = User
        fields = [
            "id",
            "email",
            "first_name",
            "last_name",
            "phone",
            "role",
            "referral_code",
            "has_withdrawal_pin",
            "vendor_profile",
            "date_joined",
        ]
        read_only_fields = fields
