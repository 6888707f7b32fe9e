"""
DRF serializers for referrals.
"""

from rest_framework import serializers

from referrals.models import Referral


class ReferralSerializer(serializers.ModelSerializer):
    class Meta:
        model = Referral
        fields = [
            "id",
            "referrer",
            "referee",
            "referral_code",
            "status",
            "referrer_reward",
            "referee_reward",
            "first_booking",
            "completed_at",
            "created_at",
        ]
        read_only_fields = fields


class ApplyReferralCodeSerializer(serializers.Serializer):
    code = serializers.CharField(max_length=16)
