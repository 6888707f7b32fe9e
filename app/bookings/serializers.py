"""
DRF serializers for bookings.

Request serializers validate shape only; BookingService enforces the
business rules (vendor availability, location requirement, state machine).
"""

from __future__ import annotations

from rest_framework import serializers

from bookings.models import Booking, BookingStatus, BookingStatusHistory, Service


class ServiceSummarySerializer(serializers.ModelSerializer):
    class Meta:
        model = Service
        fields = ["id", "name", "base_price", "duration_minutes"]
        read_only_fields = fields


class BookingStatusHistorySerializer(serializers.ModelSerializer):
    class Meta:
        model = BookingStatusHistory
        fields = ["status", "changed_by", "reason", "changed_at"]
        read_only_fields = fields


class BookingSerializer(serializers.ModelSerializer):
    """Booking detail, including price breakdown and completion flags."""

    service = ServiceSummarySerializer(read_only=True)
    status_history = BookingStatusHistorySerializer(many=True, read_only=True)

    class Meta:
        model = Booking
        fields = [
            "id",
            "client",
            "vendor",
            "service",
            "scheduled_at",
            "latitude",
            "longitude",
            "address",
            "distance_km",
            "service_price",
            "distance_charge",
            "total_amount",
            "status",
            "payment_status",
            "client_marked_complete",
            "vendor_marked_complete",
            "accepted_at",
            "started_at",
            "completed_at",
            "completed_by",
            "cancelled_at",
            "cancellation_reason",
            "has_dispute",
            "active_dispute",
            "has_review",
            "client_notes",
            "vendor_notes",
            "status_history",
            "created_at",
        ]
        read_only_fields = fields


class BookingListSerializer(serializers.ModelSerializer):
    service = ServiceSummarySerializer(read_only=True)

    class Meta:
        model = Booking
        fields = [
            "id",
            "client",
            "vendor",
            "service",
            "scheduled_at",
            "total_amount",
            "status",
            "payment_status",
            "has_dispute",
            "created_at",
        ]
        read_only_fields = fields


class BookingCreateSerializer(serializers.Serializer):
    service_id = serializers.UUIDField()
    scheduled_at = serializers.DateTimeField()
    latitude = serializers.FloatField(min_value=-90, max_value=90, required=False, allow_null=True)
    longitude = serializers.FloatField(min_value=-180, max_value=180, required=False, allow_null=True)
    address = serializers.CharField(max_length=500, required=False, allow_blank=True, default="")
    notes = serializers.CharField(required=False, allow_blank=True, default="")

    def validate(self, attrs):
        if (attrs.get("latitude") is None) != (attrs.get("longitude") is None):
            raise serializers.ValidationError("latitude and longitude must be given together.")
        return attrs


class BookingFilterSerializer(serializers.Serializer):
    role = serializers.ChoiceField(choices=["client", "vendor"], required=False)
    status = serializers.ChoiceField(choices=BookingStatus.choices, required=False)


class ReasonSerializer(serializers.Serializer):
    reason = serializers.CharField(max_length=500, required=False, allow_blank=True, default="")


class NotesSerializer(serializers.Serializer):
    notes = serializers.CharField(allow_blank=True)
