"""
DRF serializers for disputes.
"""

from __future__ import annotations

from rest_framework import serializers

from disputes.models import (
    Dispute,
    DisputeCategory,
    DisputeEvidence,
    DisputeMessage,
    DisputePriority,
    DisputeResolution,
    DisputeStatus,
    EvidenceType,
)


class DisputeEvidenceSerializer(serializers.ModelSerializer):
    class Meta:
        model = DisputeEvidence
        fields = ["id", "type", "content", "uploaded_by", "uploaded_at"]
        read_only_fields = fields


class DisputeMessageSerializer(serializers.ModelSerializer):
    class Meta:
        model = DisputeMessage
        fields = ["id", "sender", "message", "attachments", "sent_at"]
        read_only_fields = fields


class DisputeSerializer(serializers.ModelSerializer):
    """Full dispute, including evidence and the message thread."""

    evidence = DisputeEvidenceSerializer(many=True, read_only=True)
    messages = DisputeMessageSerializer(many=True, read_only=True)

    class Meta:
        model = Dispute
        fields = [
            "id",
            "booking",
            "raised_by",
            "against",
            "reason",
            "description",
            "category",
            "status",
            "priority",
            "assigned_to",
            "reviewed_at",
            "resolution",
            "resolution_details",
            "refund_amount",
            "vendor_payment_amount",
            "resolved_by",
            "resolved_at",
            "closed_by",
            "closed_at",
            "evidence",
            "messages",
            "created_at",
            "updated_at",
        ]
        read_only_fields = fields


class DisputeListSerializer(serializers.ModelSerializer):
    class Meta:
        model = Dispute
        fields = [
            "id",
            "booking",
            "raised_by",
            "against",
            "reason",
            "category",
            "status",
            "priority",
            "assigned_to",
            "created_at",
        ]
        read_only_fields = fields


class EvidenceItemSerializer(serializers.Serializer):
    type = serializers.ChoiceField(choices=EvidenceType.choices)
    content = serializers.CharField(max_length=2000)


class DisputeCreateSerializer(serializers.Serializer):
    booking_id = serializers.UUIDField()
    reason = serializers.CharField(min_length=10, max_length=200)
    description = serializers.CharField(min_length=20, max_length=2000)
    category = serializers.ChoiceField(choices=DisputeCategory.choices)
    evidence = EvidenceItemSerializer(many=True, required=False, default=list)


class AddEvidenceSerializer(serializers.Serializer):
    evidence = EvidenceItemSerializer(many=True, allow_empty=False)


class AddMessageSerializer(serializers.Serializer):
    message = serializers.CharField(max_length=1000)
    attachments = serializers.ListField(
        child=serializers.URLField(),
        required=False,
        default=list,
    )


class AssignDisputeSerializer(serializers.Serializer):
    assign_to_id = serializers.UUIDField()


class UpdatePrioritySerializer(serializers.Serializer):
    priority = serializers.ChoiceField(choices=DisputePriority.choices)


class ResolveDisputeSerializer(serializers.Serializer):
    """
    Resolution request.

    refund_amount and vendor_payment_amount are only read for
    partial_refund, where both are required.
    """

    resolution = serializers.ChoiceField(choices=DisputeResolution.choices)
    resolution_details = serializers.CharField(min_length=20, max_length=1000)
    refund_amount = serializers.IntegerField(min_value=0, required=False, allow_null=True)
    vendor_payment_amount = serializers.IntegerField(min_value=0, required=False, allow_null=True)

    def validate(self, attrs):
        if attrs["resolution"] == DisputeResolution.PARTIAL_REFUND:
            missing = [
                field
                for field in ("refund_amount", "vendor_payment_amount")
                if attrs.get(field) is None
            ]
            if missing:
                raise serializers.ValidationError(
                    {field: "Required for a partial refund." for field in missing}
                )
        return attrs


class DisputeFilterSerializer(serializers.Serializer):
    status = serializers.ChoiceField(choices=DisputeStatus.choices, required=False)
    category = serializers.ChoiceField(choices=DisputeCategory.choices, required=False)
    priority = serializers.ChoiceField(choices=DisputePriority.choices, required=False)
    assigned_to = serializers.UUIDField(required=False)
