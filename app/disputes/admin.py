"""
Dispute admin configuration.

Resolution moves money, so it is only available through the API
(DisputeService.resolve); the admin shows disputes and their threads.
"""

from django.contrib import admin

from disputes.models import Dispute, DisputeEvidence, DisputeMessage


class DisputeEvidenceInline(admin.TabularInline):
    model = DisputeEvidence
    extra = 0
    can_delete = False
    readonly_fields = ["type", "content", "uploaded_by", "uploaded_at"]


class DisputeMessageInline(admin.TabularInline):
    model = DisputeMessage
    extra = 0
    can_delete = False
    readonly_fields = ["sender", "message", "attachments", "sent_at"]


@admin.register(Dispute)
class DisputeAdmin(admin.ModelAdmin):
    list_display = [
        "id",
        "booking",
        "raised_by",
        "category",
        "status",
        "priority",
        "assigned_to",
        "created_at",
    ]
    list_filter = ["status", "category", "priority", "created_at"]
    search_fields = ["id", "booking__id", "raised_by__email", "against__email", "reason"]
    readonly_fields = [
        "id",
        "booking",
        "raised_by",
        "against",
        "status",
        "resolution",
        "resolution_details",
        "refund_amount",
        "vendor_payment_amount",
        "resolved_by",
        "resolved_at",
        "closed_by",
        "closed_at",
        "created_at",
        "updated_at",
    ]
    inlines = [DisputeEvidenceInline, DisputeMessageInline]
    ordering = ["-created_at"]

    def has_add_permission(self, request) -> bool:
        return False
