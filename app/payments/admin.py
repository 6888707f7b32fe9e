"""
Payment admin configuration.

Registers payment domain models with the Django admin. Money-moving
state (escrow status, withdrawal status) is read-only here; it changes
only through EscrowService and WithdrawalService.
"""

from django.contrib import admin

from payments.ledger.admin import TransactionAdmin, WalletAdmin
from payments.models import Payment, VendorSubscription, WebhookEvent, Withdrawal

__all__ = [
    "PaymentAdmin",
    "TransactionAdmin",
    "VendorSubscriptionAdmin",
    "WalletAdmin",
    "WebhookEventAdmin",
    "WithdrawalAdmin",
]


@admin.register(Payment)
class PaymentAdmin(admin.ModelAdmin):
    list_display = [
        "reference",
        "booking",
        "client",
        "vendor",
        "amount",
        "platform_fee",
        "status",
        "escrow_status",
        "created_at",
    ]
    list_filter = ["status", "escrow_status", "created_at"]
    search_fields = ["reference", "booking__id", "client__email", "vendor__email"]
    readonly_fields = [
        "id",
        "booking",
        "client",
        "vendor",
        "amount",
        "currency",
        "commission_rate",
        "platform_fee",
        "vendor_amount",
        "status",
        "escrow_status",
        "reference",
        "access_code",
        "authorization_url",
        "authorization_code",
        "gateway_response",
        "expires_at",
        "paid_at",
        "held_at",
        "released_at",
        "refunded_at",
        "failed_at",
        "refund_amount",
        "vendor_payment_amount",
        "refund_reason",
        "failure_reason",
        "created_at",
        "updated_at",
    ]
    date_hierarchy = "created_at"
    ordering = ["-created_at"]

    def has_add_permission(self, request) -> bool:
        return False


@admin.register(Withdrawal)
class WithdrawalAdmin(admin.ModelAdmin):
    """
    Admin configuration for Withdrawal.

    Processing and rejection go through the REST actions so the wallet
    is re-credited consistently; the admin only shows state.
    """

    list_display = [
        "reference",
        "user",
        "amount",
        "fee",
        "net_amount",
        "bank_name",
        "status",
        "created_at",
    ]
    list_filter = ["status", "created_at"]
    search_fields = ["reference", "user__email", "account_number", "transfer_code"]
    readonly_fields = [
        "id",
        "user",
        "amount",
        "fee",
        "net_amount",
        "currency",
        "status",
        "reference",
        "recipient_code",
        "transfer_code",
        "processed_by",
        "processed_at",
        "completed_at",
        "failed_at",
        "rejected_at",
        "failure_reason",
        "rejection_reason",
        "created_at",
        "updated_at",
    ]
    ordering = ["-created_at"]

    def has_add_permission(self, request) -> bool:
        return False


@admin.register(VendorSubscription)
class VendorSubscriptionAdmin(admin.ModelAdmin):
    list_display = ["vendor", "plan", "status", "starts_at", "expires_at"]
    list_filter = ["plan", "status"]
    search_fields = ["vendor__email"]


@admin.register(WebhookEvent)
class WebhookEventAdmin(admin.ModelAdmin):
    """
    Admin configuration for WebhookEvent.

    Provides visibility into webhook processing status.
    Webhook events are immutable once received.
    """

    list_display = [
        "event_key",
        "event_type",
        "status",
        "retry_count",
        "processed_at",
        "created_at",
    ]
    list_filter = ["status", "event_type", "created_at"]
    search_fields = ["event_key", "reference"]
    readonly_fields = [
        "id",
        "event_key",
        "event_type",
        "reference",
        "payload",
        "processed_at",
        "created_at",
        "updated_at",
    ]
    date_hierarchy = "created_at"
    ordering = ["-created_at"]

    fieldsets = (
        (
            None,
            {
                "fields": ("id", "event_key", "event_type", "reference", "status"),
            },
        ),
        (
            "Processing",
            {
                "fields": ("processed_at", "error_message", "retry_count"),
            },
        ),
        (
            "Payload",
            {
                "classes": ("collapse",),
                "fields": ("payload",),
            },
        ),
    )
