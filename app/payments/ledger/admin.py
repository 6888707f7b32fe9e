"""
Django admin configuration for ledger models.

Transactions are immutable: no add/edit/delete through the admin.
Corrections are new transactions recorded through WalletService.
"""

from django.contrib import admin

from .models import Transaction, Wallet


@admin.register(Wallet)
class WalletAdmin(admin.ModelAdmin):
    list_display = ["id", "user", "balance", "currency", "next_sequence", "updated_at"]
    search_fields = ["id", "user__email"]
    readonly_fields = ["id", "user", "balance", "currency", "next_sequence", "created_at", "updated_at"]
    ordering = ["-updated_at"]

    def has_add_permission(self, request) -> bool:
        return False

    def has_delete_permission(self, request, obj=None) -> bool:
        return False


@admin.register(Transaction)
class TransactionAdmin(admin.ModelAdmin):
    """
    Admin configuration for Transaction.

    Read-only view of the wallet ledger; balance_before/balance_after make
    each row checkable on its own.
    """

    list_display = [
        "reference",
        "created_at",
        "user",
        "type",
        "amount",
        "balance_before",
        "balance_after",
        "sequence",
    ]
    list_filter = ["type", "created_at"]
    search_fields = ["reference", "user__email", "description"]
    date_hierarchy = "created_at"
    ordering = ["-created_at"]

    fieldsets = (
        (
            "Entry Details",
            {
                "fields": (
                    "id",
                    "wallet",
                    "user",
                    "type",
                    "amount",
                    "balance_before",
                    "balance_after",
                    "sequence",
                    "currency",
                    "created_at",
                ),
            },
        ),
        (
            "Reference",
            {
                "fields": ("reference", "booking", "payment", "withdrawal"),
            },
        ),
        (
            "Additional Info",
            {
                "fields": ("description", "metadata"),
            },
        ),
    )

    def get_readonly_fields(self, request, obj=None):
        return [f.name for f in self.model._meta.fields]

    def has_add_permission(self, request) -> bool:
        return False

    def has_change_permission(self, request, obj=None) -> bool:
        return False

    def has_delete_permission(self, request, obj=None) -> bool:
        return False
