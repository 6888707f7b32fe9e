"""
Booking admin configuration.

Status and payment status are read-only: changes go through
BookingService so escrow moves with them.
"""

from django.contrib import admin

from bookings.models import Booking, BookingStatusHistory, Service


@admin.register(Service)
class ServiceAdmin(admin.ModelAdmin):
    list_display = ["name", "vendor", "base_price", "is_active", "bookings_count", "completed_bookings_count"]
    list_filter = ["is_active"]
    search_fields = ["name", "vendor__email"]
    readonly_fields = ["bookings_count", "completed_bookings_count"]


class BookingStatusHistoryInline(admin.TabularInline):
    model = BookingStatusHistory
    extra = 0
    can_delete = False
    readonly_fields = ["status", "changed_by", "reason", "changed_at"]

    def has_add_permission(self, request, obj=None) -> bool:
        return False


@admin.register(Booking)
class BookingAdmin(admin.ModelAdmin):
    list_display = [
        "id",
        "client",
        "vendor",
        "service",
        "total_amount",
        "status",
        "payment_status",
        "has_dispute",
        "scheduled_at",
    ]
    list_filter = ["status", "payment_status", "has_dispute"]
    search_fields = ["id", "client__email", "vendor__email", "service__name"]
    readonly_fields = [
        "status",
        "payment_status",
        "service_price",
        "distance_charge",
        "total_amount",
        "distance_km",
        "client_marked_complete",
        "vendor_marked_complete",
        "accepted_at",
        "started_at",
        "completed_at",
        "completed_by",
        "cancelled_at",
        "cancelled_by",
        "has_dispute",
        "active_dispute",
    ]
    inlines = [BookingStatusHistoryInline]
    date_hierarchy = "created_at"
    ordering = ["-created_at"]
