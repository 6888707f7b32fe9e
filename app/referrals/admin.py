from django.contrib import admin

from referrals.models import Referral


@admin.register(Referral)
class ReferralAdmin(admin.ModelAdmin):
    list_display = ["referrer", "referee", "referral_code", "status", "completed_at", "created_at"]
    list_filter = ["status"]
    search_fields = ["referral_code", "referrer__email", "referee__email"]
    readonly_fields = ["referrer", "referee", "referral_code", "first_booking", "completed_at"]
