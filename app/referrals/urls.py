"""
URL configuration for the referrals app.
"""

from django.urls import path

from referrals.views import ApplyReferralCodeView, ReferralListView, ReferralStatsView

app_name = "referrals"

urlpatterns = [
    path("referrals/", ReferralListView.as_view(), name="referral-list"),
    path("referrals/apply/", ApplyReferralCodeView.as_view(), name="referral-apply"),
    path("referrals/stats/", ReferralStatsView.as_view(), name="referral-stats"),
]
