"""
URL configuration for the Django application.

The `urlpatterns` list routes URLs to views. This is the root URL configuration
that includes all app-specific routes.

URL Structure:
    /                              - ReDoc API documentation
    /admin/                        - Django admin interface
    /health/                       - Health check endpoint (for load balancers, Docker)
    /schema/                       - OpenAPI schema (YAML)
    /api/v1/auth/                  - Authentication endpoints
        token/                     - Obtain JWT pair
        token/refresh/             - Refresh access token
        me/                        - Current user and vendor profile
    /api/v1/bookings/              - Booking lifecycle
    /api/v1/payments/              - Payment initialize/verify, Paystack webhook
    /api/v1/wallet/                - Wallet, transactions, PIN, withdrawals
    /api/v1/disputes/              - Dispute lifecycle
    /api/v1/referrals/             - Referral codes and rewards

For more information, see:
https://docs.djangoproject.com/en/5.2/topics/http/urls/
"""

from django.contrib import admin
from django.urls import include, path
from drf_spectacular.views import SpectacularAPIView, SpectacularRedocView

from core.views import health_check

# =============================================================================
# API v1 Routes
# =============================================================================
# All routes here are prefixed with /api/v1/ automatically
api_v1_patterns = [
    # Authentication (SimpleJWT)
    path("auth/", include("authentication.urls")),
    # Bookings
    path("", include("bookings.urls")),
    # Payments and wallet
    path("", include("payments.urls")),
    # Disputes
    path("", include("disputes.urls")),
    # Referrals
    path("", include("referrals.urls")),
]

urlpatterns = [
    # Documentation
    path("", SpectacularRedocView.as_view(url_name="schema"), name="redoc"),
    path("schema/", SpectacularAPIView.as_view(), name="schema"),
    # Admin
    path("admin/", admin.site.urls),
    # Health check (Docker, Kubernetes, load balancers)
    path("health/", health_check, name="health_check"),
    # API v1
    path("api/v1/", include(api_v1_patterns)),
]

# =============================================================================
# Admin Site Customization
# =============================================================================
admin.site.site_header = "Bookings Admin"
admin.site.site_title = "Bookings Admin Portal"
admin.site.index_title = "Bookings, escrow and disputes"
