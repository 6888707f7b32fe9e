"""
URL configuration for the bookings app.

Routes:
    bookings/                - List, create
    bookings/stats/          - Per-status counts
    bookings/{id}/...        - Detail and lifecycle actions

Included at /api/v1/ by config/urls.py.
"""

from django.urls import include, path
from rest_framework.routers import SimpleRouter

from bookings.views import BookingViewSet

router = SimpleRouter()
router.register(r"bookings", BookingViewSet, basename="booking")

app_name = "bookings"

urlpatterns = [
    path("", include(router.urls)),
]
