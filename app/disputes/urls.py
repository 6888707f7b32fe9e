"""
URL configuration for the disputes app.

Included at /api/v1/ by config/urls.py.
"""

from django.urls import include, path
from rest_framework.routers import SimpleRouter

from disputes.views import DisputeViewSet

router = SimpleRouter()
router.register(r"disputes", DisputeViewSet, basename="dispute")

app_name = "disputes"

urlpatterns = [
    path("", include(router.urls)),
]
