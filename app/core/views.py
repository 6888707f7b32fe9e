"""
Core views providing infrastructure endpoints and API error rendering.

- health_check: liveness/readiness probe
- api_exception_handler: DRF EXCEPTION_HANDLER that renders domain errors
"""

import logging

from django.db import connection
from django.http import JsonResponse
from rest_framework.response import Response
from rest_framework.views import exception_handler

from core.exceptions import BaseApplicationError

logger = logging.getLogger(__name__)


def health_check(request):
    """
    Health check endpoint for monitoring and orchestration.

    Returns:
        JsonResponse with status and component health. 200 when the
        database answers, 503 otherwise. Cache failures degrade but do
        not fail the check.
    """
    health_status = {
        "status": "healthy",
        "database": "unknown",
        "cache": "unknown",
    }
    is_healthy = True

    try:
        with connection.cursor() as cursor:
            cursor.execute("SELECT 1")
            cursor.fetchone()
        health_status["database"] = "connected"
    except Exception:
        logger.exception("Health check: database unreachable")
        health_status["database"] = "disconnected"
        health_status["status"] = "unhealthy"
        is_healthy = False

    try:
        from django.core.cache import cache

        cache.set("health_check", "ok", timeout=1)
        if cache.get("health_check") == "ok":
            health_status["cache"] = "connected"
        else:
            health_status["cache"] = "disconnected"
    except Exception:
        logger.warning("Health check: cache unreachable", exc_info=True)
        health_status["cache"] = "disconnected"

    status_code = 200 if is_healthy else 503

    return JsonResponse(health_status, status=status_code)


def api_exception_handler(exc, context):
    """
    Render BaseApplicationError subclasses as their to_dict() payload.

    Everything else falls through to DRF's default handler (serializer
    validation, authentication, throttling).
    """
    if isinstance(exc, BaseApplicationError):
        view = context.get("view")
        logger.info(
            f"Request rejected: {exc.error_code}",
            extra={
                "error_code": exc.error_code,
                "status": exc.http_status,
                "view": view.__class__.__name__ if view else None,
            },
        )
        return Response(exc.to_dict(), status=exc.http_status)

    return exception_handler(exc, context)
