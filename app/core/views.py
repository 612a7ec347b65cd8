"""
Infrastructure endpoints (not part of the billing domain).
"""

import logging

from django.core.cache import cache
from django.db import DatabaseError, connection
from django.http import JsonResponse

logger = logging.getLogger(__name__)


def health_check(request):
    """
    Health check for Docker, load balancers and the Celery beat host.

    The database is required; the Redis cache is reported but a cache outage
    only degrades the service.

    HTTP Status Codes:
        200: Database reachable
        503: Database unreachable

    Example Response:
        {"status": "healthy", "database": "connected", "cache": "connected"}
    """
    health_status = {
        "status": "healthy",
        "database": "unknown",
        "cache": "unknown",
    }
    status_code = 200

    try:
        with connection.cursor() as cursor:
            cursor.execute("SELECT 1")
            cursor.fetchone()
        health_status["database"] = "connected"
    except DatabaseError:
        logger.error("Health check: database unreachable", exc_info=True)
        health_status["database"] = "disconnected"
        health_status["status"] = "unhealthy"
        status_code = 503

    # django-redis is configured with IGNORE_EXCEPTIONS, so an outage shows up
    # as a cache miss rather than an exception
    cache.set("health_check", "ok", timeout=5)
    health_status["cache"] = (
        "connected" if cache.get("health_check") == "ok" else "disconnected"
    )

    return JsonResponse(health_status, status=status_code)
