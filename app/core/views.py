"""
Core views providing infrastructure endpoints.

This module contains views that are not part of the business domain but are
essential for application infrastructure, such as health checks.
"""

import logging

from django.db import DatabaseError, connection
from django.http import JsonResponse
from django.utils import timezone

logger = logging.getLogger(__name__)

APP_NAME = "balanceflow"


def health_check(request):
    """
    Health check endpoint for monitoring and orchestration.

    Public: no app token is required. Used by Docker health checks,
    load balancers and uptime monitors.

    Returns:
        JsonResponse with status and component health:
        - status: "ok" or "unhealthy"
        - app: application name
        - database: "connected" or "disconnected"
        - timestamp: ISO-8601 server time

    HTTP Status Codes:
        200: Database reachable
        503: Database unreachable

    Example Response:
        {
            "status": "ok",
            "app": "balanceflow",
            "database": "connected",
            "timestamp": "2024-05-01T10:00:00+00:00"
        }
    """
    health_status = {
        "status": "ok",
        "app": APP_NAME,
        "database": "unknown",
        "timestamp": timezone.now().isoformat(),
    }

    try:
        with connection.cursor() as cursor:
            cursor.execute("SELECT 1")
            cursor.fetchone()
        health_status["database"] = "connected"
    except DatabaseError:
        logger.error("Health check could not reach the database", exc_info=True)
        health_status["database"] = "disconnected"
        health_status["status"] = "unhealthy"

    status_code = 200 if health_status["database"] == "connected" else 503

    return JsonResponse(health_status, status=status_code)
