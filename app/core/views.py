"""
Core views providing infrastructure endpoints and response helpers.

This module contains views that are not part of the business domain but are
essential for application infrastructure, such as health checks, and the
helper that turns a failed ServiceResult into a DRF response.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from django.core.cache import cache
from django.db import DatabaseError, connection
from django.http import JsonResponse
from rest_framework.response import Response

if TYPE_CHECKING:
    from core.services import ServiceResult

logger = logging.getLogger(__name__)


def service_error_response(result: ServiceResult) -> Response:
    """
    Build the error response for a failed ServiceResult.

    Body shape: {"error": ..., "error_code": ..., "details"?: ...}
    """
    return Response(result.to_response(), status=result.status_code)


def health_check(request):
    """
    Health check endpoint for monitoring and orchestration.

    Returns:
        JsonResponse with status and component health:
        - status: "healthy" or "unhealthy"
        - database: "connected" or "disconnected"
        - cache: "connected" or "disconnected"

    HTTP Status Codes:
        200: All systems operational
        503: Database unreachable
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
    except DatabaseError:
        logger.exception("Health check database probe failed")
        health_status["database"] = "disconnected"
        health_status["status"] = "unhealthy"
        is_healthy = False

    # Cache failure is not critical: sessions degrade but checkout still works
    try:
        cache.set("health_check", "ok", timeout=1)
        if cache.get("health_check") == "ok":
            health_status["cache"] = "connected"
        else:
            health_status["cache"] = "disconnected"
    except Exception:
        logger.warning("Health check cache probe failed", exc_info=True)
        health_status["cache"] = "disconnected"

    status_code = 200 if is_healthy else 503

    return JsonResponse(health_status, status=status_code)
