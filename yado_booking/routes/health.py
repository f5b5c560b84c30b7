"""
Health and readiness check endpoints for container probes.

Liveness only says the process is up. Readiness says the service can take
bookings: Lark credentials, the base and reservations table, and the
reservation webhook are all configured.
"""

from __future__ import annotations

import structlog
from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse

from yado_booking.dependencies import get_booking_service
from yado_booking.services.booking import BookingService

logger = structlog.get_logger(__name__)

router = APIRouter()


@router.get("/health")
def health_check() -> JSONResponse:
    """
    Liveness probe endpoint.

    Example:
        >>> GET /health
        {"status": "ok"}
    """
    return JSONResponse(content={"status": "ok"})


@router.get("/ready")
def readiness_check(service: BookingService = Depends(get_booking_service)) -> JSONResponse:
    """
    Readiness probe endpoint.

    Returns 200 when the records backend and reservation webhook are
    configured, 503 otherwise.

    Example:
        >>> GET /ready
        {"status": "ready", "checks": {"records_backend": "ok", "reservation_webhook": "ok"}}
    """
    checks = {
        "records_backend": "ok" if service.records.is_configured else "not_configured",
        "reservation_webhook": "ok" if service.webhook_url else "not_configured",
    }

    if all(value == "ok" for value in checks.values()):
        return JSONResponse(content={"status": "ready", "checks": checks})

    logger.error("readiness_check_failed", checks=checks)
    return JSONResponse(status_code=503, content={"status": "not ready", "checks": checks})
