"""Calendar availability derived from confirmed reservations and owner blocks."""

from __future__ import annotations

from datetime import date
from typing import Any, Optional

import structlog
from fastapi import APIRouter, Depends, HTTPException, Query

from yado_booking.dependencies import get_booking_service
from yado_booking.services.booking import BookingService

logger = structlog.get_logger(__name__)
router = APIRouter()

# Roughly three years; keeps one request from walking an unbounded range
MAX_WINDOW_DAYS = 1100


def validate_window_or_400(start: Optional[date], end: Optional[date]) -> None:
    """
    Require both window bounds or neither, and cap the window length.

    Raises:
        HTTPException: 400 if only one bound is given or the window is too long
    """
    if (start is None) != (end is None):
        raise HTTPException(status_code=400, detail="start and end must be given together")
    if start is not None and end is not None and (end - start).days > MAX_WINDOW_DAYS:
        raise HTTPException(
            status_code=400, detail=f"Window must not exceed {MAX_WINDOW_DAYS} days"
        )


@router.get("/availability")
def availability(
    start: Optional[date] = Query(None, description="First date of the window (inclusive)"),
    end: Optional[date] = Query(None, description="Last date of the window (inclusive)"),
    service: BookingService = Depends(get_booking_service),
) -> dict[str, Any]:
    """
    Project availability onto a window, or list every booked date ahead.

    Without ``start``/``end`` this returns the booked dates from today through
    two years ahead; with both it returns one entry per date of the window.

    Example:
        >>> GET /api/availability?start=2026-05-01&end=2026-05-03
        {"days": [{"date": "2026-05-01", "is_booked": false}, ...]}
    """
    validate_window_or_400(start, end)
    try:
        if start is None or end is None:
            return {"booked_dates": [d.isoformat() for d in service.booked_dates_ahead()]}
        return {"days": [day.model_dump(mode="json") for day in service.availability(start, end)]}
    except HTTPException:
        raise
    except Exception as e:
        logger.exception("availability_failed", error=str(e))
        raise HTTPException(status_code=500, detail="Failed to fetch availability")
