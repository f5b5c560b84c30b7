"""
Rates, quotes and minimum-stay restrictions.

The browser calendar uses these to preview prices; the figures a booking is
actually charged are recomputed on the server when it is submitted.
"""

from __future__ import annotations

from datetime import date
from typing import Any

import structlog
from fastapi import APIRouter, Depends, HTTPException, Query

from yado_booking.booking.restrictions import render_message
from yado_booking.dependencies import get_booking_service
from yado_booking.routes._booking_helpers import rejected_400
from yado_booking.services.booking import BookingRejected, BookingService

logger = structlog.get_logger(__name__)
router = APIRouter()


@router.get("/rates")
def list_rates(service: BookingService = Depends(get_booking_service)) -> list[dict[str, Any]]:
    """
    List the special rates currently defined in Lark.

    A backend failure yields an empty list so the calendar still renders with
    standard rates.
    """
    try:
        return [rate.model_dump(mode="json") for rate in service.special_rates()]
    except Exception as e:
        logger.exception("special_rates_fetch_failed", error=str(e))
        return []


@router.get("/quote")
def quote(
    check_in: date = Query(..., description="Arrival date (YYYY-MM-DD)"),
    check_out: date = Query(..., description="Departure date (YYYY-MM-DD)"),
    guests: int = Query(..., ge=1, description="Number of guests"),
    service: BookingService = Depends(get_booking_service),
) -> dict[str, Any]:
    """
    Validate a stay against the minimum-stay policy and price it.

    Returns:
        dict: is_valid, message, nights, restriction and the full pricing breakdown

    Raises:
        HTTPException: 400 if the guest count is out of range
    """
    try:
        result = service.quote(check_in, check_out, guests)
        return {
            "is_valid": result.validation.is_valid,
            "message_key": result.validation.message,
            "message": render_message(result.validation.message, result.restriction),
            "nights": result.validation.nights,
            "restriction": result.restriction.model_dump(mode="json"),
            "pricing": result.pricing.model_dump(mode="json"),
        }
    except BookingRejected as e:
        raise rejected_400(e)
    except HTTPException:
        raise
    except Exception as e:
        logger.exception("quote_failed", error=str(e))
        raise HTTPException(status_code=500, detail="Internal server error")


@router.get("/restrictions")
def restrictions(
    check_in: date = Query(..., description="Candidate arrival date (YYYY-MM-DD)"),
    service: BookingService = Depends(get_booking_service),
) -> dict[str, Any]:
    """
    Describe the minimum-stay restriction for a check-in date.

    Example:
        >>> GET /api/restrictions?check_in=2026-03-10
        {"is_restricted": true, "min_nights": 3, "restriction_lift_date": "2026-02-20",
         "message_key": "restriction.min_nights_until_lift",
         "message": "Reservations of 3+ nights only until 2026-02-20",
         "min_check_out_date": "2026-03-13"}
    """
    restriction, min_check_out = service.restriction(check_in)
    body = restriction.model_dump(mode="json", exclude={"message"})
    body["message_key"] = restriction.message
    body["message"] = render_message(restriction.message, restriction)
    body["min_check_out_date"] = min_check_out.isoformat()
    return body
