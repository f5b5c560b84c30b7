from __future__ import annotations

from datetime import date
from typing import Any, Optional

import structlog
from fastapi import APIRouter, Depends, HTTPException, Query, status

from yado_booking.dependencies import get_booking_service
from yado_booking.notifications.webhook import NotificationError
from yado_booking.routes._booking_helpers import rejected_400, unavailable_409
from yado_booking.routes.availability import validate_window_or_400
from yado_booking.schemas.booking import ReservationCreatePayload
from yado_booking.services.booking import (
    BookingConfigurationError,
    BookingRejected,
    BookingService,
    DatesUnavailable,
)

logger = structlog.get_logger(__name__)
router = APIRouter()

BOOKED_DATES_ACTION = "booked-dates"


@router.get("/reservations")
def list_reservations(
    action: Optional[str] = Query(None, description='Only "booked-dates" is supported'),
    start: Optional[date] = Query(None),
    end: Optional[date] = Query(None),
    service: BookingService = Depends(get_booking_service),
) -> dict[str, Any]:
    """
    List confirmed reservations, or the booked dates of a window.

    Guest names are not exposed; this endpoint is public.

    Raises:
        HTTPException: 400 for an unknown action or missing window bounds
    """
    if action is not None and action != BOOKED_DATES_ACTION:
        raise HTTPException(status_code=400, detail=f"Unknown action: {action}")
    if action == BOOKED_DATES_ACTION and (start is None or end is None):
        raise HTTPException(status_code=400, detail="start and end are required")
    validate_window_or_400(start, end)

    try:
        if action == BOOKED_DATES_ACTION and start is not None and end is not None:
            days = service.availability(start, end)
            return {"booked_dates": [day.model_dump(mode="json") for day in days]}

        return {
            "reservations": [
                record.model_dump(mode="json", exclude={"guest_name"})
                for record in service.confirmed_reservations()
            ]
        }
    except HTTPException:
        raise
    except Exception as e:
        logger.exception("reservations_fetch_failed", error=str(e))
        raise HTTPException(status_code=500, detail="Failed to fetch reservations")


@router.post("/reservations", status_code=status.HTTP_201_CREATED)
def create_reservation(
    payload: ReservationCreatePayload,
    service: BookingService = Depends(get_booking_service),
) -> dict[str, Any]:
    """
    Accept a pay-later reservation request.

    Args:
        payload: Guest details, dates and party size

    Returns:
        dict: The reservation as delivered to Lark and its pricing breakdown

    Raises:
        HTTPException: 400 on a booking-rule violation, 409 if the dates are
            taken, 502 if Lark rejects the reservation, 500 otherwise
    """
    try:
        result = service.create_reservation(payload)
        return {
            "success": True,
            "reservation": result.reservation,
            "pricing": result.pricing.model_dump(mode="json"),
        }
    except BookingRejected as e:
        raise rejected_400(e)
    except DatesUnavailable as e:
        raise unavailable_409(e)
    except BookingConfigurationError as e:
        logger.error("reservation_not_configured", error=str(e))
        raise HTTPException(status_code=500, detail="Reservation service is not configured")
    except NotificationError as e:
        logger.error("reservation_delivery_failed", error=str(e))
        raise HTTPException(status_code=502, detail="Failed to record reservation")
    except HTTPException:
        raise
    except Exception as e:
        logger.exception("reservation_creation_failed", error=str(e))
        raise HTTPException(status_code=500, detail="Internal server error")
