"""Translate booking-layer exceptions into HTTP errors."""

from __future__ import annotations

from fastapi import HTTPException, status

from yado_booking.booking.restrictions import render_message
from yado_booking.services.booking import BookingRejected, DatesUnavailable


def rejected_400(error: BookingRejected) -> HTTPException:
    """Render a rejection's message key and wrap it in a 400."""
    return HTTPException(
        status_code=status.HTTP_400_BAD_REQUEST,
        detail={
            "code": error.message,
            "message": render_message(error.message, error.restriction),
        },
    )


def unavailable_409(error: DatesUnavailable) -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_409_CONFLICT,
        detail={"code": str(error), "message": render_message(str(error))},
    )
