from __future__ import annotations

from typing import Any

import structlog
from fastapi import APIRouter, Depends, HTTPException, status

from yado_booking.dependencies import get_booking_service
from yado_booking.notifications.webhook import NotificationError
from yado_booking.payments.square import PaymentError, PaymentNotConfigured
from yado_booking.routes._booking_helpers import rejected_400, unavailable_409
from yado_booking.schemas.booking import PaymentCreatePayload
from yado_booking.services.booking import (
    BookingConfigurationError,
    BookingRejected,
    BookingService,
    DatesUnavailable,
)

logger = structlog.get_logger(__name__)
router = APIRouter()


@router.post("/payment", status_code=status.HTTP_201_CREATED)
def create_payment(
    payload: PaymentCreatePayload,
    service: BookingService = Depends(get_booking_service),
) -> dict[str, Any]:
    """
    Charge a card through Square and record the paid reservation.

    Args:
        payload: Card token from the Web Payments SDK plus guest details

    Returns:
        dict: Reservation, pricing, and the Square payment ID and status

    Raises:
        HTTPException: 400 on a booking-rule violation or declined card,
            409 if the dates are taken, 502 if the card was charged but Lark
            rejected the reservation, 500 otherwise
    """
    try:
        result = service.pay_and_reserve(payload)
        return {
            "success": True,
            "reservation": result.reservation,
            "pricing": result.pricing.model_dump(mode="json"),
            "payment_id": result.payment.get("id"),
            "payment_status": result.payment.get("status"),
        }
    except BookingRejected as e:
        raise rejected_400(e)
    except DatesUnavailable as e:
        raise unavailable_409(e)
    except (BookingConfigurationError, PaymentNotConfigured) as e:
        logger.error("payment_not_configured", error=str(e))
        raise HTTPException(status_code=500, detail="Payment service is not configured")
    except PaymentError as e:
        raise HTTPException(status_code=400, detail={"message": str(e), "detail": e.detail})
    except NotificationError as e:
        logger.error("paid_reservation_delivery_failed", error=str(e))
        raise HTTPException(
            status_code=502,
            detail="Payment completed but the reservation could not be recorded",
        )
    except HTTPException:
        raise
    except Exception as e:
        logger.exception("payment_failed", error=str(e))
        raise HTTPException(status_code=500, detail="Internal server error")
