from datetime import date
from typing import Literal

from pydantic import BaseModel, EmailStr, Field


class ReservationCreatePayload(BaseModel):
    """
    Schema for a reservation request submitted from the booking form.
    """

    guest_name: str = Field(..., min_length=1, description="Guest full name")
    email: EmailStr = Field(..., description="Guest email address")
    check_in_date: date = Field(..., description="Arrival date (YYYY-MM-DD)")
    check_out_date: date = Field(..., description="Departure date (YYYY-MM-DD), exclusive")
    number_of_guests: int = Field(..., ge=1, description="Total number of guests")
    payment_status: Literal["Pending"] = Field("Pending", description="Pay-later bookings start unpaid")
    payment_method: Literal["AirPAY"] = Field("AirPAY", description="Payment link provider")


class PaymentCreatePayload(BaseModel):
    """
    Schema for a paid booking: the reservation fields plus the card token
    produced by the Square Web Payments SDK.
    """

    source_id: str = Field(..., min_length=1, description="Square card token")
    guest_name: str = Field(..., min_length=1, description="Guest full name")
    email: EmailStr = Field(..., description="Guest email address")
    check_in_date: date = Field(..., description="Arrival date (YYYY-MM-DD)")
    check_out_date: date = Field(..., description="Departure date (YYYY-MM-DD), exclusive")
    number_of_guests: int = Field(..., ge=1, description="Total number of guests")

