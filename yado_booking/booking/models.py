"""
Value types for the booking core.

Money is always an ``int`` in the smallest unit of the configured currency.
"""

from __future__ import annotations

import datetime as dt
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, model_validator


class Stay(BaseModel):
    """A candidate booking interval. check_out_date is exclusive."""

    model_config = ConfigDict(frozen=True)

    check_in_date: dt.date
    check_out_date: dt.date
    number_of_guests: int = Field(..., ge=1)

    @model_validator(mode="after")
    def _check_out_after_check_in(self) -> "Stay":
        if self.check_out_date <= self.check_in_date:
            raise ValueError("check_out_date must be after check_in_date")
        return self


class SpecialRate(BaseModel):
    """
    Named override of the nightly rate for a closed date interval.

    Both start_date and end_date are inclusive. When several rates cover the
    same night the highest priority wins.
    """

    model_config = ConfigDict(frozen=True)

    id: str
    name: str
    start_date: dt.date
    end_date: dt.date
    price_per_night: int = Field(..., ge=0)
    priority: int = 0

    @model_validator(mode="after")
    def _start_not_after_end(self) -> "SpecialRate":
        if self.start_date > self.end_date:
            raise ValueError("start_date must not be after end_date")
        return self

    def covers(self, night: dt.date) -> bool:
        return self.start_date <= night <= self.end_date


class ResolvedRate(BaseModel):
    model_config = ConfigDict(frozen=True)

    rate_per_night: int
    is_special_rate: bool
    special_rate_name: Optional[str] = None


class DailyRate(BaseModel):
    """Price of one night of a stay."""

    model_config = ConfigDict(frozen=True)

    date: dt.date
    rate_per_night: int
    is_special_rate: bool
    special_rate_name: Optional[str] = None


class PricingBreakdown(BaseModel):
    """
    Fully priced stay.

    total_amount is always base_total + additional_guest_total, and base_total
    is always the sum of the nightly rates in ``dates``.
    """

    model_config = ConfigDict(frozen=True)

    number_of_nights: int = 0
    number_of_guests: int = 0
    dates: tuple[DailyRate, ...] = ()
    standard_rate_per_night: int = 0
    base_total: int = 0
    additional_guests: int = 0
    additional_guest_total: int = 0
    total_amount: int = 0

    @property
    def has_special_rate(self) -> bool:
        return any(night.is_special_rate for night in self.dates)


EMPTY_BREAKDOWN = PricingBreakdown()


class BookingRestriction(BaseModel):
    """Minimum-stay decision for one check-in date."""

    model_config = ConfigDict(frozen=True)

    is_restricted: bool
    min_nights: int = Field(..., ge=1)
    restriction_lift_date: dt.date
    message: str


class NightsValidation(BaseModel):
    model_config = ConfigDict(frozen=True)

    is_valid: bool
    message: str
    nights: int


class ReservationRecord(BaseModel):
    """
    Reservation as read from the records backend.

    Dates are optional because external records may be incomplete; the
    availability projection skips records without both dates.
    """

    model_config = ConfigDict(frozen=True)

    id: str
    reservation_id: str = ""
    guest_name: str = ""
    check_in_date: Optional[dt.date] = None
    check_out_date: Optional[dt.date] = None
    status: Optional[str] = None


class AvailabilityDay(BaseModel):
    model_config = ConfigDict(frozen=True)

    date: dt.date
    is_booked: bool


class PaymentMaster(BaseModel):
    """Pre-issued payment link for a fixed amount."""

    model_config = ConfigDict(frozen=True)

    amount: int = Field(..., gt=0)
    url: str = Field(..., min_length=1)
