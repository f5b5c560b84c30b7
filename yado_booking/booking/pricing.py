"""
Stay pricing.

The server re-derives every price with ``calculate_price`` rather than trusting
a client-side figure, so the calculation must be deterministic for identical
inputs.

Pricing rules:
    - The standard nightly rate is tiered by stay length (1 night, 2 nights,
      3+ nights) and applies uniformly to every night of the stay.
    - A special rate covering a night replaces the standard rate for that night.
    - Guests beyond ``base_guest_count`` pay a flat per-guest, per-night
      surcharge that special rates never change.

Example:
    >>> breakdown = calculate_price(date(2026, 3, 1), date(2026, 3, 4), 4)
    >>> breakdown.total_amount
    66000
"""

from __future__ import annotations

from datetime import date, datetime
from typing import Iterable

from pydantic import BaseModel, ConfigDict

from yado_booking.booking.dates import enumerate_nights, nights_between
from yado_booking.booking.models import EMPTY_BREAKDOWN, DailyRate, PricingBreakdown, SpecialRate
from yado_booking.booking.special_rates import resolve_special_rate
from yado_booking.config import (
    ADDITIONAL_GUEST_RATE,
    BASE_GUEST_COUNT,
    RATE_ONE_NIGHT,
    RATE_THREE_PLUS_NIGHTS,
    RATE_TWO_NIGHTS,
)


class InvalidPricingInput(ValueError):
    """Raised when calculate_price receives values it must not price."""


class RateTable(BaseModel):
    """
    Standard rates and the additional-guest surcharge.

    Attributes:
        one_night: Nightly rate for a 1-night stay
        two_nights: Nightly rate for a 2-night stay
        three_plus_nights: Nightly rate for stays of 3 nights or more
        base_guest_count: Guests covered by the nightly rate
        additional_guest_rate: Per-night charge for each guest beyond base_guest_count
    """

    model_config = ConfigDict(frozen=True)

    one_night: int = RATE_ONE_NIGHT
    two_nights: int = RATE_TWO_NIGHTS
    three_plus_nights: int = RATE_THREE_PLUS_NIGHTS
    base_guest_count: int = BASE_GUEST_COUNT
    additional_guest_rate: int = ADDITIONAL_GUEST_RATE

    def standard_rate(self, number_of_nights: int) -> int:
        """Return the standard nightly rate for a stay of the given length."""
        if number_of_nights <= 1:
            return self.one_night
        if number_of_nights == 2:
            return self.two_nights
        return self.three_plus_nights


DEFAULT_RATE_TABLE = RateTable()


def _require_date(name: str, value: object) -> None:
    if not isinstance(value, (date, datetime)):
        raise InvalidPricingInput(f"{name} must be a date, got {type(value).__name__}")


def _require_guest_count(number_of_guests: object) -> int:
    # bool is an int subclass; True guests is a caller bug, not one guest
    if isinstance(number_of_guests, bool) or not isinstance(number_of_guests, int):
        raise InvalidPricingInput(
            f"number_of_guests must be an integer, got {type(number_of_guests).__name__}"
        )
    if number_of_guests < 1:
        raise InvalidPricingInput("number_of_guests must be at least 1")
    return number_of_guests


def calculate_price(
    check_in: date | datetime,
    check_out: date | datetime,
    number_of_guests: int,
    special_rates: Iterable[SpecialRate] = (),
    rate_table: RateTable = DEFAULT_RATE_TABLE,
) -> PricingBreakdown:
    """
    Price a stay night by night.

    Args:
        check_in: Arrival date (inclusive)
        check_out: Departure date (exclusive)
        number_of_guests: Total guests, at least 1
        special_rates: Snapshot of special rates from the records backend
        rate_table: Standard rates and guest surcharge

    Returns:
        PricingBreakdown: Nightly breakdown and totals. A stay with zero or
        negative nights yields EMPTY_BREAKDOWN; rejecting such a stay is the
        restriction policy's job.

    Raises:
        InvalidPricingInput: If dates are not dates, or the guest count is not
            a positive integer
    """
    _require_date("check_in", check_in)
    _require_date("check_out", check_out)

    number_of_nights = nights_between(check_in, check_out)
    if number_of_nights <= 0:
        return EMPTY_BREAKDOWN

    guests = _require_guest_count(number_of_guests)
    rates = tuple(special_rates)
    standard_rate = rate_table.standard_rate(number_of_nights)

    nights: list[DailyRate] = []
    base_total = 0
    for night in enumerate_nights(check_in, check_out):
        resolved = resolve_special_rate(night, rates)
        if resolved is not None:
            daily = DailyRate(
                date=night,
                rate_per_night=resolved.rate_per_night,
                is_special_rate=True,
                special_rate_name=resolved.special_rate_name,
            )
        else:
            daily = DailyRate(date=night, rate_per_night=standard_rate, is_special_rate=False)
        nights.append(daily)
        base_total += daily.rate_per_night

    additional_guests = max(0, guests - rate_table.base_guest_count)
    additional_guest_total = additional_guests * rate_table.additional_guest_rate * number_of_nights

    return PricingBreakdown(
        number_of_nights=number_of_nights,
        number_of_guests=guests,
        dates=tuple(nights),
        standard_rate_per_night=standard_rate,
        base_total=base_total,
        additional_guests=additional_guests,
        additional_guest_total=additional_guest_total,
        total_amount=base_total + additional_guest_total,
    )
