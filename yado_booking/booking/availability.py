"""Project confirmed reservations and owner blocks onto a calendar."""

from __future__ import annotations

from datetime import date
from typing import Iterable, Optional

from yado_booking.booking.dates import enumerate_dates, enumerate_nights
from yado_booking.booking.models import AvailabilityDay, ReservationRecord, Stay

BOOKED_DATES_HORIZON_YEARS = 2


def booked_date_set(
    confirmed_stays: Iterable[ReservationRecord],
    blocked_dates: Iterable[Optional[date]] = (),
) -> set[date]:
    """
    Collect every date that cannot take a new arrival.

    Each stay occupies check-in through the night before check-out; the
    check-out day stays free. Stays missing either date are skipped so one
    incomplete record cannot break the calendar.
    """
    booked: set[date] = set()
    for stay in confirmed_stays:
        check_in = getattr(stay, "check_in_date", None)
        check_out = getattr(stay, "check_out_date", None)
        if not isinstance(check_in, date) or not isinstance(check_out, date):
            continue
        booked.update(enumerate_nights(check_in, check_out))

    booked.update(d for d in blocked_dates if isinstance(d, date))
    return booked


def project_availability(
    confirmed_stays: Iterable[ReservationRecord],
    blocked_dates: Iterable[Optional[date]],
    window_start: date,
    window_end: date,
) -> list[AvailabilityDay]:
    """
    Mark every date of a window as booked or free.

    Args:
        confirmed_stays: Snapshot of confirmed reservations
        blocked_dates: Dates the owner closed manually
        window_start: First date of the window (inclusive)
        window_end: Last date of the window (inclusive)

    Returns:
        list[AvailabilityDay]: One entry per date, chronological; empty when
        window_end is before window_start
    """
    booked = booked_date_set(confirmed_stays, blocked_dates)
    return [
        AvailabilityDay(date=day, is_booked=day in booked)
        for day in enumerate_dates(window_start, window_end)
    ]


def booked_dates_ahead(
    confirmed_stays: Iterable[ReservationRecord],
    blocked_dates: Iterable[Optional[date]],
    today: date,
    years: int = BOOKED_DATES_HORIZON_YEARS,
) -> list[date]:
    """Return the booked dates from today through the same day ``years`` ahead."""
    try:
        horizon = today.replace(year=today.year + years)
    except ValueError:
        # Feb 29 -> Feb 28
        horizon = today.replace(year=today.year + years, day=28)
    return [
        day.date
        for day in project_availability(confirmed_stays, blocked_dates, today, horizon)
        if day.is_booked
    ]


def is_stay_available(
    stay: Stay,
    confirmed_stays: Iterable[ReservationRecord],
    blocked_dates: Iterable[Optional[date]] = (),
) -> bool:
    """Return True if no night of the stay is already booked or blocked."""
    booked = booked_date_set(confirmed_stays, blocked_dates)
    return not any(
        night in booked for night in enumerate_nights(stay.check_in_date, stay.check_out_date)
    )

