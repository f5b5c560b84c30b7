"""
Minimum-stay policies.

A policy decides, for a check-in date and the current date, how many nights a
booking must span. Policies are interchangeable strategies selected by the
RESTRICTION_POLICY setting:

    - ``prior_month_cutoff``: until the cutoff day (20th by default) of the
      month before the check-in month, only stays of RESTRICTED_MIN_NIGHTS or
      more are accepted; from that day on every stay length is open.
    - ``open``: every stay length is always accepted.

Messages are locale-agnostic content keys; ``MESSAGES`` holds the English
rendering used by the API.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from datetime import date, datetime, timedelta

from yado_booking.booking.dates import as_date, nights_between
from yado_booking.booking.models import BookingRestriction, NightsValidation
from yado_booking.config import RESTRICTED_MIN_NIGHTS, RESTRICTION_CUTOFF_DAY, RESTRICTION_POLICY

MSG_ALL_LENGTHS_AVAILABLE = "restriction.all_lengths_available"
MSG_MIN_NIGHTS_UNTIL_LIFT = "restriction.min_nights_until_lift"
MSG_CHECKOUT_NOT_AFTER_CHECKIN = "booking.checkout_not_after_checkin"
MSG_BOOKING_VALID = "booking.valid"
MSG_INVALID_GUEST_COUNT = "booking.invalid_guest_count"
MSG_CHECK_IN_IN_PAST = "booking.check_in_in_past"
MSG_PRICE_NOT_POSITIVE = "booking.price_not_positive"
MSG_DATES_UNAVAILABLE = "booking.dates_unavailable"

MESSAGES: dict[str, str] = {
    MSG_ALL_LENGTHS_AVAILABLE: "All stay lengths available",
    MSG_MIN_NIGHTS_UNTIL_LIFT: "Reservations of {min_nights}+ nights only until {lift_date}",
    MSG_CHECKOUT_NOT_AFTER_CHECKIN: "Check-out date must be after check-in date",
    MSG_BOOKING_VALID: "Booking is valid",
    MSG_INVALID_GUEST_COUNT: "Number of guests is out of range",
    MSG_CHECK_IN_IN_PAST: "Check-in date is in the past",
    MSG_PRICE_NOT_POSITIVE: "Price calculation error",
    MSG_DATES_UNAVAILABLE: "Selected dates are no longer available",
}


def render_message(key: str, restriction: BookingRestriction | None = None) -> str:
    """
    Render a message key as English text.

    Args:
        key: Message content key
        restriction: Restriction supplying {min_nights} and {lift_date}, if any

    Returns:
        str: Rendered text, or the key itself when it is unknown
    """
    template = MESSAGES.get(key, key)
    if restriction is None:
        return template
    return template.format(
        min_nights=restriction.min_nights,
        lift_date=restriction.restriction_lift_date.isoformat(),
    )


class RestrictionPolicy(ABC):
    """Strategy deciding the minimum stay for a check-in date."""

    name: str = ""

    @abstractmethod
    def evaluate(self, check_in: date | datetime, today: date) -> BookingRestriction:
        """
        Decide the restriction for a check-in date.

        Args:
            check_in: Candidate check-in date
            today: Current date in the reference timezone

        Returns:
            BookingRestriction: Whether short stays are restricted and the minimum nights
        """


class OpenPolicy(RestrictionPolicy):
    """Accept every stay length."""

    name = "open"

    def evaluate(self, check_in: date | datetime, today: date) -> BookingRestriction:
        return BookingRestriction(
            is_restricted=False,
            min_nights=1,
            restriction_lift_date=today,
            message=MSG_ALL_LENGTHS_AVAILABLE,
        )


class PriorMonthCutoffPolicy(RestrictionPolicy):
    """
    Reserve a month for long stays until a cutoff day of the previous month.

    Args:
        cutoff_day: Day of the previous month on which short stays open up
        min_nights: Minimum nights while the restriction is active
    """

    name = "prior_month_cutoff"

    def __init__(
        self,
        cutoff_day: int = RESTRICTION_CUTOFF_DAY,
        min_nights: int = RESTRICTED_MIN_NIGHTS,
    ):
        if not 1 <= cutoff_day <= 28:
            raise ValueError("cutoff_day must be between 1 and 28")
        if min_nights < 1:
            raise ValueError("min_nights must be at least 1")
        self.cutoff_day = cutoff_day
        self.min_nights = min_nights

    def lift_date(self, check_in: date | datetime) -> date:
        """Return the cutoff day of the month before the check-in month."""
        first_of_month = as_date(check_in).replace(day=1)
        previous_month = first_of_month - timedelta(days=1)
        return previous_month.replace(day=self.cutoff_day)

    def evaluate(self, check_in: date | datetime, today: date) -> BookingRestriction:
        lift = self.lift_date(check_in)
        if today < lift:
            return BookingRestriction(
                is_restricted=True,
                min_nights=self.min_nights,
                restriction_lift_date=lift,
                message=MSG_MIN_NIGHTS_UNTIL_LIFT,
            )
        return BookingRestriction(
            is_restricted=False,
            min_nights=1,
            restriction_lift_date=lift,
            message=MSG_ALL_LENGTHS_AVAILABLE,
        )


POLICIES: dict[str, type[RestrictionPolicy]] = {
    OpenPolicy.name: OpenPolicy,
    PriorMonthCutoffPolicy.name: PriorMonthCutoffPolicy,
}


def get_policy(name: str = RESTRICTION_POLICY) -> RestrictionPolicy:
    """
    Build the restriction policy registered under a name.

    Raises:
        ValueError: If no policy has that name
    """
    try:
        return POLICIES[name]()
    except KeyError:
        raise ValueError(f"Unknown restriction policy: {name}") from None


def validate_booking_nights(
    check_in: date | datetime,
    check_out: date | datetime,
    policy: RestrictionPolicy,
    today: date,
) -> NightsValidation:
    """
    Check a stay's length against the ordering rule and the policy.

    Rejections are returned, never raised.

    Returns:
        NightsValidation: is_valid, a message key and the night count
        (0 when check-out is not after check-in)
    """
    nights = nights_between(check_in, check_out)
    if nights < 1:
        return NightsValidation(is_valid=False, message=MSG_CHECKOUT_NOT_AFTER_CHECKIN, nights=0)

    restriction = policy.evaluate(check_in, today)
    if nights < restriction.min_nights:
        return NightsValidation(is_valid=False, message=restriction.message, nights=nights)

    return NightsValidation(is_valid=True, message=MSG_BOOKING_VALID, nights=nights)


def min_check_out_date(check_in: date | datetime, policy: RestrictionPolicy, today: date) -> date:
    """Return the earliest check-out date the policy accepts for a check-in date."""
    restriction = policy.evaluate(check_in, today)
    return as_date(check_in) + timedelta(days=restriction.min_nights)
