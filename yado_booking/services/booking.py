"""
Booking orchestrator.

Composes the pure booking core (restriction policy, special-rate resolution,
pricing, availability projection) with the collaborators that do I/O: the
Lark records backend, the reservation webhook, the confirmation email and
Square.

Strategy:
- Sample "today" once per request and pass it down
- Price every booking on the server from a fresh special-rate snapshot
- Check availability and deliver the reservation under one lock, so two
  requests handled by this process cannot both take the same nights

The lock is process-local. Two workers (or two deployments) can still accept
overlapping stays; the records backend has no uniqueness constraint to stop
them.
"""

from __future__ import annotations

import secrets
import string
import threading
import time
from dataclasses import dataclass, field
from datetime import date
from typing import Any, Callable, Optional

import structlog

from yado_booking.booking.availability import (
    booked_dates_ahead,
    is_stay_available,
    project_availability,
)
from yado_booking.booking.dates import is_past, local_today
from yado_booking.booking.models import (
    AvailabilityDay,
    BookingRestriction,
    NightsValidation,
    PricingBreakdown,
    ReservationRecord,
    SpecialRate,
    Stay,
)
from yado_booking.booking.pricing import DEFAULT_RATE_TABLE, RateTable, calculate_price
from yado_booking.booking.restrictions import (
    MSG_CHECK_IN_IN_PAST,
    MSG_DATES_UNAVAILABLE,
    MSG_INVALID_GUEST_COUNT,
    MSG_PRICE_NOT_POSITIVE,
    RestrictionPolicy,
    min_check_out_date,
    validate_booking_nights,
)
from yado_booking.config import LARK_WEBHOOK_URL, MAX_GUESTS
from yado_booking.lark.backend import CONFIRMED_STATUS, RecordsBackend
from yado_booking.metrics import quotes_total, reservations_total
from yado_booking.notifications.mail import send_confirmation_email
from yado_booking.notifications.webhook import send_reservation_notification
from yado_booking.payments.square import create_payment
from yado_booking.schemas.booking import PaymentCreatePayload, ReservationCreatePayload

logger = structlog.get_logger(__name__)

RESERVATION_ID_ALPHABET = string.ascii_uppercase + string.digits
RESERVATION_ID_SUFFIX_LENGTH = 6

# Serializes availability check + delivery within this process
_booking_lock = threading.Lock()


class BookingRejected(ValueError):
    """The request is well-formed but cannot be booked as asked."""

    def __init__(self, message: str, restriction: Optional[BookingRestriction] = None):
        super().__init__(message)
        self.message = message
        self.restriction = restriction


class DatesUnavailable(RuntimeError):
    """At least one night of the stay is already booked or blocked."""


class BookingConfigurationError(RuntimeError):
    """A collaborator needed for the booking is not configured."""


@dataclass(frozen=True)
class Quote:
    validation: NightsValidation
    restriction: BookingRestriction
    pricing: PricingBreakdown


@dataclass
class ReservationResult:
    reservation: dict[str, Any]
    pricing: PricingBreakdown
    payment: dict[str, Any] = field(default_factory=dict)


def generate_reservation_id(now_ms: Optional[int] = None) -> str:
    """
    Build a reservation ID of the form ``RES-{epoch_ms}-{6 uppercase alnum}``.

    Example:
        >>> generate_reservation_id(1767225600000)  # doctest: +SKIP
        'RES-1767225600000-7KQ2ZD'
    """
    if now_ms is None:
        now_ms = int(time.time() * 1000)
    suffix = "".join(
        secrets.choice(RESERVATION_ID_ALPHABET) for _ in range(RESERVATION_ID_SUFFIX_LENGTH)
    )
    return f"RES-{now_ms}-{suffix}"


class BookingService:
    """
    Entry point for quoting, booking and paying.

    Args:
        records: Lark records backend
        policy: Minimum-stay policy
        rate_table: Standard rates and guest surcharge
        webhook_url: Lark automation webhook receiving new reservations
        max_guests: Largest party accepted
        today: Callable returning today's date in the reference timezone
        notify: Delivers a reservation to the webhook
        send_email: Sends the guest confirmation email
        charge: Charges a card through Square
    """

    def __init__(
        self,
        records: RecordsBackend,
        policy: RestrictionPolicy,
        rate_table: RateTable = DEFAULT_RATE_TABLE,
        webhook_url: str = LARK_WEBHOOK_URL,
        max_guests: int = MAX_GUESTS,
        today: Callable[[], date] = local_today,
        notify: Callable[[str, dict[str, Any]], None] = send_reservation_notification,
        send_email: Callable[[dict[str, Any]], bool] = send_confirmation_email,
        charge: Callable[..., dict[str, Any]] = create_payment,
    ):
        self.records = records
        self.policy = policy
        self.rate_table = rate_table
        self.webhook_url = webhook_url
        self.max_guests = max_guests
        self.today = today
        self.notify = notify
        self.send_email = send_email
        self.charge = charge

    # ------------------------------------------------------------------
    # Read side
    # ------------------------------------------------------------------

    def special_rates(self) -> list[SpecialRate]:
        return self.records.list_special_rates()

    def confirmed_reservations(self) -> list[ReservationRecord]:
        return self.records.list_confirmed_reservations()

    def restriction(self, check_in: date) -> tuple[BookingRestriction, date]:
        """
        Evaluate the policy for a check-in date.

        Returns:
            tuple: The restriction and the earliest accepted check-out date
        """
        today = self.today()
        return (
            self.policy.evaluate(check_in, today),
            min_check_out_date(check_in, self.policy, today),
        )

    def quote(self, check_in: date, check_out: date, number_of_guests: int) -> Quote:
        """
        Validate a stay against the policy and price it.

        An invalid stay is still returned (with its pricing computed from the
        same inputs) so the caller can show both the message and the numbers.

        Raises:
            BookingRejected: If the guest count is out of range
        """
        self._check_guest_count(number_of_guests)
        today = self.today()

        validation = validate_booking_nights(check_in, check_out, self.policy, today)
        restriction = self.policy.evaluate(check_in, today)
        pricing = calculate_price(
            check_in, check_out, number_of_guests, self.special_rates(), self.rate_table
        )

        quotes_total.labels(outcome="priced" if validation.is_valid else "rejected").inc()
        return Quote(validation=validation, restriction=restriction, pricing=pricing)

    def availability(self, start: date, end: date) -> list[AvailabilityDay]:
        """Project confirmed stays and owner blocks onto [start, end]."""
        return project_availability(
            self.records.list_confirmed_reservations(),
            self.records.list_blocked_dates(),
            start,
            end,
        )

    def booked_dates_ahead(self) -> list[date]:
        """Booked dates from today through two years ahead."""
        return booked_dates_ahead(
            self.records.list_confirmed_reservations(),
            self.records.list_blocked_dates(),
            self.today(),
        )

    # ------------------------------------------------------------------
    # Write side
    # ------------------------------------------------------------------

    def create_reservation(self, payload: ReservationCreatePayload) -> ReservationResult:
        """
        Accept a pay-later reservation request.

        The reservation is priced on the server, checked for availability,
        delivered to the Lark webhook, and confirmed to the guest by email.
        An email failure does not fail the booking.

        Args:
            payload: Validated request body

        Returns:
            ReservationResult: The delivered reservation and its pricing

        Raises:
            BookingRejected: If the stay breaks a booking rule
            DatesUnavailable: If a night is already taken
            BookingConfigurationError: If the webhook URL is missing
            NotificationError: If the webhook rejects the reservation
        """
        channel = "webhook"
        self._require_webhook(channel)
        pricing = self._price_stay(
            payload.check_in_date, payload.check_out_date, payload.number_of_guests, channel
        )

        with _booking_lock:
            self._ensure_available(
                Stay(
                    check_in_date=payload.check_in_date,
                    check_out_date=payload.check_out_date,
                    number_of_guests=payload.number_of_guests,
                ),
                channel,
            )

            reservation = self._build_reservation(
                guest_name=payload.guest_name,
                email=payload.email,
                check_in=payload.check_in_date,
                check_out=payload.check_out_date,
                pricing=pricing,
                payment_status=payload.payment_status,
                payment_method=payload.payment_method,
                # Only confirmed rows are read back by the availability check
                status=CONFIRMED_STATUS,
            )
            reservation["paymentUrl"] = self._payment_url_for(pricing.total_amount)

            self._deliver(reservation, channel)

        self.send_email(reservation)
        return ReservationResult(reservation=reservation, pricing=pricing)

    def pay_and_reserve(self, payload: PaymentCreatePayload) -> ReservationResult:
        """
        Charge the guest's card and record a confirmed, paid reservation.

        The card is charged the server-side total, never an amount sent by
        the browser. If the charge succeeds but the webhook fails, the
        payment ID is logged so the booking can be reconciled by hand.

        Raises:
            BookingRejected: If the stay breaks a booking rule
            DatesUnavailable: If a night is already taken
            BookingConfigurationError: If the webhook URL is missing
            PaymentError: If Square declines or fails the charge
            NotificationError: If the webhook rejects the reservation
        """
        channel = "card"
        self._require_webhook(channel)
        pricing = self._price_stay(
            payload.check_in_date, payload.check_out_date, payload.number_of_guests, channel
        )

        with _booking_lock:
            self._ensure_available(
                Stay(
                    check_in_date=payload.check_in_date,
                    check_out_date=payload.check_out_date,
                    number_of_guests=payload.number_of_guests,
                ),
                channel,
            )

            reservation = self._build_reservation(
                guest_name=payload.guest_name,
                email=payload.email,
                check_in=payload.check_in_date,
                check_out=payload.check_out_date,
                pricing=pricing,
                payment_status="Paid",
                payment_method="Square",
                status=CONFIRMED_STATUS,
            )

            try:
                payment = self.charge(
                    source_id=payload.source_id,
                    amount=pricing.total_amount,
                    reference_id=reservation["reservationId"],
                    buyer_email=payload.email,
                    note=(
                        f"{payload.guest_name} "
                        f"{payload.check_in_date.isoformat()} - {payload.check_out_date.isoformat()}"
                    ),
                )
            except Exception:
                reservations_total.labels(channel=channel, outcome="failed").inc()
                raise

            try:
                self._deliver(reservation, channel)
            except Exception:
                logger.critical(
                    "paid_reservation_not_recorded",
                    reservation_id=reservation["reservationId"],
                    payment_id=payment.get("id"),
                )
                raise

        return ReservationResult(reservation=reservation, pricing=pricing, payment=payment)

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def _check_guest_count(self, number_of_guests: int) -> None:
        if (
            isinstance(number_of_guests, bool)
            or not isinstance(number_of_guests, int)
            or not 1 <= number_of_guests <= self.max_guests
        ):
            raise BookingRejected(MSG_INVALID_GUEST_COUNT)

    def _require_webhook(self, channel: str) -> None:
        if not self.webhook_url:
            reservations_total.labels(channel=channel, outcome="failed").inc()
            logger.error("reservation_webhook_not_configured", channel=channel)
            raise BookingConfigurationError("LARK_WEBHOOK_URL is not set")

    def _price_stay(
        self, check_in: date, check_out: date, number_of_guests: int, channel: str
    ) -> PricingBreakdown:
        """Run every booking rule and return the server-side price."""
        today = self.today()
        try:
            self._check_guest_count(number_of_guests)

            if is_past(check_in, today):
                raise BookingRejected(MSG_CHECK_IN_IN_PAST)

            validation = validate_booking_nights(check_in, check_out, self.policy, today)
            if not validation.is_valid:
                raise BookingRejected(
                    validation.message, restriction=self.policy.evaluate(check_in, today)
                )

            pricing = calculate_price(
                check_in, check_out, number_of_guests, self.special_rates(), self.rate_table
            )
            if pricing.total_amount <= 0:
                raise BookingRejected(MSG_PRICE_NOT_POSITIVE)
        except BookingRejected as e:
            reservations_total.labels(channel=channel, outcome="rejected").inc()
            logger.info(
                "reservation_rejected",
                channel=channel,
                reason=e.message,
                check_in=check_in.isoformat(),
                check_out=check_out.isoformat(),
            )
            raise

        return pricing

    def _ensure_available(self, stay: Stay, channel: str) -> None:
        stays = self.records.list_confirmed_reservations()
        blocked = self.records.list_blocked_dates()
        if not is_stay_available(stay, stays, blocked):
            reservations_total.labels(channel=channel, outcome="unavailable").inc()
            logger.info(
                "reservation_dates_unavailable",
                channel=channel,
                check_in=stay.check_in_date.isoformat(),
                check_out=stay.check_out_date.isoformat(),
            )
            raise DatesUnavailable(MSG_DATES_UNAVAILABLE)

    def _payment_url_for(self, total_amount: int) -> str:
        """Return the pre-issued payment link for an amount, or "" if none matches."""
        for master in self.records.list_payment_masters():
            if master.amount == total_amount:
                return master.url
        logger.info("payment_url_not_found", total_amount=total_amount)
        return ""

    def _build_reservation(
        self,
        guest_name: str,
        email: str,
        check_in: date,
        check_out: date,
        pricing: PricingBreakdown,
        payment_status: str,
        payment_method: str,
        status: str,
    ) -> dict[str, Any]:
        return {
            "reservationId": generate_reservation_id(),
            "guestName": guest_name,
            "email": email,
            "checkInDate": check_in.isoformat(),
            "checkOutDate": check_out.isoformat(),
            "numberOfNights": pricing.number_of_nights,
            "numberOfGuests": pricing.number_of_guests,
            "totalAmount": pricing.total_amount,
            "paymentStatus": payment_status,
            "paymentMethod": payment_method,
            "paymentUrl": "",
            "status": status,
        }

    def _deliver(self, reservation: dict[str, Any], channel: str) -> None:
        try:
            self.notify(self.webhook_url, reservation)
        except Exception:
            reservations_total.labels(channel=channel, outcome="failed").inc()
            raise

        reservations_total.labels(channel=channel, outcome="created").inc()
        logger.info(
            "reservation_created",
            channel=channel,
            reservation_id=reservation["reservationId"],
            total_amount=reservation["totalAmount"],
        )
