"""
Normalize raw Lark Base records into booking types.

Lark returns each record as ``{"record_id": ..., "fields": {...}}``. Date
fields arrive as millisecond timestamps (midnight in the base's timezone) or
as ISO strings; text fields arrive as plain strings or as lists of rich-text
segments. A record that cannot be normalized is logged and skipped, never
allowed to fail the whole list.
"""

import math
from datetime import date, datetime
from typing import Any, Dict, Iterable, List, Optional
from zoneinfo import ZoneInfo

import structlog
from dateutil import parser as date_parser
from pydantic import ValidationError

from yado_booking.booking.models import PaymentMaster, ReservationRecord, SpecialRate
from yado_booking.config import DEBUG, TIMEZONE
from yado_booking.metrics import skipped_records

logger = structlog.get_logger(__name__)

# Lark field names as configured in the base
RATE_NAME = "Name"
RATE_START_DATE = "Start Date"
RATE_END_DATE = "End Date"
RATE_PRICE = "Price per Night"
RATE_PRIORITY = "Priority"

RES_ID = "reservationId"
RES_GUEST_NAME = "guestName"
RES_CHECK_IN = "checkInDate"
RES_CHECK_OUT = "checkOutDate"
RES_STATUS = "status"
RES_BLOCKED_DATE = "予約不可日"

PAYMENT_AMOUNT = "Amount"
PAYMENT_URL = "Payment URL"


class MalformedRecord(ValueError):
    """A record field could not be converted."""


def to_text(value: Any) -> str:
    """Flatten a Lark text value (string, number or rich-text segments) to a string."""
    if value is None:
        return ""
    if isinstance(value, list):
        return "".join(
            str(seg.get("text", "")) if isinstance(seg, dict) else str(seg) for seg in value
        )
    if isinstance(value, dict):
        return str(value.get("text") or value.get("link") or "")
    return str(value)


def to_url(value: Any) -> str:
    """Extract the link from a Lark URL field (``{"link": ..., "text": ...}``) or a plain string."""
    if isinstance(value, dict):
        return str(value.get("link") or "")
    return to_text(value)


def to_date(value: Any, tz_name: str = TIMEZONE) -> Optional[date]:
    """
    Convert a Lark date value to a calendar date.

    Args:
        value: Millisecond timestamp, ISO date/datetime string, or empty
        tz_name: Timezone in which timestamps are read

    Returns:
        Optional[date]: Calendar date, or None when the value is empty

    Raises:
        MalformedRecord: If the value is present but not a date
    """
    if value is None or value == "":
        return None
    if isinstance(value, bool):
        raise MalformedRecord(f"Not a date: {value!r}")
    if isinstance(value, (int, float)):
        if not math.isfinite(value):
            raise MalformedRecord(f"Not a date: {value!r}")
        try:
            return datetime.fromtimestamp(value / 1000, tz=ZoneInfo(tz_name)).date()
        except (OverflowError, OSError, ValueError) as e:
            raise MalformedRecord(f"Not a date: {value!r}") from e
    if isinstance(value, str):
        try:
            return date_parser.parse(value.strip()).date()
        except (ValueError, OverflowError) as e:
            raise MalformedRecord(f"Not a date: {value!r}") from e
    raise MalformedRecord(f"Not a date: {value!r}")


def to_amount(value: Any, default: Optional[int] = None) -> int:
    """
    Convert a Lark number value to a whole, finite, non-negative amount.

    Raises:
        MalformedRecord: If the value is not such a number
    """
    if value is None or value == "":
        if default is not None:
            return default
        raise MalformedRecord("Missing amount")
    if isinstance(value, bool):
        raise MalformedRecord(f"Not an amount: {value!r}")
    try:
        number = float(value)
    except (TypeError, ValueError) as e:
        raise MalformedRecord(f"Not an amount: {value!r}") from e
    if not math.isfinite(number) or number < 0 or not number.is_integer():
        raise MalformedRecord(f"Not an amount: {value!r}")
    return int(number)


def to_priority(value: Any) -> int:
    if value is None or value == "":
        return 0
    try:
        number = float(value)
    except (TypeError, ValueError) as e:
        raise MalformedRecord(f"Not a priority: {value!r}") from e
    if not math.isfinite(number):
        raise MalformedRecord(f"Not a priority: {value!r}")
    return int(number)


def _skip(table: str, record: Dict[str, Any], error: Exception) -> None:
    skipped_records.labels(table=table).inc()
    logger.warning(
        "record_skipped",
        table=table,
        record_id=record.get("record_id"),
        error=str(error),
        fields=record.get("fields") if DEBUG else None,
    )


def parse_special_rates(items: Iterable[Dict[str, Any]]) -> List[SpecialRate]:
    """
    Normalize special-rate records, keeping backend order.

    Records without both dates are dropped silently (rows still being edited in
    Lark); records with unparseable values are logged and skipped.
    """
    rates: List[SpecialRate] = []
    for item in items:
        fields = item.get("fields") or {}
        try:
            start = to_date(fields.get(RATE_START_DATE))
            end = to_date(fields.get(RATE_END_DATE))
            if start is None or end is None:
                continue
            rates.append(
                SpecialRate(
                    id=str(item.get("record_id") or ""),
                    name=to_text(fields.get(RATE_NAME)),
                    start_date=start,
                    end_date=end,
                    price_per_night=to_amount(fields.get(RATE_PRICE)),
                    priority=to_priority(fields.get(RATE_PRIORITY)),
                )
            )
        except (MalformedRecord, ValidationError) as e:
            _skip("special_rates", item, e)
    return rates


def parse_reservations(items: Iterable[Dict[str, Any]]) -> List[ReservationRecord]:
    """
    Normalize reservation records.

    Unparseable dates are logged and the record is kept without them, so the
    reservation still lists but contributes nothing to availability.
    """
    reservations: List[ReservationRecord] = []
    for item in items:
        fields = item.get("fields") or {}
        try:
            check_in = to_date(fields.get(RES_CHECK_IN))
            check_out = to_date(fields.get(RES_CHECK_OUT))
        except MalformedRecord as e:
            _skip("reservations", item, e)
            check_in = check_out = None

        reservations.append(
            ReservationRecord(
                id=str(item.get("record_id") or ""),
                reservation_id=to_text(fields.get(RES_ID)),
                guest_name=to_text(fields.get(RES_GUEST_NAME)),
                check_in_date=check_in,
                check_out_date=check_out,
                status=to_text(fields.get(RES_STATUS)) or None,
            )
        )
    return reservations


def parse_blocked_dates(items: Iterable[Dict[str, Any]]) -> List[date]:
    """Collect owner-blocked dates from the reservations table."""
    blocked: List[date] = []
    for item in items:
        raw = (item.get("fields") or {}).get(RES_BLOCKED_DATE)
        if not raw:
            continue
        try:
            parsed = to_date(raw)
        except MalformedRecord as e:
            _skip("blocked_dates", item, e)
            continue
        if parsed is not None:
            blocked.append(parsed)
    return blocked


def parse_payment_masters(items: Iterable[Dict[str, Any]]) -> List[PaymentMaster]:
    """Normalize payment-link records; entries without a positive amount and a URL are dropped."""
    masters: List[PaymentMaster] = []
    for item in items:
        fields = item.get("fields") or {}
        try:
            amount = to_amount(fields.get(PAYMENT_AMOUNT), default=0)
        except MalformedRecord as e:
            _skip("payment_masters", item, e)
            continue
        url = to_url(fields.get(PAYMENT_URL))
        if amount <= 0 or not url:
            continue
        masters.append(PaymentMaster(amount=amount, url=url))
    return masters
