"""
Deliver reservations to the Lark automation webhook.

The automation ("when a webhook is received" -> "add record") creates the
reservation row in the reservations table, so the payload is a flat JSON
object whose root keys the automation maps to columns. Only reservations are
ever sent here; an error payload would be stored as a bogus row.
"""

from __future__ import annotations

from typing import Any

import requests
import structlog

from yado_booking.metrics import notifications_total

logger = structlog.get_logger(__name__)
WEBHOOK_TIMEOUT_SECONDS = 10

RESERVATION_FIELDS = (
    "reservationId",
    "guestName",
    "email",
    "checkInDate",
    "checkOutDate",
    "numberOfNights",
    "numberOfGuests",
    "totalAmount",
    "paymentStatus",
    "paymentMethod",
    "paymentUrl",
    "status",
)


class NotificationError(RuntimeError):
    """The reservation could not be delivered to the webhook."""


def build_webhook_payload(reservation: dict[str, Any]) -> dict[str, Any]:
    """
    Project a reservation onto the flat payload the automation expects.

    Args:
        reservation: Reservation keyed by the automation's camelCase names

    Returns:
        dict: Exactly RESERVATION_FIELDS; a missing paymentUrl becomes ""
    """
    payload = {key: reservation.get(key) for key in RESERVATION_FIELDS}
    payload["paymentUrl"] = payload["paymentUrl"] or ""
    return payload


def send_reservation_notification(webhook_url: str, reservation: dict[str, Any]) -> None:
    """
    POST a reservation to the Lark automation webhook.

    Args:
        webhook_url: Automation webhook URL
        reservation: Reservation keyed by the automation's camelCase names

    Raises:
        NotificationError: If the URL is missing or delivery fails
    """
    if not webhook_url:
        notifications_total.labels(channel="lark_webhook", outcome="failed").inc()
        raise NotificationError("LARK_WEBHOOK_URL is not set")

    payload = build_webhook_payload(reservation)
    logger.info("webhook_sending", reservation_id=payload["reservationId"])

    try:
        response = requests.post(webhook_url, json=payload, timeout=WEBHOOK_TIMEOUT_SECONDS)
        response.raise_for_status()
    except requests.RequestException as e:
        notifications_total.labels(channel="lark_webhook", outcome="failed").inc()
        logger.error(
            "webhook_failed",
            reservation_id=payload["reservationId"],
            error=str(e),
        )
        raise NotificationError(f"Lark webhook failed: {e}") from e

    notifications_total.labels(channel="lark_webhook", outcome="sent").inc()
    logger.info("webhook_sent", reservation_id=payload["reservationId"])
