"""Reservation-request confirmation email, sent through an HTTP email API."""

from __future__ import annotations

from html import escape
from typing import Any

import requests
import structlog

from yado_booking.config import EMAIL_API_KEY, EMAIL_API_URL
from yado_booking.metrics import notifications_total

logger = structlog.get_logger(__name__)

EMAIL_TIMEOUT_SECONDS = 10
SUBJECT = "【YADO】予約リクエストを受け付けました / Reservation Request Received"


def render_confirmation_email(reservation: dict[str, Any]) -> str:
    """Render the HTML body of the confirmation email."""
    rows = [
        ("チェックイン / Check-in", reservation.get("checkInDate")),
        ("チェックアウト / Check-out", reservation.get("checkOutDate")),
        ("宿泊数 / Nights", f"{reservation.get('numberOfNights')}泊"),
        ("人数 / Guests", f"{reservation.get('numberOfGuests')}名"),
        ("合計金額 / Total", f"¥{int(reservation.get('totalAmount') or 0):,}"),
    ]
    table = "\n".join(
        f"<tr><td>{escape(label)}</td><td style=\"text-align:right\">{escape(str(value))}</td></tr>"
        for label, value in rows
    )
    return f"""<!DOCTYPE html>
<html lang="ja">
<head><meta charset="UTF-8"><title>予約リクエスト確認</title></head>
<body>
<h1>YADO</h1>
<p>{escape(str(reservation.get("guestName") or ""))} 様</p>
<p>この度は、YADOへのご予約リクエストをいただき、誠にありがとうございます。<br>
以下の内容で予約リクエストを受け付けいたしました。</p>
<table>
{table}
</table>
<p>これは予約リクエストの受付確認メールです。予約の確定ではございません。<br>
担当者が内容を確認後、決済リンクをお送りいたします。</p>
</body>
</html>
"""


def send_confirmation_email(
    reservation: dict[str, Any],
    api_url: str = EMAIL_API_URL,
    api_key: str = EMAIL_API_KEY,
) -> bool:
    """
    Send the confirmation email for a reservation request.

    A failure here never fails the booking: it is logged and reported as False.

    Args:
        reservation: Reservation keyed by camelCase names (email, guestName, ...)
        api_url: Email API endpoint
        api_key: Email API bearer key

    Returns:
        bool: True if the email API accepted the message
    """
    if not api_url or not api_key:
        notifications_total.labels(channel="email", outcome="skipped").inc()
        logger.warning("email_not_configured")
        return False

    try:
        response = requests.post(
            api_url,
            json={
                "to": reservation.get("email"),
                "subject": SUBJECT,
                "html": render_confirmation_email(reservation),
            },
            headers={"Authorization": f"Bearer {api_key}"},
            timeout=EMAIL_TIMEOUT_SECONDS,
        )
        response.raise_for_status()
    except requests.RequestException as e:
        notifications_total.labels(channel="email", outcome="failed").inc()
        logger.error(
            "email_failed",
            reservation_id=reservation.get("reservationId"),
            error=str(e),
        )
        return False

    notifications_total.labels(channel="email", outcome="sent").inc()
    logger.info("email_sent", reservation_id=reservation.get("reservationId"))
    return True
