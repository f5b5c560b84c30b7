"""
Card payments through the Square Payments API.

The browser tokenizes the card with the Square Web Payments SDK and sends us
the resulting ``source_id``; the amount charged is always the server-side
price.
"""

from __future__ import annotations

import uuid
from typing import Any, Optional

import requests
import structlog

from yado_booking.config import (
    CURRENCY,
    SQUARE_ACCESS_TOKEN,
    SQUARE_API_VERSION,
    SQUARE_ENVIRONMENT,
    SQUARE_LOCATION_ID,
)
from yado_booking.metrics import payments_total

logger = structlog.get_logger(__name__)

PRODUCTION_URL = "https://connect.squareup.com/v2/payments"
SANDBOX_URL = "https://connect.squareupsandbox.com/v2/payments"
PAYMENT_TIMEOUT_SECONDS = 30


class PaymentError(RuntimeError):
    """The payment was declined, incomplete, or could not be attempted."""

    def __init__(self, message: str, detail: Optional[str] = None):
        super().__init__(message)
        self.detail = detail


class PaymentNotConfigured(PaymentError):
    """Square credentials are missing."""


def generate_idempotency_key() -> str:
    return str(uuid.uuid4())


def payments_url(environment: str = SQUARE_ENVIRONMENT) -> str:
    return SANDBOX_URL if environment == "sandbox" else PRODUCTION_URL


def create_payment(
    source_id: str,
    amount: int,
    reference_id: str,
    buyer_email: str,
    note: str,
    access_token: str = SQUARE_ACCESS_TOKEN,
    location_id: str = SQUARE_LOCATION_ID,
    environment: str = SQUARE_ENVIRONMENT,
    currency: str = CURRENCY,
) -> dict[str, Any]:
    """
    Charge a tokenized card.

    Args:
        source_id: Card token from the Web Payments SDK
        amount: Amount in the smallest currency unit (JPY has no minor unit)
        reference_id: Our reservation ID, stored on the Square payment
        buyer_email: Guest email address
        note: Free-text note shown in the Square dashboard
        access_token: Square access token
        location_id: Square location ID
        environment: "production" or "sandbox"
        currency: ISO currency code

    Returns:
        dict: The ``payment`` object of a COMPLETED payment

    Raises:
        PaymentNotConfigured: If credentials are missing
        PaymentError: If Square declines, errors, or does not complete the payment
    """
    if not access_token or not location_id:
        raise PaymentNotConfigured("Square payment is not configured")
    if amount <= 0:
        raise PaymentError("Payment amount must be positive")

    body = {
        "source_id": source_id,
        "idempotency_key": generate_idempotency_key(),
        "amount_money": {"amount": amount, "currency": currency},
        "location_id": location_id,
        "reference_id": reference_id,
        "note": note,
        "buyer_email_address": buyer_email,
    }
    headers = {
        "Square-Version": SQUARE_API_VERSION,
        "Authorization": f"Bearer {access_token}",
        "Content-Type": "application/json",
    }

    try:
        response = requests.post(
            payments_url(environment), json=body, headers=headers, timeout=PAYMENT_TIMEOUT_SECONDS
        )
        data = response.json()
    except (requests.RequestException, ValueError) as e:
        payments_total.labels(outcome="error").inc()
        logger.error("payment_request_failed", reference_id=reference_id, error=str(e))
        raise PaymentError("Payment processing failed") from e

    errors = data.get("errors") or []
    if errors:
        payments_total.labels(outcome="declined").inc()
        detail = errors[0].get("detail") or "Unknown payment error"
        logger.warning(
            "payment_declined",
            reference_id=reference_id,
            code=errors[0].get("code"),
            detail=detail,
        )
        raise PaymentError("Payment failed", detail=detail)

    payment = data.get("payment") or {}
    if payment.get("status") != "COMPLETED":
        payments_total.labels(outcome="declined").inc()
        logger.warning("payment_not_completed", reference_id=reference_id, status=payment.get("status"))
        raise PaymentError("Payment was not completed")

    payments_total.labels(outcome="completed").inc()
    logger.info("payment_completed", reference_id=reference_id, payment_id=payment.get("id"))
    return payment
