"""
Unit tests for the /api pricing, availability, reservation and payment routes.
"""

from __future__ import annotations

from datetime import date
from typing import Any, Iterator
from unittest.mock import Mock

import pytest
from fastapi.testclient import TestClient
from httpx import ASGITransport, AsyncClient

from yado_booking.booking.models import (
    AvailabilityDay,
    BookingRestriction,
    NightsValidation,
    ReservationRecord,
    SpecialRate,
)
from yado_booking.booking.pricing import calculate_price
from yado_booking.booking.restrictions import (
    MSG_BOOKING_VALID,
    MSG_DATES_UNAVAILABLE,
    MSG_MIN_NIGHTS_UNTIL_LIFT,
)
from yado_booking.dependencies import get_booking_service
from yado_booking.lark.errors import LarkAPIError
from yado_booking.main import app
from yado_booking.notifications.webhook import NotificationError
from yado_booking.payments.square import PaymentError
from yado_booking.services.booking import (
    BookingConfigurationError,
    BookingRejected,
    DatesUnavailable,
    Quote,
    ReservationResult,
)

RESTRICTED = BookingRestriction(
    is_restricted=True,
    min_nights=3,
    restriction_lift_date=date(2026, 4, 20),
    message=MSG_MIN_NIGHTS_UNTIL_LIFT,
)

RESERVATION_BODY: dict[str, Any] = {
    "guest_name": "Yamada Taro",
    "email": "taro@example.com",
    "check_in_date": "2026-05-08",
    "check_out_date": "2026-05-11",
    "number_of_guests": 4,
}


@pytest.fixture
def service() -> Mock:
    return Mock()


@pytest.fixture
def client(service: Mock) -> Iterator[TestClient]:
    app.dependency_overrides[get_booking_service] = lambda: service
    yield TestClient(app)
    app.dependency_overrides.clear()


def reservation_result(**overrides: Any) -> ReservationResult:
    pricing = calculate_price(date(2026, 5, 8), date(2026, 5, 11), 4)
    reservation = {
        "reservationId": "RES-1767225600000-ABC123",
        "totalAmount": pricing.total_amount,
        "paymentStatus": "Pending",
    }
    reservation.update(overrides)
    return ReservationResult(reservation=reservation, pricing=pricing)


@pytest.mark.unit
def test_rates_lists_special_rates(client: TestClient, service: Mock) -> None:
    """Test that /api/rates serializes the special rates."""
    service.special_rates.return_value = [
        SpecialRate(
            id="rec1",
            name="Golden Week",
            start_date=date(2026, 5, 1),
            end_date=date(2026, 5, 5),
            price_per_night=25000,
            priority=1,
        )
    ]

    response = client.get("/api/rates")

    assert response.status_code == 200
    assert response.json()[0]["start_date"] == "2026-05-01"
    assert response.json()[0]["price_per_night"] == 25000


@pytest.mark.unit
def test_rates_empty_on_backend_failure(client: TestClient, service: Mock) -> None:
    """Test that a Lark failure degrades to an empty list."""
    service.special_rates.side_effect = LarkAPIError("boom")

    response = client.get("/api/rates")

    assert response.status_code == 200
    assert response.json() == []


@pytest.mark.unit
def test_quote_returns_validation_and_pricing(client: TestClient, service: Mock) -> None:
    """Test that /api/quote returns the rendered message and breakdown."""
    service.quote.return_value = Quote(
        validation=NightsValidation(is_valid=True, message=MSG_BOOKING_VALID, nights=3),
        restriction=RESTRICTED,
        pricing=calculate_price(date(2026, 5, 8), date(2026, 5, 11), 4),
    )

    response = client.get(
        "/api/quote", params={"check_in": "2026-05-08", "check_out": "2026-05-11", "guests": 4}
    )

    assert response.status_code == 200
    body = response.json()
    assert body["is_valid"] is True
    assert body["message"] == "Booking is valid"
    assert body["nights"] == 3
    assert len(body["pricing"]["dates"]) == 3
    service.quote.assert_called_once_with(date(2026, 5, 8), date(2026, 5, 11), 4)


@pytest.mark.unit
@pytest.mark.parametrize("guests", ["0", "2.5", "many"])
def test_quote_rejects_bad_guest_query(client: TestClient, service: Mock, guests: str) -> None:
    """Test that malformed guest counts never reach the service."""
    response = client.get(
        "/api/quote", params={"check_in": "2026-05-08", "check_out": "2026-05-11", "guests": guests}
    )

    assert response.status_code == 422
    service.quote.assert_not_called()


@pytest.mark.unit
def test_restrictions_endpoint(client: TestClient, service: Mock) -> None:
    """Test that /api/restrictions renders the restriction message."""
    service.restriction.return_value = (RESTRICTED, date(2026, 5, 18))

    response = client.get("/api/restrictions", params={"check_in": "2026-05-15"})

    body = response.json()
    assert response.status_code == 200
    assert body["is_restricted"] is True
    assert body["min_nights"] == 3
    assert body["message_key"] == MSG_MIN_NIGHTS_UNTIL_LIFT
    assert body["message"] == "Reservations of 3+ nights only until 2026-04-20"
    assert body["min_check_out_date"] == "2026-05-18"


@pytest.mark.unit
def test_availability_window(client: TestClient, service: Mock) -> None:
    """Test that a window returns one entry per date."""
    service.availability.return_value = [
        AvailabilityDay(date=date(2026, 5, 1), is_booked=False),
        AvailabilityDay(date=date(2026, 5, 2), is_booked=True),
    ]

    response = client.get("/api/availability", params={"start": "2026-05-01", "end": "2026-05-02"})

    assert response.status_code == 200
    assert response.json()["days"] == [
        {"date": "2026-05-01", "is_booked": False},
        {"date": "2026-05-02", "is_booked": True},
    ]


@pytest.mark.unit
def test_availability_without_window_lists_booked_dates(client: TestClient, service: Mock) -> None:
    """Test that omitting the window returns the booked dates ahead."""
    service.booked_dates_ahead.return_value = [date(2026, 5, 2), date(2026, 5, 3)]

    response = client.get("/api/availability")

    assert response.json() == {"booked_dates": ["2026-05-02", "2026-05-03"]}


@pytest.mark.unit
def test_availability_requires_both_bounds(client: TestClient, service: Mock) -> None:
    """Test that a half-open window is refused."""
    response = client.get("/api/availability", params={"start": "2026-05-01"})

    assert response.status_code == 400
    service.availability.assert_not_called()


@pytest.mark.unit
def test_availability_backend_failure_is_500(client: TestClient, service: Mock) -> None:
    """Test that a Lark failure surfaces as a generic 500."""
    service.booked_dates_ahead.side_effect = LarkAPIError("boom")

    response = client.get("/api/availability")

    assert response.status_code == 500


@pytest.mark.unit
def test_list_reservations_hides_guest_names(client: TestClient, service: Mock) -> None:
    """Test that the public reservation list omits guest names."""
    service.confirmed_reservations.return_value = [
        ReservationRecord(
            id="rec1",
            reservation_id="RES-1-ABC123",
            guest_name="Sato",
            check_in_date=date(2026, 5, 8),
            check_out_date=date(2026, 5, 10),
            status="Confirmed",
        )
    ]

    response = client.get("/api/reservations")

    reservation = response.json()["reservations"][0]
    assert reservation["check_in_date"] == "2026-05-08"
    assert "guest_name" not in reservation


@pytest.mark.unit
def test_list_reservations_booked_dates_action(client: TestClient, service: Mock) -> None:
    """Test that the booked-dates action projects every day of the window, free days included."""
    service.availability.return_value = [
        AvailabilityDay(date=date(2026, 5, 1), is_booked=True),
        AvailabilityDay(date=date(2026, 5, 2), is_booked=False),
    ]

    response = client.get(
        "/api/reservations",
        params={"action": "booked-dates", "start": "2026-05-01", "end": "2026-05-02"},
    )

    assert response.json() == {
        "booked_dates": [
            {"date": "2026-05-01", "is_booked": True},
            {"date": "2026-05-02", "is_booked": False},
        ]
    }
    service.availability.assert_called_once_with(date(2026, 5, 1), date(2026, 5, 2))


@pytest.mark.unit
def test_list_reservations_rejects_unknown_action(client: TestClient) -> None:
    """Test that unknown actions are refused."""
    response = client.get("/api/reservations", params={"action": "cancel"})

    assert response.status_code == 400


@pytest.mark.unit
def test_create_reservation_success(client: TestClient, service: Mock) -> None:
    """Test that a valid request returns 201 with reservation and pricing."""
    service.create_reservation.return_value = reservation_result()

    response = client.post("/api/reservations", json=RESERVATION_BODY)

    assert response.status_code == 201
    body = response.json()
    assert body["success"] is True
    assert body["reservation"]["totalAmount"] == 66000
    assert body["pricing"]["total_amount"] == 66000
    payload = service.create_reservation.call_args[0][0]
    assert payload.payment_status == "Pending"
    assert payload.payment_method == "AirPAY"


@pytest.mark.unit
@pytest.mark.parametrize(
    "field,value",
    [
        ("email", "not-an-email"),
        ("number_of_guests", 0),
        ("guest_name", ""),
        ("check_in_date", "soon"),
        ("payment_status", "Paid"),
        ("payment_method", "Square"),
    ],
)
def test_create_reservation_validates_payload(
    client: TestClient, service: Mock, field: str, value: Any
) -> None:
    """Test that malformed bodies are rejected with 422."""
    response = client.post("/api/reservations", json={**RESERVATION_BODY, field: value})

    assert response.status_code == 422
    service.create_reservation.assert_not_called()


@pytest.mark.unit
def test_create_reservation_rejected_is_400(client: TestClient, service: Mock) -> None:
    """Test that a booking-rule violation maps to 400 with a rendered message."""
    service.create_reservation.side_effect = BookingRejected(MSG_MIN_NIGHTS_UNTIL_LIFT, RESTRICTED)

    response = client.post("/api/reservations", json=RESERVATION_BODY)

    assert response.status_code == 400
    assert response.json()["detail"] == {
        "code": MSG_MIN_NIGHTS_UNTIL_LIFT,
        "message": "Reservations of 3+ nights only until 2026-04-20",
    }


@pytest.mark.unit
def test_create_reservation_unavailable_is_409(client: TestClient, service: Mock) -> None:
    """Test that taken dates map to 409."""
    service.create_reservation.side_effect = DatesUnavailable(MSG_DATES_UNAVAILABLE)

    response = client.post("/api/reservations", json=RESERVATION_BODY)

    assert response.status_code == 409
    assert response.json()["detail"]["code"] == MSG_DATES_UNAVAILABLE


@pytest.mark.unit
@pytest.mark.parametrize(
    "error,status_code",
    [
        (BookingConfigurationError("LARK_WEBHOOK_URL is not set"), 500),
        (NotificationError("Lark webhook failed"), 502),
        (RuntimeError("unexpected"), 500),
    ],
)
def test_create_reservation_failures(
    client: TestClient, service: Mock, error: Exception, status_code: int
) -> None:
    """Test the status codes of configuration, delivery and unexpected failures."""
    service.create_reservation.side_effect = error

    response = client.post("/api/reservations", json=RESERVATION_BODY)

    assert response.status_code == status_code


@pytest.mark.unit
def test_payment_success(client: TestClient, service: Mock) -> None:
    """Test that a completed card payment returns 201 with the payment ID."""
    result = reservation_result(paymentStatus="Paid")
    result.payment = {"id": "pay_1", "status": "COMPLETED"}
    service.pay_and_reserve.return_value = result

    response = client.post("/api/payment", json={**RESERVATION_BODY, "source_id": "cnon:ok"})

    assert response.status_code == 201
    assert response.json()["payment_id"] == "pay_1"
    assert response.json()["reservation"]["paymentStatus"] == "Paid"


@pytest.mark.unit
def test_payment_declined_is_400(client: TestClient, service: Mock) -> None:
    """Test that a declined card maps to 400 with Square's detail."""
    service.pay_and_reserve.side_effect = PaymentError("Payment failed", detail="Card declined.")

    response = client.post("/api/payment", json={**RESERVATION_BODY, "source_id": "cnon:bad"})

    assert response.status_code == 400
    assert response.json()["detail"] == {"message": "Payment failed", "detail": "Card declined."}


@pytest.mark.unit
def test_payment_requires_source_id(client: TestClient, service: Mock) -> None:
    """Test that a body without a card token is rejected."""
    response = client.post("/api/payment", json=RESERVATION_BODY)

    assert response.status_code == 422
    service.pay_and_reserve.assert_not_called()


@pytest.mark.unit
@pytest.mark.asyncio
async def test_quote_async_client(service: Mock) -> None:
    """Test /api/quote through an async client."""
    service.quote.return_value = Quote(
        validation=NightsValidation(is_valid=False, message=MSG_MIN_NIGHTS_UNTIL_LIFT, nights=2),
        restriction=RESTRICTED,
        pricing=calculate_price(date(2026, 5, 15), date(2026, 5, 17), 2),
    )
    app.dependency_overrides[get_booking_service] = lambda: service
    try:
        async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
            response = await ac.get(
                "/api/quote",
                params={"check_in": "2026-05-15", "check_out": "2026-05-17", "guests": 2},
            )
    finally:
        app.dependency_overrides.clear()

    assert response.status_code == 200
    assert response.json()["is_valid"] is False
    assert response.json()["message"] == "Reservations of 3+ nights only until 2026-04-20"
