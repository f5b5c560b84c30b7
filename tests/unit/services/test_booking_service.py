"""
Unit tests for services/booking.py orchestration.
"""

from __future__ import annotations

import re
from datetime import date
from unittest.mock import Mock

import pytest

from yado_booking.booking.models import PaymentMaster, ReservationRecord, SpecialRate
from yado_booking.booking.pricing import RateTable
from yado_booking.booking.restrictions import (
    MSG_CHECK_IN_IN_PAST,
    MSG_CHECKOUT_NOT_AFTER_CHECKIN,
    MSG_INVALID_GUEST_COUNT,
    MSG_MIN_NIGHTS_UNTIL_LIFT,
    MSG_PRICE_NOT_POSITIVE,
    OpenPolicy,
    PriorMonthCutoffPolicy,
)
from yado_booking.lark.backend import CONFIRMED_STATUS, RecordsBackend
from yado_booking.notifications.webhook import NotificationError
from yado_booking.payments.square import PaymentError
from yado_booking.schemas.booking import PaymentCreatePayload, ReservationCreatePayload
from yado_booking.services.booking import (
    BookingConfigurationError,
    BookingRejected,
    BookingService,
    DatesUnavailable,
    generate_reservation_id,
)

TODAY = date(2026, 4, 10)
RATES = RateTable(
    one_night=18000,
    two_nights=15000,
    three_plus_nights=12000,
    base_guest_count=2,
    additional_guest_rate=5000,
)


@pytest.fixture
def records() -> Mock:
    records = Mock(spec=RecordsBackend)
    records.list_special_rates.return_value = []
    records.list_confirmed_reservations.return_value = []
    records.list_blocked_dates.return_value = []
    records.list_payment_masters.return_value = [
        PaymentMaster(amount=66000, url="https://pay.example/66000")
    ]
    return records


@pytest.fixture
def notify() -> Mock:
    return Mock(return_value=None)


@pytest.fixture
def send_email() -> Mock:
    return Mock(return_value=True)


@pytest.fixture
def charge() -> Mock:
    return Mock(return_value={"id": "pay_1", "status": "COMPLETED"})


@pytest.fixture
def service(records: Mock, notify: Mock, send_email: Mock, charge: Mock) -> BookingService:
    return BookingService(
        records,
        OpenPolicy(),
        rate_table=RATES,
        webhook_url="https://hooks.example/abc",
        max_guests=6,
        today=lambda: TODAY,
        notify=notify,
        send_email=send_email,
        charge=charge,
    )


def reservation_payload(**overrides) -> ReservationCreatePayload:
    data = {
        "guest_name": "Yamada Taro",
        "email": "taro@example.com",
        "check_in_date": date(2026, 5, 8),
        "check_out_date": date(2026, 5, 11),
        "number_of_guests": 4,
    }
    data.update(overrides)
    return ReservationCreatePayload(**data)


def payment_payload(**overrides) -> PaymentCreatePayload:
    data = {
        "source_id": "cnon:card-nonce-ok",
        "guest_name": "Yamada Taro",
        "email": "taro@example.com",
        "check_in_date": date(2026, 5, 8),
        "check_out_date": date(2026, 5, 11),
        "number_of_guests": 4,
    }
    data.update(overrides)
    return PaymentCreatePayload(**data)


@pytest.mark.unit
def test_generate_reservation_id_format() -> None:
    """Test the RES-{epoch_ms}-{6 uppercase alnum} format."""
    reservation_id = generate_reservation_id(1767225600000)

    assert re.fullmatch(r"RES-1767225600000-[A-Z0-9]{6}", reservation_id)
    assert re.fullmatch(r"RES-\d{13}-[A-Z0-9]{6}", generate_reservation_id())


@pytest.mark.unit
def test_quote_prices_with_special_rate_snapshot(service: BookingService, records: Mock) -> None:
    """Test that the quote uses the backend's special rates."""
    records.list_special_rates.return_value = [
        SpecialRate(
            id="rec1",
            name="Golden Week",
            start_date=date(2026, 5, 1),
            end_date=date(2026, 5, 5),
            price_per_night=25000,
        )
    ]

    result = service.quote(date(2026, 5, 5), date(2026, 5, 7), 2)

    assert result.validation.is_valid is True
    assert result.pricing.base_total == 25000 + 15000


@pytest.mark.unit
def test_quote_returns_invalid_validation_under_restriction(
    service: BookingService,
) -> None:
    """Test that a restricted short stay is reported as invalid, not raised."""
    service.policy = PriorMonthCutoffPolicy(cutoff_day=20, min_nights=3)

    result = service.quote(date(2026, 5, 15), date(2026, 5, 17), 2)

    assert result.validation.is_valid is False
    assert result.validation.nights == 2
    assert result.restriction.is_restricted is True
    assert result.pricing.total_amount == 30000


@pytest.mark.unit
def test_quote_rejects_too_many_guests(service: BookingService) -> None:
    """Test that parties above max_guests are refused."""
    with pytest.raises(BookingRejected) as exc_info:
        service.quote(date(2026, 5, 8), date(2026, 5, 9), 7)

    assert exc_info.value.message == MSG_INVALID_GUEST_COUNT


@pytest.mark.unit
def test_restriction_returns_min_check_out(service: BookingService) -> None:
    """Test the restriction descriptor and earliest check-out."""
    service.policy = PriorMonthCutoffPolicy(cutoff_day=20, min_nights=3)

    restriction, min_check_out = service.restriction(date(2026, 5, 15))

    assert restriction.restriction_lift_date == date(2026, 4, 20)
    assert min_check_out == date(2026, 5, 18)


@pytest.mark.unit
def test_create_reservation_delivers_priced_reservation(
    service: BookingService, notify: Mock, send_email: Mock
) -> None:
    """Test the pay-later flow: server price, payment URL, webhook, then email."""
    result = service.create_reservation(reservation_payload())

    reservation = result.reservation
    assert reservation["totalAmount"] == 66000
    assert reservation["numberOfNights"] == 3
    assert reservation["numberOfGuests"] == 4
    assert reservation["checkInDate"] == "2026-05-08"
    assert reservation["paymentUrl"] == "https://pay.example/66000"
    assert reservation["paymentStatus"] == "Pending"
    assert reservation["paymentMethod"] == "AirPAY"
    assert reservation["status"] == CONFIRMED_STATUS

    notify.assert_called_once_with("https://hooks.example/abc", reservation)
    send_email.assert_called_once_with(reservation)
    assert result.pricing.total_amount == 66000


@pytest.mark.unit
def test_create_reservation_blocks_same_dates_for_next_booking(
    service: BookingService, records: Mock, notify: Mock
) -> None:
    """Test that a delivered pay-later booking occupies its nights for the next request."""
    stored: list[dict] = []
    notify.side_effect = lambda url, reservation: stored.append(reservation)
    records.list_confirmed_reservations.side_effect = lambda: [
        ReservationRecord(
            id=f"rec{i}",
            check_in_date=date.fromisoformat(r["checkInDate"]),
            check_out_date=date.fromisoformat(r["checkOutDate"]),
            status=r["status"],
        )
        for i, r in enumerate(stored)
        if r["status"] == CONFIRMED_STATUS
    ]

    service.create_reservation(reservation_payload())

    with pytest.raises(DatesUnavailable):
        service.create_reservation(reservation_payload())

    assert len(stored) == 1


@pytest.mark.unit
def test_create_reservation_without_matching_payment_link(
    service: BookingService, records: Mock
) -> None:
    """Test that an unmatched total leaves the payment URL empty."""
    records.list_payment_masters.return_value = [PaymentMaster(amount=1000, url="https://pay/1000")]

    result = service.create_reservation(reservation_payload())

    assert result.reservation["paymentUrl"] == ""


@pytest.mark.unit
def test_create_reservation_email_failure_does_not_fail_booking(
    service: BookingService, send_email: Mock
) -> None:
    """Test that the booking succeeds when the email API reports failure."""
    send_email.return_value = False

    result = service.create_reservation(reservation_payload())

    assert result.reservation["reservationId"].startswith("RES-")


@pytest.mark.unit
@pytest.mark.parametrize(
    "overrides,expected",
    [
        ({"number_of_guests": 7}, MSG_INVALID_GUEST_COUNT),
        ({"check_in_date": date(2026, 4, 9), "check_out_date": date(2026, 4, 12)}, MSG_CHECK_IN_IN_PAST),
        ({"check_out_date": date(2026, 5, 8)}, MSG_CHECKOUT_NOT_AFTER_CHECKIN),
    ],
)
def test_create_reservation_rejections(
    service: BookingService, notify: Mock, overrides: dict, expected: str
) -> None:
    """Test that rule violations are rejected before anything is delivered."""
    with pytest.raises(BookingRejected) as exc_info:
        service.create_reservation(reservation_payload(**overrides))

    assert exc_info.value.message == expected
    notify.assert_not_called()


@pytest.mark.unit
def test_create_reservation_restricted_short_stay(service: BookingService) -> None:
    """Test that the restriction is attached to the rejection."""
    service.policy = PriorMonthCutoffPolicy(cutoff_day=20, min_nights=3)

    with pytest.raises(BookingRejected) as exc_info:
        service.create_reservation(
            reservation_payload(check_in_date=date(2026, 5, 15), check_out_date=date(2026, 5, 16))
        )

    assert exc_info.value.message == MSG_MIN_NIGHTS_UNTIL_LIFT
    assert exc_info.value.restriction is not None
    assert exc_info.value.restriction.min_nights == 3


@pytest.mark.unit
def test_create_reservation_rejects_zero_total(service: BookingService, records: Mock) -> None:
    """Test that a stay priced at zero is never accepted."""
    service.rate_table = RateTable(
        one_night=0, two_nights=0, three_plus_nights=0, base_guest_count=6, additional_guest_rate=0
    )

    with pytest.raises(BookingRejected) as exc_info:
        service.create_reservation(reservation_payload())

    assert exc_info.value.message == MSG_PRICE_NOT_POSITIVE


@pytest.mark.unit
def test_create_reservation_rejects_taken_dates(
    service: BookingService, records: Mock, notify: Mock
) -> None:
    """Test that overlapping a confirmed stay raises DatesUnavailable."""
    records.list_confirmed_reservations.return_value = [
        ReservationRecord(id="rec1", check_in_date=date(2026, 5, 10), check_out_date=date(2026, 5, 12))
    ]

    with pytest.raises(DatesUnavailable):
        service.create_reservation(reservation_payload())

    notify.assert_not_called()


@pytest.mark.unit
def test_create_reservation_rejects_blocked_date(service: BookingService, records: Mock) -> None:
    """Test that an owner-blocked night makes the stay unavailable."""
    records.list_blocked_dates.return_value = [date(2026, 5, 9)]

    with pytest.raises(DatesUnavailable):
        service.create_reservation(reservation_payload())


@pytest.mark.unit
def test_create_reservation_requires_webhook(service: BookingService, records: Mock) -> None:
    """Test that a missing webhook URL fails before the backend is queried."""
    service.webhook_url = ""

    with pytest.raises(BookingConfigurationError):
        service.create_reservation(reservation_payload())

    records.list_special_rates.assert_not_called()


@pytest.mark.unit
def test_create_reservation_propagates_webhook_failure(
    service: BookingService, notify: Mock, send_email: Mock
) -> None:
    """Test that a webhook failure fails the booking and skips the email."""
    notify.side_effect = NotificationError("Lark webhook failed: 500")

    with pytest.raises(NotificationError):
        service.create_reservation(reservation_payload())

    send_email.assert_not_called()


@pytest.mark.unit
def test_pay_and_reserve_charges_server_total(
    service: BookingService, charge: Mock, notify: Mock, send_email: Mock
) -> None:
    """Test the card flow: charge the server price, then deliver a paid reservation."""
    result = service.pay_and_reserve(payment_payload())

    kwargs = charge.call_args[1]
    assert kwargs["amount"] == 66000
    assert kwargs["source_id"] == "cnon:card-nonce-ok"
    assert kwargs["reference_id"] == result.reservation["reservationId"]

    delivered = notify.call_args[0][1]
    assert delivered["paymentStatus"] == "Paid"
    assert delivered["paymentMethod"] == "Square"
    assert delivered["status"] == "Confirmed"
    assert result.payment["id"] == "pay_1"
    send_email.assert_not_called()


@pytest.mark.unit
def test_pay_and_reserve_declined_card_delivers_nothing(
    service: BookingService, charge: Mock, notify: Mock
) -> None:
    """Test that a declined card never reaches the webhook."""
    charge.side_effect = PaymentError("Payment failed", detail="Card declined.")

    with pytest.raises(PaymentError):
        service.pay_and_reserve(payment_payload())

    notify.assert_not_called()


@pytest.mark.unit
def test_pay_and_reserve_unavailable_dates_are_not_charged(
    service: BookingService, records: Mock, charge: Mock
) -> None:
    """Test that the card is not charged for taken dates."""
    records.list_blocked_dates.return_value = [date(2026, 5, 10)]

    with pytest.raises(DatesUnavailable):
        service.pay_and_reserve(payment_payload())

    charge.assert_not_called()


@pytest.mark.unit
def test_availability_and_booked_dates(service: BookingService, records: Mock) -> None:
    """Test that the read side projects confirmed stays and blocks."""
    records.list_confirmed_reservations.return_value = [
        ReservationRecord(id="rec1", check_in_date=date(2026, 4, 11), check_out_date=date(2026, 4, 13))
    ]
    records.list_blocked_dates.return_value = [date(2026, 4, 15)]

    days = service.availability(date(2026, 4, 10), date(2026, 4, 15))
    booked = service.booked_dates_ahead()

    assert [d.is_booked for d in days] == [False, True, True, False, False, True]
    assert booked == [date(2026, 4, 11), date(2026, 4, 12), date(2026, 4, 15)]
