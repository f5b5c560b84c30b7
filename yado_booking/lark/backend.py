"""
Read-only facade over the Lark Base tables the booking flow needs.

New reservations are never written here: they are delivered to a Lark
automation webhook which adds the record (see notifications.webhook).
"""

from __future__ import annotations

from datetime import date

import structlog

from yado_booking.booking.models import PaymentMaster, ReservationRecord, SpecialRate
from yado_booking.config import (
    LARK_BASE_ID,
    LARK_PAYMENT_MASTERS_TABLE_ID,
    LARK_RESERVATIONS_TABLE_ID,
    LARK_SPECIAL_RATES_TABLE_ID,
)
from yado_booking.lark.auth import TenantTokenProvider
from yado_booking.lark.client import fetch_all_records
from yado_booking.lark.records import (
    parse_blocked_dates,
    parse_payment_masters,
    parse_reservations,
    parse_special_rates,
)

logger = structlog.get_logger(__name__)

CONFIRMED_STATUS = "Confirmed"


class RecordsBackend:
    """
    Lark Base tables holding reservations, special rates and payment links.

    A table whose ID is not configured reads as empty.

    Args:
        provider: Tenant token provider
        base_id: Lark Base (app token) ID
        reservations_table_id: Table of reservations and owner-blocked dates
        special_rates_table_id: Table of special rates
        payment_masters_table_id: Table of pre-issued payment links
    """

    def __init__(
        self,
        provider: TenantTokenProvider,
        base_id: str = LARK_BASE_ID,
        reservations_table_id: str = LARK_RESERVATIONS_TABLE_ID,
        special_rates_table_id: str = LARK_SPECIAL_RATES_TABLE_ID,
        payment_masters_table_id: str = LARK_PAYMENT_MASTERS_TABLE_ID,
    ):
        self.provider = provider
        self.base_id = base_id
        self.reservations_table_id = reservations_table_id
        self.special_rates_table_id = special_rates_table_id
        self.payment_masters_table_id = payment_masters_table_id

    @property
    def is_configured(self) -> bool:
        return bool(self.provider.is_configured and self.base_id and self.reservations_table_id)

    def _fetch(self, table_id: str, filter_formula: str | None = None) -> list[dict]:
        if not table_id or not self.base_id:
            logger.debug("lark_table_not_configured", table_id=table_id)
            return []
        return fetch_all_records(
            table_id, self.provider, filter_formula=filter_formula, base_id=self.base_id
        )

    def list_reservations(self, status: str | None = None) -> list[ReservationRecord]:
        """List reservations, optionally filtered by status."""
        formula = f'CurrentValue.[status]="{status}"' if status else None
        return parse_reservations(self._fetch(self.reservations_table_id, formula))

    def list_confirmed_reservations(self) -> list[ReservationRecord]:
        return self.list_reservations(status=CONFIRMED_STATUS)

    def list_blocked_dates(self) -> list[date]:
        """List dates the owner closed by hand in the reservations table."""
        return parse_blocked_dates(self._fetch(self.reservations_table_id))

    def list_special_rates(self) -> list[SpecialRate]:
        return parse_special_rates(self._fetch(self.special_rates_table_id))

    def list_payment_masters(self) -> list[PaymentMaster]:
        return parse_payment_masters(self._fetch(self.payment_masters_table_id))
