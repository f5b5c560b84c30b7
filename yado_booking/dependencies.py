"""
FastAPI dependency injection providers.

Route handlers receive the booking service through these providers instead
of building it themselves, so tests can swap in mocks with
app.dependency_overrides.

The token provider is a process-wide singleton: its cache is what keeps us
from requesting a new Lark tenant token on every request.
"""

from __future__ import annotations

from functools import lru_cache
from typing import Generator

from fastapi import Depends

from yado_booking.booking.restrictions import RestrictionPolicy, get_policy
from yado_booking.lark.auth import TenantTokenProvider
from yado_booking.lark.backend import RecordsBackend
from yado_booking.services.booking import BookingService


@lru_cache(maxsize=1)
def _token_provider() -> TenantTokenProvider:
    return TenantTokenProvider()


def get_token_provider() -> Generator[TenantTokenProvider, None, None]:
    """
    Provide the shared Lark tenant token provider.

    Yields:
        TenantTokenProvider: Provider built from LARK_APP_ID / LARK_APP_SECRET
    """
    yield _token_provider()


def get_records_backend(
    provider: TenantTokenProvider = Depends(get_token_provider),
) -> Generator[RecordsBackend, None, None]:
    """
    Provide the Lark records backend for the configured base and tables.

    Yields:
        RecordsBackend: Read-only view of reservations, special rates and payment links
    """
    yield RecordsBackend(provider)


def get_restriction_policy() -> Generator[RestrictionPolicy, None, None]:
    """
    Provide the minimum-stay policy named by RESTRICTION_POLICY.

    Testing Example:
        >>> from yado_booking.booking.restrictions import OpenPolicy
        >>> app.dependency_overrides[get_restriction_policy] = lambda: OpenPolicy()
    """
    yield get_policy()


def get_booking_service(
    records: RecordsBackend = Depends(get_records_backend),
    policy: RestrictionPolicy = Depends(get_restriction_policy),
) -> Generator[BookingService, None, None]:
    """
    Provide the booking orchestrator.

    Yields:
        BookingService: Service wired to the records backend and policy

    Testing Example:
        >>> from unittest.mock import Mock
        >>> from fastapi.testclient import TestClient
        >>>
        >>> service = Mock(spec=BookingService)
        >>> app.dependency_overrides[get_booking_service] = lambda: service
        >>> client = TestClient(app)
        >>> client.get("/api/rates")
        >>> service.special_rates.assert_called_once()
    """
    yield BookingService(records, policy)
