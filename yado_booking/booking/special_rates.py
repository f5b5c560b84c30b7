"""Resolve which special rate, if any, prices a given night."""

from __future__ import annotations

from datetime import date
from typing import Iterable, Optional

from yado_booking.booking.models import ResolvedRate, SpecialRate


def applicable_special_rate(night: date, special_rates: Iterable[SpecialRate]) -> Optional[SpecialRate]:
    """
    Pick the special rate that applies to a night.

    Rates whose inclusive [start_date, end_date] interval contains the night
    are candidates; the highest priority wins. Among candidates sharing the
    highest priority, the first one in the supplied order wins.

    Args:
        night: Calendar date of the night
        special_rates: Snapshot of special rates, in backend order

    Returns:
        Optional[SpecialRate]: The winning rate, or None when no rate covers the night
    """
    winner: Optional[SpecialRate] = None
    for rate in special_rates:
        if not rate.covers(night):
            continue
        # strict ">" keeps the earliest rate on equal priority
        if winner is None or rate.priority > winner.priority:
            winner = rate
    return winner


def resolve_special_rate(night: date, special_rates: Iterable[SpecialRate]) -> Optional[ResolvedRate]:
    """
    Resolve the nightly price override for a date.

    Returns:
        Optional[ResolvedRate]: Price and provenance of the winning special rate,
        or None when the standard rate applies.
    """
    rate = applicable_special_rate(night, special_rates)
    if rate is None:
        return None
    return ResolvedRate(
        rate_per_night=rate.price_per_night,
        is_special_rate=True,
        special_rate_name=rate.name,
    )
