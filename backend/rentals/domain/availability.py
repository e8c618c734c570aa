from __future__ import annotations

from datetime import date
from typing import Any, Iterable, Sequence, TypeVar

from rentals.domain.date_range import DateRange


V = TypeVar("V")


def booking_overlaps(booking: dict[str, Any], date_range: DateRange) -> bool:
    """Inclusive overlap test against a stored booking (ISO date strings)."""
    try:
        start = date.fromisoformat(str(booking["start_date"]))
        end = date.fromisoformat(str(booking["end_date"]))
    except (KeyError, ValueError):
        return False
    return date_range.overlaps(start, end)


def blocked_vehicle_ids(
    bookings: Iterable[dict[str, Any]],
    date_range: DateRange,
    blocking_statuses: Sequence[str],
) -> set[str]:
    statuses = set(blocking_statuses)
    return {
        str(b.get("vehicle_id"))
        for b in bookings
        if b.get("status") in statuses and booking_overlaps(b, date_range)
    }


def filter_available(candidates: Iterable[V], blocked_ids: set[str], *, key=lambda v: v.id) -> list[V]:
    """Candidates minus blocked ids, candidate order preserved."""
    return [v for v in candidates if str(key(v)) not in blocked_ids]
