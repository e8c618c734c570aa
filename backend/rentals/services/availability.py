from __future__ import annotations

from typing import Sequence

from rentals import config
from rentals.domain.availability import blocked_vehicle_ids, filter_available
from rentals.domain.date_range import DateRange
from rentals.domain.pricing import Vehicle
from rentals.repositories.booking_repository import BookingRepository


def blocking_statuses() -> tuple[str, ...]:
    """Booking statuses that make a vehicle unavailable for overlapping days."""
    if config.PENDING_BLOCKS_AVAILABILITY:
        return ("confirmed", "pending")
    return ("confirmed",)


async def resolve_availability(
    db,
    candidates: Sequence[Vehicle],
    date_range: DateRange,
) -> list[Vehicle]:
    """Filter `candidates` down to vehicles with no overlapping blocking booking.

    An empty result is a normal outcome, not an error.
    """

    if not candidates:
        return []

    statuses = blocking_statuses()
    bookings = await BookingRepository(db).find_overlapping(
        date_range,
        statuses=statuses,
        vehicle_ids=[v.id for v in candidates],
    )
    blocked = blocked_vehicle_ids(bookings, date_range, statuses)
    return filter_available(candidates, blocked)


async def is_vehicle_available(db, vehicle: Vehicle, date_range: DateRange) -> bool:
    return bool(await resolve_availability(db, [vehicle], date_range))
