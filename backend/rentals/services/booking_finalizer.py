from __future__ import annotations

"""Booking finalizer.

Single entry point for creating bookings (customer, checkout and admin paths).

- The price is always recomputed from the current rule snapshot; callers
  cannot pass one in.
- Availability check and insert behave as one unit: the booking first claims
  its (vehicle, day) locks, then re-checks the availability resolver, then
  inserts. Losing either step yields a BookingConflict instead of a double
  booking.

Outcomes are returned as tagged results; only unexpected storage failures
raise.
"""

import logging
from dataclasses import dataclass, field
from datetime import date
from typing import Any, Dict, Literal, Optional, Union

from bson import ObjectId

from rentals import config
from rentals.domain.booking_state_machine import INITIAL_STATUSES
from rentals.domain.date_range import DateRange
from rentals.domain.pricing import PriceBreakdown, Vehicle
from rentals.errors import AppError, BookingErrorCode
from rentals.repositories.booking_repository import BookingRepository
from rentals.repositories.day_lock_repository import DayLockRepository
from rentals.repositories.vehicle_repository import VehicleRepository
from rentals.services.availability import is_vehicle_available
from rentals.services.listing import quote_vehicle
from rentals.services.notifications import enqueue_booking_email
from rentals.utils import now_utc

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class BookingCreated:
    booking_id: str
    total: int
    status: str
    pricing: PriceBreakdown
    booking: Dict[str, Any] = field(compare=False)
    outcome: Literal["created"] = "created"


@dataclass(frozen=True)
class BookingConflict:
    vehicle_id: str
    date_range: DateRange
    reason: str
    outcome: Literal["conflict"] = "conflict"

    def to_error(self) -> AppError:
        start, end = self.date_range.iso()
        return AppError(
            409,
            BookingErrorCode.BOOKING_CONFLICT.value,
            "Vehicle is not available for the requested dates",
            {"vehicle_id": self.vehicle_id, "start_date": start, "end_date": end, "reason": self.reason},
            retryable=True,
        )


@dataclass(frozen=True)
class BookingRejected:
    code: str
    message: str
    details: Dict[str, Any] = field(default_factory=dict)
    status_code: int = 422
    outcome: Literal["rejected"] = "rejected"

    def to_error(self) -> AppError:
        return AppError(self.status_code, self.code, self.message, self.details, retryable=False)


BookingOutcome = Union[BookingCreated, BookingConflict, BookingRejected]


def check_booking_window(date_range: DateRange, *, today: Optional[date] = None) -> Optional[BookingRejected]:
    """Date policy for new bookings; None when the range is acceptable."""
    today = today or now_utc().date()

    if not config.ALLOW_PAST_BOOKINGS and date_range.start < today:
        return BookingRejected(
            BookingErrorCode.DATE_IN_PAST.value,
            "Bookings cannot start in the past",
            {"start_date": date_range.start.isoformat(), "today": today.isoformat()},
        )

    if date_range.num_days > config.BOOKING_MAX_DAYS:
        return BookingRejected(
            BookingErrorCode.RANGE_TOO_LONG.value,
            f"Bookings are limited to {config.BOOKING_MAX_DAYS} days",
            {"num_days": date_range.num_days, "max_days": config.BOOKING_MAX_DAYS},
        )
    return None


async def finalize_booking(
    db,
    *,
    vehicle_id: str,
    user_id: str,
    date_range: DateRange,
    requested_status: str = "pending",
    created_by: Optional[str] = None,
    today: Optional[date] = None,
) -> BookingOutcome:
    if requested_status not in INITIAL_STATUSES:
        return BookingRejected(
            BookingErrorCode.INVALID_STATUS.value,
            "Bookings can only be created as pending or confirmed",
            {"status": requested_status},
        )

    rejected = check_booking_window(date_range, today=today)
    if rejected is not None:
        return rejected

    vehicle_doc = await VehicleRepository(db).get_by_id(vehicle_id)
    if not vehicle_doc:
        return BookingRejected(
            BookingErrorCode.VEHICLE_NOT_FOUND.value,
            "Vehicle not found",
            {"vehicle_id": vehicle_id},
            status_code=404,
        )
    vehicle = Vehicle.from_doc(vehicle_doc)

    pricing = await quote_vehicle(db, vehicle, date_range)

    booking_id = ObjectId()
    locks = DayLockRepository(db)

    if not await locks.claim(vehicle.id, date_range, booking_id):
        logger.info("Booking conflict vehicle=%s range=%s..%s (day lock)", vehicle.id, date_range.start, date_range.end)
        return BookingConflict(vehicle_id=vehicle.id, date_range=date_range, reason="days_taken")

    try:
        # Bookings written before the lock table existed are only visible here.
        if not await is_vehicle_available(db, vehicle, date_range):
            await locks.release_booking(booking_id)
            logger.info(
                "Booking conflict vehicle=%s range=%s..%s (overlapping booking)",
                vehicle.id,
                date_range.start,
                date_range.end,
            )
            return BookingConflict(vehicle_id=vehicle.id, date_range=date_range, reason="overlapping_booking")

        start, end = date_range.iso()
        doc = await BookingRepository(db).insert(
            booking_id,
            {
                "vehicle_id": vehicle.id,
                "user_id": user_id,
                "start_date": start,
                "end_date": end,
                "status": requested_status,
                "total_price": pricing.total,
                "daily_prices": pricing.to_dict()["daily_prices"],
                "created_by": created_by,
            },
        )
    except Exception:
        logger.exception("Booking insert failed vehicle=%s booking=%s; releasing day locks", vehicle.id, booking_id)
        await locks.release_booking(booking_id)
        raise

    logger.info(
        "Booking created id=%s vehicle=%s range=%s..%s status=%s total=%s",
        booking_id,
        vehicle.id,
        date_range.start,
        date_range.end,
        requested_status,
        pricing.total,
    )
    if requested_status == "confirmed":
        await enqueue_booking_email(db, booking=doc, event_type="booking.confirmed")

    return BookingCreated(
        booking_id=str(booking_id),
        total=pricing.total,
        status=requested_status,
        pricing=pricing,
        booking=doc,
    )


def raise_for_outcome(outcome: BookingOutcome) -> BookingCreated:
    """Turn a non-created outcome into the matching AppError."""
    if isinstance(outcome, BookingCreated):
        return outcome
    raise outcome.to_error()

