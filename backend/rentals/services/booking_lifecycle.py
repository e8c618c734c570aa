from __future__ import annotations

import logging
from typing import Any, Dict, Optional

from rentals.domain.booking_state_machine import (
    BookingStateTransitionError,
    is_terminal,
    validate_transition,
)
from rentals.errors import AppError, BookingErrorCode
from rentals.repositories.booking_repository import BookingRepository
from rentals.repositories.day_lock_repository import DayLockRepository
from rentals.services.notifications import enqueue_booking_email

logger = logging.getLogger(__name__)


async def load_booking(db, booking_id: str) -> Dict[str, Any]:
    booking = await BookingRepository(db).get_by_id(booking_id)
    if not booking:
        raise AppError(404, BookingErrorCode.BOOKING_NOT_FOUND.value, "Booking not found", {"booking_id": booking_id})
    return booking


async def transition_booking(
    db,
    booking_id: str,
    target: str,
    *,
    actor: Optional[str] = None,
    extra_updates: Optional[Dict[str, Any]] = None,
) -> Dict[str, Any]:
    """Move a booking to `target` through the state machine.

    Entering a terminal status frees the booking's days for new bookings;
    entering `confirmed` queues the customer notification.
    """

    booking = await load_booking(db, booking_id)
    current = booking.get("status")

    try:
        validate_transition(current, target)
    except BookingStateTransitionError as exc:
        raise AppError(
            422,
            BookingErrorCode.INVALID_STATE_TRANSITION.value,
            str(exc),
            {"booking_id": booking_id, "current": current, "target": target},
        )

    updated = await BookingRepository(db).transition_status(
        booking["_id"],
        current=current,
        target=target,
        extra_updates=extra_updates,
    )
    if updated is None:
        raise AppError(
            409,
            BookingErrorCode.BOOKING_STATE_CHANGED.value,
            "Booking was modified concurrently",
            {"booking_id": booking_id, "expected": current, "target": target},
            retryable=True,
        )

    logger.info("Booking %s: %s -> %s (actor=%s)", booking_id, current, target, actor)

    if is_terminal(target):
        released = await DayLockRepository(db).release_booking(booking["_id"])
        logger.debug("Released %d day locks for booking %s", released, booking_id)

    if target == "confirmed":
        await enqueue_booking_email(db, booking=updated, event_type="booking.confirmed")

    return updated
