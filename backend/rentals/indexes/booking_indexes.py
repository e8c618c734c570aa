from __future__ import annotations

import logging

from pymongo import ASCENDING, DESCENDING
from pymongo.errors import OperationFailure

logger = logging.getLogger(__name__)


async def ensure_booking_indexes(db):
    """Ensure indexes for bookings, day locks, pricing rules and outbox.

    Same pattern as the other index helpers: swallow IndexOptionsConflict /
    already-exists, but log it. The day-lock unique index is what makes
    overlapping bookings impossible, so failing to build it is fatal.
    """

    async def _safe_create(collection, *args, **kwargs):
        try:
            await collection.create_index(*args, **kwargs)
        except OperationFailure as e:
            msg = str(e).lower()
            if (
                "indexoptionsconflict" in msg
                or "indexkeyspecsconflict" in msg
                or "already exists" in msg
            ):
                logger.warning(
                    "[booking_indexes] Keeping legacy index for %s (name=%s): %s",
                    collection.name,
                    kwargs.get("name"),
                    msg,
                )
                return
            raise

    await db["vehicle_day_locks"].create_index(
        [("vehicle_id", ASCENDING), ("day", ASCENDING)],
        unique=True,
        name="vehicle_day_locks_vehicle_day_uniq",
    )
    await _safe_create(
        db["vehicle_day_locks"],
        [("booking_id", ASCENDING)],
        name="vehicle_day_locks_booking",
    )

    # Availability overlap query: status + vehicle + range
    await _safe_create(
        db["bookings"],
        [("status", ASCENDING), ("vehicle_id", ASCENDING), ("start_date", ASCENDING), ("end_date", ASCENDING)],
        name="bookings_status_vehicle_range",
    )
    await _safe_create(
        db["bookings"],
        [("user_id", ASCENDING), ("start_date", DESCENDING)],
        name="bookings_user_start",
    )
    await _safe_create(
        db["bookings"],
        [("checkout_session_id", ASCENDING)],
        name="bookings_checkout_session",
        sparse=True,
    )

    await _safe_create(
        db["special_pricing_rules"],
        [("start_date", ASCENDING), ("end_date", ASCENDING)],
        name="special_pricing_rules_range",
    )
    await _safe_create(
        db["special_pricing_rules"],
        [("vehicle_ids", ASCENDING)],
        name="special_pricing_rules_vehicles",
    )

    await _safe_create(
        db["email_outbox"],
        [("status", ASCENDING), ("created_at", ASCENDING)],
        name="email_outbox_status_created",
    )
