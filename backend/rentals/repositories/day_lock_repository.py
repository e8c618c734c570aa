from __future__ import annotations

"""Per-day vehicle claims backing the booking uniqueness constraint.

One document per (vehicle_id, day), unique-indexed (see
indexes/booking_indexes.py). A booking owns the days it claimed until it
reaches a terminal status.

A lock whose booking is terminal, or was never written and is older than
`config.DAY_LOCK_GRACE_SECONDS`, is an orphan (process died between claim and
insert, or a release failed). Claims take orphans over instead of backing off.
"""

import logging
from datetime import timedelta
from typing import Any, Dict, List, Optional

from bson import ObjectId
from motor.motor_asyncio import AsyncIOMotorDatabase
from pymongo.errors import DuplicateKeyError

from rentals import config
from rentals.domain.booking_state_machine import is_terminal
from rentals.domain.date_range import DateRange
from rentals.repositories.base_repository import get_collection
from rentals.utils import ensure_aware, now_utc

logger = logging.getLogger(__name__)


class DayLockRepository:
    def __init__(self, db: AsyncIOMotorDatabase) -> None:
        self._col = get_collection(db, "vehicle_day_locks")
        self._bookings = get_collection(db, "bookings")

    async def claim(self, vehicle_id: str, date_range: DateRange, booking_id: ObjectId) -> bool:
        """Claim every day of the range for `booking_id`, all or nothing.

        Days are claimed in ascending order; on the first day held by another
        live booking the days claimed so far are released and False is
        returned.
        """

        claimed: List[str] = []
        for day in date_range.days():
            day_iso = day.isoformat()
            if not await self._claim_day(str(vehicle_id), day_iso, booking_id):
                logger.info(
                    "Day lock taken vehicle=%s day=%s (booking %s backs off)",
                    vehicle_id,
                    day_iso,
                    booking_id,
                )
                await self._release_days(vehicle_id, claimed, booking_id)
                return False
            claimed.append(day_iso)
        return True

    async def _claim_day(self, vehicle_id: str, day_iso: str, booking_id: ObjectId) -> bool:
        doc = {"vehicle_id": vehicle_id, "day": day_iso, "booking_id": booking_id}
        try:
            await self._col.insert_one({**doc, "created_at": now_utc()})
            return True
        except DuplicateKeyError:
            pass

        holder = await self._col.find_one({"vehicle_id": vehicle_id, "day": day_iso})
        if holder is None:
            # Released between our insert and the lookup.
            return await self._insert_once(doc)
        if not await self._is_orphan(holder):
            return False

        res = await self._col.delete_one({"_id": holder["_id"], "booking_id": holder.get("booking_id")})
        if res.deleted_count:
            logger.warning(
                "Reclaimed orphan day lock vehicle=%s day=%s from booking %s",
                vehicle_id,
                day_iso,
                holder.get("booking_id"),
            )
        return await self._insert_once(doc)

    async def _insert_once(self, doc: Dict[str, Any]) -> bool:
        try:
            await self._col.insert_one({**doc, "created_at": now_utc()})
        except DuplicateKeyError:
            return False
        return True

    async def _is_orphan(self, lock: Dict[str, Any]) -> bool:
        booking: Optional[Dict[str, Any]] = await self._bookings.find_one(
            {"_id": lock.get("booking_id")}, {"status": 1}
        )
        if booking is not None:
            return is_terminal(booking.get("status"))
        # No booking yet: either an in-flight claim or a crashed one.
        created_at = ensure_aware(lock.get("created_at"))
        if created_at is None:
            return True
        return now_utc() - created_at > timedelta(seconds=config.DAY_LOCK_GRACE_SECONDS)

    async def release_booking(self, booking_id: ObjectId) -> int:
        res = await self._col.delete_many({"booking_id": booking_id})
        return res.deleted_count

    async def _release_days(self, vehicle_id: str, days: List[str], booking_id: ObjectId) -> None:
        if not days:
            return
        await self._col.delete_many(
            {"vehicle_id": str(vehicle_id), "day": {"$in": days}, "booking_id": booking_id}
        )
