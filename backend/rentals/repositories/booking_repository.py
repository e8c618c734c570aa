from __future__ import annotations

from typing import Any, Dict, Iterable, List, Optional, Sequence

from bson import ObjectId
from motor.motor_asyncio import AsyncIOMotorDatabase

from rentals.domain.date_range import DateRange
from rentals.repositories.base_repository import get_collection
from rentals.utils import now_utc, parse_object_id


class BookingRepository:
    def __init__(self, db: AsyncIOMotorDatabase) -> None:
        self._db = db
        self._col = get_collection(db, "bookings")

    async def insert(self, booking_id: ObjectId, payload: Dict[str, Any]) -> Dict[str, Any]:
        now = now_utc()
        doc: Dict[str, Any] = {
            "_id": booking_id,
            "vehicle_id": str(payload["vehicle_id"]),
            "user_id": str(payload["user_id"]),
            "start_date": payload["start_date"],
            "end_date": payload["end_date"],
            "status": payload["status"],
            "total_price": int(payload["total_price"]),
            "daily_prices": payload.get("daily_prices") or [],
            "created_by": payload.get("created_by"),
            "created_at": now,
            "updated_at": now,
        }
        await self._col.insert_one(doc)
        return doc

    async def get_by_id(self, booking_id: str) -> Optional[Dict[str, Any]]:
        oid = parse_object_id(booking_id)
        if oid is None:
            return None
        return await self._col.find_one({"_id": oid})

    async def find_overlapping(
        self,
        date_range: DateRange,
        *,
        statuses: Sequence[str],
        vehicle_ids: Optional[Iterable[str]] = None,
    ) -> List[Dict[str, Any]]:
        """Bookings in `statuses` whose inclusive range overlaps `date_range`.

        Dates are stored as YYYY-MM-DD strings, so lexical comparison is
        calendar comparison.
        """

        start, end = date_range.iso()
        flt: Dict[str, Any] = {
            "status": {"$in": list(statuses)},
            "start_date": {"$lte": end},
            "end_date": {"$gte": start},
        }
        if vehicle_ids is not None:
            flt["vehicle_id"] = {"$in": [str(v) for v in vehicle_ids]}

        cursor = self._col.find(flt, {"vehicle_id": 1, "start_date": 1, "end_date": 1, "status": 1})
        return await cursor.to_list(length=None)

    async def transition_status(
        self,
        booking_id: ObjectId,
        *,
        current: str,
        target: str,
        extra_updates: Optional[Dict[str, Any]] = None,
    ) -> Optional[Dict[str, Any]]:
        """Compare-and-set the status. Returns the updated doc, or None when
        the booking was no longer in `current`."""

        updates: Dict[str, Any] = {"status": target, "updated_at": now_utc()}
        if extra_updates:
            updates.update(extra_updates)

        res = await self._col.update_one({"_id": booking_id, "status": current}, {"$set": updates})
        if res.modified_count == 0:
            return None
        return await self._col.find_one({"_id": booking_id})

    async def set_fields(self, booking_id: ObjectId, fields: Dict[str, Any]) -> None:
        updates = dict(fields)
        updates["updated_at"] = now_utc()
        await self._col.update_one({"_id": booking_id}, {"$set": updates})

    async def find_by_checkout_session(self, session_id: str) -> Optional[Dict[str, Any]]:
        return await self._col.find_one({"checkout_session_id": session_id})

    async def list_bookings(
        self,
        *,
        user_id: Optional[str] = None,
        vehicle_id: Optional[str] = None,
        status: Optional[str] = None,
        limit: int = 200,
    ) -> List[Dict[str, Any]]:
        flt: Dict[str, Any] = {}
        if user_id:
            flt["user_id"] = str(user_id)
        if vehicle_id:
            flt["vehicle_id"] = str(vehicle_id)
        if status:
            flt["status"] = status

        cursor = self._col.find(flt).sort("start_date", -1).limit(limit)
        return await cursor.to_list(length=limit)

    async def list_vehicle_schedule(self, vehicle_id: str, statuses: Sequence[str]) -> List[Dict[str, Any]]:
        cursor = self._col.find(
            {"vehicle_id": str(vehicle_id), "status": {"$in": list(statuses)}},
            {"start_date": 1, "end_date": 1, "status": 1},
        ).sort("start_date", 1)
        return await cursor.to_list(length=None)
