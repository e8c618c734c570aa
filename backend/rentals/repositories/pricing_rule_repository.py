from __future__ import annotations

from typing import Any, Dict, List, Optional

from motor.motor_asyncio import AsyncIOMotorDatabase

from rentals.domain.date_range import DateRange
from rentals.repositories.base_repository import get_collection
from rentals.utils import now_utc, parse_object_id


class PricingRuleRepository:
    def __init__(self, db: AsyncIOMotorDatabase) -> None:
        self._col = get_collection(db, "special_pricing_rules")

    async def insert(self, doc: Dict[str, Any]) -> Dict[str, Any]:
        now = now_utc()
        doc = dict(doc)
        doc.setdefault("created_at", now)
        doc.setdefault("updated_at", now)
        res = await self._col.insert_one(doc)
        # Mongo keeps datetimes at millisecond precision; return the stored form.
        return await self._col.find_one({"_id": res.inserted_id})

    async def get_by_id(self, rule_id: str) -> Optional[Dict[str, Any]]:
        oid = parse_object_id(rule_id)
        if oid is None:
            return None
        return await self._col.find_one({"_id": oid})

    async def update(self, rule_id: str, updates: Dict[str, Any]) -> Optional[Dict[str, Any]]:
        oid = parse_object_id(rule_id)
        if oid is None:
            return None
        updates = dict(updates)
        updates["updated_at"] = now_utc()
        res = await self._col.update_one({"_id": oid}, {"$set": updates})
        if res.matched_count == 0:
            return None
        return await self._col.find_one({"_id": oid})

    async def delete(self, rule_id: str) -> bool:
        oid = parse_object_id(rule_id)
        if oid is None:
            return False
        res = await self._col.delete_one({"_id": oid})
        return res.deleted_count == 1

    async def list_rules(self, *, vehicle_id: Optional[str] = None, limit: int = 500) -> List[Dict[str, Any]]:
        flt: Dict[str, Any] = {}
        if vehicle_id:
            flt["$or"] = [{"apply_to_all": True}, {"vehicle_ids": str(vehicle_id)}]
        cursor = self._col.find(flt).sort([("start_date", 1), ("created_at", 1)])
        return await cursor.to_list(length=limit)

    async def list_overlapping(self, date_range: DateRange) -> List[Dict[str, Any]]:
        """Rules whose range touches `date_range`; the resolver does per-day matching."""
        start, end = date_range.iso()
        cursor = self._col.find({"start_date": {"$lte": end}, "end_date": {"$gte": start}})
        return await cursor.to_list(length=None)
