from __future__ import annotations

from typing import Any, Dict, Iterable, List, Optional

from motor.motor_asyncio import AsyncIOMotorDatabase

from rentals.repositories.base_repository import get_collection


class VehicleRepository:
    """Read-only view of the fleet. Vehicle CRUD lives in another service."""

    def __init__(self, db: AsyncIOMotorDatabase) -> None:
        self._col = get_collection(db, "vehicles")

    async def list_all(self) -> List[Dict[str, Any]]:
        cursor = self._col.find({}).sort("_id", 1)
        return await cursor.to_list(length=None)

    async def get_by_id(self, vehicle_id: str) -> Optional[Dict[str, Any]]:
        return await self._col.find_one({"_id": str(vehicle_id)})

    async def existing_ids(self, vehicle_ids: Iterable[str]) -> set[str]:
        ids = [str(v) for v in vehicle_ids]
        if not ids:
            return set()
        cursor = self._col.find({"_id": {"$in": ids}}, {"_id": 1})
        docs = await cursor.to_list(length=len(ids))
        return {str(d["_id"]) for d in docs}
