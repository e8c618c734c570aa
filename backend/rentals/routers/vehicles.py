from __future__ import annotations

from fastapi import APIRouter, Depends, Query

from rentals import config
from rentals.db import get_db
from rentals.domain.date_range import DateRange
from rentals.domain.pricing import Vehicle
from rentals.errors import AppError, BookingErrorCode
from rentals.repositories.booking_repository import BookingRepository
from rentals.repositories.vehicle_repository import VehicleRepository
from rentals.schemas import VehicleQuoteOut, VehicleScheduleOut
from rentals.services.availability import blocking_statuses, is_vehicle_available
from rentals.services.listing import VehicleListing, quote_vehicle

router = APIRouter(prefix="/api/vehicles", tags=["vehicles"])


async def _load_vehicle(db, vehicle_id: str) -> Vehicle:
    doc = await VehicleRepository(db).get_by_id(vehicle_id)
    if not doc:
        raise AppError(404, BookingErrorCode.VEHICLE_NOT_FOUND.value, "Vehicle not found", {"vehicle_id": vehicle_id})
    return Vehicle.from_doc(doc)


@router.get("/{vehicle_id}/pricing", response_model=VehicleQuoteOut)
async def get_vehicle_quote(
    vehicle_id: str,
    start_date: str = Query(..., alias="startDate"),
    end_date: str = Query(..., alias="endDate"),
    db=Depends(get_db),
):
    date_range = DateRange.parse(start_date, end_date, max_days=config.SEARCH_MAX_DAYS)
    vehicle = await _load_vehicle(db, vehicle_id)
    pricing = await quote_vehicle(db, vehicle, date_range)
    available = await is_vehicle_available(db, vehicle, date_range)
    return {**VehicleListing(vehicle=vehicle, pricing=pricing).to_dict(), "available": available}


@router.get("/{vehicle_id}/bookings", response_model=VehicleScheduleOut)
async def get_vehicle_schedule(vehicle_id: str, db=Depends(get_db)):
    """Blocked date ranges for calendar pickers; no customer data."""
    await _load_vehicle(db, vehicle_id)
    docs = await BookingRepository(db).list_vehicle_schedule(vehicle_id, blocking_statuses())
    return VehicleScheduleOut(
        vehicle_id=vehicle_id,
        bookings=[{"start_date": d["start_date"], "end_date": d["end_date"], "status": d["status"]} for d in docs],
    )
