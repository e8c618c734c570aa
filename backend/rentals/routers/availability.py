from __future__ import annotations

from fastapi import APIRouter, Depends, Query

from rentals import config
from rentals.db import get_db
from rentals.domain.date_range import DateRange
from rentals.schemas import AvailabilityResponse
from rentals.services.listing import list_fleet, project_listing

router = APIRouter(prefix="/api/availability", tags=["availability"])


@router.get("", response_model=AvailabilityResponse)
async def search_availability(
    start_date: str = Query(..., alias="startDate"),
    end_date: str = Query(..., alias="endDate"),
    db=Depends(get_db),
):
    """Vehicles free for the whole range, each with its per-day price breakdown."""
    date_range = DateRange.parse(start_date, end_date, max_days=config.SEARCH_MAX_DAYS)
    fleet = await list_fleet(db)
    listings = await project_listing(db, fleet, date_range)
    start, end = date_range.iso()
    return AvailabilityResponse(
        start_date=start,
        end_date=end,
        available_vehicles=[listing.to_dict() for listing in listings],
    )
