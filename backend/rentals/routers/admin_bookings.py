from __future__ import annotations

from typing import Any, Optional

from fastapi import APIRouter, Depends, Query

from rentals.auth import require_roles
from rentals.db import get_db
from rentals.domain.date_range import DateRange
from rentals.repositories.booking_repository import BookingRepository
from rentals.schemas import (
    AdminBookingCreateRequest,
    BookingCreateResponse,
    BookingOut,
    BookingStatus,
    BookingStatusUpdateRequest,
)
from rentals.services.booking_finalizer import finalize_booking, raise_for_outcome
from rentals.services.booking_lifecycle import transition_booking
from rentals.utils import serialize_doc

router = APIRouter(prefix="/api/admin/bookings", tags=["admin_bookings"])


@router.get("", response_model=list[BookingOut])
async def list_bookings(
    status: Optional[BookingStatus] = Query(None),
    vehicle_id: Optional[str] = Query(None, alias="vehicleId"),
    user_id: Optional[str] = Query(None, alias="userId"),
    limit: int = Query(200, ge=1, le=1000),
    db=Depends(get_db),
    user: dict[str, Any] = Depends(require_roles(["admin"])),
):
    docs = await BookingRepository(db).list_bookings(
        user_id=user_id,
        vehicle_id=vehicle_id,
        status=status,
        limit=limit,
    )
    return [serialize_doc(d) for d in docs]


@router.post("", response_model=BookingCreateResponse, status_code=201)
async def create_booking_for_customer(
    payload: AdminBookingCreateRequest,
    db=Depends(get_db),
    user: dict[str, Any] = Depends(require_roles(["admin"])),
):
    """Operator booking; confirmed by default, price recomputed like any other booking."""
    date_range = DateRange.parse(payload.start_date, payload.end_date)
    created = raise_for_outcome(
        await finalize_booking(
            db,
            vehicle_id=payload.vehicle_id,
            user_id=payload.user_id,
            date_range=date_range,
            requested_status=payload.status,
            created_by=user.get("email"),
        )
    )
    return BookingCreateResponse(
        booking_id=created.booking_id,
        total=created.total,
        status=created.status,
        daily_prices=created.pricing.to_dict()["daily_prices"],
    )


@router.post("/{booking_id}/status", response_model=BookingOut)
async def update_booking_status(
    booking_id: str,
    payload: BookingStatusUpdateRequest,
    db=Depends(get_db),
    user: dict[str, Any] = Depends(require_roles(["admin"])),
):
    updated = await transition_booking(db, booking_id, payload.status, actor=user.get("email"))
    return serialize_doc(updated)
