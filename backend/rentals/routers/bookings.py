from __future__ import annotations

from typing import Any

from fastapi import APIRouter, Depends, Query

from rentals.auth import get_current_user, is_admin
from rentals.db import get_db
from rentals.domain.date_range import DateRange
from rentals.errors import AppError, BookingErrorCode
from rentals.repositories.booking_repository import BookingRepository
from rentals.schemas import BookingCreateRequest, BookingCreateResponse, BookingOut, CheckoutResponse
from rentals.services.booking_finalizer import finalize_booking, raise_for_outcome
from rentals.services.booking_lifecycle import load_booking, transition_booking
from rentals.services.checkout import start_checkout
from rentals.utils import serialize_doc

router = APIRouter(prefix="/api", tags=["bookings"])


async def _load_visible_booking(db, booking_id: str, user: dict[str, Any]) -> dict[str, Any]:
    booking = await load_booking(db, booking_id)
    if str(booking.get("user_id")) != str(user["id"]) and not is_admin(user):
        # Same answer as a missing booking so ids of other customers do not leak.
        raise AppError(404, BookingErrorCode.BOOKING_NOT_FOUND.value, "Booking not found", {"booking_id": booking_id})
    return booking


@router.post("/bookings", response_model=BookingCreateResponse, status_code=201)
async def create_booking(
    payload: BookingCreateRequest,
    db=Depends(get_db),
    user: dict[str, Any] = Depends(get_current_user),
):
    """Create a pending booking at the server-computed price.

    Any price sent by the client is ignored.
    """

    date_range = DateRange.parse(payload.start_date, payload.end_date)
    created = raise_for_outcome(
        await finalize_booking(
            db,
            vehicle_id=payload.vehicle_id,
            user_id=str(user["id"]),
            date_range=date_range,
            requested_status="pending",
            created_by=user.get("email"),
        )
    )
    return BookingCreateResponse(
        booking_id=created.booking_id,
        total=created.total,
        status=created.status,
        daily_prices=created.pricing.to_dict()["daily_prices"],
    )


@router.post("/checkout", response_model=CheckoutResponse, status_code=201)
async def create_checkout(
    payload: BookingCreateRequest,
    db=Depends(get_db),
    user: dict[str, Any] = Depends(get_current_user),
):
    date_range = DateRange.parse(payload.start_date, payload.end_date)
    created, session = await start_checkout(db, vehicle_id=payload.vehicle_id, user=user, date_range=date_range)
    return CheckoutResponse(
        booking_id=created.booking_id,
        total=created.total,
        status=created.status,
        daily_prices=created.pricing.to_dict()["daily_prices"],
        checkout_url=session.get("url"),
        checkout_session_id=session.get("id"),
    )


@router.get("/bookings", response_model=list[BookingOut])
async def list_my_bookings(db=Depends(get_db), user: dict[str, Any] = Depends(get_current_user)):
    docs = await BookingRepository(db).list_bookings(user_id=str(user["id"]))
    return [serialize_doc(d) for d in docs]


@router.get("/bookings/session", response_model=BookingOut)
async def get_booking_by_checkout_session(
    session_id: str = Query(..., alias="sessionId", min_length=1),
    db=Depends(get_db),
    user: dict[str, Any] = Depends(get_current_user),
):
    """Booking behind a payment session, for the post-payment confirmation page."""
    booking = await BookingRepository(db).find_by_checkout_session(session_id)
    if not booking or (str(booking.get("user_id")) != str(user["id"]) and not is_admin(user)):
        raise AppError(404, BookingErrorCode.BOOKING_NOT_FOUND.value, "Booking not found", {"session_id": session_id})
    return serialize_doc(booking)


@router.get("/bookings/{booking_id}", response_model=BookingOut)
async def get_booking(booking_id: str, db=Depends(get_db), user: dict[str, Any] = Depends(get_current_user)):
    return serialize_doc(await _load_visible_booking(db, booking_id, user))


@router.post("/bookings/{booking_id}/cancel", response_model=BookingOut)
async def cancel_booking(booking_id: str, db=Depends(get_db), user: dict[str, Any] = Depends(get_current_user)):
    await _load_visible_booking(db, booking_id, user)
    updated = await transition_booking(db, booking_id, "cancelled", actor=user.get("email"))
    return serialize_doc(updated)
