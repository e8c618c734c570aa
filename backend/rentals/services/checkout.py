from __future__ import annotations

import logging
from typing import Any, Dict, Optional

from rentals.domain.date_range import DateRange
from rentals.errors import AppError, BookingErrorCode
from rentals.repositories.booking_repository import BookingRepository
from rentals.repositories.vehicle_repository import VehicleRepository
from rentals.services import stripe_adapter
from rentals.services.booking_finalizer import BookingCreated, finalize_booking, raise_for_outcome
from rentals.services.booking_lifecycle import transition_booking
from rentals.utils import serialize_doc

logger = logging.getLogger(__name__)


async def start_checkout(
    db,
    *,
    vehicle_id: str,
    user: Dict[str, Any],
    date_range: DateRange,
) -> tuple[BookingCreated, Dict[str, Any]]:
    """Finalize a pending booking and open a hosted payment session for it.

    If the payment provider cannot be reached the pending booking is cancelled
    again so its days are not held by a booking nobody can pay for.
    """

    created = raise_for_outcome(
        await finalize_booking(
            db,
            vehicle_id=vehicle_id,
            user_id=str(user["id"]),
            date_range=date_range,
            requested_status="pending",
            created_by=user.get("email"),
        )
    )

    vehicle_doc = serialize_doc(await VehicleRepository(db).get_by_id(vehicle_id)) or {"id": vehicle_id}
    start, end = date_range.iso()

    try:
        session = await stripe_adapter.create_checkout_session(
            booking_id=created.booking_id,
            vehicle=vehicle_doc,
            start_date=start,
            end_date=end,
            num_days=date_range.num_days,
            total=created.total,
            customer_email=user.get("email"),
        )
    except Exception as exc:
        logger.exception("Checkout session creation failed for booking %s", created.booking_id)
        await transition_booking(
            db,
            created.booking_id,
            "cancelled",
            actor="checkout",
            extra_updates={"cancel_reason": "payment_provider_unavailable"},
        )
        raise AppError(
            503,
            BookingErrorCode.PAYMENT_PROVIDER_UNAVAILABLE.value,
            "Payment provider is unavailable, please try again",
            {"booking_id": created.booking_id, "provider_error": type(exc).__name__},
            retryable=True,
        )

    session_id: Optional[str] = session.get("id")
    await BookingRepository(db).set_fields(created.booking["_id"], {"checkout_session_id": session_id})
    logger.info("Checkout session %s opened for booking %s", session_id, created.booking_id)
    return created, session
