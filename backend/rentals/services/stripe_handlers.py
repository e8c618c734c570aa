from __future__ import annotations

"""Stripe webhook handling for hosted Checkout.

- verifies the Stripe signature
- maps checkout.session.* events onto booking state transitions
- treats repeated / out-of-order events for final bookings as no-ops
"""

from typing import Any, Dict, Optional, Tuple

import json
import logging
import os

import stripe  # type: ignore

from rentals.domain.booking_state_machine import BookingStateTransitionError, validate_transition
from rentals.errors import AppError
from rentals.repositories.booking_repository import BookingRepository
from rentals.services.booking_lifecycle import transition_booking

logger = logging.getLogger(__name__)

# event type -> target booking status
_CHECKOUT_EVENTS = {
    "checkout.session.completed": "confirmed",
    "checkout.session.async_payment_succeeded": "confirmed",
    "checkout.session.expired": "cancelled",
    "checkout.session.async_payment_failed": "cancelled",
}


async def verify_and_parse_stripe_event(raw_body: bytes, signature: str | None) -> Dict[str, Any]:
    """Verify Stripe signature and return event payload as dict.

    Raises AppError(400, ...) on invalid signature.
    """

    webhook_secret = os.environ.get("STRIPE_WEBHOOK_SECRET")
    if not webhook_secret:
        raise AppError(500, "stripe_webhook_not_configured", "Stripe webhook secret is not configured")

    if not signature:
        raise AppError(400, "stripe_invalid_signature", "Missing Stripe-Signature header")

    try:
        event = stripe.Webhook.construct_event(  # type: ignore[attr-defined]
            payload=raw_body.decode("utf-8"), sig_header=signature, secret=webhook_secret
        )
    except stripe.error.SignatureVerificationError as exc:  # type: ignore[attr-defined]
        raise AppError(400, "stripe_invalid_signature", str(exc))
    except ValueError as exc:
        raise AppError(400, "stripe_invalid_payload", str(exc))

    if hasattr(event, "to_dict"):
        return event.to_dict()
    if isinstance(event, dict):
        return event
    return json.loads(str(event))


async def _find_booking(db, session: Dict[str, Any]) -> Optional[Dict[str, Any]]:
    repo = BookingRepository(db)
    metadata = session.get("metadata") or {}
    booking_id = metadata.get("booking_id")
    if booking_id:
        booking = await repo.get_by_id(booking_id)
        if booking:
            return booking
    session_id = session.get("id")
    if session_id:
        return await repo.find_by_checkout_session(session_id)
    return None


async def handle_stripe_event(db, event: Dict[str, Any]) -> Dict[str, Any]:
    """Apply a verified event. Returns the response body; always a 200 for
    events that were understood, so Stripe does not retry business no-ops."""

    event_type = event.get("type")
    target = _CHECKOUT_EVENTS.get(event_type or "")
    if target is None:
        logger.info("Ignoring Stripe event type=%s id=%s", event_type, event.get("id"))
        return {"ok": True, "ignored": event_type}

    session = (event.get("data") or {}).get("object") or {}
    booking = await _find_booking(db, session)
    if not booking:
        logger.warning("Stripe event %s for unknown booking (session=%s)", event.get("id"), session.get("id"))
        return {"ok": True, "skipped": "booking_not_found"}

    booking_id = str(booking["_id"])
    current = booking.get("status")

    if current == target:
        return {"ok": True, "booking_id": booking_id, "status": current, "decision": "already_applied"}

    try:
        validate_transition(current, target)
    except BookingStateTransitionError:
        logger.info(
            "Stripe event %s ignored for booking %s in status %s (wanted %s)",
            event_type,
            booking_id,
            current,
            target,
        )
        return {"ok": True, "booking_id": booking_id, "status": current, "decision": "ignored_final"}

    extra: Dict[str, Any] = {"payment_event_id": event.get("id")}
    if target == "confirmed" and session.get("payment_intent"):
        extra["payment_intent_id"] = session.get("payment_intent")

    updated = await transition_booking(db, booking_id, target, actor="stripe", extra_updates=extra)
    return {"ok": True, "booking_id": booking_id, "status": updated["status"], "decision": "applied"}


async def handle_stripe_webhook(db, raw_body: bytes, signature: str | None) -> Tuple[int, Dict[str, Any]]:
    """Entrypoint used by the webhook router. Returns (status_code, body)."""

    event = await verify_and_parse_stripe_event(raw_body, signature)
    return 200, await handle_stripe_event(db, event)
