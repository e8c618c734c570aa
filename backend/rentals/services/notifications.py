from __future__ import annotations

import logging
from typing import Any

from rentals import config
from rentals.utils import now_utc, parse_object_id

logger = logging.getLogger(__name__)


async def _lookup_user_email(db, user_id: str) -> str | None:
    ids: list[Any] = [user_id]
    oid = parse_object_id(user_id)
    if oid is not None:
        ids.append(oid)
    user = await db["users"].find_one({"_id": {"$in": ids}}, {"email": 1})
    if not user:
        return None
    return user.get("email")


async def enqueue_booking_email(
    db,
    *,
    booking: dict[str, Any],
    event_type: str = "booking.confirmed",
) -> bool:
    """Create an email_outbox job for the booking's user.

    Returns False when the user has no usable address. Delivery is handled by
    the outbox worker.
    """

    email = (await _lookup_user_email(db, str(booking.get("user_id") or "")) or "").strip()
    if "@" not in email:
        logger.info("No recipient for %s on booking %s", event_type, booking.get("_id"))
        return False

    booking_id = booking["_id"]
    vehicle_id = booking.get("vehicle_id") or "-"
    start = booking.get("start_date") or ""
    end = booking.get("end_date") or ""
    total = booking.get("total_price")

    subject_prefix = "[Booking confirmed]"
    subject = f"{subject_prefix} {vehicle_id} / {start} - {end}".strip()

    base = config.PUBLIC_BASE_URL
    link = f"{base}/bookings/{booking_id}" if base else f"/bookings/{booking_id}"

    html_body = f"""
<h2>Booking Details</h2>
<p><strong>Vehicle:</strong> {vehicle_id}</p>
<p><strong>From:</strong> {start}</p>
<p><strong>To:</strong> {end}</p>
<p><strong>Total:</strong> {total}</p>
<p><strong>Status:</strong> {subject_prefix}</p>
<p><a href="{link}">View booking</a></p>
""".strip()

    text_body = f"""Booking Details\nVehicle: {vehicle_id}\nFrom: {start}\nTo: {end}\nTotal: {total}\nStatus: {subject_prefix}\nLink: {link}\n""".strip()

    now = now_utc()
    doc = {
        "booking_id": booking_id,
        "event_type": event_type,
        "from": config.NOTIFICATIONS_FROM,
        "to": [email],
        "subject": subject,
        "html_body": html_body,
        "text_body": text_body,
        "status": "pending",
        "attempt_count": 0,
        "last_error": None,
        "next_retry_at": now,
        "created_at": now,
        "sent_at": None,
    }

    await db["email_outbox"].insert_one(doc)
    return True
