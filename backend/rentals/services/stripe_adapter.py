from __future__ import annotations

"""Stripe adapter for hosted Checkout.

Keeps the concrete Stripe SDK away from the booking code. Functions are small
and stateless so tests can monkeypatch them.
"""

from typing import Any, Dict, Optional

import os
import anyio

import stripe  # type: ignore

from rentals import config


def _stripe_client() -> stripe.StripeClient:  # type: ignore[name-defined]
    api_key = os.environ.get("STRIPE_API_KEY")
    if not api_key:
        raise RuntimeError("STRIPE_API_KEY is not configured")
    return stripe.StripeClient(api_key)  # type: ignore[attr-defined]


async def create_checkout_session(
    *,
    booking_id: str,
    vehicle: Dict[str, Any],
    start_date: str,
    end_date: str,
    num_days: int,
    total: int,
    customer_email: Optional[str] = None,
) -> Dict[str, Any]:
    """Create a Checkout Session charging `total` (whole currency units).

    The sync SDK runs in a worker thread via anyio.to_thread.run_sync.
    """

    if total <= 0:
        raise ValueError("total must be > 0")

    client = _stripe_client()
    base = config.PUBLIC_BASE_URL
    model = vehicle.get("model") or vehicle.get("id") or "Vehicle"
    image = vehicle.get("image") or ""

    def _create() -> Dict[str, Any]:  # pragma: no cover - thin sync wrapper
        params: Dict[str, Any] = {
            "payment_method_types": ["card"],
            "mode": "payment",
            "line_items": [
                {
                    "price_data": {
                        "currency": config.PAYMENT_CURRENCY,
                        "product_data": {
                            "name": f"{model} Rental",
                            "description": f"{num_days} day rental from {start_date} to {end_date}",
                            "images": [image] if image.startswith("http") else [],
                        },
                        # Whole-booking amount, daily prices already include special pricing.
                        "unit_amount": int(total) * 100,
                    },
                    "quantity": 1,
                }
            ],
            "success_url": f"{base}/bookings/confirmation?session_id={{CHECKOUT_SESSION_ID}}",
            "cancel_url": f"{base}/results?startDate={start_date}&endDate={end_date}&canceled=true",
            "metadata": {
                "booking_id": booking_id,
                "vehicle_id": str(vehicle.get("id") or ""),
            },
        }
        if customer_email:
            params["customer_email"] = customer_email

        session = client.checkout.sessions.create(params=params)
        return session.to_dict() if hasattr(session, "to_dict") else dict(session)

    return await anyio.to_thread.run_sync(_create)
