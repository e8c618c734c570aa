from __future__ import annotations

import json

import pytest
from bson import ObjectId

from rentals.domain.date_range import DateRange
from rentals.services import stripe_handlers as handlers
from rentals.services.booking_finalizer import BookingCreated, finalize_booking

WEBHOOK_SECRET = "whsec_test"


def _event(event_type: str, booking_id: str, **obj) -> dict:
    return {
        "id": f"evt_{ObjectId()}",
        "object": "event",
        "type": event_type,
        "data": {"object": {"id": "cs_test_1", "object": "checkout.session", "metadata": {"booking_id": booking_id}, **obj}},
    }


async def _post(async_client, monkeypatch, payload: dict):
    async def fake_verify(raw_body, signature):  # pragma: no cover - simple shim
        assert signature == "valid-for-test"
        return json.loads(raw_body)

    monkeypatch.setattr(handlers, "verify_and_parse_stripe_event", fake_verify)
    return await async_client.post(
        "/api/webhooks/stripe",
        content=json.dumps(payload).encode("utf-8"),
        headers={"Stripe-Signature": "valid-for-test", "Content-Type": "application/json"},
    )


@pytest.fixture
async def pending_booking(test_db, monkeypatch) -> BookingCreated:
    monkeypatch.setenv("STRIPE_WEBHOOK_SECRET", WEBHOOK_SECRET)
    outcome = await finalize_booking(
        test_db,
        vehicle_id="model-3",
        user_id="user_alice",
        date_range=DateRange.parse("2031-03-01", "2031-03-02"),
    )
    assert isinstance(outcome, BookingCreated)
    return outcome


@pytest.mark.anyio
async def test_invalid_signature_is_rejected(async_client, pending_booking, monkeypatch):
    r = await async_client.post(
        "/api/webhooks/stripe",
        content=b"{}",
        headers={"Stripe-Signature": "t=1,v1=deadbeef"},
    )

    assert r.status_code == 400
    assert r.json()["error"]["code"] == "stripe_invalid_signature"


@pytest.mark.anyio
async def test_completed_session_confirms_booking(async_client, test_db, pending_booking, monkeypatch):
    r = await _post(
        async_client,
        monkeypatch,
        _event("checkout.session.completed", pending_booking.booking_id, payment_intent="pi_123"),
    )

    assert r.status_code == 200, r.text
    assert r.json()["decision"] == "applied"
    stored = await test_db["bookings"].find_one({"_id": ObjectId(pending_booking.booking_id)})
    assert stored["status"] == "confirmed"
    assert stored["payment_intent_id"] == "pi_123"
    assert await test_db["email_outbox"].count_documents({"booking_id": stored["_id"]}) == 1


@pytest.mark.anyio
async def test_repeated_completed_event_is_idempotent(async_client, test_db, pending_booking, monkeypatch):
    event = _event("checkout.session.completed", pending_booking.booking_id)

    await _post(async_client, monkeypatch, event)
    r = await _post(async_client, monkeypatch, event)

    assert r.status_code == 200
    assert r.json()["decision"] == "already_applied"
    assert await test_db["email_outbox"].count_documents({}) == 1


@pytest.mark.anyio
async def test_expired_session_cancels_and_frees_dates(async_client, test_db, pending_booking, monkeypatch):
    r = await _post(async_client, monkeypatch, _event("checkout.session.expired", pending_booking.booking_id))

    assert r.status_code == 200
    stored = await test_db["bookings"].find_one({"_id": ObjectId(pending_booking.booking_id)})
    assert stored["status"] == "cancelled"
    assert await test_db["vehicle_day_locks"].count_documents({}) == 0


@pytest.mark.anyio
async def test_late_completion_after_cancel_is_ignored(async_client, test_db, pending_booking, monkeypatch):
    await _post(async_client, monkeypatch, _event("checkout.session.expired", pending_booking.booking_id))
    r = await _post(async_client, monkeypatch, _event("checkout.session.completed", pending_booking.booking_id))

    assert r.status_code == 200
    assert r.json()["decision"] == "ignored_final"
    stored = await test_db["bookings"].find_one({"_id": ObjectId(pending_booking.booking_id)})
    assert stored["status"] == "cancelled"


@pytest.mark.anyio
async def test_unhandled_event_type_is_acknowledged(async_client, pending_booking, monkeypatch):
    r = await _post(async_client, monkeypatch, _event("customer.created", pending_booking.booking_id))

    assert r.status_code == 200
    assert r.json() == {"ok": True, "ignored": "customer.created"}
