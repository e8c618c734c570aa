from __future__ import annotations

import asyncio
from datetime import date, timedelta

import pytest
from bson import ObjectId

from rentals import config
from rentals.domain.date_range import DateRange
from rentals.services.booking_finalizer import (
    BookingConflict,
    BookingCreated,
    BookingRejected,
    finalize_booking,
)
from rentals.utils import now_utc

TODAY = date(2031, 1, 1)


async def _finalize(db, vehicle_id="model-3", start="2031-03-01", end="2031-03-03", **kwargs):
    kwargs.setdefault("today", TODAY)
    return await finalize_booking(
        db,
        vehicle_id=vehicle_id,
        user_id="user_alice",
        date_range=DateRange.parse(start, end),
        **kwargs,
    )


@pytest.mark.anyio
async def test_creates_pending_booking_with_server_price(test_db):
    await test_db["special_pricing_rules"].insert_one(
        {
            "name": "Spring",
            "start_date": "2031-03-02",
            "end_date": "2031-03-02",
            "price_type": "fixed",
            "price_value": 55,
            "apply_to_all": True,
            "vehicle_ids": [],
            "created_at": now_utc(),
        }
    )

    outcome = await _finalize(test_db)

    assert isinstance(outcome, BookingCreated)
    assert outcome.outcome == "created"
    assert outcome.status == "pending"
    assert outcome.total == 255
    assert [d.price for d in outcome.pricing.daily_prices] == [100, 55, 100]

    stored = await test_db["bookings"].find_one({"_id": ObjectId(outcome.booking_id)})
    assert stored["total_price"] == 255
    assert stored["start_date"] == "2031-03-01"
    assert stored["end_date"] == "2031-03-03"
    assert [d["price"] for d in stored["daily_prices"]] == [100, 55, 100]

    locks = await test_db["vehicle_day_locks"].find({"booking_id": ObjectId(outcome.booking_id)}).to_list(None)
    assert sorted(lock["day"] for lock in locks) == ["2031-03-01", "2031-03-02", "2031-03-03"]


@pytest.mark.anyio
async def test_overlapping_second_booking_conflicts(test_db):
    first = await _finalize(test_db, start="2031-03-01", end="2031-03-03")
    second = await _finalize(test_db, start="2031-03-03", end="2031-03-05")

    assert isinstance(first, BookingCreated)
    assert isinstance(second, BookingConflict)
    assert second.outcome == "conflict"
    assert await test_db["bookings"].count_documents({}) == 1
    # The loser must not leave partial day locks behind.
    assert await test_db["vehicle_day_locks"].count_documents({}) == 3


@pytest.mark.anyio
async def test_adjacent_bookings_both_succeed(test_db):
    first = await _finalize(test_db, start="2031-03-01", end="2031-03-03")
    second = await _finalize(test_db, start="2031-03-04", end="2031-03-06")

    assert isinstance(first, BookingCreated)
    assert isinstance(second, BookingCreated)


@pytest.mark.anyio
async def test_concurrent_overlapping_requests_exactly_one_wins(test_db):
    results = await asyncio.gather(
        _finalize(test_db, start="2031-04-01", end="2031-04-05"),
        _finalize(test_db, start="2031-04-03", end="2031-04-08"),
    )

    created = [r for r in results if isinstance(r, BookingCreated)]
    conflicts = [r for r in results if isinstance(r, BookingConflict)]
    assert len(created) == 1
    assert len(conflicts) == 1
    assert await test_db["bookings"].count_documents({"vehicle_id": "model-3"}) == 1


@pytest.mark.anyio
async def test_booking_predating_day_locks_still_conflicts(test_db):
    await test_db["bookings"].insert_one(
        {
            "vehicle_id": "model-3",
            "user_id": "user_bob",
            "start_date": "2031-03-02",
            "end_date": "2031-03-02",
            "status": "confirmed",
            "total_price": 100,
        }
    )

    outcome = await _finalize(test_db)

    assert isinstance(outcome, BookingConflict)
    assert outcome.reason == "overlapping_booking"
    assert await test_db["vehicle_day_locks"].count_documents({}) == 0


@pytest.mark.anyio
async def test_other_vehicle_is_unaffected(test_db):
    await _finalize(test_db, vehicle_id="model-3")
    outcome = await _finalize(test_db, vehicle_id="model-y")

    assert isinstance(outcome, BookingCreated)
    assert outcome.total == 360


@pytest.mark.anyio
async def test_unknown_vehicle_is_rejected_with_404(test_db):
    outcome = await _finalize(test_db, vehicle_id="does-not-exist")

    assert isinstance(outcome, BookingRejected)
    assert outcome.status_code == 404
    assert outcome.code == "vehicle_not_found"


@pytest.mark.anyio
@pytest.mark.parametrize("status", ["completed", "cancelled", "bogus"])
async def test_invalid_initial_status_is_rejected(test_db, status):
    outcome = await _finalize(test_db, requested_status=status)

    assert isinstance(outcome, BookingRejected)
    assert outcome.code == "invalid_status"
    assert await test_db["bookings"].count_documents({}) == 0


@pytest.mark.anyio
async def test_past_start_date_is_rejected(test_db):
    outcome = await _finalize(test_db, start="2030-12-30", end="2031-01-02")

    assert isinstance(outcome, BookingRejected)
    assert outcome.code == "date_in_past"


@pytest.mark.anyio
async def test_past_start_date_allowed_when_configured(test_db, monkeypatch):
    monkeypatch.setattr(config, "ALLOW_PAST_BOOKINGS", True)

    outcome = await _finalize(test_db, start="2030-12-30", end="2031-01-02")

    assert isinstance(outcome, BookingCreated)


@pytest.mark.anyio
async def test_range_longer_than_limit_is_rejected(test_db, monkeypatch):
    monkeypatch.setattr(config, "BOOKING_MAX_DAYS", 5)

    outcome = await _finalize(test_db, start="2031-03-01", end="2031-03-06")

    assert isinstance(outcome, BookingRejected)
    assert outcome.code == "range_too_long"


@pytest.mark.anyio
async def test_confirmed_booking_queues_notification(test_db):
    outcome = await _finalize(test_db, requested_status="confirmed")

    assert isinstance(outcome, BookingCreated)
    job = await test_db["email_outbox"].find_one({"booking_id": ObjectId(outcome.booking_id)})
    assert job is not None
    assert job["to"] == ["alice@fleet.test"]
    assert job["event_type"] == "booking.confirmed"


@pytest.mark.anyio
async def test_insert_failure_releases_day_locks(test_db, monkeypatch):
    from rentals.repositories import booking_repository

    async def _boom(self, booking_id, payload):
        raise RuntimeError("write failed")

    monkeypatch.setattr(booking_repository.BookingRepository, "insert", _boom)

    with pytest.raises(RuntimeError):
        await _finalize(test_db)

    assert await test_db["vehicle_day_locks"].count_documents({}) == 0


async def _seed_lock(db, day, booking_id, *, age=timedelta(hours=1)):
    await db["vehicle_day_locks"].insert_one(
        {"vehicle_id": "model-3", "day": day, "booking_id": booking_id, "created_at": now_utc() - age}
    )


@pytest.mark.anyio
async def test_stale_lock_without_booking_is_reclaimed(test_db):
    stale_owner = ObjectId()
    await _seed_lock(test_db, "2031-03-02", stale_owner)

    outcome = await _finalize(test_db)

    assert isinstance(outcome, BookingCreated)
    lock = await test_db["vehicle_day_locks"].find_one({"vehicle_id": "model-3", "day": "2031-03-02"})
    assert lock["booking_id"] == ObjectId(outcome.booking_id)
    assert await test_db["vehicle_day_locks"].count_documents({"booking_id": stale_owner}) == 0


@pytest.mark.anyio
async def test_lock_left_by_cancelled_booking_is_reclaimed(test_db):
    cancelled = await test_db["bookings"].insert_one(
        {
            "vehicle_id": "model-3",
            "user_id": "user_bob",
            "start_date": "2031-03-02",
            "end_date": "2031-03-02",
            "status": "cancelled",
            "total_price": 100,
        }
    )
    await _seed_lock(test_db, "2031-03-02", cancelled.inserted_id, age=timedelta(seconds=0))

    outcome = await _finalize(test_db)

    assert isinstance(outcome, BookingCreated)


@pytest.mark.anyio
async def test_fresh_lock_without_booking_still_blocks(test_db):
    await _seed_lock(test_db, "2031-03-02", ObjectId(), age=timedelta(seconds=0))

    outcome = await _finalize(test_db)

    assert isinstance(outcome, BookingConflict)
    assert outcome.reason == "days_taken"
    assert await test_db["vehicle_day_locks"].count_documents({}) == 1


@pytest.mark.anyio
async def test_confirmed_booking_for_user_without_email_queues_nothing(test_db):
    await test_db["users"].insert_one({"_id": "user_noemail", "name": "Walk-in", "roles": ["customer"]})

    outcome = await finalize_booking(
        test_db,
        vehicle_id="model-3",
        user_id="user_noemail",
        date_range=DateRange.parse("2031-03-01", "2031-03-03"),
        requested_status="confirmed",
        today=TODAY,
    )

    assert isinstance(outcome, BookingCreated)
    assert await test_db["email_outbox"].count_documents({}) == 0
