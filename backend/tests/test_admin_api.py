from __future__ import annotations

import pytest


RULE = {
    "name": "Christmas",
    "startDate": "2031-12-24",
    "endDate": "2031-12-26",
    "priceType": "multiplier",
    "priceValue": 1.5,
    "applyToAll": True,
}


@pytest.mark.anyio
async def test_special_pricing_requires_admin(async_client, customer_headers):
    r = await async_client.get("/api/admin/special-pricing", headers=customer_headers)

    assert r.status_code == 403
    assert r.json()["error"]["code"] == "forbidden"


@pytest.mark.anyio
async def test_special_pricing_crud(async_client, admin_headers):
    created = await async_client.post("/api/admin/special-pricing", json=RULE, headers=admin_headers)
    assert created.status_code == 201, created.text
    rule = created.json()
    assert rule["priceType"] == "multiplier"
    assert rule["vehicleIds"] == []
    rule_id = rule["id"]

    listed = await async_client.get("/api/admin/special-pricing", headers=admin_headers)
    assert [r["id"] for r in listed.json()] == [rule_id]

    patched = await async_client.patch(
        f"/api/admin/special-pricing/{rule_id}",
        json={"applyToAll": False, "vehicleIds": ["model-y"]},
        headers=admin_headers,
    )
    assert patched.status_code == 200, patched.text
    assert patched.json()["vehicleIds"] == ["model-y"]
    assert patched.json()["createdAt"] == rule["createdAt"]

    filtered = await async_client.get(
        "/api/admin/special-pricing", params={"vehicleId": "model-3"}, headers=admin_headers
    )
    assert filtered.json() == []

    deleted = await async_client.delete(f"/api/admin/special-pricing/{rule_id}", headers=admin_headers)
    assert deleted.status_code == 204

    missing = await async_client.get(f"/api/admin/special-pricing/{rule_id}", headers=admin_headers)
    assert missing.status_code == 404
    assert missing.json()["error"]["code"] == "rule_not_found"


@pytest.mark.anyio
async def test_invalid_rule_is_rejected_before_storage(async_client, admin_headers, test_db):
    r = await async_client.post(
        "/api/admin/special-pricing", json={**RULE, "priceType": "discount"}, headers=admin_headers
    )

    assert r.status_code == 422
    assert r.json()["error"]["code"] == "invalid_rule"
    assert await test_db["special_pricing_rules"].count_documents({}) == 0


@pytest.mark.anyio
async def test_new_rule_changes_search_prices(async_client, admin_headers):
    await async_client.post("/api/admin/special-pricing", json=RULE, headers=admin_headers)
    await async_client.post(
        "/api/admin/special-pricing",
        json={**RULE, "name": "Boxing day", "startDate": "2031-12-25", "endDate": "2031-12-27", "priceType": "fixed", "priceValue": 90},
        headers=admin_headers,
    )

    r = await async_client.get("/api/vehicles/model-3/pricing", params={"startDate": "2031-12-24", "endDate": "2031-12-27"})

    assert [d["price"] for d in r.json()["dailyPrices"]] == [150, 90, 90, 90]
    assert r.json()["total"] == 420
    assert r.json()["available"] is True


@pytest.mark.anyio
async def test_admin_booking_defaults_to_confirmed(async_client, admin_headers, test_db):
    r = await async_client.post(
        "/api/admin/bookings",
        json={"vehicleId": "cybertruck", "userId": "user_bob", "startDate": "2031-04-01", "endDate": "2031-04-02"},
        headers=admin_headers,
    )

    assert r.status_code == 201, r.text
    assert r.json()["status"] == "confirmed"
    assert r.json()["total"] == 400
    assert await test_db["email_outbox"].count_documents({"to": ["bob@fleet.test"]}) == 1


@pytest.mark.anyio
async def test_admin_rejects_terminal_initial_status(async_client, admin_headers):
    r = await async_client.post(
        "/api/admin/bookings",
        json={
            "vehicleId": "cybertruck",
            "userId": "user_bob",
            "startDate": "2031-04-01",
            "endDate": "2031-04-02",
            "status": "completed",
        },
        headers=admin_headers,
    )

    assert r.status_code == 422
    assert r.json()["error"]["code"] == "invalid_status"


@pytest.mark.anyio
async def test_admin_lists_and_moves_bookings(async_client, admin_headers, customer_headers):
    created = await async_client.post(
        "/api/bookings",
        json={"vehicleId": "model-y", "startDate": "2031-05-01", "endDate": "2031-05-02"},
        headers=customer_headers,
    )
    booking_id = created.json()["bookingId"]

    pending = await async_client.get("/api/admin/bookings", params={"status": "pending"}, headers=admin_headers)
    assert [b["id"] for b in pending.json()] == [booking_id]

    confirmed = await async_client.post(
        f"/api/admin/bookings/{booking_id}/status", json={"status": "confirmed"}, headers=admin_headers
    )
    assert confirmed.status_code == 200
    assert confirmed.json()["status"] == "confirmed"

    invalid = await async_client.post(
        f"/api/admin/bookings/{booking_id}/status", json={"status": "pending"}, headers=admin_headers
    )
    assert invalid.status_code == 422
    assert invalid.json()["error"]["code"] == "invalid_state_transition"

    completed = await async_client.post(
        f"/api/admin/bookings/{booking_id}/status", json={"status": "completed"}, headers=admin_headers
    )
    assert completed.json()["status"] == "completed"

    by_vehicle = await async_client.get("/api/admin/bookings", params={"vehicleId": "model-3"}, headers=admin_headers)
    assert by_vehicle.json() == []
