from __future__ import annotations

import logging

from rentals import config
from rentals.indexes.booking_indexes import ensure_booking_indexes
from rentals.utils import now_utc

logger = logging.getLogger(__name__)

DEFAULT_ADMIN_EMAIL = "admin@fleet.test"

DEMO_VEHICLES = [
    {
        "_id": "model-x-lr",
        "model": "Model X Long Range",
        "image": "/tesla-model-x.jpg",
        "description": "Spacious SUV with 348mi range, falcon wing doors, and 0-60 in 3.8s.",
        "price_per_day": 150,
        "seats": 7,
        "range": "348 miles",
        "acceleration": "0-60 in 3.8s",
        "features": ["Autopilot", "Falcon Wing Doors", "Premium Sound", "Wireless Charging"],
    },
    {
        "_id": "model-s-plaid",
        "model": "Model S Plaid",
        "image": "/tesla-model-s.jpg",
        "description": "Luxury sedan with 390mi range, 200mph top speed, and 0-60 in 1.99s.",
        "price_per_day": 180,
        "seats": 5,
        "range": "390 miles",
        "acceleration": "0-60 in 1.99s",
        "features": ["Autopilot", "Premium Interior", "Tri-Motor AWD", "1,020 hp"],
    },
    {
        "_id": "model-3-performance",
        "model": "Model 3 Performance",
        "image": "/tesla-model-3.jpg",
        "description": "Sporty sedan with 315mi range, 162mph top speed, and 0-60 in 3.1s.",
        "price_per_day": 100,
        "seats": 5,
        "range": "315 miles",
        "acceleration": "0-60 in 3.1s",
        "features": ["Autopilot", "Glass Roof", "Dual Motor AWD", "Performance Brakes"],
    },
    {
        "_id": "model-y-performance",
        "model": "Model Y Performance",
        "image": "/tesla-model-y.jpg",
        "description": "Compact SUV with 303mi range, versatile seating, and 0-60 in 3.5s.",
        "price_per_day": 120,
        "seats": 5,
        "range": "303 miles",
        "acceleration": "0-60 in 3.5s",
        "features": ["Autopilot", "Panoramic Glass Roof", "Performance Upgrade", "Premium Interior"],
    },
    {
        "_id": "cybertruck",
        "model": "Cybertruck",
        "image": "/tesla-cybertruck.jpg",
        "description": "Futuristic pickup with 500+ mile range, bulletproof exterior, and 0-60 in 2.9s.",
        "price_per_day": 200,
        "seats": 6,
        "range": "500+ miles",
        "acceleration": "0-60 in 2.9s",
        "features": ["Autopilot", "Stainless Steel Exoskeleton", "Adaptive Air Suspension", "Vault-like Storage"],
    },
]


async def ensure_seed_data(db) -> None:
    """Indexes always; demo fleet and admin user only when SEED_DEMO_DATA is on."""

    await ensure_booking_indexes(db)
    await db["users"].create_index("email", unique=True)

    if not config.SEED_DEMO_DATA:
        return

    now = now_utc()
    for vehicle in DEMO_VEHICLES:
        res = await db["vehicles"].update_one(
            {"_id": vehicle["_id"]},
            {"$setOnInsert": {**{k: v for k, v in vehicle.items() if k != "_id"}, "created_at": now}},
            upsert=True,
        )
        if res.upserted_id is not None:
            logger.info("Seeded vehicle %s", vehicle["_id"])

    admin = await db["users"].find_one({"email": DEFAULT_ADMIN_EMAIL})
    if not admin:
        await db["users"].insert_one(
            {
                "_id": "admin",
                "email": DEFAULT_ADMIN_EMAIL,
                "name": "Admin",
                "roles": ["admin"],
                "created_at": now,
                "updated_at": now,
            }
        )
        logger.info("Seeded admin user %s", DEFAULT_ADMIN_EMAIL)
