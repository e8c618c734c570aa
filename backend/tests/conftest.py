"""Shared test configuration and fixtures for backend tests.

Key principles:
- No remote BASE_URL usage; all HTTP calls go through the local ASGI app.
- Each test gets its own in-memory Mongo (mongomock-motor), indexes included,
  so the day-lock unique index behaves like production.
- AnyIO is the single async runner (@pytest.mark.anyio).
"""

from typing import Any, AsyncGenerator, Dict

import os
import sys
from pathlib import Path

import httpx
import pytest
from httpx import ASGITransport
from mongomock_motor import AsyncMongoMockClient

# Ensure backend root is on sys.path so that `server` module is importable
ROOT_DIR = Path(__file__).resolve().parents[1]
if str(ROOT_DIR) not in sys.path:
    sys.path.insert(0, str(ROOT_DIR))

os.environ.setdefault("STRIPE_WEBHOOK_SECRET", "whsec_test")

from server import app  # noqa: E402
from rentals.auth import create_access_token  # noqa: E402
from rentals.db import get_db  # noqa: E402
from rentals.indexes.booking_indexes import ensure_booking_indexes  # noqa: E402
from rentals.utils import now_utc  # noqa: E402


ADMIN_EMAIL = "admin@fleet.test"
CUSTOMER_EMAIL = "alice@fleet.test"
OTHER_CUSTOMER_EMAIL = "bob@fleet.test"

TEST_VEHICLES = [
    {"_id": "model-3", "model": "Model 3", "price_per_day": 100, "seats": 5},
    {"_id": "model-y", "model": "Model Y", "price_per_day": 120, "seats": 5},
    {"_id": "cybertruck", "model": "Cybertruck", "price_per_day": 200, "seats": 6},
]


@pytest.fixture(scope="session")
def anyio_backend() -> str:
    """Force pytest-anyio to use asyncio event loop."""

    return "asyncio"


@pytest.fixture(scope="function")
async def test_db(anyio_backend) -> AsyncGenerator[Any, None]:
    """Function-scoped isolated database with indexes, users and a small fleet."""

    client = AsyncMongoMockClient()
    db = client["fleet_booking_test"]

    await ensure_booking_indexes(db)

    now = now_utc()
    await db["users"].insert_many(
        [
            {"_id": "user_admin", "email": ADMIN_EMAIL, "name": "Admin", "roles": ["admin"], "created_at": now},
            {"_id": "user_alice", "email": CUSTOMER_EMAIL, "name": "Alice", "roles": ["customer"], "created_at": now},
            {"_id": "user_bob", "email": OTHER_CUSTOMER_EMAIL, "name": "Bob", "roles": ["customer"], "created_at": now},
        ]
    )
    await db["vehicles"].insert_many([dict(v) for v in TEST_VEHICLES])

    yield db


@pytest.fixture(scope="function")
async def app_with_overrides(test_db) -> AsyncGenerator[Any, None]:
    """FastAPI app instance whose get_db dependency points to test_db."""

    async def override_get_db():
        yield test_db

    app.dependency_overrides[get_db] = override_get_db
    try:
        yield app
    finally:
        app.dependency_overrides.clear()


@pytest.fixture(scope="function")
async def async_client(app_with_overrides) -> AsyncGenerator[httpx.AsyncClient, None]:
    """Async HTTP client bound to the FastAPI app instance."""

    transport = ASGITransport(app=app_with_overrides)
    async with httpx.AsyncClient(transport=transport, base_url="http://test", timeout=30.0) as client:
        yield client


@pytest.fixture
def admin_headers() -> Dict[str, str]:
    token = create_access_token(subject=ADMIN_EMAIL, roles=["admin"])
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
def customer_headers() -> Dict[str, str]:
    token = create_access_token(subject=CUSTOMER_EMAIL, roles=["customer"])
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
def other_customer_headers() -> Dict[str, str]:
    token = create_access_token(subject=OTHER_CUSTOMER_EMAIL, roles=["customer"])
    return {"Authorization": f"Bearer {token}"}
