from __future__ import annotations

"""Application-level configuration and feature flags.

Values are read from the environment once at import time. Flags default to
the behaviour described in DESIGN.md; tests flip them with monkeypatch on this
module.
"""

import os


def _env_flag(name: str, default: bool = True) -> bool:
    """Read a boolean-like flag from environment.

    Accepted falsy values: "0", "false", "off", "no" (case-insensitive).
    Anything else (or unset) falls back to `default`.
    """

    raw = os.environ.get(name)
    if raw is None:
        return default
    value = raw.strip().lower()
    if value in {"0", "false", "off", "no"}:
        return False
    if value in {"1", "true", "on", "yes"}:
        return True
    return default


def _env_int(name: str, default: int) -> int:
    raw = os.environ.get(name)
    if raw is None or not raw.strip():
        return default
    try:
        return int(raw.strip())
    except ValueError:
        return default


# Application constants
APP_NAME = "Fleet Booking API"
APP_VERSION = "1.0.0"
CORS_ORIGINS = os.environ.get("CORS_ORIGINS", "*").split(",")

# Availability: pending (awaiting payment) bookings hold the vehicle in search
# results as well as at checkout.
PENDING_BLOCKS_AVAILABILITY: bool = _env_flag("PENDING_BLOCKS_AVAILABILITY", default=True)

# Booking date policy
ALLOW_PAST_BOOKINGS: bool = _env_flag("ALLOW_PAST_BOOKINGS", default=False)
BOOKING_MAX_DAYS: int = _env_int("BOOKING_MAX_DAYS", 365)

# Search and quote range cap; both price every day of the range per vehicle.
SEARCH_MAX_DAYS: int = _env_int("SEARCH_MAX_DAYS", 366)

# A day lock with no booking behind it is reclaimable after this many seconds.
DAY_LOCK_GRACE_SECONDS: int = _env_int("DAY_LOCK_GRACE_SECONDS", 300)

# Special pricing rule validation
MAX_MULTIPLIER: float = float(os.environ.get("MAX_MULTIPLIER", "10"))

# Payments
PAYMENT_CURRENCY = os.environ.get("PAYMENT_CURRENCY", "usd").lower()
PUBLIC_BASE_URL = os.environ.get("PUBLIC_BASE_URL", "").rstrip("/")

# Notifications
NOTIFICATIONS_FROM = os.environ.get("NOTIFICATIONS_FROM", "bookings@fleet.test")

# Demo data
SEED_DEMO_DATA: bool = _env_flag("SEED_DEMO_DATA", default=False)
