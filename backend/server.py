from __future__ import annotations

import logging
from pathlib import Path
from typing import Any

from dotenv import load_dotenv

ROOT_DIR = Path(__file__).parent

# Load .env only if exists (development fallback)
# Production: secrets inject env vars directly
env_path = ROOT_DIR / ".env"
if env_path.exists():
    load_dotenv(env_path)

from fastapi import FastAPI  # noqa: E402
from starlette.middleware.cors import CORSMiddleware  # noqa: E402

from rentals import config  # noqa: E402
from rentals.db import close_mongo, connect_mongo, get_db  # noqa: E402
from rentals.exception_handlers import register_exception_handlers  # noqa: E402
from rentals.middleware.correlation_id import CorrelationIdMiddleware  # noqa: E402
from rentals.routers.admin_bookings import router as admin_bookings_router  # noqa: E402
from rentals.routers.admin_special_pricing import router as admin_special_pricing_router  # noqa: E402
from rentals.routers.availability import router as availability_router  # noqa: E402
from rentals.routers.bookings import router as bookings_router  # noqa: E402
from rentals.routers.vehicles import router as vehicles_router  # noqa: E402
from rentals.routers.webhooks import router as webhooks_router  # noqa: E402
from rentals.seed import ensure_seed_data  # noqa: E402

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger("fleet-booking")

app = FastAPI(title=config.APP_NAME, version=config.APP_VERSION)

app.add_middleware(
    CORSMiddleware,
    allow_credentials=True,
    allow_origins=config.CORS_ORIGINS,
    allow_methods=["*"],
    allow_headers=["*"],
)
app.add_middleware(CorrelationIdMiddleware)

register_exception_handlers(app)

# Routers (/api prefix is on each router)
app.include_router(availability_router)
app.include_router(vehicles_router)
app.include_router(bookings_router)
app.include_router(admin_bookings_router)
app.include_router(admin_special_pricing_router)
app.include_router(webhooks_router)


@app.get("/api/health")
async def health() -> dict[str, Any]:
    """Main health check with database ping"""
    db = await get_db()
    try:
        await db.command("ping")
        ok = True
    except Exception:
        logger.warning("Health check: database ping failed", exc_info=True)
        ok = False
    return {"ok": ok, "service": "fleet-booking"}


@app.on_event("startup")
async def _startup() -> None:
    await connect_mongo()
    await ensure_seed_data(await get_db())
    logger.info("Startup complete")


@app.on_event("shutdown")
async def _shutdown() -> None:
    await close_mongo()
    logger.info("Shutdown complete")
