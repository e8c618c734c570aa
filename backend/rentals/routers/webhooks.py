from __future__ import annotations

from fastapi import APIRouter, Depends, Request
from fastapi.responses import JSONResponse

from rentals.db import get_db
from rentals.services import stripe_handlers

router = APIRouter(prefix="/api/webhooks", tags=["webhooks"])


@router.post("/stripe")
async def stripe_webhook(request: Request, db=Depends(get_db)):
    """Stripe payment callback. Signature errors surface as AppError (400)."""

    raw_body = await request.body()
    signature = request.headers.get("Stripe-Signature")

    status, body = await stripe_handlers.handle_stripe_webhook(db, raw_body, signature)
    return JSONResponse(status_code=status, content=body)
