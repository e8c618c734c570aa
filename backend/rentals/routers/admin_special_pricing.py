from __future__ import annotations

from typing import Any, Optional

from fastapi import APIRouter, Depends, Query, Response

from rentals.auth import require_roles
from rentals.db import get_db
from rentals.schemas import SpecialPricingCreateRequest, SpecialPricingOut, SpecialPricingUpdateRequest
from rentals.services.pricing_rules import PricingRulesService
from rentals.utils import serialize_doc

router = APIRouter(prefix="/api/admin/special-pricing", tags=["admin_special_pricing"])


@router.get("", response_model=list[SpecialPricingOut])
async def list_special_pricing(
    vehicle_id: Optional[str] = Query(None, alias="vehicleId"),
    db=Depends(get_db),
    user: dict[str, Any] = Depends(require_roles(["admin"])),
):
    docs = await PricingRulesService(db).list_rules(vehicle_id=vehicle_id)
    return [serialize_doc(d) for d in docs]


@router.post("", response_model=SpecialPricingOut, status_code=201)
async def create_special_pricing(
    payload: SpecialPricingCreateRequest,
    db=Depends(get_db),
    user: dict[str, Any] = Depends(require_roles(["admin"])),
):
    doc = await PricingRulesService(db).create_rule(payload.model_dump(), actor=user.get("email"))
    return serialize_doc(doc)


@router.get("/{rule_id}", response_model=SpecialPricingOut)
async def get_special_pricing(
    rule_id: str,
    db=Depends(get_db),
    user: dict[str, Any] = Depends(require_roles(["admin"])),
):
    return serialize_doc(await PricingRulesService(db).get_rule(rule_id))


@router.patch("/{rule_id}", response_model=SpecialPricingOut)
async def update_special_pricing(
    rule_id: str,
    payload: SpecialPricingUpdateRequest,
    db=Depends(get_db),
    user: dict[str, Any] = Depends(require_roles(["admin"])),
):
    patch = payload.model_dump(exclude_unset=True)
    doc = await PricingRulesService(db).update_rule(rule_id, patch, actor=user.get("email"))
    return serialize_doc(doc)


@router.delete("/{rule_id}", status_code=204)
async def delete_special_pricing(
    rule_id: str,
    db=Depends(get_db),
    user: dict[str, Any] = Depends(require_roles(["admin"])),
):
    await PricingRulesService(db).delete_rule(rule_id)
    return Response(status_code=204)
