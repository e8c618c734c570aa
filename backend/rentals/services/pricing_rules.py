from __future__ import annotations

"""Special pricing rule management (operator only).

Rules are validated here before they are stored, so the pricing resolver can
assume every rule it reads is well-formed.
"""

import logging
from datetime import date
from typing import Any, Dict, List, Optional

from rentals import config
from rentals.domain.pricing import PRICE_TYPES
from rentals.errors import AppError, RuleErrorCode
from rentals.repositories.pricing_rule_repository import PricingRuleRepository
from rentals.repositories.vehicle_repository import VehicleRepository

logger = logging.getLogger(__name__)

RULE_FIELDS = ("name", "start_date", "end_date", "price_type", "price_value", "apply_to_all", "vehicle_ids")


def _invalid(message: str, **details: Any) -> AppError:
    return AppError(422, RuleErrorCode.INVALID_RULE.value, message, details)


def _as_iso_date(value: Any, field_name: str) -> str:
    if isinstance(value, date):
        return value.isoformat()
    try:
        return date.fromisoformat(str(value)).isoformat()
    except ValueError:
        raise _invalid(f"{field_name} must be an ISO date (YYYY-MM-DD)", field=field_name, value=str(value))


class PricingRulesService:
    def __init__(self, db):
        self.db = db
        self.repo = PricingRuleRepository(db)

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------
    async def create_rule(self, payload: Dict[str, Any], *, actor: Optional[str] = None) -> Dict[str, Any]:
        doc = await self._validate({k: payload.get(k) for k in RULE_FIELDS})
        doc["created_by"] = actor
        saved = await self.repo.insert(doc)
        logger.info(
            "Special pricing rule created id=%s type=%s value=%s range=%s..%s",
            saved["_id"],
            saved["price_type"],
            saved["price_value"],
            saved["start_date"],
            saved["end_date"],
        )
        return saved

    async def update_rule(self, rule_id: str, patch: Dict[str, Any], *, actor: Optional[str] = None) -> Dict[str, Any]:
        """Apply a partial update; the merged rule is validated as a whole.

        created_at is never touched, so a rule keeps its precedence slot.
        """

        existing = await self.get_rule(rule_id)
        merged = {k: existing.get(k) for k in RULE_FIELDS}
        merged.update({k: v for k, v in patch.items() if k in RULE_FIELDS})

        doc = await self._validate(merged)
        doc["updated_by"] = actor
        updated = await self.repo.update(rule_id, doc)
        if updated is None:
            raise self._not_found(rule_id)
        logger.info("Special pricing rule updated id=%s fields=%s", rule_id, sorted(patch))
        return updated

    async def delete_rule(self, rule_id: str) -> None:
        if not await self.repo.delete(rule_id):
            raise self._not_found(rule_id)
        logger.info("Special pricing rule deleted id=%s", rule_id)

    async def get_rule(self, rule_id: str) -> Dict[str, Any]:
        doc = await self.repo.get_by_id(rule_id)
        if not doc:
            raise self._not_found(rule_id)
        return doc

    async def list_rules(self, *, vehicle_id: Optional[str] = None) -> List[Dict[str, Any]]:
        return await self.repo.list_rules(vehicle_id=vehicle_id)

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------
    @staticmethod
    def _not_found(rule_id: str) -> AppError:
        return AppError(404, RuleErrorCode.RULE_NOT_FOUND.value, "Special pricing rule not found", {"rule_id": rule_id})

    async def _validate(self, data: Dict[str, Any]) -> Dict[str, Any]:
        name = str(data.get("name") or "").strip()
        if not name:
            raise _invalid("name is required", field="name")

        if data.get("start_date") is None or data.get("end_date") is None:
            raise _invalid("start_date and end_date are required")
        start = _as_iso_date(data["start_date"], "start_date")
        end = _as_iso_date(data["end_date"], "end_date")
        if end < start:
            raise _invalid("end_date must not be before start_date", start_date=start, end_date=end)

        price_type = data.get("price_type")
        if price_type not in PRICE_TYPES:
            raise _invalid(
                "price_type must be one of: " + ", ".join(PRICE_TYPES),
                field="price_type",
                value=price_type,
            )

        try:
            price_value = float(data.get("price_value"))
        except (TypeError, ValueError):
            raise _invalid("price_value must be a number", field="price_value")
        if price_value <= 0:
            raise _invalid("price_value must be greater than 0", field="price_value", value=price_value)
        if price_type == "multiplier" and price_value > config.MAX_MULTIPLIER:
            raise _invalid(
                f"multiplier must not exceed {config.MAX_MULTIPLIER}",
                field="price_value",
                value=price_value,
            )

        apply_to_all = bool(data.get("apply_to_all"))
        vehicle_ids: List[str] = []
        if not apply_to_all:
            vehicle_ids = sorted({str(v) for v in (data.get("vehicle_ids") or [])})
            if not vehicle_ids:
                raise _invalid("vehicle_ids is required unless apply_to_all is set", field="vehicle_ids")
            known = await VehicleRepository(self.db).existing_ids(vehicle_ids)
            missing = [v for v in vehicle_ids if v not in known]
            if missing:
                raise AppError(
                    422,
                    RuleErrorCode.UNKNOWN_VEHICLES.value,
                    "Unknown vehicle ids",
                    {"vehicle_ids": missing},
                )

        return {
            "name": name,
            "start_date": start,
            "end_date": end,
            "price_type": price_type,
            "price_value": price_value,
            "apply_to_all": apply_to_all,
            "vehicle_ids": vehicle_ids,
        }
