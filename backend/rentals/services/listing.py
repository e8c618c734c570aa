from __future__ import annotations

"""Availability + pricing projection.

Every place that shows or charges a price goes through `quote_vehicle` or
`project_listing`: the search listing, the vehicle pricing endpoint and the
booking finalizer. There is no other pricing code path.
"""

import logging
from dataclasses import dataclass
from typing import Any, Optional, Sequence

from rentals.domain.date_range import DateRange
from rentals.domain.pricing import PriceBreakdown, SpecialPricingRule, Vehicle, resolve_daily_prices
from rentals.repositories.pricing_rule_repository import PricingRuleRepository
from rentals.repositories.vehicle_repository import VehicleRepository
from rentals.services.availability import resolve_availability
from rentals.utils import serialize_doc

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class VehicleListing:
    vehicle: Vehicle
    pricing: PriceBreakdown

    def to_dict(self) -> dict[str, Any]:
        vehicle_doc = serialize_doc({"_id": self.vehicle.id, **self.vehicle.attributes})
        vehicle_doc["price_per_day"] = self.vehicle.price_per_day
        return {"vehicle": vehicle_doc, **self.pricing.to_dict()}


async def load_rule_snapshot(db, date_range: DateRange) -> list[SpecialPricingRule]:
    docs = await PricingRuleRepository(db).list_overlapping(date_range)
    return [SpecialPricingRule.from_doc(d) for d in docs]


async def quote_vehicle(
    db,
    vehicle: Vehicle,
    date_range: DateRange,
    rules: Optional[Sequence[SpecialPricingRule]] = None,
) -> PriceBreakdown:
    """Authoritative price for one vehicle over `date_range`."""
    if rules is None:
        rules = await load_rule_snapshot(db, date_range)
    return resolve_daily_prices(vehicle, date_range, rules)


async def project_listing(
    db,
    candidates: Sequence[Vehicle],
    date_range: DateRange,
) -> list[VehicleListing]:
    available = await resolve_availability(db, candidates, date_range)
    if not available:
        return []

    rules = await load_rule_snapshot(db, date_range)
    listings = [
        VehicleListing(vehicle=v, pricing=resolve_daily_prices(v, date_range, rules)) for v in available
    ]
    logger.debug(
        "Listing %s..%s: %d/%d vehicles available, %d rules in snapshot",
        date_range.start,
        date_range.end,
        len(available),
        len(candidates),
        len(rules),
    )
    return listings


async def list_fleet(db) -> list[Vehicle]:
    docs = await VehicleRepository(db).list_all()
    return [Vehicle.from_doc(d) for d in docs]
