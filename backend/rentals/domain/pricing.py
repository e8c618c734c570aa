from __future__ import annotations

"""Special pricing resolution.

Pure functions only: callers pass a vehicle, an inclusive date range and a
snapshot of rules; the resolver decides which rules are relevant per day.

Precedence: among rules whose date range contains the day and whose scope
includes the vehicle, the most recently created one wins. Ties on created_at
are broken by the larger rule id so the outcome never depends on storage
order.
"""

from dataclasses import dataclass, field
from datetime import date, datetime, timezone
from decimal import Decimal
from typing import Any, Iterable, Literal, Optional, Sequence

from rentals.domain.date_range import DateRange
from rentals.utils import ensure_aware, round_half_up


PriceType = Literal["multiplier", "fixed"]
PRICE_TYPES = ("multiplier", "fixed")

_EPOCH = datetime.min.replace(tzinfo=timezone.utc)


@dataclass(frozen=True)
class Vehicle:
    id: str
    price_per_day: int
    attributes: dict = field(default_factory=dict, compare=False, hash=False)

    @classmethod
    def from_doc(cls, doc: dict) -> "Vehicle":
        attrs = {k: v for k, v in doc.items() if k not in {"_id", "price_per_day"}}
        return cls(id=str(doc["_id"]), price_per_day=int(doc["price_per_day"]), attributes=attrs)


@dataclass(frozen=True)
class SpecialPricingRule:
    id: str
    name: str
    start_date: date
    end_date: date
    price_type: PriceType
    price_value: float
    apply_to_all: bool
    vehicle_ids: frozenset[str]
    created_at: Optional[datetime]
    updated_at: Optional[datetime] = None

    @classmethod
    def from_doc(cls, doc: dict) -> "SpecialPricingRule":
        return cls(
            id=str(doc.get("_id")),
            name=str(doc.get("name") or ""),
            start_date=date.fromisoformat(doc["start_date"]),
            end_date=date.fromisoformat(doc["end_date"]),
            price_type=doc["price_type"],
            price_value=float(doc["price_value"]),
            apply_to_all=bool(doc.get("apply_to_all")),
            vehicle_ids=frozenset(str(v) for v in (doc.get("vehicle_ids") or [])),
            created_at=ensure_aware(doc.get("created_at")),
            updated_at=ensure_aware(doc.get("updated_at")),
        )

    def covers(self, day: date) -> bool:
        return self.start_date <= day <= self.end_date

    def applies_to(self, vehicle_id: str) -> bool:
        return self.apply_to_all or vehicle_id in self.vehicle_ids

    def price_for(self, base_price: int) -> int:
        if self.price_type == "multiplier":
            # str() keeps 1.1 as 1.1 instead of its binary float expansion
            return round_half_up(Decimal(base_price) * Decimal(str(self.price_value)))
        return round_half_up(self.price_value)


@dataclass(frozen=True)
class DailyPrice:
    date: date
    price: int
    is_special_price: bool
    rule_id: Optional[str] = None


@dataclass(frozen=True)
class PriceBreakdown:
    vehicle_id: str
    base_price: int
    daily_prices: tuple[DailyPrice, ...]
    total: int

    @property
    def num_days(self) -> int:
        return len(self.daily_prices)

    @property
    def has_special_pricing(self) -> bool:
        return any(d.is_special_price for d in self.daily_prices)

    @property
    def average_price_per_day(self) -> int:
        """Display-only figure; lossy, never used to rebuild the total."""
        if not self.daily_prices:
            return self.base_price
        return round_half_up(self.total / self.num_days)

    def to_dict(self) -> dict[str, Any]:
        return {
            "daily_prices": [
                {
                    "date": d.date.isoformat(),
                    "price": d.price,
                    "is_special_price": d.is_special_price,
                    "rule_id": d.rule_id,
                }
                for d in self.daily_prices
            ],
            "total": self.total,
            "has_special_pricing": self.has_special_pricing,
            "average_price_per_day": self.average_price_per_day,
            "num_days": self.num_days,
        }


def rule_precedence_key(rule: SpecialPricingRule) -> tuple[datetime, str]:
    """Sort key for rule precedence; the greatest key wins."""
    return (rule.created_at or _EPOCH, rule.id)


def select_winning_rule(rules: Iterable[SpecialPricingRule]) -> Optional[SpecialPricingRule]:
    return max(rules, key=rule_precedence_key, default=None)


def applicable_rules(
    rules: Iterable[SpecialPricingRule], vehicle_id: str, day: date
) -> list[SpecialPricingRule]:
    return [r for r in rules if r.covers(day) and r.applies_to(vehicle_id)]


def resolve_day_price(vehicle: Vehicle, day: date, rules: Sequence[SpecialPricingRule]) -> DailyPrice:
    winner = select_winning_rule(applicable_rules(rules, vehicle.id, day))
    if winner is None:
        return DailyPrice(date=day, price=vehicle.price_per_day, is_special_price=False)
    return DailyPrice(
        date=day,
        price=winner.price_for(vehicle.price_per_day),
        is_special_price=True,
        rule_id=winner.id,
    )


def resolve_daily_prices(
    vehicle: Vehicle,
    date_range: DateRange,
    rules: Iterable[SpecialPricingRule],
) -> PriceBreakdown:
    """Price every day of `date_range` for `vehicle`.

    Rounding happens per day, so the total is an exact integer sum and
    repeated calls with the same snapshot are identical.
    """

    snapshot = [r for r in rules if r.applies_to(vehicle.id)]
    daily = tuple(resolve_day_price(vehicle, day, snapshot) for day in date_range.days())
    return PriceBreakdown(
        vehicle_id=vehicle.id,
        base_price=vehicle.price_per_day,
        daily_prices=daily,
        total=sum(d.price for d in daily),
    )
