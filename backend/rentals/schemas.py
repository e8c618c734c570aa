from __future__ import annotations

from datetime import datetime
from typing import Literal, Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from rentals.domain.booking_state_machine import BookingStatus


class CamelModel(BaseModel):
    """camelCase on the wire, snake_case in Python."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


# ---- Pricing / availability ----


class DailyPriceOut(CamelModel):
    date: str
    price: int
    is_special_price: bool
    rule_id: Optional[str] = None


class VehicleOut(CamelModel):
    # Catalogue attributes (model, seats, image, ...) pass through as stored.
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, extra="allow")

    id: str
    price_per_day: int


class VehicleListingOut(CamelModel):
    vehicle: VehicleOut
    daily_prices: list[DailyPriceOut]
    total: int
    has_special_pricing: bool
    average_price_per_day: int
    num_days: int


class AvailabilityResponse(CamelModel):
    start_date: str
    end_date: str
    available_vehicles: list[VehicleListingOut]


class VehicleQuoteOut(VehicleListingOut):
    available: bool


class ScheduleEntryOut(CamelModel):
    start_date: str
    end_date: str
    status: BookingStatus


class VehicleScheduleOut(CamelModel):
    vehicle_id: str
    bookings: list[ScheduleEntryOut]


# ---- Bookings ----


class BookingCreateRequest(CamelModel):
    vehicle_id: str = Field(min_length=1)
    # Parsed by DateRange so malformed dates map to invalid_date_range.
    start_date: str
    end_date: str


class AdminBookingCreateRequest(BookingCreateRequest):
    user_id: str = Field(min_length=1)
    status: str = "confirmed"


class BookingStatusUpdateRequest(CamelModel):
    status: BookingStatus


class BookingCreateResponse(CamelModel):
    booking_id: str
    total: int
    status: BookingStatus
    daily_prices: list[DailyPriceOut]


class CheckoutResponse(BookingCreateResponse):
    checkout_url: Optional[str] = None
    checkout_session_id: Optional[str] = None


class BookingOut(CamelModel):
    id: str
    vehicle_id: str
    user_id: str
    start_date: str
    end_date: str
    status: BookingStatus
    total_price: int
    daily_prices: list[DailyPriceOut] = Field(default_factory=list)
    created_by: Optional[str] = None
    checkout_session_id: Optional[str] = None
    payment_intent_id: Optional[str] = None
    created_at: datetime
    updated_at: datetime


# ---- Special pricing rules ----


class SpecialPricingCreateRequest(CamelModel):
    name: str
    start_date: str
    end_date: str
    price_type: str
    price_value: float
    apply_to_all: bool = False
    vehicle_ids: list[str] = Field(default_factory=list)


class SpecialPricingUpdateRequest(CamelModel):
    name: Optional[str] = None
    start_date: Optional[str] = None
    end_date: Optional[str] = None
    price_type: Optional[str] = None
    price_value: Optional[float] = None
    apply_to_all: Optional[bool] = None
    vehicle_ids: Optional[list[str]] = None


class SpecialPricingOut(CamelModel):
    id: str
    name: str
    start_date: str
    end_date: str
    price_type: Literal["multiplier", "fixed"]
    price_value: float
    apply_to_all: bool
    vehicle_ids: list[str]
    created_at: datetime
    updated_at: datetime
