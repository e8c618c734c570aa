from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, Optional


@dataclass
class AppError(Exception):
    status_code: int
    code: str
    message: str
    details: Optional[Dict[str, Any]] = None
    retryable: Optional[bool] = None

    def to_dict(self) -> Dict[str, Any]:
        payload: Dict[str, Any] = {
            "code": self.code,
            "message": self.message,
            "details": self.details or {},
        }
        if self.retryable is not None:
            payload["retryable"] = self.retryable
        return {"error": payload}


class BookingErrorCode(str, Enum):
    INVALID_DATE_RANGE = "invalid_date_range"
    DATE_IN_PAST = "date_in_past"
    RANGE_TOO_LONG = "range_too_long"
    INVALID_STATUS = "invalid_status"
    VEHICLE_NOT_FOUND = "vehicle_not_found"
    BOOKING_NOT_FOUND = "booking_not_found"
    BOOKING_CONFLICT = "booking_conflict"
    INVALID_STATE_TRANSITION = "invalid_state_transition"
    BOOKING_STATE_CHANGED = "booking_state_changed"
    PAYMENT_PROVIDER_UNAVAILABLE = "payment_provider_unavailable"


class RuleErrorCode(str, Enum):
    RULE_NOT_FOUND = "rule_not_found"
    INVALID_RULE = "invalid_rule"
    UNKNOWN_VEHICLES = "unknown_vehicle_ids"


def error_response(code: str, message: str, details: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
    return {
        "error": {
            "code": code,
            "message": message,
            "details": details or {},
        }
    }
