from __future__ import annotations

from typing import Literal


BookingStatus = Literal[
    "pending",
    "confirmed",
    "completed",
    "cancelled",
]

# Statuses a booking may be created in.
INITIAL_STATUSES = frozenset({"pending", "confirmed"})

TERMINAL_STATUSES = frozenset({"completed", "cancelled"})


_ALLOWED_TRANSITIONS = {
    # awaiting payment
    "pending": {"confirmed", "cancelled"},
    # paid / created by an operator
    "confirmed": {"completed", "cancelled"},
    "completed": set(),
    "cancelled": set(),
}


class BookingStateTransitionError(ValueError):
    """Raised when an invalid booking state transition is requested."""

    def __init__(self, current: str, target: str) -> None:
        super().__init__(f"Invalid booking state transition: {current} -> {target}")
        self.current = current
        self.target = target


def validate_transition(current: str, target: str) -> None:
    """Validate that a transition from current -> target is allowed.

    Raises BookingStateTransitionError if not allowed.
    """

    allowed = _ALLOWED_TRANSITIONS.get(current, set())
    if target not in allowed:
        raise BookingStateTransitionError(current=current, target=target)


def is_terminal(status: str) -> bool:
    return status in TERMINAL_STATUSES
