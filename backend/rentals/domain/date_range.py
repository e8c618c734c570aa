from __future__ import annotations

from dataclasses import dataclass
from datetime import date, timedelta
from typing import Any, Iterator, Optional

from rentals.errors import AppError, BookingErrorCode


@dataclass(frozen=True)
class DateRange:
    """Inclusive range of calendar dates, start <= end."""

    start: date
    end: date

    def __post_init__(self) -> None:
        if self.end < self.start:
            raise ValueError("END_BEFORE_START")

    @classmethod
    def parse(cls, start: Any, end: Any, *, max_days: Optional[int] = None) -> "DateRange":
        """Build a range from ISO strings (or dates).

        Raises AppError(422, invalid_date_range) on missing, malformed or
        inverted input so callers can reject before any resolver runs. With
        `max_days` set, longer ranges raise AppError(422, range_too_long).
        """

        try:
            s = start if isinstance(start, date) else date.fromisoformat(str(start))
            e = end if isinstance(end, date) else date.fromisoformat(str(end))
        except (TypeError, ValueError):
            raise AppError(
                422,
                BookingErrorCode.INVALID_DATE_RANGE.value,
                "Start and end dates must be ISO calendar dates (YYYY-MM-DD)",
                {"start_date": str(start), "end_date": str(end)},
            )

        if e < s:
            raise AppError(
                422,
                BookingErrorCode.INVALID_DATE_RANGE.value,
                "End date must not be before start date",
                {"start_date": s.isoformat(), "end_date": e.isoformat()},
            )
        rng = cls(start=s, end=e)
        if max_days is not None and rng.num_days > max_days:
            raise AppError(
                422,
                BookingErrorCode.RANGE_TOO_LONG.value,
                f"Date ranges are limited to {max_days} days",
                {"num_days": rng.num_days, "max_days": max_days},
            )
        return rng

    @property
    def num_days(self) -> int:
        return (self.end - self.start).days + 1

    def days(self) -> Iterator[date]:
        # Offsets from start never step past `end`, so date.max is a valid end.
        for offset in range(self.num_days):
            yield self.start + timedelta(days=offset)

    def overlaps(self, start: date, end: date) -> bool:
        # Inclusive on both ends: a shared boundary day is an overlap.
        return start <= self.end and end >= self.start

    def iso(self) -> tuple[str, str]:
        return self.start.isoformat(), self.end.isoformat()
