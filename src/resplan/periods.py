from __future__ import annotations

from dataclasses import dataclass
from datetime import date, timedelta

import pandas as pd

from resplan.errors import InvalidDateRange


@dataclass(frozen=True)
class DateRange:
    """Closed calendar interval; both ``start`` and ``end`` are included."""

    start: date
    end: date

    def __post_init__(self) -> None:
        if self.end < self.start:
            raise InvalidDateRange(
                f"Range ends ({self.end.isoformat()}) before it starts "
                f"({self.start.isoformat()})."
            )

    @property
    def days(self) -> int:
        return (self.end - self.start).days + 1

    def contains(self, day: date) -> bool:
        return self.start <= day <= self.end

    def overlap_days(self, other: DateRange) -> int:
        lo = max(self.start, other.start)
        hi = min(self.end, other.end)
        return max(0, (hi - lo).days + 1)

    def clip(self, other: DateRange) -> DateRange | None:
        lo = max(self.start, other.start)
        hi = min(self.end, other.end)
        return DateRange(lo, hi) if lo <= hi else None


def add_months(day: date, months: int) -> date:
    """Shift by calendar months, clamping to the last valid day of the month."""
    return (pd.Timestamp(day) + pd.DateOffset(months=months)).date()


def horizon_from(base_date: date, months: int) -> DateRange:
    """``months`` whole months starting at ``base_date``."""
    return DateRange(base_date, add_months(base_date, months) - timedelta(days=1))


def month_windows(base_date: date, months: int) -> list[tuple[str, DateRange]]:
    """Return ``(YYYY-MM, full calendar month)`` for the month of base_date onwards."""
    out: list[tuple[str, DateRange]] = []
    for period in pd.period_range(start=pd.Timestamp(base_date), periods=months, freq="M"):
        out.append(
            (
                str(period),
                DateRange(period.start_time.date(), period.end_time.date()),
            )
        )
    return out


def month_start(day: date) -> date:
    return day.replace(day=1)


def months_spanned(start: date, months: int) -> int:
    """Calendar months touched by `months` months counted from `start`."""
    return months + (0 if start == month_start(start) else 1)
