from __future__ import annotations

import math
from dataclasses import dataclass, field
from datetime import date
from typing import Any, Iterable, Mapping, Optional

from resplan.config import Config, cfg
from resplan.errors import InvalidCapacity, InvalidRecord
from resplan.periods import DateRange, add_months, month_windows
from resplan.records import Allocation

Skill = tuple[str, str]  # (category, experience level)


def _normalize_skills(values: Iterable[Any]) -> frozenset[Skill]:
    out: set[Skill] = set()
    for val in values:
        if isinstance(val, Mapping):
            out.add((str(val["category"]), str(val["level"])))
        elif isinstance(val, (tuple, list)) and len(val) == 2:
            out.add((str(val[0]), str(val[1])))
        else:
            raise InvalidRecord(
                "Skills must be (category, level) pairs or {'category', 'level'} mappings."
            )
    return frozenset(out)


@dataclass(frozen=True)
class EmployeeCapacity:
    """
    Point-in-time capacity snapshot of one employee.
    """

    employee_id: str
    weekly_hours: float
    skills: frozenset[Skill] = field(default_factory=frozenset)
    name: str = ""
    active: bool = True

    def __post_init__(self) -> None:
        if not isinstance(self.skills, frozenset):
            object.__setattr__(self, "skills", _normalize_skills(self.skills))

    def __repr__(self) -> str:
        skills = ", ".join(f"{c}/{lvl}" for c, lvl in sorted(self.skills))
        return (
            f"EmployeeCapacity(id={self.employee_id}, name='{self.name}', "
            f"weekly={self.weekly_hours:g}h, active={self.active}, skills=[{skills}])"
        )

    @property
    def primary_skill(self) -> Optional[Skill]:
        return min(self.skills) if self.skills else None

    def has_skill(self, category: str, level: str) -> bool:
        return (category, level) in self.skills

    def validate(self) -> None:
        if self.weekly_hours is None or float(self.weekly_hours) <= 0:
            raise InvalidCapacity(
                f"Employee {self.employee_id}: weekly hours must be > 0 "
                f"(got {self.weekly_hours})."
            )

    @classmethod
    def from_dict(cls, row: Mapping[str, Any]) -> EmployeeCapacity:
        known = {"employee_id", "weekly_hours", "skills", "name", "active"}
        unknown = sorted(set(row) - known)
        if unknown:
            raise InvalidRecord(f"EmployeeCapacity: unknown field(s) {unknown}.")
        missing = [k for k in ("employee_id", "weekly_hours") if k not in row]
        if missing:
            raise InvalidRecord(f"EmployeeCapacity: missing required field(s) {missing}.")
        cap = cls(
            employee_id=str(row["employee_id"]),
            weekly_hours=float(row["weekly_hours"]),
            skills=_normalize_skills(row.get("skills", ())),
            name=str(row.get("name", "")),
            active=bool(row.get("active", True)),
        )
        cap.validate()
        return cap


def capacity_index(
    capacities: Iterable[EmployeeCapacity],
) -> dict[str, EmployeeCapacity]:
    return {c.employee_id: c for c in capacities}


def weeks_overlapping(period: DateRange, window: DateRange) -> float:
    """Overlap of two closed ranges, in (fractional) weeks."""
    return period.overlap_days(window) / 7.0


def weekly_hours_for(allocation: Allocation, capacity: EmployeeCapacity) -> float:
    """Hours per week the allocation claims from this employee."""
    capacity.validate()
    allocation.validate()
    return float(allocation.percentage) / 100.0 * float(capacity.weekly_hours)


def normalize(
    allocation: Allocation,
    capacity: EmployeeCapacity,
    window: DateRange | None = None,
) -> float:
    """
    Convert a percentage allocation into absolute hours.

    hours = percentage / 100 * weekly_hours * weeks_overlapping(span, window)

    Without a window the allocation's own span is used, so an open-ended
    allocation needs a window to resolve its end.
    """
    per_week = weekly_hours_for(allocation, capacity)
    if window is not None and allocation.start_date > window.end:
        return 0.0
    span = allocation.span(window)
    return per_week * weeks_overlapping(span, window or span)


def working_day_hours(
    start: date, end: date, percentage: float, *, config: Config = cfg
) -> float:
    """
    Rough effort estimate for a dated assignment: calendar days between start
    and end, scaled to working days, times a working day, times the share.
    """
    days = max(0, (end - start).days)
    work_days = math.floor(days * config.WORKDAYS_PER_WEEK / 7)
    return float(math.floor(work_days * config.HOURS_PER_WORKDAY * float(percentage) / 100.0 + 0.5))


def estimated_hours(
    allocation: Allocation, horizon: DateRange | None = None, *, config: Config = cfg
) -> float:
    """Explicit estimate if the allocation carries one, else the working-day estimate."""
    if allocation.estimated_hours is not None:
        return float(allocation.estimated_hours)
    if allocation.is_open_ended and horizon is not None and allocation.start_date > horizon.end:
        return 0.0
    span = allocation.span(horizon)
    return working_day_hours(span.start, span.end, allocation.percentage, config=config)


def available_hours(capacity: EmployeeCapacity, window: DateRange) -> float:
    """Hours an active employee can supply over ``window``; inactive employees supply 0."""
    if not capacity.active:
        return 0.0
    capacity.validate()
    return float(capacity.weekly_hours) * window.days / 7.0


__all__ = [
    "EmployeeCapacity",
    "Skill",
    "add_months",
    "available_hours",
    "capacity_index",
    "estimated_hours",
    "month_windows",
    "normalize",
    "weekly_hours_for",
    "weeks_overlapping",
    "working_day_hours",
]
