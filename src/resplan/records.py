from __future__ import annotations

import dataclasses
from dataclasses import dataclass, field
from datetime import date, datetime
from typing import Any, Iterable, Literal, Mapping, Optional, get_args

from resplan.errors import InvalidAllocation, InvalidDateRange, InvalidRecord
from resplan.periods import DateRange, horizon_from

AllocationType = Literal["tentative", "probable", "confirmed"]
DemandSource = Literal["pipeline", "scenario"]
Severity = Literal["low", "medium", "high", "critical"]

LIVE_SCENARIO_ID = "live"

_DATE_FIELDS = {"start_date", "end_date", "date", "base_date", "start", "end"}


def _to_date(value: Any, name: str) -> date:
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    if isinstance(value, str):
        try:
            return date.fromisoformat(value[:10])
        except ValueError as exc:
            raise InvalidRecord(f"{name}: {value!r} is not an ISO date.") from exc
    raise InvalidRecord(f"{name}: expected a date or ISO string, got {type(value).__name__}.")


def _check_fields(cls: type, row: Mapping[str, Any]) -> dict[str, Any]:
    """
    Reject unknown and missing keys for a record dataclass, and coerce date fields.
    Fields with defaults are optional.
    """
    known = {f.name: f for f in dataclasses.fields(cls)}
    unknown = sorted(set(row) - set(known))
    if unknown:
        raise InvalidRecord(f"{cls.__name__}: unknown field(s) {unknown}.")
    required = [
        name
        for name, f in known.items()
        if f.default is dataclasses.MISSING and f.default_factory is dataclasses.MISSING
    ]
    missing = [name for name in required if name not in row]
    if missing:
        raise InvalidRecord(f"{cls.__name__}: missing required field(s) {missing}.")
    out = dict(row)
    for name in _DATE_FIELDS & set(out):
        if out[name] is not None:
            out[name] = _to_date(out[name], f"{cls.__name__}.{name}")
    return out


@dataclass(frozen=True)
class Allocation:
    """
    A fractional, time-boxed assignment of one employee to a project or
    scenario slot. ``percentage`` is a share of the employee's weekly capacity.
    """

    id: str
    employee_id: str
    subject_id: str
    allocation_type: AllocationType
    percentage: float
    start_date: date
    end_date: Optional[date] = None
    confidence_level: int = 5
    estimated_hours: Optional[float] = None
    hourly_rate: Optional[float] = None
    skill_category: Optional[str] = None
    experience_level: Optional[str] = None

    @property
    def is_open_ended(self) -> bool:
        return self.end_date is None

    def validate(self) -> None:
        if not (0.0 < float(self.percentage) <= 100.0):
            raise InvalidAllocation(
                f"Allocation {self.id}: percentage {self.percentage} outside (0, 100]."
            )
        if self.allocation_type not in get_args(AllocationType):
            raise InvalidAllocation(
                f"Allocation {self.id}: unknown allocation type {self.allocation_type!r}."
            )
        if not (1 <= int(self.confidence_level) <= 5):
            raise InvalidAllocation(
                f"Allocation {self.id}: confidence level {self.confidence_level} outside 1..5."
            )
        if self.end_date is not None and self.end_date < self.start_date:
            raise InvalidDateRange(
                f"Allocation {self.id}: end {self.end_date.isoformat()} precedes "
                f"start {self.start_date.isoformat()}."
            )

    def span(self, horizon: DateRange | None = None) -> DateRange:
        """Closed date range covered, with an open end resolved to the horizon end."""
        self.validate()
        end = self.end_date
        if end is None:
            if horizon is None:
                raise InvalidDateRange(
                    f"Allocation {self.id} is open-ended and no horizon was supplied."
                )
            end = horizon.end
        if end < self.start_date:
            raise InvalidDateRange(
                f"Allocation {self.id} starts after the horizon ends."
            )
        return DateRange(self.start_date, end)

    @classmethod
    def from_dict(cls, row: Mapping[str, Any]) -> Allocation:
        rec = cls(**_check_fields(cls, row))
        rec.validate()
        return rec


@dataclass(frozen=True)
class DemandRecord:
    skill_category: str
    experience_level: str
    date: date
    required_hours: float
    probability_weight: float
    source: DemandSource = "pipeline"

    @classmethod
    def from_dict(cls, row: Mapping[str, Any]) -> DemandRecord:
        rec = cls(**_check_fields(cls, row))
        if not (0.0 <= float(rec.probability_weight) <= 1.0):
            raise InvalidRecord(
                f"DemandRecord: probability_weight {rec.probability_weight} outside [0, 1]."
            )
        if rec.source not in get_args(DemandSource):
            raise InvalidRecord(f"DemandRecord: unknown source {rec.source!r}.")
        return rec


@dataclass(frozen=True)
class Task:
    id: str
    duration_days: float
    dependencies: frozenset[str] = frozenset()
    start: Optional[date] = None
    end: Optional[date] = None

    def __post_init__(self) -> None:
        if not isinstance(self.dependencies, frozenset):
            object.__setattr__(self, "dependencies", frozenset(self.dependencies))

    @classmethod
    def from_dict(cls, row: Mapping[str, Any]) -> Task:
        data = _check_fields(cls, row)
        data["dependencies"] = frozenset(str(d) for d in data.get("dependencies", ()))
        return cls(**data)


@dataclass(frozen=True)
class Scenario:
    """A closed world of allocations planned against a common baseline."""

    id: str
    base_date: date
    forecast_period_months: int
    allocations: tuple[Allocation, ...] = ()
    name: str = ""

    def __post_init__(self) -> None:
        if not isinstance(self.allocations, tuple):
            object.__setattr__(self, "allocations", tuple(self.allocations))

    def horizon(self) -> DateRange:
        return horizon_from(self.base_date, self.forecast_period_months)

    @property
    def employee_ids(self) -> set[str]:
        return {a.employee_id for a in self.allocations}

    def with_allocations(
        self, extra: Iterable[Allocation], *, scenario_id: str | None = None
    ) -> Scenario:
        """Return a new scenario with ``extra`` appended; self is left untouched."""
        return dataclasses.replace(
            self,
            id=scenario_id or self.id,
            allocations=self.allocations + tuple(extra),
        )

    @classmethod
    def from_dict(cls, row: Mapping[str, Any]) -> Scenario:
        data = _check_fields(cls, row)
        data["allocations"] = tuple(
            a if isinstance(a, Allocation) else Allocation.from_dict(a)
            for a in data.get("allocations", ())
        )
        return cls(**data)


@dataclass(frozen=True)
class ResourceDemand:
    """One staffing line of a pipeline deal."""

    skill_category: str
    experience_level: str
    required_count: int
    allocation_percentage: float
    start_date: date
    end_date: date
    hourly_rate: Optional[float] = None

    @property
    def span(self) -> DateRange:
        return DateRange(self.start_date, self.end_date)

    @classmethod
    def from_dict(cls, row: Mapping[str, Any]) -> ResourceDemand:
        rec = cls(**_check_fields(cls, row))
        if rec.required_count < 0:
            raise InvalidRecord("ResourceDemand: required_count must be >= 0.")
        if not (0.0 < float(rec.allocation_percentage) <= 100.0):
            raise InvalidRecord(
                f"ResourceDemand: allocation_percentage {rec.allocation_percentage} "
                "outside (0, 100]."
            )
        rec.span  # raises InvalidDateRange for inverted ranges
        return rec


@dataclass(frozen=True)
class PipelineDeal:
    id: str
    name: str
    stage: str
    probability: float  # 0..100
    demands: tuple[ResourceDemand, ...] = field(default_factory=tuple)

    def __post_init__(self) -> None:
        if not isinstance(self.demands, tuple):
            object.__setattr__(self, "demands", tuple(self.demands))

    @classmethod
    def from_dict(cls, row: Mapping[str, Any]) -> PipelineDeal:
        data = _check_fields(cls, row)
        data["demands"] = tuple(
            d if isinstance(d, ResourceDemand) else ResourceDemand.from_dict(d)
            for d in data.get("demands", ())
        )
        deal = cls(**data)
        if not (0.0 <= float(deal.probability) <= 100.0):
            raise InvalidRecord(f"PipelineDeal {deal.id}: probability outside [0, 100].")
        return deal
