from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, timedelta
from typing import Any, Mapping, Optional, Sequence

from resplan.capacity import EmployeeCapacity, working_day_hours
from resplan.config import Config, cfg
from resplan.demand import deal_weight
from resplan.errors import InvalidRecord
from resplan.periods import DateRange
from resplan.records import Allocation, PipelineDeal, Scenario, Task

# CP-SAT works on integers; percentages are carried as hundredths.
PCT_SCALE = 100


@dataclass(frozen=True)
class DemandLine:
    """One staffing line of a deal, clipped to the planning horizon."""

    index: int
    deal_id: str
    deal_name: str
    line_index: int
    skill_category: str
    experience_level: str
    required_count: int
    percentage: float
    span: DateRange
    probability: float  # adjusted: stage rate x deal probability
    hours_per_person: float
    hourly_rate: Optional[float] = None

    @property
    def scaled_pct(self) -> int:
        return int(round(self.percentage * PCT_SCALE))


@dataclass
class StaffingInput:
    """
    Everything the staffing model needs: open demand lines, the people who
    could fill them, and what those people are already committed to.
    """

    lines: list[DemandLine]
    capacities: list[EmployeeCapacity]
    committed: list[Allocation]
    horizon: DateRange
    intervals: list[DateRange] = field(default_factory=list)
    eligible: dict[int, list[int]] = field(default_factory=dict)
    committed_pct: dict[tuple[int, int], int] = field(default_factory=dict)
    line_intervals: dict[int, list[int]] = field(default_factory=dict)

    def __post_init__(self) -> None:
        if not self.intervals:
            self.intervals = _elementary_windows(self.lines, self.committed, self.horizon)
        if not self.eligible:
            self.eligible = {
                ln.index: [
                    e
                    for e, cap in enumerate(self.capacities)
                    if cap.active and cap.has_skill(ln.skill_category, ln.experience_level)
                ]
                for ln in self.lines
            }
        if not self.line_intervals:
            self.line_intervals = {
                ln.index: [
                    k for k, iv in enumerate(self.intervals) if iv.overlap_days(ln.span) > 0
                ]
                for ln in self.lines
            }
        if not self.committed_pct:
            self.committed_pct = _committed_load(
                self.capacities, self.committed, self.intervals, self.horizon
            )

    @property
    def n_employees(self) -> int:
        return len(self.capacities)

    def remaining_pct(self, e: int, k: int) -> int:
        """Scaled headroom of employee ``e`` in interval ``k``; never negative."""
        return max(0, 100 * PCT_SCALE - self.committed_pct.get((e, k), 0))


def _elementary_windows(
    lines: Sequence[DemandLine], committed: Sequence[Allocation], horizon: DateRange
) -> list[DateRange]:
    bounds: set[date] = {horizon.start, horizon.end + timedelta(days=1)}
    for ln in lines:
        bounds.add(ln.span.start)
        bounds.add(ln.span.end + timedelta(days=1))
    for a in committed:
        if a.start_date > horizon.end:
            continue
        span = a.span(horizon).clip(horizon)
        if span is None:
            continue
        bounds.add(span.start)
        bounds.add(span.end + timedelta(days=1))
    ordered = sorted(b for b in bounds if horizon.start <= b <= horizon.end + timedelta(days=1))
    return [DateRange(lo, hi - timedelta(days=1)) for lo, hi in zip(ordered, ordered[1:])]


def _committed_load(
    capacities: Sequence[EmployeeCapacity],
    committed: Sequence[Allocation],
    intervals: Sequence[DateRange],
    horizon: DateRange,
) -> dict[tuple[int, int], int]:
    index = {c.employee_id: e for e, c in enumerate(capacities)}
    load: dict[tuple[int, int], int] = {}
    for a in committed:
        e = index.get(a.employee_id)
        if e is None or a.start_date > horizon.end:
            continue
        span = a.span(horizon)
        for k, iv in enumerate(intervals):
            if iv.overlap_days(span) > 0:
                load[(e, k)] = load.get((e, k), 0) + int(round(float(a.percentage) * PCT_SCALE))
    return load


def build_staffing_input(
    deals: Sequence[PipelineDeal],
    capacities: Sequence[EmployeeCapacity],
    committed: Sequence[Allocation],
    horizon: DateRange,
    *,
    stage_rates: Optional[Mapping[str, float]] = None,
    config: Config = cfg,
) -> StaffingInput:
    """
    Flatten open deals into demand lines. Deals in excluded stages, empty
    lines and lines outside the horizon are left out.
    """
    for c in capacities:
        if c.active:
            c.validate()
    for a in committed:
        a.validate()

    lines: list[DemandLine] = []
    for deal in sorted(deals, key=lambda d: d.id):
        if deal.stage in config.PIPELINE_EXCLUDED_STAGES:
            continue
        prob = deal_weight(deal, stage_rates=stage_rates, config=config)
        for i, line in enumerate(deal.demands):
            if line.required_count <= 0:
                continue
            span = line.span.clip(horizon)
            if span is None:
                continue
            lines.append(
                DemandLine(
                    index=len(lines),
                    deal_id=deal.id,
                    deal_name=deal.name,
                    line_index=i,
                    skill_category=line.skill_category,
                    experience_level=line.experience_level,
                    required_count=int(line.required_count),
                    percentage=float(line.allocation_percentage),
                    span=span,
                    probability=prob,
                    hours_per_person=working_day_hours(
                        span.start, span.end, line.allocation_percentage, config=config
                    ),
                    hourly_rate=line.hourly_rate,
                )
            )
    return StaffingInput(
        lines=lines,
        capacities=list(capacities),
        committed=list(committed),
        horizon=horizon,
    )


@dataclass
class PlanningInput:
    """
    Snapshot handed to a planning run. ``live`` is the committed project
    space; ``scenarios`` are candidate worlds compared against it.
    """

    capacities: list[EmployeeCapacity]
    live: Scenario
    scenarios: list[Scenario] = field(default_factory=list)
    deals: list[PipelineDeal] = field(default_factory=list)
    tasks: list[Task] = field(default_factory=list)
    stage_rates: dict[str, float] = field(default_factory=dict)

    @property
    def horizon(self) -> DateRange:
        return self.live.horizon()

    @classmethod
    def from_dict(cls, payload: Mapping[str, Any]) -> PlanningInput:
        known = {"capacities", "live", "scenarios", "deals", "tasks", "stage_rates"}
        unknown = sorted(set(payload) - known)
        if unknown:
            raise InvalidRecord(f"PlanningInput: unknown field(s) {unknown}.")
        missing = [k for k in ("capacities", "live") if k not in payload]
        if missing:
            raise InvalidRecord(f"PlanningInput: missing required field(s) {missing}.")
        return cls(
            capacities=[EmployeeCapacity.from_dict(r) for r in payload["capacities"]],
            live=Scenario.from_dict(payload["live"]),
            scenarios=[Scenario.from_dict(r) for r in payload.get("scenarios", [])],
            deals=[PipelineDeal.from_dict(r) for r in payload.get("deals", [])],
            tasks=[Task.from_dict(r) for r in payload.get("tasks", [])],
            stage_rates={str(k): float(v) for k, v in payload.get("stage_rates", {}).items()},
        )
