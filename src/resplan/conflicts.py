from __future__ import annotations

import dataclasses
from collections import defaultdict
from dataclasses import dataclass, field
from datetime import date, timedelta
from typing import Iterable, Optional, Sequence

from resplan.capacity import EmployeeCapacity, capacity_index
from resplan.config import Config, cfg
from resplan.periods import DateRange
from resplan.records import Allocation, Scenario, Severity

# Percentages are summed after rounding to this many places so that
# e.g. 33.3 + 33.3 + 33.4 compares equal to 100.
_PCT_PLACES = 6


@dataclass(frozen=True)
class ConflictSegment:
    """Stretch of a conflict in which the same allocations overlap."""

    start: date
    end: date
    total_allocation_percentage: float
    allocation_ids: tuple[str, ...]


@dataclass(frozen=True)
class Conflict:
    employee_id: str
    period_start: date
    period_end: date
    total_allocation_percentage: float  # peak within the run
    contributing_allocation_ids: tuple[str, ...]
    severity: Severity
    segments: tuple[ConflictSegment, ...] = ()
    overallocated_weekly_hours: Optional[float] = None
    scenario_id: Optional[str] = None

    @property
    def days(self) -> int:
        return (self.period_end - self.period_start).days + 1


@dataclass
class OverAllocationSummary:
    total_employees: int
    over_allocated_count: int
    critical_count: int
    by_severity: dict[str, int] = field(default_factory=dict)
    worst: Optional[Conflict] = None

    @property
    def over_allocated_share(self) -> float:
        if self.total_employees == 0:
            return 0.0
        return self.over_allocated_count / self.total_employees


def _resolve_spans(
    allocations: Sequence[Allocation], horizon: DateRange | None
) -> list[tuple[Allocation, DateRange]]:
    """
    Validate every allocation first, then resolve open ends and clip to the
    horizon. Allocations entirely outside the horizon are dropped.
    """
    for a in allocations:
        a.validate()
    spans: list[tuple[Allocation, DateRange]] = []
    for a in allocations:
        if horizon is not None and a.start_date > horizon.end:
            continue
        span = a.span(horizon)
        if horizon is not None:
            clipped = span.clip(horizon)
            if clipped is None:
                continue
            span = clipped
        spans.append((a, span))
    return spans


def _elementary_intervals(
    spans: Sequence[tuple[Allocation, DateRange]],
) -> list[tuple[date, date, float, frozenset[str]]]:
    """
    Sweep line over start and end+1 boundaries.

    Returns ``(start, end_inclusive, total_pct, ids)`` for every elementary
    interval that at least one allocation covers.
    """
    bounds: set[date] = set()
    for _, span in spans:
        bounds.add(span.start)
        bounds.add(span.end + timedelta(days=1))
    ordered = sorted(bounds)

    out: list[tuple[date, date, float, frozenset[str]]] = []
    for lo, hi in zip(ordered, ordered[1:]):
        covering = [
            a for a, span in spans if span.start <= lo and span.end >= hi - timedelta(days=1)
        ]
        if not covering:
            continue
        total = round(sum(float(a.percentage) for a in covering), _PCT_PLACES)
        out.append((lo, hi - timedelta(days=1), total, frozenset(a.id for a in covering)))
    return out


def _merge_segments(
    run: Sequence[tuple[date, date, float, frozenset[str]]],
) -> tuple[ConflictSegment, ...]:
    merged: list[ConflictSegment] = []
    for lo, hi, total, ids in run:
        key = tuple(sorted(ids))
        if merged and merged[-1].allocation_ids == key and merged[-1].end + timedelta(days=1) == lo:
            prev = merged[-1]
            merged[-1] = ConflictSegment(prev.start, hi, prev.total_allocation_percentage, key)
        else:
            merged.append(ConflictSegment(lo, hi, total, key))
    return tuple(merged)


def _employee_conflicts(
    employee_id: str,
    allocations: Sequence[Allocation],
    capacity: EmployeeCapacity | None,
    horizon: DateRange | None,
    config: Config,
) -> list[Conflict]:
    intervals = _elementary_intervals(_resolve_spans(allocations, horizon))
    threshold = float(config.OVERALLOCATION_THRESHOLD)

    runs: list[list[tuple[date, date, float, frozenset[str]]]] = []
    current: list[tuple[date, date, float, frozenset[str]]] = []
    for iv in intervals:
        lo, _, total, _ = iv
        over = total > threshold
        contiguous = bool(current) and current[-1][1] + timedelta(days=1) == lo
        if over and (contiguous or not current):
            current.append(iv)
        elif over:
            runs.append(current)
            current = [iv]
        elif current:
            runs.append(current)
            current = []
    if current:
        runs.append(current)

    weekly = None
    if capacity is not None:
        capacity.validate()
        weekly = float(capacity.weekly_hours)

    conflicts: list[Conflict] = []
    for run in runs:
        peak = max(total for _, _, total, _ in run)
        ids: set[str] = set()
        for _, _, _, seg_ids in run:
            ids |= seg_ids
        conflicts.append(
            Conflict(
                employee_id=employee_id,
                period_start=run[0][0],
                period_end=run[-1][1],
                total_allocation_percentage=peak,
                contributing_allocation_ids=tuple(sorted(ids)),
                severity=config.severity_for(peak),  # type: ignore[arg-type]
                segments=_merge_segments(run),
                overallocated_weekly_hours=(
                    None if weekly is None else (peak - threshold) / 100.0 * weekly
                ),
            )
        )
    return conflicts


def group_by_employee(allocations: Iterable[Allocation]) -> dict[str, list[Allocation]]:
    grouped: dict[str, list[Allocation]] = defaultdict(list)
    for a in allocations:
        grouped[a.employee_id].append(a)
    return dict(grouped)


def sort_conflicts(conflicts: Iterable[Conflict]) -> list[Conflict]:
    return sorted(
        conflicts,
        key=lambda c: (c.period_start, c.employee_id, c.scenario_id or "", c.period_end),
    )


def detect_conflicts(
    allocations: Sequence[Allocation],
    capacities: Sequence[EmployeeCapacity] = (),
    horizon: DateRange | None = None,
    *,
    config: Config = cfg,
) -> list[Conflict]:
    """
    Find periods in which an employee's summed allocation exceeds the threshold.

    Allocations are grouped per employee and swept over their date boundaries.
    Each maximal contiguous run of over-allocated days becomes one Conflict,
    classified on its peak percentage. Open-ended allocations run to the end
    of ``horizon``; without a horizon they are rejected with InvalidDateRange.

    The result is sorted by (period_start, employee_id) and does not depend on
    input order.
    """
    caps = capacity_index(capacities)
    out: list[Conflict] = []
    grouped = group_by_employee(allocations)
    # Validate everything before producing any output.
    for a in allocations:
        a.validate()
    for employee_id in sorted(grouped):
        out.extend(
            _employee_conflicts(
                employee_id, grouped[employee_id], caps.get(employee_id), horizon, config
            )
        )
    return sort_conflicts(out)


def scenario_conflicts(
    scenario: Scenario,
    capacities: Sequence[EmployeeCapacity] = (),
    horizon: DateRange | None = None,
    *,
    config: Config = cfg,
) -> list[Conflict]:
    """Conflicts inside one scenario, tagged with its id."""
    found = detect_conflicts(
        scenario.allocations,
        capacities,
        horizon or scenario.horizon(),
        config=config,
    )
    return [dataclasses.replace(c, scenario_id=scenario.id) for c in found]


def summarize_conflicts(
    conflicts: Sequence[Conflict],
    capacities: Sequence[EmployeeCapacity],
    *,
    config: Config = cfg,
) -> OverAllocationSummary:
    """Headline numbers for an over-allocation report."""
    active = [c for c in capacities if c.active]
    over = {c.employee_id for c in conflicts}
    critical = {c.employee_id for c in conflicts if c.severity == "critical"}
    by_severity = {label: 0 for _, label in config.SEVERITY_BANDS}
    by_severity["critical"] = 0
    for c in conflicts:
        by_severity[c.severity] = by_severity.get(c.severity, 0) + 1
    worst = None
    if conflicts:
        worst = max(
            conflicts,
            key=lambda c: (c.total_allocation_percentage, c.days, c.employee_id),
        )
    return OverAllocationSummary(
        total_employees=len(active),
        over_allocated_count=len(over),
        critical_count=len(critical),
        by_severity=by_severity,
        worst=worst,
    )
