from __future__ import annotations

from dataclasses import dataclass, field
from typing import Literal, Optional, Sequence

from resplan.capacity import (
    EmployeeCapacity,
    available_hours,
    capacity_index,
    estimated_hours,
    normalize,
)
from resplan.config import Config, cfg
from resplan.conflicts import Conflict, scenario_conflicts, sort_conflicts
from resplan.demand import scenario_demand
from resplan.errors import InvalidCapacity
from resplan.forecast import ForecastBucket, ForecastParams, forecast
from resplan.periods import months_spanned
from resplan.records import DemandRecord, Scenario

Presence = Literal["both", "a_only", "b_only"]


@dataclass(frozen=True)
class MetricComparison:
    a: float
    b: float
    diff: float
    pct_change: Optional[float] = None

    @classmethod
    def of(cls, a: float, b: float) -> MetricComparison:
        diff = b - a
        pct = None if a == 0 else diff / a * 100.0
        return cls(a=a, b=b, diff=diff, pct_change=pct)


@dataclass(frozen=True)
class SkillGap:
    skill_category: str
    experience_level: str
    unmet_hours: float
    peak_hiring: int = 0


@dataclass(frozen=True)
class SkillGapPair:
    skill_category: str
    experience_level: str
    gap_a: float
    gap_b: float
    improvement: float  # positive: B leaves less demand unmet
    presence: Presence


@dataclass
class SkillGapComparison:
    a: list[SkillGap] = field(default_factory=list)
    b: list[SkillGap] = field(default_factory=list)
    comparison: list[SkillGapPair] = field(default_factory=list)


@dataclass
class ScenarioComparison:
    scenario_a_id: str
    scenario_b_id: str
    total_cost: MetricComparison
    resource_utilization: MetricComparison
    skill_gaps: SkillGapComparison
    timeline_conflicts: list[Conflict]
    forecast_a: list[ForecastBucket] = field(default_factory=list)
    forecast_b: list[ForecastBucket] = field(default_factory=list)


def scenario_cost(scenario: Scenario, *, config: Config = cfg) -> float:
    """
    Sum of estimated hours x hourly rate. Allocations without a rate are
    priced at DEFAULT_HOURLY_RATE; without an hours estimate, working days
    between start and end (open ends stop at the scenario horizon) are used.
    """
    horizon = scenario.horizon()
    total = 0.0
    for a in scenario.allocations:
        rate = float(a.hourly_rate) if a.hourly_rate is not None else config.DEFAULT_HOURLY_RATE
        total += estimated_hours(a, horizon, config=config) * rate
    return total


def scenario_utilization(
    scenario: Scenario, capacities: Sequence[EmployeeCapacity]
) -> float:
    """Allocated hours over available hours of active staff, across the horizon."""
    caps = capacity_index(capacities)
    horizon = scenario.horizon()
    allocated = 0.0
    for a in scenario.allocations:
        cap = caps.get(a.employee_id)
        if cap is None:
            raise InvalidCapacity(
                f"Scenario {scenario.id}: no capacity snapshot for employee {a.employee_id}."
            )
        allocated += normalize(a, cap, horizon)
    available = sum(available_hours(c, horizon) for c in capacities)
    return allocated / available if available > 0 else 0.0


def _skill_gaps(buckets: Sequence[ForecastBucket]) -> list[SkillGap]:
    unmet: dict[tuple[str, str], float] = {}
    hiring: dict[tuple[str, str], int] = {}
    for b in buckets:
        unmet[b.key] = unmet.get(b.key, 0.0) + max(0.0, b.gap_hours)
        hiring[b.key] = max(hiring.get(b.key, 0), b.hiring_recommendation)
    return [
        SkillGap(skill, level, unmet[(skill, level)], hiring[(skill, level)])
        for skill, level in sorted(unmet)
    ]


def pair_skill_gaps(a: Sequence[SkillGap], b: Sequence[SkillGap]) -> list[SkillGapPair]:
    """
    Pair gaps on the full (skill, level) key. A key seen on one side only is
    paired against zero unmet hours and marked with its presence.
    """
    left = {(g.skill_category, g.experience_level): g.unmet_hours for g in a}
    right = {(g.skill_category, g.experience_level): g.unmet_hours for g in b}
    pairs: list[SkillGapPair] = []
    for key in sorted(set(left) | set(right)):
        presence: Presence
        if key in left and key in right:
            presence = "both"
        elif key in left:
            presence = "a_only"
        else:
            presence = "b_only"
        gap_a = left.get(key, 0.0)
        gap_b = right.get(key, 0.0)
        pairs.append(
            SkillGapPair(
                skill_category=key[0],
                experience_level=key[1],
                gap_a=gap_a,
                gap_b=gap_b,
                improvement=gap_a - gap_b,
                presence=presence,
            )
        )
    return pairs


def _scenario_forecast(
    scenario: Scenario,
    capacities: Sequence[EmployeeCapacity],
    pipeline: Sequence[DemandRecord],
    params: Optional[ForecastParams],
    config: Config,
) -> list[ForecastBucket]:
    params = params or ForecastParams(
        forecast_months=months_spanned(scenario.base_date, scenario.forecast_period_months),
        confidence_threshold=config.CONFIDENCE_THRESHOLD,
        base_date=scenario.base_date,
    )
    records = list(pipeline) + scenario_demand(scenario, capacities, config=config)
    return forecast(records, capacities, params, config=config)


def compare_scenarios(
    a: Scenario,
    b: Scenario,
    capacities: Sequence[EmployeeCapacity],
    *,
    pipeline_demand: Sequence[DemandRecord] = (),
    params: Optional[ForecastParams] = None,
    config: Config = cfg,
) -> ScenarioComparison:
    """
    Differential cost, utilisation, skill-gap and conflict view of two scenarios.

    Both scenarios are evaluated against the same capacity snapshot and the
    same pipeline demand. Neither scenario is modified, and swapping A and B
    negates every diff.
    """
    forecast_a = _scenario_forecast(a, capacities, pipeline_demand, params, config)
    forecast_b = _scenario_forecast(b, capacities, pipeline_demand, params, config)
    gaps_a = _skill_gaps(forecast_a)
    gaps_b = _skill_gaps(forecast_b)

    shared = a.employee_ids & b.employee_ids
    conflicts = [
        c
        for c in scenario_conflicts(a, capacities, config=config)
        + scenario_conflicts(b, capacities, config=config)
        if c.employee_id in shared
    ]

    return ScenarioComparison(
        scenario_a_id=a.id,
        scenario_b_id=b.id,
        total_cost=MetricComparison.of(
            scenario_cost(a, config=config), scenario_cost(b, config=config)
        ),
        resource_utilization=MetricComparison.of(
            scenario_utilization(a, capacities), scenario_utilization(b, capacities)
        ),
        skill_gaps=SkillGapComparison(
            a=gaps_a, b=gaps_b, comparison=pair_skill_gaps(gaps_a, gaps_b)
        ),
        timeline_conflicts=sort_conflicts(conflicts),
        forecast_a=forecast_a,
        forecast_b=forecast_b,
    )
