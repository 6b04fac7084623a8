from __future__ import annotations

import math
from datetime import date
from typing import Mapping, Optional, Sequence

from resplan.capacity import EmployeeCapacity, capacity_index, normalize
from resplan.config import Config, cfg
from resplan.errors import InvalidCapacity
from resplan.periods import DateRange, month_start, month_windows, months_spanned
from resplan.records import Allocation, DemandRecord, PipelineDeal, Scenario


def deal_weight(
    deal: PipelineDeal,
    *,
    stage_rates: Optional[Mapping[str, float]] = None,
    config: Config = cfg,
) -> float:
    """Stage conversion rate times the deal's own probability, clamped to [0, 1]."""
    rate = config.conversion_rate(deal.stage, dict(stage_rates or {}))
    return max(0.0, min(1.0, rate * float(deal.probability) / 100.0))


def pipeline_demand(
    deals: Sequence[PipelineDeal],
    base_date: date,
    months: int,
    *,
    stage_rates: Optional[Mapping[str, float]] = None,
    config: Config = cfg,
) -> list[DemandRecord]:
    """
    Spread every staffing line of every open deal over the calendar months it
    touches. One DemandRecord per (deal, line, month), dated on the first of
    the month.

    Deals in a stage listed in PIPELINE_EXCLUDED_STAGES contribute nothing:
    won work is already staffed in the live plan and lost work never will be.
    """
    windows = month_windows(month_start(base_date), months)
    out: list[DemandRecord] = []
    for deal in deals:
        if deal.stage in config.PIPELINE_EXCLUDED_STAGES:
            continue
        weight = deal_weight(deal, stage_rates=stage_rates, config=config)
        for line in deal.demands:
            if line.required_count <= 0:
                continue
            per_week = (
                line.required_count
                * float(line.allocation_percentage)
                / 100.0
                * config.FTE_WEEKLY_HOURS
            )
            for _, window in windows:
                overlap = line.span.overlap_days(window)
                if overlap == 0:
                    continue
                out.append(
                    DemandRecord(
                        skill_category=line.skill_category,
                        experience_level=line.experience_level,
                        date=window.start,
                        required_hours=per_week * overlap / 7.0,
                        probability_weight=weight,
                        source="pipeline",
                    )
                )
    return out


def _skill_of(
    allocation: Allocation, capacity: EmployeeCapacity
) -> Optional[tuple[str, str]]:
    if allocation.skill_category and allocation.experience_level:
        return allocation.skill_category, allocation.experience_level
    return capacity.primary_skill


def scenario_demand(
    scenario: Scenario,
    capacities: Sequence[EmployeeCapacity],
    *,
    config: Config = cfg,
) -> list[DemandRecord]:
    """
    Demand implied by a scenario's own allocations, one record per allocation
    per month of the scenario horizon. Weight is confidence_level / 5.
    """
    caps = capacity_index(capacities)
    horizon = scenario.horizon()
    first = month_start(horizon.start)
    n_months = months_spanned(horizon.start, scenario.forecast_period_months)
    windows: list[DateRange] = []
    for _, window in month_windows(first, n_months):
        clipped = window.clip(horizon)
        if clipped is not None:
            windows.append(clipped)

    out: list[DemandRecord] = []
    for a in scenario.allocations:
        cap = caps.get(a.employee_id)
        if cap is None:
            raise InvalidCapacity(
                f"Scenario {scenario.id}: no capacity snapshot for employee {a.employee_id}."
            )
        skill = _skill_of(a, cap)
        if skill is None:
            continue
        weight = int(a.confidence_level) / 5.0
        for window in windows:
            hours = normalize(a, cap, window)
            if hours <= 0:
                continue
            out.append(
                DemandRecord(
                    skill_category=skill[0],
                    experience_level=skill[1],
                    date=month_start(window.start),
                    required_hours=hours,
                    probability_weight=weight,
                    source="scenario",
                )
            )
    return out


def proposed_allocation_type(probability: float, *, config: Config = cfg) -> str:
    """Firmness of a proposed allocation from the deal's adjusted probability."""
    if probability > config.CONFIRMED_PROBABILITY:
        return "confirmed"
    if probability > config.PROBABLE_PROBABILITY:
        return "probable"
    return "tentative"


def proposed_confidence(probability: float) -> int:
    """Map [0, 1] onto the 1..5 confidence scale."""
    return max(1, min(5, math.floor(probability * 5 + 0.5)))
