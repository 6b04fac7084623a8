from __future__ import annotations

from typing import Sequence

import pandas as pd

from resplan.capacity import EmployeeCapacity, available_hours, capacity_index, normalize
from resplan.comparison import ScenarioComparison
from resplan.conflicts import Conflict
from resplan.forecast import ForecastBucket, buckets_frame
from resplan.records import Scenario

CONFLICT_COLUMNS = [
    "employee_id",
    "period_start",
    "period_end",
    "days",
    "total_allocation_percentage",
    "severity",
    "contributing_allocation_ids",
    "overallocated_weekly_hours",
    "scenario_id",
]


def conflicts_frame(conflicts: Sequence[Conflict]) -> pd.DataFrame:
    """One row per conflict, allocation ids joined into a single string."""
    rows = [
        {
            "employee_id": c.employee_id,
            "period_start": c.period_start,
            "period_end": c.period_end,
            "days": c.days,
            "total_allocation_percentage": c.total_allocation_percentage,
            "severity": c.severity,
            "contributing_allocation_ids": ", ".join(c.contributing_allocation_ids),
            "overallocated_weekly_hours": c.overallocated_weekly_hours,
            "scenario_id": c.scenario_id,
        }
        for c in conflicts
    ]
    return pd.DataFrame(rows, columns=CONFLICT_COLUMNS)


def employee_utilization(
    scenario: Scenario, capacities: Sequence[EmployeeCapacity]
) -> pd.DataFrame:
    """
    Allocated vs. available hours per active employee over the scenario horizon.
    Sorted by utilisation, busiest first.
    """
    horizon = scenario.horizon()
    caps = capacity_index(capacities)
    allocated: dict[str, float] = {c.employee_id: 0.0 for c in capacities if c.active}
    for a in scenario.allocations:
        cap = caps.get(a.employee_id)
        if cap is None or not cap.active:
            continue
        allocated[a.employee_id] += normalize(a, cap, horizon)

    rows = []
    for emp_id, hours in allocated.items():
        cap = caps[emp_id]
        avail = available_hours(cap, horizon)
        rows.append(
            {
                "employee_id": emp_id,
                "name": cap.name,
                "weekly_hours": float(cap.weekly_hours),
                "allocated_hours": hours,
                "available_hours": avail,
                "utilization": hours / avail if avail > 0 else 0.0,
            }
        )
    cols = [
        "employee_id",
        "name",
        "weekly_hours",
        "allocated_hours",
        "available_hours",
        "utilization",
    ]
    if not rows:
        return pd.DataFrame(columns=cols)
    return (
        pd.DataFrame(rows, columns=cols)
        .sort_values(["utilization", "employee_id"], ascending=[False, True])
        .reset_index(drop=True)
    )


def period_totals(buckets: Sequence[ForecastBucket]) -> pd.DataFrame:
    """Demand, supply, gap and hiring summed per period across skills."""
    cols = ["period", "demand_hours", "supply_hours", "gap_hours", "hiring_recommendation"]
    df = buckets_frame(buckets)
    if df.empty:
        return pd.DataFrame(columns=cols)
    return (
        df.groupby("period", sort=True)[cols[1:]]
        .sum()
        .reset_index()
    )


def comparison_frame(comparison: ScenarioComparison) -> pd.DataFrame:
    rows = []
    for label, metric in (
        ("total_cost", comparison.total_cost),
        ("resource_utilization", comparison.resource_utilization),
    ):
        rows.append(
            {
                "metric": label,
                comparison.scenario_a_id: metric.a,
                comparison.scenario_b_id: metric.b,
                "diff": metric.diff,
                "pct_change": metric.pct_change,
            }
        )
    return pd.DataFrame(rows)


def skill_gap_frame(comparison: ScenarioComparison) -> pd.DataFrame:
    cols = [
        "skill_category",
        "experience_level",
        "gap_a",
        "gap_b",
        "improvement",
        "presence",
    ]
    rows = [
        {c: getattr(p, c) for c in cols} for p in comparison.skill_gaps.comparison
    ]
    return pd.DataFrame(rows, columns=cols)
