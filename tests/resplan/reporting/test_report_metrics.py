from __future__ import annotations

from datetime import date

import pytest

from resplan.comparison import compare_scenarios
from resplan.conflicts import scenario_conflicts
from resplan.forecast import ForecastBucket
from resplan.reporting import metrics


def bucket(period, skill, demand, supply) -> ForecastBucket:
    gap = demand - supply
    return ForecastBucket(
        period=period,
        skill_category=skill,
        experience_level="mid",
        demand_hours=demand,
        supply_hours=supply,
        gap_hours=gap,
        utilization_rate=demand / supply if supply else 0.0,
        hiring_recommendation=1 if gap > 0 else 0,
        confidence=70.0,
    )


def test_conflicts_frame_joins_ids(planning_snapshot):
    conflicts = scenario_conflicts(planning_snapshot.live, planning_snapshot.capacities)
    df = metrics.conflicts_frame(conflicts)
    assert list(df.columns) == metrics.CONFLICT_COLUMNS
    row = df.iloc[0]
    assert row["employee_id"] == "e1"
    assert row["contributing_allocation_ids"] == "a1, a2"
    assert row["days"] == 31
    assert row["scenario_id"] == "live"


def test_conflicts_frame_empty_keeps_columns():
    df = metrics.conflicts_frame([])
    assert df.empty
    assert list(df.columns) == metrics.CONFLICT_COLUMNS


def test_employee_utilization_busiest_first(planning_snapshot):
    df = metrics.employee_utilization(
        planning_snapshot.live, planning_snapshot.capacities
    )
    assert list(df["employee_id"]) == ["e3", "e1", "e2"]
    util = dict(zip(df["employee_id"], df["utilization"]))
    assert util["e3"] == pytest.approx(1.0)
    assert util["e1"] == pytest.approx((0.6 * 90 + 0.5 * 31) / 90)
    assert util["e2"] == pytest.approx(0.5)


def test_period_totals_sum_across_skills():
    buckets = [
        bucket("2025-01", "backend", 100.0, 80.0),
        bucket("2025-01", "data", 50.0, 60.0),
        bucket("2025-02", "backend", 10.0, 80.0),
    ]
    df = metrics.period_totals(buckets)
    assert list(df["period"]) == ["2025-01", "2025-02"]
    jan = df.iloc[0]
    assert jan["demand_hours"] == 150.0
    assert jan["supply_hours"] == 140.0
    assert jan["gap_hours"] == 10.0
    assert jan["hiring_recommendation"] == 1


def test_period_totals_empty():
    assert metrics.period_totals([]).empty


def test_comparison_frames(planning_snapshot, fast_cfg):
    live, alt = planning_snapshot.live, planning_snapshot.scenarios[0]
    comp = compare_scenarios(live, alt, planning_snapshot.capacities, config=fast_cfg)

    df = metrics.comparison_frame(comp)
    assert list(df["metric"]) == ["total_cost", "resource_utilization"]
    assert {"live", "rebalance", "diff", "pct_change"} <= set(df.columns)
    # moving a2 from e1 to e2 keeps the same hours on equal weekly capacity
    assert df.loc[df["metric"] == "resource_utilization", "diff"].iloc[0] == pytest.approx(0.0)

    gaps = metrics.skill_gap_frame(comp)
    assert list(gaps.columns) == [
        "skill_category",
        "experience_level",
        "gap_a",
        "gap_b",
        "improvement",
        "presence",
    ]


def test_conflict_frame_dates_stay_dates(planning_snapshot):
    conflicts = scenario_conflicts(planning_snapshot.live, planning_snapshot.capacities)
    df = metrics.conflicts_frame(conflicts)
    assert df.iloc[0]["period_start"] == date(2025, 1, 1)
    assert df.iloc[0]["period_end"] == date(2025, 1, 31)
