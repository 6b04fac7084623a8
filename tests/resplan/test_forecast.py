from __future__ import annotations

import math
from datetime import date

import pytest

from resplan.capacity import EmployeeCapacity
from resplan.config import Config
from resplan.errors import InvalidForecastWindow
from resplan.forecast import (
    ForecastParams,
    buckets_frame,
    forecast,
    hiring_recommendation,
    monthly_supply_hours,
    unmet_hours_by_skill,
)
from resplan.records import DemandRecord


def rec(skill, level, day, hours, weight, source="pipeline") -> DemandRecord:
    return DemandRecord(skill, level, day, hours, weight, source)


CAPS = [
    EmployeeCapacity("e1", 40.0, frozenset({("backend", "mid")})),
    EmployeeCapacity("e2", 20.0, frozenset({("backend", "mid")})),
    EmployeeCapacity("e3", 40.0, frozenset({("data", "senior")}), active=False),
]
PARAMS = ForecastParams(forecast_months=3, confidence_threshold=0.5, base_date=date(2025, 1, 1))


def test_supply_is_headcount_times_average_weekly_times_weeks():
    assert monthly_supply_hours(CAPS, "backend", "mid") == pytest.approx(2 * 30.0 * 4.33)
    assert monthly_supply_hours(CAPS, "data", "senior") == 0.0


def test_forecast_groups_weights_and_filters():
    records = [
        rec("backend", "mid", date(2025, 1, 3), 100.0, 0.8),
        rec("backend", "mid", date(2025, 1, 20), 100.0, 0.5, "scenario"),
        rec("backend", "mid", date(2025, 1, 20), 500.0, 0.4),  # below threshold
        rec("data", "senior", date(2025, 2, 1), 200.0, 1.0),
        rec("data", "senior", date(2025, 7, 1), 200.0, 1.0),  # outside window
    ]
    buckets = forecast(records, CAPS, PARAMS)
    assert [(b.period, b.skill_category) for b in buckets] == [
        ("2025-01", "backend"),
        ("2025-02", "data"),
    ]
    jan, feb = buckets
    assert jan.demand_hours == pytest.approx(130.0)
    assert jan.supply_hours == pytest.approx(259.8)
    assert jan.gap_hours == pytest.approx(130.0 - 259.8)
    assert jan.utilization_rate == pytest.approx(130.0 / 259.8)
    assert jan.hiring_recommendation == 0
    # 50 scenario hours of 130
    assert jan.confidence == pytest.approx(40 + 60 * 50.0 / 130.0)
    assert feb.supply_hours == 0.0
    assert feb.utilization_rate == 0.0
    assert feb.hiring_recommendation == math.ceil(200.0 / 173.2)
    assert feb.confidence == pytest.approx(40.0)


def test_gap_conservation_per_period():
    records = [
        rec("backend", "mid", date(2025, 1, 1), 300.0, 1.0),
        rec("data", "senior", date(2025, 1, 1), 80.0, 0.9),
        rec("frontend", "junior", date(2025, 1, 9), 40.0, 0.6),
    ]
    buckets = forecast(records, CAPS, PARAMS)
    jan = [b for b in buckets if b.period == "2025-01"]
    assert sum(b.gap_hours for b in jan) == pytest.approx(
        sum(b.demand_hours for b in jan) - sum(b.supply_hours for b in jan)
    )


def test_empty_and_zero_demand_are_sparse():
    assert forecast([], CAPS, PARAMS) == []
    assert forecast([rec("backend", "mid", date(2025, 1, 1), 0.0, 1.0)], CAPS, PARAMS) == []


def test_base_date_defaults_to_earliest_record():
    params = ForecastParams(forecast_months=1, confidence_threshold=0.0)
    buckets = forecast([rec("backend", "mid", date(2025, 3, 15), 10.0, 1.0)], CAPS, params)
    assert [b.period for b in buckets] == ["2025-03"]


@pytest.mark.parametrize("months", [0, -1])
def test_non_positive_window_is_rejected(months):
    with pytest.raises(InvalidForecastWindow):
        forecast([], CAPS, ForecastParams(forecast_months=months, confidence_threshold=0.5))


def test_hiring_recommendation_exact_multiple_does_not_round_up():
    cfg = Config()
    assert hiring_recommendation(cfg.fte_month_hours * 3, config=cfg) == 3
    assert hiring_recommendation(cfg.fte_month_hours * 3 + 0.01, config=cfg) == 4
    assert hiring_recommendation(-5.0, config=cfg) == 0


def test_frame_and_unmet_hours():
    records = [
        rec("data", "senior", date(2025, 1, 1), 100.0, 1.0),
        rec("data", "senior", date(2025, 2, 1), 50.0, 1.0),
    ]
    buckets = forecast(records, CAPS, PARAMS)
    df = buckets_frame(buckets)
    assert list(df["period"]) == ["2025-01", "2025-02"]
    assert unmet_hours_by_skill(buckets) == {("data", "senior"): pytest.approx(150.0)}
    assert buckets_frame([]).empty
