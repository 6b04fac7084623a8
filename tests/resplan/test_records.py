from __future__ import annotations

from datetime import date

import pytest

from resplan.errors import InvalidAllocation, InvalidDateRange, InvalidRecord
from resplan.periods import DateRange, add_months, horizon_from, month_windows
from resplan.records import (
    Allocation,
    DemandRecord,
    PipelineDeal,
    ResourceDemand,
    Scenario,
    Task,
)


def make_alloc(**overrides) -> Allocation:
    fields = dict(
        id="a1",
        employee_id="e1",
        subject_id="p1",
        allocation_type="confirmed",
        percentage=50.0,
        start_date=date(2025, 1, 1),
        end_date=date(2025, 1, 31),
    )
    fields.update(overrides)
    return Allocation(**fields)


def test_date_range_is_inclusive():
    r = DateRange(date(2025, 1, 1), date(2025, 1, 1))
    assert r.days == 1
    assert r.contains(date(2025, 1, 1))
    assert r.overlap_days(DateRange(date(2025, 1, 1), date(2025, 1, 10))) == 1


def test_date_range_rejects_inverted_bounds():
    with pytest.raises(InvalidDateRange):
        DateRange(date(2025, 2, 1), date(2025, 1, 31))


def test_clip_returns_none_when_disjoint():
    a = DateRange(date(2025, 1, 1), date(2025, 1, 10))
    b = DateRange(date(2025, 1, 11), date(2025, 1, 20))
    assert a.clip(b) is None
    assert a.overlap_days(b) == 0


def test_horizon_and_month_windows():
    h = horizon_from(date(2025, 1, 1), 3)
    assert h == DateRange(date(2025, 1, 1), date(2025, 3, 31))
    assert add_months(date(2025, 1, 31), 1) == date(2025, 2, 28)
    windows = month_windows(date(2025, 1, 1), 2)
    assert [label for label, _ in windows] == ["2025-01", "2025-02"]
    assert windows[1][1] == DateRange(date(2025, 2, 1), date(2025, 2, 28))


@pytest.mark.parametrize("pct", [0.0, -5.0, 100.01])
def test_percentage_outside_range_is_rejected(pct):
    with pytest.raises(InvalidAllocation):
        make_alloc(percentage=pct).validate()


def test_full_percentage_is_accepted():
    make_alloc(percentage=100.0).validate()


def test_end_before_start_is_invalid_date_range():
    alloc = make_alloc(start_date=date(2025, 2, 1), end_date=date(2025, 1, 1))
    with pytest.raises(InvalidDateRange):
        alloc.validate()
    # InvalidDateRange is a kind of InvalidAllocation
    with pytest.raises(InvalidAllocation):
        alloc.validate()


def test_confidence_and_type_are_checked():
    with pytest.raises(InvalidAllocation):
        make_alloc(confidence_level=6).validate()
    with pytest.raises(InvalidAllocation):
        make_alloc(allocation_type="maybe").validate()


def test_open_ended_span_needs_horizon():
    alloc = make_alloc(end_date=None)
    with pytest.raises(InvalidDateRange):
        alloc.span()
    h = DateRange(date(2025, 1, 1), date(2025, 6, 30))
    assert alloc.span(h) == DateRange(date(2025, 1, 1), date(2025, 6, 30))


def test_allocation_from_dict_parses_iso_dates():
    alloc = Allocation.from_dict(
        {
            "id": "a9",
            "employee_id": "e1",
            "subject_id": "p1",
            "allocation_type": "probable",
            "percentage": 40,
            "start_date": "2025-03-01",
            "confidence_level": 4,
        }
    )
    assert alloc.start_date == date(2025, 3, 1)
    assert alloc.end_date is None
    assert alloc.is_open_ended


def test_from_dict_rejects_unknown_and_missing_fields():
    with pytest.raises(InvalidRecord, match="unknown"):
        Allocation.from_dict(
            {
                "id": "a",
                "employee_id": "e",
                "subject_id": "p",
                "allocation_type": "confirmed",
                "percentage": 10,
                "start_date": "2025-01-01",
                "colour": "red",
            }
        )
    with pytest.raises(InvalidRecord, match="missing"):
        Allocation.from_dict({"id": "a", "employee_id": "e"})
    with pytest.raises(InvalidRecord):
        Allocation.from_dict(
            {
                "id": "a",
                "employee_id": "e",
                "subject_id": "p",
                "allocation_type": "confirmed",
                "percentage": 10,
                "start_date": "not a date",
            }
        )


def test_demand_record_validates_weight_and_source():
    row = {
        "skill_category": "data",
        "experience_level": "mid",
        "date": "2025-01-01",
        "required_hours": 10,
        "probability_weight": 0.5,
    }
    assert DemandRecord.from_dict(row).source == "pipeline"
    with pytest.raises(InvalidRecord):
        DemandRecord.from_dict({**row, "probability_weight": 1.5})
    with pytest.raises(InvalidRecord):
        DemandRecord.from_dict({**row, "source": "rumour"})


def test_deal_and_task_from_dict():
    deal = PipelineDeal.from_dict(
        {
            "id": "d1",
            "name": "Deal",
            "stage": "proposal",
            "probability": 60,
            "demands": [
                {
                    "skill_category": "backend",
                    "experience_level": "mid",
                    "required_count": 2,
                    "allocation_percentage": 50,
                    "start_date": "2025-01-01",
                    "end_date": "2025-02-28",
                }
            ],
        }
    )
    assert isinstance(deal.demands[0], ResourceDemand)
    assert deal.demands[0].span.days == 59
    with pytest.raises(InvalidRecord):
        PipelineDeal.from_dict({"id": "d", "name": "x", "stage": "lead", "probability": 120})

    task = Task.from_dict({"id": "t2", "duration_days": 3, "dependencies": ["t1"]})
    assert task.dependencies == frozenset({"t1"})


def test_with_allocations_leaves_original_untouched():
    s = Scenario("live", date(2025, 1, 1), 3, (make_alloc(),))
    extra = make_alloc(id="a2", employee_id="e2")
    t = s.with_allocations([extra], scenario_id="candidate")
    assert len(s.allocations) == 1
    assert len(t.allocations) == 2
    assert t.id == "candidate"
    assert t.employee_ids == {"e1", "e2"}
