from __future__ import annotations

import json
from datetime import date
from pathlib import Path

import numpy as np
import pytest

from resplan.config import Config
from resplan.critical_path import task_graph
from resplan.errors import PlanningError
from resplan.generate.workforce import (
    WorkforceGenConfig,
    _deterministic_counts,
    build_planning_input,
    capacities_to_dataframe,
    create_capacities,
    create_tasks,
    planning_input_from_json,
    reduced_load_scenario,
)
from resplan.records import LIVE_SCENARIO_ID


def test_deterministic_counts_sum_to_total():
    probs = np.array([0.35, 0.45, 0.2])
    counts = _deterministic_counts(7, probs)
    assert counts.sum() == 7
    assert np.all(np.abs(counts - probs * 7) <= 1.0)


@pytest.mark.parametrize(
    "kwargs, match",
    [
        ({"n_employees": 0}, "n_employees"),
        ({"level_probs": (0.5, 0.5, 0.5)}, "level_probs must sum to 1.0"),
        ({"level_probs": (1.0,)}, "same length"),
        ({"part_time_pct": 1.5}, "part_time_pct"),
        ({"allocation_pcts": (0.0, 50.0)}, "allocation_pcts"),
        ({"max_task_days": 0}, "n_tasks"),
    ],
)
def test_gen_config_validation(kwargs, match):
    with pytest.raises(ValueError, match=match):
        WorkforceGenConfig(**kwargs).validate()


def test_capacities_follow_level_split_and_are_seeded():
    gen = WorkforceGenConfig(n_employees=20, part_time_pct=0.0, seed=11)
    a = create_capacities(gen)
    b = create_capacities(gen)
    assert a == b
    assert [c.employee_id for c in a][:2] == ["E000", "E001"]
    assert all(c.weekly_hours == 40.0 for c in a)
    levels = [next(iter(c.skills))[1] for c in a]
    assert levels.count("junior") == 7
    assert levels.count("mid") == 9
    assert levels.count("senior") == 4


def test_build_planning_input_is_consistent():
    cfg = Config(BASE_DATE=date(2025, 3, 1), FORECAST_MONTHS=4, SEED=5)
    data = build_planning_input(cfg, WorkforceGenConfig(n_employees=12, seed=5))

    assert data.live.id == LIVE_SCENARIO_ID
    assert data.live.base_date == date(2025, 3, 1)
    known = {c.employee_id for c in data.capacities}
    assert data.live.employee_ids <= known
    for a in data.live.allocations:
        a.validate()
    assert [s.id for s in data.scenarios] == ["reduced-load"]
    assert all(a.percentage <= 50.0 for a in data.scenarios[0].allocations)
    assert len(data.deals) == 8
    task_graph(data.tasks)


def test_same_seed_same_snapshot():
    cfg = Config(SEED=9)
    assert build_planning_input(cfg) == build_planning_input(cfg)


def test_reduced_load_leaves_live_untouched():
    data = build_planning_input(Config(SEED=2))
    before = data.live
    reduced = reduced_load_scenario(data.live, cap_pct=25.0)
    assert data.live is before
    assert len(reduced.allocations) == len(before.allocations)
    assert all(a.id.endswith("-r") for a in reduced.allocations)


def test_tasks_only_depend_on_earlier_tasks():
    tasks = create_tasks(WorkforceGenConfig(n_tasks=12, seed=3))
    ids = [t.id for t in tasks]
    for i, t in enumerate(tasks):
        assert t.dependencies <= set(ids[:i])


def test_capacities_to_dataframe():
    caps = create_capacities(WorkforceGenConfig(n_employees=3, seed=1))
    df = capacities_to_dataframe(caps)
    assert list(df.columns) == ["employee_id", "name", "weekly_hours", "active", "skills"]
    assert len(df) == 3


def test_example_json_loads(project_root: Path):
    data = planning_input_from_json(project_root / "src" / "example_planning.json")
    assert len(data.capacities) == 7
    assert any(not c.active for c in data.capacities)
    assert data.stage_rates == {"negotiation": 0.85}
    assert [s.id for s in data.scenarios] == ["rebalance"]


def test_json_loader_errors(tmp_path: Path):
    with pytest.raises(ValueError, match=".json"):
        planning_input_from_json(tmp_path / "data.yaml")
    with pytest.raises(FileNotFoundError):
        planning_input_from_json(tmp_path / "missing.json")

    bad = tmp_path / "bad.json"
    bad.write_text("{not json")
    with pytest.raises(ValueError, match="Invalid JSON"):
        planning_input_from_json(bad)

    listing = tmp_path / "list.json"
    listing.write_text(json.dumps([1, 2]))
    with pytest.raises(TypeError):
        planning_input_from_json(listing)

    unknown = tmp_path / "unknown.json"
    unknown.write_text(json.dumps({"capacities": [], "live": {}, "extra": 1}))
    with pytest.raises(PlanningError):
        planning_input_from_json(unknown)
