from __future__ import annotations

import copy
from datetime import date
from pathlib import Path

import pandas as pd
import pytest

from resplan.main import CANDIDATE_SCENARIO_ID, run_planning
from resplan.records import Allocation, Task


class RecordingReporter:
    def __init__(self):
        self.calls: list[str] = []

    def pre_check(self, precheck):
        self.calls.append("pre_check")

    def post_run(self, report):
        self.calls.append("post_run")


def test_analysis_only_run(fast_cfg, planning_snapshot):
    report = run_planning(config=fast_cfg, data=planning_snapshot, enable_reporting=False)

    assert report.precheck.ok
    assert report.failures == {}
    assert [(c.employee_id, c.severity) for c in report.live_conflicts] == [("e1", "low")]
    assert report.conflict_summary.over_allocated_count == 1
    assert {b.period for b in report.forecast} == {"2025-01", "2025-02", "2025-03"}
    assert set(report.comparisons) == {"rebalance"}
    assert report.critical_path.critical_task_ids == ["design", "build"]
    assert report.staffing is None


def test_candidates_are_derived_and_compared(fast_cfg, planning_snapshot):
    report = run_planning(
        config=fast_cfg,
        data=planning_snapshot,
        enable_reporting=False,
        derive_candidates=True,
    )
    staffing = report.staffing
    assert staffing is not None and staffing.solved
    assert [a.employee_id for a in staffing.proposed] == ["e2"]
    assert staffing.unfilled_seats == 0
    comp = report.comparisons[CANDIDATE_SCENARIO_ID]
    assert comp.scenario_b_id == CANDIDATE_SCENARIO_ID
    assert comp.total_cost.diff > 0


def test_inputs_are_not_mutated(fast_cfg, planning_snapshot):
    before = copy.deepcopy(planning_snapshot)
    run_planning(
        config=fast_cfg,
        data=planning_snapshot,
        enable_reporting=False,
        derive_candidates=True,
    )
    assert planning_snapshot == before


def test_failures_are_recorded_not_raised(fast_cfg, planning_snapshot):
    bad = Allocation("x1", "e3", "p9", "confirmed", 150.0, date(2025, 1, 1), date(2025, 1, 31))
    planning_snapshot.live = planning_snapshot.live.with_allocations([bad])
    planning_snapshot.tasks = [Task("a", 1.0, frozenset({"b"})), Task("b", 1.0, frozenset({"a"}))]

    report = run_planning(config=fast_cfg, data=planning_snapshot, enable_reporting=False)

    assert not report.precheck.ok
    assert "conflicts:e3" in report.failures
    assert report.failures["critical_path"].startswith("CyclicDependency")
    assert report.critical_path is None
    # the other employees are still analysed
    assert [c.employee_id for c in report.live_conflicts] == ["e1"]


def test_reporter_hooks_run_in_order(fast_cfg, planning_snapshot):
    reporter = RecordingReporter()
    run_planning(config=fast_cfg, data=planning_snapshot, reporter=reporter)
    assert reporter.calls == ["pre_check", "post_run"]


def test_reporting_disabled_skips_reporter(fast_cfg, planning_snapshot):
    reporter = RecordingReporter()
    run_planning(
        config=fast_cfg, data=planning_snapshot, reporter=reporter, enable_reporting=False
    )
    assert reporter.calls == []


def test_input_builder_is_used(fast_cfg, planning_snapshot):
    seen = []

    def builder(config):
        seen.append(config)
        return planning_snapshot

    run_planning(config=fast_cfg, input_builder=builder, enable_reporting=False)
    assert seen == [fast_cfg]


def test_invalid_config_is_rejected(fast_cfg, planning_snapshot):
    fast_cfg.FORECAST_MONTHS = 0
    with pytest.raises(ValueError):
        run_planning(config=fast_cfg, data=planning_snapshot, enable_reporting=False)


def test_export_writes_csv_tables(fast_cfg, planning_snapshot, tmp_path: Path):
    run_planning(
        config=fast_cfg,
        data=planning_snapshot,
        enable_reporting=False,
        derive_candidates=True,
        export_dir=tmp_path,
    )
    names = sorted(p.name for p in tmp_path.iterdir())
    assert names == ["assignments.csv", "conflicts.csv", "forecast.csv", "unfilled.csv"]
    conflicts = pd.read_csv(tmp_path / "conflicts.csv")
    assert list(conflicts["employee_id"]) == ["e1"]
    assert list(pd.read_csv(tmp_path / "assignments.csv")["employee_id"]) == ["e2"]


def test_candidate_comparison_failure_is_recorded(fast_cfg, planning_snapshot):
    ghost = Allocation("g1", "ghost", "p9", "confirmed", 50.0, date(2025, 1, 1), date(2025, 1, 31))
    planning_snapshot.live = planning_snapshot.live.with_allocations([ghost])

    report = run_planning(
        config=fast_cfg,
        data=planning_snapshot,
        enable_reporting=False,
        derive_candidates=True,
    )

    assert report.staffing is not None and report.staffing.proposed
    assert CANDIDATE_SCENARIO_ID not in report.comparisons
    assert report.failures[f"compare:{CANDIDATE_SCENARIO_ID}"].startswith("InvalidCapacity")
    assert report.failures["compare:rebalance"].startswith("InvalidCapacity")
