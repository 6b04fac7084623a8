from __future__ import annotations

from types import SimpleNamespace

import pytest

from resplan.conflicts import OverAllocationSummary
from resplan.main import run_planning
from resplan.precheck import PrecheckReport
from resplan.reporting.reporter import Reporter
from resplan.result_types import PlanningReport


def make_report(staffing=None) -> PlanningReport:
    return PlanningReport(
        precheck=PrecheckReport(supply_hours=10.0, demand_hours=5.0),
        live_conflicts=[],
        conflict_summary=OverAllocationSummary(0, 0, 0),
        forecast=[],
        staffing=staffing,
    )


@pytest.fixture
def no_pdf(monkeypatch):
    monkeypatch.setattr(
        "resplan.reporting.reporter.ReportDocument.write", lambda self: None
    )


def test_pre_check_passes_silently_when_ok(fast_cfg, monkeypatch):
    reporter = Reporter(fast_cfg)

    def fail(msg):
        raise AssertionError("should not prompt")

    monkeypatch.setattr(reporter, "_prompt_yes_no_default_yes", fail)
    reporter.pre_check(PrecheckReport(supply_hours=10.0, demand_hours=5.0))


def test_pre_check_stops_on_invalid_records(fast_cfg, monkeypatch):
    reporter = Reporter(fast_cfg)
    prompts = []
    monkeypatch.setattr(
        reporter, "_prompt_yes_no_default_yes", lambda msg: prompts.append(msg) or False
    )
    with pytest.raises(SystemExit):
        reporter.pre_check(
            PrecheckReport(supply_hours=10.0, demand_hours=5.0, errors=["bad"])
        )
    assert "1 invalid record(s)" in prompts[0]


def test_pre_check_stops_on_capacity_shortfall(fast_cfg, monkeypatch):
    reporter = Reporter(fast_cfg)
    monkeypatch.setattr(reporter, "_prompt_yes_no_default_yes", lambda msg: False)
    with pytest.raises(SystemExit):
        reporter.pre_check(PrecheckReport(supply_hours=1.0, demand_hours=5.0))


def test_non_interactive_prompt_defaults_to_yes(fast_cfg, monkeypatch, capsys):
    monkeypatch.setattr("sys.stdin", None)
    assert Reporter(fast_cfg)._prompt_yes_no_default_yes("Go?") is True
    assert "default: Y" in capsys.readouterr().out


def test_post_run_renders_and_plots(fast_cfg, monkeypatch, no_pdf):
    reporter = Reporter(fast_cfg, enable_plots=True)
    calls = []
    monkeypatch.setattr(
        "resplan.reporting.reporter.render_text_report",
        lambda *a, **k: calls.append("render"),
    )
    monkeypatch.setattr(
        "resplan.reporting.reporter.show_forecast_gaps",
        lambda *a, **k: calls.append("forecast"),
    )
    monkeypatch.setattr(
        "resplan.reporting.reporter.show_conflict_timeline",
        lambda *a, **k: calls.append("conflicts"),
    )
    monkeypatch.setattr(
        "resplan.reporting.reporter.show_solution_progress",
        lambda history: calls.append("progress"),
    )
    staffing = SimpleNamespace(solver_stats="", progress_history=[(0.0, 1.0, 0.0)])

    reporter.post_run(make_report(staffing))
    assert calls == ["render", "forecast", "conflicts", "progress"]


def test_post_run_skips_plots_when_disabled(fast_cfg, monkeypatch, no_pdf):
    reporter = Reporter(fast_cfg, enable_plots=False)
    calls = []
    monkeypatch.setattr(
        "resplan.reporting.reporter.render_text_report",
        lambda *a, **k: calls.append("render"),
    )
    monkeypatch.setattr(
        "resplan.reporting.reporter.show_forecast_gaps",
        lambda *a, **k: calls.append("forecast"),
    )
    reporter.post_run(make_report())
    assert calls == ["render"]


def test_post_run_writes_pdf(fast_cfg, tmp_path, planning_snapshot):
    report = run_planning(config=fast_cfg, data=planning_snapshot, enable_reporting=False)
    out = tmp_path / "report.pdf"
    Reporter(fast_cfg, enable_plots=False, report_path=out).post_run(report)
    assert out.exists()
    assert out.stat().st_size > 0
