from __future__ import annotations

from pathlib import Path

import matplotlib

matplotlib.use("Agg", force=True)
from resplan.conflicts import scenario_conflicts
from resplan.forecast import ForecastBucket
from resplan.reporting import plots
from resplan.reporting.text_report import ReportDocument, set_active_report


def fake_saver(saved: list[str]):
    def fake_save(fig, name):
        saved.append(name)

    return fake_save


def make_buckets() -> list[ForecastBucket]:
    return [
        ForecastBucket("2025-01", "backend", "mid", 120.0, 80.0, 40.0, 1.5, 1, 60.0),
        ForecastBucket("2025-02", "backend", "mid", 60.0, 80.0, -20.0, 0.75, 0, 40.0),
    ]


def test_forecast_gap_plot_saves(monkeypatch):
    saved: list[str] = []
    monkeypatch.setattr("resplan.reporting.plots._save_and_show", fake_saver(saved))
    plots.show_forecast_gaps(make_buckets())
    assert saved == ["forecast_gaps.png"]


def test_conflict_timeline_saves(monkeypatch, planning_snapshot):
    saved: list[str] = []
    monkeypatch.setattr("resplan.reporting.plots._save_and_show", fake_saver(saved))
    conflicts = scenario_conflicts(planning_snapshot.live, planning_snapshot.capacities)
    plots.show_conflict_timeline(conflicts)
    assert saved == ["conflict_timeline.png"]


def test_solution_progress_plot_saves(monkeypatch):
    saved: list[str] = []
    monkeypatch.setattr("resplan.reporting.plots._save_and_show", fake_saver(saved))
    plots.show_solution_progress([(0.0, 100.0, 90.0), (1.0, 80.0, 70.0)])
    assert saved == ["solution_progress.png"]


def test_nothing_to_draw_is_skipped(monkeypatch):
    saved: list[str] = []
    monkeypatch.setattr("resplan.reporting.plots._save_and_show", fake_saver(saved))
    plots.show_forecast_gaps([])
    plots.show_forecast_gaps(make_buckets(), enable_plot=False)
    plots.show_conflict_timeline([])
    plots.show_solution_progress([])
    assert saved == []


def test_figures_go_to_active_report(monkeypatch, tmp_path: Path):
    monkeypatch.setattr("resplan.reporting.plots._save_and_show", lambda fig, name: None)
    doc = ReportDocument(tmp_path / "report.pdf")
    set_active_report(doc)
    try:
        plots.show_forecast_gaps(make_buckets())
    finally:
        set_active_report(None)
    assert len(doc.figures) == 1


def test_expand_limits_pads_flat_series():
    lo, hi = plots._expand_limits([5.0, 5.0])
    assert lo < 5.0 < hi
    assert plots._expand_limits([0.0, 10.0], axis_padding=0.1) == (-1.0, 11.0)
