from __future__ import annotations

from io import StringIO
from pathlib import Path
from typing import Any, Optional

import matplotlib.pyplot as plt
import pandas as pd
from matplotlib.backends.backend_pdf import PdfPages

from resplan.critical_path import schedule_frame
from resplan.forecast import buckets_frame, unmet_hours_by_skill
from resplan.result_types import PlanningReport, StaffingResult

from .metrics import comparison_frame, conflicts_frame, period_totals, skill_gap_frame


class ReportDocument:
    def __init__(self, path: Path) -> None:
        self.path = path
        self.lines: list[str] = []
        self.figures: list[plt.Figure] = []

    def add_text(self, text: str) -> None:
        self.lines.append(text)

    def add_figure(self, fig: plt.Figure) -> None:
        self.figures.append(fig)

    def _text_page(self, pdf: PdfPages, text: str, **kwargs) -> None:
        fig, ax = plt.subplots(figsize=(8.27, 11.69))
        ax.axis("off")
        ax.text(**kwargs, s=text)
        pdf.savefig(fig, bbox_inches="tight")
        plt.close(fig)

    def write(self) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        with PdfPages(self.path) as pdf:
            if self.lines:
                self._text_page(
                    pdf,
                    "\n".join(self.lines),
                    x=0.01,
                    y=0.99,
                    ha="left",
                    va="top",
                    fontsize=8,
                    family="monospace",
                )
            elif not self.figures:
                self._text_page(
                    pdf,
                    "Report contains no data.",
                    x=0.5,
                    y=0.5,
                    ha="center",
                    va="center",
                    fontsize=12,
                )
            for fig in self.figures:
                pdf.savefig(fig, bbox_inches="tight")
                plt.close(fig)


_ACTIVE_REPORT: Optional[ReportDocument] = None


def set_active_report(doc: Optional[ReportDocument]) -> None:
    global _ACTIVE_REPORT
    _ACTIVE_REPORT = doc


def get_active_report() -> Optional[ReportDocument]:
    return _ACTIVE_REPORT


def _log_print(*args, **kwargs) -> None:
    """print() that also appends the line to the active report, if any."""
    buf = StringIO()
    kwargs_copy = kwargs.copy()
    kwargs_copy["file"] = buf
    print(*args, **kwargs_copy)
    print(*args, **kwargs)
    if _ACTIVE_REPORT is not None:
        _ACTIVE_REPORT.add_text(buf.getvalue().rstrip("\n"))


def _fmt_float(x: float | None, nd: int = 2, as_pct: bool = False) -> str:
    if x is None:
        return "nan"
    try:
        if pd.isna(x):
            return "nan"
        return f"{float(100 * x):.{nd}f}%" if as_pct else f"{float(x):.{nd}f}"
    except (TypeError, ValueError):
        return "nan"


def _print_conflicts(report: PlanningReport, num_print_examples: int) -> None:
    summary = report.conflict_summary
    _log_print(
        f"\nOver-allocation: {summary.over_allocated_count} of "
        f"{summary.total_employees} employees "
        f"({_fmt_float(summary.over_allocated_share, nd=1, as_pct=True)}) | "
        f"critical={summary.critical_count}"
    )
    if summary.by_severity:
        sev = ", ".join(f"{k}={v}" for k, v in summary.by_severity.items())
        _log_print(f"Conflicts by severity: {sev}")
    if not report.live_conflicts:
        _log_print("No employee is allocated above capacity in the live plan.")
        return
    df = conflicts_frame(report.live_conflicts).drop(columns=["scenario_id"])
    df = df.sort_values(
        ["total_allocation_percentage", "employee_id"], ascending=[False, True]
    )
    _log_print(f"\nWorst conflicts (top {num_print_examples}):")
    _log_print(df.head(num_print_examples).to_string(index=False))


def _print_forecast(report: PlanningReport, num_print_examples: int) -> None:
    if not report.forecast:
        _log_print("\nForecast: no demand above the confidence threshold.")
        return
    totals = period_totals(report.forecast)
    _log_print("\nForecast totals per month:")
    _log_print(totals.to_string(index=False, float_format=lambda v: f"{v:,.1f}"))

    df = buckets_frame(report.forecast)
    short = df[df["gap_hours"] > 0].sort_values(
        ["gap_hours", "period"], ascending=[False, True]
    )
    if short.empty:
        _log_print("\nEvery (month, skill) bucket is covered by current supply.")
    else:
        _log_print(f"\nLargest gaps (top {num_print_examples}):")
        cols = [
            "period",
            "skill_category",
            "experience_level",
            "demand_hours",
            "supply_hours",
            "gap_hours",
            "hiring_recommendation",
            "confidence",
        ]
        _log_print(
            short[cols]
            .head(num_print_examples)
            .to_string(index=False, float_format=lambda v: f"{v:,.1f}")
        )

    unmet = unmet_hours_by_skill(report.forecast)
    if unmet:
        worst = max(unmet.items(), key=lambda kv: (kv[1], kv[0]))
        (skill, level), hours = worst
        _log_print(f"Most short skill: {skill}/{level} with {hours:,.0f}h unmet")


def _print_comparisons(report: PlanningReport) -> None:
    for scenario_id, comp in report.comparisons.items():
        _log_print(f"\nScenario {comp.scenario_a_id} vs {scenario_id}:")
        _log_print(
            comparison_frame(comp).to_string(
                index=False, float_format=lambda v: f"{v:,.2f}"
            )
        )
        gaps = skill_gap_frame(comp)
        gaps = gaps[(gaps["gap_a"] > 0) | (gaps["gap_b"] > 0)]
        if not gaps.empty:
            _log_print("Skill gaps (unmet hours):")
            _log_print(
                gaps.to_string(index=False, float_format=lambda v: f"{v:,.1f}")
            )
        _log_print(
            f"Conflicts in {scenario_id} on shared employees: "
            f"{len(comp.timeline_conflicts)}"
        )


def _print_critical_path(report: PlanningReport, project_start: Any) -> None:
    cpa = report.critical_path
    if cpa is None:
        return
    _log_print(
        f"\nCritical path: duration={_fmt_float(cpa.project_duration, nd=1)} days | "
        f"critical tasks={len(cpa.critical_task_ids)} of {len(cpa.order)}"
    )
    for path in cpa.critical_paths:
        _log_print("  " + " -> ".join(path))
    _log_print(schedule_frame(cpa, project_start).to_string(index=False))


def _print_staffing(staffing: StaffingResult, num_print_examples: int) -> None:
    _log_print(f"\nCandidate staffing: solver status {staffing.status_name}")
    for desc in staffing.descriptors:
        for key, value in desc.items():
            if isinstance(value, list) and value:
                label = key.replace("_", " ")
                _log_print(f"- {desc['rule']}: {label}: {', '.join(map(str, value))}")
    if not staffing.solved:
        _log_print("No staffing found within the time limit; all lines left open.")
    else:
        _log_print(
            f"Proposed allocations: {len(staffing.proposed)} | "
            f"weighted unfilled objective={staffing.objective_value:,.0f}"
        )
        if not staffing.df_assignments.empty:
            _log_print(
                staffing.df_assignments.head(num_print_examples).to_string(index=False)
            )
    if staffing.unfilled_seats:
        _log_print(f"\nUnfilled seats: {staffing.unfilled_seats}")
        _log_print(
            staffing.df_unfilled.head(num_print_examples).to_string(
                index=False, float_format=lambda v: f"{v:,.1f}"
            )
        )


def render_text_report(
    cfg: Any,
    report: PlanningReport,
    *,
    num_print_examples: int = 6,
) -> None:
    _log_print(f"Planning run as of {cfg.BASE_DATE.isoformat()}")
    if report.failures:
        _log_print("\n⚠️ Some computations did not finish:")
        for key, reason in sorted(report.failures.items()):
            _log_print(f"  - {key}: {reason}")

    _print_conflicts(report, num_print_examples)
    _print_forecast(report, num_print_examples)
    _print_comparisons(report)
    _print_critical_path(report, cfg.BASE_DATE)
    if report.staffing is not None:
        _print_staffing(report.staffing, num_print_examples)
