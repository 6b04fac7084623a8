from __future__ import annotations

import sys
from pathlib import Path
from typing import Any

from resplan.precheck import PrecheckReport
from resplan.result_types import PlanningReport
from resplan.reporting.plots import (
    show_conflict_timeline,
    show_forecast_gaps,
    show_solution_progress,
)
from resplan.reporting.text_report import (
    ReportDocument,
    render_text_report,
    set_active_report,
)


class Reporter:
    """High-level orchestrator: runs pre-check confirmations and renders reports."""

    def __init__(
        self,
        cfg: Any,
        num_print_examples: int = 6,
        enable_plots: bool = True,
        report_path: Path | str = Path("outputs/report.pdf"),
    ) -> None:
        self.cfg = cfg
        self.num_print_examples = num_print_examples
        self.enable_plots = enable_plots
        self.report_path = Path(report_path)

    def pre_check(self, precheck: PrecheckReport) -> None:
        """
        Ask whether to continue when the pre-check found invalid records or
        more weighted demand than raw supply.
        """
        if not precheck.ok:
            proceed = self._prompt_yes_no_default_yes(
                f"Pre-check found {len(precheck.errors)} invalid record(s). Continue anyway?"
            )
            if not proceed:
                raise SystemExit("Stopped by user after failed pre-check.")
        elif not precheck.ok_capacity:
            proceed = self._prompt_yes_no_default_yes(
                "Weighted pipeline demand exceeds supply. Continue anyway?"
            )
            if not proceed:
                raise SystemExit("Stopped by user after capacity pre-check.")

    def render_text_report(self, report: PlanningReport) -> None:
        """Public entry point for callers that want text reporting only."""
        render_text_report(
            self.cfg, report, num_print_examples=self.num_print_examples
        )

    def post_run(self, report: PlanningReport) -> None:
        """Render the text report (and optional plots) into a PDF."""
        if report.staffing is not None and report.staffing.solver_stats:
            print("\nSolver stats summary:\n" + report.staffing.solver_stats)

        report_doc = ReportDocument(self.report_path)
        set_active_report(report_doc)
        try:
            self.render_text_report(report)
            if not self.enable_plots:
                return
            show_forecast_gaps(report.forecast, enable_plot=self.enable_plots)
            show_conflict_timeline(report.live_conflicts, enable_plot=self.enable_plots)
            if report.staffing is not None:
                show_solution_progress(history=report.staffing.progress_history or [])
        finally:
            set_active_report(None)
            report_doc.write()

    # ---------- helpers ----------

    def _prompt_yes_no_default_yes(self, msg: str) -> bool:
        """Prompt '[Y/n]' and return True for yes (default)."""
        try:
            if not sys.stdin or not sys.stdin.isatty():
                print(f"{msg} [Y/n] (non-interactive -> default: Y)")
                return True

            while True:
                resp = input(f"{msg} [Y/n]: ").strip().lower()
                if resp in ("", "y", "yes"):
                    return True
                if resp in ("n", "no"):
                    return False
                print("Please type 'y' or 'n'.")
        except (EOFError, KeyboardInterrupt):
            print("\nAborted by user.")
            return False
