from __future__ import annotations

from pathlib import Path
from typing import Sequence

import matplotlib.dates as mdates
import matplotlib.pyplot as plt
import numpy as np

from resplan.conflicts import Conflict
from resplan.forecast import ForecastBucket

from .metrics import period_totals
from .text_report import get_active_report

SEVERITY_COLORS = {
    "low": "tab:olive",
    "medium": "tab:orange",
    "high": "tab:red",
    "critical": "darkred",
}


def _save_and_show(fig: plt.Figure, filename: str) -> None:
    """Persist the plot under outputs/ and show it."""
    out_dir = Path("outputs")
    out_dir.mkdir(parents=True, exist_ok=True)
    fig.savefig(out_dir / filename, dpi=fig.dpi, bbox_inches="tight")
    plt.show()


def _finish(fig: plt.Figure, filename: str) -> None:
    _save_and_show(fig, filename)
    report = get_active_report()
    if report is not None:
        report.add_figure(fig)


def _plain_axes(ax) -> None:
    ax.spines["top"].set_visible(False)
    ax.spines["right"].set_visible(False)
    for spine in ax.spines.values():
        spine.set_zorder(0)


def show_forecast_gaps(
    buckets: Sequence[ForecastBucket], enable_plot: bool = True
) -> None:
    """Monthly demand vs. supply bars with the unmet gap drawn on top."""
    if not enable_plot or not buckets:
        return
    totals = period_totals(buckets)
    periods = list(totals["period"])
    x = np.arange(len(periods))
    width = 0.4

    fig, ax = plt.subplots(figsize=(7.5, 4), dpi=150)
    ax.set_title("Forecast demand vs. supply per month", pad=35)
    ax.bar(x - width / 2, totals["demand_hours"], width, label="Demand", color="tab:blue", alpha=0.8)
    ax.bar(x + width / 2, totals["supply_hours"], width, label="Supply", color="tab:green", alpha=0.8)
    ax.plot(x, totals["gap_hours"], color="black", linewidth=1, marker="o", label="Gap")
    ax.axhline(0, color="grey", linewidth=0.5)
    ax.set_xticks(x)
    ax.set_xticklabels(periods, rotation=45, ha="right")
    ax.set_ylabel("Hours")
    _plain_axes(ax)
    ax.legend(ncol=3, loc="upper center", bbox_to_anchor=(0.5, 1.15), borderaxespad=0.3)
    fig.tight_layout(rect=(0, 0, 1, 0.92))
    _finish(fig, "forecast_gaps.png")


def show_conflict_timeline(
    conflicts: Sequence[Conflict], enable_plot: bool = True
) -> None:
    """One row per over-allocated employee, one bar per conflict run, coloured by severity."""
    if not enable_plot or not conflicts:
        return
    employees = sorted({c.employee_id for c in conflicts})
    row = {emp: i for i, emp in enumerate(employees)}

    fig, ax = plt.subplots(figsize=(7.5, max(2.5, 0.35 * len(employees) + 1)), dpi=150)
    ax.set_title("Over-allocation timeline", pad=35)
    seen: set[str] = set()
    for c in conflicts:
        start = mdates.date2num(c.period_start)
        label = c.severity if c.severity not in seen else None
        seen.add(c.severity)
        ax.barh(
            row[c.employee_id],
            c.days,
            left=start,
            height=0.6,
            color=SEVERITY_COLORS.get(c.severity, "tab:grey"),
            label=label,
        )
    ax.set_yticks(range(len(employees)))
    ax.set_yticklabels(employees)
    ax.invert_yaxis()
    ax.xaxis_date()
    ax.xaxis.set_major_formatter(mdates.DateFormatter("%Y-%m-%d"))
    fig.autofmt_xdate()
    _plain_axes(ax)
    ax.legend(
        ncol=max(1, len(seen)),
        loc="upper center",
        bbox_to_anchor=(0.5, 1.15),
        borderaxespad=0.3,
    )
    fig.tight_layout(rect=(0, 0, 1, 0.92))
    _finish(fig, "conflict_timeline.png")


def show_solution_progress(history: Sequence[tuple[float, float, float]]) -> None:
    """
    Plot the best objective/bound of the staffing solve versus solution index
    and overlay elapsed time.

    history entries are (wall_time_sec, best_obj, bound).
    """
    if not history:
        return
    solution_idx = list(range(1, len(history) + 1))
    times = [pt[0] for pt in history]
    best_vals = [pt[1] for pt in history]
    bound_vals = [pt[2] for pt in history]
    objective_color, time_color = "tab:blue", "tab:green"

    fig, ax = plt.subplots(figsize=(7.5, 4), dpi=150)
    ax.set_title("Weighted unfilled hours per solution", pad=35)
    ax.plot(solution_idx, best_vals, label="Objective", color=objective_color, linewidth=1.5)
    ax.plot(
        solution_idx,
        bound_vals,
        label="Bound",
        color="tab:red",
        linestyle="--",
        linewidth=1.25,
    )
    ax.set_xlabel("Solution # (in discovery order)")
    ax.set_ylabel(f"Objective. Min={min(best_vals):,.0f}", color=objective_color)
    ax.tick_params(axis="y", colors=objective_color)
    ax.set_xlim(*_expand_limits(solution_idx, axis_padding=0.01))
    ax.set_ylim(*_expand_limits(best_vals + bound_vals))
    _plain_axes(ax)

    ax_time = ax.twinx()
    ax_time.plot(solution_idx, times, label="Elapsed time", color=time_color, linewidth=1.5, alpha=0.7)
    ax_time.set_ylabel(f"Elapsed time (seconds). Max={max(times):.1f}s", color=time_color)
    ax_time.tick_params(axis="y", colors=time_color)
    ax_time.set_ylim(*_expand_limits(times))
    ax_time.spines["top"].set_visible(False)
    ax_time.spines["left"].set_visible(False)
    ax.xaxis.set_major_locator(plt.MaxNLocator(integer=True))

    lines, labels = ax.get_legend_handles_labels()
    lines2, labels2 = ax_time.get_legend_handles_labels()
    ax.legend(
        lines + lines2,
        labels + labels2,
        loc="upper center",
        bbox_to_anchor=(0.5, 1.15),
        ncol=3,
        borderaxespad=0.3,
    )
    ax.grid(alpha=0.3)
    fig.tight_layout(rect=(0, 0, 1, 0.92))
    _finish(fig, "solution_progress.png")


def _expand_limits(
    values: Sequence[float], axis_padding: float = 0.05
) -> tuple[float, float]:
    lo = min(values)
    hi = max(values)
    if lo == hi:
        delta = max(abs(lo), 1.0) * max(axis_padding, 0.05)
        return lo - delta, hi + delta
    pad = (hi - lo) * axis_padding
    return lo - pad, hi + pad
