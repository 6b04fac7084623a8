# resplan/extract.py
from __future__ import annotations

from ortools.sat.python import cp_model
import pandas as pd

from resplan.build import BuildContext
from resplan.demand import proposed_allocation_type, proposed_confidence
from resplan.records import Allocation

ASSIGNMENT_COLUMNS = [
    "deal_id",
    "line_index",
    "employee_id",
    "name",
    "skill_category",
    "experience_level",
    "percentage",
    "start_date",
    "end_date",
    "probability",
]

UNFILLED_COLUMNS = [
    "deal_id",
    "deal_name",
    "line_index",
    "skill_category",
    "experience_level",
    "required",
    "filled",
    "unfilled",
    "unfilled_hours",
    "weighted_unfilled_hours",
]


def _chosen(ctx: BuildContext, solver: cp_model.CpSolver) -> list[tuple[int, int]]:
    return sorted(key for key, var in ctx.x.items() if solver.Value(var) == 1)


def extract_assignments(ctx: BuildContext, solver: cp_model.CpSolver) -> pd.DataFrame:
    """One row per (employee, demand line) the solver staffed."""
    D = ctx.data
    lines = {ln.index: ln for ln in D.lines}
    rows: list[dict] = []
    for e, li in _chosen(ctx, solver):
        ln = lines[li]
        cap = D.capacities[e]
        rows.append(
            {
                "deal_id": ln.deal_id,
                "line_index": ln.line_index,
                "employee_id": cap.employee_id,
                "name": cap.name,
                "skill_category": ln.skill_category,
                "experience_level": ln.experience_level,
                "percentage": ln.percentage,
                "start_date": ln.span.start.isoformat(),
                "end_date": ln.span.end.isoformat(),
                "probability": ln.probability,
            }
        )
    if not rows:
        return pd.DataFrame(columns=ASSIGNMENT_COLUMNS)
    return (
        pd.DataFrame(rows, columns=ASSIGNMENT_COLUMNS)
        .sort_values(["deal_id", "line_index", "employee_id"])
        .reset_index(drop=True)
    )


def extract_unfilled(ctx: BuildContext, solver: cp_model.CpSolver) -> pd.DataFrame:
    """Per-line shortfall; lines that are fully staffed are left out."""
    filled: dict[int, int] = {}
    for _, li in _chosen(ctx, solver):
        filled[li] = filled.get(li, 0) + 1
    rows: list[dict] = []
    for ln in ctx.data.lines:
        short = max(0, ln.required_count - filled.get(ln.index, 0))
        if short <= 0:
            continue
        hours = short * ln.hours_per_person
        rows.append(
            {
                "deal_id": ln.deal_id,
                "deal_name": ln.deal_name,
                "line_index": ln.line_index,
                "skill_category": ln.skill_category,
                "experience_level": ln.experience_level,
                "required": ln.required_count,
                "filled": filled.get(ln.index, 0),
                "unfilled": short,
                "unfilled_hours": hours,
                "weighted_unfilled_hours": hours * ln.probability,
            }
        )
    if not rows:
        return pd.DataFrame(columns=UNFILLED_COLUMNS)
    return pd.DataFrame(rows, columns=UNFILLED_COLUMNS)


def unstaffed_lines(ctx: BuildContext) -> pd.DataFrame:
    """Every line reported as fully unfilled; used when the solver found nothing."""
    rows = [
        {
            "deal_id": ln.deal_id,
            "deal_name": ln.deal_name,
            "line_index": ln.line_index,
            "skill_category": ln.skill_category,
            "experience_level": ln.experience_level,
            "required": ln.required_count,
            "filled": 0,
            "unfilled": ln.required_count,
            "unfilled_hours": ln.required_count * ln.hours_per_person,
            "weighted_unfilled_hours": ln.required_count
            * ln.hours_per_person
            * ln.probability,
        }
        for ln in ctx.data.lines
    ]
    return pd.DataFrame(rows, columns=UNFILLED_COLUMNS)


def extract_proposals(
    ctx: BuildContext, solver: cp_model.CpSolver, scenario_id: str
) -> list[Allocation]:
    """Turn staffed (employee, line) pairs into allocations tagged for ``scenario_id``."""
    D, C = ctx.data, ctx.cfg
    lines = {ln.index: ln for ln in D.lines}
    out: list[Allocation] = []
    for e, li in _chosen(ctx, solver):
        ln = lines[li]
        cap = D.capacities[e]
        out.append(
            Allocation(
                id=f"{scenario_id}:{ln.deal_id}:{ln.line_index}:{cap.employee_id}",
                employee_id=cap.employee_id,
                subject_id=ln.deal_id,
                allocation_type=proposed_allocation_type(ln.probability, config=C),  # type: ignore[arg-type]
                percentage=ln.percentage,
                start_date=ln.span.start,
                end_date=ln.span.end,
                confidence_level=proposed_confidence(ln.probability),
                estimated_hours=ln.hours_per_person,
                hourly_rate=ln.hourly_rate,
                skill_category=ln.skill_category,
                experience_level=ln.experience_level,
            )
        )
    return out
