# resplan/precheck.py
from __future__ import annotations

import sys
from dataclasses import dataclass, field
from typing import Dict, List, Sequence, Set, Tuple

from resplan.capacity import EmployeeCapacity, available_hours
from resplan.config import Config
from resplan.critical_path import task_graph
from resplan.demand import pipeline_demand
from resplan.errors import PlanningError
from resplan.input_data import PlanningInput
from resplan.records import Scenario


@dataclass
class PrecheckReport:
    """
    Result of validating a planning snapshot before any computation.

    supply_hours: hours active staff can supply over the live horizon
    demand_hours: probability-weighted pipeline demand over the same horizon
    errors: blocking problems (invalid records, unknown employees, bad task graph)
    skill_holes: demanded (skill, level) pairs that no active employee holds
    """

    supply_hours: float
    demand_hours: float
    errors: list[str] = field(default_factory=list)
    skill_holes: Dict[Tuple[str, str], int] = field(default_factory=dict)

    @property
    def ok_capacity(self) -> bool:
        return self.supply_hours >= self.demand_hours

    @property
    def ok(self) -> bool:
        return not self.errors


def _check_capacities(capacities: Sequence[EmployeeCapacity]) -> List[str]:
    errors: List[str] = []
    seen: Set[str] = set()
    for c in capacities:
        if c.employee_id in seen:
            errors.append(f"duplicate employee id {c.employee_id!r}")
        seen.add(c.employee_id)
        if not c.active:
            continue
        try:
            c.validate()
        except PlanningError as exc:
            errors.append(str(exc))
    return errors


def _check_scenario(scenario: Scenario, known: Set[str]) -> List[str]:
    errors: List[str] = []
    horizon = scenario.horizon()
    ids: Set[str] = set()
    for a in scenario.allocations:
        if a.id in ids:
            errors.append(f"scenario {scenario.id}: duplicate allocation id {a.id!r}")
        ids.add(a.id)
        if a.employee_id not in known:
            errors.append(
                f"scenario {scenario.id}: allocation {a.id} references unknown employee "
                f"{a.employee_id!r}"
            )
        try:
            a.validate()
            if a.start_date <= horizon.end:
                a.span(horizon)
        except PlanningError as exc:
            errors.append(f"scenario {scenario.id}: {exc}")
    return errors


def _skill_holes(data: PlanningInput) -> Dict[Tuple[str, str], int]:
    """Demanded (skill, level) -> number of deal lines nobody active can fill."""
    supplied = {s for c in data.capacities if c.active for s in c.skills}
    holes: Dict[Tuple[str, str], int] = {}
    for deal in data.deals:
        for line in deal.demands:
            key = (line.skill_category, line.experience_level)
            if line.required_count > 0 and key not in supplied:
                holes[key] = holes.get(key, 0) + 1
    return holes


def precheck_inputs(
    cfg: Config,
    data: PlanningInput,
    *,
    verbose: bool = True,
    stream=None,
) -> PrecheckReport:
    """
    Validate every record up front and compare raw supply to weighted
    pipeline demand over the live horizon. Nothing raises here: problems are
    collected so a caller can decide whether to continue.
    """
    stream = stream or sys.stdout
    errors: List[str] = []
    try:
        cfg.validate()
    except ValueError as exc:
        errors.append(f"config: {exc}")

    errors.extend(_check_capacities(data.capacities))
    known = {c.employee_id for c in data.capacities}
    for scenario in [data.live, *data.scenarios]:
        errors.extend(_check_scenario(scenario, known))

    if data.tasks:
        try:
            task_graph(data.tasks)
        except PlanningError as exc:
            errors.append(f"tasks: {exc}")

    horizon = data.horizon
    supply = sum(available_hours(c, horizon) for c in data.capacities if c.active)
    records = pipeline_demand(
        data.deals,
        data.live.base_date,
        data.live.forecast_period_months,
        stage_rates=data.stage_rates,
        config=cfg,
    )
    demand = sum(r.required_hours * r.probability_weight for r in records)

    report = PrecheckReport(
        supply_hours=supply,
        demand_hours=demand,
        errors=errors,
        skill_holes=_skill_holes(data),
    )
    if verbose:
        print_precheck_header(report, stream=stream)
        print_precheck_errors(report, stream=stream)
        print_skill_holes(report, stream=stream)
    return report


def print_precheck_header(report: PrecheckReport, *, stream=sys.stdout) -> None:
    """Print 'Pre-check' on its own line, then the capacity line with ✅/❌"""
    print("\nPre-check:\n", file=stream)
    mark = "✅" if report.ok_capacity else "❌"
    verdict = "OK" if report.ok_capacity else "NOT OK"
    print(
        f"{mark} Supply = {report.supply_hours:,.0f}h | weighted pipeline demand = "
        f"{report.demand_hours:,.0f}h | {verdict}",
        file=stream,
    )
    print(
        "ℹ️  Pre-check only compares raw hours; individual months or skills may still be short.",
        file=stream,
    )


def print_precheck_errors(report: PrecheckReport, *, stream=sys.stdout) -> None:
    if not report.errors:
        print("✅ All records valid", file=stream)
        return
    for err in report.errors:
        print(f"❌ {err}", file=stream)


def print_skill_holes(report: PrecheckReport, *, stream=sys.stdout) -> None:
    """Report demanded skills that lack any eligible active employee."""
    print("\nSkill availability check:", file=stream)
    if not report.skill_holes:
        print("✅ Every demanded skill has at least one active employee.", file=stream)
        return
    for (skill, level), n in sorted(report.skill_holes.items()):
        print(
            f"❌ {skill}/{level}: demanded by {n} deal line(s) but no active employee "
            "holds it",
            file=stream,
        )
