# resplan/model.py
from __future__ import annotations

from typing import Mapping, Optional, Sequence, Type

import pandas as pd

from resplan.build import BuildContext, build_model
from resplan.capacity import EmployeeCapacity
from resplan.config import Config, cfg
from resplan.extract import (
    ASSIGNMENT_COLUMNS,
    extract_assignments,
    extract_proposals,
    extract_unfilled,
    unstaffed_lines,
)
from resplan.input_data import StaffingInput, build_staffing_input
from resplan.periods import DateRange
from resplan.records import Allocation, PipelineDeal
from resplan.result_types import StaffingResult
from resplan.rules.base import Rule, RuleSpec
from resplan.solver import solve_model


class StaffingModel:
    """
    Thin orchestrator around:
      - build_model()      -> BuildContext with model + variables
      - solve_model()      -> runs CP-SAT
      - extraction helpers -> proposed allocations + pandas DataFrames
    """

    def __init__(
        self,
        cfg: Config,
        data: StaffingInput,
        rules: Sequence[RuleSpec | Type[Rule]] | None = None,
    ):
        self.cfg = cfg
        self.data = data
        self._ctx: BuildContext | None = None
        self._rule_specs = rules

    def build(self):
        self._ctx = build_model(self.cfg, self.data, rules=self._rule_specs)

    def solve(self, scenario_id: str, progress_cb=None) -> StaffingResult:
        """
        Solve the built model and turn the solution into proposed allocations.

        The model is always feasible (every seat may stay unfilled), so a
        status other than OPTIMAL/FEASIBLE means the time limit ran out before
        a first solution; all lines are then reported unfilled.
        """
        if self._ctx is None:
            raise RuntimeError("Call build() before solve().")

        print("\nSolving staffing model...")
        solver, status_name = solve_model(self._ctx, progress_cb=progress_cb)

        progress_history = None
        if progress_cb is not None and callable(
            getattr(progress_cb, "solution_history", None)
        ):
            progress_history = progress_cb.solution_history()

        if status_name not in ("OPTIMAL", "FEASIBLE"):
            return StaffingResult(
                status_name=status_name,
                objective_value=None,
                proposed=[],
                df_assignments=pd.DataFrame(columns=ASSIGNMENT_COLUMNS),
                df_unfilled=unstaffed_lines(self._ctx),
                progress_history=progress_history,
                solver_stats=solver.ResponseStats(),
                descriptors=self._ctx.report_descriptors(),
            )

        return StaffingResult(
            status_name=status_name,
            objective_value=solver.ObjectiveValue(),
            proposed=extract_proposals(self._ctx, solver, scenario_id),
            df_assignments=extract_assignments(self._ctx, solver),
            df_unfilled=extract_unfilled(self._ctx, solver),
            progress_history=progress_history,
            solver_stats=solver.ResponseStats(),
            descriptors=self._ctx.report_descriptors(),
        )

    def get_report_descriptors(self) -> list[dict]:
        if self._ctx is None:
            raise RuntimeError("Call build() before get_report_descriptors().")
        return self._ctx.report_descriptors()


def derive_candidate_allocations(
    deals: Sequence[PipelineDeal],
    capacities: Sequence[EmployeeCapacity],
    committed: Sequence[Allocation],
    horizon: DateRange,
    *,
    scenario_id: str,
    stage_rates: Optional[Mapping[str, float]] = None,
    rules: Sequence[RuleSpec | Type[Rule]] | None = None,
    config: Config = cfg,
    progress_cb=None,
) -> StaffingResult:
    """
    Propose who could staff open pipeline demand without pushing anyone past
    100% alongside ``committed`` work.

    Pure: nothing passed in is modified and nothing is committed. Use
    ``Scenario.with_allocations(result.proposed)`` to build a candidate
    scenario for comparison.
    """
    data = build_staffing_input(
        deals, capacities, committed, horizon, stage_rates=stage_rates, config=config
    )
    model = StaffingModel(config, data, rules=rules)
    model.build()
    return model.solve(scenario_id, progress_cb=progress_cb)
