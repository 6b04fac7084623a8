# src/resplan/build.py
from __future__ import annotations

from typing import TYPE_CHECKING, Any, Sequence, Tuple, Type

from ortools.sat.python import cp_model

from resplan.config import Config
from resplan.input_data import StaffingInput
from resplan.rules.base import RuleSpec
from resplan.rules.objective import ObjectiveBuilder
from resplan.rules.registry import instantiate_rules, normalize_rule_specs

if TYPE_CHECKING:
    from resplan.rules.base import Rule

EL = Tuple[int, int]  # (employee, demand line)


class BuildContext:
    """Holds shared state while building the model (used by rules and solver)."""

    def __init__(self, cfg: Config, data: StaffingInput) -> None:
        self.cfg: Config = cfg
        self.data: StaffingInput = data
        self.m: cp_model.CpModel = cp_model.CpModel()

        self.x: dict[EL, cp_model.IntVar] = {}  # employee proposed for line
        self.short: dict[int, cp_model.IntVar] = {}  # unfilled seats per line

        self._objective: ObjectiveBuilder = ObjectiveBuilder()
        self._rules: list["Rule"] = []

    @property
    def objective(self) -> ObjectiveBuilder:
        return self._objective

    def report_descriptors(self) -> list[dict[str, Any]]:
        out: list[dict[str, Any]] = []
        for r in self._rules:
            out.extend(r.report_descriptors())
        return out


def build_model(
    cfg: Config,
    data: StaffingInput,
    rules: Sequence[RuleSpec | Type["Rule"]] | None = None,
) -> BuildContext:
    """
    Build the CP-SAT model by running each Rule through the 4 phases:
      1) declare_vars  2) add_hard  3) add_soft  4) contribute_objective
    Then attach the final objective and run sanity checks.
    """
    ctx = BuildContext(cfg, data)
    ctx._rules = instantiate_rules(ctx, normalize_rule_specs(rules))

    for r in ctx._rules:
        r.declare_vars()
    for r in ctx._rules:
        r.add_hard()
    for r in ctx._rules:
        r.add_soft()
    for r in ctx._rules:
        ctx._objective.extend(r.contribute_objective())

    ctx.m.Minimize(ctx._objective.linear_expr())

    # ---- sanity checks ----
    expected_x = sum(len(data.eligible.get(ln.index, [])) for ln in data.lines)
    if len(ctx.x) != expected_x:
        raise RuntimeError(
            f"[build sanity] x has {len(ctx.x)} keys; expected {expected_x} "
            "(one per eligible employee and line). Is AssignmentVariablesRule registered?"
        )
    if data.lines and len(ctx.short) != len(data.lines):
        raise RuntimeError(
            "[build sanity] shortfall vars missing; ShortfallRule likely didn't run."
        )

    return ctx
