from __future__ import annotations

from resplan.rules.base import Rule


class ShortfallRule(Rule):
    """
    Unfilled seats per line, penalised by probability-weighted hours.

    short[l] >= required_count - people proposed for l (tight at the optimum)

    Objective term per line: coeff * short[l] where
      coeff = max(min_coeff, round(probability * hours_per_person * scale_int))

    Settings (RuleSpec.settings):
      scale_int: float
          Multiplier applied before rounding to integer coefficients.
      min_coeff: int
          Floor on the coefficient so that lines with zero weight or zero
          hours are still preferred filled over left empty.
    """

    order = 30
    name = "Shortfall"

    def declare_vars(self):
        D, m = self.model.data, self.model.m
        self.model.short = {
            ln.index: m.NewIntVar(0, ln.required_count, f"short_l{ln.index}")
            for ln in D.lines
        }

    def add_hard(self):
        D, M = self.model.data, self.model.m
        for ln in D.lines:
            picked = self.picked(ln.index)
            M.Add(self.model.short[ln.index] >= ln.required_count - sum(picked))

    def coefficient(self, line) -> int:
        scale = float(self.setting("scale_int", 100.0))
        floor = int(self.setting("min_coeff", 1))
        raw = int(round(line.probability * line.hours_per_person * scale))
        return max(floor, raw)

    def contribute_objective(self):
        if not self.enabled:
            return []
        D = self.model.data
        return [self.coefficient(ln) * self.model.short[ln.index] for ln in D.lines]
