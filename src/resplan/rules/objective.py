# src/resplan/rules/objective.py
from __future__ import annotations

from typing import Iterable

from ortools.sat.python import cp_model


class ObjectiveBuilder:
    """
    Collects penalty terms from the rules and emits a single expression to
    minimise.

        obj = ObjectiveBuilder()
        obj.extend(rule.contribute_objective())
        model.Minimize(obj.linear_expr())
    """

    __slots__ = ("terms",)

    def __init__(self) -> None:
        self.terms: list[cp_model.LinearExpr] = []

    def add(self, term: cp_model.LinearExpr) -> "ObjectiveBuilder":
        self.terms.append(term)
        return self

    def extend(self, terms: Iterable[cp_model.LinearExpr]) -> "ObjectiveBuilder":
        for t in terms:
            self.add(t)
        return self

    def linear_expr(self) -> cp_model.LinearExpr:
        # Sum([]) is a plain int; keep the LinearExpr type for Minimize().
        if not self.terms:
            return cp_model.LinearExpr.Sum([0])
        return cp_model.LinearExpr.Sum(self.terms)
