# src/resplan/rules/base.py
from __future__ import annotations

from abc import ABC
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any, Protocol, Type

if TYPE_CHECKING:
    from resplan.config import Config
    from resplan.input_data import StaffingInput

from ortools.sat.python import cp_model


class BuildCtxProto(Protocol):
    m: cp_model.CpModel
    cfg: Config
    data: StaffingInput
    x: dict[tuple[int, int], cp_model.IntVar]
    short: dict[int, cp_model.IntVar]


@dataclass
class RuleSpec:
    cls: Type["Rule"]
    order: int | None = None
    enabled: bool = True
    settings: dict[str, Any] = field(default_factory=dict)


class Rule(ABC):
    order: int = 100
    enabled: bool = True
    name: str = "Rule"

    def __init__(self, model: BuildCtxProto, **settings: Any) -> None:
        self.model: BuildCtxProto = model
        self._settings: dict[str, Any] = settings

    def declare_vars(self) -> None:
        return

    def add_hard(self) -> None:
        return

    def add_soft(self) -> None:
        return

    def contribute_objective(self) -> list[cp_model.LinearExpr]:
        return []

    def report_descriptors(self) -> list[dict[str, Any]]:
        """JSON-serializable facts a reporter may print. Default: nothing."""
        return []

    def setting(self, key: str, default: Any) -> Any:
        return self._settings.get(key, default)

    def picked(self, line_index: int) -> list[cp_model.IntVar]:
        """Assignment literals of every eligible employee for one demand line."""
        D, x = self.model.data, self.model.x
        return [x[(e, line_index)] for e in D.eligible.get(line_index, [])]
