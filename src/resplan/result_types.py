# resplan/result_types.py
from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any, Optional

import pandas as pd

from resplan.records import Allocation

if TYPE_CHECKING:
    from resplan.comparison import ScenarioComparison
    from resplan.conflicts import Conflict, OverAllocationSummary
    from resplan.critical_path import CriticalPathAnalysis
    from resplan.forecast import ForecastBucket
    from resplan.precheck import PrecheckReport


@dataclass
class StaffingResult:
    """Structured output of a candidate-staffing solve. Nothing here is committed."""

    status_name: str
    objective_value: Optional[float]
    proposed: list[Allocation]
    df_assignments: pd.DataFrame
    df_unfilled: pd.DataFrame
    progress_history: list[tuple[float, float, float]] | None = None
    solver_stats: str | None = None
    descriptors: list[dict[str, Any]] = field(default_factory=list)

    @property
    def solved(self) -> bool:
        return self.status_name in ("OPTIMAL", "FEASIBLE")

    @property
    def unfilled_seats(self) -> int:
        if self.df_unfilled.empty:
            return 0
        return int(self.df_unfilled["unfilled"].sum())


@dataclass
class PlanningReport:
    """Everything one planning run produced, for reporting and the service layer."""

    precheck: "PrecheckReport"
    live_conflicts: list["Conflict"]
    conflict_summary: "OverAllocationSummary"
    forecast: list["ForecastBucket"]
    comparisons: dict[str, "ScenarioComparison"] = field(default_factory=dict)
    critical_path: Optional["CriticalPathAnalysis"] = None
    staffing: Optional[StaffingResult] = None
    failures: dict[str, str] = field(default_factory=dict)
