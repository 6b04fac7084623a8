from __future__ import annotations

from typing import Sequence


class PlanningError(ValueError):
    """Base class for input validation failures raised by the planning core."""


class InvalidRecord(PlanningError):
    """A raw record has unknown or missing fields, or an unparseable value."""


class InvalidAllocation(PlanningError):
    """Allocation percentage, confidence level or date range is out of bounds."""


class InvalidDateRange(InvalidAllocation):
    """An end date precedes its start date, or an open end has no horizon."""


class InvalidCapacity(PlanningError):
    """Employee capacity is missing or has non-positive weekly hours."""


class InvalidForecastWindow(PlanningError):
    """The forecast horizon is not a positive number of months."""


class CyclicDependency(PlanningError):
    def __init__(self, cycle: Sequence[str]) -> None:
        self.cycle = list(cycle)
        super().__init__("Task graph has a dependency cycle: " + " -> ".join(self.cycle))


class UnknownDependency(PlanningError):
    def __init__(self, task_id: str, dependency_id: str) -> None:
        self.task_id = task_id
        self.dependency_id = dependency_id
        super().__init__(
            f"Task {task_id!r} depends on {dependency_id!r}, which is not in the task set."
        )
