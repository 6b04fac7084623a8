# tests/conftest.py
from __future__ import annotations

import os
import random
from datetime import date
from pathlib import Path

import matplotlib
import numpy as np
import pytest

matplotlib.use("Agg", force=True)

from resplan.capacity import EmployeeCapacity  # noqa: E402
from resplan.config import Config  # noqa: E402
from resplan.input_data import PlanningInput  # noqa: E402
from resplan.records import (  # noqa: E402
    Allocation,
    PipelineDeal,
    ResourceDemand,
    Scenario,
    Task,
)


@pytest.fixture(autouse=True, scope="session")
def _seed_everything() -> None:
    """Deterministic seeds for numpy and random; override with PYTEST_SEED."""
    seed = int(os.environ.get("PYTEST_SEED", "1234"))
    os.environ["PYTHONHASHSEED"] = str(seed)
    random.seed(seed)
    np.random.seed(seed)


@pytest.fixture(scope="session")
def project_root() -> Path:
    """Repository root (where pyproject.toml lives)."""
    return Path(__file__).resolve().parents[1]


@pytest.fixture
def fast_cfg() -> Config:
    """Config for small snapshots: short solve, single worker, fixed seed."""
    return Config(
        BASE_DATE=date(2025, 1, 1),
        FORECAST_MONTHS=3,
        TIME_LIMIT_SEC=5.0,
        NUM_PARALLEL_WORKERS=1,
        LOG_SOLUTIONS_FREQUENCY_SECONDS=0.0,
        SEED=1,
    )


@pytest.fixture
def planning_snapshot() -> PlanningInput:
    """
    Three people over Q1 2025.

    e1 is double-booked in January (60% + 50%), e2 is half free, e3 is the
    only data person. One open deal asks for a backend/mid in February, and
    an alternative scenario moves e1's second project to e2.
    """
    caps = [
        EmployeeCapacity("e1", 40.0, frozenset({("backend", "mid")}), name="Ada"),
        EmployeeCapacity("e2", 40.0, frozenset({("backend", "mid")}), name="Bo"),
        EmployeeCapacity("e3", 32.0, frozenset({("data", "senior")}), name="Cy"),
    ]
    allocs = (
        Allocation("a1", "e1", "p1", "confirmed", 60.0, date(2025, 1, 1), date(2025, 3, 31)),
        Allocation("a2", "e1", "p2", "probable", 50.0, date(2025, 1, 1), date(2025, 1, 31), confidence_level=4),
        Allocation("a3", "e2", "p1", "confirmed", 50.0, date(2025, 1, 1), None),
        Allocation("a4", "e3", "p3", "confirmed", 100.0, date(2025, 1, 1), date(2025, 3, 31)),
    )
    live = Scenario("live", date(2025, 1, 1), 3, allocs, name="Live plan")
    moved = Allocation("a2", "e2", "p2", "probable", 50.0, date(2025, 1, 1), date(2025, 1, 31), confidence_level=4)
    alt = Scenario("rebalance", date(2025, 1, 1), 3, (allocs[0], moved, allocs[2], allocs[3]))
    deal = PipelineDeal(
        "d1",
        "Platform rebuild",
        "negotiation",
        100.0,
        (ResourceDemand("backend", "mid", 1, 50.0, date(2025, 2, 1), date(2025, 2, 28)),),
    )
    tasks = [
        Task("design", 3.0),
        Task("build", 5.0, frozenset({"design"})),
        Task("docs", 2.0, frozenset({"design"})),
    ]
    return PlanningInput(
        capacities=caps, live=live, scenarios=[alt], deals=[deal], tasks=tasks
    )
