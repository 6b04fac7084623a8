# workforce generation
from __future__ import annotations

import dataclasses
import json
from dataclasses import dataclass
from datetime import date, timedelta
from pathlib import Path
from typing import Any, Mapping, Optional, Tuple

import numpy as np
import pandas as pd

from resplan.capacity import EmployeeCapacity
from resplan.config import Config
from resplan.errors import PlanningError
from resplan.input_data import PlanningInput
from resplan.records import (
    LIVE_SCENARIO_ID,
    Allocation,
    PipelineDeal,
    ResourceDemand,
    Scenario,
    Task,
)

DEFAULT_PLANNING_JSON = Path(__file__).resolve().parents[2] / "example_planning.json"

FIRST_NAMES: Tuple[str, ...] = (
    "Ada", "Bram", "Chen", "Dina", "Emil", "Fatma", "Goran", "Hana", "Ivo", "Jana",
    "Kofi", "Lena", "Mats", "Nora", "Omar", "Pia", "Quinn", "Rosa", "Sami", "Tara",
    "Ugo", "Vera", "Wim", "Xena", "Yara", "Zeno",
)


# ----------------------------
# Configuration container
# ----------------------------
@dataclass(slots=True)
class WorkforceGenConfig:
    """
    Configuration for generation of a synthetic planning snapshot.
    """

    n_employees: int = 40

    skills: Tuple[str, ...] = ("backend", "frontend", "data", "design")
    levels: Tuple[str, ...] = ("junior", "mid", "senior")
    level_probs: Tuple[float, ...] = (0.35, 0.45, 0.20)

    # Share of people holding a second skill
    second_skill_pct: float = 0.30

    # Part-time contracts and their weekly hours
    part_time_pct: float = 0.15
    part_time_hours: Tuple[float, ...] = (20.0, 24.0, 32.0)
    full_time_hours: float = 40.0

    # Live project work
    n_projects: int = 10
    max_allocations_per_employee: int = 3
    allocation_pcts: Tuple[float, ...] = (25.0, 50.0, 50.0, 75.0, 100.0)
    open_ended_pct: float = 0.20

    # Pipeline
    n_deals: int = 8
    max_lines_per_deal: int = 3
    stages: Tuple[str, ...] = ("lead", "prospect", "opportunity", "proposal", "negotiation")

    # Project tasks for critical-path analysis
    n_tasks: int = 8
    max_task_days: int = 20

    seed: Optional[int] = 7

    def validate(self) -> None:
        if self.n_employees <= 0:
            raise ValueError("n_employees must be > 0.")
        if not self.skills or not self.levels:
            raise ValueError("skills and levels must be non-empty.")
        if len(self.levels) != len(self.level_probs):
            raise ValueError("levels and level_probs must be same length.")
        if not np.isclose(sum(self.level_probs), 1.0, atol=1e-9):
            raise ValueError("level_probs must sum to 1.0")
        for name in ("second_skill_pct", "part_time_pct", "open_ended_pct"):
            if not (0.0 <= getattr(self, name) <= 1.0):
                raise ValueError(f"{name} must be in [0,1].")
        if any(h <= 0 for h in self.part_time_hours) or self.full_time_hours <= 0:
            raise ValueError("weekly hours must be positive.")
        if any(not (0 < p <= 100) for p in self.allocation_pcts):
            raise ValueError("allocation_pcts must be in (0, 100].")
        if self.n_projects <= 0 or self.max_allocations_per_employee < 0:
            raise ValueError("n_projects must be > 0 and max_allocations_per_employee >= 0.")
        if self.n_deals < 0 or self.max_lines_per_deal <= 0:
            raise ValueError("n_deals must be >= 0 and max_lines_per_deal > 0.")
        if self.n_tasks < 0 or self.max_task_days <= 0:
            raise ValueError("n_tasks must be >= 0 and max_task_days > 0.")
        if self.seed is not None and not isinstance(self.seed, int):
            raise ValueError("seed must be an int or None.")


# ----------------------------
# Generation helpers
# ----------------------------
def _rng(seed: Optional[int]) -> np.random.Generator:
    return np.random.default_rng(seed) if seed is not None else np.random.default_rng()


def _deterministic_counts(n: int, probs: np.ndarray) -> np.ndarray:
    """
    Turn probabilities into integer counts that sum to n with minimal rounding error.
    """
    expected = probs * n
    floors = np.floor(expected).astype(int)
    shortfall = n - floors.sum()
    if shortfall > 0:
        remainders = expected - floors
        bump_idx = np.argsort(remainders)[::-1][:shortfall]
        floors[bump_idx] += 1
    return floors


def _name(i: int) -> str:
    base = FIRST_NAMES[i % len(FIRST_NAMES)]
    return base if i < len(FIRST_NAMES) else f"{base} {i // len(FIRST_NAMES) + 1}"


# ----------------------------
# Core API
# ----------------------------
def create_capacities(gen: WorkforceGenConfig) -> list[EmployeeCapacity]:
    gen.validate()
    g = _rng(gen.seed)

    counts = _deterministic_counts(gen.n_employees, np.array(gen.level_probs, dtype=float))
    levels = np.concatenate(
        [np.full(count, i, dtype=int) for i, count in enumerate(counts)]
    )
    g.shuffle(levels)
    part_time = g.random(gen.n_employees) < gen.part_time_pct
    second = g.random(gen.n_employees) < gen.second_skill_pct

    out: list[EmployeeCapacity] = []
    for i in range(gen.n_employees):
        level = gen.levels[int(levels[i])]
        main = g.choice(len(gen.skills))
        skills = {(gen.skills[main], level)}
        if second[i] and len(gen.skills) > 1:
            other = (main + 1 + g.choice(len(gen.skills) - 1)) % len(gen.skills)
            skills.add((gen.skills[other], level))
        hours = (
            float(g.choice(gen.part_time_hours)) if part_time[i] else gen.full_time_hours
        )
        out.append(
            EmployeeCapacity(
                employee_id=f"E{i:03d}",
                weekly_hours=hours,
                skills=frozenset(skills),
                name=_name(i),
            )
        )
    return out


def create_live_scenario(
    capacities: list[EmployeeCapacity],
    gen: WorkforceGenConfig,
    base_date: date,
    months: int,
) -> Scenario:
    """Committed project work: a few allocations per employee spread over the horizon."""
    g = _rng(None if gen.seed is None else gen.seed + 1)
    horizon_days = (pd.Timestamp(base_date) + pd.DateOffset(months=months)).date() - base_date

    allocations: list[Allocation] = []
    for cap in capacities:
        skill, level = cap.primary_skill or (None, None)
        for j in range(int(g.integers(0, gen.max_allocations_per_employee + 1))):
            start = base_date + timedelta(days=int(g.integers(0, max(1, horizon_days.days - 14))))
            end: Optional[date] = None
            if g.random() >= gen.open_ended_pct:
                end = start + timedelta(days=int(g.integers(14, 150)))
            confidence = int(g.integers(3, 6))
            allocations.append(
                Allocation(
                    id=f"A-{cap.employee_id}-{j}",
                    employee_id=cap.employee_id,
                    subject_id=f"P{int(g.integers(0, gen.n_projects)):02d}",
                    allocation_type="confirmed" if confidence == 5 else "probable",
                    percentage=float(g.choice(gen.allocation_pcts)),
                    start_date=start,
                    end_date=end,
                    confidence_level=confidence,
                    hourly_rate=float(g.choice((60.0, 75.0, 90.0, 120.0))),
                    skill_category=skill,
                    experience_level=level,
                )
            )
    return Scenario(
        id=LIVE_SCENARIO_ID,
        base_date=base_date,
        forecast_period_months=months,
        allocations=tuple(allocations),
        name="Live projects",
    )


def create_deals(
    gen: WorkforceGenConfig, base_date: date, months: int
) -> list[PipelineDeal]:
    g = _rng(None if gen.seed is None else gen.seed + 2)
    horizon_days = (pd.Timestamp(base_date) + pd.DateOffset(months=months)).date() - base_date
    deals: list[PipelineDeal] = []
    for i in range(gen.n_deals):
        lines = []
        for _ in range(int(g.integers(1, gen.max_lines_per_deal + 1))):
            start = base_date + timedelta(days=int(g.integers(0, max(1, horizon_days.days // 2))))
            lines.append(
                ResourceDemand(
                    skill_category=str(g.choice(gen.skills)),
                    experience_level=str(g.choice(gen.levels)),
                    required_count=int(g.integers(1, 4)),
                    allocation_percentage=float(g.choice(gen.allocation_pcts)),
                    start_date=start,
                    end_date=start + timedelta(days=int(g.integers(30, 120))),
                    hourly_rate=float(g.choice((75.0, 95.0, 110.0))),
                )
            )
        deals.append(
            PipelineDeal(
                id=f"D{i:02d}",
                name=f"Deal {i:02d}",
                stage=str(g.choice(gen.stages)),
                probability=float(g.integers(2, 10) * 10),
                demands=tuple(lines),
            )
        )
    return deals


def reduced_load_scenario(live: Scenario, cap_pct: float = 50.0) -> Scenario:
    """What-if: every live allocation capped at ``cap_pct``."""
    allocations = tuple(
        dataclasses.replace(
            a, id=f"{a.id}-r", percentage=min(float(a.percentage), cap_pct)
        )
        for a in live.allocations
    )
    return dataclasses.replace(
        live, id="reduced-load", allocations=allocations, name=f"Live capped at {cap_pct:.0f}%"
    )


def create_tasks(gen: WorkforceGenConfig) -> list[Task]:
    """Random DAG: each task depends on up to two earlier tasks."""
    g = _rng(None if gen.seed is None else gen.seed + 3)
    tasks: list[Task] = []
    for i in range(gen.n_tasks):
        deps: set[str] = set()
        if i > 0:
            k = int(g.integers(0, min(2, i) + 1))
            deps = {f"T{int(j):02d}" for j in g.choice(i, size=k, replace=False)}
        tasks.append(
            Task(
                id=f"T{i:02d}",
                duration_days=float(g.integers(1, gen.max_task_days + 1)),
                dependencies=frozenset(deps),
            )
        )
    return tasks


def build_planning_input(
    config: Config, gen: Optional[WorkforceGenConfig] = None
) -> PlanningInput:
    """
    Build a synthetic PlanningInput from a Config: employees, live work,
    a reduced-load what-if scenario, pipeline deals and a task graph.
    """
    gen = gen or WorkforceGenConfig(seed=config.SEED if config.SEED is not None else 7)
    gen.validate()
    capacities = create_capacities(gen)
    live = create_live_scenario(
        capacities, gen, config.BASE_DATE, int(config.FORECAST_MONTHS)
    )
    return PlanningInput(
        capacities=capacities,
        live=live,
        scenarios=[reduced_load_scenario(live)],
        deals=create_deals(gen, config.BASE_DATE, int(config.FORECAST_MONTHS)),
        tasks=create_tasks(gen),
    )


# ----------------------------
# Convenience utilities
# ----------------------------
def capacities_to_dataframe(capacities: list[EmployeeCapacity]) -> pd.DataFrame:
    rows = [
        {
            "employee_id": c.employee_id,
            "name": c.name,
            "weekly_hours": c.weekly_hours,
            "active": c.active,
            "skills": sorted(f"{s}/{lvl}" for s, lvl in c.skills),
        }
        for c in capacities
    ]
    return pd.DataFrame(rows)


def planning_input_from_json(path: str | Path | None = None) -> PlanningInput:
    """
    Load a planning snapshot from a JSON file on disk.

    If `path` is omitted, the loader reads from `src/example_planning.json`.
    The file must hold an object with `capacities` and `live`, and may hold
    `scenarios`, `deals`, `tasks` and `stage_rates`.
    """
    file_path = Path(path) if path is not None else DEFAULT_PLANNING_JSON
    file_path = file_path.expanduser()

    if file_path.suffix.lower() != ".json":
        raise ValueError("planning_input_from_json expects a path to a .json file.")
    if not file_path.exists():
        raise FileNotFoundError(f"Planning JSON file not found: {file_path}")

    try:
        data: Any = json.loads(file_path.read_text())
    except json.JSONDecodeError as exc:
        raise ValueError(f"Invalid JSON in {file_path}") from exc

    if not isinstance(data, Mapping):
        raise TypeError("JSON file must contain an object with 'capacities' and 'live'.")
    try:
        return PlanningInput.from_dict(data)
    except (TypeError, KeyError) as exc:
        raise PlanningError(f"Malformed planning snapshot in {file_path}: {exc}") from exc
