from __future__ import annotations

import dataclasses
import math
from dataclasses import dataclass
from datetime import date
from typing import Optional, Sequence

import pandas as pd

from resplan.capacity import EmployeeCapacity
from resplan.config import Config, cfg
from resplan.errors import InvalidForecastWindow, PlanningError
from resplan.periods import month_start, month_windows
from resplan.records import DemandRecord

_GROUP_KEYS = ["period", "skill_category", "experience_level"]

BUCKET_COLUMNS = [
    "period",
    "skill_category",
    "experience_level",
    "demand_hours",
    "supply_hours",
    "gap_hours",
    "utilization_rate",
    "hiring_recommendation",
    "confidence",
    "pipeline_hours",
    "scenario_hours",
]


@dataclass(frozen=True)
class ForecastParams:
    forecast_months: int
    confidence_threshold: float
    base_date: Optional[date] = None

    def validate(self) -> None:
        if int(self.forecast_months) <= 0:
            raise InvalidForecastWindow(
                f"forecast_months must be > 0 (got {self.forecast_months})."
            )
        if not (0.0 <= float(self.confidence_threshold) <= 1.0):
            raise PlanningError(
                f"confidence_threshold must be in [0, 1] (got {self.confidence_threshold})."
            )


@dataclass(frozen=True)
class ForecastBucket:
    """Demand against supply for one (month, skill, level)."""

    period: str  # YYYY-MM
    skill_category: str
    experience_level: str
    demand_hours: float
    supply_hours: float
    gap_hours: float
    utilization_rate: float
    hiring_recommendation: int
    confidence: float
    pipeline_hours: float = 0.0
    scenario_hours: float = 0.0

    @property
    def key(self) -> tuple[str, str]:
        return self.skill_category, self.experience_level


def monthly_supply_hours(
    capacities: Sequence[EmployeeCapacity],
    skill_category: str,
    experience_level: str,
    *,
    config: Config = cfg,
) -> float:
    """
    Matching active headcount x their average weekly hours x WEEKS_PER_MONTH.
    """
    matching = [
        c
        for c in capacities
        if c.active and c.has_skill(skill_category, experience_level)
    ]
    if not matching:
        return 0.0
    avg_weekly = sum(float(c.weekly_hours) for c in matching) / len(matching)
    return len(matching) * avg_weekly * config.WEEKS_PER_MONTH


def hiring_recommendation(gap_hours: float, *, config: Config = cfg) -> int:
    """Whole FTEs needed to close a positive gap."""
    if gap_hours <= 0:
        return 0
    # round first so float noise on an exact multiple does not add a hire
    return int(math.ceil(round(gap_hours / config.fte_month_hours, 9)))


def bucket_confidence(
    scenario_hours: float, pipeline_hours: float, *, config: Config = cfg
) -> float:
    total = scenario_hours + pipeline_hours
    if total <= 0:
        return float(config.NEUTRAL_CONFIDENCE)
    share = scenario_hours / total
    return float(
        min(100.0, config.BASE_CONFIDENCE + config.SCENARIO_CONFIDENCE_WEIGHT * share)
    )


def demand_frame(records: Sequence[DemandRecord]) -> pd.DataFrame:
    cols = [
        "skill_category",
        "experience_level",
        "date",
        "required_hours",
        "probability_weight",
        "source",
    ]
    if not records:
        return pd.DataFrame(columns=cols)
    return pd.DataFrame([dataclasses.asdict(r) for r in records], columns=cols)


def forecast(
    demand_records: Sequence[DemandRecord],
    capacities: Sequence[EmployeeCapacity],
    params: ForecastParams,
    *,
    config: Config = cfg,
) -> list[ForecastBucket]:
    """
    Project weighted skill demand against supply, month by month.

    For each of ``params.forecast_months`` calendar months starting at the
    month of ``params.base_date`` (default: month of the earliest record),
    records at or above the confidence threshold are grouped by
    (skill_category, experience_level) and their weighted hours summed. Each
    group with nonzero demand yields one bucket; combinations with no demand
    are omitted.

    Buckets are sorted by period, skill_category, experience_level.
    """
    params.validate()
    for c in capacities:
        if c.active:
            c.validate()

    if not demand_records:
        return []

    base = params.base_date or min(r.date for r in demand_records)
    windows = month_windows(month_start(base), int(params.forecast_months))
    periods = [label for label, _ in windows]

    df = demand_frame(demand_records)
    df["period"] = pd.to_datetime(df["date"]).dt.to_period("M").astype(str)
    df = df[
        df["period"].isin(periods)
        & (df["probability_weight"] >= float(params.confidence_threshold))
    ]
    if df.empty:
        return []

    df = df.assign(weighted=df["required_hours"] * df["probability_weight"])
    df = df.assign(
        scenario_hours=df["weighted"].where(df["source"] == "scenario", 0.0),
        pipeline_hours=df["weighted"].where(df["source"] == "pipeline", 0.0),
    )
    grouped = (
        df.groupby(_GROUP_KEYS, sort=True)
        .agg(
            demand_hours=("weighted", "sum"),
            scenario_hours=("scenario_hours", "sum"),
            pipeline_hours=("pipeline_hours", "sum"),
        )
        .reset_index()
    )
    grouped = grouped[grouped["demand_hours"] > 0]

    supply_cache: dict[tuple[str, str], float] = {}
    buckets: list[ForecastBucket] = []
    for row in grouped.itertuples(index=False):
        key = (row.skill_category, row.experience_level)
        if key not in supply_cache:
            supply_cache[key] = monthly_supply_hours(capacities, *key, config=config)
        supply = supply_cache[key]
        demand = float(row.demand_hours)
        gap = demand - supply
        buckets.append(
            ForecastBucket(
                period=row.period,
                skill_category=row.skill_category,
                experience_level=row.experience_level,
                demand_hours=demand,
                supply_hours=supply,
                gap_hours=gap,
                utilization_rate=(demand / supply) if supply > 0 else 0.0,
                hiring_recommendation=hiring_recommendation(gap, config=config),
                confidence=bucket_confidence(
                    float(row.scenario_hours), float(row.pipeline_hours), config=config
                ),
                pipeline_hours=float(row.pipeline_hours),
                scenario_hours=float(row.scenario_hours),
            )
        )
    return sorted(
        buckets, key=lambda b: (b.period, b.skill_category, b.experience_level)
    )


def buckets_frame(buckets: Sequence[ForecastBucket]) -> pd.DataFrame:
    if not buckets:
        return pd.DataFrame(columns=BUCKET_COLUMNS)
    return pd.DataFrame([dataclasses.asdict(b) for b in buckets], columns=BUCKET_COLUMNS)


def unmet_hours_by_skill(buckets: Sequence[ForecastBucket]) -> dict[tuple[str, str], float]:
    """Sum of positive gaps per (skill, level) across all periods."""
    out: dict[tuple[str, str], float] = {}
    for b in buckets:
        out[b.key] = out.get(b.key, 0.0) + max(0.0, b.gap_hours)
    return out
