from dataclasses import dataclass, field
from datetime import date
from typing import Optional

SeverityBands = tuple[tuple[float, str], ...]


def _default_conversion_rates() -> dict[str, float]:
    return {
        "lead": 0.2,
        "prospect": 0.3,
        "opportunity": 0.5,
        "proposal": 0.7,
        "negotiation": 0.8,
        "won": 1.0,
        "lost": 0.0,
        "on-hold": 0.1,
    }


@dataclass
class Config:

    # Planning horizon
    BASE_DATE: date = date(2025, 1, 1)
    FORECAST_MONTHS: int = 12
    CONFIDENCE_THRESHOLD: float = 0.5

    ### CAPACITY ###

    # Calendar approximation used for monthly supply (52 / 12 rounded)
    WEEKS_PER_MONTH: float = 4.33
    FTE_WEEKLY_HOURS: float = 40.0

    # Working-day estimate for allocations without explicit hours
    HOURS_PER_WORKDAY: float = 8.0
    WORKDAYS_PER_WEEK: int = 5

    ### CONFLICTS ###

    OVERALLOCATION_THRESHOLD: float = 100.0
    # (upper bound inclusive, label); anything above the last bound is "critical"
    SEVERITY_BANDS: SeverityBands = ((110.0, "low"), (125.0, "medium"), (150.0, "high"))

    ### COST ###

    DEFAULT_HOURLY_RATE: float = 75.0

    ### FORECAST CONFIDENCE ###

    BASE_CONFIDENCE: float = 40.0
    SCENARIO_CONFIDENCE_WEIGHT: float = 60.0
    NEUTRAL_CONFIDENCE: float = 50.0

    ### PIPELINE ###

    STAGE_CONVERSION_RATES: dict[str, float] = field(
        default_factory=_default_conversion_rates
    )
    PIPELINE_EXCLUDED_STAGES: tuple[str, ...] = ("won", "lost")

    # Adjusted probability cut-offs for proposed allocation types
    CONFIRMED_PROBABILITY: float = 0.7
    PROBABLE_PROBABILITY: float = 0.4

    ### SOLVER / WORKERS ###

    TIME_LIMIT_SEC: float = 10.0
    NUM_PARALLEL_WORKERS: int = 4
    LOG_SOLUTIONS_FREQUENCY_SECONDS: float = 5.0

    # RANDOM SEED (synthetic data only)
    SEED: Optional[int] = None

    def validate(self):
        """
        Validate the Config object has sensible values before planning.
        """
        if self.FORECAST_MONTHS <= 0:
            raise ValueError("FORECAST_MONTHS must be > 0.")
        if not (0.0 <= self.CONFIDENCE_THRESHOLD <= 1.0):
            raise ValueError("CONFIDENCE_THRESHOLD must be in [0, 1].")
        for attr in ("WEEKS_PER_MONTH", "FTE_WEEKLY_HOURS", "HOURS_PER_WORKDAY"):
            if getattr(self, attr) <= 0:
                raise ValueError(f"{attr} must be > 0.")
        if not (1 <= self.WORKDAYS_PER_WEEK <= 7):
            raise ValueError("WORKDAYS_PER_WEEK must be within [1, 7].")
        if self.OVERALLOCATION_THRESHOLD <= 0:
            raise ValueError("OVERALLOCATION_THRESHOLD must be > 0.")
        bounds = [b for b, _ in self.SEVERITY_BANDS]
        if bounds != sorted(bounds) or any(
            b <= self.OVERALLOCATION_THRESHOLD for b in bounds
        ):
            raise ValueError(
                "SEVERITY_BANDS must be ascending and above OVERALLOCATION_THRESHOLD."
            )
        if self.DEFAULT_HOURLY_RATE < 0:
            raise ValueError("DEFAULT_HOURLY_RATE must be non-negative.")
        for stage, rate in self.STAGE_CONVERSION_RATES.items():
            if not (0.0 <= rate <= 1.0):
                raise ValueError(f"Conversion rate for stage {stage!r} must be in [0, 1].")
        if not (0.0 <= self.PROBABLE_PROBABILITY <= self.CONFIRMED_PROBABILITY <= 1.0):
            raise ValueError(
                "Require 0 <= PROBABLE_PROBABILITY <= CONFIRMED_PROBABILITY <= 1."
            )
        if self.TIME_LIMIT_SEC <= 0.0:
            raise ValueError("TIME_LIMIT_SEC must be > 0.")
        if self.NUM_PARALLEL_WORKERS <= 0:
            raise ValueError("NUM_PARALLEL_WORKERS must be > 0.")

    @property
    def fte_month_hours(self) -> float:
        """Hours one full-time employee supplies in a month."""
        return self.FTE_WEEKLY_HOURS * self.WEEKS_PER_MONTH

    def severity_for(self, peak_percentage: float) -> str:
        for upper, label in self.SEVERITY_BANDS:
            if peak_percentage <= upper:
                return label
        return "critical"

    def conversion_rate(
        self, stage: str, overrides: Optional[dict[str, float]] = None
    ) -> float:
        rates = {**self.STAGE_CONVERSION_RATES, **(overrides or {})}
        return float(rates.get(stage, 0.0))


cfg = Config(
    BASE_DATE=date(2025, 1, 1),
    FORECAST_MONTHS=12,
    CONFIDENCE_THRESHOLD=0.5,
    TIME_LIMIT_SEC=10.0,
    NUM_PARALLEL_WORKERS=4,
    LOG_SOLUTIONS_FREQUENCY_SECONDS=5.0,
    SEED=3,
)
