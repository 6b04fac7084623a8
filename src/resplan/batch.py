from __future__ import annotations

import concurrent.futures
from dataclasses import dataclass, field
from typing import Callable, Generic, Optional, Sequence, TypeVar

from resplan.capacity import EmployeeCapacity
from resplan.config import Config, cfg
from resplan.conflicts import Conflict, detect_conflicts, group_by_employee, sort_conflicts
from resplan.demand import scenario_demand
from resplan.errors import PlanningError
from resplan.forecast import ForecastBucket, ForecastParams, forecast
from resplan.periods import DateRange, months_spanned
from resplan.records import Allocation, DemandRecord, Scenario

T = TypeVar("T")


@dataclass
class BatchResult(Generic[T]):
    """Merged output of a fan-out; ``failures`` maps a key to its error message."""

    results: T
    failures: dict[str, str] = field(default_factory=dict)

    @property
    def ok(self) -> bool:
        return not self.failures


def _fan_out(
    keys: Sequence[str],
    work: Callable[[str], T],
    *,
    workers: int,
    timeout: Optional[float],
) -> tuple[dict[str, T], dict[str, str]]:
    done: dict[str, T] = {}
    failed: dict[str, str] = {}
    timed_out = False
    pool = concurrent.futures.ThreadPoolExecutor(max_workers=workers)
    futures = {pool.submit(work, k): k for k in keys}
    try:
        for fut in concurrent.futures.as_completed(futures, timeout=timeout):
            key = futures[fut]
            try:
                done[key] = fut.result()
            except PlanningError as exc:
                failed[key] = f"{type(exc).__name__}: {exc}"
    except concurrent.futures.TimeoutError:
        timed_out = True
        for key in futures.values():
            if key not in done and key not in failed:
                failed[key] = f"TimeoutError: batch exceeded {timeout}s"
    finally:
        # on timeout, abandon whatever is still queued or running
        pool.shutdown(wait=not timed_out, cancel_futures=timed_out)
    return done, failed


def detect_conflicts_batch(
    allocations: Sequence[Allocation],
    capacities: Sequence[EmployeeCapacity] = (),
    horizon: DateRange | None = None,
    *,
    config: Config = cfg,
    timeout: Optional[float] = None,
) -> BatchResult[list[Conflict]]:
    """
    Per-employee conflict detection across a worker pool. An employee whose
    allocations are invalid is reported in ``failures``; the rest still run.
    """
    grouped = group_by_employee(allocations)

    def _one(employee_id: str) -> list[Conflict]:
        return detect_conflicts(grouped[employee_id], capacities, horizon, config=config)

    done, failed = _fan_out(
        sorted(grouped), _one, workers=config.NUM_PARALLEL_WORKERS, timeout=timeout
    )
    merged = [c for found in done.values() for c in found]
    return BatchResult(results=sort_conflicts(merged), failures=failed)


def forecast_scenarios(
    scenarios: Sequence[Scenario],
    capacities: Sequence[EmployeeCapacity],
    *,
    pipeline: Sequence[DemandRecord] = (),
    params: Optional[ForecastParams] = None,
    config: Config = cfg,
    timeout: Optional[float] = None,
) -> BatchResult[dict[str, list[ForecastBucket]]]:
    """Forecast each scenario (shared pipeline plus its own demand) in parallel."""
    by_id = {s.id: s for s in scenarios}

    def _one(scenario_id: str) -> list[ForecastBucket]:
        s = by_id[scenario_id]
        p = params or ForecastParams(
            forecast_months=months_spanned(s.base_date, s.forecast_period_months),
            confidence_threshold=config.CONFIDENCE_THRESHOLD,
            base_date=s.base_date,
        )
        records = list(pipeline) + scenario_demand(s, capacities, config=config)
        return forecast(records, capacities, p, config=config)

    done, failed = _fan_out(
        sorted(by_id), _one, workers=config.NUM_PARALLEL_WORKERS, timeout=timeout
    )
    return BatchResult(results={k: done[k] for k in sorted(done)}, failures=failed)
