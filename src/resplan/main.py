from __future__ import annotations

from pathlib import Path
from typing import Callable, Sequence, Type

from ortools.sat.python import cp_model

from resplan.batch import detect_conflicts_batch
from resplan.comparison import ScenarioComparison, compare_scenarios
from resplan.config import Config, cfg
from resplan.conflicts import summarize_conflicts
from resplan.critical_path import critical_path
from resplan.demand import pipeline_demand, scenario_demand
from resplan.errors import PlanningError
from resplan.forecast import ForecastParams, buckets_frame, forecast
from resplan.generate.workforce import build_planning_input
from resplan.input_data import PlanningInput
from resplan.periods import months_spanned
from resplan.model import derive_candidate_allocations
from resplan.precheck import precheck_inputs
from resplan.progress import MinimalProgress
from resplan.reporting import Reporter
from resplan.reporting.metrics import conflicts_frame
from resplan.result_types import PlanningReport
from resplan.rules.base import Rule, RuleSpec

InputBuilder = Callable[[Config], PlanningInput]

CANDIDATE_SCENARIO_ID = "candidate"


def default_input_builder(config: Config) -> PlanningInput:
    """Build a synthetic planning snapshot using the project's generator."""
    return build_planning_input(config)


def run_planning(
    config: Config | None = None,
    data: PlanningInput | None = None,
    input_builder: InputBuilder | None = None,
    reporter: Reporter | None = None,
    progress_cb: cp_model.CpSolverSolutionCallback | None = None,
    validate_config: bool = True,
    enable_reporting: bool = True,
    derive_candidates: bool = False,
    rules: Sequence[RuleSpec | Type[Rule]] | None = None,
    export_dir: Path | str | None = None,
) -> PlanningReport:
    """
    Run one planning pass over a snapshot and optionally report on it.

    Parameters
    ----------
    config:
        The configuration for the run. Defaults to `resplan.config.cfg` when omitted.
    data:
        Pre-built `PlanningInput`. When omitted then `input_builder` (or the default
        synthetic builder) is used to construct data from the given config.
    input_builder:
        Optional callable that accepts a `Config` and returns `PlanningInput`. Ignored
        when `data` is supplied.
    reporter:
        Custom reporter instance. When `enable_reporting` is True and no reporter is
        provided, the default `Reporter` is used.
    enable_reporting:
        When False, skips reporter pre/post hooks even if a reporter is provided.
    derive_candidates:
        Also solve the staffing model for open pipeline demand and compare the
        resulting candidate scenario against the live plan.
    progress_cb:
        Optional `cp_model.CpSolverSolutionCallback` for the staffing solve.
        Defaults to `MinimalProgress`.
    rules:
        Optional rule classes/specs for the staffing model. `None` falls back to
        the library defaults.
    export_dir:
        When given, conflicts and forecast buckets are written there as CSV.

    Returns
    -------
    PlanningReport
        Everything the run computed. Inputs are never modified.
    """
    cfg_obj = config or cfg
    if validate_config:
        cfg_obj.validate()

    input_data = data
    if input_data is None:
        builder = input_builder or default_input_builder
        input_data = builder(cfg_obj)

    active_reporter = reporter if enable_reporting else None
    if active_reporter is None and enable_reporting:
        active_reporter = Reporter(cfg_obj)

    check = precheck_inputs(cfg_obj, input_data, verbose=enable_reporting)
    if active_reporter is not None:
        active_reporter.pre_check(check)

    live = input_data.live
    horizon = input_data.horizon
    caps = input_data.capacities
    failures: dict[str, str] = {}

    batch = detect_conflicts_batch(live.allocations, caps, horizon, config=cfg_obj)
    failures.update({f"conflicts:{k}": v for k, v in batch.failures.items()})
    summary = summarize_conflicts(batch.results, caps, config=cfg_obj)

    params = ForecastParams(
        forecast_months=months_spanned(live.base_date, live.forecast_period_months),
        confidence_threshold=cfg_obj.CONFIDENCE_THRESHOLD,
        base_date=live.base_date,
    )
    pipeline = pipeline_demand(
        input_data.deals,
        live.base_date,
        live.forecast_period_months,
        stage_rates=input_data.stage_rates,
        config=cfg_obj,
    )
    buckets = []
    try:
        buckets = forecast(
            pipeline + scenario_demand(live, caps, config=cfg_obj),
            caps,
            params,
            config=cfg_obj,
        )
    except PlanningError as exc:
        failures["forecast"] = f"{type(exc).__name__}: {exc}"

    comparisons: dict[str, ScenarioComparison] = {}
    for scenario in input_data.scenarios:
        try:
            comparisons[scenario.id] = compare_scenarios(
                live, scenario, caps, pipeline_demand=pipeline, params=params, config=cfg_obj
            )
        except PlanningError as exc:
            failures[f"compare:{scenario.id}"] = f"{type(exc).__name__}: {exc}"

    cpa = None
    if input_data.tasks:
        try:
            cpa = critical_path(input_data.tasks)
        except PlanningError as exc:
            failures["critical_path"] = f"{type(exc).__name__}: {exc}"

    staffing = None
    if derive_candidates:
        progress = progress_cb or MinimalProgress(
            cfg_obj.TIME_LIMIT_SEC, cfg_obj.LOG_SOLUTIONS_FREQUENCY_SECONDS
        )
        try:
            staffing = derive_candidate_allocations(
                input_data.deals,
                caps,
                live.allocations,
                horizon,
                scenario_id=CANDIDATE_SCENARIO_ID,
                stage_rates=input_data.stage_rates,
                rules=rules,
                config=cfg_obj,
                progress_cb=progress,
            )
        except PlanningError as exc:
            failures["staffing"] = f"{type(exc).__name__}: {exc}"
        if staffing is not None and staffing.proposed:
            candidate = live.with_allocations(
                staffing.proposed, scenario_id=CANDIDATE_SCENARIO_ID
            )
            try:
                comparisons[CANDIDATE_SCENARIO_ID] = compare_scenarios(
                    live, candidate, caps, pipeline_demand=pipeline, params=params, config=cfg_obj
                )
            except PlanningError as exc:
                failures[f"compare:{CANDIDATE_SCENARIO_ID}"] = f"{type(exc).__name__}: {exc}"

    report = PlanningReport(
        precheck=check,
        live_conflicts=batch.results,
        conflict_summary=summary,
        forecast=buckets,
        comparisons=comparisons,
        critical_path=cpa,
        staffing=staffing,
        failures=failures,
    )

    if active_reporter is not None:
        active_reporter.post_run(report)
    if export_dir is not None:
        _export_tables(report, Path(export_dir))

    return report


def _export_tables(report: PlanningReport, out_dir: Path) -> None:
    out_dir.mkdir(parents=True, exist_ok=True)
    conflicts_frame(report.live_conflicts).to_csv(out_dir / "conflicts.csv", index=False)
    buckets_frame(report.forecast).to_csv(out_dir / "forecast.csv", index=False)
    if report.staffing is not None:
        report.staffing.df_assignments.to_csv(out_dir / "assignments.csv", index=False)
        report.staffing.df_unfilled.to_csv(out_dir / "unfilled.csv", index=False)


def main() -> PlanningReport:
    """CLI entry point: synthetic data, full report, candidate staffing."""
    return run_planning(
        config=cfg,
        validate_config=True,
        input_builder=default_input_builder,
        reporter=Reporter(cfg),
        enable_reporting=True,
        derive_candidates=True,
        progress_cb=MinimalProgress(
            cfg.TIME_LIMIT_SEC, cfg.LOG_SOLUTIONS_FREQUENCY_SECONDS
        ),
        export_dir=Path("outputs"),
    )


if __name__ == "__main__":
    main()
