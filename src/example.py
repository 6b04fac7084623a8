"""
Module with example code for running the resource planner.

There are three ways to run the code:

1. Run the code with default options. This will generate a synthetic
    workforce, live plan and pipeline from the config and plan against it.
2. Run the code with a small planning snapshot defined via code.
3. Run the code with a snapshot pre-defined in a JSON file, and derive
    candidate staffing for the open pipeline.

Usage via cli:
    python3 -m src.example --option 1
"""

from __future__ import annotations

import argparse
from datetime import date
from pathlib import Path

from resplan import Config, PlanningInput, run_planning
from resplan.capacity import EmployeeCapacity
from resplan.generate.workforce import planning_input_from_json
from resplan.main import MinimalProgress, Reporter, default_input_builder
from resplan.records import Allocation, PipelineDeal, ResourceDemand, Scenario, Task
from resplan.rules.assignment import AssignmentVariablesRule
from resplan.rules.base import RuleSpec
from resplan.rules.capacity_cap import CapacityCapRule
from resplan.rules.headcount import HeadcountRule
from resplan.rules.shortfall import ShortfallRule

cfg = Config(
    BASE_DATE=date(2025, 1, 1),
    FORECAST_MONTHS=6,
    CONFIDENCE_THRESHOLD=0.3,
    TIME_LIMIT_SEC=10.0,
    NUM_PARALLEL_WORKERS=4,
    LOG_SOLUTIONS_FREQUENCY_SECONDS=5.0,
    SEED=3,
)


def _example_rule_specs() -> list[RuleSpec]:
    """Shortfall priced per person-hour rather than per hundredth of an hour."""
    return [
        RuleSpec(cls=AssignmentVariablesRule, order=0),
        RuleSpec(cls=HeadcountRule, order=10),
        RuleSpec(cls=CapacityCapRule, order=20),
        RuleSpec(cls=ShortfallRule, order=30, settings={"scale_int": 1.0}),
    ]


def parse_args() -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Run resource planning examples.")
    parser.add_argument(
        "--option",
        type=int,
        default=3,
        choices=(1, 2, 3),
        help="Example scenario to run (default: 3).",
    )
    return parser.parse_args()


def _inline_snapshot(base: date) -> PlanningInput:
    capacities = [
        EmployeeCapacity("E1", 40.0, frozenset({("backend", "senior")}), name="Ada"),
        EmployeeCapacity("E2", 32.0, frozenset({("frontend", "mid")}), name="Bram"),
    ]
    live = Scenario(
        id="live",
        base_date=base,
        forecast_period_months=3,
        allocations=(
            Allocation("A1", "E1", "P1", "confirmed", 60.0, base, date(2025, 2, 28)),
            Allocation("A2", "E1", "P2", "confirmed", 60.0, date(2025, 2, 1), None),
            Allocation("A3", "E2", "P1", "probable", 50.0, base, date(2025, 3, 31), 4),
        ),
    )
    deal = PipelineDeal(
        id="D1",
        name="Portal rebuild",
        stage="proposal",
        probability=80.0,
        demands=(
            ResourceDemand("frontend", "mid", 1, 50.0, date(2025, 2, 1), date(2025, 3, 31)),
        ),
    )
    tasks = [
        Task("design", 5.0),
        Task("build", 10.0, frozenset({"design"})),
        Task("docs", 3.0, frozenset({"design"})),
        Task("release", 1.0, frozenset({"build", "docs"})),
    ]
    return PlanningInput(capacities=capacities, live=live, deals=[deal], tasks=tasks)


def run_option(option: int) -> None:
    print(f"Running example code with option {option}")

    # Run the code with default options. This will generate
    # synthetic data from the config and plan against it.
    if option == 1:

        # The parameters below are defaults, with the exception of config,
        # they can be omitted i.e. the below is equivalent to:
        # run_planning(cfg)
        run_planning(
            config=cfg,
            validate_config=True,
            input_builder=default_input_builder,
            reporter=Reporter(cfg),
            enable_reporting=True,
        )

    # Run the code with a snapshot defined via code.
    elif option == 2:
        run_planning(cfg, data=_inline_snapshot(cfg.BASE_DATE))

    # Run the code with a snapshot defined via JSON. Typical production use.
    elif option == 3:
        data = planning_input_from_json(Path("src/example_planning.json"))
        cfg.BASE_DATE = data.live.base_date
        cfg.FORECAST_MONTHS = data.live.forecast_period_months
        run_planning(
            cfg,
            data=data,
            derive_candidates=True,
            rules=_example_rule_specs(),
            progress_cb=MinimalProgress(
                cfg.TIME_LIMIT_SEC, cfg.LOG_SOLUTIONS_FREQUENCY_SECONDS
            ),
            export_dir=Path("outputs"),
        )
    else:
        raise SystemExit(f"Unknown option {option}")


def main() -> None:
    args = parse_args()
    run_option(args.option)


if __name__ == "__main__":
    main()
