# resplan/solver.py
from __future__ import annotations

from typing import Tuple

from ortools.sat.python import cp_model

from resplan.build import BuildContext
from resplan.config import Config


def setup_solver(cfg: Config) -> cp_model.CpSolver:
    solver = cp_model.CpSolver()
    solver.parameters.max_time_in_seconds = cfg.TIME_LIMIT_SEC
    solver.parameters.num_search_workers = cfg.NUM_PARALLEL_WORKERS
    solver.parameters.log_search_progress = False
    if cfg.SEED is not None:
        solver.parameters.random_seed = int(cfg.SEED)
    return solver


def solve_model(
    ctx: BuildContext, progress_cb=None
) -> Tuple[cp_model.CpSolver, str]:
    """
    Run the solver on a built context.
    Returns: (solver, status_name)
    """
    solver = setup_solver(ctx.cfg)
    status = solver.Solve(ctx.m, progress_cb)
    return solver, solver.StatusName(status)
