from ortools.sat.python import cp_model


class MinimalProgress(cp_model.CpSolverSolutionCallback):
    """
    Prints one line per improving solution, at most every ``log_every_sec``.
    """

    def __init__(self, time_limit_sec: float, log_every_sec: float = 5.0):
        super().__init__()
        self.time_limit = (
            float(time_limit_sec) if time_limit_sec and time_limit_sec > 0 else None
        )
        self.log_every = float(log_every_sec)
        self.last_time = -1.0
        self.sols = 0
        self._best_field_width = 0
        self.history: list[tuple[float, float, float]] = []
        self.has_performed_initial_print = False

    def OnSolutionCallback(self):
        if not self.has_performed_initial_print:
            print(
                "\nbest: weighted unfilled hours of the best staffing found so far\n"
                "bound: proven lower bound on that value\n"
                "gap: distance between best and bound, as a share of best\n"
            )
            self.has_performed_initial_print = True
        self.sols += 1
        now = self.WallTime()
        best = self.ObjectiveValue()
        bound = self.BestObjectiveBound()
        self.history.append((now, best, bound))

        if self.last_time < 0 or (now - self.last_time) >= self.log_every:
            best_str = f"{best:,.0f}"
            self._best_field_width = max(self._best_field_width, len(best_str))
            best_field = best_str.ljust(self._best_field_width)

            if abs(best) > 1e-9:
                gap_str = f"{100.0 * abs(best - bound) / abs(best):6.2f}%"
            else:
                gap_str = "  0.00%"

            if self.time_limit:
                pct_field = f"{min(100.0, 100.0 * now / self.time_limit):6.2f}%"
            else:
                pct_field = "  n/a "
            print(
                f"[{now:5.1f}s] sols={self.sols:<5d} | best={best_field} | "
                f"bound={bound:,.0f} | gap={gap_str} | time used={pct_field}",
                flush=True,
            )
            self.last_time = now

    def solution_history(self) -> list[tuple[float, float, float]]:
        """Return collected (wall_time, best_obj, best_bound) tuples."""
        return list(self.history)
