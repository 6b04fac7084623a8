from resplan.rules.base import Rule


class CapacityCapRule(Rule):
    """
    Hard cap on each employee's total allocation in every elementary interval.

    Headroom is 100% minus what the employee is already committed to in that
    interval (hundredths, see input_data.PCT_SCALE). An employee who is
    already at or over 100% has no headroom.
    """

    order = 20
    name = "CapacityCap"

    def add_hard(self):
        if not self.enabled:
            return
        D, M, x = self.model.data, self.model.m, self.model.x
        by_employee: dict[int, list] = {}
        for ln in D.lines:
            for e in D.eligible.get(ln.index, []):
                by_employee.setdefault(e, []).append(ln)

        for e, lines in by_employee.items():
            for k in range(len(D.intervals)):
                terms = [
                    ln.scaled_pct * x[(e, ln.index)]
                    for ln in lines
                    if k in D.line_intervals[ln.index]
                ]
                if terms:
                    M.Add(sum(terms) <= D.remaining_pct(e, k))

    def report_descriptors(self):
        D = self.model.data
        full = sorted(
            {
                D.capacities[e].employee_id
                for (e, k) in D.committed_pct
                if D.remaining_pct(e, k) == 0
            }
        )
        return [{"rule": self.name, "employees_without_headroom": full}]
