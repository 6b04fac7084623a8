from resplan.rules.base import Rule


class AssignmentVariablesRule(Rule):
    """x[(e, l)] = 1 when employee e is proposed for demand line l."""

    order = 0
    name = "AssignmentVariables"

    def declare_vars(self):
        D, m = self.model.data, self.model.m
        self.model.x = {
            (e, ln.index): m.NewBoolVar(f"x_e{e}_l{ln.index}")
            for ln in D.lines
            for e in D.eligible.get(ln.index, [])
        }

    def report_descriptors(self):
        D = self.model.data
        no_candidates = [
            f"{ln.deal_id}#{ln.line_index} {ln.skill_category}/{ln.experience_level}"
            for ln in D.lines
            if not D.eligible.get(ln.index)
        ]
        return [
            {
                "rule": self.name,
                "decision_vars": len(self.model.x),
                "lines_without_candidates": no_candidates,
            }
        ]
