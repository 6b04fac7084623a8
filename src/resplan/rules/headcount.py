from resplan.rules.base import Rule


class HeadcountRule(Rule):
    """
    Never propose more people for a line than it asks for.

    Settings:
      allow_overstaff: bool (default False)
    """

    order = 10
    name = "Headcount"

    def add_hard(self):
        if not self.enabled or self.setting("allow_overstaff", False):
            return
        D, M = self.model.data, self.model.m
        for ln in D.lines:
            picked = self.picked(ln.index)
            if picked:
                M.Add(sum(picked) <= ln.required_count)
