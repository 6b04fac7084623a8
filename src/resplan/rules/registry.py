from __future__ import annotations

from typing import Sequence, Tuple, Type

from resplan.rules.assignment import AssignmentVariablesRule
from resplan.rules.base import Rule, RuleSpec
from resplan.rules.capacity_cap import CapacityCapRule
from resplan.rules.headcount import HeadcountRule
from resplan.rules.shortfall import ShortfallRule

RuleTemplate = Tuple[Type[Rule], int, dict[str, float]]

ASSIGNMENT_RULE_TEMPLATE: RuleTemplate = (AssignmentVariablesRule, 0, {})
HEADCOUNT_RULE_TEMPLATE: RuleTemplate = (HeadcountRule, 10, {})
CAPACITY_CAP_RULE_TEMPLATE: RuleTemplate = (CapacityCapRule, 20, {})
SHORTFALL_RULE_TEMPLATE: RuleTemplate = (
    ShortfallRule,
    30,
    {
        "scale_int": 100.0,
        "min_coeff": 1,
    },
)
_DEFAULT_RULE_TEMPLATES: list[RuleTemplate] = [
    ASSIGNMENT_RULE_TEMPLATE,
    HEADCOUNT_RULE_TEMPLATE,
    CAPACITY_CAP_RULE_TEMPLATE,
    SHORTFALL_RULE_TEMPLATE,
]


def default_rule_specs() -> list[RuleSpec]:
    """Return fresh copies of the default rule specifications."""
    return [
        RuleSpec(cls=cls, order=order, settings=dict(settings))
        for cls, order, settings in _DEFAULT_RULE_TEMPLATES
    ]


def normalize_rule_specs(
    rules: Sequence[RuleSpec | Type[Rule]] | None,
) -> list[RuleSpec]:
    """Turn user-provided rules into RuleSpec objects."""
    if rules is None:
        return default_rule_specs()

    normalized: list[RuleSpec] = []
    for item in rules:
        if isinstance(item, RuleSpec):
            normalized.append(item)
        elif isinstance(item, type) and issubclass(item, Rule):
            normalized.append(RuleSpec(cls=item))
        else:
            raise TypeError(
                "Rules must be RuleSpec instances or Rule subclasses; "
                f"got {type(item)!r}"
            )
    return normalized


def instantiate_rules(model, specs: Sequence[RuleSpec]) -> list[Rule]:
    """Create rule objects in ascending order; disabled specs are skipped."""
    rules: list[Rule] = []
    for spec in specs:
        if not spec.enabled:
            continue
        rule = spec.cls(model, **spec.settings)
        if spec.order is not None:
            rule.order = spec.order
        rules.append(rule)
    return sorted(rules, key=lambda r: r.order)
