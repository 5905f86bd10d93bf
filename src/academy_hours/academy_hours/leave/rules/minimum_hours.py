from __future__ import annotations

from ..model import LeaveRule
from .base import LeaveRuleCheck, RuleContext, RuleOutcome, format_number, rule_number


class MinimumHoursCheck(LeaveRuleCheck):
    """Advisory only: short requests are still accepted."""

    def evaluate(self, *, rule: LeaveRule, context: RuleContext) -> RuleOutcome:
        minimum = rule_number(rule.rule_value)
        if context.total_hours < minimum:
            return self.warning(rule, f"Minimum hours of {format_number(minimum)} not met")
        return RuleOutcome()
