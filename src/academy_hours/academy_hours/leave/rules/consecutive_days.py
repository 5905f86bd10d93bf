from __future__ import annotations

from ..model import LeaveRule
from .base import LeaveRuleCheck, RuleContext, RuleOutcome, format_number, rule_number


class ConsecutiveDaysCheck(LeaveRuleCheck):
    def evaluate(self, *, rule: LeaveRule, context: RuleContext) -> RuleOutcome:
        max_days = rule_number(rule.rule_value)
        days = (context.end_date - context.start_date).days + 1
        if days > max_days:
            return self.error(rule, f"Maximum consecutive days limit of {format_number(max_days)} exceeded")
        return RuleOutcome()
