from __future__ import annotations

from ..model import LeaveRule
from .base import LeaveRuleCheck, RuleContext, RuleOutcome, format_number, rule_number


class MonthlyLimitCheck(LeaveRuleCheck):
    """Caps approved leave requests within the calendar month of the class."""

    def evaluate(self, *, rule: LeaveRule, context: RuleContext) -> RuleOutcome:
        limit = rule_number(rule.rule_value)
        if context.approved_this_month >= limit:
            return self.error(rule, f"Monthly limit of {format_number(limit)} leaves exceeded")
        return RuleOutcome()
