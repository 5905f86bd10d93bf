from __future__ import annotations

from ..model import LeaveRule
from .base import LeaveRuleCheck, RuleContext, RuleOutcome, format_number, rule_number


class AdvanceNoticeCheck(LeaveRuleCheck):
    """Rule value is the number of whole days of notice required."""

    def evaluate(self, *, rule: LeaveRule, context: RuleContext) -> RuleOutcome:
        required_days = rule_number(rule.rule_value)
        advance_days = (context.start_date - context.now.date()).days
        if advance_days < required_days:
            return self.error(rule, f"Advance notice of {format_number(required_days)} days required")
        return RuleOutcome()
