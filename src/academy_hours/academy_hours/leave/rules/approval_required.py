from __future__ import annotations

from ..model import LeaveRule
from .base import LeaveRuleCheck, RuleContext, RuleOutcome


class ApprovalRequiredCheck(LeaveRuleCheck):
    """Never blocks; forces the request into manual review."""

    def evaluate(self, *, rule: LeaveRule, context: RuleContext) -> RuleOutcome:
        return RuleOutcome(requires_approval=True)
