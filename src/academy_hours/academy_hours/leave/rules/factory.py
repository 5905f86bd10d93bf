from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

from ...core.enums import LeaveRuleType
from ..model import LeaveRule
from .advance_notice import AdvanceNoticeCheck
from .approval_required import ApprovalRequiredCheck
from .base import LeaveRuleCheck
from .blackout_dates import BlackoutDatesCheck
from .consecutive_days import ConsecutiveDaysCheck
from .minimum_hours import MinimumHoursCheck
from .monthly_limit import MonthlyLimitCheck

_CHECKS: dict[LeaveRuleType, type[LeaveRuleCheck]] = {
    LeaveRuleType.MONTHLY_LIMIT: MonthlyLimitCheck,
    LeaveRuleType.ADVANCE_NOTICE: AdvanceNoticeCheck,
    LeaveRuleType.CONSECUTIVE_DAYS: ConsecutiveDaysCheck,
    LeaveRuleType.MINIMUM_HOURS: MinimumHoursCheck,
    LeaveRuleType.APPROVAL_REQUIRED: ApprovalRequiredCheck,
    LeaveRuleType.BLACKOUT_DATES: BlackoutDatesCheck,
}


@dataclass
class LeaveRuleCheckFactory:
    """Factory Pattern: choose the check implementing a rule's type."""

    def for_rule(self, rule: LeaveRule) -> Optional[LeaveRuleCheck]:
        check = _CHECKS.get(rule.rule_type)
        return check() if check else None
