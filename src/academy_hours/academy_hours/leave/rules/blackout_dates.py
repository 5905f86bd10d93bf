from __future__ import annotations

from datetime import date
from typing import Any, Optional

from ...common.datetime_utils import parse_iso_date
from ..model import LeaveRule
from .base import LeaveRuleCheck, RuleContext, RuleOutcome


def _period_bound(period: dict[str, Any], *keys: str) -> Optional[date]:
    for key in keys:
        raw = period.get(key)
        if raw:
            return raw if isinstance(raw, date) else parse_iso_date(str(raw)[:10])
    return None


class BlackoutDatesCheck(LeaveRuleCheck):
    """Rejects requests overlapping any configured period ({startDate, endDate, reason})."""

    def evaluate(self, *, rule: LeaveRule, context: RuleContext) -> RuleOutcome:
        for period in rule.blackout_dates:
            start = _period_bound(period, "startDate", "start_date")
            end = _period_bound(period, "endDate", "end_date") or start
            if start is None or end is None:
                continue
            if context.start_date <= end and context.end_date >= start:
                return self.error(rule, "Leave request overlaps with blackout dates")
        return RuleOutcome()
