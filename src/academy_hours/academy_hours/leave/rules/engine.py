from __future__ import annotations

import logging
from datetime import date, datetime
from typing import Optional

from ...common.datetime_utils import month_bounds
from ...core.enums import LeaveRuleType, LeaveType
from ..model import RuleMessage, RulesSummary, RulesValidation
from ..repository import LeaveRepository, LeaveRuleRepository
from .base import RuleContext
from .factory import LeaveRuleCheckFactory

logger = logging.getLogger(__name__)


class LeaveRulesEngine:
    """Runs the configured leave rules, highest priority first."""

    def __init__(
        self,
        rules: LeaveRuleRepository,
        requests: LeaveRepository,
        *,
        factory: Optional[LeaveRuleCheckFactory] = None,
    ):
        self._rules = rules
        self._requests = requests
        self._factory = factory or LeaveRuleCheckFactory()

    def evaluate(
        self,
        *,
        student_id: int,
        start_date: date,
        end_date: date,
        leave_type: LeaveType,
        total_hours: float,
        now: datetime,
    ) -> RulesValidation:
        active = sorted(self._rules.list_rules(active_only=True), key=lambda r: r.priority, reverse=True)
        if not active:
            return RulesValidation(is_valid=True)

        profile = self._requests.get_student_profile(student_id=int(student_id))
        student_type = profile.student_type if profile else None
        course_type = profile.course_type if profile else None
        applicable = [r for r in active if r.applies_to(student_type=student_type, course_type=course_type)]

        approved_this_month = 0
        if any(r.rule_type == LeaveRuleType.MONTHLY_LIMIT for r in applicable):
            month_start, month_end = month_bounds(start_date)
            approved_this_month = self._requests.count_approved_in_month(
                student_id=int(student_id), month_start=month_start, month_end=month_end
            )

        context = RuleContext(
            student_id=int(student_id),
            start_date=start_date,
            end_date=end_date,
            leave_type=leave_type,
            total_hours=float(total_hours),
            now=now,
            approved_this_month=approved_this_month,
        )

        errors: list[RuleMessage] = []
        warnings: list[RuleMessage] = []
        requires_approval = False
        violations = 0
        for rule in applicable:
            check = self._factory.for_rule(rule)
            if check is None:
                logger.warning("Leave rule %s has unsupported type %s; skipped", rule.rule_id, rule.rule_type)
                continue
            try:
                outcome = check.evaluate(rule=rule, context=context)
            except (TypeError, ValueError):
                logger.warning("Leave rule %s has an invalid value %r; skipped", rule.rule_id, rule.rule_value)
                continue
            errors.extend(outcome.errors)
            warnings.extend(outcome.warnings)
            requires_approval = requires_approval or outcome.requires_approval
            if outcome.violated:
                violations += 1

        return RulesValidation(
            is_valid=violations == 0,
            errors=errors,
            warnings=warnings,
            summary=RulesSummary(
                total_rules_checked=len(active),
                rules_violated=violations,
                can_proceed=violations == 0,
                requires_approval=requires_approval or violations > 0,
            ),
        )
