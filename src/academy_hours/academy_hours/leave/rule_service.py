from __future__ import annotations

import logging
from typing import Any, Optional

from ..common.result import service_call
from ..common.validators import optional_text, require_admin, require_non_empty
from ..core.enums import LeaveRuleType, Role
from ..core.exceptions import NotFoundError, ValidationError
from .model import LeaveRule, NewLeaveRule
from .repository import LeaveRuleRepository
from .rules.base import rule_number

logger = logging.getLogger(__name__)

_EDITABLE_FIELDS = frozenset(
    {
        "rule_name",
        "description",
        "rule_type",
        "rule_value",
        "applies_to_course_types",
        "applies_to_student_types",
        "blackout_dates",
        "priority",
        "is_active",
    }
)


def _rule_type(value) -> LeaveRuleType:
    if isinstance(value, LeaveRuleType):
        return value
    try:
        return LeaveRuleType(value)
    except ValueError:
        raise ValidationError(f"Unknown leave rule type: {value}")


def _check_value(rule_type: LeaveRuleType, value: Any, blackout_dates: list) -> None:
    if rule_type == LeaveRuleType.BLACKOUT_DATES:
        if not isinstance(blackout_dates, list):
            raise ValidationError("Blackout dates must be a list of periods")
        return
    if rule_type == LeaveRuleType.APPROVAL_REQUIRED:
        return
    try:
        number = rule_number(value)
    except (TypeError, ValueError):
        raise ValidationError(f"Rule value for {rule_type.value} must be a number")
    if number < 0:
        raise ValidationError("Rule value must not be negative")


class LeaveRuleService:
    """Administrator maintenance of the configurable leave rules."""

    def __init__(self, rules: LeaveRuleRepository):
        self._rules = rules

    @service_call("FETCH_ERROR", "Failed to fetch leave rules")
    def list_rules(self, *, active_only: bool = False) -> list[LeaveRule]:
        return list(self._rules.list_rules(active_only=bool(active_only)))

    @service_call("RULE_CREATE_ERROR", "Failed to create leave rule")
    def create_rule(
        self,
        *,
        rule_name: str,
        rule_type: LeaveRuleType,
        rule_value: Any = None,
        priority: int = 0,
        description: Optional[str] = None,
        applies_to_course_types: Optional[list[str]] = None,
        applies_to_student_types: Optional[list[str]] = None,
        blackout_dates: Optional[list[dict[str, Any]]] = None,
        actor_id: Optional[int] = None,
        actor_role: Optional[Role] = None,
    ) -> LeaveRule:
        actor = require_admin(actor_id, actor_role)
        rule_type = _rule_type(rule_type)
        _check_value(rule_type, rule_value, blackout_dates or [])

        created = self._rules.create_rule(
            rule=NewLeaveRule(
                rule_name=require_non_empty(rule_name, "Rule name"),
                rule_type=rule_type,
                rule_value=rule_value,
                priority=int(priority),
                description=optional_text(description),
                applies_to_course_types=list(applies_to_course_types or []),
                applies_to_student_types=list(applies_to_student_types or []),
                blackout_dates=list(blackout_dates or []),
            ),
            created_by=actor,
        )
        logger.info("Leave rule %s (%s) created by %s", created.rule_id, rule_type.value, actor)
        return created

    @service_call("RULE_UPDATE_ERROR", "Failed to update leave rule")
    def update_rule(
        self,
        *,
        rule_id: int,
        changes: dict[str, Any],
        actor_id: Optional[int] = None,
        actor_role: Optional[Role] = None,
    ) -> LeaveRule:
        actor = require_admin(actor_id, actor_role)
        unknown = set(changes) - _EDITABLE_FIELDS
        if unknown:
            raise ValidationError(f"Unknown leave rule fields: {', '.join(sorted(unknown))}")

        current = self._rules.get_rule(rule_id=int(rule_id))
        if not current:
            raise NotFoundError("Leave rule not found")

        changes = dict(changes)
        if "rule_name" in changes:
            changes["rule_name"] = require_non_empty(changes["rule_name"], "Rule name")
        if "rule_type" in changes:
            changes["rule_type"] = _rule_type(changes["rule_type"])
        rule_type = changes.get("rule_type", current.rule_type)
        _check_value(
            rule_type,
            changes.get("rule_value", current.rule_value),
            changes.get("blackout_dates", current.blackout_dates),
        )

        updated = self._rules.update_rule(rule_id=int(rule_id), changes=changes)
        if updated is None:
            raise NotFoundError("Leave rule not found")
        logger.info("Leave rule %s updated by %s: %s", rule_id, actor, sorted(changes))
        return updated

    @service_call("RULE_UPDATE_ERROR", "Failed to deactivate leave rule")
    def deactivate_rule(
        self, *, rule_id: int, actor_id: Optional[int] = None, actor_role: Optional[Role] = None
    ) -> bool:
        actor = require_admin(actor_id, actor_role)
        if not self._rules.get_rule(rule_id=int(rule_id)):
            raise NotFoundError("Leave rule not found")
        deactivated = self._rules.deactivate_rule(rule_id=int(rule_id))
        if deactivated:
            logger.info("Leave rule %s deactivated by %s", rule_id, actor)
        return deactivated
