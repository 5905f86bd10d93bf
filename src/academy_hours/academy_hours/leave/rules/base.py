from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from datetime import date, datetime
from typing import Any

from ...core.enums import LeaveType
from ..model import LeaveRule, RuleMessage


@dataclass(frozen=True)
class RuleContext:
    """What a rule may look at when judging one leave request."""

    student_id: int
    start_date: date
    end_date: date
    leave_type: LeaveType
    total_hours: float
    now: datetime
    approved_this_month: int = 0


@dataclass(frozen=True)
class RuleOutcome:
    errors: list[RuleMessage] = field(default_factory=list)
    warnings: list[RuleMessage] = field(default_factory=list)
    requires_approval: bool = False

    @property
    def violated(self) -> bool:
        return bool(self.errors)


class LeaveRuleCheck(ABC):
    """Strategy Pattern: one policy check per configured rule type."""

    @abstractmethod
    def evaluate(self, *, rule: LeaveRule, context: RuleContext) -> RuleOutcome:
        raise NotImplementedError

    @staticmethod
    def error(rule: LeaveRule, message: str) -> RuleOutcome:
        return RuleOutcome(errors=[RuleMessage(rule_id=rule.rule_id, rule_name=rule.rule_name, message=message)])

    @staticmethod
    def warning(rule: LeaveRule, message: str) -> RuleOutcome:
        return RuleOutcome(
            warnings=[RuleMessage(rule_id=rule.rule_id, rule_name=rule.rule_name, message=message, severity="warning")]
        )


def rule_number(value: Any) -> float:
    """Rule values are stored as JSON: a number, a numeric string or {"value": n}."""
    if isinstance(value, dict):
        value = value.get("value")
    return float(value)


def format_number(value: float) -> str:
    return f"{value:g}"
