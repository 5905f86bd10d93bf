"""Refund tiers for leave requests, by notice given before the class starts."""

from __future__ import annotations

from dataclasses import dataclass, field

from ..core.constants import (
    DEFAULT_LEAVE_REFUND_HOURS,
    FULL_REFUND_HOURS,
    LIMITED_REFUND_HOURS,
    PARTIAL_REFUND_HOURS,
    REFUND_FULL,
    REFUND_LIMITED,
    REFUND_MEDICAL_EMERGENCY,
    REFUND_NONE,
    REFUND_PARTIAL,
)
from ..core.enums import LeaveType

PAST_CLASS_ERROR = "Cannot submit leave request for past classes"
LIMITED_REFUND_WARNING = "Limited refund available for requests within 24 hours"
NO_REFUND_WARNING = "No refund available for requests within 2 hours of class"
MEDICAL_CERTIFICATE_WARNING = "Medical certificate may be required for enhanced refund"
NOTICE_WARNING = "Request does not meet 48-hour advance notice requirement"

MEDICAL_LEAVE_TYPES = frozenset({LeaveType.SICK, LeaveType.EMERGENCY})


@dataclass(frozen=True)
class RefundDecision:
    refund_percentage: int
    hours_to_refund: float
    meets_48_hour_rule: bool
    auto_approval: bool
    warnings: list[str] = field(default_factory=list)


def decide_refund(hours_before_class: float, leave_type: LeaveType) -> RefundDecision:
    """Tier boundaries are inclusive: exactly 48.0 hours is a full refund."""
    warnings: list[str] = []
    auto_approval = False

    if hours_before_class >= FULL_REFUND_HOURS:
        percentage = REFUND_FULL
        auto_approval = True
    elif hours_before_class >= PARTIAL_REFUND_HOURS:
        percentage = REFUND_PARTIAL
    elif hours_before_class >= LIMITED_REFUND_HOURS:
        percentage = REFUND_LIMITED
        warnings.append(LIMITED_REFUND_WARNING)
    else:
        percentage = REFUND_NONE
        warnings.append(NO_REFUND_WARNING)

    if leave_type in MEDICAL_LEAVE_TYPES and LIMITED_REFUND_HOURS <= hours_before_class < FULL_REFUND_HOURS:
        percentage = REFUND_MEDICAL_EMERGENCY
        warnings.append(MEDICAL_CERTIFICATE_WARNING)

    meets_rule = hours_before_class >= FULL_REFUND_HOURS
    if not meets_rule:
        warnings.append(NOTICE_WARNING)

    return RefundDecision(
        refund_percentage=percentage,
        hours_to_refund=float(DEFAULT_LEAVE_REFUND_HOURS) if percentage > REFUND_NONE else 0.0,
        meets_48_hour_rule=meets_rule,
        auto_approval=auto_approval,
        warnings=warnings,
    )
