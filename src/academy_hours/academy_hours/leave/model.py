from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Optional

from ..core.enums import LeaveRuleType, LeaveStatus, LeaveType
from ..ledger.model import HourTransaction
from ..postponements.model import PostponementOutcome


@dataclass(frozen=True)
class LeaveRequest:
    leave_request_id: int
    student_id: int
    class_date: datetime
    leave_type: LeaveType
    reason: str
    hours_before_class: float
    meets_48_hour_rule: bool
    refund_percentage: int
    hours_to_refund: float
    status: LeaveStatus
    created_at: datetime
    class_id: Optional[int] = None
    booking_id: Optional[int] = None
    class_type: Optional[str] = None
    teacher_id: Optional[int] = None
    teacher_name: Optional[str] = None
    medical_certificate_url: Optional[str] = None
    additional_notes: Optional[str] = None
    auto_approved: bool = False
    refund_processed: bool = False
    refund_transaction_id: Optional[int] = None
    decided_by: Optional[int] = None
    decided_at: Optional[datetime] = None
    admin_notes: Optional[str] = None


@dataclass(frozen=True)
class NewLeaveRequest:
    student_id: int
    class_date: datetime
    leave_type: LeaveType
    reason: str
    hours_before_class: float
    meets_48_hour_rule: bool
    refund_percentage: int
    hours_to_refund: float
    status: LeaveStatus
    auto_approved: bool
    class_id: Optional[int] = None
    booking_id: Optional[int] = None
    class_type: Optional[str] = None
    teacher_id: Optional[int] = None
    teacher_name: Optional[str] = None
    medical_certificate_url: Optional[str] = None
    additional_notes: Optional[str] = None


@dataclass(frozen=True)
class RuleMessage:
    rule_id: int
    rule_name: str
    message: str
    severity: str = "error"


@dataclass(frozen=True)
class RulesSummary:
    total_rules_checked: int
    rules_violated: int
    can_proceed: bool
    requires_approval: bool


@dataclass(frozen=True)
class RulesValidation:
    is_valid: bool
    errors: list[RuleMessage] = field(default_factory=list)
    warnings: list[RuleMessage] = field(default_factory=list)
    summary: RulesSummary = field(default_factory=lambda: RulesSummary(0, 0, True, False))


@dataclass(frozen=True)
class LeaveValidation:
    is_valid: bool
    hours_before_class: float
    meets_48_hour_rule: bool
    expected_refund_percentage: int
    expected_hours_refund: float
    auto_approval: bool
    warnings: list[str] = field(default_factory=list)
    errors: list[str] = field(default_factory=list)
    rules: Optional[RulesSummary] = None


@dataclass(frozen=True)
class LeaveOutcome:
    """Result of a submission or review, with the side effects it triggered."""

    request: LeaveRequest
    validation: Optional[LeaveValidation] = None
    refund: Optional[HourTransaction] = None
    postponement: Optional[PostponementOutcome] = None
    postponement_error: Optional[str] = None


@dataclass(frozen=True)
class LeavePage:
    items: list[LeaveRequest]
    page: int
    limit: int
    total: int
    total_pages: int
    has_next: bool
    has_previous: bool


@dataclass(frozen=True)
class LeaveStats:
    total_requests: int
    approved_requests: int
    rejected_requests: int
    pending_requests: int
    cancelled_requests: int
    total_hours_refunded: float
    average_refund_percentage: float
    requests_by_type: dict[str, int]


@dataclass(frozen=True)
class LeaveRule:
    rule_id: int
    rule_name: str
    rule_type: LeaveRuleType
    rule_value: Any
    priority: int = 0
    is_active: bool = True
    description: Optional[str] = None
    applies_to_course_types: list[str] = field(default_factory=list)
    applies_to_student_types: list[str] = field(default_factory=list)
    blackout_dates: list[dict[str, Any]] = field(default_factory=list)
    created_by: Optional[int] = None
    created_at: Optional[datetime] = None

    def applies_to(self, *, student_type: Optional[str], course_type: Optional[str]) -> bool:
        if self.applies_to_student_types and student_type not in self.applies_to_student_types:
            return False
        if self.applies_to_course_types and course_type not in self.applies_to_course_types:
            return False
        return True


@dataclass(frozen=True)
class NewLeaveRule:
    rule_name: str
    rule_type: LeaveRuleType
    rule_value: Any
    priority: int = 0
    is_active: bool = True
    description: Optional[str] = None
    applies_to_course_types: list[str] = field(default_factory=list)
    applies_to_student_types: list[str] = field(default_factory=list)
    blackout_dates: list[dict[str, Any]] = field(default_factory=list)


@dataclass(frozen=True)
class StudentProfile:
    student_id: int
    student_type: Optional[str] = None
    course_type: Optional[str] = None
