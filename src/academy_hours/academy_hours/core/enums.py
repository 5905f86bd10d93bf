from __future__ import annotations

from enum import Enum


class Role(str, Enum):
    """Roles used for authorization checks."""

    ADMIN = "admin"
    TEACHER = "teacher"
    STUDENT = "student"


class TransactionType(str, Enum):
    PURCHASE = "purchase"
    DEDUCTION = "deduction"
    ADJUSTMENT = "adjustment"
    TRANSFER = "transfer"
    REVERSAL = "reversal"
    BONUS = "bonus"
    REFUND = "refund"
    EXPIRY = "expiry"


class PaymentStatus(str, Enum):
    PENDING = "pending"
    COMPLETED = "completed"
    FAILED = "failed"


class AlertType(str, Enum):
    LOW_BALANCE = "low_balance"
    NO_HOURS = "no_hours"
    EXPIRING_SOON = "expiring_soon"
    EXPIRED = "expired"


class AdjustmentType(str, Enum):
    ADD = "add"
    SUBTRACT = "subtract"


class ApprovalStatus(str, Enum):
    """Manual adjustment approval workflow."""

    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"


class LeaveType(str, Enum):
    SICK = "sick"
    EMERGENCY = "emergency"
    PERSONAL = "personal"
    WORK = "work"
    FAMILY = "family"
    TRAVEL = "travel"
    OTHER = "other"


class LeaveStatus(str, Enum):
    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"
    CANCELLED = "cancelled"


class LeaveRuleType(str, Enum):
    MONTHLY_LIMIT = "monthly_limit"
    ADVANCE_NOTICE = "advance_notice"
    CONSECUTIVE_DAYS = "consecutive_days"
    MINIMUM_HOURS = "minimum_hours"
    APPROVAL_REQUIRED = "approval_required"
    BLACKOUT_DATES = "blackout_dates"


class PostponementReason(str, Enum):
    STUDENT_LEAVE = "student_leave"
    TEACHER_UNAVAILABLE = "teacher_unavailable"
    EMERGENCY = "emergency"
    SYSTEM_MAINTENANCE = "system_maintenance"
    OTHER = "other"


class PostponementType(str, Enum):
    AUTOMATIC = "automatic"
    MANUAL = "manual"


class PostponementStatus(str, Enum):
    PENDING = "pending"
    CONFIRMED = "confirmed"
    MAKE_UP_SCHEDULED = "make_up_scheduled"
    CANCELLED = "cancelled"
    COMPLETED = "completed"


class MakeUpStatus(str, Enum):
    PENDING = "pending"
    SUGGESTED = "suggested"
    STUDENT_SELECTED = "student_selected"
    ADMIN_APPROVED = "admin_approved"
    SCHEDULED = "scheduled"
    REJECTED = "rejected"
    EXPIRED = "expired"


class PostponementEvent(str, Enum):
    POSTPONEMENT_CREATED = "postponement_created"
    SUGGESTIONS_GENERATED = "suggestions_generated"
    STUDENT_SELECTED = "student_selected"
    ADMIN_APPROVED = "admin_approved"
    MAKEUP_REJECTED = "makeup_rejected"
    MAKEUP_EXPIRED = "makeup_expired"
    STATUS_CHANGED = "status_changed"


class BookingStatus(str, Enum):
    CONFIRMED = "confirmed"
    POSTPONED = "postponed"
    CANCELLED = "cancelled"
    COMPLETED = "completed"


class DemandLevel(str, Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    PEAK = "peak"


class RecommendationType(str, Enum):
    CAPACITY_ADJUSTMENT = "capacity_adjustment"
    SCHEDULE_OPTIMIZATION = "schedule_optimization"
    RESOURCE_REALLOCATION = "resource_reallocation"
    PRICING_STRATEGY = "pricing_strategy"
