from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, time
from typing import Any, Optional

from ..core.constants import DEFAULT_CLASS_CAPACITY, DEFAULT_CLASS_DURATION_MINUTES
from ..core.enums import (
    BookingStatus,
    MakeUpStatus,
    PostponementEvent,
    PostponementReason,
    PostponementStatus,
    PostponementType,
)


@dataclass(frozen=True)
class ClassPostponement:
    postponement_id: int
    booking_id: int
    student_id: int
    class_id: int
    reason: PostponementReason
    postponement_type: PostponementType
    status: PostponementStatus
    hours_affected: float
    created_at: datetime
    leave_request_id: Optional[int] = None
    original_class_time: Optional[datetime] = None
    notes: Optional[str] = None
    created_by: Optional[int] = None


@dataclass(frozen=True)
class NewPostponement:
    booking_id: int
    reason: PostponementReason
    postponement_type: PostponementType
    leave_request_id: Optional[int] = None
    notes: Optional[str] = None
    created_by: Optional[int] = None


@dataclass(frozen=True)
class PostponementEventRecord:
    event_id: int
    postponement_id: int
    event_type: PostponementEvent
    created_at: datetime
    details: dict[str, Any] = field(default_factory=dict)
    created_by: Optional[int] = None


@dataclass(frozen=True)
class Booking:
    booking_id: int
    student_id: int
    class_id: int
    scheduled_at: datetime
    status: BookingStatus
    duration_minutes: int = DEFAULT_CLASS_DURATION_MINUTES
    is_makeup: bool = False


@dataclass(frozen=True)
class ClassOffering:
    """A recurring weekly class (day_of_week: Sunday=0)."""

    class_id: int
    class_name: str
    course_type: str
    day_of_week: int
    start_time: time
    end_time: time
    teacher_id: Optional[int] = None
    teacher_name: Optional[str] = None
    capacity: int = DEFAULT_CLASS_CAPACITY
    current_enrollment: int = 0
    duration_minutes: int = DEFAULT_CLASS_DURATION_MINUTES
    is_online: bool = False
    location: Optional[str] = None

    @property
    def available_spots(self) -> int:
        return max(self.capacity - self.current_enrollment, 0)


@dataclass(frozen=True)
class SubScores:
    content: float
    schedule: float
    teacher: float
    class_size: float
    location: float
    timing: float
    availability: float


@dataclass(frozen=True)
class MakeUpSuggestion:
    suggestion_id: str
    class_id: int
    class_name: str
    course_type: str
    start_time: datetime
    end_time: datetime
    duration_minutes: int
    compatibility_score: float
    scores: SubScores
    recommendation_strength: str
    reasoning: str
    teacher_id: Optional[int] = None
    teacher_name: Optional[str] = None
    is_online: bool = False
    location: Optional[str] = None
    available_spots: int = 0
    benefits: list[str] = field(default_factory=list)
    drawbacks: list[str] = field(default_factory=list)


@dataclass(frozen=True)
class MakeUpClass:
    makeup_class_id: int
    postponement_id: int
    student_id: int
    status: MakeUpStatus
    created_at: datetime
    suggestions: list[MakeUpSuggestion] = field(default_factory=list)
    selection_deadline: Optional[datetime] = None
    selected_suggestion_id: Optional[str] = None
    selected_class_id: Optional[int] = None
    selected_start_time: Optional[datetime] = None
    student_selected: bool = False
    student_selected_at: Optional[datetime] = None
    admin_approved: bool = False
    approved_by: Optional[int] = None
    approved_at: Optional[datetime] = None
    scheduled_booking_id: Optional[int] = None
    rejection_reason: Optional[str] = None

    def find_suggestion(self, suggestion_id: str) -> Optional[MakeUpSuggestion]:
        return next((s for s in self.suggestions if s.suggestion_id == suggestion_id), None)


DEFAULT_PREFERRED_DAYS = [1, 2, 3, 4, 5]
DEFAULT_TIME_WINDOWS = ["09:00-12:00", "14:00-17:00"]


@dataclass(frozen=True)
class SchedulePreferences:
    student_id: int
    preferred_days: list[int] = field(default_factory=lambda: list(DEFAULT_PREFERRED_DAYS))
    preferred_times: dict[str, list[str]] = field(
        default_factory=lambda: {str(d): list(DEFAULT_TIME_WINDOWS) for d in DEFAULT_PREFERRED_DAYS}
    )
    preferred_teachers: list[int] = field(default_factory=list)
    avoided_teachers: list[int] = field(default_factory=list)
    preferred_class_size_min: int = 1
    preferred_class_size_max: int = DEFAULT_CLASS_CAPACITY
    willing_to_change_teacher: bool = True
    advance_notice_required_hours: int = 24


@dataclass(frozen=True)
class PostponementOutcome:
    postponement: ClassPostponement
    makeup: Optional[MakeUpClass] = None
    suggestions_error: Optional[str] = None


@dataclass(frozen=True)
class PostponementAnalytics:
    total_postponements: int
    by_reason: dict[str, int]
    by_status: dict[str, int]
    total_hours_affected: float
    average_hours_affected: float
