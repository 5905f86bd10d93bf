from __future__ import annotations

from datetime import datetime
from typing import Optional, Protocol, Sequence

from ..core.enums import MakeUpStatus, PostponementStatus
from .model import (
    Booking,
    ClassOffering,
    ClassPostponement,
    MakeUpClass,
    MakeUpSuggestion,
    NewPostponement,
    PostponementEventRecord,
    SchedulePreferences,
)


class PostponementRepository(Protocol):
    """Every write records its own postponement event in the same DB transaction."""

    # Bookings and classes
    def get_booking(self, *, booking_id: int) -> Optional[Booking]:
        raise NotImplementedError

    def get_class(self, *, class_id: int) -> Optional[ClassOffering]:
        raise NotImplementedError

    def list_candidate_classes(self, *, course_type: str, exclude_class_id: int, limit: int = 50) -> Sequence[ClassOffering]:
        """Active classes of the course type with at least one free seat."""

        raise NotImplementedError

    # Postponements
    def create_postponement(self, *, postponement: NewPostponement) -> Optional[ClassPostponement]:
        """Mark the booking postponed. None when the booking was already postponed."""

        raise NotImplementedError

    def get_postponement(self, *, postponement_id: int) -> Optional[ClassPostponement]:
        raise NotImplementedError

    def list_student_postponements(self, *, student_id: int) -> Sequence[ClassPostponement]:
        raise NotImplementedError

    def list_postponements_between(self, *, start: datetime, end: datetime) -> Sequence[ClassPostponement]:
        raise NotImplementedError

    def update_postponement_status(
        self,
        *,
        postponement_id: int,
        from_statuses: Sequence[PostponementStatus],
        to_status: PostponementStatus,
        changed_by: Optional[int],
    ) -> Optional[ClassPostponement]:
        raise NotImplementedError

    def list_events(self, *, postponement_id: int) -> Sequence[PostponementEventRecord]:
        raise NotImplementedError

    # Make-up classes
    def get_makeup(self, *, makeup_id: int) -> Optional[MakeUpClass]:
        raise NotImplementedError

    def get_makeup_for_postponement(self, *, postponement_id: int) -> Optional[MakeUpClass]:
        raise NotImplementedError

    def save_suggestions(
        self,
        *,
        postponement_id: int,
        student_id: int,
        suggestions: Sequence[MakeUpSuggestion],
        selection_deadline: datetime,
        created_by: Optional[int],
    ) -> Optional[MakeUpClass]:
        """Create or refresh the make-up row. None once the student has already selected."""

        raise NotImplementedError

    def select_makeup(self, *, makeup_id: int, suggestion: MakeUpSuggestion, selected_at: datetime) -> Optional[MakeUpClass]:
        """suggested -> student_selected. None when no longer in `suggested`."""

        raise NotImplementedError

    def approve_makeup(self, *, makeup_id: int, approved_by: int) -> Optional[MakeUpClass]:
        """student_selected -> scheduled, booking the selected class. None when not selected or full."""

        raise NotImplementedError

    def reject_makeup(self, *, makeup_id: int, reason: str, rejected_by: int) -> Optional[MakeUpClass]:
        raise NotImplementedError

    def expire_makeup(self, *, makeup_id: int) -> bool:
        raise NotImplementedError

    def list_overdue_makeups(self, *, now: datetime) -> Sequence[MakeUpClass]:
        raise NotImplementedError

    def list_student_makeups(self, *, student_id: int) -> Sequence[MakeUpClass]:
        raise NotImplementedError

    def list_makeups_by_status(self, *, status: MakeUpStatus, limit: int = 50) -> Sequence[MakeUpClass]:
        raise NotImplementedError

    # Preferences
    def get_preferences(self, *, student_id: int) -> Optional[SchedulePreferences]:
        raise NotImplementedError

    def save_preferences(self, *, preferences: SchedulePreferences) -> SchedulePreferences:
        raise NotImplementedError

