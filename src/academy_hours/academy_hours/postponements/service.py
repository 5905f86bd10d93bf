from __future__ import annotations

import logging
from collections import Counter
from dataclasses import replace
from datetime import datetime, timedelta
from typing import Any, Callable, Optional

from ..common.datetime_utils import next_weekday_at, now_local
from ..common.result import service_call
from ..common.validators import optional_text, require_actor, require_admin, require_non_empty
from ..core.constants import CANDIDATE_LIMIT, SELECTION_WINDOW_DAYS
from ..core.enums import MakeUpStatus, PostponementReason, PostponementStatus, PostponementType, Role
from ..core.exceptions import AlreadyProcessedError, AuthorizationError, NotFoundError, ValidationError
from .model import (
    ClassPostponement,
    MakeUpClass,
    NewPostponement,
    PostponementAnalytics,
    PostponementOutcome,
    SchedulePreferences,
)
from .repository import PostponementRepository
from .scoring.base import MakeUpScorer
from .scoring.weighted_scorer import WeightedMakeUpScorer
from .suggestions import SuggestionPolicy, rank_suggestions

logger = logging.getLogger(__name__)

# Allowed manual status changes; make_up_scheduled is normally reached through make-up approval.
_TRANSITIONS: dict[PostponementStatus, tuple[PostponementStatus, ...]] = {
    PostponementStatus.CONFIRMED: (PostponementStatus.PENDING,),
    PostponementStatus.MAKE_UP_SCHEDULED: (PostponementStatus.CONFIRMED,),
    PostponementStatus.COMPLETED: (PostponementStatus.MAKE_UP_SCHEDULED,),
    PostponementStatus.CANCELLED: (PostponementStatus.PENDING, PostponementStatus.CONFIRMED),
}
_OPEN_POSTPONEMENT = (PostponementStatus.PENDING, PostponementStatus.CONFIRMED)


def _enum(enum_cls, value, label: str):
    if isinstance(value, enum_cls):
        return value
    try:
        return enum_cls(value)
    except ValueError:
        raise ValidationError(f"Unknown {label}: {value}")


class PostponementService:
    """Postpones booked classes and walks the make-up class through suggestion, selection and approval."""

    def __init__(
        self,
        postponements: PostponementRepository,
        *,
        scorer: Optional[MakeUpScorer] = None,
        policy: Optional[SuggestionPolicy] = None,
        selection_window_days: int = SELECTION_WINDOW_DAYS,
        clock: Callable[[], datetime] = now_local,
    ):
        self._repo = postponements
        self._scorer = scorer or WeightedMakeUpScorer()
        self._policy = policy or SuggestionPolicy()
        self._selection_window = timedelta(days=selection_window_days)
        self._clock = clock

    # -------- Postponements --------
    def _create(self, new: NewPostponement) -> ClassPostponement:
        booking = self._repo.get_booking(booking_id=new.booking_id)
        if not booking:
            raise NotFoundError("Booking not found")
        created = self._repo.create_postponement(postponement=new)
        if created is None:
            raise AlreadyProcessedError("Booking has already been postponed or is not active")
        logger.info(
            "Booking %s of student %s postponed (%s), postponement %s, %.2f hours affected",
            booking.booking_id, created.student_id, new.reason.value, created.postponement_id, created.hours_affected,
        )
        return created

    def _open_postponement(self, postponement_id: int) -> ClassPostponement:
        postponement = self._repo.get_postponement(postponement_id=int(postponement_id))
        if not postponement:
            raise NotFoundError("Postponement not found")
        if postponement.status not in _OPEN_POSTPONEMENT:
            raise AlreadyProcessedError(f"Postponement is {postponement.status.value}")
        return postponement

    def _with_suggestions(self, postponement: ClassPostponement, actor_id: Optional[int]) -> PostponementOutcome:
        result = self.generate_makeup_suggestions(postponement_id=postponement.postponement_id, actor_id=actor_id)
        if result.success:
            return PostponementOutcome(postponement=postponement, makeup=result.data)
        message = result.failure.message
        logger.warning("Postponement %s created without suggestions: %s", postponement.postponement_id, message)
        return PostponementOutcome(postponement=postponement, suggestions_error=message)

    @service_call("POSTPONEMENT_CREATE_ERROR", "Failed to postpone class")
    def postpone_for_leave(self, *, leave_request, actor_id: Optional[int] = None) -> PostponementOutcome:
        """Postpone the booking behind an approved leave request and offer make-up options."""
        if leave_request.booking_id is None:
            raise ValidationError("Leave request is not linked to a booking")
        postponement = self._create(
            NewPostponement(
                booking_id=int(leave_request.booking_id),
                reason=PostponementReason.STUDENT_LEAVE,
                postponement_type=PostponementType.AUTOMATIC,
                leave_request_id=leave_request.leave_request_id,
                notes=f"Automatic postponement for {leave_request.leave_type.value} leave",
                created_by=actor_id,
            )
        )
        return self._with_suggestions(postponement, actor_id)

    @service_call("POSTPONEMENT_CREATE_ERROR", "Failed to postpone class")
    def create_postponement(
        self,
        *,
        booking_id: int,
        reason: PostponementReason,
        postponement_type: PostponementType = PostponementType.MANUAL,
        notes: Optional[str] = None,
        actor_id: Optional[int] = None,
    ) -> PostponementOutcome:
        actor = require_actor(actor_id)
        postponement = self._create(
            NewPostponement(
                booking_id=int(booking_id),
                reason=_enum(PostponementReason, reason, "postponement reason"),
                postponement_type=_enum(PostponementType, postponement_type, "postponement type"),
                notes=optional_text(notes),
                created_by=actor,
            )
        )
        return self._with_suggestions(postponement, actor)

    @service_call("FETCH_ERROR", "Failed to fetch postponement")
    def get_postponement(self, *, postponement_id: int) -> dict[str, Any]:
        postponement = self._repo.get_postponement(postponement_id=int(postponement_id))
        if not postponement:
            raise NotFoundError("Postponement not found")
        return {
            "postponement": postponement,
            "makeup": self._repo.get_makeup_for_postponement(postponement_id=postponement.postponement_id),
            "events": list(self._repo.list_events(postponement_id=postponement.postponement_id)),
        }

    @service_call("FETCH_ERROR", "Failed to fetch postponements")
    def list_student_postponements(self, *, student_id: int) -> list[ClassPostponement]:
        return list(self._repo.list_student_postponements(student_id=int(student_id)))

    @service_call("POSTPONEMENT_UPDATE_ERROR", "Failed to update postponement")
    def update_postponement_status(
        self,
        *,
        postponement_id: int,
        status: PostponementStatus,
        actor_id: Optional[int] = None,
        actor_role: Optional[Role] = None,
    ) -> ClassPostponement:
        actor = require_admin(actor_id, actor_role)
        target = _enum(PostponementStatus, status, "postponement status")
        allowed_from = _TRANSITIONS.get(target)
        if not allowed_from:
            raise ValidationError(f"Cannot move a postponement to {target.value}")

        current = self._repo.get_postponement(postponement_id=int(postponement_id))
        if not current:
            raise NotFoundError("Postponement not found")
        if current.status not in allowed_from:
            raise AlreadyProcessedError(f"Cannot move postponement from {current.status.value} to {target.value}")

        updated = self._repo.update_postponement_status(
            postponement_id=int(postponement_id), from_statuses=allowed_from, to_status=target, changed_by=actor
        )
        if updated is None:
            raise AlreadyProcessedError("Postponement status changed concurrently")
        logger.info("Postponement %s moved %s -> %s by %s", postponement_id, current.status.value, target.value, actor)
        return updated

    # -------- Suggestions --------
    @service_call("SUGGESTION_ERROR", "Failed to generate make-up suggestions")
    def generate_makeup_suggestions(self, *, postponement_id: int, actor_id: Optional[int] = None) -> MakeUpClass:
        postponement = self._open_postponement(postponement_id)
        original = self._repo.get_class(class_id=postponement.class_id)
        if not original:
            raise NotFoundError("Original class not found")

        preferences = self._preferences(postponement.student_id)
        now = self._clock()
        not_before = now + timedelta(hours=preferences.advance_notice_required_hours)
        candidates = self._repo.list_candidate_classes(
            course_type=original.course_type, exclude_class_id=original.class_id, limit=CANDIDATE_LIMIT
        )
        scored = [
            self._scorer.score(
                candidate=c,
                original=original,
                preferences=preferences,
                start_time=next_weekday_at(now, c.day_of_week, c.start_time, not_before=not_before),
            )
            for c in candidates
        ]
        suggestions = rank_suggestions(scored, self._policy)

        makeup = self._repo.save_suggestions(
            postponement_id=postponement.postponement_id,
            student_id=postponement.student_id,
            suggestions=suggestions,
            selection_deadline=now + self._selection_window,
            created_by=actor_id,
        )
        if makeup is None:
            raise AlreadyProcessedError("A make-up class has already been selected for this postponement")
        logger.info(
            "Generated %d make-up suggestions (%d candidates) for postponement %s",
            len(suggestions), len(candidates), postponement_id,
        )
        return makeup

    @service_call("MAKEUP_SELECTION_ERROR", "Failed to select make-up class")
    def select_makeup(self, *, makeup_id: int, student_id: Optional[int], suggestion_id: str) -> MakeUpClass:
        student_id = require_actor(student_id)
        suggestion_id = require_non_empty(suggestion_id, "Suggestion")
        makeup = self._repo.get_makeup(makeup_id=int(makeup_id))
        if not makeup:
            raise NotFoundError("Make-up class not found")
        if makeup.student_id != int(student_id):
            raise AuthorizationError("Make-up class belongs to another student")
        self._open_postponement(makeup.postponement_id)
        if makeup.status != MakeUpStatus.SUGGESTED:
            raise AlreadyProcessedError(f"Make-up class is {makeup.status.value}")

        now = self._clock()
        if makeup.selection_deadline and now > makeup.selection_deadline:
            self._repo.expire_makeup(makeup_id=makeup.makeup_class_id)
            logger.info("Make-up %s expired at selection (deadline %s)", makeup_id, makeup.selection_deadline)
            raise AlreadyProcessedError("Selection deadline has passed")

        suggestion = makeup.find_suggestion(suggestion_id)
        if not suggestion:
            raise NotFoundError("Suggestion not found")

        selected = self._repo.select_makeup(makeup_id=makeup.makeup_class_id, suggestion=suggestion, selected_at=now)
        if selected is None:
            raise AlreadyProcessedError("Make-up class is no longer open for selection")
        logger.info("Student %s selected %s for make-up %s", student_id, suggestion_id, makeup_id)
        return selected

    @service_call("MAKEUP_APPROVAL_ERROR", "Failed to approve make-up class")
    def approve_makeup(
        self, *, makeup_id: int, actor_id: Optional[int] = None, actor_role: Optional[Role] = None
    ) -> MakeUpClass:
        actor = require_admin(actor_id, actor_role)
        makeup = self._repo.get_makeup(makeup_id=int(makeup_id))
        if not makeup:
            raise NotFoundError("Make-up class not found")
        if makeup.status != MakeUpStatus.STUDENT_SELECTED:
            raise AlreadyProcessedError(f"Make-up class is {makeup.status.value}")
        self._open_postponement(makeup.postponement_id)

        scheduled = self._repo.approve_makeup(makeup_id=makeup.makeup_class_id, approved_by=actor)
        if scheduled is None:
            self._open_postponement(makeup.postponement_id)
            raise ValidationError("Selected class is no longer available")
        logger.info(
            "Make-up %s approved by %s, booking %s for student %s",
            makeup_id, actor, scheduled.scheduled_booking_id, scheduled.student_id,
        )
        return scheduled

    @service_call("MAKEUP_APPROVAL_ERROR", "Failed to reject make-up class")
    def reject_makeup(
        self,
        *,
        makeup_id: int,
        reason: str,
        actor_id: Optional[int] = None,
        actor_role: Optional[Role] = None,
    ) -> MakeUpClass:
        actor = require_admin(actor_id, actor_role)
        reason = require_non_empty(reason, "Reason")
        makeup = self._repo.get_makeup(makeup_id=int(makeup_id))
        if not makeup:
            raise NotFoundError("Make-up class not found")

        rejected = self._repo.reject_makeup(makeup_id=makeup.makeup_class_id, reason=reason, rejected_by=actor)
        if rejected is None:
            raise AlreadyProcessedError(f"Make-up class is {makeup.status.value}")
        logger.info("Make-up %s rejected by %s", makeup_id, actor)
        return rejected

    @service_call("MAKEUP_EXPIRY_ERROR", "Failed to expire make-up classes")
    def expire_overdue_makeups(self, *, now: Optional[datetime] = None) -> int:
        now = now or self._clock()
        expired = 0
        for makeup in self._repo.list_overdue_makeups(now=now):
            if self._repo.expire_makeup(makeup_id=makeup.makeup_class_id):
                expired += 1
        if expired:
            logger.info("Expired %d make-up classes past their selection deadline", expired)
        return expired

    @service_call("FETCH_ERROR", "Failed to fetch make-up classes")
    def list_student_makeups(self, *, student_id: int) -> list[MakeUpClass]:
        return list(self._repo.list_student_makeups(student_id=int(student_id)))

    @service_call("FETCH_ERROR", "Failed to fetch make-up classes")
    def list_makeups_awaiting_approval(self, *, limit: int = 50) -> list[MakeUpClass]:
        if not 1 <= int(limit) <= 100:
            raise ValidationError("Limit must be between 1 and 100")
        return list(self._repo.list_makeups_by_status(status=MakeUpStatus.STUDENT_SELECTED, limit=int(limit)))

    # -------- Preferences --------
    def _preferences(self, student_id: int) -> SchedulePreferences:
        existing = self._repo.get_preferences(student_id=int(student_id))
        if existing:
            return existing
        return self._repo.save_preferences(preferences=SchedulePreferences(student_id=int(student_id)))

    @service_call("PREFERENCES_ERROR", "Failed to fetch schedule preferences")
    def get_preferences(self, *, student_id: int) -> SchedulePreferences:
        return self._preferences(student_id)

    @service_call("PREFERENCES_ERROR", "Failed to update schedule preferences")
    def update_preferences(self, *, student_id: int, changes: dict[str, Any]) -> SchedulePreferences:
        current = self._preferences(student_id)
        known = set(SchedulePreferences.__dataclass_fields__) - {"student_id"}
        unknown = set(changes) - known
        if unknown:
            raise ValidationError(f"Unknown preference fields: {', '.join(sorted(unknown))}")

        updated = replace(current, **changes)
        if any(not isinstance(d, int) or not 0 <= d <= 6 for d in updated.preferred_days):
            raise ValidationError("Preferred days must be between 0 (Sunday) and 6 (Saturday)")
        if not 1 <= updated.preferred_class_size_min <= updated.preferred_class_size_max:
            raise ValidationError("Class size range is invalid")
        if not 0 <= updated.advance_notice_required_hours <= 24 * 14:
            raise ValidationError("Advance notice must be between 0 and 336 hours")
        if set(updated.preferred_teachers) & set(updated.avoided_teachers):
            raise ValidationError("A teacher cannot be both preferred and avoided")

        saved = self._repo.save_preferences(preferences=updated)
        logger.info("Schedule preferences updated for student %s: %s", student_id, sorted(changes))
        return saved

    # -------- Analytics --------
    @service_call("ANALYTICS_ERROR", "Failed to compute postponement analytics")
    def get_postponement_analytics(self, *, start: datetime, end: datetime) -> PostponementAnalytics:
        if start > end:
            raise ValidationError("Start must not be after end")
        rows = list(self._repo.list_postponements_between(start=start, end=end))
        total_hours = round(sum(p.hours_affected for p in rows), 2)
        return PostponementAnalytics(
            total_postponements=len(rows),
            by_reason=dict(Counter(p.reason.value for p in rows)),
            by_status=dict(Counter(p.status.value for p in rows)),
            total_hours_affected=total_hours,
            average_hours_affected=round(total_hours / len(rows), 2) if rows else 0.0,
        )
