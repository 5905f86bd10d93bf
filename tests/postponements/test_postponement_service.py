from __future__ import annotations

from dataclasses import replace
from datetime import datetime, time, timedelta

from src.academy_hours.academy_hours.core.enums import (
    BookingStatus,
    MakeUpStatus,
    PostponementReason,
    PostponementStatus,
    Role,
)
from src.academy_hours.academy_hours.postponements.model import (
    Booking,
    ClassOffering,
    ClassPostponement,
    MakeUpClass,
)
from src.academy_hours.academy_hours.postponements.service import PostponementService

# Monday
NOW = datetime(2026, 3, 2, 10, 0, 0)


class Clock:
    def __init__(self, now):
        self.now = now

    def __call__(self):
        return self.now


class FakePostponementRepo:
    def __init__(self):
        self._next_id = 1
        self.bookings = {
            1: Booking(booking_id=1, student_id=5, class_id=10, scheduled_at=NOW + timedelta(days=7), status=BookingStatus.CONFIRMED),
        }
        self.classes = {
            10: ClassOffering(10, "IELTS Evening", "ielts", 1, time(18, 0), time(19, 0), teacher_id=3),
            11: ClassOffering(11, "IELTS Wednesday", "ielts", 3, time(18, 0), time(19, 0), teacher_id=3, current_enrollment=2),
            12: ClassOffering(12, "IELTS Morning", "ielts", 4, time(10, 0), time(11, 0), teacher_id=4, current_enrollment=2),
        }
        self.postponements: dict[int, ClassPostponement] = {}
        self.makeups: dict[int, MakeUpClass] = {}
        self.preferences = {}

    def _id(self):
        value = self._next_id
        self._next_id += 1
        return value

    def get_booking(self, *, booking_id):
        return self.bookings.get(int(booking_id))

    def get_class(self, *, class_id):
        return self.classes.get(int(class_id))

    def list_candidate_classes(self, *, course_type, exclude_class_id, limit=50):
        return [
            c
            for c in self.classes.values()
            if c.course_type == course_type and c.class_id != exclude_class_id and c.available_spots > 0
        ][:limit]

    def create_postponement(self, *, postponement):
        booking = self.bookings[postponement.booking_id]
        if booking.status != BookingStatus.CONFIRMED:
            return None
        self.bookings[booking.booking_id] = replace(booking, status=BookingStatus.POSTPONED)
        pid = self._id()
        self.postponements[pid] = ClassPostponement(
            postponement_id=pid,
            booking_id=booking.booking_id,
            student_id=booking.student_id,
            class_id=booking.class_id,
            reason=postponement.reason,
            postponement_type=postponement.postponement_type,
            status=PostponementStatus.PENDING,
            hours_affected=booking.duration_minutes / 60,
            created_at=NOW,
            leave_request_id=postponement.leave_request_id,
            original_class_time=booking.scheduled_at,
            created_by=postponement.created_by,
        )
        return self.postponements[pid]

    def get_postponement(self, *, postponement_id):
        return self.postponements.get(int(postponement_id))

    def list_student_postponements(self, *, student_id):
        return [p for p in self.postponements.values() if p.student_id == student_id]

    def list_postponements_between(self, *, start, end):
        return [p for p in self.postponements.values() if start <= p.created_at <= end]

    def update_postponement_status(self, *, postponement_id, from_statuses, to_status, changed_by):
        current = self.postponements.get(int(postponement_id))
        if not current or current.status not in from_statuses:
            return None
        self.postponements[current.postponement_id] = replace(current, status=to_status)
        makeup = self.get_makeup_for_postponement(postponement_id=current.postponement_id)
        if to_status == PostponementStatus.CANCELLED and makeup and makeup.status in (
            MakeUpStatus.SUGGESTED,
            MakeUpStatus.STUDENT_SELECTED,
        ):
            self.makeups[makeup.makeup_class_id] = replace(
                makeup, status=MakeUpStatus.REJECTED, rejection_reason="Postponement cancelled"
            )
        return self.postponements[current.postponement_id]

    def list_events(self, *, postponement_id):
        return []

    def get_makeup(self, *, makeup_id):
        return self.makeups.get(int(makeup_id))

    def get_makeup_for_postponement(self, *, postponement_id):
        return next((m for m in self.makeups.values() if m.postponement_id == postponement_id), None)

    def save_suggestions(self, *, postponement_id, student_id, suggestions, selection_deadline, created_by):
        existing = self.get_makeup_for_postponement(postponement_id=postponement_id)
        if existing and existing.status in (
            MakeUpStatus.STUDENT_SELECTED,
            MakeUpStatus.ADMIN_APPROVED,
            MakeUpStatus.SCHEDULED,
        ):
            return None
        makeup_id = existing.makeup_class_id if existing else self._id()
        self.makeups[makeup_id] = MakeUpClass(
            makeup_class_id=makeup_id,
            postponement_id=postponement_id,
            student_id=student_id,
            status=MakeUpStatus.SUGGESTED,
            created_at=NOW,
            suggestions=list(suggestions),
            selection_deadline=selection_deadline,
        )
        return self.makeups[makeup_id]

    def select_makeup(self, *, makeup_id, suggestion, selected_at):
        current = self.makeups[makeup_id]
        if current.status != MakeUpStatus.SUGGESTED:
            return None
        self.makeups[makeup_id] = replace(
            current,
            status=MakeUpStatus.STUDENT_SELECTED,
            selected_suggestion_id=suggestion.suggestion_id,
            selected_class_id=suggestion.class_id,
            selected_start_time=suggestion.start_time,
            student_selected=True,
            student_selected_at=selected_at,
        )
        return self.makeups[makeup_id]

    def approve_makeup(self, *, makeup_id, approved_by):
        current = self.makeups[makeup_id]
        if current.status != MakeUpStatus.STUDENT_SELECTED:
            return None
        offering = self.classes[current.selected_class_id]
        if offering.available_spots <= 0:
            return None
        self.classes[offering.class_id] = replace(offering, current_enrollment=offering.current_enrollment + 1)
        booking_id = 100 + makeup_id
        self.bookings[booking_id] = Booking(
            booking_id=booking_id,
            student_id=current.student_id,
            class_id=offering.class_id,
            scheduled_at=current.selected_start_time,
            status=BookingStatus.CONFIRMED,
            is_makeup=True,
        )
        self.makeups[makeup_id] = replace(
            current,
            status=MakeUpStatus.SCHEDULED,
            admin_approved=True,
            approved_by=approved_by,
            scheduled_booking_id=booking_id,
        )
        parent = self.postponements[current.postponement_id]
        self.postponements[parent.postponement_id] = replace(parent, status=PostponementStatus.MAKE_UP_SCHEDULED)
        return self.makeups[makeup_id]

    def reject_makeup(self, *, makeup_id, reason, rejected_by):
        current = self.makeups[makeup_id]
        if current.status in (MakeUpStatus.SCHEDULED, MakeUpStatus.REJECTED, MakeUpStatus.EXPIRED):
            return None
        self.makeups[makeup_id] = replace(current, status=MakeUpStatus.REJECTED, rejection_reason=reason)
        return self.makeups[makeup_id]

    def expire_makeup(self, *, makeup_id):
        current = self.makeups[makeup_id]
        if current.status != MakeUpStatus.SUGGESTED:
            return False
        self.makeups[makeup_id] = replace(current, status=MakeUpStatus.EXPIRED)
        return True

    def list_overdue_makeups(self, *, now):
        return [
            m
            for m in self.makeups.values()
            if m.status == MakeUpStatus.SUGGESTED and m.selection_deadline and m.selection_deadline < now
        ]

    def list_student_makeups(self, *, student_id):
        return [m for m in self.makeups.values() if m.student_id == student_id]

    def list_makeups_by_status(self, *, status, limit=50):
        return [m for m in self.makeups.values() if m.status == status][:limit]

    def get_preferences(self, *, student_id):
        return self.preferences.get(student_id)

    def save_preferences(self, *, preferences):
        self.preferences[preferences.student_id] = preferences
        return preferences


def _service(clock=None):
    repo = FakePostponementRepo()
    return PostponementService(repo, clock=clock or Clock(NOW)), repo


def _postpone(service):
    return service.create_postponement(booking_id=1, reason="emergency", actor_id=5).data


def test_postponement_marks_booking_and_offers_ranked_suggestions():
    service, repo = _service()

    outcome = _postpone(service)

    assert outcome.postponement.reason == PostponementReason.EMERGENCY
    assert outcome.postponement.hours_affected == 1.0
    assert repo.bookings[1].status == BookingStatus.POSTPONED
    suggestions = outcome.makeup.suggestions
    assert [s.class_id for s in suggestions] == [11, 12]
    assert suggestions[0].start_time == datetime(2026, 3, 4, 18, 0)
    assert suggestions[1].start_time == datetime(2026, 3, 5, 10, 0)
    assert outcome.makeup.selection_deadline == NOW + timedelta(days=7)


def test_second_postponement_of_same_booking_is_refused():
    service, _ = _service()
    _postpone(service)

    again = service.create_postponement(booking_id=1, reason="emergency", actor_id=5)
    missing = service.create_postponement(booking_id=99, reason="emergency", actor_id=5)

    assert again.error.code == "ALREADY_PROCESSED"
    assert missing.error.code == "NOT_FOUND"


def test_select_then_approve_books_the_class():
    service, repo = _service()
    makeup = _postpone(service).makeup
    choice = makeup.suggestions[0].suggestion_id

    selected = service.select_makeup(makeup_id=makeup.makeup_class_id, student_id=5, suggestion_id=choice)
    approved = service.approve_makeup(makeup_id=makeup.makeup_class_id, actor_id=1, actor_role=Role.ADMIN)

    assert selected.data.status == MakeUpStatus.STUDENT_SELECTED
    assert approved.data.status == MakeUpStatus.SCHEDULED
    booking = repo.bookings[approved.data.scheduled_booking_id]
    assert booking.is_makeup and booking.class_id == 11
    assert repo.classes[11].current_enrollment == 3
    assert repo.postponements[makeup.postponement_id].status == PostponementStatus.MAKE_UP_SCHEDULED

    again = service.approve_makeup(makeup_id=makeup.makeup_class_id, actor_id=1, actor_role=Role.ADMIN)
    assert again.error.code == "ALREADY_PROCESSED"


def test_only_owner_selects_and_only_once():
    service, _ = _service()
    makeup = _postpone(service).makeup
    choice = makeup.suggestions[0].suggestion_id

    other = service.select_makeup(makeup_id=makeup.makeup_class_id, student_id=6, suggestion_id=choice)
    unknown = service.select_makeup(makeup_id=makeup.makeup_class_id, student_id=5, suggestion_id="suggestion-x")
    service.select_makeup(makeup_id=makeup.makeup_class_id, student_id=5, suggestion_id=choice)
    twice = service.select_makeup(makeup_id=makeup.makeup_class_id, student_id=5, suggestion_id=choice)

    assert other.error.code == "PERMISSION_DENIED"
    assert unknown.error.code == "NOT_FOUND"
    assert twice.error.code == "ALREADY_PROCESSED"


def test_approval_fails_when_selected_class_filled_up():
    service, repo = _service()
    makeup = _postpone(service).makeup
    service.select_makeup(
        makeup_id=makeup.makeup_class_id, student_id=5, suggestion_id=makeup.suggestions[0].suggestion_id
    )
    repo.classes[11] = replace(repo.classes[11], current_enrollment=9)

    result = service.approve_makeup(makeup_id=makeup.makeup_class_id, actor_id=1, actor_role=Role.ADMIN)

    assert result.error.code == "VALIDATION_ERROR"
    assert result.error.message == "Selected class is no longer available"


def test_selection_after_deadline_expires_the_makeup():
    clock = Clock(NOW)
    service, repo = _service(clock)
    makeup = _postpone(service).makeup
    clock.now = NOW + timedelta(days=8)

    result = service.select_makeup(
        makeup_id=makeup.makeup_class_id, student_id=5, suggestion_id=makeup.suggestions[0].suggestion_id
    )

    assert result.error.code == "ALREADY_PROCESSED"
    assert repo.makeups[makeup.makeup_class_id].status == MakeUpStatus.EXPIRED


def test_expire_overdue_makeups_counts_expired():
    service, repo = _service()
    _postpone(service)

    assert service.expire_overdue_makeups(now=NOW + timedelta(days=1)).data == 0
    assert service.expire_overdue_makeups(now=NOW + timedelta(days=8)).data == 1
    assert service.expire_overdue_makeups(now=NOW + timedelta(days=9)).data == 0


def test_suggestions_can_be_regenerated_after_rejection_but_not_after_selection():
    service, _ = _service()
    outcome = _postpone(service)
    makeup = outcome.makeup
    pid = outcome.postponement.postponement_id

    service.reject_makeup(makeup_id=makeup.makeup_class_id, reason="Teacher away", actor_id=1, actor_role=Role.ADMIN)
    regenerated = service.generate_makeup_suggestions(postponement_id=pid, actor_id=1)
    service.select_makeup(
        makeup_id=makeup.makeup_class_id, student_id=5, suggestion_id=makeup.suggestions[0].suggestion_id
    )
    refused = service.generate_makeup_suggestions(postponement_id=pid, actor_id=1)

    assert regenerated.data.status == MakeUpStatus.SUGGESTED
    assert refused.error.code == "ALREADY_PROCESSED"


def test_status_transitions_are_guarded():
    service, _ = _service()
    pid = _postpone(service).postponement.postponement_id

    skip = service.update_postponement_status(
        postponement_id=pid, status="completed", actor_id=1, actor_role=Role.ADMIN
    )
    to_pending = service.update_postponement_status(
        postponement_id=pid, status="pending", actor_id=1, actor_role=Role.ADMIN
    )
    confirm = service.update_postponement_status(
        postponement_id=pid, status="confirmed", actor_id=1, actor_role=Role.ADMIN
    )
    student = service.update_postponement_status(
        postponement_id=pid, status="cancelled", actor_id=5, actor_role=Role.STUDENT
    )

    assert skip.error.code == "ALREADY_PROCESSED"
    assert to_pending.error.code == "VALIDATION_ERROR"
    assert confirm.data.status == PostponementStatus.CONFIRMED
    assert student.error.code == "PERMISSION_DENIED"


def test_cancelled_postponement_closes_its_makeup():
    service, repo = _service()
    outcome = _postpone(service)
    makeup = outcome.makeup
    pid = outcome.postponement.postponement_id
    choice = makeup.suggestions[0].suggestion_id

    cancelled = service.update_postponement_status(
        postponement_id=pid, status="cancelled", actor_id=1, actor_role=Role.ADMIN
    )
    select = service.select_makeup(makeup_id=makeup.makeup_class_id, student_id=5, suggestion_id=choice)
    regenerate = service.generate_makeup_suggestions(postponement_id=pid, actor_id=1)

    assert cancelled.data.status == PostponementStatus.CANCELLED
    assert repo.makeups[makeup.makeup_class_id].status == MakeUpStatus.REJECTED
    assert select.error.code == "ALREADY_PROCESSED"
    assert regenerate.error.code == "ALREADY_PROCESSED"
    assert repo.postponements[pid].status == PostponementStatus.CANCELLED


def test_selected_makeup_cannot_be_approved_once_postponement_cancelled():
    service, repo = _service()
    outcome = _postpone(service)
    makeup = outcome.makeup
    pid = outcome.postponement.postponement_id
    service.select_makeup(
        makeup_id=makeup.makeup_class_id, student_id=5, suggestion_id=makeup.suggestions[0].suggestion_id
    )
    # Cancelled behind the service, leaving the selected make-up open.
    repo.postponements[pid] = replace(repo.postponements[pid], status=PostponementStatus.CANCELLED)

    result = service.approve_makeup(makeup_id=makeup.makeup_class_id, actor_id=1, actor_role=Role.ADMIN)

    assert result.error.code == "ALREADY_PROCESSED"
    assert repo.makeups[makeup.makeup_class_id].status == MakeUpStatus.STUDENT_SELECTED
    assert repo.postponements[pid].status == PostponementStatus.CANCELLED
    assert repo.classes[11].current_enrollment == 2


def test_preferences_created_on_first_access_and_validated():
    service, repo = _service()

    defaults = service.get_preferences(student_id=5).data
    assert defaults.preferred_days == [1, 2, 3, 4, 5]
    assert 5 in repo.preferences

    assert service.update_preferences(student_id=5, changes={"preferred_days": [7]}).error.code == "VALIDATION_ERROR"
    assert service.update_preferences(student_id=5, changes={"colour": "blue"}).error.code == "VALIDATION_ERROR"
    assert (
        service.update_preferences(
            student_id=5, changes={"preferred_class_size_min": 5, "preferred_class_size_max": 2}
        ).error.code
        == "VALIDATION_ERROR"
    )
    assert (
        service.update_preferences(student_id=5, changes={"preferred_teachers": [3], "avoided_teachers": [3]}).error.code
        == "VALIDATION_ERROR"
    )

    updated = service.update_preferences(student_id=5, changes={"preferred_days": [0, 6], "preferred_teachers": [4]})
    assert updated.data.preferred_days == [0, 6]
    assert repo.preferences[5].preferred_teachers == [4]


def test_postponement_analytics():
    service, _ = _service()
    _postpone(service)

    result = service.get_postponement_analytics(start=NOW - timedelta(days=1), end=NOW + timedelta(days=1)).data

    assert result.total_postponements == 1
    assert result.by_reason == {"emergency": 1}
    assert result.average_hours_affected == 1.0
    assert service.get_postponement_analytics(start=NOW, end=NOW - timedelta(days=1)).error.code == "VALIDATION_ERROR"
