from __future__ import annotations

from datetime import datetime
from typing import Any, Optional, Sequence

from ..common.datetime_utils import parse_iso_datetime
from ..common.result import to_jsonable
from ..core.enums import (
    BookingStatus,
    MakeUpStatus,
    PostponementEvent,
    PostponementReason,
    PostponementStatus,
    PostponementType,
)
from ..database.connection import DatabaseConnection
from ..database.mysql_base import (
    as_bool,
    as_float,
    as_optional_int,
    db_cursor,
    dump_json,
    fetchall,
    fetchone,
    in_clause,
    load_json,
    normalize_mysql_time,
)
from .model import (
    Booking,
    ClassOffering,
    ClassPostponement,
    MakeUpClass,
    MakeUpSuggestion,
    NewPostponement,
    PostponementEventRecord,
    SchedulePreferences,
    SubScores,
)
from .repository import PostponementRepository

POSTPONEMENT_COLUMNS = """
    postponement_id, booking_id, student_id, class_id, leave_request_id, postponement_reason,
    postponement_type, status, hours_affected, original_class_time, notes, created_by, created_at
"""

MAKEUP_COLUMNS = """
    makeup_class_id, postponement_id, student_id, alternative_suggestions, selected_suggestion_id,
    selected_class_id, selected_start_time, student_selected, student_selected_at, admin_approved,
    approved_by, approved_at, scheduled_booking_id, status, selection_deadline, rejection_reason, created_at
"""

CLASS_COLUMNS = """
    class_id, class_name, course_type, teacher_id, teacher_name, capacity, current_enrollment,
    day_of_week, start_time, end_time, duration_minutes, is_online, location
"""

_OPEN_MAKEUP_STATUSES = (
    MakeUpStatus.PENDING.value,
    MakeUpStatus.SUGGESTED.value,
    MakeUpStatus.STUDENT_SELECTED.value,
    MakeUpStatus.ADMIN_APPROVED.value,
)

# Make-up work is only allowed while the parent postponement is still open.
_OPEN_POSTPONEMENT_STATUSES = (PostponementStatus.PENDING.value, PostponementStatus.CONFIRMED.value)


# -------- Row mapping --------
def row_to_postponement(r: dict) -> ClassPostponement:
    return ClassPostponement(
        postponement_id=int(r["postponement_id"]),
        booking_id=int(r["booking_id"]),
        student_id=int(r["student_id"]),
        class_id=int(r["class_id"]),
        reason=PostponementReason(r["postponement_reason"]),
        postponement_type=PostponementType(r["postponement_type"]),
        status=PostponementStatus(r["status"]),
        hours_affected=as_float(r.get("hours_affected")),
        created_at=r["created_at"],
        leave_request_id=as_optional_int(r.get("leave_request_id")),
        original_class_time=r.get("original_class_time"),
        notes=r.get("notes"),
        created_by=as_optional_int(r.get("created_by")),
    )


def row_to_class(r: dict) -> ClassOffering:
    return ClassOffering(
        class_id=int(r["class_id"]),
        class_name=r["class_name"],
        course_type=r["course_type"],
        day_of_week=int(r["day_of_week"]),
        start_time=normalize_mysql_time(r["start_time"]),
        end_time=normalize_mysql_time(r["end_time"]),
        teacher_id=as_optional_int(r.get("teacher_id")),
        teacher_name=r.get("teacher_name"),
        capacity=int(r.get("capacity") or 0),
        current_enrollment=int(r.get("current_enrollment") or 0),
        duration_minutes=int(r.get("duration_minutes") or 60),
        is_online=as_bool(r.get("is_online")),
        location=r.get("location"),
    )


def suggestion_from_dict(d: dict[str, Any]) -> MakeUpSuggestion:
    scores = d.get("scores") or {}
    return MakeUpSuggestion(
        suggestion_id=str(d["suggestion_id"]),
        class_id=int(d["class_id"]),
        class_name=d.get("class_name") or "",
        course_type=d.get("course_type") or "",
        start_time=parse_iso_datetime(d["start_time"]),
        end_time=parse_iso_datetime(d["end_time"]),
        duration_minutes=int(d.get("duration_minutes") or 60),
        compatibility_score=float(d.get("compatibility_score") or 0),
        scores=SubScores(**{k: float(scores.get(k, 0)) for k in SubScores.__dataclass_fields__}),
        recommendation_strength=d.get("recommendation_strength") or "low",
        reasoning=d.get("reasoning") or "",
        teacher_id=as_optional_int(d.get("teacher_id")),
        teacher_name=d.get("teacher_name"),
        is_online=bool(d.get("is_online")),
        location=d.get("location"),
        available_spots=int(d.get("available_spots") or 0),
        benefits=list(d.get("benefits") or []),
        drawbacks=list(d.get("drawbacks") or []),
    )


def row_to_makeup(r: dict) -> MakeUpClass:
    return MakeUpClass(
        makeup_class_id=int(r["makeup_class_id"]),
        postponement_id=int(r["postponement_id"]),
        student_id=int(r["student_id"]),
        status=MakeUpStatus(r["status"]),
        created_at=r["created_at"],
        suggestions=[suggestion_from_dict(d) for d in load_json(r.get("alternative_suggestions"), []) or []],
        selection_deadline=r.get("selection_deadline"),
        selected_suggestion_id=r.get("selected_suggestion_id"),
        selected_class_id=as_optional_int(r.get("selected_class_id")),
        selected_start_time=r.get("selected_start_time"),
        student_selected=as_bool(r.get("student_selected")),
        student_selected_at=r.get("student_selected_at"),
        admin_approved=as_bool(r.get("admin_approved")),
        approved_by=as_optional_int(r.get("approved_by")),
        approved_at=r.get("approved_at"),
        scheduled_booking_id=as_optional_int(r.get("scheduled_booking_id")),
        rejection_reason=r.get("rejection_reason"),
    )


def row_to_preferences(r: dict) -> SchedulePreferences:
    return SchedulePreferences(
        student_id=int(r["student_id"]),
        preferred_days=[int(d) for d in load_json(r.get("preferred_days"), []) or []],
        preferred_times={str(k): list(v) for k, v in (load_json(r.get("preferred_times"), {}) or {}).items()},
        preferred_teachers=[int(t) for t in load_json(r.get("preferred_teachers"), []) or []],
        avoided_teachers=[int(t) for t in load_json(r.get("avoided_teachers"), []) or []],
        preferred_class_size_min=int(r.get("preferred_class_size_min") or 1),
        preferred_class_size_max=int(r.get("preferred_class_size_max") or 9),
        willing_to_change_teacher=as_bool(r.get("willing_to_change_teacher")),
        advance_notice_required_hours=int(r.get("advance_notice_required_hours") or 0),
    )


# -------- SQL helpers --------
def _insert_event(cur, postponement_id: int, event: PostponementEvent, details: dict, created_by: Optional[int]) -> None:
    cur.execute(
        """
        INSERT INTO postponement_events(postponement_id, event_type, details, created_by)
        VALUES(%s,%s,%s,%s)
        """,
        (int(postponement_id), event.value, dump_json(details), created_by),
    )


def _load_postponement(cur, postponement_id: int) -> Optional[ClassPostponement]:
    cur.execute(
        f"SELECT {POSTPONEMENT_COLUMNS} FROM class_postponements WHERE postponement_id=%s",
        (int(postponement_id),),
    )
    r = fetchone(cur)
    return row_to_postponement(r) if r else None


def _load_makeup(cur, *, makeup_id: Optional[int] = None, postponement_id: Optional[int] = None, for_update: bool = False) -> Optional[MakeUpClass]:
    column, value = ("makeup_class_id", makeup_id) if makeup_id is not None else ("postponement_id", postponement_id)
    lock = " FOR UPDATE" if for_update else ""
    cur.execute(f"SELECT {MAKEUP_COLUMNS} FROM make_up_classes WHERE {column}=%s{lock}", (int(value),))
    r = fetchone(cur)
    return row_to_makeup(r) if r else None


class MySQLPostponementRepository(PostponementRepository):
    def __init__(self, conn_factory: DatabaseConnection):
        self._conn_factory = conn_factory

    # -------- Bookings and classes --------
    def get_booking(self, *, booking_id: int) -> Optional[Booking]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                SELECT booking_id, student_id, class_id, scheduled_at, duration_minutes, status, is_makeup
                FROM class_bookings
                WHERE booking_id=%s
                """,
                (int(booking_id),),
            )
            r = fetchone(cur)
            if not r:
                return None
            return Booking(
                booking_id=int(r["booking_id"]),
                student_id=int(r["student_id"]),
                class_id=int(r["class_id"]),
                scheduled_at=r["scheduled_at"],
                status=BookingStatus(r["status"]),
                duration_minutes=int(r.get("duration_minutes") or 60),
                is_makeup=as_bool(r.get("is_makeup")),
            )

    def get_class(self, *, class_id: int) -> Optional[ClassOffering]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(f"SELECT {CLASS_COLUMNS} FROM classes WHERE class_id=%s", (int(class_id),))
            r = fetchone(cur)
            return row_to_class(r) if r else None

    def list_candidate_classes(self, *, course_type: str, exclude_class_id: int, limit: int = 50) -> Sequence[ClassOffering]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"""
                SELECT {CLASS_COLUMNS}
                FROM classes
                WHERE course_type=%s AND class_id<>%s AND is_active=1
                  AND capacity > 0 AND current_enrollment < capacity
                ORDER BY day_of_week ASC, start_time ASC
                LIMIT %s
                """,
                (course_type, int(exclude_class_id), int(limit)),
            )
            return [row_to_class(r) for r in fetchall(cur)]

    # -------- Postponements --------
    def create_postponement(self, *, postponement: NewPostponement) -> Optional[ClassPostponement]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                SELECT booking_id, student_id, class_id, scheduled_at, duration_minutes, status
                FROM class_bookings
                WHERE booking_id=%s
                FOR UPDATE
                """,
                (int(postponement.booking_id),),
            )
            booking = fetchone(cur)
            if not booking or booking["status"] != BookingStatus.CONFIRMED.value:
                return None

            hours_affected = round(int(booking.get("duration_minutes") or 60) / 60, 2)
            cur.execute(
                """
                INSERT INTO class_postponements(
                    booking_id, student_id, class_id, leave_request_id, postponement_reason,
                    postponement_type, status, hours_affected, original_class_time, notes, created_by
                )
                VALUES(%s,%s,%s,%s,%s,%s,%s,%s,%s,%s,%s)
                """,
                (
                    int(booking["booking_id"]),
                    int(booking["student_id"]),
                    int(booking["class_id"]),
                    postponement.leave_request_id,
                    postponement.reason.value,
                    postponement.postponement_type.value,
                    PostponementStatus.PENDING.value,
                    hours_affected,
                    booking["scheduled_at"],
                    postponement.notes,
                    postponement.created_by,
                ),
            )
            postponement_id = int(cur.lastrowid)
            cur.execute(
                "UPDATE class_bookings SET status=%s WHERE booking_id=%s",
                (BookingStatus.POSTPONED.value, int(booking["booking_id"])),
            )
            _insert_event(
                cur,
                postponement_id,
                PostponementEvent.POSTPONEMENT_CREATED,
                {
                    "booking_id": int(booking["booking_id"]),
                    "reason": postponement.reason.value,
                    "leave_request_id": postponement.leave_request_id,
                    "hours_affected": hours_affected,
                },
                postponement.created_by,
            )
            return _load_postponement(cur, postponement_id)

    def get_postponement(self, *, postponement_id: int) -> Optional[ClassPostponement]:
        with db_cursor(self._conn_factory) as (_, cur):
            return _load_postponement(cur, postponement_id)

    def list_student_postponements(self, *, student_id: int) -> Sequence[ClassPostponement]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"""
                SELECT {POSTPONEMENT_COLUMNS}
                FROM class_postponements
                WHERE student_id=%s
                ORDER BY created_at DESC, postponement_id DESC
                """,
                (int(student_id),),
            )
            return [row_to_postponement(r) for r in fetchall(cur)]

    def list_postponements_between(self, *, start: datetime, end: datetime) -> Sequence[ClassPostponement]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"""
                SELECT {POSTPONEMENT_COLUMNS}
                FROM class_postponements
                WHERE created_at >= %s AND created_at <= %s
                ORDER BY created_at ASC
                """,
                (start, end),
            )
            return [row_to_postponement(r) for r in fetchall(cur)]

    def update_postponement_status(
        self,
        *,
        postponement_id: int,
        from_statuses: Sequence[PostponementStatus],
        to_status: PostponementStatus,
        changed_by: Optional[int],
    ) -> Optional[ClassPostponement]:
        allowed = [s.value for s in from_statuses]
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"""
                UPDATE class_postponements
                SET status=%s
                WHERE postponement_id=%s AND status IN ({in_clause(allowed)})
                """,
                (to_status.value, int(postponement_id), *allowed),
            )
            if cur.rowcount == 0:
                return None
            _insert_event(cur, postponement_id, PostponementEvent.STATUS_CHANGED, {"status": to_status.value}, changed_by)
            if to_status == PostponementStatus.CANCELLED:
                cur.execute(
                    f"""
                    UPDATE make_up_classes
                    SET status=%s, rejection_reason=%s
                    WHERE postponement_id=%s AND status IN ({in_clause(_OPEN_MAKEUP_STATUSES)})
                    """,
                    (MakeUpStatus.REJECTED.value, "Postponement cancelled", int(postponement_id), *_OPEN_MAKEUP_STATUSES),
                )
                if cur.rowcount:
                    _insert_event(
                        cur,
                        postponement_id,
                        PostponementEvent.MAKEUP_REJECTED,
                        {"reason": "Postponement cancelled"},
                        changed_by,
                    )
            return _load_postponement(cur, postponement_id)

    def list_events(self, *, postponement_id: int) -> Sequence[PostponementEventRecord]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                SELECT event_id, postponement_id, event_type, details, created_by, created_at
                FROM postponement_events
                WHERE postponement_id=%s
                ORDER BY created_at ASC, event_id ASC
                """,
                (int(postponement_id),),
            )
            return [
                PostponementEventRecord(
                    event_id=int(r["event_id"]),
                    postponement_id=int(r["postponement_id"]),
                    event_type=PostponementEvent(r["event_type"]),
                    created_at=r["created_at"],
                    details=load_json(r.get("details"), {}) or {},
                    created_by=as_optional_int(r.get("created_by")),
                )
                for r in fetchall(cur)
            ]

    # -------- Make-up classes --------
    def get_makeup(self, *, makeup_id: int) -> Optional[MakeUpClass]:
        with db_cursor(self._conn_factory) as (_, cur):
            return _load_makeup(cur, makeup_id=makeup_id)

    def get_makeup_for_postponement(self, *, postponement_id: int) -> Optional[MakeUpClass]:
        with db_cursor(self._conn_factory) as (_, cur):
            return _load_makeup(cur, postponement_id=postponement_id)

    def save_suggestions(
        self,
        *,
        postponement_id: int,
        student_id: int,
        suggestions: Sequence[MakeUpSuggestion],
        selection_deadline: datetime,
        created_by: Optional[int],
    ) -> Optional[MakeUpClass]:
        payload = dump_json(to_jsonable(list(suggestions)))
        with db_cursor(self._conn_factory) as (_, cur):
            # Lock the parent so concurrent generators for one postponement run one at a time.
            cur.execute(
                "SELECT status FROM class_postponements WHERE postponement_id=%s FOR UPDATE",
                (int(postponement_id),),
            )
            parent = fetchone(cur)
            if not parent or parent["status"] not in _OPEN_POSTPONEMENT_STATUSES:
                return None

            existing = _load_makeup(cur, postponement_id=postponement_id, for_update=True)
            if existing and existing.status in (MakeUpStatus.STUDENT_SELECTED, MakeUpStatus.ADMIN_APPROVED, MakeUpStatus.SCHEDULED):
                return None

            cur.execute(
                """
                INSERT INTO make_up_classes(
                    postponement_id, student_id, alternative_suggestions, status, selection_deadline
                )
                VALUES(%s,%s,%s,%s,%s)
                ON DUPLICATE KEY UPDATE
                    alternative_suggestions=VALUES(alternative_suggestions),
                    status=VALUES(status),
                    selection_deadline=VALUES(selection_deadline)
                """,
                (int(postponement_id), int(student_id), payload, MakeUpStatus.SUGGESTED.value, selection_deadline),
            )
            _insert_event(
                cur,
                postponement_id,
                PostponementEvent.SUGGESTIONS_GENERATED,
                {"count": len(suggestions), "selection_deadline": selection_deadline.isoformat()},
                created_by,
            )
            return _load_makeup(cur, postponement_id=postponement_id)

    def select_makeup(self, *, makeup_id: int, suggestion: MakeUpSuggestion, selected_at: datetime) -> Optional[MakeUpClass]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"""
                UPDATE make_up_classes
                SET selected_suggestion_id=%s, selected_class_id=%s, selected_start_time=%s,
                    student_selected=1, student_selected_at=%s, status=%s
                WHERE makeup_class_id=%s AND status=%s
                  AND EXISTS (
                      SELECT 1 FROM class_postponements p
                      WHERE p.postponement_id=make_up_classes.postponement_id
                        AND p.status IN ({in_clause(_OPEN_POSTPONEMENT_STATUSES)})
                  )
                """,
                (
                    suggestion.suggestion_id,
                    suggestion.class_id,
                    suggestion.start_time,
                    selected_at,
                    MakeUpStatus.STUDENT_SELECTED.value,
                    int(makeup_id),
                    MakeUpStatus.SUGGESTED.value,
                    *_OPEN_POSTPONEMENT_STATUSES,
                ),
            )
            if cur.rowcount == 0:
                return None
            makeup = _load_makeup(cur, makeup_id=makeup_id)
            if makeup is None:
                return None
            _insert_event(
                cur,
                makeup.postponement_id,
                PostponementEvent.STUDENT_SELECTED,
                {"suggestion_id": suggestion.suggestion_id, "class_id": suggestion.class_id},
                makeup.student_id,
            )
            return makeup

    def approve_makeup(self, *, makeup_id: int, approved_by: int) -> Optional[MakeUpClass]:
        with db_cursor(self._conn_factory) as (conn, cur):
            # Parent first, then the make-up row: same lock order as cancellation.
            cur.execute(
                """
                SELECT p.status FROM class_postponements p
                JOIN make_up_classes m ON m.postponement_id=p.postponement_id
                WHERE m.makeup_class_id=%s
                FOR UPDATE OF p
                """,
                (int(makeup_id),),
            )
            parent = fetchone(cur)
            if not parent or parent["status"] not in _OPEN_POSTPONEMENT_STATUSES:
                return None

            makeup = _load_makeup(cur, makeup_id=makeup_id, for_update=True)
            if (
                makeup is None
                or makeup.status != MakeUpStatus.STUDENT_SELECTED
                or makeup.selected_class_id is None
                or makeup.selected_start_time is None
            ):
                return None

            cur.execute(
                "SELECT capacity, current_enrollment, duration_minutes FROM classes WHERE class_id=%s FOR UPDATE",
                (makeup.selected_class_id,),
            )
            seat = fetchone(cur)
            if not seat or int(seat["current_enrollment"]) >= int(seat["capacity"]):
                return None

            cur.execute(
                """
                INSERT INTO class_bookings(student_id, class_id, scheduled_at, duration_minutes, status, is_makeup)
                VALUES(%s,%s,%s,%s,%s,1)
                """,
                (
                    makeup.student_id,
                    makeup.selected_class_id,
                    makeup.selected_start_time,
                    int(seat.get("duration_minutes") or 60),
                    BookingStatus.CONFIRMED.value,
                ),
            )
            booking_id = int(cur.lastrowid)
            cur.execute(
                "UPDATE classes SET current_enrollment=current_enrollment+1 WHERE class_id=%s",
                (makeup.selected_class_id,),
            )
            cur.execute(
                """
                UPDATE make_up_classes
                SET admin_approved=1, approved_by=%s, approved_at=NOW(), scheduled_booking_id=%s, status=%s
                WHERE makeup_class_id=%s
                """,
                (int(approved_by), booking_id, MakeUpStatus.SCHEDULED.value, int(makeup_id)),
            )
            cur.execute(
                f"""
                UPDATE class_postponements SET status=%s
                WHERE postponement_id=%s AND status IN ({in_clause(_OPEN_POSTPONEMENT_STATUSES)})
                """,
                (PostponementStatus.MAKE_UP_SCHEDULED.value, makeup.postponement_id, *_OPEN_POSTPONEMENT_STATUSES),
            )
            if cur.rowcount == 0:
                conn.rollback()
                return None
            _insert_event(
                cur,
                makeup.postponement_id,
                PostponementEvent.ADMIN_APPROVED,
                {"booking_id": booking_id, "class_id": makeup.selected_class_id},
                int(approved_by),
            )
            return _load_makeup(cur, makeup_id=makeup_id)

    def reject_makeup(self, *, makeup_id: int, reason: str, rejected_by: int) -> Optional[MakeUpClass]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"""
                UPDATE make_up_classes
                SET status=%s, rejection_reason=%s
                WHERE makeup_class_id=%s AND status IN ({in_clause(_OPEN_MAKEUP_STATUSES)})
                """,
                (MakeUpStatus.REJECTED.value, reason, int(makeup_id), *_OPEN_MAKEUP_STATUSES),
            )
            if cur.rowcount == 0:
                return None
            makeup = _load_makeup(cur, makeup_id=makeup_id)
            if makeup is None:
                return None
            _insert_event(cur, makeup.postponement_id, PostponementEvent.MAKEUP_REJECTED, {"reason": reason}, int(rejected_by))
            return makeup

    def expire_makeup(self, *, makeup_id: int) -> bool:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                "UPDATE make_up_classes SET status=%s WHERE makeup_class_id=%s AND status=%s",
                (MakeUpStatus.EXPIRED.value, int(makeup_id), MakeUpStatus.SUGGESTED.value),
            )
            if cur.rowcount == 0:
                return False
            cur.execute("SELECT postponement_id FROM make_up_classes WHERE makeup_class_id=%s", (int(makeup_id),))
            r = fetchone(cur)
            _insert_event(cur, int(r["postponement_id"]), PostponementEvent.MAKEUP_EXPIRED, {}, None)
            return True

    def list_overdue_makeups(self, *, now: datetime) -> Sequence[MakeUpClass]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"""
                SELECT {MAKEUP_COLUMNS}
                FROM make_up_classes
                WHERE status=%s AND selection_deadline IS NOT NULL AND selection_deadline < %s
                """,
                (MakeUpStatus.SUGGESTED.value, now),
            )
            return [row_to_makeup(r) for r in fetchall(cur)]

    def list_student_makeups(self, *, student_id: int) -> Sequence[MakeUpClass]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"""
                SELECT {MAKEUP_COLUMNS}
                FROM make_up_classes
                WHERE student_id=%s
                ORDER BY created_at DESC
                """,
                (int(student_id),),
            )
            return [row_to_makeup(r) for r in fetchall(cur)]

    def list_makeups_by_status(self, *, status: MakeUpStatus, limit: int = 50) -> Sequence[MakeUpClass]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"""
                SELECT {MAKEUP_COLUMNS}
                FROM make_up_classes
                WHERE status=%s
                ORDER BY created_at ASC
                LIMIT %s
                """,
                (status.value, int(limit)),
            )
            return [row_to_makeup(r) for r in fetchall(cur)]

    # -------- Preferences --------
    def get_preferences(self, *, student_id: int) -> Optional[SchedulePreferences]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                SELECT student_id, preferred_days, preferred_times, preferred_teachers, avoided_teachers,
                       preferred_class_size_min, preferred_class_size_max, willing_to_change_teacher,
                       advance_notice_required_hours
                FROM student_schedule_preferences
                WHERE student_id=%s
                """,
                (int(student_id),),
            )
            r = fetchone(cur)
            return row_to_preferences(r) if r else None

    def save_preferences(self, *, preferences: SchedulePreferences) -> SchedulePreferences:
        p = preferences
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                INSERT INTO student_schedule_preferences(
                    student_id, preferred_days, preferred_times, preferred_teachers, avoided_teachers,
                    preferred_class_size_min, preferred_class_size_max, willing_to_change_teacher,
                    advance_notice_required_hours
                )
                VALUES(%s,%s,%s,%s,%s,%s,%s,%s,%s)
                ON DUPLICATE KEY UPDATE
                    preferred_days=VALUES(preferred_days),
                    preferred_times=VALUES(preferred_times),
                    preferred_teachers=VALUES(preferred_teachers),
                    avoided_teachers=VALUES(avoided_teachers),
                    preferred_class_size_min=VALUES(preferred_class_size_min),
                    preferred_class_size_max=VALUES(preferred_class_size_max),
                    willing_to_change_teacher=VALUES(willing_to_change_teacher),
                    advance_notice_required_hours=VALUES(advance_notice_required_hours)
                """,
                (
                    p.student_id,
                    dump_json(p.preferred_days),
                    dump_json(p.preferred_times),
                    dump_json(p.preferred_teachers),
                    dump_json(p.avoided_teachers),
                    p.preferred_class_size_min,
                    p.preferred_class_size_max,
                    1 if p.willing_to_change_teacher else 0,
                    p.advance_notice_required_hours,
                ),
            )
            return p
