from __future__ import annotations

from datetime import date, datetime, time, timedelta
from typing import Any, Optional, Sequence

from ..core.enums import LeaveRuleType, LeaveStatus, LeaveType, TransactionType
from ..database.connection import DatabaseConnection
from ..database.mysql_base import (
    as_bool,
    as_float,
    as_optional_int,
    current_balance,
    db_cursor,
    dump_json,
    fetchall,
    fetchone,
    load_json,
    lock_student_account,
)
from ..ledger.model import HourTransaction
from ..ledger.mysql_ledger_repository import insert_transaction, load_transaction, restore_to_oldest_purchase
from .model import LeaveRequest, LeaveRule, NewLeaveRequest, NewLeaveRule, StudentProfile
from .repository import LeaveRepository, LeaveRuleRepository

REQUEST_COLUMNS = """
    leave_request_id, student_id, class_id, booking_id, class_date, class_type, teacher_id, teacher_name,
    leave_type, reason, medical_certificate_url, additional_notes, hours_before_class, meets_48_hour_rule,
    refund_percentage, hours_to_refund, status, auto_approved, refund_processed, refund_transaction_id,
    decided_by, decided_at, admin_notes, created_at
"""

RULE_COLUMNS = """
    rule_id, rule_name, description, rule_type, rule_value, applies_to_course_types,
    applies_to_student_types, blackout_dates, priority, is_active, created_by, created_at
"""

_OPEN_STATUSES = (LeaveStatus.PENDING.value, LeaveStatus.APPROVED.value)

_UPDATABLE_RULE_FIELDS = {
    "rule_name": None,
    "description": None,
    "rule_type": None,
    "rule_value": dump_json,
    "applies_to_course_types": dump_json,
    "applies_to_student_types": dump_json,
    "blackout_dates": dump_json,
    "priority": int,
    "is_active": lambda v: 1 if v else 0,
}


def row_to_request(r: dict) -> LeaveRequest:
    return LeaveRequest(
        leave_request_id=int(r["leave_request_id"]),
        student_id=int(r["student_id"]),
        class_date=r["class_date"],
        leave_type=LeaveType(r["leave_type"]),
        reason=r["reason"],
        hours_before_class=as_float(r["hours_before_class"]),
        meets_48_hour_rule=as_bool(r.get("meets_48_hour_rule")),
        refund_percentage=int(r.get("refund_percentage") or 0),
        hours_to_refund=as_float(r.get("hours_to_refund")),
        status=LeaveStatus(r["status"]),
        created_at=r["created_at"],
        class_id=as_optional_int(r.get("class_id")),
        booking_id=as_optional_int(r.get("booking_id")),
        class_type=r.get("class_type"),
        teacher_id=as_optional_int(r.get("teacher_id")),
        teacher_name=r.get("teacher_name"),
        medical_certificate_url=r.get("medical_certificate_url"),
        additional_notes=r.get("additional_notes"),
        auto_approved=as_bool(r.get("auto_approved")),
        refund_processed=as_bool(r.get("refund_processed")),
        refund_transaction_id=as_optional_int(r.get("refund_transaction_id")),
        decided_by=as_optional_int(r.get("decided_by")),
        decided_at=r.get("decided_at"),
        admin_notes=r.get("admin_notes"),
    )


def row_to_rule(r: dict) -> LeaveRule:
    return LeaveRule(
        rule_id=int(r["rule_id"]),
        rule_name=r["rule_name"],
        rule_type=LeaveRuleType(r["rule_type"]),
        rule_value=load_json(r.get("rule_value")),
        priority=int(r.get("priority") or 0),
        is_active=as_bool(r.get("is_active")),
        description=r.get("description"),
        applies_to_course_types=list(load_json(r.get("applies_to_course_types"), []) or []),
        applies_to_student_types=list(load_json(r.get("applies_to_student_types"), []) or []),
        blackout_dates=list(load_json(r.get("blackout_dates"), []) or []),
        created_by=as_optional_int(r.get("created_by")),
        created_at=r.get("created_at"),
    )


def _load_request(cur, request_id: int, *, for_update: bool = False) -> Optional[LeaveRequest]:
    lock = " FOR UPDATE" if for_update else ""
    cur.execute(f"SELECT {REQUEST_COLUMNS} FROM leave_requests WHERE leave_request_id=%s{lock}", (int(request_id),))
    r = fetchone(cur)
    return row_to_request(r) if r else None


class MySQLLeaveRepository(LeaveRepository):
    def __init__(self, conn_factory: DatabaseConnection):
        self._conn_factory = conn_factory

    def get_request(self, *, request_id: int) -> Optional[LeaveRequest]:
        with db_cursor(self._conn_factory) as (_, cur):
            return _load_request(cur, request_id)

    def create_request(self, *, request: NewLeaveRequest) -> Optional[LeaveRequest]:
        with db_cursor(self._conn_factory) as (_, cur):
            lock_student_account(cur, request.student_id)

            if request.class_id is not None:
                cur.execute(
                    """
                    SELECT leave_request_id FROM leave_requests
                    WHERE student_id=%s AND class_id=%s AND status IN (%s,%s)
                    LIMIT 1
                    """,
                    (request.student_id, request.class_id, *_OPEN_STATUSES),
                )
            else:
                cur.execute(
                    """
                    SELECT leave_request_id FROM leave_requests
                    WHERE student_id=%s AND class_id IS NULL AND class_date=%s AND status IN (%s,%s)
                    LIMIT 1
                    """,
                    (request.student_id, request.class_date, *_OPEN_STATUSES),
                )
            if fetchone(cur):
                return None

            cur.execute(
                """
                INSERT INTO leave_requests(
                    student_id, class_id, booking_id, class_date, class_type, teacher_id, teacher_name,
                    leave_type, reason, medical_certificate_url, additional_notes, hours_before_class,
                    meets_48_hour_rule, refund_percentage, hours_to_refund, status, auto_approved,
                    decided_at
                )
                VALUES(%s,%s,%s,%s,%s,%s,%s,%s,%s,%s,%s,%s,%s,%s,%s,%s,%s,IF(%s=1, NOW(), NULL))
                """,
                (
                    request.student_id,
                    request.class_id,
                    request.booking_id,
                    request.class_date,
                    request.class_type,
                    request.teacher_id,
                    request.teacher_name,
                    request.leave_type.value,
                    request.reason,
                    request.medical_certificate_url,
                    request.additional_notes,
                    round(request.hours_before_class, 3),
                    1 if request.meets_48_hour_rule else 0,
                    int(request.refund_percentage),
                    round(request.hours_to_refund, 2),
                    request.status.value,
                    1 if request.auto_approved else 0,
                    1 if request.auto_approved else 0,
                ),
            )
            return _load_request(cur, int(cur.lastrowid))

    def _page(self, where: str, params: tuple, order: str, limit: int, offset: int) -> tuple[Sequence[LeaveRequest], int]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(f"SELECT COUNT(*) AS total FROM leave_requests WHERE {where}", params)
            total_row = fetchone(cur)
            cur.execute(
                f"""
                SELECT {REQUEST_COLUMNS}
                FROM leave_requests
                WHERE {where}
                ORDER BY {order}
                LIMIT %s OFFSET %s
                """,
                params + (int(limit), int(offset)),
            )
            return [row_to_request(r) for r in fetchall(cur)], int(total_row["total"] if total_row else 0)

    def list_student_requests(
        self,
        *,
        student_id: int,
        status: Optional[LeaveStatus] = None,
        limit: int = 10,
        offset: int = 0,
    ) -> tuple[Sequence[LeaveRequest], int]:
        where = "student_id=%s"
        params: tuple = (int(student_id),)
        if status is not None:
            where += " AND status=%s"
            params += (status.value,)
        return self._page(where, params, "created_at DESC, leave_request_id DESC", limit, offset)

    def list_pending(self, *, limit: int = 10, offset: int = 0) -> tuple[Sequence[LeaveRequest], int]:
        return self._page("status=%s", (LeaveStatus.PENDING.value,), "created_at ASC, leave_request_id ASC", limit, offset)

    def decide(
        self,
        *,
        request_id: int,
        status: LeaveStatus,
        decided_by: int,
        notes: Optional[str],
    ) -> Optional[LeaveRequest]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                UPDATE leave_requests
                SET status=%s, decided_by=%s, decided_at=NOW(), admin_notes=%s
                WHERE leave_request_id=%s AND status=%s
                """,
                (status.value, int(decided_by), notes, int(request_id), LeaveStatus.PENDING.value),
            )
            if cur.rowcount == 0:
                return None
            return _load_request(cur, request_id)

    def cancel(self, *, request_id: int, student_id: int) -> Optional[LeaveRequest]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                UPDATE leave_requests
                SET status=%s
                WHERE leave_request_id=%s AND student_id=%s AND status=%s
                """,
                (LeaveStatus.CANCELLED.value, int(request_id), int(student_id), LeaveStatus.PENDING.value),
            )
            if cur.rowcount == 0:
                return None
            return _load_request(cur, request_id)

    def process_refund(self, *, request_id: int, created_by: Optional[int]) -> Optional[HourTransaction]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute("SELECT student_id FROM leave_requests WHERE leave_request_id=%s", (int(request_id),))
            owner = fetchone(cur)
            if not owner:
                return None
            student_id = int(owner["student_id"])
            lock_student_account(cur, student_id)

            request = _load_request(cur, request_id, for_update=True)
            if (
                request is None
                or request.refund_processed
                or request.status != LeaveStatus.APPROVED
                or request.hours_to_refund <= 0
            ):
                return None

            balance = current_balance(cur, student_id)
            transaction_id = insert_transaction(
                cur,
                student_id=student_id,
                transaction_type=TransactionType.REFUND,
                hours_amount=request.hours_to_refund,
                balance_before=balance,
                class_id=request.class_id,
                booking_id=request.booking_id,
                class_type=request.class_type,
                description=f"Leave request refund ({request.refund_percentage}%)",
                reason=request.reason,
                created_by=created_by,
            )
            restore_to_oldest_purchase(cur, student_id=student_id, hours=request.hours_to_refund)
            cur.execute(
                """
                UPDATE leave_requests
                SET refund_processed=1, refund_transaction_id=%s
                WHERE leave_request_id=%s AND refund_processed=0
                """,
                (transaction_id, int(request_id)),
            )
            return load_transaction(cur, transaction_id)

    def list_for_stats(self, *, student_id: Optional[int], since: datetime) -> Sequence[LeaveRequest]:
        where = "created_at >= %s"
        params: list[Any] = [since]
        if student_id is not None:
            where += " AND student_id=%s"
            params.append(int(student_id))
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(f"SELECT {REQUEST_COLUMNS} FROM leave_requests WHERE {where}", tuple(params))
            return [row_to_request(r) for r in fetchall(cur)]

    def count_approved_in_month(self, *, student_id: int, month_start: date, month_end: date) -> int:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                SELECT COUNT(*) AS total
                FROM leave_requests
                WHERE student_id=%s AND status=%s AND class_date >= %s AND class_date < %s
                """,
                (
                    int(student_id),
                    LeaveStatus.APPROVED.value,
                    datetime.combine(month_start, time.min),
                    datetime.combine(month_end + timedelta(days=1), time.min),
                ),
            )
            r = fetchone(cur)
            return int(r["total"]) if r else 0

    def get_student_profile(self, *, student_id: int) -> Optional[StudentProfile]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                "SELECT student_id, student_type, course_type FROM students WHERE student_id=%s",
                (int(student_id),),
            )
            r = fetchone(cur)
            if not r:
                return None
            return StudentProfile(
                student_id=int(r["student_id"]),
                student_type=r.get("student_type"),
                course_type=r.get("course_type"),
            )


class MySQLLeaveRuleRepository(LeaveRuleRepository):
    def __init__(self, conn_factory: DatabaseConnection):
        self._conn_factory = conn_factory

    def list_rules(self, *, active_only: bool = False) -> Sequence[LeaveRule]:
        where = "WHERE is_active=1" if active_only else ""
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(f"SELECT {RULE_COLUMNS} FROM leave_rules {where} ORDER BY priority DESC, rule_id ASC")
            return [row_to_rule(r) for r in fetchall(cur)]

    def get_rule(self, *, rule_id: int) -> Optional[LeaveRule]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(f"SELECT {RULE_COLUMNS} FROM leave_rules WHERE rule_id=%s", (int(rule_id),))
            r = fetchone(cur)
            return row_to_rule(r) if r else None

    def create_rule(self, *, rule: NewLeaveRule, created_by: int) -> LeaveRule:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                INSERT INTO leave_rules(
                    rule_name, description, rule_type, rule_value, applies_to_course_types,
                    applies_to_student_types, blackout_dates, priority, is_active, created_by
                )
                VALUES(%s,%s,%s,%s,%s,%s,%s,%s,%s,%s)
                """,
                (
                    rule.rule_name,
                    rule.description,
                    rule.rule_type.value,
                    dump_json(rule.rule_value),
                    dump_json(rule.applies_to_course_types),
                    dump_json(rule.applies_to_student_types),
                    dump_json(rule.blackout_dates),
                    int(rule.priority),
                    1 if rule.is_active else 0,
                    int(created_by),
                ),
            )
            cur.execute(f"SELECT {RULE_COLUMNS} FROM leave_rules WHERE rule_id=%s", (int(cur.lastrowid),))
            return row_to_rule(fetchone(cur))

    def update_rule(self, *, rule_id: int, changes: dict[str, Any]) -> Optional[LeaveRule]:
        sets: list[str] = []
        params: list[Any] = []
        for name, value in changes.items():
            if name not in _UPDATABLE_RULE_FIELDS:
                raise TypeError(f"Unknown leave rule field: {name}")
            convert = _UPDATABLE_RULE_FIELDS[name]
            if isinstance(value, LeaveRuleType):
                value = value.value
            sets.append(f"{name}=%s")
            params.append(convert(value) if convert else value)

        with db_cursor(self._conn_factory) as (_, cur):
            if sets:
                cur.execute(
                    f"UPDATE leave_rules SET {', '.join(sets)} WHERE rule_id=%s",
                    tuple(params + [int(rule_id)]),
                )
            cur.execute(f"SELECT {RULE_COLUMNS} FROM leave_rules WHERE rule_id=%s", (int(rule_id),))
            r = fetchone(cur)
            return row_to_rule(r) if r else None

    def deactivate_rule(self, *, rule_id: int) -> bool:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute("UPDATE leave_rules SET is_active=0 WHERE rule_id=%s AND is_active=1", (int(rule_id),))
            return cur.rowcount > 0
