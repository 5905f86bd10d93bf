from __future__ import annotations

from datetime import datetime
from typing import Sequence

from ..core.enums import PaymentStatus, TransactionType
from ..database.connection import DatabaseConnection
from ..database.mysql_base import as_float, as_optional_int, db_cursor, fetchall
from .model import ClassCost, ClassSession, HourUsage, PaidPurchase, TimeSlot
from .repository import AnalyticsRepository


class MySQLAnalyticsRepository(AnalyticsRepository):
    def __init__(self, conn_factory: DatabaseConnection):
        self._conn_factory = conn_factory

    def list_time_slots(self, *, start: datetime, end: datetime) -> Sequence[TimeSlot]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                SELECT slot_id, teacher_id, start_time, end_time
                FROM available_time_slots
                WHERE start_time >= %s AND start_time <= %s
                """,
                (start, end),
            )
            return [
                TimeSlot(
                    slot_id=int(r["slot_id"]),
                    start_time=r["start_time"],
                    end_time=r["end_time"],
                    teacher_id=as_optional_int(r.get("teacher_id")),
                )
                for r in fetchall(cur)
            ]

    def list_class_sessions(self, *, start: datetime, end: datetime) -> Sequence[ClassSession]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                SELECT class_id, class_date, class_type, revenue, duration_hours, student_count, capacity
                FROM class_revenue
                WHERE class_date >= %s AND class_date <= %s
                """,
                (start, end),
            )
            return [
                ClassSession(
                    class_id=int(r["class_id"]),
                    class_date=r["class_date"],
                    class_type=r["class_type"],
                    revenue=as_float(r["revenue"]),
                    duration_hours=as_float(r["duration_hours"]),
                    student_count=int(r.get("student_count") or 0),
                    capacity=int(r.get("capacity") or 0),
                )
                for r in fetchall(cur)
            ]

    def list_class_costs(self, *, start: datetime, end: datetime) -> Sequence[ClassCost]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                "SELECT class_id, class_date, cost FROM class_costs WHERE class_date >= %s AND class_date <= %s",
                (start, end),
            )
            return [
                ClassCost(class_id=int(r["class_id"]), class_date=r["class_date"], cost=as_float(r["cost"]))
                for r in fetchall(cur)
            ]

    def list_paid_purchases(self, *, start: datetime, end: datetime) -> Sequence[PaidPurchase]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                SELECT p.purchase_id, p.student_id, p.price_paid, p.hours_purchased, p.created_at, s.full_name
                FROM hour_purchases p
                LEFT JOIN students s ON s.student_id = p.student_id
                WHERE p.payment_status=%s AND p.created_at >= %s AND p.created_at <= %s
                ORDER BY p.created_at ASC
                """,
                (PaymentStatus.COMPLETED.value, start, end),
            )
            return [
                PaidPurchase(
                    purchase_id=int(r["purchase_id"]),
                    student_id=int(r["student_id"]),
                    amount=as_float(r["price_paid"]),
                    hours=as_float(r["hours_purchased"]),
                    purchased_at=r["created_at"],
                    student_name=r.get("full_name"),
                )
                for r in fetchall(cur)
            ]

    def _usage(self, transaction_type: TransactionType, start: datetime, end: datetime) -> list[HourUsage]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                SELECT student_id, hours_amount, created_at, class_type, class_id
                FROM hour_transactions
                WHERE transaction_type=%s AND is_reversed=0 AND created_at >= %s AND created_at <= %s
                ORDER BY created_at ASC
                """,
                (transaction_type.value, start, end),
            )
            return [
                HourUsage(
                    student_id=int(r["student_id"]),
                    hours=abs(as_float(r["hours_amount"])),
                    created_at=r["created_at"],
                    class_type=r.get("class_type"),
                    class_id=as_optional_int(r.get("class_id")),
                )
                for r in fetchall(cur)
            ]

    def list_deductions(self, *, start: datetime, end: datetime) -> Sequence[HourUsage]:
        return self._usage(TransactionType.DEDUCTION, start, end)

    def list_expiries(self, *, start: datetime, end: datetime) -> Sequence[HourUsage]:
        return self._usage(TransactionType.EXPIRY, start, end)
