from __future__ import annotations

from typing import Optional, Sequence

from ..core.enums import AdjustmentType, ApprovalStatus, TransactionType
from ..database.connection import DatabaseConnection
from ..database.mysql_base import (
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
from ..ledger.mysql_ledger_repository import insert_transaction
from .model import HourAdjustment, NewAdjustment
from .repository import AdjustmentRepository

_COLUMNS = """
    a.adjustment_id, a.transaction_id, a.student_id, a.adjustment_type, a.hours_amount, a.reason,
    a.approval_status, a.requested_by, a.approved_by, a.approved_at, a.approval_notes,
    a.metadata, a.created_at
"""


def _row_to_adjustment(r: dict) -> HourAdjustment:
    return HourAdjustment(
        adjustment_id=int(r["adjustment_id"]),
        transaction_id=int(r["transaction_id"]),
        student_id=int(r["student_id"]),
        adjustment_type=AdjustmentType(r["adjustment_type"]),
        hours_amount=as_float(r["hours_amount"]),
        reason=r["reason"],
        approval_status=ApprovalStatus(r["approval_status"]),
        requested_by=int(r["requested_by"]),
        created_at=r["created_at"],
        approved_by=as_optional_int(r.get("approved_by")),
        approved_at=r.get("approved_at"),
        approval_notes=r.get("approval_notes"),
        metadata=load_json(r.get("metadata"), {}) or {},
    )


def _load(cur, adjustment_id: int, *, for_update: bool = False) -> Optional[HourAdjustment]:
    lock = " FOR UPDATE" if for_update else ""
    cur.execute(f"SELECT {_COLUMNS} FROM hour_adjustments a WHERE a.adjustment_id=%s{lock}", (int(adjustment_id),))
    r = fetchone(cur)
    return _row_to_adjustment(r) if r else None


def _owner(cur, adjustment_id: int) -> Optional[int]:
    cur.execute("SELECT student_id FROM hour_adjustments WHERE adjustment_id=%s", (int(adjustment_id),))
    r = fetchone(cur)
    return int(r["student_id"]) if r else None


class MySQLAdjustmentRepository(AdjustmentRepository):
    def __init__(self, conn_factory: DatabaseConnection):
        self._conn_factory = conn_factory

    def get_adjustment(self, *, adjustment_id: int) -> Optional[HourAdjustment]:
        with db_cursor(self._conn_factory) as (_, cur):
            return _load(cur, adjustment_id)

    def create_adjustment(self, *, adjustment: NewAdjustment) -> Optional[HourAdjustment]:
        hours = round(float(adjustment.hours), 2)
        signed = -hours if adjustment.adjustment_type == AdjustmentType.SUBTRACT else hours

        with db_cursor(self._conn_factory) as (_, cur):
            lock_student_account(cur, adjustment.student_id)
            balance = current_balance(cur, adjustment.student_id)
            if balance + signed < 0:
                return None

            transaction_id = insert_transaction(
                cur,
                student_id=adjustment.student_id,
                transaction_type=TransactionType.ADJUSTMENT,
                hours_amount=signed,
                balance_before=balance,
                requires_approval=True,
                description=f"Manual adjustment: {adjustment.reason}",
                reason=adjustment.reason,
                created_by=adjustment.requested_by,
            )
            cur.execute(
                """
                INSERT INTO hour_adjustments(
                    transaction_id, student_id, adjustment_type, hours_amount, reason,
                    approval_status, requested_by, metadata
                )
                VALUES(%s,%s,%s,%s,%s,%s,%s,%s)
                """,
                (
                    transaction_id,
                    adjustment.student_id,
                    adjustment.adjustment_type.value,
                    hours,
                    adjustment.reason,
                    ApprovalStatus.PENDING.value,
                    adjustment.requested_by,
                    dump_json(
                        {
                            "notes": adjustment.notes,
                            "original_balance": balance,
                            "new_balance": round(balance + signed, 2),
                        }
                    ),
                ),
            )
            return _load(cur, int(cur.lastrowid))

    def approve_adjustment(self, *, adjustment_id: int, approved_by: int, notes: Optional[str]) -> Optional[HourAdjustment]:
        with db_cursor(self._conn_factory) as (_, cur):
            student_id = _owner(cur, adjustment_id)
            if student_id is None:
                return None
            lock_student_account(cur, student_id)

            current = _load(cur, adjustment_id, for_update=True)
            if (
                current is None
                or current.approval_status != ApprovalStatus.PENDING
                or current.requested_by == int(approved_by)
            ):
                return None

            # Snapshot is taken again at approval time; the balance may have moved since creation.
            balance = current_balance(cur, student_id)
            signed = current.signed_hours
            if balance + signed < 0:
                return None

            cur.execute(
                """
                UPDATE hour_transactions
                SET requires_approval=0, balance_before=%s, balance_after=%s
                WHERE transaction_id=%s AND requires_approval=1 AND is_rejected=0
                """,
                (round(balance, 2), round(balance + signed, 2), current.transaction_id),
            )
            if cur.rowcount == 0:
                return None
            cur.execute(
                """
                UPDATE hour_adjustments
                SET approval_status=%s, approved_by=%s, approved_at=NOW(), approval_notes=%s
                WHERE adjustment_id=%s AND approval_status=%s
                """,
                (ApprovalStatus.APPROVED.value, int(approved_by), notes, int(adjustment_id), ApprovalStatus.PENDING.value),
            )
            return _load(cur, adjustment_id)

    def reject_adjustment(self, *, adjustment_id: int, rejected_by: int, notes: Optional[str]) -> Optional[HourAdjustment]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                UPDATE hour_adjustments
                SET approval_status=%s, approved_by=%s, approved_at=NOW(), approval_notes=%s
                WHERE adjustment_id=%s AND approval_status=%s
                """,
                (ApprovalStatus.REJECTED.value, int(rejected_by), notes, int(adjustment_id), ApprovalStatus.PENDING.value),
            )
            if cur.rowcount == 0:
                return None
            current = _load(cur, adjustment_id)
            if current is None:
                return None
            cur.execute(
                "UPDATE hour_transactions SET is_rejected=1 WHERE transaction_id=%s",
                (current.transaction_id,),
            )
            return current

    def list_pending(
        self,
        *,
        limit: int = 20,
        offset: int = 0,
        student_id: Optional[int] = None,
    ) -> Sequence[HourAdjustment]:
        clauses = ["a.approval_status=%s"]
        params: list[object] = [ApprovalStatus.PENDING.value]
        if student_id is not None:
            clauses.append("a.student_id=%s")
            params.append(int(student_id))

        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"""
                SELECT {_COLUMNS}
                FROM hour_adjustments a
                WHERE {' AND '.join(clauses)}
                ORDER BY a.created_at DESC, a.adjustment_id DESC
                LIMIT %s OFFSET %s
                """,
                tuple(params + [int(limit), int(offset)]),
            )
            return [_row_to_adjustment(r) for r in fetchall(cur)]
