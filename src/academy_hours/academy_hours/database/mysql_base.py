from __future__ import annotations

import json
from contextlib import contextmanager
from datetime import time, timedelta
from decimal import Decimal
from typing import Any, Dict, Iterable, List, Optional

from .connection import DatabaseConnection


@contextmanager
def db_cursor(conn_factory: DatabaseConnection, *, dictionary: bool = True):
    conn = conn_factory.connect()
    try:
        cur = conn.cursor(dictionary=dictionary)
        try:
            yield conn, cur
            conn.commit()
        finally:
            cur.close()
    except Exception:
        conn.rollback()
        raise
    finally:
        conn.close()


def fetchone(cur) -> Optional[Dict[str, Any]]:
    row = cur.fetchone()
    return row if row else None


def fetchall(cur) -> List[Dict[str, Any]]:
    rows = cur.fetchall()
    return list(rows or [])


def lock_student_account(cur, student_id: int) -> None:
    """Serialize ledger writers for one student inside the current transaction.

    The account row is created on first use; `FOR UPDATE` then blocks concurrent
    writers for the same student until this transaction commits or rolls back.
    """
    cur.execute(
        "INSERT IGNORE INTO student_hour_accounts(student_id) VALUES(%s)",
        (int(student_id),),
    )
    cur.execute(
        "SELECT student_id FROM student_hour_accounts WHERE student_id=%s FOR UPDATE",
        (int(student_id),),
    )
    cur.fetchall()


# Transactions counted in a balance: not reversed, not a reversal row,
# not awaiting approval and not rejected.
BALANCE_CONDITION = (
    "is_reversed=0 AND transaction_type<>'reversal' AND requires_approval=0 AND is_rejected=0"
)


def current_balance(cur, student_id: int) -> float:
    cur.execute(
        f"""
        SELECT COALESCE(SUM(hours_amount), 0) AS balance
        FROM hour_transactions
        WHERE student_id=%s AND {BALANCE_CONDITION}
        """,
        (int(student_id),),
    )
    row = fetchone(cur)
    return as_float(row["balance"] if row else 0)


def as_float(value: Any) -> float:
    if value is None:
        return 0.0
    if isinstance(value, Decimal):
        return float(value)
    return float(value)


def as_bool(value: Any) -> bool:
    return bool(int(value)) if value is not None else False


def as_optional_int(value: Any) -> Optional[int]:
    return int(value) if value is not None else None


def dump_json(value: Any) -> str:
    return json.dumps(value, default=str)


def load_json(value: Any, default: Any = None) -> Any:
    if value is None or value == "":
        return default
    if isinstance(value, (dict, list)):
        return value
    if isinstance(value, (bytes, bytearray)):
        value = value.decode("utf-8")
    return json.loads(value)


def in_clause(values: Iterable[Any]) -> str:
    return ",".join(["%s"] * len(list(values)))


def normalize_mysql_time(value: Any) -> Optional[time]:
    """Normalize MySQL TIME values across connector implementations.

    mysql-connector can return TIME as:
    - datetime.time
    - datetime.timedelta
    - string (e.g. '08:30:00')
    """

    if value is None:
        return None

    if isinstance(value, time):
        return value

    if isinstance(value, timedelta):
        total_seconds = int(value.total_seconds()) % 86400
        hours = total_seconds // 3600
        minutes = (total_seconds % 3600) // 60
        seconds = total_seconds % 60
        return time(hour=hours, minute=minutes, second=seconds)

    if isinstance(value, str):
        parts = value.strip().split(":")
        if len(parts) < 2:
            raise ValueError(f"Invalid time string: {value!r}")
        hours = int(parts[0])
        minutes = int(parts[1])
        seconds = int(parts[2]) if len(parts) >= 3 and parts[2] else 0
        return time(hour=hours, minute=minutes, second=seconds)

    raise TypeError(f"Unsupported MySQL TIME value type: {type(value)!r}")
