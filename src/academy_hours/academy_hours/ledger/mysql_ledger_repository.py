from __future__ import annotations

from datetime import datetime
from typing import Any, Optional, Sequence

from ..core.enums import AlertType, PaymentStatus, TransactionType
from ..database.connection import DatabaseConnection
from ..database.mysql_base import (
    as_bool,
    as_float,
    as_optional_int,
    current_balance,
    db_cursor,
    fetchall,
    fetchone,
    lock_student_account,
)
from .model import (
    HourAlert,
    HourPackage,
    HourPurchase,
    HourTransaction,
    HourTransferLog,
    NewDeduction,
    NewTransfer,
    TransferResult,
)
from .repository import LedgerRepository, PurchaseRepository

TRANSACTION_COLUMNS = """
    transaction_id, student_id, transaction_type, hours_amount, balance_before, balance_after,
    class_id, booking_id, purchase_id, class_type, deduction_rate,
    transfer_to_student_id, transfer_from_student_id, description, reason,
    is_reversed, reversed_by, reversed_at, reversal_reason, original_transaction_id,
    requires_approval, is_rejected, created_by, created_at
"""

PURCHASE_COLUMNS = """
    purchase_id, student_id, package_id, hours_purchased, hours_remaining, price_paid,
    payment_method, payment_status, payment_reference, valid_from, valid_until,
    is_active, is_expired, created_at
"""

_INSERTABLE_FIELDS = (
    "class_id",
    "booking_id",
    "purchase_id",
    "class_type",
    "deduction_rate",
    "transfer_to_student_id",
    "transfer_from_student_id",
    "description",
    "reason",
    "original_transaction_id",
    "created_by",
)


# -------- Row mapping and SQL helpers shared by the other ledger-writing repositories --------
def row_to_transaction(r: dict) -> HourTransaction:
    return HourTransaction(
        transaction_id=int(r["transaction_id"]),
        student_id=int(r["student_id"]),
        transaction_type=TransactionType(r["transaction_type"]),
        hours_amount=as_float(r["hours_amount"]),
        balance_before=as_float(r["balance_before"]),
        balance_after=as_float(r["balance_after"]),
        created_at=r["created_at"],
        class_id=as_optional_int(r.get("class_id")),
        booking_id=as_optional_int(r.get("booking_id")),
        purchase_id=as_optional_int(r.get("purchase_id")),
        class_type=r.get("class_type"),
        deduction_rate=as_float(r["deduction_rate"]) if r.get("deduction_rate") is not None else None,
        transfer_to_student_id=as_optional_int(r.get("transfer_to_student_id")),
        transfer_from_student_id=as_optional_int(r.get("transfer_from_student_id")),
        description=r.get("description"),
        reason=r.get("reason"),
        is_reversed=as_bool(r.get("is_reversed")),
        reversed_by=as_optional_int(r.get("reversed_by")),
        reversed_at=r.get("reversed_at"),
        reversal_reason=r.get("reversal_reason"),
        original_transaction_id=as_optional_int(r.get("original_transaction_id")),
        requires_approval=as_bool(r.get("requires_approval")),
        is_rejected=as_bool(r.get("is_rejected")),
        created_by=as_optional_int(r.get("created_by")),
    )


def row_to_purchase(r: dict) -> HourPurchase:
    return HourPurchase(
        purchase_id=int(r["purchase_id"]),
        student_id=int(r["student_id"]),
        package_id=as_optional_int(r.get("package_id")),
        hours_purchased=as_float(r["hours_purchased"]),
        hours_remaining=as_float(r["hours_remaining"]),
        price_paid=as_float(r.get("price_paid")),
        payment_method=r.get("payment_method"),
        payment_status=PaymentStatus(r["payment_status"]),
        payment_reference=r.get("payment_reference"),
        valid_from=r["valid_from"],
        valid_until=r["valid_until"],
        is_active=as_bool(r.get("is_active")),
        is_expired=as_bool(r.get("is_expired")),
        created_at=r["created_at"],
    )


def insert_transaction(
    cur,
    *,
    student_id: int,
    transaction_type: TransactionType,
    hours_amount: float,
    balance_before: float,
    requires_approval: bool = False,
    **fields: Any,
) -> int:
    unknown = set(fields) - set(_INSERTABLE_FIELDS)
    if unknown:
        raise TypeError(f"Unknown transaction fields: {sorted(unknown)}")

    hours_amount = round(float(hours_amount), 2)
    balance_before = round(float(balance_before), 2)
    columns = ["student_id", "transaction_type", "hours_amount", "balance_before", "balance_after", "requires_approval"]
    values: list[Any] = [
        int(student_id),
        transaction_type.value,
        hours_amount,
        balance_before,
        round(balance_before + hours_amount, 2),
        1 if requires_approval else 0,
    ]
    for name in _INSERTABLE_FIELDS:
        if fields.get(name) is not None:
            columns.append(name)
            values.append(fields[name])

    cur.execute(
        f"INSERT INTO hour_transactions({', '.join(columns)}) VALUES({', '.join(['%s'] * len(values))})",
        tuple(values),
    )
    return int(cur.lastrowid)


def load_transaction(cur, transaction_id: int) -> Optional[HourTransaction]:
    cur.execute(
        f"SELECT {TRANSACTION_COLUMNS} FROM hour_transactions WHERE transaction_id=%s",
        (int(transaction_id),),
    )
    r = fetchone(cur)
    return row_to_transaction(r) if r else None


def consume_purchases_fifo(cur, *, student_id: int, hours: float) -> Optional[int]:
    """Draw `hours` from packages, soonest expiry first. Returns the first package touched."""
    cur.execute(
        """
        SELECT purchase_id, hours_remaining
        FROM hour_purchases
        WHERE student_id=%s AND is_active=1 AND is_expired=0
          AND payment_status='completed' AND hours_remaining > 0 AND valid_until >= NOW()
        ORDER BY valid_until ASC, created_at ASC
        FOR UPDATE
        """,
        (int(student_id),),
    )
    rows = fetchall(cur)
    first_purchase_id: Optional[int] = None
    left = round(float(hours), 2)
    for r in rows:
        if left <= 0:
            break
        take = min(as_float(r["hours_remaining"]), left)
        cur.execute(
            "UPDATE hour_purchases SET hours_remaining=hours_remaining-%s WHERE purchase_id=%s",
            (take, int(r["purchase_id"])),
        )
        if first_purchase_id is None:
            first_purchase_id = int(r["purchase_id"])
        left = round(left - take, 2)
    return first_purchase_id


def restore_to_oldest_purchase(cur, *, student_id: int, hours: float) -> Optional[int]:
    cur.execute(
        """
        SELECT purchase_id
        FROM hour_purchases
        WHERE student_id=%s AND is_active=1 AND is_expired=0 AND payment_status='completed'
        ORDER BY valid_until ASC, created_at ASC
        LIMIT 1
        FOR UPDATE
        """,
        (int(student_id),),
    )
    r = fetchone(cur)
    if not r:
        return None
    cur.execute(
        """
        UPDATE hour_purchases
        SET hours_remaining=LEAST(hours_purchased, hours_remaining + %s)
        WHERE purchase_id=%s
        """,
        (round(float(hours), 2), int(r["purchase_id"])),
    )
    return int(r["purchase_id"])


class MySQLLedgerRepository(LedgerRepository):
    def __init__(self, conn_factory: DatabaseConnection):
        self._conn_factory = conn_factory

    # -------- Reads --------
    def get_balance(self, *, student_id: int) -> float:
        with db_cursor(self._conn_factory) as (_, cur):
            return current_balance(cur, int(student_id))

    def get_transaction(self, *, transaction_id: int) -> Optional[HourTransaction]:
        with db_cursor(self._conn_factory) as (_, cur):
            return load_transaction(cur, int(transaction_id))

    def list_transactions(
        self,
        *,
        student_id: int,
        transaction_type: Optional[TransactionType] = None,
        start: Optional[datetime] = None,
        end: Optional[datetime] = None,
        limit: int = 50,
        offset: int = 0,
    ) -> Sequence[HourTransaction]:
        clauses = ["student_id=%s"]
        params: list[object] = [int(student_id)]

        if transaction_type is not None:
            clauses.append("transaction_type=%s")
            params.append(transaction_type.value)
        if start is not None:
            clauses.append("created_at >= %s")
            params.append(start)
        if end is not None:
            clauses.append("created_at <= %s")
            params.append(end)

        where = " AND ".join(clauses)

        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"""
                SELECT {TRANSACTION_COLUMNS}
                FROM hour_transactions
                WHERE {where}
                ORDER BY created_at DESC, transaction_id DESC
                LIMIT %s OFFSET %s
                """,
                tuple(params + [int(limit), int(offset)]),
            )
            return [row_to_transaction(r) for r in fetchall(cur)]

    def list_active_purchases(self, *, student_id: int, now: datetime) -> Sequence[HourPurchase]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"""
                SELECT {PURCHASE_COLUMNS}
                FROM hour_purchases
                WHERE student_id=%s AND is_active=1 AND is_expired=0
                  AND payment_status='completed' AND hours_remaining > 0 AND valid_until >= %s
                ORDER BY valid_until ASC, created_at ASC
                """,
                (int(student_id), now),
            )
            return [row_to_purchase(r) for r in fetchall(cur)]

    # -------- Atomic writes --------
    def deduct_hours(self, *, deduction: NewDeduction) -> Optional[HourTransaction]:
        hours = round(float(deduction.hours), 2)
        with db_cursor(self._conn_factory) as (_, cur):
            lock_student_account(cur, deduction.student_id)
            balance = current_balance(cur, deduction.student_id)
            if balance < hours:
                return None

            purchase_id = consume_purchases_fifo(cur, student_id=deduction.student_id, hours=hours)
            transaction_id = insert_transaction(
                cur,
                student_id=deduction.student_id,
                transaction_type=TransactionType.DEDUCTION,
                hours_amount=-hours,
                balance_before=balance,
                class_id=deduction.class_id,
                booking_id=deduction.booking_id,
                purchase_id=purchase_id,
                class_type=deduction.class_type,
                deduction_rate=deduction.deduction_rate,
                description=deduction.description,
                created_by=deduction.created_by,
            )
            return load_transaction(cur, transaction_id)

    def add_hours(
        self,
        *,
        student_id: int,
        hours: float,
        transaction_type: TransactionType,
        reason: Optional[str] = None,
        purchase_id: Optional[int] = None,
        created_by: Optional[int] = None,
    ) -> HourTransaction:
        with db_cursor(self._conn_factory) as (_, cur):
            lock_student_account(cur, student_id)
            balance = current_balance(cur, student_id)
            transaction_id = insert_transaction(
                cur,
                student_id=student_id,
                transaction_type=transaction_type,
                hours_amount=abs(float(hours)),
                balance_before=balance,
                purchase_id=purchase_id,
                reason=reason,
                created_by=created_by,
            )
            return load_transaction(cur, transaction_id)

    def transfer_hours(self, *, transfer: NewTransfer) -> Optional[TransferResult]:
        hours = round(float(transfer.hours), 2)
        with db_cursor(self._conn_factory) as (_, cur):
            # Fixed lock order so two opposite transfers cannot deadlock.
            for student_id in sorted({transfer.from_student_id, transfer.to_student_id}):
                lock_student_account(cur, student_id)

            from_balance = current_balance(cur, transfer.from_student_id)
            if from_balance < hours:
                return None
            to_balance = current_balance(cur, transfer.to_student_id)

            from_purchase_id = consume_purchases_fifo(cur, student_id=transfer.from_student_id, hours=hours)
            debit_id = insert_transaction(
                cur,
                student_id=transfer.from_student_id,
                transaction_type=TransactionType.TRANSFER,
                hours_amount=-hours,
                balance_before=from_balance,
                purchase_id=from_purchase_id,
                transfer_to_student_id=transfer.to_student_id,
                reason=transfer.reason,
                created_by=transfer.created_by,
            )
            credit_id = insert_transaction(
                cur,
                student_id=transfer.to_student_id,
                transaction_type=TransactionType.TRANSFER,
                hours_amount=hours,
                balance_before=to_balance,
                transfer_from_student_id=transfer.from_student_id,
                reason=transfer.reason,
                created_by=transfer.created_by,
            )
            cur.execute(
                """
                INSERT INTO hour_transfer_logs(
                    from_student_id, to_student_id, hours, from_purchase_id,
                    from_transaction_id, to_transaction_id, reason,
                    is_family_transfer, family_relationship, created_by
                )
                VALUES(%s,%s,%s,%s,%s,%s,%s,%s,%s,%s)
                """,
                (
                    transfer.from_student_id,
                    transfer.to_student_id,
                    hours,
                    from_purchase_id,
                    debit_id,
                    credit_id,
                    transfer.reason,
                    1 if transfer.is_family_transfer else 0,
                    transfer.family_relationship,
                    transfer.created_by,
                ),
            )
            transfer_id = int(cur.lastrowid)
            cur.execute("SELECT created_at FROM hour_transfer_logs WHERE transfer_id=%s", (transfer_id,))
            created = fetchone(cur)

            debit = load_transaction(cur, debit_id)
            credit = load_transaction(cur, credit_id)
            log = HourTransferLog(
                transfer_id=transfer_id,
                from_student_id=transfer.from_student_id,
                to_student_id=transfer.to_student_id,
                hours=hours,
                from_transaction_id=debit_id,
                to_transaction_id=credit_id,
                created_at=created["created_at"] if created else debit.created_at,
                from_purchase_id=from_purchase_id,
                reason=transfer.reason,
                is_family_transfer=transfer.is_family_transfer,
                family_relationship=transfer.family_relationship,
                created_by=transfer.created_by,
            )
            return TransferResult(transfer=log, debit=debit, credit=credit)

    def reverse_transaction(
        self,
        *,
        transaction_id: int,
        reason: str,
        reversed_by: int,
    ) -> Optional[HourTransaction]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute("SELECT student_id FROM hour_transactions WHERE transaction_id=%s", (int(transaction_id),))
            owner = fetchone(cur)
            if not owner:
                return None
            student_id = int(owner["student_id"])
            lock_student_account(cur, student_id)

            original = load_transaction(cur, transaction_id)
            if (
                original is None
                or original.is_reversed
                or original.transaction_type in (TransactionType.REVERSAL, TransactionType.TRANSFER)
            ):
                return None

            balance = current_balance(cur, student_id)
            reversal_amount = -original.hours_amount
            if balance + reversal_amount < 0:
                return None

            cur.execute(
                """
                UPDATE hour_transactions
                SET is_reversed=1, reversed_by=%s, reversed_at=NOW(), reversal_reason=%s
                WHERE transaction_id=%s AND is_reversed=0
                """,
                (int(reversed_by), reason, int(transaction_id)),
            )
            if cur.rowcount == 0:
                return None

            reversal_id = insert_transaction(
                cur,
                student_id=student_id,
                transaction_type=TransactionType.REVERSAL,
                hours_amount=reversal_amount,
                balance_before=balance,
                original_transaction_id=int(transaction_id),
                reason=reason,
                created_by=int(reversed_by),
            )
            if reversal_amount > 0:
                restore_to_oldest_purchase(cur, student_id=student_id, hours=reversal_amount)
            elif reversal_amount < 0:
                consume_purchases_fifo(cur, student_id=student_id, hours=-reversal_amount)
            return load_transaction(cur, reversal_id)

    def expire_purchases(self, *, now: datetime) -> Sequence[HourTransaction]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                SELECT purchase_id, student_id
                FROM hour_purchases
                WHERE is_expired=0 AND payment_status='completed' AND valid_until < %s
                ORDER BY valid_until ASC
                """,
                (now,),
            )
            candidates = fetchall(cur)

        written: list[HourTransaction] = []
        # One transaction per package so each student lock is held briefly.
        for c in candidates:
            student_id = int(c["student_id"])
            purchase_id = int(c["purchase_id"])
            with db_cursor(self._conn_factory) as (_, cur):
                lock_student_account(cur, student_id)
                cur.execute(
                    "SELECT hours_remaining FROM hour_purchases WHERE purchase_id=%s AND is_expired=0 FOR UPDATE",
                    (purchase_id,),
                )
                r = fetchone(cur)
                if not r:
                    continue
                remaining = as_float(r["hours_remaining"])
                cur.execute(
                    "UPDATE hour_purchases SET is_expired=1, is_active=0, hours_remaining=0 WHERE purchase_id=%s",
                    (purchase_id,),
                )

                balance = current_balance(cur, student_id)
                expired_hours = round(min(remaining, max(balance, 0.0)), 2)
                if expired_hours > 0:
                    transaction_id = insert_transaction(
                        cur,
                        student_id=student_id,
                        transaction_type=TransactionType.EXPIRY,
                        hours_amount=-expired_hours,
                        balance_before=balance,
                        purchase_id=purchase_id,
                        reason="Package validity ended",
                    )
                    tx = load_transaction(cur, transaction_id)
                    if tx:
                        written.append(tx)

                cur.execute(
                    """
                    INSERT INTO hour_alerts(student_id, alert_type, message, purchase_id, threshold_hours)
                    VALUES(%s,%s,%s,%s,%s)
                    """,
                    (
                        student_id,
                        AlertType.EXPIRED.value,
                        f"{expired_hours:g} hours expired with package #{purchase_id}",
                        purchase_id,
                        expired_hours,
                    ),
                )
        return written

    # -------- Family links --------
    def get_family_relationship(self, *, student_id: int, related_student_id: int) -> Optional[str]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                SELECT relationship
                FROM student_family_links
                WHERE (student_id=%s AND related_student_id=%s)
                   OR (student_id=%s AND related_student_id=%s)
                LIMIT 1
                """,
                (int(student_id), int(related_student_id), int(related_student_id), int(student_id)),
            )
            r = fetchone(cur)
            return r["relationship"] if r else None

    # -------- Alerts --------
    def list_active_alerts(self, *, student_id: int) -> Sequence[HourAlert]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                SELECT alert_id, student_id, alert_type, message, purchase_id, threshold_hours,
                       is_active, is_acknowledged, created_at
                FROM hour_alerts
                WHERE student_id=%s AND is_active=1 AND is_acknowledged=0
                ORDER BY created_at DESC
                """,
                (int(student_id),),
            )
            return [
                HourAlert(
                    alert_id=int(r["alert_id"]),
                    student_id=int(r["student_id"]),
                    alert_type=AlertType(r["alert_type"]),
                    message=r["message"],
                    created_at=r["created_at"],
                    purchase_id=as_optional_int(r.get("purchase_id")),
                    threshold_hours=as_float(r["threshold_hours"]) if r.get("threshold_hours") is not None else None,
                    is_active=as_bool(r.get("is_active")),
                    is_acknowledged=as_bool(r.get("is_acknowledged")),
                )
                for r in fetchall(cur)
            ]

    def create_alert(
        self,
        *,
        student_id: int,
        alert_type: AlertType,
        message: str,
        purchase_id: Optional[int] = None,
        threshold_hours: Optional[float] = None,
    ) -> Optional[int]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                SELECT alert_id FROM hour_alerts
                WHERE student_id=%s AND alert_type=%s AND is_active=1 AND is_acknowledged=0
                  AND (purchase_id <=> %s)
                LIMIT 1
                """,
                (int(student_id), alert_type.value, purchase_id),
            )
            if fetchone(cur):
                return None
            cur.execute(
                """
                INSERT INTO hour_alerts(student_id, alert_type, message, purchase_id, threshold_hours)
                VALUES(%s,%s,%s,%s,%s)
                """,
                (int(student_id), alert_type.value, message, purchase_id, threshold_hours),
            )
            return int(cur.lastrowid)

    def acknowledge_alert(self, *, alert_id: int, student_id: int) -> bool:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                UPDATE hour_alerts
                SET is_acknowledged=1, acknowledged_at=NOW()
                WHERE alert_id=%s AND student_id=%s AND is_acknowledged=0
                """,
                (int(alert_id), int(student_id)),
            )
            return cur.rowcount > 0


class MySQLPurchaseRepository(PurchaseRepository):
    def __init__(self, conn_factory: DatabaseConnection):
        self._conn_factory = conn_factory

    def list_packages(self, *, active_only: bool = True) -> Sequence[HourPackage]:
        where = "WHERE is_active=1" if active_only else ""
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"""
                SELECT package_id, package_name, hours, price, validity_days, is_active
                FROM hour_packages
                {where}
                ORDER BY hours ASC
                """
            )
            return [self._row_to_package(r) for r in fetchall(cur)]

    def get_package(self, *, package_id: int) -> Optional[HourPackage]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                SELECT package_id, package_name, hours, price, validity_days, is_active
                FROM hour_packages
                WHERE package_id=%s
                """,
                (int(package_id),),
            )
            r = fetchone(cur)
            return self._row_to_package(r) if r else None

    def get_purchase(self, *, purchase_id: int) -> Optional[HourPurchase]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(f"SELECT {PURCHASE_COLUMNS} FROM hour_purchases WHERE purchase_id=%s", (int(purchase_id),))
            r = fetchone(cur)
            return row_to_purchase(r) if r else None

    def create_purchase(
        self,
        *,
        student_id: int,
        package: HourPackage,
        payment_method: str,
        valid_from: datetime,
        valid_until: datetime,
    ) -> int:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                INSERT INTO hour_purchases(
                    student_id, package_id, hours_purchased, hours_remaining, price_paid,
                    payment_method, payment_status, valid_from, valid_until
                )
                VALUES(%s,%s,%s,%s,%s,%s,%s,%s,%s)
                """,
                (
                    int(student_id),
                    package.package_id,
                    package.hours,
                    package.hours,
                    package.price,
                    payment_method,
                    PaymentStatus.PENDING.value,
                    valid_from,
                    valid_until,
                ),
            )
            return int(cur.lastrowid)

    def complete_purchase(
        self,
        *,
        purchase_id: int,
        payment_reference: Optional[str],
        created_by: Optional[int],
    ) -> Optional[HourTransaction]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute("SELECT student_id, hours_purchased FROM hour_purchases WHERE purchase_id=%s", (int(purchase_id),))
            r = fetchone(cur)
            if not r:
                return None
            student_id = int(r["student_id"])
            lock_student_account(cur, student_id)

            cur.execute(
                """
                UPDATE hour_purchases
                SET payment_status=%s, payment_reference=%s
                WHERE purchase_id=%s AND payment_status=%s
                """,
                (PaymentStatus.COMPLETED.value, payment_reference, int(purchase_id), PaymentStatus.PENDING.value),
            )
            if cur.rowcount == 0:
                return None

            balance = current_balance(cur, student_id)
            transaction_id = insert_transaction(
                cur,
                student_id=student_id,
                transaction_type=TransactionType.PURCHASE,
                hours_amount=as_float(r["hours_purchased"]),
                balance_before=balance,
                purchase_id=int(purchase_id),
                description="Hour package purchase",
                created_by=created_by,
            )
            return load_transaction(cur, transaction_id)

    def fail_purchase(self, *, purchase_id: int) -> bool:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                UPDATE hour_purchases
                SET payment_status=%s, is_active=0
                WHERE purchase_id=%s AND payment_status=%s
                """,
                (PaymentStatus.FAILED.value, int(purchase_id), PaymentStatus.PENDING.value),
            )
            return cur.rowcount > 0

    def list_recent_purchases(self, *, student_id: int, limit: int = 10) -> Sequence[HourPurchase]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"""
                SELECT {PURCHASE_COLUMNS}
                FROM hour_purchases
                WHERE student_id=%s
                ORDER BY created_at DESC
                LIMIT %s
                """,
                (int(student_id), int(limit)),
            )
            return [row_to_purchase(r) for r in fetchall(cur)]

    @staticmethod
    def _row_to_package(r: dict) -> HourPackage:
        return HourPackage(
            package_id=int(r["package_id"]),
            package_name=r["package_name"],
            hours=as_float(r["hours"]),
            price=as_float(r["price"]),
            validity_days=int(r["validity_days"]),
            is_active=as_bool(r.get("is_active")),
        )
