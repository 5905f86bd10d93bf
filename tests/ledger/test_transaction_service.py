from __future__ import annotations

import threading
from dataclasses import replace
from datetime import datetime, timedelta

from src.academy_hours.academy_hours.core.enums import AlertType, PaymentStatus, Role, TransactionType
from src.academy_hours.academy_hours.ledger.balance import BalanceCalculator
from src.academy_hours.academy_hours.ledger.model import (
    HourPurchase,
    HourTransaction,
    HourTransferLog,
    TransferResult,
)
from src.academy_hours.academy_hours.ledger.service import TransactionService

NOW = datetime(2026, 3, 2, 10, 0, 0)


class FakeLedgerRepo:
    def __init__(self):
        self._next_id = 1
        self._tx: dict[int, HourTransaction] = {}
        self._alerts: list[tuple[int, AlertType]] = []
        self.purchases: list[HourPurchase] = []
        self.family: dict[tuple[int, int], str] = {}

    def _write(self, *, student_id, transaction_type, hours, **extra) -> HourTransaction:
        before = self.get_balance(student_id=student_id)
        tx = HourTransaction(
            transaction_id=self._next_id,
            student_id=student_id,
            transaction_type=transaction_type,
            hours_amount=hours,
            balance_before=before,
            balance_after=round(before + hours, 2),
            created_at=NOW,
            **extra,
        )
        self._tx[tx.transaction_id] = tx
        self._next_id += 1
        return tx

    def get_balance(self, *, student_id):
        return round(
            sum(t.hours_amount for t in self._tx.values() if t.student_id == student_id and t.counts_toward_balance), 2
        )

    def get_transaction(self, *, transaction_id):
        return self._tx.get(int(transaction_id))

    def list_transactions(self, *, student_id, transaction_type=None, start=None, end=None, limit=50, offset=0):
        rows = [
            t
            for t in self._tx.values()
            if t.student_id == student_id and (transaction_type is None or t.transaction_type == transaction_type)
        ]
        rows.sort(key=lambda t: t.transaction_id, reverse=True)
        return rows[offset : offset + limit]

    def list_active_purchases(self, *, student_id, now):
        return [p for p in self.purchases if p.student_id == student_id]

    def deduct_hours(self, *, deduction):
        if self.get_balance(student_id=deduction.student_id) < deduction.hours:
            return None
        return self._write(
            student_id=deduction.student_id,
            transaction_type=TransactionType.DEDUCTION,
            hours=-deduction.hours,
            class_id=deduction.class_id,
            booking_id=deduction.booking_id,
            class_type=deduction.class_type,
            deduction_rate=deduction.deduction_rate,
        )

    def add_hours(self, *, student_id, hours, transaction_type, reason=None, purchase_id=None, created_by=None):
        return self._write(
            student_id=student_id,
            transaction_type=transaction_type,
            hours=hours,
            reason=reason,
            purchase_id=purchase_id,
            created_by=created_by,
        )

    def transfer_hours(self, *, transfer):
        if self.get_balance(student_id=transfer.from_student_id) < transfer.hours:
            return None
        debit = self._write(
            student_id=transfer.from_student_id,
            transaction_type=TransactionType.TRANSFER,
            hours=-transfer.hours,
            transfer_to_student_id=transfer.to_student_id,
        )
        credit = self._write(
            student_id=transfer.to_student_id,
            transaction_type=TransactionType.TRANSFER,
            hours=transfer.hours,
            transfer_from_student_id=transfer.from_student_id,
        )
        log = HourTransferLog(
            transfer_id=1,
            from_student_id=transfer.from_student_id,
            to_student_id=transfer.to_student_id,
            hours=transfer.hours,
            from_transaction_id=debit.transaction_id,
            to_transaction_id=credit.transaction_id,
            created_at=NOW,
            is_family_transfer=transfer.is_family_transfer,
            family_relationship=transfer.family_relationship,
        )
        return TransferResult(transfer=log, debit=debit, credit=credit)

    def reverse_transaction(self, *, transaction_id, reason, reversed_by):
        original = self._tx.get(int(transaction_id))
        if not original or original.is_reversed:
            return None
        balance = self.get_balance(student_id=original.student_id)
        if balance - original.hours_amount < 0:
            return None
        reversal = self._write(
            student_id=original.student_id,
            transaction_type=TransactionType.REVERSAL,
            hours=-original.hours_amount,
            original_transaction_id=original.transaction_id,
            reason=reason,
        )
        self._tx[original.transaction_id] = replace(original, is_reversed=True, reversed_by=reversed_by)
        return reversal

    def expire_purchases(self, *, now):
        return []

    def get_family_relationship(self, *, student_id, related_student_id):
        return self.family.get((student_id, related_student_id))

    def list_active_alerts(self, *, student_id):
        return []

    def create_alert(self, *, student_id, alert_type, message, purchase_id=None, threshold_hours=None):
        if (student_id, alert_type) in self._alerts:
            return None
        self._alerts.append((student_id, alert_type))
        return len(self._alerts)

    def acknowledge_alert(self, *, alert_id, student_id):
        return False


def _service(repo: FakeLedgerRepo) -> TransactionService:
    return TransactionService(repo, low_balance_threshold=5, expiry_warning_days=30, clock=lambda: NOW)


def test_balance_ignores_reversed_and_unapproved_rows():
    repo = FakeLedgerRepo()
    repo.add_hours(student_id=1, hours=10, transaction_type=TransactionType.PURCHASE)
    pending = repo._write(student_id=1, transaction_type=TransactionType.ADJUSTMENT, hours=4, requires_approval=True)
    rejected = repo._write(student_id=1, transaction_type=TransactionType.ADJUSTMENT, hours=-3, is_rejected=True)

    assert pending.transaction_id != rejected.transaction_id
    assert repo.get_balance(student_id=1) == 10

    result = BalanceCalculator(repo, clock=lambda: NOW).get_balance(student_id=1)
    assert result.success
    assert result.data == 10


def test_deduct_applies_rate_and_records_balances():
    repo = FakeLedgerRepo()
    repo.add_hours(student_id=1, hours=10, transaction_type=TransactionType.PURCHASE)

    result = _service(repo).deduct(student_id=1, hours=2, class_id=7, class_type="ielts", deduction_rate=1.5, actor_id=9)

    assert result.success
    tx = result.data
    assert tx.hours_amount == -3
    assert (tx.balance_before, tx.balance_after) == (10, 7)
    assert repo.get_balance(student_id=1) == 7


def test_deduct_insufficient_hours_writes_nothing():
    repo = FakeLedgerRepo()
    repo.add_hours(student_id=1, hours=1, transaction_type=TransactionType.PURCHASE)

    result = _service(repo).deduct(student_id=1, hours=2)

    assert not result.success
    assert result.error.code == "INSUFFICIENT_HOURS"
    assert result.error.details == {"required": 2, "available": 1}
    assert len(repo.list_transactions(student_id=1)) == 1


def test_deduct_rejects_non_positive_hours():
    result = _service(FakeLedgerRepo()).deduct(student_id=1, hours=0)

    assert not result.success
    assert result.error.code == "VALIDATION_ERROR"


def test_deduct_raises_low_balance_alert_once():
    repo = FakeLedgerRepo()
    repo.add_hours(student_id=1, hours=10, transaction_type=TransactionType.PURCHASE)
    service = _service(repo)

    service.deduct(student_id=1, hours=6)
    service.deduct(student_id=1, hours=1)

    assert repo._alerts == [(1, AlertType.LOW_BALANCE)]


def test_deduct_to_zero_raises_no_hours_alert():
    repo = FakeLedgerRepo()
    repo.add_hours(student_id=1, hours=2, transaction_type=TransactionType.PURCHASE)

    _service(repo).deduct(student_id=1, hours=2)

    assert (1, AlertType.NO_HOURS) in repo._alerts


def test_add_hours_requires_admin_and_credit_type():
    repo = FakeLedgerRepo()
    service = _service(repo)

    denied = service.add_hours(student_id=1, hours=2, reason="Goodwill", actor_id=5, actor_role=Role.TEACHER)
    wrong_type = service.add_hours(
        student_id=1, hours=2, transaction_type=TransactionType.PURCHASE, reason="x", actor_id=5, actor_role=Role.ADMIN
    )
    ok = service.add_hours(student_id=1, hours=2, reason="Goodwill", actor_id=5, actor_role=Role.ADMIN)

    assert denied.error.code == "PERMISSION_DENIED"
    assert wrong_type.error.code == "VALIDATION_ERROR"
    assert ok.success
    assert ok.data.transaction_type == TransactionType.BONUS
    assert repo.get_balance(student_id=1) == 2


def test_transfer_moves_hours_symmetrically():
    repo = FakeLedgerRepo()
    repo.add_hours(student_id=1, hours=10, transaction_type=TransactionType.PURCHASE)

    result = _service(repo).transfer(from_student_id=1, to_student_id=2, hours=4, reason="Sibling", actor_id=1)

    assert result.success
    assert result.data.debit.hours_amount == -4
    assert result.data.credit.hours_amount == 4
    assert repo.get_balance(student_id=1) == 6
    assert repo.get_balance(student_id=2) == 4


def test_transfer_to_same_student_rejected():
    repo = FakeLedgerRepo()
    repo.add_hours(student_id=1, hours=10, transaction_type=TransactionType.PURCHASE)

    result = _service(repo).transfer(from_student_id=1, to_student_id=1, hours=1, reason="x", actor_id=1)

    assert result.error.code == "VALIDATION_ERROR"


def test_family_transfer_requires_relationship():
    repo = FakeLedgerRepo()
    repo.add_hours(student_id=1, hours=10, transaction_type=TransactionType.PURCHASE)
    service = _service(repo)

    refused = service.transfer(
        from_student_id=1, to_student_id=2, hours=1, reason="Family", is_family_transfer=True, actor_id=1
    )
    repo.family[(1, 2)] = "sibling"
    allowed = service.transfer(
        from_student_id=1, to_student_id=2, hours=1, reason="Family", is_family_transfer=True, actor_id=1
    )

    assert refused.error.code == "FAMILY_TRANSFER_NOT_ELIGIBLE"
    assert allowed.success
    assert allowed.data.transfer.family_relationship == "sibling"


def test_transfer_insufficient_hours():
    repo = FakeLedgerRepo()

    result = _service(repo).transfer(from_student_id=1, to_student_id=2, hours=1, reason="x", actor_id=1)

    assert result.error.code == "INSUFFICIENT_HOURS"
    assert repo.list_transactions(student_id=2) == []


def test_reverse_twice_reports_already_reversed():
    repo = FakeLedgerRepo()
    repo.add_hours(student_id=1, hours=10, transaction_type=TransactionType.PURCHASE)
    service = _service(repo)
    deduction = service.deduct(student_id=1, hours=3).data

    first = service.reverse_transaction(
        transaction_id=deduction.transaction_id, reason="Class cancelled", actor_id=9, actor_role=Role.ADMIN
    )
    second = service.reverse_transaction(
        transaction_id=deduction.transaction_id, reason="Again", actor_id=9, actor_role=Role.ADMIN
    )

    assert first.success
    assert first.data.transaction_type == TransactionType.REVERSAL
    assert repo.get_balance(student_id=1) == 10
    assert second.error.code == "ALREADY_REVERSED"


def test_reverse_rejects_overdraw():
    repo = FakeLedgerRepo()
    credit = repo.add_hours(student_id=1, hours=10, transaction_type=TransactionType.PURCHASE)
    service = _service(repo)
    service.deduct(student_id=1, hours=8)

    result = service.reverse_transaction(
        transaction_id=credit.transaction_id, reason="Refunded", actor_id=9, actor_role=Role.ADMIN
    )

    assert result.error.code == "NEGATIVE_BALANCE"
    assert repo.get_balance(student_id=1) == 2


def test_reverse_requires_admin():
    repo = FakeLedgerRepo()
    credit = repo.add_hours(student_id=1, hours=10, transaction_type=TransactionType.PURCHASE)

    result = _service(repo).reverse_transaction(
        transaction_id=credit.transaction_id, reason="x", actor_id=3, actor_role=Role.STUDENT
    )

    assert result.error.code == "PERMISSION_DENIED"


def test_transfer_legs_cannot_be_reversed():
    repo = FakeLedgerRepo()
    repo.add_hours(student_id=1, hours=10, transaction_type=TransactionType.PURCHASE)
    service = _service(repo)
    moved = service.transfer(from_student_id=1, to_student_id=2, hours=4, reason="Sibling", actor_id=1).data

    debit = service.reverse_transaction(
        transaction_id=moved.debit.transaction_id, reason="Undo", actor_id=9, actor_role=Role.ADMIN
    )
    credit = service.reverse_transaction(
        transaction_id=moved.credit.transaction_id, reason="Undo", actor_id=9, actor_role=Role.ADMIN
    )

    assert debit.error.code == "VALIDATION_ERROR"
    assert credit.error.code == "VALIDATION_ERROR"
    assert repo.get_balance(student_id=1) + repo.get_balance(student_id=2) == 10
    assert (repo.get_balance(student_id=1), repo.get_balance(student_id=2)) == (6, 4)


def test_history_validates_paging():
    service = _service(FakeLedgerRepo())

    assert service.get_transaction_history(student_id=1, limit=0).error.code == "VALIDATION_ERROR"
    assert service.get_transaction_history(student_id=1, offset=-1).error.code == "VALIDATION_ERROR"
    page = service.get_transaction_history(student_id=1, limit=10)
    assert page.data["has_more"] is False


def test_balance_detail_orders_packages_by_expiry():
    repo = FakeLedgerRepo()
    repo.add_hours(student_id=1, hours=15, transaction_type=TransactionType.PURCHASE)

    def purchase(pid, days, remaining):
        return HourPurchase(
            purchase_id=pid,
            student_id=1,
            hours_purchased=10,
            hours_remaining=remaining,
            valid_from=NOW - timedelta(days=10),
            valid_until=NOW + timedelta(days=days),
            payment_status=PaymentStatus.COMPLETED,
            created_at=NOW - timedelta(days=10),
        )

    repo.purchases = [purchase(1, 90, 10), purchase(2, 10, 5), purchase(3, 40, 0)]

    detail = BalanceCalculator(repo, expiry_warning_days=30, clock=lambda: NOW).get_balance_detail(student_id=1).data

    assert detail.total_hours == 15
    assert [p.purchase_id for p in detail.active_packages] == [2, 1]
    assert [p.purchase_id for p in detail.expiring_packages] == [2]
    assert detail.active_packages[0].days_remaining == 10


class LockingLedgerRepo(FakeLedgerRepo):
    """Both callers pass the service's pre-check, then the store serialises the writes."""

    def __init__(self):
        super().__init__()
        self._lock = threading.Lock()
        self._both_checked = threading.Barrier(2, timeout=5)

    def deduct_hours(self, *, deduction):
        self._both_checked.wait()
        with self._lock:
            return super().deduct_hours(deduction=deduction)


def test_concurrent_deductions_cannot_overdraw(fixed_now):
    repo = LockingLedgerRepo()
    repo.add_hours(student_id=1, hours=5, transaction_type=TransactionType.PURCHASE)
    service = TransactionService(repo, clock=lambda: fixed_now)
    results = []

    def worker():
        results.append(service.deduct(student_id=1, hours=5))

    threads = [threading.Thread(target=worker) for _ in range(2)]
    for t in threads:
        t.start()
    for t in threads:
        t.join()

    assert sorted(r.success for r in results) == [False, True]
    assert [r.error.code for r in results if not r.success] == ["INSUFFICIENT_HOURS"]
    assert repo.get_balance(student_id=1) == 0
