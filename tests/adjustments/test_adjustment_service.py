from __future__ import annotations

from dataclasses import replace
from datetime import datetime

from src.academy_hours.academy_hours.adjustments.model import HourAdjustment
from src.academy_hours.academy_hours.adjustments.service import AdjustmentService
from src.academy_hours.academy_hours.core.enums import AdjustmentType, ApprovalStatus, Role


class FakeLedger:
    def __init__(self, balance=0.0):
        self.balance = {1: balance}

    def get_balance(self, *, student_id):
        return self.balance.get(student_id, 0.0)


class FakeAdjustmentsRepo:
    def __init__(self, ledger: FakeLedger):
        self._next_id = 1
        self._ledger = ledger
        self._items: dict[int, HourAdjustment] = {}

    def get_adjustment(self, *, adjustment_id):
        return self._items.get(int(adjustment_id))

    def create_adjustment(self, *, adjustment):
        aid = self._next_id
        self._next_id += 1
        self._items[aid] = HourAdjustment(
            adjustment_id=aid,
            transaction_id=100 + aid,
            student_id=adjustment.student_id,
            adjustment_type=adjustment.adjustment_type,
            hours_amount=adjustment.hours,
            reason=adjustment.reason,
            approval_status=ApprovalStatus.PENDING,
            requested_by=adjustment.requested_by,
            created_at=datetime(2026, 3, 2, 10, 0, 0),
        )
        return self._items[aid]

    def approve_adjustment(self, *, adjustment_id, approved_by, notes):
        item = self._items.get(int(adjustment_id))
        if not item or item.approval_status != ApprovalStatus.PENDING:
            return None
        balance = self._ledger.get_balance(student_id=item.student_id)
        if balance + item.signed_hours < 0:
            return None
        self._ledger.balance[item.student_id] = balance + item.signed_hours
        self._items[item.adjustment_id] = replace(
            item, approval_status=ApprovalStatus.APPROVED, approved_by=approved_by, approval_notes=notes
        )
        return self._items[item.adjustment_id]

    def reject_adjustment(self, *, adjustment_id, rejected_by, notes):
        item = self._items.get(int(adjustment_id))
        if not item or item.approval_status != ApprovalStatus.PENDING:
            return None
        self._items[item.adjustment_id] = replace(
            item, approval_status=ApprovalStatus.REJECTED, approved_by=rejected_by, approval_notes=notes
        )
        return self._items[item.adjustment_id]

    def list_pending(self, *, limit=20, offset=0, student_id=None):
        return [
            a
            for a in self._items.values()
            if a.approval_status == ApprovalStatus.PENDING and (student_id is None or a.student_id == student_id)
        ][offset : offset + limit]


def _service(balance=10.0):
    ledger = FakeLedger(balance)
    return AdjustmentService(FakeAdjustmentsRepo(ledger), ledger), ledger


def test_adjustment_is_applied_only_on_approval():
    service, ledger = _service(10)

    created = service.create_adjustment(
        student_id=1, adjustment_type="add", hours=2.5, reason="Missed credit", actor_id=7
    )
    assert created.success
    assert created.data.approval_status == ApprovalStatus.PENDING
    assert ledger.get_balance(student_id=1) == 10

    approved = service.approve_adjustment(adjustment_id=created.data.adjustment_id, actor_id=1, actor_role=Role.ADMIN)

    assert approved.success
    assert approved.data.approval_status == ApprovalStatus.APPROVED
    assert ledger.get_balance(student_id=1) == 12.5


def test_second_decision_reports_already_processed():
    service, _ = _service(10)
    adj = service.create_adjustment(
        student_id=1, adjustment_type=AdjustmentType.ADD, hours=1, reason="Fix", actor_id=7
    ).data

    service.reject_adjustment(adjustment_id=adj.adjustment_id, notes="Duplicate", actor_id=1, actor_role=Role.ADMIN)
    again = service.approve_adjustment(adjustment_id=adj.adjustment_id, actor_id=1, actor_role=Role.ADMIN)

    assert again.error.code == "ALREADY_PROCESSED"


def test_subtract_below_zero_rejected_at_request_time():
    service, _ = _service(3)

    result = service.create_adjustment(
        student_id=1, adjustment_type="subtract", hours=5, reason="Correction", actor_id=7
    )

    assert result.error.code == "NEGATIVE_BALANCE"
    assert result.error.details["projected"] == -2


def test_subtract_rechecked_at_approval_time():
    service, ledger = _service(5)
    adj = service.create_adjustment(
        student_id=1, adjustment_type="subtract", hours=4, reason="Correction", actor_id=7
    ).data
    ledger.balance[1] = 2

    result = service.approve_adjustment(adjustment_id=adj.adjustment_id, actor_id=1, actor_role=Role.ADMIN)

    assert result.error.code == "NEGATIVE_BALANCE"
    assert ledger.get_balance(student_id=1) == 2


def test_unknown_adjustment_type_and_permissions():
    service, _ = _service(5)

    bad_type = service.create_adjustment(student_id=1, adjustment_type="double", hours=1, reason="x", actor_id=7)
    adj = service.create_adjustment(student_id=1, adjustment_type="add", hours=1, reason="x", actor_id=7).data
    teacher = service.approve_adjustment(adjustment_id=adj.adjustment_id, actor_id=2, actor_role=Role.TEACHER)
    missing = service.approve_adjustment(adjustment_id=99, actor_id=1, actor_role=Role.ADMIN)

    assert bad_type.error.code == "VALIDATION_ERROR"
    assert teacher.error.code == "PERMISSION_DENIED"
    assert missing.error.code == "NOT_FOUND"


def test_requester_cannot_approve_own_adjustment():
    service, ledger = _service(10)
    adj = service.create_adjustment(student_id=1, adjustment_type="add", hours=3, reason="Goodwill", actor_id=1).data

    own = service.approve_adjustment(adjustment_id=adj.adjustment_id, actor_id=1, actor_role=Role.ADMIN)
    other = service.approve_adjustment(adjustment_id=adj.adjustment_id, actor_id=2, actor_role=Role.ADMIN)

    assert own.error.code == "PERMISSION_DENIED"
    assert other.data.approval_status == ApprovalStatus.APPROVED
    assert other.data.approved_by == 2
    assert ledger.get_balance(student_id=1) == 13

def test_list_pending_filters_by_student():
    service, _ = _service(5)
    service.create_adjustment(student_id=1, adjustment_type="add", hours=1, reason="x", actor_id=7)

    assert len(service.list_pending_adjustments(student_id=1).data) == 1
    assert service.list_pending_adjustments(student_id=2).data == []
    assert service.list_pending_adjustments(limit=0).error.code == "VALIDATION_ERROR"
