from __future__ import annotations

from dataclasses import replace
from datetime import datetime, timedelta

from src.academy_hours.academy_hours.core.enums import PaymentStatus, TransactionType
from src.academy_hours.academy_hours.ledger.model import HourPackage, HourPurchase, HourTransaction
from src.academy_hours.academy_hours.ledger.purchase_service import PurchaseService

NOW = datetime(2026, 3, 2, 10, 0, 0)


class FakePurchaseRepo:
    def __init__(self):
        self._next_id = 1
        self.packages = {
            1: HourPackage(package_id=1, package_name="Starter 10", hours=10, price=1500000, validity_days=90),
            2: HourPackage(package_id=2, package_name="Retired", hours=5, price=800000, validity_days=30, is_active=False),
        }
        self.purchases: dict[int, HourPurchase] = {}

    def list_packages(self, *, active_only=True):
        return [p for p in self.packages.values() if p.is_active or not active_only]

    def get_package(self, *, package_id):
        return self.packages.get(int(package_id))

    def get_purchase(self, *, purchase_id):
        return self.purchases.get(int(purchase_id))

    def create_purchase(self, *, student_id, package, payment_method, valid_from, valid_until):
        pid = self._next_id
        self._next_id += 1
        self.purchases[pid] = HourPurchase(
            purchase_id=pid,
            student_id=student_id,
            hours_purchased=package.hours,
            hours_remaining=package.hours,
            valid_from=valid_from,
            valid_until=valid_until,
            payment_status=PaymentStatus.PENDING,
            created_at=NOW,
            package_id=package.package_id,
            price_paid=package.price,
            payment_method=payment_method,
        )
        return pid

    def complete_purchase(self, *, purchase_id, payment_reference, created_by):
        p = self.purchases[purchase_id]
        if p.payment_status != PaymentStatus.PENDING:
            return None
        self.purchases[purchase_id] = replace(
            p, payment_status=PaymentStatus.COMPLETED, payment_reference=payment_reference
        )
        return HourTransaction(
            transaction_id=1,
            student_id=p.student_id,
            transaction_type=TransactionType.PURCHASE,
            hours_amount=p.hours_purchased,
            balance_before=0,
            balance_after=p.hours_purchased,
            created_at=NOW,
            purchase_id=purchase_id,
        )

    def fail_purchase(self, *, purchase_id):
        self.purchases[purchase_id] = replace(self.purchases[purchase_id], payment_status=PaymentStatus.FAILED)
        return True

    def list_recent_purchases(self, *, student_id, limit=10):
        return [p for p in self.purchases.values() if p.student_id == student_id][:limit]


def test_purchase_credits_package_with_validity_window():
    repo = FakePurchaseRepo()

    result = PurchaseService(repo, clock=lambda: NOW).purchase_hours(
        student_id=4, package_id=1, payment_method="cash", actor_id=4
    )

    assert result.success
    purchase = result.data
    assert purchase.payment_status == PaymentStatus.COMPLETED
    assert purchase.payment_reference == "MANUAL-1"
    assert purchase.valid_until == NOW + timedelta(days=90)


def test_unsupported_payment_method_marks_purchase_failed():
    repo = FakePurchaseRepo()

    result = PurchaseService(repo, clock=lambda: NOW).purchase_hours(
        student_id=4, package_id=1, payment_method="crypto", actor_id=4
    )

    assert result.error.code == "PAYMENT_FAILED"
    assert repo.purchases[1].payment_status == PaymentStatus.FAILED


def test_inactive_package_not_found():
    result = PurchaseService(FakePurchaseRepo(), clock=lambda: NOW).purchase_hours(
        student_id=4, package_id=2, payment_method="cash", actor_id=4
    )

    assert result.error.code == "NOT_FOUND"


def test_list_packages_only_active():
    result = PurchaseService(FakePurchaseRepo()).list_packages()

    assert [p.package_id for p in result.data] == [1]
