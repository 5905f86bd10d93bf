from __future__ import annotations

from datetime import datetime
from typing import Optional, Protocol, Sequence

from ..core.enums import AlertType, TransactionType
from .model import (
    HourAlert,
    HourPackage,
    HourPurchase,
    HourTransaction,
    NewDeduction,
    NewTransfer,
    TransferResult,
)


class LedgerRepository(Protocol):
    # Balance and history
    def get_balance(self, *, student_id: int) -> float:
        raise NotImplementedError

    def get_transaction(self, *, transaction_id: int) -> Optional[HourTransaction]:
        raise NotImplementedError

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
        """Newest first."""

        raise NotImplementedError

    def list_active_purchases(self, *, student_id: int, now: datetime) -> Sequence[HourPurchase]:
        """Completed, active, unexpired packages with hours left, soonest expiry first."""

        raise NotImplementedError

    # Atomic writes. Each runs in one DB transaction under the student lock.
    def deduct_hours(self, *, deduction: NewDeduction) -> Optional[HourTransaction]:
        """Return None (and write nothing) when the balance cannot cover the deduction."""

        raise NotImplementedError

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
        raise NotImplementedError

    def transfer_hours(self, *, transfer: NewTransfer) -> Optional[TransferResult]:
        """Return None (and write nothing) when the source balance is insufficient."""

        raise NotImplementedError

    def reverse_transaction(
        self,
        *,
        transaction_id: int,
        reason: str,
        reversed_by: int,
    ) -> Optional[HourTransaction]:
        """Return None when already reversed or when the reversal would overdraw."""

        raise NotImplementedError

    def expire_purchases(self, *, now: datetime) -> Sequence[HourTransaction]:
        raise NotImplementedError

    # Family links
    def get_family_relationship(self, *, student_id: int, related_student_id: int) -> Optional[str]:
        raise NotImplementedError

    # Alerts
    def list_active_alerts(self, *, student_id: int) -> Sequence[HourAlert]:
        raise NotImplementedError

    def create_alert(
        self,
        *,
        student_id: int,
        alert_type: AlertType,
        message: str,
        purchase_id: Optional[int] = None,
        threshold_hours: Optional[float] = None,
    ) -> Optional[int]:
        """Return None when an identical unacknowledged alert already exists."""

        raise NotImplementedError

    def acknowledge_alert(self, *, alert_id: int, student_id: int) -> bool:
        raise NotImplementedError


class PurchaseRepository(Protocol):
    def list_packages(self, *, active_only: bool = True) -> Sequence[HourPackage]:
        raise NotImplementedError

    def get_package(self, *, package_id: int) -> Optional[HourPackage]:
        raise NotImplementedError

    def get_purchase(self, *, purchase_id: int) -> Optional[HourPurchase]:
        raise NotImplementedError

    def create_purchase(
        self,
        *,
        student_id: int,
        package: HourPackage,
        payment_method: str,
        valid_from: datetime,
        valid_until: datetime,
    ) -> int:
        raise NotImplementedError

    def complete_purchase(
        self,
        *,
        purchase_id: int,
        payment_reference: Optional[str],
        created_by: Optional[int],
    ) -> Optional[HourTransaction]:
        """pending -> completed and credit the hours. None if not pending."""

        raise NotImplementedError

    def fail_purchase(self, *, purchase_id: int) -> bool:
        raise NotImplementedError

    def list_recent_purchases(self, *, student_id: int, limit: int = 10) -> Sequence[HourPurchase]:
        raise NotImplementedError
