from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import Optional

from ..core.enums import AlertType, PaymentStatus, TransactionType


@dataclass(frozen=True)
class HourTransaction:
    """Immutable ledger row. Only the reversal/approval flags change after insert."""

    transaction_id: int
    student_id: int
    transaction_type: TransactionType
    hours_amount: float
    balance_before: float
    balance_after: float
    created_at: datetime
    class_id: Optional[int] = None
    booking_id: Optional[int] = None
    purchase_id: Optional[int] = None
    class_type: Optional[str] = None
    deduction_rate: Optional[float] = None
    transfer_to_student_id: Optional[int] = None
    transfer_from_student_id: Optional[int] = None
    description: Optional[str] = None
    reason: Optional[str] = None
    is_reversed: bool = False
    reversed_by: Optional[int] = None
    reversed_at: Optional[datetime] = None
    reversal_reason: Optional[str] = None
    original_transaction_id: Optional[int] = None
    requires_approval: bool = False
    is_rejected: bool = False
    created_by: Optional[int] = None

    @property
    def counts_toward_balance(self) -> bool:
        return (
            not self.is_reversed
            and self.transaction_type != TransactionType.REVERSAL
            and not self.requires_approval
            and not self.is_rejected
        )


@dataclass(frozen=True)
class HourPurchase:
    purchase_id: int
    student_id: int
    hours_purchased: float
    hours_remaining: float
    valid_from: datetime
    valid_until: datetime
    payment_status: PaymentStatus
    created_at: datetime
    package_id: Optional[int] = None
    price_paid: float = 0.0
    payment_method: Optional[str] = None
    payment_reference: Optional[str] = None
    is_active: bool = True
    is_expired: bool = False


@dataclass(frozen=True)
class HourPackage:
    package_id: int
    package_name: str
    hours: float
    price: float
    validity_days: int
    is_active: bool = True


@dataclass(frozen=True)
class HourAlert:
    alert_id: int
    student_id: int
    alert_type: AlertType
    message: str
    created_at: datetime
    purchase_id: Optional[int] = None
    threshold_hours: Optional[float] = None
    is_active: bool = True
    is_acknowledged: bool = False


@dataclass(frozen=True)
class HourTransferLog:
    transfer_id: int
    from_student_id: int
    to_student_id: int
    hours: float
    from_transaction_id: int
    to_transaction_id: int
    created_at: datetime
    from_purchase_id: Optional[int] = None
    reason: Optional[str] = None
    is_family_transfer: bool = False
    family_relationship: Optional[str] = None
    created_by: Optional[int] = None


@dataclass(frozen=True)
class NewDeduction:
    student_id: int
    hours: float
    class_id: Optional[int] = None
    booking_id: Optional[int] = None
    class_type: Optional[str] = None
    deduction_rate: float = 1.0
    description: Optional[str] = None
    created_by: Optional[int] = None


@dataclass(frozen=True)
class NewTransfer:
    from_student_id: int
    to_student_id: int
    hours: float
    reason: str
    created_by: int
    is_family_transfer: bool = False
    family_relationship: Optional[str] = None


@dataclass(frozen=True)
class TransferResult:
    transfer: HourTransferLog
    debit: HourTransaction
    credit: HourTransaction


@dataclass(frozen=True)
class PackageView:
    """Active package as shown in a balance breakdown."""

    purchase_id: int
    hours_purchased: float
    hours_remaining: float
    valid_until: datetime
    days_remaining: Optional[int]


@dataclass(frozen=True)
class BalanceDetail:
    student_id: int
    total_hours: float
    active_packages: list[PackageView] = field(default_factory=list)
    expiring_packages: list[PackageView] = field(default_factory=list)
    recent_transactions: list[HourTransaction] = field(default_factory=list)
    active_alerts: list[HourAlert] = field(default_factory=list)
