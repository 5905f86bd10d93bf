from __future__ import annotations

import logging
from datetime import datetime, timedelta
from typing import Callable, Optional

from ..common.datetime_utils import now_local
from ..common.result import service_call
from ..common.validators import require_actor, require_admin, require_non_empty, require_positive
from ..core.constants import DEFAULT_EXPIRY_WARNING_DAYS, DEFAULT_HISTORY_LIMIT, DEFAULT_LOW_BALANCE_THRESHOLD
from ..core.enums import AlertType, Role, TransactionType
from ..core.exceptions import (
    AlreadyReversedError,
    FamilyTransferNotEligibleError,
    InsufficientHoursError,
    NegativeBalanceError,
    NotFoundError,
    ValidationError,
)
from .model import HourTransaction, NewDeduction, NewTransfer, TransferResult
from .repository import LedgerRepository

logger = logging.getLogger(__name__)

_CREDIT_TYPES = {TransactionType.BONUS, TransactionType.REFUND}


class TransactionService:
    """Records deductions, credits, transfers and reversals as ledger entries."""

    def __init__(
        self,
        ledger: LedgerRepository,
        *,
        low_balance_threshold: float = DEFAULT_LOW_BALANCE_THRESHOLD,
        expiry_warning_days: int = DEFAULT_EXPIRY_WARNING_DAYS,
        clock: Callable[[], datetime] = now_local,
    ):
        self._ledger = ledger
        self._low_balance_threshold = float(low_balance_threshold)
        self._expiry_warning_days = int(expiry_warning_days)
        self._clock = clock

    def _insufficient(self, *, required: float, available: float) -> InsufficientHoursError:
        return InsufficientHoursError(
            f"Insufficient hours. Required: {required:g}, Available: {available:g}",
            details={"required": required, "available": available},
        )

    @service_call("DEDUCTION_ERROR", "Failed to deduct class hours")
    def deduct(
        self,
        *,
        student_id: int,
        hours: float,
        class_id: Optional[int] = None,
        booking_id: Optional[int] = None,
        class_type: Optional[str] = None,
        deduction_rate: float = 1.0,
        actor_id: Optional[int] = None,
    ) -> HourTransaction:
        hours = require_positive(hours, "Hours")
        rate = require_positive(deduction_rate, "Deduction rate")
        to_deduct = round(hours * rate, 2)

        available = self._ledger.get_balance(student_id=int(student_id))
        if available < to_deduct:
            raise self._insufficient(required=to_deduct, available=available)

        tx = self._ledger.deduct_hours(
            deduction=NewDeduction(
                student_id=int(student_id),
                hours=to_deduct,
                class_id=class_id,
                booking_id=booking_id,
                class_type=class_type,
                deduction_rate=rate,
                description=f"Class attendance - {class_type}" if class_type else "Class attendance",
                created_by=actor_id,
            )
        )
        if tx is None:
            # Another writer consumed the hours between the check and the locked write.
            raise self._insufficient(required=to_deduct, available=self._ledger.get_balance(student_id=int(student_id)))

        logger.info(
            "Deducted %.2f hours from student %s (class=%s, booking=%s), balance %.2f -> %.2f",
            to_deduct, student_id, class_id, booking_id, tx.balance_before, tx.balance_after,
        )
        self._check_alerts_after_write(int(student_id), tx.balance_after)
        return tx

    @service_call("CREDIT_CREATE_ERROR", "Failed to add hours")
    def add_hours(
        self,
        *,
        student_id: int,
        hours: float,
        transaction_type: TransactionType = TransactionType.BONUS,
        reason: str = "",
        actor_id: Optional[int] = None,
        actor_role: Optional[Role] = None,
    ) -> HourTransaction:
        actor = require_admin(actor_id, actor_role)
        if transaction_type not in _CREDIT_TYPES:
            raise ValidationError("Only bonus or refund credits can be added manually")
        tx = self._ledger.add_hours(
            student_id=int(student_id),
            hours=require_positive(hours, "Hours"),
            transaction_type=transaction_type,
            reason=require_non_empty(reason, "Reason"),
            created_by=actor,
        )
        logger.info("Credited %.2f %s hours to student %s by %s", tx.hours_amount, transaction_type.value, student_id, actor)
        return tx

    @service_call("TRANSFER_ERROR", "Failed to transfer hours")
    def transfer(
        self,
        *,
        from_student_id: int,
        to_student_id: int,
        hours: float,
        reason: str,
        is_family_transfer: bool = False,
        actor_id: Optional[int] = None,
    ) -> TransferResult:
        actor = require_actor(actor_id)
        hours = round(require_positive(hours, "Hours"), 2)
        reason = require_non_empty(reason, "Reason")
        if int(from_student_id) == int(to_student_id):
            raise ValidationError("Cannot transfer hours to the same student")

        relationship: Optional[str] = None
        if is_family_transfer:
            relationship = self._ledger.get_family_relationship(
                student_id=int(from_student_id), related_student_id=int(to_student_id)
            )
            if not relationship:
                raise FamilyTransferNotEligibleError("Students are not eligible for family transfer")

        available = self._ledger.get_balance(student_id=int(from_student_id))
        if available < hours:
            raise self._insufficient(required=hours, available=available)

        result = self._ledger.transfer_hours(
            transfer=NewTransfer(
                from_student_id=int(from_student_id),
                to_student_id=int(to_student_id),
                hours=hours,
                reason=reason,
                created_by=actor,
                is_family_transfer=bool(is_family_transfer),
                family_relationship=relationship,
            )
        )
        if result is None:
            raise self._insufficient(required=hours, available=self._ledger.get_balance(student_id=int(from_student_id)))

        logger.info(
            "Transferred %.2f hours from student %s to %s (transfer #%s, family=%s)",
            hours, from_student_id, to_student_id, result.transfer.transfer_id, bool(is_family_transfer),
        )
        self._check_alerts_after_write(int(from_student_id), result.debit.balance_after)
        return result

    @service_call("REVERSAL_ERROR", "Failed to reverse transaction")
    def reverse_transaction(
        self,
        *,
        transaction_id: int,
        reason: str,
        actor_id: Optional[int] = None,
        actor_role: Optional[Role] = None,
    ) -> HourTransaction:
        actor = require_admin(actor_id, actor_role)
        reason = require_non_empty(reason, "Reason")

        original = self._ledger.get_transaction(transaction_id=int(transaction_id))
        if not original:
            raise NotFoundError("Transaction not found")
        if original.is_reversed:
            raise AlreadyReversedError("Transaction has already been reversed")
        if original.transaction_type == TransactionType.REVERSAL:
            raise ValidationError("Reversal entries cannot be reversed")
        if original.transaction_type == TransactionType.TRANSFER:
            raise ValidationError("Transfers cannot be reversed one leg at a time; transfer the hours back instead")
        if original.requires_approval or original.is_rejected:
            raise ValidationError("Unapproved adjustments are resolved through the approval workflow")

        available = self._ledger.get_balance(student_id=original.student_id)
        if available - original.hours_amount < 0:
            raise NegativeBalanceError(
                "Reversal would result in a negative balance",
                details={"balance": available, "reversal_amount": -original.hours_amount},
            )

        reversal = self._ledger.reverse_transaction(transaction_id=int(transaction_id), reason=reason, reversed_by=actor)
        if reversal is None:
            latest = self._ledger.get_transaction(transaction_id=int(transaction_id))
            if latest and latest.is_reversed:
                raise AlreadyReversedError("Transaction has already been reversed")
            raise NegativeBalanceError("Reversal would result in a negative balance")

        logger.info(
            "Reversed transaction %s for student %s (%.2f hours) by %s",
            transaction_id, original.student_id, reversal.hours_amount, actor,
        )
        return reversal

    @service_call("FETCH_ERROR", "Failed to fetch transaction history")
    def get_transaction_history(
        self,
        *,
        student_id: int,
        transaction_type: Optional[TransactionType] = None,
        start: Optional[datetime] = None,
        end: Optional[datetime] = None,
        limit: int = DEFAULT_HISTORY_LIMIT,
        offset: int = 0,
    ) -> dict:
        if not 1 <= int(limit) <= 200:
            raise ValidationError("Limit must be between 1 and 200")
        if int(offset) < 0:
            raise ValidationError("Offset cannot be negative")
        if start and end and end < start:
            raise ValidationError("End date must be after start date")

        rows = list(
            self._ledger.list_transactions(
                student_id=int(student_id),
                transaction_type=transaction_type,
                start=start,
                end=end,
                limit=int(limit),
                offset=int(offset),
            )
        )
        return {
            "transactions": rows,
            "limit": int(limit),
            "offset": int(offset),
            "has_more": len(rows) == int(limit),
        }

    @service_call("ALERT_UPDATE_ERROR", "Failed to acknowledge alert")
    def acknowledge_alert(self, *, alert_id: int, student_id: int) -> bool:
        if not self._ledger.acknowledge_alert(alert_id=int(alert_id), student_id=int(student_id)):
            raise NotFoundError("Alert not found or already acknowledged")
        return True

    @service_call("EXPIRY_ERROR", "Failed to expire hour packages")
    def expire_purchases(self) -> list[HourTransaction]:
        written = list(self._ledger.expire_purchases(now=self._clock()))
        if written:
            logger.info("Expired %s hour packages (%.2f hours)", len(written), -sum(t.hours_amount for t in written))
        return written

    def check_balance_alerts(self, *, student_id: int, balance: float) -> list[AlertType]:
        """Raise low-balance / no-hours / expiring-soon alerts. Returns the alert types created."""
        created: list[AlertType] = []
        if balance <= 0:
            if self._ledger.create_alert(
                student_id=student_id,
                alert_type=AlertType.NO_HOURS,
                message="You have no remaining class hours",
                threshold_hours=0,
            ):
                created.append(AlertType.NO_HOURS)
        elif balance < self._low_balance_threshold:
            if self._ledger.create_alert(
                student_id=student_id,
                alert_type=AlertType.LOW_BALANCE,
                message=f"Low hour balance: {balance:g} hours remaining",
                threshold_hours=self._low_balance_threshold,
            ):
                created.append(AlertType.LOW_BALANCE)

        now = self._clock()
        warn_until = now + timedelta(days=self._expiry_warning_days)
        for p in self._ledger.list_active_purchases(student_id=student_id, now=now):
            if p.valid_until <= warn_until:
                days = (p.valid_until.date() - now.date()).days
                if self._ledger.create_alert(
                    student_id=student_id,
                    alert_type=AlertType.EXPIRING_SOON,
                    message=f"{p.hours_remaining:g} hours expire in {days} days",
                    purchase_id=p.purchase_id,
                ):
                    created.append(AlertType.EXPIRING_SOON)
        return created

    def _check_alerts_after_write(self, student_id: int, balance: float) -> None:
        # The ledger write is already committed; alert failures are reported but do not undo it.
        try:
            self.check_balance_alerts(student_id=student_id, balance=balance)
        except Exception:
            logger.exception("Balance alert check failed for student %s", student_id)
