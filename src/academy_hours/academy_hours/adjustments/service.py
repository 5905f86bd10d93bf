from __future__ import annotations

import logging
from typing import Optional

from ..common.result import service_call
from ..common.validators import optional_text, require_actor, require_admin, require_non_empty, require_positive
from ..core.enums import AdjustmentType, ApprovalStatus, Role
from ..core.exceptions import AlreadyProcessedError, AuthorizationError, NegativeBalanceError, NotFoundError, ValidationError
from ..ledger.repository import LedgerRepository
from .model import HourAdjustment, NewAdjustment
from .repository import AdjustmentRepository

logger = logging.getLogger(__name__)


class AdjustmentService:
    """Manual hour corrections that only reach the balance once an administrator approves them."""

    def __init__(self, adjustments: AdjustmentRepository, ledger: LedgerRepository):
        self._adjustments = adjustments
        self._ledger = ledger

    def _negative(self, *, balance: float, change: float) -> NegativeBalanceError:
        projected = round(balance + change, 2)
        return NegativeBalanceError(
            f"Adjustment would result in negative balance: {projected:g} hours",
            details={"balance": balance, "change": change, "projected": projected},
        )

    def _pending(self, adjustment_id: int) -> HourAdjustment:
        current = self._adjustments.get_adjustment(adjustment_id=int(adjustment_id))
        if not current:
            raise NotFoundError("Adjustment not found")
        if current.approval_status != ApprovalStatus.PENDING:
            raise AlreadyProcessedError("Adjustment has already been processed")
        return current

    @service_call("ADJUSTMENT_CREATE_ERROR", "Failed to create hour adjustment")
    def create_adjustment(
        self,
        *,
        student_id: int,
        adjustment_type: AdjustmentType,
        hours: float,
        reason: str,
        notes: Optional[str] = None,
        actor_id: Optional[int] = None,
    ) -> HourAdjustment:
        actor = require_actor(actor_id)
        if not isinstance(adjustment_type, AdjustmentType):
            try:
                adjustment_type = AdjustmentType(adjustment_type)
            except ValueError:
                raise ValidationError("Adjustment type must be 'add' or 'subtract'")
        hours = round(require_positive(hours, "Hours"), 2)
        reason = require_non_empty(reason, "Reason")

        change = -hours if adjustment_type == AdjustmentType.SUBTRACT else hours
        balance = self._ledger.get_balance(student_id=int(student_id))
        if balance + change < 0:
            raise self._negative(balance=balance, change=change)

        created = self._adjustments.create_adjustment(
            adjustment=NewAdjustment(
                student_id=int(student_id),
                adjustment_type=adjustment_type,
                hours=hours,
                reason=reason,
                requested_by=actor,
                notes=optional_text(notes),
            )
        )
        if created is None:
            raise self._negative(balance=self._ledger.get_balance(student_id=int(student_id)), change=change)

        logger.info(
            "Adjustment %s requested for student %s: %s %.2f hours by %s",
            created.adjustment_id, student_id, adjustment_type.value, hours, actor,
        )
        return created

    @service_call("ADJUSTMENT_APPROVAL_ERROR", "Failed to approve hour adjustment")
    def approve_adjustment(
        self,
        *,
        adjustment_id: int,
        notes: Optional[str] = None,
        actor_id: Optional[int] = None,
        actor_role: Optional[Role] = None,
    ) -> HourAdjustment:
        actor = require_admin(actor_id, actor_role)
        current = self._pending(adjustment_id)
        if current.requested_by == actor:
            raise AuthorizationError("Adjustments must be approved by someone other than the requester")

        balance = self._ledger.get_balance(student_id=current.student_id)
        if balance + current.signed_hours < 0:
            raise self._negative(balance=balance, change=current.signed_hours)

        approved = self._adjustments.approve_adjustment(
            adjustment_id=int(adjustment_id), approved_by=actor, notes=optional_text(notes)
        )
        if approved is None:
            self._pending(adjustment_id)
            raise self._negative(
                balance=self._ledger.get_balance(student_id=current.student_id), change=current.signed_hours
            )

        logger.info(
            "Adjustment %s approved by %s, student %s balance changed by %.2f",
            adjustment_id, actor, current.student_id, current.signed_hours,
        )
        return approved

    @service_call("ADJUSTMENT_APPROVAL_ERROR", "Failed to reject hour adjustment")
    def reject_adjustment(
        self,
        *,
        adjustment_id: int,
        notes: Optional[str] = None,
        actor_id: Optional[int] = None,
        actor_role: Optional[Role] = None,
    ) -> HourAdjustment:
        actor = require_admin(actor_id, actor_role)
        self._pending(adjustment_id)

        rejected = self._adjustments.reject_adjustment(
            adjustment_id=int(adjustment_id), rejected_by=actor, notes=optional_text(notes)
        )
        if rejected is None:
            raise AlreadyProcessedError("Adjustment has already been processed")

        logger.info("Adjustment %s rejected by %s", adjustment_id, actor)
        return rejected

    @service_call("FETCH_PENDING_ERROR", "Failed to fetch pending adjustments")
    def list_pending_adjustments(
        self,
        *,
        limit: int = 20,
        offset: int = 0,
        student_id: Optional[int] = None,
    ) -> list[HourAdjustment]:
        if not 1 <= int(limit) <= 100:
            raise ValidationError("Limit must be between 1 and 100")
        return list(
            self._adjustments.list_pending(
                limit=int(limit),
                offset=max(int(offset), 0),
                student_id=int(student_id) if student_id is not None else None,
            )
        )
