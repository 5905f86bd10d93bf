from __future__ import annotations

import logging
import math
from collections import Counter
from datetime import date, datetime, timedelta
from typing import Callable, Optional

from ..common.datetime_utils import hours_between, now_local
from ..common.result import service_call
from ..common.validators import optional_text, require_actor, require_non_empty, require_staff
from ..core.constants import DEFAULT_PAGE_SIZE
from ..core.enums import LeaveStatus, LeaveType, Role
from ..core.exceptions import AlreadyProcessedError, AuthorizationError, NotFoundError, ValidationError
from ..postponements.service import PostponementService
from .model import LeaveOutcome, LeavePage, LeaveRequest, LeaveStats, LeaveValidation, NewLeaveRequest
from .policy import PAST_CLASS_ERROR, decide_refund
from .repository import LeaveRepository
from .rules.engine import LeaveRulesEngine

logger = logging.getLogger(__name__)


def _leave_type(value) -> LeaveType:
    if isinstance(value, LeaveType):
        return value
    try:
        return LeaveType(value)
    except ValueError:
        raise ValidationError(f"Unknown leave type: {value}")


class LeaveService:
    """Leave requests: refund tiers, configurable rules, review and the refund/postponement side effects."""

    def __init__(
        self,
        requests: LeaveRepository,
        rules_engine: LeaveRulesEngine,
        *,
        postponements: Optional[PostponementService] = None,
        clock: Callable[[], datetime] = now_local,
    ):
        self._requests = requests
        self._rules = rules_engine
        self._postponements = postponements
        self._clock = clock

    # -------- Validation --------
    def _validate(
        self,
        *,
        student_id: int,
        class_date: datetime,
        leave_type: LeaveType,
        end_date: Optional[date] = None,
        affected_classes: int = 1,
    ) -> LeaveValidation:
        now = self._clock()
        # Tiers are decided on the exact value; only the reported figure is rounded.
        hours_before = hours_between(now, class_date)
        if hours_before <= 0:
            return LeaveValidation(
                is_valid=False,
                hours_before_class=round(hours_before, 3),
                meets_48_hour_rule=False,
                expected_refund_percentage=0,
                expected_hours_refund=0.0,
                auto_approval=False,
                errors=[PAST_CLASS_ERROR],
            )

        decision = decide_refund(hours_before, leave_type)
        rules = self._rules.evaluate(
            student_id=int(student_id),
            start_date=class_date.date(),
            end_date=end_date or class_date.date(),
            leave_type=leave_type,
            total_hours=float(max(int(affected_classes), 1)),
            now=now,
        )
        return LeaveValidation(
            is_valid=rules.is_valid,
            hours_before_class=round(hours_before, 3),
            meets_48_hour_rule=decision.meets_48_hour_rule,
            expected_refund_percentage=decision.refund_percentage,
            expected_hours_refund=decision.hours_to_refund,
            auto_approval=decision.auto_approval and rules.is_valid and not rules.summary.requires_approval,
            warnings=decision.warnings + [w.message for w in rules.warnings],
            errors=[e.message for e in rules.errors],
            rules=rules.summary,
        )

    @service_call("VALIDATION_ERROR", "Failed to validate leave request")
    def validate(
        self,
        *,
        student_id: int,
        class_date: datetime,
        leave_type: LeaveType,
        end_date: Optional[date] = None,
        affected_classes: int = 1,
    ) -> LeaveValidation:
        return self._validate(
            student_id=student_id,
            class_date=class_date,
            leave_type=_leave_type(leave_type),
            end_date=end_date,
            affected_classes=affected_classes,
        )

    # -------- Side effects --------
    def _after_approval(self, request: LeaveRequest, actor_id: Optional[int]) -> LeaveOutcome:
        refund = None
        if request.hours_to_refund > 0 and not request.refund_processed:
            refund = self._requests.process_refund(request_id=request.leave_request_id, created_by=actor_id)
            if refund is not None:
                logger.info(
                    "Refunded %.2f hours to student %s for leave request %s (transaction %s)",
                    refund.hours_amount, request.student_id, request.leave_request_id, refund.transaction_id,
                )

        postponement = None
        postponement_error = None
        if self._postponements is not None and request.booking_id is not None:
            result = self._postponements.postpone_for_leave(leave_request=request, actor_id=actor_id)
            if result.success:
                postponement = result.data
            else:
                postponement_error = result.failure.message
                logger.warning(
                    "Leave request %s approved but booking %s was not postponed: %s",
                    request.leave_request_id, request.booking_id, postponement_error,
                )

        current = self._requests.get_request(request_id=request.leave_request_id) or request
        return LeaveOutcome(
            request=current, refund=refund, postponement=postponement, postponement_error=postponement_error
        )

    # -------- Submission --------
    @service_call("SUBMISSION_ERROR", "Failed to submit leave request")
    def submit(
        self,
        *,
        student_id: int,
        class_date: datetime,
        leave_type: LeaveType,
        reason: str,
        class_id: Optional[int] = None,
        booking_id: Optional[int] = None,
        class_type: Optional[str] = None,
        teacher_id: Optional[int] = None,
        teacher_name: Optional[str] = None,
        medical_certificate_url: Optional[str] = None,
        additional_notes: Optional[str] = None,
        affected_classes: int = 1,
        actor_id: Optional[int] = None,
    ) -> LeaveOutcome:
        actor = require_actor(actor_id)
        leave_type = _leave_type(leave_type)
        reason = require_non_empty(reason, "Reason")

        validation = self._validate(
            student_id=student_id, class_date=class_date, leave_type=leave_type, affected_classes=affected_classes
        )
        if not validation.is_valid:
            raise ValidationError(validation.errors[0], code="SUBMISSION_ERROR", details=validation)

        auto = validation.auto_approval
        created = self._requests.create_request(
            request=NewLeaveRequest(
                student_id=int(student_id),
                class_date=class_date,
                leave_type=leave_type,
                reason=reason,
                hours_before_class=validation.hours_before_class,
                meets_48_hour_rule=validation.meets_48_hour_rule,
                refund_percentage=validation.expected_refund_percentage,
                hours_to_refund=validation.expected_hours_refund,
                status=LeaveStatus.APPROVED if auto else LeaveStatus.PENDING,
                auto_approved=auto,
                class_id=class_id,
                booking_id=booking_id,
                class_type=optional_text(class_type),
                teacher_id=teacher_id,
                teacher_name=optional_text(teacher_name),
                medical_certificate_url=optional_text(medical_certificate_url),
                additional_notes=optional_text(additional_notes),
            )
        )
        if created is None:
            raise ValidationError("A leave request already exists for this class", code="SUBMISSION_ERROR")

        logger.info(
            "Leave request %s submitted by student %s (%s, %.1fh notice, %d%% refund, %s)",
            created.leave_request_id, student_id, leave_type.value, validation.hours_before_class,
            validation.expected_refund_percentage, "auto-approved" if auto else "pending",
        )
        if not auto:
            return LeaveOutcome(request=created, validation=validation)

        outcome = self._after_approval(created, actor)
        return LeaveOutcome(
            request=outcome.request,
            validation=validation,
            refund=outcome.refund,
            postponement=outcome.postponement,
            postponement_error=outcome.postponement_error,
        )

    # -------- Review --------
    def _pending(self, request_id: int) -> LeaveRequest:
        current = self._requests.get_request(request_id=int(request_id))
        if not current:
            raise NotFoundError("Leave request not found")
        if current.status != LeaveStatus.PENDING:
            raise AlreadyProcessedError(f"Leave request has already been {current.status.value}")
        return current

    @service_call("LEAVE_APPROVAL_ERROR", "Failed to approve leave request")
    def approve(
        self,
        *,
        request_id: int,
        notes: Optional[str] = None,
        actor_id: Optional[int] = None,
        actor_role: Optional[Role] = None,
    ) -> LeaveOutcome:
        actor = require_staff(actor_id, actor_role)
        self._pending(request_id)

        approved = self._requests.decide(
            request_id=int(request_id), status=LeaveStatus.APPROVED, decided_by=actor, notes=optional_text(notes)
        )
        if approved is None:
            raise AlreadyProcessedError("Leave request has already been processed")

        logger.info("Leave request %s approved by %s", request_id, actor)
        return self._after_approval(approved, actor)

    @service_call("LEAVE_APPROVAL_ERROR", "Failed to reject leave request")
    def reject(
        self,
        *,
        request_id: int,
        notes: Optional[str] = None,
        actor_id: Optional[int] = None,
        actor_role: Optional[Role] = None,
    ) -> LeaveRequest:
        actor = require_staff(actor_id, actor_role)
        self._pending(request_id)

        rejected = self._requests.decide(
            request_id=int(request_id), status=LeaveStatus.REJECTED, decided_by=actor, notes=optional_text(notes)
        )
        if rejected is None:
            raise AlreadyProcessedError("Leave request has already been processed")

        logger.info("Leave request %s rejected by %s", request_id, actor)
        return rejected

    @service_call("LEAVE_CANCEL_ERROR", "Failed to cancel leave request")
    def cancel(self, *, request_id: int, student_id: int, actor_id: Optional[int] = None) -> LeaveRequest:
        require_actor(actor_id)
        current = self._requests.get_request(request_id=int(request_id))
        if not current:
            raise NotFoundError("Leave request not found")
        if current.student_id != int(student_id):
            raise AuthorizationError("Leave request belongs to another student")
        if current.status != LeaveStatus.PENDING:
            raise AlreadyProcessedError("Only pending leave requests can be cancelled")

        cancelled = self._requests.cancel(request_id=int(request_id), student_id=int(student_id))
        if cancelled is None:
            raise AlreadyProcessedError("Only pending leave requests can be cancelled")
        logger.info("Leave request %s cancelled by student %s", request_id, student_id)
        return cancelled

    # -------- Queries --------
    @service_call("FETCH_ERROR", "Failed to fetch leave request")
    def get_request(self, *, request_id: int) -> LeaveRequest:
        current = self._requests.get_request(request_id=int(request_id))
        if not current:
            raise NotFoundError("Leave request not found")
        return current

    @service_call("FETCH_ERROR", "Failed to fetch leave requests")
    def list_student_requests(
        self,
        *,
        student_id: int,
        page: int = 1,
        limit: int = DEFAULT_PAGE_SIZE,
        status: Optional[LeaveStatus] = None,
    ) -> LeavePage:
        page, limit = int(page), int(limit)
        if page < 1:
            raise ValidationError("Page must be at least 1")
        if not 1 <= limit <= 100:
            raise ValidationError("Limit must be between 1 and 100")
        if status is not None and not isinstance(status, LeaveStatus):
            try:
                status = LeaveStatus(status)
            except ValueError:
                raise ValidationError(f"Unknown leave status: {status}")

        items, total = self._requests.list_student_requests(
            student_id=int(student_id), status=status, limit=limit, offset=(page - 1) * limit
        )
        total_pages = math.ceil(total / limit) if total else 0
        return LeavePage(
            items=list(items),
            page=page,
            limit=limit,
            total=total,
            total_pages=total_pages,
            has_next=page < total_pages,
            has_previous=page > 1,
        )

    @service_call("FETCH_PENDING_ERROR", "Failed to fetch pending leave requests")
    def list_pending(self, *, limit: int = DEFAULT_PAGE_SIZE, offset: int = 0) -> list[LeaveRequest]:
        if not 1 <= int(limit) <= 100:
            raise ValidationError("Limit must be between 1 and 100")
        items, _ = self._requests.list_pending(limit=int(limit), offset=max(int(offset), 0))
        return list(items)

    @service_call("STATS_ERROR", "Failed to compute leave statistics")
    def get_stats(self, *, student_id: Optional[int] = None, period_days: int = 30) -> LeaveStats:
        if int(period_days) <= 0:
            raise ValidationError("Period must be at least one day")
        since = self._clock() - timedelta(days=int(period_days))
        rows = list(
            self._requests.list_for_stats(student_id=int(student_id) if student_id is not None else None, since=since)
        )
        by_status = Counter(r.status for r in rows)
        by_type = Counter(r.leave_type.value for r in rows)
        return LeaveStats(
            total_requests=len(rows),
            approved_requests=by_status[LeaveStatus.APPROVED],
            rejected_requests=by_status[LeaveStatus.REJECTED],
            pending_requests=by_status[LeaveStatus.PENDING],
            cancelled_requests=by_status[LeaveStatus.CANCELLED],
            total_hours_refunded=round(sum(r.hours_to_refund for r in rows if r.refund_processed), 2),
            average_refund_percentage=round(sum(r.refund_percentage for r in rows) / len(rows), 2) if rows else 0.0,
            requests_by_type={t.value: by_type.get(t.value, 0) for t in LeaveType},
        )
