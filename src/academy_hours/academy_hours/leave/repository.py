from __future__ import annotations

from datetime import date, datetime
from typing import Any, Optional, Protocol, Sequence

from ..core.enums import LeaveStatus
from ..ledger.model import HourTransaction
from .model import LeaveRequest, LeaveRule, NewLeaveRequest, NewLeaveRule, StudentProfile


class LeaveRepository(Protocol):
    def get_request(self, *, request_id: int) -> Optional[LeaveRequest]:
        raise NotImplementedError

    def create_request(self, *, request: NewLeaveRequest) -> Optional[LeaveRequest]:
        """Insert under the student lock. None when an open request already exists for the class."""

        raise NotImplementedError

    def list_student_requests(
        self,
        *,
        student_id: int,
        status: Optional[LeaveStatus] = None,
        limit: int = 10,
        offset: int = 0,
    ) -> tuple[Sequence[LeaveRequest], int]:
        """Newest first, with the total count before paging."""

        raise NotImplementedError

    def list_pending(self, *, limit: int = 10, offset: int = 0) -> tuple[Sequence[LeaveRequest], int]:
        """Oldest first, so reviewers work the queue in order."""

        raise NotImplementedError

    def decide(
        self,
        *,
        request_id: int,
        status: LeaveStatus,
        decided_by: int,
        notes: Optional[str],
    ) -> Optional[LeaveRequest]:
        """pending -> approved/rejected. None when the request is no longer pending."""

        raise NotImplementedError

    def cancel(self, *, request_id: int, student_id: int) -> Optional[LeaveRequest]:
        raise NotImplementedError

    def process_refund(self, *, request_id: int, created_by: Optional[int]) -> Optional[HourTransaction]:
        """Credit the refund once. None when already refunded, not approved or nothing to refund."""

        raise NotImplementedError

    def list_for_stats(self, *, student_id: Optional[int], since: datetime) -> Sequence[LeaveRequest]:
        raise NotImplementedError

    def count_approved_in_month(self, *, student_id: int, month_start: date, month_end: date) -> int:
        raise NotImplementedError

    def get_student_profile(self, *, student_id: int) -> Optional[StudentProfile]:
        raise NotImplementedError


class LeaveRuleRepository(Protocol):
    def list_rules(self, *, active_only: bool = False) -> Sequence[LeaveRule]:
        """Highest priority first."""

        raise NotImplementedError

    def get_rule(self, *, rule_id: int) -> Optional[LeaveRule]:
        raise NotImplementedError

    def create_rule(self, *, rule: NewLeaveRule, created_by: int) -> LeaveRule:
        raise NotImplementedError

    def update_rule(self, *, rule_id: int, changes: dict[str, Any]) -> Optional[LeaveRule]:
        raise NotImplementedError

    def deactivate_rule(self, *, rule_id: int) -> bool:
        raise NotImplementedError
