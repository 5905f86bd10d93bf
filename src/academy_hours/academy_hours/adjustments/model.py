from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Optional

from ..core.enums import AdjustmentType, ApprovalStatus


@dataclass(frozen=True)
class HourAdjustment:
    adjustment_id: int
    transaction_id: int
    student_id: int
    adjustment_type: AdjustmentType
    hours_amount: float
    reason: str
    approval_status: ApprovalStatus
    requested_by: int
    created_at: datetime
    approved_by: Optional[int] = None
    approved_at: Optional[datetime] = None
    approval_notes: Optional[str] = None
    metadata: dict[str, Any] = field(default_factory=dict)

    @property
    def signed_hours(self) -> float:
        return -self.hours_amount if self.adjustment_type == AdjustmentType.SUBTRACT else self.hours_amount


@dataclass(frozen=True)
class NewAdjustment:
    student_id: int
    adjustment_type: AdjustmentType
    hours: float
    reason: str
    requested_by: int
    notes: Optional[str] = None
