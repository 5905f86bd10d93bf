from __future__ import annotations

from typing import Optional, Protocol, Sequence

from .model import HourAdjustment, NewAdjustment


class AdjustmentRepository(Protocol):
    def get_adjustment(self, *, adjustment_id: int) -> Optional[HourAdjustment]:
        raise NotImplementedError

    def create_adjustment(self, *, adjustment: NewAdjustment) -> Optional[HourAdjustment]:
        """Write the pending transaction and the adjustment row together.

        Returns None when the projected balance would be negative.
        """

        raise NotImplementedError

    def approve_adjustment(self, *, adjustment_id: int, approved_by: int, notes: Optional[str]) -> Optional[HourAdjustment]:
        """Apply a pending adjustment. None when not pending or when it would overdraw."""

        raise NotImplementedError

    def reject_adjustment(self, *, adjustment_id: int, rejected_by: int, notes: Optional[str]) -> Optional[HourAdjustment]:
        raise NotImplementedError

    def list_pending(
        self,
        *,
        limit: int = 20,
        offset: int = 0,
        student_id: Optional[int] = None,
    ) -> Sequence[HourAdjustment]:
        raise NotImplementedError
