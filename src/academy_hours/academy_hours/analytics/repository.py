from __future__ import annotations

from datetime import datetime
from typing import Protocol, Sequence

from .model import ClassCost, ClassSession, HourUsage, PaidPurchase, TimeSlot


class AnalyticsRepository(Protocol):
    """Read-only queries over a [start, end] window."""

    def list_time_slots(self, *, start: datetime, end: datetime) -> Sequence[TimeSlot]:
        raise NotImplementedError

    def list_class_sessions(self, *, start: datetime, end: datetime) -> Sequence[ClassSession]:
        raise NotImplementedError

    def list_class_costs(self, *, start: datetime, end: datetime) -> Sequence[ClassCost]:
        raise NotImplementedError

    def list_paid_purchases(self, *, start: datetime, end: datetime) -> Sequence[PaidPurchase]:
        raise NotImplementedError

    def list_deductions(self, *, start: datetime, end: datetime) -> Sequence[HourUsage]:
        """Deductions as positive hours, excluding reversed rows."""

        raise NotImplementedError

    def list_expiries(self, *, start: datetime, end: datetime) -> Sequence[HourUsage]:
        raise NotImplementedError
