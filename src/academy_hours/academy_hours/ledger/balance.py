from __future__ import annotations

from datetime import datetime, timedelta
from typing import Callable, Iterable

from ..common.datetime_utils import days_until, now_local
from ..common.result import service_call
from ..core.constants import DEFAULT_EXPIRY_WARNING_DAYS, RECENT_TRANSACTIONS_LIMIT
from .model import BalanceDetail, HourPurchase, PackageView
from .repository import LedgerRepository


class BalanceCalculator:
    """Derives balances from the transaction log. Nothing is cached between calls."""

    def __init__(
        self,
        ledger: LedgerRepository,
        *,
        expiry_warning_days: int = DEFAULT_EXPIRY_WARNING_DAYS,
        clock: Callable[[], datetime] = now_local,
    ):
        self._ledger = ledger
        self._expiry_warning_days = int(expiry_warning_days)
        self._clock = clock

    @service_call("FETCH_ERROR", "Failed to fetch hour balance")
    def get_balance(self, *, student_id: int) -> float:
        return round(self._ledger.get_balance(student_id=int(student_id)), 2)

    @service_call("FETCH_ERROR", "Failed to fetch hour balance")
    def get_balance_detail(self, *, student_id: int) -> BalanceDetail:
        student_id = int(student_id)
        now = self._clock()

        total = self._ledger.get_balance(student_id=student_id)
        active = self.active_packages(self._ledger.list_active_purchases(student_id=student_id, now=now), now)
        warn_until = now + timedelta(days=self._expiry_warning_days)
        expiring = [p for p in active if p.valid_until <= warn_until]

        return BalanceDetail(
            student_id=student_id,
            total_hours=round(total, 2),
            active_packages=active,
            expiring_packages=expiring,
            recent_transactions=list(
                self._ledger.list_transactions(student_id=student_id, limit=RECENT_TRANSACTIONS_LIMIT)
            ),
            active_alerts=list(self._ledger.list_active_alerts(student_id=student_id)),
        )

    @staticmethod
    def active_packages(purchases: Iterable[HourPurchase], now: datetime) -> list[PackageView]:
        """Usable packages in consumption order (soonest expiry first)."""
        usable = [
            p
            for p in purchases
            if p.is_active and not p.is_expired and p.hours_remaining > 0 and p.valid_until >= now
        ]
        usable.sort(key=lambda p: (p.valid_until, p.created_at))
        return [
            PackageView(
                purchase_id=p.purchase_id,
                hours_purchased=p.hours_purchased,
                hours_remaining=p.hours_remaining,
                valid_until=p.valid_until,
                days_remaining=days_until(p.valid_until, now),
            )
            for p in usable
        ]
