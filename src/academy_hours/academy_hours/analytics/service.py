from __future__ import annotations

import logging
from datetime import datetime, timedelta
from typing import Callable, Optional

from ..common.datetime_utils import now_local
from ..common.result import service_call
from ..core.constants import ANALYTICS_CACHE_TTL_SECONDS
from ..core.exceptions import ValidationError
from . import metrics
from .cache import TTLCache
from .model import ClassEfficiencyReport, ConsumptionReport, RevenueReport
from .repository import AnalyticsRepository

logger = logging.getLogger(__name__)


class AnalyticsService:
    """Read-only reports over classes, purchases and hour usage, cached for a short TTL."""

    def __init__(
        self,
        analytics: AnalyticsRepository,
        *,
        cache: Optional[TTLCache] = None,
        clock: Callable[[], datetime] = now_local,
    ):
        self._repo = analytics
        self._cache = cache or TTLCache(ANALYTICS_CACHE_TTL_SECONDS)
        self._clock = clock

    def _window(
        self, start: Optional[datetime], end: Optional[datetime], period_days: int
    ) -> tuple[datetime, datetime]:
        if int(period_days) <= 0:
            raise ValidationError("Period must be at least one day")
        end = end or self._clock()
        start = start or end - timedelta(days=int(period_days))
        if start > end:
            raise ValidationError("End date must be after start date")
        return start, end

    @service_call("ANALYTICS_ERROR", "Failed to compute class efficiency")
    def get_class_efficiency(self, *, period_days: int = 30, force_refresh: bool = False) -> ClassEfficiencyReport:
        start, end = self._window(None, None, period_days)

        def compute() -> ClassEfficiencyReport:
            sessions = self._repo.list_class_sessions(start=start, end=end)
            utilization = metrics.utilization_metrics(self._repo.list_time_slots(start=start, end=end), sessions)
            revenue = metrics.revenue_metrics(sessions, self._repo.list_class_costs(start=start, end=end))
            logger.info(
                "Computed class efficiency for %s days: utilization %.2f%%, revenue efficiency %.2f%%",
                period_days, utilization.overall_utilization, revenue.revenue_efficiency,
            )
            return ClassEfficiencyReport(
                period_start=start,
                period_end=end,
                utilization=utilization,
                revenue=revenue,
                recommendations=metrics.efficiency_recommendations(utilization, revenue),
                generated_at=self._clock(),
            )

        return self._cache.get_or_compute(("class_efficiency", int(period_days)), compute, force_refresh=force_refresh)

    @service_call("ANALYTICS_ERROR", "Failed to compute revenue report")
    def get_revenue_report(
        self,
        *,
        start: Optional[datetime] = None,
        end: Optional[datetime] = None,
        period_days: int = 30,
        force_refresh: bool = False,
    ) -> RevenueReport:
        key = ("revenue", start, end, int(period_days))
        start, end = self._window(start, end, period_days)

        def compute() -> RevenueReport:
            purchases = list(self._repo.list_paid_purchases(start=start, end=end))
            previous = self._repo.list_paid_purchases(start=start - (end - start), end=start)
            total = round(sum(p.amount for p in purchases), 2)
            previous_total = round(sum(p.amount for p in previous), 2)
            growth = metrics.growth_rate(total, previous_total)
            return RevenueReport(
                period_start=start,
                period_end=end,
                total_revenue=total,
                total_purchases=len(purchases),
                total_hours_sold=round(sum(p.hours for p in purchases), 2),
                average_order_value=round(total / len(purchases), 2) if purchases else 0.0,
                previous_period_revenue=previous_total,
                growth_rate=growth,
                trend=metrics.trend(growth),
                daily=metrics.daily_revenue(purchases, start.date(), end.date()),
                top_students=metrics.top_students(purchases),
            )

        return self._cache.get_or_compute(key, compute, force_refresh=force_refresh)

    @service_call("ANALYTICS_ERROR", "Failed to compute hour consumption")
    def get_consumption_report(
        self,
        *,
        start: Optional[datetime] = None,
        end: Optional[datetime] = None,
        period_days: int = 30,
        granularity: str = "daily",
        force_refresh: bool = False,
    ) -> ConsumptionReport:
        if granularity not in metrics.GRANULARITIES:
            raise ValidationError(f"Granularity must be one of: {', '.join(metrics.GRANULARITIES)}")
        key = ("consumption", start, end, int(period_days), granularity)
        start, end = self._window(start, end, period_days)

        def compute() -> ConsumptionReport:
            deductions = list(self._repo.list_deductions(start=start, end=end))
            consumed = round(sum(u.hours for u in deductions), 2)
            purchased = round(sum(p.hours for p in self._repo.list_paid_purchases(start=start, end=end)), 2)
            expired = round(sum(u.hours for u in self._repo.list_expiries(start=start, end=end)), 2)
            return ConsumptionReport(
                period_start=start,
                period_end=end,
                granularity=granularity,
                total_hours_consumed=consumed,
                total_hours_purchased=purchased,
                total_hours_expired=expired,
                utilization_rate=metrics.percent(consumed, purchased),
                waste_rate=metrics.percent(expired, purchased),
                by_class_type=metrics.consumption_by_class_type(deductions),
                trend=metrics.consumption_trend(deductions, granularity),
            )

        return self._cache.get_or_compute(key, compute, force_refresh=force_refresh)

    def clear_cache(self) -> None:
        self._cache.clear()
