"""Pure aggregations behind the analytics reports. Percentages are 0-100, rounded to 2 places."""

from __future__ import annotations

from collections import defaultdict
from datetime import date, datetime, timedelta
from typing import Iterable, Sequence

from ..common.datetime_utils import iso_weekday
from ..core.constants import PEAK_HOUR_END, PEAK_HOUR_START, TOP_STUDENTS_LIMIT, TREND_THRESHOLD_PERCENT
from ..core.enums import DemandLevel, RecommendationType
from .model import (
    ClassCost,
    ClassSession,
    ClassTypeConsumption,
    ClassTypeRevenue,
    ConsumptionPoint,
    DailyRevenue,
    DayUtilization,
    HourUsage,
    HourUtilization,
    PaidPurchase,
    Recommendation,
    RevenueMetrics,
    StudentRevenue,
    TimeSlot,
    UtilizationMetrics,
)

DAY_NAMES = ["Sunday", "Monday", "Tuesday", "Wednesday", "Thursday", "Friday", "Saturday"]

LOW_UTILIZATION_THRESHOLD = 70
PEAK_OVERLOAD_THRESHOLD = 90
REVENUE_EFFICIENCY_THRESHOLD = 80
CAPACITY_UTILIZATION_THRESHOLD = 75

GRANULARITIES = ("daily", "weekly", "monthly")


def percent(part: float, whole: float) -> float:
    return round(part / whole * 100, 2) if whole > 0 else 0.0


def is_peak_hour(hour: int) -> bool:
    return PEAK_HOUR_START <= hour <= PEAK_HOUR_END


def demand_level(utilization_rate: float) -> DemandLevel:
    if utilization_rate > 90:
        return DemandLevel.PEAK
    if utilization_rate > 70:
        return DemandLevel.HIGH
    if utilization_rate > 40:
        return DemandLevel.MEDIUM
    return DemandLevel.LOW


# -------- Class efficiency --------
def utilization_metrics(slots: Sequence[TimeSlot], sessions: Sequence[ClassSession]) -> UtilizationMetrics:
    """Used slots are held sessions; available slots come from the teachers' published time slots."""
    peak_slots = sum(1 for s in slots if is_peak_hour(s.start_time.hour))
    peak_used = sum(1 for c in sessions if is_peak_hour(c.class_date.hour))

    weekly = []
    for day, name in enumerate(DAY_NAMES):
        total = sum(1 for s in slots if iso_weekday(s.start_time) == day)
        used = sum(1 for c in sessions if iso_weekday(c.class_date) == day)
        weekly.append(DayUtilization(day=name, utilization_rate=percent(used, total), total_slots=total, used_slots=used))

    hourly = []
    for hour in range(24):
        total = sum(1 for s in slots if s.start_time.hour == hour)
        held = [c for c in sessions if c.class_date.hour == hour]
        rate = percent(len(held), total)
        hourly.append(
            HourUtilization(
                hour=hour,
                utilization_rate=rate,
                demand_level=demand_level(rate),
                average_class_size=round(sum(c.student_count for c in held) / len(held), 2) if held else 0.0,
            )
        )

    return UtilizationMetrics(
        overall_utilization=percent(len(sessions), len(slots)),
        peak_hour_utilization=percent(peak_used, peak_slots),
        off_peak_utilization=percent(len(sessions) - peak_used, len(slots) - peak_slots),
        student_capacity_utilization=percent(sum(c.student_count for c in sessions), sum(c.capacity for c in sessions)),
        weekly_pattern=weekly,
        hourly_pattern=hourly,
    )


def revenue_metrics(sessions: Sequence[ClassSession], costs: Sequence[ClassCost]) -> RevenueMetrics:
    total_revenue = sum(c.revenue for c in sessions)
    total_costs = sum(c.cost for c in costs)
    total_hours = sum(c.duration_hours for c in sessions)
    total_students = sum(c.student_count for c in sessions)
    per_student = total_revenue / total_students if total_students else 0.0

    # A full class earns its own per-seat price on every seat; empty classes use the period average.
    max_possible = 0.0
    for c in sessions:
        seat_price = c.revenue / c.student_count if c.student_count else per_student
        max_possible += seat_price * c.capacity

    by_type: dict[str, list[ClassSession]] = defaultdict(list)
    for c in sessions:
        by_type[c.class_type].append(c)

    return RevenueMetrics(
        total_revenue=round(total_revenue, 2),
        total_costs=round(total_costs, 2),
        revenue_per_hour=round(total_revenue / total_hours, 2) if total_hours else 0.0,
        revenue_per_student=round(per_student, 2),
        cost_per_hour=round(total_costs / total_hours, 2) if total_hours else 0.0,
        profit_margin=percent(total_revenue - total_costs, total_revenue),
        max_possible_revenue=round(max_possible, 2),
        revenue_efficiency=percent(total_revenue, max_possible),
        revenue_by_class_type=sorted(
            (
                ClassTypeRevenue(
                    class_type=class_type,
                    revenue=round(sum(c.revenue for c in rows), 2),
                    sessions=len(rows),
                    students=sum(c.student_count for c in rows),
                )
                for class_type, rows in by_type.items()
            ),
            key=lambda r: r.revenue,
            reverse=True,
        ),
    )


def efficiency_recommendations(utilization: UtilizationMetrics, revenue: RevenueMetrics) -> list[Recommendation]:
    out: list[Recommendation] = []
    if utilization.overall_utilization < LOW_UTILIZATION_THRESHOLD:
        out.append(
            Recommendation(
                recommendation_type=RecommendationType.CAPACITY_ADJUSTMENT,
                priority="high",
                title="Improve Overall Utilization",
                description="Overall utilization is below target. Consider capacity adjustments and demand generation.",
            )
        )
    if utilization.peak_hour_utilization > PEAK_OVERLOAD_THRESHOLD:
        out.append(
            Recommendation(
                recommendation_type=RecommendationType.SCHEDULE_OPTIMIZATION,
                priority="high",
                title="Balance Peak Hour Demand",
                description="Peak hours are over-utilized. Consider expanding capacity or shifting demand.",
            )
        )
    if revenue.revenue_efficiency < REVENUE_EFFICIENCY_THRESHOLD:
        out.append(
            Recommendation(
                recommendation_type=RecommendationType.PRICING_STRATEGY,
                priority="medium",
                title="Improve Revenue Efficiency",
                description="Revenue efficiency is below optimal. Review pricing and class composition strategies.",
            )
        )
    if utilization.student_capacity_utilization < CAPACITY_UTILIZATION_THRESHOLD:
        out.append(
            Recommendation(
                recommendation_type=RecommendationType.RESOURCE_REALLOCATION,
                priority="medium",
                title="Optimize Resource Allocation",
                description="Classes run below capacity. Merge small groups or reallocate teachers.",
            )
        )
    return out


# -------- Revenue --------
def daily_revenue(purchases: Iterable[PaidPurchase], start: date, end: date) -> list[DailyRevenue]:
    totals: dict[date, list[float]] = defaultdict(list)
    for p in purchases:
        totals[p.purchased_at.date()].append(p.amount)
    out = []
    day = start
    while day <= end:
        amounts = totals.get(day, [])
        out.append(DailyRevenue(day=day, revenue=round(sum(amounts), 2), purchases=len(amounts)))
        day += timedelta(days=1)
    return out


def top_students(purchases: Iterable[PaidPurchase], limit: int = TOP_STUDENTS_LIMIT) -> list[StudentRevenue]:
    grouped: dict[int, list[PaidPurchase]] = defaultdict(list)
    for p in purchases:
        grouped[p.student_id].append(p)
    ranked = sorted(
        (
            StudentRevenue(
                student_id=student_id,
                revenue=round(sum(p.amount for p in rows), 2),
                purchases=len(rows),
                hours=round(sum(p.hours for p in rows), 2),
                student_name=rows[0].student_name,
            )
            for student_id, rows in grouped.items()
        ),
        key=lambda s: (-s.revenue, s.student_id),
    )
    return ranked[:limit]


def growth_rate(current: float, previous: float) -> float:
    if previous > 0:
        return round((current - previous) / previous * 100, 2)
    return 100.0 if current > 0 else 0.0


def trend(growth: float) -> str:
    if growth > TREND_THRESHOLD_PERCENT:
        return "up"
    if growth < -TREND_THRESHOLD_PERCENT:
        return "down"
    return "stable"


# -------- Consumption --------
def period_label(value: datetime, granularity: str) -> str:
    if granularity == "weekly":
        year, week, _ = value.isocalendar()
        return f"{year}-W{week:02d}"
    if granularity == "monthly":
        return value.strftime("%Y-%m")
    return value.strftime("%Y-%m-%d")


def consumption_by_class_type(usages: Iterable[HourUsage]) -> list[ClassTypeConsumption]:
    grouped: dict[str, list[HourUsage]] = defaultdict(list)
    for u in usages:
        grouped[u.class_type or "unknown"].append(u)
    out = []
    for class_type, rows in grouped.items():
        total = sum(u.hours for u in rows)
        out.append(
            ClassTypeConsumption(
                class_type=class_type,
                total_hours=round(total, 2),
                sessions=len(rows),
                students=len({u.student_id for u in rows}),
                average_hours_per_class=round(total / len(rows), 2),
            )
        )
    return sorted(out, key=lambda c: c.total_hours, reverse=True)


def consumption_trend(usages: Iterable[HourUsage], granularity: str) -> list[ConsumptionPoint]:
    hours: dict[str, float] = defaultdict(float)
    sessions: dict[str, int] = defaultdict(int)
    for u in usages:
        label = period_label(u.created_at, granularity)
        hours[label] += u.hours
        sessions[label] += 1
    return [ConsumptionPoint(period=k, hours=round(hours[k], 2), sessions=sessions[k]) for k in sorted(hours)]
