from __future__ import annotations

from datetime import date, datetime

import pytest

from src.academy_hours.academy_hours.analytics import metrics
from src.academy_hours.academy_hours.analytics.model import ClassCost, ClassSession, HourUsage, PaidPurchase, TimeSlot
from src.academy_hours.academy_hours.core.enums import DemandLevel, RecommendationType

# Monday
DAY = datetime(2026, 3, 2)


def _slot(slot_id, hour):
    return TimeSlot(slot_id=slot_id, start_time=DAY.replace(hour=hour), end_time=DAY.replace(hour=hour + 1))


def _session(class_id, hour, students, revenue, capacity=9, class_type="ielts"):
    return ClassSession(
        class_id=class_id,
        class_date=DAY.replace(hour=hour),
        class_type=class_type,
        revenue=revenue,
        duration_hours=1,
        student_count=students,
        capacity=capacity,
    )


SLOTS = [_slot(1, 10), _slot(2, 17), _slot(3, 18), _slot(4, 19)]
SESSIONS = [_session(1, 17, 6, 600), _session(2, 18, 9, 900)]


def test_utilization_splits_peak_and_off_peak():
    u = metrics.utilization_metrics(SLOTS, SESSIONS)

    assert u.overall_utilization == 50.0
    assert u.peak_hour_utilization == 66.67
    assert u.off_peak_utilization == 0.0
    assert u.student_capacity_utilization == 83.33
    monday = u.weekly_pattern[1]
    assert (monday.day, monday.total_slots, monday.used_slots, monday.utilization_rate) == ("Monday", 4, 2, 50.0)
    assert len(u.hourly_pattern) == 24
    assert u.hourly_pattern[17].demand_level == DemandLevel.PEAK
    assert u.hourly_pattern[17].average_class_size == 6


def test_utilization_with_no_slots_is_zero():
    u = metrics.utilization_metrics([], [])

    assert u.overall_utilization == 0.0
    assert all(d.utilization_rate == 0.0 for d in u.weekly_pattern)


def test_revenue_metrics_use_per_seat_price():
    r = metrics.revenue_metrics(SESSIONS, [ClassCost(class_id=1, class_date=DAY, cost=500)])

    assert r.total_revenue == 1500
    assert r.max_possible_revenue == 1800
    assert r.revenue_efficiency == 83.33
    assert r.profit_margin == 66.67
    assert r.revenue_per_hour == 750
    assert r.revenue_by_class_type[0].sessions == 2


def test_empty_class_priced_at_period_average():
    sessions = [_session(1, 17, 5, 500, capacity=5), _session(2, 18, 0, 0, capacity=10)]

    r = metrics.revenue_metrics(sessions, [])

    assert r.max_possible_revenue == 1500
    assert r.revenue_efficiency == 33.33


def test_recommendations_follow_thresholds():
    u = metrics.utilization_metrics(SLOTS, SESSIONS)
    r = metrics.revenue_metrics(SESSIONS, [])

    recs = metrics.efficiency_recommendations(u, r)

    assert [x.recommendation_type for x in recs] == [RecommendationType.CAPACITY_ADJUSTMENT]


@pytest.mark.parametrize("rate, level", [(95, DemandLevel.PEAK), (90, DemandLevel.HIGH), (41, DemandLevel.MEDIUM), (40, DemandLevel.LOW)])
def test_demand_level(rate, level):
    assert metrics.demand_level(rate) == level


def test_growth_and_trend():
    assert metrics.growth_rate(150, 100) == 50.0
    assert metrics.growth_rate(5, 0) == 100.0
    assert metrics.growth_rate(0, 0) == 0.0
    assert metrics.trend(5) == "stable"
    assert metrics.trend(5.01) == "up"
    assert metrics.trend(-6) == "down"


def test_daily_revenue_fills_missing_days_and_top_students_rank():
    purchases = [
        PaidPurchase(purchase_id=1, student_id=1, amount=100, hours=10, purchased_at=DAY.replace(hour=9)),
        PaidPurchase(purchase_id=2, student_id=2, amount=300, hours=20, purchased_at=DAY.replace(day=4)),
        PaidPurchase(purchase_id=3, student_id=1, amount=150, hours=10, purchased_at=DAY.replace(day=4)),
    ]

    daily = metrics.daily_revenue(purchases, date(2026, 3, 2), date(2026, 3, 4))
    top = metrics.top_students(purchases)

    assert [(d.day.day, d.revenue, d.purchases) for d in daily] == [(2, 100, 1), (3, 0, 0), (4, 450, 2)]
    assert [(s.student_id, s.revenue, s.purchases) for s in top] == [(2, 300, 1), (1, 250, 2)]


def test_consumption_grouping_and_trend():
    usages = [
        HourUsage(student_id=1, hours=1.5, created_at=DAY, class_type="ielts"),
        HourUsage(student_id=2, hours=1.0, created_at=DAY, class_type="ielts"),
        HourUsage(student_id=1, hours=2.0, created_at=DAY.replace(day=10), class_type=None),
    ]

    by_type = metrics.consumption_by_class_type(usages)
    weekly = metrics.consumption_trend(usages, "weekly")

    assert [(c.class_type, c.total_hours, c.students) for c in by_type] == [("ielts", 2.5, 2), ("unknown", 2.0, 1)]
    assert [(p.period, p.hours, p.sessions) for p in weekly] == [("2026-W10", 2.5, 2), ("2026-W11", 2.0, 1)]
    assert metrics.period_label(DAY, "monthly") == "2026-03"
    assert metrics.period_label(DAY, "daily") == "2026-03-02"
