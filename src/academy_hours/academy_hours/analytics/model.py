from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, datetime
from typing import Optional

from ..core.enums import DemandLevel, RecommendationType


# -------- Source rows --------
@dataclass(frozen=True)
class TimeSlot:
    slot_id: int
    start_time: datetime
    end_time: datetime
    teacher_id: Optional[int] = None


@dataclass(frozen=True)
class ClassSession:
    """One held class with its takings (class_revenue)."""

    class_id: int
    class_date: datetime
    class_type: str
    revenue: float
    duration_hours: float
    student_count: int
    capacity: int


@dataclass(frozen=True)
class ClassCost:
    class_id: int
    class_date: datetime
    cost: float


@dataclass(frozen=True)
class PaidPurchase:
    purchase_id: int
    student_id: int
    amount: float
    hours: float
    purchased_at: datetime
    student_name: Optional[str] = None


@dataclass(frozen=True)
class HourUsage:
    """A non-reversed ledger row relevant to consumption reporting."""

    student_id: int
    hours: float
    created_at: datetime
    class_type: Optional[str] = None
    class_id: Optional[int] = None


# -------- Class efficiency --------
@dataclass(frozen=True)
class DayUtilization:
    day: str
    utilization_rate: float
    total_slots: int
    used_slots: int


@dataclass(frozen=True)
class HourUtilization:
    hour: int
    utilization_rate: float
    demand_level: DemandLevel
    average_class_size: float


@dataclass(frozen=True)
class UtilizationMetrics:
    overall_utilization: float
    peak_hour_utilization: float
    off_peak_utilization: float
    student_capacity_utilization: float
    weekly_pattern: list[DayUtilization] = field(default_factory=list)
    hourly_pattern: list[HourUtilization] = field(default_factory=list)


@dataclass(frozen=True)
class ClassTypeRevenue:
    class_type: str
    revenue: float
    sessions: int
    students: int


@dataclass(frozen=True)
class RevenueMetrics:
    total_revenue: float
    total_costs: float
    revenue_per_hour: float
    revenue_per_student: float
    cost_per_hour: float
    profit_margin: float
    max_possible_revenue: float
    revenue_efficiency: float
    revenue_by_class_type: list[ClassTypeRevenue] = field(default_factory=list)


@dataclass(frozen=True)
class Recommendation:
    recommendation_type: RecommendationType
    priority: str
    title: str
    description: str


@dataclass(frozen=True)
class ClassEfficiencyReport:
    period_start: datetime
    period_end: datetime
    utilization: UtilizationMetrics
    revenue: RevenueMetrics
    recommendations: list[Recommendation]
    generated_at: datetime


# -------- Revenue --------
@dataclass(frozen=True)
class DailyRevenue:
    day: date
    revenue: float
    purchases: int


@dataclass(frozen=True)
class StudentRevenue:
    student_id: int
    revenue: float
    purchases: int
    hours: float
    student_name: Optional[str] = None


@dataclass(frozen=True)
class RevenueReport:
    period_start: datetime
    period_end: datetime
    total_revenue: float
    total_purchases: int
    total_hours_sold: float
    average_order_value: float
    previous_period_revenue: float
    growth_rate: float
    trend: str
    daily: list[DailyRevenue] = field(default_factory=list)
    top_students: list[StudentRevenue] = field(default_factory=list)


# -------- Consumption --------
@dataclass(frozen=True)
class ClassTypeConsumption:
    class_type: str
    total_hours: float
    sessions: int
    students: int
    average_hours_per_class: float


@dataclass(frozen=True)
class ConsumptionPoint:
    period: str
    hours: float
    sessions: int


@dataclass(frozen=True)
class ConsumptionReport:
    period_start: datetime
    period_end: datetime
    granularity: str
    total_hours_consumed: float
    total_hours_purchased: float
    total_hours_expired: float
    utilization_rate: float
    waste_rate: float
    by_class_type: list[ClassTypeConsumption] = field(default_factory=list)
    trend: list[ConsumptionPoint] = field(default_factory=list)
