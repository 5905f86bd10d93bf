from __future__ import annotations

from datetime import datetime, timedelta

import pandas as pd

from src.academy_hours.academy_hours.analytics.cache import TTLCache
from src.academy_hours.academy_hours.analytics.export import ReportExportService, write_workbook
from src.academy_hours.academy_hours.analytics.model import ClassSession, HourUsage, PaidPurchase, TimeSlot
from src.academy_hours.academy_hours.analytics.service import AnalyticsService
from src.academy_hours.academy_hours.core.enums import TransactionType
from src.academy_hours.academy_hours.ledger.model import HourTransaction

NOW = datetime(2026, 3, 31, 12, 0, 0)


class FakeAnalyticsRepo:
    def __init__(self):
        self.calls: list[tuple[str, datetime, datetime]] = []
        self.purchases = [
            PaidPurchase(purchase_id=1, student_id=1, amount=300, hours=10, purchased_at=datetime(2026, 3, 10, 9, 0)),
            PaidPurchase(purchase_id=2, student_id=2, amount=200, hours=10, purchased_at=datetime(2026, 2, 20, 9, 0)),
        ]

    def list_time_slots(self, *, start, end):
        self.calls.append(("slots", start, end))
        return [TimeSlot(slot_id=1, start_time=datetime(2026, 3, 9, 18), end_time=datetime(2026, 3, 9, 19))]

    def list_class_sessions(self, *, start, end):
        self.calls.append(("sessions", start, end))
        return [
            ClassSession(
                class_id=1,
                class_date=datetime(2026, 3, 9, 18),
                class_type="ielts",
                revenue=900,
                duration_hours=1,
                student_count=9,
                capacity=9,
            )
        ]

    def list_class_costs(self, *, start, end):
        return []

    def list_paid_purchases(self, *, start, end):
        self.calls.append(("purchases", start, end))
        return [p for p in self.purchases if start <= p.purchased_at <= end]

    def list_deductions(self, *, start, end):
        return [
            HourUsage(student_id=1, hours=2.0, created_at=datetime(2026, 3, 9, 19), class_type="ielts"),
            HourUsage(student_id=1, hours=1.0, created_at=datetime(2026, 3, 16, 19), class_type="ielts"),
        ]

    def list_expiries(self, *, start, end):
        return [HourUsage(student_id=2, hours=1.0, created_at=datetime(2026, 3, 20))]


class FakeClock:
    def __init__(self):
        self.now = 0.0

    def __call__(self):
        return self.now


def _service(ttl=60, clock=None):
    repo = FakeAnalyticsRepo()
    cache = TTLCache(ttl, clock=clock or FakeClock())
    return AnalyticsService(repo, cache=cache, clock=lambda: NOW), repo


def test_ttl_cache_expires_entries():
    clock = FakeClock()
    cache = TTLCache(10, clock=clock)
    cache.set("k", 1)

    clock.now = 9.9
    assert cache.get("k") == 1
    clock.now = 10
    assert cache.get("k") is None


def test_ttl_cache_drops_stale_keys_on_write():
    clock = FakeClock()
    cache = TTLCache(10, clock=clock)
    cache.set(("revenue", "2026-01-01", "2026-01-31"), 1)
    cache.set(("revenue", "2026-02-01", "2026-02-28"), 2)

    clock.now = 10
    cache.set(("revenue", "2026-03-01", "2026-03-31"), 3)

    assert len(cache) == 1
    assert cache.get(("revenue", "2026-03-01", "2026-03-31")) == 3


def test_ttl_cache_force_refresh_recomputes():
    cache = TTLCache(10, clock=FakeClock())
    values = iter([1, 2])

    assert cache.get_or_compute("k", lambda: next(values)) == 1
    assert cache.get_or_compute("k", lambda: next(values)) == 1
    assert cache.get_or_compute("k", lambda: next(values), force_refresh=True) == 2


def test_class_efficiency_is_cached_until_refresh():
    service, repo = _service()

    first = service.get_class_efficiency(period_days=30)
    second = service.get_class_efficiency(period_days=30)
    refreshed = service.get_class_efficiency(period_days=30, force_refresh=True)

    assert first.success
    assert first.data is second.data
    assert refreshed.data is not first.data
    assert sum(1 for c in repo.calls if c[0] == "sessions") == 2
    assert first.data.utilization.overall_utilization == 100.0
    assert first.data.period_start == NOW - timedelta(days=30)


def test_revenue_report_compares_with_previous_window():
    service, repo = _service()

    report = service.get_revenue_report(period_days=30).data

    assert report.total_revenue == 300
    assert report.previous_period_revenue == 200
    assert report.growth_rate == 50.0
    assert report.trend == "up"
    assert len(report.daily) == 31
    previous_call = [c for c in repo.calls if c[0] == "purchases"][1]
    assert previous_call[1:] == (NOW - timedelta(days=60), NOW - timedelta(days=30))


def test_consumption_report_rates():
    service, _ = _service()

    report = service.get_consumption_report(period_days=30, granularity="weekly").data

    assert report.total_hours_consumed == 3.0
    assert report.total_hours_purchased == 10
    assert report.utilization_rate == 30.0
    assert report.waste_rate == 10.0
    assert [p.period for p in report.trend] == ["2026-W11", "2026-W12"]


def test_invalid_window_and_granularity():
    service, _ = _service()

    assert service.get_consumption_report(granularity="hourly").error.code == "VALIDATION_ERROR"
    assert service.get_revenue_report(period_days=0).error.code == "VALIDATION_ERROR"
    assert (
        service.get_revenue_report(start=NOW, end=NOW - timedelta(days=1)).error.code == "VALIDATION_ERROR"
    )


def test_workbook_has_one_sheet_per_frame():
    buffer = write_workbook({"A": pd.DataFrame([{"x": 1}]), "B": pd.DataFrame([{"y": 2}])})

    sheets = pd.read_excel(buffer, sheet_name=None, engine="openpyxl")

    assert list(sheets) == ["A", "B"]
    assert sheets["B"].iloc[0]["y"] == 2


class FakeLedger:
    def list_transactions(self, *, student_id, transaction_type=None, start=None, end=None, limit=50, offset=0):
        return [
            HourTransaction(
                transaction_id=7,
                student_id=student_id,
                transaction_type=TransactionType.DEDUCTION,
                hours_amount=-1.5,
                balance_before=10,
                balance_after=8.5,
                created_at=datetime(2026, 3, 9, 19, 0),
                class_type="ielts",
            )
        ]


def test_export_transactions_and_consumption():
    analytics, _ = _service()
    exports = ReportExportService(FakeLedger(), analytics)

    tx = pd.read_excel(exports.export_transactions(student_id=1).data, sheet_name=None, engine="openpyxl")
    consumption = pd.read_excel(exports.export_consumption().data, sheet_name=None, engine="openpyxl")

    assert tx["Transactions"].iloc[0]["Type"] == "deduction"
    assert tx["Transactions"].iloc[0]["Hours"] == -1.5
    assert list(consumption) == ["Summary", "By class type", "Trend"]


def test_export_consumption_reports_analytics_failure():
    analytics, _ = _service()
    exports = ReportExportService(FakeLedger(), analytics)

    result = exports.export_consumption(granularity="hourly")

    assert result.error.code == "VALIDATION_ERROR"
