from __future__ import annotations

import io
import logging
from datetime import datetime
from typing import Iterable, Optional

import pandas as pd

from ..common.result import service_call
from ..core.exceptions import ValidationError
from ..ledger.model import HourTransaction
from ..ledger.repository import LedgerRepository
from .model import ConsumptionReport
from .service import AnalyticsService

logger = logging.getLogger(__name__)

XLSX_MIMETYPE = "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet"
MAX_EXPORT_ROWS = 5000


def _fmt(value: Optional[datetime]) -> str:
    return value.strftime("%Y-%m-%d %H:%M") if value else ""


def transactions_frame(transactions: Iterable[HourTransaction]) -> pd.DataFrame:
    rows = [
        {
            "Transaction": t.transaction_id,
            "Date": _fmt(t.created_at),
            "Type": t.transaction_type.value,
            "Hours": t.hours_amount,
            "Balance before": t.balance_before,
            "Balance after": t.balance_after,
            "Class type": t.class_type or "",
            "Description": t.description or t.reason or "",
            "Reversed": "yes" if t.is_reversed else "",
        }
        for t in transactions
    ]
    return pd.DataFrame(
        rows,
        columns=[
            "Transaction", "Date", "Type", "Hours", "Balance before", "Balance after",
            "Class type", "Description", "Reversed",
        ],
    )


def write_workbook(sheets: dict[str, pd.DataFrame]) -> io.BytesIO:
    """In-memory .xlsx with one sheet per frame."""
    out = io.BytesIO()
    with pd.ExcelWriter(out, engine="openpyxl") as writer:
        for name, frame in sheets.items():
            frame.to_excel(writer, index=False, sheet_name=name)
    out.seek(0)
    return out


def consumption_sheets(report: ConsumptionReport) -> dict[str, pd.DataFrame]:
    summary = pd.DataFrame(
        [
            {"Metric": "Period start", "Value": _fmt(report.period_start)},
            {"Metric": "Period end", "Value": _fmt(report.period_end)},
            {"Metric": "Hours consumed", "Value": report.total_hours_consumed},
            {"Metric": "Hours purchased", "Value": report.total_hours_purchased},
            {"Metric": "Hours expired", "Value": report.total_hours_expired},
            {"Metric": "Utilization %", "Value": report.utilization_rate},
            {"Metric": "Waste %", "Value": report.waste_rate},
        ]
    )
    by_type = pd.DataFrame(
        [
            {
                "Class type": c.class_type,
                "Hours": c.total_hours,
                "Sessions": c.sessions,
                "Students": c.students,
                "Average hours per class": c.average_hours_per_class,
            }
            for c in report.by_class_type
        ],
        columns=["Class type", "Hours", "Sessions", "Students", "Average hours per class"],
    )
    trend = pd.DataFrame(
        [{"Period": p.period, "Hours": p.hours, "Sessions": p.sessions} for p in report.trend],
        columns=["Period", "Hours", "Sessions"],
    )
    return {"Summary": summary, "By class type": by_type, "Trend": trend}


class ReportExportService:
    def __init__(self, ledger: LedgerRepository, analytics: AnalyticsService):
        self._ledger = ledger
        self._analytics = analytics

    @service_call("EXPORT_ERROR", "Failed to export transactions")
    def export_transactions(
        self,
        *,
        student_id: int,
        start: Optional[datetime] = None,
        end: Optional[datetime] = None,
    ) -> io.BytesIO:
        if start and end and end < start:
            raise ValidationError("End date must be after start date")
        rows = self._ledger.list_transactions(
            student_id=int(student_id), start=start, end=end, limit=MAX_EXPORT_ROWS, offset=0
        )
        logger.info("Exporting %d transactions for student %s", len(rows), student_id)
        return write_workbook({"Transactions": transactions_frame(rows)})

    @service_call("EXPORT_ERROR", "Failed to export consumption report")
    def export_consumption(
        self,
        *,
        start: Optional[datetime] = None,
        end: Optional[datetime] = None,
        period_days: int = 30,
        granularity: str = "daily",
    ) -> io.BytesIO:
        result = self._analytics.get_consumption_report(
            start=start, end=end, period_days=period_days, granularity=granularity
        )
        report: ConsumptionReport = result.unwrap()
        return write_workbook(consumption_sheets(report))
