from __future__ import annotations

from dataclasses import dataclass

from .adjustments.mysql_adjustment_repository import MySQLAdjustmentRepository
from .adjustments.service import AdjustmentService
from .analytics.cache import TTLCache
from .analytics.export import ReportExportService
from .analytics.mysql_analytics_repository import MySQLAnalyticsRepository
from .analytics.service import AnalyticsService
from .core.constants import (
    ANALYTICS_CACHE_TTL_SECONDS,
    DEFAULT_EXPIRY_WARNING_DAYS,
    DEFAULT_LOW_BALANCE_THRESHOLD,
    SELECTION_WINDOW_DAYS,
)
from .database.connection import DBConfig, DatabaseConnection
from .leave.mysql_leave_repository import MySQLLeaveRepository, MySQLLeaveRuleRepository
from .leave.rule_service import LeaveRuleService
from .leave.rules.engine import LeaveRulesEngine
from .leave.service import LeaveService
from .ledger.balance import BalanceCalculator
from .ledger.mysql_ledger_repository import MySQLLedgerRepository, MySQLPurchaseRepository
from .ledger.purchase_service import PurchaseService
from .ledger.service import TransactionService
from .postponements.mysql_postponement_repository import MySQLPostponementRepository
from .postponements.service import PostponementService


@dataclass(frozen=True)
class Container:
    conn: DatabaseConnection

    ledger_repo: MySQLLedgerRepository
    purchase_repo: MySQLPurchaseRepository
    adjustment_repo: MySQLAdjustmentRepository
    leave_repo: MySQLLeaveRepository
    leave_rule_repo: MySQLLeaveRuleRepository
    postponement_repo: MySQLPostponementRepository
    analytics_repo: MySQLAnalyticsRepository

    balance_calculator: BalanceCalculator
    transaction_service: TransactionService
    purchase_service: PurchaseService
    adjustment_service: AdjustmentService
    leave_service: LeaveService
    leave_rule_service: LeaveRuleService
    postponement_service: PostponementService
    analytics_service: AnalyticsService
    export_service: ReportExportService


def build_container(*, db_config: dict, settings: object = None) -> Container:
    low_balance_threshold = getattr(settings, "LOW_BALANCE_THRESHOLD", DEFAULT_LOW_BALANCE_THRESHOLD)
    expiry_warning_days = getattr(settings, "EXPIRY_WARNING_DAYS", DEFAULT_EXPIRY_WARNING_DAYS)
    cache_ttl = getattr(settings, "ANALYTICS_CACHE_TTL_SECONDS", ANALYTICS_CACHE_TTL_SECONDS)
    selection_window_days = getattr(settings, "SELECTION_WINDOW_DAYS", SELECTION_WINDOW_DAYS)

    conn = DatabaseConnection.get_instance(DBConfig.from_dict(db_config))

    ledger_repo = MySQLLedgerRepository(conn)
    purchase_repo = MySQLPurchaseRepository(conn)
    adjustment_repo = MySQLAdjustmentRepository(conn)
    leave_repo = MySQLLeaveRepository(conn)
    leave_rule_repo = MySQLLeaveRuleRepository(conn)
    postponement_repo = MySQLPostponementRepository(conn)
    analytics_repo = MySQLAnalyticsRepository(conn)

    postponement_service = PostponementService(postponement_repo, selection_window_days=selection_window_days)
    analytics_service = AnalyticsService(analytics_repo, cache=TTLCache(cache_ttl))

    return Container(
        conn=conn,
        ledger_repo=ledger_repo,
        purchase_repo=purchase_repo,
        adjustment_repo=adjustment_repo,
        leave_repo=leave_repo,
        leave_rule_repo=leave_rule_repo,
        postponement_repo=postponement_repo,
        analytics_repo=analytics_repo,
        balance_calculator=BalanceCalculator(ledger_repo, expiry_warning_days=expiry_warning_days),
        transaction_service=TransactionService(
            ledger_repo,
            low_balance_threshold=low_balance_threshold,
            expiry_warning_days=expiry_warning_days,
        ),
        purchase_service=PurchaseService(purchase_repo),
        adjustment_service=AdjustmentService(adjustment_repo, ledger_repo),
        leave_service=LeaveService(
            leave_repo,
            LeaveRulesEngine(leave_rule_repo, leave_repo),
            postponements=postponement_service,
        ),
        leave_rule_service=LeaveRuleService(leave_rule_repo),
        postponement_service=postponement_service,
        analytics_service=analytics_service,
        export_service=ReportExportService(ledger_repo, analytics_service),
    )
