from __future__ import annotations

import logging
from datetime import datetime, timedelta
from typing import Callable, Optional

from ..common.datetime_utils import now_local
from ..common.result import service_call
from ..common.validators import require_actor, require_non_empty
from ..core.exceptions import NotFoundError, PaymentFailedError, ValidationError
from .model import HourPackage, HourPurchase
from .payment.base import PaymentGateway
from .payment.manual_gateway import ManualPaymentGateway
from .repository import PurchaseRepository

logger = logging.getLogger(__name__)


class PurchaseService:
    def __init__(
        self,
        purchases: PurchaseRepository,
        *,
        gateway: Optional[PaymentGateway] = None,
        clock: Callable[[], datetime] = now_local,
    ):
        self._purchases = purchases
        self._gateway = gateway or ManualPaymentGateway()
        self._clock = clock

    @service_call("FETCH_ERROR", "Failed to fetch hour packages")
    def list_packages(self) -> list[HourPackage]:
        return list(self._purchases.list_packages(active_only=True))

    @service_call("PURCHASE_CREATE_ERROR", "Failed to purchase hours")
    def purchase_hours(
        self,
        *,
        student_id: int,
        package_id: int,
        payment_method: str,
        actor_id: Optional[int] = None,
    ) -> HourPurchase:
        actor = require_actor(actor_id)
        payment_method = require_non_empty(payment_method, "Payment method")

        package = self._purchases.get_package(package_id=int(package_id))
        if not package or not package.is_active:
            raise NotFoundError("Hour package not found")
        if package.hours <= 0:
            raise ValidationError("Hour package has no hours")

        now = self._clock()
        purchase_id = self._purchases.create_purchase(
            student_id=int(student_id),
            package=package,
            payment_method=payment_method,
            valid_from=now,
            valid_until=now + timedelta(days=package.validity_days),
        )

        outcome = self._gateway.charge(
            purchase_id=purchase_id,
            student_id=int(student_id),
            amount=package.price,
            method=payment_method,
        )
        if not outcome.success:
            self._purchases.fail_purchase(purchase_id=purchase_id)
            logger.warning("Payment failed for purchase %s (student %s): %s", purchase_id, student_id, outcome.message)
            raise PaymentFailedError(outcome.message or "Payment processing failed", details={"purchase_id": purchase_id})

        credit = self._purchases.complete_purchase(
            purchase_id=purchase_id,
            payment_reference=outcome.reference,
            created_by=actor,
        )
        if credit is None:
            raise ValidationError("Purchase is no longer pending", details={"purchase_id": purchase_id})

        logger.info(
            "Student %s purchased package %s (%.2f hours), balance %.2f -> %.2f",
            student_id, package.package_id, package.hours, credit.balance_before, credit.balance_after,
        )
        purchase = self._purchases.get_purchase(purchase_id=purchase_id)
        if purchase is None:
            raise NotFoundError("Purchase not found", details={"purchase_id": purchase_id})
        return purchase

    @service_call("FETCH_ERROR", "Failed to fetch purchases")
    def get_recent_purchases(self, *, student_id: int, limit: int = 10) -> list[HourPurchase]:
        if not 1 <= int(limit) <= 100:
            raise ValidationError("Limit must be between 1 and 100")
        return list(self._purchases.list_recent_purchases(student_id=int(student_id), limit=int(limit)))
