from __future__ import annotations

from .base import PaymentGateway, PaymentOutcome

SUPPORTED_METHODS = frozenset({"cash", "bank_transfer", "card"})


class ManualPaymentGateway(PaymentGateway):
    """Payments collected at the front desk; the office records them as settled."""

    def charge(self, *, purchase_id: int, student_id: int, amount: float, method: str) -> PaymentOutcome:
        if method not in SUPPORTED_METHODS:
            return PaymentOutcome(success=False, message=f"Unsupported payment method: {method}")
        if amount < 0:
            return PaymentOutcome(success=False, message="Invalid payment amount")
        return PaymentOutcome(success=True, reference=f"MANUAL-{purchase_id}")
