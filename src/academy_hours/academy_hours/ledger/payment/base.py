from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Optional


@dataclass(frozen=True)
class PaymentOutcome:
    success: bool
    reference: Optional[str] = None
    message: Optional[str] = None


class PaymentGateway(ABC):
    """Gateway interface (Strategy Pattern for collecting package payments)."""

    @abstractmethod
    def charge(self, *, purchase_id: int, student_id: int, amount: float, method: str) -> PaymentOutcome:
        raise NotImplementedError
