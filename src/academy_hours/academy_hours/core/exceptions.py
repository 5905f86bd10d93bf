from __future__ import annotations

from typing import Any, Optional


class DomainError(Exception):
    """Base exception for business rule violations.

    Each subclass carries the error code reported in the response envelope.
    """

    code = "DOMAIN_ERROR"

    def __init__(self, message: str, *, code: Optional[str] = None, details: Any = None):
        super().__init__(message)
        self.message = message
        if code:
            self.code = code
        self.details = details


class ValidationError(DomainError):
    """Raised when input data is invalid or violates domain rules."""

    code = "VALIDATION_ERROR"


class AuthenticationError(DomainError):
    """Raised when an action needs an authenticated actor and there is none."""

    code = "AUTH_ERROR"


class AuthorizationError(DomainError):
    """Raised when a user lacks permission for an action."""

    code = "PERMISSION_DENIED"


class NotFoundError(DomainError):
    code = "NOT_FOUND"


class InsufficientHoursError(DomainError):
    code = "INSUFFICIENT_HOURS"


class NegativeBalanceError(DomainError):
    code = "NEGATIVE_BALANCE"


class AlreadyReversedError(DomainError):
    code = "ALREADY_REVERSED"


class AlreadyProcessedError(DomainError):
    """Raised when a workflow item already reached a terminal state."""

    code = "ALREADY_PROCESSED"


class FamilyTransferNotEligibleError(DomainError):
    code = "FAMILY_TRANSFER_NOT_ELIGIBLE"


class PaymentFailedError(DomainError):
    code = "PAYMENT_FAILED"
