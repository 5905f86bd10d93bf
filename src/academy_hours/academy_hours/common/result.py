"""Response envelope shared by every public service operation.

Services return ``ServiceResult`` instead of raising: domain errors keep their own
code, anything else (store/driver failures) is reported under the operation's
generic code with the underlying cause in ``details``.
"""

from __future__ import annotations

import logging
from dataclasses import asdict, dataclass, is_dataclass
from datetime import date, datetime, time
from decimal import Decimal
from enum import Enum
from functools import wraps
from typing import Any, Callable, Optional

from ..core.exceptions import DomainError

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ServiceError:
    code: str
    message: str
    details: Any = None


_UNKNOWN_ERROR = ServiceError(code="UNKNOWN_ERROR", message="Operation failed")


@dataclass(frozen=True)
class ServiceResult:
    success: bool
    data: Any = None
    error: Optional[ServiceError] = None

    @classmethod
    def ok(cls, data: Any = None) -> "ServiceResult":
        return cls(success=True, data=data)

    @classmethod
    def fail(cls, code: str, message: str, details: Any = None) -> "ServiceResult":
        return cls(success=False, error=ServiceError(code=code, message=message, details=details))

    @property
    def failure(self) -> ServiceError:
        """The error of a failed result; a failure built without one reads as UNKNOWN_ERROR."""
        return self.error or _UNKNOWN_ERROR

    def unwrap(self) -> Any:
        """Return ``data`` or re-raise the failure as a DomainError (service-to-service calls)."""
        if self.success:
            return self.data
        error = self.failure
        raise DomainError(error.message, code=error.code, details=error.details)

    def to_dict(self) -> dict:
        out: dict[str, Any] = {"success": self.success}
        if self.success:
            out["data"] = to_jsonable(self.data)
        else:
            error = self.failure
            out["error"] = {
                "code": error.code,
                "message": error.message,
                "details": to_jsonable(error.details),
            }
        return out


def to_jsonable(value: Any) -> Any:
    """Recursively convert dataclasses/enums/dates/decimals into JSON-friendly values."""
    if value is None or isinstance(value, (bool, int, float, str)) and not isinstance(value, Enum):
        return value
    if isinstance(value, Enum):
        return value.value
    if isinstance(value, Decimal):
        return float(value)
    if isinstance(value, (datetime, date, time)):
        return value.isoformat()
    if is_dataclass(value) and not isinstance(value, type):
        return {k: to_jsonable(v) for k, v in asdict(value).items()}
    if isinstance(value, dict):
        return {str(to_jsonable(k)): to_jsonable(v) for k, v in value.items()}
    if isinstance(value, (list, tuple, set)):
        return [to_jsonable(v) for v in value]
    return str(value)


def service_call(default_code: str, message: str = "Operation failed") -> Callable:
    """Decorator converting a raising service method into a ``ServiceResult`` returning one."""

    def decorator(func: Callable) -> Callable[..., ServiceResult]:
        @wraps(func)
        def wrapper(*args, **kwargs) -> ServiceResult:
            try:
                return ServiceResult.ok(func(*args, **kwargs))
            except DomainError as exc:
                logger.warning("%s rejected: [%s] %s", func.__qualname__, exc.code, exc.message)
                return ServiceResult.fail(exc.code, exc.message, exc.details)
            except Exception as exc:
                logger.exception("%s failed", func.__qualname__)
                return ServiceResult.fail(default_code, message, {"cause": str(exc)})

        return wrapper

    return decorator
