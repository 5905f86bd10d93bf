from __future__ import annotations

import pytest

from src.academy_hours.academy_hours.common.http import http_status
from src.academy_hours.academy_hours.common.result import ServiceResult
from src.academy_hours.academy_hours.core.exceptions import DomainError


def test_failure_without_error_reads_as_unknown_error():
    result = ServiceResult(success=False)

    assert result.to_dict() == {
        "success": False,
        "error": {"code": "UNKNOWN_ERROR", "message": "Operation failed", "details": None},
    }
    assert http_status(result) == 500
    with pytest.raises(DomainError) as exc:
        result.unwrap()
    assert exc.value.code == "UNKNOWN_ERROR"


def test_unwrap_reraises_the_recorded_failure():
    result = ServiceResult.fail("INSUFFICIENT_HOURS", "Not enough hours", {"required": 2, "available": 1})

    with pytest.raises(DomainError) as exc:
        result.unwrap()

    assert exc.value.code == "INSUFFICIENT_HOURS"
    assert exc.value.details == {"required": 2, "available": 1}
    assert http_status(result) == 400
