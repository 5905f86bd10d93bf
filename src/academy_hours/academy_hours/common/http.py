from __future__ import annotations

from functools import wraps
from typing import Any, Optional

from flask import jsonify, request, session

from ..core.enums import Role
from ..core.exceptions import ValidationError
from .datetime_utils import parse_iso_datetime
from .result import ServiceResult

_STATUS_BY_CODE = {
    "AUTH_ERROR": 401,
    "PERMISSION_DENIED": 403,
    "NOT_FOUND": 404,
    "ALREADY_REVERSED": 409,
    "ALREADY_PROCESSED": 409,
    "VALIDATION_ERROR": 400,
    "SUBMISSION_ERROR": 400,
    "INSUFFICIENT_HOURS": 400,
    "NEGATIVE_BALANCE": 400,
    "FAMILY_TRANSFER_NOT_ELIGIBLE": 400,
    "PAYMENT_FAILED": 402,
}


def http_status(result: ServiceResult) -> int:
    if result.success:
        return 200
    return _STATUS_BY_CODE.get(result.failure.code, 500)


def json_response(result: ServiceResult):
    return jsonify(result.to_dict()), http_status(result)


def bad_request(exc: ValidationError):
    return json_response(ServiceResult.fail(exc.code, exc.message, exc.details))


def current_actor() -> tuple[Optional[int], Optional[Role]]:
    """Authenticated user and role from the Flask session (login is handled upstream)."""
    user_id = session.get("user_id")
    role = session.get("role")
    try:
        parsed_role = Role(role) if role else None
    except ValueError:
        parsed_role = None
    return (int(user_id) if user_id is not None else None), parsed_role


def json_body() -> dict:
    data = request.get_json(silent=True)
    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ValidationError("JSON object expected")
    return data


def require_field(data: dict, name: str) -> Any:
    value = data.get(name)
    if value is None or (isinstance(value, str) and not value.strip()):
        raise ValidationError(f"{name} is required")
    return value


def as_int(value: Any, name: str) -> int:
    try:
        return int(value)
    except (TypeError, ValueError):
        raise ValidationError(f"{name} must be an integer")


def query_int(name: str, default: Optional[int] = None) -> Optional[int]:
    raw = request.args.get(name)
    if raw is None or raw == "":
        return default
    return as_int(raw, name)


def query_datetime(name: str):
    raw = request.args.get(name)
    if not raw:
        return None
    try:
        return parse_iso_datetime(raw)
    except ValueError:
        raise ValidationError(f"{name} must be an ISO date or datetime")


def api_view(view):
    """Turn request-parsing ValidationErrors into a 400 envelope."""

    @wraps(view)
    def wrapper(*args, **kwargs):
        try:
            return view(*args, **kwargs)
        except ValidationError as exc:
            return bad_request(exc)

    return wrapper


def as_datetime(value: Any, name: str):
    try:
        return parse_iso_datetime(str(value))
    except ValueError:
        raise ValidationError(f"{name} must be an ISO date or datetime")
