from __future__ import annotations

from typing import Optional

from ..core.enums import Role
from ..core.exceptions import AuthenticationError, AuthorizationError, ValidationError


def require_non_empty(value: str, field_name: str) -> str:
    if not value or not value.strip():
        raise ValidationError(f"{field_name} is required")
    return value.strip()


def require_positive(value, field_name: str) -> float:
    try:
        number = float(value)
    except (TypeError, ValueError):
        raise ValidationError(f"{field_name} must be a number")
    if number <= 0:
        raise ValidationError(f"{field_name} must be greater than zero")
    return number


def require_actor(actor_id: Optional[int]) -> int:
    if actor_id is None:
        raise AuthenticationError("User not authenticated")
    return int(actor_id)


def require_admin(actor_id: Optional[int], actor_role: Optional[Role]) -> int:
    actor = require_actor(actor_id)
    if actor_role != Role.ADMIN:
        raise AuthorizationError("Only administrators can perform this action")
    return actor


def optional_text(value: Optional[str]) -> Optional[str]:
    return (value or "").strip() or None


def require_staff(actor_id: Optional[int], actor_role: Optional[Role]) -> int:
    """Administrators and teachers may review student requests."""
    actor = require_actor(actor_id)
    if actor_role not in (Role.ADMIN, Role.TEACHER):
        raise AuthorizationError("Only staff can review requests")
    return actor
