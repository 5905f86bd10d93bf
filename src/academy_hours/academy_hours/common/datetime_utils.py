from __future__ import annotations

from datetime import date, datetime, time, timedelta
from typing import Optional


def parse_iso_date(value: str) -> date:
    """Parse YYYY-MM-DD string into date."""
    return datetime.strptime(value, "%Y-%m-%d").date()


def parse_iso_datetime(value: str) -> datetime:
    """Parse an ISO-8601 timestamp (date-only strings mean midnight)."""
    v = (value or "").strip()
    if len(v) == 10:
        return datetime.combine(parse_iso_date(v), time.min)
    return datetime.fromisoformat(v.replace("Z", "+00:00")).replace(tzinfo=None)


def parse_hhmm(value: str) -> time:
    return datetime.strptime(value.strip(), "%H:%M").time()


def now_local() -> datetime:
    """Current local time.

    Note: Wrapped so tests can patch/mocked easier.
    """
    return datetime.now()


def hours_between(start: datetime, end: datetime) -> float:
    return (end - start).total_seconds() / 3600


def days_until(target: Optional[datetime], now: datetime) -> Optional[int]:
    if target is None:
        return None
    return (target.date() - now.date()).days


def iso_weekday(value: datetime) -> int:
    """Day of week with Sunday=0 .. Saturday=6 (the convention stored in class schedules)."""
    return (value.weekday() + 1) % 7


def next_weekday_at(now: datetime, day_of_week: int, at: time, *, not_before: Optional[datetime] = None) -> datetime:
    """Next occurrence of `day_of_week` (Sunday=0) at time `at`, strictly after `not_before`."""
    floor = not_before or now
    delta = (day_of_week - iso_weekday(floor)) % 7
    candidate = datetime.combine(floor.date() + timedelta(days=delta), at)
    if candidate <= floor:
        candidate += timedelta(days=7)
    return candidate


def month_bounds(value: date) -> tuple[date, date]:
    start = value.replace(day=1)
    if start.month == 12:
        end = start.replace(year=start.year + 1, month=1)
    else:
        end = start.replace(month=start.month + 1)
    return start, end - timedelta(days=1)
