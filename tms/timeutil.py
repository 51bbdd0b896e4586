"""Naive-UTC time helpers shared by models, services and routers."""

from datetime import date, datetime, time, timedelta, timezone
from typing import Optional


def utcnow() -> datetime:
    """Current time as a naive UTC datetime (the storage convention)."""
    return datetime.now(timezone.utc).replace(tzinfo=None)


def to_naive_utc(value: Optional[datetime]) -> Optional[datetime]:
    """Normalise an aware datetime to naive UTC; naive values pass through."""
    if value is None or value.tzinfo is None:
        return value
    return value.astimezone(timezone.utc).replace(tzinfo=None)


def start_of_day(day: date) -> datetime:
    return datetime.combine(day, time.min)


def day_bounds(day: date) -> tuple[datetime, datetime]:
    """[start, end) of a calendar day."""
    start = start_of_day(day)
    return start, start + timedelta(days=1)


def tomorrow_bounds(now: Optional[datetime] = None) -> tuple[datetime, datetime]:
    now = now or utcnow()
    return day_bounds(now.date() + timedelta(days=1))


def at_clock(day: date, clock: str) -> datetime:
    """Combine a day with an ``HH:MM`` (or ``HH:MM:SS``) UTC string.

    Times carrying an offset are rejected rather than silently shifted.
    """
    try:
        parsed = time.fromisoformat(clock.strip())
    except (AttributeError, ValueError):
        raise ValueError(f"Invalid time: {clock!r}")
    if parsed.tzinfo is not None:
        raise ValueError(f"Time must not carry a UTC offset: {clock!r}")
    return datetime.combine(day, parsed)


def today() -> date:
    return utcnow().date()
