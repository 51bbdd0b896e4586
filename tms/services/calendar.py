"""Date and time-slot checks shared by meetings and events."""

from datetime import date, datetime

from ..errors import ServiceError
from ..timeutil import at_clock, today


def slot_times(day: date, start: str, end: str) -> tuple[datetime, datetime]:
    """Turn ``HH:MM`` start/end strings into datetimes on ``day``; end must follow start."""
    try:
        start_time = at_clock(day, start)
        end_time = at_clock(day, end)
    except ValueError:
        raise ServiceError("Invalid start or end time.")
    if end_time <= start_time:
        raise ServiceError("End time must be after start time.")
    return start_time, end_time


def check_not_past(day: date, label: str) -> None:
    if day < today():
        raise ServiceError(f"{label} date cannot be in the past.")
