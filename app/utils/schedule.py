"""Date and time helpers for class schedules and meetings.

Everything stored is UTC. SQLite hands back naive datetimes, so values read
from the database go through `as_utc` before being compared with `utcnow()`.
"""
import math
import re
from datetime import date, datetime, time, timedelta, timezone
from typing import List, Optional

WEEKDAYS = {
    "monday": 0,
    "tuesday": 1,
    "wednesday": 2,
    "thursday": 3,
    "friday": 4,
    "saturday": 5,
    "sunday": 6,
}

_WEEKDAY_ALIASES = {
    "mon": 0,
    "tue": 1,
    "wed": 2,
    "thu": 3,
    "thur": 3,
    "fri": 4,
    "sat": 5,
    "sun": 6,
}

_DURATION_RE = re.compile(
    r"^\s*(\d+(?:\.\d+)?)\s*(minutes?|mins?|hours?|hrs?|h|m)\s*$", re.IGNORECASE
)


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def as_utc(value: Optional[datetime]) -> Optional[datetime]:
    if value is None:
        return None
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def parse_schedule_days(schedule: Optional[str]) -> List[int]:
    """Return the sorted weekday numbers (Mon=0) named in a free-text schedule."""
    if not schedule:
        return []

    days = set()
    for word in re.findall(r"[a-z]+", schedule.lower()):
        # "Tuesdays", "Tues" and "Weds" all reduce to a known name
        word = word.rstrip("s")
        number = WEEKDAYS.get(word, _WEEKDAY_ALIASES.get(word))
        if number is not None:
            days.add(number)
    return sorted(days)


def class_dates(schedule: Optional[str], start_date: date, end_date: date) -> List[date]:
    """Every date between start and end (inclusive) that falls on a scheduled weekday."""
    days = parse_schedule_days(schedule)
    if not days or end_date < start_date:
        return []

    result = []
    current = start_date
    while current <= end_date:
        if current.weekday() in days:
            result.append(current)
        current += timedelta(days=1)
    return result


def todays_class_date(
    schedule: Optional[str], start_date: date, end_date: date, today: Optional[date] = None
) -> Optional[date]:
    today = today or utcnow().date()
    if today < start_date or today > end_date:
        return None
    if today.weekday() not in parse_schedule_days(schedule):
        return None
    return today


def parse_duration(label: str) -> timedelta:
    """Parse "30 minutes", "1 hour", "1.5 hours" and friends.

    Raises ValueError when the label is not understood.
    """
    match = _DURATION_RE.match(label or "")
    if not match:
        raise ValueError(f"Unrecognised duration: {label!r}")

    amount = float(match.group(1))
    unit = match.group(2).lower()
    if amount <= 0:
        raise ValueError("Duration must be positive")
    if unit.startswith("h"):
        return timedelta(hours=amount)
    return timedelta(minutes=amount)


def duration_label(start: datetime, end: datetime) -> str:
    minutes = (end - start).total_seconds() / 60
    if minutes < 60:
        return f"{int(round(minutes))} minutes"
    hours = minutes / 60
    if hours == 1:
        return "1 hour"
    if hours.is_integer():
        return f"{int(hours)} hours"
    return f"{hours:.1f} hours"


def combine_date_time(day: date, at: time) -> datetime:
    return datetime.combine(day, at, tzinfo=timezone.utc)


def days_remaining(due_date: datetime, now: Optional[datetime] = None) -> int:
    now = now or utcnow()
    remaining = (as_utc(due_date) - now).total_seconds() / 86400
    return max(0, math.ceil(remaining))
