"""Shared utilities used across the chat pipeline."""

import re
from datetime import date, datetime, time, timedelta

_TIME_RE = re.compile(r"^\s*(\d{1,2}):(\d{2})\s*$")
_DATE_RE = re.compile(r"^\s*(\d{4})-(\d{2})-(\d{2})\s*$")


def normalize_phone(value: str) -> str:
    """Normalize a phone number by stripping everything except digits and a leading +.

    Examples:
        >>> normalize_phone("9123 4567")
        '91234567'
        >>> normalize_phone("+852 (9123) 4567")
        '+85291234567'
    """
    value = value.strip()
    if value.startswith("+"):
        return "+" + re.sub(r"[^\d]", "", value[1:])
    return re.sub(r"[^\d]", "", value)


def parse_date(value: str) -> date | None:
    """Parse a YYYY-MM-DD string, returning None when it is not a real date."""
    match = _DATE_RE.match(value or "")
    if not match:
        return None
    try:
        return date(int(match.group(1)), int(match.group(2)), int(match.group(3)))
    except ValueError:
        return None


def parse_time(value: str) -> time | None:
    """Parse an HH:MM string (24-hour), returning None when out of range."""
    match = _TIME_RE.match(value or "")
    if not match:
        return None
    hour, minute = int(match.group(1)), int(match.group(2))
    if hour > 23 or minute > 59:
        return None
    return time(hour, minute)


def resolve_relative_date(value: str | None, now: datetime) -> str | None:
    """Turn 'today' / 'tomorrow' into YYYY-MM-DD relative to ``now``.

    Anything else is returned unchanged (stripped) so the tools can
    report a precise validation error.
    """
    if value is None:
        return None
    lowered = value.strip().lower()
    if lowered == "today":
        return now.date().isoformat()
    if lowered == "tomorrow":
        return (now.date() + timedelta(days=1)).isoformat()
    return value.strip()


def format_time(value: datetime) -> str:
    """HH:MM for a datetime."""
    return value.strftime("%H:%M")


def plural(count: int, word: str) -> str:
    return f"{count} {word}{'' if count == 1 else 's'}"
