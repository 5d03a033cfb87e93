"""Month-key arithmetic for ``YYYY-MM`` strings.

Every component keys its buckets by ``YYYY-MM``. Parsing, addition and labels
live here so year rollover and malformed keys are handled in one place.
Malformed keys are never rejected by the aggregation code: they still sort as
plain strings, they simply cannot take part in calendar arithmetic.
"""

from __future__ import annotations

import calendar
import re
from datetime import date

MONTH_PATTERN = re.compile(r"^(\d{4})-(\d{2})$")
MONTH_ABBREVIATIONS = (
    "",
    "Jan",
    "Feb",
    "Mar",
    "Apr",
    "May",
    "Jun",
    "Jul",
    "Aug",
    "Sep",
    "Oct",
    "Nov",
    "Dec",
)


def parse_month(month: str) -> tuple[int, int] | None:
    """Return ``(year, month_number)`` or ``None`` for a malformed key."""

    match = MONTH_PATTERN.match(str(month))
    if not match:
        return None
    year = int(match.group(1))
    number = int(match.group(2))
    if number < 1 or number > 12:
        return None
    return year, number


def format_month(year: int, month: int) -> str:
    """Format a year/month pair, normalising month overflow in either direction."""

    index = year * 12 + (month - 1)
    return f"{index // 12:04d}-{index % 12 + 1:02d}"


def add_months(month: str, offset: int) -> str:
    parsed = parse_month(month)
    if parsed is None:
        raise ValueError(f"not a YYYY-MM month key: {month!r}")
    year, number = parsed
    return format_month(year, number + offset)


def compare_months(left: str, right: str) -> int:
    """Compare month keys; lexicographic order is chronological for ``YYYY-MM``."""

    if left == right:
        return 0
    return -1 if left < right else 1


def month_number(month: str) -> int | None:
    parsed = parse_month(month)
    return parsed[1] if parsed else None


def month_of(day: date) -> str:
    return f"{day.year:04d}-{day.month:02d}"


def month_start(month: str) -> date:
    parsed = parse_month(month)
    if parsed is None:
        raise ValueError(f"not a YYYY-MM month key: {month!r}")
    return date(parsed[0], parsed[1], 1)


def days_in_month(month: str) -> int:
    start = month_start(month)
    return calendar.monthrange(start.year, start.month)[1]


def month_label(month: str) -> str:
    """``2024-03`` -> ``Mar 2024``; malformed keys are returned unchanged."""

    parsed = parse_month(month)
    if parsed is None:
        return str(month)
    return f"{MONTH_ABBREVIATIONS[parsed[1]]} {parsed[0]}"


def month_range_label(start: str | None, end: str | None) -> str:
    if not start or not end:
        return "n/a"
    if start == end:
        return month_label(start)
    return f"{month_label(start)} – {month_label(end)}"
