"""Calendar helpers for day-granular scheduling.

Everything here works on ``datetime.date`` values. A ``datetime`` passed in
is reduced to its own year/month/day fields without any timezone conversion,
so callers holding aware datetimes must convert to the dashboard's local
time first.

Date keys (``YYYY-MM-DD``) are the persisted form of a day. Because the
format is zero padded, comparing two keys as strings gives the same answer
as comparing the dates, which is what the range checks in
``roomboard.schedule`` rely on.
"""

from __future__ import annotations

import calendar
import re
from datetime import date, datetime, timedelta
from typing import Tuple, Union

DATE_KEY_PATTERN = r"^\d{4}-\d{2}-\d{2}$"
_DATE_KEY_RE = re.compile(DATE_KEY_PATTERN)

DayLike = Union[date, datetime, str]


def start_of_day(value: DayLike) -> date:
    """Return the calendar day of ``value`` (a date, datetime or date key)."""
    if isinstance(value, str):
        return parse_date_key(value)
    if isinstance(value, datetime):
        return value.date()
    return value


def format_date_key(value: DayLike) -> str:
    """Render a day as ``YYYY-MM-DD`` from its local year/month/day fields."""
    day = start_of_day(value)
    return f"{day.year:04d}-{day.month:02d}-{day.day:02d}"


def is_date_key(value: object) -> bool:
    """Return True if ``value`` is a ``YYYY-MM-DD`` string naming a real day."""
    if not isinstance(value, str) or not _DATE_KEY_RE.match(value):
        return False
    try:
        parse_date_key(value)
    except ValueError:
        return False
    return True


def parse_date_key(value: str) -> date:
    """Parse a ``YYYY-MM-DD`` key.

    Raises:
        ValueError: if the string has another shape or names an impossible day.
    """
    if not _DATE_KEY_RE.match(value):
        raise ValueError(f"expected YYYY-MM-DD, got {value!r}")
    year, month, day = (int(part) for part in value.split("-"))
    return date(year, month, day)


def add_days(value: DayLike, n: int) -> date:
    return start_of_day(value) + timedelta(days=n)


def day_offset(from_day: DayLike, to_day: DayLike) -> int:
    """Whole days from ``from_day`` to ``to_day`` (negative when ``to_day`` is earlier)."""
    return (start_of_day(to_day) - start_of_day(from_day)).days


def format_range_label(start: DayLike, end: DayLike) -> str:
    """Human readable range such as ``Jun 1`` or ``Jun 1 – Jun 3``."""
    s = start_of_day(start)
    e = start_of_day(end)
    first = f"{calendar.month_abbr[s.month]} {s.day}"
    if s == e:
        return first
    return f"{first} – {calendar.month_abbr[e.month]} {e.day}"


def _shift_month(year: int, month: int, months: int) -> Tuple[int, int]:
    index = year * 12 + (month - 1) + months
    return index // 12, index % 12 + 1


def first_of_month(today: DayLike, month_offset: int = 0) -> date:
    day = start_of_day(today)
    year, month = _shift_month(day.year, day.month, month_offset)
    return date(year, month, 1)


def last_of_month(today: DayLike, month_offset: int = 0) -> date:
    day = start_of_day(today)
    year, month = _shift_month(day.year, day.month, month_offset)
    return date(year, month, calendar.monthrange(year, month)[1])


# Timeline windows. Each returns ``(start_day_offset, days)`` relative to today.


def seven_day_window(offset: int = 0) -> Tuple[int, int]:
    return offset, 7


def month_span_window(today: DayLike, month_offset: int = 0, span_months: int = 1) -> Tuple[int, int]:
    """Window covering whole calendar months.

    Starts on the first day of the month ``month_offset`` months from today
    and ends on the last day of the month ``span_months - 1`` after that.
    """
    if span_months < 1:
        raise ValueError("span_months must be at least 1")
    window_start = first_of_month(today, month_offset)
    window_end = last_of_month(today, month_offset + span_months - 1)
    start_offset = day_offset(today, window_start)
    return start_offset, day_offset(window_start, window_end) + 1


def dashboard_window(today: DayLike) -> Tuple[int, int]:
    """The cached dashboard window: previous month through the end of next month.

    Seven-day and single-month views of the current period are slices of it.
    """
    return month_span_window(today, -1, 3)
