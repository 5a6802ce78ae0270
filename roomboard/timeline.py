"""Day-by-day status timelines and the room filters built on them.

A timeline maps each room number to a dense list of statuses for the window
``(start_day_offset, days)`` relative to today: index ``i`` is day
``today + start_day_offset + i``. Views that show a narrower window (seven
days, one month) index into a wider cached timeline by subtracting the
timeline's ``start_day_offset`` from their own day offset; ``status_at`` does
that arithmetic.

Nothing here is memoized. Rebuild after every schedule change.
"""

from __future__ import annotations

from datetime import date
from typing import Dict, Iterable, List, Mapping, Optional, Sequence

from .dates import DayLike, add_days, day_offset, start_of_day
from .models import ROOM_STATUSES, Room, StatusEntry
from .schedule import resolve_status

Timeline = Dict[int, List[str]]
Schedules = Mapping[int, Sequence[StatusEntry]]


def build_timeline(
    rooms: Iterable[Room],
    schedules: Schedules,
    window_days: int,
    start_day_offset: int,
    today: DayLike,
) -> Timeline:
    """Resolve every room's status for each day of the window."""
    if window_days < 0:
        raise ValueError("window_days must not be negative")
    days = window_dates(window_days, start_day_offset, today)

    timeline: Timeline = {}
    for room in rooms:
        entries = schedules.get(room.number, ())
        timeline[room.number] = [resolve_status(entries, day, room.status) for day in days]
    return timeline


def window_dates(window_days: int, start_day_offset: int, today: DayLike) -> List[date]:
    first_day = add_days(today, start_day_offset)
    return [add_days(first_day, i) for i in range(window_days)]


def status_at(timeline: Timeline, start_day_offset: int, room_number: int, offset: int) -> Optional[str]:
    """Status of ``room_number`` at day ``offset`` from today, or None outside the window."""
    statuses = timeline.get(room_number)
    if statuses is None:
        return None
    index = offset - start_day_offset
    if index < 0 or index >= len(statuses):
        return None
    return statuses[index]


def statuses_between(entries: Sequence[StatusEntry], start: DayLike, end: DayLike, default_status: str) -> List[str]:
    """Resolved status for every day from ``start`` to ``end`` inclusive."""
    first = start_of_day(start)
    span = day_offset(first, end)
    return [resolve_status(entries, add_days(first, i), default_status) for i in range(span + 1)]


def filter_rooms(
    rooms: Iterable[Room],
    schedules: Schedules,
    start: DayLike,
    end: DayLike,
    room_type: Optional[str] = None,
    status: Optional[str] = None,
) -> List[Room]:
    """Rooms matching the dashboard filters over ``[start, end]``.

    With no status filter (or ``available``) a room must be available on
    every day of the range. Any other status keeps rooms that have it on at
    least one day. An inverted range matches nothing.
    """
    if start_of_day(start) > start_of_day(end):
        return []

    matched = []
    for room in rooms:
        if room_type not in (None, "all") and room.type != room_type:
            continue
        by_day = statuses_between(schedules.get(room.number, ()), start, end, room.status)
        if status in (None, "all", "available"):
            keep = all(s == "available" for s in by_day)
        else:
            keep = status in by_day
        if keep:
            matched.append(room)
    return matched


def status_counts(rooms: Iterable[Room], schedules: Schedules, day: DayLike) -> Dict[str, int]:
    counts = {s: 0 for s in ROOM_STATUSES}
    for room in rooms:
        counts[resolve_status(schedules.get(room.number, ()), day, room.status)] += 1
    return counts
