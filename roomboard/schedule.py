"""Per-room schedule operations.

A room's schedule is a list of ``StatusEntry`` in insertion order. The
functions here are pure: they never mutate the list or its entries and
return a new list for every change, which keeps the previous list intact for
the activity log diff.

Resolution walks the list from the end, so if two entries ever cover the same
day the most recently added one wins. Writes go through ``find_overlap`` first,
so in a list built by this module at most one entry covers any day.
"""

from __future__ import annotations

import random
import re
import string
import time
from typing import Iterable, List, Optional, Sequence, Tuple

from .dates import DayLike, format_date_key, format_range_label
from .errors import (
    BookingNameRequiredError,
    InvalidRangeError,
    InvalidStatusError,
    ScheduleConflictError,
    ScheduleValidationError,
)
from .models import ROOM_STATUSES, ConflictDescriptor, StatusEntry

BOOKER_NAME_MAX_LENGTH = 120

_CHECKOUT_RE = re.compile(r"^\d{2}:\d{2}$")
_ID_ALPHABET = string.digits + string.ascii_lowercase


def generate_id() -> str:
    """Return a new entry id: epoch milliseconds plus a random base36 suffix."""
    suffix = "".join(random.choices(_ID_ALPHABET, k=7))
    return f"{int(time.time() * 1000)}-{suffix}"


# Resolution


def resolve_entry(entries: Sequence[StatusEntry], day: DayLike) -> Optional[StatusEntry]:
    """Return the latest entry whose range contains ``day``, or None."""
    key = format_date_key(day)
    for entry in reversed(entries):
        if entry.startDate <= key <= entry.endDate:
            return entry
    return None


def resolve_status(entries: Sequence[StatusEntry], day: DayLike, default_status: str) -> str:
    """Return the effective status of a room on ``day``.

    Falls back to ``default_status`` (the room's own status) when no entry
    covers the day.
    """
    entry = resolve_entry(entries, day)
    if entry is None:
        return default_status
    return entry.status


# Overlap detection and the conflict validator


def find_overlap(
    entries: Sequence[StatusEntry],
    start: DayLike,
    end: DayLike,
    exclude_ids: Iterable[str] = (),
) -> Optional[StatusEntry]:
    """Return the first entry, in list order, intersecting ``[start, end]``."""
    start_key = format_date_key(start)
    end_key = format_date_key(end)
    excluded = set(exclude_ids)
    for entry in entries:
        if entry.id in excluded:
            continue
        if start_key <= entry.endDate and entry.startDate <= end_key:
            return entry
    return None


def describe_conflict(entry: StatusEntry) -> ConflictDescriptor:
    return ConflictDescriptor(
        conflictingId=entry.id,
        conflictingStatus=entry.status,
        conflictingRangeLabel=format_range_label(entry.startDate, entry.endDate),
        conflictingStartDate=entry.startDate,
        conflictingEndDate=entry.endDate,
    )


def check_conflict(
    start: DayLike,
    end: DayLike,
    entries: Sequence[StatusEntry],
    exclude_ids: Iterable[str] = (),
) -> Optional[ConflictDescriptor]:
    """Check a proposed range against a room's entries.

    ``entries`` should already exclude whatever the proposed entry replaces;
    ``exclude_ids`` can drop more. Returns None when the range is free.
    """
    overlapping = find_overlap(entries, start, end, exclude_ids)
    if overlapping is None:
        return None
    return describe_conflict(overlapping)


def find_overlapping_pairs(entries: Sequence[StatusEntry]) -> List[Tuple[StatusEntry, StatusEntry]]:
    """Return every pair of entries whose ranges intersect, in list order."""
    pairs = []
    for i, first in enumerate(entries):
        for second in entries[i + 1 :]:
            if first.startDate <= second.endDate and second.startDate <= first.endDate:
                pairs.append((first, second))
    return pairs


# Mutations


def _require_status(status: str) -> None:
    if status not in ROOM_STATUSES:
        raise InvalidStatusError(f"Unknown status {status!r}.")


def _booker_for(status: str, booked_by: Optional[str]) -> Optional[str]:
    """Return the trimmed booker name to store, enforcing it for occupied entries."""
    name = booked_by.strip() if booked_by else ""
    if status != "occupied":
        return None
    if not name:
        raise BookingNameRequiredError()
    if len(name) > BOOKER_NAME_MAX_LENGTH:
        raise ScheduleValidationError(
            f"Booking name must be at most {BOOKER_NAME_MAX_LENGTH} characters."
        )
    return name


def upsert_single_day(
    entries: Sequence[StatusEntry],
    day: DayLike,
    status: str,
    booked_by: Optional[str] = None,
    checkout_time: Optional[str] = None,
) -> List[StatusEntry]:
    """Set the status of a single day.

    Any entry spanning exactly ``[day, day]`` is replaced. A longer entry
    covering the day is not split; it is reported as a conflict instead.

    Raises:
        BookingNameRequiredError: status is occupied and no name was given.
        ScheduleConflictError: the day is covered by a multi-day entry.
    """
    _require_status(status)
    key = format_date_key(day)
    booker = _booker_for(status, booked_by)
    if checkout_time is not None and not _CHECKOUT_RE.match(checkout_time):
        raise ScheduleValidationError(f"Checkout time must look like HH:MM, got {checkout_time!r}.")

    remaining = [e for e in entries if not (e.startDate == key and e.endDate == key)]
    conflict = check_conflict(key, key, remaining)
    if conflict is not None:
        raise ScheduleConflictError(conflict)

    entry = StatusEntry(
        id=generate_id(),
        status=status,
        startDate=key,
        endDate=key,
        bookedBy=booker,
        checkoutTime=checkout_time if status == "occupied" else None,
    )
    return remaining + [entry]


def add_range(
    entries: Sequence[StatusEntry],
    start: DayLike,
    end: DayLike,
    status: str,
    booked_by: Optional[str] = None,
) -> List[StatusEntry]:
    """Append a new entry covering ``[start, end]``.

    Raises:
        InvalidRangeError: ``start`` is after ``end``.
        BookingNameRequiredError: status is occupied and no name was given.
        ScheduleConflictError: the range intersects any existing entry.
    """
    _require_status(status)
    start_key = format_date_key(start)
    end_key = format_date_key(end)
    if start_key > end_key:
        raise InvalidRangeError("Start date must be on or before end date.")
    booker = _booker_for(status, booked_by)

    conflict = check_conflict(start_key, end_key, entries)
    if conflict is not None:
        raise ScheduleConflictError(conflict)

    entry = StatusEntry(
        id=generate_id(),
        status=status,
        startDate=start_key,
        endDate=end_key,
        bookedBy=booker,
    )
    return list(entries) + [entry]


def remove_entry(entries: Sequence[StatusEntry], entry_id: str) -> List[StatusEntry]:
    """Drop the entry with ``entry_id``. Unknown ids leave the list unchanged."""
    return [e for e in entries if e.id != entry_id]
