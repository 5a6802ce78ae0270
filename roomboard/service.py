"""Schedule updates end to end.

Every change to a room's schedule follows the same path:

1. the edit is validated against the room's current entries,
2. the room's entry list is replaced in the registry file,
3. the old and new lists are diffed into activity log events,
4. the events are appended to the activity log file.

Steps 2 and 4 write different files and are not transactional. The schedule
is authoritative: if step 4 fails the schedule change stays and
``AuditLogError`` tells the caller it was saved but not logged.
"""

from __future__ import annotations

import logging
from datetime import date, datetime
from typing import Callable, Iterable, List, Optional, Sequence

from . import schedule
from .audit import ActivityLogWriter, diff_entries, utcnow
from .dates import DayLike
from .errors import AuditLogError, RoomboardError, ScheduleConflictError, ScheduleValidationError
from .models import Room, StatusEntry
from .registry import ScheduleRegistry, Schedules
from .timeline import Timeline, build_timeline

logger = logging.getLogger(__name__)


class ScheduleService:
    """Validated schedule edits with activity logging."""

    def __init__(
        self,
        registry: ScheduleRegistry,
        audit_log: ActivityLogWriter,
        clock: Callable[[], datetime] = utcnow,
        today: Callable[[], date] = date.today,
    ) -> None:
        self.registry = registry
        self.audit_log = audit_log
        self.clock = clock
        self.today = today

    def get_all(self) -> Schedules:
        return self.registry.load()

    def get_entries(self, room_number: int) -> List[StatusEntry]:
        return self.registry.room_entries(room_number)

    def replace_entries(self, room_number: int, entries: Sequence[StatusEntry]) -> List[StatusEntry]:
        """Persist a full replacement list for one room and log the difference.

        Raises:
            ScheduleValidationError: two submitted entries share an id.
            ScheduleConflictError: two submitted entries overlap.
            AuditLogError: saved, but the activity log could not be written.
        """
        seen = set()
        for entry in entries:
            if entry.id in seen:
                raise ScheduleValidationError(f"Duplicate entry id {entry.id!r}.")
            seen.add(entry.id)

        pairs = schedule.find_overlapping_pairs(entries)
        if pairs:
            existing, _ = pairs[0]
            raise ScheduleConflictError(schedule.describe_conflict(existing))

        previous, persisted = self.registry.replace_room(room_number, entries)
        events = diff_entries(room_number, previous, persisted, self.clock())
        logger.info(
            "Room %s schedule saved: %d entries, %d change(s)", room_number, len(persisted), len(events)
        )
        if events:
            try:
                self.audit_log.append(events)
            except RoomboardError as exc:
                logger.exception("Activity log write failed for room %s", room_number)
                raise AuditLogError(room_number, persisted, exc) from exc
        return persisted

    def set_day_status(
        self,
        room_number: int,
        day: DayLike,
        status: str,
        booked_by: Optional[str] = None,
        checkout_time: Optional[str] = None,
    ) -> List[StatusEntry]:
        current = self.get_entries(room_number)
        updated = schedule.upsert_single_day(current, day, status, booked_by, checkout_time)
        return self.replace_entries(room_number, updated)

    def add_range(
        self,
        room_number: int,
        start: DayLike,
        end: DayLike,
        status: str,
        booked_by: Optional[str] = None,
    ) -> List[StatusEntry]:
        current = self.get_entries(room_number)
        updated = schedule.add_range(current, start, end, status, booked_by)
        return self.replace_entries(room_number, updated)

    def remove_entry(self, room_number: int, entry_id: str) -> List[StatusEntry]:
        current = self.get_entries(room_number)
        updated = schedule.remove_entry(current, entry_id)
        if len(updated) == len(current):
            return current
        return self.replace_entries(room_number, updated)

    def timeline(self, rooms: Iterable[Room], window_days: int, start_day_offset: int) -> Timeline:
        return build_timeline(rooms, self.get_all(), window_days, start_day_offset, self.today())

