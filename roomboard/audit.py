"""Activity log: schedule diffs and the log file they are written to.

``diff_entries`` compares two versions of a room's entry list by entry id
only. An entry whose id is in both lists produces no event even if its
content changed; the dashboard never edits entries in place (it removes and
re-adds with a new id), so every visible change is an add or a remove.
"""

from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Any, Callable, Dict, Iterable, List, Optional, Sequence

from pydantic import ValidationError

from .errors import ScheduleValidationError, StoreCorruptError
from .models import LOG_ACTIONS, ROOM_STATUSES, ActivityLog, ActivityLogEvent, StatusEntry
from .schedule import generate_id
from .store import JsonFileStore, PathLike

logger = logging.getLogger(__name__)


def utcnow() -> datetime:
    """Return the current time in UTC."""
    return datetime.now(timezone.utc)


def iso_z(dt: datetime) -> str:
    """Return an ISO 8601 timestamp in UTC with a Z suffix."""
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(timezone.utc).isoformat(timespec="milliseconds").replace("+00:00", "Z")


def parse_iso(value: str) -> datetime:
    """Parse an ISO 8601 timestamp; naive values are taken as UTC."""
    parsed = datetime.fromisoformat(value.replace("Z", "+00:00"))
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def _is_iso(value: Any) -> bool:
    if not isinstance(value, str):
        return False
    try:
        parse_iso(value)
    except ValueError:
        return False
    return True


def diff_entries(
    room_number: int,
    previous: Sequence[StatusEntry],
    next_entries: Sequence[StatusEntry],
    now: datetime,
) -> List[ActivityLogEvent]:
    """Events for entries added and removed between two versions of a room's list.

    Added events come first in ``next_entries`` order, then removed events
    in ``previous`` order. All events share one ``createdAt``.
    """
    previous_ids = {e.id for e in previous}
    next_ids = {e.id for e in next_entries}
    created_at = iso_z(now)

    def event(entry: StatusEntry, action: str) -> ActivityLogEvent:
        return ActivityLogEvent(
            roomNumber=room_number,
            action=action,
            status=entry.status,
            startDate=entry.startDate,
            endDate=entry.endDate,
            createdAt=created_at,
        )

    events = [event(e, "schedule_added") for e in next_entries if e.id not in previous_ids]
    events.extend(event(e, "schedule_removed") for e in previous if e.id not in next_ids)
    return events


def build_log_entry(raw: Any, now: datetime) -> Optional[ActivityLog]:
    """Turn a submitted event into a stored record, or None if it is invalid.

    A missing or unparseable ``createdAt`` is replaced with ``now``.
    """
    if not isinstance(raw, dict):
        return None
    if isinstance(raw.get("roomNumber"), bool) or not isinstance(raw.get("roomNumber"), int):
        return None
    fields = dict(raw)
    if not _is_iso(fields.get("createdAt")):
        fields["createdAt"] = iso_z(now)
    fields["id"] = generate_id()
    try:
        return ActivityLog.model_validate(fields)
    except ValidationError:
        return None


def _parse_log(raw: Any) -> Optional[ActivityLog]:
    if not isinstance(raw, dict) or not _is_iso(raw.get("createdAt")):
        return None
    if isinstance(raw.get("roomNumber"), bool):
        return None
    try:
        return ActivityLog.model_validate(raw)
    except ValidationError:
        return None


def summarize(logs: Iterable[ActivityLog]) -> Dict[str, Any]:
    summary: Dict[str, Any] = {
        "total": 0,
        "added": 0,
        "removed": 0,
        "byStatus": {s: 0 for s in ROOM_STATUSES},
    }
    for log in logs:
        summary["total"] += 1
        if log.action == "schedule_added":
            summary["added"] += 1
        else:
            summary["removed"] += 1
        summary["byStatus"][log.status] += 1
    return summary


class ActivityLogWriter:
    """Reads, appends to and queries the activity log file.

    Records are stored newest first.
    """

    def __init__(
        self,
        store: JsonFileStore,
        path: PathLike,
        clock: Callable[[], datetime] = utcnow,
        default_limit: int = 100,
        max_limit: int = 500,
    ) -> None:
        self.store = store
        self.path = str(path)
        self.clock = clock
        self.default_limit = default_limit
        self.max_limit = max_limit

    def _from_json(self, data: Any) -> List[ActivityLog]:
        if not isinstance(data, list):
            raise StoreCorruptError(f"{self.path} must contain a JSON array", path=self.path)
        logs = []
        for raw in data:
            log = _parse_log(raw)
            if log is None:
                logger.warning("Dropping malformed activity log record: %r", raw)
                continue
            logs.append(log)
        return logs

    def load(self) -> List[ActivityLog]:
        return self._from_json(self.store.read(self.path, default=[]))

    def append(self, events: Iterable[Any]) -> List[ActivityLog]:
        """Store ``events`` (models or raw dicts) ahead of the existing records.

        Invalid items are skipped. Returns the records that were stored.
        """
        now = self.clock()
        records = []
        for event in events:
            raw = event.model_dump() if isinstance(event, ActivityLogEvent) else event
            record = build_log_entry(raw, now)
            if record is not None:
                records.append(record)
        if not records:
            return []
        records.sort(key=lambda r: parse_iso(r.createdAt), reverse=True)

        def apply(data: Any) -> List[Dict[str, Any]]:
            existing = self._from_json(data)
            return [r.model_dump() for r in records + existing]

        self.store.update(self.path, apply, default=[])
        return records

    def query(
        self,
        room_number: Optional[int] = None,
        action: Optional[str] = None,
        status: Optional[str] = None,
        created_from: Optional[datetime] = None,
        created_to: Optional[datetime] = None,
        offset: int = 0,
        limit: Optional[int] = None,
        summary: bool = False,
    ) -> Dict[str, Any]:
        """Filtered, paginated view of the log.

        Raises:
            ScheduleValidationError: bad filter values.
        """
        if created_from is not None and created_from.tzinfo is None:
            created_from = created_from.replace(tzinfo=timezone.utc)
        if created_to is not None and created_to.tzinfo is None:
            created_to = created_to.replace(tzinfo=timezone.utc)
        if action is not None and action not in LOG_ACTIONS:
            raise ScheduleValidationError(f"Invalid action {action!r}.")
        if status is not None and status not in ROOM_STATUSES:
            raise ScheduleValidationError(f"Invalid status {status!r}.")
        if created_from is not None and created_to is not None and created_from > created_to:
            raise ScheduleValidationError("The from date must be before to date.")
        if offset < 0:
            raise ScheduleValidationError("Offset must not be negative.")
        if limit is not None and limit < 1:
            raise ScheduleValidationError("Limit must be positive.")

        filtered = self.load()
        if room_number is not None:
            filtered = [log for log in filtered if log.roomNumber == room_number]
        if action is not None:
            filtered = [log for log in filtered if log.action == action]
        if status is not None:
            filtered = [log for log in filtered if log.status == status]
        if created_from is not None:
            filtered = [log for log in filtered if parse_iso(log.createdAt) >= created_from]
        if created_to is not None:
            filtered = [log for log in filtered if parse_iso(log.createdAt) <= created_to]

        limit = min(limit or self.default_limit, self.max_limit)
        page = filtered[offset : offset + limit]
        result: Dict[str, Any] = {
            "data": [log.model_dump() for log in page],
            "meta": {
                "total": len(filtered),
                "offset": offset,
                "limit": limit,
                "hasMore": offset + len(page) < len(filtered),
            },
        }
        if summary:
            result["summary"] = summarize(filtered)
        return result
