"""The schedule registry: every room's entry list, persisted as one JSON file.

On disk the registry is a JSON object mapping room-number strings to arrays
of entry objects::

    {
      "101": [
        {"id": "...", "status": "occupied", "startDate": "2025-06-01",
         "endDate": "2025-06-03", "bookedBy": "Jane Doe"}
      ]
    }

In memory it is a ``dict`` keyed by ``int`` room number. Loading is lenient
per entry (a corrupt record is dropped, the rest of the dashboard still
loads) but strict per file (a file that is not a JSON object is an error,
never an empty registry).
"""

from __future__ import annotations

import logging
import re
from typing import Any, Dict, List, Optional, Sequence, Tuple

from pydantic import ValidationError

from .errors import StoreCorruptError
from .models import StatusEntry
from .schedule import BOOKER_NAME_MAX_LENGTH
from .store import JsonFileStore, PathLike

logger = logging.getLogger(__name__)

Schedules = Dict[int, List[StatusEntry]]

_REQUIRED_FIELDS = ("id", "status", "startDate", "endDate")
_CHECKOUT_RE = re.compile(r"^\d{2}:\d{2}$")


def _valid_booker(value: Any) -> bool:
    return isinstance(value, str) and 0 < len(value.strip()) <= BOOKER_NAME_MAX_LENGTH


def validate_entry(raw: Any) -> Optional[StatusEntry]:
    """Structurally validate one persisted entry.

    Returns None when a required field is missing or malformed. Malformed
    optional fields (``bookedBy``, ``checkoutTime``) are dropped and the
    entry is kept.
    """
    if not isinstance(raw, dict):
        return None
    if any(not isinstance(raw.get(name), str) for name in _REQUIRED_FIELDS):
        return None

    fields = {name: raw[name] for name in _REQUIRED_FIELDS}
    if _valid_booker(raw.get("bookedBy")):
        fields["bookedBy"] = raw["bookedBy"].strip()
    checkout = raw.get("checkoutTime")
    if isinstance(checkout, str) and _CHECKOUT_RE.match(checkout):
        fields["checkoutTime"] = checkout

    try:
        return StatusEntry.model_validate(fields)
    except ValidationError:
        return None


def parse_room_number(value: Any) -> Optional[int]:
    """Return ``value`` as a positive room number, or None."""
    if isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value if value > 0 else None
    if isinstance(value, str) and value.strip():
        try:
            parsed = int(value.strip())
        except ValueError:
            return None
        return parsed if parsed > 0 else None
    return None


def normalize_entries(entries: Sequence[StatusEntry]) -> List[StatusEntry]:
    """Return entries as they are persisted.

    Sorted by ``startDate`` then ``id``; ``bookedBy`` is trimmed on occupied
    entries and dropped when blank.
    """
    normalized = []
    for entry in entries:
        booker = entry.bookedBy.strip() if entry.bookedBy else ""
        if entry.status == "occupied":
            entry = entry.model_copy(update={"bookedBy": booker or None})
        elif entry.bookedBy is not None and not booker:
            entry = entry.model_copy(update={"bookedBy": None})
        normalized.append(entry)
    return sorted(normalized, key=lambda e: (e.startDate, e.id))


def get_room_entries(schedules: Schedules, room_number: int) -> List[StatusEntry]:
    return list(schedules.get(room_number, []))


def set_room_entries(schedules: Schedules, room_number: int, entries: Sequence[StatusEntry]) -> Schedules:
    """Return a copy of ``schedules`` with one room's list replaced.

    An empty list removes the room's key instead of storing ``[]``.
    """
    updated = dict(schedules)
    if entries:
        updated[room_number] = list(entries)
    else:
        updated.pop(room_number, None)
    return updated


def schedules_from_json(data: Any, source: str = "schedules") -> Schedules:
    if not isinstance(data, dict):
        raise StoreCorruptError(f"{source} must contain a JSON object", path=source)

    schedules: Schedules = {}
    for key, raw_entries in data.items():
        room_number = parse_room_number(key)
        if room_number is None:
            logger.warning("Skipping schedules for invalid room key %r", key)
            continue
        if not isinstance(raw_entries, list):
            logger.warning("Skipping room %s: schedule is not a list", key)
            continue
        entries = []
        for raw in raw_entries:
            entry = validate_entry(raw)
            if entry is None:
                logger.warning("Dropping malformed schedule entry for room %s: %r", key, raw)
                continue
            entries.append(entry)
        schedules[room_number] = entries
    return schedules


def schedules_to_json(schedules: Schedules) -> Dict[str, List[Dict[str, Any]]]:
    return {
        str(room_number): [entry.to_json() for entry in entries]
        for room_number, entries in schedules.items()
    }


class ScheduleRegistry:
    """Loads and saves the schedule map through a ``JsonFileStore``."""

    def __init__(self, store: JsonFileStore, path: PathLike) -> None:
        self.store = store
        self.path = str(path)

    def load(self) -> Schedules:
        """Return the persisted map. A missing file is an empty registry."""
        return schedules_from_json(self.store.read(self.path, default={}), source=self.path)

    def save(self, schedules: Schedules) -> Schedules:
        """Normalize and persist the full map; return what was written."""
        normalized = self._normalize(schedules)
        self.store.write(self.path, schedules_to_json(normalized))
        return normalized

    def room_entries(self, room_number: int) -> List[StatusEntry]:
        return get_room_entries(self.load(), room_number)

    def replace_room(
        self, room_number: int, entries: Sequence[StatusEntry]
    ) -> Tuple[List[StatusEntry], List[StatusEntry]]:
        """Replace one room's entries in a single read-modify-write.

        Returns ``(previous, persisted)``. Concurrent replacements of the same
        room are serialized but not isolated: the last one wins.
        """
        persisted = normalize_entries(entries)
        previous: List[StatusEntry] = []

        def apply(data: Any) -> Dict[str, Any]:
            current = schedules_from_json(data, source=self.path)
            previous.extend(get_room_entries(current, room_number))
            return schedules_to_json(self._normalize(set_room_entries(current, room_number, persisted)))

        self.store.update(self.path, apply, default={})
        return previous, persisted

    @staticmethod
    def _normalize(schedules: Schedules) -> Schedules:
        normalized: Schedules = {}
        for room_number, entries in schedules.items():
            if entries:
                normalized[room_number] = normalize_entries(entries)
        return normalized
