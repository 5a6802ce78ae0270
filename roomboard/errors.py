"""Exceptions raised by the scheduling core and the JSON store.

Validation and conflict errors are expected outcomes of user input: the API
turns them into 4xx responses carrying ``message`` so the dashboard can show
it and keep the form filled in. Store errors are operational failures; their
cause is logged and clients only see a generic message.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, List, Optional

if TYPE_CHECKING:
    from .models import ConflictDescriptor, StatusEntry


class RoomboardError(Exception):
    """Base class for all errors raised by this package."""


class ScheduleValidationError(RoomboardError):
    """A schedule edit was rejected because its input is invalid."""

    code = "invalid_schedule"

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message

    def to_dict(self) -> dict:
        return {"error": self.message, "code": self.code}


class InvalidRangeError(ScheduleValidationError):
    code = "invalid_range"


class BookingNameRequiredError(ScheduleValidationError):
    code = "booking_name_required"

    def __init__(self, message: str = "A booking name is required for occupied dates.") -> None:
        super().__init__(message)


class InvalidStatusError(ScheduleValidationError):
    code = "invalid_status"


class ScheduleConflictError(RoomboardError):
    """A candidate entry overlaps an existing entry of the same room."""

    code = "overlap_conflict"

    def __init__(self, conflict: "ConflictDescriptor") -> None:
        self.conflict = conflict
        self.message = (
            f"Overlaps an existing {conflict.conflictingStatus} entry "
            f"({conflict.conflictingRangeLabel})."
        )
        super().__init__(self.message)

    def to_dict(self) -> dict:
        return {"error": self.message, "code": self.code, "conflict": self.conflict.model_dump()}


class StoreError(RoomboardError):
    """A persisted resource could not be read or written."""

    def __init__(self, message: str, path: Optional[str] = None) -> None:
        super().__init__(message)
        self.path = path


class StoreCorruptError(StoreError):
    """A persisted resource exists but is not valid JSON of the expected shape."""


class AuditLogError(RoomboardError):
    """The schedule was saved but the matching activity log records were not.

    The schedule change is authoritative and is not rolled back; ``entries``
    holds what was persisted so the caller can still report it.
    """

    def __init__(self, room_number: int, entries: List["StatusEntry"], cause: BaseException) -> None:
        super().__init__(f"Schedule for room {room_number} saved but activity log write failed: {cause}")
        self.room_number = room_number
        self.entries = entries
        self.cause = cause
