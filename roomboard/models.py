"""Pydantic data models shared by the scheduling core and the API.

Field names follow the JSON contract of the dashboard (``startDate``,
``bookedBy``...) so that entries persisted to disk, returned by the API and
handled by the core are the same objects. Dates are kept as ``YYYY-MM-DD``
strings: lexicographic order on that format is chronological order, and the
core compares them as strings.
"""

from typing import Any, Dict, List, Literal, Optional

from pydantic import BaseModel, Field, field_validator, model_validator

from .dates import DATE_KEY_PATTERN, parse_date_key

RoomStatus = Literal["available", "occupied", "maintenance", "cleaning"]
RoomType = Literal["single", "double", "suite", "deluxe"]
ActivityLogAction = Literal["schedule_added", "schedule_removed"]

ROOM_STATUSES = ("available", "occupied", "maintenance", "cleaning")
ROOM_TYPES = ("single", "double", "suite", "deluxe")
LOG_ACTIONS = ("schedule_added", "schedule_removed")

CHECKOUT_TIME_PATTERN = r"^\d{2}:\d{2}$"


def _check_calendar_date(value: str) -> str:
    # Raises ValueError for keys like 2025-02-30.
    parse_date_key(value)
    return value


class StatusEntry(BaseModel):
    """One date-ranged status assignment for a room (inclusive range)."""

    id: str = Field(..., min_length=1)
    status: RoomStatus
    startDate: str = Field(..., pattern=DATE_KEY_PATTERN)
    endDate: str = Field(..., pattern=DATE_KEY_PATTERN)
    bookedBy: Optional[str] = Field(default=None, max_length=120)
    checkoutTime: Optional[str] = Field(default=None, pattern=CHECKOUT_TIME_PATTERN)

    @field_validator("startDate", "endDate")
    @classmethod
    def real_calendar_dates(cls, value: str) -> str:
        return _check_calendar_date(value)

    @model_validator(mode="after")
    def start_not_after_end(self) -> "StatusEntry":
        if self.startDate > self.endDate:
            raise ValueError("startDate must be on or before endDate")
        return self

    def to_json(self) -> Dict[str, Any]:
        return self.model_dump(exclude_none=True)


class Room(BaseModel):
    """A room as stored in the rooms file. Only ``number`` and ``status`` matter here."""

    number: int = Field(..., gt=0)
    name: Optional[str] = None
    type: RoomType = "single"
    status: RoomStatus = "available"
    floor: Optional[int] = None
    capacity: int = 1
    zone: Optional[str] = None


class ConflictDescriptor(BaseModel):
    """Details of the existing entry a candidate overlapped with."""

    conflictingId: str
    conflictingStatus: RoomStatus
    conflictingRangeLabel: str
    conflictingStartDate: str
    conflictingEndDate: str


class ActivityLogEvent(BaseModel):
    """A schedule change produced by the diff builder, before it gets an id."""

    roomNumber: int
    action: ActivityLogAction
    status: RoomStatus
    startDate: str
    endDate: str
    createdAt: str


class ActivityLog(ActivityLogEvent):
    """An activity log record as persisted."""

    id: str


# Request bodies


class ScheduleReplaceRequest(BaseModel):
    roomNumber: int = Field(..., gt=0)
    entries: List[StatusEntry]


class DayStatusRequest(BaseModel):
    date: str = Field(..., pattern=DATE_KEY_PATTERN)
    status: RoomStatus
    bookedBy: Optional[str] = None
    checkoutTime: Optional[str] = Field(default=None, pattern=CHECKOUT_TIME_PATTERN)

    @field_validator("date")
    @classmethod
    def real_calendar_date(cls, value: str) -> str:
        return _check_calendar_date(value)


class RangeRequest(BaseModel):
    startDate: str = Field(..., pattern=DATE_KEY_PATTERN)
    endDate: str = Field(..., pattern=DATE_KEY_PATTERN)
    status: RoomStatus
    bookedBy: Optional[str] = None

    @field_validator("startDate", "endDate")
    @classmethod
    def real_calendar_dates(cls, value: str) -> str:
        return _check_calendar_date(value)


class LogCreateRequest(BaseModel):
    # Items are validated one by one; invalid ones are skipped.
    logs: List[Any]
