"""Main application entry point for the room availability service.

This module defines the FastAPI application, configures logging and wires
the JSON store, schedule registry, activity log and room directory together.
The browser dashboard talks to these endpoints; it never touches the JSON
files directly.

Endpoints:
  - ``/api/schedules``: read every room's schedule or replace one room's list.
  - ``/api/schedules/{room}/days``: set the status of a single day.
  - ``/api/schedules/{room}/ranges``: add a date-ranged entry.
  - ``/api/schedules/{room}/entries/{id}``: remove an entry.
  - ``/api/timeline``: day-by-day statuses for a window around today.
  - ``/api/rooms``: rooms, optionally filtered by availability over a range.
  - ``/api/logs``: query or append activity log records.
  - ``/healthz``: simple health check endpoint.

Validation and conflict failures come back as 400 and 409 with a message the
dashboard shows as is. Storage failures are logged with their cause and
reported to clients only as a generic failure.
"""

from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional

import uvicorn
from fastapi import Depends, FastAPI, HTTPException, Path, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from . import dates
from .audit import ActivityLogWriter, iso_z, parse_iso, utcnow
from .config import settings
from .errors import AuditLogError, ScheduleConflictError, ScheduleValidationError, StoreError
from .models import (
    LOG_ACTIONS,
    ROOM_STATUSES,
    ROOM_TYPES,
    DayStatusRequest,
    LogCreateRequest,
    RangeRequest,
    ScheduleReplaceRequest,
    StatusEntry,
)
from .registry import ScheduleRegistry, parse_room_number, schedules_to_json
from .rooms import RoomDirectory
from .service import ScheduleService
from .store import JsonFileStore
from .timeline import filter_rooms, status_counts, window_dates

logger = logging.getLogger("roomboard")
logging.basicConfig(
    level=settings.log_level.upper(), format="%(asctime)s %(levelname)s [%(name)s] %(message)s"
)

app = FastAPI(title="Room Availability Service")

# CORS is off by default because the dashboard and the API share an origin.
if settings.enable_cors:
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_methods=["GET", "POST", "PATCH", "DELETE"],
        allow_headers=["*"],
    )

NO_STORE = {"Cache-Control": "no-store"}
TIMELINE_WINDOWS = ("seven_days", "current_month", "two_months", "dashboard")

# One store per process: it owns the read cache and the per-file write locks.
store = JsonFileStore()
audit_log = ActivityLogWriter(
    store,
    settings.activity_logs_path,
    default_limit=settings.logs_default_limit,
    max_limit=settings.logs_max_limit,
)
room_directory = RoomDirectory(store, settings.rooms_path)
schedule_service = ScheduleService(ScheduleRegistry(store, settings.schedules_path), audit_log)


def get_service() -> ScheduleService:
    return schedule_service


def get_rooms() -> RoomDirectory:
    return room_directory


def get_audit_log() -> ActivityLogWriter:
    return audit_log


def _json(content: Any, status_code: int = 200) -> JSONResponse:
    return JSONResponse(content=content, status_code=status_code, headers=NO_STORE)


def _entries_payload(room_number: int, entries: List[StatusEntry]) -> Dict[str, Any]:
    return {"roomNumber": room_number, "entries": [e.to_json() for e in entries]}


def _store_failure(exc: StoreError, what: str) -> HTTPException:
    logger.error("Storage failure (%s): %s", what, exc, exc_info=exc)
    return HTTPException(status_code=500, detail={"error": f"Failed to {what}."})


def _edit_schedule(room_number: int, edit) -> JSONResponse:
    """Run a schedule edit and translate its failures into HTTP responses."""
    try:
        entries = edit()
    except ScheduleValidationError as exc:
        raise HTTPException(status_code=400, detail=exc.to_dict())
    except ScheduleConflictError as exc:
        raise HTTPException(status_code=409, detail=exc.to_dict())
    except AuditLogError as exc:
        payload = _entries_payload(room_number, exc.entries)
        payload["warning"] = "Availability saved, but the activity log could not be updated."
        return _json(payload)
    except StoreError as exc:
        raise _store_failure(exc, "save schedules")
    return _json(_entries_payload(room_number, entries))


@app.exception_handler(RequestValidationError)
async def _invalid_request(request: Request, exc: RequestValidationError) -> JSONResponse:
    problems = [
        "{}: {}".format(".".join(str(part) for part in err.get("loc", ())), err.get("msg", "invalid"))
        for err in exc.errors()
    ]
    return JSONResponse(
        status_code=400,
        content={"detail": {"error": "Invalid request payload.", "details": problems}},
        headers=NO_STORE,
    )


@app.get("/healthz")
def healthz() -> Dict[str, Any]:
    """Health check endpoint for monitoring."""
    return {"ok": True, "time": iso_z(utcnow())}


# Schedules


@app.get("/api/schedules")
def api_get_schedules(roomNumber: Optional[str] = None, service: ScheduleService = Depends(get_service)):
    """Return every room's schedule, or one room's entries with ``?roomNumber=``."""
    room_number = None
    if roomNumber is not None:
        room_number = parse_room_number(roomNumber)
        if room_number is None:
            raise HTTPException(status_code=400, detail={"error": "Invalid roomNumber query parameter."})
    try:
        if room_number is not None:
            return _json(_entries_payload(room_number, service.get_entries(room_number)))
        return _json(schedules_to_json(service.get_all()))
    except StoreError as exc:
        raise _store_failure(exc, "load schedules")


@app.patch("/api/schedules")
def api_replace_schedules(body: ScheduleReplaceRequest, service: ScheduleService = Depends(get_service)):
    """Replace one room's entry list. Returns the normalized entries that were stored."""
    return _edit_schedule(body.roomNumber, lambda: service.replace_entries(body.roomNumber, body.entries))


@app.post("/api/schedules/{room_number}/days")
def api_set_day_status(
    body: DayStatusRequest,
    room_number: int = Path(..., gt=0),
    service: ScheduleService = Depends(get_service),
):
    return _edit_schedule(
        room_number,
        lambda: service.set_day_status(room_number, body.date, body.status, body.bookedBy, body.checkoutTime),
    )


@app.post("/api/schedules/{room_number}/ranges")
def api_add_range(
    body: RangeRequest,
    room_number: int = Path(..., gt=0),
    service: ScheduleService = Depends(get_service),
):
    return _edit_schedule(
        room_number,
        lambda: service.add_range(room_number, body.startDate, body.endDate, body.status, body.bookedBy),
    )


@app.delete("/api/schedules/{room_number}/entries/{entry_id}")
def api_remove_entry(
    entry_id: str,
    room_number: int = Path(..., gt=0),
    service: ScheduleService = Depends(get_service),
):
    """Remove an entry. Removing an unknown id is not an error."""
    return _edit_schedule(room_number, lambda: service.remove_entry(room_number, entry_id))


# Timeline and rooms


@app.get("/api/timeline")
def api_timeline(
    window: str = "seven_days",
    offset: int = 0,
    service: ScheduleService = Depends(get_service),
    rooms: RoomDirectory = Depends(get_rooms),
):
    """Day-by-day statuses per room.

    ``offset`` is in days for ``seven_days`` and in months for the month
    windows. ``dashboard`` ignores it and returns the previous month through
    the end of next month.
    """
    if window not in TIMELINE_WINDOWS:
        raise HTTPException(status_code=400, detail={"error": "Invalid window query parameter."})
    today = service.today()
    try:
        if window == "seven_days":
            start_offset, days = dates.seven_day_window(offset)
        elif window == "current_month":
            start_offset, days = dates.month_span_window(today, offset, 1)
        elif window == "two_months":
            start_offset, days = dates.month_span_window(today, offset, 2)
        else:
            start_offset, days = dates.dashboard_window(today)
        day_list = window_dates(days, start_offset, today)
    except (OverflowError, ValueError):
        # The window falls outside the representable calendar.
        raise HTTPException(status_code=400, detail={"error": "Invalid offset query parameter."})

    try:
        timeline = service.timeline(rooms.list_rooms(), days, start_offset)
    except StoreError as exc:
        raise _store_failure(exc, "build the timeline")
    return _json(
        {
            "window": window,
            "today": dates.format_date_key(today),
            "startDayOffset": start_offset,
            "days": days,
            "dates": [dates.format_date_key(d) for d in day_list],
            "timeline": {str(number): statuses for number, statuses in timeline.items()},
        }
    )


@app.get("/api/rooms")
def api_rooms(
    startDate: Optional[str] = None,
    endDate: Optional[str] = None,
    type: Optional[str] = None,
    status: Optional[str] = None,
    summary: Optional[str] = None,
    service: ScheduleService = Depends(get_service),
    rooms: RoomDirectory = Depends(get_rooms),
):
    """Rooms, optionally filtered by type and by status over a date range.

    Without a status filter a room must be available on every day of the
    range. The range defaults to today and ``endDate`` defaults to
    ``startDate``.
    """
    for name, value in (("startDate", startDate), ("endDate", endDate)):
        if value is not None and not dates.is_date_key(value):
            raise HTTPException(status_code=400, detail={"error": f"Invalid {name} query parameter."})
    if type is not None and type not in ROOM_TYPES + ("all",):
        raise HTTPException(status_code=400, detail={"error": "Invalid type query parameter."})
    if status is not None and status not in ROOM_STATUSES + ("all",):
        raise HTTPException(status_code=400, detail={"error": "Invalid status query parameter."})

    try:
        all_rooms = rooms.list_rooms()
        if startDate is None and endDate is None and type is None and status is None and summary is None:
            return _json([room.model_dump(exclude_none=True) for room in all_rooms])

        start = startDate or dates.format_date_key(service.today())
        end = endDate or start
        if start > end:
            raise HTTPException(status_code=400, detail={"error": "The startDate must not be after endDate."})
        schedules = service.get_all()
    except StoreError as exc:
        raise _store_failure(exc, "load rooms")

    matched = filter_rooms(all_rooms, schedules, start, end, room_type=type, status=status)
    payload: Dict[str, Any] = {
        "data": [room.model_dump(exclude_none=True) for room in matched],
        "meta": {"total": len(matched), "startDate": start, "endDate": end},
    }
    if summary in ("1", "true"):
        payload["summary"] = status_counts(matched, schedules, start)
    return _json(payload)


# Activity log


@app.get("/api/logs")
def api_logs(
    request: Request,
    roomNumber: Optional[str] = None,
    action: Optional[str] = None,
    status: Optional[str] = None,
    offset: Optional[str] = None,
    limit: Optional[str] = None,
    summary: Optional[str] = None,
    log: ActivityLogWriter = Depends(get_audit_log),
):
    """Activity log records, newest first.

    Without any query parameter the whole log is returned as a bare list.
    Otherwise the response is ``{data, meta}`` plus ``summary`` on request.
    """
    params = request.query_params
    try:
        if not params:
            return _json([record.model_dump() for record in log.load()])
    except StoreError as exc:
        raise _store_failure(exc, "load activity logs")

    room_number = None
    if roomNumber is not None:
        room_number = parse_room_number(roomNumber)
        if room_number is None:
            raise HTTPException(status_code=400, detail={"error": "Invalid roomNumber query parameter."})
    if action is not None and action not in LOG_ACTIONS:
        raise HTTPException(status_code=400, detail={"error": "Invalid action query parameter."})

    def _int_param(name: str, raw: Optional[str], minimum: int) -> Optional[int]:
        if raw is None:
            return None
        try:
            value = int(raw)
        except ValueError:
            value = minimum - 1
        if value < minimum:
            raise HTTPException(status_code=400, detail={"error": f"Invalid {name} query parameter."})
        return value

    def _time_param(name: str):
        raw = params.get(name)
        if raw is None or not raw.strip():
            return None
        try:
            return parse_iso(raw.strip())
        except ValueError:
            raise HTTPException(status_code=400, detail={"error": f"Invalid {name} query parameter."})

    try:
        result = log.query(
            room_number=room_number,
            action=action,
            status=status,
            created_from=_time_param("from"),
            created_to=_time_param("to"),
            offset=_int_param("offset", offset, 0) or 0,
            limit=_int_param("limit", limit, 1),
            summary=summary in ("1", "true"),
        )
    except ScheduleValidationError as exc:
        raise HTTPException(status_code=400, detail=exc.to_dict())
    except StoreError as exc:
        raise _store_failure(exc, "load activity logs")
    return _json(result)


@app.post("/api/logs", status_code=201)
def api_append_logs(body: LogCreateRequest, log: ActivityLogWriter = Depends(get_audit_log)):
    if not body.logs:
        raise HTTPException(status_code=400, detail={"error": "Request must include a non-empty logs array."})
    try:
        stored = log.append(body.logs)
    except StoreError as exc:
        raise _store_failure(exc, "save activity logs")
    if not stored:
        raise HTTPException(status_code=400, detail={"error": "No valid log entries were provided."})
    return _json([record.model_dump() for record in stored], status_code=201)


if __name__ == "__main__":
    uvicorn.run("roomboard.main:app", host=settings.host, port=settings.port)
