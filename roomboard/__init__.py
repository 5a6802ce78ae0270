# Package initializer for the room availability service.

"""
The `roomboard` package contains the scheduling backend of the room dashboard.

Modules:

- ``config``: application settings loaded from environment variables.
- ``models``: Pydantic models for schedule entries, rooms and log records.
- ``dates``: day arithmetic, date keys and timeline windows.
- ``schedule``: per-room status resolution, overlap checks and edits.
- ``registry``: the persisted map of every room's schedule.
- ``timeline``: day-by-day status timelines and room filters.
- ``audit``: schedule diffs and the activity log.
- ``store``: cached, write-serialized JSON file access.
- ``rooms``: read-only access to the rooms file.
- ``service``: validated schedule edits with activity logging.
- ``main``: the FastAPI application definition.

"""
