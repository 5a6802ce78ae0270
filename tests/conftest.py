from __future__ import annotations

from datetime import date, datetime, timezone

import pytest

from roomboard.audit import ActivityLogWriter
from roomboard.errors import StoreError
from roomboard.models import StatusEntry
from roomboard.registry import ScheduleRegistry
from roomboard.rooms import RoomDirectory
from roomboard.service import ScheduleService
from roomboard.store import FileSignature, JsonFileStore

TODAY = date(2025, 6, 2)
NOW = datetime(2025, 6, 2, 9, 30, tzinfo=timezone.utc)

SCHEDULES = "/data/schedules.json"
LOGS = "/data/activityLogs.json"
ROOMS = "/data/huts.json"


class InMemoryFileSystem:
    """Filesystem double with a logical clock for modification times."""

    def __init__(self):
        self.files = {}
        self.reads = 0
        self.fail_replace = False
        self._tick = 0

    def _next_mtime(self):
        self._tick += 1
        return self._tick

    def stat(self, path):
        if path not in self.files:
            raise FileNotFoundError(path)
        text, mtime = self.files[path]
        return FileSignature(mtime, len(text.encode("utf-8")))

    def read_text(self, path):
        self.reads += 1
        if path not in self.files:
            raise FileNotFoundError(path)
        return self.files[path][0]

    def write_text(self, path, text):
        self.files[path] = (text, self._next_mtime())

    def replace(self, src, dst):
        if self.fail_replace:
            raise OSError("simulated rename failure")
        text, _ = self.files.pop(src)
        self.files[dst] = (text, self._next_mtime())

    def remove(self, path):
        if path not in self.files:
            raise FileNotFoundError(path)
        del self.files[path]

    def text(self, path):
        return self.files[path][0]

    def put(self, path, text):
        self.files[path] = (text, self._next_mtime())


class FailingLog:
    def append(self, events):
        raise StoreError("disk full", path=LOGS)


def entry(entry_id, status, start, end=None, **extra):
    return StatusEntry(id=entry_id, status=status, startDate=start, endDate=end or start, **extra)


@pytest.fixture
def fs():
    return InMemoryFileSystem()


@pytest.fixture
def store(fs):
    return JsonFileStore(fs)


@pytest.fixture
def registry(store):
    return ScheduleRegistry(store, SCHEDULES)


@pytest.fixture
def audit_log(store):
    return ActivityLogWriter(store, LOGS, clock=lambda: NOW)


@pytest.fixture
def room_directory(store):
    return RoomDirectory(store, ROOMS)


@pytest.fixture
def service(registry, audit_log):
    return ScheduleService(registry, audit_log, clock=lambda: NOW, today=lambda: TODAY)
