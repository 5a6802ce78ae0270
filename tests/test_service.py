import pytest

from roomboard.errors import AuditLogError, ScheduleConflictError, ScheduleValidationError
from roomboard.models import Room
from roomboard.service import ScheduleService

from .conftest import TODAY, FailingLog, entry


def test_edits_are_persisted_and_logged(service, audit_log):
    service.add_range(101, "2025-06-01", "2025-06-03", "occupied", "Jane Doe")
    entries = service.set_day_status(101, "2025-06-05", "cleaning")

    assert [(e.status, e.startDate) for e in entries] == [("occupied", "2025-06-01"), ("cleaning", "2025-06-05")]
    assert service.get_entries(101) == entries
    logs = audit_log.load()
    assert [(log.action, log.status) for log in logs] == [
        ("schedule_added", "cleaning"),
        ("schedule_added", "occupied"),
    ]
    assert {log.createdAt for log in logs} == {"2025-06-02T09:30:00.000Z"}


def test_remove_entry_logs_removal(service, audit_log):
    added = service.add_range(101, "2025-06-01", "2025-06-03", "maintenance")
    assert service.remove_entry(101, added[0].id) == []
    assert service.get_all() == {}
    assert audit_log.load()[0].action == "schedule_removed"


def test_removing_unknown_entry_writes_nothing(service, fs):
    service.add_range(101, "2025-06-01", "2025-06-03", "maintenance")
    before = dict(fs.files)
    service.remove_entry(101, "missing")
    assert fs.files == before


def test_replacement_with_overlapping_entries_is_rejected(service):
    with pytest.raises(ScheduleConflictError) as excinfo:
        service.replace_entries(
            101,
            [entry("a", "maintenance", "2025-06-01", "2025-06-03"), entry("b", "cleaning", "2025-06-03")],
        )
    assert excinfo.value.conflict.conflictingId == "a"
    assert service.get_all() == {}


def test_replacement_without_changes_logs_nothing(service, audit_log):
    entries = service.add_range(101, "2025-06-01", "2025-06-03", "maintenance")
    service.replace_entries(101, entries)
    assert len(audit_log.load()) == 1


def test_audit_failure_keeps_the_schedule_change(registry):
    service = ScheduleService(registry, FailingLog(), today=lambda: TODAY)
    with pytest.raises(AuditLogError) as excinfo:
        service.add_range(101, "2025-06-01", "2025-06-03", "maintenance")
    assert excinfo.value.room_number == 101
    assert [e.startDate for e in excinfo.value.entries] == ["2025-06-01"]
    assert [e.startDate for e in registry.room_entries(101)] == ["2025-06-01"]


def test_timeline_uses_todays_window(service):
    service.set_day_status(101, TODAY, "maintenance")
    result = service.timeline([Room(number=101), Room(number=102)], 3, -1)
    assert result == {
        101: ["available", "maintenance", "available"],
        102: ["available", "available", "available"],
    }


def test_replacement_with_duplicate_ids_is_rejected(service):
    with pytest.raises(ScheduleValidationError):
        service.replace_entries(
            101,
            [entry("a", "maintenance", "2025-06-01"), entry("a", "cleaning", "2025-06-05")],
        )
    assert service.get_all() == {}
