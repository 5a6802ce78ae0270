import json
import random
from datetime import datetime, timedelta, timezone

import pytest

from roomboard import audit
from roomboard.errors import ScheduleValidationError, StoreCorruptError

from .conftest import LOGS, NOW, entry


def test_iso_z_formats_utc_with_milliseconds():
    assert audit.iso_z(NOW) == "2025-06-02T09:30:00.000Z"
    offset = datetime(2025, 6, 2, 11, 30, tzinfo=timezone(timedelta(hours=2)))
    assert audit.iso_z(offset) == "2025-06-02T09:30:00.000Z"
    assert audit.parse_iso("2025-06-02T09:30:00.000Z") == NOW


def test_diff_lists_added_then_removed():
    previous = [entry("a", "maintenance", "2025-06-01"), entry("b", "cleaning", "2025-06-02")]
    nxt = [entry("b", "cleaning", "2025-06-02"), entry("c", "occupied", "2025-06-05", bookedBy="Jane")]
    events = audit.diff_entries(101, previous, nxt, NOW)
    assert [(e.action, e.status, e.startDate) for e in events] == [
        ("schedule_added", "occupied", "2025-06-05"),
        ("schedule_removed", "maintenance", "2025-06-01"),
    ]
    assert {e.createdAt for e in events} == {"2025-06-02T09:30:00.000Z"}
    assert {e.roomNumber for e in events} == {101}


def test_diff_ignores_content_changes_of_the_same_id():
    previous = [entry("a", "maintenance", "2025-06-01")]
    nxt = [entry("a", "cleaning", "2025-06-01", "2025-06-04")]
    assert audit.diff_entries(101, previous, nxt, NOW) == []


def test_reloaded_registry_diffs_as_all_added(registry):
    saved = registry.save(
        {101: [entry("a", "occupied", "2025-06-01", "2025-06-03", bookedBy="Jane"), entry("b", "cleaning", "2025-06-04")]}
    )
    loaded = registry.load()[101]
    events = audit.diff_entries(101, [], loaded, NOW)
    assert [e.action for e in events] == ["schedule_added", "schedule_added"]
    assert [(e.status, e.startDate, e.endDate) for e in events] == [
        (x.status, x.startDate, x.endDate) for x in saved[101]
    ]


@pytest.mark.parametrize("seed", range(10))
def test_diff_counts_match_set_differences(seed):
    rng = random.Random(seed)
    pool = [entry(f"e{i}", "cleaning", f"2025-06-{i + 1:02d}") for i in range(20)]
    previous = rng.sample(pool, rng.randrange(len(pool)))
    nxt = rng.sample(pool, rng.randrange(len(pool)))
    events = audit.diff_entries(5, previous, nxt, NOW)
    prev_ids = {e.id for e in previous}
    next_ids = {e.id for e in nxt}
    assert sum(e.action == "schedule_added" for e in events) == len(next_ids - prev_ids)
    assert sum(e.action == "schedule_removed" for e in events) == len(prev_ids - next_ids)


def test_build_log_entry():
    raw = {"roomNumber": 101, "action": "schedule_added", "status": "cleaning", "startDate": "2025-06-01", "endDate": "2025-06-01"}
    record = audit.build_log_entry(raw, NOW)
    assert record.createdAt == "2025-06-02T09:30:00.000Z"
    assert record.id

    kept = audit.build_log_entry({**raw, "createdAt": "2025-05-01T08:00:00.000Z"}, NOW)
    assert kept.createdAt == "2025-05-01T08:00:00.000Z"
    replaced = audit.build_log_entry({**raw, "createdAt": "yesterday"}, NOW)
    assert replaced.createdAt == "2025-06-02T09:30:00.000Z"

    assert audit.build_log_entry({**raw, "roomNumber": "101"}, NOW) is None
    assert audit.build_log_entry({**raw, "roomNumber": True}, NOW) is None
    assert audit.build_log_entry({**raw, "action": "schedule_moved"}, NOW) is None
    assert audit.build_log_entry("nope", NOW) is None


def _event(room, action, status, created_at):
    return {
        "roomNumber": room,
        "action": action,
        "status": status,
        "startDate": "2025-06-01",
        "endDate": "2025-06-01",
        "createdAt": created_at,
    }


@pytest.fixture
def seeded_log(audit_log):
    audit_log.append(
        [
            _event(101, "schedule_added", "occupied", "2025-06-01T08:00:00.000Z"),
            _event(102, "schedule_added", "cleaning", "2025-06-01T09:00:00.000Z"),
            _event(101, "schedule_removed", "occupied", "2025-06-02T08:00:00.000Z"),
        ]
    )
    return audit_log


def test_append_stores_newest_first(fs, seeded_log):
    assert [r.createdAt for r in seeded_log.load()] == [
        "2025-06-02T08:00:00.000Z",
        "2025-06-01T09:00:00.000Z",
        "2025-06-01T08:00:00.000Z",
    ]
    seeded_log.append([_event(103, "schedule_added", "maintenance", "2025-06-03T08:00:00.000Z"), "junk"])
    records = seeded_log.load()
    assert len(records) == 4
    assert records[0].roomNumber == 103
    assert isinstance(json.loads(fs.text(LOGS)), list)


def test_append_with_nothing_valid_writes_nothing(fs, audit_log):
    assert audit_log.append([{"roomNumber": "x"}]) == []
    assert LOGS not in fs.files


def test_load_rejects_non_array_file(fs, audit_log):
    fs.put(LOGS, "{}")
    with pytest.raises(StoreCorruptError):
        audit_log.load()


def test_load_drops_malformed_records(fs, audit_log):
    good = {**_event(101, "schedule_added", "cleaning", "2025-06-01T08:00:00.000Z"), "id": "1"}
    fs.put(LOGS, json.dumps([good, {**good, "createdAt": "later"}, {**good, "roomNumber": True}]))
    assert [r.id for r in audit_log.load()] == ["1"]


def test_query_filters(seeded_log):
    assert seeded_log.query(room_number=101)["meta"]["total"] == 2
    assert seeded_log.query(action="schedule_removed")["meta"]["total"] == 1
    assert seeded_log.query(status="cleaning")["data"][0]["roomNumber"] == 102
    day_one = seeded_log.query(
        created_from=datetime(2025, 6, 1), created_to=datetime(2025, 6, 1, 23, 59)
    )
    assert day_one["meta"]["total"] == 2


def test_query_pagination_and_summary(seeded_log):
    page = seeded_log.query(offset=1, limit=1, summary=True)
    assert page["meta"] == {"total": 3, "offset": 1, "limit": 1, "hasMore": True}
    assert page["data"][0]["createdAt"] == "2025-06-01T09:00:00.000Z"
    assert page["summary"] == {
        "total": 3,
        "added": 2,
        "removed": 1,
        "byStatus": {"available": 0, "occupied": 2, "maintenance": 0, "cleaning": 1},
    }
    assert "summary" not in seeded_log.query()


def test_query_caps_limit(store):
    log = audit.ActivityLogWriter(store, LOGS, clock=lambda: NOW, default_limit=2, max_limit=5)
    assert log.query()["meta"]["limit"] == 2
    assert log.query(limit=50)["meta"]["limit"] == 5


@pytest.mark.parametrize(
    "kwargs",
    [
        {"action": "schedule_moved"},
        {"status": "closed"},
        {"offset": -1},
        {"limit": 0},
        {"created_from": datetime(2025, 6, 2), "created_to": datetime(2025, 6, 1)},
    ],
)
def test_query_rejects_bad_filters(audit_log, kwargs):
    with pytest.raises(ScheduleValidationError):
        audit_log.query(**kwargs)
