import json

import pytest

from roomboard.errors import StoreCorruptError

from .conftest import ROOMS


def test_missing_rooms_file_is_empty(room_directory):
    assert room_directory.list_rooms() == []


def test_malformed_rooms_are_skipped(fs, room_directory):
    fs.put(
        ROOMS,
        json.dumps(
            [
                {"number": 101, "type": "suite", "floor": 1},
                {"number": -4},
                {"name": "no number"},
                {"number": 102, "status": "closed"},
                {"number": 103},
            ]
        ),
    )
    rooms = room_directory.list_rooms()
    assert [room.number for room in rooms] == [101, 103]
    assert rooms[1].type == "single"
    assert rooms[1].status == "available"


def test_get_room(fs, room_directory):
    fs.put(ROOMS, json.dumps([{"number": 101, "name": "Birch"}]))
    assert room_directory.get(101).name == "Birch"
    assert room_directory.get(999) is None


def test_rooms_file_must_be_an_array(fs, room_directory):
    fs.put(ROOMS, json.dumps({"101": {}}))
    with pytest.raises(StoreCorruptError):
        room_directory.list_rooms()
