"""Read-only access to the rooms file.

Room CRUD lives elsewhere; the scheduler only needs each room's number, type
and default status to build timelines.
"""

from __future__ import annotations

import logging
from typing import List, Optional

from pydantic import ValidationError

from .errors import StoreCorruptError
from .models import Room
from .store import JsonFileStore, PathLike

logger = logging.getLogger(__name__)


class RoomDirectory:
    def __init__(self, store: JsonFileStore, path: PathLike) -> None:
        self.store = store
        self.path = str(path)

    def list_rooms(self) -> List[Room]:
        data = self.store.read(self.path, default=[])
        if not isinstance(data, list):
            raise StoreCorruptError(f"{self.path} must contain a JSON array", path=self.path)
        rooms = []
        for raw in data:
            try:
                rooms.append(Room.model_validate(raw))
            except ValidationError:
                logger.warning("Skipping malformed room record: %r", raw)
        return rooms

    def get(self, number: int) -> Optional[Room]:
        for room in self.list_rooms():
            if room.number == number:
                return room
        return None
