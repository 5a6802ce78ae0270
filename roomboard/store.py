"""JSON file persistence with a modification-signature cache.

Every persisted resource (the schedule map, the activity log, the rooms
list) is one JSON file. ``JsonFileStore`` is the single process-wide object
that reads and writes them:

* Reads are cached per path and reused as long as the file's ``(mtime, size)``
  signature is unchanged.
* Writes to the same path are serialized with a per-path lock; writes to
  different paths do not wait for each other. A failed write releases the
  lock so the next one can proceed.
* A write goes to a uniquely named temporary file next to the target which
  is then renamed over it, so readers never see a half-written file. The
  cache is refreshed before the lock is released.

The filesystem is injected so tests can run against an in-memory one with
deterministic signatures.
"""

from __future__ import annotations

import copy
import json
import logging
import os
import threading
import uuid
from pathlib import Path
from typing import Any, Callable, Dict, NamedTuple, Optional, Tuple, Union

from .errors import StoreCorruptError, StoreError

logger = logging.getLogger(__name__)

PathLike = Union[str, Path]

_MISSING = object()


class FileSignature(NamedTuple):
    mtime_ns: int
    size: int


class LocalFileSystem:
    """The real filesystem, via ``os`` and ``pathlib``."""

    def stat(self, path: str) -> FileSignature:
        st = os.stat(path)
        return FileSignature(st.st_mtime_ns, st.st_size)

    def read_text(self, path: str) -> str:
        with open(path, "r", encoding="utf-8") as fh:
            return fh.read()

    def write_text(self, path: str, text: str) -> None:
        Path(path).parent.mkdir(parents=True, exist_ok=True)
        with open(path, "w", encoding="utf-8") as fh:
            fh.write(text)
            fh.flush()
            os.fsync(fh.fileno())

    def replace(self, src: str, dst: str) -> None:
        os.replace(src, dst)

    def remove(self, path: str) -> None:
        os.remove(path)


def dumps(data: Any) -> str:
    """Serialize the way every file of the dashboard is written."""
    return json.dumps(data, indent=2, ensure_ascii=False) + "\n"


class JsonFileStore:
    """Cached, write-serialized access to JSON files."""

    def __init__(self, fs: Optional[LocalFileSystem] = None) -> None:
        self.fs = fs or LocalFileSystem()
        self._cache: Dict[str, Tuple[FileSignature, Any]] = {}
        self._cache_lock = threading.Lock()
        self._write_locks: Dict[str, threading.Lock] = {}
        self._locks_guard = threading.Lock()

    def _write_lock(self, path: str) -> threading.Lock:
        with self._locks_guard:
            lock = self._write_locks.get(path)
            if lock is None:
                lock = threading.Lock()
                self._write_locks[path] = lock
            return lock

    def read(self, path: PathLike, default: Any = _MISSING) -> Any:
        """Return the parsed content of ``path``.

        A missing file yields ``default`` when one is given. The returned
        value is a copy; mutating it does not affect the cache.

        Raises:
            StoreError: the file is missing (and no default) or unreadable.
            StoreCorruptError: the file is not valid JSON.
        """
        key = str(path)
        try:
            signature = self.fs.stat(key)
        except FileNotFoundError:
            if default is not _MISSING:
                return copy.deepcopy(default)
            raise StoreError(f"{key} does not exist", path=key)
        except OSError as exc:
            raise StoreError(f"cannot stat {key}: {exc}", path=key) from exc

        with self._cache_lock:
            cached = self._cache.get(key)
        if cached is not None and cached[0] == signature:
            return copy.deepcopy(cached[1])

        try:
            raw = self.fs.read_text(key)
        except OSError as exc:
            raise StoreError(f"cannot read {key}: {exc}", path=key) from exc
        try:
            data = json.loads(raw)
        except ValueError as exc:
            raise StoreCorruptError(f"{key} is not valid JSON: {exc}", path=key) from exc

        with self._cache_lock:
            self._cache[key] = (signature, data)
        return copy.deepcopy(data)

    def write(self, path: PathLike, data: Any) -> None:
        """Atomically replace ``path`` with ``data`` serialized as JSON."""
        key = str(path)
        with self._write_lock(key):
            self._write_locked(key, data)

    def update(self, path: PathLike, fn: Callable[[Any], Any], default: Any = _MISSING) -> Any:
        """Read-modify-write ``path`` while holding its write lock.

        ``fn`` receives the current content and returns the new content,
        which is written and returned.
        """
        key = str(path)
        with self._write_lock(key):
            current = self.read(key, default)
            updated = fn(current)
            self._write_locked(key, updated)
            return updated

    def invalidate(self, path: PathLike) -> None:
        with self._cache_lock:
            self._cache.pop(str(path), None)

    def _write_locked(self, key: str, data: Any) -> None:
        serialized = dumps(data)
        temp_path = f"{key}.{os.getpid()}.{uuid.uuid4().hex[:8]}.tmp"
        try:
            self.fs.write_text(temp_path, serialized)
            try:
                self.fs.replace(temp_path, key)
            except OSError:
                try:
                    self.fs.remove(temp_path)
                except OSError:
                    logger.warning("Could not remove temporary file %s", temp_path)
                raise
            signature = self.fs.stat(key)
        except OSError as exc:
            self.invalidate(key)
            raise StoreError(f"cannot write {key}: {exc}", path=key) from exc

        with self._cache_lock:
            self._cache[key] = (signature, copy.deepcopy(data))
        logger.debug("Wrote %s (%d bytes)", key, signature.size)
