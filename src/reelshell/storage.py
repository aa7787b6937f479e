"""Persistent key-value tier.

Values are strings keyed by string, as in browser localStorage. Change
listeners receive the key that another window (or process) modified; a view
never notifies its own listeners about its own writes.
"""

from __future__ import annotations

import json
import logging
import os
from pathlib import Path
from typing import Callable, Protocol

logger = logging.getLogger(__name__)

ChangeListener = Callable[[str], None]


class StorageError(RuntimeError):
    pass


class KeyValueStore(Protocol):
    def get_item(self, key: str) -> str | None: ...

    def set_item(self, key: str, value: str) -> None: ...

    def remove_item(self, key: str) -> None: ...

    def subscribe(self, listener: ChangeListener) -> Callable[[], None]: ...


class _ListenerSet:
    def __init__(self) -> None:
        self._listeners: list[ChangeListener] = []

    def add(self, listener: ChangeListener) -> Callable[[], None]:
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def emit(self, key: str) -> None:
        for listener in list(self._listeners):
            listener(key)


class MemoryBackend:
    """Process-local storage shared by any number of window views."""

    def __init__(self, initial: dict[str, str] | None = None) -> None:
        self.data: dict[str, str] = dict(initial or {})
        self._views: list[MemoryKeyValueStore] = []

    def window(self) -> MemoryKeyValueStore:
        return MemoryKeyValueStore(self)

    def _broadcast(self, origin: MemoryKeyValueStore | None, key: str) -> None:
        for view in list(self._views):
            if view is not origin:
                view._listeners.emit(key)

    def set_external(self, key: str, value: str | None) -> None:
        """Mutate a key as if another process wrote it."""
        if value is None:
            self.data.pop(key, None)
        else:
            self.data[key] = value
        self._broadcast(None, key)


class MemoryKeyValueStore:
    def __init__(self, backend: MemoryBackend | None = None) -> None:
        self._backend = backend or MemoryBackend()
        self._listeners = _ListenerSet()
        self._backend._views.append(self)

    def get_item(self, key: str) -> str | None:
        return self._backend.data.get(key)

    def set_item(self, key: str, value: str) -> None:
        self._backend.data[key] = value
        self._backend._broadcast(self, key)

    def remove_item(self, key: str) -> None:
        if self._backend.data.pop(key, None) is not None:
            self._backend._broadcast(self, key)

    def subscribe(self, listener: ChangeListener) -> Callable[[], None]:
        return self._listeners.add(listener)

    def close(self) -> None:
        """Detach this window from the shared backend."""
        if self in self._backend._views:
            self._backend._views.remove(self)


class FileKeyValueStore:
    """Key-value tier backed by one JSON object on disk.

    Writes from other processes are picked up by ``sync()``, which compares
    the file's modification stamp and notifies listeners of the keys whose
    values differ from the last known snapshot.
    """

    def __init__(self, path: Path) -> None:
        self.path = path
        self._listeners = _ListenerSet()
        self._data: dict[str, str] = {}
        self._stamp: tuple[int, int, int] | None = None
        self._data = self._read_disk()

    def get_item(self, key: str) -> str | None:
        return self._data.get(key)

    def set_item(self, key: str, value: str) -> None:
        changed = self._absorb_disk()
        updated = dict(self._data)
        updated[key] = value
        self._commit(updated, changed, key)

    def remove_item(self, key: str) -> None:
        changed = self._absorb_disk()
        if key not in self._data:
            self._emit(changed)
            return
        updated = dict(self._data)
        del updated[key]
        self._commit(updated, changed, key)

    def subscribe(self, listener: ChangeListener) -> Callable[[], None]:
        return self._listeners.add(listener)

    def sync(self) -> list[str]:
        """Reload from disk if another process wrote it; return changed keys."""
        changed = sorted(self._absorb_disk())
        self._emit(set(changed))
        return changed

    def _commit(self, updated: dict[str, str], changed: set[str], key: str) -> None:
        # Keys absorbed from disk are announced even when our own write fails.
        try:
            self._write_disk(updated)
        except StorageError:
            self._emit(changed)
            raise
        self._data = updated
        self._emit(changed - {key})

    def _emit(self, keys: set[str]) -> None:
        for key in sorted(keys):
            self._listeners.emit(key)

    def _absorb_disk(self) -> set[str]:
        if self._current_stamp() == self._stamp:
            return set()
        previous = self._data
        self._data = self._read_disk()
        keys = set(previous) | set(self._data)
        return {key for key in keys if previous.get(key) != self._data.get(key)}

    def _current_stamp(self) -> tuple[int, int, int] | None:
        try:
            stat = self.path.stat()
        except OSError:
            return None
        return (stat.st_mtime_ns, stat.st_size, stat.st_ino)

    def _read_disk(self) -> dict[str, str]:
        self._stamp = self._current_stamp()
        if self._stamp is None:
            return {}
        try:
            raw = self.path.read_text(encoding="utf-8")
            data = json.loads(raw)
        except (OSError, json.JSONDecodeError) as exc:
            logger.warning("Ignoring unreadable storage file %s (%s)", self.path, exc)
            return {}
        if not isinstance(data, dict):
            logger.warning("Ignoring storage file %s: not a JSON object", self.path)
            return {}
        return {str(k): v for k, v in data.items() if isinstance(v, str)}

    def _write_disk(self, data: dict[str, str]) -> None:
        tmp_path = self.path.with_name(self.path.name + ".tmp")
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            tmp_path.write_text(json.dumps(data, ensure_ascii=True), encoding="utf-8")
            os.replace(tmp_path, self.path)
        except OSError as exc:
            raise StorageError(f"Failed to write storage: {self.path} ({exc})") from exc
        self._stamp = self._current_stamp()
