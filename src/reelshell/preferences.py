from __future__ import annotations

import json
import logging

from .storage import KeyValueStore, StorageError
from .store import LocalCollection, ReactiveStore

logger = logging.getLogger(__name__)

TRACKER_PREFERENCE_KEY = "trackerPreference"


class TrackerPreferenceStore(ReactiveStore[list[str]]):
    """Preferred tracker names.

    Earlier builds stored a single bare string under the same key. Such a
    value is deleted on load rather than converted.
    """

    def __init__(self, storage: KeyValueStore) -> None:
        self._storage = storage
        self._collection = LocalCollection(storage, TRACKER_PREFERENCE_KEY)
        super().__init__(self._load())
        self._unwatch = self._collection.watch(self.reload)

    def set_trackers(self, trackers: list[str]) -> str | None:
        updated = [name for name in trackers if isinstance(name, str) and name]
        error = self._collection.save(updated)
        if error is not None:
            return error
        self._commit(updated)
        return None

    def reload(self) -> None:
        self._commit(self._load())

    def close(self) -> None:
        self._unwatch()

    def _load(self) -> list[str]:
        try:
            raw = self._storage.get_item(TRACKER_PREFERENCE_KEY)
        except StorageError as exc:
            logger.warning("Failed to read %s: %s", TRACKER_PREFERENCE_KEY, exc)
            return []
        if raw is None:
            return []
        try:
            data = json.loads(raw)
        except json.JSONDecodeError:
            data = None
        if not isinstance(data, list):
            logger.info("Dropping legacy %s value", TRACKER_PREFERENCE_KEY)
            self._collection.delete()
            return []
        return [name for name in data if isinstance(name, str) and name]
