from __future__ import annotations

import logging
from typing import Iterable

from .media import MediaRef, media_from_dict, media_to_dict
from .storage import KeyValueStore
from .store import LocalCollection, ReactiveStore

logger = logging.getLogger(__name__)

MY_LIST_KEY = "myList"


class MyListStore(ReactiveStore[list[MediaRef]]):
    """Titles the user pinned, most recently added first."""

    def __init__(self, storage: KeyValueStore) -> None:
        self._collection = LocalCollection(storage, MY_LIST_KEY)
        super().__init__(self._load())
        self._unwatch = self._collection.watch(self.reload)

    def toggle_item(self, item: MediaRef) -> str | None:
        current = self.value
        index = next(
            (i for i, media in enumerate(current) if media.key == item.key),
            -1,
        )
        if index >= 0:
            updated = current[:index] + current[index + 1 :]
        else:
            updated = [item, *current]
        error = self._collection.save([media_to_dict(media) for media in updated])
        if error is not None:
            return error
        if index >= 0:
            logger.info("Removed from list: %s", item.title or item.id)
        else:
            logger.info("Added to list: %s", item.title or item.id)
        self._commit(updated)
        return None

    @staticmethod
    def is_in_list(item: MediaRef, items: Iterable[MediaRef]) -> bool:
        return any(media.key == item.key for media in items)

    def set_list(self, items: list[MediaRef]) -> str | None:
        updated = list(items)
        error = self._collection.save([media_to_dict(media) for media in updated])
        if error is not None:
            return error
        self._commit(updated)
        return None

    def reload(self) -> None:
        self._commit(self._load())

    def close(self) -> None:
        self._unwatch()

    def _load(self) -> list[MediaRef]:
        raw = self._collection.load([])
        items = [media_from_dict(record) for record in raw]
        return [item for item in items if item is not None]
