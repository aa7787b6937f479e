"""Watch history stores.

``WatchHistoryStore`` keeps the whole collection under the ``watchHistory``
key. ``RemoteHistoryStore`` treats a Remote History Service as the source of
truth: each mutation sends only the delta, then the full collection is
fetched back.
"""

from __future__ import annotations

import logging
from typing import Callable

from .media import (
    HISTORY_LIMIT,
    EpisodeData,
    HistoryEntry,
    MediaRef,
    MediaType,
    history_entry_from_dict,
    history_entry_to_dict,
    now_ms,
)
from .remote_history import RemoteCallError, RemoteHistoryService
from .storage import KeyValueStore
from .store import LocalCollection, ReactiveStore

logger = logging.getLogger(__name__)

WATCH_HISTORY_KEY = "watchHistory"

Clock = Callable[[], int]


def make_entry(item: MediaRef, episode: EpisodeData | None, watched_at: int) -> HistoryEntry:
    episode = episode or EpisodeData()
    return HistoryEntry(
        media=item,
        watched_at=watched_at,
        current_season=episode.season,
        current_episode=episode.episode,
        current_timestamp=episode.timestamp,
    )


def push_entry(history: list[HistoryEntry], entry: HistoryEntry) -> list[HistoryEntry]:
    """Put ``entry`` first, dropping any older entry for the same title."""
    filtered = [existing for existing in history if existing.key != entry.key]
    return [entry, *filtered][:HISTORY_LIMIT]


class WatchHistoryStore(ReactiveStore[list[HistoryEntry]]):
    def __init__(self, storage: KeyValueStore, clock: Clock = now_ms) -> None:
        self._collection = LocalCollection(storage, WATCH_HISTORY_KEY)
        self._clock = clock
        super().__init__(self._load())
        self._unwatch = self._collection.watch(self.reload)

    def add_item(self, item: MediaRef, episode: EpisodeData | None = None) -> str | None:
        entry = make_entry(item, episode, self._clock())
        updated = push_entry(self.value, entry)
        error = self._save(updated)
        if error is not None:
            return error
        logger.info("Added to watch history: %s", item.title or item.id)
        self._commit(updated)
        return None

    def remove_item(self, media_id: int, media_type: MediaType) -> str | None:
        updated = [entry for entry in self.value if entry.key != (media_id, media_type)]
        error = self._save(updated)
        if error is not None:
            return error
        self._commit(updated)
        return None

    def clear(self) -> str | None:
        error = self._collection.delete()
        if error is not None:
            return error
        logger.info("Watch history cleared")
        self._commit([])
        return None

    def reload(self) -> None:
        self._commit(self._load())

    def close(self) -> None:
        self._unwatch()

    def _save(self, history: list[HistoryEntry]) -> str | None:
        return self._collection.save([history_entry_to_dict(entry) for entry in history])

    def _load(self) -> list[HistoryEntry]:
        raw = self._collection.load([])
        entries = [history_entry_from_dict(record) for record in raw]
        return [entry for entry in entries if entry is not None]


class RemoteHistoryStore(ReactiveStore[list[HistoryEntry]]):
    """History held by a Remote History Service.

    Readers keep seeing the previous collection until the call and the
    re-fetch both complete. A failed call leaves the collection unchanged and
    is reported through the returned message; nothing is retried.
    """

    def __init__(self, service: RemoteHistoryService, clock: Clock = now_ms) -> None:
        super().__init__([])
        self._service = service
        self._clock = clock

    async def refresh(self) -> str | None:
        try:
            entries = await self._service.get_watch_history()
        except RemoteCallError as exc:
            logger.error("Failed to load watch history: %s", exc)
            return str(exc)
        self._commit(list(entries))
        return None

    async def add_item(self, item: MediaRef, episode: EpisodeData | None = None) -> str | None:
        entry = make_entry(item, episode, self._clock())
        try:
            await self._service.add_watch_history_item(entry)
        except RemoteCallError as exc:
            logger.error("Failed to add watch history item %s: %s", item.id, exc)
            return str(exc)
        return await self.refresh()

    async def remove_item(self, media_id: int, media_type: MediaType) -> str | None:
        try:
            await self._service.remove_watch_history_item(media_id, media_type)
        except RemoteCallError as exc:
            logger.error("Failed to remove watch history item %s: %s", media_id, exc)
            return str(exc)
        return await self.refresh()

    async def clear(self) -> str | None:
        try:
            await self._service.clear_watch_history()
        except RemoteCallError as exc:
            logger.error("Failed to clear watch history: %s", exc)
            return str(exc)
        return await self.refresh()

    async def reload(self) -> None:
        await self.refresh()

    async def aclose(self) -> None:
        await self._service.aclose()
