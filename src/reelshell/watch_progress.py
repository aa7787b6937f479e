from __future__ import annotations

import logging
from typing import Callable

from .media import (
    MediaType,
    ProgressEntry,
    ProgressUpdate,
    episode_progress_key,
    now_ms,
    progress_from_dict,
    progress_key,
    progress_to_dict,
)
from .storage import KeyValueStore
from .store import LocalCollection, ReactiveStore

logger = logging.getLogger(__name__)

WATCH_PROGRESS_KEY = "watchProgress"


class WatchProgressStore(ReactiveStore[dict[str, ProgressEntry]]):
    """Playback positions keyed by title and, for episodes, by season/episode.

    Every update writes the show-level entry; when the update names a season
    and episode the episode-level entry is written too, in the same write.
    """

    def __init__(self, storage: KeyValueStore, clock: Callable[[], int] = now_ms) -> None:
        self._collection = LocalCollection(storage, WATCH_PROGRESS_KEY)
        self._clock = clock
        super().__init__(self._load())
        self._unwatch = self._collection.watch(self.reload)

    def update_progress(
        self, media_id: int, media_type: MediaType, data: ProgressUpdate
    ) -> str | None:
        entry = ProgressEntry(
            position=data.position,
            duration=data.duration,
            updated_at=self._clock(),
            season=data.season,
            episode=data.episode,
        )
        updated = dict(self.value)
        updated[progress_key(media_id, media_type)] = entry
        if data.season is not None and data.episode is not None:
            key = episode_progress_key(media_id, media_type, data.season, data.episode)
            updated[key] = entry
        error = self._save(updated)
        if error is not None:
            return error
        logger.debug("Updated watch progress: %s", progress_key(media_id, media_type))
        self._commit(updated)
        return None

    def get_progress(self, media_id: int, media_type: MediaType) -> ProgressEntry | None:
        return self.value.get(progress_key(media_id, media_type))

    def get_episode_progress(
        self, media_id: int, media_type: MediaType, season: int, episode: int
    ) -> ProgressEntry | None:
        return self.value.get(episode_progress_key(media_id, media_type, season, episode))

    def remove_progress(self, media_id: int, media_type: MediaType) -> str | None:
        show_key = progress_key(media_id, media_type)
        episode_prefix = f"{show_key}-s"
        updated = {
            key: entry
            for key, entry in self.value.items()
            if key != show_key and not key.startswith(episode_prefix)
        }
        error = self._save(updated)
        if error is not None:
            return error
        logger.info("Removed watch progress: %s", show_key)
        self._commit(updated)
        return None

    def clear(self) -> str | None:
        error = self._collection.delete()
        if error is not None:
            return error
        self._commit({})
        return None

    def reload(self) -> None:
        self._commit(self._load())

    def close(self) -> None:
        self._unwatch()

    def _save(self, progress: dict[str, ProgressEntry]) -> str | None:
        return self._collection.save(
            {key: progress_to_dict(entry) for key, entry in progress.items()}
        )

    def _load(self) -> dict[str, ProgressEntry]:
        raw = self._collection.load({})
        progress: dict[str, ProgressEntry] = {}
        for key, record in raw.items():
            entry = progress_from_dict(record)
            if entry is not None:
                progress[str(key)] = entry
        return progress
