from __future__ import annotations

import json

from reelshell.media import HISTORY_LIMIT, EpisodeData, MediaRef, MediaType
from reelshell.storage import MemoryBackend, MemoryKeyValueStore
from reelshell.watch_history import WATCH_HISTORY_KEY, WatchHistoryStore


def _media(media_id: int, media_type: MediaType = MediaType.MOVIE) -> MediaRef:
    return MediaRef(media_id, media_type, title=f"Title {media_id}")


class _Clock:
    def __init__(self) -> None:
        self.now = 1_000

    def __call__(self) -> int:
        self.now += 1
        return self.now


def test_add_same_item_twice_keeps_one_entry_at_front() -> None:
    clock = _Clock()
    store = WatchHistoryStore(MemoryKeyValueStore(), clock=clock)
    store.add_item(_media(1))
    store.add_item(_media(2))
    store.add_item(_media(1))
    assert [entry.media.id for entry in store.value] == [1, 2]
    assert store.value[0].watched_at == clock.now


def test_history_is_capped_and_evicts_oldest() -> None:
    store = WatchHistoryStore(MemoryKeyValueStore(), clock=_Clock())
    for media_id in range(HISTORY_LIMIT + 5):
        store.add_item(_media(media_id))
    ids = [entry.media.id for entry in store.value]
    assert len(ids) == HISTORY_LIMIT
    assert ids[0] == HISTORY_LIMIT + 4
    assert ids[-1] == 5


def test_add_records_episode_fields() -> None:
    storage = MemoryKeyValueStore()
    store = WatchHistoryStore(storage, clock=_Clock())
    store.add_item(_media(3, MediaType.TV), EpisodeData(season=2, episode=4, timestamp=61.5))
    entry = store.value[0]
    assert (entry.current_season, entry.current_episode, entry.current_timestamp) == (2, 4, 61.5)
    saved = json.loads(storage.get_item(WATCH_HISTORY_KEY) or "[]")
    assert saved[0]["currentEpisode"] == 4


def test_remove_item_matches_id_and_type() -> None:
    store = WatchHistoryStore(MemoryKeyValueStore(), clock=_Clock())
    store.add_item(_media(4, MediaType.MOVIE))
    store.add_item(_media(4, MediaType.TV))
    store.remove_item(4, MediaType.TV)
    assert [entry.media.media_type for entry in store.value] == [MediaType.MOVIE]


def test_clear_deletes_persisted_key() -> None:
    storage = MemoryKeyValueStore()
    store = WatchHistoryStore(storage, clock=_Clock())
    store.add_item(_media(1))
    store.clear()
    assert store.value == []
    assert storage.get_item(WATCH_HISTORY_KEY) is None


def test_other_window_sees_clear() -> None:
    backend = MemoryBackend()
    first = WatchHistoryStore(backend.window(), clock=_Clock())
    second = WatchHistoryStore(backend.window(), clock=_Clock())
    first.add_item(_media(1))
    assert len(second.value) == 1
    first.clear()
    assert second.value == []
