from __future__ import annotations

import logging

from reelshell.storage import MemoryBackend, MemoryKeyValueStore
from reelshell.store import LocalCollection, ReactiveStore


def test_subscribe_delivers_current_value_then_commits() -> None:
    store: ReactiveStore[int] = ReactiveStore(1)
    first: list[int] = []
    second: list[int] = []
    unsubscribe = store.subscribe(first.append)
    store.subscribe(second.append)
    store._commit(2)
    unsubscribe()
    unsubscribe()
    store._commit(3)
    assert first == [1, 2]
    assert second == [1, 2, 3]
    assert store.value == 3


def test_local_collection_tolerates_bad_data() -> None:
    storage = MemoryKeyValueStore()
    collection = LocalCollection(storage, "things")
    assert collection.load([]) == []
    storage.set_item("things", "{not json")
    assert collection.load([]) == []
    storage.set_item("things", '{"a": 1}')
    assert collection.load([]) == []
    assert collection.save([1, 2]) is None
    assert collection.load([]) == [1, 2]
    assert collection.delete() is None
    assert storage.get_item("things") is None


def test_watch_reacts_to_other_window_only_for_its_key() -> None:
    backend = MemoryBackend()
    mine = LocalCollection(MemoryKeyValueStore(backend), "things")
    other = MemoryKeyValueStore(backend)
    calls: list[str] = []
    stop = mine.watch(lambda: calls.append("changed"))
    other.set_item("unrelated", "1")
    other.set_item("things", "[]")
    stop()
    other.set_item("things", "[1]")
    assert calls == ["changed"]


def test_failing_listener_does_not_block_later_ones(caplog) -> None:
    store: ReactiveStore[int] = ReactiveStore(0)
    seen: list[int] = []

    def broken(value: int) -> None:
        if value:
            raise RuntimeError("boom")

    store.subscribe(broken)
    store.subscribe(seen.append)
    with caplog.at_level(logging.ERROR):
        store._commit(5)
    assert seen == [0, 5]
    assert store.value == 5
    assert "listener failed" in caplog.text
