from __future__ import annotations

import json
import os
from pathlib import Path

import pytest

from reelshell.media import MediaRef, MediaType, ProgressUpdate
from reelshell.my_list import MyListStore
from reelshell.storage import FileKeyValueStore, MemoryBackend, StorageError
from reelshell.watch_progress import WatchProgressStore


def test_memory_windows_notify_other_windows_only() -> None:
    backend = MemoryBackend()
    first = backend.window()
    second = backend.window()
    first_keys: list[str] = []
    second_keys: list[str] = []
    first.subscribe(first_keys.append)
    second.subscribe(second_keys.append)

    first.set_item("myList", "[]")

    assert second.get_item("myList") == "[]"
    assert first_keys == []
    assert second_keys == ["myList"]


def test_memory_remove_missing_key_is_silent() -> None:
    backend = MemoryBackend()
    first = backend.window()
    second = backend.window()
    keys: list[str] = []
    second.subscribe(keys.append)
    first.remove_item("watchHistory")
    assert keys == []


def test_memory_unsubscribe_stops_notifications() -> None:
    backend = MemoryBackend()
    window = backend.window()
    keys: list[str] = []
    unsubscribe = window.subscribe(keys.append)
    unsubscribe()
    backend.set_external("myList", "[]")
    assert keys == []


def test_file_store_persists_across_instances(tmp_path: Path) -> None:
    path = tmp_path / "storage.json"
    store = FileKeyValueStore(path)
    store.set_item("myList", "[1]")
    store.set_item("watchProgress", "{}")
    store.remove_item("watchProgress")

    reopened = FileKeyValueStore(path)
    assert reopened.get_item("myList") == "[1]"
    assert reopened.get_item("watchProgress") is None


def test_file_store_sync_reports_external_writes(tmp_path: Path) -> None:
    path = tmp_path / "storage.json"
    ours = FileKeyValueStore(path)
    ours.set_item("myList", "[]")
    ours.set_item("watchHistory", "[]")
    keys: list[str] = []
    ours.subscribe(keys.append)

    theirs = FileKeyValueStore(path)
    theirs.set_item("myList", "[1, 2]")
    theirs.set_item("trackerPreference", '["udp://a"]')

    assert ours.sync() == ["myList", "trackerPreference"]
    assert keys == ["myList", "trackerPreference"]
    assert ours.get_item("myList") == "[1, 2]"
    assert ours.sync() == []


def test_file_store_ignores_malformed_file(tmp_path: Path) -> None:
    path = tmp_path / "storage.json"
    path.write_text("not json", encoding="utf-8")
    store = FileKeyValueStore(path)
    assert store.get_item("myList") is None
    store.set_item("myList", "[]")
    assert json.loads(path.read_text(encoding="utf-8")) == {"myList": "[]"}


def test_file_store_write_failure_raises_storage_error(tmp_path: Path) -> None:
    path = tmp_path / "blocked"
    path.mkdir()
    store = FileKeyValueStore(path)
    with pytest.raises(StorageError):
        store.set_item("myList", "[]")
    assert store.get_item("myList") is None


def test_file_store_failed_write_still_announces_absorbed_keys(
    tmp_path: Path, monkeypatch: pytest.MonkeyPatch
) -> None:
    path = tmp_path / "storage.json"
    ours = FileKeyValueStore(path)
    ours.set_item("myList", "[]")
    my_list = MyListStore(ours)
    progress = WatchProgressStore(ours)

    theirs = FileKeyValueStore(path)
    MyListStore(theirs).toggle_item(MediaRef(9, MediaType.MOVIE, title="Nine"))

    def refuse(src: object, dst: object) -> None:
        raise OSError("disk full")

    monkeypatch.setattr(os, "replace", refuse)
    error = progress.update_progress(1, MediaType.MOVIE, ProgressUpdate(position=10))

    assert error is not None
    assert [item.id for item in my_list.value] == [9]
    assert progress.get_progress(1, MediaType.MOVIE) is None
    assert ours.sync() == []


def test_memory_window_close_detaches_from_backend() -> None:
    backend = MemoryBackend()
    first = backend.window()
    second = backend.window()
    keys: list[str] = []
    second.subscribe(keys.append)
    second.close()
    second.close()
    first.set_item("myList", "[]")
    assert keys == []
    assert second.get_item("myList") == "[]"
