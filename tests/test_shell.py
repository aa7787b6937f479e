from __future__ import annotations

import asyncio
from typing import Callable

from reelshell.config import AppConfig
from reelshell.events import (
    OpenMediaDetail,
    OpenVideoPlayer,
    UpdateTitleBarColor,
    ViewAll,
)
from reelshell.media import HistoryEntry, MediaRef, MediaType, ProgressUpdate
from reelshell.navigator import BulkList, Detail, Playback
from reelshell.remote_history import JsonFileHistoryService
from reelshell.shell import Shell, build_shell, history_service_for
from reelshell.storage import MemoryKeyValueStore
from reelshell.watch_history import RemoteHistoryStore, WatchHistoryStore


def _media(media_id: int, media_type: MediaType = MediaType.MOVIE) -> MediaRef:
    return MediaRef(media_id, media_type, title=f"Title {media_id}")


class _Timers:
    def __init__(self) -> None:
        self.pending: list[Callable[[], None]] = []

    def __call__(self, delay: float, callback: Callable[[], None]) -> None:
        self.pending.append(callback)

    def fire_all(self) -> None:
        pending, self.pending = self.pending, []
        for callback in pending:
            callback()


def test_bus_events_drive_navigation() -> None:
    shell = Shell(MemoryKeyValueStore(), scheduler=_Timers())
    shell.bus.publish(OpenMediaDetail(_media(1)))
    shell.bus.publish(UpdateTitleBarColor("#334455"))
    assert shell.navigator.state == Detail(_media(1))
    assert shell.navigator.accent_color == "#334455"

    shell.bus.publish(ViewAll(title="Top Rated", category="top_rated", custom_items=(_media(2),)))
    state = shell.navigator.state
    assert isinstance(state, BulkList)
    assert state.query.custom_items == (_media(2),)


def test_playback_mount_records_history_with_resume_point() -> None:
    timers = _Timers()
    shell = Shell(MemoryKeyValueStore(), scheduler=timers)
    shell.progress.update_progress(
        9, MediaType.TV, ProgressUpdate(position=75, season=2, episode=1)
    )
    shell.bus.publish(OpenVideoPlayer(_media(9, MediaType.TV), season=2, episode=1))
    assert isinstance(shell.navigator.state, Playback)
    entry = shell.history.value[0]
    assert entry.media == _media(9, MediaType.TV)
    assert (entry.current_season, entry.current_episode) == (2, 1)
    assert entry.current_timestamp == 75

    shell.bus.publish(OpenVideoPlayer(_media(10)))
    assert len(shell.history.value) == 1
    timers.fire_all()
    assert [item.media.id for item in shell.history.value] == [10, 9]


def test_report_position_updates_active_title() -> None:
    shell = Shell(MemoryKeyValueStore(), scheduler=_Timers())
    assert shell.report_position(10) is None
    shell.bus.publish(OpenVideoPlayer(_media(3, MediaType.TV), season=1, episode=4))
    shell.report_position(33, duration=1200)
    episode = shell.progress.get_episode_progress(3, MediaType.TV, 1, 4)
    assert episode is not None and episode.position == 33
    assert episode.duration == 1200


def test_close_stops_event_handling() -> None:
    shell = Shell(MemoryKeyValueStore(), scheduler=_Timers())
    shell.close()
    shell.bus.publish(OpenMediaDetail(_media(1)))
    assert shell.navigator.detail is None


def test_remote_history_shell_records_through_service(tmp_path) -> None:
    service = JsonFileHistoryService(tmp_path / "watch_history.json")

    async def scenario() -> list[HistoryEntry]:
        pending: list[asyncio.Task] = []
        shell = Shell(
            MemoryKeyValueStore(),
            service,
            scheduler=_Timers(),
            spawn=lambda coro: pending.append(asyncio.ensure_future(coro)),
        )
        assert isinstance(shell.history, RemoteHistoryStore)
        shell.bus.publish(OpenVideoPlayer(_media(4)))
        await asyncio.gather(*pending)
        await shell.aclose()
        return list(shell.history.value)

    entries = asyncio.run(scenario())
    assert [entry.media.id for entry in entries] == [4]


def test_history_backend_selection(tmp_path) -> None:
    assert history_service_for(AppConfig()) is None
    shell = build_shell(
        AppConfig(storage_path=str(tmp_path / "storage.json")),
        scheduler=_Timers(),
    )
    assert isinstance(shell.history, WatchHistoryStore)
    try:
        history_service_for(AppConfig(history_backend="http"))
    except ValueError as exc:
        assert "history_url" in str(exc)
    else:
        raise AssertionError("expected ValueError")


def test_aclose_releases_remote_service() -> None:
    class _Service:
        closed = False

        async def get_watch_history(self) -> list[HistoryEntry]:
            return []

        async def aclose(self) -> None:
            self.closed = True

    service = _Service()
    shell = Shell(MemoryKeyValueStore(), service, scheduler=_Timers())
    asyncio.run(shell.aclose())
    assert service.closed
    shell.bus.publish(OpenMediaDetail(_media(1)))
    assert shell.navigator.detail is None
