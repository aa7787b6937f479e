"""Composition root: constructs the components and wires the data flow."""

from __future__ import annotations

import asyncio
import logging
from pathlib import Path
from typing import Any, Callable, Coroutine

from .config import AppConfig
from .events import (
    EventBus,
    EventKind,
    OpenMediaDetail,
    OpenVideoPlayer,
    UpdateTitleBarColor,
    ViewAll,
)
from .media import EpisodeData, PlaybackParams, ProgressUpdate
from .my_list import MyListStore
from .navigator import BulkListQuery, PanelNavigator
from .paths import history_path, storage_path
from .playback import PlaybackInstance, PlaybackSessionController, Scheduler, asyncio_scheduler
from .preferences import TrackerPreferenceStore
from .remote_history import HttpHistoryService, JsonFileHistoryService, RemoteHistoryService
from .storage import FileKeyValueStore, KeyValueStore
from .watch_history import RemoteHistoryStore, WatchHistoryStore
from .watch_progress import WatchProgressStore

logger = logging.getLogger(__name__)

Spawn = Callable[[Coroutine[Any, Any, Any]], object]


class Shell:
    def __init__(
        self,
        storage: KeyValueStore,
        history_service: RemoteHistoryService | None = None,
        *,
        bus: EventBus | None = None,
        scheduler: Scheduler = asyncio_scheduler,
        remount_delay: float = 0.05,
        scroll_offset: Callable[[], float] | None = None,
        spawn: Spawn | None = None,
    ) -> None:
        self.storage = storage
        self.bus = bus or EventBus()
        self.navigator = PanelNavigator(scroll_offset)
        self.session = PlaybackSessionController(
            self.navigator, self.bus, scheduler=scheduler, remount_delay=remount_delay
        )
        self.my_list = MyListStore(storage)
        self.progress = WatchProgressStore(storage)
        self.trackers = TrackerPreferenceStore(storage)
        self.history: WatchHistoryStore | RemoteHistoryStore
        if history_service is None:
            self.history = WatchHistoryStore(storage)
        else:
            self.history = RemoteHistoryStore(history_service)
        self._spawn = spawn or _spawn_task
        self._disposers = [
            self.bus.subscribe(EventKind.OPEN_MEDIA_DETAIL, self._on_open_media_detail),
            self.bus.subscribe(EventKind.UPDATE_TITLE_BAR_COLOR, self._on_title_bar_color),
            self.bus.subscribe(EventKind.VIEW_ALL, self._on_view_all),
            self.bus.subscribe(EventKind.OPEN_VIDEO_PLAYER, self._on_open_video_player),
            self.session.subscribe(self._on_session_change),
        ]

    @property
    def remote_history(self) -> bool:
        return isinstance(self.history, RemoteHistoryStore)

    def start(self) -> None:
        if isinstance(self.history, RemoteHistoryStore):
            self._spawn(self.history.refresh())

    def record_history(self, params: PlaybackParams) -> None:
        episode = EpisodeData(
            season=params.season,
            episode=params.episode,
            timestamp=self._resume_position(params),
        )
        if isinstance(self.history, RemoteHistoryStore):
            self._spawn(self.history.add_item(params.media, episode))
        else:
            self.history.add_item(params.media, episode)

    def report_position(self, position: float, duration: float | None = None) -> str | None:
        """Record the active instance's position, as reported by the player engine."""
        instance = self.session.active
        if instance is None:
            return None
        params = instance.params
        return self.progress.update_progress(
            params.media.id,
            params.media.media_type,
            ProgressUpdate(
                position=position,
                duration=duration,
                season=params.season,
                episode=params.episode,
            ),
        )

    def close(self) -> None:
        for dispose in self._disposers:
            dispose()
        self._disposers = []
        for store in (self.my_list, self.progress, self.trackers):
            store.close()
        if isinstance(self.history, WatchHistoryStore):
            self.history.close()

    async def aclose(self) -> None:
        """Close the stores, then release the remote history connection."""
        self.close()
        if isinstance(self.history, RemoteHistoryStore):
            await self.history.aclose()

    def _resume_position(self, params: PlaybackParams) -> float | None:
        media = params.media
        if params.season is not None and params.episode is not None:
            entry = self.progress.get_episode_progress(
                media.id, media.media_type, params.season, params.episode
            )
        else:
            entry = self.progress.get_progress(media.id, media.media_type)
        return entry.position if entry is not None else None

    def _on_open_media_detail(self, event: OpenMediaDetail) -> None:
        self.navigator.open_media(event.media, event.flags)

    def _on_title_bar_color(self, event: UpdateTitleBarColor) -> None:
        self.navigator.set_accent_color(event.color)

    def _on_view_all(self, event: ViewAll) -> None:
        self.navigator.open_bulk_list(
            BulkListQuery(
                title=event.title,
                type=event.type,
                category=event.category,
                genre=event.genre,
                custom_items=event.custom_items,
            )
        )

    def _on_open_video_player(self, event: OpenVideoPlayer) -> None:
        self.session.open(
            PlaybackParams(
                media=event.media,
                season=event.season,
                episode=event.episode,
                auto_play=event.auto_play,
                resume_progress=event.resume_progress,
            )
        )

    def _on_session_change(self, instance: PlaybackInstance | None) -> None:
        if instance is not None:
            self.record_history(instance.params)


def build_shell(
    config: AppConfig,
    *,
    storage: KeyValueStore | None = None,
    scheduler: Scheduler = asyncio_scheduler,
    scroll_offset: Callable[[], float] | None = None,
    spawn: Spawn | None = None,
) -> Shell:
    if storage is None:
        path = Path(config.storage_path).expanduser() if config.storage_path else storage_path()
        storage = FileKeyValueStore(path)
    return Shell(
        storage,
        history_service_for(config),
        scheduler=scheduler,
        remount_delay=config.remount_delay,
        scroll_offset=scroll_offset,
        spawn=spawn,
    )


def history_service_for(config: AppConfig) -> RemoteHistoryService | None:
    if config.history_backend == "file":
        return JsonFileHistoryService(history_path())
    if config.history_backend == "http":
        if not config.history_url:
            raise ValueError("history_url is required for the http history backend")
        return HttpHistoryService(config.history_url)
    return None


_background: set[asyncio.Task[Any]] = set()


def _spawn_task(coro: Coroutine[Any, Any, Any]) -> asyncio.Task[Any]:
    task = asyncio.get_running_loop().create_task(coro)
    _background.add(task)
    task.add_done_callback(_background.discard)
    return task
