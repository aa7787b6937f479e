"""Lifecycle of the single active playback instance.

Player engines are keyed by mount identity and do not take a live parameter
swap, so every open while a session exists unmounts first and mounts the new
instance after a short grace delay. Each open takes a fresh session token;
a delayed mount whose token is no longer current is dropped.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from typing import Callable

from .events import DetailFlags, EventBus, VideoControlsVisibility
from .media import PlaybackParams
from .navigator import PanelNavigator
from .store import ReactiveStore

logger = logging.getLogger(__name__)

Scheduler = Callable[[float, Callable[[], None]], object]


def asyncio_scheduler(delay: float, callback: Callable[[], None]) -> object:
    return asyncio.get_running_loop().call_later(delay, callback)


@dataclass(frozen=True)
class PlaybackInstance:
    params: PlaybackParams
    token: int


class PlaybackSessionController(ReactiveStore[PlaybackInstance | None]):
    def __init__(
        self,
        navigator: PanelNavigator,
        bus: EventBus,
        scheduler: Scheduler = asyncio_scheduler,
        remount_delay: float = 0.05,
    ) -> None:
        super().__init__(None)
        self._navigator = navigator
        self._bus = bus
        self._scheduler = scheduler
        self.remount_delay = remount_delay
        self._token = 0
        self._requested: PlaybackParams | None = None
        self._remount_pending = False
        self.controls_visible = True

    @property
    def active(self) -> PlaybackInstance | None:
        return self.value

    @property
    def session_open(self) -> bool:
        return self._requested is not None

    def open(self, params: PlaybackParams) -> None:
        self._token += 1
        token = self._token
        self._requested = params
        self.set_controls_visible(True)
        if self.value is None and not self._remount_pending:
            self._mount(params, token)
            return
        self._unmount()
        self._remount_pending = True
        logger.debug("Remounting playback for %s (token %d)", params.media.key, token)
        self._scheduler(self.remount_delay, lambda: self._finish_remount(params, token))

    def close(self) -> None:
        self._token += 1
        self._requested = None
        self._remount_pending = False
        self._unmount()
        self._navigator.leave_playback()

    def back(self) -> None:
        """Leave playback for the Detail view of the same title."""
        params = self._requested
        self.close()
        if params is None:
            return
        detail = self._navigator.detail
        if detail is None or detail.media != params.media:
            self._navigator.open_media(params.media, DetailFlags(from_playback=True))

    def set_controls_visible(self, visible: bool) -> None:
        if visible == self.controls_visible:
            return
        self.controls_visible = visible
        self._bus.publish(VideoControlsVisibility(visible))

    def _finish_remount(self, params: PlaybackParams, token: int) -> None:
        if token != self._token:
            logger.debug("Dropping stale playback mount (token %d)", token)
            return
        self._remount_pending = False
        self._mount(params, token)

    def _mount(self, params: PlaybackParams, token: int) -> None:
        self._navigator.enter_playback(params)
        self._commit(PlaybackInstance(params, token))

    def _unmount(self) -> None:
        if self.value is not None:
            self._commit(None)
