"""Foreground panel state machine and detail-view history.

Panels stack as independent layers; the visible one is picked by priority:
Playback, BulkList, Detail, Debug, then Dashboard. Detail views keep a
linear history with a cursor, like a browser tab without branches.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Callable, Union

from .events import NO_FLAGS, DetailFlags
from .media import MediaRef, PlaybackParams
from .store import ReactiveStore

logger = logging.getLogger(__name__)


class Panel(Enum):
    DASHBOARD = "dashboard"
    DETAIL = "detail"
    BULK_LIST = "bulk_list"
    PLAYBACK = "playback"
    DEBUG = "debug"


@dataclass(frozen=True)
class BulkListQuery:
    title: str
    type: str | None = None
    category: str | None = None
    genre: int | None = None
    custom_items: tuple[MediaRef, ...] = field(default_factory=tuple)


@dataclass(frozen=True)
class NavigationFrame:
    media: MediaRef


@dataclass(frozen=True)
class Dashboard:
    panel = Panel.DASHBOARD


@dataclass(frozen=True)
class Detail:
    media: MediaRef
    flags: DetailFlags = NO_FLAGS
    panel = Panel.DETAIL


@dataclass(frozen=True)
class BulkList:
    query: BulkListQuery
    panel = Panel.BULK_LIST


@dataclass(frozen=True)
class Playback:
    params: PlaybackParams
    panel = Panel.PLAYBACK


@dataclass(frozen=True)
class Debug:
    panel = Panel.DEBUG


PanelState = Union[Dashboard, Detail, BulkList, Playback, Debug]


class PanelNavigator(ReactiveStore[PanelState]):
    def __init__(self, scroll_offset: Callable[[], float] | None = None) -> None:
        super().__init__(Dashboard())
        self._scroll_offset = scroll_offset or (lambda: 0.0)
        self.frames: list[NavigationFrame] = []
        self.history_index = -1
        self.accent_color: str | None = None
        self._detail: Detail | None = None
        self._bulk_list: BulkListQuery | None = None
        self._playback: PlaybackParams | None = None
        self._debug = False
        self._saved_scroll: float | None = None
        self._pending_scroll: float | None = None

    @property
    def state(self) -> PanelState:
        return self.value

    @property
    def panel(self) -> Panel:
        return self.value.panel

    @property
    def detail(self) -> Detail | None:
        return self._detail

    @property
    def detail_open(self) -> bool:
        return self._detail is not None

    @property
    def bulk_list_open(self) -> bool:
        return self._bulk_list is not None

    @property
    def debug_open(self) -> bool:
        return self._debug

    def open_media(self, media: MediaRef, flags: DetailFlags = NO_FLAGS) -> None:
        if self._detail is None:
            if self._bulk_list is None:
                self._capture_scroll()
            self.frames = [NavigationFrame(media)]
            self.history_index = 0
        elif self._detail.media == media:
            self.frames[self.history_index] = NavigationFrame(media)
        else:
            del self.frames[self.history_index + 1 :]
            self.frames.append(NavigationFrame(media))
            self.history_index = len(self.frames) - 1
        self._bulk_list = None
        self._detail = Detail(media, flags)
        logger.debug("Open detail %s (%d/%d)", media.key, self.history_index + 1, len(self.frames))
        self._publish()

    def go_back(self) -> None:
        if self._bulk_list is not None:
            self.close_bulk_list()
            return
        if self.history_index > 0:
            self.history_index -= 1
            self._show_frame()
        elif self.history_index == 0:
            self._exit_to_dashboard()

    def go_forward(self) -> None:
        if self._bulk_list is not None:
            return
        if self.history_index < len(self.frames) - 1:
            self.history_index += 1
            self._show_frame()

    def close_detail(self) -> None:
        self._exit_to_dashboard()

    def open_bulk_list(self, query: BulkListQuery) -> None:
        if self._detail is None and self._bulk_list is None:
            self._capture_scroll()
        self._bulk_list = query
        self._publish()

    def close_bulk_list(self) -> None:
        if self._bulk_list is None:
            return
        self._bulk_list = None
        if self._detail is None:
            self._schedule_scroll_restore()
        self._publish()

    def open_debug(self) -> None:
        self._debug = True
        self._publish()

    def close_debug(self) -> None:
        if self._debug:
            self._debug = False
            self._publish()

    def toggle_debug(self) -> None:
        if self._debug:
            self.close_debug()
        else:
            self.open_debug()

    def enter_playback(self, params: PlaybackParams) -> None:
        self._playback = params
        self._publish()

    def leave_playback(self) -> None:
        if self._playback is not None:
            self._playback = None
            self._publish()

    def set_accent_color(self, color: str | None) -> None:
        if color != self.accent_color:
            self.accent_color = color
            self._publish()

    def cancel(self) -> bool:
        """Close the topmost of BulkList, Detail, Debug. Return whether one closed."""
        if self._bulk_list is not None:
            self.close_bulk_list()
            return True
        if self._detail is not None:
            self.close_detail()
            return True
        if self._debug:
            self.close_debug()
            return True
        return False

    def consume_scroll_restore(self) -> float | None:
        offset, self._pending_scroll = self._pending_scroll, None
        return offset

    def _show_frame(self) -> None:
        self._detail = Detail(self.frames[self.history_index].media)
        self._publish()

    def _exit_to_dashboard(self) -> None:
        self.frames = []
        self.history_index = -1
        self._detail = None
        self._bulk_list = None
        self.accent_color = None
        self._schedule_scroll_restore()
        self._publish()

    def _capture_scroll(self) -> None:
        self._saved_scroll = self._scroll_offset()

    def _schedule_scroll_restore(self) -> None:
        if self._saved_scroll is not None:
            self._pending_scroll = self._saved_scroll
            self._saved_scroll = None

    def _derive(self) -> PanelState:
        if self._playback is not None:
            return Playback(self._playback)
        if self._bulk_list is not None:
            return BulkList(self._bulk_list)
        if self._detail is not None:
            return self._detail
        if self._debug:
            return Debug()
        return Dashboard()

    def _publish(self) -> None:
        self._commit(self._derive())
