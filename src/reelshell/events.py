"""Process-wide typed event bus.

Delivery is synchronous and in subscription order. Nothing is queued or
replayed: a handler registered after a publish never sees that event.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Callable, Literal, overload

from .media import MediaRef

logger = logging.getLogger(__name__)


class EventKind(Enum):
    OPEN_MEDIA_DETAIL = "openMediaDetail"
    UPDATE_TITLE_BAR_COLOR = "updateTitleBarColor"
    VIEW_ALL = "viewAll"
    OPEN_VIDEO_PLAYER = "openVideoPlayer"
    VIDEO_CONTROLS_VISIBILITY = "videoControlsVisibility"


@dataclass(frozen=True)
class DetailFlags:
    """One-shot flags for a single open-detail transition."""

    from_playback: bool = False
    season: int | None = None
    episode: int | None = None


NO_FLAGS = DetailFlags()


@dataclass(frozen=True)
class OpenMediaDetail:
    media: MediaRef
    flags: DetailFlags = NO_FLAGS
    kind = EventKind.OPEN_MEDIA_DETAIL


@dataclass(frozen=True)
class UpdateTitleBarColor:
    color: str | None
    kind = EventKind.UPDATE_TITLE_BAR_COLOR


@dataclass(frozen=True)
class ViewAll:
    title: str
    type: str | None = None
    category: str | None = None
    genre: int | None = None
    custom_items: tuple[MediaRef, ...] = field(default_factory=tuple)
    kind = EventKind.VIEW_ALL


@dataclass(frozen=True)
class OpenVideoPlayer:
    media: MediaRef
    season: int | None = None
    episode: int | None = None
    auto_play: bool = False
    resume_progress: bool = False
    kind = EventKind.OPEN_VIDEO_PLAYER


@dataclass(frozen=True)
class VideoControlsVisibility:
    visible: bool
    kind = EventKind.VIDEO_CONTROLS_VISIBILITY


Event = OpenMediaDetail | UpdateTitleBarColor | ViewAll | OpenVideoPlayer | VideoControlsVisibility
Handler = Callable[[Any], None]

EVENT_TYPES: dict[EventKind, type] = {
    cls.kind: cls
    for cls in (
        OpenMediaDetail,
        UpdateTitleBarColor,
        ViewAll,
        OpenVideoPlayer,
        VideoControlsVisibility,
    )
}


class EventBus:
    def __init__(self) -> None:
        self._handlers: dict[EventKind, list[Handler]] = {kind: [] for kind in EventKind}

    @overload
    def subscribe(
        self,
        kind: Literal[EventKind.OPEN_MEDIA_DETAIL],
        handler: Callable[[OpenMediaDetail], None],
    ) -> Callable[[], None]: ...

    @overload
    def subscribe(
        self,
        kind: Literal[EventKind.UPDATE_TITLE_BAR_COLOR],
        handler: Callable[[UpdateTitleBarColor], None],
    ) -> Callable[[], None]: ...

    @overload
    def subscribe(
        self,
        kind: Literal[EventKind.VIEW_ALL],
        handler: Callable[[ViewAll], None],
    ) -> Callable[[], None]: ...

    @overload
    def subscribe(
        self,
        kind: Literal[EventKind.OPEN_VIDEO_PLAYER],
        handler: Callable[[OpenVideoPlayer], None],
    ) -> Callable[[], None]: ...

    @overload
    def subscribe(
        self,
        kind: Literal[EventKind.VIDEO_CONTROLS_VISIBILITY],
        handler: Callable[[VideoControlsVisibility], None],
    ) -> Callable[[], None]: ...

    def subscribe(self, kind: EventKind, handler: Handler) -> Callable[[], None]:
        handlers = self._handlers[kind]
        handlers.append(handler)

        def unsubscribe() -> None:
            if handler in handlers:
                handlers.remove(handler)

        return unsubscribe

    def publish(self, event: Event) -> None:
        expected = EVENT_TYPES[event.kind]
        if not isinstance(event, expected):
            raise TypeError(
                f"{event.kind.value} carries {expected.__name__}, got {type(event).__name__}"
            )
        for handler in list(self._handlers[event.kind]):
            try:
                handler(event)
            except Exception:
                logger.exception("Handler for %s failed", event.kind.value)
