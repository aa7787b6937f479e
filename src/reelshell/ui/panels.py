from __future__ import annotations

from rich.text import Text
from textual.app import ComposeResult
from textual.containers import Vertical, VerticalScroll
from textual.widgets import Label, ListItem, ListView, Static

from ..media import HistoryEntry, MediaRef, ProgressEntry
from ..navigator import BulkListQuery, NavigationFrame, PanelState
from ..timefmt import format_clock


class MediaListItem(ListItem):
    def __init__(self, media: MediaRef, subtitle: str | None = None) -> None:
        super().__init__(Label(format_media_line(media, subtitle)))
        self.media = media


def format_media_line(media: MediaRef, subtitle: str | None = None) -> Text:
    text = Text()
    text.append(media.title or f"#{media.id}", style="bold")
    year = (media.release_date or "")[:4]
    if year:
        text.append(f" ({year})", style="dim")
    text.append(f"  {media.media_type.value}", style="italic")
    if media.vote_average is not None:
        text.append(f"  {media.vote_average:.1f}", style=rating_style(media.vote_average))
    if subtitle:
        text.append(f"  {subtitle}", style="dim")
    return text


def rating_style(rating: float) -> str:
    if rating >= 9:
        return "#5fedd8"
    if rating >= 8:
        return "#6bdb8f"
    if rating >= 7:
        return "#f5d95a"
    if rating >= 6:
        return "#ffa368"
    if rating >= 5:
        return "#ff6b6b"
    return "#d65db1"


def history_subtitle(entry: HistoryEntry) -> str | None:
    parts: list[str] = []
    if entry.current_season is not None and entry.current_episode is not None:
        parts.append(f"S{entry.current_season}E{entry.current_episode}")
    if entry.current_timestamp:
        parts.append(format_clock(entry.current_timestamp))
    return " ".join(parts) or None


class DashboardPanel(VerticalScroll):
    def compose(self) -> ComposeResult:
        yield Label("Continue Watching", classes="section")
        yield ListView(id="history_list", classes="media-list")
        yield Label("My List", classes="section")
        yield ListView(id="my_list", classes="media-list")

    def show_history(self, entries: list[HistoryEntry]) -> None:
        view = self.query_one("#history_list", ListView)
        view.clear()
        for entry in entries:
            view.append(MediaListItem(entry.media, history_subtitle(entry)))

    def show_my_list(self, items: list[MediaRef]) -> None:
        view = self.query_one("#my_list", ListView)
        view.clear()
        for media in items:
            view.append(MediaListItem(media))


class DetailPanel(Vertical):
    def compose(self) -> ComposeResult:
        yield Static("", id="detail_text")

    def show(
        self,
        media: MediaRef,
        *,
        in_list: bool,
        progress: ProgressEntry | None,
        position: tuple[int, int],
    ) -> None:
        text = format_media_line(media)
        text.append("\n\n")
        text.append("In My List" if in_list else "Not in My List", style="bold")
        if progress is not None:
            text.append(f"\nResume at {format_clock(progress.position)}")
            if progress.season is not None and progress.episode is not None:
                text.append(f" (S{progress.season}E{progress.episode})")
        index, total = position
        text.append(f"\n\nHistory {index + 1}/{total}", style="dim")
        text.append("\n\nenter play  l toggle list  alt+left/right back/forward  esc close", style="dim")
        self.query_one("#detail_text", Static).update(text)


class BulkListPanel(VerticalScroll):
    def compose(self) -> ComposeResult:
        yield Label("", id="bulk_title", classes="section")
        yield ListView(id="bulk_list", classes="media-list")

    def show(self, query: BulkListQuery) -> None:
        self.query_one("#bulk_title", Label).update(query.title)
        view = self.query_one("#bulk_list", ListView)
        view.clear()
        for media in query.custom_items:
            view.append(MediaListItem(media))


class PlayerPanel(Vertical):
    def compose(self) -> ComposeResult:
        yield Static("", id="player_text")

    def show(self, state: PanelState, *, mounted: bool, controls_visible: bool) -> None:
        params = getattr(state, "params", None)
        if params is None:
            return
        text = Text()
        text.append(params.media.title or f"#{params.media.id}", style="bold")
        if params.season is not None and params.episode is not None:
            text.append(f"  S{params.season}E{params.episode}")
        text.append("\n\n")
        text.append("Playing" if mounted else "Starting...", style="italic")
        if controls_visible:
            text.append("\n\nh hide controls  b back to details  x close", style="dim")
        self.query_one("#player_text", Static).update(text)


class DebugPanel(Vertical):
    def compose(self) -> ComposeResult:
        yield Static("", id="debug_text")

    def show(self, lines: list[str]) -> None:
        self.query_one("#debug_text", Static).update(Text("\n".join(lines)))


def describe_frames(frames: list[NavigationFrame], history_index: int) -> list[str]:
    lines = []
    for index, frame in enumerate(frames):
        marker = ">" if index == history_index else " "
        lines.append(f"{marker} {frame.media.media_type.value}:{frame.media.id} {frame.media.title}")
    return lines
