from __future__ import annotations

import argparse
import logging
from typing import Any, Coroutine

from rich.text import Text
from textual import events
from textual.app import App, ComposeResult
from textual.containers import Vertical
from textual.widgets import ContentSwitcher, Input, ListView, Static, TextArea

from . import logging_setup
from .config import HISTORY_BACKENDS, AppConfig, load_config
from .events import (
    EventKind,
    OpenMediaDetail,
    OpenVideoPlayer,
    VideoControlsVisibility,
    ViewAll,
)
from .keys import NavAction, action_for_button, action_for_key, dispatch
from .navigator import BulkList, Dashboard, Debug, Detail, PanelState, Playback
from .paths import config_path
from .shell import Shell, build_shell
from .storage import FileKeyValueStore
from .ui.panels import (
    BulkListPanel,
    DashboardPanel,
    DebugPanel,
    DetailPanel,
    MediaListItem,
    PlayerPanel,
    describe_frames,
)
from .watch_history import RemoteHistoryStore

logger = logging.getLogger(__name__)

# Terminals report the extra mouse buttons as 8 and 9.
TERMINAL_BUTTONS = {8: 3, 9: 4}
STORAGE_SYNC_INTERVAL = 1.0

PANEL_IDS = {
    Dashboard: "dashboard",
    Detail: "detail",
    BulkList: "bulk_list",
    Playback: "playback",
    Debug: "debug",
}


class ReelshellApp(App):
    BINDINGS = [
        ("q", "quit", "Quit"),
        ("enter", "play", "Play"),
        ("l", "toggle_list", "My List"),
        ("v", "view_list", "View List"),
        ("d", "remove_history", "Remove"),
        ("D", "clear_history", "Clear History"),
        ("h", "toggle_controls", "Controls"),
        ("b", "player_back", "Back to Details"),
        ("x", "close_player", "Close Player"),
    ]

    CSS = """
    #title_bar {
        height: 1;
        padding: 0 1;
        background: $panel;
    }

    #title_bar.immersive {
        display: none;
    }

    #panels {
        height: 1fr;
        padding: 1 1;
    }

    .section {
        margin-top: 1;
        text-style: bold;
    }

    .media-list {
        height: auto;
        max-height: 50%;
    }
    """

    def __init__(self, config: AppConfig | None = None, shell: Shell | None = None) -> None:
        super().__init__()
        self.config = config or AppConfig()
        self.shell = shell or build_shell(
            self.config,
            scheduler=lambda delay, callback: self.set_timer(delay, callback),
            scroll_offset=self._dashboard_scroll_offset,
            spawn=self._spawn,
        )
        self._subscriptions: list[Any] = []
        self._ui_ready = False

    def compose(self) -> ComposeResult:
        with Vertical():
            yield Static("reelshell", id="title_bar")
            with ContentSwitcher(id="panels", initial="dashboard"):
                yield DashboardPanel(id="dashboard")
                yield DetailPanel(id="detail")
                yield BulkListPanel(id="bulk_list")
                yield PlayerPanel(id="playback")
                yield DebugPanel(id="debug")

    def on_mount(self) -> None:
        self._ui_ready = True
        shell = self.shell
        self._subscriptions = [
            shell.navigator.subscribe(self._render_panel),
            shell.session.subscribe(lambda _: self._render_panel(shell.navigator.state)),
            shell.history.subscribe(self._render_history),
            shell.my_list.subscribe(self._render_my_list),
            shell.progress.subscribe(lambda _: self._render_panel(shell.navigator.state)),
            shell.bus.subscribe(EventKind.VIDEO_CONTROLS_VISIBILITY, self._on_controls_visibility),
        ]
        if isinstance(shell.storage, FileKeyValueStore):
            self.set_interval(STORAGE_SYNC_INTERVAL, shell.storage.sync)
        shell.start()

    async def on_unmount(self) -> None:
        self._ui_ready = False
        for dispose in self._subscriptions:
            dispose()
        await self.shell.aclose()

    def action_play(self) -> None:
        detail = self.shell.navigator.detail
        if detail is None or self.shell.session.session_open:
            return
        media = detail.media
        progress = self.shell.progress.get_progress(media.id, media.media_type)
        season = detail.flags.season
        episode = detail.flags.episode
        if season is None and progress is not None:
            season, episode = progress.season, progress.episode
        self.shell.bus.publish(
            OpenVideoPlayer(
                media=media,
                season=season,
                episode=episode,
                auto_play=True,
                resume_progress=progress is not None,
            )
        )

    def action_toggle_list(self) -> None:
        detail = self.shell.navigator.detail
        if detail is None or self.shell.session.session_open:
            return
        error = self.shell.my_list.toggle_item(detail.media)
        if error is not None:
            self.notify(error, severity="error")
        self._render_panel(self.shell.navigator.state)

    def action_view_list(self) -> None:
        if self.shell.session.session_open:
            return
        self.shell.bus.publish(
            ViewAll(title="My List", custom_items=tuple(self.shell.my_list.value))
        )

    def action_remove_history(self) -> None:
        if not isinstance(self.shell.navigator.state, Dashboard):
            return
        view = self.query_one("#history_list", ListView)
        item = view.highlighted_child
        if not isinstance(item, MediaListItem):
            return
        media = item.media
        history = self.shell.history
        if isinstance(history, RemoteHistoryStore):
            self._spawn(self._report(history.remove_item(media.id, media.media_type)))
        else:
            self._show_error(history.remove_item(media.id, media.media_type))

    def action_clear_history(self) -> None:
        if not isinstance(self.shell.navigator.state, Dashboard):
            return
        history = self.shell.history
        if isinstance(history, RemoteHistoryStore):
            self._spawn(self._report(history.clear()))
        else:
            self._show_error(history.clear())

    def action_toggle_controls(self) -> None:
        session = self.shell.session
        if session.session_open:
            session.set_controls_visible(not session.controls_visible)

    def action_player_back(self) -> None:
        if self.shell.session.session_open:
            self.shell.session.back()

    def action_close_player(self) -> None:
        if self.shell.session.session_open:
            self.shell.session.close()

    def on_list_view_selected(self, event: ListView.Selected) -> None:
        item = event.item
        if isinstance(item, MediaListItem):
            self.shell.bus.publish(OpenMediaDetail(item.media))
            event.stop()

    def on_key(self, event: events.Key) -> None:
        action = action_for_key(
            event.key,
            self.shell.navigator,
            self.shell.session,
            text_input_focused=self._text_input_focused(),
        )
        if action is NavAction.NONE:
            return
        if action in {NavAction.SCROLL_HOME, NavAction.SCROLL_END}:
            self._scroll_to_edge(action is NavAction.SCROLL_HOME)
        else:
            dispatch(action, self.shell.navigator, self.shell.session)
        event.stop()

    def on_mouse_down(self, event: events.MouseDown) -> None:
        button = TERMINAL_BUTTONS.get(event.button)
        if button is None:
            return
        action = action_for_button(
            button,
            self.shell.session,
            text_input_focused=self._text_input_focused(),
        )
        if dispatch(action, self.shell.navigator, self.shell.session):
            event.stop()

    def _render_panel(self, state: PanelState) -> None:
        if not self._ui_ready:
            return
        shell = self.shell
        switcher = self.query_one("#panels", ContentSwitcher)
        switcher.current = PANEL_IDS[type(state)]
        self._render_title_bar()
        if isinstance(state, Detail):
            media = state.media
            self.query_one(DetailPanel).show(
                media,
                in_list=shell.my_list.is_in_list(media, shell.my_list.value),
                progress=shell.progress.get_progress(media.id, media.media_type),
                position=(shell.navigator.history_index, len(shell.navigator.frames)),
            )
        elif isinstance(state, BulkList):
            self.query_one(BulkListPanel).show(state.query)
        elif isinstance(state, Playback):
            self.query_one(PlayerPanel).show(
                state,
                mounted=shell.session.active is not None,
                controls_visible=shell.session.controls_visible,
            )
        elif isinstance(state, Debug):
            self.query_one(DebugPanel).show(self._debug_lines())
        elif isinstance(state, Dashboard):
            offset = shell.navigator.consume_scroll_restore()
            if offset is not None:
                dashboard = self.query_one(DashboardPanel)
                self.call_after_refresh(dashboard.scroll_to, y=offset, animate=False)

    def _render_title_bar(self) -> None:
        title_bar = self.query_one("#title_bar", Static)
        text = Text("reelshell")
        detail = self.shell.navigator.detail
        if detail is not None:
            text.append(f"  {detail.media.title}", style="bold")
        title_bar.update(text)
        title_bar.styles.background = self.shell.navigator.accent_color or None

    def _render_history(self, entries: list) -> None:
        if self._ui_ready:
            self.query_one(DashboardPanel).show_history(entries)

    def _render_my_list(self, items: list) -> None:
        if self._ui_ready:
            self.query_one(DashboardPanel).show_my_list(items)

    def _on_controls_visibility(self, event: VideoControlsVisibility) -> None:
        if not self._ui_ready:
            return
        title_bar = self.query_one("#title_bar", Static)
        title_bar.set_class(not event.visible, "immersive")
        self._render_panel(self.shell.navigator.state)

    def _debug_lines(self) -> list[str]:
        shell = self.shell
        backend = "remote" if shell.remote_history else "local"
        lines = [
            f"history backend: {backend}",
            f"history entries: {len(shell.history.value)}",
            f"list entries: {len(shell.my_list.value)}",
            f"progress entries: {len(shell.progress.value)}",
            f"trackers: {', '.join(shell.trackers.value) or '-'}",
            f"history index: {shell.navigator.history_index}",
        ]
        runtime = logging_setup.get_runtime()
        if runtime is not None:
            lines.append(f"log: {runtime.file_path} ({runtime.level_name})")
        lines.extend(describe_frames(shell.navigator.frames, shell.navigator.history_index))
        return lines

    def _dashboard_scroll_offset(self) -> float:
        if not self._ui_ready:
            return 0.0
        return float(self.query_one(DashboardPanel).scroll_y)

    def _scroll_to_edge(self, top: bool) -> None:
        state = self.shell.navigator.state
        if isinstance(state, BulkList):
            panel = self.query_one(BulkListPanel)
        else:
            panel = self.query_one(DashboardPanel)
        if top:
            panel.scroll_home(animate=False)
        else:
            panel.scroll_end(animate=False)

    def _text_input_focused(self) -> bool:
        return isinstance(self.focused, (Input, TextArea))

    def _spawn(self, coro: Coroutine[Any, Any, Any]) -> object:
        return self.run_worker(coro, exclusive=False)

    async def _report(self, coro: Coroutine[Any, Any, str | None]) -> None:
        self._show_error(await coro)

    def _show_error(self, error: str | None) -> None:
        if error is not None:
            self.notify(error, severity="error")


def _cli_help_text() -> str:
    return (
        "reelshell - media shell navigator\n"
        f"Config file: {config_path()}\n"
        "Keys: enter play, l toggle list, v view list, esc close, "
        "alt+left/right back/forward, f12 debug"
    )


def main() -> None:
    parser = argparse.ArgumentParser(prog="reelshell", epilog=_cli_help_text())
    parser.add_argument("--history-backend", choices=HISTORY_BACKENDS, help="Where watch history lives")
    parser.add_argument("--history-url", help="Base URL of the remote history service")
    parser.add_argument("--storage", help="Path of the local storage file")
    parser.add_argument("--log-level", help="Log level, e.g. DEBUG or INFO")
    args = parser.parse_args()
    config, error = load_config()
    if error is not None:
        parser.error(error)
    if args.history_backend:
        config.history_backend = args.history_backend
    if args.history_url:
        config.history_url = args.history_url
    if args.storage:
        config.storage_path = args.storage
    if args.log_level:
        config.log_level = args.log_level
    logging_setup.configure(config.log_level)
    try:
        app = ReelshellApp(config)
    except ValueError as exc:
        parser.error(str(exc))
    app.run()
