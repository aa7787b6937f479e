"""Keyboard and pointer input surface.

Maps raw input to a navigation action; ``dispatch`` applies it. Input aimed
at a text field never maps to an action.
"""

from __future__ import annotations

from enum import Enum

from .navigator import PanelNavigator
from .playback import PlaybackSessionController


class NavAction(Enum):
    NONE = "none"
    CANCEL = "cancel"
    BACK = "back"
    FORWARD = "forward"
    SCROLL_HOME = "scroll_home"
    SCROLL_END = "scroll_end"
    PLAYBACK_BACK = "playback_back"
    TOGGLE_DEBUG = "toggle_debug"


BACK_KEYS = frozenset({"alt+left", "meta+left"})
FORWARD_KEYS = frozenset({"alt+right", "meta+right"})
DEBUG_KEY = "f12"

# Pointer buttons use DOM numbering: 3 is "back", 4 is "forward".
BACK_BUTTON = 3
FORWARD_BUTTON = 4


def action_for_key(
    key: str,
    navigator: PanelNavigator,
    session: PlaybackSessionController,
    *,
    text_input_focused: bool = False,
) -> NavAction:
    if text_input_focused:
        return NavAction.NONE
    in_playback = session.session_open
    if key == "escape":
        if in_playback:
            return NavAction.PLAYBACK_BACK
        return NavAction.CANCEL
    if key in BACK_KEYS and not in_playback:
        return NavAction.BACK
    if key in FORWARD_KEYS and not in_playback:
        return NavAction.FORWARD
    if key in {"home", "end"} and not in_playback and not navigator.detail_open:
        return NavAction.SCROLL_HOME if key == "home" else NavAction.SCROLL_END
    if key == DEBUG_KEY:
        return NavAction.TOGGLE_DEBUG
    return NavAction.NONE


def action_for_button(
    button: int,
    session: PlaybackSessionController,
    *,
    text_input_focused: bool = False,
) -> NavAction:
    if text_input_focused or session.session_open:
        return NavAction.NONE
    if button == BACK_BUTTON:
        return NavAction.BACK
    if button == FORWARD_BUTTON:
        return NavAction.FORWARD
    return NavAction.NONE


def dispatch(
    action: NavAction,
    navigator: PanelNavigator,
    session: PlaybackSessionController,
) -> bool:
    """Apply a navigation action. Scroll actions are left to the caller."""
    if action is NavAction.CANCEL:
        return navigator.cancel()
    if action is NavAction.BACK:
        navigator.go_back()
        return True
    if action is NavAction.FORWARD:
        navigator.go_forward()
        return True
    if action is NavAction.PLAYBACK_BACK:
        session.back()
        return True
    if action is NavAction.TOGGLE_DEBUG:
        navigator.toggle_debug()
        return True
    return False
