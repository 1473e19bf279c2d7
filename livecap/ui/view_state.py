from __future__ import annotations

from dataclasses import dataclass, replace
from enum import Enum
from typing import Optional, Tuple

from livecap.nlp.languages import DEFAULT_TARGET_LANGUAGE, waiting_message

BOTTOM_TOLERANCE_PX = 50
LIVE_CENTER_OFFSET_PX = 50
FULL_OPACITY = 100
MIN_OPACITY = 30
OPACITY_STEP = 20


class ViewMode(str, Enum):
    LIVE = "live"
    HISTORY = "history"


@dataclass(frozen=True)
class ViewState:
    mode: ViewMode = ViewMode.LIVE
    focused_index: Optional[int] = None
    target_language: str = DEFAULT_TARGET_LANGUAGE


@dataclass(frozen=True)
class ScrollTarget:
    """Where both panels should scroll. index None means 'the latest line'."""
    index: Optional[int] = None

    @property
    def latest(self) -> bool:
        return self.index is None


def live_scroll_top(scroll_height: float, client_height: float) -> float:
    """Scroll offset that keeps the newest line near the vertical center."""
    return max(0.0, scroll_height - client_height / 2 - LIVE_CENTER_OFFSET_PX)


def is_at_bottom(scroll_top: float, scroll_height: float, client_height: float) -> bool:
    return abs(scroll_height - client_height - scroll_top) < BOTTOM_TOLERANCE_PX


class ViewController:
    """
    Live/History state for the two transcript panels.

    Live: panels follow the newest line whenever either buffer grows.
    History: a clicked line is pinned in both panels and auto-scroll stops.
    Scrolling away from the bottom only changes per-line emphasis.
    """

    def __init__(self, target_language: str = DEFAULT_TARGET_LANGUAGE) -> None:
        self._state = ViewState(target_language=target_language)
        self.viewing_history = False
        self._lengths: Optional[Tuple[int, int]] = None

    @property
    def state(self) -> ViewState:
        return self._state

    @property
    def mode(self) -> ViewMode:
        return self._state.mode

    @property
    def focused_index(self) -> Optional[int]:
        return self._state.focused_index

    def set_target_language(self, code: str) -> None:
        self._state = replace(self._state, target_language=code)

    def waiting_message(self) -> str:
        return waiting_message(self._state.target_language)

    def on_buffer_grew(self) -> Optional[ScrollTarget]:
        if self._state.mode == ViewMode.LIVE:
            return ScrollTarget()
        return None

    def focus_line(self, index: int) -> ScrollTarget:
        if index < 0:
            raise ValueError("line index must be >= 0")
        self._state = replace(self._state, mode=ViewMode.HISTORY, focused_index=int(index))
        return ScrollTarget(index=int(index))

    def return_to_live(self) -> ScrollTarget:
        self._state = replace(self._state, mode=ViewMode.LIVE, focused_index=None)
        return ScrollTarget()

    def on_scroll(self, scroll_top: float, scroll_height: float, client_height: float) -> bool:
        self.viewing_history = not is_at_bottom(scroll_top, scroll_height, client_height)
        return self.viewing_history

    def reset(self) -> None:
        """New capture session: nothing is pinned any more."""
        self._state = replace(self._state, mode=ViewMode.LIVE, focused_index=None)
        self.viewing_history = False

    def effective_focus(self, original_len: int, translated_len: int) -> Optional[int]:
        idx = self._state.focused_index
        if idx is None:
            return None
        shorter = min(original_len, translated_len)
        if shorter <= 0:
            return None
        return min(idx, shorter - 1)

    def set_buffer_lengths(self, original_len: int, translated_len: int) -> None:
        self._lengths = (int(original_len), int(translated_len))

    def render_focus(self) -> Optional[int]:
        """Focused row both panels agree on, once the buffer lengths are known."""
        if self._lengths is None:
            return self._state.focused_index
        return self.effective_focus(*self._lengths)

    def is_emphasized(self, index: int, count: int) -> bool:
        return index == count - 1 or index == self.render_focus()

    def line_opacity(self, index: int, count: int) -> int:
        if self.viewing_history:
            return FULL_OPACITY
        if self.is_emphasized(index, count):
            return FULL_OPACITY
        return max(MIN_OPACITY, FULL_OPACITY - (count - 1 - index) * OPACITY_STEP)
