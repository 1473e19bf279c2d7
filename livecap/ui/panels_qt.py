from __future__ import annotations

from dataclasses import dataclass
from typing import List, Optional, Sequence, Tuple

from livecap.contracts import TranscriptLine
from livecap.nlp.languages import SUPPORTED_LANGUAGES
from livecap.ui.notices import Notice
from livecap.ui.view_state import ScrollTarget, ViewController, ViewMode, live_scroll_top

try:
    from PyQt6 import QtCore, QtGui, QtWidgets
except ModuleNotFoundError:  # pragma: no cover - import guard path
    QtCore = None  # type: ignore[assignment]
    QtGui = None  # type: ignore[assignment]
    QtWidgets = None  # type: ignore[assignment]


@dataclass(frozen=True)
class PanelRow:
    text: str
    opacity: int
    emphasized: bool


def panel_rows(lines: Sequence[TranscriptLine], controller: ViewController) -> List[PanelRow]:
    count = len(lines)
    return [
        PanelRow(
            text=ln.text,
            opacity=controller.line_opacity(i, count),
            emphasized=controller.is_emphasized(i, count),
        )
        for i, ln in enumerate(lines)
    ]


def scroll_row(target: ScrollTarget, count: int) -> Optional[int]:
    """Row to center for a scroll target, clamped to this panel's length."""
    if count <= 0:
        return None
    if target.latest:
        return count - 1
    return min(int(target.index or 0), count - 1)


def paired_scroll_rows(
    target: ScrollTarget,
    controller: ViewController,
    original_len: int,
    translated_len: int,
) -> Tuple[Optional[int], Optional[int]]:
    """Rows to center in the original and translated panels.

    A pinned line is clamped to the shorter buffer so both panels show the same pair.
    """
    if not target.latest:
        focus = controller.effective_focus(original_len, translated_len)
        if focus is not None:
            target = ScrollTarget(index=focus)
    return scroll_row(target, original_len), scroll_row(target, translated_len)


if QtWidgets is not None:
    class TranscriptPanel(QtWidgets.QListWidget):
        line_clicked = QtCore.pyqtSignal(int)
        scrolled = QtCore.pyqtSignal(int, int, int)  # top, content height, viewport height

        def __init__(self, parent=None) -> None:
            super().__init__(parent)
            self.setVerticalScrollMode(QtWidgets.QAbstractItemView.ScrollMode.ScrollPerPixel)
            self.setWordWrap(True)
            self.setSelectionMode(QtWidgets.QAbstractItemView.SelectionMode.NoSelection)
            self.setFocusPolicy(QtCore.Qt.FocusPolicy.NoFocus)
            self.itemClicked.connect(lambda item: self.line_clicked.emit(self.row(item)))
            bar = self.verticalScrollBar()
            bar.valueChanged.connect(
                lambda value: self.scrolled.emit(value, bar.maximum() + bar.pageStep(), bar.pageStep())
            )

        def render_rows(self, rows: Sequence[PanelRow], placeholder: str) -> None:
            self.clear()
            if not rows:
                item = QtWidgets.QListWidgetItem(placeholder)
                item.setFlags(QtCore.Qt.ItemFlag.NoItemFlags)
                item.setForeground(QtGui.QColor(160, 160, 160))
                item.setTextAlignment(QtCore.Qt.AlignmentFlag.AlignCenter)
                self.addItem(item)
                return
            for row in rows:
                item = QtWidgets.QListWidgetItem(row.text)
                color = QtGui.QColor(255, 255, 255) if row.emphasized else QtGui.QColor(156, 163, 175)
                color.setAlpha(int(255 * row.opacity / 100))
                item.setForeground(color)
                font = item.font()
                font.setPointSize(20 if row.emphasized else 14)
                item.setFont(font)
                self.addItem(item)

        def scroll_to(self, target: ScrollTarget, row: Optional[int]) -> None:
            if row is None:
                return
            if target.latest:
                bar = self.verticalScrollBar()
                bar.setValue(int(live_scroll_top(bar.maximum() + bar.pageStep(), bar.pageStep())))
                return
            item = self.item(row)
            if item is not None:
                self.scrollToItem(item, QtWidgets.QAbstractItemView.ScrollHint.PositionAtCenter)

    class CaptionWindow(QtWidgets.QMainWindow):
        """Original text on the left, translation on the right."""

        start_requested = QtCore.pyqtSignal()
        stop_requested = QtCore.pyqtSignal()
        language_requested = QtCore.pyqtSignal(str)

        def __init__(self, controller: ViewController) -> None:
            super().__init__()
            self.controller = controller
            self._capturing = False
            self._original: List[TranscriptLine] = []
            self._translated: List[TranscriptLine] = []

            self.setWindowTitle("livecap")
            self.resize(1100, 700)

            root = QtWidgets.QWidget(self)
            self.setCentralWidget(root)
            lay = QtWidgets.QVBoxLayout(root)
            lay.setContentsMargins(22, 20, 22, 20)
            lay.setSpacing(14)

            header = QtWidgets.QHBoxLayout()
            header.addWidget(QtWidgets.QLabel("Original Language", root))
            header.addStretch(1)
            self.btn_listen = QtWidgets.QPushButton("Start Listening", root)
            self.btn_listen.clicked.connect(self._on_listen_clicked)
            header.addWidget(self.btn_listen)
            header.addStretch(1)
            self.language_box = QtWidgets.QComboBox(root)
            for code, name in SUPPORTED_LANGUAGES.items():
                self.language_box.addItem(name, code)
            self._select_language(controller.state.target_language)
            self.language_box.activated.connect(self._on_language_activated)
            header.addWidget(self.language_box)
            lay.addLayout(header)

            self.notice_label = QtWidgets.QLabel("", root)
            self.notice_label.setStyleSheet("background:#ef4444; color:white; padding:4px 10px; border-radius:6px;")
            self.notice_label.hide()
            lay.addWidget(self.notice_label)

            panels = QtWidgets.QHBoxLayout()
            self.panel_original = TranscriptPanel(root)
            self.panel_translated = TranscriptPanel(root)
            for panel in (self.panel_original, self.panel_translated):
                panel.line_clicked.connect(self._on_line_clicked)
                panel.scrolled.connect(self._on_scrolled)
                panels.addWidget(panel, 1)
            lay.addLayout(panels, 1)

            self.btn_live = QtWidgets.QPushButton("Return to Live", root)
            self.btn_live.clicked.connect(self.return_to_live)
            self.btn_live.hide()
            lay.addWidget(self.btn_live, 0, QtCore.Qt.AlignmentFlag.AlignHCenter)

            self.setStyleSheet("QMainWindow, QWidget { background:#121212; color:white; }"
                               "QListWidget { background:black; border-radius:18px; padding:16px; }")
            self._render()

        # --- inbound from the pipeline ---

        def set_capturing(self, capturing: bool) -> None:
            self._capturing = bool(capturing)
            self.btn_listen.setText("Stop Listening" if capturing else "Start Listening")

        def set_lines(self, original: Sequence[TranscriptLine], translated: Sequence[TranscriptLine]) -> None:
            grew = len(original) > len(self._original) or len(translated) > len(self._translated)
            self._original = list(original)
            self._translated = list(translated)
            self.controller.set_buffer_lengths(len(self._original), len(self._translated))
            self._render()
            if grew:
                target = self.controller.on_buffer_grew()
                if target is not None:
                    self._scroll_both(target)

        def reset(self) -> None:
            self.controller.reset()
            self.btn_live.hide()
            self._original = []
            self._translated = []
            self.controller.set_buffer_lengths(0, 0)
            self._render()

        def set_target_language(self, code: str) -> None:
            self.controller.set_target_language(code)
            self._select_language(code)
            self._render()

        def show_notice(self, notice: Optional[Notice]) -> None:
            if notice is None:
                self.notice_label.hide()
                return
            self.notice_label.setText(notice.message)
            self.notice_label.show()

        # --- user interaction ---

        def return_to_live(self) -> None:
            target = self.controller.return_to_live()
            self.btn_live.hide()
            self._render()
            self._scroll_both(target)

        def _on_line_clicked(self, row: int) -> None:
            if row < 0:
                return
            target = self.controller.focus_line(row)
            self.btn_live.show()
            self._render()
            self._scroll_both(target)

        def _on_scrolled(self, top: int, content_height: int, viewport_height: int) -> None:
            before = self.controller.viewing_history
            if self.controller.on_scroll(top, content_height, viewport_height) != before:
                self._render(keep_scroll=True)

        def _on_listen_clicked(self) -> None:
            if self._capturing:
                self.stop_requested.emit()
            else:
                self.start_requested.emit()

        def _on_language_activated(self, index: int) -> None:
            code = str(self.language_box.itemData(index))
            self.language_requested.emit(code)
            # the pipeline decides; snap back until it confirms
            self._select_language(self.controller.state.target_language)

        # --- rendering ---

        def _select_language(self, code: str) -> None:
            idx = self.language_box.findData(code)
            if idx >= 0:
                self.language_box.setCurrentIndex(idx)

        def _render(self, keep_scroll: bool = False) -> None:
            placeholder = self.controller.waiting_message()
            for panel, lines in (
                (self.panel_original, self._original),
                (self.panel_translated, self._translated),
            ):
                bar = panel.verticalScrollBar()
                value = bar.value()
                panel.blockSignals(True)
                bar.blockSignals(True)
                panel.render_rows(panel_rows(lines, self.controller), placeholder)
                if keep_scroll or self.controller.mode == ViewMode.HISTORY:
                    bar.setValue(value)
                bar.blockSignals(False)
                panel.blockSignals(False)

        def _scroll_both(self, target: ScrollTarget) -> None:
            row_original, row_translated = paired_scroll_rows(
                target, self.controller, len(self._original), len(self._translated)
            )
            self.panel_original.scroll_to(target, row_original)
            self.panel_translated.scroll_to(target, row_translated)
