from __future__ import annotations

import time
from typing import Callable, Iterator, List, Optional

from livecap.contracts import TranscriptLine


def _now_ms() -> int:
    return int(time.time() * 1000)


class TranscriptBuffer:
    """Append-only ordered transcript. Timestamps never go backwards."""

    def __init__(self, clock: Optional[Callable[[], int]] = None) -> None:
        self._clock = clock or _now_ms
        self._lines: List[TranscriptLine] = []

    def append(self, text: str) -> TranscriptLine:
        text = (text or "").strip()
        if not text:
            raise ValueError("transcript lines must be non-empty")
        ts = int(self._clock())
        if self._lines and ts <= self._lines[-1].timestamp:
            ts = self._lines[-1].timestamp + 1
        line = TranscriptLine(text=text, timestamp=ts)
        self._lines.append(line)
        return line

    @property
    def last(self) -> Optional[TranscriptLine]:
        return self._lines[-1] if self._lines else None

    def texts(self) -> List[str]:
        return [ln.text for ln in self._lines]

    def snapshot(self) -> List[TranscriptLine]:
        return list(self._lines)

    def __len__(self) -> int:
        return len(self._lines)

    def __iter__(self) -> Iterator[TranscriptLine]:
        return iter(list(self._lines))

    def __getitem__(self, index: int) -> TranscriptLine:
        return self._lines[index]
