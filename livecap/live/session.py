from __future__ import annotations

import asyncio
from dataclasses import dataclass
from typing import Any, Optional

from livecap.audio.segment import PendingSegment
from livecap.live.transcript import TranscriptBuffer


@dataclass
class Session:
    """Everything one capture run owns. Replaced wholesale on the next start."""

    session_id: int
    target_language: str
    pending: PendingSegment
    original_lines: TranscriptBuffer
    translated_lines: TranscriptBuffer
    mic: Any = None
    timer_task: Optional[asyncio.Task] = None
    in_flight: bool = False
    active: bool = True
    cuts_submitted: int = 0
    cuts_skipped: int = 0

    def release(self) -> None:
        """Disarm the timer and release the microphone."""
        self.active = False
        if self.timer_task is not None:
            self.timer_task.cancel()
            self.timer_task = None
        mic, self.mic = self.mic, None
        if mic is not None:
            mic.close()
