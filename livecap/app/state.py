from __future__ import annotations

from dataclasses import dataclass
from enum import Enum


class CaptureState(str, Enum):
    IDLE = "idle"
    CAPTURING = "capturing"


@dataclass
class CaptureStateTracker:
    state: CaptureState = CaptureState.IDLE
    last_error: str | None = None

    @property
    def capturing(self) -> bool:
        return self.state == CaptureState.CAPTURING

    def set_capturing(self) -> None:
        self.state = CaptureState.CAPTURING
        self.last_error = None

    def set_idle(self) -> None:
        self.state = CaptureState.IDLE

    def set_error(self, detail: str) -> None:
        self.state = CaptureState.IDLE
        self.last_error = detail
