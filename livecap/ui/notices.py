from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from typing import Callable, List, Optional

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Notice:
    message: str
    kind: str = "error"
    serial: int = 0


NoticeListener = Callable[[Optional[Notice]], None]


class NoticeBoard:
    """
    Holds at most one short-lived user notice.
    Each notice clears itself after ttl_sec unless a newer one replaced it.
    """

    def __init__(self, ttl_sec: float = 3.0) -> None:
        if ttl_sec <= 0:
            raise ValueError("ttl_sec must be > 0")
        self.ttl_sec = float(ttl_sec)
        self._current: Optional[Notice] = None
        self._serial = 0
        self._timer: Optional[asyncio.TimerHandle] = None
        self._listeners: List[NoticeListener] = []

    @property
    def current(self) -> Optional[Notice]:
        return self._current

    def add_listener(self, listener: NoticeListener) -> None:
        self._listeners.append(listener)

    def show(self, message: str, kind: str = "error") -> Notice:
        self._serial += 1
        notice = Notice(message=message, kind=kind, serial=self._serial)
        self._current = notice
        if self._timer is not None:
            self._timer.cancel()
            self._timer = None
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            loop = None
        if loop is not None:
            self._timer = loop.call_later(self.ttl_sec, self._expire, notice.serial)
        logger.info("notice_shown", extra={"kind": kind, "notice": message})
        self._emit()
        return notice

    def clear(self) -> None:
        if self._timer is not None:
            self._timer.cancel()
            self._timer = None
        if self._current is None:
            return
        self._current = None
        self._emit()

    def _expire(self, serial: int) -> None:
        if self._current is not None and self._current.serial == serial:
            self._timer = None
            self._current = None
            self._emit()

    def _emit(self) -> None:
        for listener in list(self._listeners):
            listener(self._current)
