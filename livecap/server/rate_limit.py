from __future__ import annotations

import threading
import time
from collections import OrderedDict
from typing import Callable, Optional


class RateLimitExceeded(Exception):
    def __init__(self, token: str) -> None:
        super().__init__(f"Rate limit exceeded for {token}")
        self.token = token


class RateLimiter:
    """
    Fixed-window request counter per caller token.
    At most max_tokens callers are tracked; the least recently seen is evicted first.
    """

    def __init__(
        self,
        interval_sec: float,
        max_tokens: int = 500,
        clock: Optional[Callable[[], float]] = None,
    ) -> None:
        if interval_sec <= 0:
            raise ValueError("interval_sec must be > 0")
        if max_tokens <= 0:
            raise ValueError("max_tokens must be > 0")
        self.interval_sec = float(interval_sec)
        self.max_tokens = int(max_tokens)
        self._clock = clock or time.monotonic
        self._windows: "OrderedDict[str, tuple[float, int]]" = OrderedDict()
        self._lock = threading.Lock()

    def check(self, limit: int, token: str) -> bool:
        """Count one request for token. False once the caller went over limit in this window."""
        now = self._clock()
        with self._lock:
            started, count = self._windows.pop(token, (now, 0))
            if now - started >= self.interval_sec:
                started, count = now, 0
            count += 1
            self._windows[token] = (started, count)
            while len(self._windows) > self.max_tokens:
                self._windows.popitem(last=False)
        return count <= limit

    def __len__(self) -> int:
        return len(self._windows)
