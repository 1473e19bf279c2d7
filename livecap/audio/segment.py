from __future__ import annotations

from typing import List

import numpy as np


class PendingSegment:
    """
    Sample blocks captured since the last cut.
    Appended by the capture callback, swapped out whole by the cut timer.
    """

    def __init__(self, sample_rate: int = 16000) -> None:
        if sample_rate <= 0:
            raise ValueError("sample_rate must be > 0")
        self.sample_rate = int(sample_rate)
        self._blocks: List[np.ndarray] = []
        self._samples = 0

    def append(self, block: np.ndarray) -> None:
        arr = np.asarray(block, dtype=np.float32).reshape(-1)
        if arr.size == 0:
            return
        self._blocks.append(arr)
        self._samples += int(arr.size)

    @property
    def sample_count(self) -> int:
        return self._samples

    @property
    def duration_sec(self) -> float:
        return self._samples / float(self.sample_rate)

    def take(self) -> List[np.ndarray]:
        blocks, self._blocks = self._blocks, []
        self._samples = 0
        return blocks

    def __len__(self) -> int:
        return len(self._blocks)
