from __future__ import annotations

import math
from typing import Sequence

import numpy as np


def block_rms(blocks: Sequence[np.ndarray]) -> float:
    """Return RMS energy over float samples in [-1, 1] across all blocks."""
    total = 0
    sum_sq = 0.0
    for block in blocks:
        arr = np.asarray(block, dtype=np.float64).reshape(-1)
        if arr.size == 0:
            continue
        sum_sq += float(np.dot(arr, arr))
        total += int(arr.size)
    if total == 0:
        return 0.0
    return math.sqrt(sum_sq / total)


class EnergyGate:
    """Drops cuts that are pure silence before they reach the network."""

    def __init__(self, rms_threshold: float = 0.01) -> None:
        if rms_threshold < 0:
            raise ValueError("rms_threshold must be >= 0")
        self.rms_threshold = float(rms_threshold)

    def is_speech(self, blocks: Sequence[np.ndarray]) -> bool:
        if self.rms_threshold == 0:
            return True
        return block_rms(blocks) >= self.rms_threshold
