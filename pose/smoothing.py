from __future__ import annotations

import math
from collections import deque
from typing import Deque, Dict, Hashable, List, Optional


def _is_finite(value: Optional[float]) -> bool:
    if value is None:
        return False
    try:
        return math.isfinite(float(value))
    except (TypeError, ValueError):
        return False


class RollingBuffer:
    """Bounded FIFO of recent samples; the oldest sample is evicted on overflow."""

    def __init__(self, capacity: int = 5) -> None:
        if capacity <= 0:
            raise ValueError("capacity must be positive")
        self.capacity = int(capacity)
        self._values: Deque[float] = deque(maxlen=self.capacity)

    def __len__(self) -> int:
        return len(self._values)

    @property
    def values(self) -> List[float]:
        return list(self._values)

    def push(self, value: float) -> None:
        self._values.append(float(value))

    def mean(self) -> float:
        if not self._values:
            return 0.0
        return math.fsum(self._values) / len(self._values)

    def clear(self) -> None:
        self._values.clear()


class TemporalSmoother:
    """
    Moving-average smoother over scalar samples, one RollingBuffer per id.

    - Non-finite samples (NaN, inf, None) are ignored, so a bad detection frame
      never enters the window
    - average() of an unknown or empty buffer is 0.0
    - Buffers persist until reset()
    """

    def __init__(self, capacity: int = 5) -> None:
        if capacity <= 0:
            raise ValueError("capacity must be positive")
        self.capacity = int(capacity)
        self._buffers: Dict[Hashable, RollingBuffer] = {}

    def update(self, buffer_id: Hashable, raw_value: Optional[float]) -> None:
        if not _is_finite(raw_value):
            return
        buf = self._buffers.get(buffer_id)
        if buf is None:
            buf = self._buffers[buffer_id] = RollingBuffer(self.capacity)
        buf.push(float(raw_value))

    def average(self, buffer_id: Hashable) -> float:
        buf = self._buffers.get(buffer_id)
        return buf.mean() if buf is not None else 0.0

    def count(self, buffer_id: Hashable) -> int:
        buf = self._buffers.get(buffer_id)
        return len(buf) if buf is not None else 0

    def reset(self) -> None:
        self._buffers.clear()
