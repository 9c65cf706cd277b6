"""Rolling cycle statistics: cumulative mean latency, jank count, bounded history."""

from __future__ import annotations

from collections import deque

from .models import CycleMetrics

JANK_THRESHOLD_MS = 16
HISTORY_SIZE = 100


class MetricsAggregator:
    def __init__(self, jank_threshold_ms: int = JANK_THRESHOLD_MS, history_size: int = HISTORY_SIZE) -> None:
        self.jank_threshold_ms = jank_threshold_ms
        self.history_size = history_size
        self._history: deque[int] = deque(maxlen=history_size)
        self._total_latency = 0
        self._jank_count = 0
        self._frame_count = 0
        self._last_latency = 0

    @property
    def frame_count(self) -> int:
        return self._frame_count

    def reset(self) -> None:
        self._history = deque(maxlen=self.history_size)
        self._total_latency = 0
        self._jank_count = 0
        self._frame_count = 0
        self._last_latency = 0

    def record_cycle(self, latency_ms: int) -> CycleMetrics:
        latency_ms = int(latency_ms)
        self._history.append(latency_ms)
        self._total_latency += latency_ms
        self._frame_count += 1
        if latency_ms > self.jank_threshold_ms:
            self._jank_count += 1
        self._last_latency = latency_ms
        return self.snapshot()

    def snapshot(self) -> CycleMetrics:
        if self._frame_count > 0:
            average = self._total_latency / self._frame_count
            jank_pct = (self._jank_count / self._frame_count) * 100.0
        else:
            average = 0.0
            jank_pct = 0.0
        return CycleMetrics(
            current_latency_ms=self._last_latency,
            average_latency_ms=average,
            jank_percentage=jank_pct,
            jank_frame_count=self._jank_count,
            frame_count=self._frame_count,
            history=tuple(self._history),
        )
