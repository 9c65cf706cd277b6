"""Typed snapshot and cycle models."""

from __future__ import annotations

from dataclasses import asdict, dataclass
from typing import Any

MIN_COMPUTE_LOAD = 1
MAX_COMPUTE_LOAD = 5
DEFAULT_COMPUTE_LOAD = 2


def clamp_load(value: int) -> int:
    return max(MIN_COMPUTE_LOAD, min(MAX_COMPUTE_LOAD, int(value)))


@dataclass(frozen=True)
class CycleMetrics:
    current_latency_ms: int = 0
    average_latency_ms: float = 0.0
    jank_percentage: float = 0.0
    jank_frame_count: int = 0
    frame_count: int = 0
    history: tuple[int, ...] = ()


@dataclass(frozen=True)
class PerformanceSnapshot:
    """Published state; replaced wholesale on every write."""

    is_running: bool = False
    compute_load: int = DEFAULT_COMPUTE_LOAD
    current_latency_ms: int = 0
    average_latency_ms: float = 0.0
    jank_percentage: float = 0.0
    jank_frame_count: int = 0
    frame_counter: int = 0
    is_power_save_mode: bool = False
    latency_history: tuple[int, ...] = ()

    def to_dict(self) -> dict[str, Any]:
        data = asdict(self)
        data["latency_history"] = list(self.latency_history)
        return data
