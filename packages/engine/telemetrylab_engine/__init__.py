"""Measurement engine: synthetic workload, rolling metrics, state channel, and frame pacer."""

from .metrics import HISTORY_SIZE, JANK_THRESHOLD_MS, MetricsAggregator
from .models import CycleMetrics, PerformanceSnapshot, clamp_load
from .pacer import FramePacer, PacerSettings, PacerState, effective_intensity
from .state import SnapshotObserver, StateChannel, Subscription
from .workload import WorkloadGenerator, convolve_clamped, seed_grid

__all__ = [
    "CycleMetrics",
    "FramePacer",
    "HISTORY_SIZE",
    "JANK_THRESHOLD_MS",
    "MetricsAggregator",
    "PacerSettings",
    "PacerState",
    "PerformanceSnapshot",
    "SnapshotObserver",
    "StateChannel",
    "Subscription",
    "WorkloadGenerator",
    "clamp_load",
    "convolve_clamped",
    "effective_intensity",
    "seed_grid",
]
