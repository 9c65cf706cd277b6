"""Assemble a configured frame pacer from settings."""

from __future__ import annotations

from telemetrylab_engine import FramePacer, PacerSettings, PerformanceSnapshot, StateChannel
from telemetrylab_platform import NullKeeper, build_power_signal

from .config import AppConfig


def pacer_settings(cfg: AppConfig) -> PacerSettings:
    return PacerSettings(
        normal_rate_hz=cfg.loop.normal_rate_hz,
        power_save_rate_hz=cfg.loop.power_save_rate_hz,
        publish_every=cfg.loop.publish_every,
        jank_threshold_ms=cfg.metrics.jank_threshold_ms,
        history_size=cfg.metrics.history_size,
    )


def build_pacer(cfg: AppConfig, keeper=None, power_signal=None, workload=None) -> FramePacer:
    channel = StateChannel(PerformanceSnapshot(compute_load=cfg.loop.compute_load))
    signal = power_signal or build_power_signal(cfg.power.source, cfg.power.battery_threshold_percent)
    return FramePacer(
        channel,
        workload=workload,
        power_signal=signal,
        keeper=keeper or NullKeeper(),
        settings=pacer_settings(cfg),
    )
