"""Persistent lab settings schema and load/save helpers."""

from __future__ import annotations

import json
import os
import platform
from dataclasses import asdict, dataclass, field
from pathlib import Path
from typing import Any


CONFIG_VERSION = 2

POWER_SOURCES = ("auto", "battery", "profile", "on", "off")


@dataclass
class LoopConfig:
    compute_load: int = 2
    normal_rate_hz: int = 20
    power_save_rate_hz: int = 10
    publish_every: int = 5


@dataclass
class MetricsConfig:
    jank_threshold_ms: int = 16
    history_size: int = 100


@dataclass
class PowerConfig:
    source: str = "auto"
    battery_threshold_percent: float = 20.0


@dataclass
class UiConfig:
    chart_theme: str = "Neon Slate"
    tray_notifications: bool = True


@dataclass
class DiagnosticsConfig:
    keep_log_files: int = 7


@dataclass
class PerformanceConfig:
    cpu_percent_max: float = 60.0
    rss_mb_max: float = 400.0
    jank_percent_max: float = 10.0


@dataclass
class AppConfig:
    config_version: int = CONFIG_VERSION
    loop: LoopConfig = field(default_factory=LoopConfig)
    metrics: MetricsConfig = field(default_factory=MetricsConfig)
    power: PowerConfig = field(default_factory=PowerConfig)
    ui: UiConfig = field(default_factory=UiConfig)
    diagnostics: DiagnosticsConfig = field(default_factory=DiagnosticsConfig)
    performance: PerformanceConfig = field(default_factory=PerformanceConfig)


def config_root() -> Path:
    system = platform.system()
    if system == "Windows":
        base = Path(os.environ.get("APPDATA", Path.home() / "AppData" / "Roaming"))
        return base / "TelemetryLab"
    if system == "Darwin":
        return Path.home() / "Library" / "Application Support" / "TelemetryLab"
    return Path.home() / ".config" / "telemetrylab"


def config_path() -> Path:
    return config_root() / "config.json"


def _merge(dataclass_type, raw: dict[str, Any]):
    defaults = dataclass_type()  # type: ignore[misc]
    for k, v in (raw or {}).items():
        if hasattr(defaults, k):
            setattr(defaults, k, v)
    return defaults


def _clamp(value: Any, low: float, high: float, fallback: float) -> float:
    try:
        number = float(value)
    except (TypeError, ValueError):
        number = fallback
    return max(low, min(high, number))


def _normalize_loop(cfg: AppConfig) -> None:
    loop = cfg.loop
    loop.compute_load = int(_clamp(loop.compute_load, 1, 5, 2))
    loop.normal_rate_hz = int(_clamp(loop.normal_rate_hz, 1, 240, 20))
    loop.power_save_rate_hz = int(_clamp(loop.power_save_rate_hz, 1, loop.normal_rate_hz, 10))
    loop.publish_every = int(_clamp(loop.publish_every, 1, 100, 5))


def _normalize_metrics(cfg: AppConfig) -> None:
    cfg.metrics.jank_threshold_ms = int(_clamp(cfg.metrics.jank_threshold_ms, 1, 10_000, 16))
    cfg.metrics.history_size = int(_clamp(cfg.metrics.history_size, 10, 1000, 100))


def _normalize_power(cfg: AppConfig) -> None:
    if cfg.power.source not in POWER_SOURCES:
        cfg.power.source = "auto"
    cfg.power.battery_threshold_percent = _clamp(cfg.power.battery_threshold_percent, 1.0, 100.0, 20.0)


def _normalize_performance(cfg: AppConfig) -> None:
    cfg.performance.cpu_percent_max = float(max(1.0, cfg.performance.cpu_percent_max))
    cfg.performance.rss_mb_max = float(max(64.0, cfg.performance.rss_mb_max))
    cfg.performance.jank_percent_max = _clamp(cfg.performance.jank_percent_max, 0.0, 100.0, 10.0)
    cfg.diagnostics.keep_log_files = max(2, int(cfg.diagnostics.keep_log_files))


def _migrate(raw: dict[str, Any]) -> dict[str, Any]:
    version = int(raw.get("config_version", 1))
    data = dict(raw)

    if version < 2:
        # v1 kept compute_load at the top level and had no power section.
        loop = dict(data.get("loop", {}) or {})
        if "compute_load" in data:
            loop.setdefault("compute_load", data.pop("compute_load"))
        data["loop"] = loop
        data.setdefault("power", {})
        data["config_version"] = 2

    return data


def load_config(path: Path | None = None) -> AppConfig:
    path = path or config_path()
    if not path.exists():
        return AppConfig()

    try:
        raw = json.loads(path.read_text(encoding="utf-8"))
    except Exception:
        return AppConfig()
    if not isinstance(raw, dict):
        return AppConfig()

    data = _migrate(raw)
    cfg = AppConfig(
        config_version=int(data.get("config_version", CONFIG_VERSION)),
        loop=_merge(LoopConfig, data.get("loop", {})),
        metrics=_merge(MetricsConfig, data.get("metrics", {})),
        power=_merge(PowerConfig, data.get("power", {})),
        ui=_merge(UiConfig, data.get("ui", {})),
        diagnostics=_merge(DiagnosticsConfig, data.get("diagnostics", {})),
        performance=_merge(PerformanceConfig, data.get("performance", {})),
    )

    _normalize_loop(cfg)
    _normalize_metrics(cfg)
    _normalize_power(cfg)
    _normalize_performance(cfg)
    return cfg


def save_config(cfg: AppConfig, path: Path | None = None) -> Path:
    cfg.config_version = CONFIG_VERSION
    path = path or config_path()
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(json.dumps(asdict(cfg), indent=2, sort_keys=True), encoding="utf-8")
    return path
