"""Doctor report and offline support bundles for Telemetry Lab."""

from __future__ import annotations

import json
import os
import platform
import re
import tempfile
import zipfile
from dataclasses import asdict, is_dataclass
from datetime import datetime, timezone
from pathlib import Path
from typing import Any

from telemetrylab_engine import WorkloadGenerator
from telemetrylab_platform import battery_info, build_power_signal

from .config import AppConfig, config_path
from .logging_setup import log_dir, log_files


_SECRET_RE = re.compile(r"(token|secret|password|apikey|api_key|auth)", re.IGNORECASE)
_MASK = "***REDACTED***"


def _jsonable(value: Any) -> Any:
    if is_dataclass(value):
        return asdict(value)
    if isinstance(value, Path):
        return str(value)
    if isinstance(value, (set, frozenset)):
        return sorted(value)
    if hasattr(value, "to_dict"):
        return value.to_dict()
    return value


def redact(value: Any) -> Any:
    if isinstance(value, dict):
        return {k: (_MASK if _SECRET_RE.search(str(k)) else redact(v)) for k, v in value.items()}
    if isinstance(value, (list, tuple)):
        return [redact(v) for v in value]
    return value


def power_report(cfg: AppConfig) -> dict[str, Any]:
    signal = build_power_signal(cfg.power.source, cfg.power.battery_threshold_percent)
    report: dict[str, Any] = {
        "source": cfg.power.source,
        "provider": type(signal).__name__,
        "battery_threshold_percent": cfg.power.battery_threshold_percent,
        "battery": battery_info(),
        "power_save_active": False,
        "error": None,
    }
    try:
        report["power_save_active"] = bool(signal.is_power_save_mode_active())
    except Exception as exc:
        report["error"] = str(exc)
    return report


def workload_report(cfg: AppConfig, repeats: int = 2) -> dict[str, Any]:
    """Median cost per intensity against the normal and power-save pacing periods."""
    profile = WorkloadGenerator().profile(repeats=repeats)
    normal_period = 1000 // max(1, cfg.loop.normal_rate_hz)
    saver_period = 1000 // max(1, cfg.loop.power_save_rate_hz)
    return {
        "ms_by_intensity": {str(level): round(ms, 3) for level, ms in profile.items()},
        "normal_period_ms": normal_period,
        "power_save_period_ms": saver_period,
        "fits_normal_period": [level for level, ms in profile.items() if ms < normal_period],
        "over_jank_threshold": [level for level, ms in profile.items() if ms > cfg.metrics.jank_threshold_ms],
    }


def build_doctor_payload(cfg: AppConfig, measure_workload: bool = True) -> dict[str, Any]:
    payload: dict[str, Any] = {
        "ts_utc": datetime.now(timezone.utc).isoformat(),
        "platform": platform.platform(),
        "python": platform.python_version(),
        "cpu_count": os.cpu_count(),
        "config_path": str(config_path()),
        "config": redact(asdict(cfg)),
        "power": power_report(cfg),
    }
    if measure_workload:
        payload["workload"] = workload_report(cfg)
    return payload


class DiagnosticsExporter:
    def __init__(self, app_name: str = "TelemetryLab") -> None:
        self.app_name = app_name

    def _manifest(self, entries: list[str]) -> dict[str, Any]:
        return {
            "app": self.app_name,
            "created_utc": datetime.now(timezone.utc).isoformat(),
            "host": platform.platform(),
            "python": platform.python_version(),
            "config_path": str(config_path()),
            "log_dir": str(log_dir()),
            "entries": entries,
        }

    def bundle(
        self,
        cfg: AppConfig,
        doctor_payload: dict[str, Any],
        pacer_events: list[dict[str, Any]] | None = None,
        snapshot: Any | None = None,
        output_dir: Path | None = None,
    ) -> Path:
        """Write a zip with the doctor report, redacted config, pacer events, last snapshot and logs."""
        base = output_dir or Path(tempfile.gettempdir())
        base.mkdir(parents=True, exist_ok=True)
        zip_path = base / f"telemetrylab-diagnostics-{datetime.now():%Y%m%d-%H%M%S}.zip"

        documents: dict[str, Any] = {
            "doctor.json": redact(doctor_payload),
            "config.redacted.json": redact(asdict(cfg)),
            "pacer_events.json": redact(pacer_events or []),
            "snapshot.json": _jsonable(snapshot),
        }
        logs = log_files()

        with zipfile.ZipFile(zip_path, "w", compression=zipfile.ZIP_DEFLATED) as zf:
            entries = list(documents) + [f"logs/{p.name}" for p in logs]
            zf.writestr("manifest.json", json.dumps(self._manifest(entries), indent=2, sort_keys=True))
            for name, document in documents.items():
                zf.writestr(name, json.dumps(document, indent=2, sort_keys=True, default=_jsonable))
            for item in logs:
                zf.write(item, arcname=f"logs/{item.name}")

        return zip_path
