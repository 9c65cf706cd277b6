"""Power-save signal providers with graceful platform fallbacks."""

from __future__ import annotations

import logging
from pathlib import Path

import psutil

logger = logging.getLogger("telemetrylab.platform")

PLATFORM_PROFILE_PATH = Path("/sys/firmware/acpi/platform_profile")
POWER_SOURCES = ("auto", "battery", "profile", "on", "off")


class PowerSignal:
    """Base provider: power-save is never reported."""

    name = "none"

    def is_power_save_mode_active(self) -> bool:
        return False


class StaticPowerSignal(PowerSignal):
    name = "static"

    def __init__(self, active: bool = False) -> None:
        self.active = bool(active)

    def is_power_save_mode_active(self) -> bool:
        return self.active


class BatteryPowerSignal(PowerSignal):
    """Active while discharging at or below the threshold percentage."""

    name = "battery"

    def __init__(self, threshold_percent: float = 20.0) -> None:
        self.threshold_percent = float(threshold_percent)

    def is_power_save_mode_active(self) -> bool:
        try:
            battery = psutil.sensors_battery()
        except Exception as exc:
            logger.debug(f"battery query failed: {exc}")
            return False
        if battery is None or battery.power_plugged is None:
            return False
        return (not battery.power_plugged) and float(battery.percent) <= self.threshold_percent


class PlatformProfilePowerSignal(PowerSignal):
    """Reads the ACPI platform profile exposed by power-profiles-daemon and friends."""

    name = "profile"

    def __init__(self, path: Path = PLATFORM_PROFILE_PATH) -> None:
        self.path = path

    def is_power_save_mode_active(self) -> bool:
        try:
            value = self.path.read_text(encoding="utf-8").strip().lower()
        except OSError:
            return False
        return value in ("low-power", "quiet")


class CompositePowerSignal(PowerSignal):
    name = "composite"

    def __init__(self, signals: list[PowerSignal]) -> None:
        self.signals = list(signals)

    def is_power_save_mode_active(self) -> bool:
        return any(s.is_power_save_mode_active() for s in self.signals)


def build_power_signal(source: str = "auto", battery_threshold_percent: float = 20.0) -> PowerSignal:
    if source == "on":
        return StaticPowerSignal(True)
    if source == "off":
        return StaticPowerSignal(False)
    if source == "battery":
        return BatteryPowerSignal(battery_threshold_percent)
    if source == "profile":
        return PlatformProfilePowerSignal()
    return CompositePowerSignal([PlatformProfilePowerSignal(), BatteryPowerSignal(battery_threshold_percent)])


def battery_info() -> dict[str, object] | None:
    try:
        battery = psutil.sensors_battery()
    except Exception:
        return None
    if battery is None:
        return None
    return {
        "percent": float(battery.percent),
        "power_plugged": battery.power_plugged,
        "secsleft": battery.secsleft if isinstance(battery.secsleft, int) and battery.secsleft >= 0 else None,
    }
