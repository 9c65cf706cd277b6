"""Platform collaborators: power-save signal providers and background keepers."""

from .keeper import LoggingKeeper, NullKeeper

try:  # pragma: no cover - optional at import time for minimal test environments
    from .power import (
        POWER_SOURCES,
        BatteryPowerSignal,
        CompositePowerSignal,
        PlatformProfilePowerSignal,
        PowerSignal,
        StaticPowerSignal,
        battery_info,
        build_power_signal,
    )
except Exception:  # pragma: no cover
    build_power_signal = None  # type: ignore[assignment]

__all__ = [
    "LoggingKeeper",
    "NullKeeper",
]

if build_power_signal is not None:
    __all__ += [
        "POWER_SOURCES",
        "BatteryPowerSignal",
        "CompositePowerSignal",
        "PlatformProfilePowerSignal",
        "PowerSignal",
        "StaticPowerSignal",
        "battery_info",
        "build_power_signal",
    ]
