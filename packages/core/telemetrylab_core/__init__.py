"""Core app services for settings, logging, resource budgets, diagnostics, and pacer assembly."""

from .config import AppConfig, load_config, save_config
from .performance import BudgetReport, BudgetStatus, PerformanceTargets, ResourceSampler

try:  # Keep import side effects tolerant in minimal test environments.
    from .diagnostics import DiagnosticsExporter, build_doctor_payload
    from .session import build_pacer, pacer_settings
except Exception:  # pragma: no cover
    DiagnosticsExporter = None  # type: ignore[assignment]
    build_doctor_payload = None  # type: ignore[assignment]
    build_pacer = None  # type: ignore[assignment]
    pacer_settings = None  # type: ignore[assignment]

__all__ = [
    "AppConfig",
    "BudgetReport",
    "BudgetStatus",
    "DiagnosticsExporter",
    "PerformanceTargets",
    "ResourceSampler",
    "build_doctor_payload",
    "build_pacer",
    "load_config",
    "pacer_settings",
    "save_config",
]
