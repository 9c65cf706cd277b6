"""Renderer package for the latency history chart."""

from .models import ChartTheme
from .themes import DEFAULT_THEME_NAME, get_theme, list_themes

try:  # pragma: no cover - optional at import time for test environments
    from .chart import LatencyChartRenderer
except Exception:  # pragma: no cover
    LatencyChartRenderer = None  # type: ignore[assignment]

__all__ = [
    "ChartTheme",
    "DEFAULT_THEME_NAME",
    "get_theme",
    "list_themes",
]

if LatencyChartRenderer is not None:
    __all__.append("LatencyChartRenderer")
