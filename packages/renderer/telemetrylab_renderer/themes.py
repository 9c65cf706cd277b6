"""Built-in chart themes."""

from __future__ import annotations

from .models import ChartTheme

DEFAULT_THEME_NAME = "Neon Slate"

THEMES: dict[str, ChartTheme] = {
    "Neon Slate": ChartTheme(
        name="Neon Slate",
        background_start="#0A0F1D",
        background_end="#131B33",
        bar="#35D9FF",
        bar_jank="#FF5C7A",
        threshold="#FFD166",
        text_primary="#F4F7FF",
        text_secondary="#A9B5D1",
    ),
    "Paper": ChartTheme(
        name="Paper",
        background_start="#FAFAF7",
        background_end="#E9E7E0",
        bar="#3B6EA8",
        bar_jank="#C2410C",
        threshold="#6B7280",
        text_primary="#1F2937",
        text_secondary="#4B5563",
    ),
}


def list_themes() -> list[str]:
    return sorted(THEMES.keys())


def get_theme(name: str | None) -> ChartTheme:
    if not name:
        return THEMES[DEFAULT_THEME_NAME]
    return THEMES.get(name, THEMES[DEFAULT_THEME_NAME])
