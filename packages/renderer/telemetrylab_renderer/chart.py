"""Latency history bar chart for the desktop dashboard."""

from __future__ import annotations

import base64
from io import BytesIO
from typing import Sequence

from PIL import Image, ImageDraw, ImageFont

from .models import ChartTheme, hex_to_rgb
from .themes import get_theme


class LatencyChartRenderer:
    """Draws one bar per cycle, oldest on the left, with the jank threshold marked."""

    def __init__(self, width: int = 480, height: int = 140, jank_threshold_ms: int = 16) -> None:
        self.width = width
        self.height = height
        self.jank_threshold_ms = jank_threshold_ms
        self._margin_top = 18
        self._margin_bottom = 6

    def scale_ms(self, history: Sequence[int]) -> int:
        peak = max(history, default=0)
        # Headroom so the threshold line stays visible on quiet runs.
        return max(peak, self.jank_threshold_ms * 2, 1)

    def render_image(self, history: Sequence[int], theme_name: str | None = None) -> Image.Image:
        theme = get_theme(theme_name)
        image = Image.new("RGB", (self.width, self.height), hex_to_rgb(theme.background_start))
        self._paint_gradient(image, theme)
        draw = ImageDraw.Draw(image)

        scale = self.scale_ms(history)
        self._draw_bars(draw, theme, history, scale)
        self._draw_threshold(draw, theme, scale)
        self._draw_caption(draw, theme, history, scale)
        return image

    def preview_data_url(self, history: Sequence[int], theme_name: str | None = None) -> str:
        image = self.render_image(history, theme_name)
        buf = BytesIO()
        image.save(buf, format="PNG")
        b64 = base64.b64encode(buf.getvalue()).decode("ascii")
        return f"data:image/png;base64,{b64}"

    def _plot_height(self) -> int:
        return max(1, self.height - self._margin_top - self._margin_bottom)

    def _y_for(self, value_ms: float, scale: int) -> int:
        ratio = min(1.0, max(0.0, value_ms / scale))
        return self.height - self._margin_bottom - int(round(ratio * self._plot_height()))

    def _paint_gradient(self, image: Image.Image, theme: ChartTheme) -> None:
        top = hex_to_rgb(theme.background_start)
        bottom = hex_to_rgb(theme.background_end)
        draw = ImageDraw.Draw(image)
        for y in range(self.height):
            t = y / max(self.height - 1, 1)
            color = tuple(int(top[i] * (1 - t) + bottom[i] * t) for i in range(3))
            draw.line([(0, y), (self.width - 1, y)], fill=color)

    def _draw_bars(self, draw: ImageDraw.ImageDraw, theme: ChartTheme, history: Sequence[int], scale: int) -> None:
        if not history:
            return
        slot = self.width / len(history)
        bar_w = max(1, int(slot) - 1)
        base_y = self.height - self._margin_bottom
        normal = hex_to_rgb(theme.bar)
        jank = hex_to_rgb(theme.bar_jank)
        for idx, value in enumerate(history):
            x0 = int(idx * slot)
            y0 = min(self._y_for(value, scale), base_y - 1)
            fill = jank if value > self.jank_threshold_ms else normal
            draw.rectangle((x0, y0, x0 + bar_w - 1, base_y), fill=fill)

    def _draw_threshold(self, draw: ImageDraw.ImageDraw, theme: ChartTheme, scale: int) -> None:
        y = self._y_for(self.jank_threshold_ms, scale)
        color = hex_to_rgb(theme.threshold)
        for x in range(0, self.width, 8):
            draw.line([(x, y), (min(x + 4, self.width - 1), y)], fill=color)

    def _draw_caption(self, draw: ImageDraw.ImageDraw, theme: ChartTheme, history: Sequence[int], scale: int) -> None:
        font = ImageFont.load_default()
        latest = history[-1] if history else 0
        draw.text((6, 3), f"last {latest} ms", font=font, fill=hex_to_rgb(theme.text_primary))
        draw.text((self.width - 90, 3), f"scale {scale} ms", font=font, fill=hex_to_rgb(theme.text_secondary))
