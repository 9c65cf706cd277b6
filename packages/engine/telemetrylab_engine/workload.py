"""Synthetic convolution workload with deterministic, load-proportional cost."""

from __future__ import annotations

import statistics
import time

import numpy as np

from .models import MAX_COMPUTE_LOAD, MIN_COMPUTE_LOAD, clamp_load

GRID_SIZE = 256

EDGE_KERNEL = np.array(
    [
        [1.0, 0.0, -1.0],
        [2.0, 0.0, -2.0],
        [1.0, 0.0, -1.0],
    ],
    dtype=np.float32,
)


def seed_grid(size: int = GRID_SIZE) -> np.ndarray:
    return (np.arange(size * size, dtype=np.float32) % 256).reshape((size, size))


def convolve_clamped(grid: np.ndarray, kernel: np.ndarray = EDGE_KERNEL) -> np.ndarray:
    """One 3x3 pass where out-of-range neighbours clamp to the nearest edge cell.

    Output cell (y, x) is the sum of grid[y + ky - 1, x + kx - 1] * kernel[ky, kx].
    """
    height, width = grid.shape
    k_h, k_w = kernel.shape
    padded = np.pad(grid, ((k_h // 2, k_h // 2), (k_w // 2, k_w // 2)), mode="edge")
    out = np.zeros_like(grid)
    for ky in range(k_h):
        for kx in range(k_w):
            out += kernel[ky, kx] * padded[ky : ky + height, kx : kx + width]
    return out


class WorkloadGenerator:
    """Burns CPU time proportional to the requested intensity."""

    def __init__(self, size: int = GRID_SIZE, kernel: np.ndarray = EDGE_KERNEL) -> None:
        self.size = size
        self.kernel = kernel

    def run(self, intensity: int) -> None:
        grid = seed_grid(self.size)
        for _ in range(clamp_load(intensity)):
            grid = convolve_clamped(grid, self.kernel)

    def profile(self, repeats: int = 5) -> dict[int, float]:
        """Median wall-clock cost in milliseconds for each intensity level."""
        out: dict[int, float] = {}
        for level in range(MIN_COMPUTE_LOAD, MAX_COMPUTE_LOAD + 1):
            samples = []
            for _ in range(max(1, repeats)):
                start = time.perf_counter()
                self.run(level)
                samples.append((time.perf_counter() - start) * 1000.0)
            out[level] = float(statistics.median(samples))
        return out
