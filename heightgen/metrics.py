"""Heightmap summary statistics."""

from __future__ import annotations

from dataclasses import dataclass

import numpy as np


@dataclass(frozen=True)
class HeightStats:
    """Distribution summary of one grid."""

    min_height: float
    max_height: float
    mean_height: float
    std_height: float
    finite_fraction: float
    hypsometric_integral: float


def height_stats(grid: np.ndarray) -> HeightStats:
    """Compute summary statistics over the finite samples of `grid`."""

    if grid.ndim != 2:
        raise ValueError("grid must be 2D")

    values = grid.astype(np.float64, copy=False)
    finite = values[np.isfinite(values)]
    if finite.size == 0:
        return HeightStats(0.0, 0.0, 0.0, 0.0, 0.0, 0.0)

    lo = float(finite.min())
    hi = float(finite.max())
    if hi > lo:
        hypsometric = float(np.mean((finite - lo) / (hi - lo)))
    else:
        hypsometric = 0.0
    return HeightStats(
        min_height=lo,
        max_height=hi,
        mean_height=float(finite.mean()),
        std_height=float(finite.std()),
        finite_fraction=float(finite.size / values.size),
        hypsometric_integral=hypsometric,
    )
