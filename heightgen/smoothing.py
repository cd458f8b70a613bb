"""Local smoothing kernels, normalization and output sanitizing."""

from __future__ import annotations

import numpy as np


def neighborhood_mean(grid: np.ndarray, *, include_center: bool) -> np.ndarray:
    """Mean over the available 3x3 neighbourhood of each cell.

    Border cells average only the neighbours that exist. A cell with no
    neighbours keeps its own value.
    """

    values = grid.astype(np.float64)
    height, width = values.shape
    padded = np.pad(values, 1, mode="constant", constant_values=0.0)
    ones = np.pad(np.ones_like(values), 1, mode="constant", constant_values=0.0)

    total = np.zeros_like(values)
    count = np.zeros_like(values)
    for dy in range(3):
        for dx in range(3):
            if not include_center and dy == 1 and dx == 1:
                continue
            total += padded[dy : dy + height, dx : dx + width]
            count += ones[dy : dy + height, dx : dx + width]

    return np.where(count > 0, total / np.maximum(count, 1.0), values)


def weighted_blend(grid: np.ndarray, intensity: float) -> np.ndarray:
    """`old * (1 - k) + mean3x3 * k` with `k` clipped to [0, 1]."""

    k = float(np.clip(intensity, 0.0, 1.0))
    values = grid.astype(np.float64)
    if k == 0.0:
        return values
    return values * (1.0 - k) + neighborhood_mean(values, include_center=True) * k


def laplacian_relax(grid: np.ndarray, iterations: int, alpha: float) -> np.ndarray:
    """Relax toward the 8-neighbour mean: `old + alpha * (mean - old)`, repeated."""

    if iterations < 0:
        raise ValueError("iterations must be >= 0")

    values = grid.astype(np.float64)
    for _ in range(iterations):
        values = values + alpha * (neighborhood_mean(values, include_center=False) - values)
    return values


def sanitize(grid: np.ndarray) -> np.ndarray:
    """Replace non-finite samples with 0 and clamp to [0, 1]."""

    cleaned = np.nan_to_num(grid.astype(np.float64), nan=0.0, posinf=0.0, neginf=0.0)
    return np.clip(cleaned, 0.0, 1.0)


def finite_range(grid: np.ndarray, *, sample_limit: int | None = None) -> tuple[float, float] | None:
    """Min and max over finite samples, optionally over a strided subset."""

    flat = grid.ravel()
    if sample_limit is not None and sample_limit > 0:
        stride = max(1, flat.size // sample_limit)
        flat = flat[::stride]
    finite = flat[np.isfinite(flat)]
    if finite.size == 0:
        return None
    return float(finite.min()), float(finite.max())


def rescale_unit(grid: np.ndarray, *, sample_limit: int | None = None) -> np.ndarray:
    """Map finite samples linearly onto [0, 1]; degenerate grids become 0.5."""

    values = grid.astype(np.float64)
    bounds = finite_range(values, sample_limit=sample_limit)
    if bounds is None or bounds[0] == bounds[1]:
        return np.full(values.shape, 0.5, dtype=np.float64)
    lo, hi = bounds
    return (values - lo) / (hi - lo)


def compress_peaks(values: np.ndarray, *, start: float = 0.9, softness: float = 0.5) -> np.ndarray:
    """Soften the top band above `start`; 0, `start` and 1 are fixed points."""

    if not 0.0 <= start < 1.0:
        raise ValueError("start must be in [0, 1)")

    if softness == 0.0:
        return values

    band = 1.0 - start
    t = np.clip((values - start) / band, 0.0, 1.0)
    eased = t * (1.0 + softness * (1.0 - t))
    return np.where(values > start, start + eased * band, values)


def normalize(
    grid: np.ndarray,
    *,
    gamma: float = 1.25,
    peak_start: float = 0.9,
    peak_softness: float = 0.5,
    sample_limit: int | None = None,
) -> np.ndarray:
    """Rescale to [0, 1], apply the tone curve and sanitize."""

    values = grid.astype(np.float64)
    bounds = finite_range(values, sample_limit=sample_limit)
    if bounds is None or bounds[0] == bounds[1]:
        return np.full(values.shape, 0.5, dtype=np.float64)

    lo, hi = bounds
    with np.errstate(invalid="ignore"):
        unit = np.where(np.isfinite(values), np.clip((values - lo) / (hi - lo), 0.0, 1.0), np.nan)
        shaped = np.power(unit, gamma)
        shaped = compress_peaks(shaped, start=peak_start, softness=peak_softness)
    return sanitize(shaped)
