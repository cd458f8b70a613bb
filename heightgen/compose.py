"""Layer blending, mountain-mass shaping and wave correction."""

from __future__ import annotations

import logging

import numpy as np
from scipy.ndimage import uniform_filter

from heightgen.smoothing import neighborhood_mean


logger = logging.getLogger(__name__)


def ridged(values: np.ndarray, power: float = 1.5) -> np.ndarray:
    """Fold [0, 1] values so mid-range becomes ridges: `(1 - |2p - 1|) ** power`."""

    folded = np.clip(1.0 - np.abs(2.0 * values - 1.0), 0.0, 1.0)
    return np.power(folded, power)


def ridge_mix(values: np.ndarray, amount: float, power: float = 1.5) -> np.ndarray:
    """Mix `values` toward their ridged form by `amount` in [0, 1]."""

    p = values.astype(np.float64)
    amount = float(np.clip(amount, 0.0, 1.0))
    if amount == 0.0:
        return p
    return p * (1.0 - amount) + ridged(p, power) * amount


def hybrid_blend(
    noise: np.ndarray,
    displacement: np.ndarray,
    weight: float,
    *,
    ridged_amount: float = 0.0,
    ridge_power: float = 1.5,
    noise_gain: float = 0.85,
) -> np.ndarray:
    """Linear per-cell blend of a (optionally ridged) noise map with a displacement map."""

    if noise.shape != displacement.shape:
        raise ValueError(f"noise shape {noise.shape} does not match displacement shape {displacement.shape}")

    p = ridge_mix(noise, ridged_amount, ridge_power) * noise_gain
    return np.clip(p * (1.0 - weight) + displacement * weight, 0.0, 1.0)


def shape_mountains(
    grid: np.ndarray,
    threshold: float = 0.6,
    merge: float = 0.35,
    *,
    lone_peak_pull: float = 0.5,
) -> np.ndarray:
    """Pull high cells toward their 5x5 mean so isolated spikes merge into massifs."""

    if not 0.0 <= threshold < 1.0:
        raise ValueError("threshold must be in [0, 1)")

    height = grid.astype(np.float64)
    local_mean = uniform_filter(height, size=5, mode="nearest")

    above = np.clip((height - threshold) / (1.0 - threshold), 0.0, 1.0)
    pull = np.where(height > threshold, merge * above, 0.0)

    lone_peak = (local_mean < 0.65 * threshold) & (height > 0.85 * threshold)
    pull = np.where(lone_peak, np.maximum(pull, lone_peak_pull), pull)

    return height + (local_mean - height) * pull


def apply_final_wave_correction(grid: np.ndarray, strength: float = 0.12) -> tuple[np.ndarray, int]:
    """Nudge every cell toward its 8-neighbour mean; return the grid and corrected-cell count."""

    height = grid.astype(np.float64)
    mean = neighborhood_mean(height, include_center=False)
    out = height + (mean - height) * strength
    corrected = int(np.count_nonzero(np.abs(out - height) > 1e-4))
    logger.debug("Wave correction adjusted %d cells", corrected)
    return out, corrected
