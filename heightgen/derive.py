"""Preview encodings of finished heightmaps."""

from __future__ import annotations

import numpy as np


def height_u16(values: np.ndarray) -> np.ndarray:
    """Encode [0, 1] heights to 16-bit grayscale without rescaling."""

    return np.round(np.clip(values, 0.0, 1.0) * 65535.0).astype(np.uint16)


def height_u8(values: np.ndarray) -> np.ndarray:
    """Encode [0, 1] heights to 8-bit grayscale without rescaling."""

    return np.round(np.clip(values, 0.0, 1.0) * 255.0).astype(np.uint8)


def float_preview_u8(
    values: np.ndarray,
    *,
    robust_percentiles: tuple[float, float] = (1.0, 99.0),
    symmetric: bool = False,
) -> np.ndarray:
    """Map an unbounded intermediate grid to 8-bit grayscale.

    With `symmetric`, zero maps to mid-gray so signed deltas (erosion minus
    pre-erosion) read as cut below and fill above.
    """

    finite = values[np.isfinite(values)]
    if finite.size == 0:
        return np.zeros(values.shape, dtype=np.uint8)

    if symmetric:
        bound = max(float(np.percentile(np.abs(finite), robust_percentiles[1])), 1e-6)
        lo, hi = -bound, bound
    else:
        lo, hi = (float(v) for v in np.percentile(finite, robust_percentiles))
    span = max(hi - lo, 1e-6)
    norm = np.clip((np.nan_to_num(values, nan=lo) - lo) / span, 0.0, 1.0)
    return np.round(norm * 255.0).astype(np.uint8)
