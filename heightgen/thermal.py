"""Thermal (talus) erosion."""

from __future__ import annotations

import numpy as np

from heightgen.config import ThermalConfig


# (dy, dx) axis neighbours.
_DIRECTIONS_4 = [
    (0, -1),
    (0, 1),
    (-1, 0),
    (1, 0),
]


class ThermalErosion:
    """Moves material downslope wherever a neighbour drop exceeds the talus threshold.

    Each iteration reads one snapshot and writes a separate buffer, so
    transfers within an iteration never see each other.
    """

    def __init__(self, config: ThermalConfig | None = None) -> None:
        self.config = config or ThermalConfig()

    def apply(self, grid: np.ndarray, iterations: int) -> np.ndarray:
        if iterations < 0:
            raise ValueError("iterations must be >= 0")

        out = grid.astype(np.float64, copy=True)
        if out.shape[0] < 3 or out.shape[1] < 3:
            return out
        for _ in range(iterations):
            out = self._single_pass(out)
        return out

    def _single_pass(self, snapshot: np.ndarray) -> np.ndarray:
        cfg = self.config
        height, width = snapshot.shape
        center = snapshot[1:-1, 1:-1]

        span = max(cfg.max_height - cfg.min_height, 1e-9)
        height_factor = np.clip((center - cfg.min_height) / span, 0.0, 1.0)
        adaptive_talus = cfg.talus * (1.0 - 0.5 * height_factor)

        excess = []
        for dy, dx in _DIRECTIONS_4:
            neighbor = snapshot[1 + dy : height - 1 + dy, 1 + dx : width - 1 + dx]
            diff = center - neighbor
            excess.append(np.where((diff > adaptive_talus) & (height_factor > 0.0), diff - adaptive_talus, 0.0))

        total_excess = excess[0] + excess[1] + excess[2] + excess[3]
        max_excess = np.maximum(np.maximum(excess[0], excess[1]), np.maximum(excess[2], excess[3]))
        moved = cfg.strength * height_factor * max_excess
        share = np.where(total_excess > 0.0, moved / np.where(total_excess > 0.0, total_excess, 1.0), 0.0)

        out = snapshot.copy()
        out[1:-1, 1:-1] -= moved
        for (dy, dx), part in zip(_DIRECTIONS_4, excess):
            out[1 + dy : height - 1 + dy, 1 + dx : width - 1 + dx] += share * part
        return out


def total_mass(grid: np.ndarray) -> float:
    return float(np.sum(grid, dtype=np.float64))
