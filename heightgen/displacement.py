"""Diamond-square midpoint displacement."""

from __future__ import annotations

import math

import numpy as np

from heightgen.config import DisplacementConfig, NoiseConfig
from heightgen.noise import PerlinNoise
from heightgen.rng import Mulberry32


_POST_KERNEL = np.array(
    [
        [0.03, 0.07, 0.03],
        [0.07, 0.60, 0.07],
        [0.03, 0.07, 0.03],
    ],
    dtype=np.float64,
)


def displacement_size(size: int) -> int:
    """Smallest `2^k + 1` (k >= 1) that is >= `size`."""

    if size < 1:
        raise ValueError("size must be >= 1")
    power = max(1, math.ceil(math.log2(size - 1))) if size > 2 else 1
    return (1 << power) + 1


class DiamondSquare:
    """Seeded diamond-square generator on `2^k + 1` grids.

    The generator is re-initialized from `seed` at the start of every
    `generate` call, so output depends only on the seed and arguments.
    """

    def __init__(self, seed: int, *, config: DisplacementConfig | None = None) -> None:
        self.config = config or DisplacementConfig()
        self.seed = seed
        self.random = Mulberry32(seed)

    def set_seed(self, seed: int) -> None:
        self.seed = seed
        self.random = Mulberry32(seed)

    def generate(self, size: int, roughness: float = 0.5, initial_height: float | None = None) -> np.ndarray:
        """Return a `(n, n)` grid in [0, 1] where `n = displacement_size(size)`."""

        cfg = self.config
        if initial_height is None:
            initial_height = cfg.initial_height

        self.random.reseed(self.seed)
        n = displacement_size(size)
        grid = np.zeros((n, n), dtype=np.float64)

        self._init_corners(grid, initial_height)
        self._displace(grid, roughness)
        grid = apply_post_smoothing(grid, cfg.post_smoothing)
        grid = self._wave_correction(grid, cfg.wave_correction)
        return grid

    def generate_hybrid(
        self,
        size: int,
        noise: PerlinNoise,
        *,
        noise_scale: float | None = None,
        weight: float = 0.4,
        roughness: float = 0.5,
        noise_config: NoiseConfig | None = None,
    ) -> np.ndarray:
        """Blend a softened displacement base with multi-frequency noise detail.

        Detail influence peaks at mid elevations and fades toward the
        extremes of the base.
        """

        ncfg = noise_config or NoiseConfig()
        if noise_scale is None:
            noise_scale = self.config.hybrid_noise_scale

        base = self.generate(size, roughness * 0.6, 0.2)
        n = base.shape[0]
        detail = noise.generate_multi_frequency(
            n,
            n,
            noise_scale,
            3,
            0.5,
            2.0,
            detail_scale_factor=ncfg.detail_scale_factor,
            detail_amplitude=ncfg.detail_amplitude,
            detail_blend=ncfg.detail_blend,
        )
        influence = weight * (1.0 - np.abs(base - 0.5) * 1.5)
        return np.clip(base + (detail - 0.5) * influence, 0.0, 1.0)

    def _init_corners(self, grid: np.ndarray, initial_height: float) -> None:
        last = grid.shape[0] - 1
        for y, x in ((0, 0), (0, last), (last, 0), (last, last)):
            grid[y, x] = (self.random.next() * 0.6 + 0.2) * initial_height

    def _displace(self, grid: np.ndarray, roughness: float) -> None:
        cfg = self.config
        n = grid.shape[0]
        step = n - 1
        height_range = cfg.initial_range

        while step > 1:
            half = step // 2
            self._diamond_step(grid, step, half, height_range)
            self._square_step(grid, step, half, height_range)
            height_range *= 2.0 ** (-roughness * cfg.range_decay)
            step = half

    def _diamond_step(self, grid: np.ndarray, step: int, half: int, height_range: float) -> None:
        n = grid.shape[0]
        centers = np.arange(half, n, step)
        ys = centers[:, None]
        xs = centers[None, :]

        avg = (
            grid[ys - half, xs - half]
            + grid[ys - half, xs + half]
            + grid[ys + half, xs - half]
            + grid[ys + half, xs + half]
        ) / 4.0

        draws = self.random.draw(2 * centers.size * centers.size).reshape(centers.size, centers.size, 2)
        irregularity = 0.6 + draws[..., 0] * 0.8
        pattern_break = np.where(
            self._pattern_mask(grid, centers, half),
            self.config.pattern_boost,
            1.0,
        )
        offset = (draws[..., 1] - 0.5) * height_range * _smoothing_factor(ys, xs, n) * irregularity * pattern_break
        grid[ys, xs] = np.clip(avg + offset, 0.0, 1.0)

    def _square_step(self, grid: np.ndarray, step: int, half: int, height_range: float) -> None:
        n = grid.shape[0]
        lattice = np.arange(0, n, half)
        parity = (lattice[:, None] // half + lattice[None, :] // half) % 2 == 1
        rows, cols = np.nonzero(parity)
        ys = lattice[rows]
        xs = lattice[cols]

        total = np.zeros(ys.shape, dtype=np.float64)
        count = np.zeros(ys.shape, dtype=np.float64)
        for dy, dx in ((-half, 0), (0, half), (half, 0), (0, -half)):
            ny = ys + dy
            nx = xs + dx
            valid = (ny >= 0) & (ny < n) & (nx >= 0) & (nx < n)
            total[valid] += grid[ny[valid], nx[valid]]
            count[valid] += 1.0
        avg = np.where(count > 0, total / np.maximum(count, 1.0), 0.0)

        draws = self.random.draw(2 * ys.size).reshape(ys.size, 2)
        irregularity = 0.7 + draws[:, 0] * 0.6
        offset = (draws[:, 1] - 0.5) * height_range * _smoothing_factor(ys, xs, n) * irregularity
        grid[ys, xs] = np.clip(avg + offset, 0.0, 1.0)

    def _pattern_mask(self, grid: np.ndarray, centers: np.ndarray, radius: int) -> np.ndarray:
        """Flag centers whose ring of 8 samples at `radius` is near-uniform.

        Samples are read from the grid as it stands, so ring cells not yet
        assigned at this level count with their current value.
        """

        n = grid.shape[0]
        ys = centers[:, None]
        xs = centers[None, :]
        center = grid[ys, xs]
        matches = np.zeros(center.shape, dtype=np.int32)
        for dy in (-radius, 0, radius):
            for dx in (-radius, 0, radius):
                if dy == 0 and dx == 0:
                    continue
                neighbor = grid[ys + dy, xs + dx]
                matches += np.abs(center - neighbor) < self.config.pattern_tolerance

        inside = (ys >= radius) & (ys < n - radius) & (xs >= radius) & (xs < n - radius)
        return inside & (matches >= self.config.pattern_min_matches)

    def _wave_correction(self, grid: np.ndarray, intensity: float) -> np.ndarray:
        if intensity <= 0:
            return grid

        n = grid.shape[0]
        if n < 5:
            return grid

        snapshot = grid
        core = snapshot[2:-2, 2:-2]
        lap = (
            snapshot[1:-3, 2:-2]
            + snapshot[3:-1, 2:-2]
            + snapshot[2:-2, 1:-3]
            + snapshot[2:-2, 3:-1]
            - 4.0 * core
        )
        flagged = np.abs(lap) > self.config.wave_threshold
        out = grid.copy()
        rows, cols = np.nonzero(flagged)
        if rows.size == 0:
            return out

        jitter = (self.random.draw(rows.size) - 0.5) * intensity * np.abs(lap[rows, cols])
        out[rows + 2, cols + 2] = np.clip(out[rows + 2, cols + 2] + jitter, 0.0, 1.0)
        return out


def apply_post_smoothing(grid: np.ndarray, strength: float) -> np.ndarray:
    """Blend interior cells toward a 3x3 weighted kernel average of a snapshot."""

    if strength <= 0 or grid.shape[0] < 3:
        return grid

    out = grid.copy()
    acc = np.zeros_like(grid[1:-1, 1:-1])
    for ky in range(3):
        for kx in range(3):
            acc += grid[ky : ky + grid.shape[0] - 2, kx : kx + grid.shape[1] - 2] * _POST_KERNEL[ky, kx]
    out[1:-1, 1:-1] = grid[1:-1, 1:-1] * (1.0 - strength) + acc * strength
    return out


def _smoothing_factor(ys: np.ndarray, xs: np.ndarray, n: int) -> np.ndarray:
    """Damp perturbation near borders; 1.0 well inside the grid."""

    edge = np.minimum(np.minimum(xs / n, ys / n), np.minimum((n - 1 - xs) / n, (n - 1 - ys) / n))
    return np.minimum(1.0, np.power(edge, 0.7) * 1.5 + 0.2)
