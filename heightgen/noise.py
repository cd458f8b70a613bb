"""Gradient noise functions used by the heightmap pipeline."""

from __future__ import annotations

import numpy as np

from heightgen.rng import Mulberry32


def _fade(t: np.ndarray) -> np.ndarray:
    return t * t * t * (t * (t * 6.0 - 15.0) + 10.0)


def _lerp(t: np.ndarray, a: np.ndarray, b: np.ndarray) -> np.ndarray:
    return a + t * (b - a)


def _grad(hash_: np.ndarray, x: np.ndarray, y: np.ndarray, z: np.ndarray) -> np.ndarray:
    h = hash_ & 15
    u = np.where(h < 8, x, y)
    v = np.where(h < 4, y, np.where((h == 12) | (h == 14), x, z))
    return np.where(h & 1, -u, u) + np.where(h & 2, -v, v)


def permutation_table(rng: Mulberry32) -> np.ndarray:
    """Fisher-Yates shuffle of 0..255, duplicated to 512 entries."""

    p = list(range(256))
    for i in range(255, 0, -1):
        j = int(rng.next() * (i + 1))
        p[i], p[j] = p[j], p[i]
    return np.array(p + p, dtype=np.int64)


class PerlinNoise:
    """Seeded improved gradient noise with fractal summation."""

    def __init__(self, rng: Mulberry32) -> None:
        self.permutation = permutation_table(rng)

    def noise(self, x, y=0.0, z=0.0):
        """Evaluate gradient noise in [-1, 1] at scalar or array coordinates."""

        scalar = np.ndim(x) == 0 and np.ndim(y) == 0 and np.ndim(z) == 0
        x, y, z = np.broadcast_arrays(
            np.asarray(x, dtype=np.float64),
            np.asarray(y, dtype=np.float64),
            np.asarray(z, dtype=np.float64),
        )

        fx = np.floor(x)
        fy = np.floor(y)
        fz = np.floor(z)
        xi = fx.astype(np.int64) & 255
        yi = fy.astype(np.int64) & 255
        zi = fz.astype(np.int64) & 255
        x = x - fx
        y = y - fy
        z = z - fz

        u = _fade(x)
        v = _fade(y)
        w = _fade(z)

        p = self.permutation
        a = p[xi] + yi
        aa = p[a] + zi
        ab = p[a + 1] + zi
        b = p[xi + 1] + yi
        ba = p[b] + zi
        bb = p[b + 1] + zi

        value = _lerp(
            w,
            _lerp(
                v,
                _lerp(u, _grad(p[aa], x, y, z), _grad(p[ba], x - 1, y, z)),
                _lerp(u, _grad(p[ab], x, y - 1, z), _grad(p[bb], x - 1, y - 1, z)),
            ),
            _lerp(
                v,
                _lerp(u, _grad(p[aa + 1], x, y, z - 1), _grad(p[ba + 1], x - 1, y, z - 1)),
                _lerp(u, _grad(p[ab + 1], x, y - 1, z - 1), _grad(p[bb + 1], x - 1, y - 1, z - 1)),
            ),
        )
        if scalar:
            return float(value)
        return value

    def fractal_noise(
        self,
        x,
        y,
        octaves: int,
        persistence: float,
        lacunarity: float,
        jitter: float = 0.3,
    ):
        """Sum `octaves` jittered noise layers, normalized by total amplitude."""

        if octaves < 1:
            raise ValueError("octaves must be >= 1")

        value = np.zeros(np.broadcast(np.asarray(x), np.asarray(y)).shape, dtype=np.float64)
        amplitude = 1.0
        frequency = 1.0
        total_amplitude = 0.0

        for octave in range(octaves):
            # Per-octave offset keeps lattice cells of successive octaves from lining up.
            jitter_x = self.noise(octave * 17.13, octave * 29.77) * jitter / frequency
            jitter_y = self.noise(octave * 43.91, octave * 11.58) * jitter / frequency
            value += self.noise(x * frequency + jitter_x, y * frequency + jitter_y) * amplitude
            total_amplitude += amplitude
            amplitude *= persistence
            frequency *= lacunarity

        if total_amplitude == 0:
            return value
        value = value / total_amplitude
        if value.ndim == 0:
            return float(value)
        return value

    def generate_heightmap(
        self,
        width: int,
        height: int,
        scale: float,
        octaves: int,
        persistence: float,
        lacunarity: float,
    ) -> np.ndarray:
        """Sample fractal noise over a `height` x `width` grid, roughly in [0, 1]."""

        nx, ny = _sample_coordinates(width, height, scale)
        jitter = min(0.5, max(0.1, 0.8 / octaves))
        elevation = self.fractal_noise(nx, ny, octaves, persistence, lacunarity, jitter)

        if octaves > 1 and scale > 40:
            elevation = elevation + self.noise(nx * 4.2, ny * 4.2) * 0.08 + self.noise(nx * 1.7, ny * 1.7) * 0.12

        elevation = (elevation + 1.0) * 0.5
        elevation *= min(1.0, scale / 60.0)
        return np.asarray(elevation, dtype=np.float64)

    def generate_multi_frequency(
        self,
        width: int,
        height: int,
        scale: float,
        octaves: int,
        persistence: float,
        lacunarity: float,
        *,
        detail_scale_factor: float = 2.8,
        detail_amplitude: float = 0.15,
        detail_blend: float = 0.15,
    ) -> np.ndarray:
        """Base heightmap plus one independent high-frequency detail layer."""

        base = self.generate_heightmap(width, height, scale, octaves, persistence, lacunarity)
        nx, ny = _sample_coordinates(width, height, scale * detail_scale_factor)
        detail = self.noise(nx, ny) * detail_amplitude
        return base + detail * detail_blend


def _sample_coordinates(width: int, height: int, scale: float) -> tuple[np.ndarray, np.ndarray]:
    if width <= 0 or height <= 0:
        raise ValueError("width and height must be positive")
    if not scale > 0:
        raise ValueError("scale must be positive")

    xs = (np.arange(width, dtype=np.float64) / width - 0.5) * scale
    ys = (np.arange(height, dtype=np.float64) / height - 0.5) * scale
    nx = np.broadcast_to(xs[None, :], (height, width))
    ny = np.broadcast_to(ys[:, None], (height, width))
    return nx, ny
