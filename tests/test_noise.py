from __future__ import annotations

import numpy as np
import pytest

from heightgen.noise import PerlinNoise, permutation_table
from heightgen.rng import Mulberry32


def _noise(seed: int = 12345) -> PerlinNoise:
    return PerlinNoise(Mulberry32(seed))


def test_permutation_table_is_duplicated_permutation() -> None:
    table = permutation_table(Mulberry32(12345))

    assert table.shape == (512,)
    assert sorted(table[:256].tolist()) == list(range(256))
    assert np.array_equal(table[:256], table[256:])


def test_noise_vanishes_on_integer_lattice() -> None:
    noise = _noise()

    assert noise.noise(3.0, 7.0) == 0.0
    assert noise.noise(-12.0, 40.0, 2.0) == 0.0


def test_noise_range_and_scalar_array_agreement() -> None:
    noise = _noise()
    coords = Mulberry32(3).draw(2000).reshape(2, 1000) * 64.0 - 32.0

    values = noise.noise(coords[0], coords[1])
    assert values.shape == (1000,)
    assert float(np.max(np.abs(values))) <= 1.05

    for i in (0, 17, 512):
        assert noise.noise(float(coords[0, i]), float(coords[1, i])) == pytest.approx(float(values[i]))


def test_fractal_noise_deterministic_per_seed() -> None:
    xs = np.linspace(-3.0, 3.0, 64)
    a = _noise(1).fractal_noise(xs, xs * 0.5, 4, 0.5, 2.0)
    b = _noise(1).fractal_noise(xs, xs * 0.5, 4, 0.5, 2.0)
    c = _noise(2).fractal_noise(xs, xs * 0.5, 4, 0.5, 2.0)

    assert np.array_equal(a, b)
    assert not np.allclose(a, c)
    assert float(np.max(np.abs(a))) <= 1.05


def test_fractal_noise_rejects_zero_octaves() -> None:
    with pytest.raises(ValueError):
        _noise().fractal_noise(0.5, 0.5, 0, 0.5, 2.0)


def test_generate_heightmap_shape_and_small_scale_taper() -> None:
    heightmap = _noise().generate_heightmap(48, 32, 30.0, 4, 0.5, 2.0)

    assert heightmap.shape == (32, 48)
    # scale 30 tapers amplitude to 0.5 and skips the detail layers
    assert float(heightmap.min()) >= 0.0
    assert float(heightmap.max()) <= 0.5


def test_generate_heightmap_rejects_bad_dimensions() -> None:
    with pytest.raises(ValueError):
        _noise().generate_heightmap(0, 32, 30.0, 4, 0.5, 2.0)
    with pytest.raises(ValueError):
        _noise().generate_heightmap(32, 32, 0.0, 4, 0.5, 2.0)


def test_multi_frequency_adds_bounded_detail() -> None:
    noise = _noise()
    base = noise.generate_heightmap(40, 40, 120.0, 3, 0.5, 2.0)
    detailed = noise.generate_multi_frequency(40, 40, 120.0, 3, 0.5, 2.0)

    delta = np.abs(detailed - base)
    assert not np.array_equal(detailed, base)
    assert float(delta.max()) <= 0.15 * 0.15 * 1.05
