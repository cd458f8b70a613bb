from __future__ import annotations

import numpy as np

from heightgen.displacement import DiamondSquare, apply_post_smoothing, displacement_size
from heightgen.noise import PerlinNoise
from heightgen.rng import Mulberry32


def test_displacement_size_rounds_up_to_power_of_two_plus_one() -> None:
    assert displacement_size(1) == 3
    assert displacement_size(2) == 3
    assert displacement_size(3) == 3
    assert displacement_size(4) == 5
    assert displacement_size(100) == 129
    assert displacement_size(257) == 257
    assert displacement_size(258) == 513


def test_generate_shape_and_range() -> None:
    grid = DiamondSquare(12345).generate(50, 0.5)

    assert grid.shape == (65, 65)
    assert float(grid.min()) >= 0.0
    assert float(grid.max()) <= 1.0
    assert np.isfinite(grid).all()


def test_generate_is_reproducible_across_calls_and_instances() -> None:
    ds = DiamondSquare(12345)
    first = ds.generate(257, 0.5)
    second = ds.generate(257, 0.5)
    other = DiamondSquare(12345).generate(257, 0.5)

    assert np.array_equal(first, second)
    assert np.array_equal(first, other)
    # Corners are drawn first and never touched by the interior passes.
    for y, x in ((0, 0), (0, 256), (256, 0), (256, 256)):
        assert 0.06 <= first[y, x] <= 0.24


def test_different_seeds_give_different_grids() -> None:
    a = DiamondSquare(1).generate(33, 0.5)
    b = DiamondSquare(2).generate(33, 0.5)

    assert not np.array_equal(a, b)


def test_set_seed_switches_sequence() -> None:
    ds = DiamondSquare(1)
    ds.set_seed(2)

    assert np.array_equal(ds.generate(17, 0.5), DiamondSquare(2).generate(17, 0.5))


def test_roughness_speeds_up_range_decay() -> None:
    fast_decay = DiamondSquare(7).generate(65, 0.9)
    slow_decay = DiamondSquare(7).generate(65, 0.1)

    assert float(np.abs(np.diff(slow_decay, axis=1)).mean()) > float(np.abs(np.diff(fast_decay, axis=1)).mean())


def test_generate_hybrid_stays_in_unit_range() -> None:
    ds = DiamondSquare(99)
    grid = ds.generate_hybrid(33, PerlinNoise(Mulberry32(99)), weight=0.4, roughness=0.5)

    assert grid.shape == (33, 33)
    assert float(grid.min()) >= 0.0
    assert float(grid.max()) <= 1.0


def test_post_smoothing_preserves_constant_grid() -> None:
    grid = np.full((9, 9), 0.4)

    assert np.allclose(apply_post_smoothing(grid, 0.3), 0.4)
    assert apply_post_smoothing(grid, 0.0) is grid
