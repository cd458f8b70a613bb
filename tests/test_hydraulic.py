from __future__ import annotations

import numpy as np

from heightgen.config import HydraulicConfig
from heightgen.hydraulic import Droplet, DropletState, HydraulicErosion
from heightgen.noise import PerlinNoise
from heightgen.rng import Mulberry32


def _terrain(size: int = 40) -> np.ndarray:
    return PerlinNoise(Mulberry32(5)).generate_heightmap(size, size, 120.0, 4, 0.5, 2.0)


def _ramp(size: int = 32) -> np.ndarray:
    return np.tile(np.linspace(0.0, 1.0, size), (size, 1))


def test_zero_iterations_returns_unchanged_copy() -> None:
    grid = _terrain()
    out, metrics = HydraulicErosion().apply_erosion(grid, 0, 0.4, Mulberry32(1))

    assert out is not grid
    assert np.array_equal(out, grid)
    assert metrics.droplets == 0
    assert metrics.total_steps == 0


def test_input_grid_is_not_mutated() -> None:
    grid = _ramp()
    before = grid.copy()
    HydraulicErosion().apply_erosion(grid, 100, 0.4, Mulberry32(1))

    assert np.array_equal(grid, before)


def test_erosion_is_deterministic_for_same_generator_seed() -> None:
    grid = _terrain()
    a, metrics_a = HydraulicErosion().apply_erosion(grid, 200, 0.4, Mulberry32(77))
    b, metrics_b = HydraulicErosion().apply_erosion(grid, 200, 0.4, Mulberry32(77))
    c, _ = HydraulicErosion().apply_erosion(grid, 200, 0.4, Mulberry32(78))

    assert np.array_equal(a, b)
    assert metrics_a == metrics_b
    assert not np.array_equal(a, c)


def test_slope_is_eroded_within_per_step_cap() -> None:
    grid = _ramp()
    intensity = 0.4
    out, metrics = HydraulicErosion().apply_erosion(grid, 300, intensity, Mulberry32(3))

    assert metrics.total_eroded > 0.0
    assert metrics.max_step_erosion <= 0.05 * intensity + 1e-12
    assert not np.array_equal(out, grid)
    assert float(out.min()) >= -1.0
    assert float(out.max()) <= 2.0


def test_every_droplet_terminates_once() -> None:
    _, metrics = HydraulicErosion().apply_erosion(_terrain(), 250, 0.6, Mulberry32(9))

    assert sum(metrics.terminations.values()) == 250
    assert set(metrics.terminations) == {
        DropletState.OUT_OF_BOUNDS.value,
        DropletState.LIFETIME_EXCEEDED.value,
        DropletState.WATER_DEPLETED.value,
    }
    assert metrics.total_steps <= 250 * HydraulicConfig().max_lifetime


def test_flat_terrain_is_unchanged() -> None:
    grid = np.full((24, 24), 0.5)
    out, metrics = HydraulicErosion().apply_erosion(grid, 100, 0.5, Mulberry32(4))

    assert np.array_equal(out, grid)
    assert metrics.total_eroded == 0.0


def test_simulate_ends_in_terminal_state_within_lifetime() -> None:
    grid = _terrain()
    erosion = HydraulicErosion()
    droplet = Droplet(x=20.5, y=20.5)

    state = erosion.simulate(droplet, grid.ravel().copy(), 40, 40, 0.4, Mulberry32(2))

    assert state is not DropletState.ALIVE
    assert state is droplet.state
    assert droplet.steps <= erosion.config.max_lifetime


def test_spawn_is_inside_interior() -> None:
    rng = Mulberry32(11)
    erosion = HydraulicErosion()
    for _ in range(100):
        droplet = erosion.spawn(30, 20, rng)
        assert 1.0 <= droplet.x < 29.0
        assert 1.0 <= droplet.y < 19.0
