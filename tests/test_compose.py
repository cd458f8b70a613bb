from __future__ import annotations

import numpy as np
import pytest

from heightgen.compose import apply_final_wave_correction, hybrid_blend, ridge_mix, ridged, shape_mountains


def _ramp(size: int = 16) -> np.ndarray:
    return np.tile(np.linspace(0.0, 1.0, size), (size, 1))


def test_ridged_peaks_at_midrange() -> None:
    values = np.array([0.0, 0.5, 1.0])

    assert np.allclose(ridged(values), [0.0, 1.0, 0.0])
    assert np.array_equal(ridge_mix(values, 0.0), values)


def test_hybrid_blend_weight_extremes() -> None:
    noise = _ramp()
    displacement = 1.0 - _ramp()

    assert np.allclose(hybrid_blend(noise, displacement, 0.0), noise * 0.85)
    assert np.allclose(hybrid_blend(noise, displacement, 1.0), displacement)

    mixed = hybrid_blend(noise, displacement, 0.4, ridged_amount=0.35)
    assert float(mixed.min()) >= 0.0
    assert float(mixed.max()) <= 1.0


def test_hybrid_blend_rejects_shape_mismatch() -> None:
    with pytest.raises(ValueError):
        hybrid_blend(np.zeros((4, 4)), np.zeros((5, 5)), 0.5)


def test_lone_spike_is_pulled_halfway_to_local_mean() -> None:
    grid = np.zeros((9, 9))
    grid[4, 4] = 1.0

    shaped = shape_mountains(grid, 0.6, 0.35)

    assert shaped[4, 4] == pytest.approx(1.0 + (1.0 / 25.0 - 1.0) * 0.5)
    assert np.count_nonzero(shaped) == 1


def test_low_terrain_is_untouched() -> None:
    grid = _ramp() * 0.45

    assert np.array_equal(shape_mountains(grid), grid)


def test_shape_mountains_rejects_threshold_of_one() -> None:
    with pytest.raises(ValueError):
        shape_mountains(np.zeros((4, 4)), threshold=1.0)


def test_wave_correction_counts_only_changed_cells() -> None:
    flat = np.full((8, 8), 0.3)
    out, corrected = apply_final_wave_correction(flat)

    assert corrected == 0
    assert np.allclose(out, flat)

    spiky = flat.copy()
    spiky[3, 3] = 0.9
    out, corrected = apply_final_wave_correction(spiky, 0.12)
    assert corrected == 9
    assert out[3, 3] == pytest.approx(0.9 - 0.6 * 0.12)
