from __future__ import annotations

import numpy as np
import pytest

from heightgen.derive import float_preview_u8, height_u8, height_u16
from heightgen.metrics import height_stats


def test_height_stats_on_ramp() -> None:
    grid = np.tile(np.linspace(0.0, 1.0, 11), (4, 1))
    stats = height_stats(grid)

    assert stats.min_height == 0.0
    assert stats.max_height == 1.0
    assert stats.mean_height == pytest.approx(0.5)
    assert stats.hypsometric_integral == pytest.approx(0.5)
    assert stats.finite_fraction == 1.0


def test_height_stats_ignores_non_finite() -> None:
    grid = np.array([[0.2, np.nan], [0.4, 0.6]])
    stats = height_stats(grid)

    assert stats.finite_fraction == pytest.approx(0.75)
    assert stats.mean_height == pytest.approx(0.4)

    with pytest.raises(ValueError):
        height_stats(np.zeros(4))


def test_encodings_do_not_rescale() -> None:
    values = np.array([[0.0, 0.5], [1.0, 0.25]])

    assert height_u16(values).tolist() == [[0, 32768], [65535, 16384]]
    assert height_u8(values).tolist() == [[0, 128], [255, 64]]
    assert height_u16(values).dtype == np.uint16


def test_float_preview_spans_full_range() -> None:
    preview = float_preview_u8(np.linspace(-3.0, 5.0, 400).reshape(20, 20))

    assert preview.dtype == np.uint8
    assert int(preview.min()) == 0
    assert int(preview.max()) == 255


def test_symmetric_preview_centers_zero() -> None:
    delta = np.zeros((6, 6))
    delta[0, 0] = -0.02
    delta[5, 5] = 0.02
    preview = float_preview_u8(delta, robust_percentiles=(0.0, 100.0), symmetric=True)

    assert preview[2, 2] == 128
    assert preview[0, 0] == 0
    assert preview[5, 5] == 255
