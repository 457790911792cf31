import numpy as np
import pytest

from fractal import ConfigurationError, RenderCancelled, escape_magnitude, escape_magnitudes, sample_grid, to_sample
from fractal.evaluator import ITERATION_SLICE


@pytest.mark.parametrize("center", [0j, 1 + 1j, -0.71 - 0.25j])
@pytest.mark.parametrize("zoom", [1.0, 0.5, 16000.0])
def test_origin_pixel_maps_to_center(zoom, center):
    assert to_sample(0, 0, zoom, center) == center


def test_to_sample_scales_by_zoom():
    assert to_sample(10, -20, 2.0, 1 + 1j) == 6 - 9j


@pytest.mark.parametrize("zoom", [0.0, -1.0, float("nan"), float("inf")])
def test_invalid_zoom_rejected(zoom):
    with pytest.raises(ConfigurationError):
        to_sample(1, 1, zoom, 0j)


@pytest.mark.parametrize("c", [0j, -1 + 0j, -2 + 0j, 0.25 + 0j, -0.1 + 0.1j])
def test_members_stay_bounded(c):
    for max_iterations in (10, 50, 200):
        assert escape_magnitude(c, max_iterations) < 1000


def test_known_magnitudes():
    assert escape_magnitude(0j, 50) == 0.0
    # -1 cycles 0 -> -1 -> 0, ending on 0 after an even number of steps
    assert escape_magnitude(-1 + 0j, 50) == 0.0
    assert escape_magnitude(-2 + 0j, 50) == 2.0


@pytest.mark.parametrize("c", [3 + 0j, 2j, -2.1 + 0j, 1.5 + 1.5j, -1.9 - 1.9j])
def test_points_outside_radius_two_escape(c):
    assert escape_magnitude(c, 50) == 1000.0


def test_bailout_is_configurable():
    assert escape_magnitude(3 + 0j, 50, bailout=10.0) == 10.0


def test_vectorised_matches_scalar():
    samples = np.array([[0j, -1, -2, 0.25], [3, 2j, 1 + 1j, -0.1 + 0.1j]], dtype=np.complex128)
    mags = escape_magnitudes(samples, 50)
    assert mags.shape == samples.shape
    expected = np.array([[escape_magnitude(c, 50) for c in row] for row in samples])
    np.testing.assert_allclose(mags, expected, rtol=1e-9, atol=1e-12)


def test_vectorised_empty_input():
    assert escape_magnitudes(np.zeros((0, 3), dtype=np.complex128)).shape == (0, 3)


def test_sample_grid_centres_origin():
    grid = sample_grid(10, 10, 1.0, 0j)
    assert grid.shape == (10, 10)
    assert grid[5, 5] == 0j
    assert grid[0, 0] == -5 - 5j
    assert grid[2, 7] == 2 - 3j


def test_sample_grid_matches_to_sample():
    grid = sample_grid(7, 5, 3.0, -0.5 + 0.25j)
    for y in range(5):
        for x in range(7):
            assert grid[y, x] == to_sample(x - 7 // 2, y - 5 // 2, 3.0, -0.5 + 0.25j)


def test_sample_grid_row_range():
    grid = sample_grid(10, 10, 1.0, 0j, range(2, 4))
    assert grid.shape == (2, 10)
    assert grid[0, 0] == -5 - 3j


def test_cancel_between_iteration_slices():
    calls = []

    def should_cancel():
        calls.append(None)
        return len(calls) > 1

    with pytest.raises(RenderCancelled):
        escape_magnitudes(np.array([0j]), 100 * ITERATION_SLICE, should_cancel=should_cancel)
    assert len(calls) == 2


def test_cancel_not_polled_once_every_sample_escaped():
    calls = []
    mags = escape_magnitudes(np.array([3 + 0j]), 100 * ITERATION_SLICE, should_cancel=lambda: calls.append(None))
    assert mags[0] == 1000.0
    assert len(calls) == 1
