import numpy as np
import pytest

from fractal import Canvas, ConfigurationError, GradientColorizer


def test_small_magnitudes_use_row_one(colorizer):
    assert colorizer.index(0.0) == 1
    assert colorizer.colorize(0.0) == (1, 0, 0, 255)
    assert colorizer.index(0.0016) == 1


def test_index_rounds_scaled_magnitude(colorizer):
    assert colorizer.index(0.5) == 150
    assert colorizer.index(0.01) == 3


def test_escaped_magnitude_uses_last_row(colorizer):
    assert colorizer.index(1000.0) == 399
    assert colorizer.colorize(1000.0) == (399 % 256, 1, 0, 255)


def test_index_always_in_range(colorizer):
    for mag in np.linspace(0.0, 1000.0, 257):
        assert 1 <= colorizer.index(mag) <= colorizer.height - 1


def test_array_matches_scalar(colorizer):
    mags = np.array([[0.0, 0.2, 0.5], [1.0, 2.0, 1000.0]])
    colors = colorizer.colorize_array(mags)
    assert colors.shape == (2, 3, 4)
    for (y, x), mag in np.ndenumerate(mags):
        assert tuple(colors[y, x]) == colorizer.colorize(mag)


def test_custom_scale(strip):
    colorizer = GradientColorizer(strip, scale=10.0)
    assert colorizer.index(2.0) == 20


def test_strip_must_have_two_rows():
    with pytest.raises(ConfigurationError):
        GradientColorizer(Canvas(1, 1))


def test_missing_strip_rejected():
    with pytest.raises(ConfigurationError):
        GradientColorizer(None)


def test_invalid_scale_rejected(strip):
    with pytest.raises(ConfigurationError):
        GradientColorizer(strip, scale=0.0)


def test_from_colormap():
    colorizer = GradientColorizer.from_colormap("viridis", 64)
    assert colorizer.height == 64
    assert colorizer.strip.width == 1
    assert colorizer.colorize(0.0)[3] == 255


def test_unknown_colormap_rejected():
    with pytest.raises(ConfigurationError):
        GradientColorizer.from_colormap("no-such-colormap")


def test_open_reads_first_column(tmp_path, strip):
    path = tmp_path / "gradient.png"
    strip.to_image().save(path)
    colorizer = GradientColorizer.open(path)
    assert colorizer.colorize(0.5) == (150, 0, 0, 255)
