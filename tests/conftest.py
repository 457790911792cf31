import numpy as np
import pytest

from fractal import Canvas, GradientColorizer


@pytest.fixture
def strip():
    """A 400 row gradient whose row ``i`` has red = i % 256 and green = i // 256."""

    rows = np.arange(400)
    pixels = np.zeros((400, 1, 4), dtype=np.uint8)
    pixels[:, 0, 0] = rows % 256
    pixels[:, 0, 1] = rows // 256
    pixels[:, 0, 3] = 255
    return Canvas.from_array(pixels)


@pytest.fixture
def colorizer(strip):
    return GradientColorizer(strip)
