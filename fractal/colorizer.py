"""Map escape magnitudes to colours through a gradient strip."""

from __future__ import annotations

import math
from pathlib import Path
from typing import Union

import numpy as np
from matplotlib import colormaps

from .canvas import Canvas, Color
from .errors import ConfigurationError

DEFAULT_GRADIENT_SCALE = 300.0
DEFAULT_GRADIENT_HEIGHT = 1024


def get_colormap(name):
    return colormaps[name]


class GradientColorizer:
    """Look up colours in column 0 of a one-pixel-wide vertical gradient.

    A magnitude ``m`` selects row ``round(scale * m)``, clamped to
    ``[lower, height - 1]``.
    """

    def __init__(self, strip: Canvas, scale: float = DEFAULT_GRADIENT_SCALE, lower: int = 1) -> None:
        if strip is None:
            raise ConfigurationError("a gradient strip is required")
        if lower < 0:
            raise ConfigurationError(f"lower gradient index must be non-negative, got {lower}")
        if strip.height < lower + 1:
            raise ConfigurationError(f"gradient strip must be at least {lower + 1} pixels tall, got {strip.height}")
        if not (scale > 0 and math.isfinite(scale)):
            raise ConfigurationError(f"gradient scale must be a positive finite number, got {scale!r}")
        self.strip = strip
        self.scale = float(scale)
        self.lower = int(lower)
        self.upper = strip.height - 1
        self._lut = strip.pixels[:, 0, :].copy()

    @classmethod
    def open(cls, path: Union[str, Path], **kwargs) -> GradientColorizer:
        return cls(Canvas.open(path), **kwargs)

    @classmethod
    def from_colormap(cls, name: str, height: int = DEFAULT_GRADIENT_HEIGHT, **kwargs) -> GradientColorizer:
        """Build the gradient strip by sampling a matplotlib colormap top to bottom."""

        try:
            cmap = get_colormap(name)
        except (KeyError, ValueError) as exc:
            raise ConfigurationError(f"unknown colormap '{name}'") from exc
        rgba = np.array(cmap(np.linspace(0.0, 1.0, height)), copy=True)
        strip = Canvas.from_array(np.uint8(np.clip(rgba * 255, 0, 255))[:, np.newaxis, :])
        strip.pixels[..., 3] = 255
        return cls(strip, **kwargs)

    @property
    def height(self) -> int:
        return self.strip.height

    def index(self, mag: float) -> int:
        row = math.floor(self.scale * mag + 0.5)
        return max(min(row, self.upper), self.lower)

    def colorize(self, mag: float) -> Color:
        r, g, b, a = self._lut[self.index(mag)]
        return int(r), int(g), int(b), int(a)

    def colorize_array(self, mags: np.ndarray) -> np.ndarray:
        """Colour a whole array of magnitudes, returning shape ``mags.shape + (4,)``."""

        rows = np.floor(self.scale * np.asarray(mags, dtype=np.float64) + 0.5)
        rows = np.clip(rows, self.lower, self.upper).astype(np.intp)
        return self._lut[rows]
