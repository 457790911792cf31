"""RGBA pixel buffer with simple raster drawing primitives."""

from __future__ import annotations

import logging
import math
from pathlib import Path
from typing import Sequence, Tuple, Union

import numpy as np
import PIL.Image

from .errors import CanvasBoundsError, ConfigurationError
from .vector import Vector2D

logger = logging.getLogger(__name__)

Color = Tuple[int, int, int, int]

SPIRAL_SEGMENTS = 10000
SPIRAL_TURN = 0.03
SPIRAL_DECAY = 0.999


def as_color(color: Sequence[int]) -> Color:
    """Normalise an RGB or RGBA sequence to an opaque 8-bit RGBA tuple."""

    if len(color) not in (3, 4):
        raise ConfigurationError(f"color must have 3 or 4 channels, got {len(color)}")
    r, g, b = (int(channel) for channel in color[:3])
    for channel in (r, g, b):
        if not 0 <= channel <= 255:
            raise ConfigurationError(f"color channel {channel} outside [0, 255]")
    return (r, g, b, 255)


class Canvas:
    """A ``width`` x ``height`` grid of RGBA pixels.

    Pixels live in ``self.pixels``, a ``numpy.uint8`` array of shape
    ``(height, width, 4)`` indexed as ``pixels[y, x]``.
    """

    def __init__(self, width: int, height: int) -> None:
        if not isinstance(width, (int, np.integer)) or not isinstance(height, (int, np.integer)):
            raise ConfigurationError(f"canvas dimensions must be integers, got {width!r}x{height!r}")
        if width <= 0 or height <= 0:
            raise ConfigurationError(f"canvas dimensions must be positive, got {width}x{height}")
        self.width = int(width)
        self.height = int(height)
        self.pixels = np.zeros((self.height, self.width, 4), dtype=np.uint8)

    @classmethod
    def from_array(cls, array: np.ndarray) -> Canvas:
        """Build a canvas from a copy of an ``(H, W, 4)`` or ``(H, W, 3)`` array."""

        array = np.asarray(array)
        if array.ndim != 3 or array.shape[2] not in (3, 4):
            raise ConfigurationError(f"expected an (H, W, 3|4) array, got shape {array.shape}")
        canvas = cls(array.shape[1], array.shape[0])
        canvas.pixels[..., : array.shape[2]] = np.clip(array, 0, 255).astype(np.uint8)
        if array.shape[2] == 3:
            canvas.pixels[..., 3] = 255
        return canvas

    @classmethod
    def from_image(cls, image: PIL.Image.Image) -> Canvas:
        if image.mode != "RGBA":
            image = image.convert("RGBA")
        return cls.from_array(np.array(image, copy=True))

    @classmethod
    def open(cls, path: Union[str, Path]) -> Canvas:
        with PIL.Image.open(path) as image:
            return cls.from_image(image)

    def to_image(self) -> PIL.Image.Image:
        return PIL.Image.fromarray(self.pixels.copy())

    @property
    def size(self) -> tuple[int, int]:
        return self.width, self.height

    def contains(self, x: int, y: int) -> bool:
        return 0 <= x < self.width and 0 <= y < self.height

    def _check(self, x: int, y: int) -> None:
        if not self.contains(x, y):
            raise CanvasBoundsError(f"pixel ({x}, {y}) outside {self.width}x{self.height} canvas")

    def get(self, x: int, y: int) -> Color:
        self._check(x, y)
        r, g, b, a = self.pixels[y, x]
        return int(r), int(g), int(b), int(a)

    def set(self, x: int, y: int, color: Sequence[int]) -> None:
        self._check(x, y)
        self.pixels[y, x] = as_color(color)

    def fill(self, color: Sequence[int]) -> None:
        self.pixels[...] = as_color(color)

    def clone(self) -> Canvas:
        clone = Canvas(self.width, self.height)
        clone.pixels[...] = self.pixels
        return clone

    def copy_from(self, other: Canvas) -> None:
        if other.size != self.size:
            raise ConfigurationError(f"cannot copy a {other.width}x{other.height} canvas into {self.width}x{self.height}")
        self.pixels[...] = other.pixels

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Canvas):
            return NotImplemented
        return self.size == other.size and bool(np.array_equal(self.pixels, other.pixels))

    def __repr__(self) -> str:
        return f"Canvas({self.width}, {self.height})"

    # Drawing primitives clip to the canvas instead of raising.

    def _plot(self, x: int, y: int, color: Color) -> bool:
        if not self.contains(x, y):
            return False
        self.pixels[y, x] = color
        return True

    def draw_gradient(self) -> None:
        """Paint a red/green test gradient over the whole canvas."""

        xs = (255 * np.arange(self.width) // self.width).astype(np.uint8)
        ys = (255 * np.arange(self.height) // self.height).astype(np.uint8)
        self.pixels[..., 0] = xs[np.newaxis, :]
        self.pixels[..., 1] = ys[:, np.newaxis]
        self.pixels[..., 2] = 55
        self.pixels[..., 3] = 255

    def draw_line(self, color: Sequence[int], start: Vector2D, end: Vector2D) -> None:
        """Walk from ``start`` towards ``end`` one unit at a time.

        The walk takes ``round(length)`` steps, so ``end`` itself is not
        painted and a zero-length line paints nothing.
        """

        rgba = as_color(color)
        delta = end - start
        length = delta.length()
        steps = int(math.floor(length + 0.5))
        if steps == 0:
            return
        x_step, y_step = delta.x / length, delta.y / length
        clipped = 0
        for i in range(steps):
            if not self._plot(math.floor(start.x + i * x_step), math.floor(start.y + i * y_step), rgba):
                clipped += 1
        if clipped:
            logger.debug("line clipped: %d of %d points outside %dx%d canvas", clipped, steps, self.width, self.height)

    def draw_circle(self, color: Sequence[int], center: Vector2D, radius: int) -> None:
        """Fill every pixel whose offset from ``center`` lies within ``radius``."""

        rgba = as_color(color)
        if radius < 0:
            raise ConfigurationError(f"circle radius must be non-negative, got {radius}")
        cx, cy = math.floor(center.x), math.floor(center.y)
        offsets = np.arange(-radius, radius + 1)
        dx, dy = np.meshgrid(offsets, offsets)
        inside = dx * dx + dy * dy <= radius * radius
        xs = cx + dx[inside]
        ys = cy + dy[inside]
        visible = (xs >= 0) & (xs < self.width) & (ys >= 0) & (ys < self.height)
        if not visible.all():
            logger.debug("circle at (%d, %d) radius %d clipped to canvas", cx, cy, radius)
        self.pixels[ys[visible], xs[visible]] = rgba

    def draw_rect(self, color: Sequence[int], lo: Vector2D, hi: Vector2D) -> None:
        """Fill the inclusive rectangle spanned by the ``lo`` and ``hi`` corners."""

        rgba = as_color(color)
        if not (self.contains(math.floor(lo.x), math.floor(lo.y)) and self.contains(math.floor(hi.x), math.floor(hi.y))):
            logger.debug("rect (%.1f, %.1f)-(%.1f, %.1f) clipped to canvas", lo.x, lo.y, hi.x, hi.y)
        x0 = max(math.floor(lo.x), 0)
        y0 = max(math.floor(lo.y), 0)
        x1 = min(math.floor(hi.x), self.width - 1)
        y1 = min(math.floor(hi.y), self.height - 1)
        if x0 > x1 or y0 > y1:
            return
        self.pixels[y0 : y1 + 1, x0 : x1 + 1] = rgba

    def draw_spiral(self, color: Sequence[int], start: Vector2D) -> None:
        rgba = as_color(color)
        direction = Vector2D(0.0, 2.0)
        last = start
        for _ in range(SPIRAL_SEGMENTS):
            following = last + direction
            self.draw_line(rgba, last, following)
            direction = direction.rotated(SPIRAL_TURN).scaled(SPIRAL_DECAY)
            last = following
        logger.debug("spiral from (%.1f, %.1f) ended at (%.1f, %.1f)", start.x, start.y, last.x, last.y)
