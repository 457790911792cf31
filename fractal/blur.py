"""Windowed convolution blur over a fixed family of weight functions."""

from __future__ import annotations

import enum
import logging
import math
from dataclasses import dataclass
from time import time
from typing import Optional

import numpy as np
import tensorflow as tf

from .canvas import Canvas
from .errors import ConfigurationError

logger = logging.getLogger(__name__)


class WeightKind(enum.Enum):
    BOX = "box"
    DISTANCE = "distance"
    MOTION = "motion"
    DOUBLE = "double"


@dataclass(frozen=True)
class WeightFunction:
    """Weight given to the pixel at offset ``(dx, dy)`` from the one being blurred.

    ``split`` is only used by :attr:`WeightKind.DOUBLE`, which samples the two
    pixels ``split`` columns to either side.
    """

    kind: WeightKind
    split: int = 0

    def __post_init__(self) -> None:
        if not isinstance(self.kind, WeightKind):
            raise ConfigurationError(f"unknown weight kind {self.kind!r}")
        if self.split < 0:
            raise ConfigurationError(f"double blur split must be non-negative, got {self.split}")

    @classmethod
    def box(cls) -> WeightFunction:
        return cls(WeightKind.BOX)

    @classmethod
    def distance(cls) -> WeightFunction:
        return cls(WeightKind.DISTANCE)

    @classmethod
    def motion(cls) -> WeightFunction:
        return cls(WeightKind.MOTION)

    @classmethod
    def double(cls, split: int) -> WeightFunction:
        return cls(WeightKind.DOUBLE, split)

    @classmethod
    def parse(cls, text: str) -> WeightFunction:
        """Parse ``box``, ``distance``, ``motion`` or ``double:<split>``."""

        name, _, arg = text.strip().lower().partition(":")
        try:
            kind = WeightKind(name)
        except ValueError:
            choices = ", ".join(k.value for k in WeightKind)
            raise ConfigurationError(f"unknown blur '{text}'. Valid choices: {choices}.") from None
        if kind is WeightKind.DOUBLE:
            try:
                return cls.double(int(arg) if arg else 1)
            except ValueError:
                raise ConfigurationError(f"double blur split must be an integer, got '{arg}'") from None
        if arg:
            raise ConfigurationError(f"blur '{name}' takes no argument")
        return cls(kind)

    def __call__(self, dx: int, dy: int) -> float:
        if self.kind is WeightKind.BOX:
            return 1.0
        if self.kind is WeightKind.DISTANCE:
            return 1.0 / (1.0 + math.hypot(dx, dy))
        if self.kind is WeightKind.MOTION:
            if dy != 0 or dx < 0:
                return 0.0
            return 0.3 + 0.7 / math.sqrt(1 + dx)
        if dy == 0 and (dx == self.split or dx == -self.split):
            return 1.0
        return 0.0


def weight_kernel(weight: WeightFunction, radius: int) -> np.ndarray:
    """Tabulate ``weight`` over the window, ``kernel[radius + dy, radius + dx]``."""

    if radius < 0:
        raise ConfigurationError(f"blur radius must be non-negative, got {radius}")
    size = 2 * radius + 1
    kernel = np.empty((size, size), dtype=np.float64)
    for dy in range(-radius, radius + 1):
        for dx in range(-radius, radius + 1):
            kernel[radius + dy, radius + dx] = weight(dx, dy)
    return kernel


def _correlate(planes: np.ndarray, kernel: np.ndarray) -> np.ndarray:
    # conv2d is a cross-correlation, and SAME padding pads with zeros, so taps
    # that fall outside the canvas contribute nothing.
    images = tf.convert_to_tensor(planes[..., np.newaxis], dtype=tf.float64)
    filters = tf.convert_to_tensor(kernel[:, :, np.newaxis, np.newaxis], dtype=tf.float64)
    out = tf.nn.conv2d(images, filters, strides=1, padding="SAME")
    return out.numpy()[..., 0]


def blur(canvas: Canvas, radius: int, weight: WeightFunction, *, device: Optional[str] = None) -> Canvas:
    """Return a blurred copy of ``canvas``.

    Each output pixel is the ``weight``-weighted mean of the pixels within
    ``radius`` of it. Pixels outside the canvas are left out of both the sum
    and the normaliser. The source canvas is not modified.
    """

    kernel = weight_kernel(weight, radius)
    if not kernel.sum() > 0:
        raise ConfigurationError(f"{weight.kind.value} blur has no positive weight within radius {radius}")

    start_time = time()
    source = canvas.clone()
    # Batch of the three colour planes plus an all-ones plane for the normaliser.
    planes = np.concatenate(
        (
            np.moveaxis(source.pixels[..., :3], -1, 0).astype(np.float64),
            np.ones((1, canvas.height, canvas.width), dtype=np.float64),
        )
    )
    with tf.device(device if device is not None else "/CPU:0"):
        sums = _correlate(planes, kernel)

    totals = sums[:3]
    norm = sums[3]
    empty = norm <= 0
    if np.any(empty):
        rows, cols = np.nonzero(empty)
        raise ConfigurationError(
            f"{weight.kind.value} blur with radius {radius} has no in-bounds weight at "
            f"pixel ({int(cols[0])}, {int(rows[0])}) of a {canvas.width}x{canvas.height} canvas"
        )

    averaged = np.floor(totals / norm + 0.5)
    result = Canvas(canvas.width, canvas.height)
    result.pixels[..., :3] = np.moveaxis(np.clip(averaged, 0, 255), 0, -1).astype(np.uint8)
    result.pixels[..., 3] = 255
    logger.debug(
        "%s blur radius %d over %dx%d took %.3f s",
        weight.kind.value, radius, canvas.width, canvas.height, time() - start_time,
    )
    return result
