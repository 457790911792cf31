"""Escape-time evaluation of the Mandelbrot recurrence."""

from __future__ import annotations

import math
from typing import Callable, Optional

import numpy as np
import tensorflow as tf

from .errors import ConfigurationError, RenderCancelled

DEFAULT_MAX_ITERATIONS = 50
DEFAULT_BAILOUT = 1000.0
ITERATION_SLICE = 256


def check_zoom(zoom: float) -> None:
    if not (zoom > 0 and math.isfinite(zoom)):
        raise ConfigurationError(f"zoom must be a positive finite number, got {zoom!r}")


def to_sample(x: int, y: int, zoom: float, center: complex) -> complex:
    """Map a pixel offset to the complex plane.

    A zoom of 1 means one pixel spans one unit of the plane; larger zooms
    magnify.
    """

    check_zoom(zoom)
    return complex(center) + complex(x / zoom, y / zoom)


def sample_grid(
    width: int,
    height: int,
    zoom: float,
    center: complex,
    rows: Optional[range] = None,
) -> np.ndarray:
    """Complex sample of every pixel, with the origin at the canvas centre.

    Returns an array of shape ``(len(rows), width)``; ``rows`` defaults to
    every row of the canvas.
    """

    check_zoom(zoom)
    center = complex(center)
    if rows is None:
        rows = range(height)
    xs = np.arange(width, dtype=np.float64) - width // 2
    ys = np.arange(rows.start, rows.stop, dtype=np.float64) - height // 2
    re = center.real + xs / zoom
    im = center.imag + ys / zoom
    return re[np.newaxis, :] + 1j * im[:, np.newaxis]


def escape_magnitude(c: complex, max_iterations: int = DEFAULT_MAX_ITERATIONS, bailout: float = DEFAULT_BAILOUT) -> float:
    """Iterate ``z = z*z + c`` from zero and return ``|z|``.

    Returns ``bailout`` as soon as ``|z|`` exceeds it, otherwise the modulus
    left after ``max_iterations`` steps.
    """

    z = 0j
    for _ in range(max_iterations):
        z = z * z + c
        if abs(z) > bailout:
            return float(bailout)
    return abs(z)


@tf.function(reduce_retracing=True)
def _escape_run(
    cs: tf.Tensor, zs: tf.Tensor, escaped: tf.Tensor, iterations: tf.Tensor, bailout: tf.Tensor
) -> tuple[tf.Tensor, tf.Tensor]:
    """Advance every sample ``iterations`` steps, freezing points once they escape."""

    i = tf.constant(0, dtype=tf.int32)

    def cond(i: tf.Tensor, zs: tf.Tensor, escaped: tf.Tensor) -> tf.Tensor:
        return tf.logical_and(tf.less(i, iterations), tf.logical_not(tf.reduce_all(escaped)))

    def body(i: tf.Tensor, zs: tf.Tensor, escaped: tf.Tensor) -> tuple[tf.Tensor, tf.Tensor, tf.Tensor]:
        zs = tf.where(escaped, zs, zs * zs + cs)
        escaped = tf.logical_or(escaped, tf.abs(zs) > bailout)
        return i + 1, zs, escaped

    _, zs, escaped = tf.while_loop(cond, body, (i, zs, escaped))
    return zs, escaped


def escape_magnitudes(
    samples: np.ndarray,
    max_iterations: int = DEFAULT_MAX_ITERATIONS,
    bailout: float = DEFAULT_BAILOUT,
    *,
    device: Optional[str] = None,
    should_cancel: Optional[Callable[[], bool]] = None,
) -> np.ndarray:
    """Vectorised :func:`escape_magnitude` over an array of complex samples.

    The iteration runs in slices of at most ``ITERATION_SLICE`` steps.
    ``should_cancel`` is polled before each slice and raises
    :class:`RenderCancelled` when it returns true.
    """

    samples = np.asarray(samples, dtype=np.complex128)
    if samples.size == 0:
        return np.zeros(samples.shape, dtype=np.float64)

    with tf.device(device if device is not None else "/CPU:0"):
        cs = tf.convert_to_tensor(samples, dtype=tf.complex128)
        zs = tf.zeros_like(cs)
        escaped = tf.zeros(tf.shape(cs), dtype=tf.bool)
        limit = tf.constant(bailout, dtype=tf.float64)
        done = 0
        while done < max_iterations:
            if should_cancel is not None and should_cancel():
                raise RenderCancelled(f"escape iteration superseded after {done} of {max_iterations} steps")
            step = min(ITERATION_SLICE, max_iterations - done)
            zs, escaped = _escape_run(cs, zs, escaped, tf.constant(step, dtype=tf.int32), limit)
            done += step
            if bool(tf.reduce_all(escaped)):
                break
        magnitudes = tf.where(escaped, tf.cast(bailout, tf.float64), tf.abs(zs))

    return magnitudes.numpy()
