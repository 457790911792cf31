"""Rendering of the Mandelbrot set into a canvas."""

from __future__ import annotations

import logging
import math
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass
from time import time
from typing import Callable, Optional

import numpy as np

from .canvas import Canvas
from .colorizer import GradientColorizer
from .errors import ConfigurationError, RenderCancelled
from .evaluator import DEFAULT_BAILOUT, DEFAULT_MAX_ITERATIONS, check_zoom, escape_magnitudes, sample_grid

logger = logging.getLogger(__name__)

CHUNK_ROWS = 8


@dataclass(frozen=True)
class RenderSettings:
    """Parameters of the escape-time iteration."""

    max_iterations: int = DEFAULT_MAX_ITERATIONS
    bailout: float = DEFAULT_BAILOUT

    def __post_init__(self) -> None:
        if self.max_iterations < 1:
            raise ConfigurationError(f"max_iterations must be at least 1, got {self.max_iterations}")
        if not (self.bailout > 0 and math.isfinite(self.bailout)):
            raise ConfigurationError(f"bailout must be a positive finite number, got {self.bailout!r}")


@dataclass(frozen=True)
class ViewState:
    """Which part of the complex plane is shown.

    ``zoom`` is in pixels per unit of the complex plane and ``center`` is the
    sample shown at the middle of the canvas.
    """

    zoom: float
    center: complex = 0j

    def __post_init__(self) -> None:
        check_zoom(self.zoom)
        object.__setattr__(self, "center", complex(self.center))


@dataclass(frozen=True, eq=False)
class RenderResult:
    """Escape magnitudes computed for every pixel of a render."""

    magnitudes: np.ndarray
    view: ViewState
    elapsed: float = 0.0


def row_bands(height: int, bands: int) -> list[range]:
    """Split ``range(height)`` into at most ``bands`` contiguous, non-empty ranges."""

    bands = max(1, min(int(bands), height))
    edges = np.linspace(0, height, bands + 1).round().astype(int)
    return [range(lo, hi) for lo, hi in zip(edges[:-1], edges[1:]) if hi > lo]


def render(
    canvas: Canvas,
    view: ViewState,
    colorizer: GradientColorizer,
    *,
    settings: Optional[RenderSettings] = None,
    bands: int = 1,
    device: Optional[str] = None,
    should_cancel: Optional[Callable[[], bool]] = None,
) -> RenderResult:
    """Repaint every pixel of ``canvas`` with the fractal seen through ``view``.

    Rows are split into ``bands`` ranges that are evaluated concurrently and
    written to disjoint slices of the canvas, ``CHUNK_ROWS`` rows at a time.
    ``should_cancel`` is polled before every chunk and between slices of the
    escape iteration; when it returns true the render stops with
    :class:`RenderCancelled`, leaving the canvas partly painted.
    """

    if colorizer is None:
        raise ConfigurationError("a colorizer is required to render")
    if bands < 1:
        raise ConfigurationError(f"bands must be at least 1, got {bands}")
    settings = settings or RenderSettings()

    start_time = time()
    magnitudes = np.empty((canvas.height, canvas.width), dtype=np.float64)

    def render_band(rows: range) -> None:
        for first in range(rows.start, rows.stop, CHUNK_ROWS):
            chunk = range(first, min(first + CHUNK_ROWS, rows.stop))
            if should_cancel is not None and should_cancel():
                raise RenderCancelled(f"render superseded before rows {chunk.start}-{chunk.stop - 1}")
            samples = sample_grid(canvas.width, canvas.height, view.zoom, view.center, chunk)
            mags = escape_magnitudes(
                samples, settings.max_iterations, settings.bailout, device=device, should_cancel=should_cancel
            )
            magnitudes[chunk.start : chunk.stop] = mags
            canvas.pixels[chunk.start : chunk.stop] = colorizer.colorize_array(mags)
            canvas.pixels[chunk.start : chunk.stop, :, 3] = 255

    ranges = row_bands(canvas.height, bands)
    if len(ranges) == 1:
        render_band(ranges[0])
    else:
        with ThreadPoolExecutor(max_workers=len(ranges)) as executor:
            futures = [executor.submit(render_band, rows) for rows in ranges]
            for future in futures:
                future.result()

    elapsed = time() - start_time
    logger.debug(
        "rendered %dx%d at zoom %g centre %s in %.3f s (%d bands)",
        canvas.width, canvas.height, view.zoom, view.center, elapsed, len(ranges),
    )
    return RenderResult(magnitudes=magnitudes, view=view, elapsed=elapsed)
