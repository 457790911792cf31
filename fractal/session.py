"""Interactive pan/zoom loop driving the renderer."""

from __future__ import annotations

import enum
import logging
import math
import queue
import threading
from dataclasses import dataclass, replace
from typing import Callable, Optional

from .canvas import Canvas
from .colorizer import GradientColorizer
from .errors import ConfigurationError, RenderCancelled
from .renderer import RenderResult, RenderSettings, ViewState, render

logger = logging.getLogger(__name__)

DEFAULT_PAN_STEP = 10.0
DEFAULT_ZOOM_IN = 1.05
DEFAULT_ZOOM_OUT = 0.95

_STOP = object()
_REDRAW = object()


class Command(enum.Enum):
    ZOOM_IN = "in"
    ZOOM_OUT = "out"
    PAN_UP = "up"
    PAN_DOWN = "down"
    PAN_LEFT = "left"
    PAN_RIGHT = "right"

    @classmethod
    def parse(cls, text: str) -> Command:
        """Accept either the short form (``in``, ``left``...) or the member name."""

        key = text.strip()
        try:
            return cls(key.lower())
        except ValueError:
            pass
        try:
            return cls[key.upper().replace("-", "_")]
        except KeyError:
            choices = ", ".join(c.value for c in cls)
            raise ConfigurationError(f"unknown command '{text}'. Valid choices: {choices}.") from None


@dataclass(frozen=True)
class ViewControls:
    """Step sizes for the discrete pan and zoom commands."""

    pan_step: float = DEFAULT_PAN_STEP
    zoom_in_factor: float = DEFAULT_ZOOM_IN
    zoom_out_factor: float = DEFAULT_ZOOM_OUT

    def __post_init__(self) -> None:
        for name in ("pan_step", "zoom_in_factor", "zoom_out_factor"):
            value = getattr(self, name)
            if not (value > 0 and math.isfinite(value)):
                raise ConfigurationError(f"{name} must be a positive finite number, got {value!r}")


def apply_command(view: ViewState, command: Command, controls: Optional[ViewControls] = None) -> ViewState:
    """Return the view that results from applying ``command`` to ``view``.

    Pans move the centre by ``pan_step`` pixels, converted to plane units at
    the current zoom.
    """

    controls = controls or ViewControls()
    step = controls.pan_step / view.zoom
    if command is Command.ZOOM_IN:
        return replace(view, zoom=view.zoom * controls.zoom_in_factor)
    if command is Command.ZOOM_OUT:
        return replace(view, zoom=view.zoom * controls.zoom_out_factor)
    if command is Command.PAN_UP:
        return replace(view, center=view.center - complex(0, step))
    if command is Command.PAN_DOWN:
        return replace(view, center=view.center + complex(0, step))
    if command is Command.PAN_LEFT:
        return replace(view, center=view.center - complex(step, 0))
    if command is Command.PAN_RIGHT:
        return replace(view, center=view.center + complex(step, 0))
    raise ConfigurationError(f"unknown command {command!r}")


class Explorer:
    """Own the view state and keep ``canvas`` showing it.

    Commands can be applied synchronously with :meth:`process`, or queued
    from another thread with :meth:`submit` once :meth:`start` has launched
    the worker. The worker renders one command at a time: queued commands
    older than the newest are dropped, and a render still in progress is
    abandoned when a new command arrives. Frames are painted off-screen and
    copied to ``canvas`` only once complete, then handed to ``on_frame``.
    """

    def __init__(
        self,
        canvas: Canvas,
        view: ViewState,
        colorizer: GradientColorizer,
        *,
        settings: Optional[RenderSettings] = None,
        controls: Optional[ViewControls] = None,
        on_frame: Optional[Callable[[Canvas, RenderResult], None]] = None,
        bands: int = 4,
        device: Optional[str] = None,
    ) -> None:
        if colorizer is None:
            raise ConfigurationError("a colorizer is required to render")
        self.canvas = canvas
        self.view = view
        self.colorizer = colorizer
        self.settings = settings or RenderSettings()
        self.controls = controls or ViewControls()
        self.on_frame = on_frame
        self.bands = bands
        self.device = device
        self.frames = 0
        self.dropped = 0
        self.cancelled = 0
        self._stale = False
        self._back = canvas.clone()
        self._queue: queue.Queue = queue.Queue()
        self._worker: Optional[threading.Thread] = None

    def redraw(self, should_cancel: Optional[Callable[[], bool]] = None) -> RenderResult:
        """Render the current view and publish it."""

        result = render(
            self._back,
            self.view,
            self.colorizer,
            settings=self.settings,
            bands=self.bands,
            device=self.device,
            should_cancel=should_cancel,
        )
        self.canvas.copy_from(self._back)
        self.frames += 1
        if self.on_frame is not None:
            self.on_frame(self.canvas, result)
        return result

    def process(self, command: Command) -> RenderResult:
        self.view = apply_command(self.view, command, self.controls)
        return self.redraw()

    # Threaded operation

    def start(self) -> None:
        if self._worker is not None:
            raise RuntimeError("explorer already started")
        self._worker = threading.Thread(target=self._run, name="fractal-explorer", daemon=True)
        self._worker.start()
        logger.info("explorer started at zoom %g centre %s", self.view.zoom, self.view.center)

    def submit(self, command: Command) -> None:
        if self._worker is None:
            raise RuntimeError("explorer not started")
        self._queue.put(command)

    def release(self) -> int:
        """Discard every queued command, as when a held key is let go."""

        discarded = [item for item in self._drain() if item is not _REDRAW]
        self.dropped += len(discarded)
        if discarded:
            logger.debug("released %d queued commands", len(discarded))
            # A render abandoned for one of these commands must still be redone.
            self._queue.put(_REDRAW)
        return len(discarded)

    def wait_idle(self) -> None:
        """Block until every submitted command has been handled or dropped."""

        self._queue.join()

    def stop(self, timeout: Optional[float] = None) -> None:
        if self._worker is None:
            return
        self._queue.put(_STOP)
        self._worker.join(timeout)
        self._worker = None
        logger.info("explorer stopped after %d frames (%d dropped, %d cancelled)", self.frames, self.dropped, self.cancelled)

    def _drain(self) -> list:
        items = []
        while True:
            try:
                item = self._queue.get_nowait()
            except queue.Empty:
                return items
            self._queue.task_done()
            if item is _STOP:
                # Keep the stop request for the worker loop.
                self._queue.put(_STOP)
                return items
            items.append(item)

    def _show_current_view(self) -> None:
        """Render until a frame of ``self.view`` is published or a newer item is queued."""

        self._stale = True
        while True:
            try:
                self.redraw(should_cancel=lambda: not self._queue.empty())
            except RenderCancelled:
                self.cancelled += 1
                if not self._queue.empty():
                    return
                logger.debug("superseding command withdrawn, redrawing zoom %g", self.view.zoom)
                continue
            self._stale = False
            return

    def _run(self) -> None:
        while True:
            item = self._queue.get()
            try:
                if item is _STOP:
                    return
                pending = [c for c in (item, *self._drain()) if c is not _REDRAW]
                if not pending:
                    if self._stale:
                        self._show_current_view()
                    continue
                if len(pending) > 1:
                    self.dropped += len(pending) - 1
                    logger.debug("dropped %d stale commands", len(pending) - 1)
                self.view = apply_command(self.view, pending[-1], self.controls)
                self._show_current_view()
            finally:
                self._queue.task_done()
