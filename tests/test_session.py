import threading

import pytest

from fractal import (
    Canvas,
    Command,
    ConfigurationError,
    Explorer,
    GradientColorizer,
    ViewControls,
    ViewState,
    apply_command,
    render,
)


@pytest.fixture
def explorer(colorizer):
    return Explorer(Canvas(8, 6), ViewState(zoom=100.0, center=-0.7 + 0j), colorizer, bands=2)


def test_parse_commands():
    assert Command.parse("in") is Command.ZOOM_IN
    assert Command.parse(" Left ") is Command.PAN_LEFT
    assert Command.parse("PAN_UP") is Command.PAN_UP
    assert Command.parse("zoom-out") is Command.ZOOM_OUT
    with pytest.raises(ConfigurationError):
        Command.parse("sideways")


def test_zoom_commands():
    view = ViewState(zoom=2.0)
    assert apply_command(view, Command.ZOOM_IN).zoom == pytest.approx(2.1)
    assert apply_command(view, Command.ZOOM_OUT).zoom == pytest.approx(1.9)


def test_pan_commands_move_ten_pixels():
    view = ViewState(zoom=2.0, center=1 + 1j)
    assert apply_command(view, Command.PAN_UP).center == 1 - 4j
    assert apply_command(view, Command.PAN_DOWN).center == 1 + 6j
    assert apply_command(view, Command.PAN_LEFT).center == -4 + 1j
    assert apply_command(view, Command.PAN_RIGHT).center == 6 + 1j


def test_custom_controls():
    controls = ViewControls(pan_step=1.0, zoom_in_factor=2.0)
    view = ViewState(zoom=4.0)
    assert apply_command(view, Command.PAN_RIGHT, controls).center == 0.25
    assert apply_command(view, Command.ZOOM_IN, controls).zoom == 8.0


def test_invalid_controls_rejected():
    with pytest.raises(ConfigurationError):
        ViewControls(pan_step=0.0)
    with pytest.raises(ConfigurationError):
        ViewControls(zoom_out_factor=-0.5)


def test_process_renders_and_publishes(colorizer):
    frames = []
    canvas = Canvas(8, 6)
    explorer = Explorer(
        canvas,
        ViewState(zoom=100.0),
        colorizer,
        on_frame=lambda c, result: frames.append((c.clone(), result.view)),
    )
    explorer.process(Command.ZOOM_IN)
    explorer.process(Command.PAN_LEFT)
    assert explorer.frames == 2
    assert explorer.view.zoom == pytest.approx(105.0)
    assert frames[-1][1] == explorer.view
    assert frames[-1][0] == canvas


def test_submit_requires_start(explorer):
    with pytest.raises(RuntimeError):
        explorer.submit(Command.ZOOM_IN)


def test_worker_applies_command(explorer):
    explorer.start()
    try:
        explorer.submit(Command.ZOOM_IN)
        explorer.wait_idle()
    finally:
        explorer.stop(timeout=30)
    assert explorer.frames == 1
    assert explorer.view.zoom == pytest.approx(105.0)


def test_every_command_is_rendered_cancelled_or_dropped(explorer):
    explorer.start()
    try:
        for _ in range(20):
            explorer.submit(Command.ZOOM_IN)
        explorer.wait_idle()
    finally:
        explorer.stop(timeout=30)
    applied = explorer.frames + explorer.cancelled
    assert applied + explorer.dropped == 20
    assert explorer.frames >= 1
    assert explorer.view.zoom == pytest.approx(100.0 * 1.05 ** applied)


def test_release_discards_queued_commands(colorizer):
    entered = threading.Event()
    proceed = threading.Event()

    def on_frame(canvas, result):
        entered.set()
        proceed.wait(30)

    explorer = Explorer(Canvas(8, 6), ViewState(zoom=100.0), colorizer, on_frame=on_frame)
    explorer.start()
    try:
        explorer.submit(Command.PAN_RIGHT)
        assert entered.wait(30)
        explorer.submit(Command.ZOOM_IN)
        explorer.submit(Command.ZOOM_IN)
        assert explorer.release() == 2
        proceed.set()
        explorer.wait_idle()
    finally:
        proceed.set()
        explorer.stop(timeout=30)
    assert explorer.frames == 1
    assert explorer.dropped == 2
    assert explorer.view.zoom == 100.0


class GatedColorizer(GradientColorizer):
    """Blocks inside the first chunk it colours until ``proceed`` is set."""

    def __init__(self, strip):
        super().__init__(strip)
        self.entered = threading.Event()
        self.proceed = threading.Event()

    def colorize_array(self, mags):
        if not self.entered.is_set():
            self.entered.set()
            self.proceed.wait(30)
        return super().colorize_array(mags)


def test_cancelled_render_is_redone_after_release(strip, colorizer):
    gated = GatedColorizer(strip)
    frames = []
    explorer = Explorer(
        Canvas(8, 40),
        ViewState(zoom=100.0, center=-0.7 + 0j),
        gated,
        bands=1,
        on_frame=lambda c, result: frames.append((c.clone(), result.view)),
    )
    explorer.start()
    try:
        explorer.submit(Command.ZOOM_IN)
        assert gated.entered.wait(30)
        explorer.submit(Command.ZOOM_IN)
        assert explorer.release() == 1
        gated.proceed.set()
        explorer.wait_idle()
    finally:
        gated.proceed.set()
        explorer.stop(timeout=30)

    assert explorer.cancelled == 1
    assert explorer.dropped == 1
    assert explorer.frames == 1
    assert explorer.view.zoom == pytest.approx(105.0)
    assert frames[-1][1] == explorer.view
    assert frames[-1][0] == explorer.canvas
    for published, view in frames:
        expected = Canvas(8, 40)
        render(expected, view, colorizer)
        assert published == expected
