import logging
import os
import sys
import warnings
from dataclasses import dataclass
from pathlib import Path

_VERBOSE_FLAGS = {"--verbose", "-v"}
_cli_verbose = any(arg in _VERBOSE_FLAGS for arg in sys.argv[1:])
_env_log_level = os.environ.get("TF_CPP_MIN_LOG_LEVEL")
_suppress_messages = (not _cli_verbose) and _env_log_level != "0"

if _suppress_messages and _env_log_level is None:
    os.environ["TF_CPP_MIN_LOG_LEVEL"] = "3"

if _suppress_messages:
    warnings.filterwarnings(
        "ignore",
        message=r"Protobuf gencode version .* is exactly one major version older than the runtime version .*",
        category=UserWarning,
        module="google.protobuf",
    )

VERBOSE = _cli_verbose


def log(message, *args, **kwargs):
    if VERBOSE:
        print(message, *args, **kwargs)


import tensorflow as tf

if _suppress_messages:
    tf.get_logger().setLevel("ERROR")

import PIL.Image
import imageio

from fractal import (
    Canvas,
    Command,
    ConfigurationError,
    Explorer,
    FractalError,
    GradientColorizer,
    RenderSettings,
    Vector2D,
    ViewControls,
    ViewState,
    WeightFunction,
    blur,
)
from fractal.colorizer import DEFAULT_GRADIENT_HEIGHT, DEFAULT_GRADIENT_SCALE
from fractal.evaluator import DEFAULT_BAILOUT, DEFAULT_MAX_ITERATIONS
from fractal.session import DEFAULT_PAN_STEP, DEFAULT_ZOOM_IN, DEFAULT_ZOOM_OUT

log("TensorFlow version: %s" % tf.__version__)

gpus = tf.config.list_physical_devices('GPU')
if gpus:
    try:
        for gpu in gpus:
            tf.config.experimental.set_memory_growth(gpu, True)
        DEVICE = '/GPU:0'
        log("GPU found, using %s" % gpus[0].name)
    except RuntimeError as e:
        log(e)
        DEVICE = '/CPU:0'
else:
    DEVICE = '/CPU:0'
    log("No GPU found, using CPU")

from argparse import ArgumentParser


@dataclass
class OutputConfig:
    image_path: Path
    gif_path: Path | None
    frame_dir: Path | None
    image_format: str


def build_parser():
    parser = ArgumentParser(description="Render and explore the Mandelbrot set with discrete pan/zoom commands.")

    parser.add_argument('--width', type=int, dest='width', help='canvas width in pixels',
                        metavar='WIDTH', default=400)

    parser.add_argument('--height', type=int, dest='height', help='canvas height in pixels',
                        metavar='HEIGHT', default=300)

    parser.add_argument('--zoom', type=float, dest='zoom',
                        help='initial zoom in pixels per unit of the complex plane',
                        metavar='ZOOM', default=16000.0)

    parser.add_argument('--x-center', type=float, dest='x_center',
                        help='real part of the complex value shown at the centre of the canvas',
                        metavar='X_CENTER', default=-0.71)

    parser.add_argument('--y-center', type=float, dest='y_center',
                        help='imaginary part of the complex value shown at the centre of the canvas',
                        metavar='Y_CENTER', default=-0.25)

    parser.add_argument('--max-iterations', type=int, dest='max_iterations',
                        help='maximum number of iterations of z = z*z + c per pixel',
                        metavar='MAX_ITERATIONS', default=DEFAULT_MAX_ITERATIONS)

    parser.add_argument('--bailout', type=float, dest='bailout',
                        help='modulus beyond which a sample counts as escaped',
                        metavar='BAILOUT', default=DEFAULT_BAILOUT)

    parser.add_argument('--gradient', type=str, dest='gradient',
                        help='gradient strip image; column 0 is used as the colour lookup table. Overrides --colormap.',
                        metavar='PATH')

    parser.add_argument('--colormap', type=str, dest='colormap',
                        help='matplotlib colormap used to build the gradient strip when --gradient is not given',
                        metavar='COLORMAP', default='twilight_shifted')

    parser.add_argument('--gradient-height', type=int, dest='gradient_height',
                        help='height of the strip built from --colormap', metavar='ROWS',
                        default=DEFAULT_GRADIENT_HEIGHT)

    parser.add_argument('--gradient-scale', type=float, dest='gradient_scale',
                        help='gradient rows per unit of escape magnitude', metavar='SCALE',
                        default=DEFAULT_GRADIENT_SCALE)

    parser.add_argument('--commands', type=str, dest='commands', default='',
                        help='comma separated view commands applied in order, one frame each: '
                             'in, out, up, down, left, right')

    parser.add_argument('--pan-step', type=float, dest='pan_step', default=DEFAULT_PAN_STEP,
                        help='pixels moved by each pan command')
    parser.add_argument('--zoom-in-factor', type=float, dest='zoom_in_factor', default=DEFAULT_ZOOM_IN,
                        help='zoom multiplier applied by "in"')
    parser.add_argument('--zoom-out-factor', type=float, dest='zoom_out_factor', default=DEFAULT_ZOOM_OUT,
                        help='zoom multiplier applied by "out"')

    parser.add_argument('--bands', type=int, dest='bands', default=4,
                        help='number of row bands rendered concurrently')

    parser.add_argument('--blur', type=str, dest='blur', default=None,
                        help='blur applied to every frame: box, distance, motion or double:<split>')
    parser.add_argument('--blur-radius', type=int, dest='blur_radius', default=2,
                        help='half-width of the blur window in pixels')

    parser.add_argument('--pattern', action='store_true',
                        help='paint the canvas test pattern (gradient, shapes and spiral) instead of the fractal')

    parser.add_argument('--output', dest='output', type=str, default='fractal.png',
                        help='path of the final frame image')
    parser.add_argument('--gif', dest='gif', type=str, default=None,
                        help='also write every frame to this animated GIF')
    parser.add_argument('--frame-dir', dest='frame_dir', type=str, default=None,
                        help='also write every frame as a numbered image in this directory')
    parser.add_argument('--format', type=str, dest='format', metavar='FORMAT', default='png',
                        help='file format for image outputs. Can be any extension supported by Pillow.')

    parser.add_argument('-v', '--verbose', action='store_true',
                        help='Enable verbose logging, including TensorFlow and hardware diagnostics.')

    return parser


def resolve_output_config(opt, parser: ArgumentParser) -> OutputConfig:
    image_format = (opt.format or "png").lower().lstrip(".") or "png"

    image_path = Path(opt.output).expanduser()
    if image_path.exists() and image_path.is_dir():
        parser.error("--output must point to a file, not a directory.")
    if image_path.suffix:
        if image_path.suffix.lower() != f".{image_format}":
            parser.error(f"--output extension {image_path.suffix} does not match --format {image_format}.")
    else:
        image_path = image_path.with_suffix(f".{image_format}")

    gif_path = None
    if opt.gif:
        gif_path = Path(opt.gif).expanduser()
        if gif_path.suffix and gif_path.suffix.lower() != ".gif":
            parser.error("GIF outputs must end with .gif.")
        gif_path = gif_path.with_suffix(".gif").resolve()

    frame_dir = Path(opt.frame_dir).expanduser().resolve() if opt.frame_dir else None

    return OutputConfig(
        image_path=image_path.resolve(),
        gif_path=gif_path,
        frame_dir=frame_dir,
        image_format=image_format,
    )


def parse_commands(text: str, parser: ArgumentParser) -> list[Command]:
    commands = []
    for token in filter(None, (t.strip() for t in text.split(","))):
        try:
            commands.append(Command.parse(token))
        except ConfigurationError as exc:
            parser.error(str(exc))
    return commands


def _pil_format_name(ext: str) -> str:
    upper = ext.upper()
    if upper == "JPG":
        return "JPEG"
    if upper == "TIF":
        return "TIFF"
    return upper


def write_single_image(image: PIL.Image.Image, output_path: Path, image_format: str) -> None:
    """Write a single image to ``output_path`` using the provided format."""

    pil_format = _pil_format_name(image_format)
    if pil_format == "JPEG":
        image = image.convert("RGB")
    output_path.parent.mkdir(parents=True, exist_ok=True)
    image.save(str(output_path), format=pil_format)


def paint_test_pattern(canvas: Canvas) -> None:
    canvas.draw_gradient()
    w, h = canvas.width, canvas.height
    canvas.draw_rect((20, 20, 60), Vector2D(w * 0.05, h * 0.05), Vector2D(w * 0.3, h * 0.25))
    canvas.draw_circle((240, 240, 240), Vector2D(w * 0.8, h * 0.2), max(1, min(w, h) // 10))
    canvas.draw_line((255, 255, 0), Vector2D(0, h - 1), Vector2D(w - 1, 0))
    canvas.draw_spiral((0, 0, 0), Vector2D(w / 2, h / 2))


class FrameWriter:
    """Send each published frame to the requested outputs."""

    def __init__(self, config: OutputConfig, blur_weight: WeightFunction | None, blur_radius: int) -> None:
        self.config = config
        self.blur_weight = blur_weight
        self.blur_radius = blur_radius
        self.index = 0
        self.last_frame: Canvas | None = None
        self._gif_writer = None
        if config.gif_path is not None:
            config.gif_path.parent.mkdir(parents=True, exist_ok=True)
            self._gif_writer = imageio.get_writer(str(config.gif_path), mode='I', duration=0.1, loop=0)
        if config.frame_dir is not None:
            config.frame_dir.mkdir(parents=True, exist_ok=True)

    def __call__(self, canvas: Canvas, result=None) -> None:
        frame = canvas
        if self.blur_weight is not None:
            frame = blur(canvas, self.blur_radius, self.blur_weight, device=DEVICE)
        if self._gif_writer is not None:
            self._gif_writer.append_data(frame.pixels.copy())
        if self.config.frame_dir is not None:
            frame_path = self.config.frame_dir / f"frame{self.index:03d}.{self.config.image_format}"
            write_single_image(frame.to_image(), frame_path, self.config.image_format)
        if result is not None:
            log("frame {0}: zoom {1:g} centre {2}".format(self.index, result.view.zoom, result.view.center))
        self.last_frame = frame.clone()
        self.index += 1

    def finalize(self) -> None:
        if self.last_frame is not None:
            write_single_image(self.last_frame.to_image(), self.config.image_path, self.config.image_format)

    def close(self) -> None:
        if self._gif_writer is not None:
            self._gif_writer.close()
            self._gif_writer = None


def run(opt, parser: ArgumentParser) -> None:
    output_config = resolve_output_config(opt, parser)
    commands = parse_commands(opt.commands, parser)

    blur_weight = WeightFunction.parse(opt.blur) if opt.blur else None
    canvas = Canvas(opt.width, opt.height)
    writer = FrameWriter(output_config, blur_weight, opt.blur_radius)

    try:
        if opt.pattern:
            paint_test_pattern(canvas)
            writer(canvas)
        else:
            if opt.gradient:
                colorizer = GradientColorizer.open(opt.gradient, scale=opt.gradient_scale)
            else:
                colorizer = GradientColorizer.from_colormap(
                    opt.colormap, opt.gradient_height, scale=opt.gradient_scale
                )
            explorer = Explorer(
                canvas,
                ViewState(zoom=opt.zoom, center=complex(opt.x_center, opt.y_center)),
                colorizer,
                settings=RenderSettings(max_iterations=opt.max_iterations, bailout=opt.bailout),
                controls=ViewControls(opt.pan_step, opt.zoom_in_factor, opt.zoom_out_factor),
                on_frame=writer,
                bands=opt.bands,
                device=DEVICE,
            )
            explorer.redraw()
            for i, command in enumerate(commands):
                print("command {0} out of {1}".format(i + 1, len(commands)), end='\r')
                explorer.process(command)
            if commands:
                print()
    finally:
        writer.close()

    writer.finalize()


def main():
    parser = build_parser()
    opt = parser.parse_args()

    global VERBOSE
    VERBOSE = bool(opt.verbose)
    logging.basicConfig(
        level=logging.DEBUG if VERBOSE else logging.WARNING,
        format="%(asctime)s - %(levelname)s - %(message)s",
    )

    try:
        run(opt, parser)
    except FractalError as exc:
        print(f"error: {exc}", file=sys.stderr)
        sys.exit(1)


if __name__ == '__main__':
    main()
