"""Public API for fractal rendering and canvas utilities."""

from .blur import WeightFunction, WeightKind, blur, weight_kernel
from .canvas import Canvas, Color
from .colorizer import GradientColorizer
from .errors import CanvasBoundsError, ConfigurationError, FractalError, RenderCancelled
from .evaluator import escape_magnitude, escape_magnitudes, sample_grid, to_sample
from .renderer import RenderResult, RenderSettings, ViewState, render, row_bands
from .session import Command, Explorer, ViewControls, apply_command
from .vector import Vector2D

__all__ = [
    "Canvas",
    "CanvasBoundsError",
    "Color",
    "Command",
    "ConfigurationError",
    "Explorer",
    "FractalError",
    "GradientColorizer",
    "RenderCancelled",
    "RenderResult",
    "RenderSettings",
    "Vector2D",
    "ViewControls",
    "ViewState",
    "WeightFunction",
    "WeightKind",
    "apply_command",
    "blur",
    "escape_magnitude",
    "escape_magnitudes",
    "render",
    "row_bands",
    "sample_grid",
    "to_sample",
    "weight_kernel",
]
