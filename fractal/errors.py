"""Exception types raised by the fractal package."""


class FractalError(Exception):
    """Base class for errors raised by this package."""


class ConfigurationError(FractalError, ValueError):
    """An invalid parameter was supplied (zoom, dimensions, blur window...)."""


class CanvasBoundsError(FractalError, IndexError):
    """A pixel coordinate fell outside the canvas."""


class RenderCancelled(FractalError):
    """A render was abandoned because a newer request superseded it."""
