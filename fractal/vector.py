"""2D vector arithmetic used by the drawing routines."""

from __future__ import annotations

import math
from dataclasses import dataclass


@dataclass(frozen=True)
class Vector2D:
    """An immutable point or direction in canvas space."""

    x: float
    y: float

    def add(self, other: Vector2D) -> Vector2D:
        return Vector2D(self.x + other.x, self.y + other.y)

    def sub(self, other: Vector2D) -> Vector2D:
        return Vector2D(self.x - other.x, self.y - other.y)

    __add__ = add
    __sub__ = sub

    def length(self) -> float:
        return math.hypot(self.x, self.y)

    def rotated(self, angle: float) -> Vector2D:
        """Return the vector rotated counter-clockwise by ``angle`` radians."""

        cos_a = math.cos(angle)
        sin_a = math.sin(angle)
        return Vector2D(self.x * cos_a - self.y * sin_a, self.x * sin_a + self.y * cos_a)

    def scaled(self, factor: float) -> Vector2D:
        return Vector2D(self.x * factor, self.y * factor)
