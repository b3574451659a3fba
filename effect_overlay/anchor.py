"""Geometry helpers for placing an overlay relative to a player's eyes (pure, no host calls)."""
from __future__ import annotations

import math
from dataclasses import dataclass

_DEGENERATE_EPSILON = 1e-6


@dataclass(frozen=True)
class Vector:
    x: float = 0.0
    y: float = 0.0
    z: float = 0.0

    def __add__(self, other: "Vector") -> "Vector":
        return Vector(self.x + other.x, self.y + other.y, self.z + other.z)

    def __sub__(self, other: "Vector") -> "Vector":
        return Vector(self.x - other.x, self.y - other.y, self.z - other.z)

    def scaled(self, factor: float) -> "Vector":
        return Vector(self.x * factor, self.y * factor, self.z * factor)

    def length_squared(self) -> float:
        return self.x * self.x + self.y * self.y + self.z * self.z

    def distance_squared(self, other: "Vector") -> float:
        return (self - other).length_squared()

    def normalized(self) -> "Vector":
        length = math.sqrt(self.length_squared())
        if length == 0.0:
            return self
        return Vector(self.x / length, self.y / length, self.z / length)


DEFAULT_FORWARD = Vector(0.0, 0.0, 1.0)
UP = Vector(0.0, 1.0, 0.0)


def flat_forward(direction: Vector) -> Vector:
    """Project ``direction`` onto the horizontal plane, falling back to +Z when looking straight up/down."""

    flattened = Vector(direction.x, 0.0, direction.z)
    if flattened.length_squared() < _DEGENERATE_EPSILON:
        flattened = DEFAULT_FORWARD
    return flattened.normalized()


def right_of(forward: Vector) -> Vector:
    # 90 degrees about the vertical axis.
    return Vector(-forward.z, 0.0, forward.x).normalized()


def anchor(
    eye_position: Vector,
    direction: Vector,
    lateral: float,
    forward: float,
    vertical: float,
) -> Vector:
    fwd = flat_forward(direction)
    right = right_of(fwd)
    return eye_position + right.scaled(lateral) + fwd.scaled(forward) + UP.scaled(vertical)
