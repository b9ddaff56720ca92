from __future__ import annotations

import math

from pygame.math import Vector2

FULL_CIRCLE = 2.0 * math.pi


def _clamp_length_xy(x: float, y: float, max_length: float) -> Vector2:
    if max_length <= 0:
        return Vector2()
    magnitude_sq = x * x + y * y
    if magnitude_sq <= max_length * max_length:
        return Vector2(x, y)
    if magnitude_sq == 0:
        return Vector2()
    inv = max_length / math.sqrt(magnitude_sq)
    return Vector2(x * inv, y * inv)


def _clamp_length(vector: Vector2, max_length: float) -> Vector2:
    return _clamp_length_xy(vector.x, vector.y, max_length)


def _from_polar(magnitude: float, angle: float) -> Vector2:
    """Vector of ``magnitude`` pointing at ``angle`` radians from +x."""
    return Vector2(magnitude * math.cos(angle), magnitude * math.sin(angle))


def _unsigned_angle(a: Vector2, b: Vector2) -> float:
    """Angle between ``a`` and ``b`` in ``[0, pi]``; 0 when either is zero."""
    cross = a.x * b.y - a.y * b.x
    dot = a.x * b.x + a.y * b.y
    return math.atan2(abs(cross), dot)


def _is_full_circle(fov: float | None) -> bool:
    return fov is None or fov >= FULL_CIRCLE


def _is_degenerate(vector: Vector2) -> bool:
    if math.isnan(vector.x) or math.isnan(vector.y):
        return True
    return vector.x == 0.0 and vector.y == 0.0


def _heading_from_velocity(vector: Vector2) -> float:
    if vector.length_squared() < 1e-12:
        return 0.0
    return math.atan2(vector.y, vector.x)
