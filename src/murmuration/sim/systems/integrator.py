from __future__ import annotations

from typing import Iterable

from pygame.math import Vector2

from ..core.agent import Boid


def advance(position: Vector2, velocity: Vector2, dt: float) -> Vector2:
    return Vector2(position.x + velocity.x * dt, position.y + velocity.y * dt)


def integrate_positions(boids: Iterable[Boid], dt: float) -> None:
    """Move every boid by its current velocity; call only once all velocities are final."""
    for boid in boids:
        boid.position = advance(boid.position, boid.velocity, dt)
