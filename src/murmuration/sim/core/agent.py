from __future__ import annotations

from dataclasses import dataclass, field

from pygame.math import Vector2

from ...config import BoidParams, ObstacleParams


@dataclass(slots=True)
class Boid:
    id: int
    position: Vector2
    velocity: Vector2
    params: BoidParams = field(default_factory=BoidParams)


@dataclass(slots=True)
class Obstacle:
    id: int
    position: Vector2
    params: ObstacleParams = field(default_factory=ObstacleParams)
