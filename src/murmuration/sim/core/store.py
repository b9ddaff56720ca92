from __future__ import annotations

from typing import Dict, Iterator

from pygame.math import Vector2

from ...config import BoidParams, ObstacleParams
from .agent import Boid, Obstacle


class AgentStore:
    """Live boid and obstacle records keyed by ids that are never reused."""

    def __init__(self) -> None:
        self._boids: Dict[int, Boid] = {}
        self._obstacles: Dict[int, Obstacle] = {}
        self._next_id = 0

    @property
    def boid_count(self) -> int:
        return len(self._boids)

    @property
    def obstacle_count(self) -> int:
        return len(self._obstacles)

    @property
    def boids(self) -> Iterator[Boid]:
        return iter(self._boids.values())

    @property
    def obstacles(self) -> Iterator[Obstacle]:
        return iter(self._obstacles.values())

    def add_boid(self, position: Vector2, velocity: Vector2, params: BoidParams) -> int:
        boid_id = self._allocate_id()
        self._boids[boid_id] = Boid(
            id=boid_id,
            position=Vector2(position),
            velocity=Vector2(velocity),
            params=params,
        )
        return boid_id

    def add_obstacle(self, position: Vector2, params: ObstacleParams) -> int:
        obstacle_id = self._allocate_id()
        self._obstacles[obstacle_id] = Obstacle(id=obstacle_id, position=Vector2(position), params=params)
        return obstacle_id

    def boid(self, boid_id: int) -> Boid:
        try:
            return self._boids[boid_id]
        except KeyError:
            raise KeyError(f"Boid {boid_id} does not exist.") from None

    def obstacle(self, obstacle_id: int) -> Obstacle:
        try:
            return self._obstacles[obstacle_id]
        except KeyError:
            raise KeyError(f"Obstacle {obstacle_id} does not exist.") from None

    def clear(self) -> None:
        # ids keep counting so stale handles never alias new agents
        self._boids.clear()
        self._obstacles.clear()

    def _allocate_id(self) -> int:
        agent_id = self._next_id
        self._next_id += 1
        return agent_id
