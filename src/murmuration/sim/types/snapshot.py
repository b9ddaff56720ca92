from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, List

from pygame.math import Vector2

from .metrics import TickMetrics


@dataclass(slots=True)
class FlockSnapshot:
    """Tick-start copy of every boid, one parallel list per field.

    Index ``i`` in each list refers to the same boid; ``index_of`` maps a
    stable boid id back to that index.
    """

    ids: List[int] = field(default_factory=list)
    positions: List[Vector2] = field(default_factory=list)
    velocities: List[Vector2] = field(default_factory=list)
    index_of: Dict[int, int] = field(default_factory=dict)

    def __len__(self) -> int:
        return len(self.ids)

    def append(self, boid_id: int, position: Vector2, velocity: Vector2) -> None:
        self.index_of[boid_id] = len(self.ids)
        self.ids.append(boid_id)
        self.positions.append(Vector2(position))
        self.velocities.append(Vector2(velocity))


@dataclass(slots=True)
class WorldSnapshot:
    tick: int
    metrics: TickMetrics
    boids: List[Dict[str, Any]]
    obstacles: List[Dict[str, Any]]
    metadata: "SnapshotMetadata"


@dataclass(slots=True)
class SnapshotMetadata:
    world_size: float
    sim_dt: float
    tick_rate: float
    seed: int
    config_version: str
