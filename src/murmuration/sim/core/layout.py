from __future__ import annotations

from typing import List

from pygame.math import Vector2

from ...config import LayoutConfig, SimulationConfig
from ...rng import DeterministicRng
from .store import AgentStore


def perimeter_points(world_size: float, spacing: float) -> List[Vector2]:
    """Grid points every ``spacing`` along the edges of ``[0, world_size]^2``, corners once."""
    if spacing <= 0.0 or world_size <= 0.0:
        return []
    offsets = [i * spacing for i in range(int(world_size // spacing) + 1)]
    if offsets[-1] < world_size:
        offsets.append(world_size)
    points: List[Vector2] = []
    for offset in offsets:
        points.append(Vector2(offset, 0.0))
        points.append(Vector2(offset, world_size))
    for offset in offsets[1:-1]:
        points.append(Vector2(0.0, offset))
        points.append(Vector2(world_size, offset))
    return points


def populate(store: AgentStore, config: SimulationConfig, rng: DeterministicRng) -> None:
    layout: LayoutConfig = config.layout
    if layout.perimeter_obstacles:
        for point in perimeter_points(layout.world_size, layout.obstacle_spacing):
            store.add_obstacle(point, config.obstacle)

    inset = min(layout.obstacle_spacing, layout.world_size * 0.5) if layout.perimeter_obstacles else 0.0
    low = inset
    high = layout.world_size - inset
    for _ in range(layout.initial_boids):
        position = Vector2(rng.next_range(low, high), rng.next_range(low, high))
        velocity = rng.next_polar(layout.initial_speed)
        store.add_boid(position, velocity, config.profile())
