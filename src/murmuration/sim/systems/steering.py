from __future__ import annotations

from typing import Iterable, List, NamedTuple, Sequence

from pygame.math import Vector2

from ...config import BoidParams
from ...rng import DeterministicRng
from ..core.agent import Obstacle
from ..types.snapshot import FlockSnapshot
from .neighbors import Neighbor, boids_near_point, neighbors


class SteeringVectors(NamedTuple):
    separation: Vector2
    alignment: Vector2
    cohesion: Vector2
    noise: Vector2
    obstacle: Vector2


def separation(position: Vector2, velocity: Vector2, neighbor_list: Sequence[Neighbor]) -> Vector2:
    """Mean offset from each neighbour to this boid; points away from the crowd."""
    if not neighbor_list:
        return Vector2()
    sum_x = 0.0
    sum_y = 0.0
    for other_position, _ in neighbor_list:
        sum_x += position.x - other_position.x
        sum_y += position.y - other_position.y
    inv = 1.0 / len(neighbor_list)
    return Vector2(sum_x * inv, sum_y * inv)


def alignment(position: Vector2, velocity: Vector2, neighbor_list: Sequence[Neighbor]) -> Vector2:
    if not neighbor_list:
        return Vector2()
    sum_x = 0.0
    sum_y = 0.0
    for _, other_velocity in neighbor_list:
        sum_x += other_velocity.x
        sum_y += other_velocity.y
    inv = 1.0 / len(neighbor_list)
    return Vector2(sum_x * inv - velocity.x, sum_y * inv - velocity.y)


def cohesion(position: Vector2, velocity: Vector2, neighbor_list: Sequence[Neighbor]) -> Vector2:
    if not neighbor_list:
        return Vector2()
    sum_x = 0.0
    sum_y = 0.0
    for other_position, _ in neighbor_list:
        sum_x += other_position.x
        sum_y += other_position.y
    inv = 1.0 / len(neighbor_list)
    return Vector2(sum_x * inv - position.x, sum_y * inv - position.y)


def noise(params: BoidParams, rng: DeterministicRng) -> Vector2:
    return rng.next_polar(params.max_speed)


def obstacle_avoidance(snapshot: FlockSnapshot, obstacles: Iterable[Obstacle]) -> List[Vector2]:
    """
    Avoidance totals aligned with ``snapshot``.

    Obstacle-major: each obstacle scans the flock once and pushes every boid
    strictly inside its radius away, already scaled by the obstacle's weight.
    """

    totals = [Vector2() for _ in range(len(snapshot))]
    positions = snapshot.positions
    for obstacle in obstacles:
        origin = obstacle.position
        weight = obstacle.params.separation_weight
        for index in boids_near_point(origin, obstacle.params.separation_radius, snapshot):
            boid_position = positions[index]
            total = totals[index]
            total.x += (boid_position.x - origin.x) * weight
            total.y += (boid_position.y - origin.y) * weight
    return totals


def compute_flocking(
    boid_id: int,
    params: BoidParams,
    snapshot: FlockSnapshot,
) -> tuple[Vector2, Vector2, Vector2, int]:
    """Separation, alignment and cohesion for one boid plus the neighbour count seen."""
    index = snapshot.index_of[boid_id]
    position = snapshot.positions[index]
    velocity = snapshot.velocities[index]

    separation_neighbors = neighbors(
        boid_id, position, params.separation_radius, snapshot, velocity, params.separation_fov
    )
    alignment_neighbors = neighbors(
        boid_id, position, params.alignment_radius, snapshot, velocity, params.alignment_fov
    )
    cohesion_neighbors = neighbors(
        boid_id, position, params.cohesion_radius, snapshot, velocity, params.cohesion_fov
    )
    checks = len(separation_neighbors) + len(alignment_neighbors) + len(cohesion_neighbors)
    return (
        separation(position, velocity, separation_neighbors),
        alignment(position, velocity, alignment_neighbors),
        cohesion(position, velocity, cohesion_neighbors),
        checks,
    )
