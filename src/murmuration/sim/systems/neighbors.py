from __future__ import annotations

from typing import List, Optional, Tuple

from pygame.math import Vector2

from ..types.snapshot import FlockSnapshot
from ..utils.math2d import _is_full_circle, _unsigned_angle

Neighbor = Tuple[Vector2, Vector2]


def neighbors(
    origin_id: Optional[int],
    origin_position: Vector2,
    radius: float,
    snapshot: FlockSnapshot,
    facing: Optional[Vector2] = None,
    fov: Optional[float] = None,
) -> List[Neighbor]:
    """
    Return ``(position, velocity)`` pairs from ``snapshot`` strictly within ``radius``.

    The entry whose id equals ``origin_id`` is always skipped. When ``facing``
    and ``fov`` are both given and ``fov`` is narrower than a full circle, a
    candidate is kept only if the angle between ``facing`` and the
    candidate's own velocity is below ``fov``: peers heading the same way,
    not peers lying in front.
    """

    out: List[Neighbor] = []
    radius_sq = radius * radius
    use_fov = facing is not None and not _is_full_circle(fov)
    pos_x = origin_position.x
    pos_y = origin_position.y
    for boid_id, position, velocity in zip(snapshot.ids, snapshot.positions, snapshot.velocities):
        if origin_id is not None and boid_id == origin_id:
            continue
        offset_x = pos_x - position.x
        offset_y = pos_y - position.y
        if offset_x * offset_x + offset_y * offset_y >= radius_sq:
            continue
        if use_fov and _unsigned_angle(facing, velocity) >= fov:
            continue
        out.append((position, velocity))
    return out


def boids_near_point(position: Vector2, radius: float, snapshot: FlockSnapshot) -> List[int]:
    """Snapshot indices of boids strictly within ``radius`` of a bare point."""
    radius_sq = radius * radius
    pos_x = position.x
    pos_y = position.y
    out: List[int] = []
    for index, candidate in enumerate(snapshot.positions):
        offset_x = candidate.x - pos_x
        offset_y = candidate.y - pos_y
        if offset_x * offset_x + offset_y * offset_y < radius_sq:
            out.append(index)
    return out
