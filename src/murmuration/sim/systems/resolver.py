from __future__ import annotations

from typing import Tuple

from pygame.math import Vector2

from ...config import BoidParams
from ..core.agent import Boid
from ..utils.math2d import _clamp_length, _is_degenerate
from .steering import SteeringVectors


def combine_steering(params: BoidParams, steering: SteeringVectors) -> Vector2:
    # obstacle term arrives already weighted by its obstacle
    return (
        steering.separation * params.separation_weight
        + steering.alignment * params.alignment_weight
        + steering.cohesion * params.cohesion_weight
        + steering.noise * params.noise_weight
        + steering.obstacle
    )


def apply_impulse(velocity: Vector2, combined: Vector2, max_speed: float) -> Vector2:
    """Add ``combined`` to ``velocity`` unless it is NaN or zero, then cap the speed."""
    if _is_degenerate(combined):
        updated = Vector2(velocity)
    else:
        updated = velocity + combined
    return _clamp_length(updated, max_speed)


def resolve_velocity(boid: Boid, steering: SteeringVectors) -> Tuple[Vector2, bool]:
    """New velocity for ``boid`` and whether the steering impulse was applied."""
    combined = combine_steering(boid.params, steering)
    return apply_impulse(boid.velocity, combined, boid.params.max_speed), not _is_degenerate(combined)
