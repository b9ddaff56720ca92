from __future__ import annotations

import math
from typing import Iterable

from ..core.agent import Boid
from ..types.metrics import TickMetrics


def average_speed(boids: Iterable[Boid]) -> float:
    total = 0.0
    count = 0
    for boid in boids:
        total += math.hypot(boid.velocity.x, boid.velocity.y)
        count += 1
    return 0.0 if count == 0 else total / count


def create_metrics(
    tick: int,
    boids: int,
    obstacles: int,
    spawned: int,
    neighbor_checks: int,
    skipped_updates: int,
    speed: float,
    duration_ms: float,
) -> TickMetrics:
    return TickMetrics(
        tick=tick,
        boids=boids,
        obstacles=obstacles,
        spawned=spawned,
        neighbor_checks=neighbor_checks,
        skipped_updates=skipped_updates,
        average_speed=speed,
        tick_duration_ms=duration_ms,
    )
