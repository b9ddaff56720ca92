from __future__ import annotations

from dataclasses import dataclass


@dataclass(slots=True)
class TickMetrics:
    tick: int
    boids: int
    obstacles: int
    spawned: int
    neighbor_checks: int
    skipped_updates: int
    average_speed: float
    tick_duration_ms: float = 0.0
