from __future__ import annotations

from concurrent.futures import ThreadPoolExecutor
from time import perf_counter
from typing import Callable, List, Optional

from loguru import logger
from pygame.math import Vector2

from ...config import BoidParams, ObstacleParams, SimulationConfig
from ...rng import DeterministicRng
from ..systems import metrics as metrics_system, steering
from ..systems.integrator import integrate_positions
from ..systems.resolver import resolve_velocity
from ..systems.spawn import SpawnController, SpawnState
from ..types.metrics import TickMetrics
from ..types.snapshot import FlockSnapshot, SnapshotMetadata, WorldSnapshot
from ..utils.math2d import _heading_from_velocity
from .agent import Boid, Obstacle
from .layout import populate
from .store import AgentStore

CursorProvider = Callable[[], Optional[Vector2]]


class World:
    """
    Owns the flock and advances it one tick at a time.

    Each tick reads a copy of every boid taken before any write, computes
    all steering against that copy, writes velocities only once every boid
    has been computed, then integrates positions. A spawn triggered by the
    place signal is appended after the tick has completed.
    """

    def __init__(self, config: SimulationConfig, rng: DeterministicRng | None = None):
        config.validate()
        self._config = config
        self._rng = rng if rng is not None else DeterministicRng(config.seed)
        self._store = AgentStore()
        self._spawner = SpawnController()
        self._place_pressed = False
        self._cursor: Vector2 | None = None
        self._cursor_provider: CursorProvider | None = None
        self._tick = 0
        self._metrics: TickMetrics | None = None
        self._executor: ThreadPoolExecutor | None = None
        if config.workers > 1:
            self._executor = ThreadPoolExecutor(max_workers=config.workers, thread_name_prefix="SteeringWorker")
        populate(self._store, config, self._rng)
        logger.info(
            "World ready: {} boids, {} obstacles, seed={}, workers={}",
            self._store.boid_count,
            self._store.obstacle_count,
            self._rng.seed,
            config.workers,
        )

    @property
    def config(self) -> SimulationConfig:
        return self._config

    @property
    def boids(self) -> List[Boid]:
        return list(self._store.boids)

    @property
    def obstacles(self) -> List[Obstacle]:
        return list(self._store.obstacles)

    @property
    def store(self) -> AgentStore:
        return self._store

    @property
    def metrics(self) -> TickMetrics | None:
        return self._metrics

    @property
    def tick_count(self) -> int:
        return self._tick

    @property
    def spawn_state(self) -> SpawnState:
        return self._spawner.state

    def reset(self) -> None:
        self._store.clear()
        self._rng.reset()
        self._spawner.reset()
        self._place_pressed = False
        self._tick = 0
        self._metrics = None
        populate(self._store, self._config, self._rng)
        logger.info("World reset: {} boids, {} obstacles", self._store.boid_count, self._store.obstacle_count)

    def close(self) -> None:
        if self._executor is not None:
            self._executor.shutdown(wait=True)
            self._executor = None

    # POPULATION
    def spawn_boid(
        self,
        position: Vector2,
        velocity: Vector2 | None = None,
        params: BoidParams | None = None,
    ) -> int:
        if params is None:
            params = self._config.profile()
        else:
            params.validate()
        return self._store.add_boid(
            Vector2(position),
            Vector2() if velocity is None else Vector2(velocity),
            params,
        )

    def spawn_obstacle(self, position: Vector2, params: ObstacleParams | None = None) -> int:
        if params is None:
            params = self._config.obstacle
        else:
            params.validate()
        return self._store.add_obstacle(Vector2(position), params)

    # INPUT
    def set_place_signal(self, pressed: bool) -> None:
        self._place_pressed = bool(pressed)

    def set_cursor(self, position: Vector2 | None) -> None:
        self._cursor = None if position is None else Vector2(position)

    def set_cursor_provider(self, provider: CursorProvider | None) -> None:
        """Query ``provider`` once per tick instead of the value from ``set_cursor``."""
        self._cursor_provider = provider

    # SIMULATION
    def tick(self, dt: float | None = None) -> TickMetrics:
        start = perf_counter()
        step = self._config.time_step if dt is None else dt
        store = self._store
        boids = list(store.boids)

        snapshot = FlockSnapshot()
        for boid in boids:
            snapshot.append(boid.id, boid.position, boid.velocity)

        # drawn serially in snapshot order, independent of worker count
        noise_vectors = [steering.noise(boid.params, self._rng) for boid in boids]
        avoidance = steering.obstacle_avoidance(snapshot, store.obstacles)

        def _flocking(boid: Boid) -> tuple[Vector2, Vector2, Vector2, int]:
            return steering.compute_flocking(boid.id, boid.params, snapshot)

        if self._executor is not None and len(boids) > 1:
            flocking = list(self._executor.map(_flocking, boids))
        else:
            flocking = [_flocking(boid) for boid in boids]

        neighbor_checks = 0
        skipped_updates = 0
        for boid, (v_sep, v_align, v_coh, checks), v_noise, v_obstacle in zip(
            boids, flocking, noise_vectors, avoidance
        ):
            neighbor_checks += checks
            vectors = steering.SteeringVectors(v_sep, v_align, v_coh, v_noise, v_obstacle)
            boid.velocity, applied = resolve_velocity(boid, vectors)
            if not applied:
                skipped_updates += 1

        integrate_positions(boids, step)

        spawned = 1 if self._sample_spawn() is not None else 0

        elapsed_ms = (perf_counter() - start) * 1000.0
        metrics = metrics_system.create_metrics(
            self._tick,
            store.boid_count,
            store.obstacle_count,
            spawned,
            neighbor_checks,
            skipped_updates,
            metrics_system.average_speed(store.boids),
            elapsed_ms,
        )
        self._metrics = metrics
        self._tick += 1
        logger.trace(
            "tick {} boids={} checks={} skipped={} {:.3f}ms",
            metrics.tick,
            metrics.boids,
            neighbor_checks,
            skipped_updates,
            elapsed_ms,
        )
        return metrics

    def snapshot(self) -> WorldSnapshot:
        metrics = self._metrics if self._metrics is not None else self._metrics_from_state()
        time_step = self._config.time_step
        metadata = SnapshotMetadata(
            world_size=self._config.layout.world_size,
            sim_dt=time_step,
            tick_rate=0.0 if time_step <= 0 else 1.0 / time_step,
            seed=self._rng.seed,
            config_version=self._config.config_version,
        )
        return WorldSnapshot(
            tick=self._tick,
            metrics=metrics,
            boids=[self._boid_snapshot(boid) for boid in self._store.boids],
            obstacles=[self._obstacle_snapshot(obstacle) for obstacle in self._store.obstacles],
            metadata=metadata,
        )

    def _current_cursor(self) -> Vector2 | None:
        if self._cursor_provider is not None:
            return self._cursor_provider()
        return self._cursor

    def _sample_spawn(self) -> int | None:
        was_armed = self._spawner.state == SpawnState.ARMED
        cursor = self._current_cursor()
        point = self._spawner.update(self._place_pressed, cursor)
        if point is None:
            if was_armed and not self._place_pressed:
                logger.debug("Place released without a world cursor; spawn skipped")
            return None
        spawn = self._config.spawn
        params = self._config.profile(spawn.profile)
        velocity = self._rng.next_polar(spawn.max_initial_speed) if spawn.randomize_velocity else Vector2()
        boid_id = self._store.add_boid(point, velocity, params)
        logger.debug("Spawned boid {} at ({:.2f}, {:.2f})", boid_id, point.x, point.y)
        return boid_id

    def _metrics_from_state(self) -> TickMetrics:
        return metrics_system.create_metrics(
            self._tick,
            self._store.boid_count,
            self._store.obstacle_count,
            0,
            0,
            0,
            metrics_system.average_speed(self._store.boids),
            0.0,
        )

    @staticmethod
    def _boid_snapshot(boid: Boid) -> dict:
        velocity = boid.velocity
        return {
            "id": boid.id,
            "x": boid.position.x,
            "y": boid.position.y,
            "vx": velocity.x,
            "vy": velocity.y,
            "heading": _heading_from_velocity(velocity),
            "speed": velocity.length(),
        }

    @staticmethod
    def _obstacle_snapshot(obstacle: Obstacle) -> dict:
        return {
            "id": obstacle.id,
            "x": obstacle.position.x,
            "y": obstacle.position.y,
            "radius": obstacle.params.separation_radius,
        }
