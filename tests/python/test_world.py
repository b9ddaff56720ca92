from __future__ import annotations

import pytest
from pygame.math import Vector2
from pytest import approx

from murmuration.config import BoidParams, ConfigError, LayoutConfig, ObstacleParams, SimulationConfig, SpawnConfig
from murmuration.rng import DeterministicRng
from murmuration.sim.core.world import World
from murmuration.sim.systems.spawn import SpawnState


def _empty_config(**kwargs) -> SimulationConfig:
    return SimulationConfig(
        layout=LayoutConfig(initial_boids=0, perimeter_obstacles=False),
        **kwargs,
    )


def _still(**overrides) -> BoidParams:
    values = dict(
        separation_weight=0.0,
        alignment_weight=0.0,
        cohesion_weight=0.0,
        noise_weight=0.0,
        max_speed=100.0,
    )
    values.update(overrides)
    return BoidParams(**values)


def _positions(world: World):
    return [(round(b.position.x, 9), round(b.position.y, 9)) for b in world.boids]


def test_default_world_has_flock_and_perimeter():
    world = World(SimulationConfig())

    assert world.store.boid_count == 60
    assert world.store.obstacle_count == 80


def test_speed_cap_holds_after_every_tick():
    config = SimulationConfig(seed=5, layout=LayoutConfig(initial_boids=40, world_size=80.0))
    world = World(config)

    for _ in range(40):
        world.tick()
        for boid in world.boids:
            assert boid.velocity.length() <= boid.params.max_speed + 1e-9


def test_lone_boid_without_noise_keeps_its_velocity():
    world = World(_empty_config())
    boid_id = world.spawn_boid(Vector2(10, 10), Vector2(1, 2), _still(separation_weight=1.0, alignment_weight=1.0, cohesion_weight=1.0))

    metrics = world.tick(1.0)

    boid = world.store.boid(boid_id)
    assert tuple(boid.velocity) == (1.0, 2.0)
    assert tuple(boid.position) == approx((11.0, 12.0))
    assert metrics.skipped_updates == 1
    assert metrics.neighbor_checks == 0


def test_lone_boid_changes_only_by_noise():
    config = _empty_config(seed=21)
    world = World(config, rng=DeterministicRng(21))
    params = BoidParams(max_speed=5.0)
    boid_id = world.spawn_boid(Vector2(0, 0), Vector2(1, 0), params)

    world.tick(0.0)

    expected_noise = DeterministicRng(21).next_polar(5.0)
    expected = Vector2(1, 0) + expected_noise
    if expected.length() > 5.0:
        expected.scale_to_length(5.0)
    assert tuple(world.store.boid(boid_id).velocity) == approx(tuple(expected))


def test_integrator_round_trip_with_no_steering():
    world = World(_empty_config())
    boid_id = world.spawn_boid(Vector2(2, 3), Vector2(3, -1), _still())

    for _ in range(10):
        world.tick(0.1)

    boid = world.store.boid(boid_id)
    assert tuple(boid.position) == approx((2.0 + 10 * 0.1 * 3.0, 3.0 - 10 * 0.1 * 1.0))
    assert tuple(boid.velocity) == (3.0, -1.0)


def test_steering_reads_tick_start_state_only():
    world = World(_empty_config())
    a = world.spawn_boid(Vector2(0, 0), Vector2(0, 0), _still(alignment_weight=1.0))
    b = world.spawn_boid(Vector2(1, 0), Vector2(2, 0), _still(alignment_weight=1.0))

    world.tick(1.0)

    # b must align against a's original zero velocity, not the (2, 0) a was just given
    assert tuple(world.store.boid(a).velocity) == approx((2.0, 0.0))
    assert tuple(world.store.boid(b).velocity) == approx((0.0, 0.0))
    # positions integrate the freshly resolved velocities
    assert tuple(world.store.boid(a).position) == approx((2.0, 0.0))
    assert tuple(world.store.boid(b).position) == approx((1.0, 0.0))


def test_obstacle_term_is_added_unweighted():
    world = World(_empty_config())
    world.spawn_obstacle(Vector2(0, 0), ObstacleParams(separation_weight=0.5, separation_radius=10.0))
    boid_id = world.spawn_boid(Vector2(4, 0), Vector2(), _still())

    world.tick(0.0)

    assert tuple(world.store.boid(boid_id).velocity) == approx((2.0, 0.0))


def test_obstacle_at_exact_radius_has_no_effect():
    world = World(_empty_config())
    world.spawn_obstacle(Vector2(0, 0), ObstacleParams(separation_weight=1.0, separation_radius=4.0))
    boid_id = world.spawn_boid(Vector2(4, 0), Vector2(), _still())

    metrics = world.tick(0.0)

    assert tuple(world.store.boid(boid_id).velocity) == (0.0, 0.0)
    assert metrics.skipped_updates == 1


def test_place_signal_spawns_on_release_at_cursor():
    config = _empty_config(spawn=SpawnConfig(randomize_velocity=False))
    world = World(config)
    world.set_cursor(Vector2(7, 8))
    counts = []
    spawned = []
    for pressed in [False, True, True, False]:
        world.set_place_signal(pressed)
        metrics = world.tick()
        counts.append(world.store.boid_count)
        spawned.append(metrics.spawned)

    assert counts == [0, 0, 0, 1]
    assert spawned == [0, 0, 0, 1]
    boid = world.boids[0]
    assert tuple(boid.position) == (7.0, 8.0)
    assert tuple(boid.velocity) == (0.0, 0.0)
    assert world.spawn_state == SpawnState.IDLE


def test_place_signal_held_never_spawns():
    world = World(_empty_config())
    world.set_cursor(Vector2(1, 1))
    for pressed in [False, True, True, True]:
        world.set_place_signal(pressed)
        world.tick()

    assert world.store.boid_count == 0
    assert world.spawn_state == SpawnState.ARMED


def test_spawn_is_skipped_without_cursor():
    world = World(_empty_config())
    world.set_cursor_provider(lambda: None)
    for pressed in [True, False]:
        world.set_place_signal(pressed)
        world.tick()

    assert world.store.boid_count == 0


def test_cursor_provider_is_sampled_each_tick():
    world = World(_empty_config(spawn=SpawnConfig(randomize_velocity=True, max_initial_speed=3.0)))
    cursors = iter([Vector2(0, 0), Vector2(5, 5)])
    world.set_cursor_provider(lambda: next(cursors))
    for pressed in [True, False]:
        world.set_place_signal(pressed)
        world.tick()

    boid = world.boids[0]
    assert tuple(boid.position) == (5.0, 5.0)
    assert boid.velocity.length() <= 3.0 + 1e-9


def test_spawned_ids_are_stable_and_unique():
    world = World(_empty_config())
    obstacle_id = world.spawn_obstacle(Vector2(50, 50))
    ids = [world.spawn_boid(Vector2(i, 0)) for i in range(5)]

    for _ in range(3):
        world.tick()

    assert len(set(ids + [obstacle_id])) == 6
    assert [b.id for b in world.boids] == ids
    with pytest.raises(KeyError):
        world.store.boid(obstacle_id)


def test_deterministic_ticks_for_same_seed():
    def run(seed: int):
        world = World(SimulationConfig(seed=seed, layout=LayoutConfig(initial_boids=30, world_size=60.0)))
        for _ in range(25):
            world.tick()
        return _positions(world)

    assert run(1234) == run(1234)
    assert run(1234) != run(4321)


def test_worker_pool_matches_serial_run():
    def run(workers: int):
        config = SimulationConfig(seed=8, workers=workers, layout=LayoutConfig(initial_boids=25, world_size=60.0))
        world = World(config)
        try:
            for _ in range(15):
                world.tick()
            return _positions(world)
        finally:
            world.close()

    assert run(1) == run(4)


def test_reset_restores_initial_layout():
    world = World(SimulationConfig(seed=3, layout=LayoutConfig(initial_boids=10)))
    initial = _positions(world)
    for _ in range(5):
        world.tick()
    world.reset()

    assert _positions(world) == initial
    assert world.tick_count == 0
    assert world.metrics is None


def test_missing_default_profile_aborts_startup():
    config = _empty_config(default_profile="missing")

    with pytest.raises(ConfigError):
        World(config)


def test_unknown_spawn_profile_aborts_startup():
    config = _empty_config(spawn=SpawnConfig(profile="ghost"))

    with pytest.raises(ConfigError):
        World(config)


def test_invalid_params_rejected_on_spawn():
    world = World(_empty_config())

    with pytest.raises(ConfigError):
        world.spawn_boid(Vector2(), params=BoidParams(max_speed=-1.0))


def test_each_boid_owns_its_params():
    config = SimulationConfig(layout=LayoutConfig(initial_boids=3, perimeter_obstacles=False))
    world = World(config)
    spawned_id = world.spawn_boid(Vector2(5, 5))
    world.set_cursor(Vector2(7, 7))
    world.set_place_signal(True)
    world.tick()
    world.set_place_signal(False)
    world.tick()
    first, *others = world.boids

    first.params.max_speed = 0.0

    assert len(others) == 4
    assert all(boid.params.max_speed == 50.0 for boid in others)
    assert world.store.boid(spawned_id).params.max_speed == 50.0
    assert config.profile().max_speed == 50.0


def test_snapshot_contains_metadata_and_agent_payloads():
    config = SimulationConfig(seed=7, time_step=0.5, layout=LayoutConfig(initial_boids=2, world_size=42.0))
    world = World(config)
    world.tick()
    snapshot = world.snapshot()

    assert snapshot.tick == 1
    assert snapshot.metadata.world_size == approx(42.0)
    assert snapshot.metadata.sim_dt == approx(0.5)
    assert snapshot.metadata.tick_rate == approx(2.0)
    assert snapshot.metadata.seed == 7
    assert snapshot.metrics.boids == 2
    payload = snapshot.boids[0]
    for key in ["id", "x", "y", "vx", "vy", "heading", "speed"]:
        assert key in payload
    assert payload["speed"] == approx(Vector2(payload["vx"], payload["vy"]).length())
    assert len(snapshot.obstacles) == world.store.obstacle_count
