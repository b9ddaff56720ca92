import pytest

from murmuration.config import SimulationConfig
from murmuration.sim.core.world import World


@pytest.mark.slow
def test_long_run_stays_bounded_and_finite():
    world = World(SimulationConfig(seed=99))
    durations = []
    for _ in range(2000):
        metrics = world.tick()
        durations.append(metrics.tick_duration_ms)

    for boid in world.boids:
        assert boid.velocity.length() <= boid.params.max_speed + 1e-9
        assert boid.position.x == boid.position.x
        assert boid.position.y == boid.position.y
    assert world.tick_count == 2000
    assert sum(durations) / len(durations) < 250.0
