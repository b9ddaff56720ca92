from __future__ import annotations

import argparse
import csv
import json
import math
from pathlib import Path
from typing import Optional

from loguru import logger

from ..config import SimulationConfig
from ..logs import configure_logging
from ..sim.core.world import World
from ..sim.types.metrics import TickMetrics

_BASIC_HEADER = [
    "tick",
    "boids",
    "obstacles",
    "spawned",
    "neighbor_checks",
    "skipped_updates",
    "avg_speed",
    "tick_ms",
]

_DETAILED_HEADER = _BASIC_HEADER + [
    "neighbor_checks_per_boid",
    "skipped_ratio",
    "max_speed",
    "max_speed_ratio",
    "centroid_x",
    "centroid_y",
    "spread",
    "polarization",
]


def _format_basic_row(metrics: TickMetrics, tick_ms: float) -> list[object]:
    return [
        metrics.tick,
        metrics.boids,
        metrics.obstacles,
        metrics.spawned,
        metrics.neighbor_checks,
        metrics.skipped_updates,
        f"{metrics.average_speed:.4f}",
        f"{tick_ms:.3f}",
    ]


def _format_detailed_row(world: World, metrics: TickMetrics, tick_ms: float) -> list[object]:
    boids = world.boids
    count = len(boids)
    if count == 0:
        checks_per_boid = 0.0
        skipped_ratio = 0.0
        max_speed = 0.0
        max_speed_ratio = 0.0
        centroid_x = 0.0
        centroid_y = 0.0
        spread = 0.0
        polarization = 0.0
    else:
        checks_per_boid = metrics.neighbor_checks / count
        skipped_ratio = metrics.skipped_updates / count
        sum_x = 0.0
        sum_y = 0.0
        heading_x = 0.0
        heading_y = 0.0
        max_speed = 0.0
        max_speed_ratio = 0.0
        for boid in boids:
            sum_x += boid.position.x
            sum_y += boid.position.y
            speed = math.hypot(boid.velocity.x, boid.velocity.y)
            if speed > max_speed:
                max_speed = speed
            if boid.params.max_speed > 0.0:
                max_speed_ratio = max(max_speed_ratio, speed / boid.params.max_speed)
            if speed > 1e-12:
                heading_x += boid.velocity.x / speed
                heading_y += boid.velocity.y / speed
        centroid_x = sum_x / count
        centroid_y = sum_y / count
        spread = sum(math.hypot(b.position.x - centroid_x, b.position.y - centroid_y) for b in boids) / count
        # 1.0 when every moving boid heads the same way
        polarization = math.hypot(heading_x, heading_y) / count

    return _format_basic_row(metrics, tick_ms) + [
        f"{checks_per_boid:.4f}",
        f"{skipped_ratio:.4f}",
        f"{max_speed:.4f}",
        f"{max_speed_ratio:.4f}",
        f"{centroid_x:.4f}",
        f"{centroid_y:.4f}",
        f"{spread:.4f}",
        f"{polarization:.4f}",
    ]


def _percentile(sorted_values: list[float], percentile: float) -> float:
    if not sorted_values:
        return 0.0
    if len(sorted_values) == 1:
        return float(sorted_values[0])
    pos = (len(sorted_values) - 1) * percentile
    low = int(math.floor(pos))
    high = int(math.ceil(pos))
    if low == high:
        return float(sorted_values[low])
    weight = pos - low
    return float(sorted_values[low] + (sorted_values[high] - sorted_values[low]) * weight)


def _summary_stats(values: list[float]) -> dict[str, float]:
    if not values:
        return {"min": 0.0, "max": 0.0, "avg": 0.0, "p50": 0.0, "p90": 0.0, "p99": 0.0}
    sorted_values = sorted(values)
    return {
        "min": float(sorted_values[0]),
        "max": float(sorted_values[-1]),
        "avg": float(sum(values) / len(values)),
        "p50": _percentile(sorted_values, 0.50),
        "p90": _percentile(sorted_values, 0.90),
        "p99": _percentile(sorted_values, 0.99),
    }


def run_headless(
    steps: int,
    seed: Optional[int],
    log_path: Optional[Path],
    deterministic_log: bool = False,
    log_format: str = "detailed",
    summary_path: Optional[Path] = None,
    config_path: Optional[Path] = None,
) -> World:
    config = SimulationConfig.from_yaml(config_path) if config_path else SimulationConfig()
    if seed is not None:
        config.seed = seed

    log_mode = log_format.lower().strip()
    if log_mode not in {"basic", "detailed"}:
        raise ValueError(f"Unknown log format: {log_format}")

    world = World(config)
    writer = None
    csv_file = None
    if log_path:
        csv_file = Path(log_path).open("w", newline="")
        writer = csv.writer(csv_file)
        writer.writerow(_DETAILED_HEADER if log_mode == "detailed" else _BASIC_HEADER)

    tick_ms_series: list[float] = []
    speed_series: list[float] = []
    checks_series: list[float] = []
    skipped_total = 0

    try:
        for _ in range(steps):
            metrics = world.tick()
            tick_ms = 0.0 if deterministic_log else metrics.tick_duration_ms
            tick_ms_series.append(tick_ms)
            speed_series.append(metrics.average_speed)
            checks_series.append(float(metrics.neighbor_checks))
            skipped_total += metrics.skipped_updates
            if writer:
                if log_mode == "detailed":
                    writer.writerow(_format_detailed_row(world, metrics, tick_ms))
                else:
                    writer.writerow(_format_basic_row(metrics, tick_ms))
    finally:
        if csv_file:
            csv_file.close()
        world.close()

    logger.info("Headless run finished after {} ticks ({} boids)", steps, world.store.boid_count)

    if summary_path:
        summary = {
            "steps": steps,
            "seed": config.seed,
            "log_format": log_mode,
            "deterministic_log": deterministic_log,
            "boids": world.store.boid_count,
            "obstacles": world.store.obstacle_count,
            "skipped_updates": skipped_total,
            "tick_ms": _summary_stats(tick_ms_series),
            "average_speed": _summary_stats(speed_series),
            "neighbor_checks": _summary_stats(checks_series),
        }
        Path(summary_path).write_text(json.dumps(summary, indent=2))
    return world


def main() -> None:
    parser = argparse.ArgumentParser(description="Headless boids simulation")
    parser.add_argument("--steps", type=int, default=3000)
    parser.add_argument("--seed", type=int, default=None)
    parser.add_argument("--config", type=Path, default=None, help="YAML simulation config")
    parser.add_argument("--log", type=Path, default=None, help="CSV file to write metrics")
    parser.add_argument(
        "--log-format",
        choices=["basic", "detailed"],
        default="detailed",
        help="CSV format to write when --log is provided.",
    )
    parser.add_argument(
        "--summary",
        type=Path,
        default=None,
        help="Optional JSON file to write summary stats for the run.",
    )
    parser.add_argument(
        "--deterministic-log",
        action="store_true",
        help="Write deterministic CSV (tick_ms is forced to 0.000 so identical seeds match).",
    )
    parser.add_argument("--log-level", default="INFO", help="loguru level for stderr output")
    args = parser.parse_args()
    configure_logging(args.log_level)
    run_headless(
        args.steps,
        args.seed,
        args.log,
        deterministic_log=args.deterministic_log,
        log_format=args.log_format,
        summary_path=args.summary,
        config_path=args.config,
    )


if __name__ == "__main__":
    main()
