from __future__ import annotations

import math
from dataclasses import dataclass, field, fields, replace
from pathlib import Path
from typing import Any, Dict, Optional

import yaml

from .sim.utils.math2d import FULL_CIRCLE


class ConfigError(ValueError):
    """Raised once at startup when the configuration cannot drive a world."""


def _as_float(owner: str, name: str, value: Any) -> float:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise ConfigError(f"{owner}.{name} must be a number, got {value!r}")
    return float(value)


def _as_int(owner: str, name: str, value: Any) -> int:
    if isinstance(value, bool) or not isinstance(value, int):
        raise ConfigError(f"{owner}.{name} must be an integer, got {value!r}")
    return value


def _require_non_negative(owner: str, name: str, value: Any) -> None:
    value = _as_float(owner, name, value)
    if not math.isfinite(value) or value < 0.0:
        raise ConfigError(f"{owner}.{name} must be a finite non-negative number, got {value!r}")


@dataclass
class BoidParams:
    separation_weight: float = 1.0
    alignment_weight: float = 1.0
    cohesion_weight: float = 1.0
    noise_weight: float = 1.0
    separation_radius: float = 10.0
    alignment_radius: float = 25.0
    cohesion_radius: float = 25.0
    # half-angles in radians; a full circle disables the angular filter
    separation_fov: float = FULL_CIRCLE
    alignment_fov: float = FULL_CIRCLE
    cohesion_fov: float = FULL_CIRCLE
    max_speed: float = 50.0

    @classmethod
    def uniform(
        cls,
        view_radius: float,
        fov_angle: float = FULL_CIRCLE,
        max_speed: float = 50.0,
        separation_weight: float = 1.0,
        alignment_weight: float = 1.0,
        cohesion_weight: float = 1.0,
        noise_weight: float = 0.0,
    ) -> "BoidParams":
        """One view radius and one field of view shared by all three behaviours."""
        return cls(
            separation_weight=separation_weight,
            alignment_weight=alignment_weight,
            cohesion_weight=cohesion_weight,
            noise_weight=noise_weight,
            separation_radius=view_radius,
            alignment_radius=view_radius,
            cohesion_radius=view_radius,
            separation_fov=fov_angle,
            alignment_fov=fov_angle,
            cohesion_fov=fov_angle,
            max_speed=max_speed,
        )

    def validate(self, owner: str = "BoidParams") -> None:
        for name in (
            "separation_radius",
            "alignment_radius",
            "cohesion_radius",
            "separation_fov",
            "alignment_fov",
            "cohesion_fov",
            "max_speed",
        ):
            _require_non_negative(owner, name, getattr(self, name))
        for name in ("separation_weight", "alignment_weight", "cohesion_weight", "noise_weight"):
            if not math.isfinite(_as_float(owner, name, getattr(self, name))):
                raise ConfigError(f"{owner}.{name} must be finite")


@dataclass
class ObstacleParams:
    separation_weight: float = 1.0
    separation_radius: float = 8.0

    def validate(self, owner: str = "ObstacleParams") -> None:
        _require_non_negative(owner, "separation_radius", self.separation_radius)
        if not math.isfinite(_as_float(owner, "separation_weight", self.separation_weight)):
            raise ConfigError(f"{owner}.separation_weight must be finite")


@dataclass
class SpawnConfig:
    profile: Optional[str] = None
    randomize_velocity: bool = True
    max_initial_speed: float = 20.0


@dataclass
class LayoutConfig:
    world_size: float = 200.0
    perimeter_obstacles: bool = True
    obstacle_spacing: float = 10.0
    initial_boids: int = 60
    initial_speed: float = 20.0


@dataclass
class SimulationConfig:
    time_step: float = 1.0 / 60.0
    seed: int = 42
    workers: int = 1
    config_version: str = "v1"
    default_profile: str = "default"
    boid_profiles: Dict[str, BoidParams] = field(default_factory=lambda: {"default": BoidParams()})
    obstacle: ObstacleParams = field(default_factory=ObstacleParams)
    spawn: SpawnConfig = field(default_factory=SpawnConfig)
    layout: LayoutConfig = field(default_factory=LayoutConfig)

    @staticmethod
    def from_yaml(path: Path) -> "SimulationConfig":
        data = yaml.safe_load(Path(path).read_text()) or {}
        return load_config(data)

    def profile(self, name: Optional[str] = None) -> BoidParams:
        """A fresh copy of the named profile, or of the default one."""
        key = self.default_profile if name is None else name
        try:
            return replace(self.boid_profiles[key])
        except KeyError:
            known = ", ".join(sorted(self.boid_profiles)) or "<none>"
            raise ConfigError(f"Unknown boid profile {key!r} (known: {known})") from None

    def validate(self) -> None:
        time_step = _as_float("simulation", "time_step", self.time_step)
        if time_step <= 0.0 or not math.isfinite(time_step):
            raise ConfigError(f"time_step must be positive, got {self.time_step!r}")
        _as_int("simulation", "seed", self.seed)
        if _as_int("simulation", "workers", self.workers) < 1:
            raise ConfigError(f"workers must be at least 1, got {self.workers!r}")
        if not self.boid_profiles:
            raise ConfigError("boid_profiles must define at least one profile")
        for name, params in self.boid_profiles.items():
            params.validate(owner=f"boid_profiles.{name}")
        self.profile()
        self.profile(self.spawn.profile)
        self.obstacle.validate(owner="obstacle")
        _require_non_negative("spawn", "max_initial_speed", self.spawn.max_initial_speed)
        layout = self.layout
        _require_non_negative("layout", "world_size", layout.world_size)
        _require_non_negative("layout", "initial_speed", layout.initial_speed)
        if _as_int("layout", "initial_boids", layout.initial_boids) < 0:
            raise ConfigError(f"layout.initial_boids must be non-negative, got {layout.initial_boids!r}")
        if layout.perimeter_obstacles and _as_float("layout", "obstacle_spacing", layout.obstacle_spacing) <= 0.0:
            raise ConfigError("layout.obstacle_spacing must be positive when perimeter_obstacles is enabled")


@dataclass
class AppConfig:
    simulation: SimulationConfig = field(default_factory=SimulationConfig)
    broadcast_interval: int = 2


def _build(cls: type, raw: Any, owner: str) -> Any:
    if raw is None:
        return cls()
    if not isinstance(raw, dict):
        raise ConfigError(f"{owner} must be a mapping, got {type(raw).__name__}")
    known = {f.name for f in fields(cls)}
    unknown = set(raw) - known
    if unknown:
        raise ConfigError(f"Unknown keys in {owner}: {', '.join(sorted(unknown))}")
    return cls(**raw)


def load_config(raw: dict) -> SimulationConfig:
    if not isinstance(raw, dict):
        raise ConfigError(f"Configuration root must be a mapping, got {type(raw).__name__}")
    profiles_raw = raw.get("boid_profiles")
    if profiles_raw is None:
        profiles = {"default": BoidParams()}
    elif isinstance(profiles_raw, dict):
        profiles = {
            str(name): _build(BoidParams, values, f"boid_profiles.{name}") for name, values in profiles_raw.items()
        }
    else:
        raise ConfigError("boid_profiles must be a mapping of profile name to parameters")
    nested = {"boid_profiles", "obstacle", "spawn", "layout"}
    sim_values = {k: v for k, v in raw.items() if k not in nested}
    unknown = set(sim_values) - {f.name for f in fields(SimulationConfig)}
    if unknown:
        raise ConfigError(f"Unknown keys in simulation config: {', '.join(sorted(unknown))}")
    config = SimulationConfig(
        boid_profiles=profiles,
        obstacle=_build(ObstacleParams, raw.get("obstacle"), "obstacle"),
        spawn=_build(SpawnConfig, raw.get("spawn"), "spawn"),
        layout=_build(LayoutConfig, raw.get("layout"), "layout"),
        **sim_values,
    )
    config.validate()
    return config
