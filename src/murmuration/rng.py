from __future__ import annotations

import math
import random

from pygame.math import Vector2

from .sim.utils.math2d import _from_polar


class DeterministicRng:
    def __init__(self, seed: int):
        self._seed = seed
        self._random = random.Random(seed)

    @property
    def seed(self) -> int:
        return self._seed

    def reset(self) -> None:
        self._random.seed(self._seed)

    def next_range(self, low: float, high: float) -> float:
        return self._random.uniform(low, high)

    def next_angle(self) -> float:
        """Uniform in ``[0, 2*pi)``."""
        return self._random.random() * 2.0 * math.pi

    def next_polar(self, max_magnitude: float) -> Vector2:
        # direction is drawn before magnitude
        angle = self.next_angle()
        magnitude = self._random.random() * max(0.0, max_magnitude)
        return _from_polar(magnitude, angle)
