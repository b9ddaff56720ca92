from __future__ import annotations

from enum import Enum
from typing import Optional

from pygame.math import Vector2


class SpawnState(str, Enum):
    IDLE = "Idle"
    ARMED = "Armed"


class SpawnController:
    """
    Release-edge trigger for the logical "place" action.

    ``update`` is sampled once per tick. Holding the action arms the
    controller; letting go returns it to idle and yields the cursor as the
    spawn point. A release without a resolvable cursor is a skipped
    opportunity, not an error.
    """

    def __init__(self) -> None:
        self._state = SpawnState.IDLE

    @property
    def state(self) -> SpawnState:
        return self._state

    def reset(self) -> None:
        self._state = SpawnState.IDLE

    def update(self, pressed: bool, cursor: Optional[Vector2]) -> Optional[Vector2]:
        if self._state == SpawnState.IDLE:
            if pressed:
                self._state = SpawnState.ARMED
            return None
        if pressed:
            return None
        self._state = SpawnState.IDLE
        if cursor is None:
            return None
        return Vector2(cursor)
