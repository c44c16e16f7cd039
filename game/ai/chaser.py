"""Pursuing agent that walks toward a moving target.

The chaser re-plans with the hex pathfinder every ``repath_interval`` ticks,
whenever the target has moved since the last plan, or when its current route
is exhausted or blocked.  It moves at most one tile per tick.
"""

from __future__ import annotations

from typing import Callable, Optional, Tuple

import structlog

from game.systems.movement_system import PathFollower
from game.systems.pathfinding.hex_astar import HexPathfinder
from game.world.hex_coords import HexCoordinate

log = structlog.get_logger()


class Chaser:
    def __init__(
        self,
        position: Tuple[int, int],
        pathfinder: Optional[HexPathfinder] = None,
        repath_interval: int = 5,
    ) -> None:
        if repath_interval <= 0:
            raise ValueError("repath_interval must be a positive integer.")
        self.position = HexCoordinate(*position)
        self.pathfinder = pathfinder if pathfinder is not None else HexPathfinder()
        self.repath_interval = repath_interval
        self.caught = False
        self._follower: Optional[PathFollower] = None
        self._planned_for: Optional[HexCoordinate] = None
        self._ticks_since_plan = 0
        self.replans = 0

    def _needs_plan(self, target: HexCoordinate) -> bool:
        if self._follower is None or self._follower.finished or self._follower.blocked:
            return True
        if target != self._planned_for:
            return True
        return self._ticks_since_plan >= self.repath_interval

    def _plan(self, target: HexCoordinate, is_walkable: Callable[[HexCoordinate], bool]) -> None:
        steps = self.pathfinder.find_path(self.position, target, is_walkable)
        self._follower = PathFollower(self.position, steps)
        self._planned_for = target
        self._ticks_since_plan = 0
        self.replans += 1
        log.debug("Chaser re-planned", position=self.position, target=target, steps=len(steps))

    def tick(
        self, target: Tuple[int, int], is_walkable: Callable[[HexCoordinate], bool]
    ) -> HexCoordinate:
        """Advance one tick toward ``target``; returns the (possibly unchanged) position."""
        target = HexCoordinate(*target)
        self.caught = self.position == target
        if self.caught:
            return self.position

        if self._needs_plan(target):
            self._plan(target, is_walkable)
        self._ticks_since_plan += 1

        moved = self._follower.next_step(is_walkable)
        if moved is not None:
            self.position = moved
        if self.position == target:
            self.caught = True
            log.info("Chaser caught target", position=self.position)
        return self.position


__all__ = ["Chaser"]
