"""Movement helper utilities.

:class:`PathFollower` replays a step list produced by the pathfinder against an
evolving position.  The world may change between steps (tiles streamed out,
occupants moving in), so every step re-checks walkability of its destination
instead of trusting the route that was planned.
"""

from __future__ import annotations

from typing import Callable, List, Optional, Sequence, Tuple

import structlog

from game.world.hex_coords import HexCoordinate, HexDirection

log = structlog.get_logger()


class PathFollower:
    def __init__(self, start: Tuple[int, int], steps: Sequence[HexDirection]) -> None:
        self.position = HexCoordinate(*start)
        self._steps: List[HexDirection] = list(steps)
        self._index = 0
        self.blocked = False

    @property
    def remaining(self) -> int:
        return len(self._steps) - self._index

    @property
    def finished(self) -> bool:
        return self._index >= len(self._steps)

    def peek(self) -> Optional[HexCoordinate]:
        """Destination of the next step without taking it."""
        if self.finished:
            return None
        return self.position.step(self._steps[self._index])

    def next_step(self, is_walkable: Callable[[HexCoordinate], bool]) -> Optional[HexCoordinate]:
        """Take the next step if its destination is walkable.

        Returns
        -------
        HexCoordinate | None
            The new position, or ``None`` when the route is exhausted or the
            next tile is blocked.  A blocked step is not consumed.
        """
        destination = self.peek()
        if destination is None:
            return None
        if not is_walkable(destination):
            self.blocked = True
            log.debug("Path step blocked", position=self.position, destination=destination)
            return None
        self.blocked = False
        self.position = destination
        self._index += 1
        return destination


__all__ = ["PathFollower"]
