# game/systems/pathfinding/hex_astar.py
"""A* search over the hex grid.

The search is stateless between calls: every :meth:`HexPathfinder.find_path`
builds a fresh :class:`SearchContext`, runs to completion or to its iteration
budget, and discards it.  Walkability comes from a caller-supplied oracle that
must stay consistent for the duration of one call.

Results are step lists (:class:`HexDirection` values), not coordinates, so the
caller can replay them against its own evolving position.  An empty list means
"cannot currently reach the goal": the start is the goal, the goal is not
walkable, the frontier ran dry, or the iteration budget ran out.
"""

from __future__ import annotations

import heapq
from dataclasses import dataclass, field
from typing import Callable, Dict, Final, List, Optional, Sequence, Tuple

import structlog

from game.config import PathfinderSettings
from game.world.hex_coords import (
    HEX_DIRECTIONS,
    HexCoordinate,
    HexDirection,
    hex_distance,
)

log = structlog.get_logger(__name__)

WalkabilityOracle = Callable[[HexCoordinate], bool]

DEFAULT_MAX_ITERATIONS: Final[int] = 500
# Uniform cost for every hex step
STEP_COST: Final[int] = 1


def heuristic(a: Tuple[int, int], b: Tuple[int, int]) -> int:
    """Cube distance; admissible and consistent for unit step costs."""
    return hex_distance(a, b)


@dataclass
class SearchContext:
    """Per-call search state: open heap, scores and back-pointers.

    Heap entries are ``(f_score, order, coord)``; ``order`` is a running
    insertion counter so equal scores pop first-in, first-out.
    """

    goal: HexCoordinate
    open_heap: List[Tuple[int, int, HexCoordinate]] = field(default_factory=list)
    g_score: Dict[HexCoordinate, int] = field(default_factory=dict)
    came_from: Dict[HexCoordinate, Optional[HexCoordinate]] = field(default_factory=dict)
    iterations: int = 0
    _order: int = 0

    def push(self, coord: HexCoordinate, g: int, parent: Optional[HexCoordinate]) -> None:
        self.g_score[coord] = g
        self.came_from[coord] = parent
        heapq.heappush(self.open_heap, (g + heuristic(coord, self.goal), self._order, coord))
        self._order += 1

    def pop(self) -> Optional[HexCoordinate]:
        """Next frontier node, skipping entries superseded by a better push."""
        while self.open_heap:
            f, _, coord = heapq.heappop(self.open_heap)
            if f - heuristic(coord, self.goal) <= self.g_score[coord]:
                return coord
        return None

    def reconstruct(self, end: HexCoordinate) -> List[HexCoordinate]:
        path = [end]
        parent = self.came_from[end]
        while parent is not None:
            path.append(parent)
            parent = self.came_from[parent]
        path.reverse()
        return path


def coords_to_steps(path: Sequence[HexCoordinate]) -> List[HexDirection]:
    """Convert consecutive coordinates into unit step directions."""
    return [
        HexDirection.from_delta(b[0] - a[0], b[1] - a[1]) for a, b in zip(path, path[1:])
    ]


def apply_steps(start: Tuple[int, int], steps: Sequence[HexDirection]) -> List[HexCoordinate]:
    """Replay ``steps`` from ``start``; returns every visited coordinate, start included."""
    current = HexCoordinate(*start)
    visited = [current]
    for step in steps:
        current = current.step(step)
        visited.append(current)
    return visited


class HexPathfinder:
    """A* over the hex grid with a bounded number of node expansions."""

    def __init__(self, max_iterations: int = DEFAULT_MAX_ITERATIONS) -> None:
        if max_iterations <= 0:
            raise ValueError("max_iterations must be a positive integer.")
        self.max_iterations = max_iterations
        self.last_iterations = 0

    @classmethod
    def from_settings(cls, settings: PathfinderSettings) -> "HexPathfinder":
        return cls(settings.max_iterations)

    def _search(
        self,
        start: Tuple[int, int],
        goal: Tuple[int, int],
        is_walkable: WalkabilityOracle,
        max_iterations: Optional[int],
    ) -> List[HexCoordinate]:
        budget = self.max_iterations if max_iterations is None else max_iterations
        if budget <= 0:
            raise ValueError("max_iterations must be a positive integer.")
        start = HexCoordinate(*start)
        goal = HexCoordinate(*goal)
        self.last_iterations = 0

        if start == goal:
            return []
        if not is_walkable(goal):
            log.debug("Goal not walkable; no path", start=start, goal=goal)
            return []

        ctx = SearchContext(goal=goal)
        ctx.push(start, 0, None)

        while ctx.iterations < budget:
            current = ctx.pop()
            if current is None:
                break
            ctx.iterations += 1
            if current == goal:
                self.last_iterations = ctx.iterations
                path = ctx.reconstruct(goal)
                log.debug(
                    "Path found",
                    start=start,
                    goal=goal,
                    length=len(path) - 1,
                    iterations=ctx.iterations,
                )
                return path

            tentative_g = ctx.g_score[current] + STEP_COST
            for direction in HEX_DIRECTIONS:
                neighbor = current.step(direction)
                if not is_walkable(neighbor):
                    continue
                known_g = ctx.g_score.get(neighbor)
                if known_g is None or tentative_g < known_g:
                    ctx.push(neighbor, tentative_g, current)

        self.last_iterations = ctx.iterations
        if ctx.iterations >= budget:
            log.info("Path search budget exhausted", start=start, goal=goal, iterations=ctx.iterations)
        else:
            log.debug("Path search exhausted frontier", start=start, goal=goal, iterations=ctx.iterations)
        return []

    def find_path(
        self,
        start: Tuple[int, int],
        goal: Tuple[int, int],
        is_walkable: WalkabilityOracle,
        max_iterations: Optional[int] = None,
    ) -> List[HexDirection]:
        """Ordered steps from ``start`` to ``goal``; empty when none was found."""
        return coords_to_steps(self._search(start, goal, is_walkable, max_iterations))

    def find_path_coords(
        self,
        start: Tuple[int, int],
        goal: Tuple[int, int],
        is_walkable: WalkabilityOracle,
        max_iterations: Optional[int] = None,
    ) -> List[HexCoordinate]:
        """Like :meth:`find_path` but returns the coordinates, start included."""
        return self._search(start, goal, is_walkable, max_iterations)


def find_path(
    start: Tuple[int, int],
    goal: Tuple[int, int],
    is_walkable: WalkabilityOracle,
    max_iterations: int = DEFAULT_MAX_ITERATIONS,
) -> List[HexDirection]:
    """Module-level convenience wrapper around :class:`HexPathfinder`."""
    return HexPathfinder(max_iterations).find_path(start, goal, is_walkable)


__all__ = [
    "DEFAULT_MAX_ITERATIONS",
    "HexPathfinder",
    "SearchContext",
    "WalkabilityOracle",
    "apply_steps",
    "coords_to_steps",
    "find_path",
    "heuristic",
]
