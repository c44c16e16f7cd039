# game/world/hex_coords.py
"""Hex grid coordinate math.

Cells are addressed by an axial ``(x, y)`` pair.  The six neighbour steps are
listed in :class:`HexDirection`; their iteration order is the neighbour order
used by the pathfinder.  Grid distance is computed through cube coordinates
``(q, r, s) = (x, y, -x - y)`` which keeps ``q + r + s == 0`` and measures every
neighbour step as exactly one.
"""

from __future__ import annotations

import math
from enum import Enum
from typing import Iterator, List, NamedTuple, Sequence, Tuple, Union

WorldPosition = Union["HexCoordinate", Tuple[int, int], Tuple[float, float], Sequence[float]]


class CubeCoordinate(NamedTuple):
    q: int
    r: int
    s: int


class HexCoordinate(NamedTuple):
    """Immutable axial cell address; hashes and compares like ``(x, y)``."""

    x: int
    y: int

    def to_cube(self) -> CubeCoordinate:
        return CubeCoordinate(self.x, self.y, -self.x - self.y)

    def step(self, direction: "HexDirection") -> "HexCoordinate":
        dx, dy = direction.value
        return HexCoordinate(self.x + dx, self.y + dy)

    def delta_to(self, other: Tuple[int, int]) -> Tuple[int, int]:
        return other[0] - self.x, other[1] - self.y

    def __repr__(self) -> str:
        return f"Hex({self.x}, {self.y})"


class HexDirection(Enum):
    EAST = (1, 0)
    NORTH_EAST = (1, -1)
    NORTH = (0, -1)
    WEST = (-1, 0)
    SOUTH_WEST = (-1, 1)
    SOUTH = (0, 1)

    @property
    def dx(self) -> int:
        return self.value[0]

    @property
    def dy(self) -> int:
        return self.value[1]

    @classmethod
    def from_delta(cls, dx: int, dy: int) -> "HexDirection":
        """Return the direction for a unit step, raising ``ValueError`` otherwise."""
        try:
            return _DELTA_TO_DIRECTION[(dx, dy)]
        except KeyError:
            raise ValueError(f"({dx}, {dy}) is not a hex neighbour step") from None

    def rotated(self, turns: int) -> "HexDirection":
        """Rotate around the direction ring by ``turns`` (positive = clockwise)."""
        index = HEX_DIRECTIONS.index(self)
        return HEX_DIRECTIONS[(index + turns) % len(HEX_DIRECTIONS)]


HEX_DIRECTIONS: Tuple[HexDirection, ...] = tuple(HexDirection)
_DELTA_TO_DIRECTION = {d.value: d for d in HEX_DIRECTIONS}


def coerce_coordinate(position: WorldPosition, tile_size: float = 1.0) -> HexCoordinate:
    """Convert a world position into the cell that contains it.

    Integer pairs map to themselves when ``tile_size`` is 1; float positions are
    divided by ``tile_size`` and floored.
    """
    if isinstance(position, HexCoordinate) and tile_size == 1.0:
        return position
    try:
        px, py = position
    except (TypeError, ValueError):
        raise ValueError(f"Cannot interpret {position!r} as a world position") from None
    if tile_size <= 0:
        raise ValueError("tile_size must be positive")
    try:
        return HexCoordinate(
            int(math.floor(float(px) / tile_size)), int(math.floor(float(py) / tile_size))
        )
    except (TypeError, ValueError, OverflowError):
        raise ValueError(f"Cannot interpret {position!r} as a world position") from None


def hex_distance(a: Tuple[int, int], b: Tuple[int, int]) -> int:
    """Grid step count between two cells (cube distance)."""
    dx = b[0] - a[0]
    dy = b[1] - a[1]
    return (abs(dx) + abs(dy) + abs(dx + dy)) // 2


def offset_distance(a: Tuple[float, float], b: Tuple[float, float]) -> float:
    """Euclidean distance on the ``(x, y)`` plane, used for circular footprints."""
    return math.hypot(b[0] - a[0], b[1] - a[1])


def hex_neighbors(coord: Tuple[int, int]) -> Iterator[HexCoordinate]:
    x, y = coord
    for direction in HEX_DIRECTIONS:
        dx, dy = direction.value
        yield HexCoordinate(x + dx, y + dy)


def hex_disc(center: Tuple[int, int], radius: float) -> List[HexCoordinate]:
    """Cells whose Euclidean offset distance to ``center`` is at most ``radius``.

    Returned in row-major order so callers iterate deterministically.
    """
    if radius < 0:
        return []
    cx, cy = center
    reach = int(math.floor(radius))
    radius_sq = radius * radius
    cells: List[HexCoordinate] = []
    for dy in range(-reach, reach + 1):
        for dx in range(-reach, reach + 1):
            if dx * dx + dy * dy <= radius_sq:
                cells.append(HexCoordinate(cx + dx, cy + dy))
    return cells


__all__ = [
    "CubeCoordinate",
    "HEX_DIRECTIONS",
    "HexCoordinate",
    "HexDirection",
    "WorldPosition",
    "coerce_coordinate",
    "hex_disc",
    "hex_distance",
    "hex_neighbors",
    "offset_distance",
]
