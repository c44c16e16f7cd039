# game/world/tiles.py
from dataclasses import dataclass
from enum import IntEnum

from game.world.hex_coords import HexCoordinate


class TileKind(IntEnum):
    """Which generation pass produced a tile.

    Lower values take precedence when two passes claim the same cell.
    """

    ROOM = 0
    FLOOR = 1
    CORRIDOR = 2
    DEAD_END = 3


@dataclass(frozen=True)
class WorldTile:
    """A generated, walkable cell."""
    position: HexCoordinate
    variant: int
    kind: TileKind = TileKind.FLOOR


__all__ = ["TileKind", "WorldTile"]
