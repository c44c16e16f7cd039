# game/world/occupancy.py
"""Shared occupancy registry.

Spawners for different kinds of occupants (pickups, enemies, pursuers) share
one registry instead of keeping their own "occupied tiles" maps.  The registry
only accepts generated tiles and subscribes to the streamer so that occupants
standing on evicted tiles are dropped automatically.
"""

from __future__ import annotations

from typing import Dict, Hashable, List, Optional, Tuple

import structlog

from game.world.hex_coords import HexCoordinate
from game.world.streamer import ChunkedWorldStreamer, StreamDelta

log = structlog.get_logger()


class OccupancyRegistry:
    """At most one occupant per tile; occupants are arbitrary hashable ids."""

    def __init__(self, streamer: ChunkedWorldStreamer) -> None:
        self.streamer = streamer
        self._by_tile: Dict[HexCoordinate, Hashable] = {}
        self._by_occupant: Dict[Hashable, HexCoordinate] = {}
        self.last_evicted: List[Tuple[Hashable, HexCoordinate]] = []
        streamer.add_listener(self.on_stream_delta)

    def __len__(self) -> int:
        return len(self._by_occupant)

    def is_occupied(self, coord: Tuple[int, int]) -> bool:
        return coord in self._by_tile

    def occupant_at(self, coord: Tuple[int, int]) -> Optional[Hashable]:
        return self._by_tile.get(coord)

    def position_of(self, occupant: Hashable) -> Optional[HexCoordinate]:
        return self._by_occupant.get(occupant)

    def register(self, occupant: Hashable, coord: Tuple[int, int]) -> bool:
        """Place ``occupant`` on ``coord``, moving it if already registered.

        Returns ``False`` when the tile is not generated or held by another
        occupant.
        """
        coord = HexCoordinate(*coord)
        if not self.streamer.is_generated(coord):
            log.debug("Occupancy rejected: tile not generated", occupant=occupant, coord=coord)
            return False
        holder = self._by_tile.get(coord)
        if holder is not None and holder != occupant:
            log.debug("Occupancy rejected: tile taken", occupant=occupant, coord=coord, holder=holder)
            return False
        previous = self._by_occupant.get(occupant)
        if previous is not None:
            del self._by_tile[previous]
        self._by_tile[coord] = occupant
        self._by_occupant[occupant] = coord
        return True

    def unregister(self, occupant: Hashable) -> Optional[HexCoordinate]:
        """Remove ``occupant``; returns its last tile or ``None`` if unknown."""
        coord = self._by_occupant.pop(occupant, None)
        if coord is not None:
            del self._by_tile[coord]
        return coord

    def on_stream_delta(self, delta: StreamDelta) -> None:
        evicted = [
            (self._by_tile[coord], coord) for coord in delta.deleted if coord in self._by_tile
        ]
        for occupant, _ in evicted:
            self.unregister(occupant)
        self.last_evicted = evicted
        if evicted:
            log.debug("Occupants evicted with their tiles", count=len(evicted))

    def detach(self) -> None:
        self.streamer.remove_listener(self.on_stream_delta)


__all__ = ["OccupancyRegistry"]
