# game/world/fill.py
"""Deterministic fill predicate deciding which cells become tiles."""

from __future__ import annotations

from typing import Optional, Tuple

import numpy as np

from game.config import StreamerSettings
from game.world.noise import LayeredNoise
from game.world.structures import RoomLayout
from game.world.tiles import TileKind

NO_TILE = -1


class FillPredicate:
    """Combine the layered noise fields, density threshold and room pass.

    A cell is a room tile when it falls inside a room, otherwise a floor tile
    when the layered noise value is below ``density``.  The result depends only
    on the coordinate, the seed and the settings.
    """

    def __init__(self, settings: StreamerSettings, rooms: RoomLayout) -> None:
        self.density = settings.density
        self.noise = LayeredNoise(settings.fields, settings.seed)
        self.rooms = rooms

    def value(self, coord: Tuple[int, int]) -> float:
        return self.noise.sample(coord[0], coord[1])

    def _passes_density(self, value):
        if self.density >= 1.0:
            return np.ones(np.shape(value), dtype=bool) if np.ndim(value) else True
        return value < self.density

    def classify(self, coord: Tuple[int, int]) -> Optional[TileKind]:
        if self.rooms.contains(coord):
            return TileKind.ROOM
        if self._passes_density(self.value(coord)):
            return TileKind.FLOOR
        return None

    def accepts(self, coord: Tuple[int, int]) -> bool:
        return self.classify(coord) is not None

    def classify_grid(self, xs: np.ndarray, ys: np.ndarray) -> np.ndarray:
        """Vectorised :meth:`classify`; cells without a tile hold ``NO_TILE``."""
        xs = np.asarray(xs, dtype=np.int64)
        ys = np.asarray(ys, dtype=np.int64)
        kinds = np.full(xs.shape, NO_TILE, dtype=np.int8)
        kinds[self._passes_density(self.noise.sample_grid(xs, ys))] = TileKind.FLOOR
        kinds[self.rooms.mask(xs, ys)] = TileKind.ROOM
        return kinds


__all__ = ["FillPredicate", "NO_TILE"]
