# game/world/structures.py
"""Secondary structures layered over the noise fill.

* Rooms: circular clusters centred on a coarse grid.  A grid point hosts a room
  when the room noise field dips below the valley threshold; the radius is drawn
  from the centre's hash.
* Corridors: greedy hex line drawing between two anchors with random lateral
  jitter, confined to a bounding rectangle.
* Dead ends: short straight stubs branching off corridor tiles.

Every structure is a pure function of its anchors and the run seed, so the same
tiles come back no matter when or how often they are requested.
"""

from __future__ import annotations

from typing import Callable, Dict, Iterator, List, NamedTuple, Optional, Tuple

import numpy as np
import structlog

from game.config import CorridorSettings, DeadEndSettings, RoomSettings
from game.world.hex_coords import (
    HEX_DIRECTIONS,
    HexCoordinate,
    hex_distance,
    offset_distance,
)
from game.world.noise import NoiseField
from game.world.tiles import TileKind
from game_rng import GameRNG, coord_hash, coord_unit

log = structlog.get_logger()

_RADIUS_TAG = 0x5AD1
_CONNECT_TAG = 0xC044
_CORRIDOR_TAG = 0xC0DD
_BRANCH_TAG = 0xDEAD
_STUB_TAG = 0x57AB

StructureTiles = Tuple[Tuple[HexCoordinate, TileKind], ...]
Link = Tuple[HexCoordinate, HexCoordinate]


class Rect(NamedTuple):
    """An inclusive rectangle of tiles."""
    x1: int
    y1: int
    x2: int
    y2: int

    def contains(self, coord: Tuple[int, int]) -> bool:
        return self.x1 <= coord[0] <= self.x2 and self.y1 <= coord[1] <= self.y2

    def intersects(self, other: "Rect") -> bool:
        """Returns True if this rectangle intersects with another one."""
        return (
            self.x1 <= other.x2
            and self.x2 >= other.x1
            and self.y1 <= other.y2
            and self.y2 >= other.y1
        )

    def union(self, other: "Rect") -> "Rect":
        return Rect(
            min(self.x1, other.x1),
            min(self.y1, other.y1),
            max(self.x2, other.x2),
            max(self.y2, other.y2),
        )


# --- Line drawing ---
def carve_corridor(
    start: HexCoordinate,
    end: HexCoordinate,
    rng: GameRNG,
    jitter_chance: float,
    max_length: int,
    allowed: Optional[Callable[[HexCoordinate], bool]] = None,
) -> List[HexCoordinate]:
    """Walk from ``start`` toward ``end`` one hex step at a time.

    Each step normally takes the direction that most reduces the remaining
    distance (first in ring order on ties).  With ``jitter_chance`` the step is
    rotated one notch left or right instead, provided the lateral cell is
    allowed.  The walk stops at ``end`` or after ``max_length`` steps.
    """
    path = [start]
    current = start
    for _ in range(max_length):
        if current == end:
            break
        best = min(HEX_DIRECTIONS, key=lambda d: hex_distance(current.step(d), end))
        direction = best
        if rng.chance(jitter_chance):
            lateral = best.rotated(rng.choice((-1, 1)))
            if allowed is None or allowed(current.step(lateral)):
                direction = lateral
        nxt = current.step(direction)
        if allowed is not None and not allowed(nxt):
            break
        current = nxt
        path.append(current)
    return path


def dead_end_stub(
    origin: HexCoordinate,
    rng: GameRNG,
    min_length: int,
    max_length: int,
    allowed: Optional[Callable[[HexCoordinate], bool]] = None,
) -> List[HexCoordinate]:
    """A short straight false path leaving ``origin`` in a random direction."""
    direction = rng.choice(HEX_DIRECTIONS)
    length = rng.get_int(min_length, max_length)
    tiles: List[HexCoordinate] = []
    current = origin
    for _ in range(length):
        current = current.step(direction)
        if allowed is not None and not allowed(current):
            break
        tiles.append(current)
    return tiles


# --- Rooms ---
class RoomLayout:
    """Room placement on a coarse grid of candidate centres."""

    def __init__(self, settings: RoomSettings, seed: int) -> None:
        self.settings = settings
        self.seed = seed
        self.noise = NoiseField(settings.noise, seed)
        self._valid_centres: Dict[HexCoordinate, bool] = {}

    def nearest_centre(self, coord: Tuple[int, int]) -> HexCoordinate:
        g = self.settings.grid_size
        half = g // 2
        return HexCoordinate(((coord[0] + half) // g) * g, ((coord[1] + half) // g) * g)

    def is_room_centre(self, centre: HexCoordinate) -> bool:
        if not self.settings.enabled:
            return False
        valid = self._valid_centres.get(centre)
        if valid is None:
            valid = self.noise.sample(centre.x, centre.y) < self.settings.valley_threshold
            self._valid_centres[centre] = valid
        return valid

    def radius_of(self, centre: HexCoordinate) -> int:
        s = self.settings
        span = s.max_radius - s.min_radius + 1
        return s.min_radius + coord_hash(self.seed, centre.x, centre.y, _RADIUS_TAG) % span

    def contains(self, coord: Tuple[int, int]) -> bool:
        if not self.settings.enabled:
            return False
        centre = self.nearest_centre(coord)
        if not self.is_room_centre(centre):
            return False
        return offset_distance(coord, centre) <= self.radius_of(centre)

    def mask(self, xs: np.ndarray, ys: np.ndarray) -> np.ndarray:
        """Vectorised :meth:`contains` over coordinate arrays."""
        result = np.zeros(np.shape(xs), dtype=bool)
        if not self.settings.enabled:
            return result
        g = self.settings.grid_size
        half = g // 2
        cxs = ((xs + half) // g) * g
        cys = ((ys + half) // g) * g
        pairs = np.unique(np.stack([cxs.ravel(), cys.ravel()], axis=1), axis=0)
        for cx, cy in pairs:
            centre = HexCoordinate(int(cx), int(cy))
            if not self.is_room_centre(centre):
                continue
            r = self.radius_of(centre)
            near = (cxs == centre.x) & (cys == centre.y)
            dist_sq = (xs - centre.x) ** 2 + (ys - centre.y) ** 2
            result |= near & (dist_sq <= r * r)
        return result

    def centres_in(self, area: Rect) -> Iterator[HexCoordinate]:
        """Grid points inside ``area`` in row-major order (valid or not)."""
        g = self.settings.grid_size
        for gy in range(-((-area.y1) // g), area.y2 // g + 1):
            for gx in range(-((-area.x1) // g), area.x2 // g + 1):
                yield HexCoordinate(gx * g, gy * g)

    def prune(self, keep: Callable[[HexCoordinate], bool]) -> int:
        """Forget cached centres for which ``keep`` is false; returns the count removed."""
        doomed = [centre for centre in self._valid_centres if not keep(centre)]
        for centre in doomed:
            del self._valid_centres[centre]
        return len(doomed)

    @property
    def cached_centres(self) -> int:
        return len(self._valid_centres)

    def clear(self) -> None:
        self._valid_centres.clear()


# --- Corridors between anchors ---
class StructurePlanner:
    """Computes and caches corridor (plus dead-end) footprints per anchor pair."""

    def __init__(
        self,
        corridors: CorridorSettings,
        dead_ends: DeadEndSettings,
        seed: int,
    ) -> None:
        self.corridors = corridors
        self.dead_ends = dead_ends
        self.seed = seed
        self._cache: Dict[Link, StructureTiles] = {}

    @staticmethod
    def link_key(a: HexCoordinate, b: HexCoordinate) -> Link:
        return (a, b) if a <= b else (b, a)

    def is_linked(self, a: HexCoordinate, b: HexCoordinate) -> bool:
        if not self.corridors.enabled:
            return False
        a, b = self.link_key(a, b)
        return coord_unit(self.seed, a.x, a.y, b.x, b.y, _CONNECT_TAG) < self.corridors.connect_probability

    def connect(self, a: HexCoordinate, b: HexCoordinate, bounds: Rect) -> StructureTiles:
        """Corridor and dead-end tiles joining ``a`` and ``b`` within ``bounds``."""
        key = self.link_key(a, b)
        cached = self._cache.get(key)
        if cached is not None:
            return cached
        if not self.is_linked(a, b):
            self._cache[key] = ()
            return ()

        start, end = key
        rng = GameRNG.for_coordinate(self.seed, start.x, start.y, end.x, end.y, _CORRIDOR_TAG)
        path = carve_corridor(
            start,
            end,
            rng,
            self.corridors.jitter_chance,
            self.corridors.max_length,
            allowed=bounds.contains,
        )
        tiles: List[Tuple[HexCoordinate, TileKind]] = [(c, TileKind.CORRIDOR) for c in path]
        if self.dead_ends.enabled:
            for c in path:
                if coord_unit(self.seed, c.x, c.y, _BRANCH_TAG) >= self.dead_ends.branch_probability:
                    continue
                stub_rng = GameRNG.for_coordinate(self.seed, c.x, c.y, _STUB_TAG)
                stub = dead_end_stub(
                    c,
                    stub_rng,
                    self.dead_ends.min_length,
                    self.dead_ends.max_length,
                    allowed=bounds.contains,
                )
                tiles.extend((s, TileKind.DEAD_END) for s in stub)

        result = tuple(tiles)
        self._cache[key] = result
        log.debug(
            "Corridor carved",
            start=start,
            end=end,
            length=len(path),
            reached=path[-1] == end,
            extra_tiles=len(result) - len(path),
        )
        return result

    def prune(self, keep: Callable[[Link], bool]) -> int:
        """Drop cached links for which ``keep`` is false; returns the count removed."""
        doomed = [key for key in self._cache if not keep(key)]
        for key in doomed:
            del self._cache[key]
        return len(doomed)

    @property
    def cached_links(self) -> int:
        return len(self._cache)

    def clear(self) -> None:
        self._cache.clear()


__all__ = [
    "Rect",
    "RoomLayout",
    "StructurePlanner",
    "carve_corridor",
    "dead_end_stub",
]
