# game/world/streamer.py
"""Streaming tile world around a moving focal point.

:class:`ChunkedWorldStreamer` keeps a sparse map of generated tiles.  Each call
to :meth:`ChunkedWorldStreamer.advance` recomputes the focal cell and, when it
changed, runs a generation pass around it followed by a deletion pass, then
reports which tiles were added and removed.

Two modes share the same fill predicate and structures:

``infinite``
    The focal cell is the focal tile.  Every cell within ``generation_radius``
    (Euclidean, on the ``(x, y)`` plane) is considered; tiles further than
    ``deletion_distance`` are evicted.  Room corridors are materialised where
    they cross the generation disc.

``chunked``
    The focal cell is the chunk containing the focal tile.  Whole chunks within
    ``chunk_radius`` (Chebyshev, in chunks) are generated with one vectorised
    fill pass each, plus corridors joining neighbouring chunk centres.  With
    ``evict_chunks`` set, chunks beyond ``chunk_delete_radius`` are dropped.

Only generated tiles are walkable.
"""

from __future__ import annotations

import math
from typing import (
    Callable,
    Dict,
    FrozenSet,
    Iterator,
    KeysView,
    List,
    NamedTuple,
    Optional,
    Set,
    Tuple,
    TYPE_CHECKING,
)

import numpy as np
import structlog

from game.config import StreamerSettings
from game.world.biomes import BiomeMap
from game.world.fill import NO_TILE, FillPredicate
from game.world.hex_coords import (
    HexCoordinate,
    WorldPosition,
    coerce_coordinate,
    hex_disc,
    hex_distance,
    offset_distance,
)
from game.world.structures import Rect, RoomLayout, StructurePlanner
from game.world.tiles import TileKind, WorldTile

if TYPE_CHECKING:  # pragma: no cover - type checking only
    from game.world.occupancy import OccupancyRegistry
    from game_rng import GameRNG

log = structlog.get_logger()

ChunkCoordinate = Tuple[int, int]
_CHUNK_LINKS = ((1, 0), (-1, 0), (0, 1), (0, -1))


class StreamDelta(NamedTuple):
    """Tiles added and removed by one :meth:`ChunkedWorldStreamer.advance` call."""

    generated: FrozenSet[HexCoordinate]
    deleted: FrozenSet[HexCoordinate]

    @property
    def is_empty(self) -> bool:
        return not self.generated and not self.deleted


EMPTY_DELTA = StreamDelta(frozenset(), frozenset())

StreamListener = Callable[[StreamDelta], None]


class ChunkedWorldStreamer:
    def __init__(self, settings: StreamerSettings, jitter_rng: Optional["GameRNG"] = None) -> None:
        self.settings = settings
        self.rooms = RoomLayout(settings.rooms, settings.seed)
        self.fill = FillPredicate(settings, self.rooms)
        self.structures = StructurePlanner(settings.corridors, settings.dead_ends, settings.seed)
        self.biomes: Optional[BiomeMap] = None
        if settings.biomes.enabled:
            self.biomes = BiomeMap(settings.biomes, settings.chunk_size, settings.seed, jitter_rng)

        self._tiles: Dict[HexCoordinate, WorldTile] = {}
        self._chunks: Dict[ChunkCoordinate, Set[HexCoordinate]] = {}
        self._focal_cell: Optional[Tuple[int, int]] = None
        self._focal_tile: Optional[HexCoordinate] = None
        self._listeners: List[StreamListener] = []
        log.info(
            "World streamer created",
            mode=settings.mode,
            seed=settings.seed,
            generation_radius=settings.generation_radius,
            deletion_distance=settings.deletion_distance,
        )

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------
    @property
    def generated_tiles(self) -> KeysView[HexCoordinate]:
        """Read-only live view of the generated coordinates."""
        return self._tiles.keys()

    @property
    def focal_tile(self) -> Optional[HexCoordinate]:
        return self._focal_tile

    @property
    def loaded_chunks(self) -> FrozenSet[ChunkCoordinate]:
        return frozenset(self._chunks)

    def is_generated(self, coord: Tuple[int, int]) -> bool:
        return coord in self._tiles

    def is_walkable(self, coord: Tuple[int, int]) -> bool:
        return coord in self._tiles

    def tile_at(self, coord: Tuple[int, int]) -> Optional[WorldTile]:
        return self._tiles.get(coord)

    def biome_of(self, coord: Tuple[int, int]) -> Optional[int]:
        """Biome id for any coordinate, generated or not; ``None`` when biomes are off."""
        if self.biomes is None:
            return None
        return self.biomes.biome_at(coord)

    def chunk_of(self, coord: Tuple[int, int]) -> ChunkCoordinate:
        size = self.settings.chunk_size
        return coord[0] // size, coord[1] // size

    def chunk_rect(self, chunk: ChunkCoordinate) -> Rect:
        size = self.settings.chunk_size
        x1, y1 = chunk[0] * size, chunk[1] * size
        return Rect(x1, y1, x1 + size - 1, y1 + size - 1)

    def chunk_centre(self, chunk: ChunkCoordinate) -> HexCoordinate:
        size = self.settings.chunk_size
        return HexCoordinate(chunk[0] * size + size // 2, chunk[1] * size + size // 2)

    def __contains__(self, coord: object) -> bool:
        return coord in self._tiles

    def __len__(self) -> int:
        return len(self._tiles)

    def __iter__(self) -> Iterator[WorldTile]:
        return iter(list(self._tiles.values()))

    # ------------------------------------------------------------------
    # Listeners
    # ------------------------------------------------------------------
    def add_listener(self, listener: StreamListener) -> None:
        self._listeners.append(listener)

    def remove_listener(self, listener: StreamListener) -> None:
        try:
            self._listeners.remove(listener)
        except ValueError:
            log.warning("Tried to remove unknown stream listener", listener=repr(listener))

    def _notify(self, delta: StreamDelta) -> None:
        """Deliver ``delta`` to every listener, then re-raise the first failure."""
        first_error: Optional[Exception] = None
        for listener in list(self._listeners):
            try:
                listener(delta)
            except Exception as e:
                log.error(
                    "Stream listener failed",
                    listener=repr(listener),
                    error=str(e),
                    exc_info=True,
                )
                if first_error is None:
                    first_error = e
        if first_error is not None:
            raise first_error

    # ------------------------------------------------------------------
    # Streaming
    # ------------------------------------------------------------------
    def advance(self, focal_position: WorldPosition) -> StreamDelta:
        """Move the focal point; generate and evict around its new cell."""
        tile = coerce_coordinate(focal_position, self.settings.tile_size)
        cell = self.chunk_of(tile) if self.settings.mode == "chunked" else tuple(tile)
        self._focal_tile = tile
        if cell == self._focal_cell:
            return EMPTY_DELTA
        self._focal_cell = cell

        if self.settings.mode == "chunked":
            generated = self._generate_chunks(cell)
            deleted = self._evict_chunks(cell) if self.settings.evict_chunks else set()
        else:
            generated = self._generate_disc(tile)
            deleted = self._evict_distant(tile)

        delta = StreamDelta(frozenset(generated - deleted), frozenset(deleted - generated))
        log.debug(
            "Streamer advanced",
            focal=tile,
            cell=cell,
            generated=len(delta.generated),
            deleted=len(delta.deleted),
            total=len(self._tiles),
        )
        if not delta.is_empty:
            self._notify(delta)
        return delta

    def clear(self) -> StreamDelta:
        """Forget every tile and cached structure; listeners see the deletions."""
        delta = StreamDelta(frozenset(), frozenset(self._tiles))
        self._tiles.clear()
        self._chunks.clear()
        self._focal_cell = None
        self._focal_tile = None
        self.rooms.clear()
        self.structures.clear()
        if self.biomes is not None:
            self.biomes.clear()
        log.info("World streamer cleared", deleted=len(delta.deleted))
        if not delta.is_empty:
            self._notify(delta)
        return delta

    def _materialize(self, coord: HexCoordinate, kind: TileKind) -> WorldTile:
        variant = self.biomes.biome_at(coord) if self.biomes is not None else 0
        tile = WorldTile(position=coord, variant=variant, kind=kind)
        self._tiles[coord] = tile
        return tile

    # --- infinite mode ---
    def _structure_reach(self) -> int:
        g = self.settings.rooms.grid_size
        return g + g // 2

    def _room_links_near(self, area: Rect) -> Iterator[Tuple[HexCoordinate, HexCoordinate, Rect]]:
        """Room centre links whose bounding rectangle overlaps ``area``."""
        g = self.settings.rooms.grid_size
        half = g // 2
        reach = self._structure_reach()
        search = Rect(area.x1 - reach, area.y1 - reach, area.x2 + reach, area.y2 + reach)
        for centre in self.rooms.centres_in(search):
            if not self.rooms.is_room_centre(centre):
                continue
            for dx, dy in ((g, 0), (0, g)):
                other = HexCoordinate(centre.x + dx, centre.y + dy)
                if not self.rooms.is_room_centre(other):
                    continue
                bounds = Rect(
                    min(centre.x, other.x) - half,
                    min(centre.y, other.y) - half,
                    max(centre.x, other.x) + half,
                    max(centre.y, other.y) + half,
                )
                if bounds.intersects(area):
                    yield centre, other, bounds

    def _generate_disc(self, focal: HexCoordinate) -> Set[HexCoordinate]:
        radius = self.settings.generation_radius
        keep_within = self.settings.deletion_distance + 2 * self._structure_reach()
        added: Set[HexCoordinate] = set()
        for coord in hex_disc(focal, radius):
            if coord in self._tiles:
                continue
            kind = self.fill.classify(coord)
            if kind is not None:
                self._materialize(coord, kind)
                added.add(coord)

        if self.settings.corridors.enabled and self.settings.rooms.enabled:
            reach = int(math.floor(radius))
            area = Rect(focal.x - reach, focal.y - reach, focal.x + reach, focal.y + reach)
            claimed: Dict[HexCoordinate, TileKind] = {}
            for a, b, bounds in self._room_links_near(area):
                for coord, kind in self.structures.connect(a, b, bounds):
                    if coord in self._tiles or offset_distance(coord, focal) > radius:
                        continue
                    if coord not in claimed or kind < claimed[coord]:
                        claimed[coord] = kind
            for coord in sorted(claimed):
                self._materialize(coord, claimed[coord])
                added.add(coord)

            self.structures.prune(
                lambda link: offset_distance(link[0], focal) <= keep_within
                or offset_distance(link[1], focal) <= keep_within
            )
        self.rooms.prune(lambda centre: offset_distance(centre, focal) <= keep_within)
        return added

    def _evict_distant(self, focal: HexCoordinate) -> Set[HexCoordinate]:
        limit = self.settings.deletion_distance
        doomed = {c for c in self._tiles if offset_distance(c, focal) > limit}
        for coord in doomed:
            del self._tiles[coord]
        return doomed

    # --- chunked mode ---
    def _generate_chunks(self, focal_chunk: ChunkCoordinate) -> Set[HexCoordinate]:
        radius = self.settings.chunk_radius
        added: Set[HexCoordinate] = set()
        for cy in range(focal_chunk[1] - radius, focal_chunk[1] + radius + 1):
            for cx in range(focal_chunk[0] - radius, focal_chunk[0] + radius + 1):
                if (cx, cy) not in self._chunks:
                    added |= self._generate_chunk((cx, cy))
        return added

    def _generate_chunk(self, chunk: ChunkCoordinate) -> Set[HexCoordinate]:
        rect = self.chunk_rect(chunk)
        ys, xs = np.mgrid[rect.y1 : rect.y2 + 1, rect.x1 : rect.x2 + 1]
        kinds = self.fill.classify_grid(xs, ys)

        members: Set[HexCoordinate] = set()
        for row, col in np.argwhere(kinds != NO_TILE):
            coord = HexCoordinate(int(xs[row, col]), int(ys[row, col]))
            self._materialize(coord, TileKind(int(kinds[row, col])))
            members.add(coord)

        centre = self.chunk_centre(chunk)
        claimed: Dict[HexCoordinate, TileKind] = {}
        for dx, dy in _CHUNK_LINKS:
            neighbour = (chunk[0] + dx, chunk[1] + dy)
            bounds = rect.union(self.chunk_rect(neighbour))
            for coord, kind in self.structures.connect(centre, self.chunk_centre(neighbour), bounds):
                if coord in members or not rect.contains(coord):
                    continue
                if coord not in claimed or kind < claimed[coord]:
                    claimed[coord] = kind
        for coord in sorted(claimed):
            self._materialize(coord, claimed[coord])
            members.add(coord)

        self._chunks[chunk] = members
        log.debug("Chunk generated", chunk=chunk, tiles=len(members))
        return members

    def _evict_chunks(self, focal_chunk: ChunkCoordinate) -> Set[HexCoordinate]:
        limit = self.settings.effective_chunk_delete_radius
        deleted: Set[HexCoordinate] = set()
        for chunk in list(self._chunks):
            if max(abs(chunk[0] - focal_chunk[0]), abs(chunk[1] - focal_chunk[1])) <= limit:
                continue
            for coord in self._chunks.pop(chunk):
                self._tiles.pop(coord, None)
                deleted.add(coord)
            log.debug("Chunk evicted", chunk=chunk)

        if deleted:
            self.structures.prune(
                lambda link: self.chunk_of(link[0]) in self._chunks
                or self.chunk_of(link[1]) in self._chunks
            )
            self.rooms.prune(lambda centre: self.chunk_of(centre) in self._chunks)
        return deleted

    # ------------------------------------------------------------------
    # Random placement
    # ------------------------------------------------------------------
    def random_walkable_tile(
        self,
        rng: "GameRNG",
        near: Optional[WorldPosition] = None,
        radius: Optional[int] = None,
        occupancy: Optional["OccupancyRegistry"] = None,
        attempts: Optional[int] = None,
    ) -> Optional[HexCoordinate]:
        """Pick a generated tile at random, or ``None`` once the attempt budget runs out.

        With ``near`` the pick is limited to tiles within ``radius`` hex steps of
        it (default ``generation_radius``).  Tiles held in ``occupancy`` are
        skipped.
        """
        budget = attempts if attempts is not None else self.settings.random_tile_attempts
        if not self._tiles or budget <= 0:
            log.info("Random tile search skipped", tiles=len(self._tiles), attempts=budget)
            return None

        def usable(coord: HexCoordinate) -> bool:
            return coord in self._tiles and (occupancy is None or not occupancy.is_occupied(coord))

        if near is None:
            pool = list(self._tiles)
            for _ in range(budget):
                coord = rng.choice(pool)
                if usable(coord):
                    return coord
        else:
            origin = coerce_coordinate(near, self.settings.tile_size)
            reach = int(radius if radius is not None else math.floor(self.settings.generation_radius))
            if reach < 0:
                log.info("Random tile search skipped", near=near, radius=radius)
                return None
            for _ in range(budget):
                coord = HexCoordinate(
                    origin.x + rng.get_int(-reach, reach), origin.y + rng.get_int(-reach, reach)
                )
                if hex_distance(origin, coord) <= reach and usable(coord):
                    return coord

        log.info("Random tile search exhausted", attempts=budget, near=near, radius=radius)
        return None


__all__ = ["ChunkedWorldStreamer", "EMPTY_DELTA", "StreamDelta", "StreamListener"]
