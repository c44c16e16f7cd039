import pytest

from game.config import (
    BiomeSettings,
    CorridorSettings,
    DeadEndSettings,
    RoomSettings,
    StreamerSettings,
)
from game.world.hex_coords import HexCoordinate, hex_disc, hex_distance, offset_distance
from game.world.occupancy import OccupancyRegistry
from game.world.streamer import ChunkedWorldStreamer, StreamDelta
from game.world.tiles import TileKind, WorldTile
from game_rng import GameRNG


def _open_settings(**overrides):
    """Every cell in range becomes a floor tile; no structures or biomes."""
    params = dict(
        mode="infinite",
        seed=1,
        generation_radius=3,
        deletion_distance=5,
        density=1.0,
        rooms=RoomSettings(enabled=False),
        corridors=CorridorSettings(enabled=False),
        dead_ends=DeadEndSettings(enabled=False),
        biomes=BiomeSettings(enabled=False),
    )
    params.update(overrides)
    return StreamerSettings(**params)


def _full_settings(seed=21):
    return StreamerSettings(
        mode="infinite",
        seed=seed,
        generation_radius=10,
        deletion_distance=14,
        density=0.45,
        rooms=RoomSettings(grid_size=10, valley_threshold=0.55),
        corridors=CorridorSettings(jitter_chance=0.3, connect_probability=1.0),
        dead_ends=DeadEndSettings(branch_probability=0.2),
        biomes=BiomeSettings(biome_size=2, blend_distance=2),
        chunk_size=8,
    )


def _snapshot(streamer, focal, radius):
    return {c: streamer.tile_at(c) for c in hex_disc(focal, radius) if c in streamer}


def test_first_advance_generates_the_disc():
    streamer = ChunkedWorldStreamer(_open_settings())
    delta = streamer.advance((0, 0))
    assert delta.generated == frozenset(hex_disc((0, 0), 3))
    assert delta.deleted == frozenset()
    assert streamer.is_generated((0, 0))
    assert streamer.is_walkable((3, 0))
    assert not streamer.is_walkable((4, 0))
    assert len(streamer) == len(delta.generated)


def test_same_cell_is_a_no_op():
    streamer = ChunkedWorldStreamer(_open_settings())
    streamer.advance((0, 0))
    assert streamer.advance((0, 0)).is_empty
    assert streamer.advance((0.4, 0.9)).is_empty


def test_distant_tiles_are_evicted():
    streamer = ChunkedWorldStreamer(_open_settings())
    streamer.advance((0, 0))
    delta = streamer.advance((10, 0))
    assert all(c[0] >= 5 for c in streamer.generated_tiles)
    assert (0, 0) in delta.deleted
    assert not streamer.is_walkable((0, 0))


def test_walk_keeps_generation_and_deletion_invariants():
    settings = _open_settings()
    streamer = ChunkedWorldStreamer(settings)
    for step in range(25):
        focal = HexCoordinate(step, -step // 2)
        delta = streamer.advance(focal)
        assert not (delta.generated & delta.deleted)
        assert delta.generated <= set(streamer.generated_tiles)
        assert not (delta.deleted & set(streamer.generated_tiles))
        assert set(hex_disc(focal, settings.generation_radius)) <= set(streamer.generated_tiles)
        assert all(
            offset_distance(c, focal) <= settings.deletion_distance
            for c in streamer.generated_tiles
        )


def test_generation_is_history_independent():
    settings = _full_settings()
    direct = ChunkedWorldStreamer(settings)
    walked = ChunkedWorldStreamer(settings)
    target = HexCoordinate(30, -4)
    for x in range(0, 31, 2):
        walked.advance((x, -4))
    direct.advance(target)
    assert _snapshot(direct, target, 10) == _snapshot(walked, target, 10)


def test_two_streamers_with_one_seed_agree():
    a = ChunkedWorldStreamer(_full_settings(seed=4))
    b = ChunkedWorldStreamer(_full_settings(seed=4))
    for focal in [(0, 0), (5, 5), (-12, 3)]:
        assert a.advance(focal) == b.advance(focal)
    assert {t.position: t for t in a} == {t.position: t for t in b}


def test_generated_tiles_carry_kind_and_biome():
    streamer = ChunkedWorldStreamer(_full_settings())
    streamer.advance((0, 0))
    tiles = list(streamer)
    assert tiles
    for tile in tiles:
        assert isinstance(tile, WorldTile)
        assert isinstance(tile.kind, TileKind)
        assert tile.variant in streamer.settings.biomes.biome_ids
        assert streamer.biome_of(tile.position) == tile.variant


def test_biome_of_without_biomes_is_none():
    streamer = ChunkedWorldStreamer(_open_settings())
    assert streamer.biome_of((0, 0)) is None


def test_empty_neighbourhood_yields_empty_delta():
    streamer = ChunkedWorldStreamer(_open_settings(density=0.0))
    seen = []
    streamer.add_listener(seen.append)
    assert streamer.advance((0, 0)).is_empty
    assert seen == []
    assert len(streamer) == 0


def test_tile_size_scales_focal_position():
    streamer = ChunkedWorldStreamer(_open_settings(tile_size=2.0))
    streamer.advance((5.0, 5.0))
    assert streamer.focal_tile == (2, 2)


def test_clear_forgets_everything_and_notifies():
    streamer = ChunkedWorldStreamer(_open_settings())
    streamer.advance((0, 0))
    before = frozenset(streamer.generated_tiles)
    seen = []
    streamer.add_listener(seen.append)
    delta = streamer.clear()
    assert delta == StreamDelta(frozenset(), before)
    assert seen == [delta]
    assert len(streamer) == 0
    assert streamer.focal_tile is None
    assert streamer.advance((0, 0)).generated == before


def test_listeners_receive_each_non_empty_delta():
    streamer = ChunkedWorldStreamer(_open_settings())
    seen = []
    streamer.add_listener(seen.append)
    first = streamer.advance((0, 0))
    streamer.advance((0, 0))
    second = streamer.advance((1, 0))
    assert seen == [first, second]
    streamer.remove_listener(seen.append)
    streamer.advance((2, 0))
    assert len(seen) == 2


def test_removing_unknown_listener_is_harmless():
    streamer = ChunkedWorldStreamer(_open_settings())
    streamer.remove_listener(lambda delta: None)


def test_failing_listener_is_reraised_after_commit():
    streamer = ChunkedWorldStreamer(_open_settings())

    def broken(delta):
        raise RuntimeError("listener boom")

    streamer.add_listener(broken)
    with pytest.raises(RuntimeError):
        streamer.advance((0, 0))
    assert streamer.is_generated((0, 0))


def test_random_walkable_tile_on_empty_world_is_none():
    streamer = ChunkedWorldStreamer(_open_settings())
    assert streamer.random_walkable_tile(GameRNG(1)) is None


def test_random_walkable_tile_returns_generated_tiles():
    streamer = ChunkedWorldStreamer(_open_settings())
    streamer.advance((0, 0))
    rng = GameRNG(3)
    for _ in range(20):
        assert streamer.is_generated(streamer.random_walkable_tile(rng))


def test_random_walkable_tile_near_a_point():
    streamer = ChunkedWorldStreamer(_open_settings())
    streamer.advance((0, 0))
    rng = GameRNG(8)
    for _ in range(20):
        coord = streamer.random_walkable_tile(rng, near=(1, 1), radius=1)
        assert coord is not None
        assert hex_distance(coord, (1, 1)) <= 1
        assert streamer.is_generated(coord)


def test_random_walkable_tile_skips_occupied_tiles():
    streamer = ChunkedWorldStreamer(_open_settings(generation_radius=1, deletion_distance=2))
    streamer.advance((0, 0))
    registry = OccupancyRegistry(streamer)
    for i, coord in enumerate(sorted(streamer.generated_tiles)):
        assert registry.register(f"crate-{i}", coord)
    assert streamer.random_walkable_tile(GameRNG(2), occupancy=registry, attempts=50) is None
    registry.unregister("crate-0")
    free = streamer.random_walkable_tile(GameRNG(2), occupancy=registry, attempts=500)
    assert free == sorted(streamer.generated_tiles)[0]


def test_random_walkable_tile_with_negative_radius_is_none():
    streamer = ChunkedWorldStreamer(_open_settings())
    streamer.advance((0, 0))
    assert streamer.random_walkable_tile(GameRNG(4), near=(0, 0), radius=-1) is None


def test_every_listener_sees_the_delta_when_one_fails():
    streamer = ChunkedWorldStreamer(_open_settings())
    seen = []

    def broken(delta):
        raise RuntimeError("first")

    streamer.add_listener(broken)
    streamer.add_listener(seen.append)
    with pytest.raises(RuntimeError, match="first"):
        streamer.advance((0, 0))
    assert len(seen) == 1


def test_room_cache_stays_near_the_focal_point():
    settings = _open_settings(rooms=RoomSettings(grid_size=6, valley_threshold=0.5))
    streamer = ChunkedWorldStreamer(settings)
    for x in range(0, 200, 2):
        streamer.advance((x, 0))
    keep = settings.deletion_distance + 2 * (6 + 3)
    assert 0 < streamer.rooms.cached_centres <= (2 * keep // 6 + 2) ** 2
    assert streamer.rooms.prune(lambda centre: offset_distance(centre, (198, 0)) <= keep) == 0
