# game/config.py
"""Settings for world streaming and pathfinding.

All values are supplied at construction time.  ``settings_from_dict`` builds
the dataclasses from the plain mapping produced by the YAML loader and rejects
invalid values with :class:`ConfigError`.
"""

from __future__ import annotations

from dataclasses import dataclass, field, fields, replace
from typing import Any, Dict, Mapping, Optional, Tuple, Type, TypeVar

import structlog

log = structlog.get_logger()

NOISE_KINDS = ("gradient", "cellular")
CELLULAR_RETURNS = ("distance", "cell_value")
STREAM_MODES = ("chunked", "infinite")

T = TypeVar("T")


class ConfigError(ValueError):
    """Raised for invalid or inconsistent settings."""


def _require(condition: bool, message: str) -> None:
    if not condition:
        raise ConfigError(message)


@dataclass(frozen=True)
class NoiseSettings:
    kind: str = "gradient"
    frequency: float = 0.08
    octaves: int = 3
    lacunarity: float = 2.0
    gain: float = 0.5
    seed_offset: int = 0
    weight: float = 1.0
    cellular_return: str = "distance"

    def __post_init__(self) -> None:
        _require(self.kind in NOISE_KINDS, f"Unknown noise kind '{self.kind}'")
        _require(
            self.cellular_return in CELLULAR_RETURNS,
            f"Unknown cellular return type '{self.cellular_return}'",
        )
        _require(self.frequency > 0, "noise frequency must be positive")
        _require(self.octaves >= 1, "noise octaves must be at least 1")
        _require(self.lacunarity > 0, "noise lacunarity must be positive")
        _require(self.gain > 0, "noise gain must be positive")
        _require(self.weight >= 0, "noise weight cannot be negative")


@dataclass(frozen=True)
class RoomSettings:
    enabled: bool = True
    grid_size: int = 12
    valley_threshold: float = 0.45
    min_radius: int = 2
    max_radius: int = 4
    noise: NoiseSettings = field(
        default_factory=lambda: NoiseSettings(frequency=0.05, octaves=1, seed_offset=101)
    )

    def __post_init__(self) -> None:
        _require(self.grid_size >= 1, "room grid_size must be at least 1")
        _require(0 <= self.min_radius <= self.max_radius, "room radii must satisfy 0 <= min <= max")


@dataclass(frozen=True)
class CorridorSettings:
    enabled: bool = True
    jitter_chance: float = 0.3
    max_length: int = 64
    connect_probability: float = 0.75

    def __post_init__(self) -> None:
        _require(0.0 <= self.jitter_chance <= 1.0, "corridor jitter_chance must be within 0..1")
        _require(self.max_length >= 1, "corridor max_length must be at least 1")
        _require(
            0.0 <= self.connect_probability <= 1.0,
            "corridor connect_probability must be within 0..1",
        )


@dataclass(frozen=True)
class DeadEndSettings:
    enabled: bool = True
    branch_probability: float = 0.08
    min_length: int = 2
    max_length: int = 5

    def __post_init__(self) -> None:
        _require(
            0.0 <= self.branch_probability <= 1.0,
            "dead end branch_probability must be within 0..1",
        )
        _require(1 <= self.min_length <= self.max_length, "dead end lengths must satisfy 1 <= min <= max")


@dataclass(frozen=True)
class BiomeSettings:
    enabled: bool = True
    biome_ids: Tuple[int, ...] = (0, 1, 2, 3)
    biome_size: int = 4
    blend_distance: int = 3
    blend_frequency: float = 0.35
    region_frequency: float = 0.5
    deterministic_blend: bool = True

    def __post_init__(self) -> None:
        object.__setattr__(self, "biome_ids", tuple(int(b) for b in self.biome_ids))
        if self.enabled:
            _require(len(self.biome_ids) > 0, "biome_ids cannot be empty when biomes are enabled")
        _require(self.biome_size >= 1, "biome_size must be at least 1")
        _require(self.blend_distance >= 0, "blend_distance cannot be negative")
        _require(self.blend_frequency > 0, "blend_frequency must be positive")
        _require(self.region_frequency > 0, "region_frequency must be positive")


@dataclass(frozen=True)
class StreamerSettings:
    mode: str = "infinite"
    seed: int = 0
    generation_radius: float = 12.0
    deletion_distance: float = 18.0
    chunk_size: int = 16
    chunk_radius: int = 1
    evict_chunks: bool = True
    chunk_delete_radius: Optional[int] = None
    tile_size: float = 1.0
    density: float = 0.5
    fields: Tuple[NoiseSettings, ...] = (NoiseSettings(),)
    rooms: RoomSettings = field(default_factory=RoomSettings)
    corridors: CorridorSettings = field(default_factory=CorridorSettings)
    dead_ends: DeadEndSettings = field(default_factory=DeadEndSettings)
    biomes: BiomeSettings = field(default_factory=BiomeSettings)
    random_tile_attempts: int = 100

    def __post_init__(self) -> None:
        object.__setattr__(self, "fields", tuple(self.fields))
        _require(self.mode in STREAM_MODES, f"Unknown streamer mode '{self.mode}'")
        _require(self.generation_radius >= 0, "generation_radius cannot be negative")
        _require(
            self.deletion_distance >= self.generation_radius,
            "deletion_distance must be at least generation_radius",
        )
        _require(self.chunk_size >= 1, "chunk_size must be at least 1")
        _require(self.chunk_radius >= 0, "chunk_radius cannot be negative")
        if self.chunk_delete_radius is not None:
            _require(
                self.chunk_delete_radius >= self.chunk_radius,
                "chunk_delete_radius must be at least chunk_radius",
            )
        _require(self.tile_size > 0, "tile_size must be positive")
        _require(0.0 <= self.density <= 1.0, "density must be within 0..1")
        _require(self.random_tile_attempts >= 1, "random_tile_attempts must be at least 1")

    @property
    def effective_chunk_delete_radius(self) -> int:
        if self.chunk_delete_radius is None:
            return self.chunk_radius + 1
        return self.chunk_delete_radius

    def with_overrides(self, **kwargs: Any) -> "StreamerSettings":
        return replace(self, **kwargs)


@dataclass(frozen=True)
class PathfinderSettings:
    max_iterations: int = 500

    def __post_init__(self) -> None:
        _require(self.max_iterations >= 1, "max_iterations must be positive")


@dataclass(frozen=True)
class GameSettings:
    world: StreamerSettings = field(default_factory=StreamerSettings)
    pathfinding: PathfinderSettings = field(default_factory=PathfinderSettings)


# --- Mapping -> dataclass conversion ---
def _build(cls: Type[T], data: Optional[Mapping[str, Any]], section: str) -> Dict[str, Any]:
    """Return the kwargs for ``cls`` found in ``data``, warning on unknown keys."""
    if data is None:
        return {}
    if not isinstance(data, Mapping):
        raise ConfigError(f"Section '{section}' must be a mapping, got {type(data).__name__}")
    known = {f.name for f in fields(cls)}
    unknown = sorted(set(data) - known)
    if unknown:
        log.warning("Ignoring unknown configuration keys", section=section, keys=unknown)
    return {k: v for k, v in data.items() if k in known}


def _noise_from_dict(data: Optional[Mapping[str, Any]], section: str) -> NoiseSettings:
    return NoiseSettings(**_build(NoiseSettings, data, section))


def settings_from_dict(data: Optional[Mapping[str, Any]]) -> GameSettings:
    """Build :class:`GameSettings` from a plain mapping.

    Raises:
        ConfigError: if any section has an invalid value.
    """
    data = data or {}
    try:
        world_kwargs = _build(StreamerSettings, data.get("world"), "world")
        if "fields" in world_kwargs:
            raw_fields = world_kwargs["fields"] or []
            world_kwargs["fields"] = tuple(
                _noise_from_dict(f, f"world.fields[{i}]") for i, f in enumerate(raw_fields)
            )
        if "rooms" in world_kwargs:
            room_kwargs = _build(RoomSettings, world_kwargs["rooms"], "world.rooms")
            if "noise" in room_kwargs:
                room_kwargs["noise"] = _noise_from_dict(room_kwargs["noise"], "world.rooms.noise")
            world_kwargs["rooms"] = RoomSettings(**room_kwargs)
        if "corridors" in world_kwargs:
            world_kwargs["corridors"] = CorridorSettings(
                **_build(CorridorSettings, world_kwargs["corridors"], "world.corridors")
            )
        if "dead_ends" in world_kwargs:
            world_kwargs["dead_ends"] = DeadEndSettings(
                **_build(DeadEndSettings, world_kwargs["dead_ends"], "world.dead_ends")
            )
        if "biomes" in world_kwargs:
            world_kwargs["biomes"] = BiomeSettings(
                **_build(BiomeSettings, world_kwargs["biomes"], "world.biomes")
            )
        world = StreamerSettings(**world_kwargs)
        pathfinding = PathfinderSettings(
            **_build(PathfinderSettings, data.get("pathfinding"), "pathfinding")
        )
    except TypeError as e:
        raise ConfigError(f"Invalid configuration value: {e}") from e
    return GameSettings(world=world, pathfinding=pathfinding)


__all__ = [
    "BiomeSettings",
    "ConfigError",
    "CorridorSettings",
    "DeadEndSettings",
    "GameSettings",
    "NoiseSettings",
    "PathfinderSettings",
    "RoomSettings",
    "StreamerSettings",
    "settings_from_dict",
]
