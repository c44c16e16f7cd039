# game/world/biomes.py
"""Biome assignment over coarse regions.

The world is split into square regions of ``biome_size * chunk_size`` tiles.
Each region receives one biome id the first time it is referenced, chosen by
partitioning a low-frequency cellular noise sample evenly across the configured
ids.  The table is memoised for the run.

Tiles close to a region edge may take the neighbouring region's biome.  With
``deterministic_blend`` (the default) that decision is a pure function of the
tile coordinate and seed; otherwise it draws from a cosmetic jitter stream and
may differ between queries of the same tile.
"""

from __future__ import annotations

from typing import Dict, Optional, Tuple

import structlog

from game.config import BiomeSettings, NoiseSettings
from game.world.noise import NoiseField
from game_rng import GameRNG, coord_unit

log = structlog.get_logger()

Region = Tuple[int, int]

_REGION_SEED_OFFSET = 211
_BLEND_SEED_OFFSET = 307
_BLEND_TAG = 0xB1E2D


class BiomeMap:
    def __init__(
        self,
        settings: BiomeSettings,
        chunk_size: int,
        seed: int,
        jitter_rng: Optional[GameRNG] = None,
    ) -> None:
        self.settings = settings
        self.seed = seed
        self.region_span = settings.biome_size * chunk_size
        self._region_noise = NoiseField(
            NoiseSettings(
                kind="cellular",
                frequency=settings.region_frequency,
                octaves=1,
                seed_offset=_REGION_SEED_OFFSET,
                cellular_return="cell_value",
            ),
            seed,
        )
        self._blend_noise = NoiseField(
            NoiseSettings(
                kind="gradient",
                frequency=settings.blend_frequency,
                octaves=1,
                seed_offset=_BLEND_SEED_OFFSET,
            ),
            seed,
        )
        self._jitter_rng = jitter_rng
        if not settings.deterministic_blend and jitter_rng is None:
            self._jitter_rng = GameRNG()
        self._regions: Dict[Region, int] = {}

    @property
    def region_count(self) -> int:
        return len(self._regions)

    def region_of(self, coord: Tuple[int, int]) -> Region:
        return coord[0] // self.region_span, coord[1] // self.region_span

    def biome_for_region(self, region: Region) -> int:
        """Return the memoised biome id of ``region``, generating it on first use."""
        biome = self._regions.get(region)
        if biome is None:
            ids = self.settings.biome_ids
            sample = self._region_noise.sample(region[0], region[1])
            biome = ids[min(int(sample * len(ids)), len(ids) - 1)]
            self._regions[region] = biome
            log.debug("Biome region assigned", region=region, biome=biome)
        return biome

    def _nearest_edge(self, coord: Tuple[int, int], region: Region) -> Tuple[int, Region]:
        """Distance to the closest region edge and the region across it."""
        span = self.region_span
        lx = coord[0] - region[0] * span
        ly = coord[1] - region[1] * span
        candidates = (
            (lx, (region[0] - 1, region[1])),
            (span - 1 - lx, (region[0] + 1, region[1])),
            (ly, (region[0], region[1] - 1)),
            (span - 1 - ly, (region[0], region[1] + 1)),
        )
        return min(candidates, key=lambda c: c[0])

    def biome_at(self, coord: Tuple[int, int]) -> int:
        region = self.region_of(coord)
        base = self.biome_for_region(region)
        blend = self.settings.blend_distance
        if blend <= 0:
            return base

        distance, neighbour = self._nearest_edge(coord, region)
        if distance >= blend:
            return base
        other = self.biome_for_region(neighbour)
        if other == base:
            return base

        # At the edge itself the neighbour wins about half the time
        weight = (1.0 - distance / blend) * 0.5
        probability = weight * 2.0 * self._blend_noise.sample(coord[0], coord[1])
        if self.settings.deterministic_blend:
            roll = coord_unit(self.seed, coord[0], coord[1], _BLEND_TAG)
        else:
            roll = self._jitter_rng.get_float()
        return other if roll < probability else base

    def clear(self) -> None:
        self._regions.clear()


__all__ = ["BiomeMap"]
