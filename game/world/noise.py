# game/world/noise.py
"""Coherent noise fields for procedural generation.

Two kernels are provided, both pure functions of ``(seed, x, y)``:

* gradient noise (classic Perlin with hashed unit gradients)
* cellular noise (Worley F1 with one jittered feature point per cell), which
  can return either the distance to the nearest feature point or a uniform
  value identifying the nearest cell

Either kernel can be summed over octaves (fractal Brownian motion).  All
samples are normalised to ``[0, 1]``.  The scalar kernels are compiled with
Numba; hashing stays inside 32 bits so the integer arithmetic never overflows
``int64``.
"""

from __future__ import annotations

from typing import Sequence

import numpy as np
import structlog
from numba import njit

from game.config import NoiseSettings

log = structlog.get_logger()

MASK_32 = 0xFFFFFFFF
KIND_GRADIENT = 0
KIND_CELLULAR = 1
_OCTAVE_SEED_STEP = 1013
_CELL_VALUE_SALT = 0x5BD1E995
# Unit gradients bound raw 2D Perlin output by sqrt(0.5)
_GRADIENT_SCALE = 0.7071067811865476


# --- Numba kernels ---
@njit(cache=True)
def _hash2(seed: int, x: int, y: int) -> int:
    h = (seed & MASK_32) ^ ((x & MASK_32) * 374761393) ^ ((y & MASK_32) * 668265263)
    h = h & MASK_32
    h = ((h ^ (h >> 13)) * 1274126177) & MASK_32
    return h ^ (h >> 16)


@njit(cache=True)
def _fade(t: float) -> float:
    return t * t * t * (t * (t * 6.0 - 15.0) + 10.0)


@njit(cache=True)
def _grad_dot(seed: int, ix: int, iy: int, dx: float, dy: float) -> float:
    angle = (_hash2(seed, ix, iy) / 4294967296.0) * 2.0 * np.pi
    return np.cos(angle) * dx + np.sin(angle) * dy


@njit(cache=True)
def _gradient_2d(seed: int, x: float, y: float) -> float:
    x0 = int(np.floor(x))
    y0 = int(np.floor(y))
    fx = x - x0
    fy = y - y0
    u = _fade(fx)
    v = _fade(fy)

    n00 = _grad_dot(seed, x0, y0, fx, fy)
    n10 = _grad_dot(seed, x0 + 1, y0, fx - 1.0, fy)
    n01 = _grad_dot(seed, x0, y0 + 1, fx, fy - 1.0)
    n11 = _grad_dot(seed, x0 + 1, y0 + 1, fx - 1.0, fy - 1.0)

    nx0 = n00 + u * (n10 - n00)
    nx1 = n01 + u * (n11 - n01)
    value = 0.5 + (nx0 + v * (nx1 - nx0)) * _GRADIENT_SCALE
    return min(1.0, max(0.0, value))


@njit(cache=True)
def _cellular_2d(seed: int, x: float, y: float, cell_value: bool) -> float:
    xi = int(np.floor(x))
    yi = int(np.floor(y))
    best = 1.0e9
    best_x = xi
    best_y = yi
    for oy in range(-1, 2):
        for ox in range(-1, 2):
            cx = xi + ox
            cy = yi + oy
            h = _hash2(seed, cx, cy)
            px = cx + (h & 0xFFFF) / 65536.0
            py = cy + ((h >> 16) & 0xFFFF) / 65536.0
            d = np.sqrt((px - x) * (px - x) + (py - y) * (py - y))
            if d < best:
                best = d
                best_x = cx
                best_y = cy
    if cell_value:
        return _hash2(seed ^ _CELL_VALUE_SALT, best_x, best_y) / 4294967296.0
    return min(best, 1.0)


@njit(cache=True)
def _fractal_2d(
    kind: int,
    seed: int,
    x: float,
    y: float,
    frequency: float,
    octaves: int,
    lacunarity: float,
    gain: float,
    cell_value: bool,
) -> float:
    total = 0.0
    amplitude = 1.0
    norm = 0.0
    freq = frequency
    for i in range(octaves):
        octave_seed = (seed + i * _OCTAVE_SEED_STEP) & MASK_32
        if kind == KIND_GRADIENT:
            value = _gradient_2d(octave_seed, x * freq, y * freq)
        else:
            value = _cellular_2d(octave_seed, x * freq, y * freq, cell_value)
        total += value * amplitude
        norm += amplitude
        amplitude *= gain
        freq *= lacunarity
    return total / norm


@njit(cache=True)
def _fractal_grid(
    kind: int,
    seed: int,
    xs: np.ndarray,
    ys: np.ndarray,
    frequency: float,
    octaves: int,
    lacunarity: float,
    gain: float,
    cell_value: bool,
) -> np.ndarray:
    out = np.empty(xs.shape[0], dtype=np.float64)
    for i in range(xs.shape[0]):
        out[i] = _fractal_2d(
            kind, seed, float(xs[i]), float(ys[i]), frequency, octaves, lacunarity, gain, cell_value
        )
    return out


class NoiseField:
    """A seeded, configured noise field sampled in tile coordinates."""

    def __init__(self, settings: NoiseSettings, seed: int) -> None:
        self.settings = settings
        self.seed = (int(seed) + settings.seed_offset) & MASK_32
        self._kind = KIND_GRADIENT if settings.kind == "gradient" else KIND_CELLULAR
        self._cell_value = settings.cellular_return == "cell_value"

    def sample(self, x: float, y: float) -> float:
        s = self.settings
        return float(
            _fractal_2d(
                self._kind,
                self.seed,
                float(x),
                float(y),
                float(s.frequency),
                int(s.octaves),
                float(s.lacunarity),
                float(s.gain),
                self._cell_value,
            )
        )

    def sample_grid(self, xs: np.ndarray, ys: np.ndarray) -> np.ndarray:
        """Vectorised :meth:`sample` over matching coordinate arrays."""
        xs = np.asarray(xs, dtype=np.int64)
        ys = np.asarray(ys, dtype=np.int64)
        if xs.shape != ys.shape:
            raise ValueError("xs and ys must have the same shape")
        s = self.settings
        flat = _fractal_grid(
            self._kind,
            self.seed,
            np.ascontiguousarray(xs.ravel()),
            np.ascontiguousarray(ys.ravel()),
            float(s.frequency),
            int(s.octaves),
            float(s.lacunarity),
            float(s.gain),
            self._cell_value,
        )
        return flat.reshape(xs.shape)

    def __repr__(self) -> str:
        return f"NoiseField(kind={self.settings.kind}, seed={self.seed}, freq={self.settings.frequency})"


class LayeredNoise:
    """Weighted average of several noise fields, still normalised to ``[0, 1]``."""

    def __init__(self, settings: Sequence[NoiseSettings], seed: int) -> None:
        self.fields = [NoiseField(s, seed) for s in settings]
        self._total_weight = float(sum(f.settings.weight for f in self.fields))
        if not self.fields or self._total_weight <= 0:
            log.warning("Layered noise has no weighted fields; sampling returns 0.5")

    def sample(self, x: float, y: float) -> float:
        if not self.fields or self._total_weight <= 0:
            return 0.5
        total = sum(f.sample(x, y) * f.settings.weight for f in self.fields)
        return total / self._total_weight

    def sample_grid(self, xs: np.ndarray, ys: np.ndarray) -> np.ndarray:
        if not self.fields or self._total_weight <= 0:
            return np.full(np.shape(xs), 0.5, dtype=np.float64)
        total = np.zeros(np.shape(xs), dtype=np.float64)
        for f in self.fields:
            if f.settings.weight > 0:
                total += f.sample_grid(xs, ys) * f.settings.weight
        return total / self._total_weight


__all__ = ["KIND_CELLULAR", "KIND_GRADIENT", "LayeredNoise", "NoiseField"]
