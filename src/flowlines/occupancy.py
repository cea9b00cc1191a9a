"""
Multi-resolution occupancy grid.

A stack of `level_count` uniform grids laid over the same `width x height`
domain, level 0 being the finest. All levels share a single flat `uint32`
array sized for the finest grid: level `i` keeps its occupancy in bit `i` of
the slot addressed by its own row-major cell index. A coarser grid never has
more cells than the finest one, so every level index fits in the array.

The bit reads and writes are compiled with `numba.njit`, since they run once
per integration step of every flow line.
"""

from __future__ import annotations

import math
from typing import Sequence

import numpy as np
from numba import njit

MAX_LEVELS = 32  # bits in a uint32 slot


def cell_sizes(
    min_cell_size: float,
    max_cell_size: float,
    level_count: int,
    logarithmic: bool = False,
) -> np.ndarray:
    """
    Cell edge length for each level, smallest first.

    Linear mode spaces sizes evenly between `min_cell_size` and
    `max_cell_size`. Logarithmic mode grows them as
    `min + 2**(i * log2(max - min + 1) / (L - 1)) - 1`, which keeps the
    schedule dense near the minimum. A single level always uses
    `min_cell_size`.
    """
    if level_count == 1:
        return np.array([float(min_cell_size)], dtype=np.float64)
    if not logarithmic:
        return np.linspace(min_cell_size, max_cell_size, level_count, dtype=np.float64)
    log_diff = math.log2(max_cell_size - min_cell_size + 1.0) / (level_count - 1)
    exps = np.arange(level_count, dtype=np.float64) * log_diff
    return min_cell_size + np.exp2(exps) - 1.0


def _round_half_up(v: float) -> int:
    return int(math.floor(v + 0.5))


###############################################################################
# Flat bit-array kernels
###############################################################################


@njit(cache=True)
def _cell_index(x: float, y: float, cell_w: float, cell_h: float, nx: int, ny: int) -> int:
    """Row-major index of the cell containing (x, y), clamped to the grid."""
    ix = int(math.floor(x / cell_w))
    iy = int(math.floor(y / cell_h))
    if ix >= nx:
        ix = nx - 1
    elif ix < 0:
        ix = 0
    if iy >= ny:
        iy = ny - 1
    elif iy < 0:
        iy = 0
    return iy * nx + ix


@njit(cache=True)
def _all_level_indices(
    x: float,
    y: float,
    cell_w: np.ndarray,
    cell_h: np.ndarray,
    nx: np.ndarray,
    ny: np.ndarray,
) -> np.ndarray:
    out = np.empty(nx.shape[0], dtype=np.int64)
    for level in range(nx.shape[0]):
        out[level] = _cell_index(x, y, cell_w[level], cell_h[level], nx[level], ny[level])
    return out


@njit(cache=True)
def _is_occupied_flat(
    data: np.ndarray,
    x: float,
    y: float,
    level: int,
    cell_w: np.ndarray,
    cell_h: np.ndarray,
    nx: np.ndarray,
    ny: np.ndarray,
) -> bool:
    pos = _cell_index(x, y, cell_w[level], cell_h[level], nx[level], ny[level])
    return ((np.int64(data[pos]) >> level) & 1) != 0


@njit(cache=True)
def _mark_flat(
    data: np.ndarray,
    x: float,
    y: float,
    cell_w: np.ndarray,
    cell_h: np.ndarray,
    nx: np.ndarray,
    ny: np.ndarray,
) -> None:
    """Set the occupancy bit of the cell containing (x, y) on every level."""
    for level in range(nx.shape[0]):
        pos = _cell_index(x, y, cell_w[level], cell_h[level], nx[level], ny[level])
        data[pos] |= np.uint32(1 << level)


###############################################################################
# Grid
###############################################################################


class OccupancyGrid:
    """
    Superimposed occupancy grids at `level_count` resolutions.

    Marking a point claims its cell on every level at once; queries are made
    against a single level. There is no way to clear a cell, so occupancy is
    monotonic over the grid's lifetime.
    """

    def __init__(
        self,
        width: float,
        height: float,
        min_cell_size: float,
        max_cell_size: float,
        level_count: int = 1,
        logarithmic: bool = False,
    ) -> None:
        if width <= 0 or height <= 0:
            raise ValueError(f"Grid dimensions must be positive, got {width}x{height}")
        if min_cell_size <= 0 or max_cell_size <= 0:
            raise ValueError(
                f"Cell sizes must be positive, got min={min_cell_size}, max={max_cell_size}"
            )
        if min_cell_size > max_cell_size:
            raise ValueError(
                f"min_cell_size ({min_cell_size}) exceeds max_cell_size ({max_cell_size})"
            )
        if not 1 <= level_count <= MAX_LEVELS:
            raise ValueError(
                f"level_count must be in [1, {MAX_LEVELS}], got {level_count}"
            )

        self.width = float(width)
        self.height = float(height)
        self.level_count = int(level_count)
        self.logarithmic = bool(logarithmic)
        self.sizes = cell_sizes(min_cell_size, max_cell_size, self.level_count, self.logarithmic)

        nx = []
        ny = []
        for level, size in enumerate(self.sizes):
            nx_l = _round_half_up(self.width / size)
            ny_l = _round_half_up(self.height / size)
            if nx_l < 1 or ny_l < 1:
                raise ValueError(
                    f"Level {level} is degenerate: cell size {size:.3f} leaves "
                    f"{nx_l}x{ny_l} cells over a {self.width}x{self.height} domain"
                )
            nx.append(nx_l)
            ny.append(ny_l)

        self.nx = np.array(nx, dtype=np.int64)
        self.ny = np.array(ny, dtype=np.int64)
        self.cell_w = self.width / self.nx
        self.cell_h = self.height / self.ny
        self.data = np.zeros(int(self.nx[0] * self.ny[0]), dtype=np.uint32)

    @property
    def finest_cell_count(self) -> int:
        return int(self.data.shape[0])

    def cell_index(self, x: float, y: float, level: int) -> int:
        """Row-major cell index of (x, y) on `level`. Expects 0 <= x < width, 0 <= y < height."""
        return int(
            _cell_index(
                float(x),
                float(y),
                self.cell_w[level],
                self.cell_h[level],
                self.nx[level],
                self.ny[level],
            )
        )

    def all_level_indices(self, x: float, y: float) -> np.ndarray:
        return _all_level_indices(float(x), float(y), self.cell_w, self.cell_h, self.nx, self.ny)

    def is_occupied(self, x: float, y: float, level: int) -> bool:
        return bool(
            _is_occupied_flat(
                self.data, float(x), float(y), int(level),
                self.cell_w, self.cell_h, self.nx, self.ny,
            )
        )

    def mark_occupied(self, x: float, y: float) -> None:
        _mark_flat(self.data, float(x), float(y), self.cell_w, self.cell_h, self.nx, self.ny)

    def level_mask(self, level: int) -> np.ndarray:
        """Boolean (ny, nx) occupancy image of one level."""
        n = int(self.nx[level] * self.ny[level])
        bits = (self.data[:n] >> np.uint32(level)) & np.uint32(1)
        return bits.astype(bool).reshape(int(self.ny[level]), int(self.nx[level]))

    def occupied_fraction(self, level: int = 0) -> float:
        return float(self.level_mask(level).mean())

    def describe(self) -> Sequence[str]:
        return [
            f"L{level}: size={size:.3f} cells={int(self.nx[level])}x{int(self.ny[level])}"
            for level, size in enumerate(self.sizes)
        ]


__all__ = ["MAX_LEVELS", "OccupancyGrid", "cell_sizes"]
