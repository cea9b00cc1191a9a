"""
Space-filling flow-line generator.

Traces integral curves of a 2D vector field with fixed-step RK4, growing
each line forwards and backwards from a random seed. A multi-resolution
occupancy grid keeps lines apart: the optional density callback picks, per
point, which grid level governs spacing there (level 0 = densest lines).

Key behaviours:
1.  **Seeding:** every finest-level cell is visited once, in a shuffled
    order, with a random offset inside the cell. Seeds on occupied ground
    are skipped; running out of cells ends the session.
2.  **Bidirectional growth:** the two ends advance alternately and die
    independently, on an undefined field, a step leaving the domain, a
    collision with claimed cells, or the length cap.
3.  **Self-avoidance exemption:** moving inside the cell the line already
    holds is always allowed, otherwise a line would block itself.
"""

from __future__ import annotations

import math
import time
from collections import deque
from dataclasses import asdict, dataclass, field
from typing import Any, Callable, Deque, Dict, Iterator, List, Optional

import numpy as np

from . import utils
from .occupancy import MAX_LEVELS, OccupancyGrid
from .vector import Vector

FieldFn = Callable[[Vector], Optional[Vector]]
DensityFn = Callable[[Vector], float]


###############################################################################
# Configuration and results
###############################################################################


@dataclass
class FlowConfig:
    """Domain, integration and spacing parameters for a generator session."""

    width: float = 800.0
    height: float = 800.0
    step_size: float = 1.0
    max_length: float = 0.0  # <= 0 means unbounded
    min_cell_size: float = 4.0
    max_cell_size: float = 16.0
    level_count: int = 4
    logarithmic: bool = False
    seed: Optional[int] = None
    verbose: bool = False

    def validate(self) -> "FlowConfig":
        if self.width <= 0 or self.height <= 0:
            raise ValueError(
                f"Domain must have positive size, got {self.width}x{self.height}"
            )
        if self.step_size == 0:
            raise ValueError("step_size must be nonzero")
        if self.min_cell_size <= 0 or self.max_cell_size <= 0:
            raise ValueError(
                f"Cell sizes must be positive, got min={self.min_cell_size}, "
                f"max={self.max_cell_size}"
            )
        if self.min_cell_size > self.max_cell_size:
            raise ValueError(
                f"min_cell_size ({self.min_cell_size}) exceeds "
                f"max_cell_size ({self.max_cell_size})"
            )
        if not 1 <= self.level_count <= MAX_LEVELS:
            raise ValueError(
                f"level_count must be in [1, {MAX_LEVELS}], got {self.level_count}"
            )
        return self

    @classmethod
    def from_dict(cls, params: Dict[str, Any]) -> "FlowConfig":
        known = set(cls.__dataclass_fields__)
        unknown = set(params) - known
        if unknown:
            raise ValueError(f"Unknown flow parameters: {sorted(unknown)}")
        return cls(**params)


@dataclass
class FlowLine:
    """
    One generated trace.

    An empty `points` list means the seed supply is exhausted; a single point
    is a drawn seed that could not grow.
    """

    points: List[Vector] = field(default_factory=list)
    length: float = 0.0
    seed: Optional[Vector] = None

    @property
    def is_exhausted(self) -> bool:
        return not self.points

    @property
    def is_degenerate(self) -> bool:
        return len(self.points) < 2

    def as_array(self) -> np.ndarray:
        if not self.points:
            return np.zeros((0, 2), dtype=np.float64)
        return np.array([p.as_tuple() for p in self.points], dtype=np.float64)


class _Cursor:
    """One growing end of a trace."""

    __slots__ = ("pt", "cells", "forward")

    def __init__(self, pt: Vector, cells: np.ndarray, forward: bool) -> None:
        self.pt: Optional[Vector] = pt
        self.cells = cells
        self.forward = forward

    @property
    def alive(self) -> bool:
        return self.pt is not None


###############################################################################
# Generator
###############################################################################


class FlowLineGenerator:
    """
    Stateful flow-line source.

    The occupancy grid and shuffled seed order are built once and shared by
    every `generate_line()` call, so successive lines avoid each other.
    Not safe for concurrent use.
    """

    def __init__(
        self,
        field_fn: FieldFn,
        config: FlowConfig | None = None,
        *,
        density_fn: Optional[DensityFn] = None,
        rng: Optional[np.random.Generator] = None,
    ) -> None:
        self.config = (config or FlowConfig()).validate()
        self.field_fn = field_fn
        self.density_fn = density_fn
        self.rng = rng if rng is not None else utils.make_rng(self.config.seed)

        self.width = float(self.config.width)
        self.height = float(self.config.height)
        self.step_size = float(self.config.step_size)
        self.max_length = float(self.config.max_length)

        self.grid = OccupancyGrid(
            self.width,
            self.height,
            self.config.min_cell_size,
            self.config.max_cell_size,
            self.config.level_count,
            self.config.logarithmic,
        )

        if density_fn is None:
            self._level_at = self._finest_level
        else:
            self._level_at = self._density_level

        # Random grid positions at finest resolution
        self.ixs = np.arange(self.grid.finest_cell_count, dtype=np.int64)
        utils.shuffle_indices(self.ixs, self.rng)
        self.next_ix = 0

    # ------------------------------------------------------------------ levels
    def _finest_level(self, pt: Vector) -> int:
        return 0

    def _density_level(self, pt: Vector) -> int:
        top = self.grid.level_count - 1
        level = int(math.floor(top * float(self.density_fn(pt)) + 0.5))
        return min(max(level, 0), top)

    def level_at(self, pt: Vector) -> int:
        """Occupancy level governing spacing at `pt`."""
        return self._level_at(pt)

    # ------------------------------------------------------------------ seeding
    @property
    def seeds_remaining(self) -> int:
        return int(self.ixs.shape[0]) - self.next_ix

    def next_seed(self) -> Optional[Vector]:
        """Next unoccupied seed point, or None once every cell has been tried."""
        nx0 = int(self.grid.nx[0])
        cell_w = float(self.grid.cell_w[0])
        cell_h = float(self.grid.cell_h[0])
        while self.next_ix < self.ixs.shape[0]:
            ix = int(self.ixs[self.next_ix])
            self.next_ix += 1
            cy, cx = divmod(ix, nx0)
            pt = Vector(
                math.floor((cx + self.rng.random()) * cell_w),
                math.floor((cy + self.rng.random()) * cell_h),
            )
            if not self.grid.is_occupied(pt.x, pt.y, 0):
                return pt
        return None

    # ------------------------------------------------------------------ integration
    def rk4(self, pt: Vector) -> Optional[Vector]:
        """Fixed-step RK4 displacement from `pt`, or None if any sample is undefined."""
        return self._rk4_from(pt, self.field_fn(pt))

    def _rk4_from(self, pt: Vector, k1: Optional[Vector]) -> Optional[Vector]:
        h = self.step_size
        if k1 is None:
            return None
        k2 = self.field_fn(pt.add(k1.multiply(h * 0.5)))
        if k2 is None:
            return None
        k3 = self.field_fn(pt.add(k2.multiply(h * 0.5)))
        if k3 is None:
            return None
        k4 = self.field_fn(pt.add(k3.multiply(h)))
        if k4 is None:
            return None
        return (
            k1.multiply(h / 6.0)
            .add(k2.multiply(h / 3.0))
            .add(k3.multiply(h / 3.0))
            .add(k4.multiply(h / 6.0))
        )

    def _in_domain(self, pt: Vector) -> bool:
        return 0.0 <= pt.x < self.width and 0.0 <= pt.y < self.height

    def _advance(self, cursor: _Cursor, points: Deque[Vector], length: float) -> float:
        """
        Try one step from `cursor`. On success the new point is marked and
        attached to its end of `points`; otherwise the cursor dies. Returns the
        distance added to the trace.
        """
        pt = cursor.pt
        here = self.field_fn(pt)
        if here is None or here.length() == 0.0:
            cursor.pt = None
            return 0.0
        change = self._rk4_from(pt, here)
        if change is None:
            cursor.pt = None
            return 0.0
        cand = pt.add(change) if cursor.forward else pt.subtract(change)
        if not self._in_domain(cand):
            cursor.pt = None
            return 0.0

        level = self._level_at(cand)
        cells = self.grid.all_level_indices(cand.x, cand.y)
        if cells[level] != cursor.cells[level] and self.grid.is_occupied(cand.x, cand.y, level):
            cursor.pt = None
            return 0.0

        end = points[-1] if cursor.forward else points[0]
        step = end.subtract(cand).length()
        if step == 0.0:
            # stagnation: the step no longer moves the point
            cursor.pt = None
            return 0.0
        if self.max_length > 0 and length + step > self.max_length:
            cursor.pt = None
            return 0.0

        self.grid.mark_occupied(cand.x, cand.y)
        cursor.cells = cells
        cursor.pt = cand
        if cursor.forward:
            points.append(cand)
        else:
            points.appendleft(cand)
        return step

    # ------------------------------------------------------------------ public
    def generate_line(self) -> FlowLine:
        """
        Grow the next flow line.

        Returns an empty line once seeds are exhausted, and a single-point line
        when the drawn seed lies outside the field or on claimed ground.

        When `max_length > 0` the returned `length` never exceeds it: a step
        that would cross the cap ends that side of the line instead of being
        kept.
        """
        seed = self.next_seed()
        if seed is None:
            return FlowLine()

        points: Deque[Vector] = deque([seed])
        if self.field_fn(seed) is None:
            return FlowLine(points=list(points), length=0.0, seed=seed)
        if self.grid.is_occupied(seed.x, seed.y, self._level_at(seed)):
            return FlowLine(points=list(points), length=0.0, seed=seed)

        # both ends start out holding the seed's cells
        seed_cells = self.grid.all_level_indices(seed.x, seed.y)
        fw = _Cursor(seed.clone(), seed_cells, forward=True)
        bk = _Cursor(seed.clone(), seed_cells, forward=False)
        length = 0.0
        while fw.alive or bk.alive:
            if fw.alive:
                length += self._advance(fw, points, length)
            if bk.alive:
                length += self._advance(bk, points, length)

        return FlowLine(points=list(points), length=length, seed=seed)

    def iter_lines(self, min_points: int = 2) -> Iterator[FlowLine]:
        """Yield lines with at least `min_points` points until seeds run out."""
        while True:
            line = self.generate_line()
            if line.is_exhausted:
                return
            if len(line.points) >= min_points:
                yield line

    def generate_all(self, max_lines: Optional[int] = None, min_points: int = 2) -> List[FlowLine]:
        start_time = time.time()
        total = self.grid.finest_cell_count
        report_every = max(1, total // 10)
        next_report = report_every
        lines: List[FlowLine] = []
        n_points = 0
        for line in self.iter_lines(min_points=min_points):
            lines.append(line)
            n_points += len(line.points)
            if max_lines is not None and len(lines) >= max_lines:
                break
            if self.config.verbose and self.next_ix >= next_report:
                next_report += report_every
                elapsed = time.time() - start_time
                print(
                    f"[flow] seeds {self.next_ix}/{total}, lines={len(lines)}, "
                    f"points={n_points}, elapsed={elapsed:.1f}s"
                )
        return lines


###############################################################################
# Workflow entry point
###############################################################################


def run_model(
    field_fn: FieldFn,
    config: FlowConfig | Dict[str, Any] | None = None,
    density_fn: Optional[DensityFn] = None,
    *,
    max_lines: Optional[int] = None,
) -> utils.FlowLinesResult:
    """
    Generate flow lines until seeds run out and pack them into a FlowLinesResult.
    """
    if config is None:
        config = FlowConfig()
    elif isinstance(config, dict):
        config = FlowConfig.from_dict(config)
    start_time = time.time()

    gen = FlowLineGenerator(field_fn, config, density_fn=density_fn)
    if config.verbose:
        print(
            f"Generating flow lines: {config.width}x{config.height}, "
            f"step={config.step_size}, levels: " + "; ".join(gen.grid.describe())
        )
    lines = gen.generate_all(max_lines=max_lines)

    meta = asdict(config)
    meta.update(
        {
            "model": "flowlines",
            "num_lines": len(lines),
            "num_points": int(sum(len(line.points) for line in lines)),
            "density": density_fn is not None,
            "time_elapsed": time.time() - start_time,
        }
    )
    return utils.FlowLinesResult.from_arrays(
        [line.as_array() for line in lines],
        [line.length for line in lines],
        meta=meta,
    )


__all__ = ["FlowConfig", "FlowLine", "FlowLineGenerator", "run_model"]
