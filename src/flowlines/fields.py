"""
Ready-made field and density callbacks.

Each factory returns a plain callable taking a `Vector`. Field callables
return a `Vector` or `None` where the flow is undefined; density callables
return a value in [0, 1].
"""

from __future__ import annotations

import math
from typing import Callable, Optional

from .vector import Vector

FieldFn = Callable[[Vector], Optional[Vector]]
DensityFn = Callable[[Vector], float]


def uniform_field(dx: float = 1.0, dy: float = 0.0) -> FieldFn:
    direction = Vector(dx, dy)

    def fn(pt: Vector) -> Optional[Vector]:
        return direction

    return fn


def vortex_field(cx: float, cy: float, clockwise: bool = False) -> FieldFn:
    """Unit-speed rotation about (cx, cy); undefined at the centre itself."""
    sign = -1.0 if clockwise else 1.0

    def fn(pt: Vector) -> Optional[Vector]:
        rx = pt.x - cx
        ry = pt.y - cy
        if rx == 0.0 and ry == 0.0:
            return None
        return Vector(-ry * sign, rx * sign).normalize()

    return fn


def wave_field(wavelength: float = 200.0, amplitude: float = 1.0, phase: float = 0.0) -> FieldFn:
    """Left-to-right flow whose vertical component follows a sine in x."""
    k = 2.0 * math.pi / wavelength

    def fn(pt: Vector) -> Optional[Vector]:
        return Vector(1.0, amplitude * math.sin(k * pt.x + phase)).normalize()

    return fn


def masked_to_disk(inner: FieldFn, cx: float, cy: float, radius: float) -> FieldFn:
    """Restrict `inner` to the closed disk of `radius` about (cx, cy)."""
    r_sq = radius * radius

    def fn(pt: Vector) -> Optional[Vector]:
        dx = pt.x - cx
        dy = pt.y - cy
        if dx * dx + dy * dy > r_sq:
            return None
        return inner(pt)

    return fn


def radial_density(cx: float, cy: float, radius: float, invert: bool = False) -> DensityFn:
    """1 at (cx, cy) falling linearly to 0 at `radius` and beyond."""

    def fn(pt: Vector) -> float:
        d = math.hypot(pt.x - cx, pt.y - cy) / radius
        val = max(0.0, 1.0 - d)
        return 1.0 - val if invert else val

    return fn


def constant_density(value: float) -> DensityFn:
    def fn(pt: Vector) -> float:
        return value

    return fn


__all__ = [
    "constant_density",
    "masked_to_disk",
    "radial_density",
    "uniform_field",
    "vortex_field",
    "wave_field",
]
