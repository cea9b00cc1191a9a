from __future__ import annotations

import math
from typing import Iterator, Optional, Tuple


class Vector:
    """
    Immutable 2D vector.

    The magnitude is computed lazily on the first call to `length()` and kept
    for the lifetime of the instance. Nothing mutates `x` or `y` after
    construction (`normalize()` returns a new vector), so the cached value
    never goes stale.
    """

    __slots__ = ("x", "y", "_length")

    def __init__(self, x: float, y: float) -> None:
        self.x = float(x)
        self.y = float(y)
        self._length: Optional[float] = None

    def length(self) -> float:
        if self._length is None:
            self._length = math.sqrt(self.x * self.x + self.y * self.y)
        return self._length

    def normalize(self) -> "Vector":
        """Unit vector in the same direction; a zero vector stays (0, 0)."""
        n = self.length()
        if n == 0.0:
            return Vector(0.0, 0.0)
        out = Vector(self.x / n, self.y / n)
        out._length = 1.0
        return out

    def multiply(self, val: float) -> "Vector":
        return Vector(self.x * val, self.y * val)

    def add(self, other: "Vector") -> "Vector":
        return Vector(self.x + other.x, self.y + other.y)

    def subtract(self, other: "Vector") -> "Vector":
        return Vector(self.x - other.x, self.y - other.y)

    def clone(self) -> "Vector":
        out = Vector(self.x, self.y)
        out._length = self._length
        return out

    def as_tuple(self) -> Tuple[float, float]:
        return self.x, self.y

    # operator aliases
    __add__ = add
    __sub__ = subtract

    def __mul__(self, val: float) -> "Vector":
        return self.multiply(val)

    __rmul__ = __mul__

    def __iter__(self) -> Iterator[float]:
        yield self.x
        yield self.y

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Vector):
            return NotImplemented
        return self.x == other.x and self.y == other.y

    def __hash__(self) -> int:
        return hash((self.x, self.y))

    def __repr__(self) -> str:
        return f"Vector({self.x!r}, {self.y!r})"
