"""Bounding boxes and bounds checks in grid coordinates."""

from __future__ import annotations

from collections.abc import Iterator

import numpy as np

from fluxfov.types import GridCoord, GridPos


class Rect:
    """Half-open rectangle ``[x1, x2) x [y1, y2)`` in grid coordinates."""

    __slots__ = ("x1", "x2", "y1", "y2")

    def __init__(self, x: GridCoord, y: GridCoord, w: GridCoord, h: GridCoord) -> None:
        self.x1: GridCoord = x
        self.y1: GridCoord = y
        self.x2: GridCoord = x + w
        self.y2: GridCoord = y + h

    @classmethod
    def from_bounds(
        cls, x1: GridCoord, y1: GridCoord, x2: GridCoord, y2: GridCoord
    ) -> Rect:
        """Create a Rect from corner coordinates (x1, y1, x2, y2)."""
        return cls(x1, y1, x2 - x1, y2 - y1)

    @classmethod
    def around(cls, center: GridPos, radius: int) -> Rect:
        """The square of cells within Chebyshev distance *radius* of *center*."""
        cx, cy = center
        return cls.from_bounds(cx - radius, cy - radius, cx + radius + 1, cy + radius + 1)

    @property
    def width(self) -> GridCoord:
        return self.x2 - self.x1

    @property
    def height(self) -> GridCoord:
        return self.y2 - self.y1

    @property
    def shape(self) -> tuple[int, int]:
        return (self.width, self.height)

    def contains(self, x: GridCoord, y: GridCoord) -> bool:
        return self.x1 <= x < self.x2 and self.y1 <= y < self.y2

    def clip(self, other: Rect) -> Rect:
        """Intersection of two rects. Disjoint rects give an empty rect."""
        x1 = max(self.x1, other.x1)
        y1 = max(self.y1, other.y1)
        x2 = max(x1, min(self.x2, other.x2))
        y2 = max(y1, min(self.y2, other.y2))
        return Rect.from_bounds(x1, y1, x2, y2)

    def to_local(self, x: GridCoord, y: GridCoord) -> tuple[int, int]:
        """Translate grid coordinates into indices of an array covering this rect."""
        return (x - self.x1, y - self.y1)

    def slices(self) -> tuple[slice, slice]:
        """Index expression selecting this rect from an ``array[x, y]`` map."""
        return (slice(self.x1, self.x2), slice(self.y1, self.y2))

    def __iter__(self) -> Iterator[GridPos]:
        for x in range(self.x1, self.x2):
            for y in range(self.y1, self.y2):
                yield (x, y)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Rect):
            return NotImplemented
        return (self.x1, self.y1, self.x2, self.y2) == (
            other.x1,
            other.y1,
            other.x2,
            other.y2,
        )

    def __hash__(self) -> int:
        return hash((self.x1, self.y1, self.x2, self.y2))

    def __repr__(self) -> str:
        return f"Rect(x1={self.x1}, y1={self.y1}, x2={self.x2}, y2={self.y2})"


# =============================================================================
# BOUNDS CHECKING HELPERS
# =============================================================================


def is_valid_grid_pos(pos: GridPos, width: GridCoord, height: GridCoord) -> bool:
    """Check if a grid position is within a width x height extent."""
    x, y = pos
    return 0 <= x < width and 0 <= y < height


def is_grid_coord(value: object) -> bool:
    """True for Python and numpy integers. Bools and floats are not coordinates."""
    return not isinstance(value, bool) and isinstance(value, int | np.integer)
