"""Read-only transmittance map consumed by the flux propagator.

A :class:`Grid` is the engine's only view of the caller's world. It copies the
supplied values once and freezes them, so any number of queries may read the
same grid concurrently while the caller keeps mutating its own live map.
"""

from __future__ import annotations

import numpy as np
from numpy.typing import ArrayLike, NDArray

from fluxfov import config
from fluxfov.errors import OutOfBounds
from fluxfov.types import GridCoord, Transmittance
from fluxfov.util.coordinates import Rect, is_valid_grid_pos


class Grid:
    """A ``(width, height)`` field of per-cell transmittance values.

    Indexing follows the ``array[x, y]`` convention used by tcod maps:
    the first axis is x (columns), the second is y (rows).
    """

    def __init__(self, transmittance: ArrayLike) -> None:
        data = np.array(transmittance, dtype=config.FLUX_DTYPE, copy=True)
        if data.ndim != 2:
            raise ValueError(f"Grid needs a 2D array, got {data.ndim} dimension(s)")
        if data.size == 0:
            raise ValueError(f"Grid must not be empty, got shape {data.shape}")
        if not np.all(np.isfinite(data)):
            raise ValueError("Grid transmittance values must be finite")
        if data.min() < 0.0 or data.max() > 1.0:
            raise ValueError(
                f"Grid transmittance must lie in [0, 1], "
                f"got range [{data.min()}, {data.max()}]"
            )
        data.setflags(write=False)
        self._data: NDArray[np.float64] = data

    @classmethod
    def from_transparent(cls, transparent: ArrayLike) -> Grid:
        """Build a grid from a boolean see-through map (True = open)."""
        return cls(np.asarray(transparent, dtype=np.bool_))

    @classmethod
    def open(cls, width: int, height: int) -> Grid:
        """A fully transparent ``width`` x ``height`` grid."""
        return cls(np.ones((width, height), dtype=config.FLUX_DTYPE))

    @property
    def width(self) -> int:
        return self._data.shape[0]

    @property
    def height(self) -> int:
        return self._data.shape[1]

    @property
    def shape(self) -> tuple[int, int]:
        return (self.width, self.height)

    @property
    def bounds(self) -> Rect:
        return Rect(0, 0, self.width, self.height)

    @property
    def array(self) -> NDArray[np.float64]:
        """Read-only view of the whole map."""
        return self._data

    def in_bounds(self, x: GridCoord, y: GridCoord) -> bool:
        return is_valid_grid_pos((x, y), self.width, self.height)

    def transmittance(self, x: GridCoord, y: GridCoord) -> Transmittance:
        """Fraction of incoming flux the cell at ``(x, y)`` lets through.

        Raises:
            OutOfBounds: If ``(x, y)`` is outside the grid. Coordinates are
                never clamped or wrapped.
        """
        if not self.in_bounds(x, y):
            raise OutOfBounds((x, y), self.bounds)
        return float(self._data[x, y])

    def window(self, rect: Rect) -> NDArray[np.float64]:
        """Read-only view of the cells covered by *rect*.

        Raises:
            OutOfBounds: If *rect* reaches past the grid edge.
        """
        if rect.width > 0 and rect.height > 0:
            for corner in ((rect.x1, rect.y1), (rect.x2 - 1, rect.y2 - 1)):
                if not self.in_bounds(*corner):
                    raise OutOfBounds(corner, self.bounds)
        return self._data[rect.slices()]

    def __repr__(self) -> str:
        return f"Grid(width={self.width}, height={self.height})"
