"""Per-query flux buffers and ring enumeration."""

from __future__ import annotations

from dataclasses import dataclass

import numpy as np
from numpy.typing import NDArray

from fluxfov import config
from fluxfov.errors import AlreadySettled, NotSettled, OutOfBounds
from fluxfov.grid import Grid
from fluxfov.types import Flux, GridPos
from fluxfov.util.coordinates import Rect


@dataclass(frozen=True, eq=False)
class FluxSnapshot:
    """Frozen copy of a finished flux field.

    Arrays cover ``bounds`` and are indexed ``[x - bounds.x1, y - bounds.y1]``.
    Cells that were never settled (rings skipped after flux died out) hold 0.
    """

    origin: GridPos
    radius: int
    bounds: Rect
    influx: NDArray[np.float64]
    outflux: NDArray[np.float64]
    settled: NDArray[np.bool_]
    rings_settled: int


class FluxField:
    """Influx, outflux and settlement state for a single query.

    Only the square of radius ``radius`` around ``origin``, clipped to the
    grid, is allocated. Each cell is written exactly once through
    :meth:`set_influx`, and reading a cell before that write fails.
    """

    def __init__(self, grid: Grid, origin: GridPos, radius: int) -> None:
        self.origin = origin
        self.radius = radius
        self.window = Rect.around(origin, radius).clip(grid.bounds)
        self._transmittance = grid.window(self.window)
        self._influx = np.zeros(self.window.shape, dtype=config.FLUX_DTYPE)
        self._outflux = np.zeros(self.window.shape, dtype=config.FLUX_DTYPE)
        self._settled = np.zeros(self.window.shape, dtype=np.bool_)
        self.rings_settled = 0
        self._snapshot_taken = False

    @property
    def max_ring(self) -> int:
        """Farthest ring that still has at least one cell inside the window."""
        ox, oy = self.origin
        w = self.window
        return max(ox - w.x1, w.x2 - 1 - ox, oy - w.y1, w.y2 - 1 - oy)

    def _index(self, pos: GridPos) -> tuple[int, int]:
        x, y = pos
        if not self.window.contains(x, y):
            raise OutOfBounds(pos, self.window)
        return self.window.to_local(x, y)

    def ring(self, d: int) -> list[GridPos]:
        """Cells at Chebyshev distance exactly *d* from the origin, in window."""
        if d == 0:
            return [self.origin]
        ox, oy = self.origin
        w = self.window
        cells: list[GridPos] = []
        # Top and bottom edges, corners included.
        for x in range(max(ox - d, w.x1), min(ox + d, w.x2 - 1) + 1):
            for y in (oy - d, oy + d):
                if w.y1 <= y < w.y2:
                    cells.append((x, y))
        # Left and right edges between the corners.
        for y in range(max(oy - d + 1, w.y1), min(oy + d - 1, w.y2 - 1) + 1):
            for x in (ox - d, ox + d):
                if w.x1 <= x < w.x2:
                    cells.append((x, y))
        return cells

    def is_settled(self, pos: GridPos) -> bool:
        return bool(self._settled[self._index(pos)])

    def set_influx(self, pos: GridPos, value: Flux) -> Flux:
        """Finalize the influx of *pos* and derive its outflux.

        The value is clamped to ``[0, 1]`` to absorb floating-point drift.
        Returns the outflux, ``influx * transmittance``.

        Raises:
            AlreadySettled: If *pos* was settled earlier in this query.
            OutOfBounds: If *pos* lies outside the query window.
        """
        ix = self._index(pos)
        if self._settled[ix]:
            raise AlreadySettled(f"Cell {pos} already settled")
        influx = min(max(float(value), 0.0), 1.0)
        outflux = influx * float(self._transmittance[ix])
        self._influx[ix] = influx
        self._outflux[ix] = outflux
        self._settled[ix] = True
        return outflux

    def influx_of(self, pos: GridPos) -> Flux:
        ix = self._index(pos)
        if not self._settled[ix]:
            raise NotSettled(f"Cell {pos} has no final influx yet")
        return float(self._influx[ix])

    def outflux_of(self, pos: GridPos) -> Flux:
        """Flux *pos* passes on to the next ring.

        Raises:
            NotSettled: If *pos* has not been settled yet.
        """
        ix = self._index(pos)
        if not self._settled[ix]:
            raise NotSettled(f"Cell {pos} has no final outflux yet")
        return float(self._outflux[ix])

    def snapshot(self) -> FluxSnapshot:
        """Hand the finished buffers to the caller. Allowed once per field."""
        if self._snapshot_taken:
            raise RuntimeError("Flux field snapshot already taken")
        self._snapshot_taken = True
        influx = self._influx.copy()
        outflux = self._outflux.copy()
        settled = self._settled.copy()
        for array in (influx, outflux, settled):
            array.setflags(write=False)
        return FluxSnapshot(
            origin=self.origin,
            radius=self.radius,
            bounds=self.window,
            influx=influx,
            outflux=outflux,
            settled=settled,
            rings_settled=self.rings_settled,
        )
