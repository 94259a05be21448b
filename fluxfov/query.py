"""Public entry point: flux-based field of view.

Typical use::

    grid = Grid.from_transparent(game_map.transparent)
    result = compute(grid, player_pos, radius=12, threshold=0.5)
    if result.is_visible(*target_pos):
        ...

Callers wanting soft lighting read ``result.influx``; callers wanting a
boolean FOV mask read ``result.visible`` or ``result.visible_mask()``.
``result.outflux`` is what each cell passed on, so ``influx - outflux`` is
the flux a cell absorbed (a lit wall face, a dimmed bush).
"""

from __future__ import annotations

import logging
import math
from collections.abc import Iterator
from concurrent.futures import Executor
from dataclasses import dataclass

import numpy as np
from numpy.typing import ArrayLike, NDArray

from fluxfov import config
from fluxfov.errors import InvalidThreshold, OutOfBounds
from fluxfov.grid import Grid
from fluxfov.propagator import Propagator, validate_query
from fluxfov.types import Flux, GridCoord, GridPos
from fluxfov.util.coordinates import Rect, is_grid_coord
from fluxfov.util.live_vars import (
    MetricSpec,
    live_variable_registry,
    record_time_live_variable,
)

logger = logging.getLogger(__name__)

COMPUTE_METRICS = (
    MetricSpec(
        "fov.compute_ms",
        "Wall-clock time of one flux FOV query",
        config.COMPUTE_METRIC_SAMPLES,
    ),
    MetricSpec(
        "fov.rings_settled",
        "Rings settled before the query finished or flux died out",
        config.COMPUTE_METRIC_SAMPLES,
    ),
)


def register_metrics() -> None:
    """Register the ``fov.*`` metrics (idempotent)."""
    live_variable_registry.register_metrics(COMPUTE_METRICS)


register_metrics()


@dataclass(frozen=True, eq=False)
class VisibilityResult:
    """Outcome of one query, owned by the caller.

    ``influx``, ``outflux`` and ``visible`` cover ``bounds`` (the radius square
    around the origin clipped to the grid) and are indexed
    ``[x - bounds.x1, y - bounds.y1]``. Cells outside ``bounds`` are absent.
    """

    origin: GridPos
    radius: int
    threshold: float
    grid_shape: tuple[int, int]
    bounds: Rect
    influx: NDArray[np.float64]
    outflux: NDArray[np.float64]
    visible: NDArray[np.bool_]
    rings_settled: int

    def __contains__(self, pos: object) -> bool:
        if not isinstance(pos, tuple) or len(pos) != 2:
            return False
        return self._covers(*pos)

    def _covers(self, x: object, y: object) -> bool:
        return is_grid_coord(x) and is_grid_coord(y) and self.bounds.contains(x, y)

    def _index(self, x: GridCoord, y: GridCoord) -> tuple[int, int]:
        if not self._covers(x, y):
            raise OutOfBounds((x, y), self.bounds)
        return self.bounds.to_local(x, y)

    def influx_at(self, x: GridCoord, y: GridCoord) -> Flux:
        """Raw flux reaching ``(x, y)``.

        Raises:
            OutOfBounds: If the cell is not part of this result.
        """
        return float(self.influx[self._index(x, y)])

    def outflux_at(self, x: GridCoord, y: GridCoord) -> Flux:
        """Flux ``(x, y)`` passed on outward, ``influx * transmittance``."""
        return float(self.outflux[self._index(x, y)])

    def is_visible(self, x: GridCoord, y: GridCoord) -> bool:
        return bool(self.visible[self._index(x, y)])

    def cells(self) -> Iterator[tuple[GridPos, Flux, bool]]:
        """Yield ``(pos, influx, visible)`` for every cell in the result."""
        for x, y in self.bounds:
            ix = self.bounds.to_local(x, y)
            yield (x, y), float(self.influx[ix]), bool(self.visible[ix])

    def visible_cells(self) -> set[GridPos]:
        xs, ys = np.nonzero(self.visible)
        return {
            (int(x) + self.bounds.x1, int(y) + self.bounds.y1)
            for x, y in zip(xs, ys, strict=True)
        }

    def to_grid(self, fill: float = 0.0) -> NDArray[np.float64]:
        """Influx spread over a full grid-shaped array, *fill* elsewhere."""
        out = np.full(self.grid_shape, fill, dtype=config.FLUX_DTYPE)
        out[self.bounds.slices()] = self.influx
        return out

    def visible_mask(self) -> NDArray[np.bool_]:
        """Grid-shaped boolean FOV mask."""
        out = np.zeros(self.grid_shape, dtype=np.bool_)
        out[self.bounds.slices()] = self.visible
        return out


def validate_threshold(threshold: object) -> float:
    if isinstance(threshold, bool) or not isinstance(
        threshold, int | float | np.number
    ):
        raise InvalidThreshold(f"Threshold must be a number, got {threshold!r}")
    value = float(threshold)
    if math.isnan(value) or not 0.0 <= value <= 1.0:
        raise InvalidThreshold(f"Threshold must lie in [0, 1], got {threshold!r}")
    return value


def compute(
    grid: Grid,
    origin: GridPos,
    radius: int,
    threshold: float = config.DEFAULT_THRESHOLD,
    *,
    circular: bool = False,
    executor: Executor | None = None,
) -> VisibilityResult:
    """Compute how much visibility reaches every cell around *origin*.

    Args:
        grid: Transmittance map. Never modified.
        origin: ``(x, y)`` of the viewer, any pair of integers (a numpy
            array works too).
        radius: Maximum ring (Chebyshev distance) to propagate to.
        threshold: A cell is visible when its influx exceeds this.
        circular: Cut propagation at Euclidean distance *radius*.
        executor: Optional executor for settling large rings in parallel.

    Raises:
        InvalidThreshold: If *threshold* is not a number in ``[0, 1]``.
        InvalidQuery: If *origin* is out of bounds, *radius* is negative, or
            the query would walk rings past the flux weight table limit.
    """
    limit = validate_threshold(threshold)
    origin = validate_query(grid, origin, radius)
    radius = int(radius)

    with record_time_live_variable("fov.compute_ms"):
        field = Propagator(grid, executor=executor).run(
            origin, radius, circular=circular
        )
        snapshot = field.snapshot()
        visible = snapshot.influx > limit
        visible.setflags(write=False)

    live_variable_registry.record_metric_if_enabled(
        "fov.rings_settled", snapshot.rings_settled
    )
    logger.debug(
        "FOV from %s radius %d: %d of %d cells visible",
        origin,
        radius,
        int(np.count_nonzero(visible)),
        visible.size,
    )
    return VisibilityResult(
        origin=origin,
        radius=radius,
        threshold=limit,
        grid_shape=grid.shape,
        bounds=snapshot.bounds,
        influx=snapshot.influx,
        outflux=snapshot.outflux,
        visible=visible,
        rings_settled=snapshot.rings_settled,
    )


def compute_fov(
    transparent: ArrayLike,
    origin: GridPos,
    radius: int,
    threshold: float = config.DEFAULT_THRESHOLD,
) -> NDArray[np.bool_]:
    """Boolean visibility for a see-through map, shaped like *transparent*.

    Drop-in counterpart to shadowcasting ``compute_fov`` helpers that take a
    ``(width, height)`` boolean ``transparent`` array.
    """
    grid = Grid.from_transparent(transparent)
    return compute(grid, origin, radius, threshold).visible_mask()
