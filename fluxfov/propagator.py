"""Ring-by-ring flux relaxation.

Flux starts at the origin and moves strictly outward. Ring ``d`` reads only
the settled outflux of ring ``d - 1``, so cell dependencies form a DAG layered
by distance and one pass over rings ``0..R`` settles every cell exactly once.
No fixpoint iteration or convergence check is involved.

An opaque cell still receives influx (it shows up as a wall silhouette) but
passes nothing on. Shadows are nothing more than that absorbed flux failing
to reach the cells behind it.
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Iterable
from concurrent.futures import Executor

from fluxfov import config
from fluxfov.errors import InvalidQuery
from fluxfov.flux_field import FluxField
from fluxfov.geometry import MAX_TABLE_RADIUS, predecessors
from fluxfov.grid import Grid
from fluxfov.types import Flux, GridPos
from fluxfov.util.coordinates import is_grid_coord

logger = logging.getLogger(__name__)

type RingOrder = Callable[[list[GridPos]], Iterable[GridPos]]


def validate_query(grid: Grid, origin: object, radius: object) -> GridPos:
    """Check *origin* and *radius* before any flux buffer is allocated.

    *origin* may be any length-2 iterable of integers, numpy arrays included.
    Returns it normalised to a tuple of plain ints.

    The radius itself is unbounded, but the rings actually walked (the
    radius, cut at the farthest grid edge) must stay within reach of the
    flux weight table.

    Raises:
        InvalidQuery: If the origin is not an in-bounds ``(x, y)`` pair of
            integers, the radius is not a non-negative integer, or the query
            would walk rings past :data:`~fluxfov.geometry.MAX_TABLE_RADIUS`.
    """
    if not is_grid_coord(radius):
        raise InvalidQuery(f"Radius must be an integer, got {radius!r}")
    if radius < 0:
        raise InvalidQuery(f"Radius must be non-negative, got {radius}")
    try:
        coords = tuple(origin)  # type: ignore[call-overload]
    except TypeError:
        raise InvalidQuery(f"Origin must be an (x, y) pair, got {origin!r}") from None
    if len(coords) != 2:
        raise InvalidQuery(f"Origin must be an (x, y) pair, got {origin!r}")
    if not all(is_grid_coord(c) for c in coords):
        raise InvalidQuery(f"Origin coordinates must be integers, got {origin!r}")
    x, y = int(coords[0]), int(coords[1])
    if not grid.in_bounds(x, y):
        raise InvalidQuery(
            f"Origin {(x, y)} is outside the {grid.width}x{grid.height} grid"
        )
    edge_ring = max(x, grid.width - 1 - x, y, grid.height - 1 - y)
    reach = min(int(radius), edge_ring)
    if reach > MAX_TABLE_RADIUS:
        raise InvalidQuery(
            f"Query from {(x, y)} would reach ring {reach}, "
            f"past the supported limit of {MAX_TABLE_RADIUS}"
        )
    return (x, y)


class Propagator:
    """Fills a :class:`FluxField` for one origin at a time.

    A propagator holds no per-query state, so a single instance may serve
    many queries, including concurrent ones against the same grid.

    Args:
        grid: Read-only transmittance map.
        epsilon: Once every cell of a ring emits less than this, later rings
            are skipped and read as zero.
        ring_order: Optional reordering applied to each ring's cells before
            they are settled. Results do not depend on it.
        executor: Optional executor used to settle large rings in parallel
            chunks. Each task writes only its own cells and reads only the
            previous ring.
        chunk_size: Cells per executor task.
    """

    def __init__(
        self,
        grid: Grid,
        *,
        epsilon: float = config.FLUX_EPSILON,
        ring_order: RingOrder | None = None,
        executor: Executor | None = None,
        chunk_size: int = config.RING_CHUNK_SIZE,
    ) -> None:
        if epsilon < 0.0:
            raise ValueError(f"epsilon must be non-negative, got {epsilon}")
        if chunk_size <= 0:
            raise ValueError("chunk_size must be a positive integer.")
        self.grid = grid
        self.epsilon = epsilon
        self.ring_order = ring_order
        self.executor = executor
        self.chunk_size = chunk_size

    def run(
        self, origin: GridPos, radius: int, *, circular: bool = False
    ) -> FluxField:
        """Propagate flux from *origin* out to ring *radius*.

        With ``circular`` set, cells farther than *radius* in Euclidean
        distance settle with zero influx, giving a round sight limit instead
        of a square one.

        Raises:
            InvalidQuery: See :func:`validate_query`.
        """
        origin = validate_query(self.grid, origin, radius)
        radius = int(radius)
        field = FluxField(self.grid, origin, radius)
        # Rings past the grid edge are empty, so a huge radius on a small
        # grid costs no more than the grid itself.
        last_ring = min(radius, field.max_ring)
        limit_sq = radius * radius if circular else None
        logger.debug(
            "Propagating from %s: radius=%d, window=%r, rings=%d",
            origin,
            radius,
            field.window,
            last_ring + 1,
        )

        # The origin sees itself fully regardless of its own transmittance.
        strongest = field.set_influx(origin, 1.0)
        field.rings_settled = 1

        for d in range(1, last_ring + 1):
            if strongest < self.epsilon:
                logger.debug("Flux died out after ring %d of %d", d - 1, last_ring)
                break
            cells = field.ring(d)
            if self.ring_order is not None:
                cells = list(self.ring_order(cells))
            strongest = self._settle_ring(field, cells, limit_sq)
            field.rings_settled += 1

        return field

    def _settle_ring(
        self, field: FluxField, cells: list[GridPos], limit_sq: int | None
    ) -> Flux:
        """Settle every cell of one ring and return the ring's strongest outflux."""
        if self.executor is None or len(cells) <= self.chunk_size:
            return _settle_cells(field, cells, limit_sq)

        chunks = [
            cells[start : start + self.chunk_size]
            for start in range(0, len(cells), self.chunk_size)
        ]
        futures = [
            self.executor.submit(_settle_cells, field, chunk, limit_sq)
            for chunk in chunks
        ]
        # Collecting every result is the ring barrier: ring d + 1 must not
        # start until all of ring d is settled.
        return max(future.result() for future in futures)


def _settle_cells(
    field: FluxField, cells: Iterable[GridPos], limit_sq: int | None
) -> Flux:
    ox, oy = field.origin
    strongest = 0.0
    for x, y in cells:
        dx = x - ox
        dy = y - oy
        if limit_sq is not None and dx * dx + dy * dy > limit_sq:
            field.set_influx((x, y), 0.0)
            continue
        influx = 0.0
        for pred in predecessors(dx, dy):
            influx += pred.weight * field.outflux_of((ox + pred.dx, oy + pred.dy))
        strongest = max(strongest, field.set_influx((x, y), influx))
    return strongest
