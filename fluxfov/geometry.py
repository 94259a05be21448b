"""Predecessor selection and directional flux weights.

Every cell except the origin draws its influx from neighbours one ring closer
to the origin. Which neighbours, and in what proportion, is a pure function of
the cell's offset from the origin, so everything here works on integer offsets
and never sees a grid or a flux buffer.

Offsets are folded into the first octant with the same eight integer
transforms classic shadowcasting uses. Inside the octant a cell is addressed
as ``(u, v)`` with ``u`` the ring (Chebyshev) distance and ``0 <= v <= u``:

    v 5...../
      4..../j
      3.../fi
      2../ceh
      1./abdg
      0@-----
       012345 u

Cells on the axis (``v == 0``) and on the diagonal (``v == u``) receive
everything from the single cell one step back along the same line. Interior
cells (a..j above) mix two predecessors: the straight one at ``(u - 1, v)``
and the diagonal one at ``(u - 1, v - 1)``. The mix comes from a table built
by fanning rays across the octant, so the weights generalise shadowcasting's
binary slope tests into continuous proportions.
"""

from __future__ import annotations

import logging
import math
from functools import lru_cache
from typing import NamedTuple

import numpy as np
from numpy.typing import NDArray

from fluxfov import config
from fluxfov.types import OctantTransform, Offset

logger = logging.getLogger(__name__)

# (xu, xv, yu, yv) such that dx = u * xu + v * xv and dy = u * yu + v * yv.
OCTANT_TRANSFORMS: tuple[OctantTransform, ...] = (
    (1, 0, 0, 1),  # E-SE: u->+x, v->+y
    (0, 1, 1, 0),  # S-SE: u->+y, v->+x
    (0, -1, 1, 0),  # S-SW: u->+y, v->-x
    (-1, 0, 0, 1),  # W-SW: u->-x, v->+y
    (-1, 0, 0, -1),  # W-NW: u->-x, v->-y
    (0, -1, -1, 0),  # N-NW: u->-y, v->-x
    (0, 1, -1, 0),  # N-NE: u->-y, v->+x
    (1, 0, 0, -1),  # E-NE: u->+x, v->-y
)

# Largest radius the ray fan can resolve. Beyond it rays are too coarse to
# tell neighbouring interior cells apart.
MAX_TABLE_RADIUS = int(config.FLUX_RAY_RADIUS / math.sqrt(2))

_MIN_TABLE_SIZE = 16
_TABLE_SIZE_STEP = 1024


class Predecessor(NamedTuple):
    """A ring ``d - 1`` neighbour feeding a ring ``d`` cell.

    ``dx``/``dy`` are the neighbour's offset from the origin, not from the
    receiving cell.
    """

    dx: int
    dy: int
    weight: float


def chebyshev_distance(dx: int, dy: int) -> int:
    """Ring index of the offset ``(dx, dy)``."""
    return max(abs(dx), abs(dy))


def octant_of(dx: int, dy: int) -> int:
    """Index into :data:`OCTANT_TRANSFORMS` of the octant holding ``(dx, dy)``.

    Axis and diagonal offsets sit on the border of two octants; the result is
    deterministic but either octant maps them to the same predecessors.
    """
    sx = 1 if dx >= 0 else -1
    sy = 1 if dy >= 0 else -1
    if abs(dx) >= abs(dy):
        return OCTANT_TRANSFORMS.index((sx, 0, 0, sy))
    return OCTANT_TRANSFORMS.index((0, sx, sy, 0))


def to_octant(dx: int, dy: int) -> tuple[int, int, int]:
    """Fold ``(dx, dy)`` into ``(octant, u, v)`` with ``0 <= v <= u``."""
    u = max(abs(dx), abs(dy))
    v = min(abs(dx), abs(dy))
    return octant_of(dx, dy), u, v


def from_octant(octant: int, u: int, v: int) -> Offset:
    """Map octant coordinates back to an offset from the origin."""
    xu, xv, yu, yv = OCTANT_TRANSFORMS[octant]
    return (u * xu + v * xv, u * yu + v * yv)


# =============================================================================
# FLUX WEIGHT TABLE
# =============================================================================


def _table_size_for(u: int) -> int:
    """Round table sizes up so growing radii reuse a handful of cached tables.

    Sizes double up to ``_TABLE_SIZE_STEP`` and then grow in steps of it, so a
    radius just past a power of two does not pay for a table twice as large.
    """
    if u > MAX_TABLE_RADIUS:
        raise ValueError(
            f"Radius {u} exceeds the flux weight table limit of {MAX_TABLE_RADIUS}"
        )
    size = _MIN_TABLE_SIZE
    while size < u and size < _TABLE_SIZE_STEP:
        size *= 2
    if size < u:
        size = -(-u // _TABLE_SIZE_STEP) * _TABLE_SIZE_STEP
    return min(size, MAX_TABLE_RADIUS)


@lru_cache(maxsize=8)
def flux_weight_table(
    size: int,
    ray_count: int = config.FLUX_RAY_COUNT,
    ray_radius: int = config.FLUX_RAY_RADIUS,
) -> NDArray[np.float64]:
    """Straight-predecessor weights for every interior cell up to ring *size*.

    ``table[u, v]`` is meaningful for ``0 < v < u <= size``. It is the share
    of rays crossing cell ``(u, v)`` that stepped up a row to get there.
    Rays are spread evenly by angle over the first octant and marched with
    integer Bresenham steps toward a far target, so the entry for a given
    cell does not depend on *size*.

    The returned array is read-only and shared between callers.
    """
    if ray_count < 2:
        raise ValueError(f"Need at least 2 rays, got {ray_count}")
    if size < 1:
        raise ValueError(f"Table size must be positive, got {size}")
    if ray_radius / size < math.sqrt(2):
        raise ValueError(
            f"Ray radius {ray_radius} is too short for a table of size {size}"
        )

    angles = np.arange(ray_count) / (ray_count - 1) * (math.pi / 4)
    target_x = np.rint(np.cos(angles) * ray_radius).astype(np.int64)
    target_y = np.rint(np.sin(angles) * ray_radius).astype(np.int64)

    # Per-cell hit counts never exceed ray_count.
    total = np.zeros((size + 1, size + 1), dtype=np.int32)
    jump = np.zeros((size + 1, size + 1), dtype=np.int32)

    # Bresenham state for every ray at once. Horizontal and diagonal rays fall
    # out of the same update (never / always stepping) and only ever touch
    # the axis or diagonal, which the interior mask excludes.
    error = target_x // 2
    y = np.zeros(ray_count, dtype=np.int64)
    for x in range(1, size + 1):
        error += target_y
        stepped = error >= target_x
        error[stepped] -= target_x[stepped]
        y += stepped
        if x < 2:
            continue
        interior = (y > 0) & (y < x)
        total[x] += np.bincount(y[interior], minlength=size + 1)
        jump[x] += np.bincount(y[interior & stepped], minlength=size + 1)

    table = np.full((size + 1, size + 1), 0.5, dtype=config.FLUX_DTYPE)
    hit = total > 0
    table[hit] = jump[hit] / total[hit]
    missed = int(np.count_nonzero(np.tril(~hit, k=-1)[2:, 1:]))
    if missed:
        logger.debug("Flux weight table size %d: %d cells missed by rays", size, missed)
    table.setflags(write=False)
    return table


def interior_weight(u: int, v: int) -> float:
    """Weight of the straight predecessor ``(u - 1, v)`` of interior cell ``(u, v)``."""
    if not 0 < v < u:
        raise ValueError(f"({u}, {v}) is not an interior octant cell")
    return float(flux_weight_table(_table_size_for(u))[u, v])


@lru_cache(maxsize=65_536)
def predecessors(dx: int, dy: int) -> tuple[Predecessor, ...]:
    """The ring ``d - 1`` cells feeding the cell at offset ``(dx, dy)``.

    Returns an empty tuple for the origin, one predecessor with weight 1.0
    for axis and diagonal cells, and two predecessors otherwise. Weights of a
    non-origin cell always sum to 1.0.
    """
    octant, u, v = to_octant(dx, dy)
    if u == 0:
        return ()
    if v == 0:
        return (Predecessor(*from_octant(octant, u - 1, 0), 1.0),)
    if v == u:
        return (Predecessor(*from_octant(octant, u - 1, u - 1), 1.0),)
    w = interior_weight(u, v)
    # Crossed on purpose: the straight neighbour takes the share of rays that
    # stepped up a row to reach (u, v).
    return (
        Predecessor(*from_octant(octant, u - 1, v), w),
        Predecessor(*from_octant(octant, u - 1, v - 1), 1.0 - w),
    )
