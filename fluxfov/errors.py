"""Exceptions raised by the flux FOV engine.

Every error derives from :class:`FluxFovError` and from the builtin exception
that matches its meaning, so callers may catch either family.
"""

from __future__ import annotations

from fluxfov.types import GridPos
from fluxfov.util.coordinates import Rect


class FluxFovError(Exception):
    """Base class for all flux FOV errors."""


class OutOfBounds(FluxFovError, IndexError):
    """A cell coordinate lies outside the grid or the query window."""

    def __init__(self, pos: GridPos, extent: Rect) -> None:
        self.pos = pos
        self.extent = extent
        super().__init__(f"Cell {pos} is outside {extent!r}")


class InvalidQuery(FluxFovError, ValueError):
    """The origin is out of bounds or the radius is not a non-negative int."""


class InvalidThreshold(FluxFovError, ValueError):
    """The visibility threshold is not a number in [0, 1]."""


class AlreadySettled(FluxFovError, RuntimeError):
    """A cell's influx was written twice during one query."""


class NotSettled(FluxFovError, RuntimeError):
    """A cell's flux was read before its influx was finalized."""
