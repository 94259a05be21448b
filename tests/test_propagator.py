"""Tests for ring-ordered flux propagation."""

from __future__ import annotations

import logging
import random
from concurrent.futures import ThreadPoolExecutor

import numpy as np
import pytest

from fluxfov.errors import FluxFovError, InvalidQuery
from fluxfov.geometry import MAX_TABLE_RADIUS, predecessors
from fluxfov.grid import Grid
from fluxfov.propagator import Propagator, validate_query


def _random_grid(width: int, height: int, seed: int) -> Grid:
    """Mix of open floor, foliage and walls."""
    rng = np.random.default_rng(seed)
    values = rng.choice([1.0, 1.0, 1.0, 0.6, 0.0], size=(width, height))
    return Grid(values)


def _influx(grid: Grid, origin, radius: int, **kwargs) -> np.ndarray:
    return Propagator(grid, **kwargs).run(origin, radius).snapshot().influx


@pytest.mark.parametrize(
    ("origin", "radius"),
    [
        ((-1, 0), 2),
        ((0, -1), 2),
        ((5, 0), 2),
        ((0, 5), 2),
        ((2, 2), -1),
        ((2, 2), 1.5),
        ((2, 2), True),
        ((2.0, 2), 1),
        (("2", 2), 1),
        ((2, 2, 2), 1),
        (None, 1),
        ((2, 2), "3"),
        (2, 1),
    ],
)
def test_invalid_queries_rejected(origin: object, radius: object) -> None:
    with pytest.raises(InvalidQuery):
        Propagator(Grid.open(5, 5)).run(origin, radius)  # type: ignore[arg-type]


@pytest.mark.parametrize(
    "origin",
    [np.array([2, 2]), (np.int64(2), np.int64(2)), [2, 2], iter((2, 2))],
)
def test_integer_iterable_origins_accepted(origin: object) -> None:
    grid = Grid.open(5, 5)
    expected = _influx(grid, (2, 2), 2)

    field = Propagator(grid).run(origin, np.int32(2))  # type: ignore[arg-type]

    assert field.origin == (2, 2)
    assert all(type(c) is int for c in field.origin)
    np.testing.assert_array_equal(field.snapshot().influx, expected)


def test_origin_array_of_wrong_shape_rejected() -> None:
    with pytest.raises(InvalidQuery, match="integers"):
        validate_query(Grid.open(5, 5), np.array([[1, 2], [3, 4]]), 1)
    with pytest.raises(InvalidQuery, match="pair"):
        validate_query(Grid.open(5, 5), np.array([1, 2, 3]), 1)


def test_reach_past_table_limit_rejected_before_propagation() -> None:
    corridor = Grid.open(8000, 3)

    with pytest.raises(InvalidQuery, match="reach ring 7999") as exc_info:
        Propagator(corridor).run((0, 1), 8000)

    assert isinstance(exc_info.value, FluxFovError)


def test_reach_limit_counts_only_rings_inside_grid() -> None:
    # The radius is far past the limit, but the grid edge stops the walk at
    # exactly MAX_TABLE_RADIUS.
    edge = Grid.open(MAX_TABLE_RADIUS + 1, 1)
    assert validate_query(edge, (0, 0), 10**6) == (0, 0)

    # One column more and the walk would need an unsupported ring.
    past_edge = Grid.open(MAX_TABLE_RADIUS + 2, 1)
    with pytest.raises(InvalidQuery):
        validate_query(past_edge, (0, 0), 10**6)
    # A radius cut short of the limit is fine on the same grid.
    assert validate_query(past_edge, (0, 0), MAX_TABLE_RADIUS) == (0, 0)
    # Centered, neither side reaches the limit.
    assert validate_query(past_edge, (MAX_TABLE_RADIUS // 2, 0), 10**6)


def test_origin_is_fully_lit_even_when_opaque() -> None:
    values = np.ones((5, 5))
    values[2, 2] = 0.0
    field = Propagator(Grid(values)).run((2, 2), 2)

    assert field.influx_of((2, 2)) == 1.0
    assert field.outflux_of((2, 2)) == 0.0
    # Nothing leaves the origin, so propagation stops after ring 0.
    assert field.rings_settled == 1
    assert not field.is_settled((3, 2))


def test_open_grid_passes_full_flux() -> None:
    influx = _influx(Grid.open(9, 9), (4, 4), 4)
    np.testing.assert_allclose(influx, 1.0)


def test_partial_cover_attenuates_along_axis() -> None:
    grid = Grid(np.full((7, 3), 0.5))
    field = Propagator(grid).run((0, 1), 6)

    # Origin passes on 0.5, and every further foliage cell halves it again.
    for k in range(1, 5):
        assert field.influx_of((k, 1)) == pytest.approx(0.5**k)


def test_opaque_cell_receives_flux_but_passes_none() -> None:
    values = np.ones((5, 5))
    values[3, 2] = 0.0
    field = Propagator(Grid(values)).run((2, 2), 2)

    assert field.influx_of((3, 2)) == pytest.approx(1.0)
    assert field.outflux_of((3, 2)) == 0.0
    assert field.influx_of((4, 2)) == 0.0


def test_flux_stays_in_unit_range() -> None:
    influx = _influx(_random_grid(30, 30, seed=7), (15, 15), 14, epsilon=0.0)
    assert influx.min() >= 0.0
    assert influx.max() <= 1.0


def test_influx_never_increases_outward() -> None:
    grid = _random_grid(25, 25, seed=3)
    origin = (12, 12)
    field = Propagator(grid, epsilon=0.0).run(origin, 12)
    ox, oy = origin

    for x, y in field.window:
        preds = predecessors(x - ox, y - oy)
        if not preds:
            continue
        strongest_pred = max(field.influx_of((ox + p.dx, oy + p.dy)) for p in preds)
        assert field.influx_of((x, y)) <= strongest_pred + 1e-12


def test_full_occlusion_blocks_everything_behind() -> None:
    values = np.ones((9, 9))
    values[3:6, 3:6] = 0.0
    values[4, 4] = 1.0
    field = Propagator(Grid(values), epsilon=0.0).run((4, 4), 4)

    for x, y in field.window:
        if max(abs(x - 4), abs(y - 4)) >= 2:
            assert field.influx_of((x, y)) == 0.0


def test_early_exit_leaves_outer_rings_dark(caplog: pytest.LogCaptureFixture) -> None:
    values = np.ones((9, 9))
    values[3:6, 3:6] = 0.0
    values[4, 4] = 1.0
    caplog.set_level(logging.DEBUG, logger="fluxfov.propagator")

    field = Propagator(Grid(values)).run((4, 4), 4)

    assert field.rings_settled == 2
    assert not field.is_settled((8, 8))
    assert field.snapshot().influx[0, 0] == 0.0
    assert "Flux died out after ring 1" in caplog.text


def test_within_ring_order_does_not_matter() -> None:
    grid = _random_grid(31, 31, seed=11)
    origin = (15, 15)
    shuffler = random.Random(1234)

    def shuffled(cells: list[tuple[int, int]]) -> list[tuple[int, int]]:
        cells = list(cells)
        shuffler.shuffle(cells)
        return cells

    baseline = _influx(grid, origin, 15)
    np.testing.assert_array_equal(
        baseline, _influx(grid, origin, 15, ring_order=reversed)
    )
    np.testing.assert_array_equal(
        baseline, _influx(grid, origin, 15, ring_order=shuffled)
    )


def test_parallel_rings_match_serial() -> None:
    grid = _random_grid(41, 41, seed=5)
    origin = (20, 18)
    serial = _influx(grid, origin, 20)

    with ThreadPoolExecutor(max_workers=4) as executor:
        parallel = _influx(grid, origin, 20, executor=executor, chunk_size=8)

    np.testing.assert_array_equal(serial, parallel)


def test_circular_limit_darkens_square_corners() -> None:
    field = Propagator(Grid.open(9, 9)).run((4, 4), 3, circular=True)

    assert field.influx_of((7, 4)) == pytest.approx(1.0)
    assert field.influx_of((6, 6)) == pytest.approx(1.0)
    assert field.influx_of((7, 7)) == 0.0
    assert field.influx_of((7, 6)) == 0.0


def test_huge_radius_only_walks_rings_inside_grid() -> None:
    field = Propagator(Grid.open(5, 5)).run((0, 0), 10)
    assert field.rings_settled == 5


@pytest.mark.parametrize("kwargs", [{"epsilon": -0.1}, {"chunk_size": 0}])
def test_invalid_propagator_settings(kwargs: dict) -> None:
    with pytest.raises(ValueError):
        Propagator(Grid.open(3, 3), **kwargs)
