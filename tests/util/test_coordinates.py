from __future__ import annotations

import numpy as np
import pytest

from fluxfov.util.coordinates import Rect, is_grid_coord, is_valid_grid_pos


def test_around_covers_chebyshev_square() -> None:
    rect = Rect.around((5, 5), 2)
    assert rect == Rect.from_bounds(3, 3, 8, 8)
    assert rect.shape == (5, 5)
    assert rect.contains(3, 7)
    assert not rect.contains(8, 5)


def test_clip_to_grid() -> None:
    rect = Rect.around((0, 1), 3).clip(Rect(0, 0, 4, 4))
    assert rect == Rect.from_bounds(0, 0, 4, 4)


def test_clip_disjoint_is_empty() -> None:
    rect = Rect(0, 0, 2, 2).clip(Rect(5, 5, 2, 2))
    assert rect.width == 0
    assert rect.height == 0
    assert list(rect) == []


def test_local_index_and_slices() -> None:
    rect = Rect(2, 3, 4, 2)
    assert rect.to_local(2, 3) == (0, 0)
    assert rect.to_local(5, 4) == (3, 1)
    assert rect.slices() == (slice(2, 6), slice(3, 5))
    assert len(list(rect)) == 8


def test_is_valid_grid_pos() -> None:
    assert is_valid_grid_pos((0, 0), 3, 2)
    assert is_valid_grid_pos((2, 1), 3, 2)
    assert not is_valid_grid_pos((3, 1), 3, 2)
    assert not is_valid_grid_pos((0, -1), 3, 2)


@pytest.mark.parametrize(
    ("value", "expected"),
    [
        (3, True),
        (np.int64(3), True),
        (np.uint8(3), True),
        (2.5, False),
        (2.0, False),
        (True, False),
        ("2", False),
        (None, False),
    ],
)
def test_is_grid_coord(value: object, expected: bool) -> None:
    assert is_grid_coord(value) is expected
