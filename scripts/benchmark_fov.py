#!/usr/bin/env python3
"""Benchmark comparing flux FOV against tcod's symmetric shadowcasting.

Runs both implementations on identical inputs, prints a timing table and an
agreement report between the flux visibility mask and tcod's boolean FOV.

Usage:
    uv run python scripts/benchmark_fov.py
"""

# ruff: noqa: E402  # Allow path setup before importing project modules

from __future__ import annotations

import sys
import timeit
from concurrent.futures import ThreadPoolExecutor
from pathlib import Path

import numpy as np
import tcod.constants
import tcod.map

# Add the project root to Python path so running as a script works.
project_root = Path(__file__).resolve().parent.parent
if str(project_root) not in sys.path:
    sys.path.insert(0, str(project_root))

from fluxfov.grid import Grid
from fluxfov.query import compute
from fluxfov.util.live_vars import live_variable_registry


def _make_open_field(width: int, height: int) -> np.ndarray:
    """All-transparent map (worst case - maximum visible tiles)."""
    return np.ones((width, height), dtype=np.bool_)


def _make_dungeon(
    width: int, height: int, wall_fraction: float, seed: int
) -> np.ndarray:
    """Randomly scatter walls to simulate a dungeon layout."""
    rng = np.random.default_rng(seed)
    return (rng.random((width, height)) > wall_fraction).astype(np.bool_)


def _benchmark_flux(
    grid: Grid,
    origin: tuple[int, int],
    radius: int,
    executor: ThreadPoolExecutor | None = None,
) -> float:
    """Time one flux query and return average ms per call."""
    # Warm up (also builds the weight table).
    compute(grid, origin, radius, executor=executor)

    timer = timeit.Timer(lambda: compute(grid, origin, radius, executor=executor))
    number, total = timer.autorange()
    return (total / number) * 1000  # ms


def _tcod_fov(
    transparent: np.ndarray, origin: tuple[int, int], radius: int
) -> np.ndarray:
    return tcod.map.compute_fov(
        transparent,
        origin,
        radius=radius,
        light_walls=True,
        algorithm=tcod.constants.FOV_SYMMETRIC_SHADOWCAST,
    )


def _benchmark_tcod(
    transparent: np.ndarray, origin: tuple[int, int], radius: int
) -> float:
    """Time tcod's C implementation and return average ms per call."""
    _tcod_fov(transparent, origin, radius)
    timer = timeit.Timer(lambda: _tcod_fov(transparent, origin, radius))
    number, total = timer.autorange()
    return (total / number) * 1000  # ms


def main() -> None:
    scenarios: list[tuple[str, np.ndarray, tuple[int, int], int]] = [
        ("Open field", _make_open_field(120, 80), (60, 40), 30),
        ("Dungeon (~20% walls)", _make_dungeon(120, 80, 0.20, seed=42), (60, 40), 30),
        ("Small radius", _make_open_field(120, 80), (60, 40), 10),
    ]

    print("FOV Benchmark: flux (Python) vs tcod symmetric shadowcasting (C)")
    print("=" * 72)
    print(
        f"{'Scenario':<24} {'tcod (C)':>10} {'flux':>11} "
        f"{'flux x4':>11} {'ratio':>8}"
    )
    print("-" * 72)

    with ThreadPoolExecutor(max_workers=4) as executor:
        for name, transparent, origin, radius in scenarios:
            grid = Grid.from_transparent(transparent)
            tcod_ms = _benchmark_tcod(transparent, origin, radius)
            flux_ms = _benchmark_flux(grid, origin, radius)
            pooled_ms = _benchmark_flux(grid, origin, radius, executor)
            ratio = flux_ms / tcod_ms if tcod_ms > 0 else float("inf")
            print(
                f"{name:<24} {tcod_ms:>9.3f}ms {flux_ms:>9.3f}ms "
                f"{pooled_ms:>9.3f}ms {ratio:>7.1f}x"
            )

    print("-" * 72)
    var = live_variable_registry.get_variable("fov.compute_ms")
    if var is not None:
        print(f"fov.compute_ms over all runs: {var.get_value()}")
    print()

    # Agreement check: the flux mask is a soft approximation, so it is not
    # expected to match shadowcasting exactly.
    print("Agreement check...")
    transparent = _make_dungeon(120, 80, 0.20, seed=123)
    origin = (60, 40)
    radius = 30

    theirs = _tcod_fov(transparent, origin, radius)
    for threshold in (0.25, 0.5, 0.75):
        ours = compute(
            Grid.from_transparent(transparent),
            origin,
            radius,
            threshold,
            circular=True,
        ).visible_mask()
        match_count = int(np.sum(ours == theirs))
        total_tiles = ours.size
        extra = int(np.sum(ours & ~theirs))
        missing = int(np.sum(theirs & ~ours))
        print(
            f"  threshold={threshold:.2f}: "
            f"{match_count / total_tiles * 100:.2f}% agreement, "
            f"{extra} extra, {missing} missing"
        )


if __name__ == "__main__":
    main()
