"""
Configuration constants.

Centralizes the tuning values used by the flux propagation engine.
Organized by functional area for easy maintenance.
"""

import numpy as np

# =============================================================================
# GENERAL
# =============================================================================

# Storage type for every flux buffer and grid.
FLUX_DTYPE = np.float64

# =============================================================================
# PROPAGATION
# =============================================================================

# A ring whose strongest outflux is below this carries nothing further;
# every later ring reads as zero.
FLUX_EPSILON = 1e-4

# Influx a cell must exceed to count as visible. Values near 1.0 give crisp
# shadow edges, lower values let penumbra cells through.
DEFAULT_THRESHOLD = 0.75

# =============================================================================
# FLUX WEIGHT TABLE
# =============================================================================

# Rays fanned across the first octant when measuring interior weights.
FLUX_RAY_COUNT = 10_000

# Length (in cells) of each ray's Bresenham target. Must stay at least
# sqrt(2) times the largest radius a table is built for.
FLUX_RAY_RADIUS = 10_000

# =============================================================================
# METRICS
# =============================================================================

# Number of recent samples kept for the fov.* timing metrics.
COMPUTE_METRIC_SAMPLES = 256

# =============================================================================
# CONCURRENCY
# =============================================================================

# Cells per task when a ring is spread across an executor. Rings no larger
# than this are settled on the calling thread.
RING_CHUNK_SIZE = 64
