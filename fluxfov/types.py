from __future__ import annotations

# =============================================================================
# SPATIAL TYPES
# =============================================================================

type GridCoord = int  # Always integer cell position

# Absolute positions on the caller's grid
type GridPos = tuple[GridCoord, GridCoord]  # Example: (5, 3) = cell 5,3 on grid

# Offsets relative to the query origin
type Offset = tuple[int, int]  # Example: (-2, 1) = two west, one south

# Integer transform mapping octant coordinates (u, v) back to grid offsets:
#   dx = u * xu + v * xv
#   dy = u * yu + v * yv
type OctantTransform = tuple[int, int, int, int]  # (xu, xv, yu, yv)

# =============================================================================
# FLUX TYPES
# =============================================================================

# Visibility intensity carried between cells, 0.0 (none) to 1.0 (full).
type Flux = float

# Fraction of incoming flux a cell lets through, 0.0 (opaque) to 1.0 (open).
type Transmittance = float
