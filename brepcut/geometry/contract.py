from __future__ import annotations

"""
Geometry Tolerance Contract

Single source of truth for numeric tolerances used by the cut engine and the
loop builder. All modules should import from here instead of hardcoding.
"""

# Lengths in model units (metres); angles in radians unless noted

# Generic comparison epsilon for scalars and dot products
EPS = 1e-9

# Two points closer than this are the same vertex
VERTEX_TOLERANCE = 0.00016  # m (0.16 mm)

# Imported segments shorter than this are collapsed when a solid is built
SHORT_CURVE_TOLERANCE = 0.0008  # m (0.8 mm)

# Parallel / orthogonal tests compare |sin| or |cos| against this
ANGULAR_TOLERANCE = 1e-6

# Maximum sweep per line segment when tessellating arcs, ellipses and splines
TESSELLATION_ANGLE_DEG = 10.0
SPLINE_SAMPLES_PER_SPAN = 8

# Loops need at least this many distinct vertices
MIN_LOOP_VERTICES = 3


def is_almost_zero(value: float, eps: float = EPS) -> bool:
    return abs(value) <= eps


def is_almost_equal(a: float, b: float, eps: float = EPS) -> bool:
    """Compare scalars with a tolerance relative to their magnitude."""
    scale = max(1.0, abs(a), abs(b))
    return abs(a - b) <= eps * scale
