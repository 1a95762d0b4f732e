"""Ordered, continuity-checked curve loops plus chaining helpers."""

from __future__ import annotations

import logging
from typing import Iterable, Iterator, Sequence

import numpy as np
from shapely.geometry import LinearRing, Polygon

from brepcut.exceptions import DegenerateGeometryError, DiscontinuousLoopError
from brepcut.geometry.contract import EPS, TESSELLATION_ANGLE_DEG, VERTEX_TOLERANCE
from brepcut.geometry.curves import Curve, Line
from brepcut.geometry.primitives import (
    ExtrusionRange,
    Plane,
    Vector,
    as_vector,
    newell_normal,
    points_almost_equal,
)

logger = logging.getLogger(__name__)


class CurveLoop:
    """Ordered curve segments where each end meets the next start.

    The loop may be open while it is being built. ``plane`` is computed on
    demand and cached until the loop is modified.
    """

    def __init__(self, curves: Iterable[Curve] | None = None, *, tolerance: float = VERTEX_TOLERANCE) -> None:
        self.tolerance = tolerance
        self._curves: list[Curve] = []
        self._plane: Plane | None = None
        self._plane_computed = False
        for curve in curves or ():
            self.append(curve)

    def __iter__(self) -> Iterator[Curve]:
        return iter(self._curves)

    def __len__(self) -> int:
        return len(self._curves)

    def __getitem__(self, index: int) -> Curve:
        return self._curves[index]

    def __repr__(self) -> str:
        return f"CurveLoop(curves={len(self._curves)}, open={self.is_open})"

    @property
    def curves(self) -> tuple[Curve, ...]:
        return tuple(self._curves)

    @property
    def is_empty(self) -> bool:
        return not self._curves

    @property
    def is_open(self) -> bool:
        if not self._curves:
            return True
        return not points_almost_equal(self._curves[-1].end, self._curves[0].start, self.tolerance)

    def _invalidate(self) -> None:
        self._plane = None
        self._plane_computed = False

    def append(self, curve: Curve) -> None:
        """Append ``curve``; its start must meet the current end.

        Raises:
            DiscontinuousLoopError: If the curve does not continue the loop.
        """
        if self._curves and not points_almost_equal(self._curves[-1].end, curve.start, self.tolerance):
            raise DiscontinuousLoopError(
                "Curve does not start where the loop ends",
                {"loop_end": str(np.round(self._curves[-1].end, 6).tolist()),
                 "curve_start": str(np.round(curve.start, 6).tolist())},
            )
        self._curves.append(curve)
        self._invalidate()

    def vertices(self, max_angle_deg: float = TESSELLATION_ANGLE_DEG) -> list[Vector]:
        """Tessellated points along the loop without the closing repeat."""
        points: list[Vector] = []
        for curve in self._curves:
            for point in curve.tessellate(max_angle_deg):
                if points and points_almost_equal(points[-1], point, self.tolerance):
                    continue
                points.append(point)
        if len(points) > 1 and points_almost_equal(points[0], points[-1], self.tolerance):
            points.pop()
        return points

    @property
    def plane(self) -> Plane | None:
        """Plane of a closed planar loop, normal following the loop's winding."""
        if not self._plane_computed:
            self._plane = self._compute_plane()
            self._plane_computed = True
        return self._plane

    @property
    def has_plane(self) -> bool:
        return self.plane is not None

    def _compute_plane(self) -> Plane | None:
        if self.is_open:
            return None
        points = self.vertices()
        if len(points) < 3:
            return None
        normal = newell_normal(points)
        if float(np.linalg.norm(normal)) <= EPS:
            return None
        plane = Plane.from_normal(normal, points[0], x_hint=points[1] - points[0])
        if not all(plane.contains_point(p, self.tolerance) for p in points):
            logger.debug("Loop with %d vertices is not planar", len(points))
            return None
        return plane

    def _projected_ring(self, normal: Vector) -> list[tuple[float, float]]:
        points = self.vertices()
        if len(points) < 3:
            raise DegenerateGeometryError("Loop has fewer than 3 distinct vertices")
        frame = Plane.from_normal(normal, points[0])
        return [frame.project_point(p) for p in points]

    def is_counterclockwise(self, normal: Sequence[float] | Vector) -> bool:
        """Winding relative to ``normal`` (right-hand rule)."""
        ring = LinearRing(self._projected_ring(as_vector(normal)))
        return bool(ring.is_ccw)

    def polygon(self, plane: Plane | None = None) -> Polygon:
        """Shapely polygon of the loop in the UV frame of ``plane``."""
        frame = plane or self.plane
        if frame is None:
            raise DegenerateGeometryError("Loop has no plane to project onto")
        return Polygon([frame.project_point(p) for p in self.vertices()])

    def centroid(self) -> Vector:
        """Area centroid of a planar loop in world coordinates."""
        frame = self.plane
        if frame is None:
            raise DegenerateGeometryError("Loop has no plane")
        center = self.polygon(frame).centroid
        return frame.to_world(center.x, center.y)

    @property
    def length(self) -> float:
        return float(sum(curve.length for curve in self._curves))

    def flip(self) -> None:
        """Reverse the loop in place."""
        self._curves = [curve.reversed() for curve in reversed(self._curves)]
        self._invalidate()

    def reversed(self) -> "CurveLoop":
        return CurveLoop((curve.reversed() for curve in reversed(self._curves)), tolerance=self.tolerance)

    def translated(self, offset: Sequence[float] | Vector) -> "CurveLoop":
        off = as_vector(offset)
        return CurveLoop((curve.translated(off) for curve in self._curves), tolerance=self.tolerance)

    def extrusion_range(self, direction: Sequence[float] | Vector) -> ExtrusionRange:
        """Span of the loop measured along ``direction``."""
        if not self._curves:
            raise DegenerateGeometryError("Empty loop has no extent")
        dir_vec = as_vector(direction)
        return ExtrusionRange.of_values(float(np.dot(p, dir_vec)) for p in self.vertices(max_angle_deg=1.0))


def sort_curves(curves: Sequence[Curve], tolerance: float = VERTEX_TOLERANCE) -> list[Curve]:
    """Chain curves end to start, starting from the first one.

    Curves that only connect backwards are reversed.

    Raises:
        DiscontinuousLoopError: If some curve cannot be chained.
    """
    if not curves:
        return []
    remaining = list(curves[1:])
    ordered = [curves[0]]
    while remaining:
        tail = ordered[-1].end
        for idx, curve in enumerate(remaining):
            if points_almost_equal(tail, curve.start, tolerance):
                ordered.append(remaining.pop(idx))
                break
            if points_almost_equal(tail, curve.end, tolerance):
                ordered.append(remaining.pop(idx).reversed())
                break
        else:
            raise DiscontinuousLoopError(
                "Failed to sort curves",
                {"sorted": str(len(ordered)), "total": str(len(curves))},
            )
    return ordered


def sew_curves(curves: Sequence[Curve], tolerance: float = VERTEX_TOLERANCE) -> tuple[list[Curve], Line | None]:
    """Chain open fragments and close the remaining gap with a line.

    Fragments are attached at either end of the growing chain. Returns the
    chained curves (closing line included) and the closing line, or None when
    the chain was already closed.

    Raises:
        DiscontinuousLoopError: If fewer than two fragments are given or a
            fragment touches neither end of the chain.
    """
    if len(curves) < 2:
        raise DiscontinuousLoopError("Need at least two fragments to sew", {"count": str(len(curves))})
    remaining = list(curves[1:])
    chain = [curves[0]]
    while remaining:
        head, tail = chain[0].start, chain[-1].end
        for idx, curve in enumerate(remaining):
            if points_almost_equal(tail, curve.start, tolerance):
                chain.append(remaining.pop(idx))
                break
            if points_almost_equal(head, curve.end, tolerance):
                chain.insert(0, remaining.pop(idx))
                break
        else:
            raise DiscontinuousLoopError("Can't process edges", {"unmatched": str(len(remaining))})
    head, tail = chain[0].start, chain[-1].end
    if points_almost_equal(head, tail, tolerance):
        return chain, None
    closing = Line.create(tail, head)
    chain.append(closing)
    return chain, closing


__all__ = ["CurveLoop", "sort_curves", "sew_curves"]
