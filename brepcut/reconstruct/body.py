"""Body representation items threaded through the cut pipeline.

Items are immutable. Each clip or opening wraps the running body in a new
boolean node, so earlier handles stay valid.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Iterator, Sequence, Union

import numpy as np
from shapely.geometry import Point, Polygon

from brepcut.exceptions import DegenerateGeometryError
from brepcut.geometry.contract import EPS, VERTEX_TOLERANCE
from brepcut.geometry.curve_loop import CurveLoop
from brepcut.geometry.primitives import Plane, Vector, as_vector, normalize


class BooleanOperator(str, Enum):
    DIFFERENCE = "DIFFERENCE"
    UNION = "UNION"
    INTERSECTION = "INTERSECTION"


class RepresentationType(str, Enum):
    """Shape representation type the writer should declare."""
    SWEPT_SOLID = "SweptSolid"
    CLIPPING = "Clipping"
    CSG = "CSG"


@dataclass(frozen=True, eq=False)
class ExtrudedSolid:
    """Profile loops on ``position`` swept ``depth`` along ``direction``."""

    profile: CurveLoop
    position: Plane
    direction: Vector
    depth: float
    inner_profiles: tuple[CurveLoop, ...] = ()

    def __post_init__(self) -> None:
        if self.depth <= EPS:
            raise DegenerateGeometryError(f"Extrusion depth {self.depth} is not positive")
        object.__setattr__(self, "direction", normalize(self.direction))
        if abs(float(np.dot(self.direction, self.position.normal))) <= EPS:
            raise DegenerateGeometryError("Extrusion direction lies in the profile plane")

    def profile_polygon(self) -> Polygon:
        holes = [[self.position.project_point(p) for p in loop.vertices()] for loop in self.inner_profiles]
        return Polygon([self.position.project_point(p) for p in self.profile.vertices()], holes)

    @property
    def volume(self) -> float:
        height = self.depth * abs(float(np.dot(self.direction, self.position.normal)))
        return float(self.profile_polygon().area) * height

    def contains(self, point: Sequence[float] | Vector, tol: float = VERTEX_TOLERANCE) -> bool:
        pnt = as_vector(point)
        # Parameter along the sweep measured from the profile plane
        t = self.position.signed_distance(pnt) / float(np.dot(self.direction, self.position.normal))
        if t < -tol or t > self.depth + tol:
            return False
        base = pnt - t * self.direction
        u, v = self.position.project_point(base)
        return bool(self.profile_polygon().buffer(tol).covers(Point(u, v)))


@dataclass(frozen=True, eq=False)
class HalfSpace:
    """Half space bounded by ``plane``.

    With ``agreement_flag`` False the half space lies on the side the plane
    normal points to.
    """

    plane: Plane
    agreement_flag: bool = False

    def contains(self, point: Sequence[float] | Vector, tol: float = VERTEX_TOLERANCE) -> bool:
        dist = self.plane.signed_distance(point)
        return dist <= tol if self.agreement_flag else dist >= -tol


@dataclass(frozen=True, eq=False)
class PolygonalBoundedHalfSpace(HalfSpace):
    """Half space limited to a prism through ``boundary`` drawn on ``position``."""

    position: Plane = field(default_factory=Plane.default)
    boundary: tuple[tuple[float, float], ...] = ()

    def __post_init__(self) -> None:
        if len(self.boundary) < 3:
            raise DegenerateGeometryError("Bounded half space needs at least 3 boundary points")

    def contains(self, point: Sequence[float] | Vector, tol: float = VERTEX_TOLERANCE) -> bool:
        if not super().contains(point, tol):
            return False
        u, v = self.position.project_point(point)
        return bool(Polygon(self.boundary).buffer(tol).covers(Point(u, v)))


@dataclass(frozen=True, eq=False)
class BooleanResult:
    operator: BooleanOperator
    first: "Body"
    second: "Body"

    def contains(self, point: Sequence[float] | Vector, tol: float = VERTEX_TOLERANCE) -> bool:
        if self.operator is BooleanOperator.DIFFERENCE:
            # Points on the cut surface stay in the result
            return self.first.contains(point, tol) and not self.second.contains(point, -tol)
        if self.operator is BooleanOperator.UNION:
            return self.first.contains(point, tol) or self.second.contains(point, tol)
        return self.first.contains(point, tol) and self.second.contains(point, tol)


@dataclass(frozen=True, eq=False)
class BooleanClippingResult(BooleanResult):
    """Difference between a swept solid (or clipping) and a half space."""

    def __post_init__(self) -> None:
        if self.operator is not BooleanOperator.DIFFERENCE:
            raise ValueError("Clipping results only support DIFFERENCE")
        if not isinstance(self.second, HalfSpace):
            raise ValueError("Clipping results need a half space as second operand")


Body = Union[ExtrudedSolid, HalfSpace, BooleanResult]


def iter_nodes(body: Body) -> Iterator[Body]:
    """Depth-first walk over a body tree, root first."""
    yield body
    if isinstance(body, BooleanResult):
        yield from iter_nodes(body.first)
        yield from iter_nodes(body.second)


def representation_type(body: Body) -> RepresentationType:
    """Boolean results win over clippings, clippings over plain sweeps."""
    kind = RepresentationType.SWEPT_SOLID
    for node in iter_nodes(body):
        if isinstance(node, BooleanClippingResult):
            kind = RepresentationType.CLIPPING
        elif isinstance(node, BooleanResult):
            return RepresentationType.CSG
    return kind


def subtract(body: Body, tool: Body) -> BooleanResult:
    """Difference node; clipping results are used where the schema allows them."""
    if isinstance(tool, HalfSpace) and isinstance(body, (ExtrudedSolid, BooleanClippingResult)):
        return BooleanClippingResult(BooleanOperator.DIFFERENCE, body, tool)
    return BooleanResult(BooleanOperator.DIFFERENCE, body, tool)


__all__ = [
    "BooleanOperator",
    "RepresentationType",
    "ExtrudedSolid",
    "HalfSpace",
    "PolygonalBoundedHalfSpace",
    "BooleanResult",
    "BooleanClippingResult",
    "Body",
    "iter_nodes",
    "representation_type",
    "subtract",
]
