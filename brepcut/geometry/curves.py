"""Bounded curve segments used in face boundaries and profile loops.

Every segment kind is an immutable dataclass tagged with a ``CurveKind`` so
callers can dispatch on ``curve.kind`` instead of inspecting types.
"""

from __future__ import annotations

import math
from dataclasses import dataclass
from enum import Enum
from typing import ClassVar, Sequence, Union

import numpy as np

from brepcut.exceptions import DegenerateGeometryError
from brepcut.geometry.contract import (
    EPS,
    SPLINE_SAMPLES_PER_SPAN,
    TESSELLATION_ANGLE_DEG,
    VERTEX_TOLERANCE,
)
from brepcut.geometry.primitives import Vector, as_vector, distance, normalize


class CurveKind(str, Enum):
    """Curve segment kinds understood by the cut engine."""
    LINE = "line"
    ARC = "arc"
    ELLIPSE = "ellipse"
    SPLINE = "spline"


def _segment_count(sweep: float, max_angle_deg: float) -> int:
    return max(1, int(math.ceil(abs(sweep) / math.radians(max_angle_deg) - 1e-9)))


@dataclass(frozen=True, eq=False)
class Line:
    start: Vector
    end: Vector

    kind: ClassVar[CurveKind] = CurveKind.LINE

    @classmethod
    def create(cls, start: Sequence[float] | Vector, end: Sequence[float] | Vector) -> "Line":
        p0, p1 = as_vector(start), as_vector(end)
        if distance(p0, p1) <= VERTEX_TOLERANCE:
            raise DegenerateGeometryError("Line endpoints coincide")
        return cls(p0, p1)

    @property
    def length(self) -> float:
        return distance(self.start, self.end)

    @property
    def direction(self) -> Vector:
        return normalize(self.end - self.start)

    def reversed(self) -> "Line":
        return Line(self.end, self.start)

    def translated(self, offset: Vector) -> "Line":
        off = as_vector(offset)
        return Line(self.start + off, self.end + off)

    def tessellate(self, max_angle_deg: float = TESSELLATION_ANGLE_DEG) -> list[Vector]:
        return [self.start, self.end]


@dataclass(frozen=True, eq=False)
class Arc:
    """Circular arc swept counterclockwise about ``x_dir x y_dir``."""

    center: Vector
    radius: float
    x_dir: Vector
    y_dir: Vector
    start_angle: float
    end_angle: float

    kind: ClassVar[CurveKind] = CurveKind.ARC

    @classmethod
    def from_center(
        cls,
        center: Sequence[float] | Vector,
        normal: Sequence[float] | Vector,
        start: Sequence[float] | Vector,
        end: Sequence[float] | Vector,
    ) -> "Arc":
        """Arc from ``start`` to ``end`` turning counterclockwise about ``normal``.

        Coincident endpoints give a full circle.
        """
        c = as_vector(center)
        p0, p1 = as_vector(start), as_vector(end)
        radius = distance(c, p0)
        if radius <= VERTEX_TOLERANCE:
            raise DegenerateGeometryError("Arc radius is zero")
        x_dir = normalize(p0 - c)
        y_dir = normalize(np.cross(normalize(normal), x_dir))
        rel = p1 - c
        sweep = math.atan2(float(np.dot(rel, y_dir)), float(np.dot(rel, x_dir)))
        if sweep <= EPS:
            sweep += 2.0 * math.pi
        return cls(c, radius, x_dir, y_dir, 0.0, sweep)

    @property
    def normal(self) -> Vector:
        return np.cross(self.x_dir, self.y_dir)

    @property
    def sweep(self) -> float:
        return self.end_angle - self.start_angle

    def point_at_angle(self, angle: float) -> Vector:
        return self.center + self.radius * (math.cos(angle) * self.x_dir + math.sin(angle) * self.y_dir)

    @property
    def start(self) -> Vector:
        return self.point_at_angle(self.start_angle)

    @property
    def end(self) -> Vector:
        return self.point_at_angle(self.end_angle)

    @property
    def length(self) -> float:
        return self.radius * self.sweep

    @property
    def is_closed(self) -> bool:
        return self.sweep >= 2.0 * math.pi - EPS

    def reversed(self) -> "Arc":
        # Mirroring the frame about x_dir turns angle t into -t
        return Arc(self.center, self.radius, self.x_dir, -self.y_dir, -self.end_angle, -self.start_angle)

    def translated(self, offset: Vector) -> "Arc":
        return Arc(
            self.center + as_vector(offset),
            self.radius,
            self.x_dir,
            self.y_dir,
            self.start_angle,
            self.end_angle,
        )

    def tessellate(self, max_angle_deg: float = TESSELLATION_ANGLE_DEG) -> list[Vector]:
        count = _segment_count(self.sweep, max_angle_deg)
        angles = np.linspace(self.start_angle, self.end_angle, count + 1)
        return [self.point_at_angle(float(a)) for a in angles]


@dataclass(frozen=True, eq=False)
class Ellipse:
    """Elliptical arc; ``radius_x`` lies along ``x_dir``."""

    center: Vector
    radius_x: float
    radius_y: float
    x_dir: Vector
    y_dir: Vector
    start_angle: float
    end_angle: float

    kind: ClassVar[CurveKind] = CurveKind.ELLIPSE

    @property
    def normal(self) -> Vector:
        return np.cross(self.x_dir, self.y_dir)

    @property
    def sweep(self) -> float:
        return self.end_angle - self.start_angle

    def point_at_angle(self, angle: float) -> Vector:
        return self.center + self.radius_x * math.cos(angle) * self.x_dir + self.radius_y * math.sin(angle) * self.y_dir

    @property
    def start(self) -> Vector:
        return self.point_at_angle(self.start_angle)

    @property
    def end(self) -> Vector:
        return self.point_at_angle(self.end_angle)

    @property
    def length(self) -> float:
        points = self.tessellate(max_angle_deg=1.0)
        return float(sum(distance(a, b) for a, b in zip(points, points[1:])))

    def reversed(self) -> "Ellipse":
        return Ellipse(
            self.center,
            self.radius_x,
            self.radius_y,
            self.x_dir,
            -self.y_dir,
            -self.end_angle,
            -self.start_angle,
        )

    def translated(self, offset: Vector) -> "Ellipse":
        return Ellipse(
            self.center + as_vector(offset),
            self.radius_x,
            self.radius_y,
            self.x_dir,
            self.y_dir,
            self.start_angle,
            self.end_angle,
        )

    def tessellate(self, max_angle_deg: float = TESSELLATION_ANGLE_DEG) -> list[Vector]:
        count = _segment_count(self.sweep, max_angle_deg)
        angles = np.linspace(self.start_angle, self.end_angle, count + 1)
        return [self.point_at_angle(float(a)) for a in angles]


@dataclass(frozen=True, eq=False)
class Spline:
    """Rational B-spline (NURBS) segment with a clamped knot vector."""

    control_points: tuple[Vector, ...]
    weights: tuple[float, ...]
    knots: tuple[float, ...]
    degree: int

    kind: ClassVar[CurveKind] = CurveKind.SPLINE

    def __post_init__(self) -> None:
        count = len(self.control_points)
        if self.degree < 1 or count < self.degree + 1:
            raise DegenerateGeometryError(f"Spline of degree {self.degree} needs more than {count} control points")
        if len(self.weights) != count:
            raise DegenerateGeometryError("Spline weights do not match control points")
        if len(self.knots) != count + self.degree + 1:
            raise DegenerateGeometryError("Spline knot vector has the wrong length")
        if any(b < a for a, b in zip(self.knots, self.knots[1:])):
            raise DegenerateGeometryError("Spline knots must be non-decreasing")

    @classmethod
    def create(
        cls,
        control_points: Sequence[Sequence[float]],
        *,
        degree: int = 3,
        weights: Sequence[float] | None = None,
        knots: Sequence[float] | None = None,
    ) -> "Spline":
        """Build a spline; omitted knots give a clamped uniform vector."""
        points = tuple(as_vector(p) for p in control_points)
        count = len(points)
        if weights is None:
            weights = [1.0] * count
        if knots is None:
            inner = count - degree - 1
            knots = [0.0] * (degree + 1) + [float(i) / (inner + 1) for i in range(1, inner + 1)] + [1.0] * (degree + 1)
        return cls(points, tuple(float(w) for w in weights), tuple(float(k) for k in knots), int(degree))

    @property
    def domain(self) -> tuple[float, float]:
        return self.knots[self.degree], self.knots[len(self.control_points)]

    def _span(self, u: float) -> int:
        last = len(self.control_points) - 1
        if u >= self.knots[last + 1]:
            # Clamp to the last non-empty span
            span = last
            while span > self.degree and self.knots[span] >= self.knots[span + 1]:
                span -= 1
            return span
        for idx in range(self.degree, last + 1):
            if self.knots[idx] <= u < self.knots[idx + 1]:
                return idx
        return self.degree

    def point_at(self, u: float) -> Vector:
        """Evaluate with de Boor's algorithm in homogeneous coordinates."""
        p = self.degree
        k = self._span(u)
        t = self.knots
        d = [
            np.append(self.control_points[j + k - p] * self.weights[j + k - p], self.weights[j + k - p])
            for j in range(p + 1)
        ]
        for r in range(1, p + 1):
            for j in range(p, r - 1, -1):
                denom = t[j + 1 + k - r] - t[j + k - p]
                alpha = 0.0 if abs(denom) <= EPS else (u - t[j + k - p]) / denom
                d[j] = (1.0 - alpha) * d[j - 1] + alpha * d[j]
        return d[p][:3] / d[p][3]

    @property
    def start(self) -> Vector:
        return self.point_at(self.domain[0])

    @property
    def end(self) -> Vector:
        return self.point_at(self.domain[1])

    @property
    def length(self) -> float:
        points = self.tessellate()
        return float(sum(distance(a, b) for a, b in zip(points, points[1:])))

    def reversed(self) -> "Spline":
        lo, hi = self.knots[0], self.knots[-1]
        return Spline(
            tuple(reversed(self.control_points)),
            tuple(reversed(self.weights)),
            tuple(lo + hi - k for k in reversed(self.knots)),
            self.degree,
        )

    def translated(self, offset: Vector) -> "Spline":
        off = as_vector(offset)
        return Spline(tuple(p + off for p in self.control_points), self.weights, self.knots, self.degree)

    def tessellate(self, max_angle_deg: float = TESSELLATION_ANGLE_DEG) -> list[Vector]:
        lo, hi = self.domain
        breaks = sorted({k for k in self.knots if lo <= k <= hi})
        params: list[float] = []
        for a, b in zip(breaks, breaks[1:]):
            params.extend(float(v) for v in np.linspace(a, b, SPLINE_SAMPLES_PER_SPAN, endpoint=False))
        params.append(hi)
        return [self.point_at(u) for u in params]


Curve = Union[Line, Arc, Ellipse, Spline]


__all__ = [
    "CurveKind",
    "Line",
    "Arc",
    "Ellipse",
    "Spline",
    "Curve",
]
