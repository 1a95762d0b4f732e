"""Vector helpers, planes and extrusion ranges.

Points and vectors are plain ``numpy`` float arrays of length 3. Planes carry
an orthonormal in-plane frame; the normal is always ``x_dir x y_dir``.
"""

from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Iterable, Sequence

import numpy as np

from brepcut.exceptions import DegenerateGeometryError
from brepcut.geometry.contract import ANGULAR_TOLERANCE, EPS, VERTEX_TOLERANCE

Vector = np.ndarray

X_AXIS = np.array([1.0, 0.0, 0.0])
Y_AXIS = np.array([0.0, 1.0, 0.0])
Z_AXIS = np.array([0.0, 0.0, 1.0])


def as_vector(values: Sequence[float] | Vector) -> Vector:
    """Return a float array of length 3; 2D input gets z = 0."""
    array = np.asarray(values, dtype=float).reshape(-1)
    if array.size == 2:
        array = np.append(array, 0.0)
    if array.size != 3:
        raise ValueError(f"Expected 2 or 3 coordinates, got {array.size}")
    return array


def normalize(vector: Sequence[float] | Vector) -> Vector:
    vec = as_vector(vector)
    length = float(np.linalg.norm(vec))
    if length <= EPS:
        raise DegenerateGeometryError("Cannot normalize a zero-length vector")
    return vec / length


def distance(a: Vector, b: Vector) -> float:
    return float(np.linalg.norm(as_vector(a) - as_vector(b)))


def points_almost_equal(a: Vector, b: Vector, tol: float = VERTEX_TOLERANCE) -> bool:
    return distance(a, b) <= tol


def vectors_parallel_sign(a: Vector, b: Vector, tol: float = ANGULAR_TOLERANCE) -> int:
    """Return 1 if a and b point the same way, -1 if opposite, 0 otherwise.

    Zero-length input is never parallel to anything.
    """
    try:
        ua = normalize(a)
        ub = normalize(b)
    except DegenerateGeometryError:
        return 0
    cross = float(np.linalg.norm(np.cross(ua, ub)))
    if cross > tol:
        return 0
    return 1 if float(np.dot(ua, ub)) > 0.0 else -1


def vectors_are_parallel(a: Vector, b: Vector, tol: float = ANGULAR_TOLERANCE) -> bool:
    """Parallel or anti-parallel."""
    return vectors_parallel_sign(a, b, tol) != 0


def vectors_are_orthogonal(a: Vector, b: Vector, tol: float = ANGULAR_TOLERANCE) -> bool:
    try:
        return abs(float(np.dot(normalize(a), normalize(b)))) <= tol
    except DegenerateGeometryError:
        return False


def any_perpendicular(vector: Vector) -> Vector:
    """Unit vector perpendicular to ``vector``, chosen deterministically."""
    unit = normalize(vector)
    # Same convention as the arbitrary axis algorithm used by DXF/IFC writers
    if abs(unit[0]) < 1.0 / 64.0 and abs(unit[1]) < 1.0 / 64.0:
        helper = Y_AXIS
    else:
        helper = Z_AXIS
    return normalize(np.cross(helper, unit))


def newell_normal(points: Sequence[Vector]) -> Vector:
    """Area-weighted normal of a (possibly non-convex) closed polygon."""
    normal = np.zeros(3)
    count = len(points)
    for idx in range(count):
        current = as_vector(points[idx])
        following = as_vector(points[(idx + 1) % count])
        normal[0] += (current[1] - following[1]) * (current[2] + following[2])
        normal[1] += (current[2] - following[2]) * (current[0] + following[0])
        normal[2] += (current[0] - following[0]) * (current[1] + following[1])
    return normal


@dataclass(frozen=True, eq=False)
class Plane:
    """An origin plus an orthonormal in-plane frame."""

    origin: Vector
    x_dir: Vector
    y_dir: Vector

    @property
    def normal(self) -> Vector:
        return np.cross(self.x_dir, self.y_dir)

    @classmethod
    def from_vectors(
        cls,
        x_vec: Sequence[float] | Vector,
        y_vec: Sequence[float] | Vector,
        origin: Sequence[float] | Vector,
    ) -> "Plane":
        """Build a plane from two in-plane vectors and an origin.

        The Y vector is re-orthogonalised against X so slightly skewed input
        (e.g. scaled host transforms) still yields an orthonormal frame.
        """
        x_dir = normalize(x_vec)
        y_raw = as_vector(y_vec)
        y_perp = y_raw - float(np.dot(y_raw, x_dir)) * x_dir
        if float(np.linalg.norm(y_perp)) <= EPS:
            raise DegenerateGeometryError("Plane axes are parallel")
        return cls(as_vector(origin), x_dir, normalize(y_perp))

    @classmethod
    def from_normal(
        cls,
        normal: Sequence[float] | Vector,
        origin: Sequence[float] | Vector = (0.0, 0.0, 0.0),
        x_hint: Sequence[float] | Vector | None = None,
    ) -> "Plane":
        unit = normalize(normal)
        x_dir = None
        if x_hint is not None:
            hint = as_vector(x_hint)
            projected = hint - float(np.dot(hint, unit)) * unit
            if float(np.linalg.norm(projected)) > EPS:
                x_dir = normalize(projected)
        if x_dir is None:
            x_dir = any_perpendicular(unit)
        y_dir = np.cross(unit, x_dir)
        return cls(as_vector(origin), x_dir, normalize(y_dir))

    @classmethod
    def default(cls) -> "Plane":
        """XY plane through the world origin."""
        return cls(np.zeros(3), X_AXIS.copy(), Y_AXIS.copy())

    def is_orthonormal(self, tol: float = ANGULAR_TOLERANCE) -> bool:
        return (
            abs(float(np.linalg.norm(self.x_dir)) - 1.0) <= tol
            and abs(float(np.linalg.norm(self.y_dir)) - 1.0) <= tol
            and abs(float(np.dot(self.x_dir, self.y_dir))) <= tol
        )

    def project_point(self, point: Vector) -> tuple[float, float]:
        """UV coordinates of the orthogonal projection of ``point``."""
        diff = as_vector(point) - self.origin
        return float(np.dot(diff, self.x_dir)), float(np.dot(diff, self.y_dir))

    def to_local_vector(self, vector: Vector) -> tuple[float, float]:
        vec = as_vector(vector)
        return float(np.dot(vec, self.x_dir)), float(np.dot(vec, self.y_dir))

    def to_world(self, u: float, v: float) -> Vector:
        return self.origin + u * self.x_dir + v * self.y_dir

    def signed_distance(self, point: Vector) -> float:
        return float(np.dot(as_vector(point) - self.origin, self.normal))

    def contains_point(self, point: Vector, tol: float = VERTEX_TOLERANCE) -> bool:
        return abs(self.signed_distance(point)) <= tol

    def translated(self, offset: Vector) -> "Plane":
        return Plane(self.origin + as_vector(offset), self.x_dir, self.y_dir)

    def flipped(self) -> "Plane":
        """Same location with the normal reversed."""
        return Plane(self.origin, self.x_dir, -self.y_dir)

    def __repr__(self) -> str:
        return (
            f"Plane(origin={np.round(self.origin, 6).tolist()}, "
            f"normal={np.round(self.normal, 6).tolist()})"
        )


def must_flip_curve(plane: Plane, x_dir: Vector, y_dir: Vector) -> bool:
    """True if a conic frame (x_dir, y_dir) turns clockwise in ``plane``.

    Arcs and ellipses written relative to ``plane`` must then be reversed.
    """
    x_local = plane.to_local_vector(x_dir)
    y_local = plane.to_local_vector(y_dir)
    dot = y_local[0] * (-x_local[1]) + y_local[1] * x_local[0]
    return dot < -EPS


@dataclass(frozen=True)
class ExtrusionRange:
    """Scalar interval measured along an extrusion direction."""

    start: float
    end: float

    def __post_init__(self) -> None:
        if math.isnan(self.start) or math.isnan(self.end):
            raise ValueError("ExtrusionRange bounds must be numbers")
        if self.start > self.end:
            raise ValueError(f"ExtrusionRange start {self.start} is greater than end {self.end}")

    @property
    def length(self) -> float:
        return self.end - self.start

    @classmethod
    def of_values(cls, values: Iterable[float]) -> "ExtrusionRange":
        collected = [float(v) for v in values]
        if not collected:
            raise ValueError("Cannot build a range from no values")
        return cls(min(collected), max(collected))

    def contains(self, value: float, eps: float = EPS) -> bool:
        return self.start - eps <= value <= self.end + eps

    def overlaps(self, other: "ExtrusionRange") -> bool:
        return self.start < other.end and other.start < self.end


__all__ = [
    "Vector",
    "X_AXIS",
    "Y_AXIS",
    "Z_AXIS",
    "as_vector",
    "normalize",
    "distance",
    "points_almost_equal",
    "vectors_parallel_sign",
    "vectors_are_parallel",
    "vectors_are_orthogonal",
    "any_perpendicular",
    "newell_normal",
    "Plane",
    "must_flip_curve",
    "ExtrusionRange",
]
