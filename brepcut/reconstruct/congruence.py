"""Congruence of matching profile curves across a side face.

A side face joining two opening profiles contributes one curve from each
profile. Both curves are taken in the direction the side face runs along
them, so the start of one faces the end of the other. Every predicate here
is symmetric in its two curves.
"""

from __future__ import annotations

from typing import Callable, Hashable

from brepcut.geometry.contract import ANGULAR_TOLERANCE, VERTEX_TOLERANCE
from brepcut.geometry.curves import Arc, Curve, CurveKind, Ellipse, Line, Spline
from brepcut.geometry.primitives import Vector, distance, vectors_are_orthogonal
from brepcut.reconstruct.outcome import ReasonCode, topology_error
from brepcut.topology.model import Surface, SurfaceKind

PairCheck = Callable[[Curve, Curve, Surface, float, Vector, float], bool]


def _close(a: float, b: float, tol: float) -> bool:
    return abs(a - b) <= tol


def endpoints_offset(c1: Curve, c2: Curve, offset: float, tol: float = VERTEX_TOLERANCE) -> bool:
    """Opposite endpoints are ``offset`` apart."""
    return _close(distance(c1.start, c2.end), offset, tol) and _close(distance(c1.end, c2.start), offset, tol)


def _lines(c1: Line, c2: Line, side: Surface, offset: float, direction: Vector, tol: float) -> bool:
    return side.kind is SurfaceKind.PLANAR


def _arcs(c1: Arc, c2: Arc, side: Surface, offset: float, direction: Vector, tol: float) -> bool:
    if side.kind is not SurfaceKind.CYLINDRICAL or side.axis is None:
        return False
    if not _close(c1.radius, c2.radius, tol):
        return False
    if not _close(distance(c1.center, c2.center), offset, tol):
        return False
    return vectors_are_orthogonal(side.axis, direction, ANGULAR_TOLERANCE)


def _ellipses(c1: Ellipse, c2: Ellipse, side: Surface, offset: float, direction: Vector, tol: float) -> bool:
    if side.kind is not SurfaceKind.RULED or not side.rulings_parallel:
        return False
    return (
        _close(distance(c1.center, c2.center), offset, tol)
        and _close(c1.radius_x, c2.radius_x, tol)
        and _close(c1.radius_y, c2.radius_y, tol)
    )


def _splines(c1: Spline, c2: Spline, side: Surface, offset: float, direction: Vector, tol: float) -> bool:
    if side.kind is not SurfaceKind.RULED or not side.rulings_parallel:
        return False
    if c1.degree != c2.degree or len(c1.control_points) != len(c2.control_points):
        return False
    # c2 runs the other way, so compare against its reverse
    mirrored = c2.reversed()
    if any(
        not _close(distance(p1, p2), offset, tol)
        for p1, p2 in zip(c1.control_points, mirrored.control_points)
    ):
        return False
    if any(not _close(w1, w2, tol) for w1, w2 in zip(c1.weights, mirrored.weights)):
        return False
    if len(c1.knots) != len(mirrored.knots):
        return False
    return all(_close(k1, k2, tol) for k1, k2 in zip(c1.knots, mirrored.knots))


PAIR_CHECKS: dict[CurveKind, PairCheck] = {
    CurveKind.LINE: _lines,
    CurveKind.ARC: _arcs,
    CurveKind.ELLIPSE: _ellipses,
    CurveKind.SPLINE: _splines,
}


def curves_are_congruent(
    c1: Curve,
    c2: Curve,
    side: Surface,
    offset: float,
    direction: Vector,
    tol: float = VERTEX_TOLERANCE,
) -> bool:
    """Whether two profile curves bound a straight extrusion of ``offset``.

    Args:
        c1: Curve on the first profile.
        c2: Matching curve on the second profile.
        side: Surface of the side face joining them.
        offset: Distance between the profile planes.
        direction: Base extrusion direction.
        tol: Length tolerance.
    """
    if c1.kind is not c2.kind:
        return False
    if not endpoints_offset(c1, c2, offset, tol):
        return False
    if not _close(c1.length, c2.length, tol):
        return False
    return PAIR_CHECKS[c1.kind](c1, c2, side, offset, direction, tol)


def check_side_pair(
    c1: Curve,
    c2: Curve,
    side: Surface,
    offset: float,
    direction: Vector,
    element_id: Hashable | None = None,
    face_id: int | None = None,
    tol: float = VERTEX_TOLERANCE,
) -> None:
    """Raise ``CURVE_MISMATCH`` unless the pair is congruent."""
    if not curves_are_congruent(c1, c2, side, offset, direction, tol):
        raise topology_error(
            ReasonCode.CURVE_MISMATCH,
            f"Can't match {c1.kind.value} with {c2.kind.value} across side face",
            element_id,
            face_id=face_id,
            side=side.kind.value,
        )


__all__ = [
    "PAIR_CHECKS",
    "endpoints_offset",
    "curves_are_congruent",
    "check_side_pair",
]
