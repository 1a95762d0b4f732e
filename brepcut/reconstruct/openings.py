"""Openings and recesses rebuilt from the faces a cutting element left behind.

The faces of a collection are bounded by faces that are *not* in it (the
"missing" faces). Their shared edges give the opening profiles: two missing
faces for a through opening, one plus the recess bottom for a recess, or
three when the opening runs out of an edge of the host and one side has to
be sewn closed.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Hashable, Sequence

import numpy as np
from loguru import logger

from brepcut.exceptions import DegenerateGeometryError, DiscontinuousLoopError, UnsupportedTopologyError
from brepcut.geometry.contract import ANGULAR_TOLERANCE, VERTEX_TOLERANCE
from brepcut.geometry.curve_loop import CurveLoop, sew_curves, sort_curves
from brepcut.geometry.curves import Curve
from brepcut.geometry.primitives import (
    Plane,
    Vector,
    normalize,
    vectors_are_orthogonal,
    vectors_are_parallel,
    vectors_parallel_sign,
)
from brepcut.reconstruct.body import Body, ExtrudedSolid, subtract
from brepcut.reconstruct.congruence import check_side_pair
from brepcut.reconstruct.outcome import (
    CutOutcome,
    ReasonCode,
    UnsupportedTopology,
    degenerate_error,
    topology_error,
)
from brepcut.topology.model import BrepShell


@dataclass(frozen=True)
class OpeningProfile:
    """A closed profile loop, counterclockwise about ``plane.normal``."""

    face_id: int
    loop: CurveLoop
    plane: Plane


@dataclass(frozen=True)
class OpeningResult:
    element_id: Hashable
    body: Body | None
    solid: ExtrudedSolid | None = None
    profiles: tuple[OpeningProfile, ...] = ()
    diagnostic: UnsupportedTopology | None = None

    @property
    def ok(self) -> bool:
        return self.diagnostic is None

    def as_outcome(self) -> CutOutcome:
        if self.diagnostic is not None:
            return CutOutcome.unsupported(self.body, self.diagnostic)
        return CutOutcome.opened(self.body)


@dataclass
class _BoundaryGroups:
    # missing face -> its edge curves, as traversed by the collection face
    profiles: dict[int, list[Curve]] = field(default_factory=dict)
    # collection (side) face -> the profile curves it touches
    sides: dict[int, list[Curve]] = field(default_factory=dict)


def _collect_boundaries(shell: BrepShell, face_ids: Sequence[int], element_id: Hashable) -> _BoundaryGroups:
    members = set(face_ids)
    groups = _BoundaryGroups()
    for face_id in sorted(members):
        face = shell.face(face_id)
        if len(face.loops) != 1:
            raise topology_error(
                ReasonCode.INNER_BOUNDARIES, "Can't process faces with inner boundaries", element_id, face_id=face_id
            )
        for oriented in face.loops[0]:
            other = shell.adjacent_face(oriented.edge_id, face_id)
            if other is None:
                raise topology_error(ReasonCode.OPEN_SHELL, "Edge bounded by a single face", element_id,
                                     edge_id=oriented.edge_id)
            if other in members:
                continue
            curve = shell.curve_following_face(oriented.edge_id, face_id)
            groups.profiles.setdefault(other, []).append(curve)
            groups.sides.setdefault(face_id, []).append(curve)
    return groups


def _planar_normal(shell: BrepShell, face_id: int, element_id: Hashable) -> Vector:
    plane = shell.face(face_id).plane
    if plane is None:
        raise topology_error(ReasonCode.NON_PLANAR, "Profile face is not planar", element_id, face_id=face_id)
    return plane.normal


def _close_recess(
    shell: BrepShell,
    face_ids: Sequence[int],
    groups: _BoundaryGroups,
    element_id: Hashable,
    tol: float,
) -> None:
    """Use the recess bottom as the second profile."""
    (curves,) = groups.profiles.values()
    try:
        rim = CurveLoop(sort_curves(curves, tol), tolerance=tol)
    except DiscontinuousLoopError as exc:
        raise topology_error(
            ReasonCode.PROFILE_MISMATCH, f"Recess rim is not a loop: {exc.message}", element_id
        ) from exc
    if rim.plane is None:
        raise topology_error(ReasonCode.PROFILE_MISMATCH, "Recess rim is not a closed planar loop", element_id)
    normal = rim.plane.normal

    candidates = [
        face_id
        for face_id in sorted(face_ids)
        if shell.face(face_id).plane is not None
        and vectors_are_parallel(shell.face(face_id).plane.normal, normal, ANGULAR_TOLERANCE)
    ]
    if not candidates:
        raise topology_error(ReasonCode.PROFILE_MISMATCH, "No face opposite the recess rim", element_id)
    if len(candidates) > 1:
        raise topology_error(
            ReasonCode.AMBIGUOUS_PARALLEL, "Several faces parallel to the recess rim", element_id,
            faces=",".join(str(f) for f in candidates),
        )
    bottom_id = candidates[0]
    bottom = shell.face(bottom_id)
    if len(bottom.loops) != 1:
        raise topology_error(ReasonCode.INNER_BOUNDARIES, "Recess bottom has inner boundaries", element_id)

    bottom_curves: list[Curve] = []
    for oriented in bottom.loops[0]:
        side_id = shell.adjacent_face(oriented.edge_id, bottom_id)
        if side_id is None or side_id not in groups.sides:
            raise topology_error(ReasonCode.UNHANDLED, "Recess bottom edge has no side face", element_id,
                                 edge_id=oriented.edge_id)
        groups.sides[side_id].append(shell.curve_following_face(oriented.edge_id, side_id))
        bottom_curves.append(shell.curve_following_face(oriented.edge_id, bottom_id))
    groups.profiles[bottom_id] = bottom_curves


def _sew_edge_opening(shell: BrepShell, groups: _BoundaryGroups, element_id: Hashable, tol: float) -> None:
    """Drop the odd missing face and close the two parallel profiles."""
    ids = list(groups.profiles)
    normals = {face_id: _planar_normal(shell, face_id, element_id) for face_id in ids}
    pairs = [
        (a, b)
        for idx, a in enumerate(ids)
        for b in ids[idx + 1:]
        if vectors_are_parallel(normals[a], normals[b], ANGULAR_TOLERANCE)
    ]
    if not pairs:
        raise topology_error(ReasonCode.NOT_PARALLEL, "No parallel pair among the missing faces", element_id)
    if len(pairs) > 1:
        raise topology_error(
            ReasonCode.AMBIGUOUS_PARALLEL, "More than one parallel pair among the missing faces", element_id
        )
    keep = pairs[0]
    (removed,) = [face_id for face_id in ids if face_id not in keep]

    dropped = groups.profiles.pop(removed)
    for side_id, curves in groups.sides.items():
        groups.sides[side_id] = [c for c in curves if not any(c is d for d in dropped)]

    for face_id in keep:
        try:
            sewn, closing = sew_curves(groups.profiles[face_id], tol)
        except DiscontinuousLoopError as exc:
            raise topology_error(ReasonCode.SEWING_FAILED, f"Can't process edges: {exc.message}", element_id,
                                 face_id=face_id) from exc
        groups.profiles[face_id] = sewn
        if closing is not None:
            groups.sides.setdefault(removed, []).append(closing)


def _profile(
    shell: BrepShell,
    face_id: int,
    curves: list[Curve],
    element_id: Hashable,
    tol: float,
) -> OpeningProfile:
    normal = _planar_normal(shell, face_id, element_id)
    try:
        loop = CurveLoop(sort_curves(curves, tol), tolerance=tol)
    except DiscontinuousLoopError as exc:
        raise topology_error(ReasonCode.PROFILE_MISMATCH, f"Profile is not a loop: {exc.message}", element_id,
                             face_id=face_id) from exc
    if loop.is_open or loop.plane is None:
        raise topology_error(ReasonCode.PROFILE_MISMATCH, "Profile is not a closed planar loop", element_id,
                             face_id=face_id)
    if not loop.is_counterclockwise(normal):
        loop.flip()
    face_plane = shell.face(face_id).plane
    plane = Plane.from_normal(normal, loop.centroid(), x_hint=face_plane.x_dir)
    return OpeningProfile(face_id, loop, plane)


def _build(
    shell: BrepShell,
    face_ids: Sequence[int],
    direction: Vector,
    body: Body,
    element_id: Hashable,
    tol: float,
) -> OpeningResult:
    groups = _collect_boundaries(shell, face_ids, element_id)
    count = len(groups.profiles)
    if count == 1:
        _close_recess(shell, face_ids, groups, element_id, tol)
    elif count == 3:
        _sew_edge_opening(shell, groups, element_id, tol)
    elif count != 2:
        raise topology_error(ReasonCode.MISSING_FACE_COUNT, f"{count} missing faces", element_id)

    (id1, curves1), (id2, curves2) = groups.profiles.items()
    if len(curves1) != len(curves2):
        raise topology_error(
            ReasonCode.PROFILE_MISMATCH, "Profiles have different curve counts", element_id,
            first=len(curves1), second=len(curves2),
        )
    first = _profile(shell, id1, curves1, element_id, tol)
    second = _profile(shell, id2, curves2, element_id, tol)
    n1, n2 = first.plane.normal, second.plane.normal

    if not vectors_are_parallel(n1, n2, ANGULAR_TOLERANCE):
        raise topology_error(ReasonCode.NOT_PARALLEL, "Profile planes are not parallel", element_id)
    if not (
        vectors_are_orthogonal(n1, direction, ANGULAR_TOLERANCE)
        and vectors_are_orthogonal(n2, direction, ANGULAR_TOLERANCE)
    ):
        raise topology_error(ReasonCode.NOT_ORTHOGONAL, "Profiles are not orthogonal to the extrusion", element_id)

    delta = second.plane.origin - first.plane.origin
    depth = abs(float(np.dot(delta, n1)))
    if depth <= tol:
        raise topology_error(ReasonCode.PROFILE_MISMATCH, "Profiles lie in the same plane", element_id)

    for side_id, curves in groups.sides.items():
        if len(curves) != 2:
            raise topology_error(
                ReasonCode.PROFILE_MISMATCH, "Side face does not join exactly two profile curves", element_id,
                face_id=side_id, curves=len(curves),
            )
        check_side_pair(curves[0], curves[1], shell.face(side_id).surface, depth, direction, element_id, side_id, tol)

    sign = vectors_parallel_sign(delta, n1, ANGULAR_TOLERANCE)
    if sign == 0:
        raise topology_error(ReasonCode.NOT_PARALLEL, "Profiles are offset sideways", element_id)
    solid = ExtrudedSolid(first.loop, first.plane, n1 * sign, depth)
    logger.debug("Opening for element {}: depth {:.4f} along {}", element_id, depth, np.round(n1 * sign, 6).tolist())
    return OpeningResult(element_id, subtract(body, solid), solid, (first, second))


def synthesize_opening(
    shell: BrepShell,
    face_ids: Sequence[int],
    direction: Sequence[float] | Vector,
    body: Body,
    element_id: Hashable | None = None,
    tolerance: float = VERTEX_TOLERANCE,
) -> OpeningResult:
    """Subtract the opening or recess described by ``face_ids`` from ``body``.

    Args:
        shell: Shell owning the faces.
        face_ids: Connected faces of one cutting element.
        direction: Extrusion direction of the host body.
        body: Running body; never modified.
        element_id: Cutting element, for diagnostics.
        tolerance: Vertex and length tolerance.

    Returns:
        An ``OpeningResult`` holding the new body and the extruded opening
        solid, or the untouched ``body`` with a diagnostic.
    """
    try:
        return _build(shell, face_ids, normalize(direction), body, element_id, tolerance)
    except DegenerateGeometryError as exc:
        diagnostic = UnsupportedTopology.from_error(degenerate_error(exc, element_id))
    except UnsupportedTopologyError as exc:
        diagnostic = UnsupportedTopology.from_error(exc, element_id)
    logger.bind(element_id=str(element_id), reason=diagnostic.reason.value).warning("Skipping opening: {}", diagnostic)
    return OpeningResult(element_id, body, diagnostic=diagnostic)


__all__ = ["OpeningProfile", "OpeningResult", "synthesize_opening"]
