"""Clipping of a running body by half spaces built from cutting faces."""

from __future__ import annotations

from typing import Hashable, Sequence

import numpy as np
from loguru import logger

from brepcut.exceptions import UnsupportedTopologyError
from brepcut.geometry.contract import ANGULAR_TOLERANCE, EPS, is_almost_zero
from brepcut.geometry.curve_loop import CurveLoop
from brepcut.geometry.primitives import ExtrusionRange, Plane, Vector, normalize
from brepcut.reconstruct.body import Body, HalfSpace, PolygonalBoundedHalfSpace, subtract
from brepcut.reconstruct.classifier import ClassificationResult, CutKind
from brepcut.reconstruct.outcome import CutOutcome, CutStatus, ReasonCode, UnsupportedTopology, topology_error


def clip_position(
    extrusion_range: ExtrusionRange | None,
    plane: Plane,
    direction: Vector,
    eps: float = EPS,
) -> tuple[bool, bool]:
    """Locate a clip plane relative to the extrusion range.

    Only planes perpendicular to the extrusion direction are tested; for
    sloped planes the cut is always assumed to intersect the range.

    Returns:
        ``(in_range, clips_completely)``. When the plane lies at or before the
        range start the extrusion is removed entirely; at or past the end it
        removes nothing.
    """
    if extrusion_range is None:
        return True, False
    if abs(abs(float(np.dot(plane.normal, direction))) - 1.0) > ANGULAR_TOLERANCE:
        return True, False
    parameter = float(np.dot(plane.origin, direction))
    if extrusion_range.start > parameter - eps:
        return False, True
    if extrusion_range.end < parameter + eps:
        return False, False
    return True, False


def bounded_half_space(loop: CurveLoop, plane: Plane, base_plane: Plane) -> PolygonalBoundedHalfSpace:
    """Half space limited by the face outline projected onto ``base_plane``."""
    boundary = tuple(base_plane.project_point(point) for point in loop.vertices())
    return PolygonalBoundedHalfSpace(plane, False, position=base_plane, boundary=boundary)


def process_clipping_face(
    loop: CurveLoop,
    plane: Plane,
    base_plane: Plane,
    direction: Sequence[float] | Vector,
    extrusion_range: ExtrusionRange | None,
    use_face_boundary: bool,
    body: Body,
    element_id: Hashable | None = None,
) -> Body | None:
    """Clip ``body`` by the half space on the normal side of ``plane``.

    Args:
        loop: Outer boundary of the clip face.
        plane: Plane of the clip face; its normal points at the removed side.
        base_plane: Plane of the extrusion base, used for bounded half spaces.
        direction: Extrusion direction.
        extrusion_range: Remaining range of the extrusion, or None to skip the
            position test.
        use_face_boundary: Bound the half space by the face outline.
        body: Running body; never modified.
        element_id: Cutting element, for diagnostics.

    Returns:
        The clipped body, ``body`` itself when the plane misses the
        extrusion, or None when the extrusion is clipped away entirely.

    Raises:
        UnsupportedTopologyError: ``PERPENDICULAR_CLIP`` for an unbounded cut
            whose plane contains the extrusion direction.
    """
    dir_vec = normalize(direction)
    slant = float(np.dot(plane.normal, dir_vec))
    if use_face_boundary and is_almost_zero(slant, ANGULAR_TOLERANCE):
        return body

    in_range, clips_completely = clip_position(extrusion_range, plane, dir_vec)
    if not in_range:
        if clips_completely:
            logger.debug("Clip plane at {} removes the whole extrusion", plane)
            return None
        return body

    if is_almost_zero(slant, ANGULAR_TOLERANCE):
        raise topology_error(
            ReasonCode.PERPENDICULAR_CLIP, "Can't create clipping perpendicular to extrusion", element_id
        )

    if use_face_boundary:
        half_space: HalfSpace = bounded_half_space(loop, plane, base_plane)
    else:
        half_space = HalfSpace(plane, agreement_flag=False)
    return subtract(body, half_space)


def apply_clipping(
    classification: ClassificationResult,
    body: Body,
    base_plane: Plane,
    direction: Sequence[float] | Vector,
    extrusion_range: ExtrusionRange | None,
    use_face_boundary: bool = True,
) -> CutOutcome:
    """Apply a single clip plane or an end clip to ``body``.

    Single planes are always unbounded; end clips use the face outlines when
    ``use_face_boundary`` is set. Processing stops at the first face that
    removes the whole extrusion.
    """
    if classification.kind is CutKind.INERT:
        return CutOutcome.unchanged(body)
    if classification.kind not in (CutKind.CLIP_PLANE, CutKind.END_CLIP):
        raise ValueError(f"Cannot clip a {classification.kind} classification")

    bounded = use_face_boundary and classification.kind is CutKind.END_CLIP
    current: Body = body
    try:
        for face in classification.clip_faces:
            result = process_clipping_face(
                face.loop,
                face.plane,
                base_plane,
                direction,
                extrusion_range,
                bounded,
                current,
                classification.element_id,
            )
            if result is None:
                return CutOutcome.fully_clipped()
            current = result
    except UnsupportedTopologyError as exc:
        diagnostic = UnsupportedTopology.from_error(exc, classification.element_id)
        logger.bind(element_id=str(classification.element_id), reason=diagnostic.reason.value).warning(
            "Skipping clipping: {}", diagnostic
        )
        return CutOutcome.unsupported(body, diagnostic)

    if current is body:
        return CutOutcome(CutStatus.UNCHANGED, body, skipped_faces=classification.skipped_faces)
    return CutOutcome.clipped(current, classification.skipped_faces)


__all__ = [
    "clip_position",
    "bounded_half_space",
    "process_clipping_face",
    "apply_clipping",
]
