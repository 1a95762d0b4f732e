"""Face boundary extraction.

Walks the edge loops of a face and rebuilds them as ``CurveLoop`` objects,
classifying which curve kinds were met along the way.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import IntEnum
from typing import Sequence

import numpy as np

from brepcut.geometry.contract import TESSELLATION_ANGLE_DEG, VERTEX_TOLERANCE
from brepcut.geometry.curve_loop import CurveLoop
from brepcut.geometry.curves import Curve, CurveKind, Line
from brepcut.geometry.primitives import Vector, as_vector, points_almost_equal
from brepcut.topology.model import BrepShell, OrientedEdge

logger = logging.getLogger(__name__)


class FaceBoundaryType(IntEnum):
    """Curve kinds present in a boundary; higher values are less restrictive."""
    POLYGONAL = 0
    LINES_AND_ARCS = 1
    COMPLEX = 2


@dataclass(frozen=True)
class FaceBoundary:
    loop: CurveLoop
    boundary_type: FaceBoundaryType

    @property
    def is_empty(self) -> bool:
        return self.loop.is_empty


def _classify(curve: Curve) -> FaceBoundaryType:
    if curve.kind is CurveKind.LINE:
        return FaceBoundaryType.POLYGONAL
    if curve.kind is CurveKind.ARC:
        return FaceBoundaryType.LINES_AND_ARCS
    return FaceBoundaryType.COMPLEX


def _polygonize(curve: Curve, tolerance: float, max_angle_deg: float) -> list[Curve]:
    points = curve.tessellate(max_angle_deg)
    segments: list[Curve] = []
    anchor = points[0]
    for point in points[1:]:
        # Skip samples that would make a zero-length segment
        if points_almost_equal(anchor, point, tolerance):
            continue
        segments.append(Line(anchor, point))
        anchor = point
    if segments and not points_almost_equal(anchor, curve.end, tolerance):
        segments.append(Line(anchor, curve.end))
    return segments


def get_face_boundary(
    shell: BrepShell,
    face_id: int,
    edges: Sequence[OrientedEdge],
    offset: Sequence[float] | Vector | None = None,
    polygonal_only: bool = False,
    *,
    tolerance: float = VERTEX_TOLERANCE,
    max_angle_deg: float = TESSELLATION_ANGLE_DEG,
) -> FaceBoundary:
    """Build the loop for one edge loop of ``face_id``.

    Args:
        shell: Shell owning the face and its edges.
        face_id: Face whose orientation the curves follow.
        edges: The oriented edges of one boundary loop.
        offset: Optional translation applied to every curve.
        polygonal_only: Replace non-linear curves by line segments.
        tolerance: Vertex tolerance for loop continuity.
        max_angle_deg: Tessellation step for non-linear curves.

    Returns:
        The loop and the least restrictive curve kind met. The type is
        never downgraded once a more complex curve was seen.
    """
    shift = None if offset is None else as_vector(offset)
    loop = CurveLoop(tolerance=tolerance)
    boundary_type = FaceBoundaryType.POLYGONAL
    for oriented in edges:
        curve = shell.curve_following_face(oriented.edge_id, face_id)
        if shift is not None and bool(np.any(shift)):
            curve = curve.translated(shift)
        boundary_type = max(boundary_type, _classify(curve))
        if curve.kind is not CurveKind.LINE and polygonal_only:
            for segment in _polygonize(curve, tolerance, max_angle_deg):
                loop.append(segment)
        else:
            loop.append(curve)
    return FaceBoundary(loop, boundary_type)


def get_face_boundaries(
    shell: BrepShell,
    face_id: int,
    offset: Sequence[float] | Vector | None = None,
    *,
    tolerance: float = VERTEX_TOLERANCE,
) -> list[FaceBoundary]:
    """Outer and inner boundaries of a face, outer first."""
    face = shell.face(face_id)
    return [
        get_face_boundary(shell, face_id, edges, offset, False, tolerance=tolerance)
        for edges in face.loops
    ]


def get_outer_face_boundary(
    shell: BrepShell,
    face_id: int,
    offset: Sequence[float] | Vector | None = None,
    polygonal_only: bool = False,
    *,
    tolerance: float = VERTEX_TOLERANCE,
    max_angle_deg: float = TESSELLATION_ANGLE_DEG,
) -> FaceBoundary:
    """Outer boundary of a face.

    A face without boundary loops yields an empty loop; callers treat it as
    having no usable boundary.
    """
    face = shell.face(face_id)
    if not face.loops:
        logger.debug("Face %s has no boundary loops", face_id)
        return FaceBoundary(CurveLoop(tolerance=tolerance), FaceBoundaryType.POLYGONAL)
    return get_face_boundary(
        shell,
        face_id,
        face.loops[0],
        offset,
        polygonal_only,
        tolerance=tolerance,
        max_angle_deg=max_angle_deg,
    )


__all__ = [
    "FaceBoundaryType",
    "FaceBoundary",
    "get_face_boundary",
    "get_face_boundaries",
    "get_outer_face_boundary",
]
