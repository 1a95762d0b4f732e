"""Classification of a cutting face collection.

Decides whether a collection is an inert face, a single clip plane, an end
clip made of several faces, or a candidate opening/recess for the opening
synthesizer. The decision depends only on geometry.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Hashable, Sequence

import numpy as np
from loguru import logger

from brepcut.exceptions import DegenerateGeometryError, UnsupportedTopologyError
from brepcut.geometry.contract import ANGULAR_TOLERANCE, TESSELLATION_ANGLE_DEG, VERTEX_TOLERANCE, is_almost_zero
from brepcut.geometry.curve_loop import CurveLoop
from brepcut.geometry.primitives import ExtrusionRange, Plane, Vector, normalize, vectors_are_orthogonal
from brepcut.reconstruct.outcome import ReasonCode, UnsupportedTopology, degenerate_error, topology_error
from brepcut.topology.boundary import FaceBoundaryType, get_outer_face_boundary
from brepcut.topology.cut_analyzer import FaceCollection
from brepcut.topology.model import BrepShell


class CutKind(str, Enum):
    INERT = "inert"
    CLIP_PLANE = "clip_plane"
    END_CLIP = "end_clip"
    OPENING = "opening"


@dataclass(frozen=True)
class ClipFace:
    """Outer boundary of a cutting face, wound counterclockwise about its normal."""

    face_id: int
    loop: CurveLoop
    plane: Plane
    boundary_type: FaceBoundaryType

    def slant(self, direction: Vector) -> float:
        return float(np.dot(self.plane.normal, direction))


@dataclass(frozen=True)
class ClassificationResult:
    element_id: Hashable
    kind: CutKind | None
    clip_faces: tuple[ClipFace, ...] = ()
    skipped_faces: tuple[int, ...] = ()
    clips_start: bool = False
    clips_end: bool = False
    diagnostic: UnsupportedTopology | None = None

    @property
    def ok(self) -> bool:
        return self.diagnostic is None


@dataclass(frozen=True)
class ClassifierOptions:
    creates_opening: bool = False
    polygonal_only: bool = False
    tolerance: float = VERTEX_TOLERANCE
    angular_tolerance: float = ANGULAR_TOLERANCE
    max_angle_deg: float = TESSELLATION_ANGLE_DEG


def collect_clip_faces(
    shell: BrepShell,
    face_ids: Sequence[int],
    *,
    polygonal_only: bool = False,
    tolerance: float = VERTEX_TOLERANCE,
    max_angle_deg: float = TESSELLATION_ANGLE_DEG,
    element_id: Hashable | None = None,
) -> list[ClipFace]:
    """Outer boundaries and planes of the given faces.

    Raises:
        UnsupportedTopologyError: ``NON_PLANAR`` if any face has no plane,
            ``DEGENERATE`` if an outline collapses within ``tolerance``.
    """
    clip_faces: list[ClipFace] = []
    for face_id in face_ids:
        face = shell.face(face_id)
        plane = face.plane
        if plane is None:
            raise topology_error(
                ReasonCode.NON_PLANAR, "Cutting face is not planar", element_id, face_id=face_id
            )
        boundary = get_outer_face_boundary(
            shell, face_id, polygonal_only=polygonal_only, tolerance=tolerance, max_angle_deg=max_angle_deg
        )
        if boundary.is_empty:
            logger.debug("Skipping face {} without a usable boundary", face_id)
            continue
        loop = boundary.loop
        try:
            counterclockwise = loop.is_counterclockwise(plane.normal)
        except DegenerateGeometryError as exc:
            raise degenerate_error(exc, element_id, face_id=face_id) from exc
        if not counterclockwise:
            loop.flip()
        clip_faces.append(ClipFace(face_id, loop, plane, boundary.boundary_type))
    return clip_faces


def clipped_ends(
    loops: Sequence[CurveLoop],
    direction: Vector,
    extrusion_range: ExtrusionRange,
    tolerance: float = VERTEX_TOLERANCE,
) -> tuple[bool, bool]:
    """Whether any loop reaches the start and/or the end of the range."""
    clip_start = clip_end = False
    for loop in loops:
        loop_range = loop.extrusion_range(direction)
        if loop_range.end >= extrusion_range.end - tolerance:
            clip_end = True
        if loop_range.start <= extrusion_range.start + tolerance:
            clip_start = True
    return clip_start, clip_end


def _classify(
    shell: BrepShell,
    collection: FaceCollection,
    extrusion_range: ExtrusionRange,
    direction: Vector,
    options: ClassifierOptions,
) -> ClassificationResult:
    element_id = collection.element_id
    faces = collect_clip_faces(
        shell,
        collection.face_ids,
        polygonal_only=options.polygonal_only,
        tolerance=options.tolerance,
        max_angle_deg=options.max_angle_deg,
        element_id=element_id,
    )
    if not faces:
        return ClassificationResult(element_id, CutKind.INERT)

    if len(faces) == 1:
        face = faces[0]
        if vectors_are_orthogonal(face.plane.normal, direction, options.angular_tolerance):
            return ClassificationResult(element_id, CutKind.INERT)
        return ClassificationResult(element_id, CutKind.CLIP_PLANE, clip_faces=(face,))

    clip_start, clip_end = clipped_ends([f.loop for f in faces], direction, extrusion_range, options.tolerance)
    if not (clip_start or clip_end):
        return ClassificationResult(element_id, CutKind.OPENING)

    if options.creates_opening:
        raise topology_error(ReasonCode.OPENING_CATEGORY, "Opening elements are not clipped", element_id)

    kept: list[ClipFace] = []
    skipped: list[int] = []
    orientation = 0
    for face in faces:
        slant = face.slant(direction)
        if is_almost_zero(slant, options.angular_tolerance):
            skipped.append(face.face_id)
            continue
        if clip_start and clip_end:
            sign = 1 if slant > 0.0 else -1
            if orientation and sign != orientation:
                raise topology_error(
                    ReasonCode.CLIP_ORIENTATION, "Unhandled clipping orientations", element_id, face_id=face.face_id
                )
            orientation = sign
        elif (clip_start and slant > 0.0) or (clip_end and slant < 0.0):
            raise topology_error(
                ReasonCode.CLIP_ORIENTATION, "Unhandled clip plane direction", element_id, face_id=face.face_id
            )
        kept.append(face)

    return ClassificationResult(
        element_id,
        CutKind.END_CLIP,
        clip_faces=tuple(kept),
        skipped_faces=tuple(skipped),
        clips_start=clip_start,
        clips_end=clip_end,
    )


def classify_collection(
    shell: BrepShell,
    collection: FaceCollection,
    extrusion_range: ExtrusionRange,
    direction: Sequence[float] | Vector,
    options: ClassifierOptions | None = None,
) -> ClassificationResult:
    """Classify one connected face collection of a cutting element.

    Args:
        shell: Shell owning the faces.
        collection: Connected faces of one cutting element.
        extrusion_range: Span of the base extrusion along ``direction``.
        direction: Extrusion direction.
        options: Category flag and tolerances.

    Returns:
        A ``ClassificationResult``. Unsupported collections carry a
        diagnostic and no kind instead of raising.
    """
    opts = options or ClassifierOptions()
    try:
        return _classify(shell, collection, extrusion_range, normalize(direction), opts)
    except DegenerateGeometryError as exc:
        diagnostic = UnsupportedTopology.from_error(degenerate_error(exc, collection.element_id))
    except UnsupportedTopologyError as exc:
        diagnostic = UnsupportedTopology.from_error(exc, collection.element_id)
    logger.bind(element_id=str(collection.element_id), reason=diagnostic.reason.value).warning(
        "Cannot classify cut: {}", diagnostic
    )
    return ClassificationResult(collection.element_id, None, diagnostic=diagnostic)


__all__ = [
    "CutKind",
    "ClipFace",
    "ClassificationResult",
    "ClassifierOptions",
    "collect_clip_faces",
    "clipped_ends",
    "classify_collection",
]
