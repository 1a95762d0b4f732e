"""Tests for clip planes and half space synthesis."""

import numpy as np
import pytest

from brepcut.exceptions import UnsupportedTopologyError
from brepcut.geometry.curve_loop import CurveLoop
from brepcut.geometry.curves import Line
from brepcut.geometry.primitives import ExtrusionRange, Plane
from brepcut.reconstruct.body import (
    BooleanClippingResult,
    ExtrudedSolid,
    HalfSpace,
    PolygonalBoundedHalfSpace,
    RepresentationType,
    representation_type,
)
from brepcut.reconstruct.classifier import ClassificationResult, ClipFace, CutKind, classify_collection
from brepcut.reconstruct.clipping import apply_clipping, clip_position, process_clipping_face
from brepcut.reconstruct.outcome import CutStatus, ReasonCode
from brepcut.topology.boundary import FaceBoundaryType
from brepcut.topology.cut_analyzer import FaceCollection

Z = np.array([0.0, 0.0, 1.0])


def _square_loop(z=0.0, size=4.0):
    pts = [(0, 0, z), (size, 0, z), (size, size, z), (0, size, z)]
    return CurveLoop(Line.create(pts[i], pts[(i + 1) % 4]) for i in range(4))


@pytest.fixture
def column():
    """4x4 column from z=0 to z=10 extruded along +z."""
    loop = _square_loop()
    return ExtrudedSolid(loop, loop.plane, Z, 10.0)


def test_fully_clipped_below_range():
    plane = Plane.from_normal((0, 0, -1), (0, 0, -2))
    assert clip_position(ExtrusionRange(0, 10), plane, Z) == (False, True)


def test_plane_beyond_range_removes_nothing():
    plane = Plane.from_normal((0, 0, 1), (0, 0, 12))
    assert clip_position(ExtrusionRange(0, 10), plane, Z) == (False, False)


def test_plane_inside_range_cuts():
    plane = Plane.from_normal((0, 0, 1), (0, 0, 6))
    assert clip_position(ExtrusionRange(0, 10), plane, Z) == (True, False)


def test_sloped_plane_is_always_in_range():
    plane = Plane.from_normal((0, 1, 1), (0, 0, 50))
    assert clip_position(ExtrusionRange(0, 10), plane, Z) == (True, False)


@pytest.mark.parametrize("position", [-5.0, -2.0, 0.0])
@pytest.mark.parametrize("sub_range", [(0, 10), (0, 4), (3, 7), (9, 10)])
def test_full_clip_holds_for_sub_ranges(position, sub_range):
    plane = Plane.from_normal((0, 0, -1), (0, 0, position))
    assert clip_position(ExtrusionRange(0, 10), plane, Z)[1]
    assert clip_position(ExtrusionRange(*sub_range), plane, Z)[1]


def test_process_face_fully_clipped_returns_none(column):
    loop = _square_loop(-2.0)
    plane = Plane.from_normal((0, 0, -1), (0, 0, -2))
    result = process_clipping_face(loop, plane, column.position, Z, ExtrusionRange(0, 10), False, column)
    assert result is None


def test_process_face_beyond_end_returns_body(column):
    loop = _square_loop(12.0)
    plane = Plane.from_normal((0, 0, 1), (0, 0, 12))
    result = process_clipping_face(loop, plane, column.position, Z, ExtrusionRange(0, 10), False, column)
    assert result is column


def test_process_face_unbounded_clip(column):
    loop = _square_loop(6.0)
    plane = Plane.from_normal((0, 0, 1), (0, 0, 6))
    result = process_clipping_face(loop, plane, column.position, Z, ExtrusionRange(0, 10), False, column)
    assert isinstance(result, BooleanClippingResult)
    assert type(result.second) is HalfSpace
    assert result.second.agreement_flag is False
    assert result.contains((2, 2, 5))
    assert not result.contains((2, 2, 7))
    assert representation_type(result) is RepresentationType.CLIPPING


def test_process_face_bounded_clip_projects_outline(column):
    pts = [(0, 0, 6), (2, 0, 7), (2, 4, 7), (0, 4, 6)]
    loop = CurveLoop(Line.create(pts[i], pts[(i + 1) % 4]) for i in range(4))
    result = process_clipping_face(loop, loop.plane, column.position, Z, ExtrusionRange(0, 10), True, column)
    half_space = result.second
    assert isinstance(half_space, PolygonalBoundedHalfSpace)
    assert len(half_space.boundary) == 4
    # Removed above the face, kept outside its outline
    assert not result.contains((1, 2, 9))
    assert result.contains((3, 2, 9))


def test_perpendicular_unbounded_clip_raises(column):
    loop = CurveLoop(
        Line.create(p, q)
        for p, q in [((1, 0, 0), (1, 4, 0)), ((1, 4, 0), (1, 4, 10)), ((1, 4, 10), (1, 0, 10)), ((1, 0, 10), (1, 0, 0))]
    )
    with pytest.raises(UnsupportedTopologyError) as excinfo:
        process_clipping_face(loop, loop.plane, column.position, Z, ExtrusionRange(0, 10), False, column, "wall")
    assert excinfo.value.reason == ReasonCode.PERPENDICULAR_CLIP.value


def test_perpendicular_bounded_clip_is_ignored(column):
    loop = CurveLoop(
        Line.create(p, q)
        for p, q in [((1, 0, 0), (1, 4, 0)), ((1, 4, 0), (1, 4, 10)), ((1, 4, 10), (1, 0, 10)), ((1, 0, 10), (1, 0, 0))]
    )
    assert process_clipping_face(loop, loop.plane, column.position, Z, ExtrusionRange(0, 10), True, column) is column


def test_apply_single_clip_plane(wedge_shell, column):
    classification = classify_collection(wedge_shell, FaceCollection("roof", (5,)), ExtrusionRange(0, 10), Z)
    outcome = apply_clipping(classification, column, column.position, Z, ExtrusionRange(0, 10))
    assert outcome.status is CutStatus.CLIPPED
    # Single clip planes are never bounded
    assert type(outcome.body.second) is HalfSpace
    assert not outcome.body.contains((2, 2, 9.8))
    assert outcome.body.contains((2, 2, 5))


def test_apply_end_clip_chains_bounded_half_spaces(gable_shell, column):
    classification = classify_collection(gable_shell, FaceCollection("roof", (5, 6)), ExtrusionRange(0, 10), Z)
    outcome = apply_clipping(classification, column, column.position, Z, ExtrusionRange(0, 10))
    assert outcome.status is CutStatus.CLIPPED
    body = outcome.body
    assert isinstance(body, BooleanClippingResult)
    assert isinstance(body.first, BooleanClippingResult)
    assert body.first.first is column
    assert not body.contains((1, 2, 9.5))
    assert body.contains((1, 2, 8.5))
    assert not body.contains((3, 2, 9.5))


def test_apply_inert_leaves_body(column):
    outcome = apply_clipping(ClassificationResult("x", CutKind.INERT), column, column.position, Z, ExtrusionRange(0, 10))
    assert outcome.status is CutStatus.UNCHANGED
    assert outcome.body is column


def test_apply_fully_clipped(column):
    loop = _square_loop(-2.0)
    loop.flip()
    plane = Plane.from_normal((0, 0, -1), (0, 0, -2))

    classification = ClassificationResult(
        "slab", CutKind.CLIP_PLANE, clip_faces=(ClipFace(0, loop, plane, FaceBoundaryType.POLYGONAL),)
    )
    outcome = apply_clipping(classification, column, column.position, Z, ExtrusionRange(0, 10))
    assert outcome.is_fully_clipped
    assert outcome.body is None


def test_apply_rejects_openings(column):
    with pytest.raises(ValueError):
        apply_clipping(ClassificationResult("x", CutKind.OPENING), column, column.position, Z, ExtrusionRange(0, 10))
