"""Tests for cut classification."""

import numpy as np
import pytest

from brepcut.geometry.curves import Arc, Line
from brepcut.geometry.primitives import ExtrusionRange, Plane
from brepcut.reconstruct.classifier import (
    ClassifierOptions,
    CutKind,
    classify_collection,
    clipped_ends,
    collect_clip_faces,
)
from brepcut.reconstruct.outcome import ReasonCode
from brepcut.topology.cut_analyzer import FaceCollection
from brepcut.topology.model import Face, ShellBuilder, Surface

Z = (0, 0, 1)


def test_single_sloped_face_is_clip_plane(wedge_shell):
    result = classify_collection(wedge_shell, FaceCollection("roof", (5,)), ExtrusionRange(0, 10), Z)
    assert result.ok
    assert result.kind is CutKind.CLIP_PLANE
    assert [f.face_id for f in result.clip_faces] == [5]


def test_single_face_parallel_to_axis_is_inert(box_shell):
    # Side face with normal (1,0,0) on an extrusion along z
    result = classify_collection(box_shell, FaceCollection("wall", (2,)), ExtrusionRange(0, 10), Z)
    assert result.ok
    assert result.kind is CutKind.INERT
    assert result.clip_faces == ()


def test_two_roof_planes_are_end_clip(gable_shell):
    result = classify_collection(gable_shell, FaceCollection("roof", (5, 6)), ExtrusionRange(0, 10), Z)
    assert result.kind is CutKind.END_CLIP
    assert result.clips_end
    assert not result.clips_start
    assert len(result.clip_faces) == 2


def test_classification_is_repeatable(gable_shell):
    collection = FaceCollection("roof", (5, 6))
    first = classify_collection(gable_shell, collection, ExtrusionRange(0, 10), Z)
    second = classify_collection(gable_shell, collection, ExtrusionRange(0, 10), Z)
    assert first.kind is second.kind
    assert [f.face_id for f in first.clip_faces] == [f.face_id for f in second.clip_faces]


def test_end_clip_faces_are_counterclockwise(gable_shell):
    faces = collect_clip_faces(gable_shell, (5, 6))
    for face in faces:
        assert face.loop.is_counterclockwise(face.plane.normal)


def test_opening_category_is_not_clipped(gable_shell):
    result = classify_collection(
        gable_shell,
        FaceCollection("door", (5, 6)),
        ExtrusionRange(0, 10),
        Z,
        ClassifierOptions(creates_opening=True),
    )
    assert not result.ok
    assert result.kind is None
    assert result.diagnostic.reason is ReasonCode.OPENING_CATEGORY
    assert result.diagnostic.element_id == "door"


def test_end_clip_pointing_into_the_body_is_rejected(gable_shell):
    # Seen from the other end the roof planes point the wrong way
    result = classify_collection(gable_shell, FaceCollection("roof", (5, 6)), ExtrusionRange(8, 20), Z)
    assert result.diagnostic.reason is ReasonCode.CLIP_ORIENTATION


def test_hole_sides_are_opening(through_hole_shell):
    result = classify_collection(
        through_hole_shell, FaceCollection("window", (6, 7, 8, 9)), ExtrusionRange(0, 10), (1, 0, 0)
    )
    assert result.ok
    assert result.kind is CutKind.OPENING


def test_zero_slant_faces_are_skipped(box_shell):
    # Top plus one side of the box: the side reaches the start and has zero slant
    result = classify_collection(box_shell, FaceCollection("cap", (2, 5)), ExtrusionRange(0, 10), Z)
    assert result.kind is CutKind.END_CLIP
    assert result.clips_start and result.clips_end
    assert result.skipped_faces == (2,)
    assert [f.face_id for f in result.clip_faces] == [5]


def test_non_planar_face_is_unsupported():
    builder = ShellBuilder()
    plane_face = builder.add_polygon([(0, 0, 0), (1, 0, 0), (1, 1, 0), (0, 1, 0)])
    shell = builder.build()
    shell.faces[plane_face] = Face(plane_face, Surface.other(), shell.face(plane_face).loops)
    result = classify_collection(shell, FaceCollection("duct", (plane_face,)), ExtrusionRange(0, 1), Z)
    assert result.diagnostic.reason is ReasonCode.NON_PLANAR


def test_clipped_ends_uses_tolerance(gable_shell):
    faces = collect_clip_faces(gable_shell, (5,))
    assert clipped_ends([faces[0].loop], (0, 0, 1), ExtrusionRange(0, 10)) == (False, True)
    assert clipped_ends([faces[0].loop], (0, 0, 1), ExtrusionRange(8, 10)) == (True, True)
    assert clipped_ends([faces[0].loop], (0, 0, 1), ExtrusionRange(0, 12)) == (False, False)


@pytest.mark.parametrize("face_id", [1, 2, 3, 4])
def test_each_box_side_alone_is_inert(box_shell, face_id):
    result = classify_collection(box_shell, FaceCollection("x", (face_id,)), ExtrusionRange(0, 10), Z)
    assert result.kind is CutKind.INERT


def test_collapsed_outline_is_degenerate(sliver_shell):
    result = classify_collection(sliver_shell, FaceCollection("sliver", (2,)), ExtrusionRange(0, 10), Z)
    assert result.kind is None
    assert result.diagnostic.reason is ReasonCode.DEGENERATE
    assert result.diagnostic.element_id == "sliver"
    assert result.diagnostic.details["face_id"] == "2"


def _half_disk_shell():
    arc = Arc.from_center((0, 0, 5), (0, 0, 1), (1, 0, 5), (-1, 0, 5))
    builder = ShellBuilder()
    builder.add_face(
        Surface.planar(Plane.default().translated(np.array([0, 0, 5.0]))),
        [[arc, Line.create((-1, 0, 5), (1, 0, 5))]],
    )
    return builder.build()


@pytest.mark.parametrize("options, count", [
    (ClassifierOptions(polygonal_only=True), 19),
    (ClassifierOptions(polygonal_only=True, max_angle_deg=30.0), 7),
])
def test_clip_arcs_follow_tessellation_angle(options, count):
    result = classify_collection(_half_disk_shell(), FaceCollection("cap", (0,)), ExtrusionRange(0, 10), Z, options)
    assert result.kind is CutKind.CLIP_PLANE
    (face,) = result.clip_faces
    assert len(face.loop) == count
