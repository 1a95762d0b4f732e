"""Tests for vector helpers, planes and extrusion ranges."""

import math

import numpy as np
import pytest

from brepcut.exceptions import DegenerateGeometryError
from brepcut.geometry.primitives import (
    ExtrusionRange,
    Plane,
    any_perpendicular,
    must_flip_curve,
    newell_normal,
    normalize,
    vectors_are_orthogonal,
    vectors_are_parallel,
    vectors_parallel_sign,
)
from brepcut.geometry.scope import GeometryScope


def test_normalize_zero_vector_raises():
    with pytest.raises(DegenerateGeometryError):
        normalize((0.0, 0.0, 0.0))


def test_parallel_sign():
    assert vectors_parallel_sign(np.array([0, 0, 2.0]), np.array([0, 0, 5.0])) == 1
    assert vectors_parallel_sign(np.array([0, 0, 2.0]), np.array([0, 0, -1.0])) == -1
    assert vectors_parallel_sign(np.array([1.0, 0, 0]), np.array([0, 1.0, 0])) == 0
    assert vectors_parallel_sign(np.zeros(3), np.array([0, 1.0, 0])) == 0


def test_parallel_and_orthogonal():
    assert vectors_are_parallel(np.array([1.0, 1.0, 0]), np.array([-2.0, -2.0, 0]))
    assert vectors_are_orthogonal(np.array([1.0, 0, 0]), np.array([0, 0, 3.0]))
    assert not vectors_are_orthogonal(np.array([1.0, 0, 1.0]), np.array([0, 0, 3.0]))


@pytest.mark.parametrize("vector", [(0, 0, 1), (1, 0, 0), (0.3, -0.2, 0.9)])
def test_any_perpendicular_is_unit_and_orthogonal(vector):
    perp = any_perpendicular(np.array(vector, dtype=float))
    assert np.linalg.norm(perp) == pytest.approx(1.0)
    assert float(np.dot(perp, vector)) == pytest.approx(0.0, abs=1e-12)


def test_newell_normal_follows_winding():
    ccw = [np.array(p, dtype=float) for p in [(0, 0, 0), (1, 0, 0), (1, 1, 0), (0, 1, 0)]]
    assert normalize(newell_normal(ccw)) == pytest.approx([0, 0, 1])
    assert normalize(newell_normal(ccw[::-1])) == pytest.approx([0, 0, -1])


def test_plane_from_vectors_orthonormalises():
    plane = Plane.from_vectors((2, 0, 0), (1, 3, 0), (0, 0, 5))
    assert plane.is_orthonormal()
    assert plane.normal == pytest.approx([0, 0, 1])
    assert plane.origin == pytest.approx([0, 0, 5])


def test_plane_from_parallel_vectors_raises():
    with pytest.raises(DegenerateGeometryError):
        Plane.from_vectors((1, 0, 0), (2, 0, 0), (0, 0, 0))


def test_plane_from_normal_uses_hint():
    plane = Plane.from_normal((0, 0, 1), (1, 1, 1), x_hint=(0, 1, 0.5))
    assert plane.x_dir == pytest.approx([0, 1, 0])
    assert plane.normal == pytest.approx([0, 0, 1])


def test_project_point_and_back():
    plane = Plane.from_normal((0, 0, 1), (1, 2, 3), x_hint=(1, 0, 0))
    u, v = plane.project_point(np.array([4.0, 6.0, 9.0]))
    assert (u, v) == pytest.approx((3.0, 4.0))
    assert plane.to_world(u, v) == pytest.approx([4.0, 6.0, 3.0])
    assert plane.signed_distance(np.array([4.0, 6.0, 9.0])) == pytest.approx(6.0)


def test_flipped_plane_reverses_normal():
    plane = Plane.default().flipped()
    assert plane.normal == pytest.approx([0, 0, -1])


def test_must_flip_curve():
    plane = Plane.default()
    assert not must_flip_curve(plane, np.array([1.0, 0, 0]), np.array([0, 1.0, 0]))
    assert must_flip_curve(plane, np.array([1.0, 0, 0]), np.array([0, -1.0, 0]))


def test_extrusion_range_rejects_inverted_bounds():
    with pytest.raises(ValueError):
        ExtrusionRange(5.0, 1.0)
    with pytest.raises(ValueError):
        ExtrusionRange(math.nan, 1.0)


def test_extrusion_range_relations():
    outer = ExtrusionRange(0.0, 10.0)
    inner = ExtrusionRange.of_values([7.0, 2.0, 4.0])
    assert inner == ExtrusionRange(2.0, 7.0)
    assert outer.overlaps(ExtrusionRange(9.0, 12.0))
    assert not outer.overlaps(ExtrusionRange(10.0, 12.0))
    assert outer.contains(10.0)
    assert outer.length == pytest.approx(10.0)


class _RecordingKernel:
    def __init__(self):
        self.released = []

    def release(self, item):
        self.released.append(item)


def test_geometry_scope_releases_in_reverse_order():
    kernel = _RecordingKernel()
    with GeometryScope(kernel) as scope:
        first = scope.track("first")
        scope.track("second")
    assert first == "first"
    assert kernel.released == ["second", "first"]


def test_geometry_scope_releases_on_error():
    kernel = _RecordingKernel()
    with pytest.raises(RuntimeError):
        with GeometryScope(kernel) as scope:
            scope.track("copy")
            raise RuntimeError("boom")
    assert kernel.released == ["copy"]
