"""Tests for curve segments and curve loops."""

import math

import numpy as np
import pytest

from brepcut.exceptions import DegenerateGeometryError, DiscontinuousLoopError
from brepcut.geometry.curve_loop import CurveLoop, sew_curves, sort_curves
from brepcut.geometry.curves import Arc, CurveKind, Ellipse, Line, Spline


def _square(size=2.0, z=0.0):
    pts = [(0, 0, z), (size, 0, z), (size, size, z), (0, size, z)]
    return [Line.create(pts[i], pts[(i + 1) % 4]) for i in range(4)]


def test_line_rejects_coincident_points():
    with pytest.raises(DegenerateGeometryError):
        Line.create((0, 0, 0), (0, 0, 1e-6))


def test_line_basics():
    line = Line.create((0, 0, 0), (3, 4, 0))
    assert line.kind is CurveKind.LINE
    assert line.length == pytest.approx(5.0)
    assert line.reversed().start == pytest.approx([3, 4, 0])
    assert line.translated(np.array([0, 0, 1.0])).end == pytest.approx([3, 4, 1])


def test_arc_from_center_quarter_circle():
    arc = Arc.from_center((0, 0, 0), (0, 0, 1), (1, 0, 0), (0, 1, 0))
    assert arc.sweep == pytest.approx(math.pi / 2)
    assert arc.length == pytest.approx(math.pi / 2)
    assert arc.start == pytest.approx([1, 0, 0])
    assert arc.end == pytest.approx([0, 1, 0], abs=1e-12)


def test_arc_coincident_endpoints_is_full_circle():
    arc = Arc.from_center((0, 0, 0), (0, 0, 1), (2, 0, 0), (2, 0, 0))
    assert arc.is_closed
    assert arc.length == pytest.approx(4 * math.pi)


def test_arc_reversed_swaps_endpoints_and_keeps_shape():
    arc = Arc.from_center((0, 0, 0), (0, 0, 1), (1, 0, 0), (0, 1, 0))
    rev = arc.reversed()
    assert rev.start == pytest.approx(arc.end, abs=1e-12)
    assert rev.end == pytest.approx(arc.start, abs=1e-12)
    assert rev.length == pytest.approx(arc.length)
    assert rev.normal == pytest.approx(-arc.normal)


def test_ellipse_endpoints_and_reverse():
    ellipse = Ellipse(np.zeros(3), 2.0, 1.0, np.array([1.0, 0, 0]), np.array([0, 1.0, 0]), 0.0, math.pi)
    assert ellipse.start == pytest.approx([2, 0, 0])
    assert ellipse.end == pytest.approx([-2, 0, 0], abs=1e-12)
    rev = ellipse.reversed()
    assert rev.start == pytest.approx(ellipse.end, abs=1e-12)
    assert rev.length == pytest.approx(ellipse.length)


def test_spline_clamped_endpoints():
    spline = Spline.create([(0, 0, 0), (1, 2, 0), (3, 2, 0), (4, 0, 0)], degree=3)
    assert spline.knots == (0.0, 0.0, 0.0, 0.0, 1.0, 1.0, 1.0, 1.0)
    assert spline.start == pytest.approx([0, 0, 0])
    assert spline.end == pytest.approx([4, 0, 0])
    assert spline.length > 4.0


def test_spline_reversed_traces_same_points():
    spline = Spline.create([(0, 0, 0), (1, 2, 0), (2, -1, 0), (3, 1, 0), (4, 0, 0)], degree=3)
    rev = spline.reversed()
    lo, hi = spline.domain
    for u in (0.1, 0.35, 0.8):
        assert rev.point_at(lo + hi - u) == pytest.approx(spline.point_at(u))


def test_spline_validates_knots():
    with pytest.raises(DegenerateGeometryError):
        Spline((np.zeros(3), np.ones(3)), (1.0, 1.0), (0.0, 1.0), 1)


def test_curve_loop_append_checks_continuity():
    loop = CurveLoop([Line.create((0, 0, 0), (1, 0, 0))])
    with pytest.raises(DiscontinuousLoopError):
        loop.append(Line.create((2, 0, 0), (3, 0, 0)))


def test_closed_square_loop_properties():
    loop = CurveLoop(_square())
    assert not loop.is_open
    assert loop.plane is not None
    assert loop.plane.normal == pytest.approx([0, 0, 1])
    assert loop.is_counterclockwise((0, 0, 1))
    assert not loop.is_counterclockwise((0, 0, -1))
    assert loop.centroid() == pytest.approx([1, 1, 0])
    assert loop.length == pytest.approx(8.0)
    assert len(loop.vertices()) == 4


def test_loop_flip_reverses_winding():
    loop = CurveLoop(_square())
    loop.flip()
    assert not loop.is_counterclockwise((0, 0, 1))
    assert loop.plane.normal == pytest.approx([0, 0, -1])


def test_open_or_non_planar_loop_has_no_plane():
    open_loop = CurveLoop(_square()[:3])
    assert open_loop.is_open
    assert open_loop.plane is None
    bent = CurveLoop([
        Line.create((0, 0, 0), (1, 0, 0)),
        Line.create((1, 0, 0), (1, 1, 1)),
        Line.create((1, 1, 1), (0, 1, 0)),
        Line.create((0, 1, 0), (0, 0, 0)),
    ])
    assert bent.plane is None


def test_loop_extrusion_range_and_translation():
    loop = CurveLoop(_square()).translated((0, 0, 3))
    rng = loop.extrusion_range((0, 0, 1))
    assert rng.start == pytest.approx(3.0)
    assert rng.end == pytest.approx(3.0)
    assert loop.extrusion_range((1, 0, 0)).length == pytest.approx(2.0)


def test_loop_with_arc_tessellates_into_vertices():
    arc = Arc.from_center((0, 0, 0), (0, 0, 1), (1, 0, 0), (-1, 0, 0))
    loop = CurveLoop([arc, Line.create((-1, 0, 0), (1, 0, 0))])
    assert not loop.is_open
    assert loop.plane.normal == pytest.approx([0, 0, 1])
    assert len(loop.vertices(max_angle_deg=10.0)) == 19


def test_sort_curves_reverses_backwards_curves():
    a, b, c, d = _square()
    ordered = sort_curves([a, c.reversed(), b, d])
    loop = CurveLoop(ordered)
    assert not loop.is_open
    assert ordered[0] is a


def test_sort_curves_fails_on_gap():
    a, b, c, _ = _square()
    stray = Line.create((5, 5, 0), (6, 5, 0))
    with pytest.raises(DiscontinuousLoopError):
        sort_curves([a, b, c, stray])


def test_sew_curves_closes_gap_with_line():
    a, b, c, _ = _square()
    chain, closing = sew_curves([b, a, c])
    assert closing is not None
    assert closing.start == pytest.approx([0, 2, 0])
    assert closing.end == pytest.approx([0, 0, 0])
    assert not CurveLoop(chain).is_open


def test_sew_curves_already_closed():
    chain, closing = sew_curves(_square())
    assert closing is None
    assert len(chain) == 4


def test_sew_curves_needs_two_fragments():
    with pytest.raises(DiscontinuousLoopError):
        sew_curves(_square()[:1])
