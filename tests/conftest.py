"""Shared shells for the cut pipeline tests.

All shells are closed and wound with outward normals so that every edge is
shared by exactly two faces.
"""

from __future__ import annotations

import numpy as np
import pytest

from brepcut.geometry.curves import Line
from brepcut.geometry.primitives import Plane
from brepcut.topology.cut_analyzer import ExtrusionAnalysis, FaceAlignment
from brepcut.topology.model import ShellBuilder, Surface


def _box_sides(x0, x1, y0, y1, z0, z1):
    return [
        [(x0, y0, z0), (x0, y0, z1), (x0, y1, z1), (x0, y1, z0)],  # -x
        [(x1, y0, z0), (x1, y1, z0), (x1, y1, z1), (x1, y0, z1)],  # +x
        [(x0, y0, z0), (x1, y0, z0), (x1, y0, z1), (x0, y0, z1)],  # -y
        [(x0, y1, z0), (x0, y1, z1), (x1, y1, z1), (x1, y1, z0)],  # +y
    ]


@pytest.fixture
def box_shell():
    """Box [0,4]x[0,4]x[0,10]; face 0 is the bottom."""
    builder = ShellBuilder()
    builder.add_polygon([(0, 0, 0), (0, 4, 0), (4, 4, 0), (4, 0, 0)])
    for side in _box_sides(0, 4, 0, 4, 0, 10):
        builder.add_polygon(side)
    builder.add_polygon([(0, 0, 10), (4, 0, 10), (4, 4, 10), (0, 4, 10)])
    return builder.build()


@pytest.fixture
def wedge_shell():
    """Square prism whose top (face 5) slopes from z=8 at x=0 to z=10 at x=4."""
    a, b, c, d = (0, 0, 0), (4, 0, 0), (4, 4, 0), (0, 4, 0)
    e, f, g, h = (0, 0, 8), (4, 0, 10), (4, 4, 10), (0, 4, 8)
    builder = ShellBuilder()
    builder.add_polygon([a, d, c, b])
    builder.add_polygon([a, b, f, e])
    builder.add_polygon([b, c, g, f])
    builder.add_polygon([c, d, h, g])
    builder.add_polygon([d, a, e, h])
    builder.add_polygon([e, f, g, h])
    return builder.build()


@pytest.fixture
def wedge_analysis(wedge_shell):
    return ExtrusionAnalysis.from_shell(
        wedge_shell,
        0,
        (0, 0, 1),
        face_alignment={0: FaceAlignment.FULLY_ALIGNED, 1: FaceAlignment.PARTIALLY_ALIGNED,
                        2: FaceAlignment.PARTIALLY_ALIGNED, 3: FaceAlignment.PARTIALLY_ALIGNED,
                        4: FaceAlignment.PARTIALLY_ALIGNED},
        generating_elements={5: ("roof",)},
    )


@pytest.fixture
def gable_shell():
    """Square prism under a gable roof; faces 5 and 6 are the roof planes."""
    a, b, c, d = (0, 0, 0), (4, 0, 0), (4, 4, 0), (0, 4, 0)
    e, f, g, h = (0, 0, 8), (4, 0, 8), (4, 4, 8), (0, 4, 8)
    p, q = (2, 0, 10), (2, 4, 10)
    builder = ShellBuilder()
    builder.add_polygon([a, d, c, b])
    builder.add_polygon([a, b, f, p, e])
    builder.add_polygon([b, c, g, f])
    builder.add_polygon([c, d, h, q, g])
    builder.add_polygon([d, a, e, h])
    builder.add_polygon([e, p, q, h])
    builder.add_polygon([p, f, g, q])
    return builder.build()


@pytest.fixture
def gable_analysis(gable_shell):
    return ExtrusionAnalysis.from_shell(
        gable_shell,
        0,
        (0, 0, 1),
        face_alignment={0: FaceAlignment.FULLY_ALIGNED},
        generating_elements={5: ("roof",), 6: ("roof",)},
    )


def _slab_with_hole(hole_bottom):
    """Slab [0,10]x[0,6]x[3,7] with a square hole x[4,6] y[2,4] from z=7 down to ``hole_bottom``.

    Face ids: 0 base (x=0), 1 x=10, 2 y=0, 3 y=6, 4 bottom, 5 top, 6-9 hole
    sides and, for a recess, 10 the recess bottom.
    """
    z0, z1 = 3, 7
    through = hole_bottom <= z0
    zb = z0 if through else hole_bottom
    builder = ShellBuilder()
    for side in _box_sides(0, 10, 0, 6, z0, z1):
        builder.add_polygon(side)
    bottom_holes = [[(4, 2, z0), (6, 2, z0), (6, 4, z0), (4, 4, z0)]] if through else []
    builder.add_polygon([(0, 0, z0), (0, 6, z0), (10, 6, z0), (10, 0, z0)], bottom_holes)
    builder.add_polygon(
        [(0, 0, z1), (10, 0, z1), (10, 6, z1), (0, 6, z1)],
        [[(4, 2, z1), (4, 4, z1), (6, 4, z1), (6, 2, z1)]],
    )
    builder.add_polygon([(4, 2, zb), (4, 4, zb), (4, 4, z1), (4, 2, z1)])
    builder.add_polygon([(6, 2, zb), (6, 2, z1), (6, 4, z1), (6, 4, zb)])
    builder.add_polygon([(4, 2, zb), (4, 2, z1), (6, 2, z1), (6, 2, zb)])
    builder.add_polygon([(4, 4, zb), (6, 4, zb), (6, 4, z1), (4, 4, z1)])
    if not through:
        builder.add_polygon([(4, 2, zb), (6, 2, zb), (6, 4, zb), (4, 4, zb)])
    return builder.build()


@pytest.fixture
def through_hole_shell():
    return _slab_with_hole(3)


@pytest.fixture
def through_hole_analysis(through_hole_shell):
    return ExtrusionAnalysis.from_shell(
        through_hole_shell,
        0,
        (1, 0, 0),
        face_alignment={i: FaceAlignment.FULLY_ALIGNED for i in range(6)},
        generating_elements={i: ("window",) for i in range(6, 10)},
    )


@pytest.fixture
def recess_shell():
    return _slab_with_hole(5)


@pytest.fixture
def recess_analysis(recess_shell):
    return ExtrusionAnalysis.from_shell(
        recess_shell,
        0,
        (1, 0, 0),
        face_alignment={i: FaceAlignment.FULLY_ALIGNED for i in range(6)},
        generating_elements={i: ("niche",) for i in range(6, 11)},
    )


@pytest.fixture
def sliver_shell():
    """Bottom and top of the [0,4]x[0,4]x[0,10] box plus a sliver face 2 at z=5.

    The sliver is a triangle whose last two corners are 0.0001 apart, so its
    outline collapses to two points at the default vertex tolerance. The shell
    is built with a finer tolerance so the sliver's long sides stay separate edges.
    """
    a, b, c = np.array([0.0, 1.0, 5.0]), np.array([4.0, 1.0, 5.0]), np.array([4.0, 1.0001, 5.0])
    builder = ShellBuilder(tolerance=1e-6)
    builder.add_polygon([(0, 0, 0), (0, 4, 0), (4, 4, 0), (4, 0, 0)])
    builder.add_polygon([(0, 0, 10), (4, 0, 10), (4, 4, 10), (0, 4, 10)])
    builder.add_face(
        Surface.planar(Plane.from_normal(np.array([0.0, 0.0, 1.0]), a)),
        [[Line.create(a, b), Line(b, c), Line.create(c, a)]],
    )
    return builder.build()
