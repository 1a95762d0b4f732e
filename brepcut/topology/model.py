"""Boundary representation model: an edge arena shared by faces.

Edges live in ``BrepShell.edges`` keyed by id. Faces reference them through
``OrientedEdge`` entries, so the two faces bounding an edge never hold
separate copies of its curve.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Iterator, Sequence

import numpy as np

from brepcut.exceptions import DegenerateGeometryError, GeometryError
from brepcut.geometry.contract import VERTEX_TOLERANCE, is_almost_equal
from brepcut.geometry.curve_loop import CurveLoop
from brepcut.geometry.curves import Curve, Line
from brepcut.geometry.primitives import Plane, Vector, as_vector, newell_normal, normalize, points_almost_equal

logger = logging.getLogger(__name__)


class SurfaceKind(str, Enum):
    PLANAR = "planar"
    CYLINDRICAL = "cylindrical"
    RULED = "ruled"
    OTHER = "other"


@dataclass(frozen=True)
class Surface:
    """Underlying surface of a face; only the data the cut engine checks."""

    kind: SurfaceKind
    plane: Plane | None = None
    axis: Vector | None = None
    rulings_parallel: bool = False

    @classmethod
    def planar(cls, plane: Plane) -> "Surface":
        return cls(SurfaceKind.PLANAR, plane=plane)

    @classmethod
    def cylindrical(cls, axis: Sequence[float] | Vector) -> "Surface":
        return cls(SurfaceKind.CYLINDRICAL, axis=normalize(axis))

    @classmethod
    def ruled(cls, rulings_parallel: bool = True) -> "Surface":
        return cls(SurfaceKind.RULED, rulings_parallel=rulings_parallel)

    @classmethod
    def other(cls) -> "Surface":
        return cls(SurfaceKind.OTHER)


@dataclass
class Edge:
    """Curve bounded by up to two faces.

    ``curve`` runs in the direction seen from ``first_face``; ``second_face``
    traverses it reversed.
    """

    id: int
    curve: Curve
    first_face: int | None = None
    second_face: int | None = None

    @property
    def faces(self) -> tuple[int | None, int | None]:
        return self.first_face, self.second_face

    def other_face(self, face_id: int) -> int | None:
        if face_id == self.first_face:
            return self.second_face
        if face_id == self.second_face:
            return self.first_face
        raise GeometryError(f"Face {face_id} does not bound edge {self.id}")


@dataclass(frozen=True)
class OrientedEdge:
    edge_id: int
    same_sense: bool = True


@dataclass
class Face:
    id: int
    surface: Surface
    # First loop is the outer boundary
    loops: list[list[OrientedEdge]] = field(default_factory=list)

    @property
    def plane(self) -> Plane | None:
        if self.surface.kind is SurfaceKind.PLANAR:
            return self.surface.plane
        return None

    @property
    def is_planar(self) -> bool:
        return self.plane is not None


class BrepShell:
    """Faces plus the edge arena they share."""

    def __init__(self) -> None:
        self.edges: dict[int, Edge] = {}
        self.faces: dict[int, Face] = {}

    def __repr__(self) -> str:
        return f"BrepShell(faces={len(self.faces)}, edges={len(self.edges)})"

    def edge(self, edge_id: int) -> Edge:
        return self.edges[edge_id]

    def face(self, face_id: int) -> Face:
        return self.faces[face_id]

    def iter_faces(self) -> Iterator[Face]:
        for face_id in sorted(self.faces):
            yield self.faces[face_id]

    def oriented_curve(self, oriented: OrientedEdge) -> Curve:
        curve = self.edges[oriented.edge_id].curve
        return curve if oriented.same_sense else curve.reversed()

    def curve_following_face(self, edge_id: int, face_id: int) -> Curve:
        """Edge curve in the direction ``face_id`` traverses it."""
        edge = self.edges[edge_id]
        if face_id == edge.first_face:
            return edge.curve
        if face_id == edge.second_face:
            return edge.curve.reversed()
        raise GeometryError(f"Face {face_id} does not bound edge {edge_id}")

    def adjacent_face(self, edge_id: int, face_id: int) -> int | None:
        return self.edges[edge_id].other_face(face_id)

    def loop_curves(self, face_id: int, loop_index: int = 0) -> list[Curve]:
        return [self.oriented_curve(oe) for oe in self.faces[face_id].loops[loop_index]]

    def face_edge_ids(self, face_id: int) -> list[int]:
        return [oe.edge_id for loop in self.faces[face_id].loops for oe in loop]

    def neighbours(self, face_id: int) -> set[int]:
        found: set[int] = set()
        for edge_id in self.face_edge_ids(face_id):
            other = self.edges[edge_id].other_face(face_id)
            if other is not None and other != face_id:
                found.add(other)
        return found

    @property
    def is_closed(self) -> bool:
        return all(e.first_face is not None and e.second_face is not None for e in self.edges.values())


class ShellBuilder:
    """Incrementally builds a ``BrepShell``, sharing coincident edges.

    A curve whose reverse matches an edge already used by one face becomes
    that edge's second use.
    """

    def __init__(self, tolerance: float = VERTEX_TOLERANCE) -> None:
        self.tolerance = tolerance
        self.shell = BrepShell()
        self._next_edge = 0
        self._next_face = 0

    def _find_reverse_edge(self, curve: Curve) -> Edge | None:
        for edge in self.shell.edges.values():
            if edge.second_face is not None:
                continue
            if (
                edge.curve.kind is curve.kind
                and points_almost_equal(edge.curve.start, curve.end, self.tolerance)
                and points_almost_equal(edge.curve.end, curve.start, self.tolerance)
                and is_almost_equal(edge.curve.length, curve.length, self.tolerance)
            ):
                return edge
        return None

    def _oriented(self, curve: Curve, face_id: int) -> OrientedEdge:
        shared = self._find_reverse_edge(curve)
        if shared is not None:
            shared.second_face = face_id
            return OrientedEdge(shared.id, same_sense=False)
        edge = Edge(self._next_edge, curve, first_face=face_id)
        self.shell.edges[edge.id] = edge
        self._next_edge += 1
        return OrientedEdge(edge.id, same_sense=True)

    def add_face(self, surface: Surface, loops: Sequence[Sequence[Curve]]) -> int:
        """Add a face bounded by ``loops`` (outer first). Returns the face id."""
        face_id = self._next_face
        self._next_face += 1
        face = Face(face_id, surface)
        for curves in loops:
            # Validates continuity and closure
            loop = CurveLoop(curves, tolerance=self.tolerance)
            if loop.is_open:
                raise DegenerateGeometryError(f"Face {face_id} has an open boundary loop")
            face.loops.append([self._oriented(curve, face_id) for curve in loop])
        self.shell.faces[face_id] = face
        return face_id

    def add_polygon(
        self,
        outer: Sequence[Sequence[float]],
        holes: Sequence[Sequence[Sequence[float]]] = (),
    ) -> int:
        """Add a planar face from vertex lists; the normal follows ``outer``'s winding."""
        points = [as_vector(p) for p in outer]
        normal = newell_normal(points)
        if float(np.linalg.norm(normal)) <= self.tolerance:
            raise DegenerateGeometryError("Polygon has no area")
        plane = Plane.from_normal(normal, points[0], x_hint=points[1] - points[0])
        loops = [_polyline(points)] + [_polyline([as_vector(p) for p in hole]) for hole in holes]
        return self.add_face(Surface.planar(plane), loops)

    def build(self) -> BrepShell:
        open_edges = sum(1 for e in self.shell.edges.values() if e.second_face is None)
        if open_edges:
            logger.debug("Shell has %d edges bounded by a single face", open_edges)
        return self.shell


def _polyline(points: Sequence[Vector]) -> list[Curve]:
    return [Line.create(points[i], points[(i + 1) % len(points)]) for i in range(len(points))]


__all__ = [
    "SurfaceKind",
    "Surface",
    "Edge",
    "OrientedEdge",
    "Face",
    "BrepShell",
    "ShellBuilder",
]
