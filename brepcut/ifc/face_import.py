"""Reading faceted B-reps from IFC into validated faces."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Sequence

import ifcopenshell

from brepcut.exceptions import BoundaryImportError, DegenerateGeometryError
from brepcut.geometry.primitives import Vector
from brepcut.ifc.loop_builder import FaceSetBuilder, ImportedFace, LoopResult, chain_oriented_edges
from brepcut.settings import Settings
from brepcut.topology.model import BrepShell, ShellBuilder

logger = logging.getLogger(__name__)


@dataclass
class ImportedShape:
    """Faces read from one IFC shape item."""

    entity_id: int
    faces: list[ImportedFace] = field(default_factory=list)
    dropped_faces: int = 0
    aborted: bool = False
    loop_results: list[LoopResult] = field(default_factory=list)

    @property
    def is_empty(self) -> bool:
        return not self.faces

    def to_shell(self, tolerance: float) -> BrepShell:
        """Planar shell over the imported faces; edges are shared where faces meet."""
        builder = ShellBuilder(tolerance)
        for face in self.faces:
            outer, *holes = face.loops
            try:
                builder.add_polygon(outer, holes)
            except DegenerateGeometryError as exc:
                logger.warning("#%s: face has no area, skipping (%s)", face.entity_id, exc.message)
        return builder.build()


def _coordinates(point: ifcopenshell.entity_instance) -> tuple[float, float, float]:
    coords = [float(c) for c in point.Coordinates]
    while len(coords) < 3:
        coords.append(0.0)
    return coords[0], coords[1], coords[2]


def _vertex_point(vertex: ifcopenshell.entity_instance) -> tuple[float, float, float]:
    if not vertex.is_a("IfcVertexPoint"):
        raise BoundaryImportError(f"#{vertex.id()}: unsupported vertex type {vertex.is_a()}")
    return _coordinates(vertex.VertexGeometry)


def _edge_loop_vertices(loop: ifcopenshell.entity_instance, tolerance: float) -> list[Vector]:
    edges = []
    for oriented in loop.EdgeList or []:
        edge = oriented.EdgeElement if oriented.is_a("IfcOrientedEdge") else oriented
        same_sense = bool(oriented.Orientation) if oriented.is_a("IfcOrientedEdge") else True
        edges.append((_vertex_point(edge.EdgeStart), _vertex_point(edge.EdgeEnd), same_sense))
    return chain_oriented_edges(edges, tolerance, loop.id())


def loop_vertices(loop: ifcopenshell.entity_instance, tolerance: float) -> Sequence[Sequence[float]]:
    """Raw vertices of an IfcPolyLoop, IfcEdgeLoop or IfcVertexLoop.

    Raises:
        BoundaryImportError: For other loop types or disconnected edge loops.
    """
    if loop.is_a("IfcPolyLoop"):
        return [_coordinates(p) for p in loop.Polygon or []]
    if loop.is_a("IfcEdgeLoop"):
        return _edge_loop_vertices(loop, tolerance)
    if loop.is_a("IfcVertexLoop"):
        return [_vertex_point(loop.LoopVertex)]
    raise BoundaryImportError(f"#{loop.id()}: unsupported loop type {loop.is_a()}")


def _ordered_bounds(face: ifcopenshell.entity_instance) -> list[tuple[ifcopenshell.entity_instance, bool]]:
    bounds = list(face.Bounds or [])
    outer = [b for b in bounds if b.is_a("IfcFaceOuterBound")]
    if not outer and bounds:
        # Without an explicit outer bound the first one is taken
        outer = bounds[:1]
    inner = [b for b in bounds if b not in outer]
    return [(b, True) for b in outer[:1]] + [(b, False) for b in outer[1:] + inner]


def _faces_of(entity: ifcopenshell.entity_instance) -> list[ifcopenshell.entity_instance]:
    if entity.is_a("IfcFacetedBrep") or entity.is_a("IfcManifoldSolidBrep"):
        return list(entity.Outer.CfsFaces or [])
    if entity.is_a("IfcConnectedFaceSet"):
        return list(entity.CfsFaces or [])
    if entity.is_a("IfcShellBasedSurfaceModel"):
        return [face for shell in entity.SbsmBoundary or [] for face in shell.CfsFaces or []]
    raise BoundaryImportError(f"#{entity.id()}: cannot read faces from {entity.is_a()}")


def import_faceted_brep(entity: ifcopenshell.entity_instance, settings: Settings | None = None) -> ImportedShape:
    """Read the faces of a faceted B-rep (or face set) entity.

    Each bound is validated by the loop builder. A face whose outer bound is
    unusable is dropped; unusable inner bounds are dropped on their own.

    Args:
        entity: ``IfcFacetedBrep``, ``IfcClosedShell``/``IfcOpenShell`` or
            ``IfcShellBasedSurfaceModel``.
        settings: Import tolerance and abort policy; defaults when omitted.

    Returns:
        An ``ImportedShape``. ``aborted`` is set, and ``faces`` empty, when
        ``import.abort_shape_on_outer_failure`` is on and a face failed.

    Raises:
        BoundaryImportError: If ``entity`` is not a supported shape item.
    """
    settings = settings or Settings.default()
    tolerance = settings.import_tolerance
    faces = _faces_of(entity)
    shape = ImportedShape(entity.id())

    with FaceSetBuilder(tolerance, settings.import_.abort_shape_on_outer_failure) as builder:
        for face in faces:
            builder.start_face(face.id())
            for bound, is_outer in _ordered_bounds(face):
                loop = bound.Bound
                try:
                    vertices = loop_vertices(loop, tolerance)
                except BoundaryImportError as exc:
                    result = builder.reject_loop(exc.message, is_outer, loop.id())
                else:
                    result = builder.add_loop(vertices, is_outer, bool(bound.Orientation), loop.id())
                shape.loop_results.append(result)
            builder.stop_face()
        shape.faces = builder.result_faces
        shape.dropped_faces = builder.dropped_faces
        shape.aborted = builder.shape_aborted

    if shape.aborted:
        logger.warning("#%s: outer boundary failure, shape dropped", shape.entity_id)
    elif shape.dropped_faces:
        logger.info("#%s: %d of %d faces dropped", shape.entity_id, shape.dropped_faces, len(faces))
    return shape


__all__ = ["ImportedShape", "loop_vertices", "import_faceted_brep"]
