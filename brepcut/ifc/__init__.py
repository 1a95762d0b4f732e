"""IFC import and export of B-rep faces and body representations.

The reader validates faceted B-rep loops before they reach a shell builder;
the writer turns body trees produced by the cut pipeline into IFC4 entities.
"""

from .body_writer import IfcBodyWriter, create_model
from .face_import import ImportedShape, import_faceted_brep, loop_vertices
from .loop_builder import (
    FaceSetBuilder,
    ImportedFace,
    LoopResult,
    LoopStatus,
    build_loop,
    chain_oriented_edges,
    dedupe_vertices,
)

__all__ = [
    "IfcBodyWriter",
    "create_model",
    "ImportedShape",
    "import_faceted_brep",
    "loop_vertices",
    "FaceSetBuilder",
    "ImportedFace",
    "LoopResult",
    "LoopStatus",
    "build_loop",
    "chain_oriented_edges",
    "dedupe_vertices",
]
