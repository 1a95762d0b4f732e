"""Validation of imported boundary loops and collection of faces.

Imported loops are deduplicated against a distance tolerance before they
are handed to a shape builder. A loop that collapses is dropped; when it
was the outer boundary of its face the whole face is dropped with it.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Hashable, Sequence

import numpy as np

from brepcut.exceptions import BoundaryImportError
from brepcut.geometry.contract import MIN_LOOP_VERTICES, SHORT_CURVE_TOLERANCE
from brepcut.geometry.primitives import Vector, as_vector, distance

logger = logging.getLogger(__name__)


class LoopStatus(str, Enum):
    OK = "ok"
    # Too few distinct vertices; only this loop is dropped
    DEGRADED = "degraded"
    # Unusable input (empty or self-intersecting)
    ABORTED = "aborted"


@dataclass(frozen=True)
class LoopResult:
    vertices: tuple[Vector, ...]
    status: LoopStatus
    message: str = ""
    removed: int = 0

    @property
    def ok(self) -> bool:
        return self.status is LoopStatus.OK


def dedupe_vertices(
    vertices: Sequence[Vector],
    tolerance: float,
    entity_id: Hashable | None = None,
) -> tuple[list[Vector], int]:
    """Drop vertices closer than ``tolerance`` to the previously kept one.

    The comparison wraps around, so a closing vertex equal to the first one
    is removed as well.
    """
    count = len(vertices)
    kept: list[Vector] = []
    removed = 0
    last = 0
    for idx in range(1, count + 1):
        current = idx % count
        dist = distance(vertices[last], vertices[current])
        if dist >= tolerance:
            kept.append(vertices[last])
            last = current
        else:
            removed += 1
            logger.debug(
                "#%s: distance between vertices %d and %d is %.6f, below %.6f; removing second point",
                entity_id, last, current, dist, tolerance,
            )
    return kept, removed


def _repeated_vertex(vertices: Sequence[Vector], tolerance: float) -> tuple[int, int] | None:
    for i in range(len(vertices)):
        for j in range(i + 2, len(vertices)):
            if i == 0 and j == len(vertices) - 1:
                continue
            if distance(vertices[i], vertices[j]) < tolerance:
                return i, j
    return None


def build_loop(
    vertices: Sequence[Sequence[float]],
    tolerance: float = SHORT_CURVE_TOLERANCE,
    orientation: bool = True,
    entity_id: Hashable | None = None,
) -> LoopResult:
    """Turn raw loop vertices into a validated vertex sequence.

    Args:
        vertices: Loop vertices, optionally closed by repeating the first.
        tolerance: Vertices closer than this are merged.
        orientation: False reverses the loop.
        entity_id: Source entity, for log messages.

    Returns:
        A ``LoopResult``. The vertex order is preserved apart from the
        reversal requested by ``orientation``.
    """
    points = [as_vector(v) for v in vertices]
    if not points:
        logger.warning("#%s: missing loop vertices, ignoring", entity_id)
        return LoopResult((), LoopStatus.ABORTED, "missing loop vertices")
    if len(points) < MIN_LOOP_VERTICES:
        logger.info("#%s: too few loop vertices (%d), ignoring", entity_id, len(points))
        return LoopResult(tuple(points), LoopStatus.DEGRADED, f"too few loop vertices ({len(points)})")

    if not orientation:
        points.reverse()

    kept, removed = dedupe_vertices(points, tolerance, entity_id)
    if len(kept) < MIN_LOOP_VERTICES:
        logger.info("#%s: too few distinct loop vertices (%d), ignoring", entity_id, len(kept))
        return LoopResult(
            tuple(kept), LoopStatus.DEGRADED, f"too few distinct loop vertices ({len(kept)})", removed
        )

    repeated = _repeated_vertex(kept, tolerance)
    if repeated is not None:
        logger.warning("#%s: loop is self-intersecting at vertices %d and %d, ignoring", entity_id, *repeated)
        return LoopResult(tuple(kept), LoopStatus.ABORTED, "loop is self-intersecting", removed)

    return LoopResult(tuple(kept), LoopStatus.OK, removed=removed)


def chain_oriented_edges(
    edges: Sequence[tuple[Sequence[float], Sequence[float], bool]],
    tolerance: float = SHORT_CURVE_TOLERANCE,
    entity_id: Hashable | None = None,
) -> list[Vector]:
    """Vertices of an edge loop given as ``(start, end, same_sense)`` triples.

    Raises:
        BoundaryImportError: If consecutive edges do not connect.
    """
    points: list[Vector] = []
    previous_end: Vector | None = None
    for index, (start, end, same_sense) in enumerate(edges):
        head, tail = (as_vector(start), as_vector(end)) if same_sense else (as_vector(end), as_vector(start))
        if previous_end is not None and distance(previous_end, head) >= tolerance:
            raise BoundaryImportError(
                f"#{entity_id}: edge {index} does not start where edge {index - 1} ends",
                {"gap": f"{distance(previous_end, head):.6f}"},
            )
        points.append(head)
        previous_end = tail
    if points and previous_end is not None and distance(previous_end, points[0]) >= tolerance:
        raise BoundaryImportError(f"#{entity_id}: edge loop is not closed")
    return points


@dataclass
class ImportedFace:
    entity_id: Hashable | None
    loops: list[tuple[Vector, ...]] = field(default_factory=list)
    material: Any = None


class FaceSetBuilder:
    """Collects validated faces for one shape.

    Used as a context manager around one face set. Vertices are welded to
    previously seen vertices of the same set so adjacent faces share them.

    Args:
        tolerance: Merge distance for vertices.
        abort_shape_on_outer_failure: Drop the whole shape, not only the
            face, when an outer boundary is unusable.
    """

    def __init__(self, tolerance: float = SHORT_CURVE_TOLERANCE, abort_shape_on_outer_failure: bool = False) -> None:
        self.tolerance = tolerance
        self.abort_shape_on_outer_failure = abort_shape_on_outer_failure
        self.faces: list[ImportedFace] = []
        self.shape_aborted = False
        self.dropped_faces = 0
        self._vertices: dict[tuple[int, int, int], list[Vector]] = {}
        self._current: ImportedFace | None = None
        self._current_aborted = False
        self._open = False

    def __enter__(self) -> "FaceSetBuilder":
        self.start_face_set()
        return self

    def __exit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        self.stop_face_set()

    def start_face_set(self) -> None:
        self.faces.clear()
        self._vertices.clear()
        self.shape_aborted = False
        self.dropped_faces = 0
        self._open = True

    def stop_face_set(self) -> None:
        if not self._open:
            raise RuntimeError("start_face_set has not been called")
        self._current = None
        self._vertices.clear()
        self._open = False

    def start_face(self, entity_id: Hashable | None = None, material: Any = None) -> None:
        if not self._open:
            raise RuntimeError("start_face_set has not been called")
        self._current = ImportedFace(entity_id, material=material)
        self._current_aborted = False

    def _key(self, point: Vector) -> tuple[int, int, int]:
        scaled = np.floor(point / self.tolerance).astype(int)
        return int(scaled[0]), int(scaled[1]), int(scaled[2])

    def _weld(self, point: Vector) -> Vector:
        base = self._key(point)
        for dx in (-1, 0, 1):
            for dy in (-1, 0, 1):
                for dz in (-1, 0, 1):
                    for known in self._vertices.get((base[0] + dx, base[1] + dy, base[2] + dz), ()):
                        if distance(known, point) < self.tolerance:
                            return known
        # Several distinct vertices may fall into one cell
        self._vertices.setdefault(base, []).append(point)
        return point

    def add_loop(
        self,
        vertices: Sequence[Sequence[float]],
        is_outer: bool = False,
        orientation: bool = True,
        entity_id: Hashable | None = None,
    ) -> LoopResult:
        """Validate and add one boundary loop to the current face."""
        if self._current is None:
            raise RuntimeError("start_face has not been called")
        result = build_loop(vertices, self.tolerance, orientation, entity_id)
        if result.ok and not self._current_aborted:
            self._current.loops.append(tuple(self._weld(v) for v in result.vertices))
        elif not result.ok and is_outer:
            self.abort_current_face()
        return result

    def reject_loop(self, message: str, is_outer: bool = False, entity_id: Hashable | None = None) -> LoopResult:
        """Record a loop that could not be read at all."""
        if self._current is None:
            raise RuntimeError("start_face has not been called")
        logger.warning("#%s: %s, ignoring loop", entity_id, message)
        if is_outer:
            self.abort_current_face()
        return LoopResult((), LoopStatus.ABORTED, message)

    def abort_current_face(self) -> None:
        """Drop the face being collected; later loops of it are ignored."""
        if self._current is None:
            return
        logger.info("#%s: outer boundary unusable, dropping face", self._current.entity_id)
        self._current.loops.clear()
        self._current_aborted = True
        if self.abort_shape_on_outer_failure:
            self.shape_aborted = True

    def stop_face(self) -> ImportedFace | None:
        if self._current is None:
            raise RuntimeError("start_face has not been called")
        face, self._current = self._current, None
        if self._current_aborted or not face.loops:
            self.dropped_faces += 1
            return None
        self.faces.append(face)
        return face

    @property
    def result_faces(self) -> list[ImportedFace]:
        """Collected faces, or nothing when the shape was aborted."""
        return [] if self.shape_aborted else list(self.faces)


__all__ = [
    "LoopStatus",
    "LoopResult",
    "dedupe_vertices",
    "build_loop",
    "chain_oriented_edges",
    "ImportedFace",
    "FaceSetBuilder",
]
