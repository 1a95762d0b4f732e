"""Grouping of cutting faces by generating element and connectivity."""

from __future__ import annotations

import logging
from collections import deque
from dataclasses import dataclass, field
from enum import Enum
from typing import Hashable, Iterator, Mapping, Sequence

import numpy as np

from brepcut.exceptions import DegenerateGeometryError, UnsupportedTopologyError
from brepcut.geometry.primitives import ExtrusionRange, Plane, Vector, normalize
from brepcut.topology.model import BrepShell

logger = logging.getLogger(__name__)

ElementId = Hashable


class FaceAlignment(str, Enum):
    """How a face of the solid relates to the plain extrusion of the base."""
    FULLY_ALIGNED = "fully_aligned"
    PARTIALLY_ALIGNED = "partially_aligned"
    UNALIGNED = "unaligned"


@dataclass
class ExtrusionAnalysis:
    """A solid seen as an extrusion of one of its faces.

    ``start_parameter`` and ``end_parameter`` are absolute positions along
    ``direction`` (dot product with the world origin as reference).
    ``face_alignment`` and ``generating_elements`` are supplied by the host:
    which faces belong to the plain extrusion, and which elements produced
    the others.
    """

    shell: BrepShell
    base_face_id: int
    direction: Vector
    start_parameter: float
    end_parameter: float
    face_alignment: dict[int, FaceAlignment] = field(default_factory=dict)
    generating_elements: dict[int, tuple[ElementId, ...]] = field(default_factory=dict)

    def __post_init__(self) -> None:
        self.direction = normalize(self.direction)
        if self.end_parameter < self.start_parameter:
            raise DegenerateGeometryError(
                f"Extrusion ends ({self.end_parameter}) before it starts ({self.start_parameter})"
            )

    @classmethod
    def from_shell(
        cls,
        shell: BrepShell,
        base_face_id: int,
        direction: Sequence[float] | Vector,
        face_alignment: Mapping[int, FaceAlignment] | None = None,
        generating_elements: Mapping[int, Sequence[ElementId]] | None = None,
    ) -> "ExtrusionAnalysis":
        """Derive the parameter span from the extent of the shell's edges."""
        unit = normalize(direction)
        values = [
            float(np.dot(point, unit))
            for edge in shell.edges.values()
            for point in edge.curve.tessellate()
        ]
        if not values:
            raise DegenerateGeometryError("Shell has no edges")
        return cls(
            shell=shell,
            base_face_id=base_face_id,
            direction=unit,
            start_parameter=min(values),
            end_parameter=max(values),
            face_alignment=dict(face_alignment or {}),
            generating_elements={k: tuple(v) for k, v in (generating_elements or {}).items()},
        )

    @property
    def length(self) -> float:
        return self.end_parameter - self.start_parameter

    @property
    def extrusion_range(self) -> ExtrusionRange:
        return ExtrusionRange(self.start_parameter, self.end_parameter)

    @property
    def base_plane(self) -> Plane | None:
        return self.shell.face(self.base_face_id).plane

    def alignment(self, face_id: int) -> FaceAlignment:
        return self.face_alignment.get(face_id, FaceAlignment.UNALIGNED)


@dataclass(frozen=True)
class FaceCollection:
    """Connected faces contributed by one cutting element."""

    element_id: ElementId
    face_ids: tuple[int, ...]

    def __len__(self) -> int:
        return len(self.face_ids)

    def __iter__(self) -> Iterator[int]:
        return iter(self.face_ids)

    def __contains__(self, face_id: object) -> bool:
        return face_id in self.face_ids


@dataclass
class CuttingFaceGroups:
    """Face collections per cutting element, plus elements that were rejected."""

    collections: dict[ElementId, list[FaceCollection]] = field(default_factory=dict)
    rejected: dict[ElementId, UnsupportedTopologyError] = field(default_factory=dict)

    def items(self) -> Iterator[tuple[ElementId, list[FaceCollection]]]:
        return iter(self.collections.items())


def split_connected(shell: BrepShell, element_id: ElementId, face_ids: Sequence[int]) -> list[FaceCollection]:
    """Partition ``face_ids`` into maximal edge-connected components.

    Faces are visited in ascending id order so the result is deterministic.
    """
    pending = set(face_ids)
    components: list[FaceCollection] = []
    for seed in sorted(pending):
        if seed not in pending:
            continue
        pending.discard(seed)
        component = [seed]
        queue = deque([seed])
        while queue:
            current = queue.popleft()
            for neighbour in sorted(shell.neighbours(current)):
                if neighbour in pending:
                    pending.discard(neighbour)
                    component.append(neighbour)
                    queue.append(neighbour)
        components.append(FaceCollection(element_id, tuple(sorted(component))))
    return components


def group_cutting_faces(analysis: ExtrusionAnalysis) -> CuttingFaceGroups:
    """Group faces that are not fully aligned by their generating elements.

    Faces without boundary loops are ignored. An element owning a face with
    more than one boundary loop is rejected with ``INNER_BOUNDARIES``; the
    other elements are still grouped.
    """
    shell = analysis.shell
    per_element: dict[ElementId, list[int]] = {}
    groups = CuttingFaceGroups()

    for face in shell.iter_faces():
        if analysis.alignment(face.id) is FaceAlignment.FULLY_ALIGNED:
            continue
        if not face.loops:
            continue
        element_ids = analysis.generating_elements.get(face.id, ())
        if not element_ids:
            logger.debug("Face %s is not aligned but has no generating element", face.id)
            continue
        for element_id in element_ids:
            if element_id in groups.rejected:
                continue
            if len(face.loops) > 1:
                logger.warning(
                    "Cutting element %s: face %s has %d boundaries", element_id, face.id, len(face.loops)
                )
                groups.rejected[element_id] = UnsupportedTopologyError(
                    "Can't handle faces with interior boundaries",
                    reason="INNER_BOUNDARIES",
                    element_id=element_id,
                    details={"face_id": str(face.id)},
                )
                per_element.pop(element_id, None)
                continue
            per_element.setdefault(element_id, []).append(face.id)

    for element_id, face_ids in per_element.items():
        groups.collections[element_id] = split_connected(shell, element_id, face_ids)
        logger.debug(
            "Cutting element %s: %d faces in %d collections",
            element_id,
            len(face_ids),
            len(groups.collections[element_id]),
        )
    return groups


__all__ = [
    "ElementId",
    "FaceAlignment",
    "ExtrusionAnalysis",
    "FaceCollection",
    "CuttingFaceGroups",
    "split_connected",
    "group_cutting_faces",
]
