"""Result values returned by the cut pipeline.

Internal helpers raise ``UnsupportedTopologyError``; public entry points turn
it into an ``UnsupportedTopology`` diagnostic carried by the result.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Hashable

from brepcut.exceptions import DegenerateGeometryError, UnsupportedTopologyError
from brepcut.reconstruct.body import Body


class ReasonCode(str, Enum):
    INNER_BOUNDARIES = "INNER_BOUNDARIES"
    NON_PLANAR = "NON_PLANAR"
    CLIP_ORIENTATION = "CLIP_ORIENTATION"
    PERPENDICULAR_CLIP = "PERPENDICULAR_CLIP"
    OPENING_CATEGORY = "OPENING_CATEGORY"
    MISSING_FACE_COUNT = "MISSING_FACE_COUNT"
    AMBIGUOUS_PARALLEL = "AMBIGUOUS_PARALLEL"
    SEWING_FAILED = "SEWING_FAILED"
    PROFILE_MISMATCH = "PROFILE_MISMATCH"
    CURVE_MISMATCH = "CURVE_MISMATCH"
    NOT_PARALLEL = "NOT_PARALLEL"
    NOT_ORTHOGONAL = "NOT_ORTHOGONAL"
    OPEN_SHELL = "OPEN_SHELL"
    COMPLEX_BASE = "COMPLEX_BASE"
    DEGENERATE = "DEGENERATE"
    UNHANDLED = "UNHANDLED"


class CutStatus(str, Enum):
    UNCHANGED = "unchanged"
    CLIPPED = "clipped"
    OPENED = "opened"
    FULLY_CLIPPED = "fully_clipped"
    UNSUPPORTED = "unsupported"


def topology_error(
    reason: ReasonCode,
    message: str,
    element_id: Hashable | None = None,
    **details: object,
) -> UnsupportedTopologyError:
    """Build the exception raised by internal helpers."""
    return UnsupportedTopologyError(
        message,
        reason=reason.value,
        element_id=element_id,
        details={key: str(value) for key, value in details.items()},
    )


def degenerate_error(
    exc: DegenerateGeometryError,
    element_id: Hashable | None = None,
    **details: object,
) -> UnsupportedTopologyError:
    """Report geometry that collapsed within tolerance as an unsupported cut."""
    return topology_error(ReasonCode.DEGENERATE, exc.message, element_id, **{**exc.details, **details})


@dataclass(frozen=True)
class UnsupportedTopology:
    """Why a cut was skipped and which element produced it."""

    element_id: Hashable | None
    reason: ReasonCode
    message: str
    details: dict[str, str] = field(default_factory=dict)

    @classmethod
    def from_error(cls, exc: UnsupportedTopologyError, element_id: Hashable | None = None) -> "UnsupportedTopology":
        try:
            reason = ReasonCode(exc.reason)
        except ValueError:
            reason = ReasonCode.UNHANDLED
        owner = exc.element_id if exc.element_id is not None else element_id
        return cls(owner, reason, exc.message, dict(exc.details))

    def __str__(self) -> str:
        return f"[{self.reason.value}] element {self.element_id}: {self.message}"


@dataclass(frozen=True)
class CutOutcome:
    """Body after one cut.

    ``body`` is None only when the cut removed the whole extrusion. When the
    cut is unsupported the input body is returned untouched.
    """

    status: CutStatus
    body: Body | None
    diagnostic: UnsupportedTopology | None = None
    # Faces left for the opening stage by an end clip
    skipped_faces: tuple[int, ...] = ()

    @classmethod
    def unchanged(cls, body: Body) -> "CutOutcome":
        return cls(CutStatus.UNCHANGED, body)

    @classmethod
    def clipped(cls, body: Body, skipped_faces: tuple[int, ...] = ()) -> "CutOutcome":
        return cls(CutStatus.CLIPPED, body, skipped_faces=skipped_faces)

    @classmethod
    def opened(cls, body: Body) -> "CutOutcome":
        return cls(CutStatus.OPENED, body)

    @classmethod
    def fully_clipped(cls) -> "CutOutcome":
        return cls(CutStatus.FULLY_CLIPPED, None)

    @classmethod
    def unsupported(cls, body: Body | None, diagnostic: UnsupportedTopology) -> "CutOutcome":
        return cls(CutStatus.UNSUPPORTED, body, diagnostic)

    @property
    def ok(self) -> bool:
        return self.status is not CutStatus.UNSUPPORTED

    @property
    def is_fully_clipped(self) -> bool:
        return self.status is CutStatus.FULLY_CLIPPED


__all__ = [
    "ReasonCode",
    "CutStatus",
    "topology_error",
    "degenerate_error",
    "UnsupportedTopology",
    "CutOutcome",
]
