"""Export pipeline for one extruded element and the elements cutting it.

The base profile is extruded first. Each cutting element's face collections
are then tried as clippings, and whatever the clipping stage cannot use is
retried as an opening. A cut that fails is skipped with a diagnostic; the
rest of the element is still processed.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Hashable, Mapping

import numpy as np
from loguru import logger

from brepcut.exceptions import UnsupportedTopologyError
from brepcut.geometry.contract import EPS, is_almost_zero
from brepcut.geometry.primitives import ExtrusionRange, Plane
from brepcut.geometry.scope import GeometryScope, HostKernel
from brepcut.reconstruct.body import Body, ExtrudedSolid, RepresentationType, representation_type
from brepcut.reconstruct.classifier import ClassifierOptions, CutKind, classify_collection
from brepcut.reconstruct.clipping import apply_clipping
from brepcut.reconstruct.openings import synthesize_opening
from brepcut.reconstruct.outcome import CutOutcome, CutStatus, ReasonCode, UnsupportedTopology, topology_error
from brepcut.settings import Settings
from brepcut.topology.boundary import FaceBoundaryType, get_face_boundaries
from brepcut.topology.cut_analyzer import ExtrusionAnalysis, FaceCollection, group_cutting_faces


@dataclass(frozen=True)
class BaseExtrusion:
    solid: ExtrudedSolid
    plane: Plane
    extrusion_range: ExtrusionRange


@dataclass
class ExtrusionCutResult:
    """Final body of an element plus what happened to each cut.

    ``body`` is None when the element was clipped away entirely, or when
    the base extrusion could not be built (``status`` is then UNSUPPORTED).
    """

    status: CutStatus
    body: Body | None
    base: BaseExtrusion | None = None
    has_clipping_result: bool = False
    has_boolean_result: bool = False
    openings: list[ExtrudedSolid] = field(default_factory=list)
    outcomes: list[tuple[Hashable, CutOutcome]] = field(default_factory=list)
    diagnostics: list[UnsupportedTopology] = field(default_factory=list)

    @property
    def fully_clipped(self) -> bool:
        return self.status is CutStatus.FULLY_CLIPPED

    @property
    def representation_type(self) -> RepresentationType | None:
        if self.body is None:
            return None
        return representation_type(self.body)


class ExtrusionCutter:
    """Runs the clip and opening stages for extruded elements.

    Args:
        settings: Tolerances and export options; defaults when omitted.
        kernel: Host kernel releasing transient geometry copies.
    """

    def __init__(self, settings: Settings | None = None, kernel: HostKernel | None = None) -> None:
        self.settings = settings or Settings.default()
        self.kernel = kernel

    @property
    def tolerance(self) -> float:
        return self.settings.tolerances.vertex_tolerance

    def _creates_opening(self, category: str | None) -> bool:
        if not category:
            return False
        wanted = {c.lower() for c in self.settings.export.opening_categories}
        return category.lower() in wanted

    def build_base(self, analysis: ExtrusionAnalysis) -> BaseExtrusion:
        """Extrude the base face boundaries over the analysed span.

        Raises:
            UnsupportedTopologyError: ``COMPLEX_BASE`` when a base boundary
                holds curves other than lines and arcs or has no plane.
        """
        direction = analysis.direction
        base_face_plane = analysis.base_plane
        if base_face_plane is None:
            raise topology_error(ReasonCode.COMPLEX_BASE, "Extrusion base is not planar")
        shift = analysis.start_parameter - float(np.dot(base_face_plane.origin, direction))
        offset = None if is_almost_zero(shift, EPS) else shift * direction

        with GeometryScope(self.kernel) as scope:
            boundaries = [
                scope.track(b)
                for b in get_face_boundaries(analysis.shell, analysis.base_face_id, offset, tolerance=self.tolerance)
            ]
            if not boundaries:
                raise topology_error(ReasonCode.COMPLEX_BASE, "Extrusion base has no boundary")
            if any(b.boundary_type is FaceBoundaryType.COMPLEX for b in boundaries):
                raise topology_error(ReasonCode.COMPLEX_BASE, "Extrusion base boundary is not made of lines and arcs")
            outer = boundaries[0].loop
            plane = outer.plane
            if plane is None:
                raise topology_error(ReasonCode.COMPLEX_BASE, "Extrusion base boundary is not planar")
            inner = tuple(b.loop for b in boundaries[1:])
            solid = ExtrudedSolid(outer, plane, direction, analysis.length, inner_profiles=inner)

        start = float(np.dot(plane.origin, direction))
        return BaseExtrusion(solid, plane, ExtrusionRange(start, start + analysis.length))

    def _apply_element_cuts(
        self,
        analysis: ExtrusionAnalysis,
        element_id: Hashable,
        collections: list[FaceCollection],
        categories: Mapping[Hashable, str],
        result: ExtrusionCutResult,
        scope: GeometryScope,
    ) -> bool:
        """Apply the cuts of one element to ``result``.

        Returns False once the extrusion has been clipped away entirely.
        """
        base = result.base
        log = logger.bind(element_id=str(element_id))
        options = ClassifierOptions(
            creates_opening=self._creates_opening(categories.get(element_id)),
            polygonal_only=self.settings.export.polygonal_only,
            tolerance=self.tolerance,
            angular_tolerance=self.settings.tolerances.angular_tolerance,
            max_angle_deg=self.settings.tolerances.tessellation_angle_deg,
        )
        unhandled: list[FaceCollection] = []

        # Clippings first, then openings
        for collection in collections:
            classification = classify_collection(
                analysis.shell, collection, base.extrusion_range, analysis.direction, options
            )
            for face in classification.clip_faces:
                scope.track(face.loop)
            if not classification.ok or classification.kind is CutKind.OPENING:
                unhandled.append(collection)
                continue
            if classification.kind is CutKind.INERT:
                result.outcomes.append((element_id, CutOutcome.unchanged(result.body)))
                continue

            outcome = apply_clipping(
                classification,
                result.body,
                base.plane,
                analysis.direction,
                base.extrusion_range,
                self.settings.export.use_face_boundary_for_end_clips,
            )
            if outcome.is_fully_clipped:
                log.info("Element clips the extrusion away entirely")
                result.outcomes.append((element_id, outcome))
                result.status = CutStatus.FULLY_CLIPPED
                result.body = None
                return False
            if not outcome.ok:
                unhandled.append(collection)
                continue
            result.outcomes.append((element_id, outcome))
            if outcome.body is not result.body:
                result.has_clipping_result = True
                result.body = outcome.body
            if outcome.skipped_faces:
                unhandled.append(FaceCollection(element_id, outcome.skipped_faces))

        for collection in unhandled:
            opening = synthesize_opening(
                analysis.shell,
                collection.face_ids,
                analysis.direction,
                result.body,
                element_id,
                self.tolerance,
            )
            for profile in opening.profiles:
                scope.track(profile.loop)
            outcome = opening.as_outcome()
            result.outcomes.append((element_id, outcome))
            if not opening.ok:
                result.diagnostics.append(opening.diagnostic)
                log.warning("Cut skipped, faces {}", list(collection.face_ids))
                continue
            result.body = opening.body
            result.has_boolean_result = True
            result.openings.append(opening.solid)
        return True

    def process(
        self,
        analysis: ExtrusionAnalysis,
        element_categories: Mapping[Hashable, str] | None = None,
        level_range: ExtrusionRange | None = None,
    ) -> ExtrusionCutResult:
        """Build the base extrusion and apply every cut.

        Args:
            analysis: The element's solid seen as an extrusion.
            element_categories: Category name per cutting element; categories
                listed in ``export.opening_categories`` are never clipped.
            level_range: Optional range along the extrusion direction the
                element must overlap; otherwise it is clipped away entirely.

        Returns:
            An ``ExtrusionCutResult``.
        """
        categories = element_categories or {}
        try:
            base = self.build_base(analysis)
        except UnsupportedTopologyError as exc:
            diagnostic = UnsupportedTopology.from_error(exc)
            logger.bind(reason=diagnostic.reason.value).warning("Cannot extrude base: {}", diagnostic)
            return ExtrusionCutResult(CutStatus.UNSUPPORTED, None, diagnostics=[diagnostic])

        extrusion_range = base.extrusion_range
        if level_range is not None and not extrusion_range.overlaps(level_range):
            logger.info("Extrusion {} lies outside level range {}", extrusion_range, level_range)
            return ExtrusionCutResult(CutStatus.FULLY_CLIPPED, None, base=base)

        result = ExtrusionCutResult(CutStatus.UNCHANGED, base.solid, base=base)
        groups = group_cutting_faces(analysis)
        for element_id, error in groups.rejected.items():
            result.diagnostics.append(UnsupportedTopology.from_error(error, element_id))

        # Clip face outlines and opening profiles are copies taken from the shell
        with GeometryScope(self.kernel) as scope:
            for element_id, collections in groups.items():
                if not self._apply_element_cuts(analysis, element_id, collections, categories, result, scope):
                    return result

        if result.has_boolean_result:
            result.status = CutStatus.OPENED
        elif result.has_clipping_result:
            result.status = CutStatus.CLIPPED
        logger.debug(
            "Extrusion processed: status={}, clippings={}, openings={}, skipped={}",
            result.status.value,
            result.has_clipping_result,
            len(result.openings),
            len(result.diagnostics),
        )
        return result


__all__ = ["BaseExtrusion", "ExtrusionCutResult", "ExtrusionCutter"]
