"""Writing body representations as IFC geometry.

Profiles are written in the 2D coordinates of their extrusion position.
Conic and spline segments become ``IfcTrimmedCurve`` and
``IfcBSplineCurveWithKnots`` parts of an ``IfcCompositeCurve``; purely
straight profiles (or every profile, with ``polygonal_only``) are written as
``IfcPolyline``.
"""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass, field
from typing import Any, Sequence

import ifcopenshell
import ifcopenshell.api

from brepcut.exceptions import IFCExportError
from brepcut.geometry.contract import EPS, TESSELLATION_ANGLE_DEG
from brepcut.geometry.curve_loop import CurveLoop
from brepcut.geometry.curves import Arc, Curve, CurveKind, Ellipse, Line, Spline
from brepcut.geometry.primitives import Plane, must_flip_curve, normalize
from brepcut.reconstruct.body import (
    Body,
    BooleanClippingResult,
    BooleanResult,
    ExtrudedSolid,
    HalfSpace,
    PolygonalBoundedHalfSpace,
    RepresentationType,
    representation_type,
)
from brepcut.settings import Settings

logger = logging.getLogger(__name__)


def create_model(settings: Settings | None = None) -> ifcopenshell.file:
    """Empty IFC file in the schema named by ``export.schema_name``."""
    schema_version = (settings or Settings.default()).export.schema_name
    # ifcopenshell.api.project.create_file expects `version`, not `schema`
    return ifcopenshell.api.run("project.create_file", version=schema_version)


def _knot_multiplicities(knots: Sequence[float]) -> tuple[list[int], list[float]]:
    multiplicities: list[int] = []
    values: list[float] = []
    for knot in knots:
        if values and abs(knot - values[-1]) <= EPS:
            multiplicities[-1] += 1
        else:
            values.append(float(knot))
            multiplicities.append(1)
    return multiplicities, values


@dataclass
class IfcBodyWriter:
    """Creates IFC entities for ``Body`` trees in ``model``.

    Args:
        model: Target IFC file.
        context: Representation context; the first geometric context of the
            model is used (or one is created) when omitted.
        polygonal_only: Tessellate every profile into a polyline.
        tessellation_angle_deg: Maximum sweep per segment when tessellating.
    """

    model: ifcopenshell.file
    context: Any = None
    polygonal_only: bool = False
    tessellation_angle_deg: float = TESSELLATION_ANGLE_DEG
    written: int = field(default=0, init=False)

    @classmethod
    def from_settings(cls, model: ifcopenshell.file, settings: Settings, context: Any = None) -> "IfcBodyWriter":
        """Writer using the export and tolerance sections of ``settings``."""
        return cls(
            model,
            context=context,
            polygonal_only=settings.export.polygonal_only,
            tessellation_angle_deg=settings.tolerances.tessellation_angle_deg,
        )

    # -- basic entities -----------------------------------------------------

    def _point(self, coords: Sequence[float]) -> Any:
        return self.model.create_entity("IfcCartesianPoint", Coordinates=tuple(float(c) for c in coords))

    def _direction(self, coords: Sequence[float]) -> Any:
        return self.model.create_entity("IfcDirection", DirectionRatios=tuple(float(c) for c in coords))

    def _axis2placement(self, plane: Plane) -> Any:
        return self.model.create_entity(
            "IfcAxis2Placement3D",
            Location=self._point(plane.origin),
            Axis=self._direction(plane.normal),
            RefDirection=self._direction(plane.x_dir),
        )

    def _axis2placement_2d(self, origin: Sequence[float], x_dir: Sequence[float]) -> Any:
        return self.model.create_entity(
            "IfcAxis2Placement2D",
            Location=self._point(origin),
            RefDirection=self._direction(x_dir),
        )

    def _polyline(self, points: Sequence[Sequence[float]], close: bool = True) -> Any:
        coords = [tuple(p) for p in points]
        if close and coords and coords[0] != coords[-1]:
            coords.append(coords[0])
        return self.model.create_entity("IfcPolyline", Points=[self._point(c) for c in coords])

    def ensure_context(self) -> Any:
        if self.context is not None:
            return self.context
        contexts = [
            c for c in self.model.by_type("IfcGeometricRepresentationContext")
            if not c.is_a("IfcGeometricRepresentationSubContext")
        ]
        if contexts:
            self.context = contexts[0]
        else:
            self.context = self.model.create_entity(
                "IfcGeometricRepresentationContext",
                ContextType="Model",
                CoordinateSpaceDimension=3,
                Precision=1.0e-5,
                WorldCoordinateSystem=self._axis2placement(Plane.default()),
            )
        return self.context

    # -- profile curves -----------------------------------------------------

    def _trimmed_conic(self, curve: Arc | Ellipse, plane: Plane) -> Any:
        flip = must_flip_curve(plane, curve.x_dir, curve.y_dir)
        basis_curve = curve.reversed() if flip else curve
        centre = plane.project_point(basis_curve.center)
        x_local = normalize((*plane.to_local_vector(basis_curve.x_dir), 0.0))[:2]
        position = self._axis2placement_2d(centre, x_local)
        if isinstance(curve, Arc):
            basis = self.model.create_entity("IfcCircle", Position=position, Radius=float(curve.radius))
        else:
            basis = self.model.create_entity(
                "IfcEllipse", Position=position, SemiAxis1=float(curve.radius_x), SemiAxis2=float(curve.radius_y)
            )
        # A reversed basis is traversed clockwise from its end angle
        first, second = (
            (basis_curve.end_angle, basis_curve.start_angle) if flip else (basis_curve.start_angle, basis_curve.end_angle)
        )
        return self.model.create_entity(
            "IfcTrimmedCurve",
            BasisCurve=basis,
            Trim1=[self.model.create_entity("IfcParameterValue", math.degrees(first))],
            Trim2=[self.model.create_entity("IfcParameterValue", math.degrees(second))],
            SenseAgreement=not flip,
            MasterRepresentation="PARAMETER",
        )

    def _bspline(self, curve: Spline, plane: Plane) -> Any:
        multiplicities, knots = _knot_multiplicities(curve.knots)
        attributes = dict(
            Degree=curve.degree,
            ControlPointsList=[self._point(plane.project_point(p)) for p in curve.control_points],
            CurveForm="UNSPECIFIED",
            ClosedCurve=False,
            SelfIntersect=False,
            KnotMultiplicities=multiplicities,
            Knots=knots,
            KnotSpec="UNSPECIFIED",
        )
        if any(abs(w - 1.0) > EPS for w in curve.weights):
            return self.model.create_entity(
                "IfcRationalBSplineCurveWithKnots", WeightsData=[float(w) for w in curve.weights], **attributes
            )
        return self.model.create_entity("IfcBSplineCurveWithKnots", **attributes)

    def _segment(self, curve: Curve, plane: Plane) -> Any:
        if isinstance(curve, Line):
            return self._polyline([plane.project_point(curve.start), plane.project_point(curve.end)], close=False)
        if isinstance(curve, (Arc, Ellipse)):
            return self._trimmed_conic(curve, plane)
        if isinstance(curve, Spline):
            return self._bspline(curve, plane)
        raise IFCExportError(f"Cannot write curve of type {type(curve).__name__}")

    def profile_curve(self, loop: CurveLoop, plane: Plane) -> Any:
        """2D outline of ``loop`` in the coordinates of ``plane``."""
        if loop.is_empty:
            raise IFCExportError("Cannot write an empty profile")
        if self.polygonal_only or all(c.kind is CurveKind.LINE for c in loop):
            return self._polyline([plane.project_point(p) for p in loop.vertices(self.tessellation_angle_deg)])
        segments = [
            self.model.create_entity(
                "IfcCompositeCurveSegment", Transition="CONTINUOUS", SameSense=True, ParentCurve=self._segment(c, plane)
            )
            for c in loop
        ]
        return self.model.create_entity("IfcCompositeCurve", Segments=segments, SelfIntersect=False)

    def _profile_def(self, solid: ExtrudedSolid) -> Any:
        outer = self.profile_curve(solid.profile, solid.position)
        if not solid.inner_profiles:
            return self.model.create_entity("IfcArbitraryClosedProfileDef", ProfileType="AREA", OuterCurve=outer)
        return self.model.create_entity(
            "IfcArbitraryProfileDefWithVoids",
            ProfileType="AREA",
            OuterCurve=outer,
            InnerCurves=[self.profile_curve(loop, solid.position) for loop in solid.inner_profiles],
        )

    # -- solids -------------------------------------------------------------

    def write_extrusion(self, solid: ExtrudedSolid) -> Any:
        plane = solid.position
        # Direction relative to the position frame
        local_direction = (*plane.to_local_vector(solid.direction), float(solid.direction @ plane.normal))
        return self.model.create_entity(
            "IfcExtrudedAreaSolid",
            SweptArea=self._profile_def(solid),
            Position=self._axis2placement(plane),
            ExtrudedDirection=self._direction(local_direction),
            Depth=float(solid.depth),
        )

    def write_half_space(self, half_space: HalfSpace) -> Any:
        surface = self.model.create_entity("IfcPlane", Position=self._axis2placement(half_space.plane))
        if isinstance(half_space, PolygonalBoundedHalfSpace):
            return self.model.create_entity(
                "IfcPolygonalBoundedHalfSpace",
                BaseSurface=surface,
                AgreementFlag=bool(half_space.agreement_flag),
                Position=self._axis2placement(half_space.position),
                PolygonalBoundary=self._polyline(half_space.boundary),
            )
        return self.model.create_entity(
            "IfcHalfSpaceSolid", BaseSurface=surface, AgreementFlag=bool(half_space.agreement_flag)
        )

    def write_body(self, body: Body) -> Any:
        """Representation item for ``body``, operands written depth first."""
        if isinstance(body, ExtrudedSolid):
            item = self.write_extrusion(body)
        elif isinstance(body, HalfSpace):
            item = self.write_half_space(body)
        elif isinstance(body, BooleanResult):
            ifc_class = "IfcBooleanClippingResult" if isinstance(body, BooleanClippingResult) else "IfcBooleanResult"
            item = self.model.create_entity(
                ifc_class,
                Operator=body.operator.value,
                FirstOperand=self.write_body(body.first),
                SecondOperand=self.write_body(body.second),
            )
        else:
            raise IFCExportError(f"Cannot write body of type {type(body).__name__}")
        self.written += 1
        return item

    def write_representation(self, body: Body, identifier: str = "Body") -> Any:
        rep_type: RepresentationType = representation_type(body)
        item = self.write_body(body)
        logger.debug("Writing %s representation (%s)", rep_type.value, item.is_a())
        return self.model.create_entity(
            "IfcShapeRepresentation",
            ContextOfItems=self.ensure_context(),
            RepresentationIdentifier=identifier,
            RepresentationType=rep_type.value,
            Items=[item],
        )

    def assign_body(self, product: Any, body: Body) -> Any:
        """Replace the representation of ``product`` with ``body``."""
        representation = self.write_representation(body)
        product.Representation = self.model.create_entity(
            "IfcProductDefinitionShape", Representations=[representation]
        )
        return representation

    def write_opening(self, host: Any, solid: ExtrudedSolid, name: str = "Opening") -> Any:
        """Create an ``IfcOpeningElement`` shaped by ``solid`` that voids ``host``."""
        try:
            opening = ifcopenshell.api.run("root.create_entity", self.model, ifc_class="IfcOpeningElement", name=name)
            self.assign_body(opening, solid)
            ifcopenshell.api.run("feature.add_feature", self.model, feature=opening, element=host)
        except (RuntimeError, TypeError, ValueError) as exc:
            raise IFCExportError(f"Failed to create opening in #{host.id()}", {"error": str(exc)}) from exc
        return opening


__all__ = ["IfcBodyWriter", "create_model"]
