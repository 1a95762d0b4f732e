"""Custom exception hierarchy for brepcut."""

from __future__ import annotations


class BrepCutError(Exception):
    """Base exception for all brepcut-specific errors."""
    
    def __init__(self, message: str, details: dict[str, str] | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.details = details or {}


class ConfigurationError(BrepCutError):
    """Raised when configuration is invalid or missing."""
    pass


class GeometryError(BrepCutError):
    """Raised when geometry operations fail."""
    pass


class DegenerateGeometryError(GeometryError):
    """Raised when a plane, vector or loop collapses within tolerance."""
    pass


class DiscontinuousLoopError(GeometryError):
    """Raised when curves cannot be chained into a continuous loop."""
    pass


class UnsupportedTopologyError(GeometryError):
    """Raised when a cut cannot be expressed as a clipping or an opening.

    Fatal for the cut being processed only; callers skip the cut and continue.
    """

    def __init__(
        self,
        message: str,
        *,
        reason: str = "UNHANDLED",
        element_id: object | None = None,
        details: dict[str, str] | None = None,
    ) -> None:
        super().__init__(message, details)
        self.reason = reason
        self.element_id = element_id


class BoundaryImportError(GeometryError):
    """Raised when an imported boundary loop cannot be used."""
    pass


class ExportError(BrepCutError):
    """Base class for export-related errors."""
    pass


class IFCExportError(ExportError):
    """Raised when a body representation cannot be written as IFC entities."""
    pass
