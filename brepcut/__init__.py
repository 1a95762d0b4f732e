"""brepcut - boundary reconciliation and cut classification for extruded elements

Rebuilds the cuts other elements leave in an extruded solid as clippings
and openings of a swept-solid body representation.
"""

from .exceptions import BrepCutError, UnsupportedTopologyError
from .logging_config import setup_logging, setup_logging_from_settings
from .reconstruct.extrusion_cutter import ExtrusionCutResult, ExtrusionCutter
from .reconstruct.outcome import CutOutcome, CutStatus, ReasonCode, UnsupportedTopology
from .settings import Settings, get_settings
from .topology.cut_analyzer import ExtrusionAnalysis, FaceAlignment

__version__ = "0.1.0"

__all__ = [
    "BrepCutError",
    "UnsupportedTopologyError",
    "setup_logging",
    "setup_logging_from_settings",
    "ExtrusionCutResult",
    "ExtrusionCutter",
    "CutOutcome",
    "CutStatus",
    "ReasonCode",
    "UnsupportedTopology",
    "Settings",
    "get_settings",
    "ExtrusionAnalysis",
    "FaceAlignment",
]
