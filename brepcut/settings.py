from __future__ import annotations

import os
from functools import lru_cache
from pathlib import Path
from typing import Any

import yaml
from dotenv import load_dotenv
from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from brepcut.geometry.contract import (
    ANGULAR_TOLERANCE,
    SHORT_CURVE_TOLERANCE,
    TESSELLATION_ANGLE_DEG,
    VERTEX_TOLERANCE,
)

# Load .env file from project root
_env_path = Path(__file__).parent.parent / ".env"
if _env_path.exists():
    load_dotenv(_env_path)


class ToleranceSettings(BaseModel):
    # Lengths in model units, angles in radians unless noted
    vertex_tolerance: float = Field(VERTEX_TOLERANCE, gt=0.0)
    short_curve_tolerance: float = Field(SHORT_CURVE_TOLERANCE, gt=0.0)
    angular_tolerance: float = Field(ANGULAR_TOLERANCE, gt=0.0, le=0.1)
    tessellation_angle_deg: float = Field(TESSELLATION_ANGLE_DEG, gt=0.0, le=90.0)

    @model_validator(mode="after")
    def _check_ordering(self) -> "ToleranceSettings":
        if self.short_curve_tolerance < self.vertex_tolerance:
            raise ValueError("short_curve_tolerance must not be smaller than vertex_tolerance")
        return self


class ExportSettings(BaseModel):
    schema_name: str = "IFC4"
    # IFC2x2 style output: every boundary is tessellated into line segments
    polygonal_only: bool = False
    use_face_boundary_for_end_clips: bool = True
    opening_categories: list[str] = Field(default_factory=lambda: ["Doors", "Windows"])

    @field_validator("schema_name")
    @classmethod
    def _normalize_schema(cls, value: str) -> str:
        normalized = str(value).strip().upper()
        if normalized not in {"IFC2X3", "IFC4", "IFC4X3"}:
            raise ValueError(f"Unsupported IFC schema: {value}")
        return normalized

    @field_validator("opening_categories", mode="before")
    @classmethod
    def _default_categories(cls, value: Any) -> list[str]:
        if value is None:
            return []
        if isinstance(value, str):
            return [value]
        return [str(item) for item in value]


class ImportSettings(BaseModel):
    # Solids are built with the short curve tolerance, meshes with the vertex tolerance
    create_solid: bool = True
    abort_shape_on_outer_failure: bool = False


class LoggingSettings(BaseModel):
    level: str = "INFO"
    json_format: bool = False
    log_file: Path | None = None

    @field_validator("level")
    @classmethod
    def _normalize_level(cls, value: str) -> str:
        level = str(value).strip().upper()
        if level not in {"TRACE", "DEBUG", "INFO", "SUCCESS", "WARNING", "ERROR", "CRITICAL"}:
            raise ValueError(f"Unknown log level: {value}")
        return level


class Settings(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    tolerances: ToleranceSettings = Field(default_factory=ToleranceSettings)
    export: ExportSettings = Field(default_factory=ExportSettings)
    import_: ImportSettings = Field(default_factory=ImportSettings, alias="import")
    logging: LoggingSettings = Field(default_factory=LoggingSettings)

    @property
    def import_tolerance(self) -> float:
        """Distance below which imported vertices are merged."""
        if self.import_.create_solid:
            return self.tolerances.short_curve_tolerance
        return self.tolerances.vertex_tolerance

    @classmethod
    def default(cls) -> "Settings":
        return cls()

    @classmethod
    def load(cls, path: Path | None = None) -> "Settings":
        """Load settings from YAML configuration file.
        
        Args:
            path: Optional path to configuration file. If not provided, uses
                BREPCUT_CONFIG environment variable or defaults to config/default.yaml.
        
        Returns:
            Settings instance with loaded configuration.
        
        Raises:
            FileNotFoundError: If configuration file does not exist.
            ValueError: If configuration is invalid.
        """
        config_path = path or Path(os.getenv("BREPCUT_CONFIG", "config/default.yaml"))
        if not config_path.exists():
            raise FileNotFoundError(f"Configuration file not found: {config_path}")
        with config_path.open("r", encoding="utf-8") as fp:
            payload = yaml.safe_load(fp) or {}
        try:
            return cls(**payload)
        except Exception as exc:
            raise ValueError(f"Invalid configuration: {exc}") from exc


@lru_cache(maxsize=1)
def get_settings(path: str | None = None) -> Settings:
    return Settings.load(Path(path) if path else None)


__all__ = [
    "Settings",
    "ToleranceSettings",
    "ExportSettings",
    "ImportSettings",
    "LoggingSettings",
    "get_settings",
]
