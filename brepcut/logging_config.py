"""Structured logging configuration for brepcut."""

from __future__ import annotations

import json
import logging
import sys
from pathlib import Path
from typing import Any

from loguru import logger

from brepcut.settings import Settings


class JSONFormatter:
    """JSON formatter for structured logging."""
    
    def __call__(self, record: dict[str, Any]) -> str:
        """Serialize the record into extra and return the loguru template."""
        log_data = {
            "timestamp": record["time"].isoformat(),
            "level": record["level"].name,
            "message": record["message"],
            "module": record.get("module", ""),
            "function": record.get("function", ""),
            "line": record.get("line", 0),
        }
        
        # Add exception info if present
        if record.get("exception"):
            log_data["exception"] = {
                "type": record["exception"].type.__name__ if record["exception"].type else None,
                "value": str(record["exception"].value) if record["exception"].value else None,
            }
        
        # element_id, reason, entity_id etc. bound via logger.bind()
        extra = {key: str(value) for key, value in record["extra"].items() if key != "serialized"}
        log_data.update(extra)
        
        record["extra"]["serialized"] = json.dumps(log_data, ensure_ascii=False)
        return "{extra[serialized]}\n"


class InterceptHandler(logging.Handler):
    """Route standard library log records into loguru."""

    def emit(self, record: logging.LogRecord) -> None:
        try:
            level: str | int = logger.level(record.levelname).name
        except ValueError:
            level = record.levelno
        logger.opt(depth=6, exception=record.exc_info).log(level, record.getMessage())


def setup_logging(
    *,
    level: str = "INFO",
    json_format: bool = False,
    log_file: Path | None = None,
) -> None:
    """Configure logging for the application.
    
    Args:
        level: Log level (DEBUG, INFO, WARNING, ERROR, CRITICAL).
        json_format: Whether to use JSON formatting (useful for batch runs).
        log_file: Optional path to log file. If None, logs only to stderr.
    """
    # Remove default handler
    logger.remove()
    
    # Determine format
    if json_format:
        formatter: Any = JSONFormatter()
    else:
        formatter = (
            "<green>{time:YYYY-MM-DD HH:mm:ss}</green> | "
            "<level>{level: <8}</level> | "
            "<cyan>{name}</cyan>:<cyan>{function}</cyan>:<cyan>{line}</cyan> | "
            "<level>{message}</level>"
        )
    
    # Add console handler
    logger.add(
        sys.stderr,
        format=formatter,
        level=level,
        colorize=not json_format,
    )
    
    # Add file handler if specified
    if log_file:
        log_file.parent.mkdir(parents=True, exist_ok=True)
        logger.add(
            log_file,
            format=formatter,
            level=level,
            rotation="10 MB",
            retention="7 days",
            compression="zip",
        )

    # geometry and ifc modules use stdlib loggers
    logging.basicConfig(handlers=[InterceptHandler()], level=0, force=True)


def setup_logging_from_settings(settings: Settings) -> None:
    """Configure logging from the ``logging`` section of ``settings``."""
    setup_logging(
        level=settings.logging.level,
        json_format=settings.logging.json_format,
        log_file=settings.logging.log_file,
    )
