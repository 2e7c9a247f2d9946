"""
Configuration management with typed Pydantic models.

Provides YAML loading with environment interpolation and base-file
inheritance for the intake service.
"""

from detection_intake.config.loader import build_config, load_config
from detection_intake.config.settings import (
    DatabaseConfig,
    FieldMapEntry,
    IntakeConfig,
    LoggingConfig,
    PathsConfig,
    ScheduleConfig,
)

__all__ = [
    "DatabaseConfig",
    "FieldMapEntry",
    "IntakeConfig",
    "LoggingConfig",
    "PathsConfig",
    "ScheduleConfig",
    "build_config",
    "load_config",
]
