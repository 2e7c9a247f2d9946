"""
Typed configuration models using Pydantic.

All configuration is defined here with explicit typing and validation.
Field names follow the YAML layout; the camelCase names used by older
deployment files are accepted as aliases.
"""

import re
from pathlib import Path

from pydantic import BaseModel, ConfigDict, Field, field_validator

from detection_intake.exceptions import ErrorCategory

_DAILY_AT_PATTERN = re.compile(r"^([01]?\d|2[0-3]):([0-5]\d)$")


class FieldMapEntry(BaseModel):
    """
    Filename-to-schema rule.

    A file matches when the part of its name at position ``spacing``
    (splitting on ``_``) equals ``match_token``.
    """

    model_config = ConfigDict(frozen=True)

    match_token: str = Field(description="Literal filename part to match")
    spacing: int = Field(ge=0, description="Zero-based index of the filename part")
    fields: list[str] = Field(
        min_length=1, description="Ordered column names for matching files"
    )

    @field_validator("fields")
    @classmethod
    def validate_fields(cls, v: list[str]) -> list[str]:
        """Reject blank column names."""
        blank = [i for i, name in enumerate(v) if not name.strip()]
        if blank:
            msg = f"Field names must not be blank (positions {blank})"
            raise ValueError(msg)
        return v


class PathsConfig(BaseModel):
    """Intake, archive and quarantine directories."""

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    source: Path = Field(
        alias="sourceZipDirectory", description="Watched intake directory"
    )
    destination: Path = Field(
        default=Path("./data/archive"),
        alias="destinationZipDirectory",
        description="Where zipped intake snapshots are moved",
    )
    misc_errors: Path = Field(
        default=Path("./data/errors/misc"),
        alias="miscErrorDirectory",
        description="Quarantine for parse, coercion and validation failures",
    )
    db_insertion_errors: Path = Field(
        default=Path("./data/errors/db_insertion"),
        alias="dbInsertionErrorDirectory",
        description="Quarantine for files with rows the store rejected",
    )
    field_config_errors: Path = Field(
        default=Path("./data/errors/field_config"),
        alias="fieldConfigErrorDirectory",
        description="Quarantine for files without a field mapping",
    )

    def error_directory(self, category: ErrorCategory) -> Path:
        """Return the quarantine directory for an error category."""
        return {
            ErrorCategory.FIELD_CONFIG: self.field_config_errors,
            ErrorCategory.MISC: self.misc_errors,
            ErrorCategory.DB_INSERTION: self.db_insertion_errors,
        }[category]

    def all_directories(self) -> list[Path]:
        """All directories that must exist before a run."""
        return [
            self.source,
            self.destination,
            self.misc_errors,
            self.db_insertion_errors,
            self.field_config_errors,
        ]


class ScheduleConfig(BaseModel):
    """Timer configuration for the scheduled cycle."""

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    enabled: bool = Field(default=True, alias="isEnabled")
    daily_at: str | None = Field(
        default=None, alias="dailyAt", description="Run daily at HH:MM"
    )
    every_x_hours: int | None = Field(
        default=None, ge=1, le=23, alias="everyXHours"
    )
    every_x_minutes: int | None = Field(
        default=None, ge=1, le=59, alias="everyXMinutes"
    )
    run_process_files: bool = Field(default=True, alias="runProcessFiles")
    run_zip_and_move: bool = Field(default=True, alias="runZipAndMove")
    run_empty_directory: bool = Field(default=True, alias="runEmptyTheDirectory")

    @field_validator("daily_at")
    @classmethod
    def validate_daily_at(cls, v: str | None) -> str | None:
        """Ensure daily_at is a valid HH:MM time."""
        if v is not None and not _DAILY_AT_PATTERN.match(v):
            msg = f"daily_at must be HH:MM, got: {v!r}"
            raise ValueError(msg)
        return v

    @property
    def daily_time(self) -> tuple[int, int] | None:
        """(hour, minute) for daily_at, if set."""
        if self.daily_at is None:
            return None
        hour, minute = self.daily_at.split(":")
        return int(hour), int(minute)

    def validate_schedule(self) -> None:
        """Ensure exactly one scheduling option is set."""
        options = [self.daily_at, self.every_x_hours, self.every_x_minutes]
        if sum(option is not None for option in options) != 1:
            msg = (
                "Invalid scheduling configuration: exactly one of 'daily_at', "
                "'every_x_hours', or 'every_x_minutes' must be set."
            )
            raise ValueError(msg)


class DatabaseConfig(BaseModel):
    """Relational store connection settings."""

    model_config = ConfigDict(frozen=True)

    url: str = Field(
        default="sqlite:///./db/dev.db", description="SQLAlchemy database URL"
    )
    echo: bool = Field(default=False, description="Log emitted SQL")


class LoggingConfig(BaseModel):
    """Logging output settings."""

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    level: str = Field(default="INFO")
    json_output: bool = Field(default=False, alias="json")

    @field_validator("level")
    @classmethod
    def validate_level(cls, v: str) -> str:
        """Normalize and check the level name."""
        level = v.upper()
        if level not in {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}:
            msg = f"Unknown log level: {v!r}"
            raise ValueError(msg)
        return level


class IntakeConfig(BaseModel):
    """
    Complete intake configuration.

    Combines all sub-configurations into a single validated object.
    """

    model_config = ConfigDict(frozen=True)

    project: str = Field(description="Deployment identifier")
    client_brand: str | None = None
    store_code: str | None = None
    batch_size: int = Field(
        default=100,
        ge=1,
        description="Concurrent file tasks and concurrent quarantine moves",
    )
    paths: PathsConfig
    field_map: list[FieldMapEntry] = Field(
        description="Filename rules, tried in declaration order"
    )
    schedule: ScheduleConfig = Field(default_factory=ScheduleConfig)
    database: DatabaseConfig = Field(default_factory=DatabaseConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)
