"""
Typed exceptions for the intake pipeline.

Every failure the pipeline isolates has its own class so handlers catch by
type rather than by message. Row- and file-level failures never escape a
pipeline run; they are logged and the offending file is quarantined into the
directory named by its ErrorCategory.

    IntakeError
    +-- ParseError        malformed file structure, file abandoned
    +-- CoercionError     invalid timestamp in a row, row skipped
    +-- PersistenceError  store rejected an insert, row skipped
    +-- RelocationError   quarantine move failed, logged only
    +-- ScheduleError     a scheduled cycle stage failed
"""

from enum import Enum
from pathlib import Path


class ErrorCategory(str, Enum):
    """Quarantine category; each maps to one configured error directory."""

    FIELD_CONFIG = "field_config"
    MISC = "misc"
    DB_INSERTION = "db_insertion"


class IntakeError(Exception):
    """Base class for all intake errors."""


class ParseError(IntakeError):
    """The delimited-text stream of a file could not be parsed."""

    def __init__(self, path: Path, line: int | None, reason: str) -> None:
        self.path = path
        self.line = line
        self.reason = reason
        where = f" on line {line}" if line is not None else ""
        super().__init__(f"Cannot parse {path.name}{where}: {reason}")


class CoercionError(IntakeError, ValueError):
    """A row value could not be coerced to its declared type."""

    def __init__(self, field: str, value: str) -> None:
        self.field = field
        self.value = value
        super().__init__(f"Invalid date format for field {field}: {value!r}")


class PersistenceError(IntakeError):
    """The relational store rejected a record."""


class RelocationError(IntakeError):
    """A quarantined file could not be moved to its error directory."""

    def __init__(self, source: Path, target: Path, reason: str) -> None:
        self.source = source
        self.target = target
        super().__init__(f"Failed to move {source} to {target}: {reason}")


class ScheduleError(IntakeError):
    """A stage of a scheduled cycle failed."""
