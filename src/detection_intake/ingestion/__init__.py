"""
File intake for detection data.

Maps files to field schemas, streams and validates their rows, persists
accepted records and quarantines failing files.
"""

from detection_intake.ingestion.mapping import resolve_field_mapping
from detection_intake.ingestion.pipeline import (
    FileIngestionPipeline,
    FileOutcome,
    FileStatus,
    IngestionResult,
    run_ingestion,
)
from detection_intake.ingestion.records import (
    coerce_row,
    prepare_record,
    validate_record,
)
from detection_intake.ingestion.relocation import ErrorRelocationQueue, RelocationTask

__all__ = [
    "ErrorRelocationQueue",
    "FileIngestionPipeline",
    "FileOutcome",
    "FileStatus",
    "IngestionResult",
    "RelocationTask",
    "coerce_row",
    "prepare_record",
    "resolve_field_mapping",
    "run_ingestion",
    "validate_record",
]
