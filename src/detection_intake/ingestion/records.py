"""
Row coercion and validation.

Turns a raw parsed row into a typed record for the detection store and
checks that every mapped column made it into the record. Fields missing
from a row are omitted during coercion, never defaulted; validation is
what reports them.
"""

import math
import re
from collections.abc import Mapping, Sequence
from dataclasses import dataclass, field
from datetime import UTC, datetime
from enum import Enum

from detection_intake.exceptions import CoercionError

RawRow = dict[str, str]
RecordValue = str | float | int
Record = dict[str, RecordValue]

TIMESTAMP_FIELD = "date_time"
FLOAT_FIELDS = frozenset({"duration"})
INT_FIELDS = frozenset({"count"})
FILE_NAME_FIELD = "file_name"

_LEADING_INT = re.compile(r"\s*([+-]?\d+)")


def normalize_timestamp(value: str) -> str:
    """
    Parse an ISO-8601 date or date-time and render it in UTC.

    Naive values are taken as UTC. The result has millisecond precision and
    a ``Z`` suffix, e.g. ``2024-01-01T00:00:00.000Z``.

    Raises:
        ValueError: If value is not a valid calendar date/time.
        OverflowError: If the UTC instant falls outside the datetime range.
    """
    parsed = datetime.fromisoformat(value)
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=UTC)
    return parsed.astimezone(UTC).isoformat(timespec="milliseconds").replace(
        "+00:00", "Z"
    )


def parse_float(value: str) -> float:
    """Parse a float, falling back to 0.0 for unparseable or non-finite input."""
    try:
        number = float(value)
    except (TypeError, ValueError):
        return 0.0
    return number if math.isfinite(number) else 0.0


def parse_int(value: str) -> int:
    """Parse the leading integer of value, falling back to 0."""
    match = _LEADING_INT.match(value or "")
    if not match:
        return 0
    try:
        return int(match.group(1))
    except ValueError:
        # Digit runs beyond the interpreter's int conversion limit
        return 0


def coerce_row(fields: Sequence[str], raw_row: Mapping[str, str]) -> Record:
    """
    Build a typed record from a raw row.

    Only fields present in both ``fields`` and ``raw_row`` are kept, in
    ``fields`` order. The timestamp field is normalized, ``duration`` is
    parsed as float and ``count`` as int (both default to 0), anything else
    is copied unchanged.

    Args:
        fields: Resolved column names for the file.
        raw_row: Column name to raw string value.

    Returns:
        The coerced record (without ``file_name``).

    Raises:
        CoercionError: If the timestamp field is not a valid date/time.
            Remaining fields are not processed.
    """
    record: Record = {}
    for name in fields:
        if name not in raw_row:
            continue
        value = raw_row[name]
        if name == TIMESTAMP_FIELD:
            try:
                record[name] = normalize_timestamp(value)
            except (ValueError, OverflowError) as e:
                raise CoercionError(name, value) from e
        elif name in FLOAT_FIELDS:
            record[name] = parse_float(value)
        elif name in INT_FIELDS:
            record[name] = parse_int(value)
        else:
            record[name] = value
    return record


def validate_record(
    record: Mapping[str, RecordValue], required_fields: Sequence[str]
) -> list[str] | None:
    """
    Check that every required field is a key of the record.

    Args:
        record: Coerced record.
        required_fields: Field names that must be present.

    Returns:
        None if all are present, otherwise one message per missing field in
        ``required_fields`` order.
    """
    errors = [
        f"Missing required field: {name}"
        for name in required_fields
        if name not in record
    ]
    return errors or None


class RowErrorKind(str, Enum):
    """Why a row was rejected before insertion."""

    COERCION = "coercion"
    VALIDATION = "validation"


@dataclass(frozen=True)
class RowError:
    """Rejection reason for a single row."""

    kind: RowErrorKind
    messages: list[str] = field(default_factory=list)


@dataclass(frozen=True)
class RowOutcome:
    """Either a record ready for insertion or the reason it was rejected."""

    record: Record | None = None
    error: RowError | None = None

    @property
    def accepted(self) -> bool:
        return self.error is None


def prepare_record(
    fields: Sequence[str], raw_row: Mapping[str, str], file_name: str
) -> RowOutcome:
    """
    Coerce and validate one row.

    Args:
        fields: Resolved column names for the file.
        raw_row: Parsed row.
        file_name: Originating file name, injected as ``file_name``.

    Returns:
        RowOutcome with the record on success, or a coercion/validation error.
    """
    try:
        record = coerce_row(fields, raw_row)
    except CoercionError as e:
        return RowOutcome(error=RowError(RowErrorKind.COERCION, [str(e)]))

    record[FILE_NAME_FIELD] = file_name

    errors = validate_record(record, fields)
    if errors:
        return RowOutcome(error=RowError(RowErrorKind.VALIDATION, errors))
    return RowOutcome(record=record)
