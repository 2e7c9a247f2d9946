"""Filename-to-schema resolution."""

from collections.abc import Sequence

from detection_intake.config.settings import FieldMapEntry


def resolve_field_mapping(
    filename: str, field_map: Sequence[FieldMapEntry]
) -> list[str] | None:
    """
    Resolve the column names for a file from its name.

    The filename is split on ``_`` and entries are tried in declaration
    order; the first entry whose ``match_token`` equals the part at its
    ``spacing`` index wins. Ambiguous configurations resolve silently to
    the first match.

    Args:
        filename: Base name of the file (no directory).
        field_map: Ordered filename rules.

    Returns:
        A copy of the matching entry's fields, or None if no entry matches.
    """
    parts = filename.split("_")
    for entry in field_map:
        if entry.spacing < len(parts) and parts[entry.spacing] == entry.match_token:
            return list(entry.fields)
    return None
