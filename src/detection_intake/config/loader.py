"""
Configuration loading utilities.

Supports environment variable interpolation and config inheritance.
Minimal configs only need: project, paths.source, field_map

Older deployment files keep their layout: a
``PATH_CONFIG`` section holding the directories and schedule, with
``BATCH_SIZE`` and ``FILE_FIELD_MAP`` either there or at the top level.
"""

import os
import re
from pathlib import Path
from typing import Any

import yaml

from detection_intake.config.settings import (
    DatabaseConfig,
    FieldMapEntry,
    IntakeConfig,
    LoggingConfig,
    PathsConfig,
    ScheduleConfig,
)

_LEGACY_SECTION = "PATH_CONFIG"


def _interpolate_env_vars(value: str) -> str:
    """
    Interpolate environment variables in string values.

    Supports ${VAR} and ${VAR:default} syntax.
    """
    pattern = r"\$\{([^}:]+)(?::([^}]*))?\}"

    def replacer(match: re.Match[str]) -> str:
        var_name = match.group(1)
        default = match.group(2)
        return os.environ.get(var_name, default if default is not None else "")

    return re.sub(pattern, replacer, value)


def _process_config_values(obj: Any) -> Any:
    """Recursively process config values for env var interpolation."""
    if isinstance(obj, str):
        return _interpolate_env_vars(obj)
    if isinstance(obj, dict):
        return {k: _process_config_values(v) for k, v in obj.items()}
    if isinstance(obj, list):
        return [_process_config_values(item) for item in obj]
    return obj


def _deep_merge(base: dict[str, Any], override: dict[str, Any]) -> dict[str, Any]:
    """Deep merge two dictionaries, with override taking precedence."""
    result = base.copy()
    for key, value in override.items():
        if key in result and isinstance(result[key], dict) and isinstance(value, dict):
            result[key] = _deep_merge(result[key], value)
        else:
            result[key] = value
    return result


def _first(sources: list[dict[str, Any]], *keys: str) -> Any:
    """Return the first non-None value for any of keys across sources."""
    for source in sources:
        for key in keys:
            if source.get(key) is not None:
                return source[key]
    return None


def parse_field_map(raw: Any) -> list[FieldMapEntry]:
    """
    Build ordered field map entries from their YAML form.

    Accepts the mapping form ``{token: {spacing, fields}}`` (entries keep
    the mapping's order) or a list of ``{match_token, spacing, fields}``.

    Args:
        raw: Parsed YAML value.

    Returns:
        Entries in declaration order.

    Raises:
        ValueError: If the value has neither form.
    """
    if isinstance(raw, dict):
        entries = []
        for token, rule in raw.items():
            if not isinstance(rule, dict):
                msg = f"field_map entry {token!r} must be a mapping with 'spacing' and 'fields'"
                raise ValueError(msg)
            entries.append(
                FieldMapEntry(
                    match_token=str(token),
                    spacing=rule.get("spacing"),
                    fields=rule.get("fields"),
                )
            )
        return entries
    if isinstance(raw, list):
        return [FieldMapEntry.model_validate(item) for item in raw]
    msg = f"field_map must be a mapping or a list, got {type(raw).__name__}"
    raise ValueError(msg)


def load_yaml(path: Path) -> dict[str, Any]:
    """Load a YAML file and process environment variables."""
    with path.open(encoding="utf-8") as f:
        data = yaml.safe_load(f)
    return _process_config_values(data) if data else {}


def build_config(data: dict[str, Any]) -> IntakeConfig:
    """
    Build a validated IntakeConfig from an already merged dictionary.

    Args:
        data: Configuration values (new or legacy layout).

    Returns:
        Fully validated IntakeConfig instance.
    """
    legacy = data.get(_LEGACY_SECTION) or {}
    sources = [data, legacy]

    project = _first(sources, "project", "CLIENT_BRAND")
    if not project:
        msg = "Config must specify 'project' name"
        raise ValueError(msg)

    # A new-style section replaces the legacy PATH_CONFIG keys wholesale
    paths_data = data.get("paths") or legacy
    if paths_data.get("source") is None and paths_data.get("sourceZipDirectory") is None:
        msg = "Config must specify 'paths.source' (the watched intake directory)"
        raise ValueError(msg)
    paths = PathsConfig.model_validate(paths_data)

    raw_field_map = _first(sources, "field_map", "FILE_FIELD_MAP")
    if raw_field_map is None:
        msg = "Config must specify 'field_map'"
        raise ValueError(msg)
    field_map = parse_field_map(raw_field_map)

    schedule = ScheduleConfig.model_validate(data.get("schedule") or legacy)
    database = DatabaseConfig.model_validate(data.get("database") or {})
    logging_config = LoggingConfig.model_validate(data.get("logging") or {})

    batch_size = _first(sources, "batch_size", "BATCH_SIZE")

    return IntakeConfig(
        project=str(project),
        client_brand=_first(sources, "client_brand", "CLIENT_BRAND"),
        store_code=_first(sources, "store_code", "STORE_CODE"),
        batch_size=batch_size if batch_size is not None else 100,
        paths=paths,
        field_map=field_map,
        schedule=schedule,
        database=database,
        logging=logging_config,
    )


def load_config(
    config_path: Path,
    base_path: Path | None = None,
) -> IntakeConfig:
    """
    Load intake configuration from YAML file(s).

    Minimal config requires only:
        - project: str
        - paths.source: path
        - field_map: mapping of match token to {spacing, fields}

    Args:
        config_path: Path to the main configuration file.
        base_path: Optional path to base configuration for inheritance.

    Returns:
        Fully validated IntakeConfig instance.
    """
    if base_path is not None:
        base_data = load_yaml(base_path)
    else:
        # Try to find base.yaml in same directory
        potential_base = config_path.parent / "base.yaml"
        is_self = potential_base.resolve() == config_path.resolve()
        base_data = (
            load_yaml(potential_base)
            if potential_base.exists() and not is_self
            else {}
        )

    main_data = load_yaml(config_path)

    # Merge configs (main overrides base)
    merged = _deep_merge(base_data, main_data)

    return build_config(merged)
