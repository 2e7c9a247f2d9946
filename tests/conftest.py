"""Pytest configuration and shared fixtures."""

import threading
from collections.abc import Callable, Mapping
from pathlib import Path
from typing import Any

import pytest

from detection_intake.config import IntakeConfig, build_config
from detection_intake.exceptions import PersistenceError


class RecordingStore:
    """In-memory detection store that records every accepted insert."""

    def __init__(
        self, fail_when: Callable[[Mapping[str, Any]], bool] | None = None
    ) -> None:
        self.records: list[dict[str, Any]] = []
        self.attempts = 0
        self._fail_when = fail_when
        self._lock = threading.Lock()

    def insert(self, record: Mapping[str, Any]) -> None:
        with self._lock:
            self.attempts += 1
            if self._fail_when is not None and self._fail_when(record):
                msg = "insert rejected"
                raise PersistenceError(msg)
            self.records.append(dict(record))


@pytest.fixture
def project_root() -> Path:
    """Return the project root directory."""
    return Path(__file__).parent.parent


@pytest.fixture
def intake_tree(tmp_path: Path) -> dict[str, Path]:
    """Create an intake, archive and quarantine directory tree."""
    tree = {
        "source": tmp_path / "intake",
        "destination": tmp_path / "archive",
        "misc_errors": tmp_path / "errors" / "misc",
        "db_insertion_errors": tmp_path / "errors" / "db_insertion",
        "field_config_errors": tmp_path / "errors" / "field_config",
    }
    for directory in tree.values():
        directory.mkdir(parents=True)
    return tree


@pytest.fixture
def base_config(intake_tree: dict[str, Path], tmp_path: Path) -> dict[str, Any]:
    """Create a minimal configuration dictionary for testing."""
    return {
        "project": "test-intake",
        "store_code": "S001",
        "batch_size": 4,
        "paths": {name: str(path) for name, path in intake_tree.items()},
        "field_map": {
            "sales": {"spacing": 0, "fields": ["date_time", "duration", "count"]},
            "cam": {
                "spacing": 1,
                "fields": ["camera_name", "duration", "date_time"],
            },
        },
        "schedule": {"every_x_minutes": 15},
        "database": {"url": f"sqlite:///{tmp_path / 'db' / 'test.db'}"},
    }


@pytest.fixture
def intake_config(base_config: dict[str, Any]) -> IntakeConfig:
    """Validated configuration pointing at the temporary intake tree."""
    return build_config(base_config)


@pytest.fixture
def recording_store() -> RecordingStore:
    """Store fake that accepts every record."""
    return RecordingStore()
