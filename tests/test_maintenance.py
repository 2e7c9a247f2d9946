"""Tests for intake directory housekeeping."""

import zipfile
from datetime import datetime
from pathlib import Path

import pytest

from detection_intake.config import PathsConfig
from detection_intake.maintenance import (
    empty_directory,
    ensure_directory_exists,
    is_directory_not_empty,
    prepare_directories,
    zip_and_move_directory,
    zip_directory,
)
from detection_intake.maintenance.archive import archive_name, move_archive


class TestDirectories:
    """Tests for directory preparation."""

    def test_ensure_creates_missing(self, tmp_path: Path) -> None:
        """Test that missing directories are created with parents."""
        target = tmp_path / "a" / "b"
        assert ensure_directory_exists(target) is True
        assert target.is_dir()

    def test_ensure_existing(self, tmp_path: Path) -> None:
        """Test that existing directories are left alone."""
        assert ensure_directory_exists(tmp_path) is False

    def test_ensure_path_is_file(self, tmp_path: Path) -> None:
        """Test that a file in the way raises."""
        blocker = tmp_path / "blocker"
        blocker.write_text("x")
        with pytest.raises(OSError):
            ensure_directory_exists(blocker)

    def test_prepare_directories(self, tmp_path: Path) -> None:
        """Test that only missing directories are reported."""
        (tmp_path / "in").mkdir()
        paths = PathsConfig(
            source=tmp_path / "in",
            destination=tmp_path / "archive",
            misc_errors=tmp_path / "err" / "misc",
            db_insertion_errors=tmp_path / "err" / "db",
            field_config_errors=tmp_path / "err" / "fields",
        )

        created = prepare_directories(paths)

        assert tmp_path / "in" not in created
        assert len(created) == 4
        assert all(d.is_dir() for d in paths.all_directories())
        assert prepare_directories(paths) == []

    def test_is_directory_not_empty(self, tmp_path: Path) -> None:
        """Test emptiness check."""
        assert is_directory_not_empty(tmp_path) is False
        (tmp_path / "f.csv").write_text("")
        assert is_directory_not_empty(tmp_path) is True


class TestArchive:
    """Tests for zipping and moving the intake directory."""

    def test_archive_name(self) -> None:
        """Test the timestamped archive name."""
        assert archive_name(datetime(2024, 3, 5, 7, 8, 9)) == "backup-05-03-2024-07-08-09.zip"

    def test_zip_directory(self, tmp_path: Path) -> None:
        """Test that entries are stored relative to the source."""
        source = tmp_path / "intake"
        (source / "sub").mkdir(parents=True)
        (source / "a.csv").write_text("1")
        (source / "sub" / "b.csv").write_text("2")

        zip_path = zip_directory(source, now=datetime(2024, 1, 1))

        assert zip_path == tmp_path / "backup-01-01-2024-00-00-00.zip"
        with zipfile.ZipFile(zip_path) as archive:
            assert sorted(archive.namelist()) == ["a.csv", "sub/b.csv"]
            assert archive.read("sub/b.csv") == b"2"

    def test_zip_empty_directory(self, tmp_path: Path) -> None:
        """Test that nothing is written for an empty source."""
        source = tmp_path / "intake"
        source.mkdir()
        assert zip_directory(source) is None
        assert list(tmp_path.glob("*.zip")) == []

    def test_move_archive_refuses_overwrite(self, tmp_path: Path) -> None:
        """Test that existing archives are not replaced."""
        archive = tmp_path / "backup.zip"
        archive.write_text("new")
        destination = tmp_path / "archive"
        destination.mkdir()
        (destination / "backup.zip").write_text("old")

        with pytest.raises(FileExistsError):
            move_archive(archive, destination)
        assert (destination / "backup.zip").read_text() == "old"

    def test_zip_and_move(self, tmp_path: Path) -> None:
        """Test the combined operation."""
        source = tmp_path / "intake"
        source.mkdir()
        (source / "a.csv").write_text("1")
        destination = tmp_path / "archive"

        target = zip_and_move_directory(source, destination)

        assert target is not None
        assert target.parent == destination
        assert target.exists()
        assert list(tmp_path.glob("*.zip")) == []
        assert (source / "a.csv").exists()

    def test_zip_and_move_swallows_errors(self, tmp_path: Path) -> None:
        """Test that archiving failures are logged, not raised."""
        source = tmp_path / "intake"
        source.mkdir()
        (source / "a.csv").write_text("1")
        destination = tmp_path / "archive"
        destination.write_text("not a directory")

        assert zip_and_move_directory(source, destination) is None


class TestEmptyDirectory:
    """Tests for emptying the intake directory."""

    def test_removes_files_and_subdirectories(self, tmp_path: Path) -> None:
        """Test that all entries go but the directory stays."""
        (tmp_path / "a.csv").write_text("1")
        (tmp_path / "sub").mkdir()
        (tmp_path / "sub" / "b.csv").write_text("2")

        assert empty_directory(tmp_path) == 2
        assert tmp_path.is_dir()
        assert list(tmp_path.iterdir()) == []

    def test_missing_directory_created(self, tmp_path: Path) -> None:
        """Test that a missing directory is created and reported empty."""
        target = tmp_path / "intake"
        assert empty_directory(target) == 0
        assert target.is_dir()
