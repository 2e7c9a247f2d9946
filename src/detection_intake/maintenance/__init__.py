"""Housekeeping of the intake directory tree."""

from detection_intake.maintenance.archive import zip_and_move_directory, zip_directory
from detection_intake.maintenance.cleanup import empty_directory
from detection_intake.maintenance.directories import (
    ensure_directory_exists,
    is_directory_not_empty,
    prepare_directories,
)

__all__ = [
    "empty_directory",
    "ensure_directory_exists",
    "is_directory_not_empty",
    "prepare_directories",
    "zip_and_move_directory",
    "zip_directory",
]
