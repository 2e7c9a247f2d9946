"""Emptying of the intake directory at the end of a cycle."""

import shutil
from pathlib import Path

from detection_intake.utils.logging import get_logger

log = get_logger(__name__)


def empty_directory(directory: Path) -> int:
    """
    Delete everything inside directory but keep the directory itself.

    A missing directory is created.

    Args:
        directory: Directory to empty.

    Returns:
        Number of top-level entries removed.

    Raises:
        OSError: If an entry cannot be removed.
    """
    if not directory.exists():
        directory.mkdir(parents=True)
        return 0

    removed = 0
    try:
        for entry in directory.iterdir():
            if entry.is_dir() and not entry.is_symlink():
                shutil.rmtree(entry)
            else:
                entry.unlink()
            removed += 1
    except OSError as e:
        log.error("Error deleting files in directory", directory=str(directory), error=str(e))
        raise

    log.info("All files in directory have been deleted", directory=str(directory), removed=removed)
    return removed
