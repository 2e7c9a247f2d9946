"""Directory preparation for the intake tree."""

from pathlib import Path

from detection_intake.config.settings import PathsConfig
from detection_intake.utils.logging import get_logger

log = get_logger(__name__)


def ensure_directory_exists(directory: Path) -> bool:
    """
    Create directory (and parents) if it does not exist.

    Args:
        directory: Directory to check or create.

    Returns:
        True if the directory was created, False if it already existed.

    Raises:
        OSError: If the directory cannot be created.
    """
    if directory.is_dir():
        log.info("Directory verified", directory=str(directory))
        return False
    try:
        directory.mkdir(parents=True, exist_ok=True)
    except OSError as e:
        log.error("Error ensuring directory exists", directory=str(directory), error=str(e))
        raise
    log.info("Directory created", directory=str(directory))
    return True


def prepare_directories(paths: PathsConfig) -> list[Path]:
    """
    Ensure the intake, archive and quarantine directories exist.

    The pipeline assumes these exist and never creates them itself.

    Args:
        paths: Configured directories.

    Returns:
        Directories that had to be created.
    """
    return [d for d in paths.all_directories() if ensure_directory_exists(d)]


def is_directory_not_empty(directory: Path) -> bool:
    """
    Check whether directory has at least one entry.

    Raises:
        OSError: If the directory cannot be listed.
    """
    return any(True for _ in directory.iterdir())
