"""
Archiving of the intake directory.

After a cycle has ingested a batch, the remaining contents of the intake
directory are zipped next to it and the archive is moved to the
destination directory.
"""

import shutil
import zipfile
from datetime import datetime
from pathlib import Path

from detection_intake.maintenance.directories import ensure_directory_exists
from detection_intake.utils.logging import get_logger

log = get_logger(__name__)

ARCHIVE_TIMESTAMP_FORMAT = "%d-%m-%Y-%H-%M-%S"


def archive_name(now: datetime) -> str:
    """Name of the archive created at ``now``."""
    return f"backup-{now.strftime(ARCHIVE_TIMESTAMP_FORMAT)}.zip"


def zip_directory(source: Path, *, now: datetime | None = None) -> Path | None:
    """
    Zip the contents of source into a sibling archive.

    The directory is listed right before zipping, so files quarantined
    earlier in the cycle are not included. Entry names are relative to
    ``source``.

    Args:
        source: Directory to archive.
        now: Timestamp for the archive name (defaults to the current time).

    Returns:
        Path of the created archive, or None if source is empty.
    """
    entries = sorted(p for p in source.rglob("*") if p.is_file())
    if not entries:
        log.info("No files left to zip", directory=str(source))
        return None

    zip_path = source.parent / archive_name(now or datetime.now())
    with zipfile.ZipFile(
        zip_path, "w", compression=zipfile.ZIP_DEFLATED, compresslevel=9
    ) as archive:
        for entry in entries:
            try:
                archive.write(entry, arcname=entry.relative_to(source).as_posix())
            except FileNotFoundError:
                log.warning("File scheduled for archiving was not found", file=entry.name)

    log.info("Folder zipped successfully", archive=str(zip_path), files=len(entries))
    return zip_path


def move_archive(archive: Path, destination: Path) -> Path:
    """
    Move an archive into destination, refusing to overwrite.

    Returns:
        New path of the archive.

    Raises:
        FileExistsError: If an archive of the same name is already there.
    """
    target = destination / archive.name
    if target.exists():
        msg = f"Archive already exists: {target}"
        raise FileExistsError(msg)
    shutil.move(archive, target)
    log.info("Zip file moved", target=str(target))
    return target


def zip_and_move_directory(source: Path, destination: Path) -> Path | None:
    """
    Zip source and move the archive into destination.

    Failures are logged and swallowed; archiving is housekeeping and must
    not end the cycle.

    Returns:
        Final archive path, or None if nothing was archived.
    """
    try:
        ensure_directory_exists(destination)
        zip_path = zip_directory(source)
        if zip_path is None:
            log.info("Not required to create a zip file as the folder is empty")
            return None
        target = move_archive(zip_path, destination)
    except OSError as e:
        log.error("Failed to zip folder or move zip file", error=str(e), exc_info=True)
        return None
    log.info("Folder zipping and moving completed")
    return target
