"""
File ingestion pipeline.

Processes every file in the intake directory: resolves its field mapping,
streams its rows through coercion, validation and insertion, and hands
failing files to the relocation queue. Files run concurrently up to
``batch_size``; rows of one file run strictly in order.

Failures are isolated to the smallest unit that failed. A bad row skips
that row, a parse error abandons the rest of that file, and anything that
escapes orchestration ends the run with a logged critical error. ``run``
never raises.
"""

import asyncio
from contextlib import aclosing
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path

from detection_intake.config.settings import IntakeConfig
from detection_intake.exceptions import ErrorCategory, ParseError
from detection_intake.ingestion.mapping import resolve_field_mapping
from detection_intake.ingestion.reader import stream_raw_rows
from detection_intake.ingestion.records import RowErrorKind, prepare_record
from detection_intake.ingestion.relocation import (
    ErrorRelocationQueue,
    Mover,
    move_file,
)
from detection_intake.storage.store import DetectionStore
from detection_intake.utils.logging import get_logger, log_context

log = get_logger(__name__)


class FileStatus(str, Enum):
    """Terminal state of a file within one run."""

    SKIPPED_NO_MAPPING = "skipped_no_mapping"
    COMPLETED = "completed"
    COMPLETED_WITH_ERRORS = "completed_with_errors"


@dataclass
class FileOutcome:
    """
    What happened to one file.

    Attributes:
        file_name: Base name of the file.
        status: Terminal state.
        rows_seen: Rows yielded by the reader.
        rows_inserted: Rows persisted.
        rows_rejected: Rows failing coercion or validation.
        insert_failures: Rows the store rejected.
        parse_error: Message of the parse error that ended the file, if any.
        failure: Message of an unexpected error that ended the file, if any.
    """

    file_name: str
    status: FileStatus = FileStatus.COMPLETED
    rows_seen: int = 0
    rows_inserted: int = 0
    rows_rejected: int = 0
    insert_failures: int = 0
    parse_error: str | None = None
    failure: str | None = None

    @property
    def has_errors(self) -> bool:
        return bool(
            self.rows_rejected
            or self.insert_failures
            or self.parse_error
            or self.failure
        )


@dataclass
class IngestionResult:
    """
    Summary of one pipeline run.

    Attributes:
        files: Outcome per file, in directory listing order.
        relocations_moved: Quarantine moves that succeeded.
        relocations_failed: Quarantine moves that failed (logged only).
        error: Message of a critical error that ended the run early.
    """

    files: list[FileOutcome] = field(default_factory=list)
    relocations_moved: int = 0
    relocations_failed: int = 0
    error: str | None = None

    @property
    def rows_inserted(self) -> int:
        return sum(f.rows_inserted for f in self.files)

    @property
    def rows_rejected(self) -> int:
        return sum(f.rows_rejected for f in self.files)

    @property
    def insert_failures(self) -> int:
        return sum(f.insert_failures for f in self.files)

    @property
    def files_skipped(self) -> int:
        return sum(f.status is FileStatus.SKIPPED_NO_MAPPING for f in self.files)

    @property
    def files_with_errors(self) -> int:
        return sum(f.status is FileStatus.COMPLETED_WITH_ERRORS for f in self.files)


def _list_directory(directory: Path) -> list[Path]:
    """Immediate entries of directory, sorted by name."""
    return sorted(directory.iterdir(), key=lambda p: p.name)


class FileIngestionPipeline:
    """
    Ingests the files of the intake directory into a detection store.

    A fresh relocation queue is created per run, sharing ``batch_size`` as
    its concurrency limit with the per-file limiter.
    """

    def __init__(
        self,
        config: IntakeConfig,
        store: DetectionStore,
        *,
        mover: Mover = move_file,
    ) -> None:
        """
        Initialize pipeline.

        Args:
            config: Intake configuration.
            store: Destination for accepted records.
            mover: Coroutine function used by the relocation queue.
        """
        self.config = config
        self.store = store
        self._mover = mover

    async def run(self) -> IngestionResult:
        """
        Process all files of the intake directory once.

        Returns:
            IngestionResult; ``error`` is set when the run ended early.
        """
        result = IngestionResult()
        queue = ErrorRelocationQueue(self.config.batch_size, mover=self._mover)
        source = self.config.paths.source

        try:
            files = await asyncio.to_thread(_list_directory, source)
            if not files:
                log.info("No files found to process. Exiting.", directory=str(source))
                return result

            log.info(
                "Starting file processing",
                directory=str(source),
                files=len(files),
                batch_size=self.config.batch_size,
            )
            limiter = asyncio.Semaphore(self.config.batch_size)
            outcomes = await asyncio.gather(
                *(self._process_with_limit(limiter, queue, path) for path in files)
            )
            result.files.extend(outcomes)

            log.info(
                "Initial processing complete",
                queue_length=queue.pending,
                running_tasks=queue.running,
            )
            if queue.outstanding > 0:
                await queue.drain()
                log.info("All error handling tasks completed. Error queue drained.")
            else:
                log.info(
                    "No errors encountered during file processing, "
                    "skipping error queue draining."
                )
        except Exception as e:
            log.critical("Critical error in file processing", error=str(e), exc_info=True)
            result.error = str(e)
            await queue.drain()
        finally:
            result.relocations_moved = queue.moved
            result.relocations_failed = queue.failed

        log.info(
            "File processing finished",
            files=len(result.files),
            rows_inserted=result.rows_inserted,
            rows_rejected=result.rows_rejected,
            insert_failures=result.insert_failures,
        )
        return result

    async def _process_with_limit(
        self,
        limiter: asyncio.Semaphore,
        queue: ErrorRelocationQueue,
        path: Path,
    ) -> FileOutcome:
        async with limiter:
            return await self._process_file(queue, path)

    async def _process_file(
        self, queue: ErrorRelocationQueue, path: Path
    ) -> FileOutcome:
        """Resolve, stream and ingest one file."""
        outcome = FileOutcome(file_name=path.name)

        with log_context(file=path.name):
            fields = resolve_field_mapping(path.name, self.config.field_map)
            if fields is None:
                log.warning("No field configuration found for file. Skipping file.")
                self._quarantine(queue, path, ErrorCategory.FIELD_CONFIG)
                outcome.status = FileStatus.SKIPPED_NO_MAPPING
                return outcome

            try:
                await self._ingest_rows(queue, path, fields, outcome)
            except ParseError as e:
                log.error("Parsing error, terminating parser", error=str(e))
                outcome.parse_error = str(e)
                self._quarantine(queue, path, ErrorCategory.MISC)
            except Exception as e:
                log.error(
                    "Unhandled error during file processing",
                    error=str(e),
                    exc_info=True,
                )
                outcome.failure = str(e)

            outcome.status = (
                FileStatus.COMPLETED_WITH_ERRORS
                if outcome.has_errors
                else FileStatus.COMPLETED
            )
            log.info(
                "Completed processing the file",
                rows=outcome.rows_seen,
                inserted=outcome.rows_inserted,
                status=outcome.status.value,
            )
        return outcome

    async def _ingest_rows(
        self,
        queue: ErrorRelocationQueue,
        path: Path,
        fields: list[str],
        outcome: FileOutcome,
    ) -> None:
        async with aclosing(stream_raw_rows(path, fields)) as rows:
            async for raw_row in rows:
                outcome.rows_seen += 1
                row_num = outcome.rows_seen
                log.debug("Processing row", row=row_num, values=raw_row)

                prepared = prepare_record(fields, raw_row, path.name)
                if prepared.error is not None:
                    outcome.rows_rejected += 1
                    if prepared.error.kind is RowErrorKind.COERCION:
                        log.error(
                            "Error constructing data object",
                            row=row_num,
                            errors=prepared.error.messages,
                        )
                    else:
                        log.warning(
                            "Validation errors. Skipping row.",
                            row=row_num,
                            errors=prepared.error.messages,
                        )
                    self._quarantine(queue, path, ErrorCategory.MISC)
                    continue

                try:
                    await asyncio.to_thread(self.store.insert, prepared.record)
                except Exception as e:
                    outcome.insert_failures += 1
                    log.error(
                        "Database insertion error",
                        row=row_num,
                        error=str(e),
                        data=prepared.record,
                    )
                    self._quarantine(queue, path, ErrorCategory.DB_INSERTION)
                    continue

                outcome.rows_inserted += 1
                log.info("Successfully inserted data", row=row_num)

    def _quarantine(
        self, queue: ErrorRelocationQueue, path: Path, category: ErrorCategory
    ) -> None:
        queue.enqueue(path, self.config.paths.error_directory(category))


def run_ingestion(
    config: IntakeConfig,
    store: DetectionStore,
) -> IngestionResult:
    """
    Convenience function to run the ingestion pipeline from sync code.

    Args:
        config: Intake configuration.
        store: Destination for accepted records.

    Returns:
        IngestionResult with per-file outcomes.
    """
    pipeline = FileIngestionPipeline(config, store)
    return asyncio.run(pipeline.run())
