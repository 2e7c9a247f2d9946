"""
Bounded-concurrency quarantine of failed files.

The pipeline enqueues "move this file to that error directory" without
waiting for it; moves run in the background, at most ``concurrency_limit``
at a time. Moving is best effort: a failed move is logged and dropped, never
retried and never raised to the caller.
"""

import asyncio
import shutil
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from pathlib import Path

from detection_intake.exceptions import RelocationError
from detection_intake.utils.logging import get_logger

log = get_logger(__name__)

Mover = Callable[[Path, Path], Awaitable[None]]


@dataclass(frozen=True)
class RelocationTask:
    """A pending move of a quarantined file."""

    source_path: Path
    target_path: Path


def _move(source: Path, target: Path) -> None:
    if target.exists():
        msg = f"Destination already exists: {target}"
        raise FileExistsError(msg)
    shutil.move(source, target)


async def move_file(source: Path, target: Path) -> None:
    """Move source to target in a worker thread, refusing to overwrite."""
    await asyncio.to_thread(_move, source, target)


class ErrorRelocationQueue:
    """
    Worker pool that moves quarantined files into error directories.

    Tasks are asyncio tasks gated by a semaphore, so ``enqueue`` must be
    called from inside a running event loop. All counters are mutated on
    that loop only.
    """

    def __init__(self, concurrency_limit: int, mover: Mover = move_file) -> None:
        """
        Initialize relocation queue.

        Args:
            concurrency_limit: Maximum number of moves in flight.
            mover: Coroutine function performing one move.
        """
        if concurrency_limit < 1:
            msg = f"concurrency_limit must be >= 1, got {concurrency_limit}"
            raise ValueError(msg)
        self.concurrency_limit = concurrency_limit
        self._mover = mover
        self._semaphore = asyncio.Semaphore(concurrency_limit)
        self._tasks: set[asyncio.Task[None]] = set()
        self._pending = 0
        self._running = 0
        self.moved = 0
        self.failed = 0

    @property
    def pending(self) -> int:
        """Tasks waiting for a free slot."""
        return self._pending

    @property
    def running(self) -> int:
        """Moves currently in flight."""
        return self._running

    @property
    def outstanding(self) -> int:
        """Tasks not yet finished."""
        return self._pending + self._running

    def enqueue(self, source_path: Path, target_directory: Path) -> RelocationTask:
        """
        Schedule a move of source_path into target_directory.

        Args:
            source_path: File to quarantine.
            target_directory: Error directory; the file keeps its name.

        Returns:
            The scheduled task description.
        """
        task = RelocationTask(
            source_path=source_path,
            target_path=target_directory / source_path.name,
        )
        self._pending += 1
        handle = asyncio.get_running_loop().create_task(self._run(task))
        self._tasks.add(handle)
        handle.add_done_callback(self._tasks.discard)
        log.debug(
            "Queued file for relocation",
            source=str(task.source_path),
            target=str(task.target_path),
        )
        return task

    async def _run(self, task: RelocationTask) -> None:
        try:
            await self._semaphore.acquire()
        finally:
            self._pending -= 1

        self._running += 1
        try:
            await self._mover(task.source_path, task.target_path)
        except Exception as e:
            self.failed += 1
            error = RelocationError(task.source_path, task.target_path, str(e))
            log.error("Failed to move erroneous file", error=str(error))
        else:
            self.moved += 1
            log.info(
                "Successfully moved erroneous file",
                target=str(task.target_path),
            )
        finally:
            self._running -= 1
            self._semaphore.release()

    async def drain(self) -> None:
        """Wait until every enqueued and in-flight move has finished."""
        while self._tasks:
            await asyncio.gather(*list(self._tasks))
