"""
Timer-driven intake cycles.

A cycle runs, in order and each only if enabled: file ingestion, zipping
the intake directory into the archive, and emptying the intake directory.
An empty intake directory skips the whole cycle.

Fire times follow wall-clock boundaries rather than fixed delays from
start-up: ``every_x_minutes: 15`` fires at :00, :15, :30 and :45 of every
hour, and ``every_x_hours: 6`` at 00:00, 06:00, 12:00 and 18:00.
"""

import asyncio
from collections.abc import Callable
from dataclasses import dataclass
from datetime import datetime, timedelta
from pathlib import Path

from detection_intake.config.settings import IntakeConfig, ScheduleConfig
from detection_intake.exceptions import ScheduleError
from detection_intake.ingestion.pipeline import FileIngestionPipeline, IngestionResult
from detection_intake.maintenance.archive import zip_and_move_directory
from detection_intake.maintenance.cleanup import empty_directory
from detection_intake.maintenance.directories import is_directory_not_empty
from detection_intake.storage.store import DetectionStore
from detection_intake.utils.logging import get_logger

log = get_logger(__name__)


def describe_schedule(schedule: ScheduleConfig) -> str:
    """Human-readable form of the configured schedule."""
    if schedule.daily_at is not None:
        return f"daily at {schedule.daily_at}"
    if schedule.every_x_hours is not None:
        return f"every {schedule.every_x_hours} hours"
    if schedule.every_x_minutes is not None:
        return f"every {schedule.every_x_minutes} minutes"
    return "never"


def next_fire_time(schedule: ScheduleConfig, now: datetime) -> datetime:
    """
    Compute the first fire time strictly after ``now``.

    Args:
        schedule: A schedule with exactly one option set.
        now: Reference time; the result keeps its tzinfo.

    Returns:
        Next fire time.

    Raises:
        ValueError: If the schedule is invalid.
    """
    schedule.validate_schedule()

    daily_time = schedule.daily_time
    if daily_time is not None:
        hour, minute = daily_time
        candidate = now.replace(hour=hour, minute=minute, second=0, microsecond=0)
        return candidate if candidate > now else candidate + timedelta(days=1)

    if schedule.every_x_hours is not None:
        start_of_day = now.replace(hour=0, minute=0, second=0, microsecond=0)
        for hour in range(0, 24, schedule.every_x_hours):
            candidate = start_of_day.replace(hour=hour)
            if candidate > now:
                return candidate
        return start_of_day + timedelta(days=1)

    if schedule.every_x_minutes is not None:
        start_of_hour = now.replace(minute=0, second=0, microsecond=0)
        for minute in range(0, 60, schedule.every_x_minutes):
            candidate = start_of_hour.replace(minute=minute)
            if candidate > now:
                return candidate
        return start_of_hour + timedelta(hours=1)

    msg = f"Unsupported schedule: {describe_schedule(schedule)}"
    raise ValueError(msg)


@dataclass
class CycleResult:
    """
    Outcome of one scheduled cycle.

    Attributes:
        ran: False when the cycle was skipped because the intake was empty.
        ingestion: Pipeline result, if file processing was enabled.
        archive: Archive path, if one was created and moved.
        removed: Entries deleted when emptying the intake directory.
    """

    ran: bool
    ingestion: IngestionResult | None = None
    archive: Path | None = None
    removed: int = 0


async def run_cycle(config: IntakeConfig, store: DetectionStore) -> CycleResult:
    """
    Run one cycle over the intake directory.

    Args:
        config: Intake configuration.
        store: Destination for accepted records.

    Returns:
        CycleResult describing the stages that ran.

    Raises:
        ScheduleError: If the intake directory cannot be inspected or
            emptied.
    """
    source = config.paths.source
    schedule = config.schedule

    try:
        has_files = await asyncio.to_thread(is_directory_not_empty, source)
    except OSError as e:
        msg = f"Cannot inspect intake directory {source}: {e}"
        raise ScheduleError(msg) from e

    if not has_files:
        log.info("Scheduled cycle skipped. Directory is empty.", directory=str(source))
        return CycleResult(ran=False)

    log.info("Scheduled cycle started", directory=str(source))
    result = CycleResult(ran=True)

    if schedule.run_process_files:
        result.ingestion = await FileIngestionPipeline(config, store).run()

    if schedule.run_zip_and_move:
        log.info("Starting to zip and move the folder")
        result.archive = await asyncio.to_thread(
            zip_and_move_directory, source, config.paths.destination
        )

    if schedule.run_empty_directory:
        log.info("Starting to empty the folder")
        try:
            result.removed = await asyncio.to_thread(empty_directory, source)
        except OSError as e:
            msg = f"Cannot empty intake directory {source}: {e}"
            raise ScheduleError(msg) from e

    log.info("Scheduled cycle completed successfully.")
    return result


class Scheduler:
    """
    Runs intake cycles on the configured timer until stopped.

    Cycles never overlap: the next fire time is computed after the previous
    cycle has finished.
    """

    def __init__(
        self,
        config: IntakeConfig,
        store: DetectionStore,
        *,
        clock: Callable[[], datetime] = datetime.now,
    ) -> None:
        """
        Initialize scheduler.

        Args:
            config: Intake configuration (schedule section is used).
            store: Destination for accepted records.
            clock: Source of the current local time.
        """
        self.config = config
        self.store = store
        self._clock = clock

    async def serve(
        self,
        stop_event: asyncio.Event | None = None,
        *,
        max_cycles: int | None = None,
    ) -> int:
        """
        Run cycles until stop_event is set or max_cycles have run.

        Args:
            stop_event: Set to stop; an in-progress cycle is finished first.
            max_cycles: Optional limit on the number of cycles.

        Returns:
            Number of cycles run.

        Raises:
            ScheduleError: If the schedule is invalid or a cycle fails.
        """
        schedule = self.config.schedule
        try:
            schedule.validate_schedule()
        except ValueError as e:
            log.error("Scheduling configuration validation failed", error=str(e))
            msg = "Scheduling setup aborted due to configuration validation failure."
            raise ScheduleError(msg) from e

        stop = stop_event or asyncio.Event()
        log.info("Scheduler started", schedule=describe_schedule(schedule))

        cycles = 0
        while not stop.is_set():
            now = self._clock()
            fire_at = next_fire_time(schedule, now)
            log.debug("Next cycle scheduled", at=fire_at.isoformat())
            try:
                await asyncio.wait_for(
                    stop.wait(), timeout=(fire_at - now).total_seconds()
                )
                break
            except TimeoutError:
                pass

            try:
                await run_cycle(self.config, self.store)
            except ScheduleError as e:
                log.error("Error during scheduled task execution", error=str(e))
                raise

            cycles += 1
            if max_cycles is not None and cycles >= max_cycles:
                break

        log.warning("Scheduler shutdown gracefully.", cycles=cycles)
        return cycles
