"""Scheduled intake cycles."""

from detection_intake.scheduling.scheduler import (
    CycleResult,
    Scheduler,
    describe_schedule,
    next_fire_time,
    run_cycle,
)

__all__ = [
    "CycleResult",
    "Scheduler",
    "describe_schedule",
    "next_fire_time",
    "run_cycle",
]
