"""Command-line interface for the detection intake service."""

import asyncio
import contextlib
import signal
from pathlib import Path
from typing import TYPE_CHECKING, Annotated

import typer
from rich.console import Console
from rich.table import Table

if TYPE_CHECKING:
    from detection_intake.config.settings import IntakeConfig
    from detection_intake.ingestion.pipeline import IngestionResult
    from detection_intake.storage.store import SqlDetectionStore

app = typer.Typer(
    name="detection-intake",
    help="Scheduled intake of camera detection files into a relational store.",
    no_args_is_help=True,
)

console = Console()

ConfigOption = Annotated[
    Path,
    typer.Option(
        "--config",
        "-c",
        help="Path to configuration YAML file.",
        exists=True,
        dir_okay=False,
    ),
]


def _load(config: Path) -> "IntakeConfig":
    """Load configuration and configure logging from it."""
    from detection_intake.config.loader import load_config
    from detection_intake.utils.logging import configure_logging

    console.print(f"[blue]Loading configuration from {config}[/blue]")
    try:
        intake_config = load_config(config)
    except ValueError as e:
        console.print(f"[red]Invalid configuration: {e}[/red]")
        raise typer.Exit(code=1) from e

    configure_logging(
        level=intake_config.logging.level,
        json_output=intake_config.logging.json_output,
    )
    return intake_config


def _open_store(intake_config: "IntakeConfig") -> "SqlDetectionStore":
    """Create the SQL store and make sure its table exists."""
    from detection_intake.storage.store import SqlDetectionStore

    store = SqlDetectionStore.from_config(intake_config.database)
    store.create_schema()
    return store


def _print_ingestion_result(result: "IngestionResult") -> None:
    """Render per-file outcomes and totals."""
    table = Table(title="Ingestion Results")
    table.add_column("File", style="cyan", no_wrap=True)
    table.add_column("Status")
    table.add_column("Rows", justify="right")
    table.add_column("Inserted", justify="right", style="green")
    table.add_column("Rejected", justify="right", style="yellow")
    table.add_column("Insert errors", justify="right", style="red")

    for outcome in result.files:
        table.add_row(
            outcome.file_name,
            outcome.status.value,
            str(outcome.rows_seen),
            str(outcome.rows_inserted),
            str(outcome.rows_rejected),
            str(outcome.insert_failures),
        )

    console.print(table)
    console.print(
        f"Files: {len(result.files)} "
        f"(skipped {result.files_skipped}, with errors {result.files_with_errors}) | "
        f"Rows inserted: {result.rows_inserted} | "
        f"Quarantine moves: {result.relocations_moved} ok, "
        f"{result.relocations_failed} failed"
    )
    if result.error:
        console.print(f"[red]Run ended early: {result.error}[/red]")


@app.command()
def ingest(config: ConfigOption) -> None:
    """Process the intake directory once, without archiving or emptying it."""
    from detection_intake.ingestion.pipeline import FileIngestionPipeline
    from detection_intake.maintenance.directories import prepare_directories

    intake_config = _load(config)
    prepare_directories(intake_config.paths)
    store = _open_store(intake_config)

    try:
        result = asyncio.run(FileIngestionPipeline(intake_config, store).run())
    finally:
        store.dispose()

    _print_ingestion_result(result)
    if result.error:
        raise typer.Exit(code=1)


@app.command()
def run(config: ConfigOption) -> None:
    """Run one full cycle: ingest, archive and empty the intake directory."""
    from detection_intake.exceptions import ScheduleError
    from detection_intake.maintenance.directories import prepare_directories
    from detection_intake.scheduling.scheduler import run_cycle

    intake_config = _load(config)
    prepare_directories(intake_config.paths)
    store = _open_store(intake_config)

    try:
        cycle = asyncio.run(run_cycle(intake_config, store))
    except ScheduleError as e:
        console.print(f"[red]Cycle failed: {e}[/red]")
        raise typer.Exit(code=1) from e
    finally:
        store.dispose()

    if not cycle.ran:
        console.print("[yellow]Intake directory is empty, nothing to do.[/yellow]")
        return
    if cycle.ingestion is not None:
        _print_ingestion_result(cycle.ingestion)
    if cycle.archive is not None:
        console.print(f"[green]Archived to: {cycle.archive}[/green]")
    if intake_config.schedule.run_empty_directory:
        console.print(f"[dim]Removed {cycle.removed} entries from intake[/dim]")


@app.command()
def schedule(config: ConfigOption) -> None:
    """Run cycles on the configured timer until interrupted."""
    from detection_intake.exceptions import PersistenceError, ScheduleError
    from detection_intake.maintenance.directories import prepare_directories
    from detection_intake.scheduling.scheduler import Scheduler, describe_schedule
    from detection_intake.utils.logging import get_logger

    log = get_logger(__name__)
    intake_config = _load(config)

    if not intake_config.schedule.enabled:
        log.info("Scheduled task is disabled")
        console.print("[yellow]Scheduled task is disabled.[/yellow]")
        return

    store = _open_store(intake_config)
    try:
        store.verify_connection()
    except PersistenceError as e:
        console.print(f"[red]Database connection failed: {e}[/red]")
        store.dispose()
        raise typer.Exit(code=1) from e
    prepare_directories(intake_config.paths)

    console.print(
        f"[blue]Scheduling intake {describe_schedule(intake_config.schedule)}; "
        f"press Ctrl-C to stop[/blue]"
    )

    async def serve() -> int:
        stop = asyncio.Event()
        loop = asyncio.get_running_loop()
        for sig in (signal.SIGINT, signal.SIGTERM):
            with contextlib.suppress(NotImplementedError):
                loop.add_signal_handler(sig, stop.set)
        return await Scheduler(intake_config, store).serve(stop)

    try:
        cycles = asyncio.run(serve())
    except ScheduleError as e:
        console.print(f"[red]Scheduler stopped: {e}[/red]")
        raise typer.Exit(code=1) from e
    finally:
        store.dispose()

    console.print(f"[green]Scheduler stopped after {cycles} cycles[/green]")


@app.command("init-db")
def init_db(config: ConfigOption) -> None:
    """Create the detection table."""
    intake_config = _load(config)
    store = _open_store(intake_config)
    store.dispose()
    console.print(f"[green]Database ready: {intake_config.database.url}[/green]")


@app.command()
def check(config: ConfigOption) -> None:
    """Verify the database connection and the directory tree."""
    from detection_intake.exceptions import PersistenceError
    from detection_intake.maintenance.directories import prepare_directories

    intake_config = _load(config)

    created = prepare_directories(intake_config.paths)
    for directory in created:
        console.print(f"[yellow]Created {directory}[/yellow]")

    store = _open_store(intake_config)
    try:
        rows = store.verify_connection()
    except PersistenceError as e:
        console.print(f"[red]Database connection failed: {e}[/red]")
        raise typer.Exit(code=1) from e
    finally:
        store.dispose()

    table = Table(title="Intake Check")
    table.add_column("Item", style="cyan")
    table.add_column("Value", style="green")
    table.add_row("Database", intake_config.database.url)
    table.add_row("Sample rows", str(rows))
    for directory in intake_config.paths.all_directories():
        table.add_row("Directory", str(directory))
    table.add_row("Field map entries", str(len(intake_config.field_map)))
    console.print(table)


@app.command()
def version() -> None:
    """Show version information."""
    from detection_intake import __version__

    console.print(f"detection-intake version {__version__}")


if __name__ == "__main__":
    app()
