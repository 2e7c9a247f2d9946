"""
Detection store.

The pipeline depends only on the ``DetectionStore`` protocol, so tests can
pass an in-memory fake. ``SqlDetectionStore`` is the production
implementation on SQLAlchemy; one engine is shared by all concurrent
inserts and each insert runs in its own session.
"""

from collections.abc import Mapping
from datetime import UTC, datetime
from pathlib import Path
from typing import Any, Protocol

from sqlalchemy import create_engine, func, select
from sqlalchemy.engine import Engine, make_url
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, sessionmaker

from detection_intake.config.settings import DatabaseConfig
from detection_intake.exceptions import PersistenceError
from detection_intake.storage.models import DETECTION_COLUMNS, Base, Detection
from detection_intake.utils.logging import get_logger

log = get_logger(__name__)


class DetectionStore(Protocol):
    """Anything that can persist one record."""

    def insert(self, record: Mapping[str, Any]) -> None:
        """Persist a record, raising on rejection."""
        ...


def _to_naive_utc(value: Any) -> Any:
    """Convert an ISO-8601 string or aware datetime to naive UTC."""
    if isinstance(value, str):
        value = datetime.fromisoformat(value)
    if isinstance(value, datetime) and value.tzinfo is not None:
        value = value.astimezone(UTC).replace(tzinfo=None)
    return value


class SqlDetectionStore:
    """SQLAlchemy-backed detection store."""

    def __init__(self, engine: Engine) -> None:
        """
        Initialize store.

        Args:
            engine: SQLAlchemy engine; shared across threads.
        """
        self.engine = engine
        self._session_factory = sessionmaker(bind=engine, expire_on_commit=False)

    @classmethod
    def from_config(cls, config: DatabaseConfig) -> "SqlDetectionStore":
        """
        Build a store from database settings.

        SQLite connections are opened with ``check_same_thread=False``
        because inserts run in worker threads, and the parent directory of a
        file-backed database is created if needed.
        """
        url = make_url(config.url)
        connect_args: dict[str, Any] = {}
        if url.get_backend_name() == "sqlite":
            connect_args["check_same_thread"] = False
            if url.database and url.database != ":memory:":
                Path(url.database).parent.mkdir(parents=True, exist_ok=True)
        engine = create_engine(url, echo=config.echo, connect_args=connect_args)
        log.debug("Database engine created", backend=url.get_backend_name())
        return cls(engine)

    def create_schema(self) -> None:
        """Create the detection table if it does not exist."""
        Base.metadata.create_all(self.engine)
        log.info("Database schema ready", tables=sorted(Base.metadata.tables))

    def insert(self, record: Mapping[str, Any]) -> None:
        """
        Insert one detection.

        Args:
            record: Column name to value. ``date_time`` may be an ISO-8601
                string.

        Raises:
            PersistenceError: If the record has unknown columns, an invalid
                timestamp, or the database rejects it.
        """
        unknown = sorted(set(record) - DETECTION_COLUMNS)
        if unknown:
            msg = f"Unknown detection columns: {', '.join(unknown)}"
            raise PersistenceError(msg)

        values = dict(record)
        try:
            if "date_time" in values:
                values["date_time"] = _to_naive_utc(values["date_time"])
        except ValueError as e:
            msg = f"Invalid date_time: {values['date_time']!r}"
            raise PersistenceError(msg) from e

        try:
            with self._session_factory.begin() as session:
                session.add(Detection(**values))
        except SQLAlchemyError as e:
            raise PersistenceError(str(getattr(e, "orig", None) or e)) from e

    def count(self) -> int:
        """Number of stored detections."""
        with Session(self.engine) as session:
            return session.scalar(select(func.count()).select_from(Detection)) or 0

    def verify_connection(self) -> int:
        """
        Run a one-row query to check the database is reachable.

        Returns:
            Number of rows returned (0 or 1).

        Raises:
            PersistenceError: If the query fails.
        """
        try:
            with Session(self.engine) as session:
                rows = session.scalars(select(Detection).limit(1)).all()
        except SQLAlchemyError as e:
            log.error("Database connection test failed", error=str(e))
            raise PersistenceError(str(e)) from e
        log.info("Database connection test passed", rows=len(rows))
        return len(rows)

    def dispose(self) -> None:
        """Close pooled connections."""
        self.engine.dispose()
