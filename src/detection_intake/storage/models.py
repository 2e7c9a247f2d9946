"""
ORM model for persisted detections.

One row per accepted input record. The column set is fixed; intake files
map their columns onto it by name.
"""

from datetime import datetime
from uuid import uuid4

from sqlalchemy import DateTime, Float, Integer, String, Text
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column


class Base(DeclarativeBase):
    """Declarative base for intake tables."""


class Detection(Base):
    """A single camera detection event."""

    __tablename__ = "detection"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    detection_id: Mapped[str] = mapped_column(
        String(36), nullable=False, default=lambda: str(uuid4())
    )
    tracker_id: Mapped[str] = mapped_column(Text, nullable=False)
    store_code: Mapped[str] = mapped_column(Text, nullable=False)
    event_type: Mapped[str] = mapped_column(Text, nullable=False)
    event_name: Mapped[str] = mapped_column(Text, nullable=False)
    duration: Mapped[float] = mapped_column(Float, nullable=False, default=0.0)
    count: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    class_type: Mapped[str] = mapped_column(Text, nullable=False)
    message: Mapped[str] = mapped_column(Text, nullable=False)
    date_time: Mapped[datetime] = mapped_column(DateTime, nullable=False)
    camera_name: Mapped[str] = mapped_column(Text, nullable=False)
    region: Mapped[str] = mapped_column(Text, nullable=False)
    region_id: Mapped[str] = mapped_column(Text, nullable=False)
    zone_name: Mapped[str] = mapped_column(Text, nullable=False)
    file_name: Mapped[str | None] = mapped_column(Text, nullable=True)

    def __repr__(self) -> str:
        return f"<Detection {self.id} event={self.event_name} file={self.file_name}>"


DETECTION_COLUMNS = frozenset(
    column.name for column in Detection.__table__.columns if column.name != "id"
)
