"""Relational persistence for accepted detections."""

from detection_intake.storage.models import Base, Detection
from detection_intake.storage.store import DetectionStore, SqlDetectionStore

__all__ = ["Base", "Detection", "DetectionStore", "SqlDetectionStore"]
