"""Capture orchestration and the observable snapshot."""

from .orchestrator import CaptureOrchestrator, CaptureResult
from .snapshot import (
    CameraPhase,
    CameraSnapshot,
    CaptureStage,
    SnapshotChange,
    SnapshotEvent,
    SnapshotPublisher,
)

__all__ = [
    "CameraPhase",
    "CameraSnapshot",
    "CaptureOrchestrator",
    "CaptureResult",
    "CaptureStage",
    "SnapshotChange",
    "SnapshotEvent",
    "SnapshotPublisher",
]
