"""Disposable camera capture module.

One roll of 24 shots, a film look, a date stamp and an album per roll.
"""

from .config import CameraConfig, load_config
from .controller import (
    CameraPhase,
    CameraSnapshot,
    CaptureOrchestrator,
    CaptureResult,
    CaptureStage,
    SnapshotEvent,
)
from .domain import AlbumResolver, SessionState
from .interfaces import AssetStore, CaptureDevice, KeyValueStore, PermissionGate
from .pipelines import FilmEmulationFilter, WatermarkCompositor, WatermarkStyle
from .runtime import build_orchestrator, open_camera

__all__ = [
    "AlbumResolver",
    "AssetStore",
    "CameraConfig",
    "CameraPhase",
    "CameraSnapshot",
    "CaptureDevice",
    "CaptureOrchestrator",
    "CaptureResult",
    "CaptureStage",
    "FilmEmulationFilter",
    "KeyValueStore",
    "PermissionGate",
    "SessionState",
    "SnapshotEvent",
    "WatermarkCompositor",
    "WatermarkStyle",
    "build_orchestrator",
    "load_config",
    "open_camera",
]
