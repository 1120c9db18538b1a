"""
Observable camera snapshot.

The orchestrator publishes a fresh immutable ``CameraSnapshot`` after every
roll transition, phase change and surfaced error. Observers are async
callbacks, optionally filtered to a subset of events.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Awaitable, Callable, Dict, List, Optional, Set

from disposable_camera.core.errors import ErrorKind
from disposable_camera.core.logging_utils import LoggerLike, ensure_structured_logger


class CameraPhase(Enum):
    """Lifecycle of the capture session."""
    IDLE = "idle"
    CONFIGURING = "configuring"
    READY = "ready"
    FAILED = "failed"          # Terminal until restarted


class CaptureStage(Enum):
    """Per-capture pipeline stages."""
    CAPTURING = "capturing"
    FILTERING = "filtering"
    WATERMARKING = "watermarking"
    PERSISTING = "persisting"
    PERSISTED = "persisted"
    FAILED = "failed"


class SnapshotEvent(Enum):
    """Events emitted alongside a new snapshot."""
    PHASE_CHANGED = "phase_changed"
    ROLL_CHANGED = "roll_changed"
    RENAME_REQUESTED = "rename_requested"
    PHOTO_PERSISTED = "photo_persisted"
    ERROR_RAISED = "error_raised"
    ERROR_DISMISSED = "error_dismissed"
    FLASH_CHANGED = "flash_changed"


@dataclass(frozen=True, slots=True)
class CameraSnapshot:
    """What the UI needs to render the camera at one instant."""
    remaining_shots: int
    session_name: str
    rename_requested: bool
    last_error: Optional[str] = None
    error_kind: Optional[ErrorKind] = None
    flash_enabled: bool = False
    phase: CameraPhase = CameraPhase.IDLE
    flash_supported: bool = False
    in_flight: int = 0


@dataclass(frozen=True, slots=True)
class SnapshotChange:
    """A published snapshot plus the event that produced it."""
    event: SnapshotEvent
    snapshot: CameraSnapshot
    previous: Optional[CameraSnapshot] = None
    timestamp: datetime = field(default_factory=datetime.now)


# Type alias for observer callbacks
SnapshotObserver = Callable[[SnapshotChange], Awaitable[None]]


class SnapshotPublisher:
    """Holds the latest snapshot and fans changes out to observers."""

    def __init__(self, initial: CameraSnapshot, *, logger: LoggerLike = None) -> None:
        self.logger = ensure_structured_logger(logger, component="SnapshotPublisher", fallback_name=__name__)
        self._current = initial
        self._observers: List[SnapshotObserver] = []
        self._event_filters: Dict[SnapshotObserver, Optional[Set[SnapshotEvent]]] = {}

    @property
    def current(self) -> CameraSnapshot:
        return self._current

    @property
    def observer_count(self) -> int:
        return len(self._observers)

    def add_observer(
        self,
        observer: SnapshotObserver,
        events: Optional[Set[SnapshotEvent]] = None,
    ) -> None:
        """
        Register an observer for snapshot changes.

        Args:
            observer: Async callback function
            events: Optional set of events to receive (None = all)
        """
        if observer not in self._observers:
            self._observers.append(observer)
            self._event_filters[observer] = set(events) if events is not None else None
            self.logger.debug("Added observer %s", getattr(observer, "__name__", str(observer)))

    def remove_observer(self, observer: SnapshotObserver) -> None:
        if observer in self._observers:
            self._observers.remove(observer)
            self._event_filters.pop(observer, None)
            self.logger.debug("Removed observer %s", getattr(observer, "__name__", str(observer)))

    async def publish(self, event: SnapshotEvent, snapshot: CameraSnapshot) -> SnapshotChange:
        change = SnapshotChange(event=event, snapshot=snapshot, previous=self._current)
        self._current = snapshot

        # Copy so observers may unsubscribe while being notified
        for observer in list(self._observers):
            event_filter = self._event_filters.get(observer)
            if event_filter is not None and event not in event_filter:
                continue
            try:
                await observer(change)
            except Exception as e:
                self.logger.error(
                    "Observer %s error handling %s: %s",
                    getattr(observer, "__name__", str(observer)),
                    event.value,
                    e,
                    exc_info=True,
                )
        return change


__all__ = [
    "CameraPhase",
    "CameraSnapshot",
    "CaptureStage",
    "SnapshotChange",
    "SnapshotEvent",
    "SnapshotObserver",
    "SnapshotPublisher",
]
