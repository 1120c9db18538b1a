"""Error taxonomy shared by the capture pipeline."""

from __future__ import annotations

from enum import Enum


class ErrorKind(Enum):
    """Classification attached to every surfaced error."""

    PERMISSION_DENIED = "permission_denied"
    HARDWARE_UNAVAILABLE = "hardware_unavailable"
    CAPTURE_FAILED = "capture_failed"
    RENAME_PENDING = "rename_pending"
    FILTER_STAGE_FAILED = "filter_stage_failed"
    PERSIST_FAILED = "persist_failed"


class Messages:
    """User-facing message text."""

    PERMISSIONS_REQUIRED = "Camera and Photo Library permissions are required."
    NO_CAMERA = "Uh oh, no camera found."
    RENAME_PENDING = "Name the new roll before taking another shot."

    @staticmethod
    def capture_failed(reason: str) -> str:
        return f"Capture failed: {reason}"

    @staticmethod
    def save_failed(reason: str) -> str:
        return f"Save failed: {reason}"


class CameraError(Exception):
    """Base class for errors raised by the camera core."""

    kind: ErrorKind = ErrorKind.CAPTURE_FAILED

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message

    def __str__(self) -> str:
        return self.message


class PermissionDeniedError(CameraError):
    kind = ErrorKind.PERMISSION_DENIED

    def __init__(self, message: str = Messages.PERMISSIONS_REQUIRED) -> None:
        super().__init__(message)


class HardwareUnavailableError(CameraError):
    kind = ErrorKind.HARDWARE_UNAVAILABLE

    def __init__(self, message: str = Messages.NO_CAMERA) -> None:
        super().__init__(message)


class CaptureFailedError(CameraError):
    kind = ErrorKind.CAPTURE_FAILED


class RenamePendingError(CameraError):
    """Raised when a capture is attempted before a finished roll is named."""

    kind = ErrorKind.RENAME_PENDING

    def __init__(self, message: str = Messages.RENAME_PENDING) -> None:
        super().__init__(message)


class FilterStageFailedError(CameraError):
    """Recovered locally by the filter; never surfaced to the operator."""

    kind = ErrorKind.FILTER_STAGE_FAILED

    def __init__(self, stage: str, reason: str) -> None:
        super().__init__(f"Filter stage '{stage}' failed: {reason}")
        self.stage = stage


class PersistFailedError(CameraError):
    kind = ErrorKind.PERSIST_FAILED


__all__ = [
    "CameraError",
    "CaptureFailedError",
    "ErrorKind",
    "FilterStageFailedError",
    "HardwareUnavailableError",
    "Messages",
    "PermissionDeniedError",
    "PersistFailedError",
    "RenamePendingError",
]
