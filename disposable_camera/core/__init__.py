"""Core services shared by the disposable camera modules."""

from .config_manager import ConfigManager, get_config_manager
from .errors import (
    CameraError,
    CaptureFailedError,
    ErrorKind,
    FilterStageFailedError,
    HardwareUnavailableError,
    PermissionDeniedError,
    PersistFailedError,
    RenamePendingError,
)
from .logging_config import configure_logging
from .logging_utils import ensure_structured_logger, get_module_logger

__all__ = [
    'CameraError',
    'CaptureFailedError',
    'ConfigManager',
    'ErrorKind',
    'FilterStageFailedError',
    'HardwareUnavailableError',
    'PermissionDeniedError',
    'PersistFailedError',
    'RenamePendingError',
    'configure_logging',
    'ensure_structured_logger',
    'get_config_manager',
    'get_module_logger',
]
