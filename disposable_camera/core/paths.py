"""Centralized path constants for the disposable camera core."""

from __future__ import annotations

import os
from pathlib import Path

PROJECT_ROOT = Path(__file__).resolve().parents[2]
PACKAGE_ROOT = PROJECT_ROOT / "disposable_camera"

# User-specific state (allows running from read-only project directories)
_USER_STATE_ENV = os.environ.get("DISPOSABLE_CAMERA_STATE_DIR")
USER_STATE_DIR = Path(_USER_STATE_ENV).expanduser() if _USER_STATE_ENV else (Path.home() / ".disposable_camera")
USER_CONFIG_OVERRIDES_DIR = USER_STATE_DIR / "config_overrides"

# Roll state (shot counter, roll name, album id) lives in its own key=value file
SESSION_STATE_FILE = USER_STATE_DIR / "session.txt"
CAMERA_CONFIG_FILE = USER_STATE_DIR / "camera.txt"

LOGS_DIR = USER_STATE_DIR / "logs"
CAMERA_LOG_FILE = LOGS_DIR / "camera.log"


def ensure_directories() -> None:
    """Create necessary directories if they don't exist."""

    USER_STATE_DIR.mkdir(parents=True, exist_ok=True)
    USER_CONFIG_OVERRIDES_DIR.mkdir(parents=True, exist_ok=True)
    LOGS_DIR.mkdir(parents=True, exist_ok=True)


__all__ = [
    "PROJECT_ROOT",
    "PACKAGE_ROOT",
    "USER_STATE_DIR",
    "USER_CONFIG_OVERRIDES_DIR",
    "SESSION_STATE_FILE",
    "CAMERA_CONFIG_FILE",
    "LOGS_DIR",
    "CAMERA_LOG_FILE",
    "ensure_directories",
]
