"""Wiring for a camera backed by the user's state directory."""

from __future__ import annotations

from pathlib import Path
from typing import Any, Dict, Optional

from disposable_camera.core.logging_config import configure_logging
from disposable_camera.core.logging_utils import get_module_logger
from disposable_camera.core.paths import CAMERA_CONFIG_FILE, SESSION_STATE_FILE, ensure_directories
from disposable_camera.modules.base.preferences import ModulePreferences

from .config import CameraConfig, load_config
from .controller.orchestrator import CaptureOrchestrator
from .domain.session_state import SessionState
from .interfaces import AssetStore, CaptureDevice, PermissionGate

logger = get_module_logger(__name__)


def build_orchestrator(
    device: CaptureDevice,
    permissions: PermissionGate,
    asset_store: AssetStore,
    *,
    state_path: Optional[Path] = None,
    config_path: Optional[Path] = None,
    overrides: Optional[Dict[str, Any]] = None,
    setup_logging: bool = True,
) -> CaptureOrchestrator:
    """Create an orchestrator whose roll state persists to ``state_path``.

    Defaults to the files under the user state directory. The caller still
    has to ``await orchestrator.start()``.
    """
    if state_path is None or config_path is None:
        ensure_directories()

    config_prefs = ModulePreferences(Path(config_path or CAMERA_CONFIG_FILE))
    config: CameraConfig = load_config(config_prefs, overrides, logger=logger)

    if setup_logging:
        configure_logging(config.logging.level, log_file=config.logging.file)

    state_prefs = ModulePreferences(Path(state_path or SESSION_STATE_FILE))
    session = SessionState(state_prefs, logger=logger)

    logger.info(
        "Camera wired: preset=%s quality=%d workers=%d state=%s",
        config.filter.preset,
        config.output.jpeg_quality,
        config.output.processing_workers,
        state_prefs.config_path,
    )
    return CaptureOrchestrator(device, permissions, asset_store, session, config=config)


async def open_camera(
    device: CaptureDevice,
    permissions: PermissionGate,
    asset_store: AssetStore,
    **kwargs: Any,
) -> CaptureOrchestrator:
    """Build an orchestrator and run its startup sequence."""
    orchestrator = build_orchestrator(device, permissions, asset_store, **kwargs)
    await orchestrator.start()
    return orchestrator


__all__ = ["build_orchestrator", "open_camera"]
