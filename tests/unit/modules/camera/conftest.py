"""Fixtures for Camera module unit tests."""

from __future__ import annotations

from datetime import datetime
from typing import Callable, Optional

import numpy as np
import pytest

from disposable_camera.modules.base.preferences import InMemoryKeyValueStore
from disposable_camera.modules.Camera.config import CameraConfig
from disposable_camera.modules.Camera.controller.orchestrator import CaptureOrchestrator
from disposable_camera.modules.Camera.defaults import HAS_LAUNCHED_KEY
from disposable_camera.modules.Camera.domain.session_state import SessionState
from disposable_camera.modules.Camera.pipelines.film_filter import FilmEmulationFilter
from disposable_camera.modules.Camera.pipelines.watermark import WatermarkCompositor
from tests.infrastructure.mocks.camera_fakes import (
    FakeAssetStore,
    FakeCaptureDevice,
    FakePermissionGate,
)

SHUTTER_TIME = datetime(2024, 3, 5, 10, 30)


@pytest.fixture
def fixed_clock() -> Callable[[], datetime]:
    return lambda: SHUTTER_TIME


@pytest.fixture
def kv_store() -> InMemoryKeyValueStore:
    """Store for a camera that has been launched before."""
    return InMemoryKeyValueStore({HAS_LAUNCHED_KEY: "true"})


@pytest.fixture
def device() -> FakeCaptureDevice:
    return FakeCaptureDevice()


@pytest.fixture
def permissions() -> FakePermissionGate:
    return FakePermissionGate()


@pytest.fixture
def asset_store() -> FakeAssetStore:
    return FakeAssetStore()


@pytest.fixture
def gray_frame() -> np.ndarray:
    frame = np.full((120, 160, 3), 128, dtype=np.uint8)
    return frame


@pytest.fixture
def make_orchestrator(device, permissions, asset_store, kv_store, fixed_clock):
    """Factory building orchestrators over the shared fakes.

    Executors are shut down when the test finishes.
    """
    created = []

    def factory(
        *,
        remaining: Optional[int] = None,
        name: Optional[str] = None,
        store: Optional[InMemoryKeyValueStore] = None,
        film_filter: Optional[FilmEmulationFilter] = None,
        compositor: Optional[WatermarkCompositor] = None,
        config: Optional[CameraConfig] = None,
    ) -> CaptureOrchestrator:
        backing = store if store is not None else kv_store
        if remaining is not None:
            backing.set_int("remainingShots", remaining)
        if name is not None:
            backing.set_string("sessionName", name)
        session = SessionState(backing)
        orchestrator = CaptureOrchestrator(
            device,
            permissions,
            asset_store,
            session,
            config=config,
            film_filter=film_filter or FilmEmulationFilter(seed=1234),
            compositor=compositor,
            clock=fixed_clock,
        )
        created.append(orchestrator)
        return orchestrator

    yield factory

    for orchestrator in created:
        orchestrator.close()
