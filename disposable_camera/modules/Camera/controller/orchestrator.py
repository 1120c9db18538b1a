"""
Capture orchestrator.

Coordinates the whole capture-to-persistence pipeline:

    shutter press -> hardware frame -> decode -> film filter -> watermark
    -> JPEG encode -> asset store -> roll decrement

The event loop is the only writer of ``SessionState``. Image work runs on a
thread pool, asset store calls run through ``asyncio.to_thread`` and hardware
configuration runs on its own single-worker executor. Overlapping captures
are independent pipelines; each one reads the roll exactly once, at shutter
press, and reports back exactly once, after persistence.
"""

from __future__ import annotations

import asyncio
import itertools
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass
from datetime import datetime
from typing import Callable, Dict, List, Optional, Set, Tuple

from disposable_camera.core.errors import (
    CameraError,
    CaptureFailedError,
    HardwareUnavailableError,
    Messages,
    PermissionDeniedError,
    PersistFailedError,
    RenamePendingError,
)
from disposable_camera.core.logging_utils import LoggerLike, ensure_structured_logger
from disposable_camera.modules.base.task_manager import AsyncTaskManager

from ..config import CameraConfig
from ..defaults import HAS_LAUNCHED_KEY
from ..domain.album import AlbumResolver
from ..domain.frame import CapturedFrame, ShutterSnapshot
from ..domain.session_state import SessionState, SessionTransition
from ..interfaces import AssetStore, CaptureDevice, PermissionGate
from ..pipelines.codec import decode_frame, encode_jpeg
from ..pipelines.film_filter import FilmEmulationFilter
from ..pipelines.filter_params import get_preset
from ..pipelines.watermark import WatermarkCompositor
from .snapshot import (
    CameraPhase,
    CameraSnapshot,
    CaptureStage,
    SnapshotEvent,
    SnapshotObserver,
    SnapshotPublisher,
)


@dataclass(frozen=True, slots=True)
class CaptureResult:
    """Outcome of one ``capture()`` call."""

    sequence: int
    stage: CaptureStage
    display_count: Optional[int] = None
    watermark_text: Optional[str] = None
    album_id: Optional[str] = None
    degraded: Tuple[str, ...] = ()
    error: Optional[CameraError] = None
    transition: Optional[SessionTransition] = None

    @property
    def persisted(self) -> bool:
        return self.stage is CaptureStage.PERSISTED


class CaptureOrchestrator:
    """Drives captures through the pipeline and owns the observable snapshot."""

    def __init__(
        self,
        device: CaptureDevice,
        permissions: PermissionGate,
        asset_store: AssetStore,
        session_state: SessionState,
        *,
        config: Optional[CameraConfig] = None,
        album_resolver: Optional[AlbumResolver] = None,
        film_filter: Optional[FilmEmulationFilter] = None,
        compositor: Optional[WatermarkCompositor] = None,
        clock: Callable[[], datetime] = datetime.now,
        logger: LoggerLike = None,
    ) -> None:
        self.logger = ensure_structured_logger(logger, component="CaptureOrchestrator", fallback_name=__name__)
        self.config = config or CameraConfig()

        self._device = device
        self._permissions = permissions
        self._assets = asset_store
        self._session = session_state
        self._clock = clock

        self._albums = album_resolver or AlbumResolver(
            asset_store, namespace=self.config.album.namespace, logger=self.logger
        )
        self._filter = film_filter or FilmEmulationFilter(
            get_preset(self.config.filter.preset), seed=self.config.filter.seed, logger=self.logger
        )
        self._compositor = compositor or WatermarkCompositor(self.config.watermark.to_style(), logger=self.logger)

        self._processing_executor = ThreadPoolExecutor(
            max_workers=self.config.output.processing_workers,
            thread_name_prefix="capture-process",
        )
        # Hardware must not be reconfigured concurrently
        self._configure_executor = ThreadPoolExecutor(max_workers=1, thread_name_prefix="camera-configure")
        self._tasks = AsyncTaskManager("CaptureTasks", logger=self.logger)

        self._phase = CameraPhase.IDLE
        self._fatal_error: Optional[CameraError] = None
        self._last_error: Optional[CameraError] = None
        self._flash_enabled = self.config.capture.flash_enabled
        self._flash_supported = False
        self._sequence = itertools.count(1)
        self._stages: Dict[int, CaptureStage] = {}
        self._closed = False

        self._publisher = SnapshotPublisher(self._build_snapshot(), logger=self.logger)

    # ------------------------------------------------------------------
    # Observable state

    @property
    def phase(self) -> CameraPhase:
        return self._phase

    @property
    def session_state(self) -> SessionState:
        return self._session

    def snapshot(self) -> CameraSnapshot:
        return self._build_snapshot()

    def add_observer(self, observer: SnapshotObserver, events: Optional[Set[SnapshotEvent]] = None) -> None:
        self._publisher.add_observer(observer, events)

    def remove_observer(self, observer: SnapshotObserver) -> None:
        self._publisher.remove_observer(observer)

    def in_flight_stages(self) -> Dict[int, CaptureStage]:
        return dict(self._stages)

    # ------------------------------------------------------------------
    # Lifecycle

    async def start(self) -> CameraSnapshot:
        """Request permissions and configure the hardware, once per session."""
        if self._phase is not CameraPhase.IDLE:
            self.logger.debug("start() ignored in phase %s", self._phase.value)
            return self.snapshot()

        await self._set_phase(CameraPhase.CONFIGURING)
        await self._onboard_if_first_launch()

        try:
            granted = await self._permissions.request_capture_and_storage_access()
        except Exception as exc:
            self.logger.error("Permission request failed: %s", exc)
            granted = False
        if not granted:
            await self._fail_session(PermissionDeniedError())
            return self.snapshot()

        loop = asyncio.get_running_loop()
        try:
            await loop.run_in_executor(self._configure_executor, self._device.configure)
        except Exception as exc:
            self.logger.error("Camera configuration failed: %s", exc)
            error = exc if isinstance(exc, HardwareUnavailableError) else HardwareUnavailableError()
            await self._fail_session(error)
            return self.snapshot()

        self._flash_supported = bool(getattr(self._device, "supports_flash", False))
        await self._set_phase(CameraPhase.READY)

        if self._session.album_id is None:
            await self._ensure_album(self._session.session_name)
        return self.snapshot()

    async def mark_unavailable(self, error: Optional[CameraError] = None) -> None:
        """Fail new captures fast; in-flight pipelines still run to completion."""
        await self._fail_session(error or HardwareUnavailableError())

    async def wait_idle(self, timeout: Optional[float] = None) -> bool:
        return await self._tasks.wait_idle(timeout=timeout)

    async def shutdown(self, timeout: float = 5.0) -> None:
        """Let in-flight captures finish, then stop accepting new ones."""
        if self._closed:
            return
        if not await self._tasks.wait_idle(timeout=timeout):
            self.logger.warning("Captures still running after %.1fs; cancelling", timeout)
        self._closed = True
        await self._tasks.shutdown(timeout=timeout)
        await asyncio.to_thread(self._processing_executor.shutdown, wait=True)
        await asyncio.to_thread(self._configure_executor.shutdown, wait=True)
        self.logger.info("Capture orchestrator shut down")

    def close(self) -> None:
        """Release worker threads without an event loop; pending work is dropped."""
        self._closed = True
        self._processing_executor.shutdown(wait=False, cancel_futures=True)
        self._configure_executor.shutdown(wait=False, cancel_futures=True)

    # ------------------------------------------------------------------
    # Operator actions

    def trigger(self) -> asyncio.Task:
        """Fire the shutter without waiting for the pipeline to finish."""
        if self._closed:
            raise RuntimeError("Capture orchestrator is shut down")
        return self._tasks.create(self.capture(), name="capture")

    async def capture(self) -> CaptureResult:
        """Run one capture through the pipeline.

        Failures are surfaced on the snapshot and reported in the result;
        this coroutine does not raise for pipeline errors.
        """
        sequence = next(self._sequence)

        # Everything up to the shutter snapshot runs without yielding
        refusal = self._refusal()
        if refusal is not None:
            await self._surface(refusal)
            return CaptureResult(sequence=sequence, stage=CaptureStage.FAILED, error=refusal)

        roll = self._session.snapshot()
        shutter = ShutterSnapshot(
            display_count=roll.remaining_shots,
            session_name=roll.session_name,
            album_id=roll.album_id,
            max_shots=self._session.max_shots,
            pressed_at=self._clock(),
        )
        flash = self._flash_enabled and self._flash_supported
        self._set_stage(sequence, CaptureStage.CAPTURING)

        try:
            return await self._run_pipeline(sequence, shutter, flash)
        finally:
            self._stages.pop(sequence, None)

    async def resolve_rename(self, name: Optional[str]) -> CameraSnapshot:
        """Name the new roll; blank or cancelled input keeps the placeholder."""
        transition = self._session.resolve_rename(name)
        await self._publish(SnapshotEvent.ROLL_CHANGED)
        await self._refresh_album(transition)
        return self.snapshot()

    async def manual_reset(self, name: Optional[str]) -> CameraSnapshot:
        transition = self._session.manual_reset(name)
        await self._publish(SnapshotEvent.ROLL_CHANGED)
        await self._refresh_album(transition)
        return self.snapshot()

    async def set_flash_enabled(self, enabled: bool) -> CameraSnapshot:
        if self._flash_enabled != bool(enabled):
            self._flash_enabled = bool(enabled)
            self.logger.info("Flash %s", "enabled" if self._flash_enabled else "disabled")
            await self._publish(SnapshotEvent.FLASH_CHANGED)
        return self.snapshot()

    async def dismiss_error(self) -> CameraSnapshot:
        if self._last_error is not None:
            self._last_error = None
            await self._publish(SnapshotEvent.ERROR_DISMISSED)
        return self.snapshot()

    # ------------------------------------------------------------------
    # Pipeline

    async def _run_pipeline(self, sequence: int, shutter: ShutterSnapshot, flash: bool) -> CaptureResult:
        try:
            data = await self._device.trigger_capture(flash)
        except Exception as exc:
            self.logger.error("Capture #%d failed: %s", sequence, exc)
            if isinstance(exc, (HardwareUnavailableError, PermissionDeniedError)):
                # Later captures are refused without touching the device
                error: CameraError = exc
                await self._fail_session(error)
            else:
                error = exc if isinstance(exc, CameraError) else CaptureFailedError(Messages.capture_failed(str(exc)))
                await self._surface(error)
            return CaptureResult(
                sequence=sequence,
                stage=CaptureStage.FAILED,
                display_count=shutter.display_count,
                error=error,
            )

        frame = CapturedFrame(data=bytes(data), shutter=shutter, sequence=sequence)
        self.logger.debug("Capture #%d: %d bytes at %d remaining", sequence, len(frame.data), shutter.display_count)

        loop = asyncio.get_running_loop()
        encoded, degraded = await loop.run_in_executor(self._processing_executor, self._process_frame, frame)

        self._set_stage(sequence, CaptureStage.PERSISTING)
        album_id = shutter.album_id
        if album_id is None:
            album_id = await self._ensure_album(shutter.session_name)

        try:
            await asyncio.to_thread(self._assets.create_asset, encoded, album_id)
        except Exception as exc:
            error = PersistFailedError(Messages.save_failed(str(exc)))
            self.logger.error("Capture #%d could not be saved: %s", sequence, exc)
            await self._surface(error)
            return CaptureResult(
                sequence=sequence,
                stage=CaptureStage.FAILED,
                display_count=shutter.display_count,
                watermark_text=frame.watermark_text,
                album_id=album_id,
                degraded=degraded,
                error=error,
            )

        transition = self._session.record_save_success()
        self._set_stage(sequence, CaptureStage.PERSISTED)
        self.logger.info(
            "Saved '%s' into %s",
            frame.watermark_text,
            album_id or "library root",
        )
        await self._publish(SnapshotEvent.PHOTO_PERSISTED)
        if transition.raised_rename:
            await self._publish(SnapshotEvent.RENAME_REQUESTED)

        return CaptureResult(
            sequence=sequence,
            stage=CaptureStage.PERSISTED,
            display_count=shutter.display_count,
            watermark_text=frame.watermark_text,
            album_id=album_id,
            degraded=degraded,
            transition=transition,
        )

    def _process_frame(self, frame: CapturedFrame) -> Tuple[bytes, Tuple[str, ...]]:
        """Decode, filter, watermark and encode on a worker thread.

        Returns the bytes to persist plus the names of the steps that had to
        be skipped. An undecodable or unencodable frame falls back to the
        original bytes.
        """
        degraded: List[str] = []
        sequence = frame.sequence

        self._set_stage(sequence, CaptureStage.FILTERING)
        try:
            pixels = decode_frame(frame.data)
        except Exception as exc:
            self.logger.warning("Capture #%d could not be decoded, saving original bytes: %s", sequence, exc)
            return frame.data, ("decode",)

        try:
            pixels = self._filter.apply(pixels)
        except Exception as exc:
            self.logger.warning("Capture #%d skipped the film filter: %s", sequence, exc)
            degraded.append("filter")

        self._set_stage(sequence, CaptureStage.WATERMARKING)
        try:
            pixels = self._compositor.render(pixels, frame.watermark_text)
        except Exception as exc:
            self.logger.warning("Capture #%d skipped the watermark: %s", sequence, exc)
            degraded.append("watermark")

        try:
            return encode_jpeg(pixels, self.config.output.jpeg_quality), tuple(degraded)
        except Exception as exc:
            self.logger.warning("Capture #%d could not be encoded, saving original bytes: %s", sequence, exc)
            degraded.append("encode")
            return frame.data, tuple(degraded)

    # ------------------------------------------------------------------
    # Albums

    async def _ensure_album(self, session_name: str) -> Optional[str]:
        try:
            album_id = await asyncio.to_thread(self._albums.resolve, session_name)
        except Exception as exc:
            self.logger.warning("Album for '%s' unavailable: %s", session_name, exc)
            return None
        self._session.bind_album(album_id, session_name=session_name)
        return album_id

    async def _refresh_album(self, transition: SessionTransition) -> None:
        # Asset store access is only granted once configuration succeeded
        if self._phase is CameraPhase.READY and transition.after.album_id is None:
            await self._ensure_album(transition.after.session_name)

    # ------------------------------------------------------------------
    # State helpers

    async def _onboard_if_first_launch(self) -> None:
        store = self._session.store
        if store.get_string(HAS_LAUNCHED_KEY) is not None:
            return
        store.set_string(HAS_LAUNCHED_KEY, "true")
        self._session.request_rename()
        self.logger.info("First launch; asking for a roll name")
        await self._publish(SnapshotEvent.RENAME_REQUESTED)

    def _refusal(self) -> Optional[CameraError]:
        if self._closed:
            return CaptureFailedError(Messages.capture_failed("camera is closed"))
        if self._phase is CameraPhase.FAILED:
            return self._fatal_error or HardwareUnavailableError()
        if self._phase is not CameraPhase.READY:
            return CaptureFailedError(Messages.capture_failed("camera is not ready"))
        if self._session.rename_requested:
            return RenamePendingError()
        return None

    async def _fail_session(self, error: CameraError) -> None:
        self._fatal_error = error
        self.logger.error("Camera unavailable: %s", error.message)
        await self._set_phase(CameraPhase.FAILED)
        await self._surface(error)

    async def _surface(self, error: CameraError) -> None:
        self._last_error = error
        await self._publish(SnapshotEvent.ERROR_RAISED)

    async def _set_phase(self, phase: CameraPhase) -> None:
        if phase is self._phase:
            return
        self.logger.info("Phase %s -> %s", self._phase.value, phase.value)
        self._phase = phase
        await self._publish(SnapshotEvent.PHASE_CHANGED)

    def _set_stage(self, sequence: int, stage: CaptureStage) -> None:
        self._stages[sequence] = stage
        self.logger.debug("Capture #%d -> %s", sequence, stage.value)

    async def _publish(self, event: SnapshotEvent) -> None:
        await self._publisher.publish(event, self._build_snapshot())

    def _build_snapshot(self) -> CameraSnapshot:
        roll = self._session.snapshot()
        error = self._last_error
        return CameraSnapshot(
            remaining_shots=roll.remaining_shots,
            session_name=roll.session_name,
            rename_requested=roll.rename_requested,
            last_error=error.message if error is not None else None,
            error_kind=error.kind if error is not None else None,
            flash_enabled=self._flash_enabled,
            phase=self._phase,
            flash_supported=self._flash_supported,
            in_flight=len(self._stages),
        )


__all__ = ["CaptureOrchestrator", "CaptureResult"]
