"""Boundary protocols for the collaborators the capture core consumes."""

from __future__ import annotations

from typing import Optional, Protocol, runtime_checkable


@runtime_checkable
class KeyValueStore(Protocol):
    """Persisted key-value storage for the roll state."""

    def get_int(self, key: str) -> Optional[int]: ...

    def set_int(self, key: str, value: int) -> None: ...

    def get_string(self, key: str) -> Optional[str]: ...

    def set_string(self, key: str, value: str) -> None: ...

    def remove_key(self, key: str) -> None: ...


@runtime_checkable
class CaptureDevice(Protocol):
    """Camera hardware.

    ``configure`` is blocking and raises when no usable camera exists.
    ``trigger_capture`` resolves to an encoded image (JPEG/PNG bytes).
    Devices may expose ``supports_flash``; a missing attribute means no flash.
    """

    def configure(self) -> None: ...

    async def trigger_capture(self, flash_enabled: bool) -> bytes: ...


@runtime_checkable
class PermissionGate(Protocol):
    """One-shot authorization for camera and photo library access."""

    async def request_capture_and_storage_access(self) -> bool: ...


@runtime_checkable
class AssetStore(Protocol):
    """Photo library holding albums (collections) of persisted images.

    Calls are blocking; the orchestrator runs them off the event loop.
    ``create_asset`` raises on failure.
    """

    def find_collection_by_title(self, title: str) -> Optional[str]: ...

    def create_collection(self, title: str) -> str: ...

    def create_asset(self, data: bytes, collection_id: Optional[str]) -> None: ...


__all__ = ["AssetStore", "CaptureDevice", "KeyValueStore", "PermissionGate"]
