"""Key-value preference stores backing the persisted roll state."""

from __future__ import annotations

import asyncio
import threading
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Callable, Dict, Iterable, Optional, Set

from disposable_camera.core.config_manager import ConfigManager, get_config_manager
from disposable_camera.core.logging_utils import get_module_logger

logger = get_module_logger(__name__)


@dataclass(slots=True)
class PreferenceChange:
    """Describes which keys were updated or removed in a preference write."""

    updated: Dict[str, Any]
    removed: Set[str]


def _parse_int(value: Any) -> Optional[int]:
    if value is None:
        return None
    try:
        return int(str(value).strip())
    except (TypeError, ValueError):
        return None


class ModulePreferences:
    """File-backed key-value store built on ConfigManager.

    Every mutation is written through to disk before returning, so the
    in-memory cache never runs ahead of the persisted file.
    """

    def __init__(
        self,
        config_path: Path,
        *,
        config_manager: Optional[ConfigManager] = None,
        on_change: Optional[Callable[[PreferenceChange], None]] = None,
        initial_data: Optional[Dict[str, Any]] = None,
    ) -> None:
        self._config_path = Path(config_path)
        self._manager = config_manager or get_config_manager()
        self._on_change = on_change
        self._lock = threading.RLock()
        self._cache: Dict[str, Any] = {}
        if initial_data:
            self._cache = dict(initial_data)
        else:
            self.reload()

    @property
    def config_path(self) -> Path:
        return self._config_path

    # ------------------------------------------------------------------
    # Basic accessors

    def snapshot(self) -> Dict[str, Any]:
        with self._lock:
            return dict(self._cache)

    def get(self, key: str, default: Optional[Any] = None) -> Any:
        with self._lock:
            return self._cache.get(key, default)

    def get_bool(self, key: str, default: bool = False) -> bool:
        with self._lock:
            if key not in self._cache:
                return default
            return str(self._cache[key]).strip().lower() in {"true", "1", "yes", "on"}

    def reload(self) -> Dict[str, Any]:
        with self._lock:
            self._cache = self._manager.read_config(self._config_path)
        return self.snapshot()

    # ------------------------------------------------------------------
    # KeyValueStore protocol

    def get_int(self, key: str) -> Optional[int]:
        return _parse_int(self.get(key))

    def set_int(self, key: str, value: int) -> None:
        self._write_or_warn({key: int(value)})

    def get_string(self, key: str) -> Optional[str]:
        value = self.get(key)
        return None if value is None else str(value)

    def set_string(self, key: str, value: str) -> None:
        self._write_or_warn({key: value})

    def remove_key(self, key: str) -> None:
        if not self.write_sync({}, remove_keys=[key]):
            logger.warning("Failed to remove %s from %s", key, self._config_path)

    def _write_or_warn(self, updates: Dict[str, Any]) -> None:
        if not self.write_sync(updates):
            logger.warning("Failed to persist %s to %s", ", ".join(updates), self._config_path)

    # ------------------------------------------------------------------
    # Mutation helpers

    def write_sync(
        self,
        updates: Dict[str, Any],
        *,
        remove_keys: Optional[Iterable[str]] = None,
    ) -> bool:
        removals = set(remove_keys or ())
        if not updates and not removals:
            return True

        with self._lock:
            success = True
            if updates:
                success = self._manager.write_config(self._config_path, updates)
            if success and removals:
                success = self._manager.remove_keys(self._config_path, removals)

            if success:
                self._apply_cache_updates(updates, removals)
        return success

    async def write_async(
        self,
        updates: Dict[str, Any],
        *,
        remove_keys: Optional[Iterable[str]] = None,
    ) -> bool:
        removals = set(remove_keys or ())
        if not updates and not removals:
            return True

        success = True
        if updates:
            success = await self._manager.write_config_async(self._config_path, updates)
        if success and removals:
            success = await asyncio.to_thread(self._manager.remove_keys, self._config_path, removals)

        if success:
            with self._lock:
                self._apply_cache_updates(updates, removals)
        return success

    # ------------------------------------------------------------------
    # Internal helpers

    def _apply_cache_updates(self, updates: Dict[str, Any], removed: Set[str]) -> None:
        for key, value in updates.items():
            self._cache[key] = self._stringify_value(value)
        for key in removed:
            self._cache.pop(key, None)

        if self._on_change:
            change = PreferenceChange(updated=dict(updates), removed=set(removed))
            try:
                self._on_change(change)
            except Exception:  # pragma: no cover - observer bugs must not block writes
                logger.debug("Preference change callback failed", exc_info=True)

    @staticmethod
    def _stringify_value(value: Any) -> str:
        if isinstance(value, bool):
            return str(value).lower()
        return str(value)


class InMemoryKeyValueStore:
    """Process-local KeyValueStore used for tests and throwaway sessions."""

    def __init__(self, initial_data: Optional[Dict[str, Any]] = None) -> None:
        self._lock = threading.Lock()
        self._data: Dict[str, Any] = dict(initial_data or {})

    def snapshot(self) -> Dict[str, Any]:
        with self._lock:
            return dict(self._data)

    def get_int(self, key: str) -> Optional[int]:
        with self._lock:
            value = self._data.get(key)
        if isinstance(value, bool):
            return int(value)
        return _parse_int(value)

    def set_int(self, key: str, value: int) -> None:
        with self._lock:
            self._data[key] = int(value)

    def get_string(self, key: str) -> Optional[str]:
        with self._lock:
            value = self._data.get(key)
        return None if value is None else str(value)

    def set_string(self, key: str, value: str) -> None:
        with self._lock:
            self._data[key] = str(value)

    def remove_key(self, key: str) -> None:
        with self._lock:
            self._data.pop(key, None)


__all__ = [
    "InMemoryKeyValueStore",
    "ModulePreferences",
    "PreferenceChange",
]
