"""Shared utilities for disposable camera modules."""

from .preferences import InMemoryKeyValueStore, ModulePreferences, PreferenceChange
from .task_manager import AsyncTaskManager

__all__ = [
    "AsyncTaskManager",
    "InMemoryKeyValueStore",
    "ModulePreferences",
    "PreferenceChange",
]
