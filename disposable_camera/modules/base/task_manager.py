"""Tracking of background asyncio tasks such as in-flight captures."""

from __future__ import annotations

import asyncio
import logging
import time
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from typing import Optional

from disposable_camera.core.logging_utils import ensure_structured_logger


@dataclass(slots=True)
class _TaskRecord:
    task: asyncio.Task
    name: str
    created: float
    done_callback: Optional[Callable[[asyncio.Task], None]]


class AsyncTaskManager:
    """Keep track of spawned tasks so callers can wait for them to drain."""

    def __init__(
        self,
        name: Optional[str] = None,
        logger: Optional[logging.Logger] = None,
    ) -> None:
        self._name = name or self.__class__.__name__
        self._logger = ensure_structured_logger(logger, component=self._name, fallback_name=__name__)
        self._closed = False
        self._records: dict[asyncio.Task, _TaskRecord] = {}

    def create(
        self,
        coro: Awaitable,
        *,
        name: Optional[str] = None,
        done_callback: Optional[Callable[[asyncio.Task], None]] = None,
    ) -> asyncio.Task:
        """Create and register a task on the current running loop."""

        if self._closed:
            raise RuntimeError(f"{self._name} is shutting down; no new tasks permitted")

        loop = asyncio.get_running_loop()
        task_name = name or getattr(coro, "__name__", None) or repr(coro)
        task = loop.create_task(coro, name=task_name)
        record = _TaskRecord(task=task, name=task_name, created=time.perf_counter(), done_callback=done_callback)
        self._records[task] = record
        task.add_done_callback(self._finalize)
        return task

    def _finalize(self, task: asyncio.Task) -> None:
        rec = self._records.pop(task, None)
        status = self._log_task_result(task, context=rec.name if rec else None)
        elapsed_ms = (time.perf_counter() - rec.created) * 1000 if rec else 0.0
        self._logger.debug(
            "task %s finished (%s) in %.1fms",
            rec.name if rec else task.get_name(),
            status,
            elapsed_ms,
        )
        if rec and rec.done_callback is not None:
            try:
                rec.done_callback(task)
            except Exception:  # pragma: no cover - callback bugs are only logged
                self._logger.exception("done callback failed")

    async def wait_idle(self, *, timeout: Optional[float] = None) -> bool:
        """Wait until every tracked task has finished (without cancelling)."""

        pending = [task for task in self._records if not task.done()]
        if not pending:
            return True
        done, still_pending = await asyncio.wait(pending, timeout=timeout)
        return not still_pending

    async def shutdown(self, *, timeout: float = 5.0) -> bool:
        """Cancel outstanding tasks and wait for their completion."""

        self._closed = True
        pending = [task for task in self._records if not task.done()]
        if not pending:
            return True

        for task in pending:
            task.cancel()
        try:
            await asyncio.wait_for(asyncio.gather(*pending, return_exceptions=True), timeout=timeout)
            return True
        except asyncio.TimeoutError:
            self._logger.warning(
                "shutdown timed out after %.1fs; %d task(s) still pending",
                timeout,
                sum(1 for task in pending if not task.done()),
            )
            return False

    def active_count(self) -> int:
        return sum(1 for task in self._records if not task.done())

    def _log_task_result(self, task: asyncio.Task, *, context: Optional[str]) -> str:
        if task.cancelled():
            return "cancelled"

        exc = task.exception()
        if exc is not None:
            self._logger.error(
                "task %s failed: %s",
                context or task.get_name(),
                exc,
                exc_info=exc,
            )
            return f"error:{exc.__class__.__name__}"

        return "completed"


__all__ = ["AsyncTaskManager"]
