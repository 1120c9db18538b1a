"""Unit tests for AsyncTaskManager."""

import asyncio
import logging

import pytest

from disposable_camera.modules.base.task_manager import AsyncTaskManager


class TestAsyncTaskManager:

    @pytest.mark.asyncio
    async def test_wait_idle_drains_tasks(self):
        manager = AsyncTaskManager("captures")
        finished = []

        async def work(value):
            await asyncio.sleep(0.01)
            finished.append(value)

        manager.create(work(1))
        manager.create(work(2))
        assert manager.active_count() == 2

        assert await manager.wait_idle(timeout=1.0) is True
        assert sorted(finished) == [1, 2]
        assert manager.active_count() == 0

    @pytest.mark.asyncio
    async def test_wait_idle_timeout(self):
        manager = AsyncTaskManager("captures")
        release = asyncio.Event()
        manager.create(release.wait())

        assert await manager.wait_idle(timeout=0.01) is False

        release.set()
        assert await manager.wait_idle(timeout=1.0) is True

    @pytest.mark.asyncio
    async def test_shutdown_cancels_and_refuses_new_tasks(self):
        manager = AsyncTaskManager("captures")
        task = manager.create(asyncio.sleep(10))

        assert await manager.shutdown(timeout=1.0) is True
        assert task.cancelled()

        coro = asyncio.sleep(0)
        with pytest.raises(RuntimeError):
            manager.create(coro)
        coro.close()

    @pytest.mark.asyncio
    async def test_done_callback_and_failure_logging(self, caplog):
        manager = AsyncTaskManager("captures")
        seen = []

        async def boom():
            raise ValueError("kaput")

        with caplog.at_level(logging.ERROR):
            task = manager.create(boom(), name="boom", done_callback=seen.append)
            await asyncio.gather(task, return_exceptions=True)
            await asyncio.sleep(0)

        assert seen == [task]
        assert "kaput" in caplog.text
