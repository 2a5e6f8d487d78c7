"""Tests for the background task runner module."""

import asyncio

import pytest
from loguru import logger

from sis_api.core.background import InProcessTaskRunner


class TestInProcessTaskRunner:
    """Tests for InProcessTaskRunner."""

    @pytest.mark.asyncio
    async def test_submit_task_returns_task_id(self) -> None:
        runner = InProcessTaskRunner()

        async def noop() -> None:
            pass

        task_id = runner.submit_task(noop())
        assert len(task_id) == 36
        await runner.drain()

    @pytest.mark.asyncio
    async def test_task_runs_and_is_forgotten(self) -> None:
        runner = InProcessTaskRunner()
        completed = False

        async def simple_task() -> None:
            nonlocal completed
            completed = True

        runner.submit_task(simple_task())
        await runner.drain()

        assert completed is True
        assert runner.in_flight == 0

    @pytest.mark.asyncio
    async def test_failed_task_is_logged_and_forgotten(self) -> None:
        runner = InProcessTaskRunner()
        messages: list[str] = []
        sink_id = logger.add(lambda message: messages.append(str(message)), level="ERROR")

        async def failing_task() -> None:
            msg = "Task failed"
            raise RuntimeError(msg)

        try:
            task_id = runner.submit_task(failing_task())
            await runner.drain()
        finally:
            logger.remove(sink_id)

        assert runner.in_flight == 0
        assert any(f"Background task {task_id} failed" in m for m in messages)

    @pytest.mark.asyncio
    async def test_in_flight_counts_running_tasks(self) -> None:
        runner = InProcessTaskRunner()
        started = asyncio.Event()
        release = asyncio.Event()

        async def slow_task() -> None:
            started.set()
            await release.wait()

        runner.submit_task(slow_task())
        await started.wait()
        assert runner.in_flight == 1

        release.set()
        await runner.drain()
        assert runner.in_flight == 0

    def test_submit_without_running_loop_raises(self) -> None:
        runner = InProcessTaskRunner()

        async def noop() -> None:
            pass

        with pytest.raises(RuntimeError):
            runner.submit_task(noop())
        assert runner.in_flight == 0
