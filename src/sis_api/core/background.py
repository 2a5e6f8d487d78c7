"""In-process background task runner.

Runs export-processing attempts detached from the request that created
the job. The job row is the record of an attempt's outcome, so the runner
keeps only handles for tasks still in flight; a finished task is forgotten.
"""

import asyncio
import uuid
from collections.abc import Coroutine
from typing import Any

from loguru import logger


class InProcessTaskRunner:
    """Background task runner using the caller's asyncio event loop."""

    def __init__(self) -> None:
        self._tasks: dict[str, asyncio.Task[Any]] = {}

    @property
    def in_flight(self) -> int:
        """Number of submitted tasks that have not finished."""
        return len(self._tasks)

    def submit_task(self, coro: Coroutine[Any, Any, Any]) -> str:
        """Submit an async task for background execution.

        Args:
            coro: The coroutine to execute.

        Returns:
            A task ID string used in log lines.

        Raises:
            RuntimeError: If called outside a running event loop.
        """
        task_id = str(uuid.uuid4())

        async def _run() -> None:
            try:
                await coro
            except Exception:
                logger.exception("Background task {} failed", task_id)
            finally:
                self._tasks.pop(task_id, None)

        wrapper = _run()
        try:
            task = asyncio.get_running_loop().create_task(wrapper)
        except RuntimeError:
            wrapper.close()
            coro.close()
            raise
        self._tasks[task_id] = task
        return task_id

    async def drain(self) -> None:
        """Wait for all in-flight tasks to finish."""
        if self._tasks:
            await asyncio.gather(*self._tasks.values(), return_exceptions=True)


task_runner = InProcessTaskRunner()
