"""Appends execution outcomes to a task's history under a per-task lock."""

from __future__ import annotations

import asyncio
from collections import defaultdict

from ulid import ULID

from cmdkit.core.logging import get_logger

from .executor import ExecutionOutcome
from .models import Task
from .repository import TaskRepository

logger = get_logger(__name__)


class ExecutionRecorder:
    """Serializes history appends per task id so concurrent runs never lose records.

    One recorder must be shared by every request of a process; the locks only
    coordinate writers within a single event loop.
    """

    def __init__(self) -> None:
        self._locks: defaultdict[ULID, asyncio.Lock] = defaultdict(asyncio.Lock)

    def lock_for(self, task_id: ULID) -> asyncio.Lock:
        return self._locks[task_id]

    async def record(self, repo: TaskRepository, task_id: ULID, outcome: ExecutionOutcome) -> Task | None:
        """Append the outcome at the tail of the task's history and persist it.

        Returns the refreshed task, or None if the task was deleted while the
        command was running.
        """
        async with self.lock_for(task_id):
            if not await repo.exists_by_id(task_id):
                logger.warning("task.record_skipped", task_id=str(task_id), reason="task deleted during execution")
                return None

            execution = await repo.append_execution(task_id, outcome)
            await repo.commit()
            task = await repo.find_by_id(task_id)
            if task is not None:
                await repo.refresh_many([task])

        logger.info("task.execution_recorded", task_id=str(task_id), seq=execution.seq)
        return task

    def forget(self, task_id: ULID) -> None:
        """Drop the lock of a deleted task."""
        lock = self._locks.get(task_id)
        if lock is not None and not lock.locked():
            del self._locks[task_id]
