"""Task repository: the persistence collaborator for tasks and their history."""

from __future__ import annotations

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession
from ulid import ULID

from cmdkit.core.repository import BaseRepository

from .executor import ExecutionOutcome
from .models import Task, TaskExecution


class TaskRepository(BaseRepository[Task, ULID]):
    """Repository for Task entities and their append-only execution history."""

    def __init__(self, session: AsyncSession) -> None:
        """Initialize task repository with database session."""
        super().__init__(session, Task)

    async def find_by_name_containing(self, fragment: str) -> list[Task]:
        """Find tasks whose name contains the fragment, ignoring case.

        SQLite's lower() and LIKE only fold ASCII letters, so fragments with
        other characters are matched with str.casefold over all tasks.
        """
        if not fragment.isascii():
            needle = fragment.casefold()
            return [task for task in await self.find_all() if needle in task.name.casefold()]
        pattern = f"%{_escape_like(fragment.lower())}%"
        stmt = select(Task).where(func.lower(Task.name).like(pattern, escape="\\")).order_by(Task.id)
        result = await self.s.scalars(stmt)
        return list(result.all())

    async def count_executions(self, task_id: ULID) -> int:
        result = await self.s.scalar(
            select(func.count()).select_from(TaskExecution).where(TaskExecution.task_id == task_id)
        )
        return int(result or 0)

    async def append_execution(self, task_id: ULID, outcome: ExecutionOutcome) -> TaskExecution:
        """Stage a new history row after the task's last one; the caller commits."""
        last_seq = await self.s.scalar(select(func.max(TaskExecution.seq)).where(TaskExecution.task_id == task_id))
        execution = TaskExecution(
            task_id=task_id,
            seq=(last_seq or 0) + 1,
            start_time=outcome.start_time,
            end_time=outcome.end_time,
            output=outcome.output,
            exit_code=outcome.exit_code,
        )
        self.s.add(execution)
        await self.s.flush()
        return execution


def _escape_like(value: str) -> str:
    return value.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")
