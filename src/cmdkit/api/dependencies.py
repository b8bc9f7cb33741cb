"""Feature-specific FastAPI dependency injection for managers."""

from typing import Annotated

from fastapi import Depends, Request
from sqlalchemy.ext.asyncio import AsyncSession

from cmdkit.core.api.dependencies import get_session
from cmdkit.modules.task import TaskManager, TaskRepository


async def get_task_manager(
    request: Request,
    session: Annotated[AsyncSession, Depends(get_session)],
) -> TaskManager:
    """Get a task manager wired to the app's shared executor and recorder.

    Without ServiceBuilder.with_tasks() the manager has no executor and
    execution requests fail.
    """
    repo = TaskRepository(session)
    executor = getattr(request.app.state, "task_executor", None)
    recorder = getattr(request.app.state, "execution_recorder", None)
    return TaskManager(repo, executor=executor, recorder=recorder)
