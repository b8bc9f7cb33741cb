"""Task manager: CRUD with command validation, and the validate-execute-record pipeline."""

from __future__ import annotations

from ulid import ULID

from cmdkit.core.logging import get_logger
from cmdkit.core.manager import BaseManager

from .exceptions import CommandExecutionError
from .executor import CommandExecutor
from .models import Task
from .recorder import ExecutionRecorder
from .repository import TaskRepository
from .schemas import TaskIn, TaskOut
from .validator import CommandValidator

logger = get_logger(__name__)


class TaskManager(BaseManager[Task, TaskIn, TaskOut, ULID]):
    """Manager for Task entities with validated command execution."""

    def __init__(
        self,
        repo: TaskRepository,
        validator: CommandValidator | None = None,
        executor: CommandExecutor | None = None,
        recorder: ExecutionRecorder | None = None,
    ) -> None:
        """Initialize task manager with repository and execution pipeline components."""
        super().__init__(repo, Task, TaskOut)
        self.repo: TaskRepository = repo
        self.validator = validator or CommandValidator()
        self.executor = executor
        self.recorder = recorder or ExecutionRecorder()

    async def save(self, data: TaskIn) -> TaskOut:
        """Validate the command, then create or update the task."""
        self.validator.validate(data.command)
        saved = await super().save(data)
        logger.info("task.saved", task_id=str(saved.id), name=saved.name)
        return saved

    async def find_by_name(self, fragment: str) -> list[TaskOut]:
        """Find tasks whose name contains the fragment, ignoring case."""
        tasks = await self.repo.find_by_name_containing(fragment)
        return [self._to_output_schema(task) for task in tasks]

    async def delete_by_id(self, id: ULID) -> None:
        await super().delete_by_id(id)
        self.recorder.forget(id)
        logger.info("task.deleted", task_id=str(id))

    async def execute_task(self, task_id: ULID) -> TaskOut | None:
        """Run the task's command and append the outcome to its history.

        Returns None when the task does not exist. The stored command is
        validated again before it runs, since storage may have been modified
        behind the API. Raises CommandValidationError or CommandExecutionError
        on failure; failed runs leave the history untouched.
        """
        if self.executor is None:
            raise RuntimeError("Task execution requires an executor. Use ServiceBuilder.with_tasks() to enable.")

        task = await self.repo.find_by_id(task_id)
        if task is None:
            return None

        self.validator.validate(task.command)

        log = logger.bind(task_id=str(task_id))
        log.info("task.execution_started")
        try:
            outcome = await self.executor.run(task.command)
        except CommandExecutionError as e:
            log.warning("task.execution_failed", kind=e.kind, error=str(e))
            raise

        updated = await self.recorder.record(self.repo, task_id, outcome)
        if updated is None:
            return None
        return self._to_output_schema(updated)
