"""FastAPI service demonstrating validated shell task execution with recorded history."""

from __future__ import annotations

from fastapi import FastAPI
from ulid import ULID

from cmdkit import TaskIn, TaskManager, TaskRepository
from cmdkit.api import ServiceBuilder, ServiceInfo
from cmdkit.core import Database


async def seed_example_tasks(app: FastAPI) -> None:
    """Seed example tasks with stable ULIDs."""
    database: Database | None = getattr(app.state, "database", None)
    if database is None:
        return

    async with database.session() as session:
        task_manager = TaskManager(TaskRepository(session))

        if await task_manager.count() > 0:
            return

        await task_manager.save(
            TaskIn(
                id=ULID.from_str("01JCSEED0000000000000TASK1"),
                name="Greeting",
                owner="ops",
                command='echo "Hello from task execution!"',
            )
        )

        await task_manager.save(
            TaskIn(
                id=ULID.from_str("01JCSEED0000000000000TASK2"),
                name="Current date",
                owner="ops",
                command="date -u",
            )
        )

        # Writes to stderr and exits non-zero; the output is still recorded
        await task_manager.save(
            TaskIn(
                id=ULID.from_str("01JCSEED0000000000000TASK3"),
                name="Missing directory listing",
                owner="qa",
                command="ls /nonexistent/directory",
            )
        )

        await task_manager.save(
            TaskIn(
                id=ULID.from_str("01JCSEED0000000000000TASK4"),
                name="Silent task",
                owner="qa",
                command="true",
            )
        )

        # Exceeds the 2 second timeout configured below
        await task_manager.save(
            TaskIn(
                id=ULID.from_str("01JCSEED0000000000000TASK5"),
                name="Slow task",
                owner="qa",
                command="sleep 10",
            )
        )


info = ServiceInfo(
    display_name="Task Execution Service",
    summary="Register shell command tasks, run them on demand and keep their execution history",
    version="1.0.0",
)

app = (
    ServiceBuilder(info=info)
    .with_logging()
    .with_health()
    .with_tasks(timeout=2.0, max_concurrency=3)
    .on_startup(seed_example_tasks)
    .build()
)

if __name__ == "__main__":
    from cmdkit.api import run_app

    run_app("task_api:app")
