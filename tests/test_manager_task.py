"""Tests for TaskManager CRUD and the execute pipeline."""

from __future__ import annotations

import asyncio
from datetime import datetime, timezone
from unittest.mock import AsyncMock, Mock

import pytest
from ulid import ULID

from cmdkit import (
    CommandExecutionError,
    CommandExecutor,
    CommandValidationError,
    Database,
    ExecutionErrorKind,
    ExecutionOutcome,
    ExecutionRecorder,
    ExecutionSettings,
    Task,
    TaskIn,
    TaskManager,
    TaskRepository,
    ViolationKind,
)
from cmdkit.modules.task.executor import NO_OUTPUT_MESSAGE

from _helpers import create_task, make_task_in, posix_only


async def test_save_creates_task(database: Database) -> None:
    async with database.session() as session:
        manager = TaskManager(TaskRepository(session))
        result = await manager.save(make_task_in("ls -la /tmp", name="List tmp"))

        assert result.id is not None
        assert result.name == "List tmp"
        assert result.owner == "ops"
        assert result.command == "ls -la /tmp"
        assert result.executions == []
        assert await manager.count() == 1


@pytest.mark.parametrize(
    ("command", "kind"),
    [
        (None, ViolationKind.EMPTY_COMMAND),
        ("   ", ViolationKind.EMPTY_COMMAND),
        ("echo hi; reboot", ViolationKind.CONTROL_CHARACTER),
        ("rm -rf /", ViolationKind.DENYLISTED_COMMAND),
        ("ls ../secrets", ViolationKind.PATH_TRAVERSAL),
    ],
)
async def test_save_rejects_invalid_commands(database: Database, command: str | None, kind: ViolationKind) -> None:
    """Test that invalid commands are rejected and nothing is stored."""
    async with database.session() as session:
        manager = TaskManager(TaskRepository(session))

        with pytest.raises(CommandValidationError) as exc_info:
            await manager.save(make_task_in(command))

        assert exc_info.value.kind == kind
        assert await manager.count() == 0


async def test_save_with_unknown_id_inserts_under_that_id(database: Database) -> None:
    task_id = ULID()
    async with database.session() as session:
        manager = TaskManager(TaskRepository(session))
        result = await manager.save(TaskIn(id=task_id, name="Pinned", owner="ops", command="date -u"))

        assert result.id == task_id
        assert await manager.find_by_id(task_id) is not None


async def test_save_with_existing_id_replaces_fields(database: Database) -> None:
    """Test that saving with a known id updates in place and keeps the history."""
    task = await create_task(database, "echo first")
    outcome = ExecutionOutcome(
        start_time=datetime.now(timezone.utc),
        end_time=datetime.now(timezone.utc),
        output="first",
        exit_code=0,
    )
    async with database.session() as session:
        repo = TaskRepository(session)
        await repo.append_execution(task.id, outcome)  # type: ignore[arg-type]
        await repo.commit()

    async with database.session() as session:
        manager = TaskManager(TaskRepository(session))
        updated = await manager.save(TaskIn(id=task.id, name="Renamed", owner="dev", command="echo second"))

        assert updated.id == task.id
        assert updated.name == "Renamed"
        assert updated.owner == "dev"
        assert updated.command == "echo second"
        assert [execution.output for execution in updated.executions] == ["first"]
        assert await manager.count() == 1


async def test_find_by_name_is_case_insensitive_substring(database: Database) -> None:
    await create_task(database, "echo a", name="Nightly Backup")
    await create_task(database, "echo b", name="backup-check")
    await create_task(database, "echo c", name="Cleanup")

    async with database.session() as session:
        manager = TaskManager(TaskRepository(session))

        names = sorted(task.name for task in await manager.find_by_name("BACKUP"))
        assert names == ["Nightly Backup", "backup-check"]
        assert await manager.find_by_name("missing") == []


async def test_find_by_name_treats_wildcards_literally(database: Database) -> None:
    await create_task(database, "echo a", name="disk_usage")
    await create_task(database, "echo b", name="diskXusage")

    async with database.session() as session:
        manager = TaskManager(TaskRepository(session))

        assert [task.name for task in await manager.find_by_name("k_u")] == ["disk_usage"]
        assert await manager.find_by_name("%") == []


async def test_find_by_name_folds_non_ascii_case(database: Database) -> None:
    await create_task(database, "echo a", name="École d'été")
    await create_task(database, "echo b", name="ÜBERSICHT Report")
    await create_task(database, "echo c", name="Ecole plain")

    async with database.session() as session:
        manager = TaskManager(TaskRepository(session))

        assert [task.name for task in await manager.find_by_name("école")] == ["École d'été"]
        assert [task.name for task in await manager.find_by_name("ÉCOLE D'ÉTÉ")] == ["École d'été"]
        assert [task.name for task in await manager.find_by_name("übersicht")] == ["ÜBERSICHT Report"]
        assert [task.name for task in await manager.find_by_name("ecole")] == ["Ecole plain"]
        assert await manager.find_by_name("été%") == []


async def test_delete_removes_task(database: Database) -> None:
    task = await create_task(database)

    async with database.session() as session:
        manager = TaskManager(TaskRepository(session))
        await manager.delete_by_id(task.id)  # type: ignore[arg-type]

        assert await manager.find_by_id(task.id) is None  # type: ignore[arg-type]
        assert await manager.count() == 0


async def test_execute_without_executor_raises(database: Database) -> None:
    task = await create_task(database)

    async with database.session() as session:
        manager = TaskManager(TaskRepository(session))

        with pytest.raises(RuntimeError, match="requires an executor"):
            await manager.execute_task(task.id)  # type: ignore[arg-type]


async def test_execute_unknown_task_returns_none(database: Database, executor: CommandExecutor) -> None:
    async with database.session() as session:
        manager = TaskManager(TaskRepository(session), executor=executor)

        assert await manager.execute_task(ULID()) is None


async def test_execute_revalidates_stored_command(database: Database) -> None:
    """Test that a command stored behind the API is rejected before it runs."""
    async with database.session() as session:
        repo = TaskRepository(session)
        task = Task(name="Tampered", owner="ops", command="sudo reboot")
        await repo.save(task)
        await repo.commit()
        task_id = task.id

    executor = Mock(spec=CommandExecutor)
    executor.run = AsyncMock()

    async with database.session() as session:
        manager = TaskManager(TaskRepository(session), executor=executor)

        with pytest.raises(CommandValidationError) as exc_info:
            await manager.execute_task(task_id)

        assert exc_info.value.kind == ViolationKind.DENYLISTED_COMMAND
        executor.run.assert_not_called()
        assert await manager.repo.count_executions(task_id) == 0


@posix_only
async def test_execute_appends_history_in_order(database: Database, executor: CommandExecutor) -> None:
    task = await create_task(database, "echo hello")

    async with database.session() as session:
        manager = TaskManager(TaskRepository(session), executor=executor)

        for _ in range(3):
            result = await manager.execute_task(task.id)  # type: ignore[arg-type]

        assert result is not None
        assert len(result.executions) == 3
        assert all(execution.output == "hello" for execution in result.executions)
        start_times = [execution.start_time for execution in result.executions]
        assert start_times == sorted(start_times)
        for execution in result.executions:
            assert execution.end_time >= execution.start_time


@posix_only
async def test_execute_silent_command_records_info_message(database: Database, executor: CommandExecutor) -> None:
    task = await create_task(database, "true", name="Silent")

    async with database.session() as session:
        manager = TaskManager(TaskRepository(session), executor=executor)
        result = await manager.execute_task(task.id)  # type: ignore[arg-type]

        assert result is not None
        assert result.executions[-1].output == NO_OUTPUT_MESSAGE
        assert result.executions[-1].exit_code == 0


@posix_only
async def test_execute_timeout_leaves_history_unchanged(database: Database) -> None:
    task = await create_task(database, "sleep 10", name="Slow")
    executor = CommandExecutor(ExecutionSettings(timeout=0.5))

    async with database.session() as session:
        manager = TaskManager(TaskRepository(session), executor=executor)

        with pytest.raises(CommandExecutionError) as exc_info:
            await manager.execute_task(task.id)  # type: ignore[arg-type]

        assert exc_info.value.kind == ExecutionErrorKind.TIMEOUT
        assert await manager.repo.count_executions(task.id) == 0  # type: ignore[arg-type]
        found = await manager.find_by_id(task.id)  # type: ignore[arg-type]
        assert found is not None
        assert found.executions == []


@posix_only
async def test_concurrent_executions_are_all_recorded(file_database: Database) -> None:
    """Test that parallel runs of one task each append exactly one record."""
    task = await create_task(file_database, "echo hi", name="Parallel")
    executor = CommandExecutor(ExecutionSettings(timeout=5.0, max_concurrency=4))
    recorder = ExecutionRecorder()
    runs = 6

    async def execute_once() -> None:
        async with file_database.session() as session:
            manager = TaskManager(TaskRepository(session), executor=executor, recorder=recorder)
            await manager.execute_task(task.id)  # type: ignore[arg-type]

    await asyncio.gather(*(execute_once() for _ in range(runs)))

    async with file_database.session() as session:
        repo = TaskRepository(session)
        assert await repo.count_executions(task.id) == runs  # type: ignore[arg-type]
        stored = await repo.find_by_id(task.id)  # type: ignore[arg-type]
        assert stored is not None
        assert sorted(execution.seq for execution in stored.executions) == list(range(1, runs + 1))
