"""Tests for TaskRouter status code mapping."""

from datetime import datetime, timezone
from unittest.mock import AsyncMock, Mock

import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient
from ulid import ULID

from cmdkit import (
    CommandExecutionError,
    CommandValidationError,
    ExecutionErrorKind,
    TaskIn,
    TaskManager,
    TaskOut,
)
from cmdkit.modules.task import CommandViolation, TaskExecutionOut, TaskRouter, ViolationKind


def make_task_out(task_id: ULID | None = None, **overrides: object) -> TaskOut:
    now = datetime.now(timezone.utc)
    fields: dict[str, object] = {
        "id": task_id or ULID(),
        "created_at": now,
        "updated_at": now,
        "name": "Greeting",
        "owner": "ops",
        "command": "echo hello",
        "executions": [],
    }
    fields.update(overrides)
    return TaskOut.model_validate(fields)


def denylisted() -> CommandValidationError:
    return CommandValidationError(
        CommandViolation(
            kind=ViolationKind.DENYLISTED_COMMAND,
            message="Command contains a denylisted system command and has been rejected.",
            match="rm ",
        )
    )


@pytest.fixture
def mock_manager() -> Mock:
    return Mock(spec=TaskManager)


@pytest.fixture
def client(mock_manager: Mock) -> TestClient:
    def manager_factory() -> TaskManager:
        return mock_manager

    app = FastAPI()
    router = TaskRouter.create(
        prefix="/api/v1/tasks",
        tags=["tasks"],
        entity_in_type=TaskIn,
        entity_out_type=TaskOut,
        manager_factory=manager_factory,
    )
    app.include_router(router)
    return TestClient(app)


def test_execute_task_returns_updated_task(client: TestClient, mock_manager: Mock) -> None:
    task_id = ULID()
    now = datetime.now(timezone.utc)
    execution = TaskExecutionOut(start_time=now, end_time=now, output="hello", exit_code=0)
    mock_manager.execute_task = AsyncMock(return_value=make_task_out(task_id, executions=[execution]))

    response = client.post(f"/api/v1/tasks/{task_id}/$execute")

    assert response.status_code == 200
    data = response.json()
    assert data["id"] == str(task_id)
    assert data["executions"][0]["output"] == "hello"
    mock_manager.execute_task.assert_awaited_once_with(task_id)


def test_execute_task_validation_error_returns_400(client: TestClient, mock_manager: Mock) -> None:
    """Test that a command rejected at execution time returns 400 Bad Request."""
    mock_manager.execute_task = AsyncMock(side_effect=denylisted())

    response = client.post(f"/api/v1/tasks/{ULID()}/$execute")

    assert response.status_code == 400
    assert "denylisted" in response.json()["detail"]


@pytest.mark.parametrize(
    ("kind", "message"),
    [
        (ExecutionErrorKind.TIMEOUT, "Command execution timed out after 5 seconds."),
        (ExecutionErrorKind.SPAWN_FAILURE, "Failed to start command: [Errno 2] No such file or directory"),
        (ExecutionErrorKind.RUNTIME_FAILURE, "Command execution failed: OSError - broken"),
    ],
)
def test_execute_task_execution_error_returns_500(
    client: TestClient, mock_manager: Mock, kind: ExecutionErrorKind, message: str
) -> None:
    mock_manager.execute_task = AsyncMock(side_effect=CommandExecutionError(kind, message))

    response = client.post(f"/api/v1/tasks/{ULID()}/$execute")

    assert response.status_code == 500
    assert response.json()["detail"] == f"Command execution failed: {message}"


def test_execute_unknown_task_returns_404(client: TestClient, mock_manager: Mock) -> None:
    task_id = ULID()
    mock_manager.execute_task = AsyncMock(return_value=None)

    response = client.post(f"/api/v1/tasks/{task_id}/$execute")

    assert response.status_code == 404
    assert str(task_id) in response.json()["detail"]


def test_execute_task_with_invalid_ulid(client: TestClient, mock_manager: Mock) -> None:
    mock_manager.execute_task = AsyncMock()

    response = client.post("/api/v1/tasks/not-a-ulid/$execute")

    assert response.status_code == 400
    assert "Invalid ULID" in response.json()["detail"]
    mock_manager.execute_task.assert_not_called()


def test_search_returns_matches(client: TestClient, mock_manager: Mock) -> None:
    mock_manager.find_by_name = AsyncMock(return_value=[make_task_out(name="Nightly backup")])

    response = client.get("/api/v1/tasks/$search", params={"name": "backup"})

    assert response.status_code == 200
    assert [task["name"] for task in response.json()] == ["Nightly backup"]
    mock_manager.find_by_name.assert_awaited_once_with("backup")


def test_search_without_matches_returns_404(client: TestClient, mock_manager: Mock) -> None:
    mock_manager.find_by_name = AsyncMock(return_value=[])

    response = client.get("/api/v1/tasks/$search", params={"name": "nothing"})

    assert response.status_code == 404
    assert response.json()["detail"] == "No tasks found matching name: nothing"


def test_search_requires_name(client: TestClient) -> None:
    response = client.get("/api/v1/tasks/$search")
    assert response.status_code == 422


def test_create_returns_201_with_location(client: TestClient, mock_manager: Mock) -> None:
    created = make_task_out()
    mock_manager.save = AsyncMock(return_value=created)

    response = client.post("/api/v1/tasks", json={"name": "Greeting", "owner": "ops", "command": "echo hello"})

    assert response.status_code == 201
    assert response.json()["id"] == str(created.id)
    assert response.headers["Location"].endswith(f"/api/v1/tasks/{created.id}")


def test_create_invalid_command_returns_400(client: TestClient, mock_manager: Mock) -> None:
    mock_manager.save = AsyncMock(side_effect=denylisted())

    response = client.post("/api/v1/tasks", json={"name": "Wipe", "owner": "ops", "command": "rm -rf /"})

    assert response.status_code == 400
    assert "denylisted" in response.json()["detail"]


def test_get_unknown_task_returns_404(client: TestClient, mock_manager: Mock) -> None:
    mock_manager.find_by_id = AsyncMock(return_value=None)

    response = client.get(f"/api/v1/tasks/{ULID()}")

    assert response.status_code == 404


def test_update_unknown_task_returns_404(client: TestClient, mock_manager: Mock) -> None:
    mock_manager.exists_by_id = AsyncMock(return_value=False)
    mock_manager.save = AsyncMock()

    response = client.put(f"/api/v1/tasks/{ULID()}", json={"name": "x", "owner": "y", "command": "date"})

    assert response.status_code == 404
    mock_manager.save.assert_not_called()


def test_update_sets_id_from_path(client: TestClient, mock_manager: Mock) -> None:
    task_id = ULID()
    mock_manager.exists_by_id = AsyncMock(return_value=True)
    mock_manager.save = AsyncMock(return_value=make_task_out(task_id, name="Renamed"))

    response = client.put(f"/api/v1/tasks/{task_id}", json={"name": "Renamed", "owner": "ops", "command": "date"})

    assert response.status_code == 200
    saved = mock_manager.save.await_args.args[0]
    assert saved.id == task_id


def test_delete_returns_204_then_404(client: TestClient, mock_manager: Mock) -> None:
    task_id = ULID()
    mock_manager.exists_by_id = AsyncMock(side_effect=[True, False])
    mock_manager.delete_by_id = AsyncMock()

    assert client.delete(f"/api/v1/tasks/{task_id}").status_code == 204
    assert client.delete(f"/api/v1/tasks/{task_id}").status_code == 404
    mock_manager.delete_by_id.assert_awaited_once_with(task_id)


def test_read_only_permissions_hide_write_routes(mock_manager: Mock) -> None:
    from cmdkit.core.api import CrudPermissions

    app = FastAPI()
    app.include_router(
        TaskRouter.create(
            prefix="/api/v1/tasks",
            tags=["tasks"],
            manager_factory=lambda: mock_manager,
            permissions=CrudPermissions(create=False, update=False, delete=False),
        )
    )
    client = TestClient(app)

    assert client.post("/api/v1/tasks", json={"name": "x", "owner": "y", "command": "date"}).status_code == 405
    assert client.delete(f"/api/v1/tasks/{ULID()}").status_code == 405
