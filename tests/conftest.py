"""Test configuration and shared fixtures."""

from __future__ import annotations

from collections.abc import AsyncIterator
from pathlib import Path

import pytest

from cmdkit import CommandExecutor, Database, ExecutionRecorder, ExecutionSettings


@pytest.fixture
async def database() -> AsyncIterator[Database]:
    """In-memory database with all tables created."""
    db = Database("sqlite+aiosqlite:///:memory:")
    await db.init()
    yield db
    await db.dispose()


@pytest.fixture
async def file_database(tmp_path: Path) -> AsyncIterator[Database]:
    """File-backed database; each session gets its own connection."""
    db = Database(f"sqlite+aiosqlite:///{tmp_path / 'tasks.db'}", auto_migrate=False)
    await db.init()
    yield db
    await db.dispose()


@pytest.fixture
def executor() -> CommandExecutor:
    return CommandExecutor(ExecutionSettings(timeout=5.0, max_concurrency=4))


@pytest.fixture
def recorder() -> ExecutionRecorder:
    return ExecutionRecorder()
