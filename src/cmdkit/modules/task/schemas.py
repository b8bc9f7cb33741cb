"""Task schemas for shell command tasks and their execution history."""

from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field

from cmdkit.core.schemas import EntityIn, EntityOut


class TaskIn(EntityIn):
    """Input schema for creating or updating tasks.

    The command is optional here so that a missing or blank command is
    reported by the command validator rather than by request parsing.
    """

    name: str = Field(description="Human-readable task name")
    owner: str = Field(description="Owner of the task")
    command: str | None = Field(default=None, description="Shell command to execute")


class TaskExecutionOut(BaseModel):
    """One entry of a task's execution history."""

    model_config = ConfigDict(from_attributes=True, frozen=True)

    start_time: datetime = Field(description="When the process was spawned (UTC)")
    end_time: datetime = Field(description="When output capture finished (UTC)")
    output: str = Field(description="Captured stdout, followed by stderr after a [STDERR] marker")
    exit_code: int | None = Field(default=None, description="Process exit status")


class TaskOut(EntityOut):
    """Output schema for task entities with their execution history."""

    name: str
    owner: str
    command: str
    executions: list[TaskExecutionOut] = Field(default_factory=list, description="History, oldest first")
