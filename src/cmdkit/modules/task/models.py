"""Task ORM models for shell command tasks and their execution history."""

from __future__ import annotations

from datetime import datetime

from sqlalchemy import ForeignKey, Integer, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column, relationship
from sqlalchemy.types import Text
from ulid import ULID

from cmdkit.core.models import Base, Entity
from cmdkit.core.types import ULIDType, UTCDateTime


class Task(Entity):
    """ORM model for a named, owned shell command."""

    __tablename__ = "tasks"

    name: Mapped[str] = mapped_column(String, index=True, nullable=False)
    owner: Mapped[str] = mapped_column(String, nullable=False)
    command: Mapped[str] = mapped_column(Text, nullable=False)

    executions: Mapped[list[TaskExecution]] = relationship(
        back_populates="task",
        cascade="all, delete-orphan",
        passive_deletes=True,
        lazy="selectin",
        order_by=lambda: [TaskExecution.start_time, TaskExecution.seq],
    )


class TaskExecution(Base):
    """Immutable record of one completed run of a task's command."""

    __tablename__ = "task_executions"
    __table_args__ = (UniqueConstraint("task_id", "seq", name="uq_task_executions_task_seq"),)

    id: Mapped[ULID] = mapped_column(ULIDType, primary_key=True, default=ULID)
    task_id: Mapped[ULID] = mapped_column(ULIDType, ForeignKey("tasks.id", ondelete="CASCADE"), index=True)
    seq: Mapped[int] = mapped_column(Integer, nullable=False)
    start_time: Mapped[datetime] = mapped_column(UTCDateTime, nullable=False)
    end_time: Mapped[datetime] = mapped_column(UTCDateTime, nullable=False)
    output: Mapped[str] = mapped_column(Text, nullable=False)
    exit_code: Mapped[int | None] = mapped_column(Integer, nullable=True)

    task: Mapped[Task] = relationship(back_populates="executions")
