"""Service builder wiring the task module into the base service."""

from __future__ import annotations

from dataclasses import dataclass, replace
from typing import Any, Self

from fastapi import FastAPI

from cmdkit.core.api.crud import CrudPermissions
from cmdkit.core.api.routers.health import HealthCheck, HealthState
from cmdkit.core.api.service_builder import BaseServiceBuilder, ServiceInfo
from cmdkit.core.logging import get_logger
from cmdkit.modules.task import (
    CommandExecutor,
    ExecutionRecorder,
    ExecutionSettings,
    ShellAdapter,
    TaskIn,
    TaskOut,
    TaskRouter,
)

from .dependencies import get_task_manager

logger = get_logger(__name__)


@dataclass(frozen=True, slots=True)
class _TaskOptions:
    settings: ExecutionSettings
    adapter: ShellAdapter | None
    prefix: str
    tags: list[str]
    permissions: CrudPermissions


class ServiceBuilder(BaseServiceBuilder):
    """Base service plus the task endpoints and their shared executor."""

    def __init__(self, **kwargs: Any) -> None:
        super().__init__(**kwargs)
        self._task_options: _TaskOptions | None = None
        self._executor: CommandExecutor | None = None

    def with_tasks(
        self,
        *,
        prefix: str = "/api/v1/tasks",
        tags: list[str] | None = None,
        timeout: float | None = None,
        max_concurrency: int | None = None,
        adapter: ShellAdapter | None = None,
        permissions: CrudPermissions | None = None,
        allow_create: bool | None = None,
        allow_read: bool | None = None,
        allow_update: bool | None = None,
        allow_delete: bool | None = None,
    ) -> Self:
        """Enable task CRUD, search and execution endpoints.

        ``timeout`` (seconds, default 5) bounds each run; ``max_concurrency``
        (default 4) caps how many commands run at once. The ``allow_*`` flags
        override the matching fields of ``permissions``.
        """
        flags = {"create": allow_create, "read": allow_read, "update": allow_update, "delete": allow_delete}
        limits = {"timeout": timeout, "max_concurrency": max_concurrency}
        self._task_options = _TaskOptions(
            settings=ExecutionSettings(**{key: value for key, value in limits.items() if value is not None}),
            adapter=adapter,
            prefix=prefix,
            tags=list(tags) if tags else ["Tasks"],
            permissions=replace(
                permissions or CrudPermissions(), **{key: value for key, value in flags.items() if value is not None}
            ),
        )
        return self

    def _register_module_routers(self, app: FastAPI) -> None:
        options = self._task_options
        if options is None:
            return
        app.include_router(
            TaskRouter.create(
                prefix=options.prefix,
                tags=options.tags,
                manager_factory=get_task_manager,
                entity_in_type=TaskIn,
                entity_out_type=TaskOut,
                permissions=options.permissions,
            )
        )

    def _module_health_checks(self) -> dict[str, HealthCheck]:
        if self._task_options is None:
            return {}
        return {"executor": self._create_executor_health_check()}

    async def _on_module_startup(self, app: FastAPI) -> None:
        """Create the executor and recorder on the serving event loop."""
        options = self._task_options
        if options is None:
            return
        self._executor = CommandExecutor(options.settings, adapter=options.adapter)
        app.state.task_executor = self._executor
        app.state.execution_recorder = ExecutionRecorder()
        logger.info(
            "tasks.executor_ready",
            shell=self._executor.adapter.name,
            timeout=options.settings.timeout,
            max_concurrency=options.settings.max_concurrency,
        )

    def _create_executor_health_check(self) -> HealthCheck:
        """Report degraded while every worker slot is busy."""

        async def check_executor() -> tuple[HealthState, str | None]:
            executor = self._executor
            if executor is None:
                return (HealthState.UNHEALTHY, "Executor not started")
            if executor.saturated:
                return (
                    HealthState.DEGRADED,
                    f"All {executor.settings.max_concurrency} worker slots busy; new executions are queued",
                )
            return (HealthState.HEALTHY, None)

        return check_executor


__all__ = ["ServiceBuilder", "ServiceInfo"]
