"""Task CRUD router with search and execute operations."""

from __future__ import annotations

from collections.abc import Sequence
from typing import Any

from fastapi import Depends, HTTPException, Query, status

from cmdkit.core.api.crud import CrudPermissions, CrudRouter

from .exceptions import CommandExecutionError, CommandValidationError
from .manager import TaskManager
from .schemas import TaskIn, TaskOut


class TaskRouter(CrudRouter[TaskIn, TaskOut]):
    """CRUD router for Task entities with $search and $execute operations."""

    def __init__(
        self,
        prefix: str,
        tags: Sequence[str],
        manager_factory: Any,
        entity_in_type: type[TaskIn] = TaskIn,
        entity_out_type: type[TaskOut] = TaskOut,
        permissions: CrudPermissions | None = None,
        **kwargs: Any,
    ) -> None:
        """Initialize task router with entity types and manager factory."""
        super().__init__(
            prefix=prefix,
            tags=list(tags),
            entity_in_type=entity_in_type,
            entity_out_type=entity_out_type,
            manager_factory=manager_factory,
            permissions=permissions,
            **kwargs,
        )

    def _register_routes(self) -> None:
        """Register search, the CRUD routes, then execute."""
        manager_factory = self.manager_factory

        if self.permissions.read:

            async def search_tasks(
                name: str = Query(description="Case-insensitive fragment of the task name"),
                manager: TaskManager = Depends(manager_factory),
            ) -> list[TaskOut]:
                tasks = await manager.find_by_name(name)
                if not tasks:
                    raise HTTPException(
                        status_code=status.HTTP_404_NOT_FOUND,
                        detail=f"No tasks found matching name: {name}",
                    )
                return tasks

            # Before the CRUD routes so "$search" is not taken for an entity id
            self.register_collection_operation(
                "search",
                search_tasks,
                response_model=list[TaskOut],
                summary="Search tasks by name",
                description="Find tasks whose name contains the given fragment, ignoring case",
            )

        super()._register_routes()

        async def execute_task(
            entity_id: str,
            manager: TaskManager = Depends(manager_factory),
        ) -> TaskOut:
            """Run the task's command and return the task with the new history entry."""
            task_id = self._parse_ulid(entity_id)

            try:
                task = await manager.execute_task(task_id)
            except CommandValidationError as e:
                raise HTTPException(
                    status_code=status.HTTP_400_BAD_REQUEST,
                    detail=str(e),
                )
            except CommandExecutionError as e:
                raise HTTPException(
                    status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
                    detail=f"Command execution failed: {e}",
                )

            if task is None:
                raise self._not_found(entity_id)
            return task

        self.register_entity_operation(
            "execute",
            execute_task,
            http_method="POST",
            response_model=TaskOut,
            status_code=status.HTTP_200_OK,
            summary="Execute task",
            description="Validate and run the task's command, appending the outcome to its history",
        )
