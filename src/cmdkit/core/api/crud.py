"""Generic CRUD router with entity and collection operation hooks."""

from collections.abc import Callable
from dataclasses import dataclass
from typing import Any

from fastapi import Depends, HTTPException, Request, Response, status
from ulid import ULID

from cmdkit.core.manager import Manager
from cmdkit.core.schemas import EntityIn, EntityOut

from .router import Router
from .utilities import build_location_url


@dataclass(slots=True, frozen=True)
class CrudPermissions:
    """Flags controlling which CRUD endpoints are exposed."""

    create: bool = True
    read: bool = True
    update: bool = True
    delete: bool = True


class CrudRouter[InSchemaT: EntityIn, OutSchemaT: EntityOut](Router):
    """Router exposing create, read, update and delete for one entity type.

    Routes:
        POST   {prefix}              create (or upsert when the body has an id)
        GET    {prefix}              list
        GET    {prefix}/{entity_id}  read one
        PUT    {prefix}/{entity_id}  update
        DELETE {prefix}/{entity_id}  delete

    Extra operations use ``$name`` path segments, either on the collection
    (``{prefix}/$name``) or on an entity (``{prefix}/{entity_id}/$name``).
    ``ValueError`` raised by the manager during writes is reported as 400.
    """

    def __init__(
        self,
        prefix: str,
        tags: list[str],
        entity_in_type: type[InSchemaT],
        entity_out_type: type[OutSchemaT],
        manager_factory: Callable[..., Any],
        permissions: CrudPermissions | None = None,
        **kwargs: Any,
    ) -> None:
        """Initialize CRUD router with schemas, manager factory and permissions."""
        self.entity_in_type = entity_in_type
        self.entity_out_type = entity_out_type
        self.manager_factory = manager_factory
        self.permissions = permissions or CrudPermissions()
        super().__init__(prefix=prefix, tags=tags, **kwargs)

    def _register_routes(self) -> None:
        """Register the CRUD endpoints allowed by the permissions."""
        if self.permissions.create:
            self._register_create_route()
        if self.permissions.read:
            self._register_find_all_route()
            self._register_find_by_id_route()
        if self.permissions.update:
            self._register_update_route()
        if self.permissions.delete:
            self._register_delete_route()

    # --------------------------------------------------------------------- Default routes

    def _register_create_route(self) -> None:
        entity_in_type = self.entity_in_type
        manager_dependency = Depends(self.manager_factory)

        async def create(
            data: entity_in_type,  # type: ignore[valid-type]
            request: Request,
            response: Response,
            manager: Manager[Any, Any, ULID] = manager_dependency,
        ) -> OutSchemaT:
            try:
                created = await manager.save(data)
            except ValueError as e:
                raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))
            response.headers["Location"] = build_location_url(request, f"/{created.id}")
            return created

        self.router.add_api_route(
            "",
            create,
            methods=["POST"],
            response_model=self.entity_out_type,
            status_code=status.HTTP_201_CREATED,
            summary="Create entity",
        )

    def _register_find_all_route(self) -> None:
        manager_dependency = Depends(self.manager_factory)

        async def find_all(manager: Manager[Any, Any, ULID] = manager_dependency) -> list[OutSchemaT]:
            return await manager.find_all()

        self.router.add_api_route(
            "",
            find_all,
            methods=["GET"],
            response_model=list[self.entity_out_type],  # type: ignore[name-defined]
            summary="List entities",
        )

    def _register_find_by_id_route(self) -> None:
        manager_dependency = Depends(self.manager_factory)

        async def find_by_id(entity_id: str, manager: Manager[Any, Any, ULID] = manager_dependency) -> OutSchemaT:
            entity = await manager.find_by_id(self._parse_ulid(entity_id))
            if entity is None:
                raise self._not_found(entity_id)
            return entity

        self.router.add_api_route(
            "/{entity_id}",
            find_by_id,
            methods=["GET"],
            response_model=self.entity_out_type,
            summary="Get entity by ID",
        )

    def _register_update_route(self) -> None:
        entity_in_type = self.entity_in_type
        manager_dependency = Depends(self.manager_factory)

        async def update(
            entity_id: str,
            data: entity_in_type,  # type: ignore[valid-type]
            manager: Manager[Any, Any, ULID] = manager_dependency,
        ) -> OutSchemaT:
            ulid_id = self._parse_ulid(entity_id)
            if not await manager.exists_by_id(ulid_id):
                raise self._not_found(entity_id)
            data.id = ulid_id
            try:
                return await manager.save(data)
            except ValueError as e:
                raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))

        self.router.add_api_route(
            "/{entity_id}",
            update,
            methods=["PUT"],
            response_model=self.entity_out_type,
            summary="Update entity",
        )

    def _register_delete_route(self) -> None:
        manager_dependency = Depends(self.manager_factory)

        async def delete(entity_id: str, manager: Manager[Any, Any, ULID] = manager_dependency) -> Response:
            ulid_id = self._parse_ulid(entity_id)
            if not await manager.exists_by_id(ulid_id):
                raise self._not_found(entity_id)
            await manager.delete_by_id(ulid_id)
            return Response(status_code=status.HTTP_204_NO_CONTENT)

        self.router.add_api_route(
            "/{entity_id}",
            delete,
            methods=["DELETE"],
            status_code=status.HTTP_204_NO_CONTENT,
            summary="Delete entity",
        )

    # --------------------------------------------------------------------- Operation hooks

    def register_entity_operation(
        self,
        name: str,
        endpoint: Callable[..., Any],
        *,
        http_method: str = "GET",
        **route_kwargs: Any,
    ) -> None:
        """Register ``{prefix}/{entity_id}/$name``."""
        self.router.add_api_route(f"/{{entity_id}}/${name}", endpoint, methods=[http_method], **route_kwargs)

    def register_collection_operation(
        self,
        name: str,
        endpoint: Callable[..., Any],
        *,
        http_method: str = "GET",
        **route_kwargs: Any,
    ) -> None:
        """Register ``{prefix}/$name``.

        Must be called before the default routes are registered, otherwise
        ``GET {prefix}/{entity_id}`` captures the ``$name`` segment.
        """
        self.router.add_api_route(f"/${name}", endpoint, methods=[http_method], **route_kwargs)

    # --------------------------------------------------------------------- Helpers

    def _parse_ulid(self, entity_id: str) -> ULID:
        try:
            return ULID.from_str(entity_id)
        except ValueError:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail=f"Invalid ULID format: {entity_id}",
            )

    def _not_found(self, entity_id: str) -> HTTPException:
        entity_name = self.entity_out_type.__name__.removesuffix("Out")
        return HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"{entity_name} with id {entity_id} not found",
        )
