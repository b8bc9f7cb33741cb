"""Generic manager layer translating between schemas and ORM entities."""

from __future__ import annotations

from typing import Protocol

from pydantic import BaseModel

from .models import Entity
from .repository import BaseRepository
from .schemas import EntityIn, EntityOut


class Manager[InSchemaT: BaseModel, OutSchemaT: BaseModel, IdT](Protocol):
    """Service-level operations consumed by routers."""

    async def save(self, data: InSchemaT) -> OutSchemaT: ...

    async def find_by_id(self, id: IdT) -> OutSchemaT | None: ...

    async def find_all(self) -> list[OutSchemaT]: ...

    async def exists_by_id(self, id: IdT) -> bool: ...

    async def delete_by_id(self, id: IdT) -> None: ...

    async def count(self) -> int: ...


class BaseManager[T: Entity, InSchemaT: EntityIn, OutSchemaT: EntityOut, IdT](
    Manager[InSchemaT, OutSchemaT, IdT]
):
    """Manager with default CRUD behaviour on top of a BaseRepository."""

    def __init__(
        self,
        repo: BaseRepository[T, IdT],
        model: type[T],
        out_schema: type[OutSchemaT],
    ) -> None:
        """Initialize manager with repository, ORM model and output schema."""
        self.repo = repo
        self.model = model
        self.out_schema = out_schema

    async def save(self, data: InSchemaT) -> OutSchemaT:
        """Insert a new entity, or update the existing one when data.id is known."""
        fields = data.model_dump(exclude={"id"})
        entity: T | None = None
        if data.id is not None:
            entity = await self.repo.find_by_id(data.id)  # type: ignore[arg-type]

        if entity is None:
            entity = self.model(**fields)
            if data.id is not None:
                entity.id = data.id
        else:
            for key, value in fields.items():
                setattr(entity, key, value)

        await self.repo.save(entity)
        await self.repo.commit()
        await self.repo.refresh_many([entity])
        return self._to_output_schema(entity)

    async def find_by_id(self, id: IdT) -> OutSchemaT | None:
        entity = await self.repo.find_by_id(id)
        if entity is None:
            return None
        return self._to_output_schema(entity)

    async def find_all(self) -> list[OutSchemaT]:
        entities = await self.repo.find_all()
        return [self._to_output_schema(entity) for entity in entities]

    async def exists_by_id(self, id: IdT) -> bool:
        return await self.repo.exists_by_id(id)

    async def delete_by_id(self, id: IdT) -> None:
        await self.repo.delete_by_id(id)
        await self.repo.commit()

    async def count(self) -> int:
        return await self.repo.count()

    def _to_output_schema(self, entity: T) -> OutSchemaT:
        return self.out_schema.model_validate(entity, from_attributes=True)

