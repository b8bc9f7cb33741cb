"""Generic async repository over SQLAlchemy sessions."""

from __future__ import annotations

from collections.abc import Iterable, Sequence
from typing import Protocol

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from .models import Entity


class Repository[T, IdT](Protocol):
    """Persistence operations every store exposes."""

    async def save(self, entity: T) -> T: ...

    async def find_by_id(self, id: IdT) -> T | None: ...

    async def find_all(self) -> Sequence[T]: ...

    async def exists_by_id(self, id: IdT) -> bool: ...

    async def delete_by_id(self, id: IdT) -> None: ...

    async def count(self) -> int: ...

    async def commit(self) -> None: ...


class BaseRepository[T: Entity, IdT](Repository[T, IdT]):
    """SQLAlchemy-backed repository for a single entity model."""

    def __init__(self, session: AsyncSession, model: type[T]) -> None:
        """Initialize repository with session and mapped model class."""
        self.s = session
        self.model = model

    async def save(self, entity: T) -> T:
        """Stage an insert or update of a tracked entity; the caller commits."""
        self.s.add(entity)
        await self.s.flush()
        return entity

    async def find_by_id(self, id: IdT) -> T | None:
        return await self.s.get(self.model, id)

    async def find_all(self) -> Sequence[T]:
        result = await self.s.scalars(select(self.model).order_by(self.model.id))
        return result.all()

    async def exists_by_id(self, id: IdT) -> bool:
        result = await self.s.scalar(select(func.count()).select_from(self.model).where(self.model.id == id))
        return bool(result)

    async def delete_by_id(self, id: IdT) -> None:
        entity = await self.find_by_id(id)
        if entity is not None:
            await self.s.delete(entity)

    async def count(self) -> int:
        result = await self.s.scalar(select(func.count()).select_from(self.model))
        return int(result or 0)

    async def commit(self) -> None:
        await self.s.commit()

    async def refresh_many(self, entities: Iterable[T]) -> None:
        """Reload state for entities after a commit."""
        for entity in entities:
            await self.s.refresh(entity)
