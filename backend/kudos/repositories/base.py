from typing import TypeVar, Generic, Type, Optional, List, Dict, Any
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select, delete

from kudos.core.errors import NotFoundError
from kudos.models.base import Base

T = TypeVar('T', bound=Base)
E = TypeVar('E')


class BaseRepository(Generic[T, E]):
    """CRUD for one table, speaking domain entities on the outside.

    Repositories only flush. Committing is the caller's job, so that several
    repositories can write inside one transaction.
    """

    entity_name = "Record"

    def __init__(self, model_class: Type[T]):
        self.model_class = model_class

    def to_entity(self, row: T) -> E:
        raise NotImplementedError

    def to_values(self, entity: E) -> Dict[str, Any]:
        raise NotImplementedError

    async def _get_row(self, db: AsyncSession, id: str) -> Optional[T]:
        result = await db.execute(select(self.model_class).where(self.model_class.id == id))
        return result.scalar_one_or_none()

    async def find_by_id(self, db: AsyncSession, id: str) -> Optional[E]:
        """Get record by ID"""
        row = await self._get_row(db, id)
        return self.to_entity(row) if row is not None else None

    async def find_by_user_id(self, db: AsyncSession, user_id: str) -> List[E]:
        """Get all records for a user"""
        result = await db.execute(
            select(self.model_class).where(self.model_class.user_id == user_id)
        )
        return [self.to_entity(row) for row in result.scalars().all()]

    async def save(self, db: AsyncSession, entity: E) -> E:
        """Insert a new record"""
        db.add(self.model_class(**self.to_values(entity)))
        await db.flush()
        return entity

    async def update(self, db: AsyncSession, entity: E) -> E:
        """Write the entity's current state over its row"""
        row = await self._get_row(db, entity.id)
        if row is None:
            raise NotFoundError(self.entity_name, entity.id)
        for key, value in self.to_values(entity).items():
            setattr(row, key, value)
        await db.flush()
        return entity

    async def delete(self, db: AsyncSession, id: str) -> bool:
        """Delete a record; dependent rows go with it through ON DELETE rules"""
        result = await db.execute(
            delete(self.model_class).where(self.model_class.id == id)
        )
        return result.rowcount > 0
