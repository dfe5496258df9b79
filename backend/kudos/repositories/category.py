from typing import List, Optional, Sequence
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select

from kudos.domain.entities import Category, Tag
from kudos.domain.values import ensure_utc
from ..models.task import CategoryDB, TagDB
from .base import BaseRepository


class CategoryRepository(BaseRepository[CategoryDB, Category]):
    entity_name = "Category"

    def __init__(self):
        super().__init__(CategoryDB)

    def to_entity(self, row: CategoryDB) -> Category:
        return Category(
            id=row.id,
            user_id=row.user_id,
            name=row.name,
            color=row.color,
            icon=row.icon,
            description=row.description,
            created_at=ensure_utc(row.created_at),
            updated_at=ensure_utc(row.updated_at),
        )

    def to_values(self, category: Category) -> dict:
        return {
            "id": category.id,
            "user_id": category.user_id,
            "name": category.name,
            "color": category.color,
            "icon": category.icon,
            "description": category.description,
            "created_at": category.created_at,
            "updated_at": category.updated_at,
        }

    async def find_by_user_id(self, db: AsyncSession, user_id: str) -> List[Category]:
        result = await db.execute(
            select(CategoryDB).where(CategoryDB.user_id == user_id).order_by(CategoryDB.name)
        )
        return [self.to_entity(row) for row in result.scalars().all()]

    async def find_by_name(self, db: AsyncSession, user_id: str, name: str) -> Optional[Category]:
        result = await db.execute(
            select(CategoryDB).where(CategoryDB.user_id == user_id, CategoryDB.name == name)
        )
        row = result.scalar_one_or_none()
        return self.to_entity(row) if row is not None else None


class TagRepository(BaseRepository[TagDB, Tag]):
    entity_name = "Tag"

    def __init__(self):
        super().__init__(TagDB)

    def to_entity(self, row: TagDB) -> Tag:
        return Tag(
            id=row.id,
            user_id=row.user_id,
            name=row.name,
            color=row.color,
            created_at=ensure_utc(row.created_at),
        )

    def to_values(self, tag: Tag) -> dict:
        return {
            "id": tag.id,
            "user_id": tag.user_id,
            "name": tag.name,
            "color": tag.color,
            "created_at": tag.created_at,
        }

    async def find_by_user_id(self, db: AsyncSession, user_id: str) -> List[Tag]:
        result = await db.execute(
            select(TagDB).where(TagDB.user_id == user_id).order_by(TagDB.name)
        )
        return [self.to_entity(row) for row in result.scalars().all()]

    async def find_by_name(self, db: AsyncSession, user_id: str, name: str) -> Optional[Tag]:
        result = await db.execute(
            select(TagDB).where(TagDB.user_id == user_id, TagDB.name == name)
        )
        row = result.scalar_one_or_none()
        return self.to_entity(row) if row is not None else None

    async def find_owned(self, db: AsyncSession, user_id: str, tag_ids: Sequence[str]) -> List[Tag]:
        """The subset of ``tag_ids`` that belongs to the user"""
        if not tag_ids:
            return []
        result = await db.execute(
            select(TagDB).where(TagDB.user_id == user_id, TagDB.id.in_(tag_ids))
        )
        return [self.to_entity(row) for row in result.scalars().all()]
