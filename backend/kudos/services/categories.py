import logging
from typing import List

from sqlalchemy.ext.asyncio import AsyncSession

from kudos.core.errors import ConstraintViolationError, NotFoundError
from kudos.database import transaction
from kudos.domain.entities import Category, Tag
from kudos.domain.values import validate_identifier, validate_name
from kudos.models.api import CategoryCreate, CategoryUpdate, TagCreate, TagUpdate
from kudos.repositories.category import CategoryRepository, TagRepository

logger = logging.getLogger(__name__)


class CategoryService:
    def __init__(self, db: AsyncSession):
        self.db = db
        self.category_repo = CategoryRepository()

    async def _check_name_free(self, user_id: str, name: str) -> None:
        if await self.category_repo.find_by_name(self.db, user_id, validate_name(name)):
            raise ConstraintViolationError(f"Category '{name.strip()}' already exists")

    async def get_category(self, user_id: str, category_id: str) -> Category:
        category_id = validate_identifier(category_id, "category_id")
        category = await self.category_repo.find_by_id(self.db, category_id)
        if category is None or category.user_id != user_id:
            raise NotFoundError("Category", category_id)
        return category

    async def list_categories(self, user_id: str) -> List[Category]:
        return await self.category_repo.find_by_user_id(self.db, user_id)

    async def create_category(self, user_id: str, data: CategoryCreate) -> Category:
        category = Category.create(user_id, data.name, data.color, data.icon, data.description)
        async with transaction(self.db):
            await self._check_name_free(user_id, category.name)
            await self.category_repo.save(self.db, category)
        return category

    async def update_category(self, user_id: str, category_id: str, data: CategoryUpdate) -> Category:
        async with transaction(self.db):
            category = await self.get_category(user_id, category_id)
            if data.name is not None and validate_name(data.name) != category.name:
                await self._check_name_free(user_id, data.name)
                category.rename(data.name)
            style = {key: getattr(data, key) for key in ("color", "icon", "description")
                     if key in data.model_fields_set}
            if style:
                category.restyle(**style)
            await self.category_repo.update(self.db, category)
        return category

    async def delete_category(self, user_id: str, category_id: str) -> None:
        """Delete a category; its tasks stay, uncategorized"""
        async with transaction(self.db):
            category = await self.get_category(user_id, category_id)
            await self.category_repo.delete(self.db, category.id)
        logger.info(f"Deleted category {category.id} for user {user_id}")


class TagService:
    def __init__(self, db: AsyncSession):
        self.db = db
        self.tag_repo = TagRepository()

    async def _check_name_free(self, user_id: str, name: str) -> None:
        if await self.tag_repo.find_by_name(self.db, user_id, validate_name(name)):
            raise ConstraintViolationError(f"Tag '{name.strip()}' already exists")

    async def get_tag(self, user_id: str, tag_id: str) -> Tag:
        tag_id = validate_identifier(tag_id, "tag_id")
        tag = await self.tag_repo.find_by_id(self.db, tag_id)
        if tag is None or tag.user_id != user_id:
            raise NotFoundError("Tag", tag_id)
        return tag

    async def list_tags(self, user_id: str) -> List[Tag]:
        return await self.tag_repo.find_by_user_id(self.db, user_id)

    async def create_tag(self, user_id: str, data: TagCreate) -> Tag:
        tag = Tag.create(user_id, data.name, data.color)
        async with transaction(self.db):
            await self._check_name_free(user_id, tag.name)
            await self.tag_repo.save(self.db, tag)
        return tag

    async def update_tag(self, user_id: str, tag_id: str, data: TagUpdate) -> Tag:
        async with transaction(self.db):
            tag = await self.get_tag(user_id, tag_id)
            if data.name is not None and validate_name(data.name) != tag.name:
                await self._check_name_free(user_id, data.name)
                tag.rename(data.name)
            if "color" in data.model_fields_set:
                tag.recolor(data.color)
            await self.tag_repo.update(self.db, tag)
        return tag

    async def delete_tag(self, user_id: str, tag_id: str) -> None:
        """Delete a tag and its links to tasks"""
        async with transaction(self.db):
            tag = await self.get_tag(user_id, tag_id)
            await self.tag_repo.delete(self.db, tag.id)
