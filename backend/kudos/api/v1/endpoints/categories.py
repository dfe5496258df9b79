"""Category and tag endpoints"""
from typing import List
from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from kudos.database import get_db
from kudos.core.deps import get_current_user
from kudos.domain.entities import User
from kudos.models.api import (
    CategoryCreate, CategoryResponse, CategoryUpdate, TagCreate, TagResponse, TagUpdate
)
from kudos.services.categories import CategoryService, TagService

router = APIRouter()
tags_router = APIRouter()


@router.get("", response_model=List[CategoryResponse])
async def list_categories(
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    categories = await CategoryService(db).list_categories(current_user.id)
    return [CategoryResponse.model_validate(category) for category in categories]


@router.post("", response_model=CategoryResponse, status_code=201)
async def create_category(
    request: CategoryCreate,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    category = await CategoryService(db).create_category(current_user.id, request)
    return CategoryResponse.model_validate(category)


@router.patch("/{category_id}", response_model=CategoryResponse)
async def update_category(
    category_id: str,
    request: CategoryUpdate,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    category = await CategoryService(db).update_category(current_user.id, category_id, request)
    return CategoryResponse.model_validate(category)


@router.delete("/{category_id}")
async def delete_category(
    category_id: str,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    """Delete a category; its tasks become uncategorized"""
    await CategoryService(db).delete_category(current_user.id, category_id)
    return {"message": "Category deleted successfully"}


@tags_router.get("", response_model=List[TagResponse])
async def list_tags(
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    tags = await TagService(db).list_tags(current_user.id)
    return [TagResponse.model_validate(tag) for tag in tags]


@tags_router.post("", response_model=TagResponse, status_code=201)
async def create_tag(
    request: TagCreate,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    tag = await TagService(db).create_tag(current_user.id, request)
    return TagResponse.model_validate(tag)


@tags_router.patch("/{tag_id}", response_model=TagResponse)
async def update_tag(
    tag_id: str,
    request: TagUpdate,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    tag = await TagService(db).update_tag(current_user.id, tag_id, request)
    return TagResponse.model_validate(tag)


@tags_router.delete("/{tag_id}")
async def delete_tag(
    tag_id: str,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    await TagService(db).delete_tag(current_user.id, tag_id)
    return {"message": "Tag deleted successfully"}
