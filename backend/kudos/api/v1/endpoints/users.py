from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from kudos.database import get_db
from kudos.core.deps import get_current_user
from kudos.domain.entities import User
from kudos.models.api import SettingsResponse, SettingsUpdate, UserProfileResponse, UserProfileUpdate
from kudos.services.users import UserService

router = APIRouter()


@router.get("/me", response_model=UserProfileResponse)
async def get_profile(current_user: User = Depends(get_current_user)):
    """Get current user's profile"""
    return UserProfileResponse.model_validate(current_user)


@router.patch("/me", response_model=UserProfileResponse)
async def update_profile(
    request: UserProfileUpdate,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    user = await UserService(db).update_profile(current_user.id, request)
    return UserProfileResponse.model_validate(user)


@router.delete("/me")
async def delete_account(
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    """Delete the account with all tasks, points, streak and achievements"""
    await UserService(db).delete_user(current_user.id)
    return {"message": "Account deleted successfully"}


@router.get("/settings", response_model=SettingsResponse)
async def get_settings(
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    """Get current user's praise and display settings"""
    settings = await UserService(db).get_settings(current_user.id)
    return SettingsResponse.model_validate(settings)


@router.patch("/settings", response_model=SettingsResponse)
async def update_settings(
    request: SettingsUpdate,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    settings = await UserService(db).update_settings(current_user.id, request)
    return SettingsResponse.model_validate(settings)
