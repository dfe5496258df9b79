from typing import Optional, List
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select

from .base import BaseRepository
from kudos.domain.entities import Settings, User
from kudos.domain.values import ensure_utc
from kudos.models.user import UserDB, UserSettingsDB


class UserRepository(BaseRepository[UserDB, User]):
    entity_name = "User"

    def __init__(self):
        super().__init__(UserDB)

    def to_entity(self, row: UserDB) -> User:
        return User(
            id=row.id,
            auth_subject=row.auth_subject,
            email=row.email,
            name=row.name,
            avatar_url=row.avatar_url,
            created_at=ensure_utc(row.created_at),
            updated_at=ensure_utc(row.updated_at),
        )

    def to_values(self, user: User) -> dict:
        return {
            "id": user.id,
            "auth_subject": user.auth_subject,
            "email": user.email,
            "name": user.name,
            "avatar_url": user.avatar_url,
            "created_at": user.created_at,
            "updated_at": user.updated_at,
        }

    async def find_by_subject(self, db: AsyncSession, auth_subject: str) -> Optional[User]:
        """Get user by the identity provider's subject claim"""
        result = await db.execute(select(UserDB).where(UserDB.auth_subject == auth_subject))
        row = result.scalar_one_or_none()
        return self.to_entity(row) if row is not None else None

    async def find_by_email(self, db: AsyncSession, email: str) -> Optional[User]:
        """Get user by email"""
        result = await db.execute(select(UserDB).where(UserDB.email == email))
        row = result.scalar_one_or_none()
        return self.to_entity(row) if row is not None else None

    async def find_by_user_id(self, db: AsyncSession, user_id: str) -> List[User]:
        user = await self.find_by_id(db, user_id)
        return [user] if user else []


class SettingsRepository(BaseRepository[UserSettingsDB, Settings]):
    entity_name = "Settings"

    def __init__(self):
        super().__init__(UserSettingsDB)

    def to_entity(self, row: UserSettingsDB) -> Settings:
        return Settings(
            id=row.id,
            user_id=row.user_id,
            theme=row.theme,
            praise_on_complete=row.praise_on_complete,
            show_points=row.show_points,
            show_streak=row.show_streak,
            show_achievements=row.show_achievements,
            praise_sound=row.praise_sound,
            praise_haptics=row.praise_haptics,
            animation_enabled=row.animation_enabled,
            updated_at=ensure_utc(row.updated_at),
        )

    def to_values(self, settings: Settings) -> dict:
        return {
            "id": settings.id,
            "user_id": settings.user_id,
            "theme": settings.theme,
            "praise_on_complete": settings.praise_on_complete,
            "show_points": settings.show_points,
            "show_streak": settings.show_streak,
            "show_achievements": settings.show_achievements,
            "praise_sound": settings.praise_sound,
            "praise_haptics": settings.praise_haptics,
            "animation_enabled": settings.animation_enabled,
            "updated_at": settings.updated_at,
        }

    async def find_for_user(self, db: AsyncSession, user_id: str) -> Optional[Settings]:
        result = await db.execute(select(UserSettingsDB).where(UserSettingsDB.user_id == user_id))
        row = result.scalar_one_or_none()
        return self.to_entity(row) if row is not None else None
