import logging
from typing import Optional

from sqlalchemy.ext.asyncio import AsyncSession

from kudos.core.errors import ConstraintViolationError, NotFoundError
from kudos.database import transaction
from kudos.domain.entities import Settings, Streak, User
from kudos.models.api import SettingsUpdate, UserProfileUpdate
from kudos.repositories.gamification import StreakRepository
from kudos.repositories.user import SettingsRepository, UserRepository

logger = logging.getLogger(__name__)


class UserService:
    def __init__(self, db: AsyncSession):
        self.db = db
        self.user_repo = UserRepository()
        self.settings_repo = SettingsRepository()
        self.streak_repo = StreakRepository()

    async def provision(self, auth_subject: str, email: str, name: Optional[str] = None) -> User:
        """Get the user behind an identity-provider subject, creating it on first sight.

        A new user gets its streak and settings rows in the same transaction.
        """
        user = await self.user_repo.find_by_subject(self.db, auth_subject)
        if user is not None:
            return user

        user = User.create(auth_subject=auth_subject, email=email, name=name)
        try:
            async with transaction(self.db):
                if await self.user_repo.find_by_email(self.db, user.email):
                    raise ConstraintViolationError(f"Email already registered: {user.email}")
                await self.user_repo.save(self.db, user)
                await self.streak_repo.save(self.db, Streak.start(user.id))
                await self.settings_repo.save(self.db, Settings.defaults(user.id))
        except ConstraintViolationError:
            # a concurrent request may have provisioned the same subject first
            existing = await self.user_repo.find_by_subject(self.db, auth_subject)
            if existing is None:
                raise
            return existing

        logger.info(f"Provisioned user {user.id} for subject {auth_subject}")
        return user

    async def get_user(self, user_id: str) -> User:
        user = await self.user_repo.find_by_id(self.db, user_id)
        if user is None:
            raise NotFoundError("User", user_id)
        return user

    async def update_profile(self, user_id: str, data: UserProfileUpdate) -> User:
        async with transaction(self.db):
            user = await self.get_user(user_id)
            user.update_profile(name=data.name, avatar_url=data.avatar_url)
            await self.user_repo.update(self.db, user)
        return user

    async def delete_user(self, user_id: str) -> None:
        """Delete the user and everything it owns"""
        async with transaction(self.db):
            if not await self.user_repo.delete(self.db, user_id):
                raise NotFoundError("User", user_id)
        logger.info(f"Deleted user {user_id} and all dependent rows")

    async def get_settings(self, user_id: str) -> Settings:
        settings = await self.settings_repo.find_for_user(self.db, user_id)
        if settings is None:
            async with transaction(self.db):
                settings = Settings.defaults(user_id)
                await self.settings_repo.save(self.db, settings)
        return settings

    async def update_settings(self, user_id: str, data: SettingsUpdate) -> Settings:
        settings = await self.get_settings(user_id)
        changes = data.model_dump(exclude_unset=True, exclude_none=True)
        theme = changes.pop("theme", None)
        async with transaction(self.db):
            settings.update(theme=theme, **changes)
            await self.settings_repo.update(self.db, settings)
        return settings
