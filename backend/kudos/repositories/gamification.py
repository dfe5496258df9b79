from typing import List, Optional, Set
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select, func
from sqlalchemy.dialects import postgresql, sqlite

from kudos.core.errors import ConcurrencyConflictError, ConstraintViolationError, NotFoundError
from kudos.domain.entities import Achievement, PointEntry, Streak
from kudos.domain.values import AchievementType, ensure_utc
from kudos.gamification.engine import TASK_COMPLETED_REASON
from ..models.gamification import AchievementDB, PointDB, StreakDB
from .base import BaseRepository

_UPSERT_DIALECTS = {
    "postgresql": postgresql.insert,
    "sqlite": sqlite.insert,
}


class AchievementRepository(BaseRepository[AchievementDB, Achievement]):
    entity_name = "Achievement"

    def __init__(self):
        super().__init__(AchievementDB)

    def to_entity(self, row: AchievementDB) -> Achievement:
        return Achievement(
            id=row.id,
            user_id=row.user_id,
            type=row.type,
            title=row.title,
            description=row.description,
            icon=row.icon,
            unlocked_at=ensure_utc(row.unlocked_at),
        )

    def to_values(self, achievement: Achievement) -> dict:
        return {
            "id": achievement.id,
            "user_id": achievement.user_id,
            "type": achievement.type,
            "title": achievement.title,
            "description": achievement.description,
            "icon": achievement.icon,
            "unlocked_at": achievement.unlocked_at,
        }

    async def find_by_user_id(self, db: AsyncSession, user_id: str) -> List[Achievement]:
        result = await db.execute(
            select(AchievementDB).where(AchievementDB.user_id == user_id).order_by(AchievementDB.unlocked_at)
        )
        return [self.to_entity(row) for row in result.scalars().all()]

    async def unlocked_types(self, db: AsyncSession, user_id: str) -> Set[AchievementType]:
        result = await db.execute(select(AchievementDB.type).where(AchievementDB.user_id == user_id))
        return set(result.scalars().all())

    async def unlock(self, db: AsyncSession, achievement: Achievement) -> bool:
        """Insert unless the user already has this type. Returns whether a row was added."""
        insert = _UPSERT_DIALECTS.get(db.get_bind().dialect.name)
        if insert is None:
            if achievement.type in await self.unlocked_types(db, achievement.user_id):
                return False
            await self.save(db, achievement)
            return True

        result = await db.execute(
            insert(AchievementDB)
            .values(**self.to_values(achievement))
            .on_conflict_do_nothing(index_elements=["user_id", "type"])
        )
        return result.rowcount > 0


class StreakRepository(BaseRepository[StreakDB, Streak]):
    entity_name = "Streak"

    def __init__(self):
        super().__init__(StreakDB)

    def to_entity(self, row: StreakDB) -> Streak:
        return Streak(
            id=row.id,
            user_id=row.user_id,
            current_streak=row.current_streak,
            longest_streak=row.longest_streak,
            last_active_date=row.last_active_date,
            version=row.version,
        )

    def to_values(self, streak: Streak) -> dict:
        return {
            "id": streak.id,
            "user_id": streak.user_id,
            "current_streak": streak.current_streak,
            "longest_streak": streak.longest_streak,
            "last_active_date": streak.last_active_date,
        }

    async def find_for_user(self, db: AsyncSession, user_id: str) -> Optional[Streak]:
        result = await db.execute(select(StreakDB).where(StreakDB.user_id == user_id))
        row = result.scalar_one_or_none()
        return self.to_entity(row) if row is not None else None

    async def update(self, db: AsyncSession, streak: Streak) -> Streak:
        """Write the counters back if the row is still at the version we read"""
        row = await self._get_row(db, streak.id)
        if row is None:
            raise NotFoundError(self.entity_name, streak.id)
        if row.version != streak.version:
            raise ConcurrencyConflictError(f"Streak {streak.id} changed since it was read")
        for key, value in self.to_values(streak).items():
            setattr(row, key, value)
        # the mapper bumps the version and checks it in the UPDATE's WHERE clause
        await db.flush()
        streak.version = row.version
        return streak


class PointRepository(BaseRepository[PointDB, PointEntry]):
    """The points ledger. Entries are appended, never changed or removed."""

    entity_name = "Point"

    def __init__(self):
        super().__init__(PointDB)

    def to_entity(self, row: PointDB) -> PointEntry:
        return PointEntry(
            id=row.id,
            user_id=row.user_id,
            amount=row.amount,
            reason=row.reason,
            task_id=row.task_id,
            created_at=ensure_utc(row.created_at),
        )

    def to_values(self, entry: PointEntry) -> dict:
        return {
            "id": entry.id,
            "user_id": entry.user_id,
            "amount": entry.amount,
            "reason": entry.reason,
            "task_id": entry.task_id,
            "created_at": entry.created_at,
        }

    async def find_by_user_id(self, db: AsyncSession, user_id: str, limit: int = 100,
                              offset: int = 0) -> List[PointEntry]:
        result = await db.execute(
            select(PointDB)
            .where(PointDB.user_id == user_id)
            .order_by(PointDB.created_at.desc())
            .limit(limit)
            .offset(offset)
        )
        return [self.to_entity(row) for row in result.scalars().all()]

    async def find_for_task(self, db: AsyncSession, task_id: str) -> List[PointEntry]:
        result = await db.execute(select(PointDB).where(PointDB.task_id == task_id))
        return [self.to_entity(row) for row in result.scalars().all()]

    async def total(self, db: AsyncSession, user_id: str) -> int:
        result = await db.execute(
            select(func.coalesce(func.sum(PointDB.amount), 0)).where(PointDB.user_id == user_id)
        )
        return int(result.scalar() or 0)

    async def count_completions(self, db: AsyncSession, user_id: str) -> int:
        """Task completions ever awarded, including those of tasks deleted since"""
        result = await db.execute(
            select(func.count(PointDB.id))
            .where(PointDB.user_id == user_id, PointDB.reason == TASK_COMPLETED_REASON, PointDB.amount > 0)
        )
        return result.scalar() or 0

    async def update(self, db: AsyncSession, entity: PointEntry) -> PointEntry:
        raise ConstraintViolationError("Point entries are append-only; record an offsetting entry instead")

    async def delete(self, db: AsyncSession, id: str) -> bool:
        raise ConstraintViolationError("Point entries are append-only; record an offsetting entry instead")
