import logging
from dataclasses import dataclass
from typing import List, Optional

from sqlalchemy.ext.asyncio import AsyncSession

from kudos.core.errors import NotFoundError, ValidationError
from kudos.database import transaction
from kudos.domain.entities import Achievement, PointEntry, Streak
from kudos.domain.values import new_id, validate_identifier
from kudos.gamification.engine import ACHIEVEMENT_RULES, TASK_COMPLETED_REASON
from kudos.repositories.gamification import AchievementRepository, PointRepository, StreakRepository
from kudos.repositories.task import TaskRepository

logger = logging.getLogger(__name__)


@dataclass
class UserStats:
    total_points: int
    completed_tasks: int
    open_tasks: int
    current_streak: int
    longest_streak: int
    achievements_unlocked: int
    achievements_available: int


class GamificationService:
    """Read side of points, streaks and achievements, plus manual point corrections"""

    def __init__(self, db: AsyncSession):
        self.db = db
        self.point_repo = PointRepository()
        self.streak_repo = StreakRepository()
        self.achievement_repo = AchievementRepository()
        self.task_repo = TaskRepository()

    async def list_points(self, user_id: str, limit: int = 100, offset: int = 0) -> List[PointEntry]:
        return await self.point_repo.find_by_user_id(self.db, user_id, limit=limit, offset=offset)

    async def total_points(self, user_id: str) -> int:
        return await self.point_repo.total(self.db, user_id)

    async def record_correction(
        self, user_id: str, amount: int, reason: str, task_id: Optional[str] = None
    ) -> PointEntry:
        """Append a signed correction. Existing entries are never edited."""
        if reason == TASK_COMPLETED_REASON:
            raise ValidationError(f"'{TASK_COMPLETED_REASON}' is reserved for task completions")
        if task_id is not None:
            task_id = validate_identifier(task_id, "task_id")
            task = await self.task_repo.find_by_id(self.db, task_id)
            if task is None or task.user_id != user_id:
                raise NotFoundError("Task", task_id)
        entry = PointEntry(id=new_id(), user_id=user_id, amount=amount, reason=reason, task_id=task_id)
        async with transaction(self.db):
            await self.point_repo.save(self.db, entry)
        logger.info(f"Recorded point correction {amount:+d} for user {user_id}: {reason}")
        return entry

    async def get_streak(self, user_id: str) -> Streak:
        streak = await self.streak_repo.find_for_user(self.db, user_id)
        return streak or Streak.start(user_id)

    async def list_achievements(self, user_id: str) -> List[Achievement]:
        return await self.achievement_repo.find_by_user_id(self.db, user_id)

    async def stats(self, user_id: str) -> UserStats:
        streak = await self.get_streak(user_id)
        unlocked = await self.achievement_repo.unlocked_types(self.db, user_id)
        return UserStats(
            total_points=await self.point_repo.total(self.db, user_id),
            completed_tasks=await self.point_repo.count_completions(self.db, user_id),
            open_tasks=await self.task_repo.count_open(self.db, user_id),
            current_streak=streak.current_streak,
            longest_streak=streak.longest_streak,
            achievements_unlocked=len(unlocked),
            achievements_available=len(ACHIEVEMENT_RULES),
        )
