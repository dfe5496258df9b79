"""
Task lifecycle: create, update, complete and delete.

Completion is the one operation with real consistency requirements. The task
row, the points ledger entry, the streak row and any newly unlocked
achievements are written in a single transaction: either all four land or none
does, and on failure the task stays active.
"""
import asyncio
import logging
import random
from dataclasses import dataclass, field
from datetime import date, datetime
from typing import Awaitable, Callable, List, Optional, TypeVar

from sqlalchemy.ext.asyncio import AsyncSession

from kudos.core.config import settings
from kudos.core.errors import ConcurrencyConflictError, NotFoundError, PersistenceError
from kudos.database import transaction
from kudos.domain.entities import Achievement, PointEntry, Streak, Task
from kudos.domain.values import Priority, utcnow, validate_identifier
from kudos.gamification.engine import (
    ProgressSnapshot,
    advance_streak,
    build_achievement,
    evaluate_achievements,
    points_for_completion,
)
from kudos.gamification.praise import compose_praise
from kudos.models.api import TaskCreate, TaskUpdate
from kudos.repositories.category import CategoryRepository, TagRepository
from kudos.repositories.gamification import AchievementRepository, PointRepository, StreakRepository
from kudos.repositories.task import TaskRepository
from kudos.repositories.user import SettingsRepository
from .locks import UserLockRegistry

logger = logging.getLogger(__name__)

R = TypeVar("R")


@dataclass
class CompletionResult:
    task: Task
    point_entry: PointEntry
    total_points: int
    streak: Streak
    new_achievements: List[Achievement] = field(default_factory=list)
    praise: List[str] = field(default_factory=list)

    @property
    def points_awarded(self) -> int:
        return self.point_entry.amount


class TaskLifecycleService:
    def __init__(
        self,
        db: AsyncSession,
        locks: Optional[UserLockRegistry] = None,
        clock: Optional[Callable[[], datetime]] = None,
        timeout: Optional[float] = None,
        max_attempts: Optional[int] = None,
        rng: Optional[random.Random] = None,
    ):
        self.db = db
        self.locks = locks or UserLockRegistry()
        self.clock = clock or utcnow
        self.timeout = settings.DB_OPERATION_TIMEOUT if timeout is None else timeout
        self.max_attempts = max_attempts or settings.COMPLETION_MAX_ATTEMPTS
        self.rng = rng

        self.task_repo = TaskRepository()
        self.category_repo = CategoryRepository()
        self.tag_repo = TagRepository()
        self.point_repo = PointRepository()
        self.streak_repo = StreakRepository()
        self.achievement_repo = AchievementRepository()
        self.settings_repo = SettingsRepository()

    async def _bounded(self, operation: Awaitable[R], timeout: Optional[float]) -> R:
        limit = self.timeout if timeout is None else timeout
        try:
            return await asyncio.wait_for(operation, limit if limit and limit > 0 else None)
        except asyncio.TimeoutError:
            logger.error(f"Task operation timed out after {limit}s")
            raise PersistenceError(f"Operation timed out after {limit}s")

    async def _require_category(self, user_id: str, category_id: str) -> None:
        category_id = validate_identifier(category_id, "category_id")
        category = await self.category_repo.find_by_id(self.db, category_id)
        if category is None or category.user_id != user_id:
            raise NotFoundError("Category", category_id)

    async def _require_tags(self, user_id: str, tag_ids: List[str]) -> None:
        wanted = {validate_identifier(tag_id, "tag_id") for tag_id in tag_ids}
        owned = {tag.id for tag in await self.tag_repo.find_owned(self.db, user_id, list(wanted))}
        missing = sorted(wanted - owned)
        if missing:
            raise NotFoundError("Tag", missing[0])

    async def get_task(self, user_id: str, task_id: str) -> Task:
        """Fetch one of the user's tasks"""
        task_id = validate_identifier(task_id, "task_id")
        task = await self.task_repo.find_by_id(self.db, task_id)
        if task is None or task.user_id != user_id:
            raise NotFoundError("Task", task_id)
        return task

    async def list_tasks(
        self,
        user_id: str,
        include_completed: bool = True,
        category_id: Optional[str] = None,
        tag_id: Optional[str] = None,
    ) -> List[Task]:
        if category_id is not None:
            category_id = validate_identifier(category_id, "category_id")
        if tag_id is not None:
            tag_id = validate_identifier(tag_id, "tag_id")
        return await self.task_repo.find_for_user(
            self.db, user_id, include_completed=include_completed, category_id=category_id, tag_id=tag_id
        )

    async def create_task(self, user_id: str, data: TaskCreate, timeout: Optional[float] = None) -> Task:
        """Validate and persist a new active task"""
        # Construction fails before any storage access on bad input
        task = Task.create(
            user_id=user_id,
            title=data.title,
            description=data.description,
            priority=data.priority or Priority.MEDIUM,
            due_date=data.due_date,
            category_id=data.category_id,
            tag_ids=data.tag_ids,
            now=self.clock(),
        )
        return await self._bounded(self._persist_new(task), timeout)

    async def _persist_new(self, task: Task) -> Task:
        async with transaction(self.db):
            if task.category_id is not None:
                await self._require_category(task.user_id, task.category_id)
            await self._require_tags(task.user_id, task.tag_ids)
            await self.task_repo.save(self.db, task)
        logger.info(f"Created task {task.id} for user {task.user_id}")
        return task

    async def update_task(
        self, user_id: str, task_id: str, data: TaskUpdate, timeout: Optional[float] = None
    ) -> Task:
        return await self._bounded(self._update(user_id, task_id, data), timeout)

    async def _update(self, user_id: str, task_id: str, data: TaskUpdate) -> Task:
        changes = data.model_fields_set
        now = self.clock()
        async with transaction(self.db):
            task = await self.get_task(user_id, task_id)

            if "title" in changes and data.title is not None:
                task.update_title(data.title, now)
            if "description" in changes:
                task.update_description(data.description, now)
            if "priority" in changes and data.priority is not None:
                task.adjust_priority(data.priority, now)
            if "due_date" in changes:
                task.reschedule(data.due_date, now)
            if "category_id" in changes:
                if data.category_id is not None:
                    await self._require_category(user_id, data.category_id)
                task.assign_category(data.category_id, now)
            if "tag_ids" in changes and data.tag_ids is not None:
                await self._require_tags(user_id, data.tag_ids)
                task.set_tags(data.tag_ids, now)

            await self.task_repo.update(self.db, task)
        return task

    async def delete_task(self, user_id: str, task_id: str, timeout: Optional[float] = None) -> None:
        """Delete a task for good; subtasks, notes and tag links go with it"""
        task_id = validate_identifier(task_id, "task_id")
        await self._bounded(self._delete(user_id, task_id), timeout)

    async def _delete(self, user_id: str, task_id: str) -> None:
        async with transaction(self.db):
            if not await self.task_repo.delete_task(self.db, task_id, user_id):
                raise NotFoundError("Task", task_id)
        logger.info(f"Deleted task {task_id} for user {user_id}")

    async def complete_task(
        self,
        user_id: str,
        task_id: str,
        today: Optional[date] = None,
        timeout: Optional[float] = None,
    ) -> CompletionResult:
        """Complete a task and apply points, streak and achievements atomically.

        Args:
            user_id: owner of the task
            task_id: task to complete
            today: the user's calendar day for streak purposes; defaults to the UTC date of the clock
            timeout: seconds before giving up with PersistenceError; defaults to DB_OPERATION_TIMEOUT

        Raises:
            NotFoundError: no such task for this user
            AlreadyCompletedError: the task was completed before, nothing is awarded again
            PersistenceError: storage failed or timed out; the task is still active
        """
        user_id = validate_identifier(user_id, "user_id")
        task_id = validate_identifier(task_id, "task_id")
        return await self._bounded(self._complete_serialized(user_id, task_id, today), timeout)

    async def _complete_serialized(self, user_id: str, task_id: str, today: Optional[date]) -> CompletionResult:
        async with self.locks.hold(user_id):
            for attempt in range(1, self.max_attempts + 1):
                try:
                    return await self._complete_once(user_id, task_id, today)
                except ConcurrencyConflictError:
                    if attempt >= self.max_attempts:
                        raise
                    logger.warning(
                        f"Completion of task {task_id} hit a concurrent streak update, "
                        f"retrying ({attempt}/{self.max_attempts})"
                    )
        raise ConcurrencyConflictError(f"Could not complete task {task_id}")

    async def _complete_once(self, user_id: str, task_id: str, today: Optional[date]) -> CompletionResult:
        now = self.clock()
        today = today or now.date()

        async with transaction(self.db):
            task = await self.get_task(user_id, task_id)
            task.complete(now)
            await self.task_repo.mark_completed(self.db, task)

            entry = points_for_completion(task, now)
            await self.point_repo.save(self.db, entry)

            streak = await self.streak_repo.find_for_user(self.db, user_id)
            if streak is None:
                streak = Streak.start(user_id)
                await self.streak_repo.save(self.db, streak)
            update = advance_streak(streak.current_streak, streak.longest_streak, streak.last_active_date, today)
            if update.changed:
                streak.apply(update)
                await self.streak_repo.update(self.db, streak)

            snapshot = ProgressSnapshot(
                total_completed=await self.point_repo.count_completions(self.db, user_id),
                current_streak=streak.current_streak,
            )
            unlocked = await self.achievement_repo.unlocked_types(self.db, user_id)
            new_achievements = []
            for achievement_type in evaluate_achievements(snapshot, unlocked):
                achievement = build_achievement(user_id, achievement_type, now)
                if await self.achievement_repo.unlock(self.db, achievement):
                    new_achievements.append(achievement)

            total_points = await self.point_repo.total(self.db, user_id)
            user_settings = await self.settings_repo.find_for_user(self.db, user_id)

        logger.info(
            f"Task {task.id} completed by user {user_id}: +{entry.amount} points, "
            f"streak {streak.current_streak} (best {streak.longest_streak})"
        )
        for achievement in new_achievements:
            logger.info(f"User {user_id} unlocked achievement {achievement.type.value}")

        return CompletionResult(
            task=task,
            point_entry=entry,
            total_points=total_points,
            streak=streak,
            new_achievements=new_achievements,
            praise=compose_praise(task, entry.amount, streak, new_achievements, user_settings, self.rng),
        )
