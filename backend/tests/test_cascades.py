"""Ownership cascades, uniqueness rules and the append-only ledger"""
import pytest
from sqlalchemy import func, select

from kudos.core.errors import ConstraintViolationError, NotFoundError, ValidationError
from kudos.database import transaction
from kudos.domain.values import AchievementType
from kudos.gamification.engine import build_achievement
from kudos.models.api import CategoryCreate, NoteCreate, SubtaskCreate, TagCreate, TaskCreate
from kudos.models.gamification import AchievementDB, PointDB, StreakDB
from kudos.models.task import CategoryDB, SubtaskDB, TagDB, TaskDB, TaskNoteDB, task_tags
from kudos.models.user import UserDB, UserSettingsDB
from kudos.repositories.gamification import AchievementRepository, PointRepository
from kudos.services.categories import CategoryService, TagService
from kudos.services.gamification import GamificationService
from kudos.services.task_details import TaskDetailService
from kudos.services.tasks import TaskLifecycleService
from kudos.services.users import UserService


async def count(session, table, *criteria):
    query = select(func.count()).select_from(table)
    if criteria:
        query = query.where(*criteria)
    result = await session.execute(query)
    return result.scalar()


async def populate(session, user_id):
    """A category, a tag and a completed task with a subtask and a note"""
    category = await CategoryService(session).create_category(user_id, CategoryCreate(name="Work"))
    tag = await TagService(session).create_tag(user_id, TagCreate(name="urgent-ish"))
    tasks = TaskLifecycleService(session)
    task = await tasks.create_task(
        user_id, TaskCreate(title="Quarterly report", category_id=category.id, tag_ids=[tag.id])
    )
    details = TaskDetailService(session)
    await details.add_subtask(user_id, task.id, SubtaskCreate(title="Collect numbers"))
    await details.add_note(user_id, task.id, NoteCreate(content="Ask finance for Q3"))
    await tasks.complete_task(user_id, task.id)
    return category, tag, task


class TestUserDeletion:
    @pytest.mark.asyncio
    async def test_deleting_user_removes_everything_it_owns(self, session, user, other_user):
        await populate(session, user.id)
        await populate(session, other_user.id)

        await UserService(session).delete_user(user.id)

        for model in (CategoryDB, TagDB, TaskDB, AchievementDB, StreakDB, PointDB, UserSettingsDB):
            assert await count(session, model, model.user_id == user.id) == 0, model.__tablename__
        assert await count(session, UserDB, UserDB.id == user.id) == 0
        assert await count(session, SubtaskDB) == 1
        assert await count(session, TaskNoteDB) == 1
        assert await count(session, task_tags) == 1

        # the other user is untouched
        assert await count(session, TaskDB, TaskDB.user_id == other_user.id) == 1
        assert await GamificationService(session).total_points(other_user.id) == 20

    @pytest.mark.asyncio
    async def test_deleting_unknown_user(self, session, user):
        await UserService(session).delete_user(user.id)
        with pytest.raises(NotFoundError):
            await UserService(session).delete_user(user.id)


class TestTaskAndCategoryDeletion:
    @pytest.mark.asyncio
    async def test_deleting_category_keeps_tasks(self, session, user):
        category, _, task = await populate(session, user.id)

        await CategoryService(session).delete_category(user.id, category.id)

        stored = await TaskLifecycleService(session).get_task(user.id, task.id)
        assert stored.category_id is None

    @pytest.mark.asyncio
    async def test_deleting_tag_unlinks_tasks(self, session, user):
        _, tag, task = await populate(session, user.id)

        await TagService(session).delete_tag(user.id, tag.id)

        stored = await TaskLifecycleService(session).get_task(user.id, task.id)
        assert stored.tag_ids == []
        assert await count(session, task_tags) == 0

    @pytest.mark.asyncio
    async def test_deleting_task_removes_details_but_keeps_points(self, session, user):
        _, tag, task = await populate(session, user.id)

        await TaskLifecycleService(session).delete_task(user.id, task.id)

        assert await count(session, SubtaskDB) == 0
        assert await count(session, TaskNoteDB) == 0
        assert await count(session, task_tags) == 0
        assert await count(session, TagDB, TagDB.id == tag.id) == 1

        entries = await PointRepository().find_by_user_id(session, user.id)
        assert [(entry.amount, entry.task_id) for entry in entries] == [(20, None)]


class TestUniqueness:
    @pytest.mark.asyncio
    async def test_duplicate_category_name(self, session, user, other_user):
        service = CategoryService(session)
        await service.create_category(user.id, CategoryCreate(name="Home"))

        with pytest.raises(ConstraintViolationError):
            await service.create_category(user.id, CategoryCreate(name="Home"))

        # names are unique per user only
        await service.create_category(other_user.id, CategoryCreate(name="Home"))

    @pytest.mark.asyncio
    async def test_duplicate_tag_name(self, session, user):
        service = TagService(session)
        await service.create_tag(user.id, TagCreate(name="later"))

        with pytest.raises(ConstraintViolationError):
            await service.create_tag(user.id, TagCreate(name="later"))

    @pytest.mark.asyncio
    async def test_duplicate_email_for_new_subject(self, session, user):
        with pytest.raises(ConstraintViolationError):
            await UserService(session).provision("idp|impostor", "alice@example.com")

    @pytest.mark.asyncio
    async def test_provision_is_idempotent(self, session, user):
        again = await UserService(session).provision("idp|alice", "alice@example.com", "Alice")

        assert again.id == user.id
        assert await count(session, UserDB) == 1
        assert await count(session, StreakDB, StreakDB.user_id == user.id) == 1
        assert await count(session, UserSettingsDB, UserSettingsDB.user_id == user.id) == 1

    @pytest.mark.asyncio
    async def test_achievement_unlocks_once(self, session, user):
        repo = AchievementRepository()

        async with transaction(session):
            first = await repo.unlock(session, build_achievement(user.id, AchievementType.STREAK_3))
        async with transaction(session):
            second = await repo.unlock(session, build_achievement(user.id, AchievementType.STREAK_3))

        assert first is True
        assert second is False
        assert await repo.unlocked_types(session, user.id) == {AchievementType.STREAK_3}


class TestPointsLedger:
    @pytest.mark.asyncio
    async def test_entries_cannot_be_changed(self, session, user):
        _, _, task = await populate(session, user.id)
        repo = PointRepository()
        entry = (await repo.find_for_task(session, task.id))[0]

        with pytest.raises(ConstraintViolationError):
            await repo.update(session, entry)
        with pytest.raises(ConstraintViolationError):
            await repo.delete(session, entry.id)

    @pytest.mark.asyncio
    async def test_correction_appends_offsetting_entry(self, session, user):
        _, _, task = await populate(session, user.id)
        service = GamificationService(session)

        await service.record_correction(user.id, -20, "completed_by_mistake", task_id=task.id)

        assert await service.total_points(user.id) == 0
        assert len(await service.list_points(user.id)) == 2

    @pytest.mark.asyncio
    async def test_correction_for_foreign_task(self, session, user, other_user):
        _, _, task = await populate(session, other_user.id)

        with pytest.raises(NotFoundError):
            await GamificationService(session).record_correction(user.id, 5, "bonus", task_id=task.id)

    @pytest.mark.asyncio
    async def test_stats(self, session, user):
        await populate(session, user.id)
        await TaskLifecycleService(session).create_task(user.id, TaskCreate(title="Still open"))

        stats = await GamificationService(session).stats(user.id)

        assert stats.total_points == 20
        assert stats.completed_tasks == 1
        assert stats.open_tasks == 1
        assert stats.current_streak == 1
        assert stats.achievements_unlocked == 1
        assert stats.achievements_available == len(AchievementType)

    @pytest.mark.asyncio
    async def test_completion_reason_is_reserved(self, session, user):
        with pytest.raises(ValidationError):
            await GamificationService(session).record_correction(user.id, 20, "task_completed")

        assert await GamificationService(session).total_points(user.id) == 0

    @pytest.mark.asyncio
    async def test_stats_keep_deleted_completions(self, session, user):
        _, _, task = await populate(session, user.id)
        await TaskLifecycleService(session).delete_task(user.id, task.id)

        stats = await GamificationService(session).stats(user.id)

        assert stats.completed_tasks == 1
        assert stats.open_tasks == 0
        assert stats.total_points == 20
