from typing import List, Optional, Sequence
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select, update, delete, func

from kudos.core.errors import AlreadyCompletedError, NotFoundError
from kudos.domain.entities import Note, Subtask, Task
from kudos.domain.values import ensure_utc
from ..models.task import TaskDB, TagDB, SubtaskDB, TaskNoteDB, task_tags
from .base import BaseRepository


class TaskRepository(BaseRepository[TaskDB, Task]):
    """Repository for task operations"""

    entity_name = "Task"

    def __init__(self):
        super().__init__(TaskDB)

    def to_entity(self, row: TaskDB) -> Task:
        return Task(
            id=row.id,
            user_id=row.user_id,
            title=row.title,
            description=row.description,
            priority=row.priority,
            due_date=ensure_utc(row.due_date),
            completed=row.completed,
            completed_at=ensure_utc(row.completed_at),
            category_id=row.category_id,
            tag_ids=sorted(tag.id for tag in row.tags),
            created_at=ensure_utc(row.created_at),
            updated_at=ensure_utc(row.updated_at),
        )

    def to_values(self, task: Task) -> dict:
        return {
            "id": task.id,
            "user_id": task.user_id,
            "title": task.title,
            "description": task.description,
            "priority": task.priority,
            "due_date": task.due_date,
            "completed": task.completed,
            "completed_at": task.completed_at,
            "category_id": task.category_id,
            "created_at": task.created_at,
            "updated_at": task.updated_at,
        }

    async def _tag_rows(self, db: AsyncSession, tag_ids: Sequence[str]) -> List[TagDB]:
        if not tag_ids:
            return []
        result = await db.execute(select(TagDB).where(TagDB.id.in_(tag_ids)))
        return list(result.scalars().all())

    async def save(self, db: AsyncSession, task: Task) -> Task:
        """Insert a new task together with its tag links"""
        row = TaskDB(**self.to_values(task))
        row.tags = await self._tag_rows(db, task.tag_ids)
        db.add(row)
        await db.flush()
        return task

    async def update(self, db: AsyncSession, task: Task) -> Task:
        row = await self._get_row(db, task.id)
        if row is None:
            raise NotFoundError(self.entity_name, task.id)
        for key, value in self.to_values(task).items():
            setattr(row, key, value)
        if sorted(tag.id for tag in row.tags) != sorted(task.tag_ids):
            row.tags = await self._tag_rows(db, task.tag_ids)
        await db.flush()
        return task

    async def mark_completed(self, db: AsyncSession, task: Task) -> Task:
        """Persist a completion, but only if nobody completed the row first"""
        result = await db.execute(
            update(TaskDB)
            .where(TaskDB.id == task.id, TaskDB.completed == False)  # noqa: E712
            .values(completed=True, completed_at=task.completed_at, updated_at=task.updated_at)
        )
        if result.rowcount == 0:
            raise AlreadyCompletedError(task.id)
        return task

    async def find_for_user(
        self,
        db: AsyncSession,
        user_id: str,
        include_completed: bool = True,
        category_id: Optional[str] = None,
        tag_id: Optional[str] = None
    ) -> List[Task]:
        """Tasks of a user, open ones first, newest first within each group"""
        query = select(TaskDB).where(TaskDB.user_id == user_id)
        if not include_completed:
            query = query.where(TaskDB.completed == False)  # noqa: E712
        if category_id is not None:
            query = query.where(TaskDB.category_id == category_id)
        if tag_id is not None:
            query = query.join(task_tags, task_tags.c.task_id == TaskDB.id).where(task_tags.c.tag_id == tag_id)
        query = query.order_by(TaskDB.completed, TaskDB.created_at.desc())

        result = await db.execute(query)
        return [self.to_entity(row) for row in result.scalars().all()]

    async def find_by_user_id(self, db: AsyncSession, user_id: str) -> List[Task]:
        return await self.find_for_user(db, user_id)

    async def count_open(self, db: AsyncSession, user_id: str) -> int:
        result = await db.execute(
            select(func.count(TaskDB.id))
            .where(TaskDB.user_id == user_id, TaskDB.completed == False)  # noqa: E712
        )
        return result.scalar() or 0

    async def delete_task(self, db: AsyncSession, task_id: str, user_id: str) -> bool:
        """Delete a task (with user verification)"""
        result = await db.execute(
            delete(TaskDB)
            .where(TaskDB.id == task_id, TaskDB.user_id == user_id)
        )
        return result.rowcount > 0


class SubtaskRepository(BaseRepository[SubtaskDB, Subtask]):
    entity_name = "Subtask"

    def __init__(self):
        super().__init__(SubtaskDB)

    def to_entity(self, row: SubtaskDB) -> Subtask:
        return Subtask(
            id=row.id,
            task_id=row.task_id,
            title=row.title,
            order=row.position,
            completed=row.completed,
            completed_at=ensure_utc(row.completed_at),
            created_at=ensure_utc(row.created_at),
            updated_at=ensure_utc(row.updated_at),
        )

    def to_values(self, subtask: Subtask) -> dict:
        return {
            "id": subtask.id,
            "task_id": subtask.task_id,
            "title": subtask.title,
            "position": subtask.order,
            "completed": subtask.completed,
            "completed_at": subtask.completed_at,
            "created_at": subtask.created_at,
            "updated_at": subtask.updated_at,
        }

    async def find_by_task_id(self, db: AsyncSession, task_id: str) -> List[Subtask]:
        result = await db.execute(
            select(SubtaskDB)
            .where(SubtaskDB.task_id == task_id)
            .order_by(SubtaskDB.position, SubtaskDB.created_at)
        )
        return [self.to_entity(row) for row in result.scalars().all()]

    async def next_position(self, db: AsyncSession, task_id: str) -> int:
        """Get the next free position at the bottom of a task's checklist"""
        result = await db.execute(
            select(func.max(SubtaskDB.position)).where(SubtaskDB.task_id == task_id)
        )
        max_position = result.scalar()
        return 0 if max_position is None else max_position + 1


class NoteRepository(BaseRepository[TaskNoteDB, Note]):
    entity_name = "Note"

    def __init__(self):
        super().__init__(TaskNoteDB)

    def to_entity(self, row: TaskNoteDB) -> Note:
        return Note(
            id=row.id,
            task_id=row.task_id,
            content=row.content,
            created_at=ensure_utc(row.created_at),
            updated_at=ensure_utc(row.updated_at),
        )

    def to_values(self, note: Note) -> dict:
        return {
            "id": note.id,
            "task_id": note.task_id,
            "content": note.content,
            "created_at": note.created_at,
            "updated_at": note.updated_at,
        }

    async def find_by_task_id(self, db: AsyncSession, task_id: str) -> List[Note]:
        result = await db.execute(
            select(TaskNoteDB)
            .where(TaskNoteDB.task_id == task_id)
            .order_by(TaskNoteDB.created_at)
        )
        return [self.to_entity(row) for row in result.scalars().all()]
