"""Checklists (subtasks) and notes hanging off a task."""
import logging
from typing import List

from sqlalchemy.ext.asyncio import AsyncSession

from kudos.core.errors import NotFoundError
from kudos.database import transaction
from kudos.domain.entities import Note, Subtask
from kudos.domain.values import validate_identifier
from kudos.models.api import NoteCreate, SubtaskCreate, SubtaskUpdate
from kudos.repositories.task import NoteRepository, SubtaskRepository, TaskRepository

logger = logging.getLogger(__name__)


class TaskDetailService:
    def __init__(self, db: AsyncSession):
        self.db = db
        self.task_repo = TaskRepository()
        self.subtask_repo = SubtaskRepository()
        self.note_repo = NoteRepository()

    async def _require_task(self, user_id: str, task_id: str) -> str:
        task_id = validate_identifier(task_id, "task_id")
        task = await self.task_repo.find_by_id(self.db, task_id)
        if task is None or task.user_id != user_id:
            raise NotFoundError("Task", task_id)
        return task_id

    async def _get_subtask(self, user_id: str, task_id: str, subtask_id: str) -> Subtask:
        task_id = await self._require_task(user_id, task_id)
        subtask_id = validate_identifier(subtask_id, "subtask_id")
        subtask = await self.subtask_repo.find_by_id(self.db, subtask_id)
        if subtask is None or subtask.task_id != task_id:
            raise NotFoundError("Subtask", subtask_id)
        return subtask

    async def _get_note(self, user_id: str, task_id: str, note_id: str) -> Note:
        task_id = await self._require_task(user_id, task_id)
        note_id = validate_identifier(note_id, "note_id")
        note = await self.note_repo.find_by_id(self.db, note_id)
        if note is None or note.task_id != task_id:
            raise NotFoundError("Note", note_id)
        return note

    # Subtasks

    async def list_subtasks(self, user_id: str, task_id: str) -> List[Subtask]:
        task_id = await self._require_task(user_id, task_id)
        return await self.subtask_repo.find_by_task_id(self.db, task_id)

    async def add_subtask(self, user_id: str, task_id: str, data: SubtaskCreate) -> Subtask:
        async with transaction(self.db):
            task_id = await self._require_task(user_id, task_id)
            order = data.order
            if order is None:
                order = await self.subtask_repo.next_position(self.db, task_id)
            subtask = Subtask.create(task_id, data.title, order)
            await self.subtask_repo.save(self.db, subtask)
        return subtask

    async def update_subtask(self, user_id: str, task_id: str, subtask_id: str, data: SubtaskUpdate) -> Subtask:
        async with transaction(self.db):
            subtask = await self._get_subtask(user_id, task_id, subtask_id)
            if data.title is not None:
                subtask.update_title(data.title)
            if data.order is not None:
                subtask.move_to(data.order)
            await self.subtask_repo.update(self.db, subtask)
        return subtask

    async def complete_subtask(self, user_id: str, task_id: str, subtask_id: str) -> Subtask:
        """Tick a checklist item. Subtasks earn no points of their own."""
        async with transaction(self.db):
            subtask = await self._get_subtask(user_id, task_id, subtask_id)
            subtask.complete()
            await self.subtask_repo.update(self.db, subtask)
        return subtask

    async def delete_subtask(self, user_id: str, task_id: str, subtask_id: str) -> None:
        async with transaction(self.db):
            subtask = await self._get_subtask(user_id, task_id, subtask_id)
            await self.subtask_repo.delete(self.db, subtask.id)

    # Notes

    async def list_notes(self, user_id: str, task_id: str) -> List[Note]:
        task_id = await self._require_task(user_id, task_id)
        return await self.note_repo.find_by_task_id(self.db, task_id)

    async def add_note(self, user_id: str, task_id: str, data: NoteCreate) -> Note:
        async with transaction(self.db):
            task_id = await self._require_task(user_id, task_id)
            note = Note.create(task_id, data.content)
            await self.note_repo.save(self.db, note)
        return note

    async def edit_note(self, user_id: str, task_id: str, note_id: str, data: NoteCreate) -> Note:
        async with transaction(self.db):
            note = await self._get_note(user_id, task_id, note_id)
            note.edit(data.content)
            await self.note_repo.update(self.db, note)
        return note

    async def delete_note(self, user_id: str, task_id: str, note_id: str) -> None:
        async with transaction(self.db):
            note = await self._get_note(user_id, task_id, note_id)
            await self.note_repo.delete(self.db, note.id)
