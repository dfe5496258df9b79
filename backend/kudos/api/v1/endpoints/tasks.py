"""Task management API endpoints"""
from datetime import date
from typing import List, Optional
from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from ....database import get_db
from ....core.deps import get_current_user, get_task_service
from ....domain.entities import User
from ....models.api import (
    CompletionResponse,
    NoteCreate,
    NoteResponse,
    SubtaskCreate,
    SubtaskResponse,
    SubtaskUpdate,
    TaskCreate,
    TaskResponse,
    TaskUpdate,
)
from ....services.task_details import TaskDetailService
from ....services.tasks import TaskLifecycleService


router = APIRouter()


@router.get("", response_model=List[TaskResponse])
async def list_tasks(
    include_completed: bool = Query(True, description="Include completed tasks"),
    category_id: Optional[str] = Query(None, description="Only tasks in this category"),
    tag_id: Optional[str] = Query(None, description="Only tasks carrying this tag"),
    current_user: User = Depends(get_current_user),
    service: TaskLifecycleService = Depends(get_task_service)
):
    """List user's tasks"""
    tasks = await service.list_tasks(
        current_user.id, include_completed=include_completed, category_id=category_id, tag_id=tag_id
    )
    return [TaskResponse.model_validate(task) for task in tasks]


@router.post("", response_model=TaskResponse, status_code=201)
async def create_task(
    task_data: TaskCreate,
    current_user: User = Depends(get_current_user),
    service: TaskLifecycleService = Depends(get_task_service)
):
    """Create a new task"""
    task = await service.create_task(current_user.id, task_data)
    return TaskResponse.model_validate(task)


@router.get("/{task_id}", response_model=TaskResponse)
async def get_task(
    task_id: str,
    current_user: User = Depends(get_current_user),
    service: TaskLifecycleService = Depends(get_task_service)
):
    """Get a specific task"""
    task = await service.get_task(current_user.id, task_id)
    return TaskResponse.model_validate(task)


@router.patch("/{task_id}", response_model=TaskResponse)
async def update_task(
    task_id: str,
    task_data: TaskUpdate,
    current_user: User = Depends(get_current_user),
    service: TaskLifecycleService = Depends(get_task_service)
):
    """Update a task"""
    task = await service.update_task(current_user.id, task_id, task_data)
    return TaskResponse.model_validate(task)


@router.delete("/{task_id}")
async def delete_task(
    task_id: str,
    current_user: User = Depends(get_current_user),
    service: TaskLifecycleService = Depends(get_task_service)
):
    """Delete a task"""
    await service.delete_task(current_user.id, task_id)
    return {"message": "Task deleted successfully"}


@router.post("/{task_id}/complete", response_model=CompletionResponse)
async def complete_task(
    task_id: str,
    today: Optional[date] = Query(None, description="The user's local calendar day, for the streak"),
    current_user: User = Depends(get_current_user),
    service: TaskLifecycleService = Depends(get_task_service)
):
    """Mark a task as completed and collect the rewards"""
    result = await service.complete_task(current_user.id, task_id, today=today)
    return CompletionResponse.model_validate(result)


# Subtasks

@router.get("/{task_id}/subtasks", response_model=List[SubtaskResponse])
async def list_subtasks(
    task_id: str,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    subtasks = await TaskDetailService(db).list_subtasks(current_user.id, task_id)
    return [SubtaskResponse.model_validate(subtask) for subtask in subtasks]


@router.post("/{task_id}/subtasks", response_model=SubtaskResponse, status_code=201)
async def add_subtask(
    task_id: str,
    subtask_data: SubtaskCreate,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    subtask = await TaskDetailService(db).add_subtask(current_user.id, task_id, subtask_data)
    return SubtaskResponse.model_validate(subtask)


@router.patch("/{task_id}/subtasks/{subtask_id}", response_model=SubtaskResponse)
async def update_subtask(
    task_id: str,
    subtask_id: str,
    subtask_data: SubtaskUpdate,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    subtask = await TaskDetailService(db).update_subtask(current_user.id, task_id, subtask_id, subtask_data)
    return SubtaskResponse.model_validate(subtask)


@router.post("/{task_id}/subtasks/{subtask_id}/complete", response_model=SubtaskResponse)
async def complete_subtask(
    task_id: str,
    subtask_id: str,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    subtask = await TaskDetailService(db).complete_subtask(current_user.id, task_id, subtask_id)
    return SubtaskResponse.model_validate(subtask)


@router.delete("/{task_id}/subtasks/{subtask_id}")
async def delete_subtask(
    task_id: str,
    subtask_id: str,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    await TaskDetailService(db).delete_subtask(current_user.id, task_id, subtask_id)
    return {"message": "Subtask deleted successfully"}


# Notes

@router.get("/{task_id}/notes", response_model=List[NoteResponse])
async def list_notes(
    task_id: str,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    notes = await TaskDetailService(db).list_notes(current_user.id, task_id)
    return [NoteResponse.model_validate(note) for note in notes]


@router.post("/{task_id}/notes", response_model=NoteResponse, status_code=201)
async def add_note(
    task_id: str,
    note_data: NoteCreate,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    note = await TaskDetailService(db).add_note(current_user.id, task_id, note_data)
    return NoteResponse.model_validate(note)


@router.patch("/{task_id}/notes/{note_id}", response_model=NoteResponse)
async def edit_note(
    task_id: str,
    note_id: str,
    note_data: NoteCreate,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    note = await TaskDetailService(db).edit_note(current_user.id, task_id, note_id, note_data)
    return NoteResponse.model_validate(note)


@router.delete("/{task_id}/notes/{note_id}")
async def delete_note(
    task_id: str,
    note_id: str,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    await TaskDetailService(db).delete_note(current_user.id, task_id, note_id)
    return {"message": "Note deleted successfully"}
