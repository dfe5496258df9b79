from pydantic import BaseModel, Field, ConfigDict
from typing import Optional, List
from datetime import date, datetime

from kudos.domain.values import AchievementType, Priority, Theme


# Tasks

class TaskCreate(BaseModel):
    title: str
    description: Optional[str] = None
    priority: Optional[Priority] = None
    due_date: Optional[datetime] = None
    category_id: Optional[str] = None
    tag_ids: List[str] = Field(default_factory=list)


class TaskUpdate(BaseModel):
    """Partial update; fields left out are untouched, explicit nulls clear optional fields"""
    title: Optional[str] = None
    description: Optional[str] = None
    priority: Optional[Priority] = None
    due_date: Optional[datetime] = None
    category_id: Optional[str] = None
    tag_ids: Optional[List[str]] = None


class TaskResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    user_id: str
    title: str
    description: Optional[str]
    priority: Priority
    due_date: Optional[datetime]
    completed: bool
    completed_at: Optional[datetime]
    category_id: Optional[str]
    tag_ids: List[str]
    created_at: datetime
    updated_at: datetime


class SubtaskCreate(BaseModel):
    title: str
    order: Optional[int] = None


class SubtaskUpdate(BaseModel):
    title: Optional[str] = None
    order: Optional[int] = None


class SubtaskResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    task_id: str
    title: str
    order: int
    completed: bool
    completed_at: Optional[datetime]


class NoteCreate(BaseModel):
    content: str


class NoteResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    task_id: str
    content: str
    created_at: datetime
    updated_at: datetime


# Categories and tags

class CategoryCreate(BaseModel):
    name: str
    color: Optional[str] = None
    icon: Optional[str] = None
    description: Optional[str] = None


class CategoryUpdate(BaseModel):
    name: Optional[str] = None
    color: Optional[str] = None
    icon: Optional[str] = None
    description: Optional[str] = None


class CategoryResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    name: str
    color: Optional[str]
    icon: Optional[str]
    description: Optional[str]


class TagCreate(BaseModel):
    name: str
    color: Optional[str] = None


class TagUpdate(BaseModel):
    name: Optional[str] = None
    color: Optional[str] = None


class TagResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    name: str
    color: Optional[str]


# Users

class UserProfileResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    email: str
    name: Optional[str]
    avatar_url: Optional[str]
    created_at: datetime


class UserProfileUpdate(BaseModel):
    name: Optional[str] = Field(None, max_length=100)
    avatar_url: Optional[str] = Field(None, max_length=500)


class SettingsResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    theme: Theme
    praise_on_complete: bool
    show_points: bool
    show_streak: bool
    show_achievements: bool
    praise_sound: bool
    praise_haptics: bool
    animation_enabled: bool


class SettingsUpdate(BaseModel):
    theme: Optional[Theme] = None
    praise_on_complete: Optional[bool] = None
    show_points: Optional[bool] = None
    show_streak: Optional[bool] = None
    show_achievements: Optional[bool] = None
    praise_sound: Optional[bool] = None
    praise_haptics: Optional[bool] = None
    animation_enabled: Optional[bool] = None


# Gamification

class PointEntryResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    amount: int
    reason: str
    task_id: Optional[str]
    created_at: datetime


class PointCorrectionRequest(BaseModel):
    amount: int
    reason: str = Field(..., min_length=1, max_length=100)
    task_id: Optional[str] = None


class PointsLedgerResponse(BaseModel):
    total: int
    entries: List[PointEntryResponse]


class StreakResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    current_streak: int
    longest_streak: int
    last_active_date: Optional[date]


class AchievementResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    type: AchievementType
    title: str
    description: Optional[str]
    icon: Optional[str]
    unlocked_at: datetime


class StatsResponse(BaseModel):
    total_points: int
    completed_tasks: int
    open_tasks: int
    current_streak: int
    longest_streak: int
    achievements_unlocked: int
    achievements_available: int


class CompletionResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    task: TaskResponse
    points_awarded: int
    total_points: int
    streak: StreakResponse
    new_achievements: List[AchievementResponse]
    praise: List[str]
