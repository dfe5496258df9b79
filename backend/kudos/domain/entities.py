"""
Entities of the task manager.

Each entity validates itself on construction, so an instance either exists in a
valid state or was never created. State changes go through the named methods
below, which re-validate their input and re-stamp ``updated_at``.
"""
from dataclasses import dataclass, field
from datetime import date, datetime
from typing import List, Optional, Sequence

from kudos.core.errors import AlreadyCompletedError, ValidationError
from .values import (
    NOTE_MAX_LENGTH,
    AchievementType,
    Priority,
    PriorityValue,
    Theme,
    new_id,
    parse_achievement_type,
    parse_priority,
    parse_theme,
    utcnow,
    validate_color,
    validate_email,
    validate_identifier,
    validate_name,
    validate_text,
    validate_title,
)

DESCRIPTION_MAX_LENGTH = 2000
REASON_MAX_LENGTH = 100


def _optional_id(value: Optional[str], field_name: str) -> Optional[str]:
    return None if value is None else validate_identifier(value, field_name)


def _optional_text(value: Optional[str], field_name: str, max_length: int) -> Optional[str]:
    if value is None or not value.strip():
        return None
    return validate_text(value, field_name, max_length)


def _unique_ids(values: Sequence[str], field_name: str) -> List[str]:
    seen = []
    for value in values:
        value = validate_identifier(value, field_name)
        if value not in seen:
            seen.append(value)
    return seen


@dataclass
class Task:
    id: str
    user_id: str
    title: str
    priority: Priority = Priority.MEDIUM
    description: Optional[str] = None
    due_date: Optional[datetime] = None
    completed: bool = False
    completed_at: Optional[datetime] = None
    category_id: Optional[str] = None
    tag_ids: List[str] = field(default_factory=list)
    created_at: datetime = field(default_factory=utcnow)
    updated_at: datetime = field(default_factory=utcnow)

    def __post_init__(self):
        self.id = validate_identifier(self.id)
        self.user_id = validate_identifier(self.user_id, "user_id")
        self.title = validate_title(self.title)
        self.priority = parse_priority(self.priority)
        self.description = _optional_text(self.description, "description", DESCRIPTION_MAX_LENGTH)
        self.category_id = _optional_id(self.category_id, "category_id")
        self.tag_ids = _unique_ids(self.tag_ids, "tag_id")
        if self.completed != (self.completed_at is not None):
            raise ValidationError("completed_at must be set exactly when the task is completed")

    @classmethod
    def create(
        cls,
        user_id: str,
        title: str,
        description: Optional[str] = None,
        priority=Priority.MEDIUM,
        due_date: Optional[datetime] = None,
        category_id: Optional[str] = None,
        tag_ids: Sequence[str] = (),
        now: Optional[datetime] = None,
    ) -> "Task":
        """Build a new, active task"""
        now = now or utcnow()
        return cls(
            id=new_id(),
            user_id=user_id,
            title=title,
            description=description,
            priority=priority,
            due_date=due_date,
            category_id=category_id,
            tag_ids=list(tag_ids),
            created_at=now,
            updated_at=now,
        )

    @property
    def priority_value(self) -> PriorityValue:
        return PriorityValue(self.priority)

    def _touch(self, now: Optional[datetime]) -> datetime:
        self.updated_at = now or utcnow()
        return self.updated_at

    def complete(self, now: Optional[datetime] = None) -> None:
        if self.completed:
            raise AlreadyCompletedError(self.id)
        stamp = self._touch(now)
        self.completed = True
        self.completed_at = stamp

    def update_title(self, title: str, now: Optional[datetime] = None) -> None:
        self.title = validate_title(title)
        self._touch(now)

    def update_description(self, description: Optional[str], now: Optional[datetime] = None) -> None:
        self.description = _optional_text(description, "description", DESCRIPTION_MAX_LENGTH)
        self._touch(now)

    def adjust_priority(self, priority, now: Optional[datetime] = None) -> None:
        self.priority = parse_priority(priority)
        self._touch(now)

    def reschedule(self, due_date: Optional[datetime], now: Optional[datetime] = None) -> None:
        self.due_date = due_date
        self._touch(now)

    def assign_category(self, category_id: Optional[str], now: Optional[datetime] = None) -> None:
        self.category_id = _optional_id(category_id, "category_id")
        self._touch(now)

    def set_tags(self, tag_ids: Sequence[str], now: Optional[datetime] = None) -> None:
        self.tag_ids = _unique_ids(tag_ids, "tag_id")
        self._touch(now)


@dataclass
class Subtask:
    id: str
    task_id: str
    title: str
    order: int = 0
    completed: bool = False
    completed_at: Optional[datetime] = None
    created_at: datetime = field(default_factory=utcnow)
    updated_at: datetime = field(default_factory=utcnow)

    def __post_init__(self):
        self.id = validate_identifier(self.id)
        self.task_id = validate_identifier(self.task_id, "task_id")
        self.title = validate_title(self.title)
        self.order = self._check_order(self.order)
        if self.completed != (self.completed_at is not None):
            raise ValidationError("completed_at must be set exactly when the subtask is completed")

    @staticmethod
    def _check_order(order) -> int:
        if not isinstance(order, int) or isinstance(order, bool) or order < 0:
            raise ValidationError(f"order must be a non-negative integer, got {order!r}")
        return order

    @classmethod
    def create(cls, task_id: str, title: str, order: int = 0, now: Optional[datetime] = None) -> "Subtask":
        now = now or utcnow()
        return cls(id=new_id(), task_id=task_id, title=title, order=order, created_at=now, updated_at=now)

    def complete(self, now: Optional[datetime] = None) -> None:
        if self.completed:
            raise AlreadyCompletedError(self.id)
        self.updated_at = now or utcnow()
        self.completed = True
        self.completed_at = self.updated_at

    def update_title(self, title: str, now: Optional[datetime] = None) -> None:
        self.title = validate_title(title)
        self.updated_at = now or utcnow()

    def move_to(self, order: int, now: Optional[datetime] = None) -> None:
        self.order = self._check_order(order)
        self.updated_at = now or utcnow()


@dataclass
class Note:
    id: str
    task_id: str
    content: str
    created_at: datetime = field(default_factory=utcnow)
    updated_at: datetime = field(default_factory=utcnow)

    def __post_init__(self):
        self.id = validate_identifier(self.id)
        self.task_id = validate_identifier(self.task_id, "task_id")
        self.content = validate_text(self.content, "content", NOTE_MAX_LENGTH)

    @classmethod
    def create(cls, task_id: str, content: str, now: Optional[datetime] = None) -> "Note":
        now = now or utcnow()
        return cls(id=new_id(), task_id=task_id, content=content, created_at=now, updated_at=now)

    def edit(self, content: str, now: Optional[datetime] = None) -> None:
        self.content = validate_text(content, "content", NOTE_MAX_LENGTH)
        self.updated_at = now or utcnow()


@dataclass
class Category:
    id: str
    user_id: str
    name: str
    color: Optional[str] = None
    icon: Optional[str] = None
    description: Optional[str] = None
    created_at: datetime = field(default_factory=utcnow)
    updated_at: datetime = field(default_factory=utcnow)

    def __post_init__(self):
        self.id = validate_identifier(self.id)
        self.user_id = validate_identifier(self.user_id, "user_id")
        self.name = validate_name(self.name)
        self.color = validate_color(self.color)
        self.icon = _optional_text(self.icon, "icon", 50)
        self.description = _optional_text(self.description, "description", DESCRIPTION_MAX_LENGTH)

    @classmethod
    def create(cls, user_id: str, name: str, color=None, icon=None, description=None,
               now: Optional[datetime] = None) -> "Category":
        now = now or utcnow()
        return cls(id=new_id(), user_id=user_id, name=name, color=color, icon=icon,
                   description=description, created_at=now, updated_at=now)

    def rename(self, name: str, now: Optional[datetime] = None) -> None:
        self.name = validate_name(name)
        self.updated_at = now or utcnow()

    def restyle(self, now: Optional[datetime] = None, **changes) -> None:
        """Change the given style fields; None clears a field"""
        unknown = set(changes) - {"color", "icon", "description"}
        if unknown:
            raise ValidationError(f"Unknown category fields: {', '.join(sorted(unknown))}")
        if "color" in changes:
            self.color = validate_color(changes["color"])
        if "icon" in changes:
            self.icon = _optional_text(changes["icon"], "icon", 50)
        if "description" in changes:
            self.description = _optional_text(changes["description"], "description", DESCRIPTION_MAX_LENGTH)
        self.updated_at = now or utcnow()


@dataclass
class Tag:
    id: str
    user_id: str
    name: str
    color: Optional[str] = None
    created_at: datetime = field(default_factory=utcnow)

    def __post_init__(self):
        self.id = validate_identifier(self.id)
        self.user_id = validate_identifier(self.user_id, "user_id")
        self.name = validate_name(self.name)
        self.color = validate_color(self.color)

    @classmethod
    def create(cls, user_id: str, name: str, color=None, now: Optional[datetime] = None) -> "Tag":
        return cls(id=new_id(), user_id=user_id, name=name, color=color, created_at=now or utcnow())

    def rename(self, name: str) -> None:
        self.name = validate_name(name)

    def recolor(self, color: Optional[str]) -> None:
        self.color = validate_color(color)


@dataclass
class User:
    id: str
    auth_subject: str
    email: str
    name: Optional[str] = None
    avatar_url: Optional[str] = None
    created_at: datetime = field(default_factory=utcnow)
    updated_at: datetime = field(default_factory=utcnow)

    def __post_init__(self):
        self.id = validate_identifier(self.id)
        self.auth_subject = validate_text(self.auth_subject, "auth_subject", 255)
        self.email = validate_email(self.email)
        self.name = _optional_text(self.name, "name", 100)
        self.avatar_url = _optional_text(self.avatar_url, "avatar_url", 500)

    @classmethod
    def create(cls, auth_subject: str, email: str, name=None, avatar_url=None,
               now: Optional[datetime] = None) -> "User":
        now = now or utcnow()
        return cls(id=new_id(), auth_subject=auth_subject, email=email, name=name,
                   avatar_url=avatar_url, created_at=now, updated_at=now)

    def update_profile(self, name=None, avatar_url=None, now: Optional[datetime] = None) -> None:
        if name is not None:
            self.name = _optional_text(name, "name", 100)
        if avatar_url is not None:
            self.avatar_url = _optional_text(avatar_url, "avatar_url", 500)
        self.updated_at = now or utcnow()


@dataclass
class Achievement:
    id: str
    user_id: str
    type: AchievementType
    title: str
    description: Optional[str] = None
    icon: Optional[str] = None
    unlocked_at: datetime = field(default_factory=utcnow)

    def __post_init__(self):
        self.id = validate_identifier(self.id)
        self.user_id = validate_identifier(self.user_id, "user_id")
        self.type = parse_achievement_type(self.type)
        self.title = validate_title(self.title)


@dataclass
class Streak:
    id: str
    user_id: str
    current_streak: int = 0
    longest_streak: int = 0
    last_active_date: Optional[date] = None
    version: int = 1

    def __post_init__(self):
        self.id = validate_identifier(self.id)
        self.user_id = validate_identifier(self.user_id, "user_id")
        self._check(self.current_streak, self.longest_streak)

    @staticmethod
    def _check(current: int, longest: int) -> None:
        if current < 0 or longest < 0:
            raise ValidationError("streak counters must be non-negative")
        if longest < current:
            raise ValidationError("longest_streak must be at least current_streak")

    @classmethod
    def start(cls, user_id: str) -> "Streak":
        return cls(id=new_id(), user_id=user_id)

    def apply(self, update) -> None:
        """Take the counters computed by the gamification engine"""
        self._check(update.current_streak, update.longest_streak)
        if update.longest_streak < self.longest_streak:
            raise ValidationError("longest_streak can never decrease")
        self.current_streak = update.current_streak
        self.longest_streak = update.longest_streak
        self.last_active_date = update.last_active_date


_SETTINGS_TOGGLES = (
    "praise_on_complete",
    "show_points",
    "show_streak",
    "show_achievements",
    "praise_sound",
    "praise_haptics",
    "animation_enabled",
)


@dataclass
class Settings:
    id: str
    user_id: str
    theme: Theme = Theme.SYSTEM
    praise_on_complete: bool = True
    show_points: bool = True
    show_streak: bool = True
    show_achievements: bool = True
    praise_sound: bool = True
    praise_haptics: bool = True
    animation_enabled: bool = True
    updated_at: datetime = field(default_factory=utcnow)

    def __post_init__(self):
        self.id = validate_identifier(self.id)
        self.user_id = validate_identifier(self.user_id, "user_id")
        self.theme = parse_theme(self.theme)
        for name in _SETTINGS_TOGGLES:
            if not isinstance(getattr(self, name), bool):
                raise ValidationError(f"{name} must be a boolean")

    @classmethod
    def defaults(cls, user_id: str) -> "Settings":
        return cls(id=new_id(), user_id=user_id)

    def update(self, theme=None, now: Optional[datetime] = None, **toggles) -> None:
        unknown = set(toggles) - set(_SETTINGS_TOGGLES)
        if unknown:
            raise ValidationError(f"Unknown settings: {', '.join(sorted(unknown))}")
        for name, value in toggles.items():
            if value is None:
                continue
            if not isinstance(value, bool):
                raise ValidationError(f"{name} must be a boolean")
            setattr(self, name, value)
        if theme is not None:
            self.theme = parse_theme(theme)
        self.updated_at = now or utcnow()


@dataclass(frozen=True)
class PointEntry:
    """One line of the append-only points ledger"""

    id: str
    user_id: str
    amount: int
    reason: str
    task_id: Optional[str] = None
    created_at: datetime = field(default_factory=utcnow)

    def __post_init__(self):
        validate_identifier(self.id)
        validate_identifier(self.user_id, "user_id")
        if self.task_id is not None:
            validate_identifier(self.task_id, "task_id")
        if not isinstance(self.amount, int) or isinstance(self.amount, bool) or self.amount == 0:
            raise ValidationError("amount must be a non-zero integer")
        object.__setattr__(self, "reason", validate_text(self.reason, "reason", REASON_MAX_LENGTH))
