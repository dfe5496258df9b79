"""Value objects and field validators used by the entities."""
import re
import uuid
from datetime import datetime, timezone
from enum import Enum
from typing import Optional, Union

from kudos.core.errors import ValidationError

TITLE_MAX_LENGTH = 200
NAME_MAX_LENGTH = 50
NOTE_MAX_LENGTH = 5000

_COLOR_RE = re.compile(r"^#[0-9a-fA-F]{6}$")
_EMAIL_RE = re.compile(r"^[^@\s]+@[^@\s]+\.[^@\s]+$")


class Priority(str, Enum):
    LOW = "LOW"
    MEDIUM = "MEDIUM"
    HIGH = "HIGH"
    URGENT = "URGENT"


_POINTS = {
    Priority.LOW: 10,
    Priority.MEDIUM: 20,
    Priority.HIGH: 30,
    Priority.URGENT: 50,
}


class PriorityValue:
    """A validated priority and the points a completion at that priority is worth."""

    __slots__ = ("value",)

    def __init__(self, value: Union[Priority, str]):
        self.value = parse_priority(value)

    def get_points(self) -> int:
        return _POINTS[self.value]

    def __eq__(self, other):
        return isinstance(other, PriorityValue) and other.value is self.value

    def __hash__(self):
        return hash(self.value)

    def __repr__(self):
        return f"PriorityValue({self.value.value})"


class Theme(str, Enum):
    LIGHT = "LIGHT"
    DARK = "DARK"
    SYSTEM = "SYSTEM"


def parse_priority(value: Union[Priority, str]) -> Priority:
    if isinstance(value, Priority):
        return value
    if isinstance(value, str):
        try:
            return Priority(value.strip().upper())
        except ValueError:
            pass
    raise ValidationError(f"Invalid priority: {value!r}")


def parse_theme(value: Union[Theme, str]) -> Theme:
    if isinstance(value, Theme):
        return value
    if isinstance(value, str):
        try:
            return Theme(value.strip().upper())
        except ValueError:
            pass
    raise ValidationError(f"Invalid theme: {value!r}")


def new_id() -> str:
    return str(uuid.uuid4())


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def validate_identifier(value: str, field: str = "id") -> str:
    """Identifiers are canonical UUID strings"""
    if not isinstance(value, str):
        raise ValidationError(f"Malformed {field}: {value!r}")
    try:
        parsed = uuid.UUID(value)
    except ValueError:
        raise ValidationError(f"Malformed {field}: {value!r}")
    return str(parsed)


def validate_text(value: str, field: str, max_length: int) -> str:
    if not isinstance(value, str) or not value.strip():
        raise ValidationError(f"{field} must not be empty")
    # the limit applies to what the caller sent, before trimming
    if len(value) > max_length:
        raise ValidationError(f"{field} must be at most {max_length} characters")
    return value.strip()


def validate_title(value: str) -> str:
    return validate_text(value, "title", TITLE_MAX_LENGTH)


def validate_name(value: str) -> str:
    return validate_text(value, "name", NAME_MAX_LENGTH)


def validate_color(value: Optional[str]) -> Optional[str]:
    if value is None:
        return None
    if not isinstance(value, str) or not _COLOR_RE.match(value):
        raise ValidationError(f"Invalid color {value!r}, expected #RRGGBB")
    return value.lower()


def validate_email(value: str) -> str:
    if not isinstance(value, str) or not _EMAIL_RE.match(value.strip()):
        raise ValidationError(f"Invalid email: {value!r}")
    return value.strip().lower()


def ensure_utc(value: Optional[datetime]) -> Optional[datetime]:
    """SQLite hands back naive datetimes; everything in the core is aware UTC"""
    if value is None:
        return None
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


class AchievementType(str, Enum):
    FIRST_TASK = "first_task"
    COMPLETE_10 = "complete_10"
    COMPLETE_50 = "complete_50"
    COMPLETE_100 = "complete_100"
    STREAK_3 = "streak_3"
    STREAK_7 = "streak_7"
    STREAK_30 = "streak_30"


def parse_achievement_type(value: Union[AchievementType, str]) -> AchievementType:
    if isinstance(value, AchievementType):
        return value
    try:
        return AchievementType(value)
    except ValueError:
        raise ValidationError(f"Unknown achievement type: {value!r}")
