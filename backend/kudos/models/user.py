from sqlalchemy import Column, String, Boolean, ForeignKey, Enum
from sqlalchemy.orm import relationship

from kudos.domain.values import Theme
from .base import TimestampedModel


class UserDB(TimestampedModel):
    __tablename__ = "users"

    auth_subject = Column(String(255), unique=True, nullable=False, index=True)  # identity provider "sub"
    email = Column(String(255), unique=True, nullable=False, index=True)
    name = Column(String(100), nullable=True)
    avatar_url = Column(String(500), nullable=True)

    # Relationships; rows are removed by the database's ON DELETE CASCADE rules
    tasks = relationship("TaskDB", back_populates="user", passive_deletes=True)
    categories = relationship("CategoryDB", back_populates="user", passive_deletes=True)
    tags = relationship("TagDB", back_populates="user", passive_deletes=True)
    achievements = relationship("AchievementDB", back_populates="user", passive_deletes=True)
    points = relationship("PointDB", back_populates="user", passive_deletes=True)
    streak = relationship("StreakDB", back_populates="user", uselist=False, passive_deletes=True)
    settings = relationship("UserSettingsDB", back_populates="user", uselist=False, passive_deletes=True)


class UserSettingsDB(TimestampedModel):
    __tablename__ = "user_settings"

    user_id = Column(String(36), ForeignKey("users.id", ondelete="CASCADE"), nullable=False, unique=True)
    theme = Column(Enum(Theme, native_enum=False, length=10), nullable=False, default=Theme.SYSTEM)

    # Praise toggles
    praise_on_complete = Column(Boolean, default=True, nullable=False)
    show_points = Column(Boolean, default=True, nullable=False)
    show_streak = Column(Boolean, default=True, nullable=False)
    show_achievements = Column(Boolean, default=True, nullable=False)
    praise_sound = Column(Boolean, default=True, nullable=False)
    praise_haptics = Column(Boolean, default=True, nullable=False)

    animation_enabled = Column(Boolean, default=True, nullable=False)

    user = relationship("UserDB", back_populates="settings")
