from sqlalchemy import (
    Column, String, Boolean, Integer, Text, DateTime, ForeignKey, Index, UniqueConstraint, Table, Enum
)
from sqlalchemy.orm import relationship

from kudos.domain.values import Priority
from .base import Base, TimestampedModel


# Join table for the Task <-> Tag many-to-many relation
task_tags = Table(
    "task_tags",
    Base.metadata,
    Column("task_id", String(36), ForeignKey("tasks.id", ondelete="CASCADE"), primary_key=True),
    Column("tag_id", String(36), ForeignKey("tags.id", ondelete="CASCADE"), primary_key=True),
)


class CategoryDB(TimestampedModel):
    __tablename__ = "categories"

    user_id = Column(String(36), ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    name = Column(String(50), nullable=False)
    color = Column(String(7), nullable=True)  # "#rrggbb"
    icon = Column(String(50), nullable=True)
    description = Column(Text, nullable=True)

    user = relationship("UserDB", back_populates="categories")
    tasks = relationship("TaskDB", back_populates="category", passive_deletes=True)

    __table_args__ = (
        UniqueConstraint("user_id", "name", name="uq_category_user_name"),
    )


class TagDB(TimestampedModel):
    __tablename__ = "tags"

    user_id = Column(String(36), ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    name = Column(String(50), nullable=False)
    color = Column(String(7), nullable=True)

    user = relationship("UserDB", back_populates="tags")
    tasks = relationship("TaskDB", secondary=task_tags, back_populates="tags", passive_deletes=True)

    __table_args__ = (
        UniqueConstraint("user_id", "name", name="uq_tag_user_name"),
    )


class TaskDB(TimestampedModel):
    __tablename__ = "tasks"

    user_id = Column(String(36), ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    title = Column(String(200), nullable=False)
    description = Column(Text, nullable=True)
    priority = Column(Enum(Priority, native_enum=False, length=10), nullable=False, default=Priority.MEDIUM)
    due_date = Column(DateTime(timezone=True), nullable=True)
    completed = Column(Boolean, default=False, nullable=False)
    completed_at = Column(DateTime(timezone=True), nullable=True)
    category_id = Column(String(36), ForeignKey("categories.id", ondelete="SET NULL"), nullable=True)

    # Relationships
    user = relationship("UserDB", back_populates="tasks")
    category = relationship("CategoryDB", back_populates="tasks")
    tags = relationship("TagDB", secondary=task_tags, back_populates="tasks", lazy="selectin",
                        passive_deletes=True)
    subtasks = relationship("SubtaskDB", back_populates="task", passive_deletes=True)
    notes = relationship("TaskNoteDB", back_populates="task", passive_deletes=True)

    # Indexes
    __table_args__ = (
        Index("idx_tasks_user_completed", "user_id", "completed"),
        Index("idx_tasks_user_category", "user_id", "category_id"),
    )


class SubtaskDB(TimestampedModel):
    __tablename__ = "subtasks"

    task_id = Column(String(36), ForeignKey("tasks.id", ondelete="CASCADE"), nullable=False)
    title = Column(String(200), nullable=False)
    completed = Column(Boolean, default=False, nullable=False)
    completed_at = Column(DateTime(timezone=True), nullable=True)
    position = Column(Integer, nullable=False, default=0)

    task = relationship("TaskDB", back_populates="subtasks")

    __table_args__ = (
        Index("idx_subtasks_task_position", "task_id", "position"),
    )


class TaskNoteDB(TimestampedModel):
    __tablename__ = "task_notes"

    task_id = Column(String(36), ForeignKey("tasks.id", ondelete="CASCADE"), nullable=False)
    content = Column(Text, nullable=False)

    task = relationship("TaskDB", back_populates="notes")

    __table_args__ = (
        Index("idx_task_notes_task_created", "task_id", "created_at"),
    )
