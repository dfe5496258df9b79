from sqlalchemy import Column, String, Integer, Date, DateTime, ForeignKey, Index, UniqueConstraint, Enum, func
from sqlalchemy.orm import relationship
from datetime import datetime, timezone
import uuid

from kudos.domain.values import AchievementType
from .base import Base, TimestampedModel


class AchievementDB(TimestampedModel):
    __tablename__ = "achievements"

    user_id = Column(String(36), ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    type = Column(
        Enum(AchievementType, native_enum=False, length=30, values_callable=lambda e: [m.value for m in e]),
        nullable=False
    )
    title = Column(String(200), nullable=False)
    description = Column(String(500), nullable=True)
    icon = Column(String(50), nullable=True)
    unlocked_at = Column(DateTime(timezone=True), nullable=False)

    user = relationship("UserDB", back_populates="achievements")

    # Each achievement type unlocks at most once per user
    __table_args__ = (
        UniqueConstraint("user_id", "type", name="uq_achievement_user_type"),
    )


class StreakDB(TimestampedModel):
    __tablename__ = "streaks"

    user_id = Column(String(36), ForeignKey("users.id", ondelete="CASCADE"), nullable=False, unique=True)
    current_streak = Column(Integer, nullable=False, default=0)
    longest_streak = Column(Integer, nullable=False, default=0)
    last_active_date = Column(Date, nullable=True)
    version = Column(Integer, nullable=False, default=1)

    user = relationship("UserDB", back_populates="streak")

    # Optimistic concurrency: UPDATE ... WHERE version = :loaded_version
    __mapper_args__ = {"version_id_col": version}


class PointDB(Base):
    """Append-only ledger; rows are inserted and never updated"""
    __tablename__ = "points"

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    user_id = Column(String(36), ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    amount = Column(Integer, nullable=False)
    reason = Column(String(100), nullable=False)
    task_id = Column(String(36), ForeignKey("tasks.id", ondelete="SET NULL"), nullable=True)
    created_at = Column(
        DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(timezone.utc),
        server_default=func.now()
    )

    user = relationship("UserDB", back_populates="points")

    __table_args__ = (
        Index("idx_points_user_created", "user_id", "created_at"),
    )
