from sqlalchemy import Column, DateTime, func, String
from sqlalchemy.orm import declarative_base
from datetime import datetime, timezone
import uuid

Base = declarative_base()


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class TimestampedModel(Base):
    __abstract__ = True

    # Use UUID for primary keys - compatible with both SQLite and PostgreSQL
    id = Column(
        String(36),  # Use String for SQLite compatibility
        primary_key=True,
        default=lambda: str(uuid.uuid4())
    )

    created_at = Column(
        DateTime(timezone=True),
        nullable=False,
        default=_utcnow,
        server_default=func.now()
    )

    updated_at = Column(
        DateTime(timezone=True),
        nullable=False,
        default=_utcnow,
        onupdate=_utcnow,
        server_default=func.now()
    )
