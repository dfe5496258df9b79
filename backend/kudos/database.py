import logging
import os
from contextlib import asynccontextmanager
from typing import AsyncGenerator, AsyncIterator, Optional

from fastapi import HTTPException, Request
from sqlalchemy import event
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import create_async_engine, AsyncSession, async_sessionmaker
from sqlalchemy.orm.exc import StaleDataError
from sqlalchemy.pool import StaticPool

from kudos.core.config import settings
from kudos.core.errors import ConcurrencyConflictError, ConstraintViolationError, PersistenceError

logger = logging.getLogger(__name__)


def _enable_sqlite_foreign_keys(dbapi_connection, connection_record):
    # SQLite ignores ON DELETE rules unless this is set on every connection
    cursor = dbapi_connection.cursor()
    cursor.execute("PRAGMA foreign_keys=ON")
    cursor.close()


class Database:
    """Engine and session factory for one database.

    Created once at application start and handed to whoever needs sessions;
    there is no module-level engine.
    """

    def __init__(self, database_url: Optional[str] = None, echo: Optional[bool] = None):
        if database_url is None:
            from kudos.core.database_url import get_database_url
            database_url = get_database_url()
        self.url = database_url
        echo = settings.DEBUG if echo is None else echo

        if database_url.startswith("sqlite"):
            # SQLite configuration for local development and tests
            engine_kwargs = {"connect_args": {"check_same_thread": False}}
            if ":memory:" in database_url:
                engine_kwargs["poolclass"] = StaticPool
            self.engine = create_async_engine(database_url, echo=echo, **engine_kwargs)
            event.listen(self.engine.sync_engine, "connect", _enable_sqlite_foreign_keys)
        else:
            # PostgreSQL configuration for production
            connect_args = {}

            # Add SSL for RDS connections in Lambda
            if os.environ.get("AWS_LAMBDA_FUNCTION_NAME"):
                from kudos.core.database_url import create_ssl_context
                connect_args["ssl"] = create_ssl_context()

            self.engine = create_async_engine(
                database_url,
                pool_pre_ping=True,
                pool_recycle=300,  # 5 minutes
                echo=echo,
                connect_args=connect_args
            )

        self.session_maker = async_sessionmaker(
            self.engine, class_=AsyncSession, expire_on_commit=False
        )

    async def create_all(self) -> None:
        """Create all tables"""
        from kudos.models.base import Base
        from kudos.models import user, task, gamification  # noqa: F401 - register tables

        async with self.engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)

    async def dispose(self) -> None:
        await self.engine.dispose()

    def session(self) -> AsyncSession:
        return self.session_maker()


async def get_db(request: Request) -> AsyncGenerator[AsyncSession, None]:
    """Dependency to get database session"""
    database: Optional[Database] = getattr(request.app.state, "database", None)
    if database is None:
        raise HTTPException(status_code=503, detail="Database connection unavailable")

    async with database.session() as session:
        yield session


@asynccontextmanager
async def transaction(db: AsyncSession) -> AsyncIterator[AsyncSession]:
    """Commit everything written inside the block, or nothing.

    Storage errors are translated into the core's error taxonomy on the way out.
    """
    try:
        yield db
        await db.commit()
        # ON DELETE rules and other sessions change rows behind the identity map
        db.expire_all()
    except IntegrityError as e:
        await db.rollback()
        logger.warning(f"Transaction rolled back on constraint violation: {e.orig}")
        raise ConstraintViolationError(f"Constraint violated: {e.orig}") from e
    except StaleDataError as e:
        await db.rollback()
        logger.warning(f"Transaction rolled back on stale row: {e}")
        raise ConcurrencyConflictError("Row was modified by a concurrent transaction") from e
    except SQLAlchemyError as e:
        await db.rollback()
        logger.error(f"Transaction rolled back on storage error: {e}")
        raise PersistenceError("Storage unavailable") from e
    except BaseException:
        await db.rollback()
        raise
