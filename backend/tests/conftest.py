from datetime import datetime, timedelta, timezone

import pytest
import pytest_asyncio

from kudos.database import Database
from kudos.services.users import UserService


class FakeClock:
    """Stands in for the wall clock so tests can move between days"""

    def __init__(self, start: datetime):
        self.now = start

    def __call__(self) -> datetime:
        return self.now

    def advance(self, days: int = 0, hours: int = 0) -> None:
        self.now = self.now + timedelta(days=days, hours=hours)


@pytest.fixture
def clock():
    return FakeClock(datetime(2024, 3, 1, 9, 0, tzinfo=timezone.utc))


@pytest_asyncio.fixture
async def database(tmp_path):
    """A fresh SQLite database file per test"""
    db = Database(f"sqlite+aiosqlite:///{tmp_path / 'kudos_test.db'}", echo=False)
    await db.create_all()
    yield db
    await db.dispose()


@pytest_asyncio.fixture
async def session(database):
    async with database.session() as session:
        yield session


@pytest_asyncio.fixture
async def user(session):
    return await UserService(session).provision("idp|alice", "alice@example.com", "Alice")


@pytest_asyncio.fixture
async def other_user(session):
    return await UserService(session).provision("idp|bob", "bob@example.com", "Bob")
