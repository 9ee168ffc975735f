from datetime import datetime, timedelta, timezone

import pytest

from math_drill.db import init_db
from math_drill.storage import SqliteRepository

START = datetime(2024, 6, 15, 10, 0, tzinfo=timezone.utc)


class FakeClock:
    """Callable clock that only moves when told to."""

    def __init__(self, now: datetime = START):
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> None:
        self.now += timedelta(**kwargs)


@pytest.fixture
def tmp_db(tmp_path):
    """Provide a temporary SQLite database path for tests."""
    db_path = str(tmp_path / "test_drill.db")
    return db_path


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def repo(tmp_db):
    init_db(tmp_db)
    return SqliteRepository(tmp_db)


@pytest.fixture
def user_id(repo):
    return repo.create_user("TestUser", START).id
