"""
Pytest fixtures for testing
"""
import asyncio
import random
from datetime import datetime, timedelta, timezone

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker

from saving_challenge.application.notification_policy import NotificationPolicyEngine
from saving_challenge.config import Settings
from saving_challenge.infrastructure.db import models  # noqa: F401 - register tables
from saving_challenge.infrastructure.db.session import Base
from saving_challenge.infrastructure.db.storage import SqlAlchemyStorage


class FakeClock:
    """Callable clock that tests move forward by hand."""

    def __init__(self, now: datetime):
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> None:
        self.now += timedelta(**kwargs)

    def set(self, **kwargs) -> None:
        self.now = self.now.replace(**kwargs)


class RecordingSink:
    def __init__(self):
        self.delivered = []

    def deliver(self, notification) -> None:
        self.delivered.append(notification)


@pytest.fixture
def settings():
    # _env_file=None prevents reading from .env
    return Settings(DATABASE_URL="sqlite:///:memory:", TIMEZONE="UTC", _env_file=None)


@pytest.fixture
def clock():
    """Monday 2026-03-02 12:00 UTC."""
    return FakeClock(datetime(2026, 3, 2, 12, 0, tzinfo=timezone.utc))


@pytest.fixture
def db_engine():
    """Create in-memory SQLite engine for tests."""
    engine = create_engine("sqlite:///:memory:")
    Base.metadata.create_all(engine)
    yield engine
    engine.dispose()


@pytest.fixture
def session_factory(db_engine):
    return sessionmaker(bind=db_engine, expire_on_commit=False)


@pytest.fixture
def storage(session_factory):
    return SqlAlchemyStorage(session_factory)


@pytest.fixture
def sink():
    return RecordingSink()


@pytest.fixture
def policy(storage, sink, settings, clock):
    return NotificationPolicyEngine(storage, sink, settings=settings, clock=clock, rng=random.Random(7))


@pytest.fixture
def user(storage):
    return asyncio.run(storage.create_user("tester"))
