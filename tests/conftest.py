from __future__ import annotations

import asyncio
from collections.abc import AsyncGenerator
from datetime import datetime, timezone

import pytest
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

from wedding_planner.api import deps
from wedding_planner.core.clock import FixedClock
from wedding_planner.core.enums import Channel, Recurrence, ReminderStatus, ReminderType
from wedding_planner.core.exceptions import NotificationError
from wedding_planner.db.base import Base
from wedding_planner.main import app
from wedding_planner.models import *  # noqa: F401,F403
from wedding_planner.repositories.reminder import ReminderFields, ReminderRepository
from wedding_planner.services.notifier import Notifier


NOW = datetime(2024, 3, 1, 9, 0, tzinfo=timezone.utc)


class RecordingNotifier(Notifier):
    def __init__(self, fail: bool = False, delay: float = 0.0) -> None:
        self.fail = fail
        self.delay = delay
        self.sent: list[dict] = []

    async def send(self, destination: str, subject: str, body: str) -> None:
        if self.delay:
            await asyncio.sleep(self.delay)
        self.sent.append({"destination": destination, "subject": subject, "body": body})
        if self.fail:
            raise NotificationError("smtp down")


@pytest.fixture()
async def engine(tmp_path):
    engine = create_async_engine(f"sqlite+aiosqlite:///{tmp_path / 'test.db'}")
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest.fixture()
def session_factory(engine) -> async_sessionmaker[AsyncSession]:
    return async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)


@pytest.fixture()
async def db_session(session_factory) -> AsyncGenerator[AsyncSession, None]:
    async with session_factory() as session:
        yield session


@pytest.fixture()
def clock() -> FixedClock:
    return FixedClock(NOW)


@pytest.fixture()
def notifier() -> RecordingNotifier:
    return RecordingNotifier()


@pytest.fixture()
def make_reminder(db_session, clock):
    async def _make(**overrides):
        values = {
            "task_id": "task-1",
            "title": "Call the florist",
            "reminder_type": ReminderType.FOLLOW_UP,
            "remind_at": datetime(2024, 3, 1, 8, 0, tzinfo=timezone.utc),
            "recurrence": Recurrence.NONE,
            "notification_channels": [Channel.EMAIL],
            "status": ReminderStatus.PENDING,
        }
        values.update(overrides)
        reminder = await ReminderRepository(db_session).create(ReminderFields(**values), clock.now())
        await db_session.commit()
        return reminder

    return _make


@pytest.fixture()
async def app_client(session_factory, clock, notifier):
    async def override_db() -> AsyncGenerator[AsyncSession, None]:
        async with session_factory() as session:
            yield session

    app.dependency_overrides[deps.get_db_session] = override_db
    app.dependency_overrides[deps.get_clock_dep] = lambda: clock
    app.dependency_overrides[deps.get_notifier_dep] = lambda: notifier

    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as client:
        yield client

    app.dependency_overrides.clear()
