from __future__ import annotations

from typing import AsyncGenerator

from fastapi import Depends
from sqlalchemy.ext.asyncio import AsyncSession

from wedding_planner.core.clock import Clock, get_clock
from wedding_planner.db.session import get_session
from wedding_planner.services.notifier import Notifier, get_notifier
from wedding_planner.services.recurrence import ReminderRecurrenceEngine
from wedding_planner.services.reminders import ReminderService


async def get_db_session() -> AsyncGenerator[AsyncSession, None]:
    async for session in get_session():
        yield session


def get_clock_dep() -> Clock:
    return get_clock()


def get_notifier_dep() -> Notifier:
    return get_notifier()


def get_reminder_service(
    session: AsyncSession = Depends(get_db_session),
    clock: Clock = Depends(get_clock_dep),
) -> ReminderService:
    return ReminderService(session, clock=clock)


def get_recurrence_engine(
    session: AsyncSession = Depends(get_db_session),
    notifier: Notifier = Depends(get_notifier_dep),
    clock: Clock = Depends(get_clock_dep),
) -> ReminderRecurrenceEngine:
    return ReminderRecurrenceEngine(session, notifier, clock=clock)
