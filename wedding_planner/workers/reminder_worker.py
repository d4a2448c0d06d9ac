from __future__ import annotations

import asyncio
import logging

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from wedding_planner.core.clock import Clock, get_clock
from wedding_planner.core.config import get_settings
from wedding_planner.core.logging import configure_logging
from wedding_planner.db.session import SessionLocal, engine, init_models
from wedding_planner.services.notifier import Notifier, get_notifier
from wedding_planner.services.recurrence import ProcessResult, ReminderRecurrenceEngine

logger = logging.getLogger(__name__)


async def process_due_reminders(
    notifier: Notifier,
    session_factory: async_sessionmaker[AsyncSession] = SessionLocal,
    clock: Clock | None = None,
) -> list[ProcessResult]:
    settings = get_settings()
    async with session_factory() as session:
        recurrence_engine = ReminderRecurrenceEngine(session, notifier, clock=clock or get_clock())
        results = await recurrence_engine.process_due(
            notify_target=settings.worker_notify_email or None,
            limit=settings.worker_batch_size,
        )

    if results:
        logger.info("Processed %d due reminders", len(results))
    return results


async def worker_loop() -> None:
    configure_logging()
    settings = get_settings()
    if settings.db_auto_create:
        await init_models()

    notifier = get_notifier()
    logger.info("Reminder worker started")
    try:
        while True:
            try:
                await process_due_reminders(notifier)
            except Exception:
                logger.exception("Worker iteration failed")
            await asyncio.sleep(settings.worker_poll_interval_sec)
    finally:
        await engine.dispose()


if __name__ == "__main__":
    asyncio.run(worker_loop())
