from __future__ import annotations

import asyncio
import calendar
import logging
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from uuid import UUID

from sqlalchemy.ext.asyncio import AsyncSession

from wedding_planner.core.channels import decode_channels
from wedding_planner.core.clock import Clock, ensure_utc, get_clock
from wedding_planner.core.config import get_settings
from wedding_planner.core.enums import Channel, Recurrence, ReminderStatus
from wedding_planner.core.exceptions import (
    ChannelDecodeError,
    RecurrenceError,
    ReminderAlreadyProcessedError,
    ReminderNotDueError,
)
from wedding_planner.models import Reminder
from wedding_planner.repositories.reminder import ReminderFields, ReminderRepository
from wedding_planner.services.notifier import Notifier

logger = logging.getLogger(__name__)


def add_months(value: datetime, months: int) -> datetime:
    # Day-of-month is clamped to the last day of the target month.
    month_index = value.month - 1 + months
    year = value.year + month_index // 12
    month = month_index % 12 + 1
    day = min(value.day, calendar.monthrange(year, month)[1])
    return value.replace(year=year, month=month, day=day)


def next_remind_at(value: datetime, recurrence: Recurrence | str) -> datetime:
    try:
        recurrence = Recurrence(recurrence)
    except ValueError as exc:
        raise RecurrenceError(f"Unknown recurrence: {recurrence}") from exc

    if recurrence == Recurrence.DAILY:
        return value + timedelta(days=1)
    if recurrence == Recurrence.WEEKLY:
        return value + timedelta(days=7)
    if recurrence == Recurrence.MONTHLY:
        return add_months(value, 1)
    raise RecurrenceError(f"Recurrence {recurrence.value!r} has no next occurrence")


def ensure_processable(reminder: Reminder, now: datetime) -> None:
    if reminder.status != ReminderStatus.PENDING:
        raise ReminderAlreadyProcessedError(details={"id": str(reminder.id), "status": str(reminder.status.value)})
    if ensure_utc(reminder.remind_at) > now:
        raise ReminderNotDueError(details={"id": str(reminder.id), "remind_at": reminder.remind_at.isoformat()})


@dataclass
class ProcessResult:
    reminder: Reminder
    successor: Reminder | None = None
    notified_channels: list[str] = field(default_factory=list)
    failed_channels: list[str] = field(default_factory=list)


class ReminderRecurrenceEngine:
    """Finds due reminders, marks them sent, notifies, and continues recurrence chains.

    The sent transition and the successor insert commit in one transaction, so a
    failed successor leaves the original reminder pending and retryable.
    Notifications go out after the commit and are best-effort.
    """

    def __init__(
        self,
        session: AsyncSession,
        notifier: Notifier,
        clock: Clock | None = None,
        notify_timeout_sec: float | None = None,
    ) -> None:
        self.session = session
        self.reminders = ReminderRepository(session)
        self.notifier = notifier
        self.clock = clock or get_clock()
        self.notify_timeout_sec = notify_timeout_sec or get_settings().notify_timeout_sec

    async def get_due_reminders(self, limit: int | None = None) -> list[Reminder]:
        return list(await self.reminders.list_due(self.clock.now(), limit=limit))

    async def process_reminder_by_id(self, reminder_id: UUID, notify_target: str | None = None) -> ProcessResult:
        reminder = await self.reminders.get(reminder_id)
        return await self.process_reminder(reminder, notify_target)

    async def process_reminder(self, reminder: Reminder, notify_target: str | None = None) -> ProcessResult:
        now = self.clock.now()
        ensure_processable(reminder, now)

        channels = decode_channels(reminder.notification_channels)
        following_at = None
        if reminder.recurrence != Recurrence.NONE:
            following_at = next_remind_at(reminder.remind_at, reminder.recurrence)

        reminder_id = reminder.id
        title = reminder.title
        body = reminder.message or reminder.title

        try:
            if not await self.reminders.mark_sent(reminder_id, now):
                raise ReminderAlreadyProcessedError(details={"id": str(reminder_id)})

            successor = None
            if following_at is not None:
                successor = await self.reminders.create(
                    ReminderFields(
                        task_id=reminder.task_id,
                        vendor_id=reminder.vendor_id,
                        title=reminder.title,
                        message=reminder.message,
                        reminder_type=reminder.reminder_type,
                        remind_at=following_at,
                        recurrence=reminder.recurrence,
                        notification_channels=channels,
                        status=ReminderStatus.PENDING,
                    ),
                    now,
                )
            await self.session.commit()
        except Exception:
            await self.session.rollback()
            raise

        processed = await self.reminders.get(reminder_id)
        if successor is not None:
            logger.info("Reminder %s processed, next occurrence %s at %s", reminder_id, successor.id, following_at.isoformat())
        else:
            logger.info("Reminder %s processed", reminder_id)

        notified, failed = await self._dispatch(reminder_id, title, body, channels, notify_target)
        return ProcessResult(reminder=processed, successor=successor, notified_channels=notified, failed_channels=failed)

    async def process_due(self, notify_target: str | None = None, limit: int | None = None) -> list[ProcessResult]:
        due_ids = [item.id for item in await self.get_due_reminders(limit=limit)]
        results: list[ProcessResult] = []
        for reminder_id in due_ids:
            reminder = await self.reminders.find(reminder_id)
            if reminder is None:
                continue
            try:
                results.append(await self.process_reminder(reminder, notify_target))
            except (ReminderAlreadyProcessedError, ReminderNotDueError):
                logger.info("Skipping reminder %s: no longer due", reminder_id)
            except ChannelDecodeError:
                logger.error("Reminder %s has malformed notification channels, left pending", reminder_id)
            except RecurrenceError:
                logger.error("Reminder %s has an unknown recurrence, left pending", reminder_id)
        return results

    async def _dispatch(
        self,
        reminder_id: UUID,
        title: str,
        body: str,
        channels: list[str],
        notify_target: str | None,
    ) -> tuple[list[str], list[str]]:
        notified: list[str] = []
        failed: list[str] = []
        if not notify_target:
            return notified, failed

        for channel in channels:
            if channel != Channel.EMAIL.value:
                continue
            try:
                await asyncio.wait_for(
                    self.notifier.send(notify_target, title, body),
                    timeout=self.notify_timeout_sec,
                )
                notified.append(channel)
            except asyncio.TimeoutError:
                logger.warning("Notification via %s timed out for reminder %s", channel, reminder_id)
                failed.append(channel)
            except Exception as exc:
                logger.warning("Failed to send %s for reminder %s: %s", channel, reminder_id, exc)
                failed.append(channel)
        return notified, failed

