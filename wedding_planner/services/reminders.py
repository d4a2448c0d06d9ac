from __future__ import annotations

from uuid import UUID

from sqlalchemy.ext.asyncio import AsyncSession

from wedding_planner.core.clock import Clock, get_clock
from wedding_planner.core.exceptions import ValidationAppError
from wedding_planner.models import Reminder
from wedding_planner.repositories.reminder import ReminderFields, ReminderFilters, ReminderRepository
from wedding_planner.schemas.reminder import ReminderCreate, ReminderUpdate


def has_reference(task_id: str | None, vendor_id: str | None) -> bool:
    return bool(task_id) or bool(vendor_id)


class ReminderService:
    def __init__(self, session: AsyncSession, clock: Clock | None = None) -> None:
        self.session = session
        self.clock = clock or get_clock()
        self.reminders = ReminderRepository(session)

    async def list_reminders(
        self,
        filters: ReminderFilters | None = None,
        limit: int | None = None,
        offset: int | None = None,
    ):
        items = await self.reminders.list_filtered(filters, limit=limit, offset=offset)
        total = await self.reminders.count_filtered(filters)
        return items, total

    async def get_reminder(self, reminder_id: UUID) -> Reminder:
        return await self.reminders.get(reminder_id)

    async def create_reminder(self, payload: ReminderCreate) -> Reminder:
        if not has_reference(payload.task_id, payload.vendor_id):
            raise ValidationAppError("Either task_id or vendor_id must be provided")

        reminder = await self.reminders.create(
            ReminderFields(
                task_id=payload.task_id,
                vendor_id=payload.vendor_id,
                title=payload.title.strip(),
                message=payload.message,
                reminder_type=payload.reminder_type,
                remind_at=payload.remind_at,
                recurrence=payload.recurrence,
                notification_channels=list(payload.notification_channels),
                status=payload.status,
            ),
            self.clock.now(),
        )
        await self.session.commit()
        return reminder

    async def update_reminder(self, reminder_id: UUID, payload: ReminderUpdate) -> Reminder:
        reminder = await self.reminders.get(reminder_id)
        changes = payload.changes()
        if "title" in changes:
            changes["title"] = changes["title"].strip()

        task_id = changes.get("task_id", reminder.task_id)
        vendor_id = changes.get("vendor_id", reminder.vendor_id)
        if not has_reference(task_id, vendor_id):
            raise ValidationAppError("Either task_id or vendor_id must be provided")

        await self.reminders.update(reminder, changes, self.clock.now())
        await self.session.commit()
        return reminder

    async def delete_reminder(self, reminder_id: UUID) -> None:
        await self.reminders.delete(reminder_id)
        await self.session.commit()
