from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any
from uuid import UUID, uuid4

from sqlalchemy import Select, delete, func, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from wedding_planner.core.channels import encode_channels
from wedding_planner.core.enums import Channel, Recurrence, ReminderStatus, ReminderType
from wedding_planner.core.exceptions import NotFoundError
from wedding_planner.models import Reminder


@dataclass
class ReminderFields:
    title: str
    reminder_type: ReminderType
    remind_at: datetime
    notification_channels: list[Channel | str] = field(default_factory=list)
    task_id: str | None = None
    vendor_id: str | None = None
    message: str | None = None
    recurrence: Recurrence | None = None
    status: ReminderStatus | None = None


@dataclass
class ReminderFilters:
    status: ReminderStatus | None = None
    reminder_type: ReminderType | None = None
    recurrence: Recurrence | None = None
    task_id: str | None = None
    vendor_id: str | None = None
    from_dt: datetime | None = None
    to_dt: datetime | None = None


class ReminderRepository:
    def __init__(self, session: AsyncSession) -> None:
        self.session = session

    def _apply_filters(self, stmt: Select, filters: ReminderFilters | None) -> Select:
        if filters is None:
            return stmt
        if filters.status is not None:
            stmt = stmt.where(Reminder.status == filters.status)
        if filters.reminder_type is not None:
            stmt = stmt.where(Reminder.reminder_type == filters.reminder_type)
        if filters.recurrence is not None:
            stmt = stmt.where(Reminder.recurrence == filters.recurrence)
        if filters.task_id is not None:
            stmt = stmt.where(Reminder.task_id == filters.task_id)
        if filters.vendor_id is not None:
            stmt = stmt.where(Reminder.vendor_id == filters.vendor_id)
        if filters.from_dt is not None:
            stmt = stmt.where(Reminder.remind_at >= filters.from_dt)
        if filters.to_dt is not None:
            stmt = stmt.where(Reminder.remind_at <= filters.to_dt)
        return stmt

    async def list_filtered(
        self,
        filters: ReminderFilters | None = None,
        limit: int | None = None,
        offset: int | None = None,
    ) -> Sequence[Reminder]:
        stmt = self._apply_filters(select(Reminder), filters)
        stmt = stmt.order_by(Reminder.remind_at.asc(), Reminder.created_at.asc(), Reminder.id.asc())
        if offset:
            stmt = stmt.offset(offset)
        if limit:
            stmt = stmt.limit(limit)
        result = await self.session.scalars(stmt)
        return result.all()

    async def count_filtered(self, filters: ReminderFilters | None = None) -> int:
        stmt = self._apply_filters(select(func.count(Reminder.id)), filters)
        value = await self.session.scalar(stmt)
        return int(value or 0)

    async def list_due(self, now: datetime, limit: int | None = None) -> Sequence[Reminder]:
        stmt = (
            select(Reminder)
            .where(
                Reminder.status == ReminderStatus.PENDING,
                Reminder.remind_at <= now,
            )
            .order_by(Reminder.remind_at.asc(), Reminder.created_at.asc(), Reminder.id.asc())
        )
        if limit:
            stmt = stmt.limit(limit)
        result = await self.session.scalars(stmt)
        return result.all()

    async def find(self, reminder_id: UUID) -> Reminder | None:
        return await self.session.get(Reminder, reminder_id)

    async def get(self, reminder_id: UUID) -> Reminder:
        reminder = await self.find(reminder_id)
        if reminder is None:
            raise NotFoundError("Reminder not found", details={"id": str(reminder_id)})
        return reminder

    async def create(self, fields: ReminderFields, now: datetime) -> Reminder:
        reminder = Reminder(
            id=uuid4(),
            task_id=fields.task_id,
            vendor_id=fields.vendor_id,
            title=fields.title,
            message=fields.message,
            reminder_type=fields.reminder_type,
            remind_at=fields.remind_at,
            recurrence=fields.recurrence or Recurrence.NONE,
            notification_channels=encode_channels(fields.notification_channels),
            status=fields.status or ReminderStatus.PENDING,
            created_at=now,
            updated_at=now,
        )
        self.session.add(reminder)
        await self.session.flush()
        return reminder

    async def update(self, reminder: Reminder, changes: dict[str, Any], now: datetime) -> Reminder:
        for name, value in changes.items():
            if name == "notification_channels":
                value = encode_channels(value)
            setattr(reminder, name, value)
        reminder.updated_at = now
        await self.session.flush()
        return reminder

    async def mark_sent(self, reminder_id: UUID, now: datetime) -> bool:
        """Transition pending -> sent in a single conditional UPDATE.

        Returns False when the reminder exists but is no longer pending, which is
        how a concurrent processor of the same reminder loses the race.
        """
        stmt = (
            update(Reminder)
            .where(Reminder.id == reminder_id, Reminder.status == ReminderStatus.PENDING)
            .values(status=ReminderStatus.SENT, updated_at=now)
        )
        result = await self.session.execute(stmt)
        if result.rowcount == 1:
            return True

        exists = await self.session.scalar(select(Reminder.id).where(Reminder.id == reminder_id))
        if exists is None:
            raise NotFoundError("Reminder not found", details={"id": str(reminder_id)})
        return False

    async def delete(self, reminder_id: UUID) -> None:
        result = await self.session.execute(delete(Reminder).where(Reminder.id == reminder_id))
        if result.rowcount == 0:
            raise NotFoundError("Reminder not found", details={"id": str(reminder_id)})
