from __future__ import annotations

import uuid
from datetime import datetime

from sqlalchemy import Index, String, Text, Uuid
from sqlalchemy.orm import Mapped, mapped_column

from wedding_planner.core.enums import Recurrence, ReminderStatus, ReminderType
from wedding_planner.db.base import Base
from wedding_planner.db.types import UTCDateTime, db_enum
from wedding_planner.models.mixins import TimestampMixin


class Reminder(Base, TimestampMixin):
    __tablename__ = "reminders"
    __table_args__ = (Index("ix_reminders_status_remind_at", "status", "remind_at"),)

    id: Mapped[uuid.UUID] = mapped_column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    task_id: Mapped[str | None] = mapped_column(String(64), index=True, nullable=True)
    vendor_id: Mapped[str | None] = mapped_column(String(64), index=True, nullable=True)

    title: Mapped[str] = mapped_column(String(255), nullable=False)
    message: Mapped[str | None] = mapped_column(Text, nullable=True)
    reminder_type: Mapped[ReminderType] = mapped_column(db_enum(ReminderType, "reminder_type"), nullable=False)
    remind_at: Mapped[datetime] = mapped_column(UTCDateTime(), nullable=False)
    recurrence: Mapped[Recurrence] = mapped_column(
        db_enum(Recurrence, "reminder_recurrence"),
        default=Recurrence.NONE,
        nullable=False,
    )
    # JSON-encoded list of channel names, decoded by core.channels.decode_channels.
    notification_channels: Mapped[str] = mapped_column(Text, nullable=False, default="[]")
    status: Mapped[ReminderStatus] = mapped_column(
        db_enum(ReminderStatus, "reminder_status"),
        default=ReminderStatus.PENDING,
        nullable=False,
    )

    def __repr__(self) -> str:
        return f"<Reminder {self.title[:30]!r} id={self.id} status={self.status}>"
