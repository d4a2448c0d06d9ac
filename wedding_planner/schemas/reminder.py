from __future__ import annotations

import logging
from datetime import datetime
from uuid import UUID

from pydantic import BaseModel, Field, field_validator, model_validator

from wedding_planner.core.channels import decode_channels
from wedding_planner.core.clock import ensure_utc
from wedding_planner.core.enums import Channel, Recurrence, ReminderStatus, ReminderType
from wedding_planner.core.exceptions import ChannelDecodeError
from wedding_planner.schemas.common import BaseReadModel

logger = logging.getLogger(__name__)

NON_NULLABLE_UPDATE_FIELDS = ("title", "reminder_type", "remind_at", "recurrence", "notification_channels", "status")


def _blank_to_none(value):
    if isinstance(value, str) and not value.strip():
        return None
    return value


def _unique_channels(channels: list[Channel]) -> list[Channel]:
    return list(dict.fromkeys(channels))


class ReminderCreate(BaseModel):
    task_id: str | None = Field(default=None, max_length=64)
    vendor_id: str | None = Field(default=None, max_length=64)
    title: str = Field(min_length=1, max_length=255)
    message: str | None = None
    reminder_type: ReminderType
    remind_at: datetime
    recurrence: Recurrence | None = None
    notification_channels: list[Channel]
    status: ReminderStatus | None = None

    @field_validator("task_id", "vendor_id", "recurrence", "status", mode="before")
    @classmethod
    def blank_as_missing(cls, value):
        return _blank_to_none(value)

    @field_validator("remind_at")
    @classmethod
    def normalize_remind_at(cls, value: datetime) -> datetime:
        return ensure_utc(value)

    @field_validator("notification_channels")
    @classmethod
    def dedupe_channels(cls, value: list[Channel]) -> list[Channel]:
        return _unique_channels(value)

    @model_validator(mode="after")
    def validate_title(self):
        if not self.title.strip():
            raise ValueError("title must not be empty")
        return self


class ReminderUpdate(BaseModel):
    """Partial update. Omitted fields are kept; an explicit null clears nullable fields."""

    task_id: str | None = Field(default=None, max_length=64)
    vendor_id: str | None = Field(default=None, max_length=64)
    title: str | None = Field(default=None, min_length=1, max_length=255)
    message: str | None = None
    reminder_type: ReminderType | None = None
    remind_at: datetime | None = None
    recurrence: Recurrence | None = None
    notification_channels: list[Channel] | None = None
    status: ReminderStatus | None = None

    @field_validator("task_id", "vendor_id", mode="before")
    @classmethod
    def blank_as_null(cls, value):
        return _blank_to_none(value)

    @field_validator("remind_at")
    @classmethod
    def normalize_remind_at(cls, value: datetime | None) -> datetime | None:
        if value is None:
            return None
        return ensure_utc(value)

    @field_validator("notification_channels")
    @classmethod
    def dedupe_channels(cls, value: list[Channel] | None) -> list[Channel] | None:
        if value is None:
            return None
        return _unique_channels(value)

    @model_validator(mode="after")
    def reject_null_required_fields(self):
        for field_name in NON_NULLABLE_UPDATE_FIELDS:
            if field_name in self.model_fields_set and getattr(self, field_name) is None:
                raise ValueError(f"{field_name} must not be null")
        if self.title is not None and not self.title.strip():
            raise ValueError("title must not be empty")
        return self

    def changes(self) -> dict:
        return {name: getattr(self, name) for name in self.model_fields_set}


class ReminderRead(BaseReadModel):
    id: UUID
    task_id: str | None
    vendor_id: str | None
    title: str
    message: str | None
    reminder_type: ReminderType
    remind_at: datetime
    recurrence: Recurrence
    notification_channels: list[str]
    status: ReminderStatus
    created_at: datetime
    updated_at: datetime

    @field_validator("notification_channels", mode="before")
    @classmethod
    def decode_stored_channels(cls, value):
        if isinstance(value, str):
            try:
                return decode_channels(value)
            except ChannelDecodeError:
                # Only processing rejects a corrupt row; listings still show it.
                logger.warning("Stored notification channels are not decodable: %r", value[:200])
                return []
        return value


class ProcessResultRead(BaseModel):
    reminder: ReminderRead
    successor: ReminderRead | None
    notified_channels: list[str]
    failed_channels: list[str]
