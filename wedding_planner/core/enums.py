from enum import Enum


class ReminderType(str, Enum):
    FOLLOW_UP = "follow_up"
    PAYMENT_DUE = "payment_due"
    MEETING = "meeting"
    DEADLINE = "deadline"
    CUSTOM = "custom"


class ReminderStatus(str, Enum):
    PENDING = "pending"
    SENT = "sent"
    DISMISSED = "dismissed"
    SNOOZED = "snoozed"


class Recurrence(str, Enum):
    NONE = "none"
    DAILY = "daily"
    WEEKLY = "weekly"
    MONTHLY = "monthly"


class Channel(str, Enum):
    EMAIL = "email"
    PUSH = "push"
