from wedding_planner.services.notifier import EmailNotifier, Notifier
from wedding_planner.services.recurrence import ReminderRecurrenceEngine
from wedding_planner.services.reminders import ReminderService

__all__ = [
    "EmailNotifier",
    "Notifier",
    "ReminderRecurrenceEngine",
    "ReminderService",
]
