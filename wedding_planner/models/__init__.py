from wedding_planner.models.reminder import Reminder

__all__ = ["Reminder"]
