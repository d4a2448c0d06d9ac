from wedding_planner.api.v1.endpoints import reminders

__all__ = [
    "reminders",
]
