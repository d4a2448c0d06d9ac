from __future__ import annotations


class AppError(Exception):
    def __init__(self, code: str, message: str, status_code: int = 400, details: dict | None = None) -> None:
        super().__init__(message)
        self.code = code
        self.message = message
        self.status_code = status_code
        self.details = details or {}


class NotFoundError(AppError):
    def __init__(self, message: str = "Resource not found", details: dict | None = None) -> None:
        super().__init__(code="not_found", message=message, status_code=404, details=details)


class ValidationAppError(AppError):
    def __init__(self, message: str = "Validation failed", details: dict | None = None) -> None:
        super().__init__(code="validation_error", message=message, status_code=422, details=details)


class ReminderNotDueError(AppError):
    def __init__(self, message: str = "Reminder is not yet due", details: dict | None = None) -> None:
        super().__init__(code="reminder_not_due", message=message, status_code=400, details=details)


class ReminderAlreadyProcessedError(AppError):
    def __init__(self, message: str = "Reminder has already been processed", details: dict | None = None) -> None:
        super().__init__(code="reminder_already_processed", message=message, status_code=400, details=details)


class ChannelDecodeError(AppError):
    """Stored notification channels are not a JSON list of names."""

    def __init__(self, message: str = "Failed to parse notification channels", details: dict | None = None) -> None:
        super().__init__(code="channel_decode_error", message=message, status_code=500, details=details)


class RecurrenceError(AppError):
    """An unknown recurrence reached the engine. Upstream validation should make this unreachable."""

    def __init__(self, message: str = "Unknown recurrence", details: dict | None = None) -> None:
        super().__init__(code="invalid_recurrence", message=message, status_code=500, details=details)


class NotificationError(RuntimeError):
    pass
