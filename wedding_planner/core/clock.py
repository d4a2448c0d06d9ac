from __future__ import annotations

from datetime import datetime, timedelta, timezone
from typing import Protocol


def ensure_utc(value: datetime) -> datetime:
    # Naive values are treated as UTC; SQLite drops the offset on read.
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


class Clock(Protocol):
    def now(self) -> datetime: ...


class SystemClock:
    def now(self) -> datetime:
        return datetime.now(timezone.utc)


class FixedClock:
    """Clock pinned to a given instant. Used by tests and replays."""

    def __init__(self, current: datetime) -> None:
        self.current = ensure_utc(current)

    def now(self) -> datetime:
        return self.current

    def advance(self, delta: timedelta) -> datetime:
        self.current = self.current + delta
        return self.current


_system_clock = SystemClock()


def get_clock() -> Clock:
    return _system_clock
