from datetime import datetime, timedelta, timezone
from uuid import uuid4

import pytest
from sqlalchemy import func, select
from sqlalchemy.exc import SQLAlchemyError

from wedding_planner.core.clock import FixedClock
from wedding_planner.core.enums import Channel, Recurrence, ReminderStatus, ReminderType
from wedding_planner.core.exceptions import ChannelDecodeError, NotFoundError, ReminderAlreadyProcessedError
from wedding_planner.models import Reminder
from wedding_planner.services.recurrence import ReminderRecurrenceEngine


NOW = datetime(2024, 3, 1, 9, 0, tzinfo=timezone.utc)


async def count_reminders(session) -> int:
    return int(await session.scalar(select(func.count(Reminder.id))))


async def fetch_all(session_factory) -> list[Reminder]:
    async with session_factory() as session:
        result = await session.scalars(select(Reminder).order_by(Reminder.remind_at.asc()))
        return list(result.all())


@pytest.mark.integration
@pytest.mark.asyncio
async def test_daily_reminder_scenario(db_session, session_factory, make_reminder, clock, notifier):
    r1 = await make_reminder(
        remind_at=datetime(2024, 3, 1, 8, 0, tzinfo=timezone.utc),
        recurrence=Recurrence.DAILY,
        notification_channels=[Channel.EMAIL],
    )
    engine = ReminderRecurrenceEngine(db_session, notifier, clock=clock)

    result = await engine.process_reminder(r1, "a@b.com")

    assert [call["destination"] for call in notifier.sent] == ["a@b.com"]
    stored = await fetch_all(session_factory)
    assert len(stored) == 2
    original, successor = stored
    assert original.id == r1.id
    assert original.status == ReminderStatus.SENT
    assert successor.id == result.successor.id
    assert successor.remind_at == datetime(2024, 3, 2, 8, 0, tzinfo=timezone.utc)
    assert successor.status == ReminderStatus.PENDING


@pytest.mark.integration
@pytest.mark.asyncio
async def test_failing_notifier_does_not_block_processing(db_session, session_factory, make_reminder, clock, notifier):
    r1 = await make_reminder(remind_at=datetime(2024, 3, 1, 8, 0, tzinfo=timezone.utc), recurrence=Recurrence.DAILY)
    notifier.fail = True
    engine = ReminderRecurrenceEngine(db_session, notifier, clock=clock)

    result = await engine.process_reminder(r1, "a@b.com")

    assert len(notifier.sent) == 1
    assert result.failed_channels == ["email"]
    original, successor = await fetch_all(session_factory)
    assert original.status == ReminderStatus.SENT
    assert successor.remind_at == datetime(2024, 3, 2, 8, 0, tzinfo=timezone.utc)


@pytest.mark.integration
@pytest.mark.asyncio
async def test_already_sent_reminder_is_rejected_without_mutation(db_session, session_factory, make_reminder, clock, notifier):
    r1 = await make_reminder(status=ReminderStatus.SENT, recurrence=Recurrence.DAILY)
    before = r1.updated_at
    engine = ReminderRecurrenceEngine(db_session, notifier, clock=FixedClock(NOW + timedelta(hours=1)))

    with pytest.raises(ReminderAlreadyProcessedError):
        await engine.process_reminder(r1, "a@b.com")

    stored = await fetch_all(session_factory)
    assert len(stored) == 1
    assert stored[0].status == ReminderStatus.SENT
    assert stored[0].updated_at == before
    assert notifier.sent == []


@pytest.mark.integration
@pytest.mark.asyncio
async def test_weekly_successor_copies_every_field(db_session, session_factory, make_reminder, notifier):
    r1 = await make_reminder(
        task_id="task-9",
        vendor_id="vendor-3",
        title="Venue walkthrough",
        message="Bring the seating chart",
        reminder_type=ReminderType.MEETING,
        remind_at=datetime(2024, 1, 1, 9, 0, tzinfo=timezone.utc),
        recurrence=Recurrence.WEEKLY,
        notification_channels=[Channel.EMAIL, Channel.PUSH],
    )
    engine = ReminderRecurrenceEngine(db_session, notifier, clock=FixedClock(datetime(2024, 1, 1, 9, 0, tzinfo=timezone.utc)))

    result = await engine.process_reminder(r1)

    original, successor = await fetch_all(session_factory)
    assert original.status == ReminderStatus.SENT
    assert successor.id == result.successor.id != original.id
    assert successor.remind_at == datetime(2024, 1, 8, 9, 0, tzinfo=timezone.utc)
    assert successor.status == ReminderStatus.PENDING
    for name in ("task_id", "vendor_id", "title", "message", "reminder_type", "recurrence", "notification_channels"):
        assert getattr(successor, name) == getattr(original, name)


@pytest.mark.integration
@pytest.mark.asyncio
async def test_non_recurring_reminder_spawns_nothing(db_session, make_reminder, clock, notifier):
    r1 = await make_reminder(recurrence=Recurrence.NONE)
    engine = ReminderRecurrenceEngine(db_session, notifier, clock=clock)

    result = await engine.process_reminder(r1, "a@b.com")

    assert result.successor is None
    assert result.reminder.status == ReminderStatus.SENT
    assert await count_reminders(db_session) == 1


@pytest.mark.integration
@pytest.mark.asyncio
async def test_monthly_chain_clamps_end_of_month(db_session, make_reminder, notifier):
    r1 = await make_reminder(remind_at=datetime(2024, 1, 31, 8, 0, tzinfo=timezone.utc), recurrence=Recurrence.MONTHLY)
    clock = FixedClock(datetime(2024, 1, 31, 8, 0, tzinfo=timezone.utc))
    engine = ReminderRecurrenceEngine(db_session, notifier, clock=clock)

    first = await engine.process_reminder(r1)
    assert first.successor.remind_at == datetime(2024, 2, 29, 8, 0, tzinfo=timezone.utc)

    clock.advance(timedelta(days=30))
    second = await engine.process_reminder(first.successor)
    assert second.successor.remind_at == datetime(2024, 3, 29, 8, 0, tzinfo=timezone.utc)
    assert await count_reminders(db_session) == 3


@pytest.mark.integration
@pytest.mark.asyncio
async def test_get_due_reminders_delegates_to_clock(db_session, make_reminder, notifier):
    first = await make_reminder(remind_at=NOW - timedelta(hours=2))
    second = await make_reminder(remind_at=NOW + timedelta(hours=2))
    clock = FixedClock(NOW)
    engine = ReminderRecurrenceEngine(db_session, notifier, clock=clock)

    assert [item.id for item in await engine.get_due_reminders()] == [first.id]
    clock.advance(timedelta(hours=3))
    assert [item.id for item in await engine.get_due_reminders()] == [first.id, second.id]


@pytest.mark.integration
@pytest.mark.asyncio
async def test_corrupt_channels_leave_reminder_pending(db_session, session_factory, make_reminder, clock, notifier):
    r1 = await make_reminder(recurrence=Recurrence.DAILY)
    r1.notification_channels = "email;push"
    await db_session.commit()
    engine = ReminderRecurrenceEngine(db_session, notifier, clock=clock)

    with pytest.raises(ChannelDecodeError):
        await engine.process_reminder(r1, "a@b.com")

    stored = await fetch_all(session_factory)
    assert len(stored) == 1
    assert stored[0].status == ReminderStatus.PENDING
    assert notifier.sent == []


@pytest.mark.integration
@pytest.mark.asyncio
async def test_failed_successor_rolls_back_sent_transition(db_session, session_factory, make_reminder, clock, notifier):
    r1 = await make_reminder(recurrence=Recurrence.WEEKLY)
    engine = ReminderRecurrenceEngine(db_session, notifier, clock=clock)

    async def broken_create(fields, now):
        raise SQLAlchemyError("disk full")

    engine.reminders.create = broken_create  # type: ignore[method-assign]

    with pytest.raises(SQLAlchemyError):
        await engine.process_reminder(r1, "a@b.com")

    stored = await fetch_all(session_factory)
    assert len(stored) == 1
    assert stored[0].status == ReminderStatus.PENDING
    assert notifier.sent == []


@pytest.mark.integration
@pytest.mark.asyncio
async def test_slow_notifier_times_out_per_channel(db_session, session_factory, make_reminder, clock, notifier):
    r1 = await make_reminder()
    notifier.delay = 1.0
    engine = ReminderRecurrenceEngine(db_session, notifier, clock=clock, notify_timeout_sec=0.05)

    result = await engine.process_reminder(r1, "a@b.com")

    assert result.failed_channels == ["email"]
    assert notifier.sent == []
    stored = await fetch_all(session_factory)
    assert stored[0].status == ReminderStatus.SENT


@pytest.mark.integration
@pytest.mark.asyncio
async def test_concurrent_processors_only_one_wins(session_factory, make_reminder, clock, notifier):
    r1 = await make_reminder(recurrence=Recurrence.DAILY)

    async with session_factory() as first_session, session_factory() as second_session:
        first_copy = await first_session.get(Reminder, r1.id)
        second_copy = await second_session.get(Reminder, r1.id)
        assert first_copy.status == second_copy.status == ReminderStatus.PENDING

        await ReminderRecurrenceEngine(first_session, notifier, clock=clock).process_reminder(first_copy, "a@b.com")
        with pytest.raises(ReminderAlreadyProcessedError):
            await ReminderRecurrenceEngine(second_session, notifier, clock=clock).process_reminder(second_copy, "a@b.com")

    assert len(notifier.sent) == 1
    stored = await fetch_all(session_factory)
    assert len(stored) == 2
    assert [item.status for item in stored] == [ReminderStatus.SENT, ReminderStatus.PENDING]


@pytest.mark.integration
@pytest.mark.asyncio
async def test_process_by_missing_id_raises_not_found(db_session, clock, notifier):
    engine = ReminderRecurrenceEngine(db_session, notifier, clock=clock)
    with pytest.raises(NotFoundError):
        await engine.process_reminder_by_id(uuid4(), "a@b.com")


@pytest.mark.integration
@pytest.mark.asyncio
async def test_process_due_handles_whole_batch_and_skips_bad_rows(db_session, session_factory, make_reminder, clock, notifier):
    good = await make_reminder(title="good", remind_at=NOW - timedelta(hours=3))
    broken = await make_reminder(title="broken", remind_at=NOW - timedelta(hours=2))
    broken.notification_channels = "{"
    await db_session.commit()
    recurring = await make_reminder(title="recurring", remind_at=NOW - timedelta(hours=1), recurrence=Recurrence.DAILY)
    await make_reminder(title="future", remind_at=NOW + timedelta(hours=1))

    engine = ReminderRecurrenceEngine(db_session, notifier, clock=clock)
    results = await engine.process_due(notify_target="a@b.com")

    assert [item.reminder.id for item in results] == [good.id, recurring.id]
    assert len(notifier.sent) == 2

    statuses = {item.title: item.status for item in await fetch_all(session_factory) if item.remind_at <= NOW}
    assert statuses == {"good": ReminderStatus.SENT, "broken": ReminderStatus.PENDING, "recurring": ReminderStatus.SENT}
    assert await count_reminders(db_session) == 5
