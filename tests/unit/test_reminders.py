from __future__ import annotations

from datetime import UTC, datetime, timedelta
from unittest.mock import MagicMock

import pytest
from apscheduler.triggers.cron import CronTrigger
from apscheduler.triggers.date import DateTrigger

from backend.app.services.reminders import (
    BREATHING_REMINDER,
    DAILY_JOB_ID,
    MOOD_REMINDER,
    Reminder,
    ReminderScheduler,
)
from backend.app.services.storage import StorageService

NOW = datetime(2024, 3, 4, 12, 0, tzinfo=UTC)


class RecordingNotifier:
    def __init__(self) -> None:
        self.delivered: list[Reminder] = []

    async def __call__(self, reminder: Reminder) -> None:
        self.delivered.append(reminder)


async def _failing_notifier(reminder: Reminder) -> None:
    raise RuntimeError("push service down")


@pytest.fixture()
def storage(temp_session_factory) -> StorageService:
    return StorageService(temp_session_factory)


def _scheduler(storage: StorageService, user_id: int, **kwargs) -> ReminderScheduler:
    kwargs.setdefault("clock", lambda: NOW)
    kwargs.setdefault("scheduler", MagicMock(running=True))
    return ReminderScheduler(storage, user_id, **kwargs)


@pytest.mark.anyio
async def test_deliver_with_permission(storage: StorageService) -> None:
    user = await storage.ensure_user("reminded")
    notifier = RecordingNotifier()
    reminders = _scheduler(storage, user.id, notifier=notifier)

    reminder = await reminders.deliver(MOOD_REMINDER)

    assert reminder is not None
    assert reminder.tag == "mood-reminder"
    assert reminder.delivered_at == NOW
    assert notifier.delivered == [reminder]
    assert reminders.sent == [reminder]


@pytest.mark.anyio
async def test_deliver_without_user_permission_is_silent(storage: StorageService) -> None:
    user = await storage.ensure_user("muted")
    await storage.update_user_preferences(user.id, notifications_enabled=False)
    notifier = RecordingNotifier()
    reminders = _scheduler(storage, user.id, notifier=notifier)

    assert await reminders.deliver(BREATHING_REMINDER) is None
    assert notifier.delivered == []
    assert reminders.sent == []


@pytest.mark.anyio
async def test_deliver_when_globally_disabled(storage: StorageService) -> None:
    user = await storage.ensure_user("disabled")
    notifier = RecordingNotifier()
    reminders = _scheduler(storage, user.id, notifier=notifier, enabled=False)

    assert await reminders.has_permission() is False
    assert await reminders.deliver(MOOD_REMINDER) is None
    assert notifier.delivered == []


@pytest.mark.anyio
async def test_notifier_failure_is_swallowed(storage: StorageService) -> None:
    user = await storage.ensure_user("failing")
    reminders = _scheduler(storage, user.id, notifier=_failing_notifier)

    assert await reminders.deliver(MOOD_REMINDER) is None
    assert reminders.sent == []


@pytest.mark.anyio
async def test_sent_history_newest_first(storage: StorageService) -> None:
    user = await storage.ensure_user("history")
    reminders = _scheduler(storage, user.id, notifier=RecordingNotifier(), history_size=2)

    await reminders.deliver(MOOD_REMINDER)
    await reminders.deliver(BREATHING_REMINDER)
    await reminders.deliver(MOOD_REMINDER)

    assert [item.kind for item in reminders.sent] == [MOOD_REMINDER, BREATHING_REMINDER]


def test_start_registers_daily_cron_job() -> None:
    scheduler = MagicMock(running=False)
    reminders = ReminderScheduler(MagicMock(), 1, hour=21, minute=30, scheduler=scheduler)

    reminders.start()

    scheduler.add_job.assert_called_once()
    _, kwargs = scheduler.add_job.call_args
    assert kwargs["id"] == DAILY_JOB_ID
    assert kwargs["args"] == (MOOD_REMINDER,)
    trigger = scheduler.add_job.call_args.args[1]
    assert isinstance(trigger, CronTrigger)
    scheduler.start.assert_called_once()


def test_breathing_reminder_uses_delay() -> None:
    scheduler = MagicMock(running=True)
    reminders = ReminderScheduler(
        MagicMock(),
        1,
        breathing_delay_seconds=5,
        scheduler=scheduler,
        clock=lambda: NOW,
    )

    assert reminders.schedule_breathing_reminder() is True

    trigger = scheduler.add_job.call_args.args[1]
    assert isinstance(trigger, DateTrigger)
    assert trigger.run_date == NOW + timedelta(seconds=5)
    assert scheduler.add_job.call_args.kwargs["args"] == (BREATHING_REMINDER,)


def test_breathing_reminder_skipped_when_disabled() -> None:
    scheduler = MagicMock(running=True)
    reminders = ReminderScheduler(MagicMock(), 1, enabled=False, scheduler=scheduler)

    assert reminders.schedule_breathing_reminder() is False
    scheduler.add_job.assert_not_called()


def test_shutdown_only_when_running() -> None:
    scheduler = MagicMock(running=False)
    ReminderScheduler(MagicMock(), 1, scheduler=scheduler).shutdown()
    scheduler.shutdown.assert_not_called()

    scheduler.running = True
    ReminderScheduler(MagicMock(), 1, scheduler=scheduler).shutdown()
    scheduler.shutdown.assert_called_once_with(wait=False)
