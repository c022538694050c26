from __future__ import annotations

import logging
from collections import deque
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from datetime import UTC, datetime, timedelta, tzinfo

from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.cron import CronTrigger
from apscheduler.triggers.date import DateTrigger

from ..metrics import REMINDERS
from .storage import StorageService

logger = logging.getLogger(__name__)

DAILY_JOB_ID = "daily-mood-reminder"
MOOD_REMINDER = "mood"
BREATHING_REMINDER = "breathing"

_MESSAGES = {
    MOOD_REMINDER: (
        "MoodSync Reminder 🌟",
        "How are you feeling today? Take a moment to log your mood.",
        "mood-reminder",
    ),
    BREATHING_REMINDER: (
        "Take a Deep Breath 🫁",
        "Feeling stressed? Try a quick breathing exercise to relax.",
        "breathing-reminder",
    ),
}


@dataclass(frozen=True)
class Reminder:
    kind: str
    title: str
    body: str
    tag: str
    delivered_at: datetime


Notifier = Callable[[Reminder], Awaitable[None]]


async def log_notifier(reminder: Reminder) -> None:
    logger.info("reminder delivered", extra={"reminder": reminder.tag})


class ReminderScheduler:
    """Best-effort daily and ad-hoc reminders for a single user.

    Every delivery re-checks the permission grant; without it the reminder is
    dropped silently. Notifier failures are logged and never propagate.
    """

    def __init__(
        self,
        storage: StorageService,
        user_id: int,
        *,
        enabled: bool = True,
        hour: int = 20,
        minute: int = 0,
        breathing_delay_seconds: float = 5.0,
        tz: tzinfo = UTC,
        notifier: Notifier | None = None,
        scheduler: AsyncIOScheduler | None = None,
        history_size: int = 50,
        clock: Callable[[], datetime] | None = None,
    ) -> None:
        self._storage = storage
        self._user_id = user_id
        self._enabled = enabled
        self._hour = hour
        self._minute = minute
        self._breathing_delay = breathing_delay_seconds
        self._tz = tz
        self._notifier = notifier or log_notifier
        self._scheduler = scheduler or AsyncIOScheduler(timezone=tz)
        self._sent: deque[Reminder] = deque(maxlen=history_size)
        self._clock = clock or (lambda: datetime.now(UTC))

    @property
    def running(self) -> bool:
        return bool(self._scheduler.running)

    @property
    def breathing_delay_seconds(self) -> float:
        return self._breathing_delay

    @property
    def sent(self) -> list[Reminder]:
        return list(reversed(self._sent))

    def start(self) -> None:
        if self.running:
            return
        self._scheduler.add_job(
            self.deliver,
            CronTrigger(hour=self._hour, minute=self._minute, timezone=self._tz),
            args=(MOOD_REMINDER,),
            id=DAILY_JOB_ID,
            replace_existing=True,
        )
        self._scheduler.start()
        logger.info(
            "Reminder scheduler started",
            extra={"extra_fields": {"hour": self._hour, "minute": self._minute}},
        )

    def shutdown(self) -> None:
        if self.running:
            self._scheduler.shutdown(wait=False)

    def schedule_breathing_reminder(self) -> bool:
        """Queue a one-shot breathing reminder; False when reminders are off."""

        if not self._enabled or not self.running:
            return False
        run_date = self._clock() + timedelta(seconds=self._breathing_delay)
        self._scheduler.add_job(
            self.deliver,
            DateTrigger(run_date=run_date),
            args=(BREATHING_REMINDER,),
        )
        return True

    async def has_permission(self) -> bool:
        if not self._enabled:
            return False
        user = await self._storage.get_user(self._user_id)
        return bool(user and user.notifications_enabled)

    async def deliver(self, kind: str) -> Reminder | None:
        if not await self.has_permission():
            logger.debug("reminder skipped without permission", extra={"reminder": kind})
            REMINDERS.labels(kind=kind, result="skipped").inc()
            return None

        title, body, tag = _MESSAGES[kind]
        reminder = Reminder(kind=kind, title=title, body=body, tag=tag, delivered_at=self._clock())
        try:
            await self._notifier(reminder)
        except Exception:
            logger.warning("reminder delivery failed", extra={"reminder": tag}, exc_info=True)
            REMINDERS.labels(kind=kind, result="failed").inc()
            return None

        self._sent.append(reminder)
        REMINDERS.labels(kind=kind, result="delivered").inc()
        return reminder


__all__ = [
    "BREATHING_REMINDER",
    "DAILY_JOB_ID",
    "MOOD_REMINDER",
    "Reminder",
    "ReminderScheduler",
    "log_notifier",
]
