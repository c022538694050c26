from __future__ import annotations

from collections.abc import Sequence
from datetime import UTC, date, datetime, timedelta, tzinfo
from typing import Any

from sqlalchemy import func, select, text
from sqlalchemy.ext.asyncio import async_sessionmaker

from ..db.models import BreathingSession, HealthRecord, MoodEntry, User

_HEALTH_FIELDS = ("heart_rate", "sleep_hours", "sleep_score", "step_count")

_SAMPLE_MOODS: tuple[dict[str, Any], ...] = (
    {
        "emotion": "happy",
        "intensity": 7,
        "activity": "work",
        "thoughts": "Had a productive morning meeting",
        "triggers": ["achievement"],
    },
    {
        "emotion": "calm",
        "intensity": 6,
        "activity": "relaxing",
        "thoughts": "Enjoyed my afternoon tea",
        "triggers": ["weather"],
    },
    {
        "emotion": "excited",
        "intensity": 8,
        "activity": "social",
        "thoughts": "Great dinner with friends",
        "triggers": ["relationship"],
    },
    {
        "emotion": "anxious",
        "intensity": 4,
        "activity": "work",
        "thoughts": "Worried about upcoming deadline",
        "triggers": ["work_stress"],
    },
    {
        "emotion": "love",
        "intensity": 9,
        "activity": "social",
        "thoughts": "Quality time with family",
        "triggers": ["relationship"],
    },
    {
        "emotion": "neutral",
        "intensity": 5,
        "activity": "studying",
        "thoughts": "Regular study session",
        "triggers": [],
    },
    {
        "emotion": "sad",
        "intensity": 3,
        "activity": "work",
        "thoughts": "Difficult day at work",
        "triggers": ["work_stress"],
    },
)
_SAMPLE_SESSIONS: tuple[tuple[str, int], ...] = (("4-7-8", 5), ("4-4-4-4", 10), ("4-7-8", 7))


def to_naive_utc(value: datetime) -> datetime:
    """Convert to the naive UTC form used by every stored timestamp."""

    if value.tzinfo is None:
        return value
    return value.astimezone(UTC).replace(tzinfo=None)


def day_bounds(day: date, tz: tzinfo = UTC) -> tuple[datetime, datetime]:
    """Naive UTC ``[start, end)`` of a calendar day in ``tz``."""

    start = datetime.combine(day, datetime.min.time(), tzinfo=tz)
    return to_naive_utc(start), to_naive_utc(start + timedelta(days=1))


class StorageService:
    """Persist users, mood entries, health metrics and breathing sessions."""

    def __init__(self, session_factory: async_sessionmaker, *, tz: tzinfo = UTC) -> None:
        self._session_factory = session_factory
        self._tz = tz

    async def healthcheck(self) -> None:
        async with self._session_factory() as session:
            await session.execute(text("SELECT 1"))

    # -- users -----------------------------------------------------------
    async def ensure_user(self, username: str) -> User:
        async with self._session_factory() as session:
            user = await session.scalar(select(User).where(User.username == username))
            if user:
                return user
            user = User(username=username)
            session.add(user)
            await session.commit()
            await session.refresh(user)
            return user

    async def get_user(self, user_id: int) -> User | None:
        async with self._session_factory() as session:
            return await session.get(User, user_id)

    async def update_user_preferences(
        self,
        user_id: int,
        *,
        notifications_enabled: bool | None = None,
        google_fit_connected: bool | None = None,
    ) -> User | None:
        async with self._session_factory() as session:
            user = await session.get(User, user_id)
            if user is None:
                return None
            if notifications_enabled is not None:
                user.notifications_enabled = notifications_enabled
            if google_fit_connected is not None:
                user.google_fit_connected = google_fit_connected
            await session.commit()
            await session.refresh(user)
            return user

    # -- mood entries ----------------------------------------------------
    async def add_mood_entry(
        self,
        *,
        user_id: int,
        emotion: str,
        intensity: int,
        thoughts: str | None = None,
        activity: str | None = None,
        location: str | None = None,
        photo_url: str | None = None,
        triggers: list[str] | None = None,
        timestamp: datetime | None = None,
    ) -> MoodEntry:
        async with self._session_factory() as session:
            entry = MoodEntry(
                user_id=user_id,
                emotion=emotion,
                intensity=intensity,
                thoughts=thoughts,
                activity=activity,
                location=location,
                photo_url=photo_url,
                triggers=list(triggers) if triggers else None,
                timestamp=to_naive_utc(timestamp) if timestamp else datetime.utcnow(),
            )
            session.add(entry)
            await session.commit()
            await session.refresh(entry)
            return entry

    async def list_mood_entries(
        self,
        user_id: int,
        limit: int | None = 50,
    ) -> Sequence[MoodEntry]:
        """Newest first; ``limit=None`` returns the whole history."""

        query = (
            select(MoodEntry)
            .where(MoodEntry.user_id == user_id)
            .order_by(MoodEntry.timestamp.desc(), MoodEntry.id.desc())
        )
        if limit is not None:
            query = query.limit(limit)
        async with self._session_factory() as session:
            result = await session.execute(query)
            return list(result.scalars().all())

    async def list_mood_entries_in_range(
        self,
        user_id: int,
        start: datetime,
        end: datetime,
    ) -> Sequence[MoodEntry]:
        """Entries with ``start <= timestamp <= end``, oldest first."""

        async with self._session_factory() as session:
            result = await session.execute(
                select(MoodEntry)
                .where(MoodEntry.user_id == user_id)
                .where(MoodEntry.timestamp >= to_naive_utc(start))
                .where(MoodEntry.timestamp <= to_naive_utc(end))
                .order_by(MoodEntry.timestamp.asc(), MoodEntry.id.asc())
            )
            return list(result.scalars().all())

    # -- health data -----------------------------------------------------
    async def get_health_data(self, user_id: int, day: date | None = None) -> HealthRecord | None:
        target = day or datetime.now(self._tz).date()
        start, end = day_bounds(target, self._tz)
        async with self._session_factory() as session:
            return await session.scalar(
                select(HealthRecord)
                .where(HealthRecord.user_id == user_id)
                .where(HealthRecord.date >= start)
                .where(HealthRecord.date < end)
                .order_by(HealthRecord.id.asc())
                .limit(1)
            )

    async def list_health_data_in_range(
        self,
        user_id: int,
        start: datetime,
        end: datetime,
    ) -> Sequence[HealthRecord]:
        async with self._session_factory() as session:
            result = await session.execute(
                select(HealthRecord)
                .where(HealthRecord.user_id == user_id)
                .where(HealthRecord.date >= to_naive_utc(start))
                .where(HealthRecord.date <= to_naive_utc(end))
                .order_by(HealthRecord.date.asc())
            )
            return list(result.scalars().all())

    async def upsert_health_data(self, user_id: int, **metrics: Any) -> HealthRecord:
        """Merge non-null metrics into today's record, creating it when missing."""

        values = {key: metrics.get(key) for key in _HEALTH_FIELDS if metrics.get(key) is not None}
        start, end = day_bounds(datetime.now(self._tz).date(), self._tz)
        async with self._session_factory() as session:
            record = await session.scalar(
                select(HealthRecord)
                .where(HealthRecord.user_id == user_id)
                .where(HealthRecord.date >= start)
                .where(HealthRecord.date < end)
                .order_by(HealthRecord.id.asc())
                .limit(1)
            )
            if record is None:
                record = HealthRecord(user_id=user_id, date=datetime.utcnow(), **values)
                session.add(record)
            else:
                for key, value in values.items():
                    setattr(record, key, value)
            await session.commit()
            await session.refresh(record)
            return record

    # -- breathing sessions ----------------------------------------------
    async def add_breathing_session(
        self,
        *,
        user_id: int,
        pattern: str,
        duration: int,
        completed_at: datetime | None = None,
    ) -> BreathingSession:
        async with self._session_factory() as session:
            entry = BreathingSession(
                user_id=user_id,
                pattern=pattern,
                duration=duration,
                completed_at=to_naive_utc(completed_at) if completed_at else datetime.utcnow(),
            )
            session.add(entry)
            await session.commit()
            await session.refresh(entry)
            return entry

    async def list_breathing_sessions(
        self,
        user_id: int,
        limit: int = 20,
    ) -> Sequence[BreathingSession]:
        async with self._session_factory() as session:
            result = await session.execute(
                select(BreathingSession)
                .where(BreathingSession.user_id == user_id)
                .order_by(BreathingSession.completed_at.desc(), BreathingSession.id.desc())
                .limit(limit)
            )
            return list(result.scalars().all())

    # -- demo data -------------------------------------------------------
    async def seed_demo_data(self, user_id: int) -> bool:
        """Populate a sample week for ``user_id`` unless it already has mood entries."""

        async with self._session_factory() as session:
            existing = await session.scalar(
                select(func.count(MoodEntry.id)).where(MoodEntry.user_id == user_id)
            )
            if existing:
                return False

            now = datetime.utcnow()
            for index, sample in enumerate(_SAMPLE_MOODS):
                session.add(
                    MoodEntry(
                        user_id=user_id,
                        timestamp=now - timedelta(days=len(_SAMPLE_MOODS) - 1 - index),
                        **sample,
                    )
                )
            session.add(
                HealthRecord(
                    user_id=user_id,
                    date=now,
                    heart_rate=72,
                    sleep_hours=7.5,
                    sleep_score=85,
                    step_count=8432,
                )
            )
            for index, (pattern, duration) in enumerate(_SAMPLE_SESSIONS):
                session.add(
                    BreathingSession(
                        user_id=user_id,
                        pattern=pattern,
                        duration=duration,
                        completed_at=now - timedelta(days=index),
                    )
                )
            await session.commit()
        return True


__all__ = ["StorageService", "day_bounds", "to_naive_utc"]
