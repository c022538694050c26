from __future__ import annotations

from collections.abc import Iterable, Sequence
from datetime import datetime
from enum import Enum
from typing import Any

from sqlalchemy import JSON, DateTime, Integer, delete, func, select
from sqlalchemy.ext.asyncio import AsyncEngine, async_sessionmaker
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column

from backend.db import create_engine


class QueueCollection(str, Enum):
    MOOD_ENTRIES = "mood_entries"
    HEALTH_DATA = "health_data"
    BREATHING_SESSIONS = "breathing_sessions"

    @property
    def endpoint(self) -> str:
        return "/api/" + self.value.replace("_", "-")


class QueueBase(DeclarativeBase):
    """Separate metadata so the queue never shares tables with the server store."""


class _QueuedItem:
    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    payload: Mapped[dict[str, Any]] = mapped_column(JSON, nullable=False)
    queued_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow, index=True)


class QueuedMoodEntry(_QueuedItem, QueueBase):
    __tablename__ = "queued_mood_entries"


class QueuedHealthData(_QueuedItem, QueueBase):
    __tablename__ = "queued_health_data"


class QueuedBreathingSession(_QueuedItem, QueueBase):
    __tablename__ = "queued_breathing_sessions"


_MODELS: dict[QueueCollection, type[_QueuedItem]] = {
    QueueCollection.MOOD_ENTRIES: QueuedMoodEntry,
    QueueCollection.HEALTH_DATA: QueuedHealthData,
    QueueCollection.BREATHING_SESSIONS: QueuedBreathingSession,
}


class OfflineQueue:
    """Durable staging area for writes made while the API is unreachable."""

    def __init__(self, engine: AsyncEngine) -> None:
        self._engine = engine
        self._session_factory = async_sessionmaker(engine, expire_on_commit=False)

    @classmethod
    async def open(cls, url: str) -> OfflineQueue:
        queue = cls(create_engine(url))
        await queue.init()
        return queue

    async def init(self) -> None:
        async with self._engine.begin() as conn:
            await conn.run_sync(QueueBase.metadata.create_all)

    async def close(self) -> None:
        await self._engine.dispose()

    async def add(self, collection: QueueCollection, payload: dict[str, Any]) -> int:
        model = _MODELS[collection]
        async with self._session_factory() as session:
            item = model(payload=dict(payload))
            session.add(item)
            await session.commit()
            await session.refresh(item)
            return item.id

    async def list(self, collection: QueueCollection, limit: int = 50) -> Sequence[_QueuedItem]:
        """Most recently queued first."""

        model = _MODELS[collection]
        async with self._session_factory() as session:
            result = await session.execute(
                select(model).order_by(model.queued_at.desc(), model.id.desc()).limit(limit)
            )
            return list(result.scalars().all())

    async def pending(self, collection: QueueCollection) -> Sequence[_QueuedItem]:
        """Everything queued, oldest first, in replay order."""

        model = _MODELS[collection]
        async with self._session_factory() as session:
            result = await session.execute(select(model).order_by(model.id.asc()))
            return list(result.scalars().all())

    async def remove(self, collection: QueueCollection, ids: Iterable[int]) -> int:
        model = _MODELS[collection]
        id_list = list(ids)
        if not id_list:
            return 0
        async with self._session_factory() as session:
            result = await session.execute(delete(model).where(model.id.in_(id_list)))
            await session.commit()
            return result.rowcount or 0

    async def count(self, collection: QueueCollection) -> int:
        model = _MODELS[collection]
        async with self._session_factory() as session:
            value = await session.scalar(select(func.count(model.id)))
            return int(value or 0)


__all__ = ["OfflineQueue", "QueueCollection"]
