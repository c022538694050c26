from __future__ import annotations

from collections import Counter, defaultdict
from collections.abc import Iterable, Sequence
from datetime import UTC, date, datetime, timedelta, tzinfo
from typing import Protocol

from .moods import emotion_label, local_date


class IntensityRecord(Protocol):
    emotion: str
    intensity: int
    timestamp: datetime


def _mean(values: Sequence[int]) -> float:
    return sum(values) / len(values)


def summarize_moods(
    records: Iterable[IntensityRecord],
    *,
    tz: tzinfo = UTC,
) -> dict[str, object]:
    """Average intensity, emotion frequency and per-day trend for a set of entries."""

    entries = list(records)
    if not entries:
        return {
            "average_mood": 0,
            "total_entries": 0,
            "emotion_frequency": {},
            "mood_trend": [],
        }

    frequency = Counter(emotion_label(entry.emotion) for entry in entries)
    by_day: dict[date, list[int]] = defaultdict(list)
    for entry in entries:
        by_day[local_date(entry.timestamp, tz)].append(entry.intensity)

    mood_trend = [
        {"date": day, "average_mood": round(_mean(values), 2)}
        for day, values in sorted(by_day.items())
    ]
    return {
        "average_mood": round(_mean([entry.intensity for entry in entries]), 1),
        "total_entries": len(entries),
        "emotion_frequency": dict(frequency),
        "mood_trend": mood_trend,
    }


def daily_mood_averages(
    records: Iterable[IntensityRecord],
    *,
    end: datetime,
    days: int = 7,
    tz: tzinfo = UTC,
) -> list[dict[str, object]]:
    """One point per day for ``days`` days ending on ``end``; days without entries are None."""

    last_day = local_date(end, tz)
    window = [last_day - timedelta(days=offset) for offset in range(days - 1, -1, -1)]
    by_day: dict[date, list[int]] = defaultdict(list)
    for entry in records:
        by_day[local_date(entry.timestamp, tz)].append(entry.intensity)

    points: list[dict[str, object]] = []
    for day in window:
        values = by_day.get(day)
        points.append(
            {
                "date": day,
                "label": day.strftime("%a"),
                "average_mood": round(_mean(values), 2) if values else None,
            }
        )
    return points
