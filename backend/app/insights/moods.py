"""Mood pattern and streak analytics.

Both entry points are pure: they read the given records, never mutate them
and keep no state between calls. Timestamps without tzinfo are taken as UTC
and every hour/day bucket is computed in the caller-supplied timezone.
"""

from __future__ import annotations

from collections import Counter
from collections.abc import Iterable, Sequence
from dataclasses import dataclass, field
from datetime import UTC, date, datetime, timedelta, tzinfo
from enum import Enum
from itertools import pairwise
from typing import Protocol

from ..schemas.mood import Emotion

LEGACY_AVERAGE = "legacy"
RUNNING_AVERAGE = "running"
AVERAGE_MODES = (LEGACY_AVERAGE, RUNNING_AVERAGE)

DEFAULT_EMOTION = Emotion.NEUTRAL.value
TOP_TRANSITIONS = 5

_ONE_MS = timedelta(milliseconds=1)
_ONE_DAY = timedelta(days=1)
_EPOCH = datetime(1970, 1, 1, tzinfo=UTC)
_PRIORITY = {emotion.value: index for index, emotion in enumerate(Emotion)}
_PERIODS = ("morning", "afternoon", "evening", "night")


class MoodLike(Protocol):
    emotion: str
    timestamp: datetime
    triggers: list[str] | None


@dataclass(frozen=True)
class MoodRecord:
    """Plain record accepted by the analytics functions."""

    emotion: str
    intensity: int
    timestamp: datetime
    triggers: tuple[str, ...] | list[str] | None = None


@dataclass
class EmotionTransition:
    from_emotion: str
    to_emotion: str
    count: int = 0
    avg_time_between: float = 0.0
    trigger_patterns: list[str] = field(default_factory=list)


@dataclass
class PatternResult:
    dominant_emotion: str
    emotion_distribution: dict[str, int]
    common_transitions: list[EmotionTransition]
    emotion_triggers: dict[str, int]
    time_patterns: dict[str, list[str]]


@dataclass
class StreakResult:
    current_streak: int = 0
    longest_streak: int = 0
    last_logged_date: date | None = None


def as_utc(value: datetime) -> datetime:
    if value.tzinfo is None:
        return value.replace(tzinfo=UTC)
    return value.astimezone(UTC)


def epoch_ms(value: datetime) -> int:
    """Whole milliseconds since the Unix epoch; sub-millisecond parts are floored."""

    return (as_utc(value) - _EPOCH) // _ONE_MS


def local_datetime(value: datetime, tz: tzinfo = UTC) -> datetime:
    return as_utc(value).astimezone(tz)


def local_date(value: datetime, tz: tzinfo = UTC) -> date:
    return local_datetime(value, tz).date()


def day_period(hour: int) -> str:
    if 5 <= hour < 12:
        return "morning"
    if 12 <= hour < 17:
        return "afternoon"
    if 17 <= hour < 21:
        return "evening"
    return "night"


def emotion_label(value: object) -> str:
    if isinstance(value, Enum):
        return str(value.value)
    return str(value)


def analyze_patterns(
    records: Iterable[MoodLike],
    *,
    tz: tzinfo = UTC,
    average: str = LEGACY_AVERAGE,
) -> PatternResult:
    """Derive emotion distribution, triggers, time-of-day and transition patterns.

    ``average`` selects how ``avg_time_between`` is folded per occurrence:
    ``"legacy"`` keeps ``(avg + delta) / count``; ``"running"`` is the true
    incremental mean.
    """

    if average not in AVERAGE_MODES:
        raise ValueError(f"unknown average mode: {average!r}")

    entries = list(records)
    if not entries:
        return PatternResult(
            dominant_emotion=DEFAULT_EMOTION,
            emotion_distribution={},
            common_transitions=[],
            emotion_triggers={},
            time_patterns={},
        )

    distribution: Counter[str] = Counter()
    triggers: Counter[str] = Counter()
    time_patterns: dict[str, list[str]] = {period: [] for period in _PERIODS}

    for entry in entries:
        label = emotion_label(entry.emotion)
        distribution[label] += 1
        for trigger in entry.triggers or ():
            triggers[trigger] += 1
        hour = local_datetime(entry.timestamp, tz).hour
        time_patterns[day_period(hour)].append(label)

    return PatternResult(
        dominant_emotion=_dominant_emotion(distribution),
        emotion_distribution=dict(distribution),
        common_transitions=_common_transitions(entries, average),
        emotion_triggers=dict(triggers),
        time_patterns=time_patterns,
    )


def _dominant_emotion(distribution: Counter[str]) -> str:
    # min() keeps the first of equal keys, so unknown labels fall back to first-seen order
    return min(
        distribution.items(),
        key=lambda item: (-item[1], _PRIORITY.get(item[0], len(_PRIORITY))),
    )[0]


def _common_transitions(entries: Sequence[MoodLike], average: str) -> list[EmotionTransition]:
    ordered = sorted(entries, key=lambda entry: as_utc(entry.timestamp))
    transitions: dict[tuple[str, str], EmotionTransition] = {}

    for previous, current in pairwise(ordered):
        source = emotion_label(previous.emotion)
        target = emotion_label(current.emotion)
        if source == target:
            continue
        transition = transitions.get((source, target))
        if transition is None:
            transition = EmotionTransition(from_emotion=source, to_emotion=target)
            transitions[(source, target)] = transition
        transition.count += 1

        delta_ms = epoch_ms(current.timestamp) - epoch_ms(previous.timestamp)
        if average == LEGACY_AVERAGE:
            transition.avg_time_between = (
                transition.avg_time_between + delta_ms
            ) / transition.count
        else:
            transition.avg_time_between += (
                delta_ms - transition.avg_time_between
            ) / transition.count

        if current.triggers:
            transition.trigger_patterns.extend(current.triggers)

    ranked = sorted(transitions.values(), key=lambda item: item.count, reverse=True)
    return ranked[:TOP_TRANSITIONS]


def logged_dates(records: Iterable[MoodLike], tz: tzinfo = UTC) -> list[date]:
    """Distinct local calendar days holding at least one record, newest first."""

    return sorted({local_date(entry.timestamp, tz) for entry in records}, reverse=True)


def calculate_streak(
    records: Iterable[MoodLike],
    *,
    today: date | None = None,
    tz: tzinfo = UTC,
) -> StreakResult:
    days = logged_dates(records, tz)
    if not days:
        return StreakResult()

    reference = today or datetime.now(tz).date()
    last_logged = days[0]

    current = 0
    if (reference - last_logged).days <= 1:
        for offset, day in enumerate(days):
            if day != last_logged - offset * _ONE_DAY:
                break
            current += 1

    longest = 0
    run = 1
    for newer, older in pairwise(days):
        if newer - older == _ONE_DAY:
            run += 1
        else:
            longest = max(longest, run)
            run = 1
    longest = max(longest, run)

    return StreakResult(
        current_streak=current,
        longest_streak=longest,
        last_logged_date=last_logged,
    )


__all__ = [
    "AVERAGE_MODES",
    "EmotionTransition",
    "LEGACY_AVERAGE",
    "MoodRecord",
    "PatternResult",
    "RUNNING_AVERAGE",
    "StreakResult",
    "analyze_patterns",
    "calculate_streak",
    "day_period",
    "local_date",
    "logged_dates",
]
