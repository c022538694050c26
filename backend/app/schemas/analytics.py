from __future__ import annotations

import datetime as dt

from pydantic import Field

from .common import ApiModel


class EmotionTransitionModel(ApiModel):
    from_emotion: str = Field(..., alias="from")
    to_emotion: str = Field(..., alias="to")
    count: int = Field(..., ge=1)
    avg_time_between: float = Field(..., description="Milliseconds")
    trigger_patterns: list[str]


class EmotionPatternResponse(ApiModel):
    dominant_emotion: str
    emotion_distribution: dict[str, int]
    common_transitions: list[EmotionTransitionModel]
    emotion_triggers: dict[str, int]
    time_patterns: dict[str, list[str]]


class StreakResponse(ApiModel):
    current_streak: int = Field(..., ge=0)
    longest_streak: int = Field(..., ge=0)
    last_logged_date: dt.date | None


class MoodTrendPoint(ApiModel):
    date: dt.date
    average_mood: float


class MoodSummary(ApiModel):
    average_mood: float
    total_entries: int
    emotion_frequency: dict[str, int]
    mood_trend: list[MoodTrendPoint]


class MoodChartPoint(ApiModel):
    date: dt.date
    label: str
    average_mood: float | None


class MoodChartResponse(ApiModel):
    points: list[MoodChartPoint]
