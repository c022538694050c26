from __future__ import annotations

from enum import Enum

from pydantic import Field, field_validator

from .common import ApiModel, UtcDatetime


class Emotion(str, Enum):
    """Closed set of loggable emotions. Member order is the tie-break priority."""

    ANGRY = "angry"
    SAD = "sad"
    NEUTRAL = "neutral"
    HAPPY = "happy"
    EXCITED = "excited"
    LOVE = "love"
    ANXIOUS = "anxious"
    CALM = "calm"


class Activity(str, Enum):
    WORK = "work"
    EXERCISE = "exercise"
    SOCIAL = "social"
    EATING = "eating"
    RELAXING = "relaxing"
    STUDYING = "studying"


class MoodEntryCreate(ApiModel):
    emotion: Emotion
    intensity: int = Field(..., ge=1, le=10)
    thoughts: str | None = Field(default=None, max_length=2000)
    activity: Activity | None = None
    location: str | None = Field(default=None, max_length=255)
    photo_url: str | None = Field(default=None, max_length=500)
    triggers: list[str] | None = Field(default=None, alias="emotionTriggers")

    @field_validator("thoughts", mode="before")
    @classmethod
    def _blank_thoughts_to_none(cls, value: str | None) -> str | None:
        if isinstance(value, str) and not value.strip():
            return None
        return value.strip() if isinstance(value, str) else value

    @field_validator("triggers")
    @classmethod
    def _drop_blank_triggers(cls, value: list[str] | None) -> list[str] | None:
        if value is None:
            return None
        cleaned = [item.strip() for item in value if item and item.strip()]
        return cleaned or None


class MoodEntryModel(ApiModel):
    id: int
    user_id: int
    emotion: Emotion
    intensity: int
    thoughts: str | None = None
    activity: Activity | None = None
    location: str | None = None
    photo_url: str | None = None
    triggers: list[str] | None = Field(default=None, alias="emotionTriggers")
    timestamp: UtcDatetime
