"""Database models for MoodSync."""

from .models import (
    Base,
    BreathingSession,
    HealthRecord,
    MoodEntry,
    SettingEntry,
    User,
)

__all__ = [
    "Base",
    "BreathingSession",
    "HealthRecord",
    "MoodEntry",
    "SettingEntry",
    "User",
]
