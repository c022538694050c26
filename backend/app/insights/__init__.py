"""Derived mood analytics: patterns, streaks, summaries."""

from .moods import (
    EmotionTransition,
    MoodRecord,
    PatternResult,
    StreakResult,
    analyze_patterns,
    calculate_streak,
)
from .summary import daily_mood_averages, summarize_moods

__all__ = [
    "EmotionTransition",
    "MoodRecord",
    "PatternResult",
    "StreakResult",
    "analyze_patterns",
    "calculate_streak",
    "daily_mood_averages",
    "summarize_moods",
]
