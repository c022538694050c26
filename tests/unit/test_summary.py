from __future__ import annotations

from datetime import UTC, date, datetime

from backend.app.insights import MoodRecord, daily_mood_averages, summarize_moods


def _mood(emotion: str, intensity: int, at: datetime) -> MoodRecord:
    return MoodRecord(emotion=emotion, intensity=intensity, timestamp=at)


def test_summary_empty_range() -> None:
    summary = summarize_moods([])

    assert summary == {
        "average_mood": 0,
        "total_entries": 0,
        "emotion_frequency": {},
        "mood_trend": [],
    }


def test_summary_aggregates_per_day() -> None:
    records = [
        _mood("happy", 8, datetime(2024, 3, 5, 9, tzinfo=UTC)),
        _mood("sad", 3, datetime(2024, 3, 4, 9, tzinfo=UTC)),
        _mood("happy", 6, datetime(2024, 3, 5, 18, tzinfo=UTC)),
    ]

    summary = summarize_moods(records)

    assert summary["average_mood"] == 5.7
    assert summary["total_entries"] == 3
    assert summary["emotion_frequency"] == {"happy": 2, "sad": 1}
    assert summary["mood_trend"] == [
        {"date": date(2024, 3, 4), "average_mood": 3.0},
        {"date": date(2024, 3, 5), "average_mood": 7.0},
    ]


def test_daily_averages_fill_missing_days() -> None:
    end = datetime(2024, 3, 10, 12, tzinfo=UTC)
    records = [
        _mood("calm", 4, datetime(2024, 3, 10, 8, tzinfo=UTC)),
        _mood("calm", 7, datetime(2024, 3, 10, 9, tzinfo=UTC)),
        _mood("love", 9, datetime(2024, 3, 7, 9, tzinfo=UTC)),
        _mood("love", 9, datetime(2024, 3, 1, 9, tzinfo=UTC)),
    ]

    points = daily_mood_averages(records, end=end, days=7)

    assert [point["date"] for point in points] == [date(2024, 3, day) for day in range(4, 11)]
    assert points[-1]["average_mood"] == 5.5
    assert points[-1]["label"] == "Sun"
    assert points[3]["average_mood"] == 9
    assert points[0]["average_mood"] is None
