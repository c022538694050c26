from __future__ import annotations

import logging
from datetime import date, datetime, timedelta, tzinfo
from typing import Any, Literal

from fastapi import APIRouter, Depends, HTTPException, Query, Request, status
from sqlalchemy.exc import SQLAlchemyError

from ..core.config import Settings
from ..insights import analyze_patterns, calculate_streak, daily_mood_averages, summarize_moods
from ..metrics import API_COUNTER
from ..schemas.analytics import (
    EmotionPatternResponse,
    MoodChartResponse,
    MoodSummary,
    StreakResponse,
)
from ..schemas.breathing import (
    BreathingPatternModel,
    BreathingSessionCreate,
    BreathingSessionModel,
    pattern_catalog,
)
from ..schemas.health import HealthDataCreate, HealthDataModel
from ..schemas.mood import MoodEntryCreate, MoodEntryModel
from ..schemas.settings import (
    ReminderModel,
    ReminderScheduled,
    UserPreferences,
    UserPreferencesUpdate,
)
from ..services.reminders import ReminderScheduler
from ..services.storage import StorageService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api", tags=["moodsync"])


def get_storage_service(request: Request) -> StorageService:
    return request.app.state.storage_service


def get_app_settings(request: Request) -> Settings:
    return request.app.state.settings


def get_reminders(request: Request) -> ReminderScheduler:
    return request.app.state.reminders


def get_user_id(request: Request) -> int:
    return request.app.state.demo_user_id


def _store_failure(action: str) -> HTTPException:
    logger.exception("Failed to %s", action)
    return HTTPException(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        detail=f"Failed to {action}",
    )


def start_of_week(today: date) -> date:
    """Sunday on or before ``today``."""

    return today - timedelta(days=(today.weekday() + 1) % 7)


def _local_midnight(day: date, tz: tzinfo) -> datetime:
    return datetime.combine(day, datetime.min.time(), tzinfo=tz)


# -- mood entries --------------------------------------------------------
@router.get("/mood-entries", response_model=list[MoodEntryModel])
async def list_mood_entries(
    storage: StorageService = Depends(get_storage_service),
    user_id: int = Depends(get_user_id),
    limit: int = Query(default=50, ge=1, le=500),
) -> list[MoodEntryModel]:
    try:
        entries = await storage.list_mood_entries(user_id, limit=limit)
    except SQLAlchemyError as exc:
        raise _store_failure("fetch mood entries") from exc
    API_COUNTER.labels(endpoint="mood_entries_get").inc()
    return [MoodEntryModel.model_validate(entry) for entry in entries]


@router.get("/mood-entries/range", response_model=list[MoodEntryModel])
async def list_mood_entries_in_range(
    start_date: datetime = Query(..., alias="startDate"),
    end_date: datetime = Query(..., alias="endDate"),
    storage: StorageService = Depends(get_storage_service),
    user_id: int = Depends(get_user_id),
) -> list[MoodEntryModel]:
    try:
        entries = await storage.list_mood_entries_in_range(user_id, start_date, end_date)
    except SQLAlchemyError as exc:
        raise _store_failure("fetch mood entries") from exc
    API_COUNTER.labels(endpoint="mood_entries_range").inc()
    return [MoodEntryModel.model_validate(entry) for entry in entries]


@router.post(
    "/mood-entries",
    response_model=MoodEntryModel,
    status_code=status.HTTP_201_CREATED,
)
async def create_mood_entry(
    payload: MoodEntryCreate,
    storage: StorageService = Depends(get_storage_service),
    user_id: int = Depends(get_user_id),
) -> MoodEntryModel:
    try:
        entry = await storage.add_mood_entry(
            user_id=user_id,
            emotion=payload.emotion.value,
            intensity=payload.intensity,
            thoughts=payload.thoughts,
            activity=payload.activity.value if payload.activity else None,
            location=payload.location,
            photo_url=payload.photo_url,
            triggers=payload.triggers,
        )
    except SQLAlchemyError as exc:
        raise _store_failure("create mood entry") from exc
    API_COUNTER.labels(endpoint="mood_entries_post").inc()
    return MoodEntryModel.model_validate(entry)


# -- health data ---------------------------------------------------------
@router.get("/health-data/today", response_model=HealthDataModel | dict[str, Any])
async def read_health_data_today(
    storage: StorageService = Depends(get_storage_service),
    user_id: int = Depends(get_user_id),
) -> HealthDataModel | dict[str, Any]:
    try:
        record = await storage.get_health_data(user_id)
    except SQLAlchemyError as exc:
        raise _store_failure("fetch health data") from exc
    API_COUNTER.labels(endpoint="health_today").inc()
    if record is None:
        return {}
    return HealthDataModel.model_validate(record)


@router.get("/health-data/range", response_model=list[HealthDataModel])
async def list_health_data_in_range(
    start_date: datetime = Query(..., alias="startDate"),
    end_date: datetime = Query(..., alias="endDate"),
    storage: StorageService = Depends(get_storage_service),
    user_id: int = Depends(get_user_id),
) -> list[HealthDataModel]:
    try:
        records = await storage.list_health_data_in_range(user_id, start_date, end_date)
    except SQLAlchemyError as exc:
        raise _store_failure("fetch health data") from exc
    API_COUNTER.labels(endpoint="health_range").inc()
    return [HealthDataModel.model_validate(record) for record in records]


@router.post(
    "/health-data",
    response_model=HealthDataModel,
    status_code=status.HTTP_201_CREATED,
)
async def save_health_data(
    payload: HealthDataCreate,
    storage: StorageService = Depends(get_storage_service),
    user_id: int = Depends(get_user_id),
) -> HealthDataModel:
    try:
        record = await storage.upsert_health_data(user_id, **payload.model_dump())
    except SQLAlchemyError as exc:
        raise _store_failure("save health data") from exc
    API_COUNTER.labels(endpoint="health_post").inc()
    return HealthDataModel.model_validate(record)


# -- breathing -----------------------------------------------------------
@router.get("/breathing-sessions", response_model=list[BreathingSessionModel])
async def list_breathing_sessions(
    storage: StorageService = Depends(get_storage_service),
    user_id: int = Depends(get_user_id),
    limit: int = Query(default=20, ge=1, le=200),
) -> list[BreathingSessionModel]:
    try:
        sessions = await storage.list_breathing_sessions(user_id, limit=limit)
    except SQLAlchemyError as exc:
        raise _store_failure("fetch breathing sessions") from exc
    API_COUNTER.labels(endpoint="breathing_get").inc()
    return [BreathingSessionModel.model_validate(item) for item in sessions]


@router.post(
    "/breathing-sessions",
    response_model=BreathingSessionModel,
    status_code=status.HTTP_201_CREATED,
)
async def create_breathing_session(
    payload: BreathingSessionCreate,
    storage: StorageService = Depends(get_storage_service),
    user_id: int = Depends(get_user_id),
) -> BreathingSessionModel:
    try:
        session = await storage.add_breathing_session(
            user_id=user_id,
            pattern=payload.pattern.value,
            duration=payload.duration,
        )
    except SQLAlchemyError as exc:
        raise _store_failure("create breathing session") from exc
    API_COUNTER.labels(endpoint="breathing_post").inc()
    return BreathingSessionModel.model_validate(session)


@router.get("/breathing-patterns", response_model=list[BreathingPatternModel])
async def list_breathing_patterns() -> list[BreathingPatternModel]:
    return pattern_catalog()


# -- analytics -----------------------------------------------------------
@router.get("/analytics/mood-summary", response_model=MoodSummary)
async def mood_summary(
    days: int = Query(default=7, ge=1, le=366),
    storage: StorageService = Depends(get_storage_service),
    settings: Settings = Depends(get_app_settings),
    user_id: int = Depends(get_user_id),
) -> MoodSummary:
    end = datetime.utcnow()
    try:
        entries = await storage.list_mood_entries_in_range(user_id, end - timedelta(days=days), end)
    except SQLAlchemyError as exc:
        raise _store_failure("fetch mood summary") from exc
    API_COUNTER.labels(endpoint="analytics_summary").inc()
    return MoodSummary.model_validate(summarize_moods(entries, tz=settings.tzinfo))


@router.get("/analytics/mood-chart", response_model=MoodChartResponse)
async def mood_chart(
    days: int = Query(default=7, ge=1, le=31),
    storage: StorageService = Depends(get_storage_service),
    settings: Settings = Depends(get_app_settings),
    user_id: int = Depends(get_user_id),
) -> MoodChartResponse:
    tz = settings.tzinfo
    now = datetime.now(tz)
    start = _local_midnight(now.date() - timedelta(days=days - 1), tz)
    try:
        entries = await storage.list_mood_entries_in_range(user_id, start, now)
    except SQLAlchemyError as exc:
        raise _store_failure("fetch mood chart") from exc
    API_COUNTER.labels(endpoint="analytics_chart").inc()
    points = daily_mood_averages(entries, end=now, days=days, tz=tz)
    return MoodChartResponse.model_validate({"points": points})


@router.get("/analytics/patterns", response_model=EmotionPatternResponse)
async def emotion_patterns(
    timeframe: Literal["week", "month"] = Query(default="week"),
    storage: StorageService = Depends(get_storage_service),
    settings: Settings = Depends(get_app_settings),
    user_id: int = Depends(get_user_id),
) -> EmotionPatternResponse:
    tz = settings.tzinfo
    now = datetime.now(tz)
    if timeframe == "week":
        start = _local_midnight(start_of_week(now.date()), tz)
    else:
        start = now - timedelta(weeks=4)
    try:
        entries = await storage.list_mood_entries_in_range(user_id, start, now)
    except SQLAlchemyError as exc:
        raise _store_failure("fetch emotion patterns") from exc
    API_COUNTER.labels(endpoint="analytics_patterns").inc()
    result = analyze_patterns(entries, tz=tz, average=settings.transition_average)
    return EmotionPatternResponse.model_validate(result)


@router.get("/analytics/streak", response_model=StreakResponse)
async def mood_streak(
    storage: StorageService = Depends(get_storage_service),
    settings: Settings = Depends(get_app_settings),
    user_id: int = Depends(get_user_id),
) -> StreakResponse:
    try:
        entries = await storage.list_mood_entries(user_id, limit=None)
    except SQLAlchemyError as exc:
        raise _store_failure("fetch mood streak") from exc
    API_COUNTER.labels(endpoint="analytics_streak").inc()
    return StreakResponse.model_validate(calculate_streak(entries, tz=settings.tzinfo))


# -- settings and reminders ----------------------------------------------
@router.get("/settings", response_model=UserPreferences)
async def read_preferences(
    storage: StorageService = Depends(get_storage_service),
    user_id: int = Depends(get_user_id),
) -> UserPreferences:
    try:
        user = await storage.get_user(user_id)
    except SQLAlchemyError as exc:
        raise _store_failure("fetch settings") from exc
    if user is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="user not found")
    return UserPreferences.model_validate(user)


@router.patch("/settings", response_model=UserPreferences)
async def update_preferences(
    payload: UserPreferencesUpdate,
    storage: StorageService = Depends(get_storage_service),
    user_id: int = Depends(get_user_id),
) -> UserPreferences:
    try:
        user = await storage.update_user_preferences(
            user_id,
            notifications_enabled=payload.notifications_enabled,
            google_fit_connected=payload.google_fit_connected,
        )
    except SQLAlchemyError as exc:
        raise _store_failure("update settings") from exc
    if user is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="user not found")
    API_COUNTER.labels(endpoint="settings_patch").inc()
    return UserPreferences.model_validate(user)


@router.post(
    "/notifications/breathing-reminder",
    response_model=ReminderScheduled,
    status_code=status.HTTP_202_ACCEPTED,
)
async def schedule_breathing_reminder(
    reminders: ReminderScheduler = Depends(get_reminders),
) -> ReminderScheduled:
    scheduled = reminders.schedule_breathing_reminder()
    API_COUNTER.labels(endpoint="breathing_reminder").inc()
    return ReminderScheduled(
        scheduled=scheduled,
        delay_seconds=reminders.breathing_delay_seconds,
    )


@router.get("/notifications", response_model=list[ReminderModel])
async def list_notifications(
    reminders: ReminderScheduler = Depends(get_reminders),
) -> list[ReminderModel]:
    return [ReminderModel.model_validate(item) for item in reminders.sent]


__all__ = ["router", "start_of_week"]
