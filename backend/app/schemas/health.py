from __future__ import annotations

from pydantic import Field

from .common import ApiModel, UtcDatetime


class HealthDataCreate(ApiModel):
    heart_rate: int | None = Field(default=None, ge=20, le=250)
    sleep_hours: float | None = Field(default=None, ge=0, le=24)
    sleep_score: int | None = Field(default=None, ge=0, le=100)
    step_count: int | None = Field(default=None, ge=0)


class HealthDataModel(ApiModel):
    id: int
    user_id: int
    heart_rate: int | None = None
    sleep_hours: float | None = None
    sleep_score: int | None = None
    step_count: int | None = None
    date: UtcDatetime
