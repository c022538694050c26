from __future__ import annotations

from datetime import datetime

from .common import ApiModel


class UserPreferences(ApiModel):
    notifications_enabled: bool
    google_fit_connected: bool


class UserPreferencesUpdate(ApiModel):
    notifications_enabled: bool | None = None
    google_fit_connected: bool | None = None


class ReminderModel(ApiModel):
    kind: str
    title: str
    body: str
    tag: str
    delivered_at: datetime


class ReminderScheduled(ApiModel):
    scheduled: bool
    delay_seconds: float
