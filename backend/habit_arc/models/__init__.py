"""
Pydantic models for the application
"""
from habit_arc.models.habit import (
    HabitType,
    Identity,
    Habit,
    Streak,
    HabitStats,
    StoreStats,
    ExportSnapshot,
    CreateIdentityRequest,
    UpdateIdentityRequest,
    CreateHabitRequest,
    UpdateHabitRequest,
    ToggleDayRequest
)
from habit_arc.models.notifications import (
    NotificationChannel,
    UserPrefs,
    PushPayload,
    SubscribeRequest,
    UnsubscribeRequest,
    NotificationMode,
    NotificationRequest
)
from habit_arc.models.auth import CredentialsRequest, SessionResponse
from habit_arc.models.reports import EmailTemplate, WeeklyReport

__all__ = [
    "HabitType",
    "Identity",
    "Habit",
    "Streak",
    "HabitStats",
    "StoreStats",
    "ExportSnapshot",
    "CreateIdentityRequest",
    "UpdateIdentityRequest",
    "CreateHabitRequest",
    "UpdateHabitRequest",
    "ToggleDayRequest",
    "NotificationChannel",
    "UserPrefs",
    "PushPayload",
    "SubscribeRequest",
    "UnsubscribeRequest",
    "NotificationMode",
    "NotificationRequest",
    "CredentialsRequest",
    "SessionResponse",
    "EmailTemplate",
    "WeeklyReport"
]
