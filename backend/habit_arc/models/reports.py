"""
Pydantic models for the weekly summary
"""
from datetime import date
from typing import List

from pydantic import BaseModel, Field

from habit_arc.models.habit import CamelModel, Habit, Identity


class HabitSummary(CamelModel):
    """Habit-level numbers of the week"""
    total: int
    completed: int = Field(..., description="Habits with at least one completed day")
    completion_rate: float = Field(..., alias="completionRate")
    top_performing: List[Habit] = Field(default_factory=list, alias="topPerforming")
    struggling: List[Habit] = Field(default_factory=list)
    new_streaks: int = Field(..., alias="newStreaks")
    broken_streaks: int = Field(..., alias="brokenStreaks")


class IdentityProgress(CamelModel):
    identity: Identity
    habits_count: int = Field(..., alias="habitsCount")
    completion_rate: float = Field(..., alias="completionRate")


class IdentitySummary(CamelModel):
    total: int
    active: int
    progress: List[IdentityProgress] = Field(default_factory=list)


class WeeklyReport(CamelModel):
    """Everything the weekly email is rendered from"""
    week_start: date = Field(..., alias="weekStart")
    week_end: date = Field(..., alias="weekEnd")
    habits: HabitSummary
    identities: IdentitySummary
    insights: List[str] = Field(default_factory=list)
    next_week_goals: List[str] = Field(default_factory=list, alias="nextWeekGoals")


class EmailTemplate(BaseModel):
    """Rendered email, ready to hand to the email sender"""
    subject: str
    html: str
    text: str
