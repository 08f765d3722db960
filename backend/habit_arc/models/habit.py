"""
Pydantic models for identities and habits
"""
from datetime import datetime, timezone
from enum import Enum
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from habit_arc.core.constants import DEFAULT_IDENTITY_COLOR


class HabitType(str, Enum):
    """Whether a habit is being built up or broken"""
    START = "start"
    STOP = "stop"


class CamelModel(BaseModel):
    """Base model serialised with the camelCase keys used by the frontend"""
    model_config = ConfigDict(populate_by_name=True)


class Identity(CamelModel):
    """An aspirational self-concept habits are linked to"""
    id: int
    name: str
    description: Optional[str] = None
    color: str = DEFAULT_IDENTITY_COLOR
    created_at: str = Field(..., alias="createdAt")


class Habit(CamelModel):
    """A tracked daily behavior with one boolean per day"""
    id: int
    name: str
    type: HabitType
    total_days: int = Field(..., ge=0, alias="totalDays")
    linked_identities: List[int] = Field(default_factory=list, alias="linkedIdentities")
    progress: List[bool] = Field(default_factory=list)
    created_at: str = Field(..., alias="createdAt")

    @model_validator(mode="after")
    def check_progress_length(self) -> "Habit":
        """progress must hold exactly one slot per tracked day"""
        if len(self.progress) != self.total_days:
            raise ValueError(
                f"progress has {len(self.progress)} entries but totalDays is {self.total_days}"
            )
        return self


class Streak(CamelModel):
    """A run of consecutive completed days"""
    length: int
    start_date: str = Field(..., alias="startDate")
    end_date: str = Field(..., alias="endDate")


class HabitStats(CamelModel):
    """Derived statistics for one habit, always recomputed from progress"""
    completed: int
    percentage: int
    current_streak: int = Field(..., alias="currentStreak")
    longest_streak: int = Field(..., alias="longestStreak")
    streaks: List[Streak] = Field(default_factory=list)
    total_days: int = Field(..., alias="totalDays")


class StoreStats(CamelModel):
    """Counts across a user's data"""
    identities: int
    habits: int
    total_progress: int = Field(..., alias="totalProgress")


class ExportSnapshot(CamelModel):
    """JSON snapshot produced by export and accepted by import"""
    identities: List[Identity] = Field(default_factory=list)
    habits: List[Habit] = Field(default_factory=list)
    exported_at: str = Field(..., alias="exportedAt")
    version: str


# ============================================================================
# REQUEST MODELS
# ============================================================================

class CreateIdentityRequest(BaseModel):
    """Request model for creating an identity"""
    name: str = Field(..., min_length=1, max_length=200, description="Identity name")
    description: Optional[str] = Field(None, description="Optional description")
    color: str = Field(DEFAULT_IDENTITY_COLOR, description="Display color")


class UpdateIdentityRequest(BaseModel):
    """Request model for renaming an identity"""
    name: str = Field(..., min_length=1, max_length=200)
    description: Optional[str] = None


class CreateHabitRequest(CamelModel):
    """Request model for creating a habit"""
    name: str = Field(..., min_length=1, max_length=200, description="Habit name")
    type: HabitType = Field(..., description="'start' to build, 'stop' to break")
    total_days: int = Field(..., ge=1, alias="totalDays", description="Number of tracked days")
    linked_identities: List[int] = Field(default_factory=list, alias="linkedIdentities")


class UpdateHabitRequest(CamelModel):
    """Request model for partially updating a habit"""
    name: Optional[str] = Field(None, min_length=1, max_length=200)
    type: Optional[HabitType] = None
    total_days: Optional[int] = Field(None, ge=1, alias="totalDays")
    linked_identities: Optional[List[int]] = Field(None, alias="linkedIdentities")

    @field_validator("linked_identities")
    @classmethod
    def dedupe_identities(cls, v: Optional[List[int]]) -> Optional[List[int]]:
        """Linked identities behave as a set"""
        if v is None:
            return v
        return list(dict.fromkeys(v))


class ToggleDayRequest(CamelModel):
    """Request model for toggling one day of a habit"""
    day_index: int = Field(..., ge=0, alias="dayIndex")


def now_iso() -> str:
    """Current UTC timestamp in the ISO format stored on records"""
    return datetime.now(timezone.utc).isoformat(timespec="milliseconds").replace("+00:00", "Z")
