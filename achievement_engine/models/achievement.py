"""Achievement models for gamification"""
from enum import Enum
from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator
from typing import Optional, Any
from datetime import datetime, timezone
from uuid import uuid4


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class AchievementCategory(str, Enum):
    """Achievement categories"""
    SESSION_MILESTONES = "session_milestones"
    CONSISTENCY_BADGES = "consistency_badges"
    STREAK_ACHIEVEMENTS = "streak_achievements"
    GOAL_BASED = "goal_based"
    TASK_COMPLETION = "task_completion"
    SPECIAL_ACHIEVEMENTS = "special_achievements"


class AchievementDifficulty(str, Enum):
    """Achievement difficulty levels"""
    COMMON = "common"
    UNCOMMON = "uncommon"
    RARE = "rare"
    EPIC = "epic"
    LEGENDARY = "legendary"


class RequirementType(str, Enum):
    """What a requirement measures"""
    SESSION_DURATION = "session_duration"
    SESSION_COUNT = "session_count"
    STREAK_DAYS = "streak_days"
    GOAL_COMPLETION = "goal_completion"
    TASK_COMPLETION = "task_completion"
    SPECIAL_CONDITION = "special_condition"


class RequirementUnit(str, Enum):
    SECONDS = "seconds"
    DAYS = "days"
    COUNT = "count"


class NotificationType(str, Enum):
    EARNED = "earned"
    PROGRESS = "progress"
    MILESTONE = "milestone"


class Requirement(BaseModel):
    """Single condition an achievement needs to be earned"""
    model_config = ConfigDict(frozen=True)

    type: RequirementType
    value: float
    unit: Optional[RequirementUnit] = None
    condition: Optional[str] = None  # discriminator for special_condition

    @field_validator('value')
    @classmethod
    def validate_value(cls, v: float) -> float:
        """Targets are never negative"""
        if v < 0:
            raise ValueError(f"Requirement value must be >= 0, got {v}")
        return v


class Achievement(BaseModel):
    """Achievement definition (catalog entry, immutable once seeded)"""
    model_config = ConfigDict(frozen=True)

    id: str
    name: str
    description: str
    category: AchievementCategory
    icon: str = "🏆"
    difficulty: AchievementDifficulty = AchievementDifficulty.COMMON
    points: int = Field(default=0, ge=0)
    requirements: list[Requirement] = Field(default_factory=list)
    is_hidden: bool = False
    is_active: bool = True


class UserAchievement(BaseModel):
    """Award record - at most one per (user_id, achievement_id)"""
    id: str = Field(default_factory=lambda: str(uuid4()))
    user_id: str
    achievement_id: str
    earned_at: datetime = Field(default_factory=_utcnow)
    progress: float = Field(default=100, ge=0, le=100)
    is_visible: bool = True
    metadata: Optional[dict[str, Any]] = None


class AchievementProgress(BaseModel):
    """How close a user is to an achievement"""
    user_id: str
    achievement_id: str
    current_value: float = 0
    target_value: float = 0
    is_completed: bool = False
    last_updated: datetime = Field(default_factory=_utcnow)

    @model_validator(mode='after')
    def derive_completion(self) -> 'AchievementProgress':
        """is_completed always follows current_value >= target_value"""
        self.is_completed = self.current_value >= self.target_value
        return self


class AchievementNotification(BaseModel):
    """Notification emitted as a side effect of awarding"""
    id: str = Field(default_factory=lambda: str(uuid4()))
    user_id: str
    achievement_id: str
    type: NotificationType = NotificationType.EARNED
    title: str = ""
    message: str = ""
    is_read: bool = False
    created_at: datetime = Field(default_factory=_utcnow)
