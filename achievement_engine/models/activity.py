"""Activity history models consumed by the achievement engine"""
from enum import Enum
from pydantic import BaseModel
from typing import Optional
from datetime import datetime


class TaskStatus(str, Enum):
    PENDING = "pending"
    SUBMITTED = "submitted"
    APPROVED = "approved"
    REJECTED = "rejected"
    COMPLETED = "completed"
    CANCELLED = "cancelled"


class Session(BaseModel):
    """Tracked session. end_time is None while the session is active."""
    id: str
    user_id: Optional[str] = None
    start_time: datetime
    end_time: Optional[datetime] = None

    @property
    def is_completed(self) -> bool:
        return self.end_time is not None

    @property
    def duration_seconds(self) -> Optional[float]:
        if self.end_time is None:
            return None
        return (self.end_time - self.start_time).total_seconds()


class Task(BaseModel):
    """Keyholder-assigned task"""
    id: str
    user_id: Optional[str] = None
    status: TaskStatus = TaskStatus.PENDING
    completed_at: Optional[datetime] = None
    due_date: Optional[datetime] = None


class Goal(BaseModel):
    """Personal goal with a numeric target"""
    id: str
    user_id: Optional[str] = None
    current_value: float = 0
    target_value: float = 0
    is_completed: bool = False
